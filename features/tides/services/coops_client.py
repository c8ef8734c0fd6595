import asyncio
import logging
import aiohttp
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from features.tides.models.tide_types import ExtremaPoint
from features.tides.services.tide_engine import parse_predictions
from features.common.exceptions.tide_exceptions import NetworkError, DataUnavailable
from core.config import settings

logger = logging.getLogger(__name__)

class CoopsPredictionsClient:
    """Client for hi/lo tide predictions from the CO-OPS data getter."""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[int] = None):
        self.data_url = base_url or settings.coops_base_url
        self.timeout = timeout or settings.request_timeout
        self._session: Optional[aiohttp.ClientSession] = None

    async def _init_session(self) -> aiohttp.ClientSession:
        if not self._session:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self._session

    async def close(self):
        if self._session:
            await self._session.close()
            self._session = None

    def build_params(self, station_id: str, now: datetime) -> dict:
        """Query parameters covering one day back and four days ahead (GMT dates)."""
        now = now.astimezone(timezone.utc)
        begin = now - timedelta(days=settings.prediction_days_back)
        end = now + timedelta(days=settings.prediction_days_forward)
        return {
            **settings.coops_params,
            "station": station_id,
            "application": settings.app_name,
            "begin_date": begin.strftime("%Y%m%d"),
            "end_date": end.strftime("%Y%m%d")
        }

    async def fetch_predictions(self, station_id: str, now: Optional[datetime] = None) -> List[ExtremaPoint]:
        """Get hi/lo predictions for a station around `now`."""
        now = now or datetime.now(timezone.utc)
        params = self.build_params(station_id, now)
        try:
            session = await self._init_session()
            async with session.get(self.data_url, params=params) as response:
                response.raise_for_status()
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Error fetching tide predictions for station {station_id}: {str(e)}")
            raise NetworkError(f"Unable to connect to tide service: {str(e)}") from e
        except ValueError as e:
            logger.error(f"Error decoding tide predictions for station {station_id}: {str(e)}")
            raise DataUnavailable(f"Tide predictions could not be decoded for station {station_id}") from e

        if not isinstance(data, dict):
            raise DataUnavailable(f"Unexpected predictions response for station {station_id}")

        if "error" in data:
            message = (data.get("error") or {}).get("message", "Unknown error from NOAA API")
            logger.warning(f"CO-OPS error for station {station_id}: {message}")
            raise DataUnavailable(f"Tide data not available for station {station_id}: {message}")

        records = data.get("predictions") or []
        points = parse_predictions(records)
        if not points:
            raise DataUnavailable(f"No usable tide predictions for station {station_id}")

        logger.info(f"🌊 Received {len(points)} hi/lo predictions for station {station_id}")
        return points
