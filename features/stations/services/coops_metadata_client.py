import asyncio
import logging
import aiohttp
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from features.stations.models.station_types import Station
from features.common.exceptions.tide_exceptions import NetworkError, DataUnavailable
from core.config import settings

logger = logging.getLogger(__name__)

class CoopsMetadataClient:
    """Fetches the water level station catalog from the CO-OPS metadata API."""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[int] = None):
        self.base_url = base_url or settings.coops_metadata_url
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

    @staticmethod
    def parse_stations(data: Dict[str, Any]) -> List[Station]:
        """Map the `stations` array to Station records, skipping unusable entries."""
        stations: List[Station] = []
        for raw in data.get("stations") or []:
            try:
                stations.append(Station(
                    id=str(raw["id"]),
                    name=raw["name"],
                    region=raw.get("state") or None,
                    latitude=raw["lat"],
                    longitude=raw["lng"]
                ))
            except (KeyError, TypeError, ValidationError):
                logger.debug(f"Skipping invalid station entry: {raw}")
        return stations

    async def fetch_station_catalog(self) -> List[Station]:
        """Get every water level station."""
        url = f"{self.base_url}/stations.json"
        params = {"type": settings.coops_station_type}
        try:
            session = await self._init_session()
            async with session.get(url, params=params) as response:
                response.raise_for_status()
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Error fetching station catalog: {str(e)}")
            raise NetworkError(f"Unable to reach station catalog: {str(e)}") from e
        except ValueError as e:
            logger.error(f"Error decoding station catalog: {str(e)}")
            raise DataUnavailable(f"Station catalog response could not be decoded: {str(e)}") from e

        if not isinstance(data, dict):
            raise DataUnavailable("Station catalog response has unexpected shape")

        stations = self.parse_stations(data)
        if not stations:
            raise DataUnavailable("Station catalog response contained no stations")

        logger.info(f"📡 Fetched {len(stations)} stations from CO-OPS ({settings.coops_station_type})")
        return stations
