import logging
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, List, Optional

from aiocache.base import BaseCache
from pydantic import ValidationError

from features.tides.models.tide_types import (
    ExtremaPoint,
    TideHeight,
    TideSnapshot,
    TideStatus
)
from features.tides.services.tide_engine import derive, interpolate
from features.tides.services.alert_schedule import build_tide_alerts
from features.stations.services.station_service import StationDirectoryService, utc_now
from features.common.exceptions.tide_exceptions import InvalidSelection
from features.common.services.cache_config import get_cache, station_cache_key
from features.common.services.cache_store import CacheStore
from core.config import settings

logger = logging.getLogger(__name__)

PredictionFetcher = Callable[[str, datetime], Awaitable[List[ExtremaPoint]]]

class TideService:
    """Tide state for stations and for the active selection."""

    def __init__(
        self,
        fetch_predictions: PredictionFetcher,
        directory: StationDirectoryService,
        store: CacheStore,
        cache: Optional[BaseCache] = None,
        clock: Callable[[], datetime] = utc_now
    ) -> None:
        self._fetch_predictions = fetch_predictions
        self.directory = directory
        self._store = store
        self._cache = cache if cache is not None else get_cache()
        self._clock = clock
        self.window_back = timedelta(hours=settings.chart_window_back_hours)
        self.window_forward = timedelta(hours=settings.chart_window_forward_hours)
        self.latest: Optional[TideStatus] = None

    async def get_predictions(self, station_id: str, now: Optional[datetime] = None) -> List[ExtremaPoint]:
        """Hi/lo predictions for a station, cached for `tide_predictions` TTL."""
        key = station_cache_key("tide_predictions", station_id)
        cached = await self._cache.get(key)
        if cached is not None:
            logger.debug(f"Using cached predictions for station {station_id}")
            return cached

        points = await self._fetch_predictions(station_id, now or self._clock())
        await self._cache.set(key, points, ttl=settings.get_cache_ttl()["tide_predictions"])
        return points

    def derive_snapshot(self, now: datetime, predictions: List[ExtremaPoint]) -> TideSnapshot:
        return derive(now, predictions, window_back=self.window_back, window_forward=self.window_forward)

    async def get_station_snapshot(self, station_id: str, now: Optional[datetime] = None) -> TideSnapshot:
        """Current tide state for a station."""
        now = now or self._clock()
        predictions = await self.get_predictions(station_id, now)
        return self.derive_snapshot(now, predictions)

    async def get_height(self, station_id: str, at: datetime) -> TideHeight:
        """Interpolated height at `at` from the cached predictions."""
        if at.tzinfo is None:
            at = at.replace(tzinfo=timezone.utc)
        predictions = await self.get_predictions(station_id)
        return TideHeight(station_id=station_id, at=at, height=interpolate(at, predictions))

    async def refresh_active_selection(self, now: Optional[datetime] = None) -> TideStatus:
        """Derive the tide state for the active selection, persist it and build alerts."""
        now = now or self._clock()
        selection = await self.directory.get_selection()
        if selection is None or not selection.station_id:
            raise InvalidSelection("No station has been selected")
        if selection.latitude == 0 or selection.longitude == 0:
            raise InvalidSelection(f"Selection {selection.station_id} has no valid coordinates")

        snapshot = await self.get_station_snapshot(selection.station_id, now)
        alerts = build_tide_alerts(snapshot, selection.name, now, settings.alert_lead_minutes)
        status = TideStatus(
            station_id=selection.station_id,
            location_name=selection.name,
            snapshot=snapshot,
            alerts=alerts
        )
        self.latest = status

        try:
            await self._store.save(settings.tide_snapshot_key, status.model_dump_json().encode("utf-8"))
        except Exception as e:
            logger.error(f"Error saving tide snapshot: {str(e)}")

        logger.info(f"🌊 {selection.name}: {snapshot.current_height:.2f} ft, {snapshot.trend.value}, "
                    f"{len(alerts)} alerts scheduled")
        return status

    async def load_cached_snapshot(self) -> Optional[TideStatus]:
        """Restore the last persisted status so it can be shown before a refresh."""
        data = await self._store.load(settings.tide_snapshot_key)
        if data is None:
            return None
        try:
            status = TideStatus.model_validate_json(data)
        except (ValidationError, ValueError) as e:
            logger.warning(f"⚠️ Discarding corrupt tide snapshot: {str(e)}")
            await self._store.delete(settings.tide_snapshot_key)
            return None
        self.latest = status
        return status
