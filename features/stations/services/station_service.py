import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional, Sequence

from pydantic import ValidationError

from features.stations.models.station_types import (
    ActiveSelection,
    Catalog,
    CatalogCache,
    Station,
    StationDistance
)
from features.common.exceptions.tide_exceptions import (
    CacheCorrupt,
    DataUnavailable,
    InvalidSelection,
    TideServiceError
)
from features.common.services.cache_store import CacheStore
from features.common.services.single_flight import FetchCoordinator
from features.common.utils.geo import GeoUtils
from core.config import settings

logger = logging.getLogger(__name__)

CatalogFetcher = Callable[[], Awaitable[List[Station]]]
Clock = Callable[[], datetime]

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

class StationDirectoryService:
    """Search and nearest-station lookups over the CO-OPS station catalog.

    The catalog is loaded from the on-disk cache when it is less than
    `station_cache_ttl_days` old, otherwise fetched. Concurrent lookups
    against a missing or stale catalog share a single fetch.
    """

    def __init__(
        self,
        fetch_catalog: CatalogFetcher,
        store: CacheStore,
        clock: Clock = utc_now,
        ttl_days: Optional[int] = None,
        search_limit: Optional[int] = None,
        nearest_limit: Optional[int] = None
    ):
        self._fetch_catalog = fetch_catalog
        self._store = store
        self._clock = clock
        self.ttl_days = settings.station_cache_ttl_days if ttl_days is None else ttl_days
        self.search_limit = settings.search_limit if search_limit is None else search_limit
        self.nearest_limit = settings.nearest_limit if nearest_limit is None else nearest_limit
        self.catalog_key = settings.station_catalog_key
        self.selection_key = settings.active_selection_key

        self._catalog = Catalog()
        self._coordinator: FetchCoordinator[Catalog] = FetchCoordinator(name="station catalog fetch")
        self._startup_task: Optional[asyncio.Task] = None

    @property
    def catalog(self) -> Catalog:
        return self._catalog

    @property
    def is_fetching(self) -> bool:
        return self._coordinator.in_flight

    def is_ready(self) -> bool:
        """Catalog has stations and was refreshed within the TTL."""
        catalog = self._catalog
        return bool(catalog.stations) and catalog.is_fresh(self._clock(), self.ttl_days)

    async def start(self) -> None:
        """Load the cached catalog, scheduling a fetch if it is missing or stale."""
        cached = await self._load_cached_catalog()
        if cached and cached.is_fresh(self._clock(), self.ttl_days):
            self._catalog = cached
            logger.info(f"📦 Loaded {len(cached.stations)} stations from cache "
                        f"(refreshed {cached.last_refreshed.isoformat()})")
            return

        if cached:
            logger.info(f"Station cache is older than {self.ttl_days} days, scheduling refresh")
        else:
            logger.info("No usable station cache, scheduling refresh")
        self._startup_task = asyncio.create_task(self.refresh_if_stale())

    async def close(self) -> None:
        if self._startup_task and not self._startup_task.done():
            self._startup_task.cancel()
            try:
                await self._startup_task
            except asyncio.CancelledError:
                pass
        await self._coordinator.close()

    @staticmethod
    def decode_catalog(data: bytes) -> Catalog:
        try:
            cached = CatalogCache.model_validate_json(data)
        except (ValidationError, ValueError) as e:
            raise CacheCorrupt(f"Station cache could not be decoded: {str(e)}") from e
        return Catalog(stations=tuple(cached.stations), last_refreshed=cached.last_refreshed)

    @staticmethod
    def encode_catalog(catalog: Catalog) -> bytes:
        cached = CatalogCache(stations=list(catalog.stations), last_refreshed=catalog.last_refreshed)
        return cached.model_dump_json(by_alias=True).encode("utf-8")

    async def _load_cached_catalog(self) -> Optional[Catalog]:
        data = await self._store.load(self.catalog_key)
        if data is None:
            return None
        try:
            return self.decode_catalog(data)
        except CacheCorrupt as e:
            logger.warning(f"⚠️ Discarding corrupt station cache: {str(e)}")
            await self._store.delete(self.catalog_key)
            return None

    async def _refresh_catalog(self) -> Catalog:
        """Fetch the full catalog, replace the in-memory copy and persist it."""
        stations = await self._fetch_catalog()
        if not stations:
            raise DataUnavailable("Station catalog fetch returned no stations")

        catalog = Catalog(stations=tuple(stations), last_refreshed=self._clock())
        self._catalog = catalog

        try:
            await self._store.save(self.catalog_key, self.encode_catalog(catalog))
        except Exception as e:
            logger.error(f"Error saving station cache: {str(e)}")

        logger.info(f"✅ Station catalog refreshed with {len(catalog.stations)} stations")
        return catalog

    async def refresh(self) -> Catalog:
        """Refresh the catalog now, joining a fetch already in flight. Raises on failure."""
        return await self._coordinator.ensure_fresh(self._refresh_catalog)

    async def refresh_if_stale(self) -> bool:
        """Refresh only when the catalog is not ready. Failures are logged, not raised."""
        if self.is_ready():
            return False
        try:
            await self.refresh()
            return True
        except TideServiceError as e:
            logger.warning(f"⚠️ Station catalog refresh failed: {str(e)}")
            return False

    async def _ready_catalog(self) -> Catalog:
        if self.is_ready():
            return self._catalog
        try:
            return await self.refresh()
        except TideServiceError as e:
            logger.warning(f"⚠️ Station catalog refresh failed, answering from "
                           f"{len(self._catalog.stations)} cached stations: {str(e)}")
            return self._catalog

    @staticmethod
    def filter_stations(stations: Sequence[Station], query: str, limit: int) -> List[Station]:
        """Case-insensitive substring match on name or region, in catalog order."""
        needle = (query or "").strip().lower()
        matches: List[Station] = []
        for station in stations:
            if len(matches) >= limit:
                break
            if (not needle
                    or needle in station.name.lower()
                    or needle in (station.region or "").lower()):
                matches.append(station)
        return matches

    @staticmethod
    def rank_by_distance(
        stations: Sequence[Station],
        latitude: float,
        longitude: float,
        limit: int
    ) -> List[StationDistance]:
        ranked = [
            StationDistance(
                station=station,
                distance_km=GeoUtils.calculate_distance(latitude, longitude, station.latitude, station.longitude)
            )
            for station in stations
        ]
        ranked.sort(key=lambda d: d.distance_km)
        return ranked[:limit]

    async def search(self, query: str) -> List[Station]:
        """Stations whose name or region contains `query`, up to `search_limit`."""
        catalog = await self._ready_catalog()
        results = self.filter_stations(catalog.stations, query, self.search_limit)
        logger.info(f"🔍 Search '{query}' matched {len(results)} stations")
        return results

    async def nearest_with_distance(self, latitude: float, longitude: float) -> List[StationDistance]:
        catalog = await self._ready_catalog()
        return self.rank_by_distance(catalog.stations, latitude, longitude, self.nearest_limit)

    async def nearest(self, latitude: float, longitude: float) -> List[Station]:
        """Closest stations to a coordinate, nearest first, up to `nearest_limit`."""
        ranked = await self.nearest_with_distance(latitude, longitude)
        logger.info(f"📍 Found {len(ranked)} stations near ({latitude:.4f}, {longitude:.4f})")
        return [d.station for d in ranked]

    async def get_station(self, station_id: str) -> Optional[Station]:
        catalog = await self._ready_catalog()
        return next((s for s in catalog.stations if s.id == station_id), None)

    async def select_station(self, station: Station) -> ActiveSelection:
        """Persist `station` as the active selection."""
        if not station.id or not station.id.strip():
            raise InvalidSelection("Selection is missing a station id")
        if not station.has_valid_coordinates():
            raise InvalidSelection(f"Station {station.id} does not have valid coordinates")

        selection = ActiveSelection(
            name=station.display_name,
            latitude=station.latitude,
            longitude=station.longitude,
            station_id=station.id
        )
        await self._store.save(self.selection_key, selection.model_dump_json(by_alias=True).encode("utf-8"))
        logger.info(f"⭐ Selected station {station.id} ({selection.name})")
        return selection

    async def get_selection(self) -> Optional[ActiveSelection]:
        data = await self._store.load(self.selection_key)
        if data is None:
            return None
        try:
            return ActiveSelection.model_validate_json(data)
        except (ValidationError, ValueError) as e:
            logger.warning(f"⚠️ Discarding corrupt station selection: {str(e)}")
            await self._store.delete(self.selection_key)
            return None
