"""
Shared fixtures and fakes for the tide and station directory tests.

Nothing here touches the network: the CO-OPS clients are replaced by the
fake fetchers below, and caches are in-memory with a unique namespace per
test.
"""
import asyncio
import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import pytest
from aiocache import SimpleMemoryCache

from features.common.services.cache_store import MemoryCacheStore
from features.stations.models.station_types import Station
from features.tides.models.tide_types import ExtremaPoint, TideKind

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def point(hours: float, height: float, kind: TideKind) -> ExtremaPoint:
    """Extremum `hours` after NOW."""
    return ExtremaPoint(timestamp=NOW + timedelta(hours=hours), height=height, kind=kind)


class FakeClock:
    """Settable clock so staleness can be tested without waiting."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeCatalogFetcher:
    """Stands in for CoopsMetadataClient.fetch_station_catalog."""

    def __init__(self, stations: List[Station], gate: Optional[asyncio.Event] = None):
        self.stations = stations
        self.gate = gate
        self.error: Optional[Exception] = None
        self.calls = 0

    async def __call__(self) -> List[Station]:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return list(self.stations)


class FakePredictionFetcher:
    """Stands in for CoopsPredictionsClient.fetch_predictions."""

    def __init__(self, points: List[ExtremaPoint]):
        self.points = points
        self.error: Optional[Exception] = None
        self.calls: List[str] = []

    async def __call__(self, station_id: str, now: datetime) -> List[ExtremaPoint]:
        self.calls.append(station_id)
        if self.error is not None:
            raise self.error
        return list(self.points)


SAMPLE_STATIONS = [
    Station(id="9414290", name="San Francisco", region="CA", latitude=37.8063, longitude=-122.4659),
    Station(id="9413450", name="Monterey", region="CA", latitude=36.6050, longitude=-121.8883),
    Station(id="9413745", name="Santa Cruz", region="CA", latitude=36.9583, longitude=-122.0167),
    Station(id="9410840", name="Santa Monica", region="CA", latitude=34.0083, longitude=-118.5000),
    Station(id="9410170", name="San Diego, Quarantine Station", region="CA", latitude=32.7142, longitude=-117.1736),
    Station(id="9414131", name="Pillar Point Harbor", region="CA", latitude=37.5025, longitude=-122.4822),
    Station(id="9410660", name="Los Angeles", region="CA", latitude=33.7200, longitude=-118.2717),
    Station(id="9410580", name="Newport Bay Entrance", region="CA", latitude=33.6033, longitude=-117.8833),
    Station(id="9410230", name="La Jolla", region="CA", latitude=32.8669, longitude=-117.2571),
    Station(id="9415020", name="Point Reyes", region="CA", latitude=37.9961, longitude=-122.9767),
    Station(id="9416841", name="Arena Cove", region="CA", latitude=38.9146, longitude=-123.7110),
    Station(id="9419750", name="Crescent City", region="CA", latitude=41.7456, longitude=-124.1844),
    Station(id="9435380", name="South Beach", region="OR", latitude=44.6254, longitude=-124.0449),
    Station(id="8443970", name="Boston", region="MA", latitude=42.3539, longitude=-71.0503),
    Station(id="1612340", name="Honolulu", region=None, latitude=21.3033, longitude=-157.8645),
]


@pytest.fixture
def stations() -> List[Station]:
    return list(SAMPLE_STATIONS)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> MemoryCacheStore:
    """In-memory store isolated from other tests."""
    return MemoryCacheStore(namespace=f"test-{uuid.uuid4().hex}")


@pytest.fixture
def memory_cache() -> SimpleMemoryCache:
    return SimpleMemoryCache(namespace=f"test-{uuid.uuid4().hex}")


@pytest.fixture
def tide_series() -> List[ExtremaPoint]:
    """A regular semidiurnal series from 15 hours before NOW to 27 hours after."""
    return [
        point(-15, 4.6, TideKind.HIGH),
        point(-9, 0.4, TideKind.LOW),
        point(-3, 5.1, TideKind.HIGH),
        point(3, 0.2, TideKind.LOW),
        point(9, 4.8, TideKind.HIGH),
        point(15, 0.9, TideKind.LOW),
        point(21, 5.3, TideKind.HIGH),
        point(27, -0.3, TideKind.LOW),
    ]
