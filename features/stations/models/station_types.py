import math
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, field_validator

class Station(BaseModel):
    """NOAA water level station from the catalog."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., description="Station identifier")
    name: str = Field(..., description="Station name")
    region: Optional[str] = Field(None, description="State or region code")
    latitude: float = Field(..., alias="lat")
    longitude: float = Field(..., alias="lng")

    @property
    def display_name(self) -> str:
        return f"{self.name}, {self.region}" if self.region else self.name

    def has_valid_coordinates(self) -> bool:
        """Coordinates are finite, in range, and not the (0, 0) placeholder."""
        lat, lng = self.latitude, self.longitude
        if not (math.isfinite(lat) and math.isfinite(lng)):
            return False
        if not (-90 <= lat <= 90 and -180 <= lng <= 180):
            return False
        return lat != 0 and lng != 0

class StationDistance(BaseModel):
    """Station paired with its great circle distance from a query point."""
    station: Station
    distance_km: float

class Catalog(BaseModel):
    """Stations currently served by the directory."""
    model_config = ConfigDict(frozen=True)

    stations: Tuple[Station, ...] = ()
    last_refreshed: Optional[datetime] = None

    def is_fresh(self, now: datetime, max_age_days: int) -> bool:
        if self.last_refreshed is None:
            return False
        return (now - self.last_refreshed).total_seconds() < max_age_days * 86400

class CatalogCache(BaseModel):
    """On-disk form of the catalog."""
    stations: List[Station]
    last_refreshed: datetime

    @field_validator("last_refreshed")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            v = v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

class ActiveSelection(BaseModel):
    """Station chosen as the active location."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    latitude: float = Field(..., alias="lat")
    longitude: float = Field(..., alias="lng")
    station_id: str = Field(..., alias="stationId")

class SelectionRequest(BaseModel):
    """Body for choosing the active station."""
    station_id: str
