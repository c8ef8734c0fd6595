from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, field_validator

class TideKind(str, Enum):
    """Predicted extremum type."""
    HIGH = "high"
    LOW = "low"

class TideTrend(str, Enum):
    """Direction the water is moving at a given instant."""
    RISING = "rising"
    FALLING = "falling"
    UNKNOWN = "unknown"

def _ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

class ExtremaPoint(BaseModel):
    """One predicted high or low tide."""
    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(..., description="Time of the extremum (UTC)")
    height: float = Field(..., allow_inf_nan=False, description="Height in feet relative to MLLW")
    kind: TideKind = Field(..., description="High or low tide")

    @field_validator("timestamp")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Naive timestamps are taken to be UTC."""
        return _ensure_utc(v)

class TideEvent(BaseModel):
    """A past or upcoming extremum as reported in a snapshot."""
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    height: float

class TideSnapshot(BaseModel):
    """Tide state derived from a prediction series at one instant."""
    model_config = ConfigDict(frozen=True)

    generated_at: datetime = Field(..., description="Instant the state was derived for")
    current_height: float = Field(..., description="Interpolated height in feet")
    trend: TideTrend
    last_high: Optional[TideEvent] = None
    next_high: Optional[TideEvent] = None
    last_low: Optional[TideEvent] = None
    next_low: Optional[TideEvent] = None
    chart_series: Tuple[ExtremaPoint, ...] = ()

class TideHeight(BaseModel):
    """Interpolated height at a requested instant."""
    station_id: str
    at: datetime
    height: Optional[float] = None

class TideAlert(BaseModel):
    """A reminder to be delivered ahead of an upcoming extremum."""
    model_config = ConfigDict(frozen=True)

    id: str
    kind: TideKind
    title: str
    body: str
    fire_at: datetime
    event_time: datetime

class TideStatus(BaseModel):
    """Snapshot for the active selection together with its alert schedule."""
    station_id: str
    location_name: str
    snapshot: TideSnapshot
    alerts: List[TideAlert] = Field(default_factory=list)
