import logging
from datetime import datetime, timedelta
from typing import List, Optional

from features.tides.models.tide_types import TideAlert, TideEvent, TideKind, TideSnapshot

logger = logging.getLogger(__name__)

DEFAULT_LEAD_MINUTES = 30


def _alert(
    kind: TideKind,
    event: Optional[TideEvent],
    location_name: str,
    now: datetime,
    lead: timedelta
) -> Optional[TideAlert]:
    if event is None:
        return None

    fire_at = event.timestamp - lead
    if fire_at <= now:
        return None

    label = "High" if kind == TideKind.HIGH else "Low"
    minutes = int(lead.total_seconds() // 60)
    return TideAlert(
        id=f"{label.lower()}Tide-{int(event.timestamp.timestamp())}",
        kind=kind,
        title=f"{label} Tide Alert",
        body=f"{label} tide at {location_name} in {minutes} minutes",
        fire_at=fire_at,
        event_time=event.timestamp
    )


def build_tide_alerts(
    snapshot: TideSnapshot,
    location_name: str,
    now: datetime,
    lead_minutes: int = DEFAULT_LEAD_MINUTES
) -> List[TideAlert]:
    """
    Reminders for the next low and next high tide.

    Each alert fires `lead_minutes` before its tide. Alerts whose firing
    time has already passed are dropped. Result is ordered by firing time.
    """
    lead = timedelta(minutes=lead_minutes)
    alerts = [
        alert for alert in (
            _alert(TideKind.LOW, snapshot.next_low, location_name, now, lead),
            _alert(TideKind.HIGH, snapshot.next_high, location_name, now, lead)
        )
        if alert is not None
    ]
    alerts.sort(key=lambda a: a.fire_at)
    logger.debug(f"Built {len(alerts)} tide alerts for {location_name}")
    return alerts
