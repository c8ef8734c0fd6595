"""
Tide derivation from hi/lo predictions.

NOAA publishes tide predictions as a sparse series of extrema (alternating
high and low tides). The functions here turn that series into the state a
display needs at a given instant: the interpolated height, whether the water
is rising or falling, the surrounding high and low tides, and the points that
fall inside the chart window.

Everything in this module is pure and synchronous. Bad or incomplete input
degrades the result (UNKNOWN trend, missing extrema) rather than raising.
"""
import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

from features.tides.models.tide_types import (
    ExtremaPoint,
    TideEvent,
    TideKind,
    TideSnapshot,
    TideTrend
)

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_BACK = timedelta(hours=12)
DEFAULT_WINDOW_FORWARD = timedelta(hours=24)

COOPS_TIME_FORMAT = "%Y-%m-%d %H:%M"

# CO-OPS labels higher high / lower low separately on mixed tides
_KIND_CODES = {
    "H": TideKind.HIGH,
    "HH": TideKind.HIGH,
    "L": TideKind.LOW,
    "LL": TideKind.LOW,
}


def parse_predictions(records: Iterable[Dict[str, Any]]) -> List[ExtremaPoint]:
    """
    Convert raw CO-OPS hi/lo records into extrema points.

    Records look like ``{"t": "2025-06-01 04:12", "v": "5.321", "type": "H"}``
    with times in GMT. Records with an unparseable time, value or type are
    skipped.
    """
    points: List[ExtremaPoint] = []
    for record in records:
        try:
            timestamp = datetime.strptime(record["t"], COOPS_TIME_FORMAT).replace(tzinfo=timezone.utc)
            height = float(record["v"])
            if not math.isfinite(height):
                raise ValueError(f"non-finite height {record['v']}")
            kind = _KIND_CODES[str(record["type"]).strip().upper()]
        except (KeyError, TypeError, ValueError):
            logger.debug(f"Skipping invalid hi/lo prediction: {record}")
            continue
        points.append(ExtremaPoint(timestamp=timestamp, height=height, kind=kind))
    return points


def _as_utc(at: datetime) -> datetime:
    """Naive instants are taken to be UTC."""
    if at.tzinfo is None:
        return at.replace(tzinfo=timezone.utc)
    return at


def _sorted(series: Iterable[ExtremaPoint]) -> List[ExtremaPoint]:
    return sorted(series, key=lambda p: p.timestamp)


def _bracket(at: datetime, ordered: Sequence[ExtremaPoint]):
    """Last point at or before `at` and first point after it."""
    prev: Optional[ExtremaPoint] = None
    nxt: Optional[ExtremaPoint] = None
    for point in ordered:
        if point.timestamp <= at:
            prev = point
        else:
            nxt = point
            break
    return prev, nxt


def _linear(at: datetime, prev: ExtremaPoint, nxt: ExtremaPoint) -> float:
    total = (nxt.timestamp - prev.timestamp).total_seconds()
    if total <= 0:
        return prev.height
    elapsed = (at - prev.timestamp).total_seconds()
    fraction = max(0.0, min(1.0, elapsed / total))
    return prev.height + fraction * (nxt.height - prev.height)


def _height_at(at: datetime, ordered: Sequence[ExtremaPoint]) -> Optional[float]:
    prev, nxt = _bracket(at, ordered)
    if prev and nxt:
        return _linear(at, prev, nxt)
    if prev:
        return prev.height
    if nxt:
        return nxt.height
    return None


def interpolate(at: datetime, series: Iterable[ExtremaPoint]) -> Optional[float]:
    """
    Height at an arbitrary instant, linearly interpolated between the
    bracketing extrema.

    Outside the series the nearest extremum's height is returned. Only an
    empty series yields None. Input order does not matter.
    """
    return _height_at(_as_utc(at), _sorted(series))


def _event(point: Optional[ExtremaPoint]) -> Optional[TideEvent]:
    if point is None:
        return None
    return TideEvent(timestamp=point.timestamp, height=point.height)


def _last_of_kind(points: Sequence[ExtremaPoint], kind: TideKind) -> Optional[ExtremaPoint]:
    return next((p for p in reversed(points) if p.kind == kind), None)


def _first_of_kind(points: Sequence[ExtremaPoint], kind: TideKind) -> Optional[ExtremaPoint]:
    return next((p for p in points if p.kind == kind), None)


def derive(
    now: datetime,
    predictions: Iterable[ExtremaPoint],
    window_back: timedelta = DEFAULT_WINDOW_BACK,
    window_forward: timedelta = DEFAULT_WINDOW_FORWARD
) -> TideSnapshot:
    """
    Derive the tide state at `now` from a hi/lo prediction series.

    Args:
        now: Instant to derive the state for (UTC)
        predictions: Extrema in any order
        window_back: How far before `now` the chart series reaches
        window_forward: How far after `now` the chart series reaches

    Returns:
        TideSnapshot for `now`. An empty series gives an UNKNOWN trend,
        a height of 0 and no extrema.
    """
    now = _as_utc(now)

    ordered = _sorted(predictions)
    if not ordered:
        return TideSnapshot(generated_at=now, current_height=0.0, trend=TideTrend.UNKNOWN)

    past = [p for p in ordered if p.timestamp <= now]
    future = [p for p in ordered if p.timestamp > now]
    prev = past[-1] if past else None
    nxt = future[0] if future else None

    # Trend follows the labelled extremum type, not the sign of the height change
    if prev and nxt:
        current_height = _linear(now, prev, nxt)
        trend = TideTrend.RISING if prev.kind == TideKind.LOW else TideTrend.FALLING
    elif prev:
        current_height = prev.height
        trend = TideTrend.RISING if prev.kind == TideKind.LOW else TideTrend.FALLING
    elif nxt:
        current_height = nxt.height
        trend = TideTrend.RISING if nxt.kind == TideKind.HIGH else TideTrend.FALLING
    else:
        current_height = 0.0
        trend = TideTrend.UNKNOWN

    chart_start = now - window_back
    chart_end = now + window_forward
    chart_series = tuple(p for p in ordered if chart_start <= p.timestamp <= chart_end)

    snapshot = TideSnapshot(
        generated_at=now,
        current_height=current_height,
        trend=trend,
        last_high=_event(_last_of_kind(past, TideKind.HIGH)),
        next_high=_event(_first_of_kind(future, TideKind.HIGH)),
        last_low=_event(_last_of_kind(past, TideKind.LOW)),
        next_low=_event(_first_of_kind(future, TideKind.LOW)),
        chart_series=chart_series
    )
    logger.debug(
        f"Derived tide state at {now.isoformat()}: {current_height:.2f} ft, {trend.value} "
        f"({len(chart_series)} chart points)"
    )
    return snapshot
