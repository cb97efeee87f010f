"""
Value types shared by the tide engine, the coordinate mapper and the
query lifecycle controller.

All types are immutable. A TideSummary is a plain tuple of TideExtremum
ordered by time; the engine never assumes that HIGH and LOW alternate.
"""
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Hashable, Optional, Tuple


class TideKind(str, Enum):
    """Kind of tide extremum."""
    HIGH = "high"
    LOW = "low"


class TideTrend(str, Enum):
    """Direction the water level is moving at the reference instant."""
    RISING = "rising"
    FALLING = "falling"
    FLAT = "flat"


@dataclass(frozen=True)
class TideExtremum:
    """A recorded high or low water event."""
    time: datetime
    height: float  # meters
    kind: TideKind


TideSummary = Tuple[TideExtremum, ...]


@dataclass(frozen=True)
class SamplePoint:
    x: int
    y: int


@dataclass(frozen=True)
class TideSeriesResult:
    """
    Render-ready output of the interpolation engine.

    An empty ``samples`` tuple is the "no data" sentinel: the input had fewer
    than two distinct timestamps or ``now`` could not be bracketed.
    """
    samples: Tuple[SamplePoint, ...]
    current_position: SamplePoint
    current_height_label: str
    trend: TideTrend = TideTrend.FLAT

    @property
    def is_empty(self) -> bool:
        return not self.samples


@dataclass(frozen=True)
class SeriesPoint:
    """One point of a regularly stepped tide level series."""
    time: datetime
    level: float


@dataclass(frozen=True)
class TideMarker:
    """Position and local time label of the highest or lowest series point."""
    kind: TideKind
    x: int
    time_label: str


def _timestamp(value: Optional[datetime]) -> Optional[float]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def _coordinate(value, limit: float) -> Optional[float]:
    """Return ``value`` as a float if it is a finite number within +/- limit."""
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return None
    if not math.isfinite(value) or abs(value) > limit:
        return None
    return float(value)


@dataclass(frozen=True)
class QueryOptions:
    smooth_window_minutes: Optional[int] = None
    step_minutes: Optional[int] = None
    reference_instant: Optional[datetime] = None

    def key(self) -> Tuple[Hashable, ...]:
        return (
            self.smooth_window_minutes,
            self.step_minutes,
            _timestamp(self.reference_instant),
        )


@dataclass(frozen=True)
class Query:
    """
    Parameters of a day-summary request.

    Two queries are the same query when every field compares equal by value.
    ``key()`` gives the canonical form used for change detection, so a naive
    and an aware reference instant naming the same UTC moment are equal.
    """
    lat: Optional[float]
    lon: Optional[float]
    options: QueryOptions = field(default_factory=QueryOptions)

    @property
    def is_valid(self) -> bool:
        return _coordinate(self.lat, 90) is not None and _coordinate(self.lon, 180) is not None

    def key(self) -> Tuple[Hashable, ...]:
        # Unusable coordinates (None, NaN, out of range) all key as None
        return (_coordinate(self.lat, 90), _coordinate(self.lon, 180)) + self.options.key()


@dataclass(frozen=True)
class QueryState:
    """
    Observable state of the latest query.

    ``data is None`` with ``loading`` False and no ``error`` means nothing has
    been fetched yet; consumers can tell "no data", "loading" and "failed"
    apart from these three fields alone.
    """
    data: Optional[TideSummary] = None
    loading: bool = False
    error: Optional[Exception] = None
