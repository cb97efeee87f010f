"""
Coordinate mapping for tide charts.

Maps normalized progress and water heights into a bounded pixel space with a
top-down y axis (higher water draws nearer the top). Nothing here knows about
a particular canvas technology; callers get integer coordinates.

Layout constants:
- 2px horizontal inset on each side: x spans [2, width - 2]
- 4px vertical inset on each side: y spans [4, height - 4]
- heights padded by 20% of the amplitude so extrema are not flush with the edge
"""
import math
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Sequence, Tuple
from zoneinfo import ZoneInfo

import numpy as np
from timezonefinder import TimezoneFinder

from .models import SeriesPoint, TideKind, TideMarker

X_INSET = 2
Y_INSET = 4
HEIGHT_PADDING = 0.2

MIN_SAMPLES = 32
PIXELS_PER_SAMPLE = 6


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from -inf (pixel rounding)."""
    return int(math.floor(value + 0.5))


def sample_count(width: float, minimum: int = MIN_SAMPLES, spacing: int = PIXELS_PER_SAMPLE) -> int:
    """Number of samples for a chart ``width`` units wide."""
    return max(minimum, int(math.floor(width / spacing)))


def to_x(p: float, width: float, p_start: float = 0.0, p_end: float = 1.0) -> int:
    """Map progress ``p`` within [p_start, p_end] onto the inset x range."""
    return round_half_up(((p - p_start) / (p_end - p_start)) * (width - 2 * X_INSET)) + X_INSET


def to_x_array(p: np.ndarray, width: float, p_start: float = 0.0, p_end: float = 1.0) -> np.ndarray:
    """Vectorised :func:`to_x`."""
    scaled = ((p - p_start) / (p_end - p_start)) * (width - 2 * X_INSET)
    return np.floor(scaled + 0.5).astype(int) + X_INSET


@dataclass(frozen=True)
class VerticalScale:
    """Linear height-to-y mapping over [h_min, h_max]."""
    h_min: float
    h_max: float

    @classmethod
    def from_pair(cls, h1: float, h2: float, amplitude: Optional[float] = None) -> "VerticalScale":
        """Scale for a bracketing pair, padded by 20% of the amplitude."""
        if amplitude is None:
            amplitude = abs(h2 - h1) / 2
        return cls(
            h_min=min(h1, h2) - amplitude * HEIGHT_PADDING,
            h_max=max(h1, h2) + amplitude * HEIGHT_PADDING,
        )

    @classmethod
    def from_levels(cls, levels: Sequence[float]) -> "VerticalScale":
        """Unpadded scale spanning a series' own min and max."""
        return cls(h_min=float(min(levels)), h_max=float(max(levels)))

    def normalize(self, h: float) -> float:
        if self.h_max == self.h_min:
            return 0.5
        return (h - self.h_min) / (self.h_max - self.h_min)

    def to_y(self, h: float, height: float) -> int:
        return round_half_up((1 - self.normalize(h)) * (height - 2 * Y_INSET)) + Y_INSET

    def to_y_array(self, h: np.ndarray, height: float) -> np.ndarray:
        if self.h_max == self.h_min:
            norm = np.full(np.shape(h), 0.5)
        else:
            norm = (h - self.h_min) / (self.h_max - self.h_min)
        return np.floor((1 - norm) * (height - 2 * Y_INSET) + 0.5).astype(int) + Y_INSET


@lru_cache(maxsize=1)
def _tz_finder() -> TimezoneFinder:
    # Construction reads the zone polygons; share one finder per process
    return TimezoneFinder()


def local_timezone(lat: float, lon: float, timezone_str: Optional[str] = None) -> ZoneInfo:
    """
    Zone used to print marker times for a chart location.

    An explicit ``timezone_str`` wins over the lookup. Points with no zone
    (open water) and names zoneinfo does not know both resolve to UTC.
    """
    name = timezone_str or _tz_finder().timezone_at(lat=lat, lng=lon) or 'UTC'
    try:
        return ZoneInfo(name)
    except (ValueError, KeyError):
        return ZoneInfo('UTC')


def extreme_markers(
    series: Sequence[SeriesPoint],
    width: float,
    tz: Optional[ZoneInfo] = None,
) -> Tuple[TideMarker, ...]:
    """
    Locate the highest and lowest points of a level series on the x axis.

    Args:
        series: Level series ordered by time (see interpolation.build_series)
        width: Chart width
        tz: Timezone for the HH:MM labels; the series' own offsets when None

    Returns:
        (high marker, low marker), or an empty tuple for fewer than 3 points.
        Ties resolve to the earliest point.
    """
    if len(series) < 3:
        return ()

    t_min = series[0].time
    span_ms = max(1.0, (series[-1].time - t_min).total_seconds() * 1000.0)

    def marker(kind: TideKind, point: SeriesPoint) -> TideMarker:
        p = (point.time - t_min).total_seconds() * 1000.0 / span_ms
        local = point.time.astimezone(tz) if tz is not None else point.time
        return TideMarker(
            kind=kind,
            x=to_x(min(1.0, max(0.0, p)), width),
            time_label=local.strftime('%H:%M'),
        )

    levels = np.array([p.level for p in series])
    return (
        marker(TideKind.HIGH, series[int(np.argmax(levels))]),
        marker(TideKind.LOW, series[int(np.argmin(levels))]),
    )
