"""
Tide Interpolation Engine

Reconstructs a continuous tide-height curve from a sparse list of daily
extrema (high and low water events) and turns it into render-ready samples.

Between two consecutive extrema the water level is bridged with a half cosine:

    height(p) = mean + amplitude * cos(pi * p)   (high -> low)
    height(p) = mean - amplitude * cos(pi * p)   (any other pair)

where p in [0, 1] is the normalized progress between the two timestamps.
The bridge hits both boundary heights exactly when the kinds agree with the
heights. It is a locally smooth interpolation, not a predictive tide model:
nothing outside the bracketing pair should be read from it.

Every function here is pure and synchronous. Degenerate input (fewer than two
distinct timestamps, or a reference instant that cannot be bracketed) yields
the empty TideSeriesResult instead of an exception.
"""
import math
from bisect import bisect_left, bisect_right
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

from .mapper import (
    VerticalScale,
    round_half_up,
    sample_count,
    to_x,
    to_x_array,
)
from .models import (
    SamplePoint,
    SeriesPoint,
    TideExtremum,
    TideKind,
    TideSeriesResult,
    TideTrend,
)

FEET_PER_METER = 3.28084
UNITS = {'m': 1.0, 'ft': FEET_PER_METER}

# Smoothed-series charts sample more densely than the two-point bridge
SERIES_MIN_SAMPLES = 48
SERIES_PIXELS_PER_SAMPLE = 4

MS_PER_HOUR = 60 * 60 * 1000

ArrayLike = Union[float, np.ndarray]


def trend_from_slope(slope: float) -> TideTrend:
    if slope > 0:
        return TideTrend.RISING
    if slope < 0:
        return TideTrend.FALLING
    return TideTrend.FLAT


def _ms(delta: timedelta) -> float:
    return delta / timedelta(milliseconds=1)


def _align(now: datetime, reference: datetime) -> datetime:
    """Give ``now`` the same naive/aware flavour as the extrema timestamps."""
    if now.tzinfo is None and reference.tzinfo is not None:
        return now.replace(tzinfo=timezone.utc)
    if now.tzinfo is not None and reference.tzinfo is None:
        return now.astimezone(timezone.utc).replace(tzinfo=None)
    return now


def format_height(value: float, unit: str = 'm') -> str:
    """Format a height in meters as a 2-decimal label, e.g. ``"1.20 m"``."""
    if unit not in UNITS:
        raise ValueError(f"unit must be one of {sorted(UNITS)}, got {unit!r}")
    return f"{value * UNITS[unit]:.2f} {unit}"


def empty_result(height: float) -> TideSeriesResult:
    return TideSeriesResult(
        samples=(),
        current_position=SamplePoint(0, round_half_up(height / 2)),
        current_height_label='',
    )


def order_extrema(extrema: Iterable[TideExtremum]) -> List[TideExtremum]:
    """Sort by time; entries sharing a timestamp keep their input order."""
    return sorted(extrema, key=lambda e: e.time)


def bracket(
    ordered: Sequence[TideExtremum],
    now: datetime,
) -> Optional[Tuple[TideExtremum, TideExtremum]]:
    """
    Select the extrema immediately surrounding ``now``.

    prev is the latest entry at or before ``now`` (the first entry if none),
    next the earliest entry at or after ``now`` (the last entry if none).
    When ``now`` falls exactly on an extremum, that extremum is paired with
    the following one, or with the preceding one if it is the last.

    Returns None when the bracket has zero width, which is always the case
    for an instant before the first or after the last extremum.
    """
    if not ordered:
        return None
    times = [e.time for e in ordered]
    n = len(ordered)

    at_or_before = bisect_right(times, now)
    first_at_or_after = bisect_left(times, now)
    prev = ordered[at_or_before - 1] if at_or_before > 0 else ordered[0]
    nxt = ordered[first_at_or_after] if first_at_or_after < n else ordered[-1]

    if prev.time == nxt.time == now:
        if at_or_before < n:
            nxt = ordered[at_or_before]
        elif first_at_or_after > 0:
            prev = ordered[first_at_or_after - 1]

    if prev.time == nxt.time:
        return None
    return prev, nxt


@dataclass(frozen=True)
class CosineBridge:
    """Half-cosine height model between two consecutive extrema."""
    prev: TideExtremum
    next: TideExtremum

    @property
    def duration_ms(self) -> float:
        return max(1.0, _ms(self.next.time - self.prev.time))

    @property
    def mean(self) -> float:
        return (self.prev.height + self.next.height) / 2

    @property
    def amplitude(self) -> float:
        return abs(self.next.height - self.prev.height) / 2

    @property
    def high_to_low(self) -> bool:
        # Two adjacent extrema of the same kind fall through to the rising curve
        return self.prev.kind == TideKind.HIGH and self.next.kind == TideKind.LOW

    def progress(self, now: datetime) -> float:
        p = _ms(now - self.prev.time) / self.duration_ms
        return min(1.0, max(0.0, p))

    def height_at(self, p: ArrayLike) -> ArrayLike:
        wave = self.amplitude * np.cos(np.pi * p)
        return self.mean + wave if self.high_to_low else self.mean - wave

    def trend_at(self, p: float) -> TideTrend:
        """Direction of the curve at progress p; flat at the turning points."""
        if p <= 0 or p >= 1:
            return TideTrend.FLAT
        slope = self.amplitude * math.sin(math.pi * p)
        return trend_from_slope(-slope if self.high_to_low else slope)


def view_margin(extra_hours: float, duration_ms: float) -> float:
    """Extra progress shown on each side of the bracket, clamped to [0, 1]."""
    duration_hours = duration_ms / MS_PER_HOUR
    return max(0.0, min(1.0, (extra_hours or 0) / max(0.1, duration_hours)))


def compute_series(
    extrema: Iterable[TideExtremum],
    now: datetime,
    width: float,
    height: float,
    extra_hours: float = 0.0,
    unit: str = 'm',
) -> TideSeriesResult:
    """
    Compute chart samples and the current water level for ``now``.

    Args:
        extrema: Tide extrema in any order
        now: Reference instant
        width: Chart width; samples span [2, width - 2]
        height: Chart height; samples span [4, height - 4]
        extra_hours: Hours of curve to extend past each end of the bracket
        unit: Label unit, 'm' or 'ft'

    Returns:
        TideSeriesResult with max(32, width // 6) samples, or the empty
        result when the extrema cannot bracket ``now``.
    """
    if unit not in UNITS:
        raise ValueError(f"unit must be one of {sorted(UNITS)}, got {unit!r}")

    ordered = order_extrema(extrema)
    if len({e.time for e in ordered}) < 2:
        return empty_result(height)

    now = _align(now, ordered[0].time)
    pair = bracket(ordered, now)
    if pair is None:
        return empty_result(height)

    bridge = CosineBridge(*pair)
    progress = bridge.progress(now)

    margin = view_margin(extra_hours, bridge.duration_ms)
    p_start, p_end = -margin, 1 + margin

    scale = VerticalScale.from_pair(bridge.prev.height, bridge.next.height, bridge.amplitude)

    n = sample_count(width)
    p = p_start + (np.arange(n) / (n - 1)) * (p_end - p_start)
    xs = to_x_array(p, width, p_start, p_end)
    ys = scale.to_y_array(bridge.height_at(p), height)

    current_height = float(bridge.height_at(progress))
    return TideSeriesResult(
        samples=tuple(SamplePoint(int(x), int(y)) for x, y in zip(xs, ys)),
        current_position=SamplePoint(
            to_x(progress, width, p_start, p_end),
            scale.to_y(current_height, height),
        ),
        current_height_label=format_height(current_height, unit),
        trend=bridge.trend_at(progress),
    )


def _distinct(ordered: Sequence[TideExtremum]) -> List[TideExtremum]:
    """Keep the last entry for each timestamp of an ordered sequence."""
    result: List[TideExtremum] = []
    for e in ordered:
        if result and result[-1].time == e.time:
            result[-1] = e
        else:
            result.append(e)
    return result


def _moving_average(levels: np.ndarray, window: int) -> np.ndarray:
    """Centred moving average; the window shrinks at the edges."""
    window = min(window, len(levels))
    if window % 2 == 0:
        window -= 1
    if window < 2:
        return levels
    kernel = np.ones(window)
    sums = np.convolve(levels, kernel, mode='same')
    counts = np.convolve(np.ones_like(levels), kernel, mode='same')
    return sums / counts


def build_series(
    extrema: Iterable[TideExtremum],
    step_minutes: int = 10,
    smooth_window_minutes: int = 0,
) -> Tuple[SeriesPoint, ...]:
    """
    Sample the piecewise cosine curve through all extrema at a fixed step.

    The series runs from the first to the last extremum (both included) and
    is optionally smoothed with a centred moving average spanning
    ``smooth_window_minutes``.

    Args:
        extrema: Tide extrema in any order
        step_minutes: Minutes between points (>= 1)
        smooth_window_minutes: Width of the smoothing window (0 disables)

    Returns:
        Tuple of SeriesPoint, empty for fewer than two distinct timestamps

    Raises:
        ValueError: If step_minutes < 1 or smooth_window_minutes < 0
    """
    if step_minutes < 1:
        raise ValueError("step_minutes must be at least 1")
    if smooth_window_minutes < 0:
        raise ValueError("smooth_window_minutes must not be negative")

    ordered = _distinct(order_extrema(extrema))
    if len(ordered) < 2:
        return ()

    start = ordered[0].time
    boundaries = np.array([_ms(e.time - start) for e in ordered])
    total_ms = boundaries[-1]
    step_ms = step_minutes * 60 * 1000

    offsets = np.arange(int(total_ms // step_ms) + 1) * float(step_ms)
    if offsets[-1] < total_ms:
        offsets = np.append(offsets, total_ms)

    # Segment i bridges ordered[i] -> ordered[i + 1]
    segment = np.clip(np.searchsorted(boundaries, offsets, side='right') - 1, 0, len(ordered) - 2)
    h1 = np.array([e.height for e in ordered[:-1]])[segment]
    h2 = np.array([e.height for e in ordered[1:]])[segment]
    high_to_low = np.array([
        a.kind == TideKind.HIGH and b.kind == TideKind.LOW
        for a, b in zip(ordered[:-1], ordered[1:])
    ])[segment]
    durations = np.maximum(1.0, np.diff(boundaries))[segment]

    p = np.clip((offsets - boundaries[segment]) / durations, 0.0, 1.0)
    mean = (h1 + h2) / 2
    wave = (np.abs(h2 - h1) / 2) * np.cos(np.pi * p)
    levels = np.where(high_to_low, mean + wave, mean - wave)

    window_points = int(round(smooth_window_minutes / step_minutes))
    if window_points >= 2:
        if window_points % 2 == 0:
            window_points += 1
        levels = _moving_average(levels, window_points)

    return tuple(
        SeriesPoint(time=start + timedelta(milliseconds=float(offset)), level=float(level))
        for offset, level in zip(offsets, levels)
    )


def compute_series_from_levels(
    series: Sequence[SeriesPoint],
    now: datetime,
    width: float,
    height: float,
    unit: str = 'm',
) -> TideSeriesResult:
    """
    Chart samples for a precomputed level series.

    Each sample takes the level of the series point nearest in time, and the
    current position is the series point nearest ``now``. The trend compares
    the levels on either side of that point. The y scale spans
    the series' own min and max.

    Returns:
        TideSeriesResult with max(48, width // 4) samples, or the empty
        result for fewer than 3 series points.
    """
    if unit not in UNITS:
        raise ValueError(f"unit must be one of {sorted(UNITS)}, got {unit!r}")
    if len(series) < 3:
        return empty_result(height)

    t0 = series[0].time
    times = np.array([_ms(point.time - t0) for point in series])
    levels = np.array([point.level for point in series])
    span = times[-1] - times[0]
    scale = VerticalScale.from_levels(levels)

    n = sample_count(width, SERIES_MIN_SAMPLES, SERIES_PIXELS_PER_SAMPLE)
    p = np.arange(n) / (n - 1)
    nearest = np.abs(times[np.newaxis, :] - (p * span)[:, np.newaxis]).argmin(axis=1)
    xs = to_x_array(p, width)
    ys = scale.to_y_array(levels[nearest], height)

    now_ms = _ms(_align(now, t0) - t0)
    now_idx = int(np.abs(times - now_ms).argmin())
    progress = times[now_idx] / max(1.0, span)
    current_level = float(levels[now_idx])
    slope = float(levels[min(len(levels) - 1, now_idx + 1)] - levels[max(0, now_idx - 1)])

    return TideSeriesResult(
        samples=tuple(SamplePoint(int(x), int(y)) for x, y in zip(xs, ys)),
        current_position=SamplePoint(to_x(progress, width), scale.to_y(current_level, height)),
        current_height_label=format_height(current_level, unit),
        trend=trend_from_slope(slope),
    )
