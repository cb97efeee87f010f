"""
Extremum Store contract.

A store produces the tide extrema of one day for a location. How it gets
them (HTTP, tide tables, a harmonic model, fixtures) is its own business;
the core only relies on ``fetch_day_summary`` returning a TideSummary or
raising NetworkError / MalformedDataError.

Raw records follow the event shape used by tide prediction APIs:

    {"type": "high" | "low", "datetime": "2024-01-15T08:00:00+00:00", "height_m": 0.3}
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Mapping, Optional, Protocol, Sequence, Tuple

from .errors import MalformedDataError, NetworkError
from .interpolation import order_extrema
from .models import QueryOptions, TideExtremum, TideKind, TideSummary

logger = logging.getLogger(__name__)


class ExtremumStore(Protocol):
    async def fetch_day_summary(
        self, lat: float, lon: float, options: QueryOptions
    ) -> TideSummary:
        ...


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        dt_str = value
        if dt_str.endswith('Z'):
            dt_str = dt_str[:-1] + '+00:00'
        dt = datetime.fromisoformat(dt_str)
    else:
        raise ValueError(f"expected ISO 8601 string, got {type(value).__name__}")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def parse_extremum(record: Mapping[str, Any]) -> TideExtremum:
    """
    Convert one tide event record into a TideExtremum.

    Naive datetimes are taken as UTC.

    Raises:
        MalformedDataError: If a field is missing or has the wrong shape
    """
    try:
        kind = TideKind(str(record['type']).lower())
        time = _parse_datetime(record['datetime'])
        height = record['height_m']
        if isinstance(height, bool) or not isinstance(height, (int, float)):
            raise ValueError(f"height_m must be a number, got {height!r}")
    except (KeyError, TypeError, ValueError) as e:
        raise MalformedDataError(f"Invalid tide record {record!r}: {e}") from e
    return TideExtremum(time=time, height=float(height), kind=kind)


def parse_day_summary(records: Iterable[Mapping[str, Any]]) -> TideSummary:
    """Parse tide event records into a TideSummary ordered by time."""
    if isinstance(records, (str, bytes)) or isinstance(records, Mapping):
        raise MalformedDataError("Tide records must be a list of events")
    try:
        items = list(records)
    except TypeError as e:
        raise MalformedDataError("Tide records must be a list of events") from e
    return tuple(order_extrema(parse_extremum(r) for r in items))


class StaticExtremumStore:
    """
    In-memory store serving fixed tide records per location.

    Locations are matched on coordinates rounded to ``precision`` decimals.
    Useful for tests, demos and offline fallbacks.
    """

    def __init__(
        self,
        records_by_location: Optional[Dict[Tuple[float, float], Sequence[Mapping[str, Any]]]] = None,
        precision: int = 2,
    ):
        self.precision = precision
        self._records: Dict[Tuple[float, float], Sequence[Mapping[str, Any]]] = {}
        for (lat, lon), records in (records_by_location or {}).items():
            self.add(lat, lon, records)

    def _key(self, lat: float, lon: float) -> Tuple[float, float]:
        return (round(lat, self.precision), round(lon, self.precision))

    def add(self, lat: float, lon: float, records: Sequence[Mapping[str, Any]]) -> None:
        self._records[self._key(lat, lon)] = list(records)

    async def fetch_day_summary(
        self, lat: float, lon: float, options: QueryOptions
    ) -> TideSummary:
        records = self._records.get(self._key(lat, lon))
        if records is None:
            raise NetworkError(f"No tide data available for location ({lat}, {lon})")
        summary = parse_day_summary(records)
        logger.debug(f"Serving {len(summary)} extrema for ({lat}, {lon})")
        return summary
