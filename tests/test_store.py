"""
Unit tests for tide record parsing and the static extremum store
"""
import asyncio
from datetime import datetime, timezone

import pytest

from tidechart.errors import MalformedDataError, NetworkError
from tidechart.models import QueryOptions, TideKind
from tidechart.store import StaticExtremumStore, parse_day_summary, parse_extremum

from tests.spots import FISHING_SPOTS


class TestParseExtremum:
    """Tests for single record parsing."""

    def test_parses_record(self):
        extremum = parse_extremum(
            {'type': 'high', 'datetime': '2024-01-15T08:25:00+10:00', 'height_m': 1.9}
        )
        assert extremum.kind == TideKind.HIGH
        assert extremum.height == 1.9
        assert extremum.time == datetime(2024, 1, 14, 22, 25, tzinfo=timezone.utc)

    def test_zulu_suffix(self):
        extremum = parse_extremum({'type': 'low', 'datetime': '2024-01-15T07:15:00Z', 'height_m': 0.2})
        assert extremum.time == datetime(2024, 1, 15, 7, 15, tzinfo=timezone.utc)

    def test_naive_datetime_is_utc(self):
        extremum = parse_extremum({'type': 'LOW', 'datetime': '2024-01-15T07:15:00', 'height_m': 0})
        assert extremum.time.tzinfo is not None
        assert extremum.kind == TideKind.LOW

    def test_extra_fields_ignored(self):
        extremum = parse_extremum({
            'type': 'high', 'datetime': '2024-01-15T08:25:00Z',
            'height_m': 1.9, 'height_ft': 6.234, 'datum': 'msl',
        })
        assert extremum.height == 1.9

    @pytest.mark.parametrize("record", [
        {'datetime': '2024-01-15T08:25:00Z', 'height_m': 1.9},
        {'type': 'slack', 'datetime': '2024-01-15T08:25:00Z', 'height_m': 1.9},
        {'type': 'high', 'datetime': 'yesterday', 'height_m': 1.9},
        {'type': 'high', 'datetime': 1705300000, 'height_m': 1.9},
        {'type': 'high', 'datetime': '2024-01-15T08:25:00Z', 'height_m': '1.9'},
        {'type': 'high', 'datetime': '2024-01-15T08:25:00Z', 'height_m': None},
        {'type': 'high', 'datetime': '2024-01-15T08:25:00Z'},
    ])
    def test_malformed_records(self, record):
        with pytest.raises(MalformedDataError):
            parse_extremum(record)


class TestParseDaySummary:
    """Tests for day summary parsing."""

    def test_sorted_by_time(self):
        records = list(reversed(FISHING_SPOTS['port_phillip']['tides']))
        summary = parse_day_summary(records)
        times = [e.time for e in summary]
        assert times == sorted(times)
        assert isinstance(summary, tuple)

    def test_empty(self):
        assert parse_day_summary([]) == ()

    @pytest.mark.parametrize("records", ["high", {'type': 'high'}, 42])
    def test_not_a_list(self, records):
        with pytest.raises(MalformedDataError):
            parse_day_summary(records)


class TestStaticExtremumStore:
    """Tests for the in-memory store."""

    def test_serves_known_location(self):
        spot = FISHING_SPOTS['moreton_bay']
        store = StaticExtremumStore()
        store.add(spot['lat'], spot['lon'], spot['tides'])
        summary = asyncio.run(store.fetch_day_summary(-27.331, 153.229, QueryOptions()))
        assert [e.kind for e in summary] == [TideKind.HIGH, TideKind.LOW, TideKind.HIGH]

    def test_unknown_location(self):
        store = StaticExtremumStore()
        with pytest.raises(NetworkError, match="No tide data available"):
            asyncio.run(store.fetch_day_summary(0.0, 0.0, QueryOptions()))

    def test_malformed_fixture(self):
        store = StaticExtremumStore({(1.0, 2.0): [{'type': 'high'}]})
        with pytest.raises(MalformedDataError):
            asyncio.run(store.fetch_day_summary(1.0, 2.0, QueryOptions()))
