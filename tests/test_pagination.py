"""
Tests for page tokens, page size clamping and cursor pagination.
"""

import base64
import pytest
from datetime import datetime, timedelta, timezone

from conftest import vehicle_values
from fleet.src import exceptions
from fleet.src.entities import VEHICLE
from fleet.src.pagination import clampPageSize, decodePageToken, encodePageToken
from fleet.src.store import EntityStore


def token(text: str) -> str:
    return base64.urlsafe_b64encode(text.encode("ascii")).decode("ascii")


class TestPageToken:
    def test_round_trip(self):
        instant = datetime(2024, 3, 1, 8, 30, 15, 123456, tzinfo=timezone.utc)
        assert decodePageToken(encodePageToken(instant)) == instant

    @pytest.mark.parametrize("year", [1, 999, 1000, 2024, 9999])
    def test_round_trip_across_years(self, year):
        instant = datetime(year, 6, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)
        assert decodePageToken(encodePageToken(instant)) == instant

    def test_early_years_are_zero_padded(self):
        instant = datetime(999, 6, 1, 12, 0, 0, tzinfo=timezone.utc)
        text = base64.urlsafe_b64decode(encodePageToken(instant)).decode("ascii")
        assert text == "0999-06-01T12:00:00.000000000Z"

    def test_nanosecond_text(self):
        instant = datetime(2024, 3, 1, 8, 30, 15, 5, tzinfo=timezone.utc)
        text = base64.urlsafe_b64decode(encodePageToken(instant)).decode("ascii")
        assert text == "2024-03-01T08:30:15.000005000Z"

    def test_naive_values_are_utc(self):
        naive = datetime(2024, 3, 1, 8, 30, 15)
        assert decodePageToken(encodePageToken(naive)) == naive.replace(
            tzinfo=timezone.utc
        )

    def test_offsets(self):
        value = decodePageToken(token("2024-03-01T11:30:15+03:00"))
        assert value == datetime(2024, 3, 1, 8, 30, 15, tzinfo=timezone.utc)

    def test_fraction_digits(self):
        value = decodePageToken(token("2024-03-01T08:30:15.1Z"))
        assert value.microsecond == 100000

    @pytest.mark.parametrize(
        "raw",
        [
            "not base64!!",
            token("yesterday"),
            token("2024-03-01 08:30:15Z"),
            token("2024-13-01T08:30:15Z"),
            token("2024-03-01T08:30:15"),
            token("2024-03-01T08:30:15.1234567890Z"),
            token("0001-01-01T00:30:00+01:00"),
        ],
    )
    def test_invalid(self, raw):
        with pytest.raises(exceptions.InvalidPageToken):
            decodePageToken(raw)


class TestPageSize:
    @pytest.mark.parametrize(
        "requested, expected",
        [(None, 50), (0, 50), (-5, 50), (1, 1), (50, 50), (100, 100), (101, 100)],
    )
    def test_clamp(self, requested, expected):
        assert clampPageSize(requested) == expected


class TestPaginate:
    def test_walk_returns_every_row_once(self, session, bus_type):
        store = EntityStore(session, VEHICLE)
        created = [store.create(vehicle_values()).id for _ in range(7)]

        seen, pageToken, pages = [], None, []
        while True:
            rows, pageToken = store.list(pageSize=3, pageToken=pageToken)
            pages.append(len(rows))
            seen.extend(row.id for row in rows)
            if not pageToken:
                break

        assert pages == [3, 3, 1]
        assert seen == list(reversed(created))

    def test_exact_multiple_has_no_trailing_token(self, session, bus_type):
        store = EntityStore(session, VEHICLE)
        for _ in range(3):
            store.create(vehicle_values())
        rows, pageToken = store.list(pageSize=3)
        assert len(rows) == 3
        assert pageToken == ""

    def test_newest_first(self, session, bus_type):
        store = EntityStore(session, VEHICLE)
        for _ in range(4):
            store.create(vehicle_values())
        rows, _ = store.list()
        stamps = [row.created_at for row in rows]
        assert stamps == sorted(stamps, reverse=True)

    def test_token_in_the_past_returns_nothing(self, session, bus_type):
        store = EntityStore(session, VEHICLE)
        store.create(vehicle_values())
        past = datetime.now(timezone.utc) - timedelta(days=365)
        rows, pageToken = store.list(pageToken=encodePageToken(past))
        assert rows == []
        assert pageToken == ""

    def test_invalid_token(self, session, bus_type):
        with pytest.raises(exceptions.InvalidPageToken):
            EntityStore(session, VEHICLE).list(pageToken="garbage")
