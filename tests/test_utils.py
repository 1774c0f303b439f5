"""
Tests for shared helpers: rounding, validation and parsing.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from travel_planner.errors import ErrorCode, InvalidInputError
from travel_planner.utils import (
    ensure_utc,
    generate_route_id,
    parse_timestamp,
    parse_travel_date,
    round_half_up,
    validate_location,
    validate_price,
)


class TestRoundHalfUp:
    """Test rounding half away from zero."""

    @pytest.mark.parametrize("value,expected", [
        (94.5, 95),
        (95.5, 96),
        (2.4, 2),
        (12.5, 13),
        (-2.5, -3),
        (0, 0),
    ])
    def test_rounding(self, value, expected):
        assert round_half_up(value) == expected

    def test_differs_from_builtin_round(self):
        """Builtin round() would give 94 here."""
        assert round(94.5) == 94
        assert round_half_up(94.5) == 95

    def test_rejects_non_finite(self):
        with pytest.raises(InvalidInputError):
            round_half_up(float("nan"))
        with pytest.raises(InvalidInputError):
            round_half_up(float("inf"))


class TestValidatePrice:
    """Test price validation."""

    def test_accepts_int_and_float(self):
        assert validate_price(120) == 120.0
        assert validate_price(0) == 0.0
        assert validate_price(99.99) == 99.99

    @pytest.mark.parametrize("bad", [-1, -0.01, float("nan"), float("inf"), "120", None, True])
    def test_rejects_invalid(self, bad):
        with pytest.raises(InvalidInputError) as exc_info:
            validate_price(bad)
        assert exc_info.value.code == ErrorCode.INVALID_INPUT

    def test_error_names_field(self):
        with pytest.raises(InvalidInputError) as exc_info:
            validate_price(-5, field="best_price")
        assert exc_info.value.error.details["field"] == "best_price"


class TestTimestamps:
    """Test timestamp normalization."""

    def test_parse_z_suffix(self):
        parsed = parse_timestamp("2026-03-01T07:00:00Z")
        assert parsed == datetime(2026, 3, 1, 7, 0, tzinfo=timezone.utc)

    def test_parse_offset_converts_to_utc(self):
        parsed = parse_timestamp("2026-03-01T08:00:00+01:00")
        assert parsed == datetime(2026, 3, 1, 7, 0, tzinfo=timezone.utc)
        assert parsed.tzinfo == timezone.utc

    def test_naive_is_treated_as_utc(self):
        parsed = parse_timestamp(datetime(2026, 3, 1, 7, 0))
        assert parsed.tzinfo == timezone.utc
        assert parsed.hour == 7

    def test_ensure_utc_converts_aware(self):
        cet = timezone(timedelta(hours=1))
        assert ensure_utc(datetime(2026, 3, 1, 8, 0, tzinfo=cet)).hour == 7

    @pytest.mark.parametrize("bad", ["yesterday", "", None, 12345])
    def test_malformed(self, bad):
        with pytest.raises(InvalidInputError):
            parse_timestamp(bad)


class TestTravelDates:
    """Test travel date parsing."""

    def test_parse_iso(self):
        assert parse_travel_date("2026-03-13") == date(2026, 3, 13)

    def test_parse_datetime_string(self):
        assert parse_travel_date("2026-03-13T10:00:00Z") == date(2026, 3, 13)

    def test_none_and_empty(self):
        assert parse_travel_date(None) is None
        assert parse_travel_date("") is None

    def test_datetime_becomes_date(self):
        assert parse_travel_date(datetime(2026, 3, 13, 9, 30)) == date(2026, 3, 13)

    def test_malformed_uses_date_code(self):
        with pytest.raises(InvalidInputError) as exc_info:
            parse_travel_date("13/03/2026")
        assert exc_info.value.code == ErrorCode.INVALID_DATE


class TestValidateLocation:
    """Test airport code and city validation."""

    def test_airport_code(self):
        assert validate_location(" dus ") == ("DUS", "airport")

    def test_city_name(self):
        assert validate_location("New York") == ("NEW YORK", "city")

    @pytest.mark.parametrize("bad", ["1X", "", "   ", "J", "JFK1", None])
    def test_invalid(self, bad):
        with pytest.raises(InvalidInputError) as exc_info:
            validate_location(bad)
        assert exc_info.value.code == ErrorCode.INVALID_AIRPORT


class TestRouteIds:
    """Test route id generation."""

    def test_airport_codes(self):
        assert generate_route_id("dus", "waw") == "DUS-WAW"

    def test_city_names_are_shortened(self):
        assert generate_route_id("New York", "Paris") == "NEW-PAR"
