"""
Shared utilities for travel-planner.

This module provides common helper functions used across the codebase,
reducing code duplication and ensuring consistent behavior.
"""

from __future__ import annotations

import math
import re
import logging
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional, Tuple

from .errors import ErrorCode, InvalidInputError
from .types import LocationType

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer, ties away from zero.

    Python's built-in round() uses banker's rounding; averages and
    percentages in this package always use this function instead.

    Args:
        value: Finite number to round

    Returns:
        Rounded integer

    Raises:
        InvalidInputError: If value is NaN or infinite

    Examples:
        >>> round_half_up(94.5)
        95
        >>> round_half_up(-2.5)
        -3
    """
    if not math.isfinite(value):
        raise InvalidInputError(f"Cannot round non-finite value: {value}", field="value", value=value)
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def validate_price(value: Any, field: str = "price") -> float:
    """
    Validate a price value.

    Args:
        value: Price to validate
        field: Field name used in the error

    Returns:
        The price as a float

    Raises:
        InvalidInputError: If the price is not a finite, non-negative number
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInputError(f"{field} must be a number, got {type(value).__name__}", field=field, value=value)
    if not math.isfinite(value) or value < 0:
        raise InvalidInputError(f"{field} must be a non-negative finite number: {value}", field=field, value=value)
    return float(value)


def ensure_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to an aware UTC datetime.

    Naive datetimes are taken to already be in UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any, field: str = "check_timestamp") -> datetime:
    """
    Parse an ISO 8601 timestamp into an aware UTC datetime.

    Args:
        value: datetime or ISO 8601 string (a trailing 'Z' is accepted)
        field: Field name used in the error

    Returns:
        Aware UTC datetime

    Raises:
        InvalidInputError: If the value is not a valid timestamp
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return ensure_utc(datetime.fromisoformat(text))
        except ValueError:
            pass
    raise InvalidInputError(f"Malformed timestamp for {field}: {value!r}", field=field, value=value)


def parse_travel_date(value: Any, field: str = "travel_date") -> Optional[date]:
    """
    Parse an optional calendar date.

    Args:
        value: None, date, datetime or YYYY-MM-DD string
        field: Field name used in the error

    Returns:
        date or None

    Raises:
        InvalidInputError: If the value is not a valid date
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            pass
    raise InvalidInputError(
        f"Malformed date for {field}: {value!r}. Use YYYY-MM-DD.",
        field=field,
        value=value,
        code=ErrorCode.INVALID_DATE,
    )


def validate_location(location: Any) -> Tuple[str, LocationType]:
    """
    Validate and normalize an airport code or city name.

    Args:
        location: Airport code (e.g., "JFK") or city name (e.g., "New York")

    Returns:
        Tuple of (normalized upper-case value, location type)

    Raises:
        InvalidInputError: If the value is neither a 3-letter code nor a city name

    Examples:
        >>> validate_location(" dus ")
        ('DUS', 'airport')
        >>> validate_location("New York")
        ('NEW YORK', 'city')
    """
    if not isinstance(location, str) or not location.strip():
        raise InvalidInputError(
            "Location must be a non-empty string",
            field="location",
            value=location,
            code=ErrorCode.INVALID_AIRPORT,
        )

    cleaned = location.strip().upper()

    if re.match(r"^[A-Z]{3}$", cleaned):
        return cleaned, "airport"

    if len(cleaned) >= 2 and re.match(r"^[A-Z\s]+$", cleaned):
        return cleaned, "city"

    raise InvalidInputError(
        f"Invalid airport code or city name: {location}",
        field="location",
        value=location,
        code=ErrorCode.INVALID_AIRPORT,
    )


def generate_route_id(origin: str, destination: str) -> str:
    """
    Build the canonical route identifier.

    Examples:
        >>> generate_route_id("dus", "waw")
        'DUS-WAW'
        >>> generate_route_id("New York", "Paris")
        'NEW-PAR'
    """
    o = re.sub(r"[^A-Z]", "", origin.upper())[:3]
    d = re.sub(r"[^A-Z]", "", destination.upper())[:3]
    return f"{o}-{d}"


__all__ = [
    "round_half_up",
    "validate_price",
    "ensure_utc",
    "utc_now",
    "parse_timestamp",
    "parse_travel_date",
    "validate_location",
    "generate_route_id",
]
