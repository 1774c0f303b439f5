"""
Shared type definitions for travel-planner.

This module provides centralized type aliases, protocols and constants used
across the codebase, ensuring consistency and reducing duplication.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .schema import PriceSample

# ============================================================================
# Type Aliases
# ============================================================================

StorageBackendName = Literal["file", "sqlite", "memory"]
"""
Storage backend for route price histories.

- "file": one JSON document per route in the skill storage directory
- "sqlite": one row per route in a SQLite database
- "memory": process-local dictionary (tests, ephemeral runs)
"""

LocationType = Literal["airport", "city"]
"""Kind of location accepted by the tools."""


# ============================================================================
# Protocols (Interfaces)
# ============================================================================

@runtime_checkable
class PriceSource(Protocol):
    """
    Protocol for the scraping collaborator.

    The host runtime supplies an implementation backed by its browser
    automation. It returns a PriceSample for the route, or None when no
    flights could be found. Exceptions are treated as a failed check.

    With a return_date the offers are round trips priced for both legs.
    flexible_dates asks the search to also look at nearby departure dates.
    """

    def __call__(
        self,
        origin: str,
        destination: str,
        date_input: Optional[str] = None,
        return_date: Optional[str] = None,
        flexible_dates: bool = True,
    ) -> Optional["PriceSample"]:
        ...


# ============================================================================
# Constants
# ============================================================================

SKILL_NAME = "travel-planner"
"""Skill identifier used in the OpenClaw config and cron job ids."""

DEFAULT_CURRENCY = "USD"

RETENTION_DAYS = 90
"""Samples older than this (relative to the append time) are pruned."""

SHORT_WINDOW_DAYS = 7
LONG_WINDOW_DAYS = 30

MAX_RANKED_WEEKS = 5

DEFAULT_PRICE_DROP_THRESHOLD = 15.0
"""Percentage drop from the 7-day average that counts as a deal."""

DEFAULT_SCHEDULE = "0 7 * * *"
DEFAULT_TIMEZONE = "UTC"

STORAGE_BACKENDS: tuple[StorageBackendName, ...] = ("file", "sqlite", "memory")


__all__ = [
    # Type aliases
    "StorageBackendName",
    "LocationType",
    # Protocols
    "PriceSource",
    # Constants
    "SKILL_NAME",
    "DEFAULT_CURRENCY",
    "RETENTION_DAYS",
    "SHORT_WINDOW_DAYS",
    "LONG_WINDOW_DAYS",
    "MAX_RANKED_WEEKS",
    "DEFAULT_PRICE_DROP_THRESHOLD",
    "DEFAULT_SCHEDULE",
    "DEFAULT_TIMEZONE",
    "STORAGE_BACKENDS",
]
