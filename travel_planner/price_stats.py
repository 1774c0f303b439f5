"""
Rolling-window statistics over a route's price samples.

All functions here are pure: the reference time is passed in explicitly
and nothing is read from or written to storage.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence

from .schema import PriceSample, Statistics
from .types import LONG_WINDOW_DAYS, SHORT_WINDOW_DAYS
from .utils import ensure_utc, round_half_up


def samples_since(
    samples: Iterable[PriceSample],
    now: datetime,
    days: int,
) -> List[PriceSample]:
    """Samples whose check_timestamp is within the trailing window (inclusive)."""
    cutoff = ensure_utc(now) - timedelta(days=days)
    return [s for s in samples if s.check_timestamp >= cutoff]


def rounded_mean(values: Sequence[float]) -> Optional[int]:
    """Mean rounded half away from zero, or None for no values."""
    if not values:
        return None
    return round_half_up(sum(values) / len(values))


def _best_prices(samples: Iterable[PriceSample]) -> List[float]:
    return [s.best_price for s in samples if s.best_price is not None]


def clamp_average(avg: Optional[int], low: Optional[float], high: Optional[float]) -> Optional[int]:
    """
    Keep a rounded average within [ceil(low), floor(high)].

    Rounding half up can carry the mean of fractional prices past the
    maximum, e.g. 100, 100.9, 100.9, 100.9 averages to 100.675 which
    rounds to 101. When no integer lies between low and high (all prices
    within one open interval such as 100.5 .. 100.9) the average is
    returned unchanged.
    """
    if avg is None or low is None or high is None:
        return avg
    lo, hi = math.ceil(low), math.floor(high)
    if lo > hi:
        return avg
    return min(max(avg, lo), hi)


def compute_statistics(samples: Sequence[PriceSample], now: datetime) -> Statistics:
    """
    Compute 7-day and 30-day aggregates of best prices.

    Args:
        samples: Time-ordered samples for one route
        now: Reference instant the windows are measured back from

    Returns:
        Statistics with rounded averages kept within the 30-day extrema
        (see clamp_average), exact extrema and the timestamp
        of the most recent sample. Windows without priced samples give None.

    Example:
        >>> stats = compute_statistics(history.samples, now=utc_now())
        >>> stats.avg_7day
        142
    """
    week = _best_prices(samples_since(samples, now, SHORT_WINDOW_DAYS))
    month = _best_prices(samples_since(samples, now, LONG_WINDOW_DAYS))

    low = min(month) if month else None
    high = max(month) if month else None

    return Statistics(
        avg_7day=clamp_average(rounded_mean(week), low, high),
        avg_30day=clamp_average(rounded_mean(month), low, high),
        min_30day=low,
        max_30day=high,
        last_check=max((s.check_timestamp for s in samples), default=None),
    )


__all__ = [
    "compute_statistics",
    "samples_since",
    "rounded_mean",
    "clamp_average",
]
