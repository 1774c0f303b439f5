"""
Best-time-window analysis for monitored routes.

Groups observed prices into ISO 8601 weeks and ranks the weeks by average
price. Two kinds of observation are supported:

- travel dates: every offer that carries a travel date contributes the
  lowest price ever seen for that date
- check dates: when no offer carries a travel date, each sample's best
  price is placed in the week of its best travel date, or of the day the
  check ran

Weeks with the same average keep chronological order.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from typing import Dict, List, Optional, Tuple

from .schema import PriceSample, RankedWeeks, RouteHistory, WeekBucket, WindowSource
from .types import DEFAULT_CURRENCY, MAX_RANKED_WEEKS
from .price_stats import rounded_mean

logger = logging.getLogger(__name__)

WeekKey = Tuple[int, int]


def iso_week_key(day: date) -> WeekKey:
    """ISO (year, week) pair for a calendar date."""
    iso = day.isocalendar()
    return iso[0], iso[1]


def choose_source(samples: List[PriceSample]) -> WindowSource:
    """Use travel dates when any offer carries one, check dates otherwise."""
    for sample in samples:
        if any(offer.travel_date is not None for offer in sample.observed_prices):
            return WindowSource.TRAVEL_DATES
    return WindowSource.CHECK_DATES


def _prices_by_travel_date(samples: List[PriceSample]) -> Dict[date, float]:
    best: Dict[date, float] = {}
    for sample in samples:
        for offer in sample.observed_prices:
            if offer.travel_date is None:
                continue
            current = best.get(offer.travel_date)
            if current is None or offer.price < current:
                best[offer.travel_date] = offer.price
    return best


def _prices_by_check_date(samples: List[PriceSample]) -> List[Tuple[date, float]]:
    points = []
    for sample in samples:
        if sample.best_price is None:
            continue
        day = sample.best_travel_date or sample.check_timestamp.date()
        points.append((day, sample.best_price))
    return points


def group_by_week(points: List[Tuple[date, float]]) -> List[WeekBucket]:
    """
    Aggregate dated prices into one bucket per ISO week.

    Buckets are returned in chronological order. week_start and week_end
    are the earliest and latest dates actually observed in the week.
    """
    grouped: Dict[WeekKey, List[Tuple[date, float]]] = defaultdict(list)
    for day, price in points:
        grouped[iso_week_key(day)].append((day, price))

    buckets = []
    for key in sorted(grouped):
        entries = grouped[key]
        prices = [price for _, price in entries]
        days = [day for day, _ in entries]
        buckets.append(WeekBucket(
            week_start=min(days),
            week_end=max(days),
            avg_price=rounded_mean(prices),
            best_price=min(prices),
            samples_in_bucket=len(prices),
            iso_year=key[0],
            iso_week=key[1],
        ))
    return buckets


def latest_currency(samples: List[PriceSample], default: str = DEFAULT_CURRENCY) -> str:
    """Currency of the most recent sample that has one."""
    for sample in sorted(samples, key=lambda s: s.check_timestamp, reverse=True):
        if sample.currency:
            return sample.currency
    return default


def analyze_best_windows(
    history: RouteHistory,
    max_weeks: int = MAX_RANKED_WEEKS,
    default_currency: str = DEFAULT_CURRENCY,
) -> Optional[RankedWeeks]:
    """
    Rank the cheapest weeks to travel on a route.

    Args:
        history: Route history to analyze
        max_weeks: Maximum number of weeks returned
        default_currency: Currency when no sample carries one

    Returns:
        RankedWeeks sorted by ascending avg_price, or None if the route has
        no samples. The weeks list may be empty when no sample has a price.

    Example:
        >>> ranked = analyze_best_windows(store.load("DUS-WAW"))
        >>> ranked.weeks[0].avg_price
        95
    """
    if not history.samples:
        return None

    source = choose_source(history.samples)
    if source is WindowSource.TRAVEL_DATES:
        points = sorted(_prices_by_travel_date(history.samples).items())
    else:
        points = _prices_by_check_date(history.samples)

    # sorted() is stable, so equal averages stay in week order
    ranked = sorted(group_by_week(points), key=lambda b: b.avg_price)[:max_weeks]

    logger.debug(
        f"Ranked {len(ranked)} weeks for {history.route_id} from {source.value}"
    )

    return RankedWeeks(
        route_id=history.route_id,
        origin=history.origin,
        destination=history.destination,
        currency=latest_currency(history.samples, default_currency),
        source=source,
        weeks=ranked,
    )


__all__ = [
    "analyze_best_windows",
    "choose_source",
    "group_by_week",
    "iso_week_key",
    "latest_currency",
]
