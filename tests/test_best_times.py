"""
Tests for the best-time-window analysis.
"""

from datetime import date, timedelta

from travel_planner.best_times import (
    analyze_best_windows,
    choose_source,
    group_by_week,
    iso_week_key,
)
from travel_planner.schema import FlightOffer, RouteHistory, WindowSource

from conftest import make_sample


def _history(samples):
    return RouteHistory(route_id="DUS-WAW", origin="DUS", destination="WAW", samples=samples)


def _offer(price, travel_date, currency="EUR"):
    return FlightOffer(price=price, currency=currency, travel_date=travel_date)


# Monday of ISO week 2026-W11
WEEK_11 = date(2026, 3, 9)


class TestIsoWeeks:
    """Test ISO week bucketing."""

    def test_week_key(self):
        assert iso_week_key(WEEK_11) == (2026, 11)
        assert iso_week_key(WEEK_11 + timedelta(days=6)) == (2026, 11)
        assert iso_week_key(WEEK_11 + timedelta(days=7)) == (2026, 12)

    def test_year_boundary(self):
        """Dec 29 2025 and Jan 2 2026 share ISO week 2026-W01."""
        buckets = group_by_week([(date(2025, 12, 29), 100), (date(2026, 1, 2), 80)])

        assert len(buckets) == 1
        assert (buckets[0].iso_year, buckets[0].iso_week) == (2026, 1)
        assert buckets[0].week_start == date(2025, 12, 29)
        assert buckets[0].week_end == date(2026, 1, 2)

    def test_buckets_are_chronological(self):
        points = [(WEEK_11 + timedelta(days=14), 50), (WEEK_11, 200), (WEEK_11 + timedelta(days=7), 100)]
        buckets = group_by_week(points)
        assert [b.iso_week for b in buckets] == [11, 12, 13]


class TestChooseSource:
    """Test which observations the ranking is built from."""

    def test_travel_dates_when_any_offer_has_one(self):
        samples = [
            make_sample(offers=[FlightOffer(price=100)]),
            make_sample(offers=[_offer(90, WEEK_11)]),
        ]
        assert choose_source(samples) == WindowSource.TRAVEL_DATES

    def test_check_dates_otherwise(self):
        samples = [make_sample(offers=[FlightOffer(price=100)])]
        assert choose_source(samples) == WindowSource.CHECK_DATES


class TestAnalyzeBestWindows:
    """Test analyze_best_windows."""

    def test_no_samples(self):
        assert analyze_best_windows(_history([])) is None

    def test_travel_dates_in_one_week(self):
        """Offers of 100 and 120 for one date, then 90 for another date that week."""
        tuesday = WEEK_11 + timedelta(days=1)
        thursday = WEEK_11 + timedelta(days=3)
        samples = [
            make_sample(days_ago=2, offers=[_offer(100, tuesday), _offer(120, tuesday)], currency="EUR"),
            make_sample(days_ago=1, offers=[_offer(90, thursday)], currency="EUR"),
        ]

        ranked = analyze_best_windows(_history(samples))

        assert ranked.source == WindowSource.TRAVEL_DATES
        assert len(ranked.weeks) == 1
        week = ranked.weeks[0]
        assert week.avg_price == 95
        assert week.best_price == 90
        assert week.samples_in_bucket == 2
        assert week.week_start == tuesday
        assert week.week_end == thursday
        assert ranked.currency == "EUR"
        assert ranked.savings is None

    def test_same_date_keeps_lowest_price(self):
        samples = [
            make_sample(days_ago=3, offers=[_offer(150, WEEK_11)]),
            make_sample(days_ago=1, offers=[_offer(110, WEEK_11)]),
        ]
        week = analyze_best_windows(_history(samples)).weeks[0]
        assert week.avg_price == 110
        assert week.samples_in_bucket == 1

    def test_sorted_and_capped(self):
        prices = [300, 120, 250, 90, 180, 200, 150]
        samples = [
            make_sample(days_ago=1, offers=[_offer(p, WEEK_11 + timedelta(weeks=i))])
            for i, p in enumerate(prices)
        ]

        ranked = analyze_best_windows(_history(samples))

        averages = [w.avg_price for w in ranked.weeks]
        assert averages == [90, 120, 150, 180, 200]
        assert averages == sorted(averages)

    def test_max_weeks(self):
        samples = [
            make_sample(days_ago=1, offers=[_offer(100 + i, WEEK_11 + timedelta(weeks=i))])
            for i in range(4)
        ]
        assert len(analyze_best_windows(_history(samples), max_weeks=2).weeks) == 2

    def test_ties_keep_week_order(self):
        samples = [make_sample(days_ago=1, offers=[
            _offer(100, WEEK_11 + timedelta(weeks=2)),
            _offer(100, WEEK_11),
            _offer(90, WEEK_11 + timedelta(weeks=1)),
        ])]

        ranked = analyze_best_windows(_history(samples))

        assert [w.iso_week for w in ranked.weeks] == [12, 11, 13]

    def test_check_date_fallback(self, now):
        samples = [
            make_sample(days_ago=8, best_price=200),
            make_sample(days_ago=1, best_price=100),
            make_sample(days_ago=0, best_price=None),
            make_sample(days_ago=0, best_price=80, best_travel_date=date(2026, 5, 4)),
        ]

        ranked = analyze_best_windows(_history(samples))

        assert ranked.source == WindowSource.CHECK_DATES
        assert [w.avg_price for w in ranked.weeks] == [80, 100, 200]
        assert ranked.weeks[0].week_start == date(2026, 5, 4)
        assert ranked.weeks[1].week_start == (now - timedelta(days=1)).date()

    def test_unpriced_history_gives_empty_ranking(self):
        ranked = analyze_best_windows(_history([make_sample(best_price=None)]))
        assert ranked is not None
        assert ranked.weeks == []

    def test_currency_of_latest_sample(self):
        samples = [
            make_sample(days_ago=1, best_price=100, currency="EUR"),
            make_sample(days_ago=5, best_price=100, currency="USD"),
        ]
        assert analyze_best_windows(_history(samples)).currency == "EUR"

    def test_savings(self):
        samples = [make_sample(days_ago=1, offers=[
            _offer(95, WEEK_11),
            _offer(150, WEEK_11 + timedelta(weeks=1)),
        ])]
        savings = analyze_best_windows(_history(samples)).savings
        assert savings.amount == 55
        assert savings.percent == 37
