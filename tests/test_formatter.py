"""
Tests for chat message formatting.
"""

from datetime import date, timedelta

import pytest

from travel_planner.errors import ErrorCode
from travel_planner.formatter import (
    USAGE_HELP,
    format_all_stopped,
    format_best_time_ranges,
    format_date_range,
    format_error,
    format_money,
    format_monitoring_status,
    format_price_alert,
    format_price_check_result,
    format_round_trip_result,
    format_route_disabled,
    format_route_list,
    format_setup_confirmation,
    format_status_update,
    format_stops,
    format_time_ago,
)
from travel_planner.routes import MonitoringSettings, RouteConfig
from travel_planner.schema import (
    DealAssessment,
    DealReason,
    FlightOffer,
    PriceSample,
    RankedWeeks,
    Statistics,
    WeekBucket,
    WindowSource,
)

from conftest import NOW


def _route(origin="DUS", destination="WAW", schedule="0 7 * * *", timezone="Europe/Berlin"):
    return RouteConfig(
        id=f"{origin}-{destination}",
        origin=origin,
        destination=destination,
        monitoring=MonitoringSettings(schedule=schedule, timezone=timezone),
    )


def _week(avg, best, start, end):
    return WeekBucket(week_start=start, week_end=end, avg_price=avg, best_price=best, samples_in_bucket=3)


class TestHelpers:
    """Test small formatting helpers."""

    def test_money(self):
        assert format_money(120, "EUR") == "€120"
        assert format_money(120.0, "USD") == "$120"
        assert format_money(99.5, "GBP") == "£99.50"
        assert format_money(99.5, "PLN") == "PLN99.50"

    def test_stops(self):
        assert format_stops(0) == "direct"
        assert format_stops(1) == "1 stop"
        assert format_stops(2) == "2 stops"

    def test_date_range(self):
        assert format_date_range(date(2026, 3, 3), date(2026, 3, 9)) == "Mar 3–9"
        assert format_date_range(date(2026, 3, 30), date(2026, 4, 5)) == "Mar 30 – Apr 5"
        assert format_date_range(date(2026, 3, 3), date(2026, 3, 3)) == "Mar 3"

    @pytest.mark.parametrize("delta,expected", [
        (timedelta(seconds=20), "just now"),
        (timedelta(minutes=1), "1 minute ago"),
        (timedelta(minutes=45), "45 minutes ago"),
        (timedelta(hours=3), "3 hours ago"),
        (timedelta(days=1, hours=2), "yesterday"),
        (timedelta(days=4), "4 days ago"),
    ])
    def test_time_ago(self, delta, expected):
        assert format_time_ago(NOW - delta, NOW) == expected

    def test_time_ago_accepts_iso_string(self):
        assert format_time_ago("2026-03-15T09:00:00Z", NOW) == "3 hours ago"


class TestPriceMessages:
    """Test price check and alert messages."""

    def test_price_check_shows_cheapest_three(self):
        offers = [
            FlightOffer(price=p, currency="EUR", airline=f"Air {p}", stops=0)
            for p in (200, 120, 180, 150)
        ]

        message = format_price_check_result(offers, "DUS", "WAW")

        assert message.startswith("✈️ Best prices from DUS to WAW:")
        assert "€120 - Air 120 (direct)" in message
        assert "€150" in message
        assert "€180" in message
        assert "€200" not in message
        assert message.index("€120") < message.index("€150") < message.index("€180")
        assert "monitor flights from DUS to WAW" in message

    def test_price_check_without_suggestion(self):
        message = format_price_check_result([FlightOffer(price=100)], "DUS", "WAW",
                                            include_monitoring_suggestion=False)
        assert "monitor" not in message

    def test_price_check_without_offers(self):
        message = format_price_check_result([], "DUS", "WAW")
        assert message.startswith("I couldn't find any flights from DUS to WAW")

    def test_round_trip_legs(self):
        offer = FlightOffer(
            price=230, currency="EUR", airline="LOT",
            outbound=FlightOffer(price=120, stops=0, duration="1h 45m"),
            inbound=FlightOffer(price=110, stops=2),
        )

        message = format_round_trip_result([offer], "DUS", "WAW", "2026-03-13", "2026-03-20",
                                           include_monitoring_suggestion=False)

        assert message == (
            "✈️ Round-trip prices DUS → WAW\n"
            "📅 2026-03-13 → 2026-03-20\n\n"
            "💰 €230 - LOT\n"
            "   ↗️ Outbound: €120 (direct, 1h 45m)\n"
            "   ↙️ Return:   €110 (2 stops)"
        )

    def test_round_trip_combined_price(self):
        offers = [
            FlightOffer(price=260, currency="EUR", airline="LOT", stops=2),
            FlightOffer(price=240, currency="EUR", airline="Eurowings", stops=0, duration="3h 30m"),
        ]

        message = format_round_trip_result(offers, "DUS", "WAW", None, "2026-03-20")

        assert "📅 flexible → 2026-03-20" in message
        assert "💰 €240 - Eurowings (direct both ways), 3h 30m" in message
        assert "💰 €260 - LOT (2 stops total)" in message
        assert message.index("€240") < message.index("€260")
        assert "monitor flights from DUS to WAW" in message

    def test_round_trip_without_offers(self):
        message = format_round_trip_result([], "DUS", "WAW", "2026-03-13", "2026-03-20")
        assert message.startswith("I couldn't find any round-trip flights from DUS to WAW")
        assert "2026-03-13 → 2026-03-20" in message

    def test_deal_alert(self):
        offer = FlightOffer(price=110, currency="EUR", travel_date="2026-03-13",
                            airline="LOT", stops=0, duration="1h 45m")
        sample = PriceSample.from_offers([offer], check_timestamp=NOW)
        assessment = DealAssessment(is_deal=True, reason=DealReason.THIRTY_DAY_LOW,
                                    percentage_drop=25, is_lowest_in_30_days=True, reference_price=147)

        message = format_price_alert("DUS", "WAW", sample, assessment)

        assert message.startswith("🎉 Great deal found!")
        assert "✈️ DUS → WAW" in message
        assert "€110 (↓ 25% from avg)" in message
        assert "Fri, Mar 13 2026" in message
        assert "LOT (non-stop), 1h 45m" in message
        assert message.endswith("This is the lowest price in 30 days!")

    def test_status_update(self):
        stats = Statistics(avg_7day=125, avg_30day=140, min_30day=110, max_30day=200,
                           last_check=NOW - timedelta(hours=2))

        message = format_status_update("DUS", "WAW", 120, stats, currency="EUR", now=NOW)

        assert message.startswith("📊 Monitoring Status")
        assert "Current price: €120" in message
        assert "7-day average: €125" in message
        assert "30-day low: €110" in message
        assert "30-day high: €200" in message
        assert "Last check: 2 hours ago" in message


class TestMonitoringMessages:
    """Test route management messages."""

    def test_setup_confirmation(self):
        message = format_setup_confirmation(_route(), 1)

        assert message.startswith("✈️ Flight monitoring is active!")
        assert "Route: DUS → WAW" in message
        assert "Daily checks: 7:00 AM CET" in message
        assert "Alert threshold: 15% price drop" in message
        assert "You're now monitoring" not in message

    def test_setup_confirmation_counts_routes(self):
        assert "You're now monitoring 3 routes!" in format_setup_confirmation(_route(), 3)

    def test_route_list(self):
        message = format_route_list([_route(), _route("JFK", "CDG", "30 14 * * *", "America/New_York")])

        assert message.startswith("📋 Active Flight Monitoring")
        assert "1️⃣ DUS → WAW" in message
        assert "2️⃣ JFK → CDG" in message
        assert "Daily at 2:30 PM Eastern" in message

    def test_empty_route_list(self):
        assert format_route_list([]).startswith("You're not monitoring any flight routes yet.")

    def test_monitoring_status(self):
        assert format_monitoring_status([_route(), _route("JFK", "CDG")]).endswith("Total routes: 2")

    def test_route_disabled(self):
        message = format_route_disabled("DUS-WAW", 1)
        assert message.startswith("✅ Stopped monitoring DUS → WAW")
        assert "1 active route being monitored" in message
        assert "no longer monitoring any routes" in format_route_disabled("DUS-WAW", 0)

    def test_all_stopped(self):
        assert format_all_stopped(0) == "You don't have any active monitoring to stop."
        assert "Stopped monitoring all 2 routes" in format_all_stopped(2)


class TestBestTimeRanges:
    """Test the best travel times message."""

    def test_ranking_with_savings(self):
        ranked = RankedWeeks("DUS-WAW", "DUS", "WAW", "EUR", WindowSource.TRAVEL_DATES, weeks=[
            _week(95, 90, date(2026, 3, 10), date(2026, 3, 12)),
            _week(120, 100, date(2026, 3, 30), date(2026, 4, 5)),
            _week(150, 140, date(2026, 4, 6), date(2026, 4, 6)),
        ])

        message = format_best_time_ranges(ranked)

        assert message.startswith("📊 Best times to fly DUS → WAW")
        assert "🥇 Mar 10–12" in message
        assert "Avg: €95  |  Best: €90" in message
        assert "🥈 Mar 30 – Apr 5" in message
        assert "🥉 Apr 6" in message
        assert "saves you €55 (37%)" in message

    def test_no_savings_line_for_single_week(self):
        ranked = RankedWeeks("DUS-WAW", "DUS", "WAW", "EUR", WindowSource.TRAVEL_DATES, weeks=[
            _week(95, 90, date(2026, 3, 10), date(2026, 3, 12)),
        ])
        assert "💡" not in format_best_time_ranges(ranked)

    def test_no_savings_line_for_equal_weeks(self):
        ranked = RankedWeeks("DUS-WAW", "DUS", "WAW", "EUR", WindowSource.TRAVEL_DATES, weeks=[
            _week(95, 90, date(2026, 3, 10), date(2026, 3, 12)),
            _week(95, 95, date(2026, 3, 17), date(2026, 3, 19)),
        ])
        assert "💡" not in format_best_time_ranges(ranked)

    def test_no_weeks(self):
        empty = RankedWeeks("DUS-WAW", "DUS", "WAW", "EUR", WindowSource.CHECK_DATES)
        assert format_best_time_ranges(empty).startswith("Not enough price history yet")
        assert format_best_time_ranges(None).startswith("Not enough price history yet")


class TestFormatError:
    """Test user-facing error messages."""

    def test_invalid_airport(self):
        message = format_error(ErrorCode.INVALID_AIRPORT, code="1X")
        assert "I couldn't find an airport with code '1X'" in message

    def test_invalid_date(self):
        assert "'13/03/2026'" in format_error(ErrorCode.INVALID_DATE, date="13/03/2026")

    def test_invalid_input_with_message(self):
        message = format_error(ErrorCode.INVALID_INPUT, message="route_id: Field required")
        assert message == "That request doesn't look right: route_id: Field required"

    def test_route_not_found(self):
        assert '"DUS-WAW"' in format_error("ROUTE_NOT_FOUND", route_id="DUS-WAW")

    @pytest.mark.parametrize("code", list(ErrorCode))
    def test_every_code_has_a_message(self, code):
        assert format_error(code)

    def test_unknown_code_is_generic(self):
        assert format_error("SOMETHING_ELSE") == format_error(ErrorCode.UNKNOWN_ERROR)


def test_usage_help():
    assert USAGE_HELP.startswith("I'll help you check flight prices!")
