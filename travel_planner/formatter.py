"""
Chat message formatting for travel-planner.

Messages are plain text with emoji so they render the same on every chat
channel the host supports (Telegram, WhatsApp, Signal, ...).
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Iterable, List, Optional, Sequence, Union

from .errors import ErrorCode
from .routes import RouteConfig, format_timezone, schedule_to_time
from .schema import DealAssessment, FlightOffer, PriceSample, RankedWeeks, Statistics
from .types import DEFAULT_CURRENCY
from .utils import ensure_utc, parse_timestamp, utc_now

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
}

MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
          "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

NUMBER_EMOJI = ["1️⃣", "2️⃣", "3️⃣", "4️⃣", "5️⃣", "6️⃣", "7️⃣", "8️⃣", "9️⃣"]

RANK_MEDALS = ["🥇", "🥈", "🥉"]

NO_ROUTES_MESSAGE = (
    "You're not monitoring any flight routes yet.\n\n"
    "To start monitoring, just ask me like:\n"
    '"Monitor flights from New York to Paris"'
)

USAGE_HELP = (
    "I'll help you check flight prices!\n\n"
    "Usage: /travel-planner <origin> to <destination> [date] [returning <date>]\n\n"
    "Examples:\n"
    "• /travel-planner DUS to WAW 2026-03-13\n"
    "• /travel-planner DUS to WAW 2026-03-13 returning 2026-03-20\n"
    "• /travel-planner NYC to Paris\n"
    "• /travel-planner list (show monitored routes)\n\n"
    'To set up monitoring, ask: "Monitor flights from [origin] to [destination]"\n'
    'To find cheapest weeks, ask: "When is the cheapest time to fly DUS to WAW?"'
)


# ============================================================================
# Helpers
# ============================================================================

def currency_symbol(currency: Optional[str]) -> str:
    """Symbol for a currency code; unknown codes are returned as-is."""
    currency = currency or DEFAULT_CURRENCY
    return CURRENCY_SYMBOLS.get(currency.upper(), currency)


def format_number(value: Union[int, float]) -> str:
    """Whole numbers without decimals, everything else with two."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}"


def format_money(amount: Union[int, float], currency: Optional[str] = None) -> str:
    """
    Examples:
        >>> format_money(120, "EUR")
        '€120'
        >>> format_money(99.5, "PLN")
        'PLN99.50'
    """
    return f"{currency_symbol(currency)}{format_number(amount)}"


def format_stops(stops: int, direct_label: str = "direct") -> str:
    if stops == 0:
        return direct_label
    if stops == 1:
        return "1 stop"
    return f"{stops} stops"


def format_travel_date(day: Optional[date]) -> Optional[str]:
    """E.g. 'Fri, Mar 13 2026'."""
    if day is None:
        return None
    return f"{day.strftime('%a')}, {MONTHS[day.month - 1]} {day.day} {day.year}"


def format_date_range(start: date, end: date) -> str:
    """
    Compact range of calendar days.

    Examples:
        >>> format_date_range(date(2026, 3, 3), date(2026, 3, 9))
        'Mar 3–9'
        >>> format_date_range(date(2026, 3, 30), date(2026, 4, 5))
        'Mar 30 – Apr 5'
    """
    start_month = MONTHS[start.month - 1]
    end_month = MONTHS[end.month - 1]
    if start == end:
        return f"{start_month} {start.day}"
    if start.month == end.month and start.year == end.year:
        return f"{start_month} {start.day}–{end.day}"
    return f"{start_month} {start.day} – {end_month} {end.day}"


def format_time_ago(timestamp: Union[str, datetime], now: Optional[datetime] = None) -> str:
    """Relative description of a past instant, e.g. '3 hours ago'."""
    then = parse_timestamp(timestamp, field="timestamp")
    now = ensure_utc(now) if now is not None else utc_now()
    minutes = max(int((now - then).total_seconds() // 60), 0)
    hours = minutes // 60
    days = hours // 24

    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes != 1 else ''} ago"
    if hours < 24:
        return f"{hours} hour{'s' if hours != 1 else ''} ago"
    if days == 1:
        return "yesterday"
    return f"{days} days ago"


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'s' if count != 1 else ''}"


# ============================================================================
# Price Checks
# ============================================================================

def format_price_check_result(
    offers: Sequence[FlightOffer],
    origin: str,
    destination: str,
    include_monitoring_suggestion: bool = True,
    limit: int = 3,
) -> str:
    """Cheapest offers of a one-time price check."""
    if not offers:
        return (
            f"I couldn't find any flights from {origin} to {destination} right now. This could mean:\n\n"
            "• No direct flights available\n"
            "• The route doesn't exist\n"
            "• The website is temporarily unavailable\n\n"
            "Try checking with different airport codes or city names."
        )

    message = f"✈️ Best prices from {origin} to {destination}:\n\n"

    for offer in sorted(offers, key=lambda o: o.price)[:limit]:
        line = f"💰 {format_money(offer.price, offer.currency)}"
        if offer.airline:
            line += f" - {offer.airline}"
        line += f" ({format_stops(offer.stops)})"
        if offer.duration:
            line += f", {offer.duration}"
        if offer.travel_date:
            line += f"\n   📅 {format_travel_date(offer.travel_date)}"
        message += line + "\n"

    if include_monitoring_suggestion:
        message += (
            "\nWould you like me to monitor this route and alert you when prices drop? "
            f'Just ask me to "monitor flights from {origin} to {destination}".'
        )

    return message


def _format_leg(label: str, leg: FlightOffer, currency: str) -> str:
    details = format_stops(leg.stops)
    if leg.duration:
        details += f", {leg.duration}"
    return f"\n   {label} {format_money(leg.price, currency)} ({details})"


def format_round_trip_result(
    offers: Sequence[FlightOffer],
    origin: str,
    destination: str,
    depart_date: Optional[str],
    return_date: str,
    include_monitoring_suggestion: bool = True,
    limit: int = 3,
) -> str:
    """
    Cheapest round trips of a one-time price check.

    Offers assembled from two one-way flights list both legs. Offers
    priced as a single round trip show their total stops instead.
    """
    dates = f"{depart_date or 'flexible'} → {return_date}"
    if not offers:
        return (
            f"I couldn't find any round-trip flights from {origin} to {destination} "
            f"for {dates}. Try different dates or check one-way options."
        )

    message = f"✈️ Round-trip prices {origin} → {destination}\n📅 {dates}\n\n"

    for offer in sorted(offers, key=lambda o: o.price)[:limit]:
        line = f"💰 {format_money(offer.price, offer.currency)}"
        if offer.airline:
            line += f" - {offer.airline}"
        if offer.outbound and offer.inbound:
            line += _format_leg("↗️ Outbound:", offer.outbound, offer.currency)
            line += _format_leg("↙️ Return:  ", offer.inbound, offer.currency)
        else:
            stops = format_stops(offer.stops, direct_label="direct both ways")
            line += f" ({stops})" if offer.stops == 0 else f" ({stops} total)"
            if offer.duration:
                line += f", {offer.duration}"
        message += line + "\n\n"

    if include_monitoring_suggestion:
        message += (
            "Would you like me to monitor this route? "
            f'Just ask me to "monitor flights from {origin} to {destination}".'
        )

    return message.rstrip("\n")


def format_price_alert(
    origin: str,
    destination: str,
    sample: PriceSample,
    assessment: DealAssessment,
) -> str:
    """Alert sent when a check finds a deal."""
    best_offer = min(sample.observed_prices, key=lambda o: o.price) if sample.observed_prices else None
    price = sample.best_price if sample.best_price is not None else (best_offer.price if best_offer else 0)

    message = "🎉 Great deal found!\n\n"
    message += f"✈️ {origin} → {destination}\n"
    message += f"💰 {format_money(price, sample.currency)}"
    if assessment.percentage_drop is not None and assessment.percentage_drop > 0:
        message += f" (↓ {assessment.percentage_drop}% from avg)"
    message += "\n"

    travel_date = sample.best_travel_date or (best_offer.travel_date if best_offer else None)
    if travel_date:
        message += f"📅 {format_travel_date(travel_date)}\n"

    if best_offer:
        message += f"🏢 {best_offer.airline or 'Unknown airline'} ({format_stops(best_offer.stops, 'non-stop')})"
        if best_offer.duration:
            message += f", {best_offer.duration}"
        message += "\n"

    message += "\n"
    if assessment.is_lowest_in_30_days:
        message += "This is the lowest price in 30 days!"
    elif assessment.percentage_drop is not None and assessment.percentage_drop >= 20:
        message += "This is a significant price drop!"
    else:
        message += "Prices are below the recent average."

    return message


def format_status_update(
    origin: str,
    destination: str,
    current_price: Optional[float],
    stats: Optional[Statistics],
    currency: str = DEFAULT_CURRENCY,
    now: Optional[datetime] = None,
) -> str:
    """Price history summary for a route."""
    message = "📊 Monitoring Status\n\n"
    message += f"Route: {origin} → {destination}\n"

    if current_price is not None:
        message += f"Current price: {format_money(current_price, currency)}\n"

    if stats:
        if stats.avg_7day is not None:
            message += f"7-day average: {format_money(stats.avg_7day, currency)}\n"
        if stats.avg_30day is not None:
            message += f"30-day average: {format_money(stats.avg_30day, currency)}\n"
        if stats.min_30day is not None:
            message += f"30-day low: {format_money(stats.min_30day, currency)}\n"
        if stats.max_30day is not None:
            message += f"30-day high: {format_money(stats.max_30day, currency)}\n"
        if stats.last_check is not None:
            message += f"Last check: {format_time_ago(stats.last_check, now)}\n"

    return message


def format_no_history(route_id: str, for_best_times: bool = False) -> str:
    if for_best_times:
        return (
            f"No price history available for route {route_id}. "
            "I need at least a few days of monitoring data to suggest the best travel times."
        )
    return (
        f"No price history available for route {route_id}. "
        "This route hasn't been checked yet, or monitoring hasn't been set up."
    )


# ============================================================================
# Monitoring
# ============================================================================

def _describe_date_range(date_range: Optional[str]) -> str:
    if date_range and date_range != "flexible":
        return date_range
    return "Flexible"


def format_setup_confirmation(route: RouteConfig, total_routes: int) -> str:
    """Confirmation after a route is set up."""
    message = "✈️ Flight monitoring is active!\n\n"
    message += f"Route: {route.origin} → {route.destination}\n"
    message += f"Date range: {_describe_date_range(route.date_range)}\n"
    message += (
        f"Daily checks: {schedule_to_time(route.monitoring.schedule)} "
        f"{format_timezone(route.monitoring.timezone)}\n"
    )
    message += f"Alert threshold: {format_number(route.preferences.price_drop_threshold)}% price drop\n\n"

    if total_routes > 1:
        message += f"You're now monitoring {total_routes} routes!\n"

    message += "I'll check prices tomorrow morning!"
    return message


def format_route_list(routes: Iterable[RouteConfig]) -> str:
    """Numbered list of monitored routes."""
    routes = list(routes)
    if not routes:
        return NO_ROUTES_MESSAGE

    message = "📋 Active Flight Monitoring\n\n"
    for index, route in enumerate(routes):
        number = NUMBER_EMOJI[index] if index < len(NUMBER_EMOJI) else f"{index + 1}."
        message += f"{number} {route.origin} → {route.destination}\n"
        if route.date_range and route.date_range != "flexible":
            message += f"   📅 {route.date_range}\n"
        else:
            message += "   📅 Flexible dates\n"
        message += (
            f"   ⏰ Daily at {schedule_to_time(route.monitoring.schedule)} "
            f"{format_timezone(route.monitoring.timezone)}\n"
        )
        if not route.is_enabled:
            message += "   ⏸️ Paused\n"
        message += "\n"

    message += 'Type "disable monitoring for [route]" to stop tracking a specific route.'
    return message


def format_monitoring_status(routes: Iterable[RouteConfig]) -> str:
    """Overview of all monitoring activity."""
    routes = list(routes)
    if not routes:
        return NO_ROUTES_MESSAGE

    message = "📊 Flight Monitoring Status\n\n"
    for route in routes:
        message += f"✈️ {route.origin} → {route.destination}\n"
        message += f"   📅 {route.date_range}\n"
        message += (
            f"   ⏰ Daily at {schedule_to_time(route.monitoring.schedule)} "
            f"{format_timezone(route.monitoring.timezone)}\n"
        )
        message += f"   🎯 Alert at {format_number(route.preferences.price_drop_threshold)}% drop\n\n"

    message += f"Total routes: {len(routes)}"
    return message


def format_route_updated(route: RouteConfig) -> str:
    return (
        f"✅ Updated monitoring for {route.origin} → {route.destination}\n\n"
        f"Daily checks: {schedule_to_time(route.monitoring.schedule)} "
        f"{format_timezone(route.monitoring.timezone)}\n"
        f"Alert threshold: {format_number(route.preferences.price_drop_threshold)}% price drop\n"
        f"Date range: {route.date_range}"
    )


def format_route_disabled(route_id: str, remaining_count: int) -> str:
    """Confirmation after a route is no longer monitored."""
    origin, _, destination = route_id.partition("-")
    message = f"✅ Stopped monitoring {origin} → {destination}\n\n"

    if remaining_count > 0:
        message += f"You still have {_plural(remaining_count, 'active route')} being monitored.\n"
        message += "Type '/travel-planner list' to see all."
    else:
        message += "You're no longer monitoring any routes."
    return message


def format_route_not_found(route_id: str) -> str:
    return (
        f'I couldn\'t find a route matching "{route_id}". '
        "Type '/travel-planner list' to see all monitored routes."
    )


def format_all_stopped(route_count: int) -> str:
    if route_count == 0:
        return "You don't have any active monitoring to stop."
    return (
        f"✅ Stopped monitoring all {_plural(route_count, 'route')}.\n\n"
        "All price history has been cleared. You can set up new monitoring anytime!"
    )


# ============================================================================
# Best Travel Times
# ============================================================================

def format_best_time_ranges(ranked: Optional[RankedWeeks]) -> str:
    """Cheapest weeks to travel, with the savings over the priciest week shown."""
    if ranked is None or not ranked.weeks:
        return (
            "Not enough price history yet to suggest best travel times. "
            "I'll need a few days of monitoring to build up data."
        )

    lines: List[str] = [
        f"📊 Best times to fly {ranked.origin} → {ranked.destination}",
        "(based on price history)",
        "",
    ]
    for index, week in enumerate(ranked.weeks):
        label = RANK_MEDALS[index] if index < len(RANK_MEDALS) else f"{index + 1}."
        lines.append(f"{label} {format_date_range(week.week_start, week.week_end)}")
        lines.append(
            f"   💰 Avg: {format_money(week.avg_price, ranked.currency)}  |  "
            f"Best: {format_money(week.best_price, ranked.currency)}"
        )
        if index < len(ranked.weeks) - 1:
            lines.append("")

    savings = ranked.savings
    if savings is not None and savings.amount > 0:
        lines.append("")
        lines.append(
            f"💡 Flying during the cheapest window saves you "
            f"{format_money(savings.amount, ranked.currency)} ({savings.percent}%) "
            "compared to the most expensive week shown."
        )

    return "\n".join(lines)


# ============================================================================
# Errors
# ============================================================================

def format_error(code: Union[ErrorCode, str], /, **context: Any) -> str:
    """
    User-facing message for an error code.

    Args:
        code: Error code
        **context: Values referenced by the message (code, date)
    """
    try:
        code = ErrorCode(code)
    except ValueError:
        code = ErrorCode.UNKNOWN_ERROR

    if code is ErrorCode.INVALID_AIRPORT:
        return (
            f"I couldn't find an airport with code '{context.get('code', '')}'. "
            "Could you try with a city name like 'New York' or a common airport code like 'JFK'?"
        )
    if code is ErrorCode.NO_FLIGHTS:
        return (
            "I couldn't find any flights for this route right now. "
            "Would you like me to check routes with connections?"
        )
    if code is ErrorCode.PAGE_LOAD_FAILED:
        return (
            "I couldn't load the flight search page right now. "
            "I'll try again during the next scheduled check."
        )
    if code is ErrorCode.INVALID_TIME:
        return (
            "The time you specified doesn't look right. "
            "Please use a format like '7:00 AM' or '14:30'."
        )
    if code is ErrorCode.SERVICE_UNAVAILABLE:
        return (
            "The flight search website is temporarily unavailable. "
            "I'll keep trying automatically."
        )
    if code is ErrorCode.INVALID_DATE:
        return (
            f"I couldn't understand the date '{context.get('date', '')}'. "
            "Try the YYYY-MM-DD format, like '2026-03-15'."
        )
    if code is ErrorCode.ROUTE_NOT_FOUND:
        return format_route_not_found(context.get("route_id", ""))
    if code is ErrorCode.STORAGE_FAILURE:
        return (
            "I couldn't read or save the monitoring data. "
            "Please check that the OpenClaw home directory is writable."
        )
    if code is ErrorCode.INVALID_INPUT and context.get("message"):
        return f"That request doesn't look right: {context['message']}"

    return (
        "Something went wrong, but I'll keep trying. "
        "If this keeps happening, please let me know!"
    )


__all__ = [
    "CURRENCY_SYMBOLS",
    "USAGE_HELP",
    # Helpers
    "currency_symbol",
    "format_number",
    "format_money",
    "format_stops",
    "format_travel_date",
    "format_date_range",
    "format_time_ago",
    # Messages
    "format_price_check_result",
    "format_round_trip_result",
    "format_price_alert",
    "format_status_update",
    "format_no_history",
    "format_setup_confirmation",
    "format_route_list",
    "format_monitoring_status",
    "format_route_updated",
    "format_route_disabled",
    "format_route_not_found",
    "format_all_stopped",
    "format_best_time_ranges",
    "format_error",
]
