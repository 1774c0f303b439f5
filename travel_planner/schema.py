"""
Data records for route price histories.

These are plain dataclasses passed between the history store, the
statistics engine, the deal detector and the best-time analyzer. Each one
serializes to the JSON layout persisted per route.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import InvalidInputError
from .types import DEFAULT_CURRENCY
from .utils import (
    parse_timestamp,
    parse_travel_date,
    round_half_up,
    validate_price,
)


# ============================================================================
# Observations
# ============================================================================

@dataclass
class FlightOffer:
    """
    A single offer observed during a price check.

    Round-trip offers carry their combined price. When the search paired
    two one-way flights, those legs are kept in outbound and inbound.
    """
    price: float
    currency: str = DEFAULT_CURRENCY
    travel_date: Optional[date] = None
    airline: str = ""
    stops: int = 0
    duration: Optional[str] = None
    departure: Optional[str] = None
    arrival: Optional[str] = None
    outbound: Optional["FlightOffer"] = None
    inbound: Optional["FlightOffer"] = None

    def __post_init__(self):
        self.price = validate_price(self.price)
        if isinstance(self.stops, bool) or not isinstance(self.stops, int) or self.stops < 0:
            raise InvalidInputError(
                f"stops must be a non-negative integer: {self.stops!r}",
                field="stops",
                value=self.stops,
            )
        self.travel_date = parse_travel_date(self.travel_date)
        if isinstance(self.outbound, dict):
            self.outbound = FlightOffer.from_dict(self.outbound)
        if isinstance(self.inbound, dict):
            self.inbound = FlightOffer.from_dict(self.inbound)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "price": self.price,
            "currency": self.currency,
            "travel_date": self.travel_date.isoformat() if self.travel_date else None,
            "airline": self.airline,
            "stops": self.stops,
            "duration": self.duration,
            "departure": self.departure,
            "arrival": self.arrival,
            "outbound": self.outbound.to_dict() if self.outbound else None,
            "inbound": self.inbound.to_dict() if self.inbound else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FlightOffer":
        """Create from dictionary."""
        return cls(
            price=data.get("price"),
            currency=data.get("currency") or DEFAULT_CURRENCY,
            travel_date=parse_travel_date(data.get("travel_date")),
            airline=data.get("airline") or "",
            stops=data.get("stops", 0) or 0,
            duration=data.get("duration"),
            departure=data.get("departure"),
            arrival=data.get("arrival"),
            outbound=data.get("outbound"),
            inbound=data.get("inbound"),
        )


@dataclass
class PriceSample:
    """The result of one price check for a route."""
    check_timestamp: datetime
    observed_prices: List[FlightOffer] = field(default_factory=list)
    best_price: Optional[float] = None
    best_travel_date: Optional[date] = None
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self):
        self.check_timestamp = parse_timestamp(self.check_timestamp)
        self.best_travel_date = parse_travel_date(self.best_travel_date, field="best_travel_date")
        if self.best_price is not None:
            self.best_price = validate_price(self.best_price, field="best_price")
        if not self.observed_prices:
            return

        # best_price is always the cheapest offer; the first offer wins a tie
        best = min(self.observed_prices, key=lambda o: o.price)
        if self.best_price is None:
            self.best_price = best.price
            if self.best_travel_date is None:
                self.best_travel_date = best.travel_date
        elif self.best_price != best.price:
            raise InvalidInputError(
                f"best_price {self.best_price} does not match the cheapest offer ({best.price})",
                field="best_price",
                value=self.best_price,
            )

    @classmethod
    def from_offers(
        cls,
        offers: List[FlightOffer],
        check_timestamp: datetime,
        currency: Optional[str] = None,
    ) -> "PriceSample":
        """
        Build a sample from scraped offers.

        best_price is the minimum offer price; on ties the earliest offer
        in the list supplies best_travel_date.
        """
        best = min(offers, key=lambda o: o.price) if offers else None
        return cls(
            check_timestamp=check_timestamp,
            observed_prices=list(offers),
            best_price=best.price if best else None,
            best_travel_date=best.travel_date if best else None,
            currency=currency or (offers[0].currency if offers else DEFAULT_CURRENCY),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "check_timestamp": self.check_timestamp.isoformat(),
            "observed_prices": [o.to_dict() for o in self.observed_prices],
            "best_price": self.best_price,
            "best_travel_date": self.best_travel_date.isoformat() if self.best_travel_date else None,
            "currency": self.currency,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PriceSample":
        """Create from dictionary."""
        return cls(
            check_timestamp=parse_timestamp(data.get("check_timestamp")),
            observed_prices=[FlightOffer.from_dict(o) for o in data.get("observed_prices") or []],
            best_price=data.get("best_price"),
            best_travel_date=parse_travel_date(data.get("best_travel_date"), field="best_travel_date"),
            currency=data.get("currency") or DEFAULT_CURRENCY,
        )


# ============================================================================
# Aggregates
# ============================================================================

@dataclass
class Statistics:
    """Rolling-window aggregates of a route's best prices."""
    avg_7day: Optional[int] = None
    avg_30day: Optional[int] = None
    min_30day: Optional[float] = None
    max_30day: Optional[float] = None
    last_check: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "avg_7day": self.avg_7day,
            "avg_30day": self.avg_30day,
            "min_30day": self.min_30day,
            "max_30day": self.max_30day,
            "last_check": self.last_check.isoformat() if self.last_check else None,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Statistics":
        """Create from dictionary."""
        data = data or {}
        last_check = data.get("last_check")
        return cls(
            avg_7day=data.get("avg_7day"),
            avg_30day=data.get("avg_30day"),
            min_30day=data.get("min_30day"),
            max_30day=data.get("max_30day"),
            last_check=parse_timestamp(last_check, field="last_check") if last_check else None,
        )


@dataclass
class RouteHistory:
    """Time-ordered price samples for one route, with derived statistics."""
    route_id: str
    origin: str = ""
    destination: str = ""
    date_range_description: str = "flexible"
    samples: List[PriceSample] = field(default_factory=list)
    stats: Statistics = field(default_factory=Statistics)

    @property
    def latest(self) -> Optional[PriceSample]:
        """Most recent sample, if any."""
        return self.samples[-1] if self.samples else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "route_id": self.route_id,
            "origin": self.origin,
            "destination": self.destination,
            "date_range_description": self.date_range_description,
            "samples": [s.to_dict() for s in self.samples],
            "stats": self.stats.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RouteHistory":
        """Create from dictionary."""
        return cls(
            route_id=data.get("route_id", ""),
            origin=data.get("origin", ""),
            destination=data.get("destination", ""),
            date_range_description=data.get("date_range_description", "flexible"),
            samples=[PriceSample.from_dict(s) for s in data.get("samples") or []],
            stats=Statistics.from_dict(data.get("stats")),
        )


# ============================================================================
# Deal Assessment
# ============================================================================

class DealReason(str, Enum):
    """Why a price was (or was not) classified as a deal."""
    NONE = "none"
    THIRTY_DAY_LOW = "thirty_day_low"
    SIGNIFICANT_DROP = "significant_drop"
    INSUFFICIENT_DATA = "insufficient_data"


@dataclass
class DealAssessment:
    """Classification of a newly observed price."""
    is_deal: bool
    reason: DealReason
    percentage_drop: Optional[int] = None
    is_lowest_in_30_days: bool = False
    reference_price: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "is_deal": self.is_deal,
            "reason": self.reason.value,
            "percentage_drop": self.percentage_drop,
            "is_lowest_in_30_days": self.is_lowest_in_30_days,
            "reference_price": self.reference_price,
        }


# ============================================================================
# Best-Time Analysis
# ============================================================================

class WindowSource(str, Enum):
    """Which observations a best-time ranking was built from."""
    TRAVEL_DATES = "travel_dates"
    CHECK_DATES = "check_dates"


@dataclass
class WeekBucket:
    """Aggregated prices for one ISO week."""
    week_start: date
    week_end: date
    avg_price: int
    best_price: float
    samples_in_bucket: int
    iso_year: int = 0
    iso_week: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "week_start": self.week_start.isoformat(),
            "week_end": self.week_end.isoformat(),
            "avg_price": self.avg_price,
            "best_price": self.best_price,
            "samples_in_bucket": self.samples_in_bucket,
            "iso_year": self.iso_year,
            "iso_week": self.iso_week,
        }


@dataclass
class Savings:
    """Difference between the most expensive and the cheapest week shown."""
    amount: int
    percent: int

    def to_dict(self) -> Dict[str, Any]:
        return {"amount": self.amount, "percent": self.percent}


@dataclass
class RankedWeeks:
    """Weeks ordered from cheapest to most expensive."""
    route_id: str
    origin: str
    destination: str
    currency: str
    source: WindowSource
    weeks: List[WeekBucket] = field(default_factory=list)

    @property
    def savings(self) -> Optional[Savings]:
        """
        Savings of the cheapest week over the most expensive week shown.

        None with fewer than two weeks.
        """
        if len(self.weeks) < 2:
            return None
        cheapest = self.weeks[0].avg_price
        priciest = self.weeks[-1].avg_price
        amount = priciest - cheapest
        percent = round_half_up(amount / priciest * 100) if priciest else 0
        return Savings(amount=amount, percent=percent)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        savings = self.savings
        return {
            "route_id": self.route_id,
            "origin": self.origin,
            "destination": self.destination,
            "currency": self.currency,
            "source": self.source.value,
            "weeks": [w.to_dict() for w in self.weeks],
            "savings": savings.to_dict() if savings else None,
        }


__all__ = [
    "FlightOffer",
    "PriceSample",
    "Statistics",
    "RouteHistory",
    "DealReason",
    "DealAssessment",
    "WindowSource",
    "WeekBucket",
    "Savings",
    "RankedWeeks",
]
