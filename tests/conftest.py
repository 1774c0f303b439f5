"""
Pytest configuration and shared fixtures for travel-planner tests.
"""

import os
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

import pytest

from travel_planner.config import reset_config
from travel_planner.price_history import HistoryStore, reset_history_store
from travel_planner.price_storage import MemoryHistoryStorage, reset_history_storage
from travel_planner.routes import RouteRegistry
from travel_planner.schema import FlightOffer, PriceSample
from travel_planner.skill import TravelPlannerSkill, reset_skill


NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Point the skill at a temporary OpenClaw home and reset all singletons."""
    for name in list(os.environ):
        if name.upper().startswith("TRAVEL_PLANNER_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("OPENCLAW_HOME", str(tmp_path / "openclaw"))
    monkeypatch.chdir(tmp_path)

    reset_config()
    reset_history_storage()
    reset_history_store()
    reset_skill()
    yield
    reset_skill()
    reset_history_store()
    reset_history_storage()
    reset_config()


class Clock:
    """Settable clock for code that takes a `clock` callable."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakePriceSource:
    """
    Price source that replays canned results.

    Each entry of `results` is a list of prices (one offer per price), an
    exception to raise, or None for "no flights". Positional arguments of
    each call go to `calls`, keyword options to `options`.
    """

    def __init__(self, results, clock: Clock, currency: str = "EUR", travel_date: Optional[date] = None):
        self.results = list(results)
        self.clock = clock
        self.currency = currency
        self.travel_date = travel_date
        self.calls = []
        self.options = []

    def __call__(self, origin, destination, date_input=None, return_date=None, flexible_dates=True):
        self.calls.append((origin, destination, date_input))
        self.options.append({"return_date": return_date, "flexible_dates": flexible_dates})
        result = self.results.pop(0) if self.results else None
        if isinstance(result, Exception):
            raise result
        if result is None:
            return None
        offers = [
            FlightOffer(price=price, currency=self.currency, travel_date=self.travel_date,
                        airline=f"Airline {i}", stops=i % 2, duration="1h 45m")
            for i, price in enumerate(result)
        ]
        return PriceSample.from_offers(offers, check_timestamp=self.clock(), currency=self.currency)


_UNSET = object()


def make_sample(
    days_ago: float = 0,
    best_price: Optional[float] = _UNSET,
    offers: Optional[List[FlightOffer]] = None,
    now: datetime = NOW,
    currency: str = "USD",
    best_travel_date: Optional[date] = None,
) -> PriceSample:
    """
    Build a sample checked `days_ago` days before `now`.

    Without offers the best price defaults to 100. With offers it is left
    for PriceSample to derive from the cheapest one.
    """
    if best_price is _UNSET:
        best_price = None if offers else 100
    return PriceSample(
        check_timestamp=now - timedelta(days=days_ago),
        observed_prices=offers or [],
        best_price=best_price,
        best_travel_date=best_travel_date,
        currency=currency,
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def memory_storage():
    return MemoryHistoryStorage()


@pytest.fixture
def store(memory_storage):
    return HistoryStore(memory_storage)


@pytest.fixture
def registry(tmp_path):
    return RouteRegistry(tmp_path / "openclaw" / "openclaw.json")


@pytest.fixture
def make_skill(registry, store, clock):
    """Factory for a skill wired to temporary storage and a fixed clock."""

    def factory(price_source=None):
        return TravelPlannerSkill(registry=registry, store=store, price_source=price_source, clock=clock)

    return factory
