"""
Tests for the async wrappers.
"""

import asyncio

import pytest

from travel_planner.async_api import (
    analyze_best_windows_async,
    append_sample_async,
    call_tool_async,
    check_routes_concurrently,
    get_executor,
    query_history_async,
    shutdown_executor,
)
from travel_planner.formatter import NO_ROUTES_MESSAGE

from conftest import NOW, FakePriceSource, make_sample


@pytest.fixture(autouse=True)
def executor():
    yield
    shutdown_executor()


class TestHistoryAsync:
    """Test async history access."""

    def test_append_and_query(self, store):
        async def scenario():
            await append_sample_async("DUS-WAW", "DUS", "WAW", "flexible",
                                      make_sample(best_price=120), now=NOW, store=store)
            return await query_history_async("DUS-WAW", 30, now=NOW, store=store)

        history = asyncio.run(scenario())

        assert len(history.samples) == 1
        assert history.stats.avg_7day == 120

    def test_analyze(self, store):
        store.append("DUS-WAW", "DUS", "WAW", "flexible", make_sample(best_price=120), now=NOW)

        ranked = asyncio.run(analyze_best_windows_async("DUS-WAW", store=store, max_weeks=3))

        assert ranked.weeks[0].avg_price == 120

    def test_analyze_unknown_route(self, store):
        assert asyncio.run(analyze_best_windows_async("DUS-WAW", store=store)) is None


class TestToolsAsync:
    """Test async tool calls."""

    def test_call_tool(self, make_skill):
        text = asyncio.run(call_tool_async("list_monitoring", skill=make_skill()))
        assert text == NO_ROUTES_MESSAGE

    def test_check_routes_concurrently(self, make_skill, clock):
        source = FakePriceSource([[120], [120], [120]], clock)
        skill = make_skill(source)
        routes = [
            {"origin": "DUS", "destination": "WAW"},
            {"origin": "JFK", "destination": "CDG"},
            {"origin": "LHR", "destination": "SFO"},
        ]

        results = asyncio.run(check_routes_concurrently(routes, max_concurrent=2, skill=skill))

        assert len(results) == 3
        assert results[0].startswith("✈️ Best prices from DUS to WAW:")
        assert results[1].startswith("✈️ Best prices from JFK to CDG:")
        assert results[2].startswith("✈️ Best prices from LHR to SFO:")
        assert len(source.calls) == 3

    def test_concurrent_checks_record_every_sample(self, make_skill, clock, store):
        source = FakePriceSource([[100 + i] for i in range(6)], clock)
        skill = make_skill(source)
        skill.setup_flight_monitoring({"origin": "DUS", "destination": "WAW"})

        asyncio.run(check_routes_concurrently(
            [{"origin": "DUS", "destination": "WAW"}] * 6, skill=skill
        ))

        assert len(store.load("DUS-WAW").samples) == 6


def test_executor_is_recreated_after_shutdown():
    first = get_executor()
    shutdown_executor()
    assert get_executor() is not first
