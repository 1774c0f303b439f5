"""
Async API for travel-planner.

Provides async wrappers around the history store, the best-time analyzer
and the tools, so they can be awaited from async hosts (such as the MCP
server) without blocking the event loop.

Example:
    import asyncio
    from travel_planner.async_api import call_tool_async, check_routes_concurrently

    async def main():
        text = await call_tool_async("get_best_travel_times", {"route_id": "DUS-WAW"})

        # Run every scheduled check at once, two at a time
        results = await check_routes_concurrently(
            [{"origin": "DUS", "destination": "WAW"}, {"origin": "JFK", "destination": "CDG"}],
            max_concurrent=2,
        )

    asyncio.run(main())
"""

from __future__ import annotations

import asyncio
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from functools import partial
from typing import Any, Callable, Dict, List, Optional, TypeVar, Union

from .best_times import analyze_best_windows
from .price_history import HistoryStore, get_history_store
from .schema import PriceSample, RankedWeeks, RouteHistory
from .skill import SkillContext, TravelPlannerSkill, get_skill

T = TypeVar("T")

# Shared worker pool; created on first use
_executor: Optional[ThreadPoolExecutor] = None
_max_workers: int = 10


def get_executor(max_workers: Optional[int] = None) -> ThreadPoolExecutor:
    """
    Return the shared worker pool, creating it if needed.

    Args:
        max_workers: Pool size for a newly created pool

    Returns:
        ThreadPoolExecutor instance.
    """
    global _executor, _max_workers

    if max_workers is not None:
        _max_workers = max_workers

    if _executor is None or _executor._shutdown:
        _executor = ThreadPoolExecutor(max_workers=_max_workers, thread_name_prefix="travel-planner")

    return _executor


def shutdown_executor(wait: bool = True) -> None:
    """
    Stop the shared worker pool.

    Args:
        wait: Block until queued calls have finished
    """
    global _executor
    if _executor is not None:
        _executor.shutdown(wait=wait)
        _executor = None


async def run_in_executor(
    func: Callable[..., T],
    *args: Any,
    **kwargs: Any
) -> T:
    """
    Await a blocking call on the shared worker pool.

    Example:
        history = await run_in_executor(store.load, "DUS-WAW")
    """
    loop = asyncio.get_running_loop()
    executor = get_executor()

    if kwargs:
        func = partial(func, **kwargs)

    return await loop.run_in_executor(executor, func, *args)


# ============================================================================
# History
# ============================================================================

async def append_sample_async(
    route_id: str,
    origin: str,
    destination: str,
    date_range_description: str,
    sample: Union[PriceSample, Dict[str, Any]],
    now: Optional[datetime] = None,
    store: Optional[HistoryStore] = None,
) -> RouteHistory:
    """Async version of HistoryStore.append."""
    store = store or get_history_store()
    return await run_in_executor(
        store.append, route_id, origin, destination, date_range_description, sample, now=now
    )


async def query_history_async(
    route_id: str,
    window_days: Optional[int] = None,
    now: Optional[datetime] = None,
    store: Optional[HistoryStore] = None,
) -> Optional[RouteHistory]:
    """Async version of HistoryStore.query."""
    store = store or get_history_store()
    return await run_in_executor(store.query, route_id, window_days, now=now)


async def analyze_best_windows_async(
    route_id: str,
    store: Optional[HistoryStore] = None,
    **kwargs: Any,
) -> Optional[RankedWeeks]:
    """Load a route's history and rank its cheapest weeks without blocking."""
    store = store or get_history_store()
    history = await run_in_executor(store.load, route_id)
    return analyze_best_windows(history, **kwargs)


# ============================================================================
# Tools
# ============================================================================

async def call_tool_async(
    name: str,
    arguments: Optional[Dict[str, Any]] = None,
    context: Optional[SkillContext] = None,
    skill: Optional[TravelPlannerSkill] = None,
) -> str:
    """
    Async version of TravelPlannerSkill.call_tool.

    Args:
        name: Tool name
        arguments: Tool arguments
        context: SkillContext for the invocation
        skill: Skill instance (default: global skill)
    """
    skill = skill or get_skill()
    return await run_in_executor(skill.call_tool, name, arguments, context)


async def check_routes_concurrently(
    routes: List[Dict[str, Any]],
    context: Optional[SkillContext] = None,
    max_concurrent: Optional[int] = None,
    skill: Optional[TravelPlannerSkill] = None,
) -> List[str]:
    """
    Run check_flight_price for several routes concurrently.

    Checks of different routes run in parallel; checks of the same route
    are still serialized by the history store.

    Args:
        routes: check_flight_price arguments, one dict per route
        context: SkillContext shared by all checks
        max_concurrent: Maximum concurrent checks. Defaults to len(routes).
        skill: Skill instance (default: global skill)

    Returns:
        Messages in the same order as the input routes.
    """
    if max_concurrent:
        semaphore = asyncio.Semaphore(max_concurrent)

        async def check_with_semaphore(arguments: Dict[str, Any]) -> str:
            async with semaphore:
                return await call_tool_async("check_flight_price", arguments, context, skill)

        tasks = [check_with_semaphore(route) for route in routes]
    else:
        tasks = [
            call_tool_async("check_flight_price", route, context, skill)
            for route in routes
        ]

    return await asyncio.gather(*tasks)


__all__ = [
    # History
    "append_sample_async",
    "query_history_async",
    "analyze_best_windows_async",
    # Tools
    "call_tool_async",
    "check_routes_concurrently",
    # Utilities
    "run_in_executor",
    "get_executor",
    "shutdown_executor",
]
