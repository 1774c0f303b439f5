"""
travel-planner: flight price monitoring skill for OpenClaw.

Keeps a price history per monitored route, detects deals against rolling
statistics and suggests the cheapest weeks to travel. The host agent calls
the skill through named tools and supplies the flight search.

Quick Start:
    >>> from travel_planner import HistoryStore, MemoryHistoryStorage, PriceSample, analyze_best_windows
    >>> store = HistoryStore(MemoryHistoryStorage())
    >>> store.append("DUS-WAW", "DUS", "WAW", "flexible",
    ...              {"check_timestamp": "2026-03-01T07:00:00Z", "best_price": 120})
    >>> analyze_best_windows(store.load("DUS-WAW")).weeks[0].avg_price
    120

For Agent Integration:
    >>> from travel_planner import get_skill
    >>> print(get_skill().call_tool("list_monitoring"))

Main Functions:
    - compute_statistics(): 7-day and 30-day aggregates of a route's prices
    - assess_deal(): Classify a new price against those aggregates
    - analyze_best_windows(): Rank ISO weeks by average price

Classes:
    - HistoryStore: Per-route price history with retention
    - RouteRegistry: Monitored routes stored in openclaw.json
    - TravelPlannerSkill: The named tools exposed to the host
"""

from .best_times import analyze_best_windows
from .config import SkillConfig, configure, get_config, reset_config
from .deal_detector import assess_deal
from .errors import (
    ErrorCode,
    InvalidInputError,
    SkillError,
    StorageError,
    TravelPlannerException,
)
from .price_history import HistoryStore, get_history_store, reset_history_store
from .price_stats import compute_statistics
from .price_storage import (
    FileHistoryStorage,
    HistoryStorageBackend,
    MemoryHistoryStorage,
    SQLiteHistoryStorage,
    get_history_storage,
    reset_history_storage,
)
from .routes import RouteConfig, RouteRegistry
from .schema import (
    DealAssessment,
    DealReason,
    FlightOffer,
    PriceSample,
    RankedWeeks,
    RouteHistory,
    Savings,
    Statistics,
    WeekBucket,
    WindowSource,
)
from .skill import SkillContext, TravelPlannerSkill, get_skill, reset_skill

__version__ = "1.0.0"

__all__ = [
    # Core
    "compute_statistics",
    "assess_deal",
    "analyze_best_windows",
    # Data models
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
    # Storage
    "HistoryStore",
    "HistoryStorageBackend",
    "FileHistoryStorage",
    "SQLiteHistoryStorage",
    "MemoryHistoryStorage",
    "get_history_store",
    "reset_history_store",
    "get_history_storage",
    "reset_history_storage",
    # Skill
    "RouteConfig",
    "RouteRegistry",
    "SkillContext",
    "TravelPlannerSkill",
    "get_skill",
    "reset_skill",
    # Configuration
    "SkillConfig",
    "get_config",
    "configure",
    "reset_config",
    # Errors
    "ErrorCode",
    "SkillError",
    "TravelPlannerException",
    "InvalidInputError",
    "StorageError",
]
