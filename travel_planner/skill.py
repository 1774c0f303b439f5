"""
Tool layer of the travel-planner skill.

This module exposes the named tools the host agent calls. Each tool takes
its arguments as a request model or a plain dict and returns the chat
message to show the user. Failures are logged and turned into friendly
messages; they never escape a tool.

Usage:
    >>> from travel_planner.skill import get_skill
    >>> skill = get_skill()
    >>> print(skill.call_tool("setup_flight_monitoring", {"origin": "DUS", "destination": "WAW"}))
    >>> print(skill.call_tool("get_best_travel_times", {"route_id": "DUS-WAW"}))
"""

import functools
import importlib
import logging
import re
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from .agent_schema import (
    TOOL_SPECS,
    CheckPriceRequest,
    DisableRouteRequest,
    EmptyRequest,
    PriceHistoryRequest,
    RouteRequest,
    SetupMonitoringRequest,
    UpdateRouteRequest,
)
from .best_times import analyze_best_windows
from .config import SkillConfig, get_config
from .errors import (
    ErrorCode,
    InvalidInputError,
    SkillError,
    TravelPlannerException,
    invalid_airport_error,
    route_not_found_error,
)
from .formatter import (
    USAGE_HELP,
    format_all_stopped,
    format_best_time_ranges,
    format_error,
    format_monitoring_status,
    format_no_history,
    format_price_alert,
    format_price_check_result,
    format_round_trip_result,
    format_route_disabled,
    format_route_list,
    format_route_not_found,
    format_route_updated,
    format_setup_confirmation,
    format_status_update,
)
from .price_history import HistoryStore, get_history_store
from .routes import (
    GlobalDefaults,
    MonitoringSettings,
    RouteConfig,
    RoutePreferences,
    RouteRegistry,
    cron_job_id,
    parse_time_to_cron,
)
from .schema import FlightOffer, PriceSample
from .types import PriceSource
from .utils import generate_route_id, utc_now, validate_location

logger = logging.getLogger(__name__)

RequestT = TypeVar("RequestT", bound=BaseModel)

_USER_COMMAND = re.compile(
    r"^(?P<origin>.+?)\s+to\s+(?P<destination>.+?)"
    r"(?:\s+(?P<date>\d{4}-\d{2}-\d{2}))?"
    r"(?:\s+(?:returning|return)\s+(?P<return_date>\d{4}-\d{2}-\d{2}))?$",
    re.IGNORECASE,
)


# ============================================================================
# Data Models
# ============================================================================

@dataclass
class SkillContext:
    """Per-invocation context supplied by the host."""
    channel: Optional[str] = None
    chat_id: Optional[str] = None
    price_source: Optional[PriceSource] = None


@dataclass
class ScheduledJob:
    """A recurring check the host scheduler should run."""
    cron_job_id: str
    schedule: str
    timezone: str
    route_id: str
    tool: str = "check_flight_price"
    arguments: Dict[str, Any] = field(default_factory=dict)
    channel: Optional[str] = None
    chat_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cron_job_id": self.cron_job_id,
            "schedule": self.schedule,
            "timezone": self.timezone,
            "route_id": self.route_id,
            "tool": self.tool,
            "arguments": self.arguments,
            "channel": self.channel,
            "chat_id": self.chat_id,
        }


@dataclass
class UserCommand:
    """Parsed form of a direct '/travel-planner ...' invocation."""
    command: str
    origin: Optional[str] = None
    destination: Optional[str] = None
    date: Optional[str] = None
    return_date: Optional[str] = None


def parse_user_command(args: Optional[str]) -> UserCommand:
    """
    Parse the argument text of a direct invocation.

    Examples:
        >>> parse_user_command("DUS to WAW 2026-03-13")
        UserCommand(command='check', origin='DUS', destination='WAW', date='2026-03-13', return_date=None)
        >>> parse_user_command("DUS to WAW 2026-03-13 returning 2026-03-20").return_date
        '2026-03-20'
        >>> parse_user_command("")
        UserCommand(command='list', origin=None, destination=None, date=None, return_date=None)
    """
    text = (args or "").strip()
    if not text or text.lower() == "list":
        return UserCommand(command="list")

    match = _USER_COMMAND.match(text)
    if match:
        return UserCommand(
            command="check",
            origin=match.group("origin").strip(),
            destination=match.group("destination").strip(),
            date=match.group("date"),
            return_date=match.group("return_date"),
        )
    return UserCommand(command="help")


# ============================================================================
# Helpers
# ============================================================================

def load_price_source(path: str) -> PriceSource:
    """
    Import a flight search callable from 'package.module:function'.

    Raises:
        InvalidInputError: If the path cannot be resolved to a callable
    """
    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise InvalidInputError(
            f"Price source must look like 'package.module:function', got {path!r}",
            field="price_source",
            value=path,
        )
    try:
        source = getattr(importlib.import_module(module_name), attr)
    except (ImportError, AttributeError) as e:
        raise InvalidInputError(
            f"Cannot load price source {path!r}: {e}", field="price_source", value=path
        ) from e
    if not callable(source):
        raise InvalidInputError(f"Price source {path!r} is not callable", field="price_source", value=path)
    return source


def _parse_request(model: Type[RequestT], request: Union[RequestT, Dict[str, Any], None]) -> RequestT:
    if isinstance(request, model):
        return request
    try:
        return model.model_validate(request or {})
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'request'}: {err['msg']}"
            for err in e.errors()
        )
        raise InvalidInputError(f"Invalid arguments: {problems}") from e


def _validated_location(value: str, field_name: str) -> str:
    try:
        code, _ = validate_location(value)
    except InvalidInputError as e:
        raise TravelPlannerException(invalid_airport_error(value, field_name)) from e
    return code


def _error_message(error: SkillError) -> str:
    details = error.details or {}
    return format_error(
        error.code,
        code=details.get("value", ""),
        date=details.get("value", ""),
        route_id=details.get("route_id", ""),
        message=error.message,
    )


def _tool(func: Callable[..., str]) -> Callable[..., str]:
    """Log the call and turn any failure into a user-facing message."""

    @functools.wraps(func)
    def wrapper(self, *args, **kwargs) -> str:
        logger.info(f"Tool call: {func.__name__}")
        try:
            return func(self, *args, **kwargs)
        except TravelPlannerException as e:
            logger.warning(f"{func.__name__} failed: [{e.code.value}] {e}")
            return _error_message(e.error)
        except Exception as e:
            logger.error(f"{func.__name__} failed unexpectedly: {e}", exc_info=True)
            return _error_message(SkillError.from_exception(e))

    return wrapper


# ============================================================================
# Skill
# ============================================================================

class TravelPlannerSkill:
    """
    The travel-planner tools.

    Args:
        registry: Route registry (default: openclaw.json from config)
        store: History store (default: global store)
        price_source: Flight search collaborator used when the invocation
            context does not provide one
        config: Skill configuration (default: global config)
        clock: Returns the current UTC time
    """

    def __init__(
        self,
        registry: Optional[RouteRegistry] = None,
        store: Optional[HistoryStore] = None,
        price_source: Optional[PriceSource] = None,
        config: Optional[SkillConfig] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.config = config or get_config()
        self.registry = registry or RouteRegistry(
            self.config.openclaw_config_path,
            defaults=GlobalDefaults(
                schedule=self.config.default_schedule,
                timezone=self.config.default_timezone,
                price_drop_threshold=self.config.price_drop_threshold,
            ),
        )
        self.store = store or get_history_store()
        self.price_source = price_source
        self.clock = clock

    # ========================================================================
    # Dispatch
    # ========================================================================

    def call_tool(
        self,
        name: str,
        arguments: Optional[Dict[str, Any]] = None,
        context: Optional[SkillContext] = None,
    ) -> str:
        """
        Run a tool by name.

        Raises:
            TravelPlannerException: If no tool has that name
        """
        if name not in TOOL_SPECS:
            raise TravelPlannerException.from_code(
                ErrorCode.INVALID_INPUT,
                f"Unknown tool: {name}",
                details={"tool": name, "available": sorted(TOOL_SPECS)},
            )
        return getattr(self, name)(arguments or {}, context)

    def handle_user_invocation(self, args: Optional[str], context: Optional[SkillContext] = None) -> str:
        """Handle '/travel-planner <args>' typed by the user."""
        parsed = parse_user_command(args)
        if parsed.command == "list":
            return self.list_monitoring()
        if parsed.command == "check":
            return self.check_flight_price(
                {
                    "origin": parsed.origin,
                    "destination": parsed.destination,
                    "date": parsed.date,
                    "return_date": parsed.return_date,
                },
                context,
            )
        return USAGE_HELP

    def scheduled_jobs(self) -> List[ScheduledJob]:
        """Recurring checks for every enabled route, for the host scheduler to register."""
        settings = self.registry.load_settings()
        jobs = []
        for route in settings.routes.values():
            if not route.is_enabled:
                logger.debug(f"Route {route.id} is disabled, no job")
                continue
            arguments: Dict[str, Any] = {
                "origin": route.origin,
                "destination": route.destination,
                "flexible_dates": True,
            }
            if route.date_range and route.date_range != "flexible":
                arguments["date"] = route.date_range
            jobs.append(ScheduledJob(
                cron_job_id=route.monitoring.cron_job_id or cron_job_id(route.id),
                schedule=route.monitoring.schedule,
                timezone=route.monitoring.timezone,
                route_id=route.id,
                arguments=arguments,
                channel=settings.delivery.channel,
                chat_id=settings.delivery.chat_id,
            ))
        return jobs

    # ========================================================================
    # Tools
    # ========================================================================

    @_tool
    def setup_flight_monitoring(self, request=None, context: Optional[SkillContext] = None) -> str:
        """Start (or reconfigure) daily monitoring of a route."""
        req = _parse_request(SetupMonitoringRequest, request)
        origin = _validated_location(req.origin, "origin")
        destination = _validated_location(req.destination, "destination")

        if context and context.channel:
            self.registry.set_delivery(context.channel, context.chat_id)

        defaults = self.registry.load_settings().global_defaults
        route_id = generate_route_id(origin, destination)
        route = RouteConfig(
            id=route_id,
            origin=origin,
            destination=destination,
            date_range=req.date_range or "flexible",
            monitoring=MonitoringSettings(
                enabled=True,
                cron_job_id=cron_job_id(route_id),
                schedule=parse_time_to_cron(req.check_time) if req.check_time else defaults.schedule,
                timezone=req.timezone or defaults.timezone,
            ),
            preferences=RoutePreferences(
                price_drop_threshold=req.price_drop_threshold or defaults.price_drop_threshold,
                max_stops=1,
            ),
            created_at=self.clock().isoformat(),
        )
        settings = self.registry.upsert_route(route)
        return format_setup_confirmation(route, len(settings.routes))

    @_tool
    def check_flight_price(self, request=None, context: Optional[SkillContext] = None) -> str:
        """
        Check current prices for a route.

        For monitored routes a one-way result is recorded in the route's
        history and compared with the statistics from before this check; a
        deal alert is put in front of the result when it qualifies. Round
        trips (with return_date) are reported but never recorded.
        """
        req = _parse_request(CheckPriceRequest, request)
        origin = _validated_location(req.origin, "origin")
        destination = _validated_location(req.destination, "destination")

        route_id = generate_route_id(origin, destination)
        route = self.registry.get_route(route_id)
        monitored = route is not None and route.is_enabled

        if req.return_date:
            return self._check_round_trip(req, origin, destination, monitored, context)

        sample = self._fetch_sample(origin, destination, req.date, context, flexible_dates=req.flexible_dates)
        message = format_price_check_result(
            self._offers(sample), origin, destination, include_monitoring_suggestion=not monitored
        )
        if not monitored:
            return message

        _, assessment = self.store.record_check(
            route_id,
            route.origin,
            route.destination,
            route.date_range,
            sample,
            threshold_percent=route.preferences.price_drop_threshold,
            now=self.clock(),
        )

        if assessment.is_deal:
            logger.info(f"Deal on {route_id}: {assessment.reason.value}")
            return format_price_alert(route.origin, route.destination, sample, assessment) + "\n\n" + message
        return message

    @_tool
    def get_price_history(self, request=None, context: Optional[SkillContext] = None) -> str:
        """Price summary of a route over a trailing window."""
        req = _parse_request(PriceHistoryRequest, request)
        route_id = req.route_id.strip().upper()
        now = self.clock()

        history = self.store.query(route_id, req.days, now=now)
        if history is None:
            return format_no_history(route_id)

        latest = history.latest
        return format_status_update(
            history.origin,
            history.destination,
            latest.best_price if latest else None,
            history.stats,
            currency=latest.currency if latest else self.config.default_currency,
            now=now,
        )

    @_tool
    def list_monitoring(self, request=None, context: Optional[SkillContext] = None) -> str:
        """All monitored routes."""
        _parse_request(EmptyRequest, request)
        return format_route_list(self.registry.list_routes())

    @_tool
    def disable_route_monitoring(self, request=None, context: Optional[SkillContext] = None) -> str:
        """Stop monitoring a route and delete its history."""
        req = _parse_request(DisableRouteRequest, request)
        route = self.registry.find_route(req.route_id.strip())
        if route is None:
            return format_route_not_found(req.route_id)

        self.registry.remove_route(route.id)
        self.store.erase(route.id)
        return format_route_disabled(route.id, len(self.registry.list_routes()))

    @_tool
    def stop_all_monitoring(self, request=None, context: Optional[SkillContext] = None) -> str:
        """Stop monitoring every route and delete all histories."""
        _parse_request(EmptyRequest, request)
        removed = self.registry.clear_routes()
        for route_id in removed:
            self.store.erase(route_id)
        return format_all_stopped(len(removed))

    @_tool
    def update_route_monitoring(self, request=None, context: Optional[SkillContext] = None) -> str:
        """Change the schedule, threshold or dates of a monitored route."""
        req = _parse_request(UpdateRouteRequest, request)
        route_id = req.route_id.strip().upper()
        route = self.registry.get_route(route_id)
        if route is None:
            raise TravelPlannerException(route_not_found_error(route_id))

        if req.check_time:
            route.monitoring.schedule = parse_time_to_cron(req.check_time)
        if req.timezone:
            route.monitoring.timezone = req.timezone
        if req.price_drop_threshold:
            route.preferences.price_drop_threshold = req.price_drop_threshold
        if req.date_range:
            route.date_range = req.date_range

        self.registry.upsert_route(route)
        return format_route_updated(route)

    @_tool
    def get_monitoring_status(self, request=None, context: Optional[SkillContext] = None) -> str:
        """Overview of all monitoring activity."""
        _parse_request(EmptyRequest, request)
        return format_monitoring_status(self.registry.list_routes())

    @_tool
    def get_best_travel_times(self, request=None, context: Optional[SkillContext] = None) -> str:
        """Cheapest weeks to travel according to a route's history."""
        req = _parse_request(RouteRequest, request)
        route_id = req.route_id.strip().upper()

        ranked = analyze_best_windows(
            self.store.load(route_id),
            max_weeks=self.config.max_ranked_weeks,
            default_currency=self.config.default_currency,
        )
        if ranked is None:
            return format_no_history(route_id, for_best_times=True)
        return format_best_time_ranges(ranked)

    # ========================================================================
    # Price source
    # ========================================================================

    def _check_round_trip(
        self,
        req: CheckPriceRequest,
        origin: str,
        destination: str,
        monitored: bool,
        context: Optional[SkillContext],
    ) -> str:
        try:
            sample = self._fetch_sample(
                origin, destination, req.date, context,
                return_date=req.return_date, flexible_dates=req.flexible_dates,
            )
        except TravelPlannerException as e:
            if e.code != ErrorCode.NO_FLIGHTS:
                raise
            offers: List[FlightOffer] = []
        else:
            offers = self._offers(sample)

        return format_round_trip_result(
            offers,
            origin,
            destination,
            req.date,
            req.return_date,
            include_monitoring_suggestion=not monitored,
        )

    @staticmethod
    def _offers(sample: PriceSample) -> List[FlightOffer]:
        return sample.observed_prices or [
            FlightOffer(price=sample.best_price, currency=sample.currency, travel_date=sample.best_travel_date)
        ]

    def _fetch_sample(
        self,
        origin: str,
        destination: str,
        date_input: Optional[str],
        context: Optional[SkillContext],
        return_date: Optional[str] = None,
        flexible_dates: bool = True,
    ) -> PriceSample:
        source = (context.price_source if context else None) or self.price_source
        if source is None:
            raise TravelPlannerException.from_code(
                ErrorCode.SERVICE_UNAVAILABLE,
                "No flight search is available to this skill",
            )

        try:
            sample = source(
                origin,
                destination,
                date_input,
                return_date=return_date,
                flexible_dates=flexible_dates,
            )
        except TravelPlannerException:
            raise
        except Exception as e:
            logger.warning(f"Price check for {origin} → {destination} failed: {e}", exc_info=True)
            raise TravelPlannerException.from_code(
                ErrorCode.SERVICE_UNAVAILABLE,
                details={"original_error": str(e)},
            ) from e

        if isinstance(sample, dict):
            sample = PriceSample.from_dict(sample)
        if sample is None or (not sample.observed_prices and sample.best_price is None):
            raise TravelPlannerException.from_code(ErrorCode.NO_FLIGHTS)
        return sample


# ============================================================================
# Global Skill Instance
# ============================================================================

_skill: Optional[TravelPlannerSkill] = None
_skill_lock = threading.Lock()


def get_skill(**kwargs) -> TravelPlannerSkill:
    """
    Get the global skill instance.

    The price source configured in SkillConfig.price_source is loaded
    unless one is passed explicitly.

    Args:
        **kwargs: Arguments for TravelPlannerSkill (only used on first call)
    """
    global _skill

    with _skill_lock:
        if _skill is None:
            config = kwargs.get("config") or get_config()
            if kwargs.get("price_source") is None and config.price_source:
                kwargs["price_source"] = load_price_source(config.price_source)
            _skill = TravelPlannerSkill(**kwargs)
        return _skill


def reset_skill():
    """Reset the global skill instance (for testing)."""
    global _skill
    with _skill_lock:
        _skill = None


__all__ = [
    "SkillContext",
    "ScheduledJob",
    "UserCommand",
    "parse_user_command",
    "load_price_source",
    "TravelPlannerSkill",
    "get_skill",
    "reset_skill",
]
