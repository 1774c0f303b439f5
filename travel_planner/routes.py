"""
Route registry for monitored flight routes.

Monitored routes, the delivery target and the skill-wide defaults are kept
in the host's openclaw.json under ``skills["travel-planner"]``. Keys are
camelCase there because the host and other skills share the file; all
other content of the file is preserved on save.

Example openclaw.json fragment:

    {
      "skills": {
        "travel-planner": {
          "enabled": true,
          "routes": {
            "DUS-WAW": {
              "id": "DUS-WAW",
              "origin": "DUS",
              "destination": "WAW",
              "dateRange": "flexible",
              "monitoring": {"enabled": true, "cronJobId": "travel-planner-DUS-WAW",
                             "schedule": "0 7 * * *", "timezone": "Europe/Berlin"},
              "preferences": {"priceDropThreshold": 15, "maxStops": 1},
              "createdAt": "2026-03-01T07:00:00+00:00"
            }
          },
          "delivery": {"channel": "telegram", "chatId": "12345"},
          "globalDefaults": {"schedule": "0 7 * * *", "timezone": "UTC", "priceDropThreshold": 15}
        }
      }
    }
"""

import json
import logging
import os
import re
import tempfile
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .errors import ErrorCode, InvalidInputError, StorageError
from .types import (
    DEFAULT_PRICE_DROP_THRESHOLD,
    DEFAULT_SCHEDULE,
    DEFAULT_TIMEZONE,
    SKILL_NAME,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Data Models
# ============================================================================

@dataclass
class MonitoringSettings:
    """Schedule of the recurring price check for a route."""
    enabled: bool = True
    cron_job_id: str = ""
    schedule: str = DEFAULT_SCHEDULE
    timezone: str = DEFAULT_TIMEZONE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "cronJobId": self.cron_job_id,
            "schedule": self.schedule,
            "timezone": self.timezone,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "MonitoringSettings":
        data = data or {}
        return cls(
            enabled=data.get("enabled", True),
            cron_job_id=data.get("cronJobId", ""),
            schedule=data.get("schedule") or DEFAULT_SCHEDULE,
            timezone=data.get("timezone") or DEFAULT_TIMEZONE,
        )


@dataclass
class RoutePreferences:
    """Alerting preferences for a route."""
    price_drop_threshold: float = DEFAULT_PRICE_DROP_THRESHOLD
    max_stops: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "priceDropThreshold": self.price_drop_threshold,
            "maxStops": self.max_stops,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "RoutePreferences":
        data = data or {}
        return cls(
            price_drop_threshold=data.get("priceDropThreshold", DEFAULT_PRICE_DROP_THRESHOLD),
            max_stops=data.get("maxStops", 1),
        )


@dataclass
class RouteConfig:
    """A monitored route."""
    id: str
    origin: str
    destination: str
    date_range: str = "flexible"
    monitoring: MonitoringSettings = field(default_factory=MonitoringSettings)
    preferences: RoutePreferences = field(default_factory=RoutePreferences)
    created_at: Optional[str] = None

    @property
    def is_enabled(self) -> bool:
        return self.monitoring.enabled

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase layout stored in openclaw.json."""
        return {
            "id": self.id,
            "origin": self.origin,
            "destination": self.destination,
            "dateRange": self.date_range,
            "monitoring": self.monitoring.to_dict(),
            "preferences": self.preferences.to_dict(),
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RouteConfig":
        """Create from the camelCase layout stored in openclaw.json."""
        return cls(
            id=data.get("id", ""),
            origin=data.get("origin", ""),
            destination=data.get("destination", ""),
            date_range=data.get("dateRange") or "flexible",
            monitoring=MonitoringSettings.from_dict(data.get("monitoring")),
            preferences=RoutePreferences.from_dict(data.get("preferences")),
            created_at=data.get("createdAt"),
        )


@dataclass
class DeliverySettings:
    """Chat the skill reports to."""
    channel: Optional[str] = None
    chat_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"channel": self.channel, "chatId": self.chat_id}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "DeliverySettings":
        data = data or {}
        return cls(channel=data.get("channel"), chat_id=data.get("chatId"))


@dataclass
class GlobalDefaults:
    """Defaults applied to newly monitored routes."""
    schedule: str = DEFAULT_SCHEDULE
    timezone: str = DEFAULT_TIMEZONE
    price_drop_threshold: float = DEFAULT_PRICE_DROP_THRESHOLD

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schedule": self.schedule,
            "timezone": self.timezone,
            "priceDropThreshold": self.price_drop_threshold,
        }

    @classmethod
    def from_dict(
        cls,
        data: Optional[Dict[str, Any]],
        fallback: Optional["GlobalDefaults"] = None,
    ) -> "GlobalDefaults":
        """Create from dictionary, taking missing values from fallback."""
        data = data or {}
        fallback = fallback or cls()
        return cls(
            schedule=data.get("schedule") or fallback.schedule,
            timezone=data.get("timezone") or fallback.timezone,
            price_drop_threshold=data.get("priceDropThreshold") or fallback.price_drop_threshold,
        )


_SKILL_KEYS = ("enabled", "routes", "delivery", "globalDefaults")


@dataclass
class SkillSettings:
    """The skill's section of openclaw.json."""
    enabled: bool = True
    routes: Dict[str, RouteConfig] = field(default_factory=dict)
    delivery: DeliverySettings = field(default_factory=DeliverySettings)
    global_defaults: GlobalDefaults = field(default_factory=GlobalDefaults)
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        data.update({
            "enabled": self.enabled,
            "routes": {route_id: r.to_dict() for route_id, r in self.routes.items()},
            "delivery": self.delivery.to_dict(),
            "globalDefaults": self.global_defaults.to_dict(),
        })
        return data

    @classmethod
    def from_dict(
        cls,
        data: Optional[Dict[str, Any]],
        defaults: Optional[GlobalDefaults] = None,
    ) -> "SkillSettings":
        data = data or {}
        routes = {
            route_id: RouteConfig.from_dict({"id": route_id, **(route or {})})
            for route_id, route in (data.get("routes") or {}).items()
        }
        return cls(
            enabled=data.get("enabled", True),
            routes=routes,
            delivery=DeliverySettings.from_dict(data.get("delivery")),
            global_defaults=GlobalDefaults.from_dict(data.get("globalDefaults"), defaults),
            extra={k: v for k, v in data.items() if k not in _SKILL_KEYS},
        )


# ============================================================================
# Schedule Helpers
# ============================================================================

_TIME_PATTERN = re.compile(r"(\d{1,2}):?(\d{2})?\s*(am|pm)?", re.IGNORECASE)

_TIMEZONE_LABELS = {
    "Europe/Berlin": "CET",
    "Europe/Warsaw": "CET",
    "Europe/London": "UK",
    "America/New_York": "Eastern",
    "America/Chicago": "Central",
    "America/Denver": "Mountain",
    "America/Los_Angeles": "Pacific",
    "UTC": "UTC",
}


def parse_time_to_cron(time_str: Optional[str]) -> str:
    """
    Convert a time of day to a daily cron schedule.

    Args:
        time_str: Time such as "7:00 AM", "14:30" or "9pm"

    Returns:
        Cron expression "M H * * *". Text without a recognizable time
        falls back to the default schedule.

    Raises:
        InvalidInputError: If the time is recognizable but out of range

    Examples:
        >>> parse_time_to_cron("7:00 AM")
        '0 7 * * *'
        >>> parse_time_to_cron("9pm")
        '0 21 * * *'
    """
    match = _TIME_PATTERN.search(time_str or "")
    if not match:
        return DEFAULT_SCHEDULE

    hour = int(match.group(1))
    minute = int(match.group(2)) if match.group(2) else 0
    meridiem = match.group(3).lower() if match.group(3) else None

    if meridiem and not 1 <= hour <= 12:
        raise InvalidInputError(
            f"Invalid time: {time_str}", field="check_time", value=time_str, code=ErrorCode.INVALID_TIME
        )
    if meridiem == "pm" and hour != 12:
        hour += 12
    elif meridiem == "am" and hour == 12:
        hour = 0

    if hour > 23 or minute > 59:
        raise InvalidInputError(
            f"Invalid time: {time_str}", field="check_time", value=time_str, code=ErrorCode.INVALID_TIME
        )

    return f"{minute} {hour} * * *"


def schedule_to_time(schedule: str) -> str:
    """
    Render a daily cron schedule as a 12-hour clock time.

    Examples:
        >>> schedule_to_time("0 7 * * *")
        '7:00 AM'
        >>> schedule_to_time("30 0 * * *")
        '12:30 AM'
    """
    parts = (schedule or "").split()
    if len(parts) < 2:
        return "7:00 AM"
    try:
        minute = int(parts[0])
        hour = int(parts[1])
    except ValueError:
        return schedule

    if hour == 0:
        return f"12:{minute:02d} AM"
    if hour < 12:
        return f"{hour}:{minute:02d} AM"
    if hour == 12:
        return f"12:{minute:02d} PM"
    return f"{hour - 12}:{minute:02d} PM"


def format_timezone(timezone: str) -> str:
    """Short label for common IANA timezones; others are returned unchanged."""
    return _TIMEZONE_LABELS.get(timezone, timezone)


def cron_job_id(route_id: str) -> str:
    return f"{SKILL_NAME}-{route_id}"


# ============================================================================
# Registry
# ============================================================================

class RouteRegistry:
    """
    Reads and writes the skill's section of openclaw.json.

    Every mutation is a read-modify-write of the whole file under a lock,
    written to a temporary file and moved into place.
    """

    def __init__(
        self,
        config_path: Union[str, Path],
        defaults: Optional[GlobalDefaults] = None,
    ):
        """
        Args:
            config_path: Path of openclaw.json
            defaults: Defaults used where the file does not set globalDefaults
        """
        self.config_path = Path(config_path)
        self.defaults = defaults or GlobalDefaults()
        self._lock = threading.RLock()

    def _read_document(self) -> Dict[str, Any]:
        try:
            raw = self.config_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise StorageError(f"Failed to read {self.config_path}: {e}") from e

        try:
            document = json.loads(raw) if raw.strip() else {}
        except ValueError as e:
            raise StorageError(f"Malformed OpenClaw config {self.config_path}: {e}") from e
        if not isinstance(document, dict):
            raise StorageError(f"Malformed OpenClaw config {self.config_path}: expected an object")
        return document

    def _write_document(self, document: Dict[str, Any]) -> None:
        directory = self.config_path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".openclaw.", suffix=".tmp", dir=directory)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(document, f, indent=2)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_name, self.config_path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Failed to write {self.config_path}: {e}") from e

    # ========================================================================
    # Settings
    # ========================================================================

    def load_settings(self) -> SkillSettings:
        """Load the skill settings, or defaults when none are stored."""
        with self._lock:
            skills = self._read_document().get("skills") or {}
            return SkillSettings.from_dict(skills.get(SKILL_NAME), self.defaults)

    def save_settings(self, settings: SkillSettings) -> None:
        """Store the skill settings, keeping the rest of the file intact."""
        with self._lock:
            document = self._read_document()
            skills = document.get("skills")
            if not isinstance(skills, dict):
                skills = {}
                document["skills"] = skills
            skills[SKILL_NAME] = settings.to_dict()
            self._write_document(document)
        logger.debug(f"Saved {len(settings.routes)} routes to {self.config_path}")

    # ========================================================================
    # Routes
    # ========================================================================

    def list_routes(self) -> List[RouteConfig]:
        return list(self.load_settings().routes.values())

    def get_route(self, route_id: str) -> Optional[RouteConfig]:
        return self.load_settings().routes.get(route_id)

    def find_route(self, text: str) -> Optional[RouteConfig]:
        """
        Find a route by id, or by a description mentioning its origin or destination.

        Example:
            >>> registry.find_route("flights to waw")
            RouteConfig(id='DUS-WAW', ...)
        """
        routes = self.load_settings().routes
        if text in routes:
            return routes[text]
        if text.upper() in routes:
            return routes[text.upper()]

        needle = text.lower()
        for route in routes.values():
            for place in (route.origin, route.destination):
                if place and place.lower() in needle:
                    return route
        return None

    def upsert_route(self, route: RouteConfig) -> SkillSettings:
        """
        Add or replace a route. An existing route keeps its creation time.

        Returns:
            The updated settings
        """
        with self._lock:
            settings = self.load_settings()
            existing = settings.routes.get(route.id)
            if existing and existing.created_at:
                route.created_at = existing.created_at
            settings.routes[route.id] = route
            self.save_settings(settings)
        logger.info(f"{'Updated' if existing else 'Added'} route {route.id}")
        return settings

    def remove_route(self, route_id: str) -> Optional[RouteConfig]:
        """Remove a route. Returns the removed route, or None if absent."""
        with self._lock:
            settings = self.load_settings()
            removed = settings.routes.pop(route_id, None)
            if removed is not None:
                self.save_settings(settings)
        if removed is not None:
            logger.info(f"Removed route {route_id}")
        return removed

    def clear_routes(self) -> List[str]:
        """Remove all routes. Returns the removed route ids."""
        with self._lock:
            settings = self.load_settings()
            removed = list(settings.routes)
            if removed:
                settings.routes = {}
                self.save_settings(settings)
        logger.info(f"Cleared {len(removed)} routes")
        return removed

    def set_delivery(
        self,
        channel: Optional[str],
        chat_id: Optional[str],
        overwrite: bool = False,
    ) -> DeliverySettings:
        """
        Record where alerts are delivered.

        An existing channel is kept unless overwrite is set.
        """
        with self._lock:
            settings = self.load_settings()
            if channel and (overwrite or not settings.delivery.channel):
                settings.delivery = DeliverySettings(channel=channel, chat_id=chat_id)
                self.save_settings(settings)
            return settings.delivery


__all__ = [
    # Data models
    "MonitoringSettings",
    "RoutePreferences",
    "RouteConfig",
    "DeliverySettings",
    "GlobalDefaults",
    "SkillSettings",
    # Schedule helpers
    "parse_time_to_cron",
    "schedule_to_time",
    "format_timezone",
    "cron_job_id",
    # Registry
    "RouteRegistry",
]
