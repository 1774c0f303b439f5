"""
Pydantic request models for the travel-planner tools.

Each tool exposed to the host agent has one request model. The models
validate incoming arguments and provide the JSON schema advertised to the
agent (see TOOL_SPECS).
"""

from __future__ import annotations

from typing import Dict, NamedTuple, Optional, Type

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Monitoring setup
# ============================================================================

class SetupMonitoringRequest(BaseModel):
    """Input schema for setup_flight_monitoring."""

    origin: str = Field(
        min_length=2,
        description='Origin city or airport code (e.g., "DUS", "NYC", "New York")'
    )
    destination: str = Field(
        min_length=2,
        description='Destination city or airport code (e.g., "WAW", "Paris")'
    )
    date_range: Optional[str] = Field(
        default=None,
        description='Date flexibility (e.g., "any day in March 2026", "flexible")'
    )
    check_time: Optional[str] = Field(
        default=None,
        description='Time to check daily (e.g., "7:00 AM", "14:30")'
    )
    timezone: Optional[str] = Field(
        default=None,
        description='IANA timezone (e.g., "Europe/Berlin", "America/New_York")'
    )
    price_drop_threshold: Optional[float] = Field(
        default=None,
        gt=0,
        le=100,
        description="Percentage drop to trigger alert (default: 15)"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {"origin": "DUS", "destination": "WAW"},
                {
                    "origin": "New York",
                    "destination": "Paris",
                    "date_range": "any day in March 2026",
                    "check_time": "7:00 AM",
                    "timezone": "America/New_York",
                    "price_drop_threshold": 20,
                },
            ]
        }
    )


class CheckPriceRequest(BaseModel):
    """Input schema for check_flight_price."""

    origin: str = Field(
        min_length=2,
        description="Origin city or airport code"
    )
    destination: str = Field(
        min_length=2,
        description="Destination city or airport code"
    )
    date: Optional[str] = Field(
        default=None,
        description='Travel date passed to the flight search (e.g., "2026-03-15")'
    )
    return_date: Optional[str] = Field(
        default=None,
        description='Return date for a round trip (e.g., "2026-03-20"). Omit for one-way'
    )
    flexible_dates: bool = Field(
        default=True,
        description="Check nearby dates for better prices"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"origin": "DUS", "destination": "WAW", "date": "2026-03-13", "return_date": "2026-03-20"}
        }
    )


# ============================================================================
# Route queries
# ============================================================================

class RouteRequest(BaseModel):
    """Input schema for tools that act on one route."""

    route_id: str = Field(
        min_length=1,
        description='Route identifier (e.g., "DUS-WAW")'
    )


class PriceHistoryRequest(RouteRequest):
    """Input schema for get_price_history."""

    days: int = Field(
        default=30,
        ge=1,
        le=365,
        description="Number of days to retrieve"
    )


class DisableRouteRequest(BaseModel):
    """Input schema for disable_route_monitoring."""

    route_id: str = Field(
        min_length=1,
        description='Route identifier (e.g., "DUS-WAW") or natural description'
    )


class UpdateRouteRequest(RouteRequest):
    """Input schema for update_route_monitoring."""

    check_time: Optional[str] = Field(default=None, description="New check time")
    timezone: Optional[str] = Field(default=None, description="New timezone")
    price_drop_threshold: Optional[float] = Field(
        default=None,
        gt=0,
        le=100,
        description="New threshold percentage"
    )
    date_range: Optional[str] = Field(default=None, description="New date range")


class EmptyRequest(BaseModel):
    """Input schema for tools without arguments."""


# ============================================================================
# Tool registry
# ============================================================================

class ToolSpec(NamedTuple):
    description: str
    request: Type[BaseModel]


TOOL_SPECS: Dict[str, ToolSpec] = {
    "setup_flight_monitoring": ToolSpec(
        "Set up automated flight price monitoring between two cities",
        SetupMonitoringRequest,
    ),
    "check_flight_price": ToolSpec(
        "Check current flight prices for a route, one-way or round trip with return_date, "
        "and record one-way prices for monitored routes",
        CheckPriceRequest,
    ),
    "get_price_history": ToolSpec(
        "Get historical price data and trends for a route",
        PriceHistoryRequest,
    ),
    "list_monitoring": ToolSpec(
        "List all routes currently being monitored",
        EmptyRequest,
    ),
    "disable_route_monitoring": ToolSpec(
        "Stop monitoring a specific route",
        DisableRouteRequest,
    ),
    "stop_all_monitoring": ToolSpec(
        "Stop all flight price monitoring",
        EmptyRequest,
    ),
    "update_route_monitoring": ToolSpec(
        "Update settings for a specific monitored route",
        UpdateRouteRequest,
    ),
    "get_monitoring_status": ToolSpec(
        "Get overview of all monitoring activity",
        EmptyRequest,
    ),
    "get_best_travel_times": ToolSpec(
        "Analyze price history to suggest the cheapest weeks to travel for a monitored route",
        RouteRequest,
    ),
}


def tool_input_schema(name: str) -> dict:
    """JSON schema of a tool's arguments."""
    return TOOL_SPECS[name].request.model_json_schema()


__all__ = [
    "SetupMonitoringRequest",
    "CheckPriceRequest",
    "RouteRequest",
    "PriceHistoryRequest",
    "DisableRouteRequest",
    "UpdateRouteRequest",
    "EmptyRequest",
    "ToolSpec",
    "TOOL_SPECS",
    "tool_input_schema",
]
