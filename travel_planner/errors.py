"""
Structured error handling for the travel-planner skill.

Every failure the skill reports carries an ErrorCode, a message for the
user and a hint on how to recover, so the host can react without parsing text.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    """
    Standardized error codes for agent consumption.

    These codes allow the host runtime to handle different error types
    without parsing error messages.
    """

    # Input validation errors
    INVALID_AIRPORT = "INVALID_AIRPORT"
    INVALID_DATE = "INVALID_DATE"
    INVALID_TIME = "INVALID_TIME"
    INVALID_INPUT = "INVALID_INPUT"

    # Price check errors
    NO_FLIGHTS = "NO_FLIGHTS"
    PAGE_LOAD_FAILED = "PAGE_LOAD_FAILED"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"

    # Monitoring errors
    ROUTE_NOT_FOUND = "ROUTE_NOT_FOUND"

    # System errors
    STORAGE_FAILURE = "STORAGE_FAILURE"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class SkillError(BaseModel):
    """
    Structured error response for the host agent.

    Serializable through to_dict() and embedded in TravelPlannerException.
    """

    code: ErrorCode = Field(
        description="Error code the host can branch on"
    )
    message: str = Field(
        description="Message suitable for the user"
    )
    details: Optional[dict] = Field(
        default=None,
        description="Context such as the offending field, value or route id"
    )
    recoverable: bool = Field(
        default=True,
        description="False when retrying with other input will not help"
    )
    suggested_action: Optional[str] = Field(
        default=None,
        description="What the user or host should do next"
    )

    @classmethod
    def from_exception(cls, e: Exception) -> "SkillError":
        """
        Convert an exception to a structured SkillError.

        Exceptions raised by this package already carry a SkillError and are
        returned as-is; anything else is classified by its message.

        Args:
            e: The exception to convert

        Returns:
            SkillError with appropriate code and message
        """
        if isinstance(e, TravelPlannerException):
            return e.error

        error_str = str(e).lower()

        if isinstance(e, TimeoutError) or "timed out" in error_str:
            return cls(
                code=ErrorCode.SERVICE_UNAVAILABLE,
                message="The flight search timed out",
                recoverable=True,
                suggested_action="Retry during the next scheduled check",
            )

        if isinstance(e, OSError):
            return cls(
                code=ErrorCode.STORAGE_FAILURE,
                message="Could not read or write the skill storage",
                recoverable=True,
                suggested_action="Check that the OpenClaw home directory is writable",
                details={"original_error": str(e)},
            )

        if "airport" in error_str or "location" in error_str:
            return cls(
                code=ErrorCode.INVALID_AIRPORT,
                message="Invalid airport code or city name provided",
                recoverable=True,
                suggested_action="Use a 3-letter airport code (e.g., 'JFK') or a city name",
                details={"original_error": str(e)},
            )

        if "date" in error_str:
            return cls(
                code=ErrorCode.INVALID_DATE,
                message="Invalid date format or value",
                recoverable=True,
                suggested_action="Use YYYY-MM-DD format",
            )

        if isinstance(e, ValueError):
            return cls(
                code=ErrorCode.INVALID_INPUT,
                message=str(e),
                recoverable=True,
                suggested_action="Check input parameters and try again",
            )

        return cls(
            code=ErrorCode.UNKNOWN_ERROR,
            message=str(e),
            recoverable=False,
            suggested_action="Check input parameters and try again",
            details={"exception_type": type(e).__name__},
        )

    def to_dict(self) -> dict:
        """Plain dict for JSON output."""
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
            "suggested_action": self.suggested_action,
        }


class TravelPlannerException(Exception):
    """
    Base exception of the package, carrying a SkillError.

    Attributes:
        error: The SkillError with structured information

    Example:
        try:
            store.append(...)
        except TravelPlannerException as e:
            logger.warning(f"{e.code.value}: {e.error.suggested_action}")
    """

    def __init__(self, error: SkillError):
        self.error = error
        super().__init__(error.message)

    @property
    def code(self) -> ErrorCode:
        return self.error.code

    def to_dict(self) -> dict:
        """The wrapped SkillError as a dict."""
        return self.error.to_dict()

    @classmethod
    def from_code(
        cls,
        code: ErrorCode,
        message: Optional[str] = None,
        **kwargs: Any
    ) -> "TravelPlannerException":
        """
        Build an exception for a code, with the standard message unless one is given.

        Args:
            code: The error code
            message: Optional custom message (defaults based on code)
            **kwargs: Additional SkillError fields

        Returns:
            TravelPlannerException with structured error
        """
        default_messages = {
            ErrorCode.INVALID_AIRPORT: "Invalid airport code provided",
            ErrorCode.INVALID_DATE: "Invalid date format or value",
            ErrorCode.INVALID_TIME: "Invalid check time",
            ErrorCode.INVALID_INPUT: "Invalid input",
            ErrorCode.NO_FLIGHTS: "No flights found",
            ErrorCode.PAGE_LOAD_FAILED: "Flight search page failed to load",
            ErrorCode.SERVICE_UNAVAILABLE: "Flight search is temporarily unavailable",
            ErrorCode.ROUTE_NOT_FOUND: "Route is not being monitored",
            ErrorCode.STORAGE_FAILURE: "Storage operation failed",
            ErrorCode.UNKNOWN_ERROR: "An unknown error occurred",
        }

        error = SkillError(
            code=code,
            message=message or default_messages.get(code, str(code)),
            **kwargs
        )
        return cls(error)


class InvalidInputError(TravelPlannerException, ValueError):
    """
    Raised when the core receives a value it cannot work with
    (negative price, malformed timestamp, unparseable date).
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Any = None,
        code: ErrorCode = ErrorCode.INVALID_INPUT,
    ):
        details = None
        if field is not None:
            details = {"field": field, "value": value if isinstance(value, str) else repr(value)}
        super().__init__(SkillError(
            code=code,
            message=message,
            details=details,
            recoverable=True,
            suggested_action="Check input parameters and try again",
        ))


class StorageError(TravelPlannerException):
    """Raised when the persistence collaborator fails for a reason other than absence."""

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(SkillError(
            code=ErrorCode.STORAGE_FAILURE,
            message=message,
            details={"key": key} if key else None,
            recoverable=False,
            suggested_action="Check the skill storage directory or database",
        ))


# Shortcuts for errors raised in several places
def invalid_airport_error(
    location: str,
    field: str = "origin"
) -> SkillError:
    """Create an error for invalid airport codes or city names."""
    return SkillError(
        code=ErrorCode.INVALID_AIRPORT,
        message=f"Invalid airport code or city: {location}",
        details={"field": field, "value": location},
        recoverable=True,
        suggested_action="Use a 3-letter airport code (e.g., 'JFK') or a city name"
    )


def route_not_found_error(route_id: str) -> SkillError:
    """Create an error for a route that is not being monitored."""
    return SkillError(
        code=ErrorCode.ROUTE_NOT_FOUND,
        message=f"Route {route_id} is not being monitored",
        details={"route_id": route_id},
        recoverable=True,
        suggested_action="Use list_monitoring to see all monitored routes"
    )


__all__ = [
    "ErrorCode",
    "SkillError",
    "TravelPlannerException",
    "InvalidInputError",
    "StorageError",
    # Convenience functions
    "invalid_airport_error",
    "route_not_found_error",
]
