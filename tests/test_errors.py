"""
Tests for structured errors.
"""

from travel_planner.errors import (
    ErrorCode,
    InvalidInputError,
    SkillError,
    StorageError,
    TravelPlannerException,
    invalid_airport_error,
    route_not_found_error,
)


class TestSkillError:
    """Test SkillError classification."""

    def test_package_exception_keeps_its_error(self):
        exc = InvalidInputError("bad price", field="price", value=-1)
        error = SkillError.from_exception(exc)
        assert error is exc.error
        assert error.details == {"field": "price", "value": "-1"}

    def test_timeout(self):
        assert SkillError.from_exception(TimeoutError("slow")).code == ErrorCode.SERVICE_UNAVAILABLE

    def test_os_error(self):
        error = SkillError.from_exception(PermissionError("denied"))
        assert error.code == ErrorCode.STORAGE_FAILURE

    def test_value_error(self):
        error = SkillError.from_exception(ValueError("threshold too high"))
        assert error.code == ErrorCode.INVALID_INPUT
        assert error.message == "threshold too high"

    def test_unknown(self):
        error = SkillError.from_exception(RuntimeError("boom"))
        assert error.code == ErrorCode.UNKNOWN_ERROR
        assert error.recoverable is False
        assert error.details == {"exception_type": "RuntimeError"}

    def test_to_dict(self):
        data = route_not_found_error("DUS-WAW").to_dict()
        assert data["code"] == "ROUTE_NOT_FOUND"
        assert data["details"] == {"route_id": "DUS-WAW"}
        assert data["suggested_action"]


class TestExceptions:
    """Test the exception hierarchy."""

    def test_from_code_default_message(self):
        exc = TravelPlannerException.from_code(ErrorCode.NO_FLIGHTS)
        assert exc.code == ErrorCode.NO_FLIGHTS
        assert str(exc) == "No flights found"

    def test_from_code_custom_message(self):
        exc = TravelPlannerException.from_code(ErrorCode.INVALID_INPUT, "Unknown tool: foo", details={"tool": "foo"})
        assert str(exc) == "Unknown tool: foo"
        assert exc.to_dict()["details"] == {"tool": "foo"}

    def test_invalid_input_is_value_error(self):
        exc = InvalidInputError("bad", field="stops", value=-1)
        assert isinstance(exc, ValueError)
        assert isinstance(exc, TravelPlannerException)
        assert exc.code == ErrorCode.INVALID_INPUT

    def test_invalid_input_custom_code(self):
        exc = InvalidInputError("bad date", field="travel_date", value="13/03", code=ErrorCode.INVALID_DATE)
        assert exc.code == ErrorCode.INVALID_DATE
        assert exc.error.details["value"] == "13/03"

    def test_storage_error(self):
        exc = StorageError("disk full", key="DUS-WAW")
        assert exc.code == ErrorCode.STORAGE_FAILURE
        assert exc.error.recoverable is False
        assert exc.error.details == {"key": "DUS-WAW"}

    def test_invalid_airport_error(self):
        error = invalid_airport_error("1X", field="destination")
        assert error.code == ErrorCode.INVALID_AIRPORT
        assert error.details == {"field": "destination", "value": "1X"}
