"""
Tests for the MCP server wiring.
"""

import asyncio
import json

import pytest

from travel_planner.agent_schema import TOOL_SPECS, tool_input_schema
from travel_planner.async_api import shutdown_executor
from travel_planner.formatter import NO_ROUTES_MESSAGE
from travel_planner.mcp_server import SERVER_NAME, build_tools, create_mcp_server, handle_tool_call


@pytest.fixture(autouse=True)
def executor():
    yield
    shutdown_executor()


class TestToolDefinitions:
    """Test the advertised tools."""

    def test_one_tool_per_skill_tool(self):
        tools = build_tools()
        assert len(tools) == 9
        assert [t.name for t in tools] == list(TOOL_SPECS)

    def test_input_schema(self):
        tools = {t.name: t for t in build_tools()}
        schema = tools["setup_flight_monitoring"].inputSchema

        assert schema["type"] == "object"
        assert set(schema["required"]) == {"origin", "destination"}
        assert "check_time" in schema["properties"]

    def test_history_days_bounds(self):
        days = tool_input_schema("get_price_history")["properties"]["days"]
        assert days["default"] == 30
        assert days["minimum"] == 1
        assert days["maximum"] == 365

    def test_check_price_accepts_return_date(self):
        properties = tool_input_schema("check_flight_price")["properties"]
        assert "return_date" in properties
        assert properties["flexible_dates"]["default"] is True


class TestHandleToolCall:
    """Test tool calls made through the server."""

    def test_returns_text(self, make_skill):
        content = asyncio.run(handle_tool_call("list_monitoring", {}, make_skill()))

        assert len(content) == 1
        assert content[0].type == "text"
        assert content[0].text == NO_ROUTES_MESSAGE

    def test_none_arguments(self, make_skill):
        content = asyncio.run(handle_tool_call("get_monitoring_status", None, make_skill()))
        assert content[0].text == NO_ROUTES_MESSAGE

    def test_unknown_tool_returns_error_json(self, make_skill):
        content = asyncio.run(handle_tool_call("book_flight", {}, make_skill()))

        payload = json.loads(content[0].text)
        assert payload["tool"] == "book_flight"
        assert payload["error"]["code"] == "INVALID_INPUT"
        assert "book_flight" in payload["error"]["message"]


def test_create_server(make_skill):
    server = create_mcp_server(make_skill())
    assert server.name == SERVER_NAME
