"""
MCP (Model Context Protocol) Server for travel-planner.

This module exposes the travel-planner tools over MCP so that OpenClaw,
Claude Desktop or any other MCP client can call them.

Run with:
    travel-planner-mcp

Or configure in an MCP client:
    {
        "mcpServers": {
            "travel-planner": {
                "command": "python",
                "args": ["-m", "travel_planner.mcp_server"],
                "env": {"OPENCLAW_HOME": "/home/me/.openclaw"}
            }
        }
    }

Available Tools:
    - setup_flight_monitoring: Start daily price monitoring for a route
    - check_flight_price: Check current prices (recorded for monitored routes)
    - get_price_history: Price trend of a monitored route
    - list_monitoring / get_monitoring_status: Overview of monitored routes
    - update_route_monitoring: Change schedule, threshold or dates of a route
    - disable_route_monitoring / stop_all_monitoring: Stop monitoring
    - get_best_travel_times: Cheapest weeks to travel, from price history
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional, Sequence

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from .agent_schema import TOOL_SPECS, tool_input_schema
from .async_api import call_tool_async, shutdown_executor
from .config import get_config
from .errors import SkillError
from .skill import TravelPlannerSkill, get_skill

logger = logging.getLogger(__name__)

SERVER_NAME = "travel-planner"


def build_tools() -> list[Tool]:
    """MCP tool definitions, one per skill tool."""
    return [
        Tool(
            name=name,
            description=spec.description,
            inputSchema=tool_input_schema(name),
        )
        for name, spec in TOOL_SPECS.items()
    ]


async def handle_tool_call(
    name: str,
    arguments: Optional[dict[str, Any]],
    skill: Optional[TravelPlannerSkill] = None,
) -> Sequence[TextContent]:
    """
    Run a tool and wrap its message for MCP.

    Errors that escape the skill (unknown tool names) are returned as a
    JSON SkillError.
    """
    logger.info(f"Tool called: {name} with args: {arguments}")

    try:
        text = await call_tool_async(name, arguments or {}, skill=skill)
    except Exception as e:
        logger.error(f"Error in tool {name}: {e}", exc_info=True)
        error = SkillError.from_exception(e)
        return [TextContent(
            type="text",
            text=json.dumps({"error": error.to_dict(), "tool": name}, indent=2)
        )]

    return [TextContent(type="text", text=text)]


def create_mcp_server(skill: Optional[TravelPlannerSkill] = None) -> Server:
    """
    Create and configure the MCP server with the travel-planner tools.

    Args:
        skill: Skill instance to serve (default: global skill)

    Returns:
        Configured MCP Server instance
    """
    server = Server(SERVER_NAME)
    tools = build_tools()

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        """List available travel-planner tools."""
        return tools

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> Sequence[TextContent]:
        """Handle tool calls from the MCP client."""
        return await handle_tool_call(name, arguments, skill)

    return server


async def main():
    """Run the MCP server."""
    logger.info("Starting travel-planner MCP server...")
    server = create_mcp_server(get_skill())

    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream,
                write_stream,
                server.create_initialization_options()
            )
    finally:
        shutdown_executor(wait=False)


def run():
    """Entry point for the MCP server script."""
    logging.basicConfig(
        level=getattr(logging, get_config().log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    asyncio.run(main())


if __name__ == "__main__":
    run()
