"""
MCP Tools module for DevHub MCP Server.

Owns the Server instance and routes list_tools/call_tool to the per-service
tool modules. Any exception a handler raises is logged and propagated; the
MCP server reports it to the client as an error result.
"""

from typing import Any

import structlog
from mcp.server import Server
from mcp.types import (
    Resource,
    TextContent,
    Tool,
)

from . import (
    confluence_tools,
    figma_tools,
    gitlab_tools,
    mattermost_tools,
    memory_tools,
    oracle_tools,
)
from .memory import memory_store
from .utils import to_json

logger = structlog.get_logger(__name__)

GRAPH_RESOURCE_URI = "memory://graph"

# Dispatch order; tool names are unique across modules
TOOL_MODULES = (
    gitlab_tools,
    confluence_tools,
    figma_tools,
    mattermost_tools,
    oracle_tools,
    memory_tools,
)

# Initialize server
server = Server("devhub-mcp")


@server.list_tools()
async def list_tools() -> list[Tool]:
    """List available tools."""
    tools: list[Tool] = []
    for module in TOOL_MODULES:
        tools.extend(module.TOOLS)
    return tools


@server.call_tool()
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    """Handle tool calls."""
    arguments = arguments or {}
    for module in TOOL_MODULES:
        try:
            result = await module.call_tool(name, arguments)
        except Exception as e:
            logger.warning("tool_failed", tool=name, error_type=type(e).__name__, error=str(e))
            raise
        if result is not None:
            return result

    return [TextContent(type="text", text=f"Unknown tool: {name}")]


# ============== Resources ==============

@server.list_resources()
async def list_resources() -> list[Resource]:
    """List available resources."""
    return [
        Resource(
            uri=GRAPH_RESOURCE_URI,
            name="Knowledge Graph",
            description="The full knowledge graph (entities and relations)",
            mimeType="application/json"
        ),
    ]


@server.read_resource()
async def read_resource(uri) -> str:
    """Read a resource."""
    if str(uri).rstrip("/") == GRAPH_RESOURCE_URI:
        return to_json(await memory_store.read_graph())

    return to_json({"error": f"Unknown resource: {uri}"})
