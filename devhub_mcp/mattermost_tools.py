"""
Mattermost MCP tools.
"""

from typing import Any

from mcp.types import TextContent, Tool

from .mattermost import build_search_body, mattermost_client
from .utils import arg_bool, arg_int, arg_str, require, text_result

DEFAULT_PAGE = 0
DEFAULT_PER_PAGE = 20

PAGE = {"type": "integer", "description": "Page number (default 0)", "default": DEFAULT_PAGE}
PER_PAGE = {"type": "integer", "description": "Results per page (default 20)", "default": DEFAULT_PER_PAGE}

SEARCH_PROPERTIES = {
    "team_id": {
        "type": "string",
        "description": "Team ID to search in. Omit to search across all teams."
    },
    "terms": {"type": "string", "description": "The search terms"},
    "is_or_search": {
        "type": "boolean",
        "description": "Match any of the terms instead of all of them",
        "default": False
    },
    "page": PAGE,
    "per_page": PER_PAGE,
    "include_deleted_channels": {
        "type": "boolean",
        "description": "Include results from archived channels",
        "default": False
    },
    "time_zone_offset": {
        "type": "integer",
        "description": "Offset from UTC in seconds, used for date filters"
    },
}

TOOLS: list[Tool] = [
    Tool(
        name="mattermost_search_posts",
        description="Search Mattermost posts in a team or across all teams.",
        inputSchema={
            "type": "object",
            "properties": SEARCH_PROPERTIES,
            "required": ["terms"]
        }
    ),
    Tool(
        name="mattermost_search_files",
        description="Search files shared in Mattermost in a team or across all teams.",
        inputSchema={
            "type": "object",
            "properties": SEARCH_PROPERTIES,
            "required": ["terms"]
        }
    ),
    Tool(
        name="mattermost_get_teams",
        description="List the teams the authenticated user belongs to.",
        inputSchema={
            "type": "object",
            "properties": {"page": PAGE, "per_page": PER_PAGE},
        }
    ),
    Tool(
        name="mattermost_get_channels",
        description="List the public channels of a team.",
        inputSchema={
            "type": "object",
            "properties": {
                "team_id": {"type": "string", "description": "Team ID"},
                "page": PAGE,
                "per_page": PER_PAGE,
            },
            "required": ["team_id"]
        }
    ),
    Tool(
        name="mattermost_get_users",
        description="List Mattermost users.",
        inputSchema={
            "type": "object",
            "properties": {"page": PAGE, "per_page": PER_PAGE},
        }
    ),
]


def _search_body(arguments: dict[str, Any], terms: str) -> dict:
    return build_search_body(
        terms,
        is_or_search=arg_bool(arguments, "is_or_search", False),
        page=arg_int(arguments, "page", DEFAULT_PAGE),
        per_page=arg_int(arguments, "per_page", DEFAULT_PER_PAGE),
        include_deleted_channels=arg_bool(arguments, "include_deleted_channels", False),
        time_zone_offset=arg_int(arguments, "time_zone_offset"),
    )


async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent] | None:
    page = arg_int(arguments, "page", DEFAULT_PAGE)
    per_page = arg_int(arguments, "per_page", DEFAULT_PER_PAGE)

    if name == "mattermost_search_posts":
        (terms,) = require(arguments, "terms")
        result = await mattermost_client.search_posts(
            _search_body(arguments, terms), arg_str(arguments, "team_id") or None
        )
        return text_result(result)

    elif name == "mattermost_search_files":
        (terms,) = require(arguments, "terms")
        result = await mattermost_client.search_files(
            _search_body(arguments, terms), arg_str(arguments, "team_id") or None
        )
        return text_result(result)

    elif name == "mattermost_get_teams":
        return text_result(await mattermost_client.get_teams(page, per_page))

    elif name == "mattermost_get_channels":
        (team_id,) = require(arguments, "team_id")
        return text_result(await mattermost_client.get_channels(team_id, page, per_page))

    elif name == "mattermost_get_users":
        return text_result(await mattermost_client.get_users(page, per_page))

    return None
