"""
Confluence MCP tools.

Search, page read/create/update/delete and comments. Mutating tools accept a
markdown, wiki or storage body; markdown is converted to storage markup.
"""

from typing import Any

from mcp.types import TextContent, Tool

from .config import confluence_settings
from .confluence import (
    apply_spaces_filter,
    confluence_client,
    effective_spaces_filter,
    simplify_search_results,
    wrap_simple_query_to_cql,
)
from .markup import normalize_body
from .utils import ToolError, arg_bool, arg_int, arg_str, require, text_result

DEFAULT_SEARCH_LIMIT = 10
MAX_SEARCH_LIMIT = 50

BODY_FORMAT = {
    "type": "string",
    "description": "Body format: markdown|wiki|storage",
    "enum": ["markdown", "wiki", "storage"],
    "default": "markdown"
}

TOOLS: list[Tool] = [
    Tool(
        name="confluence_search",
        description="Search Atlassian Confluence with simple text or CQL; returns simplified JSON results.",
        inputSchema={
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": (
                        "Simple text (e.g. 'deployment guide') or a CQL query "
                        "(e.g. 'space = \"DEV\" AND type = page'). Simple text is searched with siteSearch."
                    )
                },
                "limit": {
                    "type": "integer",
                    "description": "Maximum number of results (1-50)",
                    "default": DEFAULT_SEARCH_LIMIT
                },
                "spaces_filter": {
                    "type": "string",
                    "description": "Comma-separated space keys; overrides CONFLUENCE_SPACES_FILTER. Use empty to disable."
                }
            },
            "required": ["query"]
        }
    ),
    Tool(
        name="confluence_get_page",
        description="Fetch a Confluence page by page_id or (title + space_key) and return a detailed JSON.",
        inputSchema={
            "type": "object",
            "properties": {
                "page_id": {
                    "type": "string",
                    "description": "Confluence page ID. If provided, 'title' and 'space_key' are ignored."
                },
                "title": {
                    "type": "string",
                    "description": "Exact page title. Requires 'space_key' when 'page_id' is not provided."
                },
                "space_key": {
                    "type": "string",
                    "description": "Space key (e.g. 'ENG') when using 'title' lookup."
                },
                "include_metadata": {
                    "type": "boolean",
                    "description": "Include metadata like version, labels, timestamps.",
                    "default": True
                },
                "convert_to_markdown": {
                    "type": "boolean",
                    "description": "Convert the page to Markdown (true) or return HTML (false).",
                    "default": True
                }
            },
        }
    ),
    Tool(
        name="confluence_create_page",
        description="Create a new Confluence page in a space; supports markdown/wiki/storage body.",
        inputSchema={
            "type": "object",
            "properties": {
                "space": {"type": "string", "description": "Space key where the page will be created."},
                "title": {"type": "string", "description": "Page title."},
                "content": {"type": "string", "description": "Page content in the given format."},
                "parent_id": {"type": "string", "description": "Optional parent page ID to nest under."},
                "format": BODY_FORMAT,
            },
            "required": ["space", "title", "content"]
        }
    ),
    Tool(
        name="confluence_update_page",
        description="Update an existing Confluence page by ID; supports markdown/wiki/storage body.",
        inputSchema={
            "type": "object",
            "properties": {
                "page_id": {"type": "string", "description": "Target page ID."},
                "title": {"type": "string", "description": "New title."},
                "content": {"type": "string", "description": "New content."},
                "minor_edit": {"type": "boolean", "description": "Mark as minor edit.", "default": False},
                "version_comment": {"type": "string", "description": "Version comment."},
                "parent_id": {"type": "string", "description": "Optional new parent ID."},
                "format": BODY_FORMAT,
            },
            "required": ["page_id", "title", "content"]
        }
    ),
    Tool(
        name="confluence_delete_page",
        description="Delete a Confluence page by ID.",
        inputSchema={
            "type": "object",
            "properties": {
                "page_id": {"type": "string", "description": "Page ID to delete."}
            },
            "required": ["page_id"]
        }
    ),
    Tool(
        name="confluence_add_comment",
        description="Add a comment to a Confluence page by ID.",
        inputSchema={
            "type": "object",
            "properties": {
                "page_id": {"type": "string", "description": "Target page ID."},
                "content": {"type": "string", "description": "Comment body."},
                "format": BODY_FORMAT,
            },
            "required": ["page_id", "content"]
        }
    ),
]


def build_search_cql(query: str, spaces_filter: str | None) -> str:
    """CQL for a search request, restricted to the effective space filter."""
    spaces = effective_spaces_filter(spaces_filter, confluence_settings.spaces_filter)
    return apply_spaces_filter(wrap_simple_query_to_cql(query), spaces)


async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent] | None:
    """Handle a Confluence tool call. Returns None for names this module does not own."""
    if name == "confluence_search":
        (query,) = require(arguments, "query")
        limit = arg_int(arguments, "limit", DEFAULT_SEARCH_LIMIT)
        limit = max(1, min(MAX_SEARCH_LIMIT, limit))
        cql = build_search_cql(query, arg_str(arguments, "spaces_filter"))
        payload = await confluence_client.search(cql, limit)
        return text_result(simplify_search_results(payload, confluence_client.base_url or None))

    elif name == "confluence_get_page":
        page_id = (arg_str(arguments, "page_id") or "").strip()
        title = (arg_str(arguments, "title") or "").strip()
        space_key = (arg_str(arguments, "space_key") or "").strip()
        if not page_id and not (title and space_key):
            raise ToolError("Either 'page_id' or both 'title' and 'space_key' must be provided")
        page = await confluence_client.get_page(
            page_id=page_id or None,
            title=title or None,
            space_key=space_key or None,
            include_metadata=arg_bool(arguments, "include_metadata", True),
            convert_to_markdown=arg_bool(arguments, "convert_to_markdown", True),
        )
        return text_result(page)

    elif name == "confluence_create_page":
        space, title, content = require(arguments, "space", "title", "content")
        body, representation = normalize_body(content, arg_str(arguments, "format"))
        created = await confluence_client.create_page(
            space, title, body, representation, parent_id=arg_str(arguments, "parent_id")
        )
        return text_result(created)

    elif name == "confluence_update_page":
        page_id, title, content = require(arguments, "page_id", "title", "content")
        body, representation = normalize_body(content, arg_str(arguments, "format"))
        updated = await confluence_client.update_page(
            page_id,
            title,
            body,
            representation,
            minor_edit=arg_bool(arguments, "minor_edit", False),
            version_comment=arg_str(arguments, "version_comment"),
            parent_id=arg_str(arguments, "parent_id"),
        )
        return text_result(updated)

    elif name == "confluence_delete_page":
        (page_id,) = require(arguments, "page_id")
        await confluence_client.delete_page(page_id)
        return text_result({"success": True, "page_id": page_id})

    elif name == "confluence_add_comment":
        page_id, content = require(arguments, "page_id", "content")
        body, representation = normalize_body(content, arg_str(arguments, "format"))
        return text_result(await confluence_client.add_comment(page_id, body, representation))

    return None
