"""
Utility functions for DevHub MCP Server.

Contains shared exceptions, tool argument coercion and JSON rendering helpers.
"""

import json
from typing import Any

from mcp.types import TextContent
from pydantic import BaseModel


# ============== Exceptions ==============

class ToolError(Exception):
    """Raised by a tool handler; surfaces to the client as an error result."""
    pass


class ConfigurationError(Exception):
    """Raised when a required setting is missing."""
    pass


# ============== Argument Coercion ==============

def arg_str(arguments: dict[str, Any], key: str) -> str | None:
    """Return an argument as a string, or None when absent or null."""
    value = arguments.get(key)
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def arg_int(arguments: dict[str, Any], key: str, default: int | None = None) -> int | None:
    """Return an argument as an int, falling back to default when not numeric."""
    value = arguments.get(key)
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def arg_bool(arguments: dict[str, Any], key: str, default: bool | None = None) -> bool | None:
    """Return an argument as a bool. Accepts JSON booleans and 'true'/'false' strings."""
    value = arguments.get(key)
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    return default


def arg_str_list(arguments: dict[str, Any], key: str) -> list[str] | None:
    """Return an array argument as a list of strings, dropping nulls."""
    value = arguments.get(key)
    if not isinstance(value, list):
        return None
    return [str(v) for v in value if v is not None]


def arg_int_list(arguments: dict[str, Any], key: str) -> list[int] | None:
    """Return an array argument as a list of ints, dropping non-numeric items."""
    value = arguments.get(key)
    if not isinstance(value, list):
        return None
    result = []
    for v in value:
        if isinstance(v, bool):
            continue
        try:
            result.append(int(v))
        except (TypeError, ValueError):
            continue
    return result


def require(arguments: dict[str, Any], *keys: str) -> list[str]:
    """Return the named string arguments, raising ToolError if any is missing."""
    values = [arg_str(arguments, key) for key in keys]
    missing = [key for key, value in zip(keys, values) if value is None]
    if missing:
        raise ToolError(f"Missing required parameter(s): {', '.join(missing)}")
    return values


# ============== Rendering ==============

def _to_jsonable(payload: Any) -> Any:
    if isinstance(payload, BaseModel):
        return payload.model_dump(by_alias=True)
    if isinstance(payload, list):
        return [_to_jsonable(item) for item in payload]
    if isinstance(payload, dict):
        return {key: _to_jsonable(value) for key, value in payload.items()}
    return payload


def to_json(payload: Any) -> str:
    """Serialize models, lists and dicts to compact JSON text."""
    return json.dumps(_to_jsonable(payload), ensure_ascii=False, default=str)


def text_result(payload: Any) -> list[TextContent]:
    """Wrap a payload as the single text content item of a tool result."""
    text = payload if isinstance(payload, str) else to_json(payload)
    return [TextContent(type="text", text=text)]
