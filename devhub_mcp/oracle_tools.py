"""
Oracle MCP tools.
"""

from typing import Any

import oracledb
from mcp.types import TextContent, Tool

from .oracle import QueryValidationError, format_query_report, oracle_runner
from .utils import ToolError, require, text_result

TOOLS: list[Tool] = [
    Tool(
        name="oracle_execute_select",
        description="Run a SELECT query against the Oracle database and return the rows as a text table.",
        inputSchema={
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "The SELECT statement to run. Any other statement is rejected."
                }
            },
            "required": ["query"]
        }
    ),
    Tool(
        name="oracle_test_connection",
        description="Test the connection to the Oracle database.",
        inputSchema={
            "type": "object",
            "properties": {}
        }
    ),
]


async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent] | None:
    if name == "oracle_execute_select":
        (query,) = require(arguments, "query")
        try:
            result = await oracle_runner.execute_select(query)
        except QueryValidationError as e:
            raise ToolError(f"Error: {e}") from e
        except oracledb.Error as e:
            raise ToolError(f"Query execution failed: {e}") from e
        return text_result(format_query_report(result))

    elif name == "oracle_test_connection":
        if not await oracle_runner.test_connection():
            raise ToolError("Oracle connection failed. Check the ORACLE_* environment variables.")
        return text_result("Oracle connection succeeded.")

    return None
