"""
Read-only Oracle query runner.

Contains the OracleQueryRunner class, SELECT-only validation and the box
drawn text table used to render query results. The blocking driver calls run
in a worker thread.
"""

import asyncio
from typing import Any, Callable

import oracledb
import structlog

from .config import OracleSettings, oracle_settings
from .models import QueryResult
from .utils import ConfigurationError

logger = structlog.get_logger(__name__)

NULL_TEXT = "NULL"


class QueryValidationError(ValueError):
    """Raised for anything other than a single SELECT statement."""
    pass


def normalize_select(query: str) -> str:
    """Trim, drop one trailing semicolon, and require a leading SELECT."""
    processed = query.strip()
    if processed.endswith(";"):
        processed = processed[:-1].strip()
    if not processed.upper().startswith("SELECT"):
        raise QueryValidationError(f"Only SELECT queries can be executed. Query: {query}")
    return processed


def _cell(value: Any) -> Any:
    # LOB locators are only readable while the connection is open
    if isinstance(value, oracledb.LOB):
        return value.read()
    return value


class OracleQueryRunner:
    """Runs SELECT statements over a fresh connection per call."""

    def __init__(self, settings: OracleSettings = oracle_settings, connect: Callable[..., Any] | None = None):
        self.settings = settings
        self._connect = connect or oracledb.connect

    def _open(self):
        missing = [
            name for name, value in (
                ("ORACLE_HOST", self.settings.host),
                ("ORACLE_USERNAME", self.settings.username),
                ("ORACLE_PASSWORD", self.settings.password),
            ) if not value
        ]
        if missing:
            raise ConfigurationError(f"Missing Oracle settings: {', '.join(missing)}")
        dsn = oracledb.makedsn(self.settings.host, self.settings.port, sid=self.settings.sid)
        return self._connect(user=self.settings.username, password=self.settings.password, dsn=dsn)

    def _execute(self, query: str) -> QueryResult:
        connection = self._open()
        try:
            cursor = connection.cursor()
            try:
                cursor.execute(query)
                columns = [d[0] for d in cursor.description or []]
                rows = [
                    {column: _cell(value) for column, value in zip(columns, record)}
                    for record in cursor.fetchall()
                ]
            finally:
                cursor.close()
        finally:
            connection.close()
        return QueryResult(columns=columns, rows=rows)

    async def execute_select(self, query: str) -> QueryResult:
        """Validate then run a SELECT. Validation happens before any connection is opened."""
        processed = normalize_select(query)
        result = await asyncio.to_thread(self._execute, processed)
        logger.info("oracle_query_executed", rows=result.row_count, columns=len(result.columns))
        return result

    def _ping(self) -> bool:
        try:
            connection = self._open()
        except oracledb.Error as e:
            logger.warning("oracle_connection_failed", error=str(e))
            return False
        connection.close()
        return True

    async def test_connection(self) -> bool:
        return await asyncio.to_thread(self._ping)


def format_query_result(result: QueryResult) -> str:
    """Render rows as a box-drawn text table; nulls print as NULL."""
    if not result.rows:
        return "No rows returned."

    def text(value: Any) -> str:
        return NULL_TEXT if value is None else str(value)

    widths = [
        max([len(column)] + [len(text(row.get(column))) for row in result.rows])
        for column in result.columns
    ]
    lines = [
        "┌" + "┬".join("─" * w for w in widths) + "┐",
        "│" + "│".join(c.ljust(w) for c, w in zip(result.columns, widths)) + "│",
        "├" + "┼".join("─" * w for w in widths) + "┤",
    ]
    for row in result.rows:
        lines.append("│" + "│".join(text(row.get(c)).ljust(w) for c, w in zip(result.columns, widths)) + "│")
    lines.append("└" + "┴".join("─" * w for w in widths) + "┘")
    return "\n".join(lines)


def format_query_report(result: QueryResult) -> str:
    return (
        "Query executed.\n\n"
        f"Columns: {', '.join(result.columns)}\n"
        f"Rows: {result.row_count}\n\n"
        f"Result:\n{format_query_result(result)}"
    )


# Global runner instance
oracle_runner = OracleQueryRunner()
