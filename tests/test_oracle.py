"""
Tests for the Oracle SELECT runner and result formatting.
"""

import oracledb
import pytest


class FakeCursor:
    def __init__(self, columns, rows):
        self.description = [(c, None, None, None, None, None, None) for c in columns]
        self._rows = rows
        self.executed = []
        self.closed = False

    def execute(self, query):
        self.executed.append(query)

    def fetchall(self):
        return self._rows

    def close(self):
        self.closed = True


class FakeConnection:
    def __init__(self, cursor):
        self._cursor = cursor
        self.closed = False

    def cursor(self):
        return self._cursor

    def close(self):
        self.closed = True


def _settings(**overrides):
    from devhub_mcp.config import OracleSettings
    values = {"host": "db.example.com", "username": "scott", "password": "tiger"}
    values.update(overrides)
    return OracleSettings(**values)


class TestNormalizeSelect:
    """Tests for SELECT-only validation."""

    def test_trims_and_strips_one_semicolon(self):
        from devhub_mcp.oracle import normalize_select
        assert normalize_select("  SELECT 1 FROM dual ;  ") == "SELECT 1 FROM dual"

    def test_case_insensitive(self):
        from devhub_mcp.oracle import normalize_select
        assert normalize_select("select * from t") == "select * from t"

    def test_rejects_other_statements(self):
        from devhub_mcp.oracle import QueryValidationError, normalize_select
        for query in ("DELETE FROM t", "  update t set a = 1", "WITH x AS (SELECT 1 FROM dual) SELECT * FROM x", ""):
            with pytest.raises(QueryValidationError, match="Only SELECT queries can be executed"):
                normalize_select(query)


class TestFormatQueryResult:
    """Tests for the box-drawn result table."""

    def test_empty_result(self):
        from devhub_mcp.models import QueryResult
        from devhub_mcp.oracle import format_query_result
        assert format_query_result(QueryResult(columns=["A"], rows=[])) == "No rows returned."

    def test_table_layout_and_nulls(self):
        from devhub_mcp.models import QueryResult
        from devhub_mcp.oracle import format_query_result
        result = QueryResult(columns=["ID", "N"], rows=[{"ID": 1, "N": None}, {"ID": 22, "N": "x"}])
        assert format_query_result(result) == "\n".join([
            "┌──┬────┐",
            "│ID│N   │",
            "├──┼────┤",
            "│1 │NULL│",
            "│22│x   │",
            "└──┴────┘",
        ])

    def test_report(self):
        from devhub_mcp.models import QueryResult
        from devhub_mcp.oracle import format_query_report
        report = format_query_report(QueryResult(columns=["A", "B"], rows=[]))
        assert report == "Query executed.\n\nColumns: A, B\nRows: 0\n\nResult:\nNo rows returned."


class TestOracleQueryRunner:
    """Tests for OracleQueryRunner with a fake driver connection."""

    async def test_execute_select(self):
        from devhub_mcp.oracle import OracleQueryRunner
        cursor = FakeCursor(["ID", "NAME"], [(1, "a"), (2, None)])
        connection = FakeConnection(cursor)
        calls = []

        def connect(**kwargs):
            calls.append(kwargs)
            return connection

        runner = OracleQueryRunner(_settings(), connect=connect)
        result = await runner.execute_select("SELECT id, name FROM t;")

        assert result.columns == ["ID", "NAME"]
        assert result.rows == [{"ID": 1, "NAME": "a"}, {"ID": 2, "NAME": None}]
        assert cursor.executed == ["SELECT id, name FROM t"]
        assert cursor.closed and connection.closed
        assert calls[0]["user"] == "scott"
        assert "db.example.com" in calls[0]["dsn"]
        assert "DEVGABIA" in calls[0]["dsn"]

    async def test_validation_happens_before_connecting(self):
        from devhub_mcp.oracle import OracleQueryRunner, QueryValidationError

        def connect(**kwargs):
            raise AssertionError("should not connect")

        runner = OracleQueryRunner(_settings(), connect=connect)
        with pytest.raises(QueryValidationError):
            await runner.execute_select("DROP TABLE t")

    async def test_missing_settings(self):
        from devhub_mcp.oracle import OracleQueryRunner
        from devhub_mcp.utils import ConfigurationError
        runner = OracleQueryRunner(_settings(host=None, password=None), connect=lambda **kw: None)
        with pytest.raises(ConfigurationError, match="ORACLE_HOST, ORACLE_PASSWORD"):
            await runner.execute_select("SELECT 1 FROM dual")

    async def test_test_connection(self):
        from devhub_mcp.oracle import OracleQueryRunner
        connection = FakeConnection(FakeCursor([], []))
        assert await OracleQueryRunner(_settings(), connect=lambda **kw: connection).test_connection() is True
        assert connection.closed

        def failing(**kwargs):
            raise oracledb.DatabaseError("ORA-12541: no listener")

        assert await OracleQueryRunner(_settings(), connect=failing).test_connection() is False


class TestOracleTools:
    """Tests for Oracle tool handlers."""

    async def test_rejects_non_select(self):
        from devhub_mcp.oracle_tools import call_tool
        from devhub_mcp.utils import ToolError
        with pytest.raises(ToolError, match="Only SELECT queries"):
            await call_tool("oracle_execute_select", {"query": "DELETE FROM t"})

    async def test_report_text(self, monkeypatch):
        from devhub_mcp import oracle_tools
        from devhub_mcp.oracle import OracleQueryRunner
        runner = OracleQueryRunner(_settings(), connect=lambda **kw: FakeConnection(FakeCursor(["X"], [("1",)])))
        monkeypatch.setattr(oracle_tools, "oracle_runner", runner)

        result = await oracle_tools.call_tool("oracle_execute_select", {"query": "SELECT x FROM t"})

        assert result[0].text.startswith("Query executed.\n\nColumns: X\nRows: 1\n\nResult:\n┌─┐")

    async def test_driver_error_is_wrapped(self, monkeypatch):
        from devhub_mcp import oracle_tools
        from devhub_mcp.oracle import OracleQueryRunner
        from devhub_mcp.utils import ToolError

        def failing(**kwargs):
            raise oracledb.DatabaseError("ORA-00942: table or view does not exist")

        monkeypatch.setattr(oracle_tools, "oracle_runner", OracleQueryRunner(_settings(), connect=failing))
        with pytest.raises(ToolError, match="ORA-00942"):
            await oracle_tools.call_tool("oracle_execute_select", {"query": "SELECT * FROM missing"})

    async def test_connection_failure_is_error(self, monkeypatch):
        from devhub_mcp import oracle_tools
        from devhub_mcp.oracle import OracleQueryRunner
        from devhub_mcp.utils import ToolError

        def failing(**kwargs):
            raise oracledb.DatabaseError("down")

        monkeypatch.setattr(oracle_tools, "oracle_runner", OracleQueryRunner(_settings(), connect=failing))
        with pytest.raises(ToolError, match="Oracle connection failed"):
            await oracle_tools.call_tool("oracle_test_connection", {})
