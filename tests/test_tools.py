"""
Tests for MCP tool listing, dispatch and the knowledge graph tools.
"""

import json

import pytest


class TestListTools:
    """Tests for list_tools."""

    async def test_all_tools_listed_once(self):
        from devhub_mcp.tools import list_tools
        tools = await list_tools()
        names = [t.name for t in tools]
        assert len(names) == len(set(names))
        for expected in (
            "get_merge_request",
            "list_issues",
            "delete_issue_link",
            "confluence_search",
            "get_figma_data",
            "download_figma_images",
            "mattermost_get_users",
            "oracle_execute_select",
            "create_entities",
            "open_nodes",
        ):
            assert expected in names

    async def test_memory_tool_count(self):
        from devhub_mcp.memory_tools import TOOLS
        assert len(TOOLS) == 9

    async def test_schemas_are_objects(self):
        from devhub_mcp.tools import list_tools
        for tool in await list_tools():
            assert tool.inputSchema["type"] == "object"
            for required in tool.inputSchema.get("required", []):
                assert required in tool.inputSchema["properties"]


class TestCallTool:
    """Tests for call_tool dispatch."""

    async def test_unknown_tool(self):
        from devhub_mcp.tools import call_tool
        result = await call_tool("no_such_tool", {})
        assert result[0].text == "Unknown tool: no_such_tool"

    async def test_errors_propagate(self, patched_memory_store):
        from devhub_mcp.tools import call_tool
        from devhub_mcp.utils import ToolError
        with pytest.raises(ToolError, match="Missing 'query'"):
            await call_tool("search_nodes", {"query": "   "})

    async def test_none_arguments(self, patched_memory_store):
        from devhub_mcp.tools import call_tool
        result = await call_tool("read_graph", None)
        assert json.loads(result[0].text) == {"entities": [], "relations": []}


class TestMemoryTools:
    """End-to-end tests for the knowledge graph tools."""

    async def test_create_and_read(self, patched_memory_store):
        from devhub_mcp.tools import call_tool
        result = await call_tool("create_entities", {"entities": [
            {"name": "Alice", "entityType": "person", "observations": ["likes tea"]},
            {"name": "Broken"},
            "junk",
        ]})
        assert json.loads(result[0].text) == [
            {"name": "Alice", "entityType": "person", "observations": ["likes tea"]}
        ]

        again = await call_tool("create_entities", {"entities": [
            {"name": "Alice", "entityType": "person", "observations": []}
        ]})
        assert json.loads(again[0].text) == []

        await call_tool("create_relations", {"relations": [
            {"from": "Alice", "to": "Bob", "relationType": "knows"},
            {"from": "Alice"},
        ]})
        graph = json.loads((await call_tool("read_graph", {}))[0].text)
        assert graph["relations"] == [{"from": "Alice", "to": "Bob", "relationType": "knows"}]

    async def test_add_observations_output(self, patched_memory_store):
        from devhub_mcp.tools import call_tool
        await call_tool("create_entities", {"entities": [
            {"name": "Alice", "entityType": "person", "observations": ["x"]}
        ]})
        result = await call_tool("add_observations", {"observations": [
            {"entityName": "Alice", "contents": ["x", "x", "y"]}
        ]})
        assert json.loads(result[0].text) == [{"entityName": "Alice", "addedObservations": ["y"]}]

    async def test_add_observations_unknown_entity(self, patched_memory_store):
        from devhub_mcp.memory import EntityNotFoundError
        from devhub_mcp.tools import call_tool
        with pytest.raises(EntityNotFoundError, match="Entity with name Ghost not found"):
            await call_tool("add_observations", {"observations": [{"entityName": "Ghost", "contents": ["x"]}]})

    async def test_delete_messages(self, patched_memory_store):
        from devhub_mcp.tools import call_tool
        await call_tool("create_entities", {"entities": [
            {"name": "A", "entityType": "t", "observations": ["o"]},
            {"name": "B", "entityType": "t", "observations": []},
        ]})
        await call_tool("create_relations", {"relations": [{"from": "A", "to": "B", "relationType": "r"}]})

        result = await call_tool("delete_observations", {"deletions": [{"entityName": "A", "observations": ["o"]}]})
        assert result[0].text == "Observations deleted successfully"

        result = await call_tool("delete_relations", {"relations": [{"from": "A", "to": "B", "relationType": "r"}]})
        assert result[0].text == "Relations deleted successfully"

        result = await call_tool("delete_entities", {"entityNames": ["A"]})
        assert result[0].text == "Entities deleted successfully"

        graph = await patched_memory_store.read_graph()
        assert [e.name for e in graph.entities] == ["B"]

    async def test_search_and_open_nodes(self, patched_memory_store):
        from devhub_mcp.tools import call_tool
        await call_tool("create_entities", {"entities": [
            {"name": "Alice", "entityType": "person", "observations": ["likes foo"]},
            {"name": "Bob", "entityType": "person", "observations": []},
        ]})
        await call_tool("create_relations", {"relations": [{"from": "Alice", "to": "Bob", "relationType": "knows"}]})

        found = json.loads((await call_tool("search_nodes", {"query": "FOO"}))[0].text)
        assert [e["name"] for e in found["entities"]] == ["Alice"]
        assert found["relations"] == []

        opened = json.loads((await call_tool("open_nodes", {"names": ["Alice", "Bob"]}))[0].text)
        assert len(opened["entities"]) == 2
        assert opened["relations"] == [{"from": "Alice", "to": "Bob", "relationType": "knows"}]

    async def test_missing_list_argument(self, patched_memory_store):
        from devhub_mcp.tools import call_tool
        from devhub_mcp.utils import ToolError
        with pytest.raises(ToolError, match="Missing 'entities'"):
            await call_tool("create_entities", {})


class TestResources:
    """Tests for the knowledge graph resource."""

    async def test_list_resources(self):
        from devhub_mcp.tools import list_resources
        resources = await list_resources()
        assert [r.name for r in resources] == ["Knowledge Graph"]
        assert str(resources[0].uri).startswith("memory://graph")

    async def test_read_graph_resource(self, patched_memory_store):
        from devhub_mcp.models import Entity
        from devhub_mcp.tools import read_resource
        await patched_memory_store.create_entities([Entity(name="A", entity_type="t")])
        data = json.loads(await read_resource("memory://graph"))
        assert data["entities"][0]["name"] == "A"

    async def test_unknown_resource(self):
        from devhub_mcp.tools import read_resource
        data = json.loads(await read_resource("memory://nope"))
        assert data == {"error": "Unknown resource: memory://nope"}
