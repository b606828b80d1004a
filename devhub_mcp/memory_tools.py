"""
Knowledge graph MCP tools.

Thin handlers over the KnowledgeGraphStore. Malformed items in list
arguments are skipped rather than failing the whole call.
"""

from typing import Any

from mcp.types import TextContent, Tool

from .memory import memory_store
from .models import Entity, Relation
from .utils import ToolError, arg_str, text_result

STRING_ARRAY = {"type": "array", "items": {"type": "string"}}

RELATION_ITEM = {
    "type": "object",
    "properties": {
        "from": {"type": "string", "description": "The name of the entity where the relation starts"},
        "to": {"type": "string", "description": "The name of the entity where the relation ends"},
        "relationType": {"type": "string", "description": "The type of the relation"}
    },
    "required": ["from", "to", "relationType"]
}

TOOLS: list[Tool] = [
    Tool(
        name="create_entities",
        description="Create multiple new entities in the knowledge graph",
        inputSchema={
            "type": "object",
            "properties": {
                "entities": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "name": {"type": "string", "description": "The name of the entity"},
                            "entityType": {"type": "string", "description": "The type of the entity"},
                            "observations": {
                                **STRING_ARRAY,
                                "description": "An array of observation contents associated with the entity"
                            }
                        },
                        "required": ["name", "entityType", "observations"]
                    }
                }
            },
            "required": ["entities"]
        }
    ),
    Tool(
        name="create_relations",
        description="Create multiple new relations between entities in the knowledge graph. Relations should be in active voice",
        inputSchema={
            "type": "object",
            "properties": {
                "relations": {"type": "array", "items": RELATION_ITEM}
            },
            "required": ["relations"]
        }
    ),
    Tool(
        name="add_observations",
        description="Add new observations to existing entities in the knowledge graph",
        inputSchema={
            "type": "object",
            "properties": {
                "observations": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "entityName": {
                                "type": "string",
                                "description": "The name of the entity to add the observations to"
                            },
                            "contents": {**STRING_ARRAY, "description": "An array of observation contents to add"}
                        },
                        "required": ["entityName", "contents"]
                    }
                }
            },
            "required": ["observations"]
        }
    ),
    Tool(
        name="delete_entities",
        description="Delete multiple entities and their associated relations from the knowledge graph",
        inputSchema={
            "type": "object",
            "properties": {
                "entityNames": {**STRING_ARRAY, "description": "An array of entity names to delete"}
            },
            "required": ["entityNames"]
        }
    ),
    Tool(
        name="delete_observations",
        description="Delete specific observations from entities in the knowledge graph",
        inputSchema={
            "type": "object",
            "properties": {
                "deletions": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "entityName": {
                                "type": "string",
                                "description": "The name of the entity containing the observations"
                            },
                            "observations": {**STRING_ARRAY, "description": "An array of observations to delete"}
                        },
                        "required": ["entityName", "observations"]
                    }
                }
            },
            "required": ["deletions"]
        }
    ),
    Tool(
        name="delete_relations",
        description="Delete multiple relations from the knowledge graph",
        inputSchema={
            "type": "object",
            "properties": {
                "relations": {"type": "array", "items": RELATION_ITEM}
            },
            "required": ["relations"]
        }
    ),
    Tool(
        name="read_graph",
        description="Read the entire knowledge graph",
        inputSchema={
            "type": "object",
            "properties": {}
        }
    ),
    Tool(
        name="search_nodes",
        description="Search for nodes in the knowledge graph based on a query",
        inputSchema={
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "The search query to match against entity names, types, and observation content"
                }
            },
            "required": ["query"]
        }
    ),
    Tool(
        name="open_nodes",
        description="Open specific nodes in the knowledge graph by their names",
        inputSchema={
            "type": "object",
            "properties": {
                "names": {**STRING_ARRAY, "description": "An array of entity names to retrieve"}
            },
            "required": ["names"]
        }
    ),
]


# ============== Argument Parsing ==============

def _items(arguments: dict[str, Any], key: str) -> list[dict]:
    value = arguments.get(key)
    if not isinstance(value, list):
        raise ToolError(f"Missing '{key}'")
    return [item for item in value if isinstance(item, dict)]


def _strings(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str)]


def parse_entities(arguments: dict[str, Any]) -> list[Entity]:
    entities = []
    for item in _items(arguments, "entities"):
        name = item.get("name")
        entity_type = item.get("entityType")
        if not isinstance(name, str) or not isinstance(entity_type, str):
            continue
        entities.append(Entity(name=name, entity_type=entity_type, observations=_strings(item.get("observations"))))
    return entities


def parse_relations(arguments: dict[str, Any]) -> list[Relation]:
    relations = []
    for item in _items(arguments, "relations"):
        source, target, relation_type = item.get("from"), item.get("to"), item.get("relationType")
        if not all(isinstance(v, str) for v in (source, target, relation_type)):
            continue
        relations.append(Relation(source=source, target=target, relation_type=relation_type))
    return relations


def parse_observation_lists(arguments: dict[str, Any], key: str, values_key: str) -> list[tuple[str, list[str]]]:
    """(entityName, strings) pairs from an array of objects."""
    pairs = []
    for item in _items(arguments, key):
        entity_name = item.get("entityName")
        if not isinstance(entity_name, str):
            continue
        pairs.append((entity_name, _strings(item.get(values_key))))
    return pairs


def parse_names(arguments: dict[str, Any], key: str) -> list[str]:
    value = arguments.get(key)
    if not isinstance(value, list):
        raise ToolError(f"Missing '{key}'")
    return _strings(value)


# ============== Dispatch ==============

async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent] | None:
    """Handle a knowledge graph tool call."""
    if name == "create_entities":
        created = await memory_store.create_entities(parse_entities(arguments))
        return text_result(created)

    elif name == "create_relations":
        created = await memory_store.create_relations(parse_relations(arguments))
        return text_result(created)

    elif name == "add_observations":
        additions = parse_observation_lists(arguments, "observations", "contents")
        return text_result(await memory_store.add_observations(additions))

    elif name == "delete_entities":
        await memory_store.delete_entities(parse_names(arguments, "entityNames"))
        return text_result("Entities deleted successfully")

    elif name == "delete_observations":
        deletions = parse_observation_lists(arguments, "deletions", "observations")
        await memory_store.delete_observations(deletions)
        return text_result("Observations deleted successfully")

    elif name == "delete_relations":
        await memory_store.delete_relations(parse_relations(arguments))
        return text_result("Relations deleted successfully")

    elif name == "read_graph":
        return text_result(await memory_store.read_graph())

    elif name == "search_nodes":
        query = arg_str(arguments, "query")
        if query is None or not query.strip():
            raise ToolError("Missing 'query'")
        return text_result(await memory_store.search_nodes(query))

    elif name == "open_nodes":
        return text_result(await memory_store.open_nodes(parse_names(arguments, "names")))

    return None
