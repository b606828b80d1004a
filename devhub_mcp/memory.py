"""
Knowledge graph store for DevHub MCP Server.

Contains the KnowledgeGraphStore class: entities and relations persisted as
newline-delimited JSON, loaded and rewritten in full by every operation under
one asyncio lock.
"""

import asyncio
import json
from pathlib import Path

import aiofiles
import aiofiles.os
import structlog

from .config import memory_settings, resolve_memory_path
from .models import Entity, KnowledgeGraph, ObservationAddition, Relation

logger = structlog.get_logger(__name__)


class EntityNotFoundError(Exception):
    """Raised when an operation names an entity that is not in the graph."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Entity with name {name} not found")


def _entity_line(entity: Entity) -> str:
    return json.dumps({
        "type": "entity",
        "name": entity.name,
        "entityType": entity.entity_type,
        "observations": entity.observations,
    }, ensure_ascii=False)


def _relation_line(relation: Relation) -> str:
    return json.dumps({
        "type": "relation",
        "from": relation.source,
        "to": relation.target,
        "relationType": relation.relation_type,
    }, ensure_ascii=False)


def parse_graph(data: str | bytes) -> KnowledgeGraph:
    """Parse NDJSON into a graph. Blank, undecodable, malformed or unknown lines are skipped."""
    graph = KnowledgeGraph()
    for line in data.splitlines():
        if not line.strip():
            continue
        try:
            record = json.loads(line)
        except (UnicodeDecodeError, json.JSONDecodeError):
            continue
        if not isinstance(record, dict):
            continue
        kind = record.get("type")
        try:
            if kind == "entity":
                graph.entities.append(Entity(
                    name=record["name"],
                    entity_type=record["entityType"],
                    observations=record.get("observations") or [],
                ))
            elif kind == "relation":
                graph.relations.append(Relation(
                    source=record["from"],
                    target=record["to"],
                    relation_type=record["relationType"],
                ))
        except (KeyError, ValueError):
            continue
    return graph


def serialize_graph(graph: KnowledgeGraph) -> str:
    """Entities first, then relations, one JSON object per line."""
    lines = [_entity_line(e) for e in graph.entities]
    lines.extend(_relation_line(r) for r in graph.relations)
    return "\n".join(lines)


def _filtered(graph: KnowledgeGraph, entities: list[Entity]) -> KnowledgeGraph:
    names = {e.name for e in entities}
    relations = [r for r in graph.relations if r.source in names and r.target in names]
    return KnowledgeGraph(entities=entities, relations=relations)


class KnowledgeGraphStore:
    """Flat-file knowledge graph. Every operation is load, mutate, save under one lock.

    Reads take the same lock as writes. There is no cross-process locking.
    """

    def __init__(self, path: Path):
        self.path = path
        self._lock = asyncio.Lock()

    async def _load(self) -> KnowledgeGraph:
        try:
            async with aiofiles.open(self.path, mode="rb") as f:
                content = await f.read()
        except FileNotFoundError:
            return KnowledgeGraph()
        return parse_graph(content)

    async def _save(self, graph: KnowledgeGraph) -> None:
        await aiofiles.os.makedirs(self.path.parent, exist_ok=True)
        async with aiofiles.open(self.path, mode="w", encoding="utf-8") as f:
            await f.write(serialize_graph(graph))
        logger.debug(
            "graph_saved",
            path=str(self.path),
            entities=len(graph.entities),
            relations=len(graph.relations),
        )

    # ============== Mutations ==============

    async def create_entities(self, entities: list[Entity]) -> list[Entity]:
        """Append entities whose name is new. Returns only the appended ones."""
        async with self._lock:
            graph = await self._load()
            existing = {e.name for e in graph.entities}
            created: list[Entity] = []
            for entity in entities:
                if entity.name in existing:
                    continue
                existing.add(entity.name)
                created.append(entity)
            graph.entities.extend(created)
            await self._save(graph)
        logger.info("entities_created", requested=len(entities), created=len(created))
        return created

    async def create_relations(self, relations: list[Relation]) -> list[Relation]:
        """Append relations whose (from, to, relationType) triple is new.

        Endpoints are not checked against existing entities.
        """
        async with self._lock:
            graph = await self._load()
            existing = {r.key for r in graph.relations}
            created: list[Relation] = []
            for relation in relations:
                if relation.key in existing:
                    continue
                existing.add(relation.key)
                created.append(relation)
            graph.relations.extend(created)
            await self._save(graph)
        logger.info("relations_created", requested=len(relations), created=len(created))
        return created

    async def add_observations(self, additions: list[tuple[str, list[str]]]) -> list[ObservationAddition]:
        """Append new observation strings to existing entities.

        All-or-nothing: every entity name is checked before anything is
        changed, so a missing name raises EntityNotFoundError and leaves the
        stored graph untouched.
        """
        async with self._lock:
            graph = await self._load()
            by_name = {e.name: e for e in graph.entities}
            for entity_name, _ in additions:
                if entity_name not in by_name:
                    raise EntityNotFoundError(entity_name)

            results: list[ObservationAddition] = []
            for entity_name, contents in additions:
                entity = by_name[entity_name]
                present = set(entity.observations)
                added: list[str] = []
                for content in contents:
                    if content in present:
                        continue
                    present.add(content)
                    added.append(content)
                entity.observations.extend(added)
                results.append(ObservationAddition(entity_name=entity_name, added_observations=added))
            await self._save(graph)
        return results

    async def delete_entities(self, names: list[str]) -> None:
        """Remove entities by name and every relation touching them."""
        doomed = set(names)
        async with self._lock:
            graph = await self._load()
            graph.entities = [e for e in graph.entities if e.name not in doomed]
            graph.relations = [
                r for r in graph.relations if r.source not in doomed and r.target not in doomed
            ]
            await self._save(graph)
        logger.info("entities_deleted", names=len(doomed))

    async def delete_observations(self, deletions: list[tuple[str, list[str]]]) -> None:
        """Remove observation strings. Unknown entities are ignored."""
        async with self._lock:
            graph = await self._load()
            by_name = {e.name: e for e in graph.entities}
            for entity_name, observations in deletions:
                entity = by_name.get(entity_name)
                if entity is None:
                    continue
                drop = set(observations)
                entity.observations = [o for o in entity.observations if o not in drop]
            await self._save(graph)

    async def delete_relations(self, relations: list[Relation]) -> None:
        """Remove relations matching an exact triple."""
        doomed = {r.key for r in relations}
        async with self._lock:
            graph = await self._load()
            graph.relations = [r for r in graph.relations if r.key not in doomed]
            await self._save(graph)

    # ============== Queries ==============

    async def read_graph(self) -> KnowledgeGraph:
        async with self._lock:
            return await self._load()

    async def search_nodes(self, query: str) -> KnowledgeGraph:
        """Case-insensitive substring match on name, type or any observation."""
        needle = query.lower()
        async with self._lock:
            graph = await self._load()
        matched = [
            e for e in graph.entities
            if needle in e.name.lower()
            or needle in e.entity_type.lower()
            or any(needle in o.lower() for o in e.observations)
        ]
        return _filtered(graph, matched)

    async def open_nodes(self, names: list[str]) -> KnowledgeGraph:
        wanted = set(names)
        async with self._lock:
            graph = await self._load()
        return _filtered(graph, [e for e in graph.entities if e.name in wanted])


# Global store instance
memory_store = KnowledgeGraphStore(resolve_memory_path(memory_settings.file_path))
