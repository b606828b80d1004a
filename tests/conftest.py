"""
Pytest configuration and fixtures for devhub-mcp tests.
"""

import json
from pathlib import Path

import httpx
import pytest


@pytest.fixture
def graph_file(tmp_path: Path) -> Path:
    """Path of a knowledge graph file that does not exist yet."""
    return tmp_path / "data" / "memory.json"


@pytest.fixture
def seeded_graph_file(tmp_path: Path) -> Path:
    """A knowledge graph file with three entities and two relations."""
    path = tmp_path / "memory.json"
    lines = [
        {"type": "entity", "name": "Alice", "entityType": "person", "observations": ["likes foo", "works remotely"]},
        {"type": "entity", "name": "Bob", "entityType": "person", "observations": ["speaks French"]},
        {"type": "entity", "name": "FooCorp", "entityType": "company", "observations": []},
        {"type": "relation", "from": "Alice", "to": "FooCorp", "relationType": "works_at"},
        {"type": "relation", "from": "Bob", "to": "Alice", "relationType": "knows"},
    ]
    path.write_text("\n".join(json.dumps(line) for line in lines), encoding="utf-8")
    return path


@pytest.fixture
def store(graph_file):
    """A KnowledgeGraphStore over an empty temp file."""
    from devhub_mcp.memory import KnowledgeGraphStore
    return KnowledgeGraphStore(graph_file)


@pytest.fixture
def seeded_store(seeded_graph_file):
    from devhub_mcp.memory import KnowledgeGraphStore
    return KnowledgeGraphStore(seeded_graph_file)


@pytest.fixture
def patched_memory_store(store, monkeypatch):
    """Patch the global memory_store used by the tool layer."""
    from devhub_mcp import memory_tools, tools

    monkeypatch.setattr(memory_tools, "memory_store", store)
    monkeypatch.setattr(tools, "memory_store", store)
    return store


class RecordingTransport:
    """Route requests to a handler and keep every request for assertions."""

    def __init__(self, handler):
        self.handler = handler
        self.requests: list[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self):
        return json.loads(self.last.content)


@pytest.fixture
def recorder():
    """Factory for RecordingTransport instances."""
    return RecordingTransport
