"""
Tests for the Mattermost client and tools.
"""

import httpx
import pytest


def _client(handler, recorder, token="mm-token"):
    from devhub_mcp.config import MattermostSettings
    from devhub_mcp.mattermost import MattermostClient
    rec = recorder(handler)
    settings = MattermostSettings(api_url="https://chat.example.com/api/v4/", token=token)
    return MattermostClient(settings, transport=rec.transport), rec


class TestBuildSearchBody:
    """Tests for build_search_body."""

    def test_defaults(self):
        from devhub_mcp.mattermost import build_search_body
        assert build_search_body("deploy") == {
            "terms": "deploy",
            "is_or_search": False,
            "page": 0,
            "per_page": 20,
            "include_deleted_channels": False,
        }

    def test_time_zone_offset_included_when_set(self):
        from devhub_mcp.mattermost import build_search_body
        assert build_search_body("x", time_zone_offset=32400)["time_zone_offset"] == 32400


class TestMattermostClient:
    """Tests for MattermostClient against a mock transport."""

    async def test_search_posts_team_scoped(self, recorder):
        payload = {
            "order": ["p1"],
            "posts": {"p1": {"id": "p1", "message": "hello", "channel_id": "c1", "extra": 1}},
        }
        client, rec = _client(lambda request: httpx.Response(200, json=payload), recorder)
        from devhub_mcp.mattermost import build_search_body

        result = await client.search_posts(build_search_body("hello"), team_id="t1")

        assert rec.last.method == "POST"
        assert rec.last.url.path == "/api/v4/teams/t1/posts/search"
        assert rec.last_json()["terms"] == "hello"
        assert rec.last.headers["Authorization"] == "Bearer mm-token"
        assert result.posts["p1"].message == "hello"

    async def test_search_files_global(self, recorder):
        client, rec = _client(lambda request: httpx.Response(200, json={"order": [], "file_infos": {}}), recorder)
        from devhub_mcp.mattermost import build_search_body

        await client.search_files(build_search_body("report"))

        assert rec.last.url.path == "/api/v4/files/search"

    async def test_get_channels_paging(self, recorder):
        channels = [{"id": "c1", "name": "town-square", "display_name": "Town Square"}]
        client, rec = _client(lambda request: httpx.Response(200, json=channels), recorder)

        result = await client.get_channels("t1", page=2, per_page=50)

        assert rec.last.url.path == "/api/v4/teams/t1/channels"
        assert rec.last.url.params["page"] == "2"
        assert rec.last.url.params["per_page"] == "50"
        assert result[0].display_name == "Town Square"

    async def test_get_teams_uses_current_user(self, recorder):
        client, rec = _client(lambda request: httpx.Response(200, json=[]), recorder)
        await client.get_teams()
        assert rec.last.url.path == "/api/v4/users/me/teams"

    async def test_missing_token(self, recorder):
        from devhub_mcp.utils import ConfigurationError
        client, rec = _client(lambda request: httpx.Response(200, json=[]), recorder, token=None)
        with pytest.raises(ConfigurationError, match="MATTERMOST_TOKEN"):
            await client.get_users()
        assert rec.requests == []


class TestMattermostTools:
    """Tests for Mattermost tool handlers."""

    async def test_search_posts_arguments(self, recorder, monkeypatch):
        from devhub_mcp import mattermost_tools
        client, rec = _client(lambda request: httpx.Response(200, json={"order": [], "posts": {}}), recorder)
        monkeypatch.setattr(mattermost_tools, "mattermost_client", client)

        await mattermost_tools.call_tool(
            "mattermost_search_posts", {"terms": "incident", "is_or_search": True, "per_page": 5}
        )

        body = rec.last_json()
        assert rec.last.url.path == "/api/v4/posts/search"
        assert body["is_or_search"] is True
        assert body["per_page"] == 5
        assert body["page"] == 0
        assert "time_zone_offset" not in body

    async def test_get_channels_requires_team(self):
        from devhub_mcp.mattermost_tools import call_tool
        from devhub_mcp.utils import ToolError
        with pytest.raises(ToolError, match="team_id"):
            await call_tool("mattermost_get_channels", {})
