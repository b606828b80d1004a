"""
Tests for the GitLab client and tools.
"""

import httpx
import pytest

MR = {
    "id": 101,
    "iid": 7,
    "project_id": 3,
    "title": "Add feature",
    "state": "opened",
    "source_branch": "feature/x",
    "target_branch": "main",
    "author": {"id": 1, "username": "dev", "name": "Dev"},
    "unknown_field": "dropped",
}

ISSUE = {
    "id": 201,
    "iid": 12,
    "project_id": 3,
    "title": "Bug",
    "state": "opened",
    "labels": ["bug"],
}


def _client(handler, recorder, token="secret"):
    from devhub_mcp.config import GitLabSettings
    from devhub_mcp.gitlab import GitLabClient
    rec = recorder(handler)
    settings = GitLabSettings(api_url="https://gitlab.example.com/api/v4", token=token)
    return GitLabClient(settings, transport=rec.transport), rec


class TestHelpers:
    """Tests for project id encoding and pagination headers."""

    def test_encode_project_id(self):
        from devhub_mcp.gitlab import encode_project_id
        assert encode_project_id("group/repo") == "group%2Frepo"
        assert encode_project_id("group%2Frepo") == "group%2Frepo"
        assert encode_project_id("42") == "42"

    def test_parse_pagination_defaults(self):
        from devhub_mcp.gitlab import parse_pagination
        response = httpx.Response(200, headers={"x-page": "2", "x-total": "bogus"})
        pagination = parse_pagination(response)
        assert pagination.page == 2
        assert pagination.per_page == 20
        assert pagination.total == 0
        assert pagination.total_pages == 0


class TestGitLabClient:
    """Tests for GitLabClient against a mock transport."""

    async def test_get_merge_request_by_iid(self, recorder):
        client, rec = _client(lambda request: httpx.Response(200, json=MR), recorder)
        mr = await client.get_merge_request("group/repo", "7")
        assert mr.iid == 7
        assert rec.last.url.raw_path == b"/api/v4/projects/group%2Frepo/merge_requests/7"
        assert rec.last.headers["Authorization"] == "Bearer secret"

    async def test_get_merge_request_by_branch_takes_first(self, recorder):
        second = {**MR, "iid": 8}
        client, rec = _client(lambda request: httpx.Response(200, json=[MR, second]), recorder)
        mr = await client.get_merge_request("3", source_branch="feature/x")
        assert mr.iid == 7
        assert rec.last.url.params["source_branch"] == "feature/x"

    async def test_get_merge_request_by_branch_not_found(self, recorder):
        from devhub_mcp.utils import ToolError
        client, _ = _client(lambda request: httpx.Response(200, json=[]), recorder)
        with pytest.raises(ToolError, match="No merge request found"):
            await client.get_merge_request("3", source_branch="nope")

    async def test_diffs_resolve_iid_from_branch(self, recorder):
        def handler(request):
            if request.url.path.endswith("/changes"):
                return httpx.Response(200, json={"changes": [{"old_path": "a.py", "new_path": "a.py", "diff": "@@"}]})
            return httpx.Response(200, json=[MR])

        client, rec = _client(handler, recorder)
        diffs = await client.get_merge_request_diffs("3", source_branch="feature/x", view="inline")
        assert [d.new_path for d in diffs] == ["a.py"]
        assert rec.last.url.path == "/api/v4/projects/3/merge_requests/7/changes"
        assert rec.last.url.params["view"] == "inline"

    async def test_list_merge_requests_joins_labels(self, recorder):
        client, rec = _client(
            lambda request: httpx.Response(200, json=[MR], headers={"x-page": "1", "x-total": "1"}),
            recorder,
        )
        result = await client.list_merge_requests("3", {"labels": ["a", "b"], "with_merge_status_recheck": True})
        assert rec.last.url.params["labels"] == "a,b"
        assert rec.last.url.params["with_merge_status_recheck"] == "true"
        assert result.pagination.total == 1
        assert result.items[0].title == "Add feature"

    async def test_list_issues_sends_array_params(self, recorder):
        client, rec = _client(lambda request: httpx.Response(200, json=[ISSUE]), recorder)
        await client.list_issues(None, {"labels": ["bug", "ui"], "state": "opened"})
        assert rec.last.url.path == "/api/v4/issues"
        assert rec.last.url.params.get_list("labels[]") == ["bug", "ui"]
        assert rec.last.url.params["state"] == "opened"

    async def test_update_issue_drops_unset_fields(self, recorder):
        client, rec = _client(lambda request: httpx.Response(200, json=ISSUE), recorder)
        await client.update_issue("3", "12", {"title": "New", "description": None, "state_event": "close"})
        assert rec.last.method == "PUT"
        assert rec.last_json() == {"title": "New", "state_event": "close"}

    async def test_create_issue_link_payload(self, recorder):
        link = {"source_issue": ISSUE, "target_issue": {**ISSUE, "iid": 13}, "link_type": "blocks"}
        client, rec = _client(lambda request: httpx.Response(201, json=link), recorder)
        result = await client.create_issue_link("3", "12", "3", "13", "blocks")
        assert result.target_issue.iid == 13
        assert rec.last_json() == {"target_project_id": "3", "target_issue_iid": "13", "link_type": "blocks"}

    async def test_api_error_carries_status_and_body(self, recorder):
        from devhub_mcp.http import ApiError
        client, _ = _client(lambda request: httpx.Response(404, text='{"message":"404 Not found"}'), recorder)
        with pytest.raises(ApiError) as exc_info:
            await client.get_issue("3", "99")
        assert exc_info.value.status_code == 404
        assert str(exc_info.value) == 'GitLab API error: 404 Not Found\n{"message":"404 Not found"}'

    async def test_missing_token(self, recorder):
        from devhub_mcp.utils import ConfigurationError
        client, rec = _client(lambda request: httpx.Response(200, json=ISSUE), recorder, token=None)
        with pytest.raises(ConfigurationError, match="GITLAB_TOKEN"):
            await client.get_issue("3", "12")
        assert rec.requests == []


class TestGitLabTools:
    """Tests for GitLab tool argument handling."""

    async def test_merge_request_requires_id_or_branch(self):
        from devhub_mcp.gitlab_tools import call_tool
        from devhub_mcp.utils import ToolError
        with pytest.raises(ToolError, match="Either merge_request_id or source_branch"):
            await call_tool("get_merge_request", {"project_id": "3"})

    async def test_missing_project_id(self):
        from devhub_mcp.gitlab_tools import call_tool
        from devhub_mcp.utils import ToolError
        with pytest.raises(ToolError, match="project_id"):
            await call_tool("get_issue", {"issue_iid": "1"})

    async def test_my_issues_forces_scope(self, recorder, monkeypatch):
        from devhub_mcp import gitlab_tools
        client, rec = _client(lambda request: httpx.Response(200, json=[ISSUE]), recorder)
        monkeypatch.setattr(gitlab_tools, "gitlab_client", client)

        result = await gitlab_tools.call_tool("my_issues", {"state": "opened", "scope": "all", "per_page": 5})

        params = rec.last.url.params
        assert params["scope"] == "assigned_to_me"
        assert params["state"] == "opened"
        assert params["per_page"] == "5"
        assert '"iid": 12' in result[0].text

    async def test_delete_issue_message(self, recorder, monkeypatch):
        from devhub_mcp import gitlab_tools
        client, rec = _client(lambda request: httpx.Response(204), recorder)
        monkeypatch.setattr(gitlab_tools, "gitlab_client", client)

        result = await gitlab_tools.call_tool("delete_issue", {"project_id": "g/r", "issue_iid": "12"})

        assert rec.last.method == "DELETE"
        assert result[0].text == '{"message": "Issue deleted successfully"}'

    async def test_list_issues_collects_known_filters(self):
        from devhub_mcp.gitlab_tools import ISSUE_FILTERS, collect_options
        options = collect_options(
            {"labels": ["a"], "confidential": "true", "weight": 3, "bogus": "x", "state": None},
            ISSUE_FILTERS,
        )
        assert options == {"labels": ["a"], "confidential": True, "weight": 3}

    async def test_unknown_name_returns_none(self):
        from devhub_mcp.gitlab_tools import call_tool
        assert await call_tool("not_a_gitlab_tool", {}) is None
