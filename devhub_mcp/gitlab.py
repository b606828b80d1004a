"""
GitLab REST client.

Contains the GitLabClient class covering merge requests, issues, issue
discussions/notes and issue links.
"""

from typing import Any
from urllib.parse import quote, unquote

import httpx
import structlog

from .config import GitLabSettings, gitlab_settings
from .http import HttpClientFactory, raise_for_api_error, transient_retry
from .models import (
    Diff,
    Discussion,
    DiscussionNote,
    Issue,
    IssueLink,
    MergeRequest,
    Paginated,
    Pagination,
)
from .utils import ConfigurationError, ToolError

logger = structlog.get_logger(__name__)

SERVICE = "GitLab"


def encode_project_id(project_id: str) -> str:
    """Decode then fully re-encode a project id or path (`group/repo` -> `group%2Frepo`)."""
    return quote(unquote(str(project_id)), safe="")


def _header_int(response: httpx.Response, name: str, default: int) -> int:
    try:
        return int(response.headers.get(name, ""))
    except ValueError:
        return default


def parse_pagination(response: httpx.Response) -> Pagination:
    return Pagination(
        page=_header_int(response, "x-page", 1),
        per_page=_header_int(response, "x-per-page", 20),
        total=_header_int(response, "x-total", 0),
        total_pages=_header_int(response, "x-total-pages", 0),
    )


def _drop_none(payload: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in payload.items() if v is not None}


class GitLabClient:
    """GitLab REST API v4 client authenticated with a bearer token."""

    def __init__(self, settings: GitLabSettings = gitlab_settings, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        headers = {"Accept": "application/json"}
        if settings.token:
            headers["Authorization"] = f"Bearer {settings.token}"
        self._client = HttpClientFactory.client(
            base_url=settings.api_url.rstrip("/"), headers=headers, transport=transport
        )

    async def aclose(self):
        await self._client.aclose()

    def _require_token(self) -> None:
        if not self.settings.token:
            raise ConfigurationError("GITLAB_TOKEN is not set")

    @staticmethod
    def _project(project_id: str) -> str:
        return f"/projects/{encode_project_id(project_id)}"

    @transient_retry()
    async def _get(self, path: str, params: Any = None) -> httpx.Response:
        self._require_token()
        r = await self._client.get(path, params=params)
        raise_for_api_error(r, SERVICE)
        return r

    async def _send(self, method: str, path: str, json: dict | None = None) -> httpx.Response:
        self._require_token()
        r = await self._client.request(method, path, json=json)
        raise_for_api_error(r, SERVICE)
        return r

    # ============== Merge Requests ==============

    async def get_merge_request(
        self, project_id: str, merge_request_iid: str | None = None, source_branch: str | None = None
    ) -> MergeRequest:
        """Fetch a merge request by IID, or the first one whose source branch matches."""
        base = f"{self._project(project_id)}/merge_requests"
        if merge_request_iid is not None:
            r = await self._get(f"{base}/{merge_request_iid}")
        elif source_branch is not None:
            r = await self._get(base, params={"source_branch": source_branch})
        else:
            raise ToolError("Either merge_request_id or source_branch must be provided")

        data = r.json()
        if isinstance(data, list):
            if not data:
                raise ToolError(f"No merge request found for source branch {source_branch}")
            data = data[0]
        return MergeRequest.model_validate(data)

    async def get_merge_request_diffs(
        self,
        project_id: str,
        merge_request_iid: str | None = None,
        source_branch: str | None = None,
        view: str | None = None,
    ) -> list[Diff]:
        if merge_request_iid is None:
            if source_branch is None:
                raise ToolError("Either merge_request_id or source_branch must be provided")
            merge_request = await self.get_merge_request(project_id, source_branch=source_branch)
            merge_request_iid = str(merge_request.iid)

        params = {"view": view} if view else None
        r = await self._get(f"{self._project(project_id)}/merge_requests/{merge_request_iid}/changes", params=params)
        return [Diff.model_validate(d) for d in r.json().get("changes") or []]

    async def list_merge_request_discussions(
        self, project_id: str, merge_request_iid: str, page: int | None = None, per_page: int | None = None
    ) -> Paginated:
        r = await self._get(
            f"{self._project(project_id)}/merge_requests/{merge_request_iid}/discussions",
            params=_drop_none({"page": page, "per_page": per_page}),
        )
        items = [Discussion.model_validate(d) for d in r.json()]
        return Paginated(items=items, pagination=parse_pagination(r))

    async def list_merge_requests(self, project_id: str, options: dict[str, Any]) -> Paginated:
        """List merge requests. List-valued options (labels) are comma-joined."""
        params = {}
        for key, value in _drop_none(options).items():
            if isinstance(value, list):
                value = ",".join(str(v) for v in value)
            elif isinstance(value, bool):
                value = "true" if value else "false"
            params[key] = value
        r = await self._get(f"{self._project(project_id)}/merge_requests", params=params)
        items = [MergeRequest.model_validate(mr) for mr in r.json()]
        return Paginated(items=items, pagination=parse_pagination(r))

    async def create_merge_request(self, project_id: str, payload: dict[str, Any]) -> MergeRequest:
        r = await self._send("POST", f"{self._project(project_id)}/merge_requests", json=_drop_none(payload))
        merge_request = MergeRequest.model_validate(r.json())
        logger.info("merge_request_created", project_id=project_id, iid=merge_request.iid)
        return merge_request

    # ============== Issues ==============

    async def create_issue(self, project_id: str, payload: dict[str, Any]) -> Issue:
        r = await self._send("POST", f"{self._project(project_id)}/issues", json=_drop_none(payload))
        issue = Issue.model_validate(r.json())
        logger.info("issue_created", project_id=project_id, iid=issue.iid)
        return issue

    async def list_issues(self, project_id: str | None, options: dict[str, Any]) -> Paginated:
        """List issues for a project, or across all visible projects when project_id is None.

        List-valued options are sent as repeated `key[]` parameters.
        """
        params: list[tuple[str, str]] = []
        for key, value in _drop_none(options).items():
            if isinstance(value, list):
                params.extend((f"{key}[]", str(v)) for v in value if v is not None)
            elif isinstance(value, bool):
                params.append((key, "true" if value else "false"))
            else:
                params.append((key, str(value)))
        path = f"{self._project(project_id)}/issues" if project_id else "/issues"
        r = await self._get(path, params=params)
        items = [Issue.model_validate(i) for i in r.json()]
        return Paginated(items=items, pagination=parse_pagination(r))

    async def get_issue(self, project_id: str, issue_iid: str) -> Issue:
        r = await self._get(f"{self._project(project_id)}/issues/{issue_iid}")
        return Issue.model_validate(r.json())

    async def update_issue(self, project_id: str, issue_iid: str, payload: dict[str, Any]) -> Issue:
        r = await self._send("PUT", f"{self._project(project_id)}/issues/{issue_iid}", json=_drop_none(payload))
        return Issue.model_validate(r.json())

    async def delete_issue(self, project_id: str, issue_iid: str) -> None:
        await self._send("DELETE", f"{self._project(project_id)}/issues/{issue_iid}")
        logger.info("issue_deleted", project_id=project_id, iid=issue_iid)

    async def list_issue_discussions(
        self, project_id: str, issue_iid: str, page: int | None = None, per_page: int | None = None
    ) -> Paginated:
        r = await self._get(
            f"{self._project(project_id)}/issues/{issue_iid}/discussions",
            params=_drop_none({"page": page, "per_page": per_page}),
        )
        items = [Discussion.model_validate(d) for d in r.json()]
        return Paginated(items=items, pagination=parse_pagination(r))

    async def create_issue_note(
        self, project_id: str, issue_iid: str, discussion_id: str, body: str, created_at: str | None = None
    ) -> DiscussionNote:
        r = await self._send(
            "POST",
            f"{self._project(project_id)}/issues/{issue_iid}/discussions/{discussion_id}/notes",
            json=_drop_none({"body": body, "created_at": created_at}),
        )
        return DiscussionNote.model_validate(r.json())

    async def update_issue_note(
        self, project_id: str, issue_iid: str, discussion_id: str, note_id: str, body: str
    ) -> DiscussionNote:
        r = await self._send(
            "PUT",
            f"{self._project(project_id)}/issues/{issue_iid}/discussions/{discussion_id}/notes/{note_id}",
            json={"body": body},
        )
        return DiscussionNote.model_validate(r.json())

    # ============== Issue Links ==============

    async def list_issue_links(self, project_id: str, issue_iid: str) -> list[IssueLink]:
        r = await self._get(f"{self._project(project_id)}/issues/{issue_iid}/links")
        return [IssueLink.model_validate(link) for link in r.json()]

    async def get_issue_link(self, project_id: str, issue_iid: str, issue_link_id: str) -> IssueLink:
        r = await self._get(f"{self._project(project_id)}/issues/{issue_iid}/links/{issue_link_id}")
        return IssueLink.model_validate(r.json())

    async def create_issue_link(
        self,
        project_id: str,
        issue_iid: str,
        target_project_id: str,
        target_issue_iid: str,
        link_type: str | None = None,
    ) -> IssueLink:
        payload = {
            "target_project_id": target_project_id,
            "target_issue_iid": target_issue_iid,
            "link_type": link_type,
        }
        r = await self._send("POST", f"{self._project(project_id)}/issues/{issue_iid}/links", json=_drop_none(payload))
        return IssueLink.model_validate(r.json())

    async def delete_issue_link(self, project_id: str, issue_iid: str, issue_link_id: str) -> None:
        await self._send("DELETE", f"{self._project(project_id)}/issues/{issue_iid}/links/{issue_link_id}")


# Global client instance
gitlab_client = GitLabClient()
