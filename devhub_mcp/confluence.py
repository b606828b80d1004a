"""
Confluence REST client.

Contains CQL query helpers, the ConfluenceClient class and the functions that
flatten search results and pages into the shapes returned by the tools.
"""

from typing import Any

import httpx
import structlog

from .config import ConfluenceSettings, confluence_settings
from .http import ApiError, HttpClientFactory, raise_for_api_error, transient_retry
from .markup import to_display_markdown
from .utils import ConfigurationError, ToolError

logger = structlog.get_logger(__name__)

SERVICE = "Confluence"

EXPAND_WITH_METADATA = "body.export_view,body.storage,version,space,history"
EXPAND_BODY_ONLY = "body.export_view,body.storage"

# Substrings that mark a query as already being CQL
CQL_MARKERS = ("=", "~", ">", "<", " AND ", " OR ", "currentUser()")


# ============== Query Helpers ==============

def wrap_simple_query_to_cql(query: str) -> str:
    """Pass CQL through; wrap plain text as a siteSearch clause."""
    if any(marker in query for marker in CQL_MARKERS):
        return query
    term = query.replace('"', '\\"')
    return f'siteSearch ~ "{term}"'


def apply_spaces_filter(cql: str, spaces_filter: str | None) -> str:
    """Restrict a CQL query to a comma-separated list of space keys."""
    if not spaces_filter or not spaces_filter.strip():
        return cql
    keys = [k.strip() for k in spaces_filter.split(",") if k.strip()]
    if not keys:
        return cql
    clause = " OR ".join(f'space = "{key}"' for key in keys)
    return f"({clause}) AND ({cql})"


def effective_spaces_filter(argument: str | None, configured: str | None) -> str | None:
    """An absent argument falls back to configuration; an empty one disables filtering."""
    if argument is None:
        return configured
    if argument == "":
        return None
    return argument


# ============== Result Shaping ==============

def _nested(item: dict, *keys: str) -> Any:
    value: Any = item
    for key in keys:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


def build_page_url(base_url: str | None, space_key: str | None, page_id: str | None) -> str | None:
    if not base_url or not space_key or not page_id:
        return None
    return f"{base_url}/spaces/{space_key}/pages/{page_id}"


def simplify_search_results(payload: dict, base_url: str | None) -> list[dict]:
    """Flatten /rest/api/search results into id/title/spaceKey/url/excerpt records."""
    simplified = []
    for item in payload.get("results") or []:
        title = item.get("title") or _nested(item, "content", "title")
        content_id = item.get("id") or _nested(item, "content", "id") or _nested(item, "content", "_id")
        excerpt = item.get("excerpt") or _nested(item, "content", "excerpt")
        space_key = _nested(item, "space", "key") or _nested(item, "content", "space", "key")
        content_id = str(content_id) if content_id is not None else None
        simplified.append({
            "id": content_id,
            "title": title,
            "spaceKey": space_key,
            "url": build_page_url(base_url, space_key, content_id),
            "excerpt": excerpt,
        })
    return simplified


def simplify_page(page: dict, labels: list[str], convert_to_markdown: bool, base_url: str | None) -> dict:
    """Flatten a content object. The body prefers export_view and falls back to storage."""
    page_id = page.get("id")
    page_id = str(page_id) if page_id is not None else None
    space_key = _nested(page, "space", "key")
    html = _nested(page, "body", "export_view", "value") or _nested(page, "body", "storage", "value") or ""
    version = page.get("version") or {}
    history = page.get("history") or {}
    return {
        "id": page_id,
        "title": page.get("title"),
        "spaceKey": space_key,
        "url": build_page_url(base_url, space_key, page_id),
        "format": "markdown" if convert_to_markdown else "html",
        "body": to_display_markdown(html) if convert_to_markdown else html,
        "version": {
            "number": version.get("number"),
            "when": version.get("when"),
            "by": _nested(version, "by", "displayName"),
        },
        "labels": labels,
        "createdAt": history.get("createdDate"),
        "lastUpdatedAt": _nested(history, "lastUpdated", "when"),
    }


# ============== Client ==============

class ConfluenceClient:
    """Confluence REST API client.

    Authenticates with a bearer OAuth token when one is configured, otherwise
    with basic auth (username + API token).
    """

    def __init__(self, settings: ConfluenceSettings = confluence_settings, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        headers = {"Accept": "application/json"}
        auth = None
        if settings.oauth_access_token:
            headers["Authorization"] = f"Bearer {settings.oauth_access_token}"
        elif settings.username and settings.api_token:
            auth = (settings.username, settings.api_token)
        self._client = HttpClientFactory.client(
            base_url=settings.site_url, headers=headers, auth=auth, transport=transport
        )

    async def aclose(self):
        await self._client.aclose()

    @property
    def base_url(self) -> str:
        return self.settings.site_url

    def _require_config(self) -> None:
        if not self.settings.site_url:
            raise ConfigurationError("CONFLUENCE_BASE_URL is not set")

    @transient_retry()
    async def _get(self, path: str, params: dict | None = None) -> httpx.Response:
        self._require_config()
        r = await self._client.get(path, params=params)
        raise_for_api_error(r, SERVICE)
        return r

    async def _send(self, method: str, path: str, json: dict | None = None) -> httpx.Response:
        self._require_config()
        r = await self._client.request(method, path, json=json)
        raise_for_api_error(r, SERVICE)
        return r

    async def search(self, cql: str, limit: int = 10) -> dict:
        r = await self._get("/rest/api/search", params={"cql": cql, "limit": limit})
        return r.json()

    async def get_page_by_id(self, page_id: str, expand: str | None = None) -> dict:
        params = {"expand": expand} if expand else None
        r = await self._get(f"/rest/api/content/{page_id}", params=params)
        return r.json()

    async def get_page_by_title(self, space_key: str, title: str, expand: str | None = None) -> dict:
        params = {"spaceKey": space_key, "title": title}
        if expand:
            params["expand"] = expand
        r = await self._get("/rest/api/content", params=params)
        results = r.json().get("results") or []
        if not results:
            raise ToolError("Page not found by title and space_key")
        return results[0]

    async def get_labels(self, page_id: str) -> list[str]:
        r = await self._get(f"/rest/api/content/{page_id}/label")
        return [label["name"] for label in r.json().get("results") or [] if label.get("name")]

    async def get_page(
        self,
        page_id: str | None = None,
        title: str | None = None,
        space_key: str | None = None,
        include_metadata: bool = True,
        convert_to_markdown: bool = True,
    ) -> dict:
        """Fetch one page by id, or by title within a space, and simplify it.

        Label lookup failures are logged and yield an empty label list.
        """
        expand = EXPAND_WITH_METADATA if include_metadata else EXPAND_BODY_ONLY
        if page_id:
            page = await self.get_page_by_id(page_id, expand)
        elif title and space_key:
            page = await self.get_page_by_title(space_key, title, expand)
        else:
            raise ToolError("Either page_id or both title and space_key must be provided")

        labels: list[str] = []
        if include_metadata and page.get("id"):
            try:
                labels = await self.get_labels(str(page["id"]))
            except (ApiError, httpx.HTTPError) as e:
                logger.warning("confluence_labels_failed", page_id=page.get("id"), error=str(e))
        return simplify_page(page, labels, convert_to_markdown, self.base_url)

    async def create_page(
        self,
        space_key: str,
        title: str,
        body: str,
        representation: str = "storage",
        parent_id: str | None = None,
    ) -> dict:
        payload: dict[str, Any] = {
            "type": "page",
            "title": title,
            "space": {"key": space_key},
            "body": {representation: {"value": body, "representation": representation}},
        }
        if parent_id:
            payload["ancestors"] = [{"id": parent_id}]
        r = await self._send("POST", "/rest/api/content", json=payload)
        created = r.json()
        logger.info("confluence_page_created", space_key=space_key, page_id=created.get("id"))
        return created

    async def update_page(
        self,
        page_id: str,
        title: str,
        body: str,
        representation: str = "storage",
        minor_edit: bool = False,
        version_comment: str | None = None,
        parent_id: str | None = None,
    ) -> dict:
        """Replace a page body. Reads the current version first and sends version + 1."""
        current = await self.get_page_by_id(page_id, expand="version,ancestors")
        try:
            current_version = int(_nested(current, "version", "number") or 1)
        except (TypeError, ValueError):
            current_version = 1

        version: dict[str, Any] = {"number": current_version + 1, "minorEdit": minor_edit}
        if version_comment:
            version["message"] = version_comment
        payload: dict[str, Any] = {
            "id": page_id,
            "type": "page",
            "title": title,
            "body": {representation: {"value": body, "representation": representation}},
            "version": version,
        }
        if parent_id:
            payload["ancestors"] = [{"id": parent_id}]
        r = await self._send("PUT", f"/rest/api/content/{page_id}", json=payload)
        logger.info("confluence_page_updated", page_id=page_id, version=current_version + 1)
        return r.json()

    async def delete_page(self, page_id: str) -> bool:
        await self._send("DELETE", f"/rest/api/content/{page_id}")
        logger.info("confluence_page_deleted", page_id=page_id)
        return True

    async def add_comment(self, page_id: str, body: str, representation: str = "storage") -> dict:
        payload = {
            "type": "comment",
            "container": {"type": "page", "id": page_id},
            "body": {representation: {"value": body, "representation": representation}},
        }
        r = await self._send("POST", "/rest/api/content", json=payload)
        return r.json()


# Global client instance
confluence_client = ConfluenceClient()
