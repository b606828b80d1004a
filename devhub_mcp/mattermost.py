"""
Mattermost REST client.

Contains the MattermostClient class for post/file search and team, channel
and user listing.
"""

import httpx

from .config import MattermostSettings, mattermost_settings
from .http import HttpClientFactory, raise_for_api_error, transient_retry
from .models import (
    FileSearchResult,
    MattermostChannel,
    MattermostTeam,
    MattermostUser,
    PostSearchResult,
)
from .utils import ConfigurationError

SERVICE = "Mattermost"


def build_search_body(
    terms: str,
    is_or_search: bool = False,
    page: int = 0,
    per_page: int = 20,
    include_deleted_channels: bool = False,
    time_zone_offset: int | None = None,
) -> dict:
    body = {
        "terms": terms,
        "is_or_search": is_or_search,
        "page": page,
        "per_page": per_page,
        "include_deleted_channels": include_deleted_channels,
    }
    if time_zone_offset is not None:
        body["time_zone_offset"] = time_zone_offset
    return body


class MattermostClient:
    """Mattermost API v4 client authenticated with a personal access token."""

    def __init__(self, settings: MattermostSettings = mattermost_settings, transport: httpx.AsyncBaseTransport | None = None):
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
            raise ConfigurationError("MATTERMOST_TOKEN is not set")

    @transient_retry()
    async def _get(self, path: str, page: int, per_page: int) -> list:
        self._require_token()
        r = await self._client.get(path, params={"page": page, "per_page": per_page})
        raise_for_api_error(r, SERVICE)
        return r.json()

    async def _post(self, path: str, body: dict) -> dict:
        self._require_token()
        r = await self._client.post(path, json=body)
        raise_for_api_error(r, SERVICE)
        return r.json()

    async def search_posts(self, search: dict, team_id: str | None = None) -> PostSearchResult:
        """Search posts in one team, or across all teams when team_id is None."""
        path = f"/teams/{team_id}/posts/search" if team_id else "/posts/search"
        return PostSearchResult.model_validate(await self._post(path, search))

    async def search_files(self, search: dict, team_id: str | None = None) -> FileSearchResult:
        path = f"/teams/{team_id}/files/search" if team_id else "/files/search"
        return FileSearchResult.model_validate(await self._post(path, search))

    async def get_teams(self, page: int = 0, per_page: int = 20) -> list[MattermostTeam]:
        """Teams the authenticated user belongs to."""
        data = await self._get("/users/me/teams", page, per_page)
        return [MattermostTeam.model_validate(t) for t in data]

    async def get_channels(self, team_id: str, page: int = 0, per_page: int = 20) -> list[MattermostChannel]:
        data = await self._get(f"/teams/{team_id}/channels", page, per_page)
        return [MattermostChannel.model_validate(c) for c in data]

    async def get_users(self, page: int = 0, per_page: int = 20) -> list[MattermostUser]:
        data = await self._get("/users", page, per_page)
        return [MattermostUser.model_validate(u) for u in data]


# Global client instance
mattermost_client = MattermostClient()
