"""
Pydantic models for DevHub MCP Server.

Contains the knowledge graph records and the simplified shapes returned for
GitLab, Mattermost and Oracle payloads. API models ignore unknown fields so
that tool output only carries what is declared here.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# ============== Knowledge Graph ==============

class Entity(BaseModel):
    """A named, typed node holding free-text observations."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    entity_type: str = Field(alias="entityType")
    observations: list[str] = Field(default_factory=list)


class Relation(BaseModel):
    """A directed, typed edge identified by (from, to, relationType)."""

    model_config = ConfigDict(populate_by_name=True)

    source: str = Field(alias="from")
    target: str = Field(alias="to")
    relation_type: str = Field(alias="relationType")

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.source, self.target, self.relation_type)


class KnowledgeGraph(BaseModel):
    """Entities plus relations, in insertion order."""

    entities: list[Entity] = Field(default_factory=list)
    relations: list[Relation] = Field(default_factory=list)


class ObservationAddition(BaseModel):
    """Observations actually appended to one entity."""

    model_config = ConfigDict(populate_by_name=True)

    entity_name: str = Field(alias="entityName")
    added_observations: list[str] = Field(alias="addedObservations")


# ============== GitLab ==============

class ApiModel(BaseModel):
    """Base for third-party payloads: unknown fields are dropped."""

    model_config = ConfigDict(extra="ignore")


class GitLabUser(ApiModel):
    id: int
    username: str
    name: str
    state: str | None = None
    avatar_url: str | None = None
    web_url: str | None = None


class DiffRefs(ApiModel):
    base_sha: str | None = None
    head_sha: str | None = None
    start_sha: str | None = None


class MergeRequest(ApiModel):
    id: int
    iid: int
    project_id: int
    title: str
    description: str | None = None
    state: str
    merged: bool | None = None
    draft: bool | None = None
    author: GitLabUser | None = None
    assignees: list[GitLabUser] | None = None
    reviewers: list[GitLabUser] | None = None
    merged_by: GitLabUser | None = None
    merge_user: GitLabUser | None = None
    closed_by: GitLabUser | None = None
    source_branch: str
    target_branch: str
    diff_refs: DiffRefs | None = None
    web_url: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    merged_at: str | None = None
    closed_at: str | None = None
    merge_commit_sha: str | None = None
    detailed_merge_status: str | None = None
    merge_status: str | None = None
    merge_error: str | None = None
    work_in_progress: bool | None = None
    blocking_discussions_resolved: bool | None = None
    should_remove_source_branch: bool | None = None
    force_remove_source_branch: bool | None = None
    allow_collaboration: bool | None = None
    allow_maintainer_to_push: bool | None = None
    changes_count: str | None = None
    merge_when_pipeline_succeeds: bool | None = None
    squash: bool | None = None
    labels: list[str] | None = None


class Diff(ApiModel):
    old_path: str
    new_path: str
    a_mode: str | None = None
    b_mode: str | None = None
    diff: str = ""
    new_file: bool = False
    renamed_file: bool = False
    deleted_file: bool = False


class DiffPosition(ApiModel):
    base_sha: str | None = None
    start_sha: str | None = None
    head_sha: str | None = None
    old_path: str | None = None
    new_path: str | None = None
    position_type: str | None = None
    old_line: int | None = None
    new_line: int | None = None


class DiscussionNote(ApiModel):
    id: int | str
    type: str | None = None
    body: str
    attachment: str | None = None
    author: GitLabUser | None = None
    created_at: str | None = None
    updated_at: str | None = None
    system: bool = False
    noteable_id: int | None = None
    noteable_type: str | None = None
    noteable_iid: int | None = None
    position: DiffPosition | None = None
    resolvable: bool = False
    resolved: bool | None = None
    resolved_by: GitLabUser | None = None
    resolved_at: str | None = None
    confidential: bool | None = None
    internal: bool | None = None


class Discussion(ApiModel):
    id: str
    individual_note: bool = False
    notes: list[DiscussionNote] = Field(default_factory=list)


class Pagination(BaseModel):
    page: int = 1
    per_page: int = 20
    total: int = 0
    total_pages: int = 0


class Issue(ApiModel):
    id: int
    iid: int
    project_id: int
    title: str
    description: str | None = None
    state: str
    created_at: str | None = None
    updated_at: str | None = None
    closed_at: str | None = None
    closed_by: GitLabUser | None = None
    labels: list[str] = Field(default_factory=list)
    milestone: dict[str, Any] | None = None
    assignees: list[GitLabUser] = Field(default_factory=list)
    author: GitLabUser | None = None
    web_url: str | None = None
    due_date: str | None = None
    confidential: bool = False
    discussion_locked: bool | None = None
    weight: int | None = None


class IssueLink(ApiModel):
    source_issue: Issue
    target_issue: Issue
    link_type: str


class Paginated(BaseModel):
    """A page of items plus the pagination headers that came with it."""

    items: list[Any]
    pagination: Pagination


# ============== Mattermost ==============

class MattermostPost(ApiModel):
    id: str = ""
    create_at: int = 0
    update_at: int = 0
    edit_at: int = 0
    delete_at: int = 0
    is_pinned: bool = False
    user_id: str = ""
    channel_id: str = ""
    root_id: str = ""
    original_id: str = ""
    message: str = ""
    type: str = ""
    props: dict[str, Any] | None = None
    hashtags: str = ""
    file_ids: list[str] = Field(default_factory=list)


class MattermostFileInfo(ApiModel):
    id: str = ""
    user_id: str = ""
    post_id: str = ""
    channel_id: str = ""
    create_at: int = 0
    update_at: int = 0
    delete_at: int = 0
    name: str = ""
    extension: str = ""
    size: int = 0
    mime_type: str = ""
    width: int = 0
    height: int = 0
    has_preview_image: bool = False


class PostSearchResult(ApiModel):
    order: list[str] = Field(default_factory=list)
    posts: dict[str, MattermostPost] = Field(default_factory=dict)
    next_post_id: str | None = None
    prev_post_id: str | None = None
    has_next: bool | None = None


class FileSearchResult(ApiModel):
    order: list[str] = Field(default_factory=list)
    file_infos: dict[str, MattermostFileInfo] = Field(default_factory=dict)
    next_file_info_id: str | None = None
    prev_file_info_id: str | None = None
    has_next: bool | None = None


class MattermostTeam(ApiModel):
    id: str = ""
    create_at: int = 0
    update_at: int = 0
    delete_at: int = 0
    display_name: str = ""
    name: str = ""
    description: str = ""
    email: str = ""
    type: str = ""
    allow_open_invite: bool = False


class MattermostChannel(ApiModel):
    id: str = ""
    create_at: int = 0
    update_at: int = 0
    delete_at: int = 0
    team_id: str = ""
    type: str = ""
    display_name: str = ""
    name: str = ""
    header: str = ""
    purpose: str = ""
    last_post_at: int = 0
    total_msg_count: int = 0
    creator_id: str = ""


class MattermostUser(ApiModel):
    id: str = ""
    create_at: int = 0
    update_at: int = 0
    delete_at: int = 0
    username: str = ""
    first_name: str = ""
    last_name: str = ""
    nickname: str = ""
    email: str = ""
    roles: str = ""
    locale: str = ""
    position: str = ""
    is_bot: bool = False


# ============== Oracle ==============

class QueryResult(BaseModel):
    """Rows returned by a SELECT, keyed by column label."""

    columns: list[str]
    rows: list[dict[str, Any]]

    @property
    def row_count(self) -> int:
        return len(self.rows)
