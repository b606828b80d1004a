"""
GitLab MCP tools.

Contains the Tool definitions and handlers for merge requests, issues, issue
discussions and issue links.
"""

from typing import Any

from mcp.types import TextContent, Tool

from .gitlab import gitlab_client
from .utils import (
    ToolError,
    arg_bool,
    arg_int,
    arg_int_list,
    arg_str,
    arg_str_list,
    require,
    text_result,
)

PROJECT_ID = {"type": "string", "description": "Project ID or URL-encoded path"}
MERGE_REQUEST_ID = {"type": "string", "description": "The IID of a merge request"}
SOURCE_BRANCH = {"type": "string", "description": "Source branch name"}
ISSUE_IID = {"type": "string", "description": "The internal ID of a project issue"}
PAGE = {"type": "integer", "description": "Page number for pagination (default: 1)"}
PER_PAGE = {"type": "integer", "description": "Number of items per page (max: 100, default: 20)"}
STRING_ARRAY = {"type": "array", "items": {"type": "string"}}
NUMBER_ARRAY = {"type": "array", "items": {"type": "integer"}}
ISSUE_TYPES = ["issue", "incident", "test_case", "task"]

# list_merge_requests filters: name -> kind
MERGE_REQUEST_FILTERS = {
    "assignee_id": "str",
    "assignee_username": "str",
    "author_id": "str",
    "author_username": "str",
    "reviewer_id": "str",
    "reviewer_username": "str",
    "created_after": "str",
    "created_before": "str",
    "updated_after": "str",
    "updated_before": "str",
    "labels": "list",
    "milestone": "str",
    "scope": "str",
    "search": "str",
    "state": "str",
    "wip": "str",
    "with_merge_status_recheck": "bool",
    "order_by": "str",
    "sort": "str",
    "view": "str",
    "my_reaction_emoji": "str",
    "source_branch": "str",
    "target_branch": "str",
    "page": "int",
    "per_page": "int",
}

ISSUE_FILTERS = {
    "assignee_id": "str",
    "assignee_username": "list",
    "author_id": "str",
    "author_username": "str",
    "confidential": "bool",
    "created_after": "str",
    "created_before": "str",
    "due_date": "str",
    "labels": "list",
    "milestone": "str",
    "issue_type": "str",
    "iteration_id": "str",
    "scope": "str",
    "search": "str",
    "state": "str",
    "updated_after": "str",
    "updated_before": "str",
    "weight": "int",
    "my_reaction_emoji": "str",
    "order_by": "str",
    "sort": "str",
    "with_labels_details": "bool",
    "page": "int",
    "per_page": "int",
}

MY_ISSUE_FILTERS = (
    "state", "labels", "milestone", "search", "created_after", "created_before",
    "updated_after", "updated_before", "per_page", "page",
)


def collect_options(arguments: dict[str, Any], filters: dict[str, str]) -> dict[str, Any]:
    """Pick the known filter arguments, coerced to their declared kind."""
    options: dict[str, Any] = {}
    for key, kind in filters.items():
        if kind == "list":
            value = arg_str_list(arguments, key)
        elif kind == "bool":
            value = arg_bool(arguments, key)
        elif kind == "int":
            value = arg_int(arguments, key)
        else:
            value = arg_str(arguments, key)
        if value is not None:
            options[key] = value
    return options


def _joined(values: list[str] | None) -> str | None:
    return ",".join(values) if values is not None else None


TOOLS: list[Tool] = [
    # ============== Merge Requests ==============
    Tool(
        name="get_merge_request",
        description="Get details of a merge request. Either merge_request_id or source_branch must be provided.",
        inputSchema={
            "type": "object",
            "properties": {
                "project_id": PROJECT_ID,
                "merge_request_id": MERGE_REQUEST_ID,
                "source_branch": SOURCE_BRANCH,
            },
            "required": ["project_id"]
        }
    ),
    Tool(
        name="get_merge_request_diffs",
        description="Get the changes/diffs of a merge request. Either merge_request_id or source_branch must be provided.",
        inputSchema={
            "type": "object",
            "properties": {
                "project_id": PROJECT_ID,
                "merge_request_id": MERGE_REQUEST_ID,
                "source_branch": SOURCE_BRANCH,
                "view": {
                    "type": "string",
                    "description": "Diff view type",
                    "enum": ["inline", "parallel"]
                }
            },
            "required": ["project_id"]
        }
    ),
    Tool(
        name="mr_discussions",
        description="List discussion items for a merge request.",
        inputSchema={
            "type": "object",
            "properties": {
                "project_id": PROJECT_ID,
                "merge_request_id": MERGE_REQUEST_ID,
                "page": PAGE,
                "per_page": PER_PAGE,
            },
            "required": ["project_id", "merge_request_id"]
        }
    ),
    Tool(
        name="create_merge_request",
        description="Create a new merge request in a GitLab project.",
        inputSchema={
            "type": "object",
            "properties": {
                "project_id": PROJECT_ID,
                "title": {"type": "string", "description": "Merge request title"},
                "description": {"type": "string", "description": "Merge request description"},
                "source_branch": {"type": "string", "description": "Branch containing changes"},
                "target_branch": {"type": "string", "description": "Branch to merge into"},
                "target_project_id": {"type": "integer", "description": "Numeric ID of the target project"},
                "assignee_ids": {**NUMBER_ARRAY, "description": "IDs of the users to assign the MR to"},
                "reviewer_ids": {**NUMBER_ARRAY, "description": "IDs of the users to request review from"},
                "labels": {**STRING_ARRAY, "description": "Labels for the MR"},
                "draft": {"type": "boolean", "description": "Create as a draft merge request"},
                "allow_collaboration": {"type": "boolean", "description": "Allow commits from members who can merge to the target branch"},
                "remove_source_branch": {"type": "boolean", "description": "Remove the source branch when merging"},
                "squash": {"type": "boolean", "description": "Squash commits into a single commit when merging"},
            },
            "required": ["project_id", "title", "source_branch", "target_branch"]
        }
    ),
    Tool(
        name="list_merge_requests",
        description="List merge requests in a GitLab project with filtering options.",
        inputSchema={
            "type": "object",
            "properties": {
                "project_id": PROJECT_ID,
                "assignee_id": {"type": "string", "description": "User ID, or None/Any"},
                "assignee_username": {"type": "string", "description": "Username of the assignee"},
                "author_id": {"type": "string", "description": "User ID of the author"},
                "author_username": {"type": "string", "description": "Username of the author"},
                "reviewer_id": {"type": "string", "description": "User ID of the reviewer, or None/Any"},
                "reviewer_username": {"type": "string", "description": "Username of the reviewer"},
                "created_after": {"type": "string", "description": "ISO 8601 timestamp"},
                "created_before": {"type": "string", "description": "ISO 8601 timestamp"},
                "updated_after": {"type": "string", "description": "ISO 8601 timestamp"},
                "updated_before": {"type": "string", "description": "ISO 8601 timestamp"},
                "labels": {**STRING_ARRAY, "description": "Labels the MRs must have"},
                "milestone": {"type": "string", "description": "Milestone title"},
                "scope": {"type": "string", "enum": ["created_by_me", "assigned_to_me", "all"]},
                "search": {"type": "string", "description": "Search in title and description"},
                "state": {"type": "string", "enum": ["opened", "closed", "locked", "merged", "all"]},
                "wip": {"type": "string", "enum": ["yes", "no"]},
                "with_merge_status_recheck": {"type": "boolean"},
                "order_by": {"type": "string", "enum": ["created_at", "updated_at", "title"]},
                "sort": {"type": "string", "enum": ["asc", "desc"]},
                "view": {"type": "string", "enum": ["simple"]},
                "my_reaction_emoji": {"type": "string"},
                "source_branch": {"type": "string"},
                "target_branch": {"type": "string"},
                "page": PAGE,
                "per_page": PER_PAGE,
            },
            "required": ["project_id"]
        }
    ),
    # ============== Issues ==============
    Tool(
        name="create_issue",
        description="Create a new issue in a GitLab project.",
        inputSchema={
            "type": "object",
            "properties": {
                "project_id": PROJECT_ID,
                "title": {"type": "string", "description": "Issue title"},
                "description": {"type": "string", "description": "Issue description"},
                "assignee_ids": NUMBER_ARRAY,
                "milestone_id": {"type": "string"},
                "labels": STRING_ARRAY,
                "issue_type": {"type": "string", "enum": ISSUE_TYPES},
            },
            "required": ["project_id", "title"]
        }
    ),
    Tool(
        name="list_issues",
        description="List issues in a project, or across all accessible projects when project_id is omitted.",
        inputSchema={
            "type": "object",
            "properties": {
                "project_id": PROJECT_ID,
                "assignee_id": {"type": "string"},
                "assignee_username": STRING_ARRAY,
                "author_id": {"type": "string"},
                "author_username": {"type": "string"},
                "confidential": {"type": "boolean"},
                "created_after": {"type": "string"},
                "created_before": {"type": "string"},
                "due_date": {"type": "string"},
                "labels": STRING_ARRAY,
                "milestone": {"type": "string"},
                "issue_type": {"type": "string"},
                "iteration_id": {"type": "string"},
                "scope": {"type": "string", "enum": ["created_by_me", "assigned_to_me", "all"]},
                "search": {"type": "string"},
                "state": {"type": "string", "enum": ["opened", "closed", "all"]},
                "updated_after": {"type": "string"},
                "updated_before": {"type": "string"},
                "weight": {"type": "integer"},
                "my_reaction_emoji": {"type": "string"},
                "order_by": {
                    "type": "string",
                    "enum": [
                        "created_at", "updated_at", "priority", "due_date", "relative_position",
                        "label_priority", "milestone_due", "popularity", "weight",
                    ]
                },
                "sort": {"type": "string", "enum": ["asc", "desc"]},
                "with_labels_details": {"type": "boolean"},
                "page": PAGE,
                "per_page": PER_PAGE,
            },
        }
    ),
    Tool(
        name="get_issue",
        description="Get details of a single issue.",
        inputSchema={
            "type": "object",
            "properties": {"project_id": PROJECT_ID, "issue_iid": ISSUE_IID},
            "required": ["project_id", "issue_iid"]
        }
    ),
    Tool(
        name="update_issue",
        description="Update an issue. Only the provided fields are changed.",
        inputSchema={
            "type": "object",
            "properties": {
                "project_id": PROJECT_ID,
                "issue_iid": ISSUE_IID,
                "title": {"type": "string"},
                "description": {"type": "string"},
                "assignee_ids": NUMBER_ARRAY,
                "confidential": {"type": "boolean"},
                "discussion_locked": {"type": "boolean"},
                "due_date": {"type": "string", "description": "YYYY-MM-DD"},
                "labels": STRING_ARRAY,
                "milestone_id": {"type": "string"},
                "state_event": {"type": "string", "enum": ["close", "reopen"]},
                "weight": {"type": "integer"},
                "issue_type": {"type": "string", "enum": ISSUE_TYPES},
            },
            "required": ["project_id", "issue_iid"]
        }
    ),
    Tool(
        name="delete_issue",
        description="Delete an issue.",
        inputSchema={
            "type": "object",
            "properties": {"project_id": PROJECT_ID, "issue_iid": ISSUE_IID},
            "required": ["project_id", "issue_iid"]
        }
    ),
    Tool(
        name="my_issues",
        description="List issues assigned to the authenticated user (defaults to open issues).",
        inputSchema={
            "type": "object",
            "properties": {
                "project_id": PROJECT_ID,
                "state": {"type": "string", "enum": ["opened", "closed", "all"]},
                "labels": STRING_ARRAY,
                "milestone": {"type": "string"},
                "search": {"type": "string"},
                "created_after": {"type": "string"},
                "created_before": {"type": "string"},
                "updated_after": {"type": "string"},
                "updated_before": {"type": "string"},
                "per_page": PER_PAGE,
                "page": PAGE,
            },
        }
    ),
    Tool(
        name="list_issue_discussions",
        description="List discussions on an issue.",
        inputSchema={
            "type": "object",
            "properties": {"project_id": PROJECT_ID, "issue_iid": ISSUE_IID, "page": PAGE, "per_page": PER_PAGE},
            "required": ["project_id", "issue_iid"]
        }
    ),
    Tool(
        name="create_issue_note",
        description="Add a new note to an existing issue thread.",
        inputSchema={
            "type": "object",
            "properties": {
                "project_id": PROJECT_ID,
                "issue_iid": ISSUE_IID,
                "discussion_id": {"type": "string"},
                "body": {"type": "string"},
                "created_at": {"type": "string", "description": "ISO 8601 timestamp (admin or project owner only)"},
            },
            "required": ["project_id", "issue_iid", "discussion_id", "body"]
        }
    ),
    Tool(
        name="update_issue_note",
        description="Modify an existing note in an issue thread.",
        inputSchema={
            "type": "object",
            "properties": {
                "project_id": PROJECT_ID,
                "issue_iid": ISSUE_IID,
                "discussion_id": {"type": "string"},
                "note_id": {"type": "string"},
                "body": {"type": "string"},
            },
            "required": ["project_id", "issue_iid", "discussion_id", "note_id", "body"]
        }
    ),
    # ============== Issue Links ==============
    Tool(
        name="list_issue_links",
        description="List the issues linked to an issue.",
        inputSchema={
            "type": "object",
            "properties": {"project_id": PROJECT_ID, "issue_iid": ISSUE_IID},
            "required": ["project_id", "issue_iid"]
        }
    ),
    Tool(
        name="get_issue_link",
        description="Get a single issue link.",
        inputSchema={
            "type": "object",
            "properties": {"project_id": PROJECT_ID, "issue_iid": ISSUE_IID, "issue_link_id": {"type": "string"}},
            "required": ["project_id", "issue_iid", "issue_link_id"]
        }
    ),
    Tool(
        name="create_issue_link",
        description="Link two issues.",
        inputSchema={
            "type": "object",
            "properties": {
                "project_id": PROJECT_ID,
                "issue_iid": ISSUE_IID,
                "target_project_id": {"type": "string"},
                "target_issue_iid": {"type": "string"},
                "link_type": {"type": "string", "enum": ["relates_to", "blocks", "is_blocked_by"]},
            },
            "required": ["project_id", "issue_iid", "target_project_id", "target_issue_iid"]
        }
    ),
    Tool(
        name="delete_issue_link",
        description="Remove a link between two issues.",
        inputSchema={
            "type": "object",
            "properties": {"project_id": PROJECT_ID, "issue_iid": ISSUE_IID, "issue_link_id": {"type": "string"}},
            "required": ["project_id", "issue_iid", "issue_link_id"]
        }
    ),
]


async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent] | None:
    """Handle a GitLab tool call. Returns None when the name is not a GitLab tool."""
    if name in ("get_merge_request", "get_merge_request_diffs"):
        (project_id,) = require(arguments, "project_id")
        merge_request_id = arg_str(arguments, "merge_request_id")
        source_branch = arg_str(arguments, "source_branch")
        if merge_request_id is None and source_branch is None:
            raise ToolError("Either merge_request_id or source_branch must be provided")
        if name == "get_merge_request":
            result = await gitlab_client.get_merge_request(project_id, merge_request_id, source_branch)
        else:
            result = await gitlab_client.get_merge_request_diffs(
                project_id, merge_request_id, source_branch, arg_str(arguments, "view")
            )
        return text_result(result)

    elif name == "mr_discussions":
        project_id, merge_request_id = require(arguments, "project_id", "merge_request_id")
        result = await gitlab_client.list_merge_request_discussions(
            project_id, merge_request_id, arg_int(arguments, "page"), arg_int(arguments, "per_page")
        )
        return text_result(result)

    elif name == "create_merge_request":
        project_id, title, source_branch, target_branch = require(
            arguments, "project_id", "title", "source_branch", "target_branch"
        )
        payload = {
            "title": title,
            "description": arg_str(arguments, "description"),
            "source_branch": source_branch,
            "target_branch": target_branch,
            "target_project_id": arg_int(arguments, "target_project_id"),
            "assignee_ids": arg_int_list(arguments, "assignee_ids"),
            "reviewer_ids": arg_int_list(arguments, "reviewer_ids"),
            "labels": _joined(arg_str_list(arguments, "labels")),
            "draft": arg_bool(arguments, "draft"),
            "allow_collaboration": arg_bool(arguments, "allow_collaboration"),
            "remove_source_branch": arg_bool(arguments, "remove_source_branch"),
            "squash": arg_bool(arguments, "squash"),
        }
        return text_result(await gitlab_client.create_merge_request(project_id, payload))

    elif name == "list_merge_requests":
        (project_id,) = require(arguments, "project_id")
        options = collect_options(arguments, MERGE_REQUEST_FILTERS)
        return text_result(await gitlab_client.list_merge_requests(project_id, options))

    elif name == "create_issue":
        project_id, title = require(arguments, "project_id", "title")
        payload = {
            "title": title,
            "description": arg_str(arguments, "description"),
            "assignee_ids": arg_int_list(arguments, "assignee_ids"),
            "milestone_id": arg_str(arguments, "milestone_id"),
            "labels": _joined(arg_str_list(arguments, "labels")),
            "issue_type": arg_str(arguments, "issue_type"),
        }
        return text_result(await gitlab_client.create_issue(project_id, payload))

    elif name == "list_issues":
        options = collect_options(arguments, ISSUE_FILTERS)
        return text_result(await gitlab_client.list_issues(arg_str(arguments, "project_id"), options))

    elif name == "my_issues":
        options = collect_options(arguments, {k: ISSUE_FILTERS[k] for k in MY_ISSUE_FILTERS})
        options["scope"] = "assigned_to_me"
        return text_result(await gitlab_client.list_issues(arg_str(arguments, "project_id"), options))

    elif name == "get_issue":
        project_id, issue_iid = require(arguments, "project_id", "issue_iid")
        return text_result(await gitlab_client.get_issue(project_id, issue_iid))

    elif name == "update_issue":
        project_id, issue_iid = require(arguments, "project_id", "issue_iid")
        payload = {
            "title": arg_str(arguments, "title"),
            "description": arg_str(arguments, "description"),
            "assignee_ids": arg_int_list(arguments, "assignee_ids"),
            "confidential": arg_bool(arguments, "confidential"),
            "discussion_locked": arg_bool(arguments, "discussion_locked"),
            "due_date": arg_str(arguments, "due_date"),
            "labels": _joined(arg_str_list(arguments, "labels")),
            "milestone_id": arg_str(arguments, "milestone_id"),
            "state_event": arg_str(arguments, "state_event"),
            "weight": arg_int(arguments, "weight"),
            "issue_type": arg_str(arguments, "issue_type"),
        }
        return text_result(await gitlab_client.update_issue(project_id, issue_iid, payload))

    elif name == "delete_issue":
        project_id, issue_iid = require(arguments, "project_id", "issue_iid")
        await gitlab_client.delete_issue(project_id, issue_iid)
        return text_result({"message": "Issue deleted successfully"})

    elif name == "list_issue_discussions":
        project_id, issue_iid = require(arguments, "project_id", "issue_iid")
        result = await gitlab_client.list_issue_discussions(
            project_id, issue_iid, arg_int(arguments, "page"), arg_int(arguments, "per_page")
        )
        return text_result(result)

    elif name == "create_issue_note":
        project_id, issue_iid, discussion_id, body = require(
            arguments, "project_id", "issue_iid", "discussion_id", "body"
        )
        note = await gitlab_client.create_issue_note(
            project_id, issue_iid, discussion_id, body, arg_str(arguments, "created_at")
        )
        return text_result(note)

    elif name == "update_issue_note":
        project_id, issue_iid, discussion_id, note_id, body = require(
            arguments, "project_id", "issue_iid", "discussion_id", "note_id", "body"
        )
        note = await gitlab_client.update_issue_note(project_id, issue_iid, discussion_id, note_id, body)
        return text_result(note)

    elif name == "list_issue_links":
        project_id, issue_iid = require(arguments, "project_id", "issue_iid")
        return text_result(await gitlab_client.list_issue_links(project_id, issue_iid))

    elif name == "get_issue_link":
        project_id, issue_iid, link_id = require(arguments, "project_id", "issue_iid", "issue_link_id")
        return text_result(await gitlab_client.get_issue_link(project_id, issue_iid, link_id))

    elif name == "create_issue_link":
        project_id, issue_iid, target_project_id, target_issue_iid = require(
            arguments, "project_id", "issue_iid", "target_project_id", "target_issue_iid"
        )
        link = await gitlab_client.create_issue_link(
            project_id, issue_iid, target_project_id, target_issue_iid, arg_str(arguments, "link_type")
        )
        return text_result(link)

    elif name == "delete_issue_link":
        project_id, issue_iid, link_id = require(arguments, "project_id", "issue_iid", "issue_link_id")
        await gitlab_client.delete_issue_link(project_id, issue_iid, link_id)
        return text_result({"message": "Issue link deleted successfully"})

    return None
