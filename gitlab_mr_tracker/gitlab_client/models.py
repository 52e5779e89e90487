"""Pydantic models for GitLab data structures.

These models map directly to GitLab's REST API v4 response structures.
Only the fields the tracker reads are declared; everything else in the
payload is ignored.
API Reference: https://docs.gitlab.com/ee/api/merge_requests.html
"""

from datetime import datetime

from pydantic import BaseModel, Field


class GitLabUser(BaseModel):
    """GitLab user model as embedded in MR, note and approval payloads.

    API Reference: https://docs.gitlab.com/ee/api/users.html
    """

    id: int = Field(..., description="Unique user identifier (integer)")
    username: str = Field(..., description="GitLab username/handle (string)")
    name: str = Field("", description="Display name (string)")
    avatar_url: str | None = Field(None, description="Avatar image URL (string)")


class GitLabMergeRequest(BaseModel):
    """GitLab merge request model.

    Used for both the single MR resource and the entries returned by the
    global merge request list.
    API Reference: https://docs.gitlab.com/ee/api/merge_requests.html
    """

    id: int = Field(..., description="Instance-wide MR identifier (integer)")
    iid: int = Field(..., description="MR number within its project (integer)")
    project_id: int = Field(..., description="Owning project identifier (integer)")
    title: str = Field(..., description="Title of the merge request (string)")
    state: str = Field(
        ..., description="Current state: 'opened', 'closed', 'merged', 'locked'"
    )
    web_url: str = Field(..., description="Browser URL of the merge request")
    created_at: datetime | None = Field(
        None, description="Timestamp of MR creation (ISO 8601)"
    )
    updated_at: datetime | None = Field(
        None, description="Timestamp of last MR update (ISO 8601)"
    )
    merged_at: datetime | None = Field(
        None, description="Timestamp the MR was merged, if merged (ISO 8601)"
    )
    closed_at: datetime | None = Field(
        None, description="Timestamp the MR was closed, if closed (ISO 8601)"
    )
    author: GitLabUser = Field(..., description="Author of the merge request")


class GitLabApprover(BaseModel):
    """Single entry of the ``approved_by`` list."""

    user: GitLabUser = Field(..., description="User who approved the MR")


class GitLabApprovals(BaseModel):
    """GitLab merge request approval state.

    API Reference: https://docs.gitlab.com/ee/api/merge_request_approvals.html
    """

    approved_by: list[GitLabApprover] = Field(
        default_factory=list, description="Users who approved, in payload order"
    )
    approvals_required: int | None = Field(
        None, description="Number of approvals required (integer)"
    )
    approvals_left: int | None = Field(
        None, description="Number of approvals still missing (integer)"
    )
    updated_at: datetime | None = Field(
        None, description="Timestamp of last approval state change (ISO 8601)"
    )


class GitLabNote(BaseModel):
    """GitLab note (discussion comment or system event).

    API Reference: https://docs.gitlab.com/ee/api/notes.html
    """

    id: int = Field(..., description="Unique note identifier (integer)")
    body: str = Field("", description="Markdown body of the note (string)")
    author: GitLabUser = Field(..., description="Note author")
    created_at: datetime = Field(..., description="Timestamp of note creation")
    system: bool = Field(
        False, description="True for automated system events, False for humans"
    )


class GitLabProject(BaseModel):
    """Subset of the GitLab project resource.

    API Reference: https://docs.gitlab.com/ee/api/projects.html
    """

    id: int = Field(..., description="Unique project identifier (integer)")
    path_with_namespace: str = Field(
        ..., description="Full project path, e.g. 'group/subgroup/project'"
    )
