"""Pydantic models for tracked merge requests."""

from datetime import date, datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

from ..gitlab_client.models import GitLabUser
from ..utils.date_parser import relative_date_to_absolute, truncate_to_date


class MRStatus(str, Enum):
    """Review status of a tracked merge request."""

    NEW = "new"
    COMMENTED = "commented"
    APPROVED = "approved"
    REJECTED = "rejected"
    MERGED = "merged"


TERMINAL_STATUSES = frozenset({MRStatus.MERGED, MRStatus.REJECTED})


class Person(BaseModel):
    """Author, reviewer or approver of a merge request."""

    id: int = Field(..., description="GitLab user identifier")
    username: str = Field(..., description="GitLab handle without leading @")
    name: str = Field("", description="Display name")
    avatar_url: str = Field("", description="Avatar image URL, empty if unknown")

    @classmethod
    def from_gitlab(cls, user: GitLabUser) -> "Person":
        return cls(
            id=user.id,
            username=user.username,
            name=user.name,
            avatar_url=user.avatar_url or "",
        )


class TrackedMergeRequest(BaseModel):
    """A merge request under observation, as stored and displayed."""

    id: str = Field(
        ..., description="Identity key: {host}/{project_path}/-/merge_requests/{iid}"
    )
    url: str = Field(..., description="Browser URL of the merge request")
    project_id: int = Field(..., description="GitLab project identifier")
    iid: int = Field(..., description="MR number within the project")
    title: str = Field(..., description="MR title")
    repository: str = Field(..., description="Project path with namespace")
    status: MRStatus = Field(..., description="Derived review status")
    status_updated_at: datetime = Field(
        ..., description="When the current status was reached"
    )
    author: Person = Field(..., description="MR author")
    reviewers: list[Person] = Field(
        default_factory=list, description="Distinct human note authors"
    )
    approvers: list[Person] = Field(
        default_factory=list, description="Users who approved the MR"
    )
    created_at: datetime = Field(..., description="MR creation time")
    last_fetched_at: datetime = Field(..., description="Time of the last fetch")
    latest_comment_at: datetime | None = Field(
        None, description="Creation time of the newest human note"
    )


class TrackingFilter(BaseModel):
    """Inclusion rules applied when discovering merge requests by author."""

    fetch_time_value: int = Field(2, gt=0, description="Size of the time window")
    fetch_time_unit: Literal["days", "weeks"] = Field(
        "weeks", description="Unit of the time window"
    )
    include_closed: bool = Field(
        False, description="Whether closed (rejected) MRs are kept"
    )

    def cutoff(self, now: datetime | None = None) -> datetime:
        """Absolute instant at the start of the time window."""
        return relative_date_to_absolute(
            self.fetch_time_value, self.fetch_time_unit, now
        )

    def created_after(self, now: datetime | None = None) -> date:
        """Inclusive lower bound on creation date, truncated to the day."""
        return truncate_to_date(self.cutoff(now))
