"""Derive a merge request's review status from its raw GitLab payloads.

Everything here is pure: the same detail, approvals and notes always give
the same result. ``None`` for approvals or notes means the payload could not
be fetched and is handled exactly like an empty payload.

Precedence, highest first: MERGED, REJECTED, APPROVED, COMMENTED, NEW.
"""

from datetime import datetime
from typing import NamedTuple

from ..gitlab_client.models import GitLabApprovals, GitLabMergeRequest, GitLabNote
from ..utils.date_parser import utcnow
from .models import MRStatus, Person


class StatusResolution(NamedTuple):
    """Derived status and the instant it was reached."""

    status: MRStatus
    status_updated_at: datetime


def _first_present(*candidates: datetime | None) -> datetime | None:
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None


def human_notes(notes: list[GitLabNote] | None) -> list[GitLabNote]:
    """Notes written by people, excluding automated system events."""
    return [note for note in notes or [] if not note.system]


def derive_status(
    detail: GitLabMergeRequest,
    approvals: GitLabApprovals | None,
    notes: list[GitLabNote] | None,
    now: datetime | None = None,
) -> StatusResolution:
    """Map the three payloads of one merge request to its status.

    Args:
        detail: Merge request resource (required)
        approvals: Approval state, or None if unavailable
        notes: Notes, or None if unavailable
        now: Last-resort timestamp when the payload carries none

    Returns:
        StatusResolution(status, status_updated_at)
    """
    if detail.state == "merged":
        status = MRStatus.MERGED
        changed_at = _first_present(
            detail.merged_at, detail.updated_at, detail.created_at
        )
    elif detail.state == "closed":
        status = MRStatus.REJECTED
        changed_at = _first_present(
            detail.closed_at, detail.updated_at, detail.created_at
        )
    elif approvals is not None and approvals.approved_by:
        status = MRStatus.APPROVED
        changed_at = _first_present(
            approvals.updated_at, detail.updated_at, detail.created_at
        )
    elif human_notes(notes):
        status = MRStatus.COMMENTED
        changed_at = _first_present(detail.updated_at, detail.created_at)
    else:
        status = MRStatus.NEW
        changed_at = detail.created_at

    if changed_at is None:
        changed_at = now or utcnow()

    return StatusResolution(status, changed_at)


def latest_activity_at(notes: list[GitLabNote] | None) -> datetime | None:
    """Creation time of the newest human note, or None without any."""
    timestamps = [note.created_at for note in human_notes(notes)]
    return max(timestamps) if timestamps else None


def extract_reviewers(notes: list[GitLabNote] | None) -> list[Person]:
    """Distinct human note authors in order of first appearance."""
    reviewers: dict[int, Person] = {}
    for note in human_notes(notes):
        if note.author.id not in reviewers:
            reviewers[note.author.id] = Person.from_gitlab(note.author)
    return list(reviewers.values())


def extract_approvers(approvals: GitLabApprovals | None) -> list[Person]:
    """Approving users in payload order, deduplicated by id."""
    if approvals is None:
        return []

    approvers: dict[int, Person] = {}
    for entry in approvals.approved_by:
        if entry.user.id not in approvers:
            approvers[entry.user.id] = Person.from_gitlab(entry.user)
    return list(approvers.values())
