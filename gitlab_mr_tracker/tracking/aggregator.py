"""Assemble tracked merge requests from concurrent GitLab sub-fetches."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import TypeVar

from ..errors import ParseError, RemoteError
from ..gitlab_client.client import GitLabClient
from ..gitlab_client.models import GitLabApprovals, GitLabMergeRequest, GitLabNote
from ..gitlab_client.urls import (
    build_identity,
    parse_identity,
    parse_mr_url,
    project_path_from_web_url,
)
from ..utils.date_parser import utcnow
from .models import MRStatus, Person, TrackedMergeRequest, TrackingFilter
from .status import (
    derive_status,
    extract_approvers,
    extract_reviewers,
    latest_activity_at,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_CONCURRENCY = 10


class MergeRequestAggregator:
    """Builds TrackedMergeRequest entities from the GitLab API.

    Detail is required for every merge request. Approvals and notes are
    best effort: when either fetch fails the failure is logged and the
    payload is treated as absent.
    """

    def __init__(
        self,
        client: GitLabClient,
        clock: Callable[[], datetime] = utcnow,
        concurrency: int = DEFAULT_CONCURRENCY,
    ):
        """Initialize aggregator.

        Args:
            client: GitLab API client
            clock: Returns the current time; replaced in tests
            concurrency: Maximum merge requests aggregated at once per batch
        """
        self.client = client
        self.clock = clock
        self.concurrency = concurrency

    async def _best_effort(
        self, label: str, fetch: Awaitable[T], project_path: str, iid: int
    ) -> T | None:
        try:
            return await fetch
        except Exception as e:
            logger.warning(
                "Could not fetch %s for %s!%s, treating as empty: %s",
                label,
                project_path,
                iid,
                e,
            )
            return None

    async def aggregate_one(
        self, project_path: str, iid: int, host: str | None = None
    ) -> TrackedMergeRequest:
        """Fetch and assemble a single merge request.

        Detail, approvals and notes are requested concurrently and the status
        is derived once all three have settled.

        Args:
            project_path: Project path with namespace
            iid: Merge request number within the project
            host: Host used for the identity key (defaults to the client host)

        Returns:
            Freshly assembled TrackedMergeRequest

        Raises:
            RemoteError: If the merge request detail cannot be fetched
        """
        detail_result, approvals_result, notes_result = await asyncio.gather(
            self.client.get_merge_request(project_path, iid),
            self._best_effort(
                "approvals",
                self.client.get_approvals(project_path, iid),
                project_path,
                iid,
            ),
            self._best_effort(
                "notes", self.client.get_notes(project_path, iid), project_path, iid
            ),
            return_exceptions=True,
        )
        if isinstance(detail_result, BaseException):
            raise detail_result

        approvals = (
            approvals_result if isinstance(approvals_result, GitLabApprovals) else None
        )
        notes = notes_result if isinstance(notes_result, list) else None

        return self._build(
            host or self.client.host, project_path, iid, detail_result, approvals, notes
        )

    def _build(
        self,
        host: str,
        project_path: str,
        iid: int,
        detail: GitLabMergeRequest,
        approvals: GitLabApprovals | None,
        notes: list[GitLabNote] | None,
    ) -> TrackedMergeRequest:
        now = self.clock()
        resolution = derive_status(detail, approvals, notes, now=now)

        return TrackedMergeRequest(
            id=build_identity(host, project_path, iid),
            url=detail.web_url,
            project_id=detail.project_id,
            iid=iid,
            title=detail.title,
            repository=project_path,
            status=resolution.status,
            status_updated_at=resolution.status_updated_at,
            author=Person.from_gitlab(detail.author),
            reviewers=extract_reviewers(notes),
            approvers=extract_approvers(approvals),
            created_at=detail.created_at or resolution.status_updated_at,
            last_fetched_at=now,
            latest_comment_at=latest_activity_at(notes),
        )

    async def aggregate_url(self, url: str) -> TrackedMergeRequest:
        """Fetch a merge request given its web URL.

        Raises:
            ParseError: If the URL is not a merge request URL
            RemoteError: If the merge request detail cannot be fetched
        """
        parsed = parse_mr_url(url)
        return await self.aggregate_one(parsed.project_path, parsed.iid, parsed.host)

    async def refresh_one(self, item: TrackedMergeRequest) -> TrackedMergeRequest:
        """Re-fetch a tracked merge request using its identity key."""
        parsed = parse_identity(item.id)
        return await self.aggregate_one(parsed.project_path, parsed.iid, parsed.host)

    async def resolve_project_path(self, summary: GitLabMergeRequest) -> str:
        """Find the project path of a list entry.

        The project API is asked first; the MR web URL is the fallback.

        Raises:
            ParseError: If neither source yields a project path
        """
        try:
            return await self.client.get_project_path(summary.project_id)
        except (RemoteError, ValueError) as e:
            project_path = project_path_from_web_url(summary.web_url)
            if project_path is None:
                raise ParseError(
                    f"Could not get project path for project {summary.project_id}"
                ) from e
            logger.debug(
                "Project lookup failed for %s, using web URL: %s",
                summary.project_id,
                e,
            )
            return project_path

    async def _aggregate_summary(
        self, summary: GitLabMergeRequest, semaphore: asyncio.Semaphore
    ) -> TrackedMergeRequest:
        async with semaphore:
            project_path = await self.resolve_project_path(summary)
            return await self.aggregate_one(project_path, summary.iid)

    async def aggregate_by_account(
        self, username: str, tracking_filter: TrackingFilter
    ) -> list[TrackedMergeRequest]:
        """Discover and aggregate merge requests authored by one account.

        Closed merge requests are dropped before detail fetches when the
        filter excludes them, and again after aggregation in case the state
        changed in between. Merged requests are always kept. Merge requests
        whose aggregation fails are left out of the result.

        Args:
            username: Account handle, with or without a leading @
            tracking_filter: Time window and closed-state inclusion

        Returns:
            Aggregated merge requests for the account

        Raises:
            RemoteError: If the list query itself fails
        """
        created_after = tracking_filter.created_after(self.clock())
        summaries = await self.client.list_merge_requests_by_author(
            username, created_after
        )

        if not tracking_filter.include_closed:
            summaries = [summary for summary in summaries if summary.state != "closed"]

        semaphore = asyncio.Semaphore(self.concurrency)
        results = await asyncio.gather(
            *(self._aggregate_summary(summary, semaphore) for summary in summaries),
            return_exceptions=True,
        )

        items: list[TrackedMergeRequest] = []
        for summary, result in zip(summaries, results):
            if isinstance(result, TrackedMergeRequest):
                items.append(result)
            else:
                logger.warning(
                    "Skipping merge request %s for %s: %s",
                    summary.web_url,
                    username,
                    result,
                )

        if not tracking_filter.include_closed:
            items = [item for item in items if item.status != MRStatus.REJECTED]

        logger.info(
            "Discovered %d merge requests for %s (%d listed)",
            len(items),
            username,
            len(summaries),
        )
        return items

    async def _refresh_limited(
        self, item: TrackedMergeRequest, semaphore: asyncio.Semaphore
    ) -> TrackedMergeRequest:
        async with semaphore:
            return await self.refresh_one(item)

    async def refresh_existing(
        self, items: list[TrackedMergeRequest]
    ) -> list[TrackedMergeRequest]:
        """Re-fetch every tracked merge request.

        The result has the same length and order as ``items``. When a
        re-fetch fails, the previously stored value is kept unchanged.
        """
        semaphore = asyncio.Semaphore(self.concurrency)
        results = await asyncio.gather(
            *(self._refresh_limited(item, semaphore) for item in items),
            return_exceptions=True,
        )

        refreshed: list[TrackedMergeRequest] = []
        failed_count = 0
        for item, result in zip(items, results):
            if isinstance(result, TrackedMergeRequest):
                refreshed.append(result)
            else:
                failed_count += 1
                logger.warning(
                    "Could not refresh %s, keeping previous data: %s", item.id, result
                )
                refreshed.append(item)

        logger.info(
            "Refreshed %d/%d merge requests", len(items) - failed_count, len(items)
        )
        return refreshed
