"""Merge freshly discovered merge requests into the stored collection.

Merge requests authored by a watched account are owned by discovery: each
reconciliation replaces them wholesale with what discovery returned. Every
other merge request (added by hand, or authored by someone not watched) is
carried over untouched until the user removes it.
"""

import asyncio
import logging
from collections.abc import Iterable, Sequence

from .aggregator import MergeRequestAggregator
from .models import TrackedMergeRequest, TrackingFilter

logger = logging.getLogger(__name__)


def normalize_username(username: str) -> str:
    """Lowercase a handle and drop a leading @."""
    return username.strip().removeprefix("@").lower()


def watched_usernames(my_account: str, team_accounts: Iterable[str]) -> list[str]:
    """Normalized watched handles, own account first, blanks and repeats skipped."""
    usernames: list[str] = []
    for account in [my_account, *team_accounts]:
        normalized = normalize_username(account or "")
        if normalized and normalized not in usernames:
            usernames.append(normalized)
    return usernames


def partition(
    stored: Sequence[TrackedMergeRequest], watched: Iterable[str]
) -> tuple[list[TrackedMergeRequest], list[TrackedMergeRequest]]:
    """Split stored items into (authored by a watched account, everything else)."""
    watched_set = set(watched)
    owned: list[TrackedMergeRequest] = []
    other: list[TrackedMergeRequest] = []
    for item in stored:
        if normalize_username(item.author.username) in watched_set:
            owned.append(item)
        else:
            other.append(item)
    return owned, other


def dedupe(items: Iterable[TrackedMergeRequest]) -> list[TrackedMergeRequest]:
    """Drop repeated identity keys, keeping the first copy seen."""
    seen: set[str] = set()
    unique: list[TrackedMergeRequest] = []
    for item in items:
        if item.id not in seen:
            seen.add(item.id)
            unique.append(item)
    return unique


def merge_discovered(
    stored: Sequence[TrackedMergeRequest],
    discovered_batches: Iterable[Iterable[TrackedMergeRequest]],
    watched: Iterable[str],
) -> list[TrackedMergeRequest]:
    """Build the next snapshot from the stored one and discovery results.

    The result is the non-watched partition of ``stored``, unchanged, followed
    by the discovered items deduplicated by identity key. Neither input is
    modified.

    Args:
        stored: Current snapshot
        discovered_batches: One batch per watched account, own account first
        watched: Normalized watched handles

    Returns:
        Next snapshot
    """
    _, other = partition(stored, watched)
    other_ids = {item.id for item in other}

    discovered = [
        item
        for batch in discovered_batches
        for item in batch
        if item.id not in other_ids
    ]
    return [*other, *dedupe(discovered)]


async def reconcile(
    stored: Sequence[TrackedMergeRequest],
    aggregator: MergeRequestAggregator,
    my_account: str,
    team_accounts: Iterable[str],
    tracking_filter: TrackingFilter,
) -> list[TrackedMergeRequest]:
    """Run discovery for every watched account and merge the results.

    Accounts are queried concurrently. An account whose discovery fails is
    logged and contributes nothing; the others proceed normally.

    Args:
        stored: Current snapshot (not modified)
        aggregator: Aggregator used for discovery
        my_account: Own account handle (may be empty)
        team_accounts: Teammate handles
        tracking_filter: Time window and closed-state inclusion

    Returns:
        Next snapshot
    """
    watched = watched_usernames(my_account, team_accounts)
    if not watched:
        return list(stored)

    results = await asyncio.gather(
        *(
            aggregator.aggregate_by_account(username, tracking_filter)
            for username in watched
        ),
        return_exceptions=True,
    )

    batches: list[list[TrackedMergeRequest]] = []
    for username, result in zip(watched, results):
        if isinstance(result, BaseException):
            logger.error("Failed to fetch merge requests for %s: %s", username, result)
            continue
        batches.append(result)

    return merge_discovered(stored, batches, watched)
