"""Central coordinator for tracked merge request operations."""

import asyncio
import logging
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime
from typing import NamedTuple

from ..config import TrackerConfig, apply_env_overrides
from ..errors import ConfigError
from ..gitlab_client.client import GitLabClient
from ..gitlab_client.urls import parse_mr_url
from ..storage.manager import CONFIG_KEY, StorageManager
from ..utils.date_parser import ensure_aware, utcnow
from .aggregator import MergeRequestAggregator
from .models import MRStatus, TrackedMergeRequest
from .reconciler import normalize_username
from .refresher import RefreshCycle, Snapshot

logger = logging.getLogger(__name__)


class CategorizedMergeRequests(NamedTuple):
    """Merge requests grouped by who authored them."""

    my: list[TrackedMergeRequest]
    team: list[TrackedMergeRequest]
    other: list[TrackedMergeRequest]


def categorize(
    items: Iterable[TrackedMergeRequest], my_account: str, team_accounts: Iterable[str]
) -> CategorizedMergeRequests:
    """Group merge requests into own, team and other, newest first."""
    my_username = normalize_username(my_account)
    team_usernames = {normalize_username(account) for account in team_accounts}
    team_usernames.discard("")

    grouped = CategorizedMergeRequests([], [], [])
    for item in items:
        author = normalize_username(item.author.username)
        if my_username and author == my_username:
            grouped.my.append(item)
        elif author in team_usernames:
            grouped.team.append(item)
        else:
            grouped.other.append(item)

    for group in grouped:
        group.sort(key=lambda mr: ensure_aware(mr.created_at), reverse=True)
    return grouped


def visible_merge_requests(
    items: Iterable[TrackedMergeRequest],
    status_filters: dict[MRStatus, bool],
    hidden_ids: Iterable[str] = (),
    show_hidden: bool = False,
) -> list[TrackedMergeRequest]:
    """Apply status visibility and the hidden set."""
    hidden = set(hidden_ids)
    return [
        item
        for item in items
        if status_filters.get(item.status, True)
        and (show_hidden or item.id not in hidden)
    ]


def has_new_activity(item: TrackedMergeRequest, read_at: datetime | None) -> bool:
    """True when a human note is newer than the last time the MR was read."""
    if item.latest_comment_at is None:
        return False
    if read_at is None:
        return True
    return ensure_aware(item.latest_comment_at) > ensure_aware(read_at)


class TrackerManager:
    """Coordinates configuration, storage and the reconciliation pipeline."""

    def __init__(
        self,
        storage: StorageManager,
        client_factory: Callable[[TrackerConfig], GitLabClient] | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize tracker manager.

        Args:
            storage: Storage for config and tracked merge requests
            client_factory: Builds the GitLab client from the effective
                config; replaced in tests
            clock: Returns the current time
        """
        self.storage = storage
        self.clock = clock
        self.client_factory = client_factory or (
            lambda config: GitLabClient(
                host=config.gitlab_host, token=config.access_token
            )
        )
        self.stored_config = self._load_stored_config()

    def _load_stored_config(self) -> TrackerConfig:
        config = self.storage.get_config()
        if config is None:
            return TrackerConfig()

        raw = self.storage.get(CONFIG_KEY) or {}
        missing = set(TrackerConfig.model_fields) - set(raw)
        if missing:
            logger.info("Migrating stored configuration, adding %s", sorted(missing))
            self.storage.save_config(config)
        return config

    @property
    def config(self) -> TrackerConfig:
        """Stored configuration with environment overrides applied."""
        return apply_env_overrides(self.stored_config)

    def save_config(self, config: TrackerConfig) -> None:
        self.stored_config = config
        self.storage.save_config(config)

    @property
    def merge_requests(self) -> Snapshot:
        return tuple(self.storage.get_merge_requests())

    def _commit(self, items: Sequence[TrackedMergeRequest]) -> None:
        self.storage.save_merge_requests(list(items))
        self.storage.save_last_updated(self.clock())

    def build_aggregator(self) -> MergeRequestAggregator:
        config = self.config
        config.require_token()
        return MergeRequestAggregator(self.client_factory(config), clock=self.clock)

    async def add_merge_request(self, url: str) -> TrackedMergeRequest:
        """Start tracking a merge request given its web URL.

        Raises:
            ParseError: If the URL is not a merge request URL
            ValueError: If the merge request is already tracked
            ConfigError: If no access token is configured
            RemoteError: If the merge request cannot be fetched
        """
        parsed = parse_mr_url(url)
        current = self.merge_requests
        if any(item.id == parsed.identity for item in current):
            raise ValueError("This merge request is already in the list")

        aggregator = self.build_aggregator()
        merge_request = await aggregator.aggregate_one(
            parsed.project_path, parsed.iid, parsed.host
        )
        self._commit([merge_request, *current])
        return merge_request

    def remove_merge_request(self, mr_id: str) -> bool:
        """Stop tracking a merge request; its hidden flag and read marker go too."""
        current = self.merge_requests
        remaining = [item for item in current if item.id != mr_id]
        self.unhide(mr_id)
        self.storage.delete_read_timestamp(mr_id)
        if len(remaining) == len(current):
            return False

        self.storage.save_merge_requests(remaining)
        return True

    def hide(self, mr_id: str) -> bool:
        hidden = self.storage.get_hidden_ids()
        if mr_id in hidden:
            return False
        self.storage.save_hidden_ids([*hidden, mr_id])
        return True

    def unhide(self, mr_id: str) -> bool:
        hidden = self.storage.get_hidden_ids()
        if mr_id not in hidden:
            return False
        self.storage.save_hidden_ids([h for h in hidden if h != mr_id])
        return True

    def mark_as_read(self, mr_id: str, at: datetime | None = None) -> None:
        self.storage.update_read_timestamp(mr_id, at or self.clock())

    def set_status_visibility(self, status: MRStatus, visible: bool) -> None:
        filters = self.storage.get_status_filters()
        filters[status] = visible
        self.storage.save_status_filters(filters)

    def categorized(self, show_hidden: bool = False) -> CategorizedMergeRequests:
        """Visible merge requests grouped into own, team and other."""
        config = self.config
        items = visible_merge_requests(
            self.merge_requests,
            self.storage.get_status_filters(),
            self.storage.get_hidden_ids(),
            show_hidden=show_hidden,
        )
        return categorize(items, config.my_account, config.team_accounts)

    def new_activity_ids(self) -> set[str]:
        read_timestamps = self.storage.get_read_timestamps()
        return {
            item.id
            for item in self.merge_requests
            if has_new_activity(item, read_timestamps.get(item.id))
        }

    def build_refresh_cycle(self) -> RefreshCycle:
        config = self.config
        return RefreshCycle(
            aggregator=self.build_aggregator(),
            tracking_filter=config.tracking_filter(),
            my_account=config.my_account,
            team_accounts=config.team_accounts,
            snapshot=self.merge_requests,
            on_update=self._commit,
            load_snapshot=lambda: self.merge_requests,
        )

    async def refresh(self) -> Snapshot | None:
        """Run a single refresh and discovery cycle and persist the result."""
        return await self.build_refresh_cycle().run_once()

    async def watch(
        self,
        interval_seconds: float | None = None,
        max_cycles: int | None = None,
        stop_event: asyncio.Event | None = None,
    ) -> int:
        """Refresh periodically; returns the number of completed cycles."""
        interval = interval_seconds or self.config.auto_refresh_interval
        if not interval:
            raise ConfigError("Auto refresh is disabled (interval is 0)")

        cycle = self.build_refresh_cycle()
        return await cycle.run_periodically(
            interval, stop_event=stop_event, max_cycles=max_cycles
        )
