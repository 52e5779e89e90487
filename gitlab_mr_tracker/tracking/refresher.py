"""Reconciliation cycles over an immutable snapshot of tracked merge requests."""

import asyncio
import logging
from collections.abc import Callable, Iterable

from .aggregator import MergeRequestAggregator
from .models import TrackedMergeRequest, TrackingFilter
from .reconciler import reconcile

logger = logging.getLogger(__name__)

Snapshot = tuple[TrackedMergeRequest, ...]


class RefreshCycle:
    """Runs refresh-then-discovery cycles, one at a time.

    The current snapshot is a tuple that is replaced as a whole at the end of
    a successful cycle, so readers only ever see the state before or after a
    cycle. A cycle requested while another is still running is skipped, not
    queued.
    """

    def __init__(
        self,
        aggregator: MergeRequestAggregator,
        tracking_filter: TrackingFilter,
        my_account: str = "",
        team_accounts: Iterable[str] = (),
        snapshot: Iterable[TrackedMergeRequest] = (),
        on_update: Callable[[Snapshot], None] | None = None,
        load_snapshot: Callable[[], Iterable[TrackedMergeRequest]] | None = None,
    ):
        """Initialize refresh cycle.

        Args:
            aggregator: Aggregator used for refresh and discovery
            tracking_filter: Discovery time window and closed-state inclusion
            my_account: Own account handle
            team_accounts: Teammate handles
            snapshot: Initial stored collection
            on_update: Called with every new snapshot (e.g. to persist it)
            load_snapshot: Reads the stored collection at the start of every
                cycle, so changes made elsewhere since the last cycle are kept
        """
        self.aggregator = aggregator
        self.tracking_filter = tracking_filter
        self.my_account = my_account
        self.team_accounts = list(team_accounts)
        self.on_update = on_update
        self.load_snapshot = load_snapshot
        self._snapshot: Snapshot = tuple(snapshot)
        self._in_flight = False

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def replace_snapshot(self, items: Iterable[TrackedMergeRequest]) -> Snapshot:
        """Swap in a new snapshot and notify ``on_update``."""
        self._snapshot = tuple(items)
        if self.on_update is not None:
            self.on_update(self._snapshot)
        return self._snapshot

    async def run_once(self) -> Snapshot | None:
        """Run one reconciliation cycle.

        Returns:
            The new snapshot, or None when the cycle was skipped because
            another one is in flight or failed unexpectedly
        """
        if self._in_flight:
            logger.info("Refresh already in progress, skipping this cycle")
            return None

        self._in_flight = True
        try:
            if self.load_snapshot is not None:
                self._snapshot = tuple(self.load_snapshot())
            before = self._snapshot
            refreshed = await self.aggregator.refresh_existing(list(before))
            reconciled = await reconcile(
                refreshed,
                self.aggregator,
                self.my_account,
                self.team_accounts,
                self.tracking_filter,
            )
            return self.replace_snapshot(reconciled)
        except Exception:
            logger.exception("Refresh cycle failed, keeping previous snapshot")
            return None
        finally:
            self._in_flight = False

    async def run_periodically(
        self,
        interval_seconds: float,
        stop_event: asyncio.Event | None = None,
        max_cycles: int | None = None,
    ) -> int:
        """Run cycles on a fixed cadence until stopped.

        Args:
            interval_seconds: Delay between the end of one cycle and the next
            stop_event: Set to stop the loop early
            max_cycles: Stop after this many cycles (None for no limit)

        Returns:
            Number of cycles that completed
        """
        if interval_seconds <= 0:
            raise ValueError("Refresh interval must be a positive number of seconds")

        stop_event = stop_event or asyncio.Event()
        completed = 0
        attempted = 0

        while not stop_event.is_set():
            if max_cycles is not None and attempted >= max_cycles:
                break

            attempted += 1
            if await self.run_once() is not None:
                completed += 1

            if max_cycles is not None and attempted >= max_cycles:
                break

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
            except asyncio.TimeoutError:
                pass

        return completed
