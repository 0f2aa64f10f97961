"""Session facade tying the timer, the submission queue and the branch directory together."""

from __future__ import annotations

import logging
from datetime import timedelta

from .branches import BranchIssueDirectory
from .clock import Clock, SystemClock
from .ledger import Ledger
from .submissions import OfflineSubmissionQueue, SubmissionResult
from .timer import TimerService
from .tracker import SearchResult, TrackerClient, WorkItem

logger = logging.getLogger(__name__)


class WorklogSession:
    """One workspace's view of the core, as used by the tool layer."""

    def __init__(
        self,
        ledger: Ledger,
        timer: TimerService,
        directory: BranchIssueDirectory,
        queue: OfflineSubmissionQueue | None = None,
        tracker: TrackerClient | None = None,
        *,
        clock: Clock | None = None,
    ) -> None:
        self.ledger = ledger
        self.timer = timer
        self.queue = queue
        self.directory = directory
        self.tracker = tracker
        self._clock = clock or SystemClock()

    @property
    def tracker_available(self) -> bool:
        return self.tracker is not None and self.queue is not None

    def require_tracker(self) -> TrackerClient:
        if self.tracker is None:
            raise RuntimeError("Tracker client is unavailable; configure WORKLOG_TRACKER_FACTORY")
        return self.tracker

    def require_queue(self) -> OfflineSubmissionQueue:
        if self.queue is None:
            raise RuntimeError("Submission queue is unavailable without a tracker client")
        return self.queue

    def assigned_items(self) -> SearchResult:
        return self.require_tracker().search_assigned_items()

    def fetch_item(self, key: str) -> WorkItem:
        return self.require_tracker().fetch_item(key)

    def select_work_item(self, key: str, branch_name: str | None = None) -> None:
        self.directory.record_selection(key, branch_name)

    def saved_work_item(self, branch_name: str | None = None, *, fetch: bool = False) -> str | WorkItem | None:
        """Return the remembered key for ``branch_name``, or the full item when ``fetch`` is set."""

        key = self.directory.resolve(branch_name)
        if key is None or not fetch:
            return key
        return self.require_tracker().fetch_item(key)

    def submit_elapsed(
        self,
        work_item_key: str,
        comment: str | None = None,
        *,
        branch_name: str | None = None,
        time_spent_ms: int | None = None,
    ) -> SubmissionResult:
        """Submit the timer's elapsed time (or an edited amount) and reset on capture.

        The timer is reset only when the entry was delivered or queued; a
        rejected submission propagates and leaves the accumulated time alone.
        Time that accrues while the tracker call is in flight is kept.
        """

        captured_ms = self.timer.total_time_ms
        elapsed_ms = captured_ms if time_spent_ms is None else time_spent_ms
        seconds = max(0, elapsed_ms) // 1000
        if seconds <= 0:
            raise ValueError("Nothing to submit: less than one second accumulated")

        started_at = self._clock.now() - timedelta(seconds=seconds)
        result = self.require_queue().submit(work_item_key, seconds, comment, started_at)

        self.timer.settle(captured_ms)
        with self.ledger.transaction():
            self.ledger.set_last_comment(comment)
            self.directory.record_selection(work_item_key, branch_name)
        logger.info(
            "Submitted elapsed time",
            extra={
                "work_item_key": work_item_key,
                "time_spent_seconds": seconds,
                "status": result.status.value,
            },
        )
        return result


__all__ = ["WorklogSession"]
