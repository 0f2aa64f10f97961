"""Offline-tolerant delivery of time entries to the remote tracker."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from ..clock import Clock, SystemClock
from ..ledger import Ledger, PendingSubmission
from ..notifications import LoggingNotifier, NotificationLevel, Notifier
from ..scheduling import PeriodicTask
from ..tracker import TrackerClient, WorklogEntry, classify_error, is_transient

logger = logging.getLogger(__name__)

RETRY_INTERVAL_SECONDS = 60


class SubmissionStatus(str, Enum):
    DELIVERED = "delivered"
    QUEUED = "queued"


@dataclass(slots=True)
class SubmissionResult:
    """Outcome of :meth:`OfflineSubmissionQueue.submit`.

    Both statuses mean the time entry is safely captured.
    """

    status: SubmissionStatus
    entry: WorklogEntry | None = None
    pending: PendingSubmission | None = None

    @property
    def delivered(self) -> bool:
        return self.status is SubmissionStatus.DELIVERED

    @property
    def queued(self) -> bool:
        return self.status is SubmissionStatus.QUEUED


@dataclass(slots=True)
class RetryReport:
    """What one :meth:`OfflineSubmissionQueue.retry_pending` pass did."""

    attempted: bool = False
    delivered: list[PendingSubmission] = field(default_factory=list)
    rejected: list[PendingSubmission] = field(default_factory=list)
    still_pending: list[PendingSubmission] = field(default_factory=list)

    @property
    def removed(self) -> int:
        return len(self.delivered) + len(self.rejected)


class OfflineSubmissionQueue:
    """Deliver time entries now, or keep them in the ledger until the tracker is back.

    Transient (network) failures never reach the caller: the entry is queued
    and retried every ``retry_interval_seconds``. Any other failure is raised
    from :meth:`submit` unchanged and nothing is queued.
    """

    def __init__(
        self,
        ledger: Ledger,
        tracker: TrackerClient,
        *,
        notifier: Notifier | None = None,
        clock: Clock | None = None,
        retry_interval_seconds: float = RETRY_INTERVAL_SECONDS,
    ) -> None:
        self._ledger = ledger
        self._tracker = tracker
        self._notifier = notifier or LoggingNotifier()
        self._clock = clock or SystemClock()
        self._retry_interval = retry_interval_seconds
        self._queue_lock = threading.Lock()
        self._retry_lock = threading.Lock()
        self._scheduler: PeriodicTask | None = None

    @property
    def pending_count(self) -> int:
        return len(self._ledger.pending_submissions())

    def pending(self) -> list[PendingSubmission]:
        return self._ledger.pending_submissions()

    def submit(
        self,
        work_item_key: str,
        time_spent_seconds: int,
        comment: str | None = None,
        started_at: datetime | None = None,
    ) -> SubmissionResult:
        """Try to deliver a time entry immediately; queue it on a network failure."""

        key = (work_item_key or "").strip()
        if not key:
            raise ValueError("work_item_key must not be empty")
        if time_spent_seconds <= 0:
            raise ValueError("time_spent_seconds must be positive")
        started = started_at or self._clock.now()

        try:
            entry = self._tracker.submit_time_entry(key, time_spent_seconds, comment, started)
        except Exception as exc:
            if not is_transient(exc):
                logger.warning(
                    "Time entry rejected",
                    extra={"work_item_key": key, "kind": classify_error(exc).value},
                )
                raise
            pending = self._enqueue(key, time_spent_seconds, comment, started, exc)
            return SubmissionResult(status=SubmissionStatus.QUEUED, pending=pending)

        logger.info(
            "Time entry delivered",
            extra={"work_item_key": key, "time_spent_seconds": time_spent_seconds},
        )
        return SubmissionResult(status=SubmissionStatus.DELIVERED, entry=entry)

    def _enqueue(
        self,
        key: str,
        time_spent_seconds: int,
        comment: str | None,
        started_at: datetime,
        error: BaseException,
    ) -> PendingSubmission:
        pending = PendingSubmission(
            work_item_key=key,
            time_spent_seconds=time_spent_seconds,
            comment=comment,
            started_at=started_at,
            enqueued_at=self._clock.now(),
        )
        with self._queue_lock:
            self._ledger.add_pending_submission(pending)
        logger.info(
            "Time entry queued for offline submission",
            extra={
                "work_item_key": key,
                "pending_id": pending.id,
                "kind": classify_error(error).value,
            },
        )
        self._notify("Worklog queued for offline submission", NotificationLevel.INFO)
        return pending

    def retry_pending(self) -> RetryReport:
        """Deliver queued entries in enqueue order once the tracker answers a probe.

        Delivered and permanently rejected entries leave the queue; entries
        that fail for a network reason stay for the next pass, silently.
        """

        report = RetryReport()
        with self._retry_lock:
            pending = self._ledger.pending_submissions()
            if not pending:
                return report

            if not self._probe():
                report.still_pending = pending
                return report

            report.attempted = True
            for entry in pending:
                try:
                    self._tracker.submit_time_entry(
                        entry.work_item_key,
                        entry.time_spent_seconds,
                        entry.comment,
                        entry.started_at,
                    )
                except Exception as exc:
                    if is_transient(exc):
                        logger.debug(
                            "Queued time entry still unreachable",
                            extra={"pending_id": entry.id, "kind": classify_error(exc).value},
                        )
                        report.still_pending.append(entry)
                        continue
                    logger.warning(
                        "Dropping queued time entry rejected by tracker",
                        extra={"pending_id": entry.id, "work_item_key": entry.work_item_key},
                    )
                    self._settle(entry)
                    report.rejected.append(entry)
                    self._notify(
                        f"Failed to submit offline worklog for {entry.work_item_key}: {exc}",
                        NotificationLevel.ERROR,
                    )
                    continue
                # Settled before anything else can fail so a later pass never resends it.
                self._settle(entry)
                report.delivered.append(entry)

        if report.delivered:
            count = len(report.delivered)
            logger.info("Delivered queued time entries", extra={"count": count})
            self._notify(
                f"Successfully submitted {count} offline worklog{'s' if count != 1 else ''}",
                NotificationLevel.INFO,
            )
        return report

    def _settle(self, entry: PendingSubmission) -> None:
        with self._queue_lock:
            self._ledger.remove_pending_submissions([entry.id])

    def _notify(self, message: str, level: NotificationLevel) -> None:
        try:
            self._notifier.notify(message, level)
        except Exception:
            logger.exception("Notifier failed", extra={"notification_level": level.value})

    def _probe(self) -> bool:
        try:
            reachable = bool(self._tracker.test_connectivity())
        except Exception as exc:
            logger.debug("Connectivity probe failed", extra={"kind": classify_error(exc).value})
            return False
        if not reachable:
            logger.debug("Connectivity probe reported tracker offline")
        return reachable

    def discard(self, entry_id: str) -> bool:
        """Remove one queued entry without delivering it."""

        with self._queue_lock:
            removed = self._ledger.remove_pending_submissions([entry_id])
        if removed:
            logger.info("Discarded queued time entry", extra={"pending_id": entry_id})
        return bool(removed)

    def start(self) -> None:
        if self._scheduler is not None:
            return
        self._scheduler = PeriodicTask(
            "worklog-retry-pending", self._retry_interval, self.retry_pending
        )
        self._scheduler.start()

    def shutdown(self) -> None:
        scheduler, self._scheduler = self._scheduler, None
        if scheduler is not None:
            scheduler.cancel()


__all__ = [
    "OfflineSubmissionQueue",
    "RETRY_INTERVAL_SECONDS",
    "RetryReport",
    "SubmissionResult",
    "SubmissionStatus",
]
