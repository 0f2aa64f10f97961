from __future__ import annotations

from datetime import timedelta

import pytest

from worklog_timer.branches import BranchIssueDirectory
from worklog_timer.clock import ManualClock
from worklog_timer.ledger import Ledger
from worklog_timer.notifications import RecordingNotifier
from worklog_timer.submissions import OfflineSubmissionQueue, SubmissionStatus
from worklog_timer.timer import TimerService, TimerState
from worklog_timer.tracker import (
    FakeTrackerClient,
    TrackerConnectionRefusedError,
    TrackerRejectedError,
    WorkItem,
)
from worklog_timer.tracking import WorklogSession


def build_session(tracker: FakeTrackerClient | None = None) -> tuple[WorklogSession, ManualClock]:
    clock = ManualClock(start_ms=1_700_000_000_000)
    ledger = Ledger()
    timer = TimerService(ledger, clock=clock)
    queue = None
    if tracker is not None:
        queue = OfflineSubmissionQueue(ledger, tracker, notifier=RecordingNotifier(), clock=clock)
    session = WorklogSession(ledger, timer, BranchIssueDirectory(ledger), queue, tracker, clock=clock)
    return session, clock


def _accumulate(session: WorklogSession, clock: ManualClock, ms: int) -> None:
    session.timer.start()
    while ms > 0:
        step = min(ms, 1000)
        clock.advance(step)
        session.timer.tick()
        ms -= step


def test_submit_elapsed_delivers_and_resets_timer() -> None:
    tracker = FakeTrackerClient()
    session, clock = build_session(tracker)
    _accumulate(session, clock, 90_500)

    result = session.submit_elapsed("PROJ-1", "code review", branch_name="feature/x")

    assert result.status is SubmissionStatus.DELIVERED
    submission = tracker.submissions[0]
    assert submission["seconds"] == 90
    assert submission["started_at"] == clock.now() - timedelta(seconds=90)
    assert session.timer.status is TimerState.STOPPED
    assert session.timer.total_time_ms == 0
    assert session.ledger.last_comment() == "code review"
    assert session.directory.resolve("feature/x") == "PROJ-1"


def test_time_accrued_during_slow_submit_is_kept() -> None:
    tracker = FakeTrackerClient()
    session, clock = build_session(tracker)
    _accumulate(session, clock, 60_000)

    def tick_while_in_flight(key: str) -> None:
        clock.advance(1_000)
        session.timer.tick()
        clock.advance(1_000)
        session.timer.tick()

    tracker.on_submit = tick_while_in_flight

    session.submit_elapsed("PROJ-1")

    assert tracker.submissions[0]["seconds"] == 60
    assert session.timer.status is TimerState.STOPPED
    assert session.timer.total_time_ms == 2_000


def test_submit_elapsed_queues_offline_and_still_resets() -> None:
    tracker = FakeTrackerClient()
    tracker.failures.append(TrackerConnectionRefusedError("refused"))
    session, clock = build_session(tracker)
    _accumulate(session, clock, 3_600_000)

    result = session.submit_elapsed("PROJ-1", "work")

    assert result.queued
    assert [(entry.work_item_key, entry.time_spent_seconds) for entry in session.ledger.pending_submissions()] == [
        ("PROJ-1", 3600)
    ]
    assert session.timer.total_time_ms == 0


def test_rejected_submission_keeps_time() -> None:
    tracker = FakeTrackerClient()
    tracker.failures.append(TrackerRejectedError("Issue does not exist", status_code=404))
    session, clock = build_session(tracker)
    _accumulate(session, clock, 5_000)

    with pytest.raises(TrackerRejectedError):
        session.submit_elapsed("GONE-1")

    assert session.timer.total_time_ms == 5_000
    assert session.timer.status is TimerState.RUNNING
    assert session.ledger.pending_submissions() == []


def test_submit_elapsed_uses_edited_amount() -> None:
    tracker = FakeTrackerClient()
    session, clock = build_session(tracker)
    _accumulate(session, clock, 2_000)

    session.submit_elapsed("PROJ-1", time_spent_ms=1_800_000)

    assert tracker.submissions[0]["seconds"] == 1800


def test_submit_elapsed_refuses_sub_second_totals() -> None:
    tracker = FakeTrackerClient()
    session, _ = build_session(tracker)

    with pytest.raises(ValueError):
        session.submit_elapsed("PROJ-1", time_spent_ms=999)
    assert tracker.submissions == []


def test_without_tracker_the_session_refuses_tracker_calls() -> None:
    session, clock = build_session()
    _accumulate(session, clock, 5_000)

    assert not session.tracker_available
    with pytest.raises(RuntimeError, match="WORKLOG_TRACKER_FACTORY"):
        session.assigned_items()
    with pytest.raises(RuntimeError):
        session.submit_elapsed("PROJ-1")
    assert session.timer.total_time_ms == 5_000


def test_saved_work_item_resolves_and_fetches() -> None:
    item = WorkItem(key="PROJ-4", summary="Fix login")
    session, _ = build_session(FakeTrackerClient([item]))
    session.select_work_item("PROJ-4", "feature/login")

    assert session.saved_work_item("feature/login") == "PROJ-4"
    assert session.saved_work_item("feature/login", fetch=True) == item
    assert session.saved_work_item("other") == "PROJ-4"
    assert session.assigned_items().total == 1


def test_saved_work_item_without_selection() -> None:
    session, _ = build_session(FakeTrackerClient())

    assert session.saved_work_item("main", fetch=True) is None
