from __future__ import annotations

import pytest

from worklog_timer.branches import BranchIssueDirectory, ReportedBranches
from worklog_timer.clock import ManualClock
from worklog_timer.config import AutoPauseOptions
from worklog_timer.ledger import Ledger
from worklog_timer.timer import TimerService, TimerState
from worklog_timer.triggers import (
    BranchChangeMonitor,
    HostEvents,
    WorkspaceActivityTracker,
    handle_focus_gained,
    handle_focus_lost,
    handle_workspace_switch,
)


class StubSourceControl:
    def __init__(self, live: set[str]) -> None:
        self.live = live
        self.calls = 0

    def current_branch(self) -> str | None:
        return None

    def live_branches(self) -> set[str]:
        self.calls += 1
        return set(self.live)


def _running_timer() -> TimerService:
    timer = TimerService(Ledger(), clock=ManualClock())
    timer.start()
    return timer


def test_focus_lost_pauses_all_running_timers() -> None:
    first, second = _running_timer(), _running_timer()
    second.stop()

    paused = handle_focus_lost([first, second], AutoPauseOptions())

    assert paused == 1
    assert first.snapshot().paused_by_focus
    assert second.status is TimerState.STOPPED


def test_focus_round_trip_respects_toggle() -> None:
    timer = _running_timer()
    disabled = AutoPauseOptions(pause_on_focus_loss=False)

    assert handle_focus_lost([timer], disabled) == 0
    assert timer.status is TimerState.RUNNING

    handle_focus_lost([timer], AutoPauseOptions())
    assert handle_focus_gained(timer, disabled) is False
    assert timer.status is TimerState.IDLE
    assert handle_focus_gained(timer, AutoPauseOptions()) is True
    assert timer.status is TimerState.RUNNING


def test_focus_gained_without_timer_is_noop() -> None:
    assert handle_focus_gained(None, AutoPauseOptions()) is False


def test_workspace_switch_pauses_only_previous() -> None:
    previous, current = _running_timer(), _running_timer()

    assert handle_workspace_switch(previous, current, AutoPauseOptions()) is True

    assert previous.status is TimerState.IDLE
    assert previous.snapshot().paused_by_workspace_switch
    assert current.status is TimerState.RUNNING


def test_workspace_switch_toggle_and_same_instance() -> None:
    timer = _running_timer()

    assert handle_workspace_switch(timer, timer, AutoPauseOptions()) is False
    assert handle_workspace_switch(
        timer, None, AutoPauseOptions(pause_on_workspace_switch=False)
    ) is False
    assert timer.status is TimerState.RUNNING


def test_workspace_activity_tracker_detects_switches() -> None:
    timers = {"alpha": _running_timer(), "beta": _running_timer()}
    tracker = WorkspaceActivityTracker(timers.get, AutoPauseOptions())

    assert tracker.activated("alpha") is False
    assert tracker.activated("alpha") is False
    assert tracker.activated("beta") is True
    assert timers["alpha"].status is TimerState.IDLE
    assert timers["beta"].status is TimerState.RUNNING
    assert tracker.last_active == "beta"

    tracker.closed("beta")
    assert tracker.last_active is None
    assert tracker.activated("alpha") is False


def test_branch_change_pauses_and_restores_work_item() -> None:
    timer = _running_timer()
    directory = BranchIssueDirectory(Ledger())
    directory.record_selection("PROJ-1", "feature/a")
    directory.record_selection("PROJ-2", "main")
    restored: list[tuple[str, str]] = []
    monitor = BranchChangeMonitor(
        timer,
        directory,
        AutoPauseOptions(),
        on_work_item_restored=lambda branch, key: restored.append((branch, key)),
    )

    assert monitor.repository_changed("/repo", "main") is False
    assert timer.status is TimerState.RUNNING

    assert monitor.repository_changed("/repo", "feature/a") is True
    assert timer.status is TimerState.IDLE
    snapshot = timer.snapshot()
    assert not snapshot.paused_by_focus
    assert not snapshot.paused_by_workspace_switch
    assert restored == [("feature/a", "PROJ-1")]
    assert directory.resolve() == "PROJ-1"


def test_branch_change_restores_even_when_pause_disabled() -> None:
    timer = _running_timer()
    directory = BranchIssueDirectory(Ledger())
    directory.record_selection("PROJ-9", "release")
    monitor = BranchChangeMonitor(timer, directory, AutoPauseOptions(pause_on_branch_change=False))

    assert monitor.branch_changed("release") == "PROJ-9"
    assert timer.status is TimerState.RUNNING


def test_branch_change_prunes_every_nth_change() -> None:
    timer = _running_timer()
    directory = BranchIssueDirectory(Ledger())
    directory.record_selection("PROJ-1", "main")
    directory.record_selection("PROJ-2", "feature/deleted")
    source_control = StubSourceControl({"main"})
    monitor = BranchChangeMonitor(
        timer,
        directory,
        AutoPauseOptions(),
        source_control=source_control,
        cleanup_interval=3,
    )

    monitor.branch_changed("main")
    monitor.branch_changed("feature/deleted")
    assert source_control.calls == 0
    assert "feature/deleted" in directory.branch_mappings()

    monitor.branch_changed("main")

    assert source_control.calls == 1
    assert monitor.change_count == 3
    assert directory.branch_mappings() == {"main": "PROJ-1"}


def test_branch_monitor_rejects_zero_interval() -> None:
    with pytest.raises(ValueError):
        BranchChangeMonitor(_running_timer(), BranchIssueDirectory(Ledger()), AutoPauseOptions(), cleanup_interval=0)


def test_unreported_branch_listing_never_prunes() -> None:
    directory = BranchIssueDirectory(Ledger())
    directory.record_selection("PROJ-1", "main")
    directory.record_selection("PROJ-2", "feature/x")
    monitor = BranchChangeMonitor(
        _running_timer(),
        directory,
        AutoPauseOptions(),
        source_control=ReportedBranches(),
        cleanup_interval=1,
    )

    monitor.branch_changed("main")

    assert directory.branch_mappings() == {"main": "PROJ-1", "feature/x": "PROJ-2"}


def test_reported_branches_keep_last_listing() -> None:
    reported = ReportedBranches()
    reported.report("main", ["main", "", "feature/x"])
    reported.report("feature/x")

    assert reported.current_branch() == "feature/x"
    assert reported.live_branches() == {"main", "feature/x"}


def test_host_events_route_to_own_timer_only() -> None:
    timer = _running_timer()
    directory = BranchIssueDirectory(Ledger())
    events = HostEvents.for_timer(timer, directory, AutoPauseOptions(), workspace_id="ws-1")

    assert events.workspace_activated("ws-2") is False
    assert timer.status is TimerState.RUNNING
    assert events.workspace_activated("ws-1") is False
    assert events.workspace_activated("ws-2") is True
    assert timer.status is TimerState.IDLE


def test_host_events_respect_disabled_focus_toggle() -> None:
    timer = _running_timer()
    events = HostEvents.for_timer(
        timer,
        BranchIssueDirectory(Ledger()),
        AutoPauseOptions(pause_on_focus_loss=False),
        workspace_id="ws-1",
    )

    assert events.focus_changed(False) is False
    assert timer.status is TimerState.RUNNING
