"""Adapters that turn host environment events into timer calls.

Each adapter is gated by its own :class:`AutoPauseOptions` toggle and calls
at most one timer method per event. Adapters never call each other.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Iterable

from .branches import BranchIssueDirectory, ReportedBranches, SourceControl
from .config import AutoPauseOptions
from .timer import TimerService

logger = logging.getLogger(__name__)

BRANCH_CLEANUP_INTERVAL = 10


def handle_focus_lost(timers: Iterable[TimerService], options: AutoPauseOptions) -> int:
    """Auto-pause every running timer when the host window loses focus."""

    if not options.pause_on_focus_loss:
        return 0
    paused = sum(1 for timer in timers if timer.auto_pause_by_focus())
    if paused:
        logger.debug("Focus lost", extra={"paused": paused})
    return paused


def handle_focus_gained(timer: TimerService | None, options: AutoPauseOptions) -> bool:
    """Resume the newly focused workspace's timer if focus loss paused it."""

    if timer is None or not options.pause_on_focus_loss:
        return False
    return timer.auto_resume_from_focus()


def handle_workspace_switch(
    previous: TimerService | None,
    current: TimerService | None,
    options: AutoPauseOptions,
) -> bool:
    """Pause the timer of the workspace the user left; the new one is never touched."""

    if not options.pause_on_workspace_switch:
        return False
    if previous is None or previous is current:
        return False
    return previous.auto_pause_by_workspace_switch()


class WorkspaceActivityTracker:
    """Remembers the last active workspace so switches can be detected."""

    def __init__(
        self,
        timer_for: Callable[[str], TimerService | None],
        options: AutoPauseOptions,
    ) -> None:
        self._timer_for = timer_for
        self._options = options
        self._last_active: str | None = None
        self._lock = threading.Lock()

    @property
    def last_active(self) -> str | None:
        return self._last_active

    def activated(self, workspace_id: str) -> bool:
        with self._lock:
            previous_id, self._last_active = self._last_active, workspace_id
        if previous_id is None or previous_id == workspace_id:
            return False
        return handle_workspace_switch(
            self._timer_for(previous_id), self._timer_for(workspace_id), self._options
        )

    def closed(self, workspace_id: str) -> None:
        with self._lock:
            if self._last_active == workspace_id:
                self._last_active = None


class BranchChangeMonitor:
    """Reacts to branch switches reported per repository root.

    On a real change: pause the timer (when enabled), restore the work item
    remembered for the new branch, and every ``cleanup_interval`` changes
    prune mappings of branches that no longer exist.
    """

    def __init__(
        self,
        timer: TimerService,
        directory: BranchIssueDirectory,
        options: AutoPauseOptions,
        *,
        source_control: SourceControl | None = None,
        cleanup_interval: int = BRANCH_CLEANUP_INTERVAL,
        on_work_item_restored: Callable[[str, str], None] | None = None,
    ) -> None:
        if cleanup_interval < 1:
            raise ValueError("cleanup_interval must be >= 1")
        self._timer = timer
        self._directory = directory
        self._options = options
        self._source_control = source_control
        self._cleanup_interval = cleanup_interval
        self._on_restored = on_work_item_restored
        self._last_branch_by_repo: dict[str, str] = {}
        self._change_count = 0
        self._lock = threading.Lock()

    @property
    def change_count(self) -> int:
        return self._change_count

    def repository_changed(self, repository_root: str, branch_name: str) -> bool:
        """Record the repository's current branch; returns True when it differs from the last one."""

        with self._lock:
            previous = self._last_branch_by_repo.get(repository_root)
            self._last_branch_by_repo[repository_root] = branch_name
        if previous is None or previous == branch_name:
            return False
        self.branch_changed(branch_name)
        return True

    def branch_changed(self, branch_name: str | None) -> str | None:
        if self._options.pause_on_branch_change:
            self._timer.pause()

        restored = None
        if branch_name:
            restored = self._directory.restore_for_branch(branch_name)
            if restored is not None:
                logger.info(
                    "Restored work item for branch",
                    extra={"branch": branch_name, "work_item_key": restored},
                )
                if self._on_restored is not None:
                    self._on_restored(branch_name, restored)

        with self._lock:
            self._change_count += 1
            due = self._change_count % self._cleanup_interval == 0
        if due and self._source_control is not None:
            live = self._source_control.live_branches()
            # An empty listing means no branches were reported yet.
            if live:
                self._directory.prune_branches(live)
        return restored


@dataclass(slots=True)
class HostEvents:
    """The adapters one server feeds with its own workspace's host events."""

    timer: TimerService
    workspace_id: str
    options: AutoPauseOptions
    branches: BranchChangeMonitor
    workspaces: WorkspaceActivityTracker
    reported: ReportedBranches

    @classmethod
    def for_timer(
        cls,
        timer: TimerService,
        directory: BranchIssueDirectory,
        options: AutoPauseOptions,
        *,
        workspace_id: str,
        cleanup_interval: int = BRANCH_CLEANUP_INTERVAL,
    ) -> HostEvents:
        reported = ReportedBranches()
        return cls(
            timer=timer,
            workspace_id=workspace_id,
            options=options,
            branches=BranchChangeMonitor(
                timer,
                directory,
                options,
                source_control=reported,
                cleanup_interval=cleanup_interval,
            ),
            workspaces=WorkspaceActivityTracker(
                lambda candidate: timer if candidate == workspace_id else None, options
            ),
            reported=reported,
        )

    def focus_changed(self, focused: bool, workspace_id: str | None = None) -> bool:
        if not focused:
            return handle_focus_lost([self.timer], self.options) > 0
        target = self.timer if workspace_id in (None, self.workspace_id) else None
        return handle_focus_gained(target, self.options)

    def workspace_activated(self, workspace_id: str) -> bool:
        return self.workspaces.activated(workspace_id)

    def branch_reported(
        self,
        repository_root: str,
        branch_name: str,
        live_branches: Iterable[str] | None = None,
    ) -> bool:
        self.reported.report(branch_name, live_branches)
        return self.branches.repository_changed(repository_root, branch_name)


__all__ = [
    "BRANCH_CLEANUP_INTERVAL",
    "BranchChangeMonitor",
    "HostEvents",
    "WorkspaceActivityTracker",
    "handle_focus_gained",
    "handle_focus_lost",
    "handle_workspace_switch",
]
