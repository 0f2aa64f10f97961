"""Branch-to-work-item memory backed by the ledger."""

from __future__ import annotations

import logging
import threading
from typing import Iterable, Protocol

from ..ledger import Ledger
from .parser import extract_primary_key

logger = logging.getLogger(__name__)

DETACHED_BRANCH = "detached"
SHORT_HASH_LENGTH = 7


class SourceControl(Protocol):
    """What the core needs from the version-control integration."""

    def current_branch(self) -> str | None:
        ...

    def live_branches(self) -> set[str]:
        ...


class ReportedBranches:
    """Source control as last reported by the host editor."""

    def __init__(self) -> None:
        self._current: str | None = None
        self._live: set[str] = set()
        self._lock = threading.Lock()

    def report(self, current: str | None, live: Iterable[str] | None = None) -> None:
        with self._lock:
            self._current = current
            if live is not None:
                self._live = {name for name in live if name}

    def current_branch(self) -> str | None:
        return self._current

    def live_branches(self) -> set[str]:
        with self._lock:
            return set(self._live)


def branch_name_or_revision(branch: str | None, revision: str | None = None) -> str:
    """Name the checkout: the branch, else ``detached:<short-hash>``, else ``detached``."""

    if branch:
        return branch
    if revision is not None and len(revision) > SHORT_HASH_LENGTH:
        return f"{DETACHED_BRANCH}:{revision[:SHORT_HASH_LENGTH]}"
    return DETACHED_BRANCH


class BranchIssueDirectory:
    """Remembers which work item was selected on which branch.

    A global "last used" key is always kept as the fallback, so contexts
    without version control still resolve.
    """

    def __init__(self, ledger: Ledger) -> None:
        self._ledger = ledger

    def record_selection(self, work_item_key: str, branch_name: str | None = None) -> None:
        key = work_item_key.strip()
        if not key:
            raise ValueError("work_item_key must not be empty")
        with self._ledger.transaction():
            self._ledger.set_last_issue_key(key)
            if branch_name:
                self._ledger.save_issue_for_branch(branch_name, key)

    def resolve(self, branch_name: str | None = None) -> str | None:
        if branch_name:
            key = self._ledger.issue_for_branch(branch_name)
            if key is not None:
                return key
        return self._ledger.last_issue_key()

    def suggest(self, branch_name: str | None = None) -> str | None:
        """Like :meth:`resolve`, but consult the branch name itself before the fallback."""

        if branch_name:
            key = self._ledger.issue_for_branch(branch_name) or extract_primary_key(branch_name)
            if key is not None:
                return key
        return self._ledger.last_issue_key()

    def restore_for_branch(self, branch_name: str | None) -> str | None:
        """Resolve the key for ``branch_name`` and make it the global fallback too."""

        key = self.resolve(branch_name)
        if key is not None:
            self.record_selection(key, branch_name)
        return key

    def prune_branches(self, live_branch_names: Iterable[str]) -> list[str]:
        removed = self._ledger.cleanup_deleted_branches(live_branch_names)
        if removed:
            logger.info("Pruned stale branch mappings", extra={"count": len(removed)})
        return removed

    def branch_mappings(self) -> dict[str, str]:
        return self._ledger.branch_issues()


__all__ = [
    "BranchIssueDirectory",
    "DETACHED_BRANCH",
    "ReportedBranches",
    "SourceControl",
    "branch_name_or_revision",
]
