"""JSON-file persistence for timer and queue state."""

from __future__ import annotations

import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator

from pydantic import ValidationError

from .models import LedgerState, PendingSubmission, TimerState

logger = logging.getLogger(__name__)


class LedgerError(RuntimeError):
    """Raised when the ledger file exists but cannot be read back."""


class Ledger:
    """Durable key-value record backing the timer, the branch map and the pending queue.

    Every mutator writes the whole record to disk before returning, except
    inside :meth:`transaction`, where the write happens once on exit. A
    ``path`` of ``None`` keeps the record in memory only.
    """

    def __init__(self, path: Path | str | None = None) -> None:
        self._path = Path(path) if path is not None else None
        self._lock = threading.RLock()
        self._depth = 0
        self._dirty = False
        self._state = self._load()

    @property
    def path(self) -> Path | None:
        return self._path

    def _load(self) -> LedgerState:
        if self._path is None or not self._path.exists():
            return LedgerState()

        raw = self._path.read_text(encoding="utf-8")
        if not raw.strip():
            return LedgerState()
        try:
            return LedgerState.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning("Ledger file is unreadable", extra={"path": str(self._path)})
            raise LedgerError(f"Failed to load ledger from {self._path}: {exc}") from exc

    def _write(self) -> None:
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = self._state.model_dump_json(indent=2)
        fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, prefix=".ledger-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _commit(self) -> None:
        if self._depth:
            self._dirty = True
            return
        self._write()

    @contextmanager
    def transaction(self) -> Iterator[Ledger]:
        """Group several mutations into a single write."""

        with self._lock:
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
                if self._depth == 0 and self._dirty:
                    self._dirty = False
                    self._write()

    def snapshot(self) -> LedgerState:
        with self._lock:
            return self._state.model_copy(deep=True)

    def flush(self) -> None:
        with self._lock:
            self._write()

    # ---- Elapsed time ----

    def total_time_ms(self) -> int:
        with self._lock:
            return self._state.total_time_ms

    def set_total_time_ms(self, value: int) -> None:
        with self._lock:
            self._state.total_time_ms = max(0, int(value))
            self._commit()

    def add_time_ms(self, delta: int) -> int:
        with self._lock:
            self._state.total_time_ms = max(0, self._state.total_time_ms + int(delta))
            self._commit()
            return self._state.total_time_ms

    # ---- Timer state ----

    def status(self) -> TimerState:
        with self._lock:
            return self._state.status

    def set_status(self, status: TimerState) -> None:
        with self._lock:
            self._state.status = status
            self._commit()

    def last_update_timestamp(self) -> int:
        with self._lock:
            return self._state.last_update_timestamp

    def set_last_update_timestamp(self, timestamp_ms: int) -> None:
        with self._lock:
            self._state.last_update_timestamp = timestamp_ms
            self._commit()

    def auto_paused_by_focus(self) -> bool:
        with self._lock:
            return self._state.auto_paused_by_focus

    def set_auto_paused_by_focus(self, paused: bool) -> None:
        with self._lock:
            self._state.auto_paused_by_focus = paused
            self._commit()

    def auto_paused_by_workspace_switch(self) -> bool:
        with self._lock:
            return self._state.auto_paused_by_workspace_switch

    def set_auto_paused_by_workspace_switch(self, paused: bool) -> None:
        with self._lock:
            self._state.auto_paused_by_workspace_switch = paused
            self._commit()

    def clear_auto_pause_flags(self) -> None:
        with self._lock:
            self._state.auto_paused_by_focus = False
            self._state.auto_paused_by_workspace_switch = False
            self._commit()

    def reset(self) -> None:
        """Zero the elapsed time, stop the timer and clear both auto-pause flags."""

        with self._lock:
            self._state.total_time_ms = 0
            self._state.status = TimerState.STOPPED
            self._state.last_update_timestamp = 0
            self._state.auto_paused_by_focus = False
            self._state.auto_paused_by_workspace_switch = False
            self._commit()

    # ---- Selection memory ----

    def last_issue_key(self) -> str | None:
        with self._lock:
            return self._state.last_issue_key

    def set_last_issue_key(self, key: str | None) -> None:
        with self._lock:
            self._state.last_issue_key = key
            self._commit()

    def last_comment(self) -> str | None:
        with self._lock:
            return self._state.last_comment

    def set_last_comment(self, comment: str | None) -> None:
        with self._lock:
            self._state.last_comment = comment
            self._commit()

    def issue_for_branch(self, branch_name: str) -> str | None:
        with self._lock:
            return self._state.branch_issues.get(branch_name)

    def save_issue_for_branch(self, branch_name: str, key: str) -> None:
        with self._lock:
            self._state.branch_issues[branch_name] = key
            self._commit()

    def branch_issues(self) -> dict[str, str]:
        with self._lock:
            return dict(self._state.branch_issues)

    def cleanup_deleted_branches(self, live_branches: Iterable[str]) -> list[str]:
        """Drop every branch mapping whose branch is not in ``live_branches``."""

        live = set(live_branches)
        with self._lock:
            removed = [name for name in self._state.branch_issues if name not in live]
            if not removed:
                return []
            for name in removed:
                del self._state.branch_issues[name]
            self._commit()
            return removed

    # ---- Pending submissions ----

    def pending_submissions(self) -> list[PendingSubmission]:
        with self._lock:
            return [entry.model_copy() for entry in self._state.pending_submissions]

    def add_pending_submission(self, entry: PendingSubmission) -> None:
        with self._lock:
            self._state.pending_submissions.append(entry)
            self._commit()

    def remove_pending_submissions(self, entry_ids: Iterable[str]) -> int:
        ids = set(entry_ids)
        with self._lock:
            kept = [entry for entry in self._state.pending_submissions if entry.id not in ids]
            removed = len(self._state.pending_submissions) - len(kept)
            if removed:
                self._state.pending_submissions = kept
                self._commit()
            return removed


__all__ = ["Ledger", "LedgerError"]
