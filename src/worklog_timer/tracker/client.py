"""Remote tracker client contract and an in-memory test double."""

from __future__ import annotations

import importlib
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Iterable, Protocol

from ..time_format import format_tracker
from .errors import TrackerConfigurationError, TrackerRejectedError
from .models import SearchResult, WorkItem, WorklogEntry

if TYPE_CHECKING:
    from ..config import WorklogSettings


class TrackerClient(Protocol):
    """Operations the core consumes from the remote tracker.

    Each call blocks until the tracker answers or the client's own timeout
    fires. Failures are raised as :class:`~.errors.TrackerError` subclasses
    (or raw networking exceptions, which :func:`~.errors.classify_error`
    understands).
    """

    def search_assigned_items(self) -> SearchResult:
        ...

    def fetch_item(self, key: str) -> WorkItem:
        ...

    def submit_time_entry(
        self,
        key: str,
        time_spent_seconds: int,
        comment: str | None = None,
        started_at: datetime | None = None,
    ) -> WorklogEntry:
        ...

    def test_connectivity(self) -> bool:
        ...


class TrackerFactoryError(RuntimeError):
    """Raised when the configured tracker factory cannot be imported or called."""


def load_tracker(settings: WorklogSettings) -> TrackerClient | None:
    """Build the tracker client named by ``settings.tracker_factory``.

    The factory is a ``module:attribute`` import path to a callable taking the
    settings. Returns ``None`` when no factory is configured.
    """

    target = settings.tracker_factory
    if not target:
        return None
    module_name, _, attribute = target.partition(":")
    if not module_name or not attribute:
        raise TrackerFactoryError(f"Tracker factory '{target}' must look like 'module:attribute'")
    try:
        module = importlib.import_module(module_name)
        factory = getattr(module, attribute)
    except (ImportError, AttributeError) as exc:
        raise TrackerFactoryError(f"Cannot import tracker factory '{target}': {exc}") from exc
    return factory(settings)


class FakeTrackerClient:
    """Test double that records submissions and replays scripted failures."""

    def __init__(
        self,
        items: Iterable[WorkItem] | None = None,
        *,
        online: bool = True,
        configured: bool = True,
    ) -> None:
        self._items: dict[str, WorkItem] = {item.key: item for item in items or []}
        self.online = online
        self.configured = configured
        self.failures: list[BaseException] = []
        self.failures_by_key: dict[str, BaseException] = {}
        self.submissions: list[dict[str, object]] = []
        self.connectivity_checks = 0
        self._counter = 0
        self.on_submit: Callable[[str], None] | None = None

    def _require_config(self) -> None:
        if not self.configured:
            raise TrackerConfigurationError("Tracker URL or token is not configured")

    def _next_failure(self, key: str | None = None) -> BaseException | None:
        if key is not None and key in self.failures_by_key:
            return self.failures_by_key[key]
        if self.failures:
            return self.failures.pop(0)
        return None

    def search_assigned_items(self) -> SearchResult:
        self._require_config()
        failure = self._next_failure()
        if failure is not None:
            raise failure
        items = list(self._items.values())
        return SearchResult(items=items, total=len(items))

    def fetch_item(self, key: str) -> WorkItem:
        self._require_config()
        failure = self._next_failure(key)
        if failure is not None:
            raise failure
        try:
            return self._items[key]
        except KeyError as exc:
            raise TrackerRejectedError(f"Work item {key} does not exist", status_code=404) from exc

    def submit_time_entry(
        self,
        key: str,
        time_spent_seconds: int,
        comment: str | None = None,
        started_at: datetime | None = None,
    ) -> WorklogEntry:
        self._require_config()
        if self.on_submit is not None:
            self.on_submit(key)
        failure = self._next_failure(key)
        if failure is not None:
            raise failure
        self._counter += 1
        self.submissions.append(
            {
                "key": key,
                "seconds": time_spent_seconds,
                "comment": comment,
                "started_at": started_at,
            }
        )
        return WorklogEntry(
            id=str(self._counter),
            work_item_key=key,
            time_spent=format_tracker(time_spent_seconds * 1000),
            time_spent_seconds=time_spent_seconds,
        )

    def test_connectivity(self) -> bool:
        self._require_config()
        self.connectivity_checks += 1
        return self.online


__all__ = ["FakeTrackerClient", "TrackerClient", "TrackerFactoryError", "load_tracker"]
