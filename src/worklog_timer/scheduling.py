"""Cancelable fixed-interval background jobs on APScheduler."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Run ``action`` every ``interval_seconds`` on a background scheduler.

    At most one run is in flight at a time; runs missed while one was busy
    are coalesced into a single catch-up run. ``cancel`` stops rescheduling
    and, with ``wait``, lets a run that is already in progress finish.
    """

    def __init__(
        self,
        name: str,
        interval_seconds: float,
        action: Callable[[], object],
        *,
        initial_delay: float | None = None,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._name = name
        self._interval = interval_seconds
        self._initial_delay = interval_seconds if initial_delay is None else initial_delay
        self._action = action
        self._scheduler: BackgroundScheduler | None = None
        self._cancelled = False
        self._runs = 0
        self._runs_lock = threading.Lock()

    @property
    def name(self) -> str:
        return self._name

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running and not self._cancelled

    @property
    def runs(self) -> int:
        return self._runs

    def start(self) -> None:
        if self._scheduler is not None:
            raise RuntimeError(f"Periodic task '{self._name}' already started")
        scheduler = BackgroundScheduler(timezone=timezone.utc)
        scheduler.add_job(
            self._run,
            trigger=IntervalTrigger(seconds=self._interval, timezone=timezone.utc),
            id=self._name,
            name=self._name,
            next_run_time=datetime.now(timezone.utc) + timedelta(seconds=self._initial_delay),
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler = scheduler
        scheduler.start()
        logger.debug("Started periodic task", extra={"task": self._name, "interval": self._interval})

    def cancel(self, *, wait: bool = True) -> None:
        self._cancelled = True
        scheduler = self._scheduler
        if scheduler is not None and scheduler.running:
            scheduler.shutdown(wait=wait)
        logger.debug("Cancelled periodic task", extra={"task": self._name, "runs": self._runs})

    def _run(self) -> None:
        if self._cancelled:
            return
        try:
            self._action()
        except Exception:
            logger.exception("Periodic task failed", extra={"task": self._name})
        with self._runs_lock:
            self._runs += 1


__all__ = ["PeriodicTask"]
