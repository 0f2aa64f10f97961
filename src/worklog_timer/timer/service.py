"""Timer state machine: elapsed-time accounting and auto-pause arbitration."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable

from ..clock import Clock, SystemClock
from ..config import AutoPauseOptions
from ..ledger import Ledger, TimerState
from ..scheduling import PeriodicTask

logger = logging.getLogger(__name__)

TICK_INTERVAL_MS = 1000
SLEEP_DETECTION_THRESHOLD_MS = 5000


@dataclass(frozen=True, slots=True)
class TimerSnapshot:
    state: TimerState
    total_time_ms: int
    paused_by_focus: bool
    paused_by_workspace_switch: bool

    @property
    def total_time_seconds(self) -> int:
        return self.total_time_ms // 1000


TimerListener = Callable[[TimerSnapshot], None]


class TimerService:
    """Owns the Running/Idle/Stopped lifecycle and the tick loop.

    All reads and writes happen under one lock shared with the tick, so every
    public call is atomic with respect to the others. No call raises: a
    request whose precondition does not hold is a silent no-op.
    """

    def __init__(
        self,
        ledger: Ledger,
        *,
        clock: Clock | None = None,
        options: AutoPauseOptions | None = None,
        tick_interval_ms: int = TICK_INTERVAL_MS,
        sleep_threshold_ms: int = SLEEP_DETECTION_THRESHOLD_MS,
    ) -> None:
        self._ledger = ledger
        self._clock = clock or SystemClock()
        self._options = options or AutoPauseOptions()
        self._tick_interval_ms = tick_interval_ms
        self._sleep_threshold_ms = sleep_threshold_ms
        self._lock = threading.RLock()
        self._last_tick_ms = self._clock.now_ms()
        self._listeners: list[TimerListener] = []
        self._ticker: PeriodicTask | None = None

    # ---- Read-only views ----

    @property
    def options(self) -> AutoPauseOptions:
        return self._options

    @options.setter
    def options(self, value: AutoPauseOptions) -> None:
        with self._lock:
            self._options = value

    @property
    def status(self) -> TimerState:
        with self._lock:
            return self._ledger.status()

    @property
    def total_time_ms(self) -> int:
        with self._lock:
            return self._ledger.total_time_ms()

    @property
    def total_time_seconds(self) -> int:
        return self.total_time_ms // 1000

    def snapshot(self) -> TimerSnapshot:
        with self._lock:
            return self._snapshot_locked()

    def add_listener(self, listener: TimerListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: TimerListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ---- Manual transitions ----

    def start(self) -> None:
        with self._lock, self._ledger.transaction():
            self._ledger.clear_auto_pause_flags()
            self._set_status_locked(TimerState.RUNNING)
            snapshot = self._snapshot_locked()
        logger.info("Timer started")
        self._emit(snapshot)

    def stop(self) -> None:
        with self._lock, self._ledger.transaction():
            self._ledger.clear_auto_pause_flags()
            self._set_status_locked(TimerState.STOPPED)
            snapshot = self._snapshot_locked()
        logger.info("Timer stopped", extra={"total_time_ms": snapshot.total_time_ms})
        self._emit(snapshot)

    def pause(self) -> None:
        self._manual_transition(TimerState.RUNNING, TimerState.IDLE)

    def resume(self) -> None:
        self._manual_transition(TimerState.IDLE, TimerState.RUNNING)

    def toggle(self) -> TimerState:
        with self._lock, self._ledger.transaction():
            self._ledger.clear_auto_pause_flags()
            if self._ledger.status() is TimerState.STOPPED:
                target = TimerState.RUNNING
            else:
                target = TimerState.STOPPED
            self._set_status_locked(target)
            snapshot = self._snapshot_locked()
        logger.info("Timer toggled", extra={"status": target.value})
        self._emit(snapshot)
        return target

    def reset(self) -> None:
        """Zero the elapsed time and stop; used after a delivered or queued submission."""

        with self._lock:
            self._ledger.reset()
            self._last_tick_ms = self._clock.now_ms()
            snapshot = self._snapshot_locked()
        logger.info("Timer reset")
        self._emit(snapshot)

    def settle(self, captured_total_ms: int) -> int:
        """Reset after submitting time read as ``captured_total_ms``.

        Time credited after that read (a tick landing while the tracker call
        was in flight) is carried into the stopped timer instead of being
        zeroed. Returns the carried milliseconds.
        """

        with self._lock:
            carried = max(0, self._ledger.total_time_ms() - captured_total_ms)
            with self._ledger.transaction():
                self._ledger.reset()
                if carried:
                    self._ledger.add_time_ms(carried)
            self._last_tick_ms = self._clock.now_ms()
            snapshot = self._snapshot_locked()
        logger.info("Timer reset", extra={"carried_ms": carried})
        self._emit(snapshot)
        return carried

    def _manual_transition(self, expected: TimerState, target: TimerState) -> None:
        with self._lock, self._ledger.transaction():
            self._ledger.clear_auto_pause_flags()
            changed = self._ledger.status() is expected
            if changed:
                self._set_status_locked(target)
            snapshot = self._snapshot_locked()
        if changed:
            logger.info("Timer status changed", extra={"status": target.value})
        self._emit(snapshot)

    # ---- Automatic transitions ----

    def auto_pause_by_focus(self) -> bool:
        return self._auto_pause(self._ledger.set_auto_paused_by_focus, "focus")

    def auto_pause_by_workspace_switch(self) -> bool:
        return self._auto_pause(self._ledger.set_auto_paused_by_workspace_switch, "workspace_switch")

    def _auto_pause(self, set_flag: Callable[[bool], None], source: str) -> bool:
        """Pause a running timer on behalf of ``source``.

        When the timer is already idle because of another automatic source,
        ``source`` records its flag too without changing state. A manual pause
        or a stopped timer is left untouched.
        """

        with self._lock:
            status = self._ledger.status()
            if status is TimerState.RUNNING:
                with self._ledger.transaction():
                    set_flag(True)
                    self._set_status_locked(TimerState.IDLE)
                paused = True
            elif status is TimerState.IDLE and self._auto_paused_locked():
                set_flag(True)
                paused = False
            else:
                return False
            snapshot = self._snapshot_locked()
        if paused:
            logger.info("Timer auto-paused", extra={"source": source})
        self._emit(snapshot)
        return paused

    def auto_resume_from_focus(self) -> bool:
        """Resume only a timer that focus loss itself paused."""

        with self._lock:
            if not (
                self._ledger.status() is TimerState.IDLE and self._ledger.auto_paused_by_focus()
            ):
                return False
            with self._ledger.transaction():
                self._ledger.set_auto_paused_by_focus(False)
                self._set_status_locked(TimerState.RUNNING)
            snapshot = self._snapshot_locked()
        logger.info("Timer auto-resumed", extra={"source": "focus"})
        self._emit(snapshot)
        return True

    # ---- Manual corrections ----

    def add_time(self, delta_ms: int) -> int:
        with self._lock:
            total = self._ledger.add_time_ms(delta_ms)
            snapshot = self._snapshot_locked()
        self._emit(snapshot)
        return total

    def set_total_time(self, total_ms: int) -> int:
        with self._lock:
            self._ledger.set_total_time_ms(total_ms)
            snapshot = self._snapshot_locked()
        self._emit(snapshot)
        return snapshot.total_time_ms

    def multiply_time(self, factor: float) -> int:
        with self._lock:
            self._ledger.set_total_time_ms(int(self._ledger.total_time_ms() * factor))
            snapshot = self._snapshot_locked()
        self._emit(snapshot)
        return snapshot.total_time_ms

    # ---- Tick loop ----

    def tick(self) -> int:
        """Advance elapsed time by the gap since the previous tick.

        A gap longer than the sleep threshold is never credited; with
        sleep auto-pause enabled it also moves a running timer to Idle.
        Returns the milliseconds credited.
        """

        credited = 0
        slept = False
        with self._lock:
            now = self._clock.now_ms()
            elapsed = now - self._last_tick_ms
            self._last_tick_ms = now
            status = self._ledger.status()

            if elapsed > self._sleep_threshold_ms:
                if self._options.pause_on_system_sleep and status is TimerState.RUNNING:
                    self._set_status_locked(TimerState.IDLE, now)
                    slept = True
            elif elapsed > 0 and status is TimerState.RUNNING:
                with self._ledger.transaction():
                    self._ledger.add_time_ms(elapsed)
                    self._ledger.set_last_update_timestamp(now)
                credited = elapsed

            snapshot = self._snapshot_locked()

        if slept:
            logger.warning("System sleep detected, timer paused", extra={"gap_ms": elapsed})
        if credited or slept:
            self._emit(snapshot)
        return credited

    def start_ticking(self) -> None:
        with self._lock:
            if self._ticker is not None:
                return
            self._last_tick_ms = self._clock.now_ms()
            self._ticker = PeriodicTask(
                "worklog-timer-tick", self._tick_interval_ms / 1000, self.tick
            )
        self._ticker.start()

    def shutdown(self) -> None:
        with self._lock:
            ticker, self._ticker = self._ticker, None
        if ticker is not None:
            ticker.cancel()
        self._ledger.flush()

    # ---- Internal ----

    def _set_status_locked(self, status: TimerState, now: int | None = None) -> None:
        now = self._clock.now_ms() if now is None else now
        with self._ledger.transaction():
            self._ledger.set_status(status)
            self._ledger.set_last_update_timestamp(now)
        self._last_tick_ms = now

    def _auto_paused_locked(self) -> bool:
        return self._ledger.auto_paused_by_focus() or self._ledger.auto_paused_by_workspace_switch()

    def _snapshot_locked(self) -> TimerSnapshot:
        return TimerSnapshot(
            state=self._ledger.status(),
            total_time_ms=self._ledger.total_time_ms(),
            paused_by_focus=self._ledger.auto_paused_by_focus(),
            paused_by_workspace_switch=self._ledger.auto_paused_by_workspace_switch(),
        )

    def _emit(self, snapshot: TimerSnapshot) -> None:
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Timer listener failed")


__all__ = [
    "SLEEP_DETECTION_THRESHOLD_MS",
    "TICK_INTERVAL_MS",
    "TimerListener",
    "TimerService",
    "TimerSnapshot",
]
