from __future__ import annotations

import threading
import time

import pytest

from worklog_timer.scheduling import PeriodicTask


def test_runs_repeatedly_until_cancelled() -> None:
    done = threading.Event()
    calls: list[int] = []

    def action() -> None:
        calls.append(1)
        if len(calls) >= 3:
            done.set()

    task = PeriodicTask("test-task", 0.05, action, initial_delay=0)
    task.start()
    assert task.running
    assert done.wait(5.0)
    task.cancel()

    assert len(calls) >= 3
    assert not task.running
    assert task.runs >= 3


def test_failures_are_logged_and_schedule_continues(caplog: pytest.LogCaptureFixture) -> None:
    done = threading.Event()
    calls: list[int] = []

    def flaky() -> None:
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")
        done.set()

    task = PeriodicTask("flaky-task", 0.05, flaky, initial_delay=0)
    task.start()
    assert done.wait(5.0)
    task.cancel()

    assert "Periodic task failed" in caplog.text


def test_slow_runs_never_overlap() -> None:
    active = 0
    peak = 0
    lock = threading.Lock()
    done = threading.Event()
    calls: list[int] = []

    def slow() -> None:
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        time.sleep(0.15)
        with lock:
            active -= 1
        calls.append(1)
        if len(calls) >= 2:
            done.set()

    task = PeriodicTask("slow-task", 0.05, slow, initial_delay=0)
    task.start()
    assert done.wait(5.0)
    task.cancel()

    assert peak == 1


def test_cancel_waits_for_in_flight_run() -> None:
    started = threading.Event()
    finished: list[bool] = []

    def action() -> None:
        started.set()
        time.sleep(0.2)
        finished.append(True)

    task = PeriodicTask("in-flight-task", 60, action, initial_delay=0)
    task.start()
    assert started.wait(5.0)

    task.cancel()

    assert finished == [True]


def test_cancel_before_first_run_skips_action() -> None:
    calls: list[int] = []
    task = PeriodicTask("idle-task", 60, lambda: calls.append(1))
    task.start()

    task.cancel()

    assert calls == []
    assert task.runs == 0


def test_invalid_interval_and_double_start() -> None:
    with pytest.raises(ValueError):
        PeriodicTask("bad", 0, lambda: None)

    task = PeriodicTask("once", 60, lambda: None)
    task.start()
    try:
        with pytest.raises(RuntimeError):
            task.start()
    finally:
        task.cancel()
