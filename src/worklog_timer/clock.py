"""Time sources for the timer and the submission queue."""

from __future__ import annotations

import time
from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    """Minimal clock API used by the core."""

    def now_ms(self) -> int:
        ...

    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall-clock readings; they keep advancing across machine suspend."""

    def now_ms(self) -> int:
        return time.time_ns() // 1_000_000

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class ManualClock:
    """Test double whose time only moves when told to."""

    def __init__(self, start_ms: int = 0) -> None:
        self._now_ms = start_ms

    def now_ms(self) -> int:
        return self._now_ms

    def now(self) -> datetime:
        return datetime.fromtimestamp(0, tz=timezone.utc) + timedelta(milliseconds=self._now_ms)

    def advance(self, ms: int) -> int:
        self._now_ms += ms
        return self._now_ms

    def set(self, ms: int) -> None:
        self._now_ms = ms


__all__ = ["Clock", "ManualClock", "SystemClock"]
