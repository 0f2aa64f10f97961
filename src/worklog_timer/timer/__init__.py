"""Timer state machine."""

from ..ledger import TimerState
from .service import (
    SLEEP_DETECTION_THRESHOLD_MS,
    TICK_INTERVAL_MS,
    TimerListener,
    TimerService,
    TimerSnapshot,
)

__all__ = [
    "SLEEP_DETECTION_THRESHOLD_MS",
    "TICK_INTERVAL_MS",
    "TimerListener",
    "TimerService",
    "TimerSnapshot",
    "TimerState",
]
