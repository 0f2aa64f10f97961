"""Durable state for the worklog timer."""

from .models import LedgerState, PendingSubmission, TimerState
from .store import Ledger, LedgerError

__all__ = [
    "Ledger",
    "LedgerError",
    "LedgerState",
    "PendingSubmission",
    "TimerState",
]
