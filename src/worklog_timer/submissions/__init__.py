"""Offline submission queue."""

from .queue import (
    RETRY_INTERVAL_SECONDS,
    OfflineSubmissionQueue,
    RetryReport,
    SubmissionResult,
    SubmissionStatus,
)

__all__ = [
    "OfflineSubmissionQueue",
    "RETRY_INTERVAL_SECONDS",
    "RetryReport",
    "SubmissionResult",
    "SubmissionStatus",
]
