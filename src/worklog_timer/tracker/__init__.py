"""Remote tracker collaborator contract."""

from .client import FakeTrackerClient, TrackerClient, TrackerFactoryError, load_tracker
from .errors import (
    ErrorKind,
    TrackerConfigurationError,
    TrackerConnectionRefusedError,
    TrackerError,
    TrackerNoRouteError,
    TrackerRejectedError,
    TrackerTimeoutError,
    TrackerTLSError,
    TrackerUnreachableError,
    TransientTrackerError,
    classify_error,
    is_transient,
)
from .models import SearchResult, WorkItem, WorklogEntry

__all__ = [
    "ErrorKind",
    "FakeTrackerClient",
    "SearchResult",
    "TrackerClient",
    "TrackerConfigurationError",
    "TrackerConnectionRefusedError",
    "TrackerError",
    "TrackerFactoryError",
    "TrackerNoRouteError",
    "TrackerRejectedError",
    "TrackerTimeoutError",
    "TrackerTLSError",
    "TrackerUnreachableError",
    "TransientTrackerError",
    "WorkItem",
    "WorklogEntry",
    "classify_error",
    "is_transient",
    "load_tracker",
]
