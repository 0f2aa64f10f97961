"""User-visible notifications raised by the submission queue."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

logger = logging.getLogger(__name__)

RECENT_NOTIFICATION_LIMIT = 50


class NotificationLevel(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class Notifier(Protocol):
    def notify(self, message: str, level: NotificationLevel = NotificationLevel.INFO) -> None:
        ...


class LoggingNotifier:
    """Default sink: hands notifications to the ``worklog_timer.notifications`` logger."""

    _LEVELS = {
        NotificationLevel.INFO: logging.INFO,
        NotificationLevel.WARNING: logging.WARNING,
        NotificationLevel.ERROR: logging.ERROR,
    }

    def notify(self, message: str, level: NotificationLevel = NotificationLevel.INFO) -> None:
        logger.log(self._LEVELS[level], message, extra={"notification": True})


@dataclass(slots=True)
class Notification:
    message: str
    level: NotificationLevel


class RecordingNotifier:
    """Keeps notifications in memory and optionally passes each one on.

    With ``limit`` only the most recent notifications are kept, so a
    long-running server holds a fixed-size window for its status resource.
    """

    def __init__(self, *, limit: int | None = None, forward_to: Notifier | None = None) -> None:
        if limit is not None and limit <= 0:
            raise ValueError("limit must be positive")
        self.notifications: deque[Notification] = deque(maxlen=limit)
        self._forward_to = forward_to

    def notify(self, message: str, level: NotificationLevel = NotificationLevel.INFO) -> None:
        self.notifications.append(Notification(message=message, level=level))
        if self._forward_to is not None:
            self._forward_to.notify(message, level)

    def recent(self, count: int) -> list[Notification]:
        if count <= 0:
            return []
        return list(self.notifications)[-count:]

    @property
    def messages(self) -> list[str]:
        return [item.message for item in self.notifications]


__all__ = [
    "LoggingNotifier",
    "Notification",
    "NotificationLevel",
    "Notifier",
    "RECENT_NOTIFICATION_LIMIT",
    "RecordingNotifier",
]
