"""Typed tracker failures and their transient/permanent classification."""

from __future__ import annotations

import errno
import socket
import ssl
from enum import Enum


class ErrorKind(str, Enum):
    UNREACHABLE_HOST = "unreachable_host"
    CONNECTION_REFUSED = "connection_refused"
    TLS_FAILURE = "tls_failure"
    TIMEOUT = "timeout"
    NO_ROUTE = "no_route"
    NETWORK = "network"
    CONFIGURATION = "configuration"
    OTHER = "other"


TRANSIENT_KINDS = frozenset(
    {
        ErrorKind.UNREACHABLE_HOST,
        ErrorKind.CONNECTION_REFUSED,
        ErrorKind.TLS_FAILURE,
        ErrorKind.TIMEOUT,
        ErrorKind.NO_ROUTE,
        ErrorKind.NETWORK,
    }
)

_NO_ROUTE_ERRNOS = {errno.EHOSTUNREACH, errno.ENETUNREACH}


class TrackerError(RuntimeError):
    """Base class for failures reported by the remote tracker client."""

    kind: ErrorKind = ErrorKind.OTHER


class TransientTrackerError(TrackerError):
    """The tracker could not be reached; the request may succeed later."""

    kind = ErrorKind.NETWORK


class TrackerUnreachableError(TransientTrackerError):
    """Host name could not be resolved."""

    kind = ErrorKind.UNREACHABLE_HOST


class TrackerConnectionRefusedError(TransientTrackerError):
    kind = ErrorKind.CONNECTION_REFUSED


class TrackerTLSError(TransientTrackerError):
    """TLS handshake with the tracker failed."""

    kind = ErrorKind.TLS_FAILURE


class TrackerTimeoutError(TransientTrackerError):
    kind = ErrorKind.TIMEOUT


class TrackerNoRouteError(TransientTrackerError):
    kind = ErrorKind.NO_ROUTE


class TrackerConfigurationError(TrackerError):
    """Endpoint or credential missing; nothing was sent."""

    kind = ErrorKind.CONFIGURATION


class TrackerRejectedError(TrackerError):
    """The tracker answered and refused the request (auth, validation, not found...)."""

    kind = ErrorKind.OTHER

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _classify_single(error: BaseException) -> ErrorKind | None:
    if isinstance(error, TrackerRejectedError):
        return ErrorKind.OTHER
    if isinstance(error, TrackerError):
        # A bare TrackerError says nothing about connectivity; look at its cause.
        return None if error.kind is ErrorKind.OTHER else error.kind
    # gaierror and SSLError are OSError subclasses, so test them before the errno check.
    if isinstance(error, socket.gaierror):
        return ErrorKind.UNREACHABLE_HOST
    if isinstance(error, ssl.SSLError):
        return ErrorKind.TLS_FAILURE
    if isinstance(error, ConnectionRefusedError):
        return ErrorKind.CONNECTION_REFUSED
    if isinstance(error, TimeoutError):
        return ErrorKind.TIMEOUT
    if isinstance(error, OSError) and error.errno in _NO_ROUTE_ERRNOS:
        return ErrorKind.NO_ROUTE
    return None


def classify_error(error: BaseException | None) -> ErrorKind:
    """Map an exception to an :class:`ErrorKind`.

    The ``__cause__``/``__context__`` chain is followed, so a client library
    exception that wraps a socket failure still classifies as transient.
    """

    seen: set[int] = set()
    current = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        kind = _classify_single(current)
        if kind is not None:
            return kind
        current = current.__cause__ or current.__context__
    return ErrorKind.OTHER


def is_transient(error: BaseException | None) -> bool:
    return classify_error(error) in TRANSIENT_KINDS


__all__ = [
    "ErrorKind",
    "TRANSIENT_KINDS",
    "TrackerConfigurationError",
    "TrackerConnectionRefusedError",
    "TrackerError",
    "TrackerNoRouteError",
    "TrackerRejectedError",
    "TrackerTLSError",
    "TrackerTimeoutError",
    "TrackerUnreachableError",
    "TransientTrackerError",
    "classify_error",
    "is_transient",
]
