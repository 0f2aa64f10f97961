from __future__ import annotations

import errno
import socket
import ssl

import pytest

from worklog_timer.tracker import (
    ErrorKind,
    TrackerConfigurationError,
    TrackerError,
    TrackerNoRouteError,
    TrackerRejectedError,
    TrackerTLSError,
    TrackerUnreachableError,
    TransientTrackerError,
    classify_error,
    is_transient,
)


@pytest.mark.parametrize(
    "error, kind",
    [
        (socket.gaierror(socket.EAI_NONAME, "Name or service not known"), ErrorKind.UNREACHABLE_HOST),
        (ConnectionRefusedError(errno.ECONNREFUSED, "refused"), ErrorKind.CONNECTION_REFUSED),
        (ssl.SSLError("handshake failure"), ErrorKind.TLS_FAILURE),
        (TimeoutError("timed out"), ErrorKind.TIMEOUT),
        (OSError(errno.EHOSTUNREACH, "No route to host"), ErrorKind.NO_ROUTE),
        (OSError(errno.ENETUNREACH, "Network is unreachable"), ErrorKind.NO_ROUTE),
        (TrackerUnreachableError("dns"), ErrorKind.UNREACHABLE_HOST),
        (TrackerTLSError("tls"), ErrorKind.TLS_FAILURE),
        (TrackerNoRouteError("route"), ErrorKind.NO_ROUTE),
        (TransientTrackerError("network"), ErrorKind.NETWORK),
    ],
)
def test_transient_failures(error: BaseException, kind: ErrorKind) -> None:
    assert classify_error(error) is kind
    assert is_transient(error)


@pytest.mark.parametrize(
    "error, kind",
    [
        (TrackerRejectedError("Unauthorized", status_code=401), ErrorKind.OTHER),
        (TrackerConfigurationError("missing token"), ErrorKind.CONFIGURATION),
        (TrackerError("server exploded"), ErrorKind.OTHER),
        (ValueError("bad json"), ErrorKind.OTHER),
        (OSError(errno.EACCES, "Permission denied"), ErrorKind.OTHER),
        (None, ErrorKind.OTHER),
    ],
)
def test_permanent_failures(error: BaseException | None, kind: ErrorKind) -> None:
    assert classify_error(error) is kind
    assert not is_transient(error)


def test_wrapped_socket_failure_is_transient() -> None:
    try:
        try:
            raise ConnectionRefusedError("refused")
        except ConnectionRefusedError:
            raise RuntimeError("client library failure")
    except RuntimeError as exc:
        wrapped = exc

    assert wrapped.__context__ is not None
    assert classify_error(wrapped) is ErrorKind.CONNECTION_REFUSED


def test_rejection_is_never_reclassified_by_its_cause() -> None:
    rejection = TrackerRejectedError("Issue does not exist", status_code=404)
    rejection.__cause__ = TimeoutError("earlier timeout")

    assert not is_transient(rejection)
    assert rejection.status_code == 404


def test_cyclic_chain_terminates() -> None:
    first = RuntimeError("first")
    second = RuntimeError("second")
    first.__cause__ = second
    second.__cause__ = first

    assert classify_error(first) is ErrorKind.OTHER
