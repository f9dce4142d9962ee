"""Error taxonomy for transport and session failures."""
from enum import Enum
from typing import Optional

import requests
from pydantic import ValidationError

TRANSIENT_STATUSES = {408, 429}
AUTH_STATUSES = {401, 403}


class ErrorKind(str, Enum):
    TRANSIENT = "transient"
    TLS = "tls"
    AUTH = "auth"
    FATAL = "fatal"


class RoomSyncError(Exception):
    """Base class for errors raised to callers of the client."""


class AuthError(RoomSyncError):
    """Raised when the server rejects credentials or the access token."""


class TransportError(RoomSyncError):
    def __init__(self, kind: ErrorKind, detail: str, status: Optional[int] = None):
        self.kind = kind
        self.detail = detail
        self.status = status
        super().__init__(f"{kind.value}: {detail}")


def _status_kind(status: int) -> ErrorKind:
    if status in AUTH_STATUSES:
        return ErrorKind.AUTH
    if status in TRANSIENT_STATUSES or status >= 500:
        return ErrorKind.TRANSIENT
    return ErrorKind.FATAL


def classify_error(exc: BaseException) -> ErrorKind:
    """Map a low-level failure to the kind the sync loop acts on."""
    if isinstance(exc, TransportError):
        return exc.kind
    if isinstance(exc, requests.exceptions.SSLError):
        return ErrorKind.TLS
    if isinstance(exc, requests.exceptions.HTTPError):
        response = exc.response
        if response is None:
            return ErrorKind.TRANSIENT
        return _status_kind(response.status_code)
    if isinstance(
        exc,
        (
            requests.exceptions.ConnectionError,
            requests.exceptions.Timeout,
            requests.exceptions.ChunkedEncodingError,
            requests.exceptions.ContentDecodingError,
        ),
    ):
        return ErrorKind.TRANSIENT
    # Malformed bodies: JSON decoding raises ValueError subclasses.
    if isinstance(exc, (ValidationError, ValueError)):
        return ErrorKind.TRANSIENT
    return ErrorKind.FATAL


def wrap_error(exc: BaseException) -> TransportError:
    if isinstance(exc, TransportError):
        return exc
    status = None
    response = getattr(exc, "response", None)
    if response is not None:
        status = response.status_code
    return TransportError(classify_error(exc), str(exc) or exc.__class__.__name__, status=status)
