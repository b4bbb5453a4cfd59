from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any

import httpx

NETWORK_MESSAGE = "Network error. Please check your connection and try again."
TIMEOUT_MESSAGE = "Request timed out."
CANCELLED_MESSAGE = "Request was cancelled."
DEFAULT_MESSAGE = "Something went wrong. Please try again."

_STATUS_MESSAGES = {
    401: "Unauthorized. Please login again.",
    403: "You don't have permission to perform this action.",
    404: "Requested resource was not found.",
}

# Keys that carry a message rather than a field-level validation error.
_MESSAGE_KEYS = ("detail", "message")


class ErrorKind(str, Enum):
    NETWORK = "network"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    AUTH_EXPIRED = "auth_expired"  # 401 before the one allowed retry; never surfaced to callers
    AUTH_FAILED = "auth_failed"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    CLIENT = "client"
    SERVER = "server"
    UNKNOWN = "unknown"


class ApiError(Exception):
    """
    The one error shape callers see.

    `status` is 0 when no response reached the client. `message` is always a
    non-empty, display-ready string. `raw` keeps the decoded payload (or the
    original exception) for debugging. Attributes are read-only.
    """

    def __init__(
        self,
        status: int,
        message: str,
        raw: Any = None,
        kind: ErrorKind | None = None,
    ) -> None:
        msg = str(message or "").strip() or DEFAULT_MESSAGE
        super().__init__(msg)
        self._status = int(status)
        self._message = msg
        self._raw = raw
        self._kind = kind if kind is not None else kind_for_status(self._status, raw)

    @property
    def status(self) -> int:
        return self._status

    @property
    def message(self) -> str:
        return self._message

    @property
    def raw(self) -> Any:
        return self._raw

    @property
    def kind(self) -> ErrorKind:
        return self._kind

    @property
    def is_auth_failure(self) -> bool:
        return self._kind is ErrorKind.AUTH_FAILED

    def to_dict(self) -> dict[str, Any]:
        return {"status": self._status, "kind": self._kind.value, "message": self._message}

    def __repr__(self) -> str:
        return f"ApiError(status={self._status}, kind={self._kind.value}, message={self._message!r})"

    @classmethod
    def cancelled(cls, reason: Any = None) -> ApiError:
        return cls(0, CANCELLED_MESSAGE, raw=reason, kind=ErrorKind.CANCELLED)

    @classmethod
    def auth_failed(cls, cause: ApiError | None = None) -> ApiError:
        """
        Terminal "must re-authenticate" error.

        When built from a failed refresh the message comes from the refresh
        response body if it has one; otherwise the 401 default is used.
        """
        raw = cause.raw if cause is not None else None
        msg = extract_message(raw) or _STATUS_MESSAGES[401]
        return cls(401, msg, raw=raw, kind=ErrorKind.AUTH_FAILED)


def extract_message(payload: Any) -> str | None:
    """
    First human-readable string in a structured error body.

    Checks `detail`, then `message`, then the first string-valued key (or the
    first element of a list-of-strings value), in body order.
    """
    if not isinstance(payload, dict) or not payload:
        return None

    for key in _MESSAGE_KEYS:
        v = payload.get(key)
        if isinstance(v, str) and v.strip():
            return v

    for v in payload.values():
        if isinstance(v, str) and v.strip():
            return v
        if isinstance(v, (list, tuple)) and v:
            first = v[0]
            if isinstance(first, str) and first.strip():
                return first
    return None


def default_message(status: int) -> str:
    return _STATUS_MESSAGES.get(int(status), DEFAULT_MESSAGE)


def _has_field_errors(payload: Any) -> bool:
    """DRF-style `{"field": ["message", ...]}` bodies."""
    if not isinstance(payload, dict):
        return False
    return any(
        k not in _MESSAGE_KEYS
        and isinstance(v, list)
        and v
        and all(isinstance(item, str) for item in v)
        for k, v in payload.items()
    )


def kind_for_status(status: int, payload: Any = None, *, retried: bool = True) -> ErrorKind:
    """
    Classify an HTTP status. A 401 is `AUTH_EXPIRED` only while the request
    still has its retry available.
    """
    if status == 0:
        return ErrorKind.UNKNOWN
    if status == 401:
        return ErrorKind.AUTH_FAILED if retried else ErrorKind.AUTH_EXPIRED
    if status == 403:
        return ErrorKind.FORBIDDEN
    if status == 404:
        return ErrorKind.NOT_FOUND
    if status >= 500:
        return ErrorKind.SERVER
    if 400 <= status < 500:
        return ErrorKind.VALIDATION if _has_field_errors(payload) else ErrorKind.CLIENT
    return ErrorKind.UNKNOWN


def read_payload(response: httpx.Response) -> Any:
    """
    Decoded body of a response: JSON when the content type says so, otherwise
    the text (or None when empty / unread).
    """
    try:
        ctype = response.headers.get("content-type", "")
        if "json" in ctype.lower():
            return response.json()
        text = response.text
    except Exception:
        return None
    return text or None


def from_response(response: httpx.Response) -> ApiError:
    status = int(response.status_code)
    payload = read_payload(response)
    msg = extract_message(payload) or default_message(status)
    return ApiError(status, msg, raw=payload, kind=kind_for_status(status, payload))


def _normalize(error: object) -> ApiError:
    if isinstance(error, ApiError):
        return error
    if isinstance(error, httpx.Response):
        return from_response(error)
    if isinstance(error, httpx.HTTPStatusError):
        return from_response(error.response)
    if isinstance(error, (httpx.TimeoutException, asyncio.TimeoutError, TimeoutError)):
        return ApiError(0, TIMEOUT_MESSAGE, raw=error, kind=ErrorKind.TIMEOUT)
    if isinstance(error, (httpx.TransportError, ConnectionError)):
        return ApiError(0, NETWORK_MESSAGE, raw=error, kind=ErrorKind.NETWORK)
    if isinstance(error, httpx.RequestError):
        return ApiError(0, NETWORK_MESSAGE, raw=error, kind=ErrorKind.NETWORK)
    if isinstance(error, asyncio.CancelledError):
        return ApiError.cancelled(error)
    if isinstance(error, BaseException):
        return ApiError(0, str(error) or DEFAULT_MESSAGE, raw=error, kind=ErrorKind.UNKNOWN)
    return ApiError(0, DEFAULT_MESSAGE, raw=error, kind=ErrorKind.UNKNOWN)


def normalize(error: object) -> ApiError:
    """
    Convert any transport/HTTP failure into an `ApiError`. Pure and total.
    """
    try:
        return _normalize(error)
    except Exception:
        return ApiError(0, DEFAULT_MESSAGE, raw=error, kind=ErrorKind.UNKNOWN)
