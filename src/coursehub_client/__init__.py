from __future__ import annotations

from .api import (
    AbortSignal,
    ApiClient,
    ApiError,
    AuthSession,
    ErrorKind,
    RefreshCoordinator,
    normalize,
)

__all__ = [
    "AbortSignal",
    "ApiClient",
    "ApiError",
    "AuthSession",
    "ErrorKind",
    "RefreshCoordinator",
    "normalize",
]
