from __future__ import annotations

from .abort import AbortSignal
from .client import ApiClient
from .credentials import CredentialStore, load_cookie_jar
from .csrf import CsrfCoordinator
from .errors import ApiError, ErrorKind, normalize
from .pipeline import HttpClient, RequestContext
from .query import build_query, parse_number
from .refresh import RefreshCoordinator, RefreshState
from .session import AuthSession

__all__ = [
    "AbortSignal",
    "ApiClient",
    "ApiError",
    "AuthSession",
    "CredentialStore",
    "CsrfCoordinator",
    "ErrorKind",
    "HttpClient",
    "RefreshCoordinator",
    "RefreshState",
    "RequestContext",
    "build_query",
    "load_cookie_jar",
    "normalize",
    "parse_number",
]
