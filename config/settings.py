from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Any
from urllib.parse import urlsplit

from pydantic import SecretStr

from .public_config import PublicConfig
from .secret_config import SecretConfig


class ConfigError(RuntimeError):
    pass


@dataclass(frozen=True, slots=True)
class Settings:
    """
    Public and secret config behind one attribute namespace; a secret field
    shadows a public one of the same name.
    """

    public: PublicConfig
    secret: SecretConfig

    def __getattr__(self, name: str) -> Any:
        if hasattr(self.secret, name):
            return getattr(self.secret, name)
        return getattr(self.public, name)

    def csrf_method_set(self) -> frozenset[str]:
        return self.public.csrf_method_set()

    def api_base_url(self) -> str:
        return self.public.api_base_url()

    def auth_base_url(self) -> str:
        return self.public.auth_base_url()


def _is_local_host(host: str) -> bool:
    h = (host or "").lower()
    return h in {"localhost", "127.0.0.1", "::1"} or h.startswith("127.")


def _validate_settings(s: Settings) -> None:
    """
    Hard-fail only when explicitly requested.

    Session cookies and CSRF tokens travel on every request, so a plaintext
    backend URL is flagged unless it points at the local machine.
    """
    strict = bool(int(os.environ.get("STRICT_CONFIG", "0") or "0"))

    problems: list[str] = []
    parts = urlsplit(s.public.api_url)
    if parts.scheme not in {"http", "https"}:
        problems.append("COURSEHUB_API_URL (scheme must be http or https)")
    elif parts.scheme == "http" and not _is_local_host(parts.hostname or ""):
        problems.append("COURSEHUB_API_URL (plain http to a remote host)")
    if not s.public.csrf_header_name.strip():
        problems.append("COURSEHUB_CSRF_HEADER")
    if not s.public.csrf_cookie_name.strip():
        problems.append("COURSEHUB_CSRF_COOKIE")
    if s.public.timeout_sec <= 0:
        problems.append("COURSEHUB_TIMEOUT_SEC")

    if problems:
        if strict:
            raise ConfigError("Unsafe client configuration detected: " + ", ".join(problems) + ".")
        logging.getLogger("coursehub_client").warning(
            "unsafe_config_detected",
            extra={"problems": problems, "strict_config": False},
        )


def get_safe_config_report() -> dict[str, Any]:
    """
    Effective configuration for `coursehub config`. Public values are shown as
    loaded (paths as strings); credentials only as SET or UNSET.
    """
    s = get_settings()

    pub = s.public.model_dump()
    pub_s: dict[str, Any] = {}
    for k, v in pub.items():
        pub_s[k] = str(v) if hasattr(v, "__fspath__") else v

    sec: dict[str, str] = {}
    for k in sorted(s.secret.model_fields.keys()):
        v = getattr(s.secret, k, None)
        if v is None:
            sec[k] = "UNSET"
        elif isinstance(v, SecretStr):
            sec[k] = "SET" if v.get_secret_value() else "UNSET"
        else:
            sec[k] = "SET" if str(v).strip() else "UNSET"

    strict = bool(int(os.environ.get("STRICT_CONFIG", "0") or "0"))
    return {
        "strict_config": strict,
        "public": pub_s,
        "secrets": sec,
    }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    public = PublicConfig()
    secret = SecretConfig()
    s = Settings(public=public, secret=secret)
    _validate_settings(s)
    return s

