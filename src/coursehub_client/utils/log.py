from __future__ import annotations

import logging
import re
import sys
import threading
from contextlib import suppress
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog

from coursehub_client.config import get_settings

LOGGER_NAME = "coursehub_client"

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)


def set_request_id(rid: str | None) -> None:
    request_id_var.set(rid)


_COOKIE_RE = re.compile(r"(?i)\b(csrftoken|sessionid|session|refresh|access|csrf)=([^;\s,]+)")
_KV_RE = re.compile(
    r"(?i)\b(x-csrftoken|csrf_token|csrftoken|csrf|password|secret|token|cookie)\b\s*[=:]\s*([^\s,;]+)"
)
_BEARER_RE = re.compile(r"(?i)\bBearer\s+([A-Za-z0-9_\-\.=]+)")

_SENSITIVE_KEYS = {
    "cookie",
    "set-cookie",
    "x-csrftoken",
    "csrf_token",
    "csrftoken",
    "authorization",
    "password",
    "token",
}

# Live values (e.g. the current CSRF token) that must never be logged verbatim, one per key.
_runtime_literals: dict[str, str] = {}
_runtime_snapshot: tuple[str, ...] = ()
_literals_lock = threading.Lock()


def register_secret(key: str, value: str | None) -> None:
    """
    Track the current value of a runtime secret. A new value for `key`
    replaces the previous one; an empty value forgets the key.
    """
    global _runtime_snapshot
    v = str(value or "")
    with _literals_lock:
        if len(v) < 8:
            _runtime_literals.pop(key, None)
        else:
            _runtime_literals[key] = v
        # Rebuilt only here; the redaction path reads the tuple as-is.
        _runtime_snapshot = tuple(dict.fromkeys(_runtime_literals.values()))


def _secret_literals() -> list[str]:
    """
    Return configured and runtime secret values that must never appear in logs.
    Best-effort (safe even if settings aren't fully initialized yet).
    """
    out = list(_runtime_snapshot)
    with suppress(Exception):
        pw = get_settings().secret.password
        if pw is not None:
            raw = str(pw.get_secret_value() or "")
            # Ignore tiny values to avoid over-redaction.
            if len(raw) >= 8 and raw not in out:
                out.append(raw)
    return out


def _redact_str(s: str) -> str:
    with suppress(Exception):
        for lit in _secret_literals():
            if lit and lit in s:
                s = s.replace(lit, "***REDACTED***")
    s = _COOKIE_RE.sub(lambda m: f"{m.group(1)}=***REDACTED***", s)
    s = _BEARER_RE.sub("Bearer ***REDACTED***", s)
    s = _KV_RE.sub(lambda m: f"{m.group(1)}=***REDACTED***", s)
    return s


def safe_log_data(value: Any) -> Any:
    """
    Recursively redact a structure before it is logged.
    Header/field names in `_SENSITIVE_KEYS` are masked wholesale.
    """
    if isinstance(value, str):
        return _redact_str(value)
    if isinstance(value, dict):
        out: dict[Any, Any] = {}
        for k, v in value.items():
            if str(k).lower() in _SENSITIVE_KEYS and v:
                out[k] = "***REDACTED***"
            else:
                out[k] = safe_log_data(v)
        return out
    if isinstance(value, (list, tuple)):
        return [safe_log_data(v) for v in value]
    return value


def redact_event(_, __, event_dict: dict[str, Any]) -> dict[str, Any]:
    for k, v in list(event_dict.items()):
        if isinstance(v, (str, dict, list, tuple)):
            event_dict[k] = safe_log_data(v)
    return event_dict


def add_contextvars(_, __, event_dict: dict[str, Any]) -> dict[str, Any]:
    rid = request_id_var.get()
    if rid:
        event_dict.setdefault("request_id", rid)
    return event_dict


def rename_event_to_msg(_, __, event_dict: dict[str, Any]) -> dict[str, Any]:
    if "msg" not in event_dict and "event" in event_dict:
        event_dict["msg"] = event_dict.pop("event")
    return event_dict


def _bind(base: logging.Logger) -> structlog.stdlib.BoundLogger:
    # Local processor chain; the global structlog config stays untouched.
    return structlog.wrap_logger(
        base,
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
            structlog.stdlib.add_log_level,
            add_contextvars,
            redact_event,
            structlog.processors.format_exc_info,
            rename_event_to_msg,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def _configure_structlog() -> structlog.stdlib.BoundLogger:
    s = get_settings()
    level = str(s.log_level).upper()

    # Handlers live on the package logger; the host application's root logger is left alone.
    base = logging.getLogger(LOGGER_NAME)
    base.setLevel(level)
    base.propagate = False

    # Avoid duplicates if re-imported
    if getattr(base, "_coursehub_structlog_configured", False):
        return _bind(base)

    foreign_pre_chain = [
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
        structlog.stdlib.add_log_level,
        add_contextvars,
        redact_event,
        structlog.processors.format_exc_info,
        rename_event_to_msg,
    ]

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(),
        foreign_pre_chain=foreign_pre_chain,
    )

    base.handlers.clear()

    if s.log_dir is not None:
        log_path = Path(s.log_dir) / "client.log"
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            filename=str(log_path),
            maxBytes=int(s.log_max_bytes),
            backupCount=int(s.log_backup_count),
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        base.addHandler(file_handler)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    base.addHandler(stream_handler)

    base._coursehub_structlog_configured = True
    return _bind(base)


logger = _configure_structlog()


def set_log_level(level: str) -> None:
    """
    Runtime log level override (CLI convenience).
    Does not change handlers/formatters; only raises/lowers filtering level.
    """
    lvl = getattr(logging, str(level).upper(), logging.INFO)
    base = logging.getLogger(LOGGER_NAME)
    base.setLevel(lvl)
    for h in base.handlers:
        h.setLevel(lvl)
