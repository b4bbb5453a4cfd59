from __future__ import annotations

from .commands import cli, config_cmd, csrf, login, logout, request_cmd, whoami

__all__ = [
    "cli",
    "config_cmd",
    "csrf",
    "login",
    "logout",
    "request_cmd",
    "whoami",
]
