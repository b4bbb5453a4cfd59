from __future__ import annotations

import asyncio
import json
import sys
from collections.abc import Awaitable, Callable
from typing import Any

import click

from coursehub_client.api.client import ApiClient
from coursehub_client.api.errors import ApiError
from coursehub_client.api.session import AuthSession
from coursehub_client.config import get_safe_config_report, get_settings
from coursehub_client.utils.log import set_log_level


def _build_client() -> ApiClient:
    return ApiClient()


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, sort_keys=True, default=str))


def _mask(token: str | None) -> str | None:
    if not token:
        return None
    return token[:4] + "…" if len(token) > 8 else "…"


def _run(fn: Callable[[ApiClient], Awaitable[Any]]) -> Any:
    """
    Run one command against a fresh client, persisting cookies afterwards so the
    session carries over to the next invocation (when COURSEHUB_COOKIE_FILE is set).
    """

    async def _main() -> Any:
        async with _build_client() as client:
            try:
                return await fn(client)
            finally:
                client.save_cookies()

    try:
        return asyncio.run(_main())
    except ApiError as ex:
        click.echo(json.dumps(ex.to_dict(), sort_keys=True), err=True)
        sys.exit(1)


@click.group(name="coursehub", help="coursehub API client (session, CSRF, raw requests)")
@click.option("--log-level", default=None, help="Override LOG_LEVEL for this run.")
def cli(log_level: str | None) -> None:
    if log_level:
        set_log_level(log_level)


@cli.command("config")
def config_cmd() -> None:
    """Print the effective configuration (secrets shown as SET/UNSET)."""
    _echo_json(get_safe_config_report())


@cli.command()
def csrf() -> None:
    """Bootstrap a CSRF token."""

    async def _go(client: ApiClient) -> str | None:
        return await client.csrf.bootstrap()

    token = _run(_go)
    _echo_json({"csrf_token": _mask(token), "available": token is not None})


@cli.command()
@click.option("--username", default=None, help="Defaults to COURSEHUB_USERNAME.")
@click.option("--password", default=None, help="Defaults to COURSEHUB_PASSWORD.")
def login(username: str | None, password: str | None) -> None:
    """Log in and print the current user."""
    s = get_settings()
    user_name = username or s.username
    secret = s.password.get_secret_value() if s.password is not None else None
    pw = password or secret
    if not user_name or not pw:
        raise click.UsageError("username and password are required (options or env)")

    async def _go(client: ApiClient) -> Any:
        return await AuthSession(client).login({"username": user_name, "password": pw})

    _echo_json({"user": _run(_go)})


@cli.command()
def logout() -> None:
    """Log out of the current session."""

    async def _go(client: ApiClient) -> None:
        await AuthSession(client).logout()

    _run(_go)
    _echo_json({"ok": True})


@cli.command()
def whoami() -> None:
    """Print the current user, or null when not logged in."""

    async def _go(client: ApiClient) -> Any:
        return await AuthSession(client).check_auth()

    _echo_json({"user": _run(_go)})


@cli.command("request")
@click.argument("method", type=click.Choice(["GET", "POST", "PUT", "PATCH", "DELETE"], case_sensitive=False))
@click.argument("path")
@click.option("--json", "json_body", default=None, help="JSON request body.")
@click.option("--auth", "use_auth", is_flag=True, help="Send through the auth client.")
@click.option("--timeout", type=float, default=None, help="Per-request timeout (seconds).")
def request_cmd(
    method: str, path: str, json_body: str | None, use_auth: bool, timeout: float | None
) -> None:
    """Send one request and print the decoded response body."""
    body: Any = None
    if json_body is not None:
        try:
            body = json.loads(json_body)
        except json.JSONDecodeError as ex:
            raise click.BadParameter(f"invalid JSON: {ex}", param_hint="--json") from None

    async def _go(client: ApiClient) -> Any:
        target = client.auth if use_auth else client.api
        if target.is_unsafe(method):
            await client.csrf.ensure()
        fn = getattr(target, method.lower())
        if method.upper() == "GET":
            return await fn(path, timeout=timeout)
        return await fn(path, body, timeout=timeout)

    _echo_json(_run(_go))


def main() -> None:
    cli()
