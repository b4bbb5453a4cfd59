from __future__ import annotations

import asyncio
from collections.abc import Mapping
from contextlib import suppress
from typing import Any

from coursehub_client.api.client import ApiClient
from coursehub_client.api.errors import ApiError
from coursehub_client.utils.log import logger


class AuthSession:
    """
    Session lifecycle on top of an `ApiClient`: login, logout, current user and
    an optional keep-alive refresh loop.

    The keep-alive goes through the client's `RefreshCoordinator`, so it shares
    the single in-flight refresh with any request that hits a 401 meanwhile.
    """

    def __init__(self, client: ApiClient) -> None:
        self.client = client
        self.user: dict[str, Any] | None = None
        self._keepalive: asyncio.Task[None] | None = None

    @property
    def is_logged_in(self) -> bool:
        return self.user is not None

    async def check_auth(self) -> dict[str, Any] | None:
        await self.client.csrf.bootstrap()
        try:
            data = await self.client.auth.get(self.client.settings.current_user_path)
        except ApiError as ex:
            logger.info("session_check_failed", status=ex.status, kind=ex.kind.value)
            self.user = None
            return None
        self.user = data if isinstance(data, dict) else None
        return self.user

    async def login(self, credentials: Mapping[str, Any]) -> dict[str, Any] | None:
        """
        Log in and return the current user.

        A rejected login raises `ApiError`; bad credentials are never treated
        as an expired session.
        """
        s = self.client.settings
        await self.client.csrf.bootstrap()
        await self.client.auth.post(s.login_path, dict(credentials), allow_refresh=False)
        # The session rotated, so the pre-login token is stale.
        await self.client.csrf.bootstrap()
        user = await self.check_auth()
        logger.info("session_login", user_id=(user or {}).get("id"))
        return user

    async def logout(self) -> None:
        """
        Log out server-side, then clear local state regardless of the outcome.
        Cookies are server-owned and left alone.
        """
        s = self.client.settings
        try:
            await self.client.csrf.bootstrap()
            await self.client.auth.post(s.logout_path, allow_refresh=False)
        finally:
            self.user = None
            self.client.csrf.clear()
            self.client.refresher.reset()
            logger.info("session_logout")

    # --- keep-alive ---------------------------------------------------------

    async def keepalive_tick(self) -> bool:
        try:
            await self.client.refresher.refresh()
        except ApiError as ex:
            logger.warning("keepalive_failed", status=ex.status, error=ex.message)
            self.user = None
            return False
        return True

    async def _keepalive_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            await self.keepalive_tick()

    def start_keepalive(self, interval: float | None = None) -> asyncio.Task[None]:
        if self._keepalive is not None and not self._keepalive.done():
            return self._keepalive
        every = float(interval if interval is not None else self.client.settings.keepalive_sec)
        self._keepalive = asyncio.get_running_loop().create_task(self._keepalive_loop(every))
        return self._keepalive

    async def stop_keepalive(self) -> None:
        task, self._keepalive = self._keepalive, None
        if task is None:
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task
        logger.info("task stopped", task="session.keepalive")
