from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from enum import Enum

from coursehub_client.api.abort import AbortSignal, abortable
from coursehub_client.api.errors import ApiError, normalize
from coursehub_client.utils.log import logger


class RefreshState(str, Enum):
    IDLE = "idle"
    REFRESHING = "refreshing"


class RefreshCoordinator:
    """
    Single-flight session refresh.

    The first request to observe a 401 while IDLE becomes the leader: it starts
    the refresh task. Every request that observes a 401 (the leader included)
    then parks a future in the waiter queue and suspends until the refresh
    settles. On success each waiter is resolved and replays its own request; on
    failure each waiter is rejected with the same `AuthFailed` error.

    The refresh runs in its own task, so a leader that is aborted mid-refresh
    only drops its own future; the refresh still settles everyone else.

    The IDLE -> REFRESHING check-and-set has no await between the read and the
    write; on one event loop that makes it atomic.
    """

    def __init__(self, refresh_fn: Callable[[], Awaitable[None]]) -> None:
        self._refresh_fn = refresh_fn
        self._state = RefreshState.IDLE
        self._waiters: list[asyncio.Future[None]] = []
        self._task: asyncio.Task[None] | None = None
        self._generation = 0
        self.refresh_count = 0

    @property
    def state(self) -> RefreshState:
        return self._state

    @property
    def pending(self) -> int:
        return len(self._waiters)

    @property
    def generation(self) -> int:
        """Number of successful refreshes so far."""
        return self._generation

    async def refresh(self, *, generation: int | None = None, signal: AbortSignal | None = None) -> None:
        """
        Make sure the session has been refreshed since `generation`.

        Returns when a refresh succeeded (the caller should replay once) and
        raises `ApiError` (`AUTH_FAILED`, or `CANCELLED` when `signal` fires)
        otherwise.
        """
        if self._state is RefreshState.IDLE:
            if generation is not None and generation != self._generation:
                # A refresh already completed after this request was dispatched.
                return
            self._state = RefreshState.REFRESHING
            self.refresh_count += 1
            self._task = asyncio.get_running_loop().create_task(self._lead())
        await self._wait(signal)

    async def _wait(self, signal: AbortSignal | None) -> None:
        fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(fut)
        logger.debug("refresh_waiter_enqueued", pending=len(self._waiters))
        try:
            await abortable(fut, signal)
        finally:
            if fut in self._waiters:
                # Aborted or cancelled while queued: leave without being settled.
                self._waiters.remove(fut)
                fut.cancel()
                logger.info("refresh_waiter_aborted", pending=len(self._waiters))

    async def _lead(self) -> None:
        task = asyncio.current_task()
        logger.info("refresh_start", generation=self._generation)
        error: ApiError | None = None
        try:
            await self._refresh_fn()
        except asyncio.CancelledError:
            error = ApiError.auth_failed()
        except Exception as ex:
            error = ApiError.auth_failed(normalize(ex))

        if task is not self._task:
            # Superseded by reset(); the waiters were already rejected there.
            return
        if error is None:
            self._generation += 1
            logger.info("refresh_ok", generation=self._generation)
        else:
            logger.warning("refresh_failed", status=error.status, error=error.message)
        self._settle(error)

    def _settle(self, error: ApiError | None) -> None:
        waiters, self._waiters = self._waiters, []
        self._state = RefreshState.IDLE
        self._task = None
        for fut in waiters:
            if fut.done():
                continue
            if error is None:
                fut.set_result(None)
            else:
                fut.set_exception(error)

    def reset(self) -> None:
        """
        Drop refresh state (logout). An in-flight refresh is cancelled and its
        waiters are rejected with `AuthFailed`.
        """
        task = self._task
        if task is not None and not task.done():
            task.cancel()
        if self._state is RefreshState.REFRESHING:
            self._settle(ApiError.auth_failed())
