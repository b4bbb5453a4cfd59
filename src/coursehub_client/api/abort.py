from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import Any, TypeVar

from coursehub_client.api.errors import ApiError

T = TypeVar("T")


class AbortSignal:
    """
    Per-request cancellation token.

    Aborting only affects the requests that carry this signal: a send in
    progress is cancelled and a request queued behind a session refresh leaves
    the queue. Both raise `ApiError(kind=CANCELLED)`.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: Any = None

    @property
    def aborted(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Any:
        return self._reason

    def abort(self, reason: Any = None) -> None:
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()

    def raise_if_aborted(self) -> None:
        if self._event.is_set():
            raise ApiError.cancelled(self._reason)

    async def wait(self) -> None:
        await self._event.wait()


async def abortable(aw: Awaitable[T], signal: AbortSignal | None) -> T:
    """
    Await `aw` unless `signal` fires first, in which case `aw` is cancelled and
    `ApiError(kind=CANCELLED)` is raised.
    """
    if signal is None:
        return await aw
    if signal.aborted:
        if asyncio.iscoroutine(aw):
            aw.close()
        raise ApiError.cancelled(signal.reason)

    work = asyncio.ensure_future(aw)
    watcher = asyncio.ensure_future(signal.wait())
    try:
        await asyncio.wait({work, watcher}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        work.cancel()
        raise
    finally:
        watcher.cancel()

    if work.done():
        return work.result()
    work.cancel()
    raise ApiError.cancelled(signal.reason)
