from __future__ import annotations

import asyncio
import json
from collections import Counter
from collections.abc import Callable
from typing import Any

import httpx

CSRF_HEADER = "x-csrftoken"


def _cookies(request: httpx.Request) -> dict[str, str]:
    out: dict[str, str] = {}
    for part in request.headers.get("cookie", "").split(";"):
        k, sep, v = part.strip().partition("=")
        if sep:
            out[k] = v
    return out


def _json(status: int, data: Any, *, cookies: dict[str, str] | None = None) -> httpx.Response:
    headers = [("content-type", "application/json")]
    for k, v in (cookies or {}).items():
        headers.append(("set-cookie", f"{k}={v}; Path=/"))
    return httpx.Response(status, headers=headers, content=json.dumps(data).encode("utf-8"))


class FakeBackend:
    """
    Minimal course-marketplace backend for MockTransport.

    - GET  /api/auth/csrf/          -> sets `csrftoken` cookie, body {"csrfToken": ...}
    - POST /api/auth/refresh/       -> rotates session + CSRF (optionally gated / failing)
    - POST /api/auth/login/         -> admin/adminpass
    - POST /api/auth/logout/
    - GET  /api/auth/current-user/  -> 401 unless the session cookie is current
    - anything else under /api/     -> resource echo, same session rule

    Unsafe requests must carry X-CSRFToken matching the current token (403 otherwise).
    """

    def __init__(self) -> None:
        self.session_id: str | None = None
        self.csrf_token = "csrf-token-0001"
        self.calls: Counter[str] = Counter()
        self.requests: list[httpx.Request] = []
        self.generation = 0

        self.csrf_body = True
        self.csrf_error: Exception | None = None
        self.refresh_status = 200
        self.refresh_body: Any = {"detail": "ok"}
        self.refresh_gate: asyncio.Event | None = None
        self.always_unauthorized: set[str] = set()
        self.raise_for: dict[str, Callable[[httpx.Request], Exception]] = {}
        # path -> event the handler waits on before answering
        self.hold: dict[str, asyncio.Event] = {}

    # --- test controls ------------------------------------------------------

    def login_directly(self) -> dict[str, str]:
        """Start a valid session; returns the cookies a browser would hold."""
        self.generation += 1
        self.session_id = f"sess-{self.generation}"
        return {"sessionid": self.session_id, "csrftoken": self.csrf_token}

    def expire_session(self) -> None:
        self.session_id = None

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def sent(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    # --- handler ------------------------------------------------------------

    def _authenticated(self, request: httpx.Request) -> bool:
        sid = _cookies(request).get("sessionid")
        return self.session_id is not None and sid == self.session_id

    def _csrf_ok(self, request: httpx.Request) -> bool:
        return request.headers.get(CSRF_HEADER) == self.csrf_token

    async def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        key = f"{request.method} {path}"
        self.calls[key] += 1
        self.requests.append(request)

        if path in self.hold:
            await self.hold[path].wait()

        if key in self.raise_for:
            raise self.raise_for[key](request)

        if request.method in {"POST", "PUT", "PATCH", "DELETE"} and not self._csrf_ok(request):
            return _json(403, {"detail": "CSRF Failed: CSRF token missing or incorrect."})

        if key == "GET /api/auth/csrf/":
            if self.csrf_error is not None:
                raise self.csrf_error
            body = {"csrfToken": self.csrf_token} if self.csrf_body else {}
            return _json(200, body, cookies={"csrftoken": self.csrf_token})

        if key == "POST /api/auth/refresh/":
            if self.refresh_gate is not None:
                await self.refresh_gate.wait()
            if not _cookies(request).get("sessionid"):
                return _json(401, {"detail": "Refresh token missing."})
            if self.refresh_status != 200:
                if isinstance(self.refresh_body, (dict, list)):
                    return _json(self.refresh_status, self.refresh_body)
                return httpx.Response(self.refresh_status, text=str(self.refresh_body or ""))
            self.generation += 1
            self.session_id = f"sess-{self.generation}"
            self.csrf_token = f"csrf-token-{self.generation:04d}-rotated"
            return _json(
                200,
                {"detail": "refreshed"},
                cookies={"sessionid": self.session_id, "csrftoken": self.csrf_token},
            )

        if key == "POST /api/auth/login/":
            creds = json.loads(request.content or b"{}")
            if creds.get("username") != "admin" or creds.get("password") != "adminpass":
                return _json(401, {"detail": "Invalid username or password."})
            cookies = self.login_directly()
            self.csrf_token = f"csrf-token-{self.generation:04d}-login"
            cookies["csrftoken"] = self.csrf_token
            return _json(200, {"detail": "logged in"}, cookies=cookies)

        if key == "POST /api/auth/logout/":
            self.session_id = None
            return _json(200, {"detail": "logged out"})

        if path in self.always_unauthorized or not self._authenticated(request):
            return _json(401, {"detail": "Authentication credentials were not provided."})

        if key == "GET /api/auth/current-user/":
            return _json(200, {"id": 1, "username": "admin", "is_admin": True})

        body: Any = None
        if request.content:
            body = json.loads(request.content)
        return _json(
            200,
            {"method": request.method, "path": path, "query": str(request.url.query, "ascii"), "body": body},
        )


async def wait_until(cond: Callable[[], bool], *, timeout: float = 2.0) -> None:
    """Yield to the loop until `cond()` holds, failing the test on timeout."""

    async def _poll() -> None:
        while not cond():
            await asyncio.sleep(0)

    await asyncio.wait_for(_poll(), timeout)


async def release_when(cond: Callable[[], bool], gate: asyncio.Event, *, timeout: float = 2.0) -> None:
    await wait_until(cond, timeout=timeout)
    gate.set()
