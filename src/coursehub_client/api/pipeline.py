from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

import httpx

from coursehub_client.api.abort import AbortSignal, abortable
from coursehub_client.api.credentials import CredentialStore
from coursehub_client.api.errors import ApiError, ErrorKind, from_response, normalize, read_payload
from coursehub_client.api.refresh import RefreshCoordinator
from coursehub_client.utils.log import logger, set_request_id

DEFAULT_CSRF_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


@dataclass(frozen=True, slots=True)
class RequestContext:
    """
    Everything needed to (re)issue one logical request.

    `retried` is set only on the replay built after a refresh; a replay that
    gets 401 again is terminal.
    """

    method: str
    path: str
    json: Any = None
    data: Any = None
    files: Any = None
    params: Mapping[str, Any] | None = None
    headers: Mapping[str, str] = field(default_factory=dict)
    timeout: float | None = None
    signal: AbortSignal | None = None
    retried: bool = False
    allow_refresh: bool = True
    generation: int | None = None
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    def for_retry(self) -> RequestContext:
        return replace(self, retried=True)


class HttpClient:
    """
    One logical API client (base path + default headers + refresh policy).

    Several HttpClients can share one `httpx.AsyncClient`, and therefore one
    cookie jar: the session is cookie-based and every request sends cookies.
    """

    def __init__(
        self,
        name: str,
        base_url: str,
        http: httpx.AsyncClient,
        credentials: CredentialStore,
        *,
        csrf_header: str = "X-CSRFToken",
        csrf_methods: frozenset[str] = DEFAULT_CSRF_METHODS,
        refresh: RefreshCoordinator | None = None,
        timeout: float | None = None,
        ensure_csrf: Callable[[], Awaitable[str | None]] | None = None,
    ) -> None:
        self.name = str(name)
        self.base_url = str(base_url).rstrip("/")
        self.http = http
        self.credentials = credentials
        self.csrf_header = str(csrf_header)
        self.csrf_methods = frozenset(m.upper() for m in csrf_methods)
        self.refresh = refresh
        self.timeout = timeout
        # Set only in strict CSRF mode: fetch a token before an unsafe request lacking one.
        self.ensure_csrf = ensure_csrf
        self.default_headers: dict[str, str] = {"Accept": "application/json"}

    # --- defaults -----------------------------------------------------------

    def set_default_header(self, name: str, value: str) -> None:
        self.default_headers[name] = value

    def clear_default_header(self, name: str) -> None:
        self.default_headers.pop(name, None)

    def url_for(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return self.base_url + "/" + path.lstrip("/")

    def is_unsafe(self, method: str) -> bool:
        return method.upper() in self.csrf_methods

    def _cached_csrf(self) -> str | None:
        for k, v in self.default_headers.items():
            if k.lower() == self.csrf_header.lower() and v:
                return v
        return None

    def _csrf_token(self) -> str | None:
        return self.credentials.csrf_token() or self._cached_csrf()

    # --- interception -------------------------------------------------------

    def _headers_for(self, ctx: RequestContext, token: str | None) -> dict[str, str]:
        headers = {
            k: v
            for k, v in self.default_headers.items()
            if k.lower() != self.csrf_header.lower()
        }
        headers.update(ctx.headers)
        if self.is_unsafe(ctx.method):
            if token:
                headers[self.csrf_header] = token
        else:
            for k in [k for k in headers if k.lower() == self.csrf_header.lower()]:
                headers.pop(k)
        return headers

    async def _prepare(self, ctx: RequestContext) -> httpx.Request:
        token: str | None = None
        if self.is_unsafe(ctx.method):
            token = self._csrf_token()
            if token is None and self.ensure_csrf is not None:
                token = await self.ensure_csrf() or self._csrf_token()
                if token is None:
                    raise ApiError(
                        403,
                        "CSRF token unavailable; the request was not sent.",
                        kind=ErrorKind.FORBIDDEN,
                    )
        timeout = ctx.timeout if ctx.timeout is not None else self.timeout
        return self.http.build_request(
            ctx.method,
            self.url_for(ctx.path),
            json=ctx.json,
            data=ctx.data,
            files=ctx.files,
            params=ctx.params,
            headers=self._headers_for(ctx, token),
            timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
        )

    # --- dispatch -----------------------------------------------------------

    async def send(self, ctx: RequestContext) -> httpx.Response:
        set_request_id(ctx.request_id)
        if ctx.signal is not None:
            ctx.signal.raise_if_aborted()
        request = await self._prepare(ctx)
        if ctx.signal is not None:
            # May have fired while _prepare waited on a CSRF bootstrap.
            ctx.signal.raise_if_aborted()
        try:
            response = await abortable(self.http.send(request), ctx.signal)
        except ApiError:
            raise
        except httpx.HTTPError as ex:
            err = normalize(ex)
            logger.warning(
                "api_request_failed",
                client=self.name,
                method=ctx.method,
                path=ctx.path,
                kind=err.kind.value,
            )
            raise err from ex

        logger.debug(
            "api_request",
            client=self.name,
            method=ctx.method,
            path=ctx.path,
            status=response.status_code,
            retried=ctx.retried,
        )
        if response.is_success:
            return response

        if (
            response.status_code == 401
            and self.refresh is not None
            and ctx.allow_refresh
            and not ctx.retried
        ):
            await self.refresh.refresh(generation=ctx.generation, signal=ctx.signal)
            return await self.send(ctx.for_retry())

        err = from_response(response)
        logger.info(
            "api_request_failed",
            client=self.name,
            method=ctx.method,
            path=ctx.path,
            status=err.status,
            kind=err.kind.value,
        )
        raise err

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        data: Any = None,
        files: Any = None,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
        signal: AbortSignal | None = None,
        allow_refresh: bool = True,
    ) -> httpx.Response:
        ctx = RequestContext(
            method=method.upper(),
            path=path,
            json=json,
            data=data,
            files=files,
            params=params,
            headers=dict(headers or {}),
            timeout=timeout,
            signal=signal,
            allow_refresh=allow_refresh,
            generation=self.refresh.generation if self.refresh is not None else None,
        )
        return await self.send(ctx)

    # --- verb helpers (decoded body) ----------------------------------------

    async def _call(self, method: str, path: str, body: Any = None, **config: Any) -> Any:
        if body is not None:
            config.setdefault("json", body)
        response = await self.request(method, path, **config)
        return read_payload(response)

    async def get(self, path: str, **config: Any) -> Any:
        return await self._call("GET", path, **config)

    async def post(self, path: str, body: Any = None, **config: Any) -> Any:
        return await self._call("POST", path, body, **config)

    async def put(self, path: str, body: Any = None, **config: Any) -> Any:
        return await self._call("PUT", path, body, **config)

    async def patch(self, path: str, body: Any = None, **config: Any) -> Any:
        return await self._call("PATCH", path, body, **config)

    async def delete(self, path: str, body: Any = None, **config: Any) -> Any:
        return await self._call("DELETE", path, body, **config)
