from __future__ import annotations

from collections.abc import Iterable

from coursehub_client.api.credentials import CredentialStore
from coursehub_client.api.errors import ApiError
from coursehub_client.api.pipeline import HttpClient
from coursehub_client.utils.log import logger, register_secret


class CsrfCoordinator:
    """
    Keeps a CSRF token available to unsafe requests.

    `bootstrap()` asks the backend for a token (which also sets the cookie) and
    caches it as the default CSRF header of every registered client. It is
    best-effort: a failed bootstrap falls back to whatever the cookie already
    holds, and the backend decides (403) if that is not good enough.
    """

    def __init__(
        self,
        issuer: HttpClient,
        clients: Iterable[HttpClient],
        credentials: CredentialStore,
        *,
        path: str = "/csrf/",
        body_field: str = "csrfToken",
    ) -> None:
        self.issuer = issuer
        self.clients = list(clients)
        self.credentials = credentials
        self.path = str(path)
        self.body_field = str(body_field)

    def _token_from_body(self, payload: object) -> str | None:
        if isinstance(payload, dict):
            v = payload.get(self.body_field)
            if isinstance(v, str) and v.strip():
                return v
        return None

    def _apply(self, token: str) -> None:
        register_secret("csrf", token)
        for client in self.clients:
            client.set_default_header(client.csrf_header, token)

    async def bootstrap(self) -> str | None:
        try:
            payload = await self.issuer.get(self.path, allow_refresh=False)
        except ApiError as ex:
            fallback = self.credentials.csrf_token()
            logger.warning(
                "csrf_bootstrap_failed",
                status=ex.status,
                kind=ex.kind.value,
                cookie_fallback=fallback is not None,
            )
            return fallback

        token = self._token_from_body(payload) or self.credentials.csrf_token()
        if token:
            self._apply(token)
            logger.debug("csrf_bootstrap_ok")
        else:
            logger.warning("csrf_bootstrap_empty")
        return token

    async def ensure(self) -> str | None:
        existing = self.credentials.csrf_token()
        if existing:
            return existing
        return await self.bootstrap()

    def clear(self) -> None:
        for client in self.clients:
            client.clear_default_header(client.csrf_header)
