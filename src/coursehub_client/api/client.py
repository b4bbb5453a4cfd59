from __future__ import annotations

from http.cookiejar import CookieJar

import httpx

from coursehub_client.api.credentials import CredentialStore, load_cookie_jar
from coursehub_client.api.csrf import CsrfCoordinator
from coursehub_client.api.pipeline import HttpClient
from coursehub_client.api.refresh import RefreshCoordinator
from coursehub_client.config import Settings, get_settings


class ApiClient:
    """
    Composition root: one cookie session, two logical clients.

    - `api`: general resources under the API prefix
    - `auth`: authentication endpoints under the auth prefix; a 401 here goes
      through the shared `RefreshCoordinator` (and on `api` too when
      `COURSEHUB_REFRESH_GENERAL_API=1`)

    Usage:
        async with ApiClient() as client:
            await client.csrf.bootstrap()
            me = await client.auth.get("/current-user/")
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        cookies: CookieJar | None = None,
    ) -> None:
        s = settings or get_settings()
        self.settings = s

        jar = cookies if cookies is not None else load_cookie_jar(s.cookie_file)
        # Passing the CookieJar itself (not a dict) makes httpx read/write this jar in place.
        self.http = httpx.AsyncClient(
            transport=transport,
            cookies=jar,
            timeout=float(s.timeout_sec),
            follow_redirects=False,
        )
        self.credentials = CredentialStore(jar, cookie_name=s.csrf_cookie_name)
        self.refresher = RefreshCoordinator(self._refresh_session)

        csrf_methods = s.csrf_method_set()
        self.auth = HttpClient(
            "auth",
            s.auth_base_url(),
            self.http,
            self.credentials,
            csrf_header=s.csrf_header_name,
            csrf_methods=csrf_methods,
            refresh=self.refresher,
        )
        self.api = HttpClient(
            "api",
            s.api_base_url(),
            self.http,
            self.credentials,
            csrf_header=s.csrf_header_name,
            csrf_methods=csrf_methods,
            refresh=self.refresher if s.refresh_general_api else None,
        )
        self.csrf = CsrfCoordinator(
            self.auth,
            (self.api, self.auth),
            self.credentials,
            path=s.csrf_path,
            body_field=s.csrf_body_field,
        )
        if s.csrf_strict:
            self.api.ensure_csrf = self.csrf.ensure
            self.auth.ensure_csrf = self.csrf.ensure

    async def _refresh_session(self) -> None:
        # The refresh call itself must never re-enter the refresh cycle.
        await self.auth.request("POST", self.settings.refresh_path, allow_refresh=False)
        # Session rotation may rotate the CSRF token too.
        await self.csrf.bootstrap()

    def save_cookies(self) -> None:
        self.credentials.save()

    async def aclose(self) -> None:
        self.refresher.reset()
        await self.http.aclose()

    async def __aenter__(self) -> ApiClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()
