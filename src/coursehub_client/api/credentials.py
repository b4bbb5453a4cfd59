from __future__ import annotations

from http.cookiejar import CookieJar, LWPCookieJar
from pathlib import Path
from urllib.parse import unquote

from coursehub_client.utils.log import logger


def load_cookie_jar(path: Path | str | None = None) -> CookieJar:
    """
    Cookie jar shared by every logical client.

    With a path the jar is file-backed (LWP format) so a CLI session survives
    between invocations; a missing file just means an empty jar.
    """
    if path is None:
        return CookieJar()
    p = Path(path)
    jar = LWPCookieJar(str(p))
    if p.exists():
        try:
            jar.load(ignore_discard=True, ignore_expires=False)
        except OSError as ex:
            logger.warning("cookie_jar_load_failed", path=str(p), error=str(ex))
    return jar


class CredentialStore:
    """
    Read-only view of the client-readable CSRF cookie.

    The session cookie is HttpOnly on the server side; it lives in the same jar
    and is sent by the transport, but nothing here reads it.
    """

    def __init__(self, jar: CookieJar, *, cookie_name: str = "csrftoken") -> None:
        self.jar = jar
        self.cookie_name = str(cookie_name)

    def csrf_token(self) -> str | None:
        token: str | None = None
        for cookie in self.jar:
            if cookie.name == self.cookie_name and cookie.value:
                # Later entries win (e.g. a rotated cookie on a more specific path).
                token = unquote(cookie.value)
        return token or None

    def save(self) -> None:
        if isinstance(self.jar, LWPCookieJar) and self.jar.filename:
            Path(self.jar.filename).parent.mkdir(parents=True, exist_ok=True)
            self.jar.save(ignore_discard=True, ignore_expires=False)
