from __future__ import annotations

import pytest

from coursehub_client.config import get_settings


@pytest.fixture(autouse=True)
def _test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "COURSEHUB_CSRF_METHODS",
        "COURSEHUB_CSRF_STRICT",
        "COURSEHUB_REFRESH_GENERAL_API",
        "COURSEHUB_COOKIE_FILE",
        "COURSEHUB_USERNAME",
        "COURSEHUB_PASSWORD",
        "STRICT_CONFIG",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("COURSEHUB_API_URL", "http://localhost")
    monkeypatch.setenv("COURSEHUB_TIMEOUT_SEC", "5")
    get_settings.cache_clear()
