from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def normalize_server_url(raw: str) -> str:
    """
    Reduce a configured API URL to the bare server origin.

    Accepts either "http://host:8000" or "http://host:8000/api/"; the API and auth
    prefixes are appended separately.
    """
    url = (raw or "http://localhost:8000").strip()
    if url.endswith("/"):
        url = url[:-1]
    if url.endswith("/api"):
        url = url[:-4]
    return url


class PublicConfig(BaseSettings):
    """
    Non-sensitive config with safe defaults.

    Loaded from (in order):
      - process env
      - optional `.env` file
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- backend location ---
    api_url: str = Field(default="http://localhost:8000", alias="COURSEHUB_API_URL")
    api_prefix: str = Field(default="/api", alias="COURSEHUB_API_PREFIX")
    auth_prefix: str = Field(default="/api/auth", alias="COURSEHUB_AUTH_PREFIX")

    # --- CSRF contract (must match the backend exactly) ---
    csrf_cookie_name: str = Field(default="csrftoken", alias="COURSEHUB_CSRF_COOKIE")
    csrf_header_name: str = Field(default="X-CSRFToken", alias="COURSEHUB_CSRF_HEADER")
    csrf_body_field: str = Field(default="csrfToken", alias="COURSEHUB_CSRF_BODY_FIELD")
    csrf_methods: str = Field(default="POST,PUT,PATCH,DELETE", alias="COURSEHUB_CSRF_METHODS")
    # Fail closed: never send an unsafe request without a confirmed token.
    csrf_strict: bool = Field(default=False, alias="COURSEHUB_CSRF_STRICT")

    # --- auth endpoints (relative to auth_prefix) ---
    csrf_path: str = Field(default="/csrf/", alias="COURSEHUB_CSRF_PATH")
    refresh_path: str = Field(default="/refresh/", alias="COURSEHUB_REFRESH_PATH")
    login_path: str = Field(default="/login/", alias="COURSEHUB_LOGIN_PATH")
    logout_path: str = Field(default="/logout/", alias="COURSEHUB_LOGOUT_PATH")
    current_user_path: str = Field(default="/current-user/", alias="COURSEHUB_CURRENT_USER_PATH")

    # Refresh-on-401 is always on for the auth client; opt-in for the general API client.
    refresh_general_api: bool = Field(default=False, alias="COURSEHUB_REFRESH_GENERAL_API")

    # --- transport ---
    timeout_sec: float = Field(default=30.0, alias="COURSEHUB_TIMEOUT_SEC")
    keepalive_sec: float = Field(default=7 * 60, alias="COURSEHUB_KEEPALIVE_SEC")
    cookie_file: Path | None = Field(default=None, alias="COURSEHUB_COOKIE_FILE")

    # --- logging ---
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_dir: Path | None = Field(default=None, alias="COURSEHUB_LOG_DIR")
    log_max_bytes: int = Field(default=5 * 1024 * 1024, alias="LOG_MAX_BYTES")
    log_backup_count: int = Field(default=3, alias="LOG_BACKUP_COUNT")

    @field_validator("api_url")
    @classmethod
    def _normalize_api_url(cls, v: str) -> str:
        return normalize_server_url(v)

    def csrf_method_set(self) -> frozenset[str]:
        return frozenset(
            m.strip().upper() for m in (self.csrf_methods or "").split(",") if m.strip()
        )

    def api_base_url(self) -> str:
        return self.api_url + "/" + self.api_prefix.strip("/")

    def auth_base_url(self) -> str:
        return self.api_url + "/" + self.auth_prefix.strip("/")
