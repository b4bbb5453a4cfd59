from __future__ import annotations

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class SecretConfig(BaseSettings):
    """
    Login credentials for the CLI.

    Read from the environment first, then from an optional `.env.secrets` file
    kept out of version control. Library callers pass credentials explicitly.
    """

    model_config = SettingsConfigDict(
        env_file=".env.secrets",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Credentials for the CLI `login` command; library callers pass their own.
    username: str | None = Field(default=None, alias="COURSEHUB_USERNAME")
    password: SecretStr | None = Field(default=None, alias="COURSEHUB_PASSWORD")
