"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the token lifecycle
services and the provider wrappers share a consistent configuration surface.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Literal, Optional

from pydantic import AnyHttpUrl, Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_GOOGLE_SCOPES: tuple[str, ...] = (
    "openid",
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
    "https://www.googleapis.com/auth/gmail.readonly",
    "https://www.googleapis.com/auth/gmail.send",
    "https://www.googleapis.com/auth/gmail.modify",
    "https://www.googleapis.com/auth/calendar.readonly",
    "https://www.googleapis.com/auth/calendar.events",
    "https://www.googleapis.com/auth/tasks",
)


def _settings_config(prefix: str = "") -> SettingsConfigDict:
    return SettingsConfigDict(
        env_prefix=prefix,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class GoogleSettings(BaseSettings):
    """Configuration required for interacting with Google APIs."""

    model_config = _settings_config("GOOGLE_")

    client_id: str
    client_secret: str
    redirect_uri: AnyHttpUrl


class OAuthSettings(BaseSettings):
    """OAuth consent flow configuration."""

    model_config = _settings_config("OAUTH_")

    state_ttl_seconds: int = Field(900, ge=60)
    scopes: Annotated[tuple[str, ...], NoDecode] = DEFAULT_GOOGLE_SCOPES

    @field_validator("scopes", mode="before")
    @classmethod
    def _split_scopes(cls, value: str | tuple[str, ...] | list[str]) -> tuple[str, ...]:
        """Support providing scopes as a comma-separated string."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(value)
        return tuple(scope.strip() for scope in value.split(",") if scope.strip())


class TokenSettings(BaseSettings):
    """Knobs for the token lifecycle: refresh margin, cache TTL and pool size."""

    model_config = _settings_config("TOKEN_")

    refresh_margin_seconds: int = Field(300, ge=0)
    cache_ttl_seconds: int = Field(
        3000,
        gt=0,
        description="Kept below the one hour access-token lifetime Google issues.",
    )
    client_pool_size: int = Field(100, gt=0)
    exchange_timeout_seconds: float = Field(10.0, gt=0)


class ProviderSettings(BaseSettings):
    """Timeouts applied to outbound Gmail, Calendar and Tasks calls."""

    model_config = _settings_config("PROVIDER_")

    read_timeout_seconds: float = Field(8.0, gt=0)
    send_timeout_seconds: float = Field(15.0, gt=0)


class StorageSettings(BaseSettings):
    """Document store backing credentials and local tasks."""

    model_config = _settings_config("STORAGE_")

    backend: Literal["sqlite", "dynamodb"] = "sqlite"
    sqlite_path: str = "data/workspace_bff.db"
    dynamodb_table: Optional[str] = None
    aws_region: str = "us-east-1"


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    model_config = _settings_config()

    token_encryption_secret: Optional[str] = Field(
        None,
        description=(
            "Secret used to derive the symmetric key for encrypting stored tokens."
        ),
    )


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = _settings_config("APP_")

    env: str = "development"
    log_level: str = "INFO"
    frontend_base_url: Optional[HttpUrl] = Field(
        None,
        validation_alias="FRONTEND_BASE_URL",
        description="Optional URL for redirecting users back to the front-end.",
    )
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    google: GoogleSettings = Field(default_factory=GoogleSettings)
    tokens: TokenSettings = Field(default_factory=TokenSettings)
    provider: ProviderSettings = Field(default_factory=ProviderSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "DEFAULT_GOOGLE_SCOPES",
    "GoogleSettings",
    "OAuthSettings",
    "ProviderSettings",
    "SecuritySettings",
    "StorageSettings",
    "TokenSettings",
    "get_settings",
]
