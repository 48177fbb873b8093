"""Environment-based configuration using pydantic-settings.

Each backend reads its own credential block; framework concerns (cache,
logging, http) use the SAASBRIDGE_ prefix.

Example:
    >>> from saasbridge.foundation.config import get_settings
    >>> settings = get_settings()
    >>> settings.cache.ttl
    300.0

    # Or with environment variables:
    # SAASBRIDGE_CACHE_TTL=60
    # BUGSNAG_AUTH_TOKEN=...
    # BUGSNAG_PROJECT_API_KEY=...
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import (
    Field,
    PositiveFloat,
    SecretStr,
    computed_field,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict


class CacheSettings(BaseSettings):
    """Context cache configuration."""

    model_config = SettingsConfigDict(env_prefix="SAASBRIDGE_CACHE_", extra="ignore")

    enabled: bool = True
    ttl: PositiveFloat = Field(default=300.0, description="Entry lifetime in seconds, measured from last write")


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="SAASBRIDGE_LOG_", extra="ignore")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["console", "json", "none"] = "console"

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


class HttpSettings(BaseSettings):
    """HTTP client defaults shared by all backends."""

    model_config = SettingsConfigDict(env_prefix="SAASBRIDGE_HTTP_", extra="ignore")

    timeout: PositiveFloat = Field(default=30.0, description="Request timeout in seconds")
    user_agent: str = "saasbridge/0.1.0"


class BugsnagSettings(BaseSettings):
    """Error monitoring tenant. Immutable once loaded."""

    model_config = SettingsConfigDict(env_prefix="BUGSNAG_", extra="ignore", frozen=True)

    auth_token: SecretStr | None = Field(default=None, description="Personal authentication token")
    project_api_key: str | None = Field(default=None, description="Fixed-project key")
    endpoint: str | None = Field(default=None, description="Explicit endpoint override")

    @field_validator("project_api_key", "endpoint", mode="before")
    @classmethod
    def _blank_is_none(cls, v: str | None) -> str | None:
        return v or None

    @computed_field
    @property
    def configured(self) -> bool:
        return self.auth_token is not None


class ZephyrSettings(BaseSettings):
    """Test management tenant."""

    model_config = SettingsConfigDict(env_prefix="ZEPHYR_", extra="ignore", frozen=True)

    access_token: SecretStr | None = None
    base_url: str = "https://api.zephyrscale.smartbear.com/v2"

    @computed_field
    @property
    def configured(self) -> bool:
        return self.access_token is not None


class PactflowSettings(BaseSettings):
    """Contract testing tenant: PactFlow (token) or self-hosted Pact Broker (basic auth)."""

    model_config = SettingsConfigDict(env_prefix="PACT_BROKER_", extra="ignore", frozen=True)

    base_url: str | None = None
    token: SecretStr | None = None
    username: str | None = None
    password: SecretStr | None = None

    @computed_field
    @property
    def configured(self) -> bool:
        has_auth = self.token is not None or (self.username is not None and self.password is not None)
        return bool(self.base_url) and has_auth


class AdapterSettings(BaseSettings):
    """Root settings.

    Example environment variables:
        SAASBRIDGE_LOG_LEVEL=DEBUG
        SAASBRIDGE_CACHE_TTL=60
        ZEPHYR_ACCESS_TOKEN=...
    """

    model_config = SettingsConfigDict(
        env_prefix="SAASBRIDGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    cache: CacheSettings = Field(default_factory=CacheSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    http: HttpSettings = Field(default_factory=HttpSettings)
    bugsnag: BugsnagSettings = Field(default_factory=BugsnagSettings)
    zephyr: ZephyrSettings = Field(default_factory=ZephyrSettings)
    pactflow: PactflowSettings = Field(default_factory=PactflowSettings)


@lru_cache(maxsize=1)
def get_settings() -> AdapterSettings:
    """Get the settings instance (cached)."""
    return AdapterSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache so the next get_settings() re-reads the environment."""
    get_settings.cache_clear()
