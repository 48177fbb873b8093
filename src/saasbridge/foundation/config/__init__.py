"""Configuration management using pydantic-settings."""

from .settings import (
    AdapterSettings,
    BugsnagSettings,
    CacheSettings,
    HttpSettings,
    LoggingSettings,
    PactflowSettings,
    ZephyrSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "AdapterSettings",
    "BugsnagSettings",
    "CacheSettings",
    "HttpSettings",
    "LoggingSettings",
    "PactflowSettings",
    "ZephyrSettings",
    "clear_settings_cache",
    "get_settings",
]
