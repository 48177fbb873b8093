"""Tests for environment-based settings."""

import pytest

from saasbridge.foundation.config import AdapterSettings, BugsnagSettings, PactflowSettings, get_settings


def test_defaults() -> None:
    settings = AdapterSettings()
    assert settings.cache.ttl == 300.0
    assert settings.cache.enabled
    assert settings.logging.level == "INFO"
    assert not settings.bugsnag.configured
    assert not settings.zephyr.configured
    assert not settings.pactflow.configured


def test_backend_blocks_read_their_own_prefix(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BUGSNAG_AUTH_TOKEN", "tok")
    monkeypatch.setenv("BUGSNAG_PROJECT_API_KEY", "00000abc")
    monkeypatch.setenv("ZEPHYR_ACCESS_TOKEN", "ztok")
    settings = AdapterSettings()
    assert settings.bugsnag.configured
    assert settings.bugsnag.auth_token is not None
    assert settings.bugsnag.auth_token.get_secret_value() == "tok"
    assert settings.bugsnag.project_api_key == "00000abc"
    assert settings.zephyr.configured


def test_blank_values_are_unset(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BUGSNAG_PROJECT_API_KEY", "")
    monkeypatch.setenv("BUGSNAG_ENDPOINT", "")
    settings = BugsnagSettings()
    assert settings.project_api_key is None
    assert settings.endpoint is None


def test_framework_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SAASBRIDGE_CACHE_TTL", "60")
    monkeypatch.setenv("SAASBRIDGE_LOG_LEVEL", "debug")
    settings = AdapterSettings()
    assert settings.cache.ttl == 60.0
    assert settings.logging.level == "DEBUG"


def test_invalid_ttl_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SAASBRIDGE_CACHE_TTL", "0")
    with pytest.raises(ValueError):
        AdapterSettings()


@pytest.mark.parametrize(
    ("env", "configured"),
    [
        ({"PACT_BROKER_BASE_URL": "https://b.test", "PACT_BROKER_TOKEN": "t"}, True),
        ({"PACT_BROKER_BASE_URL": "https://b.test", "PACT_BROKER_USERNAME": "u", "PACT_BROKER_PASSWORD": "p"}, True),
        ({"PACT_BROKER_BASE_URL": "https://b.test", "PACT_BROKER_USERNAME": "u"}, False),
        ({"PACT_BROKER_TOKEN": "t"}, False),
    ],
)
def test_pactflow_requires_url_and_credentials(
    monkeypatch: pytest.MonkeyPatch, env: dict[str, str], configured: bool,
) -> None:
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    assert PactflowSettings().configured is configured


def test_get_settings_is_cached() -> None:
    assert get_settings() is get_settings()
