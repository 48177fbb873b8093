"""Tests for building every configured backend at startup."""

from __future__ import annotations

import pytest

from saasbridge import init_backends
from saasbridge.foundation.config import (
    AdapterSettings,
    BugsnagSettings,
    LoggingSettings,
    PactflowSettings,
    ZephyrSettings,
)
from saasbridge.runtime.observability import CapturingRenderer
from saasbridge.runtime.observability import logging as log_module

from conftest import FakeApi


@pytest.fixture(autouse=True)
def restore_logging() -> object:
    renderer, level = log_module._renderer, log_module._default_level
    yield
    log_module._renderer, log_module._default_level = renderer, level


def quiet(**backends: object) -> AdapterSettings:
    return AdapterSettings(logging=LoggingSettings(format="none"), **backends)


@pytest.mark.asyncio
async def test_unconfigured_backends_are_skipped() -> None:
    backends = await init_backends(quiet())
    assert len(backends.registry) == 0
    assert backends.clients == []


@pytest.mark.asyncio
async def test_configured_backends_register_operations(fake_api: FakeApi) -> None:
    fake_api.add("GET", "/user/organizations", [{"id": "org1", "slug": "acme"}])
    fake_api.add("GET", "/organizations/org1/projects", [])
    settings = quiet(
        bugsnag=BugsnagSettings(auth_token="tok"),
        zephyr=ZephyrSettings(access_token="ztok"),
    )
    backends = await init_backends(settings, bugsnag=fake_api.transport, zephyr=fake_api.transport)
    try:
        assert [c.name for c in backends.clients] == ["bugsnag", "zephyr"]
        assert len(backends.registry.names("bugsnag")) == 10
        assert len(backends.registry.names("zephyr")) == 16
        assert backends.registry.names("pactflow") == []
        # Context was warmed during startup.
        assert fake_api.calls("GET", "/organizations/org1/projects")
    finally:
        await backends.aclose()


@pytest.mark.asyncio
async def test_unreachable_backend_still_registers(fake_api: FakeApi) -> None:
    fake_api.add("GET", "/user/organizations", {"errors": ["Unauthorized"]}, status=401)
    backends = await init_backends(quiet(bugsnag=BugsnagSettings(auth_token="bad")), bugsnag=fake_api.transport)
    assert "bugsnag.list_project_errors" in backends.registry
    error = (await backends.registry.execute("bugsnag.list_projects", {})).unwrap_err()
    assert error.status_code == 401


@pytest.mark.asyncio
async def test_rejected_backend_is_logged_and_skipped(monkeypatch: pytest.MonkeyPatch) -> None:
    settings = quiet(
        bugsnag=BugsnagSettings(auth_token="tok", endpoint="not a url"),
        pactflow=PactflowSettings(base_url="https://broker.test", token="ptok"),
    )
    captured = CapturingRenderer()
    monkeypatch.setattr("saasbridge.configure_logging", lambda *a, **kw: captured)
    log_module._renderer = captured

    backends = await init_backends(settings)
    assert [c.name for c in backends.clients] == ["pactflow"]
    assert "backend configuration rejected" in captured.events("error")
