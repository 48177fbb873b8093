"""Shared fixtures: a route-table fake for httpx.MockTransport and log capture."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

import httpx
import orjson
import pytest

from saasbridge.foundation.config import clear_settings_cache
from saasbridge.runtime.observability import CapturingRenderer
from saasbridge.runtime.observability import logging as log_module

Responder = Callable[[httpx.Request], httpx.Response]


class FakeApi:
    """Routes (method, path) to queued responses and records every request.

    A route registered several times answers in order; the last response
    repeats once the queue is down to one.
    """

    def __init__(self) -> None:
        self._routes: dict[tuple[str, str], list[Responder]] = {}
        self.requests: list[httpx.Request] = []

    def add(
        self,
        method: str,
        path: str,
        json: Any = None,
        *,
        status: int = 200,
        headers: dict[str, str] | None = None,
        content: bytes | None = None,
    ) -> FakeApi:
        body = content if content is not None else (orjson.dumps(json) if json is not None else b"")
        hdrs = {"Content-Type": "application/json", **(headers or {})}
        self._routes.setdefault((method, path), []).append(
            lambda _req: httpx.Response(status, content=body, headers=hdrs)
        )
        return self

    def add_handler(self, method: str, path: str, responder: Responder) -> FakeApi:
        self._routes.setdefault((method, path), []).append(responder)
        return self

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self._routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"errors": [f"no route for {request.method} {request.url.path}"]})
        responder = queue.pop(0) if len(queue) > 1 else queue[0]
        return responder(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]


@pytest.fixture
def fake_api() -> FakeApi:
    return FakeApi()


@pytest.fixture
def captured_logs() -> Iterator[CapturingRenderer]:
    """Route every logger without an explicit renderer into memory."""
    previous = log_module._renderer
    renderer = CapturingRenderer()
    log_module._renderer = renderer
    yield renderer
    log_module._renderer = previous


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Isolate tests from the developer's environment and the settings cache."""
    for var in (
        "BUGSNAG_AUTH_TOKEN", "BUGSNAG_PROJECT_API_KEY", "BUGSNAG_ENDPOINT",
        "ZEPHYR_ACCESS_TOKEN", "ZEPHYR_BASE_URL",
        "PACT_BROKER_BASE_URL", "PACT_BROKER_TOKEN", "PACT_BROKER_USERNAME", "PACT_BROKER_PASSWORD",
    ):
        monkeypatch.delenv(var, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()
