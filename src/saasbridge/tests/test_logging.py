"""Tests for structured logging."""

from __future__ import annotations

import io

import orjson
import pytest

from saasbridge.runtime.observability import (
    CapturingRenderer,
    ConsoleRenderer,
    JsonRenderer,
    LogEntry,
    configure_logging,
    get_logger,
    log_context,
    timed,
)
from saasbridge.runtime.observability import logging as log_module


@pytest.fixture(autouse=True)
def restore_logging() -> object:
    renderer, level = log_module._renderer, log_module._default_level
    yield
    log_module._renderer, log_module._default_level = renderer, level


def test_bound_context_is_merged(captured_logs: CapturingRenderer) -> None:
    log = get_logger("bugsnag", tenant="acme").bind(project="p1")
    log.info("context established", projects=2)
    (entry,) = captured_logs.entries
    assert entry.event == "context established"
    assert entry.context == {"tenant": "acme", "logger": "bugsnag", "project": "p1", "projects": 2}


def test_credentials_are_redacted(captured_logs: CapturingRenderer) -> None:
    get_logger("zephyr", access_token="secret").warning("auth failed", Password="hunter2", token=None)
    context = captured_logs.entries[0].context
    assert context["access_token"] == "***"
    assert context["Password"] == "***"
    assert context["token"] is None


def test_level_threshold(captured_logs: CapturingRenderer) -> None:
    log = get_logger()
    log.debug("hidden")
    log.warning("shown")
    assert captured_logs.events() == ["shown"]


def test_log_context_scope(captured_logs: CapturingRenderer) -> None:
    log = get_logger()
    with log_context(request_id="r1"):
        log.info("inside")
    log.info("outside")
    inside, outside = captured_logs.entries
    assert inside.context["request_id"] == "r1"
    assert "request_id" not in outside.context


def test_console_renderer_format() -> None:
    out = io.StringIO()
    ConsoleRenderer(output=out, show_timestamp=False).render(
        LogEntry(0.0, "warning", "request failed", {"status": 503, "url": "u", "ok": False})
    )
    assert out.getvalue() == '[warning] request failed ok=false status=503 url="u"\n'


def test_json_renderer_emits_one_object_per_line() -> None:
    out = io.StringIO()
    JsonRenderer(output=out).render(LogEntry(0.0, "info", "done", {"count": 3}))
    record = orjson.loads(out.getvalue())
    assert record["event"] == "done"
    assert record["count"] == 3
    assert record["timestamp"].startswith("1970-01-01")


def test_configure_logging_sets_level_and_renderer() -> None:
    out = io.StringIO()
    configure_logging(format="json", level="WARNING", output=out)
    log = get_logger("x")
    log.info("dropped")
    log.error("kept")
    lines = out.getvalue().splitlines()
    assert len(lines) == 1
    assert orjson.loads(lines[0])["event"] == "kept"


def test_configure_logging_rejects_unknown_format() -> None:
    with pytest.raises(ValueError, match="Unknown format"):
        configure_logging(format="xml")


class TestTimed:
    @pytest.mark.asyncio
    async def test_success_is_logged_with_duration(self, captured_logs: CapturingRenderer) -> None:
        @timed(get_logger(), level="info", event="listed")
        async def list_things() -> int:
            return 3

        assert await list_things() == 3
        (entry,) = captured_logs.entries
        assert entry.event == "listed"
        assert entry.context["function"] == "list_things"
        assert entry.context["duration_ms"] >= 0

    @pytest.mark.asyncio
    async def test_failure_is_logged_and_reraised(self, captured_logs: CapturingRenderer) -> None:
        @timed(get_logger())
        async def boom() -> None:
            raise RuntimeError("nope")

        with pytest.raises(RuntimeError):
            await boom()
        assert captured_logs.events("warning") == ["operation completed failed"]
