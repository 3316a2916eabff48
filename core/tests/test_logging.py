"""Tests for trace-context aware log formatting."""

import asyncio
import json
import logging
import sys

import pytest

from tuitionlift.observability.logging import (
    HumanReadableFormatter,
    StructuredFormatter,
    configure_logging,
    get_trace_context,
    set_trace_context,
    strip_ansi_codes,
)


def _record(message="hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="tuitionlift.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    def test_includes_trace_context_and_extras(self):
        set_trace_context(thread_id="user_42", run_id="abc123", node_id="Search")
        line = StructuredFormatter().format(_record(event="node_complete", latency_ms=12))
        entry = json.loads(line)

        assert entry["message"] == "hello"
        assert entry["level"] == "info"
        assert entry["thread_id"] == "user_42"
        assert entry["run_id"] == "abc123"
        assert entry["node_id"] == "Search"
        assert entry["event"] == "node_complete"
        assert entry["latency_ms"] == 12

    def test_strips_ansi(self):
        entry = json.loads(StructuredFormatter().format(_record("\033[32mok\033[0m")))
        assert entry["message"] == "ok"

    def test_exception_included(self):
        try:
            raise ValueError("bad")
        except ValueError:
            record = _record()
            record.exc_info = sys.exc_info()
        entry = json.loads(StructuredFormatter().format(record))
        assert "ValueError: bad" in entry["exception"]


class TestHumanReadableFormatter:
    def test_prefix_shows_context(self):
        set_trace_context(thread_id="user_42", run_id="0123456789abcdef", node_id="Verify")
        line = strip_ansi_codes(HumanReadableFormatter().format(_record(event="run_started")))

        assert "[thread:user_42 | run:01234567 | node:Verify]" in line
        assert line.endswith("hello [run_started]")

    def test_no_context_no_prefix(self):
        line = strip_ansi_codes(HumanReadableFormatter().format(_record()))
        assert line == "[INFO    ] hello"


@pytest.mark.asyncio
async def test_context_is_task_local():
    async def run(thread_id):
        set_trace_context(thread_id=thread_id)
        await asyncio.sleep(0)
        return get_trace_context()["thread_id"]

    assert await asyncio.gather(run("a"), run("b")) == ["a", "b"]


def test_configure_logging_json(monkeypatch):
    monkeypatch.setenv("NO_COLOR", "")
    monkeypatch.setenv("FORCE_COLOR", "")
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        configure_logging(level="DEBUG", format="json")
        assert isinstance(root.handlers[0].formatter, StructuredFormatter)
        assert root.level == logging.DEBUG
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
