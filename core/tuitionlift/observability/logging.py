"""
Structured logging with automatic run correlation.

Every discovery run is tagged with its thread and run identifiers, and
each node execution adds its node id. Any ``logger.info(...)`` issued
while a node runs (including inside collaborators such as the search
client) carries all three without the caller passing them around.

Flow:
    GraphExecutor.invoke()/resume() → sets thread_id, run_id
        ↓ (ContextVar propagation through awaits)
    GraphExecutor._run_loop() → sets node_id
        ↓
    Node / collaborator code → logger.info("...") gets the full context
"""

import json
import logging
import os
import re
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

# Task-local, so concurrent runs on different threads never mix context
trace_context: ContextVar[dict[str, Any] | None] = ContextVar("trace_context", default=None)

_ANSI = re.compile(r"\x1b\[[0-9;]*m")

# Record attributes copied into JSON output when passed via ``extra=``
_EXTRA_FIELDS = ("event", "node_id", "latency_ms", "next_node", "status")

THIRD_PARTY_LOGGERS = ["LiteLLM", "httpx", "httpcore"]

_LEVEL_COLORS = {
    logging.DEBUG: "\x1b[36m",
    logging.INFO: "\x1b[32m",
    logging.WARNING: "\x1b[33m",
    logging.ERROR: "\x1b[31m",
    logging.CRITICAL: "\x1b[35m",
}
_RESET = "\x1b[0m"


def strip_ansi_codes(text: str) -> str:
    """Drop terminal colour sequences so JSON lines stay clean."""
    return _ANSI.sub("", text)


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for production.

    One object per line with timestamp, level, logger, message, the
    current trace context and any known extra fields.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": strip_ansi_codes(record.getMessage()),
            **get_trace_context(),
        }

        for name in _EXTRA_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = strip_ansi_codes(value) if isinstance(value, str) else value

        if record.exc_info:
            entry["exception"] = strip_ansi_codes(self.formatException(record.exc_info))

        return json.dumps(entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Colourised single-line format for local development."""

    def format(self, record: logging.LogRecord) -> str:
        context = get_trace_context()
        tags = []
        if context.get("thread_id"):
            tags.append(f"thread:{context['thread_id']}")
        if context.get("run_id"):
            tags.append(f"run:{context['run_id'][:8]}")
        if context.get("node_id"):
            tags.append(f"node:{context['node_id']}")
        prefix = f"[{' | '.join(tags)}] " if tags else ""

        color = _LEVEL_COLORS.get(record.levelno, "")
        event = getattr(record, "event", None)
        suffix = f" [{event}]" if event is not None else ""

        line = f"{color}[{record.levelname:<8}]{_RESET} {prefix}{record.getMessage()}{suffix}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _resolve_format(format: str) -> str:
    if format != "auto":
        return format
    if os.getenv("LOG_FORMAT", "").lower() == "json":
        return "json"
    return "json" if os.getenv("ENV", "development").lower() == "production" else "human"


def configure_logging(level: str = "INFO", format: str = "auto") -> None:
    """
    Configure logging for the process. Call once at startup (CLI entry, test fixture).

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: "json" for machine-parseable output, "human" for coloured
            output, "auto" for JSON when LOG_FORMAT=json or ENV=production
    """
    format = _resolve_format(format)

    handler = logging.StreamHandler()
    if format == "json":
        handler.setFormatter(StructuredFormatter())
        _quiet_third_party_output()
    else:
        handler.setFormatter(HumanReadableFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper())

    if format == "json":
        # Route library output through our handler so every line stays valid JSON
        for name in THIRD_PARTY_LOGGERS:
            library_logger = logging.getLogger(name)
            library_logger.handlers.clear()
            library_logger.propagate = True


def _quiet_third_party_output() -> None:
    """Turn off colour and debug banners that would break JSON lines."""
    os.environ["NO_COLOR"] = "1"
    os.environ["FORCE_COLOR"] = "0"

    import litellm

    litellm.suppress_debug_info = True


def set_trace_context(**kwargs: Any) -> None:
    """
    Add fields to the trace context of the current task.

    Called by the executor (thread_id, run_id at run start; node_id per
    node). Values propagate to every coroutine awaited from here.
    """
    trace_context.set({**(trace_context.get() or {}), **kwargs})


def get_trace_context() -> dict:
    """Return a copy of the current trace context (empty dict if unset)."""
    return dict(trace_context.get() or {})


def clear_trace_context() -> None:
    """Reset the trace context, e.g. between tests."""
    trace_context.set(None)
