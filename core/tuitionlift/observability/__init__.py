"""
Observability: structured logging with automatic run correlation.

- ContextVar trace context (thread_id, run_id, node_id)
- JSON output for production, coloured output for development
"""

from tuitionlift.observability.logging import (
    clear_trace_context,
    configure_logging,
    get_trace_context,
    set_trace_context,
)

__all__ = [
    "configure_logging",
    "get_trace_context",
    "set_trace_context",
    "clear_trace_context",
]
