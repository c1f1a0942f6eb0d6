"""Correlation fields shared by log records and spans.

Holds the trace and span ids of the running load plus the rule group being
reconciled, so each log line can be tied back to both.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
import secrets
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from collections.abc import Iterator

    from opentelemetry.trace import Span

log_context: ContextVar[dict[str, str] | None] = ContextVar("ruler_sync_log_context", default=None)


def get_trace_context() -> dict[str, str]:
    """Current correlation fields, starting a fresh trace when none is active."""
    ctx = log_context.get()
    if not ctx or not ctx.get("trace_id"):
        ctx = {"trace_id": secrets.token_hex(16), "span_id": secrets.token_hex(8)}
        log_context.set(ctx)
    return ctx


def set_trace_context(trace_id: str, span_id: str, **fields: str) -> None:
    log_context.set({"trace_id": trace_id, "span_id": span_id, **fields})


@contextmanager
def bind_context(**fields: str) -> Iterator[dict[str, str]]:
    """Overlay fields (namespace, group, span ids) for the duration of the block."""
    token = log_context.set({**get_trace_context(), **fields})
    try:
        yield log_context.get() or {}
    finally:
        log_context.reset(token)


def span_ids(span: Span) -> dict[str, str]:
    """Hex trace and span ids of an OpenTelemetry span, empty for a non-recording one."""
    ctx = span.get_span_context()
    if not ctx.is_valid:
        return {}
    return {"trace_id": format(ctx.trace_id, "032x"), "span_id": format(ctx.span_id, "016x")}
