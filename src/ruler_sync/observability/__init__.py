"""Observability module for tracing, metrics, and logging."""

from ruler_sync.observability.context import bind_context, get_trace_context, log_context, set_trace_context
from ruler_sync.observability.logging import JsonFormatter, KeyValueFormatter, configure_logging
from ruler_sync.observability.metrics import (
    GROUP_ACTIONS,
    REGISTRY,
    RULE_LOAD_SUCCESS_TIMESTAMP,
    RULE_LOAD_TIMESTAMP,
    get_metrics,
    publish_run_result,
    write_metrics_file,
)
from ruler_sync.observability.tracing import (
    configure_trace_exporter,
    create_span,
    get_tracer,
    init_tracing,
    shutdown_tracing,
)


__all__ = [
    "GROUP_ACTIONS",
    "REGISTRY",
    "RULE_LOAD_SUCCESS_TIMESTAMP",
    "RULE_LOAD_TIMESTAMP",
    "JsonFormatter",
    "KeyValueFormatter",
    "bind_context",
    "configure_logging",
    "configure_trace_exporter",
    "create_span",
    "get_metrics",
    "get_trace_context",
    "get_tracer",
    "init_tracing",
    "log_context",
    "publish_run_result",
    "set_trace_context",
    "shutdown_tracing",
    "write_metrics_file",
]
