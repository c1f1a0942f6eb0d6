"""Prometheus metrics for rule loads.

The reconciler itself keeps no global state: it returns the load timestamps in
its RunResult and the CLI publishes them here. A short-lived CLI cannot be
scraped directly, so the registry can be written to a node-exporter textfile.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from prometheus_client import CollectorRegistry, Counter, Gauge, generate_latest, write_to_textfile


if TYPE_CHECKING:
    from ruler_sync.service_layer.reconciler import RunResult


REGISTRY = CollectorRegistry(auto_describe=True)

RULE_LOAD_TIMESTAMP = Gauge(
    "last_rule_load_timestamp_seconds",
    "The timestamp of the last rule load.",
    namespace="cortex",
    registry=REGISTRY,
)

RULE_LOAD_SUCCESS_TIMESTAMP = Gauge(
    "last_rule_load_success_timestamp_seconds",
    "The timestamp of the last successful rule load.",
    namespace="cortex",
    registry=REGISTRY,
)

GROUP_ACTIONS = Counter(
    "ruler_sync_group_actions",
    "Rule groups processed by a load, by action taken",
    ["action"],
    registry=REGISTRY,
)


def publish_run_result(result: RunResult) -> None:
    """Copy a load's timestamps and per-group actions onto the registry.

    The success gauge only moves when the whole run succeeded.
    """
    RULE_LOAD_TIMESTAMP.set(result.load_attempted_at.timestamp())
    if result.load_succeeded_at is not None:
        RULE_LOAD_SUCCESS_TIMESTAMP.set(result.load_succeeded_at.timestamp())
    for outcome in result.outcomes:
        GROUP_ACTIONS.labels(action=outcome.action.value).inc()


def write_metrics_file(path: Path) -> None:
    """Atomically write the registry in Prometheus text format."""
    path.parent.mkdir(parents=True, exist_ok=True)
    write_to_textfile(str(path), REGISTRY)


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest(REGISTRY)
