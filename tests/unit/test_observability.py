"""Unit tests for logging, metrics, tracing and correlation context."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import io
import logging

import orjson
from opentelemetry.sdk.trace import TracerProvider
import pytest

from ruler_sync.config import ObservabilityCollectorConfig
from ruler_sync.observability import (
    REGISTRY,
    JsonFormatter,
    KeyValueFormatter,
    bind_context,
    configure_logging,
    configure_trace_exporter,
    create_span,
    get_metrics,
    get_trace_context,
    publish_run_result,
    set_trace_context,
    write_metrics_file,
)
from ruler_sync.observability.logging import MAX_MESSAGE_LEN
from ruler_sync.service_layer import GroupAction, GroupOutcome, RunResult


pytestmark = pytest.mark.unit


def _record(message: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord("ruler_sync.service_layer.reconciler", logging.INFO, __file__, 1, message, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def _sample(name: str, **labels: str) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestJsonFormatter:
    """Test structured log output."""

    def test_core_fields(self):
        set_trace_context("a" * 32, "b" * 16)
        entry = orjson.loads(JsonFormatter().format(_record()))

        assert entry["message"] == "hello"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "ruler_sync.service_layer.reconciler"
        assert entry["trace_id"] == "a" * 32
        assert entry["span_id"] == "b" * 16

    def test_bound_context_fields(self):
        set_trace_context("a" * 32, "b" * 16)
        with bind_context(namespace="team-a", group="cpu-alerts"):
            entry = orjson.loads(JsonFormatter().format(_record()))
        assert (entry["namespace"], entry["group"]) == ("team-a", "cpu-alerts")

        entry = orjson.loads(JsonFormatter().format(_record()))
        assert "namespace" not in entry

    def test_extra_fields_are_serialized_and_redacted(self):
        record = _record(difference="interval: 1m != 2m", api_key="secret", pending=timedelta(minutes=5))
        entry = orjson.loads(JsonFormatter().format(record))

        assert entry["difference"] == "interval: 1m != 2m"
        assert entry["api_key"] == "[REDACTED]"
        assert entry["pending"] == 300.0

    def test_long_messages_are_truncated(self):
        entry = orjson.loads(JsonFormatter().format(_record("x" * 5000)))
        assert len(entry["message"]) == MAX_MESSAGE_LEN + 3


class TestConfigureLogging:
    """Test root logger configuration."""

    def test_json_output(self):
        stream = io.StringIO()
        configure_logging("debug", json_output=True, stream=stream)
        logging.getLogger("ruler_sync.test").debug("creating group", extra={"group": "cpu-alerts"})

        entry = orjson.loads(stream.getvalue().splitlines()[-1])
        assert entry["message"] == "creating group"
        assert entry["group"] == "cpu-alerts"

    def test_key_value_output(self):
        stream = io.StringIO()
        configure_logging("info", json_output=False, stream=stream)
        logging.getLogger("ruler_sync.test").info("creating group", extra={"group": "cpu-alerts"})
        logging.getLogger("ruler_sync.test").debug("hidden")

        output = stream.getvalue()
        assert "INFO [ruler_sync.test] creating group group=cpu-alerts" in output
        assert "hidden" not in output

    def test_logger_level_overrides(self):
        configure_logging("info", stream=io.StringIO(), logger_levels={"ruler_sync.noisy": "error"})
        assert logging.getLogger("ruler_sync.noisy").level == logging.ERROR
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_key_value_formatter_without_extras(self):
        line = KeyValueFormatter().format(_record("plain"))
        assert line.endswith("INFO [ruler_sync.service_layer.reconciler] plain")


class TestMetrics:
    """Test load gauges and the textfile export."""

    def _result(self, *, succeeded: bool) -> RunResult:
        attempted = datetime(2024, 1, 1, tzinfo=timezone.utc)
        return RunResult(
            load_attempted_at=attempted,
            outcomes=[
                GroupOutcome("team-a", "cpu-alerts", GroupAction.CREATED),
                GroupOutcome("team-a", "recordings", GroupAction.UNCHANGED),
            ],
            load_succeeded_at=attempted + timedelta(seconds=2) if succeeded else None,
            error=None if succeeded else "boom",
        )

    def test_successful_load_moves_both_gauges(self):
        created_before = _sample("ruler_sync_group_actions_total", action="created")
        publish_run_result(self._result(succeeded=True))

        attempted = datetime(2024, 1, 1, tzinfo=timezone.utc).timestamp()
        assert _sample("cortex_last_rule_load_timestamp_seconds") == attempted
        assert _sample("cortex_last_rule_load_success_timestamp_seconds") == attempted + 2
        assert _sample("ruler_sync_group_actions_total", action="created") == created_before + 1

    def test_failed_load_keeps_previous_success_timestamp(self):
        publish_run_result(self._result(succeeded=True))
        success_before = _sample("cortex_last_rule_load_success_timestamp_seconds")

        failed = self._result(succeeded=False)
        failed.load_attempted_at = failed.load_attempted_at + timedelta(hours=1)
        publish_run_result(failed)

        assert _sample("cortex_last_rule_load_success_timestamp_seconds") == success_before
        assert _sample("cortex_last_rule_load_timestamp_seconds") == failed.load_attempted_at.timestamp()

    def test_textfile_export(self, tmp_path):
        publish_run_result(self._result(succeeded=True))
        path = tmp_path / "textfile" / "ruler_sync.prom"

        write_metrics_file(path)

        content = path.read_text()
        assert "cortex_last_rule_load_timestamp_seconds" in content
        assert "cortex_last_rule_load_success_timestamp_seconds" in content
        assert 'ruler_sync_group_actions_total{action="created"}' in content

    def test_exposition(self):
        assert b"cortex_last_rule_load_timestamp_seconds" in get_metrics()


class TestTracing:
    """Test span helpers and exporter configuration."""

    def test_create_span_binds_span_ids_to_log_context(self):
        set_trace_context("c" * 32, "d" * 16, namespace="team-a")
        with create_span("rules.load", attributes={"rules.groups": 2}) as span:
            span_context = span.get_span_context()
            ctx = get_trace_context()
            assert ctx["trace_id"] == format(span_context.trace_id, "032x")
            assert ctx["span_id"] == format(span_context.span_id, "016x")
            assert ctx["namespace"] == "team-a"

        assert get_trace_context() == {"trace_id": "c" * 32, "span_id": "d" * 16, "namespace": "team-a"}

    def test_create_span_reraises(self):
        with pytest.raises(RuntimeError, match="boom"):
            with create_span("rules.reconcile_group"):
                raise RuntimeError("boom")

    def test_exporter_disabled(self):
        assert configure_trace_exporter(None) is False
        assert configure_trace_exporter(ObservabilityCollectorConfig(enabled=False)) is False

    def test_http_exporter_attached(self):
        provider = TracerProvider()
        config = ObservabilityCollectorConfig(enabled=True, collector_endpoint="http://collector:4318/v1/traces")
        try:
            assert configure_trace_exporter(config, provider) is True
        finally:
            provider.shutdown()


class TestContext:
    """Test log correlation context."""

    def test_bind_context_restores_previous_fields(self):
        set_trace_context("e" * 32, "f" * 16, namespace="outer")
        with bind_context(namespace="inner", group="g") as ctx:
            assert ctx["namespace"] == "inner"
            assert ctx["trace_id"] == "e" * 32
        assert get_trace_context()["namespace"] == "outer"
        assert "group" not in get_trace_context()

    def test_trace_context_is_generated_on_demand(self):
        set_trace_context("", "")
        ctx = get_trace_context()
        assert len(ctx["trace_id"]) == 32
        assert len(ctx["span_id"]) == 16
