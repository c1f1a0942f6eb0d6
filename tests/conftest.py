"""Shared test fixtures and configuration."""

from datetime import timedelta
import logging
from pathlib import Path
from textwrap import dedent

import pytest

from ruler_sync.domain.model import AlertingRule, RecordingRule, RuleGroup


# Settings read these; tests must not pick them up from the developer's shell
RULER_ENV_VARS = (
    "CORTEX_ADDRESS",
    "CORTEX_TENANT_ID",
    "CORTEX_TENTANT_ID",
    "CORTEX_API_KEY",
    "RULER_API_PREFIX",
    "HTTP_TIMEOUT",
    "MAX_RETRIES",
    "DEFAULT_NAMESPACE",
    "LOG_LEVEL",
    "LOG_JSON",
    "METRICS_FILE",
    "OTLP_ENABLED",
    "OTLP_PROTOCOL",
    "OTLP_ENDPOINT",
    "OTLP_TIMEOUT_SECONDS",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    """Clear ruler settings and run from an empty directory so no .env is read."""
    for key in RULER_ENV_VARS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def write_rule_file(tmp_path):
    """Write dedented YAML to a file under tmp_path and return its path."""

    def _write(name: str, content: str) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(dedent(content), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def cpu_alerts() -> RuleGroup:
    """The team-a/cpu-alerts group as declared locally."""
    return RuleGroup(
        name="cpu-alerts",
        interval=timedelta(minutes=1),
        rules=(
            AlertingRule(
                alert="HighCPU",
                expr="cpu > 90",
                for_duration=timedelta(minutes=5),
                labels={"severity": "page"},
                annotations={"summary": "CPU is high"},
            ),
        ),
    )


@pytest.fixture
def recording_group() -> RuleGroup:
    return RuleGroup(
        name="recordings",
        rules=(
            RecordingRule(record="job:cpu:rate5m", expr="sum by (job) (rate(cpu_seconds_total[5m]))"),
            RecordingRule(record="job:cpu:max", expr="max by (job) (job:cpu:rate5m)", labels={"team": "a"}),
        ),
    )


@pytest.fixture(autouse=True)
def restore_root_logger():
    """configure_logging replaces root handlers; put the originals back after each test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
