"""Unit tests for the ruler-sync command line, run against FakeRuleStore."""

from __future__ import annotations

from pathlib import Path

import orjson
import pytest
import yaml

from ruler_sync.adapters import FakeRuleStore
from ruler_sync.cli import build_argument_parser, main
from ruler_sync.domain import RuleGroup


pytestmark = pytest.mark.unit

REMOTE = ["rules", "--address", "http://cortex:9009", "--id", "tenant-1"]

TEAM_A = """
namespace: team-a
groups:
  - name: cpu-alerts
    interval: 1m
    rules:
      - alert: HighCPU
        expr: cpu > 90
        for: 5m
        labels:
          severity: page
        annotations:
          summary: CPU is high
"""


def _run(store: FakeRuleStore, *args: str) -> int:
    return main([*REMOTE, *args], store_factory=lambda settings: store)


def test_parser_requires_an_action():
    with pytest.raises(SystemExit):
        build_argument_parser().parse_args(["rules"])


def test_missing_connection_settings_is_a_usage_error(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["rules", "list"], store_factory=lambda settings: FakeRuleStore())
    assert excinfo.value.code == 2
    assert "CORTEX_ADDRESS (--address)" in capsys.readouterr().err


def test_connection_settings_from_environment(monkeypatch, capsys, cpu_alerts):
    monkeypatch.setenv("CORTEX_ADDRESS", "http://cortex:9009")
    monkeypatch.setenv("CORTEX_TENANT_ID", "tenant-1")
    store = FakeRuleStore({"team-a": [cpu_alerts]})

    assert main(["rules", "list"], store_factory=lambda settings: store) == 0
    assert "team-a    | cpu-alerts" in capsys.readouterr().out


def test_flags_reach_settings():
    seen = []

    def factory(settings):
        seen.append(settings)
        return FakeRuleStore()

    assert main([*REMOTE, "--key", "secret", "--http-timeout", "5", "list"], store_factory=factory) == 0
    [settings] = seen
    assert settings.cortex_address == "http://cortex:9009"
    assert settings.cortex_tenant_id == "tenant-1"
    assert settings.cortex_api_key == "secret"
    assert settings.http_timeout == 5


def test_list(capsys, cpu_alerts, recording_group):
    store = FakeRuleStore({"team-b": [recording_group], "team-a": [cpu_alerts]})
    assert _run(store, "list") == 0
    assert capsys.readouterr().out.splitlines() == [
        "Namespace | Rule Group",
        "team-a    | cpu-alerts",
        "team-b    | recordings",
    ]


def test_print(capsys, cpu_alerts):
    assert _run(FakeRuleStore({"team-a": [cpu_alerts]}), "print") == 0
    assert yaml.safe_load(capsys.readouterr().out)["team-a"][0]["name"] == "cpu-alerts"


def test_print_when_empty(capsys):
    assert _run(FakeRuleStore(), "print") == 0
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "no rule groups currently exist for this user" in captured.err


def test_get(capsys, cpu_alerts):
    assert _run(FakeRuleStore({"team-a": [cpu_alerts]}), "get", "team-a", "cpu-alerts") == 0
    assert yaml.safe_load(capsys.readouterr().out)["rules"][0]["alert"] == "HighCPU"


def test_get_missing_group(capsys):
    assert _run(FakeRuleStore(), "get", "team-a", "cpu-alerts") == 0
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "this rule group does not currently exist" in captured.err


def test_get_fetch_failure(capsys):
    store = FakeRuleStore()
    store.fail_fetches_for.add(("team-a", "cpu-alerts"))
    assert _run(store, "get", "team-a", "cpu-alerts") == 1
    assert "unable to read rules from cortex" in capsys.readouterr().err


def test_delete(cpu_alerts):
    store = FakeRuleStore({"team-a": [cpu_alerts]})
    assert _run(store, "delete", "team-a", "cpu-alerts") == 0
    assert store.list_groups() == {}


def test_delete_missing_group(capsys):
    assert _run(FakeRuleStore(), "delete", "team-a", "cpu-alerts") == 1
    assert "unable to delete rule group from cortex" in capsys.readouterr().err


def test_load_creates_then_skips(capsys, write_rule_file, cpu_alerts):
    path = write_rule_file("team-a.yaml", TEAM_A)
    store = FakeRuleStore()

    assert _run(store, "load", str(path)) == 0
    assert capsys.readouterr().out == "created: team-a/cpu-alerts\n"
    assert store.list_groups() == {"team-a": [cpu_alerts]}

    assert _run(store, "load", str(path)) == 0
    assert capsys.readouterr().out == "unchanged: team-a/cpu-alerts\n"
    assert len(store.calls_for("create_or_replace_group")) == 1


def test_load_namespace_flag(capsys, write_rule_file):
    path = write_rule_file("node.yml", "groups:\n  - name: node\n")
    store = FakeRuleStore()
    assert _run(store, "load", "--namespace", "infra", str(path)) == 0
    assert store.list_groups() == {"infra": [RuleGroup(name="node")]}


def test_load_dry_run(capsys, write_rule_file, tmp_path):
    path = write_rule_file("team-a.yaml", TEAM_A)
    metrics_file = tmp_path / "metrics" / "ruler.prom"
    store = FakeRuleStore()

    assert _run(store, "load", "--dry-run", "--metrics-file", str(metrics_file), str(path)) == 0

    assert capsys.readouterr().out == "would create: team-a/cpu-alerts\n"
    assert store.calls_for("create_or_replace_group") == []
    assert not metrics_file.exists()


def test_load_writes_metrics_file(write_rule_file, tmp_path):
    path = write_rule_file("team-a.yaml", TEAM_A)
    metrics_file = tmp_path / "metrics" / "ruler.prom"

    assert _run(FakeRuleStore(), "load", "--metrics-file", str(metrics_file), str(path)) == 0

    content = metrics_file.read_text()
    assert "cortex_last_rule_load_success_timestamp_seconds" in content


def test_load_failure(capsys, write_rule_file):
    path = write_rule_file("team-a.yaml", TEAM_A)
    store = FakeRuleStore()
    store.fail_writes_for.add(("team-a", "cpu-alerts"))

    assert _run(store, "load", str(path)) == 1

    captured = capsys.readouterr()
    assert "failed: injected write failure" in captured.out
    assert "load operation unsuccessful" in captured.err


def test_load_parse_error_makes_no_remote_calls(capsys, write_rule_file):
    path = write_rule_file("bad.yaml", "groups: [")
    store = FakeRuleStore()

    assert _run(store, "load", str(path)) == 1

    assert store.calls == []
    assert "unable to parse rules files" in capsys.readouterr().err


def test_load_missing_file_is_a_usage_error(capsys, tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        _run(FakeRuleStore(), "load", str(tmp_path / "missing.yaml"))
    assert excinfo.value.code == 2
    assert "rule file(s) not found" in capsys.readouterr().err


def test_load_rejects_non_positive_timeout(capsys, write_rule_file):
    path = write_rule_file("team-a.yaml", TEAM_A)
    with pytest.raises(SystemExit):
        _run(FakeRuleStore(), "load", "--timeout", "0", str(path))
    assert "--timeout must be > 0" in capsys.readouterr().err


def test_json_logs(capsys, write_rule_file):
    path = write_rule_file("team-a.yaml", TEAM_A)
    assert main(["--log-json", *REMOTE, "load", str(path)], store_factory=lambda settings: FakeRuleStore()) == 0

    entries = [orjson.loads(line) for line in capsys.readouterr().err.splitlines()]
    creating = next(entry for entry in entries if entry["message"] == "creating group")
    assert (creating["namespace"], creating["group"]) == ("team-a", "cpu-alerts")


def test_invalid_log_level_is_a_usage_error(capsys):
    with pytest.raises(SystemExit):
        main(["--log-level", "loud", *REMOTE, "list"], store_factory=lambda settings: FakeRuleStore())
    assert "invalid configuration" in capsys.readouterr().err


def test_rule_file_paths_are_resolved_from_cwd(capsys, tmp_path: Path):
    (tmp_path / "rules").mkdir()
    (tmp_path / "rules" / "team-a.yaml").write_text(TEAM_A)
    assert _run(FakeRuleStore(), "load", "rules/team-a.yaml") == 0
    assert capsys.readouterr().out == "created: team-a/cpu-alerts\n"
