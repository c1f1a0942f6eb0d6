"""ruler-sync: reconcile Prometheus-style rule files against a Cortex ruler."""

from ruler_sync.domain import AlertingRule, Namespace, ParseError, RecordingRule, RuleGroup, compare_groups
from ruler_sync.rule_files import parse_files
from ruler_sync.service_layer import GroupAction, RunResult, reconcile


__version__ = "0.1.0"

__all__ = [
    "AlertingRule",
    "GroupAction",
    "Namespace",
    "ParseError",
    "RecordingRule",
    "RuleGroup",
    "RunResult",
    "__version__",
    "compare_groups",
    "parse_files",
    "reconcile",
]
