"""Domain layer - rule definitions, comparison, and errors.

No infrastructure dependencies: no HTTP clients, no file access.
"""

from ruler_sync.domain.comparison import GroupComparison, compare_groups, compare_rules
from ruler_sync.domain.errors import (
    DeadlineExceededError,
    ParseError,
    RuleGroupNotFoundError,
    RulerSyncError,
    RuleStoreError,
    RuleStoreTransportError,
)
from ruler_sync.domain.model import AlertingRule, Namespace, RecordingRule, Rule, RuleGroup


__all__ = [
    "AlertingRule",
    "DeadlineExceededError",
    "GroupComparison",
    "Namespace",
    "ParseError",
    "RecordingRule",
    "Rule",
    "RuleGroup",
    "RuleGroupNotFoundError",
    "RuleStoreError",
    "RuleStoreTransportError",
    "RulerSyncError",
    "compare_groups",
    "compare_rules",
]
