"""Service layer - use case orchestration over the rule store."""

from ruler_sync.service_layer.reconciler import GroupAction, GroupOutcome, RunResult, reconcile, reconcile_group
from ruler_sync.service_layer.rule_commands import (
    delete_rule_group,
    format_group_table,
    get_rule_group,
    list_rule_groups,
    load_rule_files,
    print_rule_groups,
    render_rule_group,
)


__all__ = [
    "GroupAction",
    "GroupOutcome",
    "RunResult",
    "delete_rule_group",
    "format_group_table",
    "get_rule_group",
    "list_rule_groups",
    "load_rule_files",
    "print_rule_groups",
    "reconcile",
    "reconcile_group",
    "render_rule_group",
]
