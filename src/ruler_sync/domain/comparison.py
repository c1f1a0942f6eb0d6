"""Semantic comparison of a remotely stored rule group against a local one.

The outcome decides whether the reconciler writes to the remote store, so it
must not depend on dict ordering: every mapping is compared through sorted
keys, and expressions through their normalized token form.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from ruler_sync.domain.model import AlertingRule, Rule, RuleGroup
from ruler_sync.utils.durations import durations_equal, format_duration
from ruler_sync.utils.promql import normalize_expr


@dataclass(slots=True, frozen=True)
class GroupComparison:
    """Result of comparing two rule groups.

    ``differences`` is empty when the groups are equal. Each entry names the
    diverging field, written as ``remote != local``.
    """

    differences: tuple[str, ...] = ()

    @property
    def equal(self) -> bool:
        return not self.differences

    @property
    def needs_update(self) -> bool:
        return bool(self.differences)

    @property
    def reason(self) -> str:
        return "; ".join(self.differences)

    def __str__(self) -> str:
        return "equal" if self.equal else self.reason


def _describe_duration(value) -> str:
    return format_duration(value) or "unset"


def _mapping_differences(field: str, remote: Mapping[str, str], local: Mapping[str, str]) -> list[str]:
    diffs: list[str] = []
    for key in sorted(set(remote) | set(local)):
        if key not in local:
            diffs.append(f"{field}[{key!r}] only in remote")
        elif key not in remote:
            diffs.append(f"{field}[{key!r}] only in local")
        elif remote[key] != local[key]:
            diffs.append(f"{field}[{key!r}]: {remote[key]!r} != {local[key]!r}")
    return diffs


def compare_rules(remote: Rule, local: Rule) -> list[str]:
    """Field-level differences between two rules, empty when equal."""
    if remote.kind != local.kind:
        return [f"kind: {remote.kind} != {local.kind}"]

    diffs: list[str] = []
    if remote.name != local.name:
        field = "alert" if local.kind == "alerting" else "record"
        diffs.append(f"{field}: {remote.name!r} != {local.name!r}")

    remote_expr = normalize_expr(remote.expr)
    local_expr = normalize_expr(local.expr)
    if remote_expr != local_expr:
        diffs.append(f"expr: {remote_expr!r} != {local_expr!r}")

    if isinstance(remote, AlertingRule) and isinstance(local, AlertingRule):
        if not durations_equal(remote.for_duration, local.for_duration):
            diffs.append(f"for: {_describe_duration(remote.for_duration)} != {_describe_duration(local.for_duration)}")
        diffs.extend(_mapping_differences("annotations", remote.annotations, local.annotations))

    diffs.extend(_mapping_differences("labels", remote.labels, local.labels))
    return diffs


def compare_groups(remote: RuleGroup, local: RuleGroup) -> GroupComparison:
    """Compare the stored copy of a group with its local declaration.

    Groups are equal when interval, rule count, and every rule at the same
    position match. Rule order is significant.
    """
    diffs: list[str] = []

    if remote.name != local.name:
        diffs.append(f"name: {remote.name!r} != {local.name!r}")

    if not durations_equal(remote.interval, local.interval):
        diffs.append(f"interval: {_describe_duration(remote.interval)} != {_describe_duration(local.interval)}")

    if len(remote.rules) != len(local.rules):
        diffs.append(f"rule count: {len(remote.rules)} != {len(local.rules)}")

    for index, (remote_rule, local_rule) in enumerate(zip(remote.rules, local.rules)):
        diffs.extend(f"rule[{index}].{diff}" for diff in compare_rules(remote_rule, local_rule))

    return GroupComparison(differences=tuple(diffs))
