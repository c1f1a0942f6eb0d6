"""Reconcile locally declared rule groups against the remote ruler.

For every namespace and group, in declared order:

1. fetch the stored copy;
2. absent -> create it;
3. present -> compare; equal groups are skipped, different ones replaced
   with the local definition;
4. any fetch or write failure other than "not found" aborts the run.

Processing is sequential with one fetch and at most one write per group.
Writes already made before a failure stay applied; a load is not a
transaction across groups.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
import logging
import time
from typing import Any

from opentelemetry.trace import Status, StatusCode

from ruler_sync.adapters.rule_store import AbstractRuleStore, GroupFetchFailed, GroupFound
from ruler_sync.domain.comparison import compare_groups
from ruler_sync.domain.errors import DeadlineExceededError, RuleStoreTransportError
from ruler_sync.domain.model import Namespace, RuleGroup
from ruler_sync.observability.context import bind_context
from ruler_sync.observability.tracing import create_span


logger = logging.getLogger(__name__)


class GroupAction(str, Enum):
    """What a load did (or, in a dry run, would do) with one rule group."""

    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"

    @property
    def planned_label(self) -> str:
        return {
            GroupAction.CREATED: "would create",
            GroupAction.UPDATED: "would update",
            GroupAction.UNCHANGED: "unchanged",
        }[self]


@dataclass(slots=True, frozen=True)
class GroupOutcome:
    """Per-group record of a load."""

    namespace: str
    group: str
    action: GroupAction
    difference: str | None = None
    applied: bool = True

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.group}"

    @property
    def wrote(self) -> bool:
        return self.applied and self.action is not GroupAction.UNCHANGED

    def summary(self) -> str:
        label = self.action.value if self.applied else self.action.planned_label
        return f"{label}: {self.key}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "namespace": self.namespace,
            "group": self.group,
            "action": self.action.value,
            "difference": self.difference,
            "applied": self.applied,
        }


@dataclass(slots=True)
class RunResult:
    """Terminal outcome of one load.

    ``load_attempted_at`` is set when the run starts; ``load_succeeded_at``
    only when every group was processed without a fatal error (never for a
    dry run). Callers publish both to the load gauges.
    """

    load_attempted_at: datetime
    outcomes: list[GroupOutcome] = field(default_factory=list)
    load_succeeded_at: datetime | None = None
    error: str | None = None
    failed_namespace: str | None = None
    failed_group: str | None = None
    dry_run: bool = False

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def status(self) -> str:
        if self.error:
            return "failed"
        if self.dry_run:
            return "planned"
        return "ok"

    @property
    def writes(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.wrote)

    def counts(self) -> dict[str, int]:
        totals = {action.value: 0 for action in GroupAction}
        for outcome in self.outcomes:
            totals[outcome.action.value] += 1
        return totals

    def summary_lines(self) -> list[str]:
        return [outcome.summary() for outcome in self.outcomes]

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "dry_run": self.dry_run,
            "load_attempted_at": self.load_attempted_at.isoformat(),
            "load_succeeded_at": self.load_succeeded_at.isoformat() if self.load_succeeded_at else None,
            "error": self.error,
            "failed_namespace": self.failed_namespace,
            "failed_group": self.failed_group,
            "counts": self.counts(),
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
        }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def reconcile_group(
    namespace: str,
    group: RuleGroup,
    store: AbstractRuleStore,
    *,
    dry_run: bool = False,
) -> GroupOutcome:
    """Converge one remote rule group onto its local declaration.

    Raises:
        RuleStoreTransportError: If the fetch or the write fails
    """
    fields = {"namespace": namespace, "group": group.name}
    with (
        bind_context(**fields),
        create_span("rules.reconcile_group", attributes={"rules.namespace": namespace, "rules.group": group.name}) as span,
    ):
        fetched = store.fetch_group(namespace, group.name)
        if isinstance(fetched, GroupFetchFailed):
            raise fetched.error.with_target(namespace, group.name)

        difference: str | None = None
        if isinstance(fetched, GroupFound):
            comparison = compare_groups(fetched.group, group)
            if comparison.equal:
                logger.info("group already exists", extra=fields)
                span.set_attribute("rules.action", GroupAction.UNCHANGED.value)
                return GroupOutcome(namespace, group.name, GroupAction.UNCHANGED, applied=not dry_run)
            action = GroupAction.UPDATED
            difference = comparison.reason
            logger.info("updating group", extra={**fields, "difference": difference})
        else:
            action = GroupAction.CREATED
            logger.info("creating group", extra=fields)

        span.set_attribute("rules.action", action.value)
        if dry_run:
            return GroupOutcome(namespace, group.name, action, difference, applied=False)

        try:
            store.create_or_replace_group(namespace, group)
        except RuleStoreTransportError as exc:
            logger.error("unable to load rule group: %s", exc, extra=fields)
            raise exc.with_target(namespace, group.name) from exc

        return GroupOutcome(namespace, group.name, action, difference)


def reconcile(
    namespaces: Sequence[Namespace],
    store: AbstractRuleStore,
    *,
    timeout: float | None = None,
    dry_run: bool = False,
) -> RunResult:
    """Converge the remote ruler onto the given namespaces.

    Args:
        namespaces: Parsed namespaces, processed in order
        store: Remote rule store
        timeout: Optional run-level deadline in seconds, checked before each group
        dry_run: Fetch and compare only; report planned actions without writing

    Returns:
        RunResult with one outcome per processed group. The first fatal error
        stops the run; later groups are not attempted.
    """
    result = RunResult(load_attempted_at=_utcnow(), dry_run=dry_run)
    deadline = time.monotonic() + timeout if timeout is not None else None
    total_groups = sum(len(namespace.groups) for namespace in namespaces)

    with create_span(
        "rules.load",
        attributes={"rules.namespaces": len(namespaces), "rules.groups": total_groups, "rules.dry_run": dry_run},
    ) as span:
        try:
            for namespace in namespaces:
                for group in namespace.groups:
                    if deadline is not None and time.monotonic() >= deadline:
                        raise DeadlineExceededError(timeout or 0.0, namespace.name, group.name)
                    result.outcomes.append(reconcile_group(namespace.name, group, store, dry_run=dry_run))
        except (RuleStoreTransportError, DeadlineExceededError) as exc:
            result.error = str(exc)
            result.failed_namespace = exc.namespace
            result.failed_group = exc.group
            span.set_status(Status(StatusCode.ERROR, result.error))
            logger.error(
                "load operation unsuccessful: %s",
                exc,
                extra={"namespace": exc.namespace, "group": exc.group},
            )
            return result

        if not dry_run:
            result.load_succeeded_at = _utcnow()
        span.set_attribute("rules.writes", result.writes)

    logger.info(
        "load operation complete",
        extra={"dry_run": dry_run, "counts": result.counts()},
    )
    return result
