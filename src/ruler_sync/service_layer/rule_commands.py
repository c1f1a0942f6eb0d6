"""Service layer - rule command use cases.

Each command maps onto one rule store call, except ``load_rule_files`` which
parses files and hands them to the reconciler.
"""

from __future__ import annotations

from collections.abc import Sequence
import logging
from pathlib import Path

from ruler_sync.adapters.rule_store import AbstractRuleStore
from ruler_sync.domain.errors import RuleGroupNotFoundError
from ruler_sync.domain.model import RuleGroup
from ruler_sync.rule_files import parse_files, rule_group_to_yaml, rule_groups_to_yaml
from ruler_sync.service_layer.reconciler import RunResult, reconcile


logger = logging.getLogger(__name__)


def list_rule_groups(store: AbstractRuleStore) -> list[tuple[str, str]]:
    """(namespace, group name) pairs for every stored group, sorted."""
    listing = store.list_groups()
    return sorted((namespace, group.name) for namespace, groups in listing.items() for group in groups)


def format_group_table(rows: Sequence[tuple[str, str]]) -> str:
    """Render (namespace, group) rows as an aligned two-column table."""
    header = ("Namespace", "Rule Group")
    width = max([len(header[0]), *(len(namespace) for namespace, _ in rows)])
    lines = [f"{header[0]:<{width}} | {header[1]}"]
    lines.extend(f"{namespace:<{width}} | {group}" for namespace, group in rows)
    return "\n".join(lines) + "\n"


def print_rule_groups(store: AbstractRuleStore) -> str | None:
    """YAML rendering of every stored group, or None when the tenant has none."""
    listing = store.list_groups()
    if not any(listing.values()):
        logger.info("no rule groups currently exist for this user")
        return None
    ordered = {namespace: listing[namespace] for namespace in sorted(listing)}
    return rule_groups_to_yaml(ordered)


def get_rule_group(store: AbstractRuleStore, namespace: str, group_name: str) -> RuleGroup | None:
    """Fetch one group; None (logged) when it does not exist.

    Raises:
        RuleStoreTransportError: If the ruler cannot be read
    """
    try:
        return store.get_group(namespace, group_name)
    except RuleGroupNotFoundError:
        logger.info("this rule group does not currently exist", extra={"namespace": namespace, "group": group_name})
        return None


def render_rule_group(group: RuleGroup) -> str:
    return rule_group_to_yaml(group)


def delete_rule_group(store: AbstractRuleStore, namespace: str, group_name: str) -> None:
    """Delete one group.

    Raises:
        RuleGroupNotFoundError: If the group does not exist
        RuleStoreTransportError: On any other failure
    """
    store.delete_group(namespace, group_name)
    logger.info("rule group deleted", extra={"namespace": namespace, "group": group_name})


def load_rule_files(
    paths: Sequence[Path | str],
    store: AbstractRuleStore,
    *,
    default_namespace: str | None = None,
    timeout: float | None = None,
    dry_run: bool = False,
) -> RunResult:
    """Parse rule files and reconcile them against the ruler.

    Parsing is all-or-nothing: a ParseError is raised before any remote call.

    Raises:
        ParseError: If any rule file is invalid
    """
    namespaces = parse_files(paths, default_namespace=default_namespace)
    return reconcile(namespaces, store, timeout=timeout, dry_run=dry_run)
