"""Remote rule store abstraction.

Defines the capability set the reconciler needs from a ruler, following the
Repository Pattern. Fetching a group returns a tagged outcome so callers can
tell "absent" from "failed" without inspecting error text.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass

from ruler_sync.domain.errors import RuleGroupNotFoundError, RuleStoreTransportError
from ruler_sync.domain.model import RuleGroup


@dataclass(slots=True, frozen=True)
class GroupFound:
    group: RuleGroup


@dataclass(slots=True, frozen=True)
class GroupNotFound:
    namespace: str
    group_name: str


@dataclass(slots=True, frozen=True)
class GroupFetchFailed:
    error: RuleStoreTransportError

    @property
    def reason(self) -> str:
        return str(self.error)


FetchOutcome = GroupFound | GroupNotFound | GroupFetchFailed


class AbstractRuleStore(ABC):
    """Abstract remote store of rule groups keyed by (namespace, group name)."""

    @abstractmethod
    def fetch_group(self, namespace: str, group_name: str) -> FetchOutcome:
        """Fetch one rule group.

        Returns:
            GroupFound, GroupNotFound, or GroupFetchFailed for any other failure
        """
        raise NotImplementedError

    @abstractmethod
    def create_or_replace_group(self, namespace: str, group: RuleGroup) -> None:
        """Store ``group`` under ``namespace``, replacing any group with the same name.

        Raises:
            RuleStoreTransportError: If the write fails
        """
        raise NotImplementedError

    @abstractmethod
    def delete_group(self, namespace: str, group_name: str) -> None:
        """Delete one rule group.

        Raises:
            RuleGroupNotFoundError: If the group does not exist
            RuleStoreTransportError: On any other failure
        """
        raise NotImplementedError

    @abstractmethod
    def list_groups(self) -> dict[str, list[RuleGroup]]:
        """List every stored group, keyed by namespace.

        Raises:
            RuleStoreTransportError: If the store cannot be read
        """
        raise NotImplementedError

    def get_group(self, namespace: str, group_name: str) -> RuleGroup:
        """Fetch one rule group, raising instead of returning an outcome.

        Raises:
            RuleGroupNotFoundError: If the group does not exist
            RuleStoreTransportError: On any other failure
        """
        outcome = self.fetch_group(namespace, group_name)
        if isinstance(outcome, GroupFound):
            return outcome.group
        if isinstance(outcome, GroupNotFound):
            raise RuleGroupNotFoundError(namespace, group_name)
        raise outcome.error

    def close(self) -> None:
        """Optional hook for releasing connections."""

        return

    def __enter__(self) -> AbstractRuleStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


@dataclass
class StoreCall:
    """One recorded call against a FakeRuleStore."""

    method: str
    namespace: str | None = None
    group_name: str | None = None
    group: RuleGroup | None = None


class FakeRuleStore(AbstractRuleStore):
    """In-memory rule store for tests and dry runs.

    Records every call. ``fail_writes_for`` / ``fail_fetches_for`` hold
    ``(namespace, group_name)`` pairs whose calls raise a transport error.
    """

    def __init__(self, groups: dict[str, list[RuleGroup]] | None = None) -> None:
        self._groups: dict[str, dict[str, RuleGroup]] = {}
        for namespace, items in (groups or {}).items():
            self._groups[namespace] = {group.name: group for group in items}
        self.calls: list[StoreCall] = []
        self.fail_writes_for: set[tuple[str, str]] = set()
        self.fail_fetches_for: set[tuple[str, str]] = set()
        self.on_call: Callable[[StoreCall], None] | None = None

    def _record(self, call: StoreCall) -> None:
        self.calls.append(call)
        if self.on_call is not None:
            self.on_call(call)

    def calls_for(self, method: str) -> list[StoreCall]:
        return [call for call in self.calls if call.method == method]

    def fetch_group(self, namespace: str, group_name: str) -> FetchOutcome:
        self._record(StoreCall("fetch_group", namespace, group_name))
        if (namespace, group_name) in self.fail_fetches_for:
            return GroupFetchFailed(
                RuleStoreTransportError("injected fetch failure", namespace=namespace, group=group_name)
            )
        group = self._groups.get(namespace, {}).get(group_name)
        if group is None:
            return GroupNotFound(namespace, group_name)
        return GroupFound(group)

    def create_or_replace_group(self, namespace: str, group: RuleGroup) -> None:
        self._record(StoreCall("create_or_replace_group", namespace, group.name, group))
        if (namespace, group.name) in self.fail_writes_for:
            raise RuleStoreTransportError("injected write failure", namespace=namespace, group=group.name)
        self._groups.setdefault(namespace, {})[group.name] = group

    def delete_group(self, namespace: str, group_name: str) -> None:
        self._record(StoreCall("delete_group", namespace, group_name))
        groups = self._groups.get(namespace, {})
        if group_name not in groups:
            raise RuleGroupNotFoundError(namespace, group_name)
        del groups[group_name]
        if not groups:
            del self._groups[namespace]

    def list_groups(self) -> dict[str, list[RuleGroup]]:
        self._record(StoreCall("list_groups"))
        return {namespace: list(groups.values()) for namespace, groups in self._groups.items() if groups}
