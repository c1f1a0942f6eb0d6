"""Error hierarchy for rule loading and remote rule store access."""

from __future__ import annotations

from pathlib import Path


class RulerSyncError(Exception):
    """Base error for ruler-sync."""


class ParseError(RulerSyncError):
    """Raised when a local rule file cannot be decoded into rule groups."""

    def __init__(self, path: Path | str, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"{self.path}: {reason}")


class RuleStoreError(RulerSyncError):
    """Base error for remote rule store failures."""


class RuleGroupNotFoundError(RuleStoreError):
    """The remote store has no rule group under (namespace, group)."""

    def __init__(self, namespace: str, group: str | None = None) -> None:
        self.namespace = namespace
        self.group = group
        target = f"{namespace}/{group}" if group else namespace
        super().__init__(f"rule group not found: {target}")


class RuleStoreTransportError(RuleStoreError):
    """Any remote failure other than not-found (network, auth, server error)."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        namespace: str | None = None,
        group: str | None = None,
    ) -> None:
        self.status = status
        self.namespace = namespace
        self.group = group
        super().__init__(message)

    def with_target(self, namespace: str, group: str | None = None) -> RuleStoreTransportError:
        """Return a copy annotated with the rule group the failure relates to."""
        return RuleStoreTransportError(str(self), status=self.status, namespace=namespace, group=group)


class DeadlineExceededError(RulerSyncError):
    """The run-level deadline expired before every rule group was processed."""

    def __init__(self, timeout: float, namespace: str | None = None, group: str | None = None) -> None:
        self.timeout = timeout
        self.namespace = namespace
        self.group = group
        super().__init__(f"load deadline of {timeout:g}s exceeded")
