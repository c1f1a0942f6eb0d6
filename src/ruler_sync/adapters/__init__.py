"""Adapters layer - rule store implementations.

Following Cosmic Python Chapter 2: Repository Pattern
Abstracts the remote ruler behind the capability set the reconciler uses.
"""

from .cortex_client import CortexRuleStore
from .rule_store import (
    AbstractRuleStore,
    FakeRuleStore,
    FetchOutcome,
    GroupFetchFailed,
    GroupFound,
    GroupNotFound,
)


__all__ = [
    "AbstractRuleStore",
    "CortexRuleStore",
    "FakeRuleStore",
    "FetchOutcome",
    "GroupFetchFailed",
    "GroupFound",
    "GroupNotFound",
]
