"""Domain model - rule definitions as immutable value objects.

A ``Namespace`` owns an ordered sequence of ``RuleGroup`` values and each group
owns an ordered sequence of rules. Rule order inside a group is significant:
recording rules later in a group may read series recorded by earlier ones.

Everything here is frozen. Reconciliation decides whether to push a parsed
group to the remote store; it never edits one.
"""

from datetime import timedelta
import re
from types import MappingProxyType
from typing import Literal

from pydantic import Field
from pydantic.dataclasses import dataclass


METRIC_NAME_RE = re.compile(r"^[a-zA-Z_:][a-zA-Z0-9_:]*$")
LABEL_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


def _check_label_names(labels: dict[str, str], what: str) -> None:
    for key in labels:
        if not LABEL_NAME_RE.match(key):
            raise ValueError(f"invalid {what} name: {key!r}")


def _freeze(obj: object, *names: str) -> None:
    for name in names:
        object.__setattr__(obj, name, MappingProxyType(dict(getattr(obj, name))))


@dataclass(frozen=True)
class RecordingRule:
    """Stores the result of ``expr`` under the series name ``record``.

    ``labels`` is a read-only mapping once constructed.
    """

    record: str = Field(min_length=1)
    expr: str = Field(min_length=1)
    labels: dict[str, str] = Field(default_factory=dict)

    def __post_init__(self) -> None:
        if not METRIC_NAME_RE.match(self.record):
            raise ValueError(f"invalid recording rule name: {self.record!r}")
        if not self.expr.strip():
            raise ValueError(f"recording rule {self.record!r} has an empty expr")
        _check_label_names(self.labels, "label")
        _freeze(self, "labels")

    @property
    def kind(self) -> Literal["recording"]:
        return "recording"

    @property
    def name(self) -> str:
        return self.record


@dataclass(frozen=True)
class AlertingRule:
    """Fires ``alert`` while ``expr`` returns results for at least ``for_duration``.

    ``labels`` and ``annotations`` are read-only mappings once constructed.
    """

    alert: str = Field(min_length=1)
    expr: str = Field(min_length=1)
    for_duration: timedelta | None = None
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.alert.strip():
            raise ValueError("alerting rule has an empty alert name")
        if not self.expr.strip():
            raise ValueError(f"alerting rule {self.alert!r} has an empty expr")
        if self.for_duration is not None and self.for_duration < timedelta(0):
            raise ValueError(f"alerting rule {self.alert!r} has a negative 'for' duration")
        _check_label_names(self.labels, "label")
        _check_label_names(self.annotations, "annotation")
        _freeze(self, "labels", "annotations")

    @property
    def kind(self) -> Literal["alerting"]:
        return "alerting"

    @property
    def name(self) -> str:
        return self.alert


Rule = RecordingRule | AlertingRule


@dataclass(frozen=True)
class RuleGroup:
    """Named, ordered collection of rules sharing an evaluation interval.

    ``interval`` of None means the ruler's default evaluation interval.
    """

    name: str = Field(min_length=1)
    interval: timedelta | None = None
    rules: tuple[Rule, ...] = ()

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("rule group name must not be blank")
        if self.interval is not None and self.interval < timedelta(0):
            raise ValueError(f"rule group {self.name!r} has a negative interval")


@dataclass(frozen=True)
class Namespace:
    """Logical grouping key for rule groups in the remote store."""

    name: str = Field(min_length=1)
    groups: tuple[RuleGroup, ...] = ()
