"""Rule file parsing and the YAML rule-group codec.

Rule files are YAML. Each document in a file is either an explicit namespace
document::

    namespace: team-a
    groups:
      - name: cpu-alerts
        interval: 1m
        rules:
          - alert: HighCPU
            expr: cpu > 90
            for: 5m

or a plain Prometheus rule file (``groups:`` only), whose namespace comes from
the configured default namespace, falling back to the file stem.

The same codec decodes the rule groups returned by the remote ruler, so local
and remote groups go through one set of conversion rules.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
import yaml

from ruler_sync.domain.errors import ParseError
from ruler_sync.domain.model import AlertingRule, Namespace, RecordingRule, Rule, RuleGroup
from ruler_sync.utils.durations import format_duration, parse_duration


logger = logging.getLogger(__name__)

# YAML 1.1 typing of plain scalars would turn `1.10` into 1.1, `yes` into True
# and `12:30` into 750. Rule fields are strings, so only null stays implicit.
_TYPED_SCALAR_TAGS = frozenset(
    {
        "tag:yaml.org,2002:bool",
        "tag:yaml.org,2002:int",
        "tag:yaml.org,2002:float",
        "tag:yaml.org,2002:timestamp",
    }
)


class VerbatimLoader(yaml.SafeLoader):
    """SafeLoader that keeps plain scalars exactly as written."""


VerbatimLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag not in _TYPED_SCALAR_TAGS]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def load_yaml(text: str) -> Any:
    """Decode one YAML document with VerbatimLoader."""
    return yaml.load(text, Loader=VerbatimLoader)


def _scalar_to_str(value: Any) -> Any:
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return str(value)
    return value


class RuleSpec(BaseModel):
    """Schema of a single rule entry as written in YAML."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    record: str | None = None
    alert: str | None = None
    expr: str
    for_: str | None = Field(default=None, alias="for")
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)

    @field_validator("expr", "for_", mode="before")
    @classmethod
    def _coerce_scalar(cls, value: Any) -> Any:
        return _scalar_to_str(value)

    @field_validator("labels", "annotations", mode="before")
    @classmethod
    def _coerce_mapping_values(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, Mapping):
            return {str(key): _scalar_to_str(item) for key, item in value.items()}
        return value

    @model_validator(mode="after")
    def _check_variant(self) -> RuleSpec:
        if self.record and self.alert:
            raise ValueError("only one of 'record' and 'alert' may be set")
        if not self.record and not self.alert:
            raise ValueError("one of 'record' or 'alert' must be set")
        if self.record:
            if self.for_:
                raise ValueError(f"invalid field 'for' in recording rule {self.record!r}")
            if self.annotations:
                raise ValueError(f"invalid field 'annotations' in recording rule {self.record!r}")
        return self

    def to_rule(self) -> Rule:
        if self.record:
            return RecordingRule(record=self.record, expr=self.expr, labels=dict(self.labels))
        return AlertingRule(
            alert=self.alert or "",
            expr=self.expr,
            for_duration=parse_duration(self.for_),
            labels=dict(self.labels),
            annotations=dict(self.annotations),
        )


class RuleGroupSpec(BaseModel):
    """Schema of a rule group as written in YAML."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    interval: str | None = None
    rules: list[RuleSpec] = Field(default_factory=list)

    @field_validator("interval", mode="before")
    @classmethod
    def _coerce_interval(cls, value: Any) -> Any:
        return _scalar_to_str(value)

    @field_validator("rules", mode="before")
    @classmethod
    def _none_rules(cls, value: Any) -> Any:
        return [] if value is None else value

    def to_group(self) -> RuleGroup:
        rules: list[Rule] = []
        for index, spec in enumerate(self.rules):
            try:
                rules.append(spec.to_rule())
            except ValueError as exc:
                raise ValueError(f"group {self.name!r} rule {index}: {_describe(exc)}") from exc
        try:
            interval = parse_duration(self.interval)
        except ValueError as exc:
            raise ValueError(f"group {self.name!r}: {exc}") from exc
        return RuleGroup(name=self.name, interval=interval, rules=tuple(rules))


class RuleFileSpec(BaseModel):
    """Schema of one YAML document in a rule file."""

    model_config = ConfigDict(extra="forbid")

    namespace: str | None = None
    groups: list[RuleGroupSpec] = Field(default_factory=list)

    @field_validator("groups", mode="before")
    @classmethod
    def _none_groups(cls, value: Any) -> Any:
        return [] if value is None else value


def _describe(exc: Exception) -> str:
    if isinstance(exc, ValidationError):
        parts = []
        for error in exc.errors():
            location = ".".join(str(item) for item in error.get("loc", ()))
            message = error.get("msg", "invalid value")
            parts.append(f"{location}: {message}" if location else message)
        return "; ".join(parts)
    return str(exc)


# Remote rulers may add bookkeeping fields; only the known ones are decoded.
_GROUP_KEYS = frozenset({"name", "interval", "rules"})
_RULE_KEYS = frozenset({"record", "alert", "expr", "for", "labels", "annotations"})


def rule_group_from_dict(data: Mapping[str, Any], *, strict: bool = True) -> RuleGroup:
    """Decode a rule group mapping.

    Args:
        data: Mapping with ``name``, optional ``interval`` and ``rules``
        strict: Reject unknown keys (local files) instead of dropping them (remote payloads)

    Raises:
        ValueError: If the mapping does not describe a valid rule group
    """
    if not isinstance(data, Mapping):
        raise ValueError(f"rule group must be a mapping, got {type(data).__name__}")

    if not strict:
        rules = data.get("rules") or []
        data = {key: value for key, value in data.items() if key in _GROUP_KEYS}
        data["rules"] = [
            {key: value for key, value in rule.items() if key in _RULE_KEYS} if isinstance(rule, Mapping) else rule
            for rule in rules
        ]

    try:
        spec = RuleGroupSpec.model_validate(data)
    except ValidationError as exc:
        raise ValueError(_describe(exc)) from exc
    return spec.to_group()


def rule_to_dict(rule: Rule) -> dict[str, Any]:
    """Encode a rule in Prometheus rule-file key order."""
    if isinstance(rule, RecordingRule):
        payload: dict[str, Any] = {"record": rule.record, "expr": rule.expr}
        if rule.labels:
            payload["labels"] = dict(sorted(rule.labels.items()))
        return payload

    payload = {"alert": rule.alert, "expr": rule.expr}
    if rule.for_duration:
        payload["for"] = format_duration(rule.for_duration)
    if rule.labels:
        payload["labels"] = dict(sorted(rule.labels.items()))
    if rule.annotations:
        payload["annotations"] = dict(sorted(rule.annotations.items()))
    return payload


def rule_group_to_dict(group: RuleGroup) -> dict[str, Any]:
    payload: dict[str, Any] = {"name": group.name}
    if group.interval:
        payload["interval"] = format_duration(group.interval)
    payload["rules"] = [rule_to_dict(rule) for rule in group.rules]
    return payload


def dump_yaml(data: Any) -> str:
    """Serialize to block-style YAML, keeping insertion order."""
    return yaml.safe_dump(data, default_flow_style=False, allow_unicode=True, sort_keys=False)


def rule_group_to_yaml(group: RuleGroup) -> str:
    return dump_yaml(rule_group_to_dict(group))


def rule_groups_to_yaml(groups: Mapping[str, Sequence[RuleGroup]]) -> str:
    """Render ``{namespace: [groups]}`` the way the ruler lists them."""
    return dump_yaml({namespace: [rule_group_to_dict(group) for group in items] for namespace, items in groups.items()})


def _iter_documents(path: Path) -> Iterable[Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ParseError(path, f"unable to read file: {exc}") from exc

    try:
        return [doc for doc in yaml.load_all(text, Loader=VerbatimLoader) if doc is not None]
    except yaml.YAMLError as exc:
        raise ParseError(path, f"invalid YAML: {exc}") from exc


def parse_file(path: Path | str, default_namespace: str | None = None) -> list[tuple[str, list[RuleGroup]]]:
    """Parse one rule file into ``(namespace, groups)`` pairs, one per YAML document.

    Raises:
        ParseError: If the file cannot be read, is not valid YAML, or violates the rule schema
    """
    path = Path(path)
    parsed: list[tuple[str, list[RuleGroup]]] = []

    for index, document in enumerate(_iter_documents(path)):
        if not isinstance(document, Mapping):
            raise ParseError(path, f"document {index}: expected a mapping, got {type(document).__name__}")
        try:
            spec = RuleFileSpec.model_validate(document)
        except ValidationError as exc:
            raise ParseError(path, f"document {index}: {_describe(exc)}") from exc

        namespace = spec.namespace or default_namespace or path.stem
        try:
            groups = [group_spec.to_group() for group_spec in spec.groups]
        except ValueError as exc:
            raise ParseError(path, f"document {index}: {_describe(exc)}") from exc
        parsed.append((namespace, groups))

    logger.debug("Parsed %d document(s) from %s", len(parsed), path)
    return parsed


def parse_files(paths: Sequence[Path | str], default_namespace: str | None = None) -> list[Namespace]:
    """Parse rule files and merge their groups by namespace.

    Groups declared for the same namespace in several documents or files are
    concatenated in processing order. Declaring the same (namespace, group)
    twice is rejected.

    Args:
        paths: Rule files, in processing order
        default_namespace: Namespace for documents that do not declare one

    Returns:
        Namespaces in first-appearance order

    Raises:
        ParseError: On the first invalid file; no partial result is returned
    """
    merged: dict[str, list[RuleGroup]] = {}
    declared_in: dict[tuple[str, str], Path] = {}

    for raw_path in paths:
        path = Path(raw_path)
        for namespace, groups in parse_file(path, default_namespace):
            bucket = merged.setdefault(namespace, [])
            for group in groups:
                key = (namespace, group.name)
                if key in declared_in:
                    raise ParseError(
                        path,
                        f"rule group {namespace}/{group.name} is already declared in {declared_in[key]}",
                    )
                declared_in[key] = path
                bucket.append(group)

    namespaces = [Namespace(name=name, groups=tuple(groups)) for name, groups in merged.items()]
    logger.info(
        "Parsed %d rule group(s) in %d namespace(s) from %d file(s)",
        sum(len(ns.groups) for ns in namespaces),
        len(namespaces),
        len(paths),
    )
    return namespaces
