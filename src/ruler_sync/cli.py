"""CLI for viewing and editing rule groups stored in a Cortex ruler."""

from __future__ import annotations

import argparse
from collections.abc import Callable, Sequence
import logging
from pathlib import Path
import sys

from pydantic import ValidationError

from ruler_sync.adapters.cortex_client import CortexRuleStore
from ruler_sync.adapters.rule_store import AbstractRuleStore
from ruler_sync.config import Settings
from ruler_sync.domain.errors import ParseError, RuleGroupNotFoundError, RuleStoreTransportError
from ruler_sync.observability.logging import configure_logging
from ruler_sync.observability.metrics import publish_run_result, write_metrics_file
from ruler_sync.observability.tracing import configure_trace_exporter, shutdown_tracing
from ruler_sync.service_layer.rule_commands import (
    delete_rule_group,
    format_group_table,
    get_rule_group,
    list_rule_groups,
    load_rule_files,
    print_rule_groups,
    render_rule_group,
)


logger = logging.getLogger(__name__)

StoreFactory = Callable[[Settings], AbstractRuleStore]
Handler = Callable[[argparse.Namespace, Settings, AbstractRuleStore], int]


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ruler-sync",
        description="Manage alerting and recording rule groups stored in a Cortex ruler",
    )
    parser.add_argument("--log-level", help="Log level (debug, info, warning, error, critical)")
    parser.add_argument("--log-json", action="store_true", default=None, help="Emit structured JSON logs")

    commands = parser.add_subparsers(dest="command", required=True)
    rules = commands.add_parser("rules", help="View & edit rules stored in cortex.")
    rules.add_argument("--address", help="Address of the cortex cluster, alternatively set CORTEX_ADDRESS.")
    rules.add_argument("--id", dest="tenant_id", help="Cortex tenant id, alternatively set CORTEX_TENANT_ID.")
    rules.add_argument("--key", dest="api_key", help="Api key to use when contacting cortex, alternatively set CORTEX_API_KEY.")
    rules.add_argument("--http-timeout", type=int, help="HTTP request timeout in seconds (default: 30)")

    actions = rules.add_subparsers(dest="action", required=True)

    list_cmd = actions.add_parser("list", help="List the rules currently in the cortex ruler.")
    list_cmd.set_defaults(handler=_list_rules)

    print_cmd = actions.add_parser("print", help="Print the rules currently in the cortex ruler.")
    print_cmd.set_defaults(handler=_print_rules)

    get_cmd = actions.add_parser("get", help="Retrieve a rulegroup from the ruler.")
    get_cmd.add_argument("namespace", help="Namespace of the rulegroup to retrieve.")
    get_cmd.add_argument("group", help="Name of the rulegroup to retrieve.")
    get_cmd.set_defaults(handler=_get_rule_group)

    delete_cmd = actions.add_parser("delete", help="Delete a rulegroup from the ruler.")
    delete_cmd.add_argument("namespace", help="Namespace of the rulegroup to delete.")
    delete_cmd.add_argument("group", help="Name of the rulegroup to delete.")
    delete_cmd.set_defaults(handler=_delete_rule_group)

    load_cmd = actions.add_parser("load", help="Load a set of rules to a designated cortex endpoint.")
    load_cmd.add_argument("rule_files", nargs="+", type=Path, metavar="RULE_FILE", help="The rule files to load.")
    load_cmd.add_argument(
        "--namespace",
        dest="default_namespace",
        help="Namespace for rule files that do not declare one (default: DEFAULT_NAMESPACE, then the file name)",
    )
    load_cmd.add_argument("--dry-run", action="store_true", help="Only print planned changes")
    load_cmd.add_argument("--timeout", type=float, help="Deadline in seconds for the whole load")
    load_cmd.add_argument("--metrics-file", type=Path, help="Write load metrics in Prometheus text format to this file")
    load_cmd.set_defaults(handler=_load_rules)

    return parser


def _build_settings(args: argparse.Namespace) -> Settings:
    overrides = {
        "cortex_address": getattr(args, "address", None),
        "cortex_tenant_id": getattr(args, "tenant_id", None),
        "cortex_api_key": getattr(args, "api_key", None),
        "http_timeout": getattr(args, "http_timeout", None),
        "default_namespace": getattr(args, "default_namespace", None),
        "metrics_file": getattr(args, "metrics_file", None),
        "log_level": args.log_level,
        "log_json": args.log_json,
    }
    return Settings(**{key: value for key, value in overrides.items() if value is not None})


def _validate_args(parser: argparse.ArgumentParser, args: argparse.Namespace, settings: Settings) -> None:
    missing = settings.missing_remote_settings()
    if missing:
        parser.error(f"missing required settings: {', '.join(missing)}")

    if args.action == "load":
        absent = [str(path) for path in args.rule_files if not path.is_file()]
        if absent:
            parser.error(f"rule file(s) not found: {', '.join(absent)}")
        if args.timeout is not None and args.timeout <= 0:
            parser.error("--timeout must be > 0")


def _list_rules(args: argparse.Namespace, settings: Settings, store: AbstractRuleStore) -> int:
    try:
        rows = list_rule_groups(store)
    except RuleStoreTransportError as exc:
        logger.error("unable to read rules from cortex, %s", exc)
        return 1
    sys.stdout.write(format_group_table(rows))
    return 0


def _print_rules(args: argparse.Namespace, settings: Settings, store: AbstractRuleStore) -> int:
    try:
        rendered = print_rule_groups(store)
    except RuleStoreTransportError as exc:
        logger.error("unable to read rules from cortex, %s", exc)
        return 1
    if rendered is not None:
        sys.stdout.write(rendered)
    return 0


def _get_rule_group(args: argparse.Namespace, settings: Settings, store: AbstractRuleStore) -> int:
    try:
        group = get_rule_group(store, args.namespace, args.group)
    except RuleStoreTransportError as exc:
        logger.error("unable to read rules from cortex, %s", exc)
        return 1
    if group is not None:
        sys.stdout.write(render_rule_group(group))
    return 0


def _delete_rule_group(args: argparse.Namespace, settings: Settings, store: AbstractRuleStore) -> int:
    try:
        delete_rule_group(store, args.namespace, args.group)
    except (RuleGroupNotFoundError, RuleStoreTransportError) as exc:
        logger.error("unable to delete rule group from cortex, %s", exc)
        return 1
    return 0


def _load_rules(args: argparse.Namespace, settings: Settings, store: AbstractRuleStore) -> int:
    try:
        result = load_rule_files(
            args.rule_files,
            store,
            default_namespace=settings.get_default_namespace(),
            timeout=args.timeout,
            dry_run=args.dry_run,
        )
    except ParseError as exc:
        logger.error("load operation unsuccessful, unable to parse rules files: %s", exc)
        return 1

    for line in result.summary_lines():
        sys.stdout.write(line + "\n")

    if not args.dry_run:
        publish_run_result(result)
        if settings.metrics_file:
            write_metrics_file(settings.metrics_file)

    if not result.success:
        sys.stdout.write(f"failed: {result.error}\n")
        return 1
    return 0


def main(argv: Sequence[str] | None = None, *, store_factory: StoreFactory | None = None) -> int:
    parser = build_argument_parser()
    args = parser.parse_args(argv)

    try:
        settings = _build_settings(args)
    except ValidationError as exc:
        parser.error(f"invalid configuration: {exc}")

    configure_logging(settings.log_level, settings.log_json)
    _validate_args(parser, args, settings)
    configure_trace_exporter(settings.get_collector_config())

    handler: Handler = args.handler
    factory = store_factory or CortexRuleStore.from_settings
    try:
        with factory(settings) as store:
            return handler(args, settings, store)
    finally:
        shutdown_tracing()


if __name__ == "__main__":
    sys.exit(main())
