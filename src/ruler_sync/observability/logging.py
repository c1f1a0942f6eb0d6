"""Log formatting for ruler-sync.

Both formatters surface ``extra=`` fields, so the namespace, group and
difference a reconciler message refers to survive in either output mode.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import logging
from pathlib import Path
import sys
from typing import IO, Any

import orjson

from ruler_sync.observability.context import get_trace_context


_STANDARD_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {"message", "asctime"}

SECRET_KEYS = frozenset({"api_key", "authorization", "password", "secret", "token"})
MAX_MESSAGE_LEN = 2000
MAX_FIELD_LEN = 500


def extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Fields passed to the logging call via ``extra=``, secrets masked."""
    fields = {}
    for key, value in record.__dict__.items():
        if key in _STANDARD_ATTRS or key.startswith("_"):
            continue
        fields[key] = "[REDACTED]" if key.lower() in SECRET_KEYS else value
    return fields


def _clip(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def _to_json(value: Any) -> Any:
    """orjson fallback for values it cannot serialize natively."""
    if isinstance(value, timedelta):
        return value.total_seconds()
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    if isinstance(value, (Path, Exception)):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8", errors="replace")
    return repr(value)


class JsonFormatter(logging.Formatter):
    """One JSON object per line, correlated with the active trace and rule group."""

    CONTEXT_KEYS = ("namespace", "group")

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_trace_context()
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": _clip(record.getMessage(), MAX_MESSAGE_LEN),
            "trace_id": ctx.get("trace_id", ""),
            "span_id": ctx.get("span_id", ""),
        }
        entry.update({key: ctx[key] for key in self.CONTEXT_KEYS if ctx.get(key)})

        for key, value in extra_fields(record).items():
            entry[key] = _clip(value, MAX_FIELD_LEN) if isinstance(value, str) else value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return orjson.dumps(entry, default=_to_json).decode("utf-8")


class KeyValueFormatter(logging.Formatter):
    """``time LEVEL [logger] message key=value ...`` lines for terminals."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)s [%(name)s] %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        pairs = " ".join(f"{key}={value}" for key, value in extra_fields(record).items())
        return f"{line} {pairs}" if pairs else line


def _resolve_level(name: str) -> int:
    return logging.getLevelNamesMapping().get(name.upper(), logging.INFO)


def configure_logging(
    level: str = "info",
    json_output: bool = False,
    *,
    logger_levels: dict[str, str] | None = None,
    stream: IO[str] | None = None,
) -> logging.Handler:
    """Route all logging through one handler on stderr.

    stdout stays reserved for command output (tables, YAML, load summaries).

    Args:
        level: Root log level name, case-insensitive
        json_output: Use JsonFormatter instead of KeyValueFormatter
        logger_levels: Per-logger level overrides (logger name -> level name)
        stream: Output stream, stderr by default

    Returns:
        The installed handler
    """
    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(JsonFormatter() if json_output else KeyValueFormatter())

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(_resolve_level(level))

    overrides = {"httpx": "warning", "httpcore": "warning", **(logger_levels or {})}
    for name, name_level in overrides.items():
        logging.getLogger(name).setLevel(_resolve_level(name_level))
    return handler
