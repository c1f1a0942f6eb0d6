"""Prometheus duration strings (``5m``, ``1h30m``, ``250ms``).

Rule intervals and alert pending periods are compared as durations, so
``1m`` and ``60s`` describe the same group.
"""

from datetime import timedelta
import re


_UNITS_MS = {
    "y": 365 * 24 * 60 * 60 * 1000,
    "w": 7 * 24 * 60 * 60 * 1000,
    "d": 24 * 60 * 60 * 1000,
    "h": 60 * 60 * 1000,
    "m": 60 * 1000,
    "s": 1000,
    "ms": 1,
}

# Units must appear largest to smallest, each at most once.
_DURATION_RE = re.compile(
    r"^(?:(?P<y>\d+)y)?(?:(?P<w>\d+)w)?(?:(?P<d>\d+)d)?(?:(?P<h>\d+)h)?"
    r"(?:(?P<m>\d+)m)?(?:(?P<s>\d+)s)?(?:(?P<ms>\d+)ms)?$"
)


def parse_duration(value: str | int | float | timedelta | None) -> timedelta | None:
    """Parse a Prometheus duration.

    Args:
        value: Duration string, bare number of seconds, timedelta, or None

    Returns:
        The duration, or None when value is None or empty

    Raises:
        ValueError: If the string is not a valid Prometheus duration
    """
    if value is None:
        return None
    if isinstance(value, timedelta):
        return value
    if isinstance(value, bool):
        raise ValueError(f"not a valid duration: {value!r}")
    if isinstance(value, (int, float)):
        return timedelta(seconds=value)

    text = value.strip()
    if not text:
        return None
    if text == "0":
        return timedelta(0)

    match = _DURATION_RE.match(text)
    if not match or not any(match.groupdict().values()):
        raise ValueError(f"not a valid duration string: {value!r}")

    total_ms = sum(int(amount) * _UNITS_MS[unit] for unit, amount in match.groupdict().items() if amount)
    return timedelta(milliseconds=total_ms)


def format_duration(value: timedelta | None) -> str | None:
    """Render a timedelta in the shortest Prometheus form (``90s`` -> ``1m30s``)."""
    if value is None:
        return None

    remaining = round(value.total_seconds() * 1000)
    if remaining == 0:
        return "0s"

    parts = []
    for unit, size in _UNITS_MS.items():
        amount, remaining = divmod(remaining, size)
        if amount:
            parts.append(f"{amount}{unit}")
    return "".join(parts)


def durations_equal(left: timedelta | None, right: timedelta | None) -> bool:
    """Compare durations treating an unset value as zero."""
    return (left or timedelta(0)) == (right or timedelta(0))
