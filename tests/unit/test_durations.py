from __future__ import annotations

from datetime import timedelta

import pytest

from ruler_sync.utils.durations import durations_equal, format_duration, parse_duration


@pytest.mark.unit
@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("1m", timedelta(minutes=1)),
        ("60s", timedelta(seconds=60)),
        ("1h30m", timedelta(hours=1, minutes=30)),
        ("250ms", timedelta(milliseconds=250)),
        ("2d", timedelta(days=2)),
        ("1w", timedelta(weeks=1)),
        ("1y", timedelta(days=365)),
        ("0", timedelta(0)),
        (" 5m ", timedelta(minutes=5)),
    ],
)
def test_parse_duration_accepts_prometheus_strings(text: str, expected: timedelta) -> None:
    assert parse_duration(text) == expected


@pytest.mark.unit
def test_parse_duration_passes_through_unset_and_numeric_values() -> None:
    assert parse_duration(None) is None
    assert parse_duration("") is None
    assert parse_duration(30) == timedelta(seconds=30)
    assert parse_duration(timedelta(minutes=2)) == timedelta(minutes=2)


@pytest.mark.unit
@pytest.mark.parametrize("text", ["5", "m", "5x", "1m1h", "-1m", "five minutes", "1.5m"])
def test_parse_duration_rejects_invalid_strings(text: str) -> None:
    with pytest.raises(ValueError, match="not a valid duration"):
        parse_duration(text)


@pytest.mark.unit
def test_parse_duration_rejects_booleans() -> None:
    with pytest.raises(ValueError):
        parse_duration(True)


@pytest.mark.unit
def test_format_duration_uses_shortest_form() -> None:
    assert format_duration(timedelta(seconds=90)) == "1m30s"
    assert format_duration(timedelta(seconds=60)) == "1m"
    assert format_duration(timedelta(hours=1, milliseconds=5)) == "1h5ms"
    assert format_duration(timedelta(0)) == "0s"
    assert format_duration(None) is None


@pytest.mark.unit
def test_durations_equal_treats_unset_as_zero() -> None:
    assert durations_equal(parse_duration("1m"), parse_duration("60s"))
    assert durations_equal(None, timedelta(0))
    assert not durations_equal(None, timedelta(seconds=1))
