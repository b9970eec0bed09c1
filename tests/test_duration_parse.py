import argparse

import pytest

from convergekit.cli import _parse_bool, _parse_duration_s


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("0", 0),
        ("18h", 64800),
        ("90m", 5400),
        ("1h30m", 5400),
        ("1.5h", 5400),
        ("45s", 45),
        ("2000ms", 2),
    ],
)
def test_parse_duration_s_ok(value: str, expected: int) -> None:
    assert _parse_duration_s(value) == expected


@pytest.mark.parametrize("value", ["", "abc", "1xs", "1h-5m", "1500ms"])
def test_parse_duration_s_invalid(value: str) -> None:
    with pytest.raises(argparse.ArgumentTypeError):
        _parse_duration_s(value)


@pytest.mark.parametrize(("value", "expected"), [("true", True), ("False", False), ("1", True), ("off", False)])
def test_parse_bool(value: str, expected: bool) -> None:
    assert _parse_bool(value) is expected


def test_parse_bool_invalid() -> None:
    with pytest.raises(argparse.ArgumentTypeError):
        _parse_bool("maybe")
