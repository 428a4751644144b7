"""Unit tests for shared value parsing helpers."""

from __future__ import annotations

import pytest

from chat2ebook.parsing import (
    normalize_optional_string,
    parse_optional_non_negative_int,
    parse_permissive_boolean,
)


def test_normalize_optional_string() -> None:
    assert normalize_optional_string("  x ") == "x"
    assert normalize_optional_string("   ") is None
    assert normalize_optional_string(None) is None
    assert normalize_optional_string(5) == "5"


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (True, True),
        (0, False),
        (1, True),
        (2, None),
        ("Yes", True),
        (" off ", False),
        ("maybe", None),
        (None, None),
    ],
)
def test_parse_permissive_boolean(value: object, expected: bool | None) -> None:
    assert parse_permissive_boolean(value) is expected


def test_parse_optional_non_negative_int_treats_negatives_as_unset() -> None:
    assert parse_optional_non_negative_int(3) == 3
    assert parse_optional_non_negative_int("4") == 4
    assert parse_optional_non_negative_int(2.0) == 2
    assert parse_optional_non_negative_int(-1) is None
    assert parse_optional_non_negative_int(2.5) is None
    assert parse_optional_non_negative_int(True) is None
    assert parse_optional_non_negative_int("") is None
    assert parse_optional_non_negative_int("deep") is None
