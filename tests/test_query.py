from __future__ import annotations

import pytest

from coursehub_client.api.query import build_query, parse_number


def test_build_query_skips_empty_values() -> None:
    qs = build_query({"search": "  ", "role": None, "page": 2, "status": "pending"})
    assert qs == "?page=2&status=pending"


def test_build_query_renders_bools_and_encodes() -> None:
    assert build_query({"is_active": True, "search": "data science & ml"}) == (
        "?is_active=true&search=data+science+%26+ml"
    )
    assert build_query({"is_active": False}) == "?is_active=false"


def test_build_query_empty() -> None:
    assert build_query({}) == ""
    assert build_query({"search": "", "page": None}) == ""


@pytest.mark.parametrize(
    "value,expected",
    [
        ("3", 3),
        ("2.5", 2.5),
        ("10.0", 10),
        ("", 1),
        (None, 1),
        ("abc", 1),
        ("nan", 1),
        ("inf", 1),
    ],
)
def test_parse_number(value, expected) -> None:
    assert parse_number(value, 1) == expected
