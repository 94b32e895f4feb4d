"""Tests for configuration parsing."""

import pytest

from nutrimyth.config import parse_allowed_user_ids


@pytest.mark.parametrize("raw", [None, "", "  ", "*", " * "])
def test_open_allowlist(raw: str | None) -> None:
    assert parse_allowed_user_ids(raw) is None


def test_allowlist_is_split_and_trimmed() -> None:
    assert parse_allowed_user_ids("u1, u2,,u3 ") == {"u1", "u2", "u3"}


def test_allowlist_of_only_separators_is_open() -> None:
    assert parse_allowed_user_ids(" , ,") is None
