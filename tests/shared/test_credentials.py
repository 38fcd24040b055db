"""Tests for API key masking and generation."""

from __future__ import annotations

import pytest

from packages.relaygate_shared.credentials import generate_api_key, mask_secret


def test_long_keys_show_only_a_prefix() -> None:
    assert mask_secret("sk-screen-0123456789abcdef") == "sk-screen-..."


@pytest.mark.parametrize("value", ["short", "exactly-twenty-chars"])
def test_short_keys_are_fully_masked(value: str) -> None:
    assert mask_secret(value) == "***"


@pytest.mark.parametrize("value", [None, ""])
def test_missing_keys_render_empty(value: str | None) -> None:
    assert mask_secret(value) == "EMPTY"


def test_visible_prefix_is_configurable() -> None:
    assert mask_secret("abcdefghijklmnop", visible=4) == "abcd..."


def test_generated_keys_have_requested_length_and_differ() -> None:
    first = generate_api_key(40)
    second = generate_api_key(40)

    assert len(first) == 40
    assert first != second
    assert all(char.isalnum() or char in "-_" for char in first)


def test_non_positive_key_length_is_rejected() -> None:
    with pytest.raises(ValueError):
        generate_api_key(0)
