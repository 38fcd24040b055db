"""Masking and generation helpers for service API keys.

API keys are only ever rendered through ``mask_secret`` in logs, CLI output,
and HTTP responses.
"""

from __future__ import annotations

import secrets

_MASK_VISIBLE_CHARS = 10


def mask_secret(value: str | None, *, visible: int = _MASK_VISIBLE_CHARS) -> str:
    """Return a log-safe rendering of one secret value.

    Short values are fully masked so a prefix never reveals the whole key.
    """
    if not value:
        return "EMPTY"
    if len(value) <= visible * 2:
        return "***"
    return f"{value[:visible]}..."


def generate_api_key(length: int = 32) -> str:
    """Generate a URL-safe random API key of exactly ``length`` characters."""
    if length <= 0:
        raise ValueError("api key length must be > 0")
    return secrets.token_urlsafe(length)[:length]
