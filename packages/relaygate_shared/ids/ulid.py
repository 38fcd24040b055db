"""ULID generation helpers.

Request and session identifiers are canonical 26-character Crockford Base32
ULIDs: 48 bits of millisecond timestamp followed by 80 bits of entropy, so ids
sort by creation time in logs and audit rows.
"""

from __future__ import annotations

import secrets
import time

_ULID_ALPHABET = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
_ULID_LENGTH = 26


def generate_ulid_str(*, timestamp_ms: int | None = None) -> str:
    """Generate a new ULID in canonical string form."""
    ts_ms = int(time.time() * 1000) if timestamp_ms is None else int(timestamp_ms)
    if ts_ms < 0 or ts_ms >= (1 << 48):
        raise ValueError("timestamp_ms out of ULID 48-bit range")

    entropy = int.from_bytes(secrets.token_bytes(10), byteorder="big", signed=False)
    number = (ts_ms << 80) | entropy
    chars: list[str] = []
    for _ in range(_ULID_LENGTH):
        number, remainder = divmod(number, 32)
        chars.append(_ULID_ALPHABET[remainder])
    return "".join(reversed(chars))


def is_ulid_str(value: str) -> bool:
    """Return ``True`` when ``value`` is a syntactically valid ULID string."""
    candidate = value.strip().upper()
    return (
        len(candidate) == _ULID_LENGTH
        and candidate[0] in "01234567"
        and all(char in _ULID_ALPHABET for char in candidate)
    )
