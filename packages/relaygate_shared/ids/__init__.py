"""Shared identifier primitives."""

from packages.relaygate_shared.ids.ulid import generate_ulid_str, is_ulid_str

__all__ = [
    "generate_ulid_str",
    "is_ulid_str",
]
