"""Canonical shared error types for Relaygate components.

This module defines a transport-agnostic error taxonomy and shape used by the
registry, gateway, and migration layers when reporting failures to callers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping


class ErrorCategory(str, Enum):
    """High-level error categories shared across component boundaries."""

    UNSPECIFIED = "unspecified"
    VALIDATION = "validation"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    POLICY = "policy"
    RATE_LIMITED = "rate_limited"
    DEPENDENCY = "dependency"
    INTERNAL = "internal"


@dataclass(frozen=True)
class ErrorDetail:
    """Structured error object used in API responses and audit rows."""

    code: str
    message: str
    category: ErrorCategory
    kind: str = ""
    retryable: bool = False
    metadata: Mapping[str, str] = field(default_factory=dict)

    def to_wire(self) -> dict[str, str]:
        """Return the ``{kind, message}`` shape exposed to gateway callers."""
        return {"kind": self.kind or self.code, "message": self.message}
