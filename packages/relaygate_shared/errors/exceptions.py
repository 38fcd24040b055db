"""Typed exception hierarchy raised by Relaygate components.

Each exception knows its wire ``kind`` and can render itself as a shared
``ErrorDetail`` so API adapters never need per-type branching. Instances are
not frozen because ``contextlib`` rewrites ``__traceback__`` on re-raise.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from . import codes
from .factories import (
    conflict_error,
    dependency_error,
    internal_error,
    not_found_error,
    policy_error,
    rate_limited_error,
    validation_error,
)
from .types import ErrorDetail


@dataclass(eq=False)
class RelaygateError(Exception):
    """Base error type for registry, gateway, and migration failures."""

    message: str

    kind: ClassVar[str] = codes.KIND_INTERNAL

    def __str__(self) -> str:
        """Return the human-readable error message."""
        return self.message

    def to_error_detail(self) -> ErrorDetail:
        """Render this exception as a shared ``ErrorDetail``."""
        return internal_error(self.message, code=codes.INTERNAL_ERROR)


@dataclass(eq=False)
class ServiceNotFoundError(RelaygateError):
    """No registry record exists for the requested service name."""

    service_name: str = ""

    kind: ClassVar[str] = codes.KIND_NOT_FOUND

    def to_error_detail(self) -> ErrorDetail:
        return not_found_error(
            self.message,
            code=codes.SERVICE_NOT_FOUND,
            metadata={"service_name": self.service_name},
        )


@dataclass(eq=False)
class ServiceAlreadyExistsError(RelaygateError):
    """Insert attempted for a service name that is already registered."""

    service_name: str = ""

    kind: ClassVar[str] = codes.KIND_ALREADY_EXISTS

    def to_error_detail(self) -> ErrorDetail:
        return conflict_error(
            self.message,
            code=codes.ALREADY_EXISTS,
            metadata={"service_name": self.service_name},
        )


@dataclass(eq=False)
class SchemaViolationError(RelaygateError):
    """A registry write would break a record invariant."""

    service_name: str = ""

    kind: ClassVar[str] = codes.KIND_SCHEMA_VIOLATION

    def to_error_detail(self) -> ErrorDetail:
        return validation_error(
            self.message,
            code=codes.SCHEMA_VIOLATION,
            metadata={"service_name": self.service_name},
        )


@dataclass(eq=False)
class PolicyDeniedError(RelaygateError):
    """Policy enforcement rejected a (service, action) pair."""

    service_name: str = ""
    action: str = ""
    reason: str = ""
    reason_code: str = ""

    kind: ClassVar[str] = codes.KIND_DENIED

    def to_error_detail(self) -> ErrorDetail:
        return policy_error(
            self.message,
            metadata={
                "service_name": self.service_name,
                "action": self.action,
                "reason": self.reason,
                "reason_code": self.reason_code,
            },
        )


@dataclass(eq=False)
class RateLimitedError(RelaygateError):
    """Per-service call budget is exhausted for the current window."""

    service_name: str = ""
    retry_after_seconds: float = 0.0

    kind: ClassVar[str] = codes.KIND_RATE_LIMITED

    def to_error_detail(self) -> ErrorDetail:
        return rate_limited_error(
            self.message,
            retry_after_seconds=self.retry_after_seconds,
            metadata={"service_name": self.service_name},
        )


@dataclass(eq=False)
class UpstreamError(RelaygateError):
    """Service endpoint was unreachable or returned a failure."""

    service_name: str = ""
    status_code: int = 0
    retryable: bool = True

    kind: ClassVar[str] = codes.KIND_UPSTREAM_ERROR

    def to_error_detail(self) -> ErrorDetail:
        metadata = {"service_name": self.service_name}
        if self.status_code:
            metadata["status_code"] = str(self.status_code)
        return dependency_error(
            self.message,
            code=codes.UPSTREAM_FAILURE,
            retryable=self.retryable,
            metadata=metadata,
        )


@dataclass(eq=False)
class StreamAbortedError(RelaygateError):
    """A streaming session ended through cancellation or disconnect."""

    session_id: str = ""
    reason: str = ""

    kind: ClassVar[str] = codes.KIND_STREAM_ABORTED

    def to_error_detail(self) -> ErrorDetail:
        return dependency_error(
            self.message,
            code=codes.STREAM_ABORTED,
            kind=codes.KIND_STREAM_ABORTED,
            retryable=False,
            metadata={"session_id": self.session_id, "reason": self.reason},
        )


@dataclass(eq=False)
class SessionNotFoundError(RelaygateError):
    """No live streaming session exists for the given session id."""

    session_id: str = ""

    kind: ClassVar[str] = codes.KIND_NOT_FOUND

    def to_error_detail(self) -> ErrorDetail:
        return not_found_error(
            self.message,
            code=codes.SESSION_NOT_FOUND,
            metadata={"session_id": self.session_id},
        )


@dataclass(eq=False)
class MigrationFailureError(RelaygateError):
    """A registry migration step failed; startup must not continue."""

    step: str = ""

    kind: ClassVar[str] = codes.KIND_MIGRATION_FAILURE

    def to_error_detail(self) -> ErrorDetail:
        return internal_error(
            self.message,
            code=codes.MIGRATION_FAILURE,
            kind=codes.KIND_MIGRATION_FAILURE,
            metadata={"step": self.step},
        )
