"""Public shared error API for Relaygate components."""

from . import codes
from .exceptions import (
    MigrationFailureError,
    PolicyDeniedError,
    RateLimitedError,
    RelaygateError,
    SchemaViolationError,
    ServiceAlreadyExistsError,
    ServiceNotFoundError,
    SessionNotFoundError,
    StreamAbortedError,
    UpstreamError,
)
from .factories import (
    conflict_error,
    dependency_error,
    internal_error,
    not_found_error,
    policy_error,
    rate_limited_error,
    validation_error,
)
from .normalize import exception_to_error
from .types import ErrorCategory, ErrorDetail

__all__ = [
    "ErrorCategory",
    "ErrorDetail",
    "MigrationFailureError",
    "PolicyDeniedError",
    "RateLimitedError",
    "RelaygateError",
    "SchemaViolationError",
    "ServiceAlreadyExistsError",
    "ServiceNotFoundError",
    "SessionNotFoundError",
    "StreamAbortedError",
    "UpstreamError",
    "codes",
    "conflict_error",
    "dependency_error",
    "exception_to_error",
    "internal_error",
    "not_found_error",
    "policy_error",
    "rate_limited_error",
    "validation_error",
]
