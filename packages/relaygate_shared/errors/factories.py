"""Factory helpers for creating consistent shared errors."""

from __future__ import annotations

from typing import Mapping

from . import codes
from .types import ErrorCategory, ErrorDetail


def validation_error(
    message: str,
    *,
    code: str = codes.VALIDATION_ERROR,
    kind: str = codes.KIND_SCHEMA_VIOLATION,
    metadata: Mapping[str, str] | None = None,
) -> ErrorDetail:
    """Create a validation-category error."""
    return ErrorDetail(
        code=code,
        message=message,
        category=ErrorCategory.VALIDATION,
        kind=kind,
        retryable=False,
        metadata=_meta(metadata),
    )


def not_found_error(
    message: str,
    *,
    code: str = codes.NOT_FOUND,
    metadata: Mapping[str, str] | None = None,
) -> ErrorDetail:
    """Create a not-found-category error."""
    return ErrorDetail(
        code=code,
        message=message,
        category=ErrorCategory.NOT_FOUND,
        kind=codes.KIND_NOT_FOUND,
        retryable=False,
        metadata=_meta(metadata),
    )


def conflict_error(
    message: str,
    *,
    code: str = codes.ALREADY_EXISTS,
    metadata: Mapping[str, str] | None = None,
) -> ErrorDetail:
    """Create a conflict-category error."""
    return ErrorDetail(
        code=code,
        message=message,
        category=ErrorCategory.CONFLICT,
        kind=codes.KIND_ALREADY_EXISTS,
        retryable=False,
        metadata=_meta(metadata),
    )


def policy_error(
    message: str,
    *,
    code: str = codes.POLICY_DENIED,
    metadata: Mapping[str, str] | None = None,
) -> ErrorDetail:
    """Create a policy-category error."""
    return ErrorDetail(
        code=code,
        message=message,
        category=ErrorCategory.POLICY,
        kind=codes.KIND_DENIED,
        retryable=False,
        metadata=_meta(metadata),
    )


def rate_limited_error(
    message: str,
    *,
    retry_after_seconds: float,
    metadata: Mapping[str, str] | None = None,
) -> ErrorDetail:
    """Create a rate-limited error carrying the retry-after hint."""
    merged = _meta(metadata)
    merged["retry_after_seconds"] = f"{retry_after_seconds:.3f}"
    return ErrorDetail(
        code=codes.RATE_LIMITED,
        message=message,
        category=ErrorCategory.RATE_LIMITED,
        kind=codes.KIND_RATE_LIMITED,
        retryable=True,
        metadata=merged,
    )


def dependency_error(
    message: str,
    *,
    code: str = codes.UPSTREAM_FAILURE,
    kind: str = codes.KIND_UPSTREAM_ERROR,
    retryable: bool = True,
    metadata: Mapping[str, str] | None = None,
) -> ErrorDetail:
    """Create a dependency-category error."""
    return ErrorDetail(
        code=code,
        message=message,
        category=ErrorCategory.DEPENDENCY,
        kind=kind,
        retryable=retryable,
        metadata=_meta(metadata),
    )


def internal_error(
    message: str,
    *,
    code: str = codes.INTERNAL_ERROR,
    kind: str = codes.KIND_INTERNAL,
    metadata: Mapping[str, str] | None = None,
) -> ErrorDetail:
    """Create an internal-category error."""
    return ErrorDetail(
        code=code,
        message=message,
        category=ErrorCategory.INTERNAL,
        kind=kind,
        retryable=False,
        metadata=_meta(metadata),
    )


def _meta(metadata: Mapping[str, str] | None) -> dict[str, str]:
    """Normalize optional metadata into a mutable plain dict."""
    if metadata is None:
        return {}
    return dict(metadata)
