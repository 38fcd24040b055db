"""Tests for typed error rendering and exception normalization."""

from __future__ import annotations

import pytest

from packages.relaygate_shared.errors import (
    ErrorCategory,
    MigrationFailureError,
    PolicyDeniedError,
    RateLimitedError,
    RelaygateError,
    ServiceAlreadyExistsError,
    ServiceNotFoundError,
    SessionNotFoundError,
    StreamAbortedError,
    UpstreamError,
    codes,
    exception_to_error,
)


@pytest.mark.parametrize(
    ("exc", "kind", "category"),
    [
        (
            ServiceNotFoundError(message="missing", service_name="ghost"),
            codes.KIND_NOT_FOUND,
            ErrorCategory.NOT_FOUND,
        ),
        (
            ServiceAlreadyExistsError(message="dup", service_name="phi4"),
            codes.KIND_ALREADY_EXISTS,
            ErrorCategory.CONFLICT,
        ),
        (
            PolicyDeniedError(message="no", service_name="phi4", action="x.y"),
            codes.KIND_DENIED,
            ErrorCategory.POLICY,
        ),
        (
            RateLimitedError(message="slow down", retry_after_seconds=1.5),
            codes.KIND_RATE_LIMITED,
            ErrorCategory.RATE_LIMITED,
        ),
        (
            UpstreamError(message="down", service_name="phi4", status_code=502),
            codes.KIND_UPSTREAM_ERROR,
            ErrorCategory.DEPENDENCY,
        ),
        (
            StreamAbortedError(message="cancelled", session_id="s1", reason="cancelled"),
            codes.KIND_STREAM_ABORTED,
            ErrorCategory.DEPENDENCY,
        ),
        (
            SessionNotFoundError(message="gone", session_id="s1"),
            codes.KIND_NOT_FOUND,
            ErrorCategory.NOT_FOUND,
        ),
        (
            MigrationFailureError(message="boom", step="001_initial_services"),
            codes.KIND_MIGRATION_FAILURE,
            ErrorCategory.INTERNAL,
        ),
    ],
)
def test_typed_errors_render_their_own_kind(
    exc: RelaygateError, kind: str, category: ErrorCategory
) -> None:
    detail = exception_to_error(exc)

    assert detail.kind == kind
    assert detail.category is category
    assert exc.kind == kind
    assert detail.to_wire() == {"kind": kind, "message": exc.message}


def test_rate_limited_detail_carries_retry_hint() -> None:
    detail = RateLimitedError(
        message="slow down", service_name="phi4", retry_after_seconds=40
    ).to_error_detail()

    assert detail.retryable is True
    assert detail.metadata["retry_after_seconds"] == "40.000"
    assert detail.metadata["service_name"] == "phi4"


def test_upstream_detail_keeps_retryability_and_status() -> None:
    detail = UpstreamError(
        message="bad gateway", service_name="phi4", status_code=400, retryable=False
    ).to_error_detail()

    assert detail.retryable is False
    assert detail.metadata == {"service_name": "phi4", "status_code": "400"}


@pytest.mark.parametrize(
    ("exc", "kind", "retryable"),
    [
        (ValueError("bad input"), codes.KIND_SCHEMA_VIOLATION, False),
        (KeyError("missing"), codes.KIND_NOT_FOUND, False),
        (TimeoutError(), codes.KIND_UPSTREAM_ERROR, True),
        (ConnectionRefusedError("refused"), codes.KIND_UPSTREAM_ERROR, True),
        (RuntimeError("surprise"), codes.KIND_INTERNAL, False),
    ],
)
def test_builtin_exceptions_fall_back_conservatively(
    exc: Exception, kind: str, retryable: bool
) -> None:
    detail = exception_to_error(exc)

    assert detail.kind == kind
    assert detail.retryable is retryable
    assert detail.metadata["exception_type"] == type(exc).__name__

