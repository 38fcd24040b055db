"""Tests for per-service circuit breaker transitions."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

import pytest

from packages.relaygate_shared.errors import UpstreamError
from services.action.invocation_gateway.breaker import (
    CircuitBreakers,
    CircuitBreakerSettings,
    CircuitState,
)


class _Clock:
    def __init__(self, now: float = 100.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _breakers(clock: _Clock, **overrides: object) -> CircuitBreakers:
    settings = {
        "failure_threshold": 2,
        "success_threshold": 2,
        "reset_timeout_seconds": 30.0,
        "half_open_requests": 1,
        **overrides,
    }
    return CircuitBreakers(
        settings=CircuitBreakerSettings.model_validate(settings), clock=clock
    )


def _retryable() -> UpstreamError:
    return UpstreamError(
        message="upstream 'phi4' is unreachable", service_name="phi4", retryable=True
    )


def _open(breakers: CircuitBreakers) -> None:
    for _ in range(2):
        breakers.admit("phi4")
        breakers.settle("phi4", _retryable())


def test_consecutive_failures_open_the_circuit() -> None:
    """Reaching the failure threshold rejects further calls immediately."""
    breakers = _breakers(_Clock())

    _open(breakers)

    assert breakers.state("phi4") is CircuitState.OPEN
    assert breakers.open_services() == ("phi4",)
    with pytest.raises(UpstreamError) as exc_info:
        breakers.admit("phi4")
    assert exc_info.value.retryable is True
    assert "open" in str(exc_info.value)


def test_success_resets_the_failure_streak() -> None:
    """Failures must be consecutive to open the circuit."""
    breakers = _breakers(_Clock())

    breakers.settle("phi4", _retryable())
    breakers.settle("phi4", None)
    breakers.settle("phi4", _retryable())

    assert breakers.state("phi4") is CircuitState.CLOSED


def test_client_errors_do_not_count_as_failures() -> None:
    """A non-retryable upstream answer proves the endpoint is reachable."""
    breakers = _breakers(_Clock())
    client_error = UpstreamError(
        message="upstream 'phi4' returned HTTP 400",
        service_name="phi4",
        status_code=400,
        retryable=False,
    )

    for _ in range(3):
        breakers.settle("phi4", client_error)

    assert breakers.state("phi4") is CircuitState.CLOSED


def test_open_circuit_half_opens_after_timeout_and_limits_trials() -> None:
    """After the timeout one trial call is admitted and a second is rejected."""
    clock = _Clock()
    breakers = _breakers(clock)
    _open(breakers)

    clock.now += 30.0

    assert breakers.state("phi4") is CircuitState.HALF_OPEN
    breakers.admit("phi4")
    with pytest.raises(UpstreamError) as exc_info:
        breakers.admit("phi4")
    assert "half_open" in str(exc_info.value)


def test_half_open_successes_close_the_circuit() -> None:
    """Enough trial successes return the breaker to normal operation."""
    clock = _Clock()
    breakers = _breakers(clock)
    _open(breakers)
    clock.now += 30.0

    for _ in range(2):
        breakers.admit("phi4")
        breakers.settle("phi4", None)

    assert breakers.state("phi4") is CircuitState.CLOSED
    assert breakers.open_services() == ()
    breakers.admit("phi4")


def test_half_open_failure_reopens_the_circuit() -> None:
    """Any trial failure reopens the circuit and restarts the timeout."""
    clock = _Clock()
    breakers = _breakers(clock)
    _open(breakers)
    clock.now += 30.0

    breakers.admit("phi4")
    breakers.settle("phi4", _retryable())

    assert breakers.state("phi4") is CircuitState.OPEN
    clock.now += 29.0
    assert breakers.state("phi4") is CircuitState.OPEN
    clock.now += 1.0
    assert breakers.state("phi4") is CircuitState.HALF_OPEN


def test_released_trial_frees_the_half_open_slot() -> None:
    """A trial call that ends without an upstream outcome can be retried."""
    clock = _Clock()
    breakers = _breakers(clock)
    _open(breakers)
    clock.now += 30.0

    breakers.admit("phi4")
    breakers.settle("phi4", RuntimeError("cancelled before dispatch"))
    breakers.admit("phi4")

    assert breakers.state("phi4") is CircuitState.HALF_OPEN


def test_disabled_breakers_never_reject() -> None:
    breakers = _breakers(_Clock(), enabled=False)

    _open(breakers)

    breakers.admit("phi4")
    assert breakers.state("phi4") is CircuitState.CLOSED


def test_breakers_are_independent_per_service() -> None:
    breakers = _breakers(_Clock())

    _open(breakers)

    breakers.admit("web-search")
    assert breakers.state("web-search") is CircuitState.CLOSED


def test_guarded_stream_records_failures_and_successes() -> None:
    """Stream outcomes feed the breaker once the stream finishes."""
    breakers = _breakers(_Clock())

    async def _failing() -> AsyncIterator[str]:
        raise _retryable()
        yield "unreachable"

    async def _answering() -> AsyncIterator[str]:
        yield "token"

    async def _drain(producer: AsyncIterator[str]) -> list[str]:
        return [item async for item in breakers.guard_stream("phi4", producer)]

    for _ in range(2):
        with pytest.raises(UpstreamError):
            asyncio.run(_drain(_failing()))
    assert breakers.state("phi4") is CircuitState.OPEN

    breakers.reset("phi4")
    assert asyncio.run(_drain(_answering())) == ["token"]
    assert breakers.state("phi4") is CircuitState.CLOSED
