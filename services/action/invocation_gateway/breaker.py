"""Per-service circuit breakers guarding upstream dispatch.

A breaker starts ``closed``. ``failure_threshold`` consecutive upstream
failures open it, and while open every call is rejected with a retryable
``UpstreamError`` before any request is sent. After ``reset_timeout_seconds``
the breaker goes ``half_open`` and lets at most ``half_open_requests`` trial
calls through at a time. ``success_threshold`` trial successes close it again
and any trial failure reopens it.

Only retryable upstream failures (transport errors, 5xx, 429) count against a
service. An endpoint that answers with a client error is reachable, so that
outcome counts as a success.
"""

from __future__ import annotations

import time
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from enum import Enum
from threading import Lock
from typing import TypeVar

from pydantic import BaseModel, ConfigDict, Field

from packages.relaygate_shared.errors import UpstreamError
from packages.relaygate_shared.logging import fields, get_logger, log_context

_LOGGER = get_logger(__name__)

_T = TypeVar("_T")


class CircuitState(str, Enum):
    """Admission state of one service's breaker."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerSettings(BaseModel):
    """Thresholds shared by every service's breaker."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    enabled: bool = True
    failure_threshold: int = Field(default=5, gt=0)
    success_threshold: int = Field(default=3, gt=0)
    reset_timeout_seconds: float = Field(default=30.0, gt=0)
    half_open_requests: int = Field(default=1, gt=0)


@dataclass
class _Breaker:
    state: CircuitState = CircuitState.CLOSED
    failures: int = 0
    successes: int = 0
    opened_at: float = 0.0
    trials_in_flight: int = 0


class CircuitBreakers:
    """Lock-guarded breakers keyed by service name."""

    def __init__(
        self,
        *,
        settings: CircuitBreakerSettings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings or CircuitBreakerSettings()
        self._clock = clock
        self._lock = Lock()
        self._breakers: dict[str, _Breaker] = {}

    def state(self, service_name: str) -> CircuitState:
        """Return the current state, promoting an expired open breaker."""
        with self._lock:
            breaker = self._breakers.get(service_name)
            if breaker is None:
                return CircuitState.CLOSED
            self._maybe_half_open(service_name, breaker)
            return breaker.state

    def open_services(self) -> tuple[str, ...]:
        """Return the names of services whose breaker is currently open."""
        with self._lock:
            return tuple(
                sorted(
                    name
                    for name, breaker in self._breakers.items()
                    if breaker.state is CircuitState.OPEN
                )
            )

    def admit(self, service_name: str) -> None:
        """Allow one call or raise a retryable ``UpstreamError``."""
        if not self._settings.enabled:
            return
        with self._lock:
            breaker = self._breakers.setdefault(service_name, _Breaker())
            self._maybe_half_open(service_name, breaker)
            if breaker.state is CircuitState.CLOSED:
                return
            if (
                breaker.state is CircuitState.HALF_OPEN
                and breaker.trials_in_flight < self._settings.half_open_requests
            ):
                breaker.trials_in_flight += 1
                return
            state = breaker.state
        raise UpstreamError(
            message=f"circuit for '{service_name}' is {state.value}",
            service_name=service_name,
            retryable=True,
        )

    def record_success(self, service_name: str) -> None:
        if not self._settings.enabled:
            return
        with self._lock:
            breaker = self._breakers.setdefault(service_name, _Breaker())
            if breaker.state is CircuitState.HALF_OPEN:
                breaker.trials_in_flight = max(0, breaker.trials_in_flight - 1)
                breaker.successes += 1
                if breaker.successes >= self._settings.success_threshold:
                    self._transition(service_name, breaker, CircuitState.CLOSED)
            elif breaker.state is CircuitState.CLOSED:
                breaker.failures = 0

    def record_failure(self, service_name: str) -> None:
        if not self._settings.enabled:
            return
        with self._lock:
            breaker = self._breakers.setdefault(service_name, _Breaker())
            if breaker.state is CircuitState.HALF_OPEN:
                self._transition(service_name, breaker, CircuitState.OPEN)
            elif breaker.state is CircuitState.CLOSED:
                breaker.failures += 1
                if breaker.failures >= self._settings.failure_threshold:
                    self._transition(service_name, breaker, CircuitState.OPEN)

    def release(self, service_name: str) -> None:
        """Return an admitted trial slot when the call had no upstream outcome."""
        with self._lock:
            breaker = self._breakers.get(service_name)
            if breaker is not None and breaker.state is CircuitState.HALF_OPEN:
                breaker.trials_in_flight = max(0, breaker.trials_in_flight - 1)

    def settle(self, service_name: str, error: BaseException | None) -> None:
        """Record the outcome of one admitted call."""
        if error is None:
            self.record_success(service_name)
        elif isinstance(error, UpstreamError):
            if error.retryable:
                self.record_failure(service_name)
            else:
                self.record_success(service_name)
        else:
            self.release(service_name)

    async def guard_stream(
        self,
        service_name: str,
        producer: AsyncIterator[_T],
    ) -> AsyncIterator[_T]:
        """Relay ``producer`` and settle the breaker when the stream ends.

        Any relayed event proves the endpoint answered, so a stream that
        produced events and was then closed early counts as a success.
        """
        error: BaseException | None = None
        answered = False
        try:
            async for event in producer:
                answered = True
                yield event
        except Exception as exc:
            error = exc
            raise
        finally:
            aclose = getattr(producer, "aclose", None)
            if aclose is not None:
                await aclose()
            if error is not None or answered:
                self.settle(service_name, error)
            else:
                self.release(service_name)

    def reset(self, service_name: str | None = None) -> None:
        """Close one breaker, or every breaker when no name is given."""
        with self._lock:
            if service_name is None:
                self._breakers.clear()
            else:
                self._breakers.pop(service_name, None)

    def _maybe_half_open(self, service_name: str, breaker: _Breaker) -> None:
        if breaker.state is not CircuitState.OPEN:
            return
        if self._clock() - breaker.opened_at >= self._settings.reset_timeout_seconds:
            self._transition(service_name, breaker, CircuitState.HALF_OPEN)

    def _transition(
        self, service_name: str, breaker: _Breaker, state: CircuitState
    ) -> None:
        previous = breaker.state
        breaker.state = state
        breaker.successes = 0
        breaker.trials_in_flight = 0
        if state is CircuitState.OPEN:
            breaker.opened_at = self._clock()
        if state is CircuitState.CLOSED:
            breaker.failures = 0
        with log_context(
            {
                fields.SERVICE_NAME: service_name,
                "circuit_from": previous.value,
                "circuit_to": state.value,
            }
        ):
            if state is CircuitState.OPEN:
                _LOGGER.warning("circuit opened")
            else:
                _LOGGER.info("circuit state changed")
