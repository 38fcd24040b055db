"""Thread-safe fixed-window rate limiter keyed by service name.

The window index is ``floor(now / window_seconds)`` of wall-clock time, so an
idle service never banks unused budget; a counter whose index is stale is
replaced on the next call.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock

from packages.relaygate_shared.logging import fields, get_logger, log_context
from services.action.rate_limiter.domain import RateLimitDecision
from services.action.rate_limiter.service import RateLimiter

_LOGGER = get_logger(__name__)


@dataclass
class _WindowCounter:
    index: int
    count: int = 0


class FixedWindowRateLimiter(RateLimiter):
    """In-memory limiter; increments are serialized under one lock."""

    def __init__(
        self,
        *,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        self._window_seconds = window_seconds
        self._clock = clock
        self._lock = Lock()
        self._counters: dict[str, _WindowCounter] = {}

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    def try_acquire(self, service_name: str, limit: int) -> RateLimitDecision:
        if limit <= 0:
            raise ValueError("limit must be > 0")
        now = self._clock()
        index = math.floor(now / self._window_seconds)

        with self._lock:
            counter = self._counters.get(service_name)
            if counter is None or counter.index != index:
                counter = _WindowCounter(index=index)
                self._counters[service_name] = counter
            if counter.count >= limit:
                retry_after = (index + 1) * self._window_seconds - now
                decision = RateLimitDecision(
                    service_name=service_name,
                    allowed=False,
                    limit=limit,
                    remaining=0,
                    retry_after_seconds=max(0.0, retry_after),
                )
            else:
                counter.count += 1
                decision = RateLimitDecision(
                    service_name=service_name,
                    allowed=True,
                    limit=limit,
                    remaining=limit - counter.count,
                )

        if not decision.allowed:
            with log_context({fields.SERVICE_NAME: service_name}):
                _LOGGER.info(
                    "rate limit exhausted; retry after %.3fs",
                    decision.retry_after_seconds,
                )
        return decision

    def reset(self, service_name: str | None = None) -> None:
        with self._lock:
            if service_name is None:
                self._counters.clear()
            else:
                self._counters.pop(service_name, None)
