"""Authoritative in-process Python API for the Rate Limiter."""

from __future__ import annotations

from abc import ABC, abstractmethod

from packages.relaygate_shared.config import RelaygateSettings
from packages.relaygate_shared.errors import RateLimitedError
from services.action.rate_limiter.domain import RateLimitDecision


class RateLimiter(ABC):
    """Public API for per-service call budgets."""

    @abstractmethod
    def try_acquire(self, service_name: str, limit: int) -> RateLimitDecision:
        """Consume one unit of budget when available."""

    @abstractmethod
    def reset(self, service_name: str | None = None) -> None:
        """Drop budget state for one service, or for all services."""

    def acquire(self, service_name: str, limit: int) -> RateLimitDecision:
        """Consume one unit of budget or raise ``RateLimitedError``."""
        decision = self.try_acquire(service_name=service_name, limit=limit)
        if not decision.allowed:
            raise RateLimitedError(
                message=(
                    f"rate limit of {limit} calls exceeded for '{service_name}'; "
                    f"retry after {decision.retry_after_seconds:.3f}s"
                ),
                service_name=service_name,
                retry_after_seconds=decision.retry_after_seconds,
            )
        return decision


def build_rate_limiter(*, settings: RelaygateSettings) -> RateLimiter:
    """Build the default in-process fixed-window limiter."""
    from services.action.rate_limiter.config import resolve_rate_limiter_settings
    from services.action.rate_limiter.implementation import FixedWindowRateLimiter

    return FixedWindowRateLimiter(
        window_seconds=resolve_rate_limiter_settings(settings).window_seconds
    )
