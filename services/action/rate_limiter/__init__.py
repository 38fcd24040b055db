"""Rate Limiter package exports."""

from services.action.rate_limiter.component import SERVICE_COMPONENT_ID
from services.action.rate_limiter.config import (
    RateLimiterSettings,
    resolve_rate_limiter_settings,
)
from services.action.rate_limiter.domain import RateLimitDecision
from services.action.rate_limiter.implementation import FixedWindowRateLimiter
from services.action.rate_limiter.service import RateLimiter, build_rate_limiter

__all__ = [
    "FixedWindowRateLimiter",
    "RateLimitDecision",
    "RateLimiter",
    "RateLimiterSettings",
    "SERVICE_COMPONENT_ID",
    "build_rate_limiter",
    "resolve_rate_limiter_settings",
]
