"""Pydantic settings for Rate Limiter behavior."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from packages.relaygate_shared.config import (
    RelaygateSettings,
    resolve_component_settings,
)
from services.action.rate_limiter.component import SERVICE_COMPONENT_ID


class RateLimiterSettings(BaseModel):
    """Fixed-window rate limiter settings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    window_seconds: float = Field(default=60.0, gt=0)


def resolve_rate_limiter_settings(settings: RelaygateSettings) -> RateLimiterSettings:
    """Resolve limiter settings from ``components.service.rate_limiter``."""
    return resolve_component_settings(
        settings=settings,
        component_id=SERVICE_COMPONENT_ID,
        model=RateLimiterSettings,
    )
