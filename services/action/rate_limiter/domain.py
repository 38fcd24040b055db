"""Domain contracts for rate limit decisions."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class RateLimitDecision(BaseModel):
    """Outcome of one budget acquisition attempt."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    service_name: str
    allowed: bool
    limit: int = Field(gt=0)
    remaining: int = Field(ge=0)
    retry_after_seconds: float = Field(default=0.0, ge=0)
