"""Pydantic settings for Invocation Gateway behavior."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from packages.relaygate_shared.config import (
    RelaygateSettings,
    resolve_component_settings,
)
from services.action.invocation_gateway.breaker import CircuitBreakerSettings
from services.action.invocation_gateway.component import SERVICE_COMPONENT_ID


class InvocationGatewaySettings(BaseModel):
    """Upstream dispatch and audit settings plus session and breaker tuning."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    caller_id: str = "relaygate"
    request_timeout_seconds: float = Field(default=30.0, gt=0)
    audit_enabled: bool = True
    session_retention_seconds: float = Field(default=300.0, gt=0)
    circuit_breaker: CircuitBreakerSettings = Field(
        default_factory=CircuitBreakerSettings
    )


def resolve_invocation_gateway_settings(
    settings: RelaygateSettings,
) -> InvocationGatewaySettings:
    """Resolve gateway settings from ``components.service.invocation_gateway``."""
    return resolve_component_settings(
        settings=settings,
        component_id=SERVICE_COMPONENT_ID,
        model=InvocationGatewaySettings,
    )
