"""Pydantic settings for Service Registry behavior."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from packages.relaygate_shared.config import (
    RelaygateSettings,
    resolve_component_settings,
)
from services.state.service_registry.component import SERVICE_COMPONENT_ID


class HealthCheckSettings(BaseModel):
    """Out-of-band endpoint health check settings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    timeout_seconds: float = Field(default=5.0, gt=0)
    path: str = "/health"


class ServiceRegistrySettings(BaseModel):
    """Service Registry storage and bootstrap settings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    backend: Literal["memory", "sql"] = "sql"
    seed_on_startup: bool = True
    env_file: str = ""
    health: HealthCheckSettings = Field(default_factory=HealthCheckSettings)


def resolve_service_registry_settings(
    settings: RelaygateSettings,
) -> ServiceRegistrySettings:
    """Resolve registry settings from ``components.service.service_registry``."""
    return resolve_component_settings(
        settings=settings,
        component_id=SERVICE_COMPONENT_ID,
        model=ServiceRegistrySettings,
    )
