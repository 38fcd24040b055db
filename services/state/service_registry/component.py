"""Component declaration for the Service Registry."""

from __future__ import annotations

from collections.abc import Mapping

from packages.relaygate_shared.config import RelaygateSettings

SERVICE_COMPONENT_ID = "service_service_registry"


def build_component(
    *, settings: RelaygateSettings, components: Mapping[str, object]
) -> object:
    """Build the configured registry store over the shared SQL engine, if any."""
    from sqlalchemy import Engine

    from services.state.service_registry.service import build_service_registry

    engine = components.get("substrate_sql")
    return build_service_registry(
        settings=settings,
        engine=engine if isinstance(engine, Engine) else None,
    )
