"""Component declaration for the Rate Limiter."""

from __future__ import annotations

from collections.abc import Mapping

from packages.relaygate_shared.config import RelaygateSettings

SERVICE_COMPONENT_ID = "service_rate_limiter"


def build_component(
    *, settings: RelaygateSettings, components: Mapping[str, object]
) -> object:
    """Build the process-wide rate limiter from typed settings."""
    del components
    from services.action.rate_limiter.service import build_rate_limiter

    return build_rate_limiter(settings=settings)
