"""Component declaration for the Invocation Gateway."""

from __future__ import annotations

from collections.abc import Mapping

from packages.relaygate_shared.config import RelaygateSettings

SERVICE_COMPONENT_ID = "service_invocation_gateway"


def build_component(
    *, settings: RelaygateSettings, components: Mapping[str, object]
) -> object:
    """Build the gateway over already-built registry, policy, and limiter."""
    from services.action.invocation_gateway.service import build_invocation_gateway
    from services.action.policy_enforcer.service import PolicyEnforcer
    from services.action.rate_limiter.service import RateLimiter
    from services.state.service_registry.service import ServiceRegistry

    registry = components.get("service_service_registry")
    if not isinstance(registry, ServiceRegistry):
        raise KeyError("service_service_registry")
    policy = components.get("service_policy_enforcer")
    if not isinstance(policy, PolicyEnforcer):
        raise KeyError("service_policy_enforcer")
    rate_limiter = components.get("service_rate_limiter")
    if not isinstance(rate_limiter, RateLimiter):
        raise KeyError("service_rate_limiter")

    return build_invocation_gateway(
        settings=settings,
        registry=registry,
        policy=policy,
        rate_limiter=rate_limiter,
    )
