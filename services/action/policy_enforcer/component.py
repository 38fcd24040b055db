"""Component declaration for the Trust & Policy Enforcer."""

from __future__ import annotations

from collections.abc import Mapping

from packages.relaygate_shared.config import RelaygateSettings

SERVICE_COMPONENT_ID = "service_policy_enforcer"


def build_component(
    *, settings: RelaygateSettings, components: Mapping[str, object]
) -> object:
    """Build the policy enforcer; it carries no tunable settings."""
    del settings, components
    from services.action.policy_enforcer.service import build_policy_enforcer

    return build_policy_enforcer()
