"""Tests for gateway settings resolution and component wiring."""

from __future__ import annotations

import pytest

from packages.relaygate_shared.config import RelaygateSettings
from services.action.invocation_gateway.component import build_component
from services.action.invocation_gateway.config import (
    resolve_invocation_gateway_settings,
)
from services.action.invocation_gateway.implementation import DefaultInvocationGateway
from services.action.policy_enforcer import build_policy_enforcer
from services.action.rate_limiter import FixedWindowRateLimiter
from services.state.service_registry import build_service_registry


def _settings(**gateway: object) -> RelaygateSettings:
    return RelaygateSettings.model_validate(
        {
            "components": {
                "service": {
                    "service_registry": {"backend": "memory"},
                    "invocation_gateway": gateway,
                }
            }
        }
    )


def test_gateway_settings_defaults_and_overrides() -> None:
    """Gateway settings resolve from ``components.service.invocation_gateway``."""
    defaults = resolve_invocation_gateway_settings(_settings())
    tuned = resolve_invocation_gateway_settings(
        _settings(
            caller_id="desktop",
            request_timeout_seconds=5,
            session_retention_seconds=60,
            circuit_breaker={"failure_threshold": 3, "enabled": False},
        )
    )

    assert defaults.caller_id == "relaygate"
    assert defaults.request_timeout_seconds == 30.0
    assert defaults.audit_enabled is True
    assert tuned.caller_id == "desktop"
    assert tuned.request_timeout_seconds == 5.0
    assert defaults.session_retention_seconds == 300.0
    assert tuned.session_retention_seconds == 60.0
    assert defaults.circuit_breaker.failure_threshold == 5
    assert tuned.circuit_breaker.failure_threshold == 3
    assert tuned.circuit_breaker.enabled is False


def test_build_component_requires_collaborators() -> None:
    """Missing collaborator components are reported by component id."""
    with pytest.raises(KeyError, match="service_service_registry"):
        build_component(settings=_settings(), components={})


def test_build_component_wires_gateway_from_components() -> None:
    """A complete component map yields the default gateway."""
    settings = _settings()
    components: dict[str, object] = {
        "service_service_registry": build_service_registry(settings=settings),
        "service_policy_enforcer": build_policy_enforcer(),
        "service_rate_limiter": FixedWindowRateLimiter(),
    }

    gateway = build_component(settings=settings, components=components)

    assert isinstance(gateway, DefaultInvocationGateway)
    assert gateway.health().ready is True
