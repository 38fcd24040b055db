"""Tests for ordered Trust & Policy Enforcer rules."""

from __future__ import annotations

import pytest

from packages.relaygate_shared.errors import PolicyDeniedError
from services.action.policy_enforcer.domain import (
    CODE_ACTION_NOT_PERMITTED,
    CODE_ALLOWED,
    CODE_SERVICE_DISABLED,
    CODE_SERVICE_UNAVAILABLE,
)
from services.action.policy_enforcer.service import build_policy_enforcer
from services.state.service_registry.domain import (
    HealthStatus,
    ServiceRecord,
    TrustLevel,
    build_service_record,
)


def _record(**overrides: object) -> ServiceRecord:
    base: dict[str, object] = {
        "name": "screen-intelligence",
        "endpoint": "http://127.0.0.1:3008",
        "enabled": True,
        "trust_level": "high",
        "actions": ["screen.describe", "screen.click"],
        "allowed_actions": ["screen.describe"],
    }
    base.update(overrides)
    return build_service_record(base)


def test_allowed_action_on_enabled_service_is_allowed() -> None:
    """A permitted action on a healthy enabled service is allowed."""
    decision = build_policy_enforcer().authorize(_record(), "screen.describe")
    assert decision.allowed is True
    assert decision.reason_code == CODE_ALLOWED
    assert decision.trust_level is TrustLevel.HIGH


def test_disabled_service_is_denied_first() -> None:
    """Disabled wins over every other rule."""
    record = _record(enabled=False, health_status="down")
    decision = build_policy_enforcer().authorize(record, "screen.click")
    assert decision.allowed is False
    assert decision.reason == "disabled"
    assert decision.reason_code == CODE_SERVICE_DISABLED


def test_down_service_is_unavailable() -> None:
    """A service last seen down is denied before action checks."""
    record = _record(health_status=HealthStatus.DOWN)
    decision = build_policy_enforcer().authorize(record, "screen.click")
    assert decision.reason == "unavailable"
    assert decision.reason_code == CODE_SERVICE_UNAVAILABLE


@pytest.mark.parametrize("status", ["unknown", "healthy", "degraded"])
def test_non_down_health_does_not_block(status: str) -> None:
    """Only ``down`` short-circuits calls."""
    record = _record(health_status=status)
    assert build_policy_enforcer().authorize(record, "screen.describe").allowed


def test_declared_but_not_allowed_action_is_denied() -> None:
    """Actions must be in ``allowed_actions``, not merely declared."""
    decision = build_policy_enforcer().authorize(_record(), "screen.click")
    assert decision.reason == "action not permitted"
    assert decision.reason_code == CODE_ACTION_NOT_PERMITTED


def test_require_raises_denied_with_reason() -> None:
    """``require`` surfaces the denial as a typed error."""
    with pytest.raises(PolicyDeniedError) as exc_info:
        build_policy_enforcer().require(_record(), "screen.click")
    error = exc_info.value
    assert error.kind == "Denied"
    assert error.reason == "action not permitted"
    assert error.to_error_detail().to_wire()["kind"] == "Denied"
