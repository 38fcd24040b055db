"""Authoritative in-process Python API for the Trust & Policy Enforcer."""

from __future__ import annotations

from abc import ABC, abstractmethod

from packages.relaygate_shared.errors import PolicyDeniedError
from services.action.policy_enforcer.domain import PolicyDecision
from services.state.service_registry.domain import ServiceRecord


class PolicyEnforcer(ABC):
    """Public API for gateway authorization of one (service, action) pair."""

    @abstractmethod
    def authorize(self, record: ServiceRecord, action: str) -> PolicyDecision:
        """Return an allow/deny decision without side effects."""

    def require(self, record: ServiceRecord, action: str) -> PolicyDecision:
        """Return an allowing decision or raise ``PolicyDeniedError``."""
        decision = self.authorize(record=record, action=action)
        if not decision.allowed:
            raise PolicyDeniedError(
                message=(
                    f"call to '{record.name}' action '{action}' denied: "
                    f"{decision.reason}"
                ),
                service_name=record.name,
                action=action,
                reason=decision.reason,
                reason_code=decision.reason_code,
            )
        return decision


def build_policy_enforcer() -> PolicyEnforcer:
    """Build the default rule-ordered policy enforcer."""
    from services.action.policy_enforcer.implementation import DefaultPolicyEnforcer

    return DefaultPolicyEnforcer()
