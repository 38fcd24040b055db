"""Trust & Policy Enforcer package exports."""

from services.action.policy_enforcer.component import SERVICE_COMPONENT_ID
from services.action.policy_enforcer.domain import (
    CODE_ACTION_NOT_PERMITTED,
    CODE_SERVICE_DISABLED,
    CODE_SERVICE_UNAVAILABLE,
    PolicyDecision,
)
from services.action.policy_enforcer.implementation import DefaultPolicyEnforcer
from services.action.policy_enforcer.service import (
    PolicyEnforcer,
    build_policy_enforcer,
)

__all__ = [
    "CODE_ACTION_NOT_PERMITTED",
    "CODE_SERVICE_DISABLED",
    "CODE_SERVICE_UNAVAILABLE",
    "DefaultPolicyEnforcer",
    "PolicyDecision",
    "PolicyEnforcer",
    "SERVICE_COMPONENT_ID",
    "build_policy_enforcer",
]
