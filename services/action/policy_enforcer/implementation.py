"""Concrete rule-ordered policy enforcer.

Rules are evaluated in order and the first match wins:

1. disabled services are denied
2. services whose last health check reported ``down`` are denied
3. actions outside ``allowed_actions`` are denied
4. everything else is allowed

``trust_level`` is carried on the decision but no rule reads it.
"""

from __future__ import annotations

from packages.relaygate_shared.logging import get_logger, public_api_logged
from services.action.policy_enforcer.component import SERVICE_COMPONENT_ID
from services.action.policy_enforcer.domain import (
    CODE_ACTION_NOT_PERMITTED,
    CODE_SERVICE_DISABLED,
    CODE_SERVICE_UNAVAILABLE,
    REASON_ACTION_NOT_PERMITTED,
    REASON_DISABLED,
    REASON_UNAVAILABLE,
    PolicyDecision,
)
from services.action.policy_enforcer.service import PolicyEnforcer
from services.state.service_registry.domain import HealthStatus, ServiceRecord

_LOGGER = get_logger(__name__)


class DefaultPolicyEnforcer(PolicyEnforcer):
    """Stateless enforcer over registry record fields."""

    @public_api_logged(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
        id_fields=("action",),
    )
    def authorize(self, record: ServiceRecord, action: str) -> PolicyDecision:
        if not record.enabled:
            return self._deny(record, action, REASON_DISABLED, CODE_SERVICE_DISABLED)
        if record.health_status is HealthStatus.DOWN:
            return self._deny(
                record, action, REASON_UNAVAILABLE, CODE_SERVICE_UNAVAILABLE
            )
        if action not in record.allowed_actions:
            return self._deny(
                record, action, REASON_ACTION_NOT_PERMITTED, CODE_ACTION_NOT_PERMITTED
            )
        return PolicyDecision(
            service_name=record.name,
            action=action,
            allowed=True,
            trust_level=record.trust_level,
        )

    def _deny(
        self,
        record: ServiceRecord,
        action: str,
        reason: str,
        reason_code: str,
    ) -> PolicyDecision:
        return PolicyDecision(
            service_name=record.name,
            action=action,
            allowed=False,
            reason=reason,
            reason_code=reason_code,
            trust_level=record.trust_level,
        )
