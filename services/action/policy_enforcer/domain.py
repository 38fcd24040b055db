"""Domain contracts for policy decisions."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from services.state.service_registry.domain import TrustLevel

REASON_DISABLED = "disabled"
REASON_UNAVAILABLE = "unavailable"
REASON_ACTION_NOT_PERMITTED = "action not permitted"

CODE_ALLOWED = "allowed"
CODE_SERVICE_DISABLED = "service_disabled"
CODE_SERVICE_UNAVAILABLE = "service_unavailable"
CODE_ACTION_NOT_PERMITTED = "action_not_permitted"


class PolicyDecision(BaseModel):
    """Allow/deny verdict for one (service, action) pair."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    service_name: str
    action: str
    allowed: bool
    reason: str = ""
    reason_code: str = CODE_ALLOWED
    trust_level: TrustLevel = TrustLevel.MEDIUM
