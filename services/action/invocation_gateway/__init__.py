"""Invocation Gateway package exports."""

from services.action.invocation_gateway.breaker import (
    CircuitBreakers,
    CircuitBreakerSettings,
    CircuitState,
)
from services.action.invocation_gateway.component import SERVICE_COMPONENT_ID
from services.action.invocation_gateway.config import (
    InvocationGatewaySettings,
    resolve_invocation_gateway_settings,
)
from services.action.invocation_gateway.dispatch import HttpUpstreamDispatcher
from services.action.invocation_gateway.domain import (
    GatewayHealthStatus,
    InvocationAuditRow,
    InvocationRequest,
    InvocationResult,
    SessionHandle,
    StreamEvent,
    StreamEventType,
)
from services.action.invocation_gateway.implementation import DefaultInvocationGateway
from services.action.invocation_gateway.interfaces import (
    InvocationAuditRepository,
    UpstreamDispatcher,
)
from services.action.invocation_gateway.service import (
    InvocationGateway,
    build_invocation_gateway,
)
from services.action.invocation_gateway.streaming import StreamingSessionManager

__all__ = [
    "CircuitBreakerSettings",
    "CircuitBreakers",
    "CircuitState",
    "DefaultInvocationGateway",
    "GatewayHealthStatus",
    "HttpUpstreamDispatcher",
    "InvocationAuditRepository",
    "InvocationAuditRow",
    "InvocationGateway",
    "InvocationGatewaySettings",
    "InvocationRequest",
    "InvocationResult",
    "SERVICE_COMPONENT_ID",
    "SessionHandle",
    "StreamEvent",
    "StreamEventType",
    "StreamingSessionManager",
    "UpstreamDispatcher",
    "build_invocation_gateway",
    "resolve_invocation_gateway_settings",
]
