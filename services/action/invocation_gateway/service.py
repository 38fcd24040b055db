"""Authoritative in-process Python API for the Invocation Gateway."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Mapping
from typing import Any

import httpx

from packages.relaygate_shared.config import RelaygateSettings
from services.action.invocation_gateway.domain import (
    GatewayHealthStatus,
    InvocationResult,
    SessionHandle,
    StreamEvent,
)
from services.action.policy_enforcer.service import PolicyEnforcer
from services.action.rate_limiter.service import RateLimiter
from services.state.service_registry.service import ServiceRegistry


class InvocationGateway(ABC):
    """Public API for calling registered service actions."""

    @abstractmethod
    async def invoke(
        self,
        *,
        service_name: str,
        action: str,
        payload: Mapping[str, Any] | None = None,
    ) -> InvocationResult:
        """Authorize, budget, and dispatch one request/response call."""

    @abstractmethod
    async def open_stream(
        self,
        *,
        service_name: str,
        action: str,
        payload: Mapping[str, Any] | None = None,
    ) -> SessionHandle:
        """Authorize and budget a call, then start a streaming session."""

    @abstractmethod
    def get_session(self, *, session_id: str) -> SessionHandle:
        """Return the handle of a live session."""

    @abstractmethod
    def events(self, *, session_id: str) -> AsyncIterator[StreamEvent]:
        """Yield one session's events until its terminal event."""

    @abstractmethod
    async def cancel(self, *, session_id: str) -> bool:
        """Abort one live session."""

    @abstractmethod
    def health(self) -> GatewayHealthStatus:
        """Return gateway readiness and registry counts."""

    @abstractmethod
    async def aclose(self) -> None:
        """Cancel live sessions before shutdown."""


def build_invocation_gateway(
    *,
    settings: RelaygateSettings,
    registry: ServiceRegistry,
    policy: PolicyEnforcer,
    rate_limiter: RateLimiter,
    transport: httpx.AsyncBaseTransport | None = None,
) -> InvocationGateway:
    """Build the default gateway from explicitly owned collaborators.

    Audit rows share the registry's database when the registry is SQL-backed.
    """
    from resources.substrates.sql import create_session_factory
    from services.action.invocation_gateway.breaker import CircuitBreakers
    from services.action.invocation_gateway.config import (
        resolve_invocation_gateway_settings,
    )
    from services.action.invocation_gateway.data.repository import (
        InMemoryInvocationAuditRepository,
        SqlInvocationAuditRepository,
    )
    from services.action.invocation_gateway.dispatch import HttpUpstreamDispatcher
    from services.action.invocation_gateway.implementation import (
        DefaultInvocationGateway,
    )
    from services.action.invocation_gateway.interfaces import (
        InvocationAuditRepository,
    )
    from services.action.invocation_gateway.streaming import StreamingSessionManager

    gateway_settings = resolve_invocation_gateway_settings(settings)
    audits: InvocationAuditRepository | None = None
    if gateway_settings.audit_enabled:
        audits = (
            InMemoryInvocationAuditRepository()
            if registry.runtime is None
            else SqlInvocationAuditRepository(
                create_session_factory(registry.runtime.engine)
            )
        )

    return DefaultInvocationGateway(
        registry=registry,
        policy=policy,
        rate_limiter=rate_limiter,
        dispatcher=HttpUpstreamDispatcher(
            caller_id=gateway_settings.caller_id,
            timeout_seconds=gateway_settings.request_timeout_seconds,
            transport=transport,
        ),
        sessions=StreamingSessionManager(
            retention_seconds=gateway_settings.session_retention_seconds,
        ),
        audits=audits,
        breakers=CircuitBreakers(settings=gateway_settings.circuit_breaker),
    )
