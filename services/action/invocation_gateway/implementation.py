"""Concrete Invocation Gateway.

Every call walks the same pipeline before any upstream traffic is sent:

1. resolve the service record by name
2. authorize the (service, action) pair
3. acquire one unit of the service's rate budget
4. pass the service's circuit breaker

Denied calls never consume budget. An open circuit rejects calls without
upstream traffic. Failures are surfaced to the caller as
typed ``RelaygateError`` subclasses and are never retried here.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Mapping
from datetime import datetime
from time import perf_counter
from typing import Any

from packages.relaygate_shared.errors import UpstreamError, exception_to_error
from packages.relaygate_shared.ids import generate_ulid_str
from packages.relaygate_shared.logging import (
    fields,
    get_logger,
    log_context,
    public_api_logged,
)
from services.action.invocation_gateway.breaker import CircuitBreakers
from services.action.invocation_gateway.component import SERVICE_COMPONENT_ID
from services.action.invocation_gateway.domain import (
    GatewayHealthStatus,
    InvocationAuditRow,
    InvocationResult,
    SessionHandle,
    StreamEvent,
)
from services.action.invocation_gateway.interfaces import (
    InvocationAuditRepository,
    UpstreamDispatcher,
)
from services.action.invocation_gateway.service import InvocationGateway
from services.action.invocation_gateway.streaming import StreamingSessionManager
from services.action.policy_enforcer import PolicyEnforcer
from services.action.rate_limiter import RateLimiter
from services.state.service_registry import ServiceRecord, ServiceRegistry
from services.state.service_registry.domain import utc_now

_LOGGER = get_logger(__name__)


class DefaultInvocationGateway(InvocationGateway):
    """Gateway wired from explicitly owned collaborators."""

    def __init__(
        self,
        *,
        registry: ServiceRegistry,
        policy: PolicyEnforcer,
        rate_limiter: RateLimiter,
        dispatcher: UpstreamDispatcher,
        sessions: StreamingSessionManager | None = None,
        audits: InvocationAuditRepository | None = None,
        breakers: CircuitBreakers | None = None,
        clock: Callable[[], datetime] = utc_now,
        request_id_factory: Callable[[], str] = generate_ulid_str,
    ) -> None:
        self._registry = registry
        self._policy = policy
        self._rate_limiter = rate_limiter
        self._dispatcher = dispatcher
        self._sessions = sessions or StreamingSessionManager()
        self._audits = audits
        self._breakers = breakers or CircuitBreakers()
        self._clock = clock
        self._request_id_factory = request_id_factory

    @public_api_logged(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
        id_fields=("service_name", "action"),
    )
    async def invoke(
        self,
        *,
        service_name: str,
        action: str,
        payload: Mapping[str, Any] | None = None,
    ) -> InvocationResult:
        request_id = self._request_id_factory()
        started = perf_counter()
        with log_context(_call_fields(request_id, service_name, action)):
            try:
                record = self._admit(service_name, action)
                output = await self._call(
                    record, action, dict(payload or {}), request_id
                )
            except Exception as exc:
                self._audit(
                    request_id=request_id,
                    service_name=service_name,
                    action=action,
                    started=started,
                    error=exc,
                )
                raise
            duration_ms = _elapsed_ms(started)
            self._audit(
                request_id=request_id,
                service_name=service_name,
                action=action,
                started=started,
            )
        return InvocationResult(
            service_name=service_name,
            action=action,
            request_id=request_id,
            output=output,
            duration_ms=duration_ms,
        )

    @public_api_logged(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
        id_fields=("service_name", "action"),
    )
    async def open_stream(
        self,
        *,
        service_name: str,
        action: str,
        payload: Mapping[str, Any] | None = None,
    ) -> SessionHandle:
        request_id = self._request_id_factory()
        started = perf_counter()
        with log_context(_call_fields(request_id, service_name, action)):
            try:
                record = self._admit(service_name, action)
            except Exception as exc:
                self._audit(
                    request_id=request_id,
                    service_name=service_name,
                    action=action,
                    started=started,
                    streaming=True,
                    error=exc,
                )
                raise
            handle = await self._sessions.open(
                service_name=service_name,
                action=action,
                producer=self._breakers.guard_stream(
                    record.name,
                    self._dispatcher.stream(
                        record=record,
                        action=action,
                        payload=dict(payload or {}),
                        request_id=request_id,
                    ),
                ),
            )
            self._audit(
                request_id=request_id,
                service_name=service_name,
                action=action,
                started=started,
                streaming=True,
            )
        return handle

    def get_session(self, *, session_id: str) -> SessionHandle:
        return self._sessions.get(session_id)

    def events(self, *, session_id: str) -> AsyncIterator[StreamEvent]:
        return self._sessions.events(session_id)

    @public_api_logged(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
        id_fields=("session_id",),
    )
    async def cancel(self, *, session_id: str) -> bool:
        return await self._sessions.cancel(session_id)

    def health(self) -> GatewayHealthStatus:
        registry_ready = self._registry.is_healthy()
        records = self._registry.repository.list() if registry_ready else ()
        return GatewayHealthStatus(
            ready=registry_ready,
            registry_ready=registry_ready,
            service_count=len(records),
            enabled_service_count=sum(1 for record in records if record.enabled),
            active_sessions=self._sessions.active_count(),
            open_circuits=list(self._breakers.open_services()),
        )

    async def aclose(self) -> None:
        await self._sessions.close_all()

    def _admit(self, service_name: str, action: str) -> ServiceRecord:
        record = self._registry.repository.get(service_name)
        self._policy.require(record=record, action=action)
        self._rate_limiter.acquire(service_name=record.name, limit=record.rate_limit)
        self._breakers.admit(record.name)
        return record

    async def _call(
        self,
        record: ServiceRecord,
        action: str,
        payload: dict[str, Any],
        request_id: str,
    ) -> dict[str, Any]:
        try:
            output = await self._dispatcher.call(
                record=record,
                action=action,
                payload=payload,
                request_id=request_id,
            )
        except UpstreamError as exc:
            self._breakers.settle(record.name, exc)
            raise
        except BaseException:
            self._breakers.release(record.name)
            raise
        self._breakers.record_success(record.name)
        return output

    def _audit(
        self,
        *,
        request_id: str,
        service_name: str,
        action: str,
        started: float,
        streaming: bool = False,
        error: Exception | None = None,
    ) -> None:
        if self._audits is None:
            return
        row = InvocationAuditRow(
            request_id=request_id,
            service_name=service_name,
            action=action,
            streaming=streaming,
            success=error is None,
            error_kind="" if error is None else exception_to_error(error).to_wire()["kind"],
            duration_ms=_elapsed_ms(started),
            created_at=self._clock(),
        )
        try:
            self._audits.append(row=row)
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning("invocation audit write failed: %s", exc)


def _call_fields(request_id: str, service_name: str, action: str) -> dict[str, str]:
    return {
        fields.REQUEST_ID: request_id,
        fields.SERVICE_NAME: service_name,
        fields.ACTION: action,
    }


def _elapsed_ms(started: float) -> float:
    return round((perf_counter() - started) * 1000.0, 3)
