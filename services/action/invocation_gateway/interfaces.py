"""Transport-neutral protocol interfaces for the Invocation Gateway."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any, Protocol

from services.action.invocation_gateway.domain import InvocationAuditRow, StreamEvent
from services.state.service_registry.domain import ServiceRecord


class UpstreamDispatcher(Protocol):
    """Protocol for delivering one action call to a service endpoint."""

    async def call(
        self,
        *,
        record: ServiceRecord,
        action: str,
        payload: dict[str, Any],
        request_id: str,
    ) -> dict[str, Any]:
        """Return the endpoint's response object verbatim."""

    def stream(
        self,
        *,
        record: ServiceRecord,
        action: str,
        payload: dict[str, Any],
        request_id: str,
    ) -> AsyncIterator[StreamEvent]:
        """Yield upstream stream events in arrival order."""


class InvocationAuditRepository(Protocol):
    """Protocol for append-only invocation audit persistence."""

    def append(self, *, row: InvocationAuditRow) -> None:
        """Persist one audit row."""

    def list(self, *, limit: int = 100) -> tuple[InvocationAuditRow, ...]:
        """Return the most recent audit rows, newest first."""

    def count(self) -> int:
        """Return the number of stored audit rows."""
