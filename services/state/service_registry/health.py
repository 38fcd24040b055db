"""Out-of-band endpoint health checks that feed ``health_status``."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import httpx
from sqlalchemy.exc import SQLAlchemyError

from packages.relaygate_shared.errors import RelaygateError
from packages.relaygate_shared.http import (
    AsyncHttpClient,
    HttpClientError,
    HttpRequestError,
)
from packages.relaygate_shared.logging import fields, get_logger, log_context
from services.state.service_registry.config import HealthCheckSettings
from services.state.service_registry.domain import (
    HealthStatus,
    ServiceRecord,
    build_service_patch,
    utc_now,
)
from services.state.service_registry.interfaces import ServiceRegistryRepository

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class HealthCheckResult:
    """Observed health for one service."""

    service_name: str
    status: HealthStatus
    checked_at: datetime
    consecutive_failures: int
    detail: str = ""


class HealthChecker:
    """Check service endpoints and persist the observed health."""

    def __init__(
        self,
        *,
        repository: ServiceRegistryRepository,
        settings: HealthCheckSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._repository = repository
        self._settings = settings or HealthCheckSettings()
        self._transport = transport

    async def check(self, name: str) -> HealthCheckResult:
        """Check one service and write its health fields back to the registry."""
        record = self._repository.get(name)
        status, detail = await self._request_health(record)
        return self._persist(record, status=status, detail=detail)

    async def check_all(self) -> tuple[HealthCheckResult, ...]:
        """Check every enabled service; one failure never aborts the batch."""
        results: list[HealthCheckResult] = []
        for record in self._repository.list():
            if not record.enabled:
                continue
            try:
                results.append(await self.check(record.name))
            except (
                RelaygateError,
                SQLAlchemyError,
                HttpClientError,
                ValueError,
            ) as exc:
                with log_context({fields.SERVICE_NAME: record.name}):
                    _LOGGER.warning("health check could not be recorded: %s", exc)
        return tuple(results)

    async def _request_health(self, record: ServiceRecord) -> tuple[HealthStatus, str]:
        if not record.endpoint:
            return HealthStatus.DOWN, "no endpoint configured"
        url = record.endpoint.rstrip("/") + self._settings.path
        async with AsyncHttpClient(
            timeout_seconds=self._settings.timeout_seconds,
            transport=self._transport,
        ) as client:
            try:
                response = await client.get(url, raise_for_status=False)
            except HttpRequestError as exc:
                return HealthStatus.DOWN, str(exc)
        if response.is_success:
            return HealthStatus.HEALTHY, ""
        return HealthStatus.DEGRADED, f"HTTP {response.status_code}"

    def _persist(
        self,
        record: ServiceRecord,
        *,
        status: HealthStatus,
        detail: str,
    ) -> HealthCheckResult:
        checked_at = utc_now()
        failures = (
            record.consecutive_failures + 1
            if status is HealthStatus.DOWN
            else 0
        )
        self._repository.update(
            record.name,
            build_service_patch(
                {
                    "health_status": status,
                    "last_health_check": checked_at,
                    "consecutive_failures": failures,
                }
            ),
        )
        with log_context(
            {fields.SERVICE_NAME: record.name, "health_status": status.value}
        ):
            _LOGGER.info("health check recorded")
        return HealthCheckResult(
            service_name=record.name,
            status=status,
            checked_at=checked_at,
            consecutive_failures=failures,
            detail=detail,
        )
