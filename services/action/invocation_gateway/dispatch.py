"""HTTP delivery of gateway calls to registered service endpoints.

Every call is a ``POST {endpoint}/{action}`` carrying the ``mcp.v1`` envelope.
Streaming calls set ``"stream": true`` and read newline-delimited JSON events
``{"type", "data"}`` back from the endpoint.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from typing import Any

import httpx
from pydantic import ValidationError

from packages.relaygate_shared.errors import UpstreamError
from packages.relaygate_shared.http import (
    AsyncHttpClient,
    HttpClientError,
    HttpJsonDecodeError,
    HttpStatusError,
)
from services.action.invocation_gateway.domain import WIRE_VERSION, StreamEvent
from services.state.service_registry.domain import ServiceRecord

HEADER_AUTHORIZATION = "Authorization"
HEADER_SERVICE_NAME = "X-Service-Name"
HEADER_REQUEST_ID = "X-Request-ID"


class HttpUpstreamDispatcher:
    """``UpstreamDispatcher`` over the shared async HTTP client."""

    def __init__(
        self,
        *,
        caller_id: str = "relaygate",
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._caller_id = caller_id
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    async def call(
        self,
        *,
        record: ServiceRecord,
        action: str,
        payload: dict[str, Any],
        request_id: str,
    ) -> dict[str, Any]:
        async with self._client() as client:
            try:
                body = await client.post_json(
                    _action_url(record, action),
                    json=self._envelope(record, action, payload, request_id),
                    headers=self._headers(record, request_id),
                )
            except HttpClientError as exc:
                raise _upstream_error(record, exc) from exc
        if not isinstance(body, dict):
            raise UpstreamError(
                message=f"upstream '{record.name}' returned a non-object response",
                service_name=record.name,
                retryable=False,
            )
        return body

    async def stream(
        self,
        *,
        record: ServiceRecord,
        action: str,
        payload: dict[str, Any],
        request_id: str,
    ) -> AsyncIterator[StreamEvent]:
        envelope = self._envelope(record, action, payload, request_id)
        envelope["stream"] = True
        async with self._client() as client:
            try:
                async for line in client.stream_lines(
                    "POST",
                    _action_url(record, action),
                    json=envelope,
                    headers=self._headers(record, request_id),
                ):
                    yield _parse_event(record, line)
            except HttpClientError as exc:
                raise _upstream_error(record, exc) from exc

    def _client(self) -> AsyncHttpClient:
        return AsyncHttpClient(
            timeout_seconds=self._timeout_seconds,
            transport=self._transport,
        )

    def _envelope(
        self,
        record: ServiceRecord,
        action: str,
        payload: dict[str, Any],
        request_id: str,
    ) -> dict[str, Any]:
        return {
            "version": WIRE_VERSION,
            "service": record.name,
            "action": action,
            "requestId": request_id,
            "payload": payload,
        }

    def _headers(self, record: ServiceRecord, request_id: str) -> dict[str, str]:
        headers = {
            HEADER_SERVICE_NAME: self._caller_id,
            HEADER_REQUEST_ID: request_id,
        }
        if record.api_key:
            headers[HEADER_AUTHORIZATION] = record.api_key
        return headers


def _action_url(record: ServiceRecord, action: str) -> str:
    return f"{record.endpoint.rstrip('/')}/{action}"


def _parse_event(record: ServiceRecord, line: str) -> StreamEvent:
    try:
        raw = json.loads(line)
        if not isinstance(raw, dict):
            raise ValueError("event line is not a JSON object")
        return StreamEvent(type=raw.get("type"), data=raw.get("data"))
    except (ValueError, ValidationError) as exc:
        raise UpstreamError(
            message=f"protocol violation: malformed stream event from '{record.name}'",
            service_name=record.name,
            retryable=False,
        ) from exc


def _upstream_error(record: ServiceRecord, exc: HttpClientError) -> UpstreamError:
    if isinstance(exc, HttpStatusError):
        return UpstreamError(
            message=f"upstream '{record.name}' returned HTTP {exc.status_code}",
            service_name=record.name,
            status_code=exc.status_code,
            retryable=exc.retryable,
        )
    if isinstance(exc, HttpJsonDecodeError):
        return UpstreamError(
            message=f"upstream '{record.name}' returned a non-JSON response",
            service_name=record.name,
            status_code=exc.status_code,
            retryable=False,
        )
    return UpstreamError(
        message=f"upstream '{record.name}' is unreachable: {exc}",
        service_name=record.name,
        retryable=exc.retryable,
    )
