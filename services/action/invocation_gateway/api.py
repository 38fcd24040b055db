"""FastAPI adapter for the Invocation Gateway and registry reads.

Errors leave the process as ``{kind, message}`` with a status chosen by the
error kind; ``RateLimited`` responses also carry ``Retry-After``. Malformed
request bodies are reported as ``SchemaViolation``.
"""

from __future__ import annotations

import json
import math
from collections.abc import AsyncIterator, Mapping
from http import HTTPStatus
from typing import Any

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from packages.relaygate_shared.errors import (
    RateLimitedError,
    RelaygateError,
    SchemaViolationError,
    codes,
)
from services.action.invocation_gateway.domain import InvocationRequest
from services.action.invocation_gateway.service import InvocationGateway
from services.state.service_registry import ServiceRegistry

NDJSON_MEDIA_TYPE = "application/x-ndjson"

_STATUS_BY_KIND: dict[str, HTTPStatus] = {
    codes.KIND_NOT_FOUND: HTTPStatus.NOT_FOUND,
    codes.KIND_DENIED: HTTPStatus.FORBIDDEN,
    codes.KIND_RATE_LIMITED: HTTPStatus.TOO_MANY_REQUESTS,
    codes.KIND_UPSTREAM_ERROR: HTTPStatus.BAD_GATEWAY,
    codes.KIND_ALREADY_EXISTS: HTTPStatus.CONFLICT,
    codes.KIND_STREAM_ABORTED: HTTPStatus.CONFLICT,
    codes.KIND_SCHEMA_VIOLATION: HTTPStatus.UNPROCESSABLE_ENTITY,
}


class InvokeRequestBody(BaseModel):
    """Body of ``POST /v1/invoke``."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    service_name: str = Field(alias="serviceName", min_length=1)
    action: str = Field(min_length=1)
    payload: dict[str, Any] = Field(default_factory=dict)
    stream: bool = False

    def to_request(self) -> InvocationRequest:
        return InvocationRequest.model_validate(self.model_dump())


def register_routes(
    *,
    router: APIRouter,
    gateway: InvocationGateway,
    registry: ServiceRegistry,
) -> None:
    """Register gateway and registry read routes on one router."""

    @router.post("/v1/invoke", response_model=None)
    async def invoke(body: InvokeRequestBody) -> JSONResponse:
        request = body.to_request()
        if request.stream:
            handle = await gateway.open_stream(
                service_name=request.service_name,
                action=request.action,
                payload=request.payload,
            )
            return JSONResponse(
                status_code=HTTPStatus.ACCEPTED,
                content={"sessionId": handle.session_id},
            )
        result = await gateway.invoke(
            service_name=request.service_name,
            action=request.action,
            payload=request.payload,
        )
        return JSONResponse(content=result.output)

    @router.get("/v1/sessions/{session_id}/events", response_model=None)
    async def session_events(session_id: str) -> StreamingResponse:
        gateway.get_session(session_id=session_id)
        return StreamingResponse(
            _ndjson(gateway.events(session_id=session_id)),
            media_type=NDJSON_MEDIA_TYPE,
        )

    @router.post("/v1/sessions/{session_id}/cancel")
    async def cancel_session(session_id: str) -> dict[str, bool]:
        return {"cancelled": await gateway.cancel(session_id=session_id)}

    @router.get("/v1/services")
    def list_services() -> list[dict[str, Any]]:
        return [record.to_public_dict() for record in registry.repository.list()]

    @router.get("/v1/services/{name}")
    def get_service(name: str) -> dict[str, Any]:
        return registry.repository.get(name).to_public_dict()

    @router.get("/health")
    def health() -> JSONResponse:
        result = gateway.health()
        return JSONResponse(
            status_code=(
                HTTPStatus.OK if result.ready else HTTPStatus.SERVICE_UNAVAILABLE
            ),
            content=result.model_dump(),
        )


def register_error_handlers(app: FastAPI) -> None:
    """Map typed Relaygate errors to ``{kind, message}`` responses."""
    app.add_exception_handler(RelaygateError, _relaygate_error_response)
    app.add_exception_handler(RequestValidationError, _request_validation_response)


async def _relaygate_error_response(_: Request, exc: RelaygateError) -> JSONResponse:
    headers: dict[str, str] = {}
    if isinstance(exc, RateLimitedError):
        headers["Retry-After"] = str(max(1, math.ceil(exc.retry_after_seconds)))
    return JSONResponse(
        status_code=_STATUS_BY_KIND.get(
            exc.kind, HTTPStatus.INTERNAL_SERVER_ERROR
        ),
        content=exc.to_error_detail().to_wire(),
        headers=headers,
    )


async def _request_validation_response(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    problems = [_describe_problem(error) for error in exc.errors()]
    return await _relaygate_error_response(
        request,
        SchemaViolationError(
            message="invalid request: " + "; ".join(problems[:5]),
        ),
    )


async def _ndjson(events: AsyncIterator[Any]) -> AsyncIterator[str]:
    try:
        async for event in events:
            yield json.dumps(event.to_wire(), separators=(",", ":")) + "\n"
    finally:
        # A client disconnect lands here; closing the source cancels the session.
        aclose = getattr(events, "aclose", None)
        if aclose is not None:
            await aclose()


def _describe_problem(error: Mapping[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()))
    return f"{location}: {error.get('msg', 'invalid value')}"
