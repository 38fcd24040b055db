"""Domain contracts for gateway invocations and streaming sessions."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

WIRE_VERSION = "mcp.v1"


class StreamEventType(str, Enum):
    """Kinds of events a streaming session can deliver."""

    EARLY_RESPONSE = "early-response"
    PROGRESS = "progress"
    TOKEN = "token"
    COMPLETION = "completion"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (StreamEventType.COMPLETION, StreamEventType.ERROR)


class StreamEvent(BaseModel):
    """One ordered event of a streaming session.

    ``sequence`` is assigned by the session manager; upstream producers leave
    it at zero.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: StreamEventType
    data: Any = None
    sequence: int = Field(default=0, ge=0)

    def to_wire(self) -> dict[str, Any]:
        """Return the ``{type, data}`` shape sent to callers."""
        return {"type": self.type.value, "data": self.data}


class InvocationRequest(BaseModel):
    """One caller request addressed to a registered service action."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    service_name: str = Field(min_length=1)
    action: str = Field(min_length=1)
    payload: dict[str, Any] = Field(default_factory=dict)
    stream: bool = False


class InvocationResult(BaseModel):
    """Verbatim endpoint response plus call bookkeeping."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    service_name: str
    action: str
    request_id: str
    output: dict[str, Any]
    duration_ms: float = Field(ge=0)


class SessionHandle(BaseModel):
    """Caller handle for one opened streaming session."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    session_id: str
    service_name: str
    action: str


class InvocationAuditRow(BaseModel):
    """Append-only audit row for one invocation attempt."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    request_id: str
    service_name: str
    action: str
    streaming: bool = False
    success: bool
    error_kind: str = ""
    duration_ms: float = Field(default=0.0, ge=0)
    created_at: datetime


class GatewayHealthStatus(BaseModel):
    """Readiness summary reported by ``GET /health``."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    ready: bool
    registry_ready: bool
    service_count: int = Field(ge=0)
    enabled_service_count: int = Field(ge=0)
    active_sessions: int = Field(ge=0)
    open_circuits: list[str] = Field(default_factory=list)
