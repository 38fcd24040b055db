"""Streaming session manager.

Each session owns one ``asyncio.Queue`` fed by a worker task that drains an
upstream producer. Event ordering is enforced here, not trusted from the
upstream:

- ``early-response`` is optional, at most once, and only first
- ``progress`` and ``token`` events follow, in any interleaving
- exactly one terminal event (``completion`` or ``error``) ends the session

Anything else ends the session with a terminal ``error``. Terminated sessions
that nobody reads are evicted once they are older than the retention window.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from packages.relaygate_shared.errors import (
    ErrorDetail,
    SessionNotFoundError,
    StreamAbortedError,
    UpstreamError,
    exception_to_error,
)
from packages.relaygate_shared.ids import generate_ulid_str
from packages.relaygate_shared.logging import fields, get_logger, log_context
from services.action.invocation_gateway.domain import (
    SessionHandle,
    StreamEvent,
    StreamEventType,
)

_LOGGER = get_logger(__name__)

REASON_CANCELLED = "cancelled"
REASON_PROTOCOL_VIOLATION = "protocol violation"
REASON_UPSTREAM_DISCONNECTED = "upstream disconnected"


class _Stage(str, Enum):
    AWAITING_FIRST = "awaiting_first"
    STREAMING = "streaming"
    TERMINATED = "terminated"


@dataclass
class _Session:
    handle: SessionHandle
    producer: AsyncIterator[StreamEvent]
    queue: asyncio.Queue[StreamEvent] = field(default_factory=asyncio.Queue)
    task: asyncio.Task[None] | None = None
    stage: _Stage = _Stage.AWAITING_FIRST
    sequence: int = 0
    cancelled: bool = False
    terminated_at: float | None = None


class StreamingSessionManager:
    """Own live streaming sessions and deliver their events in order."""

    def __init__(
        self,
        *,
        id_factory: Callable[[], str] = generate_ulid_str,
        retention_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._id_factory = id_factory
        self._retention_seconds = retention_seconds
        self._clock = clock
        self._sessions: dict[str, _Session] = {}

    async def open(
        self,
        *,
        service_name: str,
        action: str,
        producer: AsyncIterator[StreamEvent],
    ) -> SessionHandle:
        """Register a session and start draining ``producer`` in the background."""
        self.evict_expired()
        handle = SessionHandle(
            session_id=self._id_factory(),
            service_name=service_name,
            action=action,
        )
        session = _Session(handle=handle, producer=producer)
        self._sessions[handle.session_id] = session
        session.task = asyncio.create_task(
            self._pump(session), name=f"relaygate-stream-{handle.session_id}"
        )
        with log_context(_session_fields(handle)):
            _LOGGER.info("streaming session opened")
        return handle

    def get(self, session_id: str) -> SessionHandle:
        """Return the handle of a known session or raise ``SessionNotFoundError``."""
        return self._require(session_id).handle

    async def events(self, session_id: str) -> AsyncIterator[StreamEvent]:
        """Yield session events in order, ending after the terminal event.

        The session is forgotten once the iterator finishes. A consumer that
        stops early, such as a disconnected HTTP client, cancels a session that
        is still live.
        """
        session = self._require(session_id)
        try:
            while True:
                event = await session.queue.get()
                if event.type.is_terminal:
                    self._sessions.pop(session_id, None)
                    yield event
                    return
                yield event
        finally:
            if session.stage is not _Stage.TERMINATED:
                await self.cancel(session_id)
            self._sessions.pop(session_id, None)

    async def cancel(self, session_id: str) -> bool:
        """Abort a live session; ``False`` when unknown or already terminal.

        Buffered non-terminal events are discarded, so once this returns
        ``True`` the next event a consumer sees is the terminal ``error``.
        """
        session = self._sessions.get(session_id)
        if session is None or session.stage is _Stage.TERMINATED:
            return False

        session.cancelled = True
        _discard_buffered(session)
        aborted = StreamAbortedError(
            message=f"streaming session '{session_id}' was cancelled",
            session_id=session_id,
            reason=REASON_CANCELLED,
        )
        self._terminate(session, aborted.to_error_detail(), reason=REASON_CANCELLED)

        task = session.task
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await _close_producer(session)
        return True

    async def close_all(self) -> None:
        """Cancel every live session and drop all session state."""
        for session_id in list(self._sessions):
            await self.cancel(session_id)
        self._sessions.clear()

    def evict_expired(self) -> int:
        """Forget terminated sessions older than the retention window."""
        cutoff = self._clock() - self._retention_seconds
        expired = [
            session_id
            for session_id, session in self._sessions.items()
            if session.terminated_at is not None and session.terminated_at <= cutoff
        ]
        for session_id in expired:
            del self._sessions[session_id]
        if expired:
            _LOGGER.debug("evicted %d unread streaming sessions", len(expired))
        return len(expired)

    def active_count(self) -> int:
        """Return the number of sessions that have not yet terminated."""
        return sum(
            1 for session in self._sessions.values()
            if session.stage is not _Stage.TERMINATED
        )

    async def _pump(self, session: _Session) -> None:
        try:
            async for event in session.producer:
                if session.cancelled:
                    return
                if not _in_order(session.stage, event.type):
                    violation = UpstreamError(
                        message=(
                            f"{REASON_PROTOCOL_VIOLATION}: unexpected "
                            f"'{event.type.value}' event"
                        ),
                        service_name=session.handle.service_name,
                        retryable=False,
                    )
                    self._terminate(
                        session,
                        violation.to_error_detail(),
                        reason=REASON_PROTOCOL_VIOLATION,
                    )
                    return
                self._emit(session, event.type, event.data)
                if event.type.is_terminal:
                    return
            if not session.cancelled:
                disconnected = StreamAbortedError(
                    message="upstream stream ended without a terminal event",
                    session_id=session.handle.session_id,
                    reason=REASON_UPSTREAM_DISCONNECTED,
                )
                self._terminate(
                    session,
                    disconnected.to_error_detail(),
                    reason=REASON_UPSTREAM_DISCONNECTED,
                )
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            self._terminate(
                session,
                exception_to_error(exc),
                reason=str(exc) or type(exc).__name__,
            )
        finally:
            await _close_producer(session)

    def _emit(self, session: _Session, event_type: StreamEventType, data: Any) -> None:
        if session.stage is _Stage.TERMINATED:
            return
        session.sequence += 1
        session.queue.put_nowait(
            StreamEvent(type=event_type, data=data, sequence=session.sequence)
        )
        if event_type.is_terminal:
            session.stage = _Stage.TERMINATED
            session.terminated_at = self._clock()
        else:
            session.stage = _Stage.STREAMING

    def _terminate(self, session: _Session, detail: ErrorDetail, *, reason: str) -> None:
        if session.stage is _Stage.TERMINATED:
            return
        self._emit(session, StreamEventType.ERROR, {**detail.to_wire(), "reason": reason})
        with log_context(_session_fields(session.handle)):
            _LOGGER.warning("streaming session ended with error: %s", reason)

    def _require(self, session_id: str) -> _Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(
                message=f"streaming session '{session_id}' does not exist",
                session_id=session_id,
            )
        return session


def _in_order(stage: _Stage, event_type: StreamEventType) -> bool:
    if stage is _Stage.TERMINATED:
        return False
    if event_type is StreamEventType.EARLY_RESPONSE:
        return stage is _Stage.AWAITING_FIRST
    return True


def _discard_buffered(session: _Session) -> None:
    while True:
        try:
            session.queue.get_nowait()
        except asyncio.QueueEmpty:
            return


async def _close_producer(session: _Session) -> None:
    aclose = getattr(session.producer, "aclose", None)
    if aclose is None:
        return
    try:
        await aclose()
    except Exception as exc:  # noqa: BLE001
        with log_context(_session_fields(session.handle)):
            _LOGGER.warning("closing upstream producer failed: %s", exc)


def _session_fields(handle: SessionHandle) -> dict[str, str]:
    return {
        fields.SESSION_ID: handle.session_id,
        fields.SERVICE_NAME: handle.service_name,
        fields.ACTION: handle.action,
    }
