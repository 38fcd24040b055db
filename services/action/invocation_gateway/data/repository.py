"""Invocation audit repository implementations."""

from __future__ import annotations

from threading import Lock

from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker

from resources.substrates.sql import transactional_session
from services.action.invocation_gateway.data.schema import invocation_audits
from services.action.invocation_gateway.domain import InvocationAuditRow
from services.action.invocation_gateway.interfaces import InvocationAuditRepository


class InMemoryInvocationAuditRepository(InvocationAuditRepository):
    """Append-only in-process audit log."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._rows: list[InvocationAuditRow] = []

    def append(self, *, row: InvocationAuditRow) -> None:
        with self._lock:
            self._rows.append(row)

    def list(self, *, limit: int = 100) -> tuple[InvocationAuditRow, ...]:
        with self._lock:
            return tuple(reversed(self._rows[-limit:])) if limit > 0 else ()

    def count(self) -> int:
        with self._lock:
            return len(self._rows)


class SqlInvocationAuditRepository(InvocationAuditRepository):
    """SQL audit log over the ``invocation_audits`` table."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def append(self, *, row: InvocationAuditRow) -> None:
        with transactional_session(self._session_factory) as session:
            session.execute(invocation_audits.insert().values(**row.model_dump()))

    def list(self, *, limit: int = 100) -> tuple[InvocationAuditRow, ...]:
        if limit <= 0:
            return ()
        columns = [
            column for column in invocation_audits.c if column.name != "id"
        ]
        with transactional_session(self._session_factory) as session:
            rows = (
                session.execute(
                    select(*columns)
                    .order_by(invocation_audits.c.id.desc())
                    .limit(limit)
                )
                .mappings()
                .all()
            )
        return tuple(InvocationAuditRow.model_validate(dict(row)) for row in rows)

    def count(self) -> int:
        with transactional_session(self._session_factory) as session:
            return int(
                session.scalar(select(func.count()).select_from(invocation_audits))
                or 0
            )
