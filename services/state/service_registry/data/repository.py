"""Service Registry repository implementations."""

from __future__ import annotations

import json
from threading import Lock
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from packages.relaygate_shared.errors import (
    ServiceAlreadyExistsError,
    ServiceNotFoundError,
)
from resources.substrates.sql import transactional_session
from services.state.service_registry.data.schema import (
    registry_migrations,
    service_registry,
)
from services.state.service_registry.domain import (
    MigrationRecord,
    ServiceRecord,
    ServiceRecordPatch,
    apply_patch,
    build_service_record,
    utc_now,
)
from services.state.service_registry.interfaces import (
    MigrationJournal,
    ServiceRegistryRepository,
)

_SET_COLUMNS = ("actions", "allowed_actions", "capabilities")


def _stamp_new(record: ServiceRecord) -> ServiceRecord:
    now = utc_now()
    return record.model_copy(update={"created_at": now, "updated_at": now})


def _not_found(name: str) -> ServiceNotFoundError:
    return ServiceNotFoundError(
        message=f"service '{name}' is not registered", service_name=name
    )


class InMemoryServiceRegistryRepository(ServiceRegistryRepository):
    """Lock-guarded in-process registry storage."""

    def __init__(self, records: tuple[ServiceRecord, ...] = ()) -> None:
        self._lock = Lock()
        self._records: dict[str, ServiceRecord] = {}
        for record in records:
            self.insert(record)

    def get(self, name: str) -> ServiceRecord:
        record = self.find(name)
        if record is None:
            raise _not_found(name)
        return record

    def find(self, name: str) -> ServiceRecord | None:
        with self._lock:
            return self._records.get(name)

    def list(self) -> tuple[ServiceRecord, ...]:
        with self._lock:
            return tuple(self._records[name] for name in sorted(self._records))

    def insert(self, record: ServiceRecord) -> ServiceRecord:
        stamped = _stamp_new(record)
        with self._lock:
            if record.name in self._records:
                raise ServiceAlreadyExistsError(
                    message=f"service '{record.name}' already exists",
                    service_name=record.name,
                )
            self._records[record.name] = stamped
        return stamped

    def update(self, name: str, patch: ServiceRecordPatch) -> ServiceRecord:
        with self._lock:
            current = self._records.get(name)
            if current is None:
                raise _not_found(name)
            updated = apply_patch(current, patch)
            self._records[name] = updated
        return updated

    def count(self) -> int:
        with self._lock:
            return len(self._records)


class SqlServiceRegistryRepository(ServiceRegistryRepository):
    """SQL repository over the ``service_registry`` table."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def get(self, name: str) -> ServiceRecord:
        record = self.find(name)
        if record is None:
            raise _not_found(name)
        return record

    def find(self, name: str) -> ServiceRecord | None:
        with transactional_session(self._session_factory) as session:
            row = (
                session.execute(
                    select(service_registry).where(service_registry.c.name == name)
                )
                .mappings()
                .first()
            )
        return None if row is None else _row_to_record(row)

    def list(self) -> tuple[ServiceRecord, ...]:
        with transactional_session(self._session_factory) as session:
            rows = (
                session.execute(
                    select(service_registry).order_by(service_registry.c.name)
                )
                .mappings()
                .all()
            )
        return tuple(_row_to_record(row) for row in rows)

    def insert(self, record: ServiceRecord) -> ServiceRecord:
        stamped = _stamp_new(record)
        try:
            with transactional_session(self._session_factory) as session:
                session.execute(
                    service_registry.insert().values(**_record_to_row(stamped))
                )
        except IntegrityError as exc:
            raise ServiceAlreadyExistsError(
                message=f"service '{record.name}' already exists",
                service_name=record.name,
            ) from exc
        return stamped

    def update(self, name: str, patch: ServiceRecordPatch) -> ServiceRecord:
        with transactional_session(self._session_factory) as session:
            row = (
                session.execute(
                    select(service_registry)
                    .where(service_registry.c.name == name)
                    .with_for_update()
                )
                .mappings()
                .first()
            )
            if row is None:
                raise _not_found(name)
            updated = apply_patch(_row_to_record(row), patch)
            values = _record_to_row(updated)
            for immutable in ("id", "name", "created_at"):
                values.pop(immutable)
            session.execute(
                service_registry.update()
                .where(service_registry.c.name == name)
                .values(**values)
            )
        return updated

    def count(self) -> int:
        with transactional_session(self._session_factory) as session:
            return int(
                session.scalar(select(func.count()).select_from(service_registry))
                or 0
            )


class InMemoryMigrationJournal(MigrationJournal):
    """In-process migration history keyed by step name."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._entries: dict[str, MigrationRecord] = {}

    def record(self, entry: MigrationRecord) -> None:
        with self._lock:
            self._entries[entry.name] = entry

    def list(self) -> tuple[MigrationRecord, ...]:
        with self._lock:
            return tuple(
                sorted(self._entries.values(), key=lambda item: item.ordinal)
            )


class SqlMigrationJournal(MigrationJournal):
    """SQL migration history over the ``registry_migrations`` table.

    One row per step name holds its most recent outcome.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def record(self, entry: MigrationRecord) -> None:
        values = {
            "ordinal": entry.ordinal,
            "outcome": entry.outcome.value,
            "applied_at": entry.applied_at,
        }
        with transactional_session(self._session_factory) as session:
            existing = session.scalar(
                select(registry_migrations.c.name).where(
                    registry_migrations.c.name == entry.name
                )
            )
            if existing is None:
                session.execute(
                    registry_migrations.insert().values(name=entry.name, **values)
                )
            else:
                session.execute(
                    registry_migrations.update()
                    .where(registry_migrations.c.name == entry.name)
                    .values(**values)
                )

    def list(self) -> tuple[MigrationRecord, ...]:
        with transactional_session(self._session_factory) as session:
            rows = (
                session.execute(
                    select(registry_migrations).order_by(
                        registry_migrations.c.ordinal
                    )
                )
                .mappings()
                .all()
            )
        return tuple(MigrationRecord.model_validate(dict(row)) for row in rows)


def _record_to_row(record: ServiceRecord) -> dict[str, Any]:
    values = record.model_dump()
    for column in _SET_COLUMNS:
        values[column] = json.dumps(sorted(values[column]))
    values["trust_level"] = record.trust_level.value
    values["health_status"] = record.health_status.value
    return values


def _row_to_record(row: Any) -> ServiceRecord:
    return build_service_record(dict(row))
