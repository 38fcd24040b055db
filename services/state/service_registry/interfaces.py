"""Transport-neutral protocol interfaces for the Service Registry."""

from __future__ import annotations

from typing import Protocol

from services.state.service_registry.domain import (
    MigrationRecord,
    ServiceRecord,
    ServiceRecordPatch,
)


class ServiceRegistryRepository(Protocol):
    """Protocol for durable service record storage keyed by name."""

    def get(self, name: str) -> ServiceRecord:
        """Return one record or raise ``ServiceNotFoundError``."""

    def find(self, name: str) -> ServiceRecord | None:
        """Return one record or ``None`` when absent."""

    def list(self) -> tuple[ServiceRecord, ...]:
        """Return every record ordered by name."""

    def insert(self, record: ServiceRecord) -> ServiceRecord:
        """Persist a new record or raise ``ServiceAlreadyExistsError``."""

    def update(self, name: str, patch: ServiceRecordPatch) -> ServiceRecord:
        """Apply a partial update or raise ``ServiceNotFoundError``."""

    def count(self) -> int:
        """Return total registered service count."""


class MigrationJournal(Protocol):
    """Protocol for append-only registry migration history."""

    def record(self, entry: MigrationRecord) -> None:
        """Persist one applied migration entry."""

    def list(self) -> tuple[MigrationRecord, ...]:
        """Return journal entries in application order."""
