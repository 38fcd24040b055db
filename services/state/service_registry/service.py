"""Authoritative in-process Python API for the Service Registry."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import Engine

from packages.relaygate_shared.config import RelaygateSettings
from services.state.service_registry.config import (
    ServiceRegistrySettings,
    resolve_service_registry_settings,
)
from services.state.service_registry.data.runtime import ServiceRegistrySqlRuntime
from services.state.service_registry.interfaces import (
    MigrationJournal,
    ServiceRegistryRepository,
)


@dataclass(frozen=True)
class ServiceRegistry:
    """Explicitly owned registry store handle passed to every consumer."""

    repository: ServiceRegistryRepository
    journal: MigrationJournal
    settings: ServiceRegistrySettings
    runtime: ServiceRegistrySqlRuntime | None = None

    def is_healthy(self) -> bool:
        """Return ``True`` when backing storage is reachable."""
        return True if self.runtime is None else self.runtime.is_healthy()


def build_service_registry(
    *,
    settings: RelaygateSettings,
    engine: Engine | None = None,
) -> ServiceRegistry:
    """Build the registry store selected by ``backend``."""
    from services.state.service_registry.data.repository import (
        InMemoryMigrationJournal,
        InMemoryServiceRegistryRepository,
        SqlMigrationJournal,
        SqlServiceRegistryRepository,
    )

    registry_settings = resolve_service_registry_settings(settings)
    if registry_settings.backend == "memory":
        return ServiceRegistry(
            repository=InMemoryServiceRegistryRepository(),
            journal=InMemoryMigrationJournal(),
            settings=registry_settings,
        )

    runtime = (
        ServiceRegistrySqlRuntime.from_settings(settings)
        if engine is None
        else ServiceRegistrySqlRuntime.from_engine(engine)
    )
    return ServiceRegistry(
        repository=SqlServiceRegistryRepository(runtime.session_factory),
        journal=SqlMigrationJournal(runtime.session_factory),
        settings=registry_settings,
        runtime=runtime,
    )
