"""Service Registry data layer exports."""

from services.state.service_registry.data.repository import (
    InMemoryMigrationJournal,
    InMemoryServiceRegistryRepository,
    SqlMigrationJournal,
    SqlServiceRegistryRepository,
)
from services.state.service_registry.data.runtime import ServiceRegistrySqlRuntime
from services.state.service_registry.data.schema import (
    metadata,
    registry_migrations,
    service_registry,
)

__all__ = [
    "InMemoryMigrationJournal",
    "InMemoryServiceRegistryRepository",
    "ServiceRegistrySqlRuntime",
    "SqlMigrationJournal",
    "SqlServiceRegistryRepository",
    "metadata",
    "registry_migrations",
    "service_registry",
]
