"""Service Registry package exports."""

from services.state.service_registry.component import SERVICE_COMPONENT_ID
from services.state.service_registry.config import (
    HealthCheckSettings,
    ServiceRegistrySettings,
    resolve_service_registry_settings,
)
from services.state.service_registry.domain import (
    HealthStatus,
    MigrationOutcome,
    MigrationRecord,
    ServiceRecord,
    ServiceRecordPatch,
    TrustLevel,
    apply_patch,
    build_service_patch,
    build_service_record,
)
from services.state.service_registry.interfaces import (
    MigrationJournal,
    ServiceRegistryRepository,
)
from services.state.service_registry.service import (
    ServiceRegistry,
    build_service_registry,
)

__all__ = [
    "HealthCheckSettings",
    "HealthStatus",
    "MigrationJournal",
    "MigrationOutcome",
    "MigrationRecord",
    "SERVICE_COMPONENT_ID",
    "ServiceRecord",
    "ServiceRecordPatch",
    "ServiceRegistry",
    "ServiceRegistryRepository",
    "ServiceRegistrySettings",
    "TrustLevel",
    "apply_patch",
    "build_service_patch",
    "build_service_record",
    "build_service_registry",
    "resolve_service_registry_settings",
]
