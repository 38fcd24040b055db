"""Public API for Relaygate migration orchestration.

Startup wiring lives in ``packages.relaygate_core.startup``; it imports the
shipped seed steps, which themselves depend on this package.
"""

from packages.relaygate_core.migrations import (
    MigrationContext,
    MigrationRunReport,
    MigrationStepResult,
    RegistryMigration,
    RegistryMigrationEngine,
    SchemaMigrationResult,
    add_actions,
    discover_service_migration_configs,
    order_migrations,
    parse_migration_ordinal,
    run_schema_migrations,
    upsert_service,
)

__all__ = [
    "MigrationContext",
    "MigrationRunReport",
    "MigrationStepResult",
    "RegistryMigration",
    "RegistryMigrationEngine",
    "SchemaMigrationResult",
    "add_actions",
    "discover_service_migration_configs",
    "order_migrations",
    "parse_migration_ordinal",
    "run_schema_migrations",
    "upsert_service",
]
