"""Core startup orchestration: schema migrations, then registry migrations.

Both steps complete before any HTTP app exists, so no invocation can observe
a partially migrated registry.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path

from packages.relaygate_core.migrations import (
    MigrationRunReport,
    RegistryMigration,
    RegistryMigrationEngine,
    SchemaMigrationResult,
    run_schema_migrations,
)
from packages.relaygate_shared.config import RelaygateSettings
from packages.relaygate_shared.logging import get_logger
from services.state.service_registry.credentials import load_overrides
from services.state.service_registry.seeds import REGISTRY_MIGRATIONS
from services.state.service_registry.service import ServiceRegistry

_LOGGER = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class CoreStartupResult:
    """Summary of one full core startup orchestration pass."""

    schema_result: SchemaMigrationResult | None
    migration_report: MigrationRunReport | None


def run_core_startup(
    *,
    settings: RelaygateSettings,
    registry: ServiceRegistry,
    migrations: Iterable[RegistryMigration] = REGISTRY_MIGRATIONS,
    environ: Mapping[str, str] | None = None,
    repo_root: Path | None = None,
    schema_runner: Callable[..., SchemaMigrationResult] = run_schema_migrations,
) -> CoreStartupResult:
    """Run startup in strict order; any failure aborts with ``MigrationFailureError``."""
    boot_settings = settings.components.core_boot

    schema_result: SchemaMigrationResult | None = None
    if registry.runtime is not None and boot_settings.run_schema_migrations_on_startup:
        schema_result = schema_runner(settings=settings, repo_root=repo_root)
        _LOGGER.info(
            "schema migrations applied: %d config(s)",
            len(schema_result.executed_alembic_configs),
        )

    migration_report: MigrationRunReport | None = None
    if boot_settings.run_migrations_on_startup and registry.settings.seed_on_startup:
        overrides = load_overrides(
            env_file=registry.settings.env_file or None,
            environ=environ,
        )
        migration_report = RegistryMigrationEngine(
            migrations=migrations,
            repository=registry.repository,
            journal=registry.journal,
            overrides=overrides,
        ).run()
        _LOGGER.info(
            "registry migrations applied: %d step(s)", len(migration_report.steps)
        )

    return CoreStartupResult(
        schema_result=schema_result,
        migration_report=migration_report,
    )
