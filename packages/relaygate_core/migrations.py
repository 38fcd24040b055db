"""Startup migration orchestration for the registry.

Two layers run at boot, in order:

1. Schema migrations: Alembic upgrades for every service that ships a
   ``migrations/alembic.ini``.
2. Registry data migrations: ordered, idempotent ``RegistryMigration`` steps
   applied against the registry repository.

Both layers are fatal on failure; startup never continues past a failed step.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from alembic import command
from alembic.config import Config

from packages.relaygate_shared.config import RelaygateSettings
from packages.relaygate_shared.errors import MigrationFailureError
from packages.relaygate_shared.logging import fields, get_logger, log_context
from resources.substrates.sql import resolve_sql_settings
from services.state.service_registry.domain import (
    MigrationOutcome,
    MigrationRecord,
    build_service_patch,
    build_service_record,
    utc_now,
)
from services.state.service_registry.interfaces import (
    MigrationJournal,
    ServiceRegistryRepository,
)

_LOGGER = get_logger(__name__)

_MIGRATION_NAME = re.compile(r"^(?P<ordinal>\d+)_(?P<description>[a-z0-9][a-z0-9_]*)$")

SCHEMA_MIGRATION_ROOTS: tuple[str, ...] = (
    "services.state.service_registry",
    "services.action.invocation_gateway",
)


@dataclass(frozen=True, slots=True)
class SchemaMigrationResult:
    """Summary of one Alembic upgrade pass."""

    executed_alembic_configs: tuple[str, ...]


def discover_service_migration_configs(
    *,
    repo_root: Path | None = None,
    module_roots: Iterable[str] = SCHEMA_MIGRATION_ROOTS,
) -> tuple[Path, ...]:
    """Return Alembic config files for known services in boot order."""
    root = (repo_root or Path(__file__).resolve().parents[2]).resolve()
    config_paths: list[Path] = []
    for module_root in module_roots:
        candidate = root / Path(*module_root.split(".")) / "migrations" / "alembic.ini"
        if candidate.exists():
            config_paths.append(candidate)
    return tuple(config_paths)


def run_schema_migrations(
    *,
    settings: RelaygateSettings,
    repo_root: Path | None = None,
    upgrade_fn: Callable[[Config, str], None] = command.upgrade,
) -> SchemaMigrationResult:
    """Run ``alembic upgrade head`` for each service against the shared DB."""
    url = resolve_sql_settings(settings).url
    executed: list[str] = []
    for config_path in discover_service_migration_configs(repo_root=repo_root):
        config = Config(str(config_path))
        config.set_main_option("sqlalchemy.url", url)
        try:
            upgrade_fn(config, "head")
        except Exception as exc:
            with log_context({fields.MIGRATION_STEP: str(config_path)}):
                _LOGGER.error("schema migration failed")
            raise MigrationFailureError(
                message=f"schema migration failed for config '{config_path}'",
                step=str(config_path),
            ) from exc
        executed.append(str(config_path))
    return SchemaMigrationResult(executed_alembic_configs=tuple(executed))


@dataclass(frozen=True)
class MigrationContext:
    """State handed to one registry migration step."""

    repository: ServiceRegistryRepository
    overrides: Mapping[str, str] = field(default_factory=dict)
    clock: Callable[[], datetime] = utc_now

    def override(self, name: str, default: str | None = None) -> str | None:
        """Return a non-blank named override, else ``default``."""
        value = self.overrides.get(name)
        if value is None or not value.strip():
            return default
        return value.strip()


MigrationStep = Callable[[MigrationContext], MigrationOutcome]


@dataclass(frozen=True)
class RegistryMigration:
    """One named, ordered, idempotent registry data migration."""

    name: str
    apply: MigrationStep

    @property
    def ordinal(self) -> int:
        return parse_migration_ordinal(self.name)


@dataclass(frozen=True, slots=True)
class MigrationStepResult:
    """Outcome of one step in a registry migration run."""

    name: str
    ordinal: int
    outcome: MigrationOutcome


@dataclass(frozen=True, slots=True)
class MigrationRunReport:
    """Per-step outcomes of one registry migration run, in order."""

    steps: tuple[MigrationStepResult, ...]

    def outcome_for(self, name: str) -> MigrationOutcome | None:
        for step in self.steps:
            if step.name == name:
                return step.outcome
        return None


def parse_migration_ordinal(name: str) -> int:
    """Parse the integer ordinal prefix of an ``<ordinal>_<description>`` name."""
    match = _MIGRATION_NAME.match(name)
    if match is None:
        raise MigrationFailureError(
            message=f"migration name '{name}' must look like '<ordinal>_<description>'",
            step=name,
        )
    return int(match.group("ordinal"))


def order_migrations(
    migrations: Iterable[RegistryMigration],
) -> tuple[RegistryMigration, ...]:
    """Sort steps by ordinal, rejecting malformed names and duplicate ordinals."""
    by_ordinal: dict[int, RegistryMigration] = {}
    for migration in migrations:
        ordinal = migration.ordinal
        existing = by_ordinal.get(ordinal)
        if existing is not None:
            raise MigrationFailureError(
                message=(
                    f"duplicate migration ordinal {ordinal}: "
                    f"'{existing.name}' and '{migration.name}'"
                ),
                step=migration.name,
            )
        by_ordinal[ordinal] = migration
    return tuple(by_ordinal[ordinal] for ordinal in sorted(by_ordinal))


class RegistryMigrationEngine:
    """Apply registry data migrations sequentially, in ordinal order."""

    def __init__(
        self,
        *,
        migrations: Iterable[RegistryMigration],
        repository: ServiceRegistryRepository,
        journal: MigrationJournal,
        overrides: Mapping[str, str] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._migrations = order_migrations(migrations)
        self._journal = journal
        self._context = MigrationContext(
            repository=repository,
            overrides=dict(overrides or {}),
            clock=clock,
        )

    @property
    def migrations(self) -> tuple[RegistryMigration, ...]:
        return self._migrations

    def run(self) -> MigrationRunReport:
        """Run every step once; the first failure aborts the run."""
        results: list[MigrationStepResult] = []
        for migration in self._migrations:
            with log_context({fields.MIGRATION_STEP: migration.name}):
                try:
                    outcome = MigrationOutcome(migration.apply(self._context))
                except Exception as exc:
                    _LOGGER.error("registry migration failed")
                    if isinstance(exc, MigrationFailureError):
                        raise
                    raise MigrationFailureError(
                        message=f"registry migration '{migration.name}' failed: {exc}",
                        step=migration.name,
                    ) from exc
                self._journal.record(
                    MigrationRecord(
                        name=migration.name,
                        ordinal=migration.ordinal,
                        outcome=outcome,
                        applied_at=self._context.clock(),
                    )
                )
                with log_context({fields.MIGRATION_OUTCOME: outcome.value}):
                    _LOGGER.info("registry migration applied")
            results.append(
                MigrationStepResult(
                    name=migration.name,
                    ordinal=migration.ordinal,
                    outcome=outcome,
                )
            )
        return MigrationRunReport(steps=tuple(results))


def upsert_service(
    repository: ServiceRegistryRepository,
    *,
    name: str,
    defaults: Mapping[str, object],
    owned: Mapping[str, object],
) -> MigrationOutcome:
    """Insert ``name`` with ``defaults`` plus ``owned``, else update ``owned`` only.

    An existing record whose owned fields already match is left untouched so
    re-running a step is a no-op.
    """
    current = repository.find(name)
    if current is None:
        repository.insert(build_service_record({**defaults, **owned, "name": name}))
        return MigrationOutcome.INSERTED

    patch = build_service_patch(owned)
    changes = {
        key: value
        for key, value in patch.changes().items()
        if getattr(current, key) != value
    }
    if not changes:
        return MigrationOutcome.SKIPPED
    repository.update(name, build_service_patch(changes))
    return MigrationOutcome.UPDATED


def add_actions(
    repository: ServiceRegistryRepository,
    *,
    name: str,
    actions: Iterable[str],
) -> MigrationOutcome:
    """Grant ``actions`` on an existing service, updating both action sets."""
    current = repository.find(name)
    if current is None:
        return MigrationOutcome.SKIPPED
    wanted = frozenset(actions)
    if wanted <= current.actions and wanted <= current.allowed_actions:
        return MigrationOutcome.SKIPPED
    repository.update(
        name,
        build_service_patch(
            {
                "actions": current.actions | wanted,
                "allowed_actions": current.allowed_actions | wanted,
            }
        ),
    )
    return MigrationOutcome.UPDATED
