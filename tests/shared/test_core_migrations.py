"""Tests for schema migration discovery and the registry migration engine."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import pytest
from alembic.config import Config

from packages.relaygate_core.migrations import (
    MigrationContext,
    RegistryMigration,
    RegistryMigrationEngine,
    add_actions,
    discover_service_migration_configs,
    order_migrations,
    parse_migration_ordinal,
    run_schema_migrations,
    upsert_service,
)
from packages.relaygate_shared.config import RelaygateSettings
from packages.relaygate_shared.errors import MigrationFailureError
from services.state.service_registry.data.repository import (
    InMemoryMigrationJournal,
    InMemoryServiceRegistryRepository,
)
from services.state.service_registry.domain import MigrationOutcome

_FIXED_NOW = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)


def _settings() -> RelaygateSettings:
    return RelaygateSettings.model_validate(
        {"components": {"substrate": {"sql": {"url": "sqlite:///ops.db"}}}}
    )


def _write_ini(root: Path, module_root: str) -> Path:
    path = root / Path(*module_root.split(".")) / "migrations" / "alembic.ini"
    path.parent.mkdir(parents=True)
    path.write_text("[alembic]\n", encoding="utf-8")
    return path


def test_discover_service_migration_configs_keeps_boot_order(tmp_path: Path) -> None:
    """Discovery returns existing configs in the declared module order."""
    gateway_ini = _write_ini(tmp_path, "services.action.gateway")
    registry_ini = _write_ini(tmp_path, "services.state.registry")

    configs = discover_service_migration_configs(
        repo_root=tmp_path,
        module_roots=(
            "services.state.registry",
            "services.state.absent",
            "services.action.gateway",
        ),
    )

    assert configs == (registry_ini, gateway_ini)


def test_shipped_services_have_alembic_configs() -> None:
    """Both SQL-owning services ship a migration tree."""
    configs = discover_service_migration_configs()

    assert [path.parts[-3] for path in configs] == [
        "service_registry",
        "invocation_gateway",
    ]


def test_run_schema_migrations_upgrades_each_config_with_shared_url() -> None:
    """Every config is upgraded to head against the configured database URL."""
    calls: list[tuple[str, str, str]] = []

    def _upgrade(config: Config, revision: str) -> None:
        calls.append(
            (
                config.config_file_name or "",
                config.get_main_option("sqlalchemy.url") or "",
                revision,
            )
        )

    result = run_schema_migrations(settings=_settings(), upgrade_fn=_upgrade)

    assert len(calls) == 2
    assert {url for _, url, _ in calls} == {"sqlite:///ops.db"}
    assert {revision for _, _, revision in calls} == {"head"}
    assert result.executed_alembic_configs == tuple(path for path, _, _ in calls)


def test_run_schema_migrations_failure_is_fatal() -> None:
    """An Alembic failure surfaces as ``MigrationFailureError`` naming the config."""

    def _upgrade(config: Config, revision: str) -> None:
        raise RuntimeError("database is locked")

    with pytest.raises(MigrationFailureError) as exc_info:
        run_schema_migrations(settings=_settings(), upgrade_fn=_upgrade)

    assert exc_info.value.step.endswith("alembic.ini")


def test_parse_migration_ordinal_rejects_malformed_names() -> None:
    """Names must look like ``<ordinal>_<description>``."""
    assert parse_migration_ordinal("013_add_screen_vision_action") == 13
    for name in ("add_service", "013-add", "13_", "013_Add"):
        with pytest.raises(MigrationFailureError):
            parse_migration_ordinal(name)


def test_order_migrations_sorts_numerically_and_rejects_duplicates() -> None:
    """Ordinals sort as integers and may not repeat."""

    def _noop(context: MigrationContext) -> MigrationOutcome:
        return MigrationOutcome.SKIPPED

    ordered = order_migrations(
        (
            RegistryMigration(name="011_second", apply=_noop),
            RegistryMigration(name="2_first", apply=_noop),
        )
    )
    assert [item.name for item in ordered] == ["2_first", "011_second"]

    with pytest.raises(MigrationFailureError, match="duplicate migration ordinal 11"):
        order_migrations(
            (
                RegistryMigration(name="011_a", apply=_noop),
                RegistryMigration(name="11_b", apply=_noop),
            )
        )


def test_engine_runs_steps_in_order_and_journals_outcomes() -> None:
    """Steps run once each, in ordinal order, and land in the journal."""
    seen: list[str] = []
    repository = InMemoryServiceRegistryRepository()
    journal = InMemoryMigrationJournal()

    def _insert_phi4(context: MigrationContext) -> MigrationOutcome:
        seen.append("insert")
        return upsert_service(
            context.repository,
            name="phi4",
            defaults={
                "endpoint": context.override("MCP_PHI4_ENDPOINT", "http://localhost:3003"),
                "enabled": True,
            },
            owned={"actions": ("intent.parse",), "allowed_actions": ("intent.parse",)},
        )

    def _grant(context: MigrationContext) -> MigrationOutcome:
        seen.append("grant")
        return add_actions(context.repository, name="phi4", actions=("general.answer",))

    engine = RegistryMigrationEngine(
        migrations=(
            RegistryMigration(name="002_grant_answer", apply=_grant),
            RegistryMigration(name="001_insert_phi4", apply=_insert_phi4),
        ),
        repository=repository,
        journal=journal,
        overrides={"MCP_PHI4_ENDPOINT": "http://phi4.internal:9000"},
        clock=lambda: _FIXED_NOW,
    )

    report = engine.run()

    assert seen == ["insert", "grant"]
    assert report.outcome_for("001_insert_phi4") is MigrationOutcome.INSERTED
    assert report.outcome_for("002_grant_answer") is MigrationOutcome.UPDATED
    record = repository.get("phi4")
    assert record.endpoint == "http://phi4.internal:9000"
    assert record.allowed_actions == frozenset({"intent.parse", "general.answer"})
    assert [(item.name, item.applied_at) for item in journal.list()] == [
        ("001_insert_phi4", _FIXED_NOW),
        ("002_grant_answer", _FIXED_NOW),
    ]


def test_engine_failure_names_the_step_and_stops() -> None:
    """A failing step aborts the run; later steps never execute."""
    seen: list[str] = []

    def _boom(context: MigrationContext) -> MigrationOutcome:
        raise ValueError("bad seed data")

    def _later(context: MigrationContext) -> MigrationOutcome:
        seen.append("later")
        return MigrationOutcome.SKIPPED

    journal = InMemoryMigrationJournal()
    engine = RegistryMigrationEngine(
        migrations=(
            RegistryMigration(name="001_boom", apply=_boom),
            RegistryMigration(name="002_later", apply=_later),
        ),
        repository=InMemoryServiceRegistryRepository(),
        journal=journal,
    )

    with pytest.raises(MigrationFailureError) as exc_info:
        engine.run()

    assert exc_info.value.step == "001_boom"
    assert seen == []
    assert journal.list() == ()


def test_blank_override_falls_back_to_default() -> None:
    """Whitespace-only overrides behave as absent."""
    context = MigrationContext(
        repository=InMemoryServiceRegistryRepository(),
        overrides={"MCP_PHI4_API_KEY": "   ", "MCP_PHI4_ENDPOINT": " http://x "},
    )

    assert context.override("MCP_PHI4_API_KEY", "fallback") == "fallback"
    assert context.override("MCP_PHI4_API_KEY") is None
    assert context.override("MCP_PHI4_ENDPOINT") == "http://x"
