"""Tests for shipped registry data migrations."""

from __future__ import annotations

from packages.relaygate_core.migrations import RegistryMigrationEngine
from services.state.service_registry.data.repository import (
    InMemoryMigrationJournal,
    InMemoryServiceRegistryRepository,
)
from services.state.service_registry.domain import (
    MigrationOutcome,
    TrustLevel,
    build_service_patch,
    build_service_record,
)
from services.state.service_registry.seeds import (
    REGISTRY_MIGRATIONS,
    SCREEN_INTELLIGENCE,
    SCREEN_INTELLIGENCE_ACTIONS,
    SCREEN_VISION_ACTION,
)


def _engine(
    repository: InMemoryServiceRegistryRepository,
    overrides: dict[str, str] | None = None,
) -> RegistryMigrationEngine:
    return RegistryMigrationEngine(
        migrations=REGISTRY_MIGRATIONS,
        repository=repository,
        journal=InMemoryMigrationJournal(),
        overrides=overrides or {},
    )


def test_fresh_registry_is_seeded_in_ordinal_order() -> None:
    """A first run should insert every seeded service and add the vision action."""
    repository = InMemoryServiceRegistryRepository()

    report = _engine(
        repository, {"MCP_SCREEN_INTELLIGENCE_API_KEY": "screen-key-0123456789abc"}
    ).run()

    assert [step.name for step in report.steps] == [
        "001_initial_services",
        "011_add_screen_intelligence_service",
        "013_add_screen_vision_action",
    ]
    assert report.outcome_for("001_initial_services") is MigrationOutcome.INSERTED
    assert (
        report.outcome_for("011_add_screen_intelligence_service")
        is MigrationOutcome.INSERTED
    )
    assert report.outcome_for("013_add_screen_vision_action") is MigrationOutcome.UPDATED

    screen = repository.get(SCREEN_INTELLIGENCE)
    assert screen.endpoint == "http://127.0.0.1:3008"
    assert screen.api_key == "screen-key-0123456789abc"
    assert screen.trust_level is TrustLevel.HIGH
    assert screen.rate_limit == 100
    assert screen.created_by == "system"
    assert SCREEN_VISION_ACTION in screen.actions
    assert SCREEN_VISION_ACTION in screen.allowed_actions
    assert len(screen.capabilities) == 9
    assert {item.name for item in repository.list()} == {
        "conversation",
        "phi4",
        "screen-intelligence",
        "user-memory",
        "web-search",
    }


def test_rerunning_migrations_is_idempotent() -> None:
    """A second run yields identical state and never reports an insert."""
    repository = InMemoryServiceRegistryRepository()
    _engine(repository).run()
    before = repository.list()

    report = _engine(repository).run()

    assert repository.list() == before
    assert all(step.outcome is MigrationOutcome.SKIPPED for step in report.steps)


def test_existing_screen_record_only_rotates_endpoint_and_key() -> None:
    """An existing record keeps id, created_at, and unrelated fields."""
    repository = InMemoryServiceRegistryRepository()
    existing = repository.insert(
        build_service_record(
            {
                "name": SCREEN_INTELLIGENCE,
                "display_name": "Operator Tuned",
                "endpoint": "http://10.0.0.5:3008",
                "api_key": "old-key-0123456789abcdef",
                "enabled": True,
                "actions": ["screen.describe"],
                "allowed_actions": ["screen.describe"],
                "rate_limit": 2,
            }
        )
    )

    report = RegistryMigrationEngine(
        migrations=[
            item
            for item in REGISTRY_MIGRATIONS
            if item.name == "011_add_screen_intelligence_service"
        ],
        repository=repository,
        journal=InMemoryMigrationJournal(),
        overrides={
            "MCP_SCREEN_INTELLIGENCE_ENDPOINT": "http://127.0.0.1:3999",
            "MCP_SCREEN_INTELLIGENCE_API_KEY": "new-key-0123456789abcdef",
        },
    ).run()

    updated = repository.get(SCREEN_INTELLIGENCE)
    assert report.steps[0].outcome is MigrationOutcome.UPDATED
    assert updated.endpoint == "http://127.0.0.1:3999"
    assert updated.api_key == "new-key-0123456789abcdef"
    assert updated.id == existing.id
    assert updated.created_at == existing.created_at
    assert updated.display_name == "Operator Tuned"
    assert updated.actions == frozenset({"screen.describe"})
    assert updated.rate_limit == 2


def test_missing_key_override_keeps_existing_key() -> None:
    """Without a key override the stored key is never blanked."""
    repository = InMemoryServiceRegistryRepository()
    _engine(repository, {"MCP_SCREEN_INTELLIGENCE_API_KEY": "kept-key-0123456789ab"}).run()

    _engine(repository).run()

    assert repository.get(SCREEN_INTELLIGENCE).api_key == "kept-key-0123456789ab"


def test_vision_action_step_skips_when_service_missing_or_present() -> None:
    """The vision step is a no-op without the service or once applied."""
    repository = InMemoryServiceRegistryRepository()
    vision_only = [
        item
        for item in REGISTRY_MIGRATIONS
        if item.name == "013_add_screen_vision_action"
    ]

    first = RegistryMigrationEngine(
        migrations=vision_only,
        repository=repository,
        journal=InMemoryMigrationJournal(),
    ).run()
    assert first.steps[0].outcome is MigrationOutcome.SKIPPED

    repository.insert(
        build_service_record(
            {
                "name": SCREEN_INTELLIGENCE,
                "endpoint": "http://127.0.0.1:3008",
                "actions": [*SCREEN_INTELLIGENCE_ACTIONS, SCREEN_VISION_ACTION],
                "allowed_actions": [*SCREEN_INTELLIGENCE_ACTIONS, SCREEN_VISION_ACTION],
            }
        )
    )
    second = RegistryMigrationEngine(
        migrations=vision_only,
        repository=repository,
        journal=InMemoryMigrationJournal(),
    ).run()
    assert second.steps[0].outcome is MigrationOutcome.SKIPPED


def test_core_services_refresh_actions_on_existing_rows() -> None:
    """The initial step re-syncs key and actions for already registered rows."""
    repository = InMemoryServiceRegistryRepository()
    _engine(repository).run()
    repository.update(
        "web-search",
        build_service_patch(
            {"actions": ["search.web"], "allowed_actions": ["search.web"]}
        ),
    )

    report = _engine(repository).run()

    assert report.outcome_for("001_initial_services") is MigrationOutcome.UPDATED
    assert repository.get("web-search").actions == frozenset(
        {"search.web", "search.news", "content.extract"}
    )
