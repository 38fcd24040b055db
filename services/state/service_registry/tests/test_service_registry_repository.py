"""Contract tests for in-memory and SQL Service Registry repositories."""

from __future__ import annotations

from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from packages.relaygate_shared.errors import (
    SchemaViolationError,
    ServiceAlreadyExistsError,
    ServiceNotFoundError,
)
from resources.substrates.sql import create_session_factory
from services.state.service_registry.data.repository import (
    InMemoryMigrationJournal,
    InMemoryServiceRegistryRepository,
    SqlMigrationJournal,
    SqlServiceRegistryRepository,
)
from services.state.service_registry.data.schema import metadata
from services.state.service_registry.domain import (
    HealthStatus,
    MigrationOutcome,
    MigrationRecord,
    build_service_patch,
    build_service_record,
)
from services.state.service_registry.interfaces import (
    MigrationJournal,
    ServiceRegistryRepository,
)


def _session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    metadata.create_all(engine)
    return create_session_factory(engine)


@pytest.fixture(params=["memory", "sql"])
def repository(request: pytest.FixtureRequest) -> Iterator[ServiceRegistryRepository]:
    """Yield each repository implementation under the same contract."""
    if request.param == "memory":
        yield InMemoryServiceRegistryRepository()
    else:
        yield SqlServiceRegistryRepository(_session_factory())


@pytest.fixture(params=["memory", "sql"])
def journal(request: pytest.FixtureRequest) -> Iterator[MigrationJournal]:
    """Yield each migration journal implementation."""
    if request.param == "memory":
        yield InMemoryMigrationJournal()
    else:
        yield SqlMigrationJournal(_session_factory())


def _record(name: str = "screen-intelligence", **overrides: object):
    base: dict[str, object] = {
        "name": name,
        "display_name": "Screen Intelligence",
        "endpoint": "http://127.0.0.1:3008",
        "api_key": "original-key-0123456789",
        "enabled": True,
        "actions": ["screen.describe", "screen.click"],
        "allowed_actions": ["screen.describe"],
        "capabilities": ["window_detection"],
        "rate_limit": 2,
    }
    base.update(overrides)
    return build_service_record(base)


def test_insert_then_get_round_trips_typed_sets(
    repository: ServiceRegistryRepository,
) -> None:
    """Inserted records should read back with typed sets and stamped times."""
    inserted = repository.insert(_record())
    fetched = repository.get("screen-intelligence")

    assert fetched.actions == frozenset({"screen.describe", "screen.click"})
    assert fetched.allowed_actions == frozenset({"screen.describe"})
    assert fetched.capabilities == frozenset({"window_detection"})
    assert fetched.rate_limit == 2
    assert fetched.created_at == inserted.created_at
    assert fetched.created_at.tzinfo is not None


def test_insert_duplicate_name_fails_with_already_exists(
    repository: ServiceRegistryRepository,
) -> None:
    """A second insert for the same name must fail without overwriting."""
    repository.insert(_record())
    with pytest.raises(ServiceAlreadyExistsError) as exc_info:
        repository.insert(_record(display_name="Imposter"))

    assert exc_info.value.kind == "AlreadyExists"
    assert repository.get("screen-intelligence").display_name == "Screen Intelligence"
    assert repository.count() == 1


def test_get_and_update_unknown_name_fail_with_not_found(
    repository: ServiceRegistryRepository,
) -> None:
    """Missing names raise NotFound for reads and updates alike."""
    assert repository.find("missing") is None
    with pytest.raises(ServiceNotFoundError):
        repository.get("missing")
    with pytest.raises(ServiceNotFoundError):
        repository.update("missing", build_service_patch({"enabled": False}))


def test_update_touches_only_patched_fields(
    repository: ServiceRegistryRepository,
) -> None:
    """Updates should leave id, created_at, and unrelated fields unchanged."""
    original = repository.insert(_record())

    updated = repository.update(
        "screen-intelligence",
        build_service_patch(
            {"endpoint": "http://127.0.0.1:4008", "api_key": "rotated-key-0123456789"}
        ),
    )
    fetched = repository.get("screen-intelligence")

    assert updated == fetched
    assert fetched.endpoint == "http://127.0.0.1:4008"
    assert fetched.api_key == "rotated-key-0123456789"
    assert fetched.id == original.id
    assert fetched.created_at == original.created_at
    assert fetched.actions == original.actions
    assert fetched.rate_limit == original.rate_limit
    assert fetched.updated_at >= original.updated_at


def test_update_violating_subset_invariant_is_rejected(
    repository: ServiceRegistryRepository,
) -> None:
    """A rejected write must leave the stored record unchanged."""
    repository.insert(_record())
    with pytest.raises(SchemaViolationError):
        repository.update(
            "screen-intelligence",
            build_service_patch({"allowed_actions": ["screen.describe", "screen.type"]}),
        )
    assert repository.get("screen-intelligence").allowed_actions == frozenset(
        {"screen.describe"}
    )


def test_list_is_ordered_by_name(repository: ServiceRegistryRepository) -> None:
    """Full scans should return records ordered by name."""
    repository.insert(_record(name="web-search"))
    repository.insert(_record(name="phi4"))
    repository.insert(_record(name="screen-intelligence"))

    assert [item.name for item in repository.list()] == [
        "phi4",
        "screen-intelligence",
        "web-search",
    ]
    assert repository.count() == 3


def test_concurrent_updates_are_not_lost() -> None:
    """Concurrent health updates against one record should all apply."""
    repository = InMemoryServiceRegistryRepository((_record(),))

    def _bump(_: int) -> None:
        repository.update(
            "screen-intelligence",
            build_service_patch({"health_status": HealthStatus.HEALTHY}),
        )

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(_bump, range(64)))

    assert repository.get("screen-intelligence").health_status is HealthStatus.HEALTHY


def test_journal_keeps_latest_outcome_per_step(journal: MigrationJournal) -> None:
    """Re-recording one step should replace its outcome, ordered by ordinal."""
    journal.record(
        MigrationRecord(
            name="011_add_screen_intelligence_service",
            ordinal=11,
            outcome=MigrationOutcome.INSERTED,
        )
    )
    journal.record(
        MigrationRecord(
            name="001_initial_services", ordinal=1, outcome=MigrationOutcome.INSERTED
        )
    )
    journal.record(
        MigrationRecord(
            name="011_add_screen_intelligence_service",
            ordinal=11,
            outcome=MigrationOutcome.UPDATED,
        )
    )

    entries = journal.list()
    assert [entry.name for entry in entries] == [
        "001_initial_services",
        "011_add_screen_intelligence_service",
    ]
    assert entries[1].outcome is MigrationOutcome.UPDATED
