"""Tests for SQL substrate configuration, engine, and session helpers."""

from __future__ import annotations

import pytest
from sqlalchemy import Column, Integer, MetaData, Table, select

from packages.relaygate_shared.config import RelaygateSettings
from resources.substrates.sql.config import (
    DEFAULT_SQL_URL,
    SqlSettings,
    resolve_sql_settings,
)
from resources.substrates.sql.engine import create_sql_engine
from resources.substrates.sql.health import ping
from resources.substrates.sql.session import (
    create_session_factory,
    transactional_session,
)

_metadata = MetaData()
_widgets = Table("widgets", _metadata, Column("id", Integer, primary_key=True))


def test_resolve_sql_settings_defaults_to_local_sqlite_file() -> None:
    """Absent substrate config should fall back to the local SQLite file."""
    resolved = resolve_sql_settings(RelaygateSettings())
    assert resolved.url == DEFAULT_SQL_URL
    assert resolved.is_sqlite is True


def test_resolve_sql_settings_reads_grouped_substrate_namespace() -> None:
    """Settings under ``components.substrate.sql`` should be honored."""
    settings = RelaygateSettings.model_validate(
        {"components": {"substrate": {"sql": {"url": "sqlite://", "echo": True}}}}
    )
    resolved = resolve_sql_settings(settings)
    assert resolved.url == "sqlite://"
    assert resolved.echo is True


def test_transactional_session_commits_and_rolls_back() -> None:
    """Session helper should commit on success and roll back on failure."""
    engine = create_sql_engine(SqlSettings(url="sqlite://"))
    _metadata.create_all(engine)
    factory = create_session_factory(engine)

    with transactional_session(factory) as session:
        session.execute(_widgets.insert().values(id=1))

    with pytest.raises(RuntimeError):
        with transactional_session(factory) as session:
            session.execute(_widgets.insert().values(id=2))
            raise RuntimeError("boom")

    with transactional_session(factory) as session:
        rows = session.execute(select(_widgets.c.id)).scalars().all()
    assert rows == [1]


def test_ping_reports_reachable_database() -> None:
    """Ping should return True for a live in-memory database."""
    engine = create_sql_engine(SqlSettings(url="sqlite://"))
    assert ping(engine) is True
