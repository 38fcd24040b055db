"""SQLAlchemy engine construction for the shared SQL substrate."""

from __future__ import annotations

from sqlalchemy import Engine, create_engine
from sqlalchemy.pool import StaticPool

from resources.substrates.sql.config import SqlSettings


def create_sql_engine(config: SqlSettings) -> Engine:
    """Construct a configured SQLAlchemy engine.

    SQLite gets thread-agnostic connections so the asyncio gateway and its
    worker threads can share one engine; in-memory SQLite additionally pins a
    single connection so every session sees the same database.
    """
    if config.is_sqlite:
        kwargs: dict[str, object] = {
            "connect_args": {"check_same_thread": False},
            "echo": config.echo,
        }
        if ":memory:" in config.url or config.url in {"sqlite://", "sqlite+pysqlite://"}:
            kwargs["poolclass"] = StaticPool
        return create_engine(config.url, **kwargs)

    return create_engine(
        config.url,
        echo=config.echo,
        pool_size=config.pool_size,
        max_overflow=config.max_overflow,
        pool_timeout=config.pool_timeout_seconds,
        pool_pre_ping=config.pool_pre_ping,
    )
