"""Service Registry-owned SQL runtime wiring."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from packages.relaygate_shared.config import RelaygateSettings
from resources.substrates.sql import (
    create_session_factory,
    create_sql_engine,
    ping,
    resolve_sql_settings,
)


@dataclass(frozen=True)
class ServiceRegistrySqlRuntime:
    """Concrete registry handle for SQL engine and session access."""

    engine: Engine
    session_factory: sessionmaker[Session]

    @classmethod
    def from_settings(cls, settings: RelaygateSettings) -> "ServiceRegistrySqlRuntime":
        """Build registry DB runtime from typed application settings."""
        return cls.from_engine(create_sql_engine(resolve_sql_settings(settings)))

    @classmethod
    def from_engine(cls, engine: Engine) -> "ServiceRegistrySqlRuntime":
        """Wrap an existing engine, mainly for tests and shared wiring."""
        return cls(engine=engine, session_factory=create_session_factory(engine))

    def is_healthy(self) -> bool:
        """Return ``True`` when the backing database is reachable."""
        return ping(self.engine)
