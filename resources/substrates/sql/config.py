"""Configuration model for shared SQL substrate access."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from packages.relaygate_shared.config import (
    RelaygateSettings,
    resolve_component_settings,
)

DEFAULT_SQL_URL = "sqlite:///relaygate.db"


class SqlSettings(BaseModel):
    """Runtime settings for constructing SQLAlchemy engines and pools."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    url: str = DEFAULT_SQL_URL
    echo: bool = False
    pool_pre_ping: bool = True
    pool_size: int = Field(default=5, gt=0)
    max_overflow: int = Field(default=10, ge=0)
    pool_timeout_seconds: float = Field(default=30.0, gt=0)

    @property
    def is_sqlite(self) -> bool:
        """Return True when the URL targets SQLite."""
        return self.url.startswith("sqlite")


def resolve_sql_settings(settings: RelaygateSettings) -> SqlSettings:
    """Resolve SQL substrate settings from ``components.substrate.sql``."""
    return resolve_component_settings(
        settings=settings,
        component_id="substrate_sql",
        model=SqlSettings,
    )
