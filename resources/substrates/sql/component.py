"""Component declaration for the shared SQL substrate."""

from __future__ import annotations

from collections.abc import Mapping

from sqlalchemy import Engine

from packages.relaygate_shared.config import RelaygateSettings

RESOURCE_COMPONENT_ID = "substrate_sql"


def build_component(
    *, settings: RelaygateSettings, components: Mapping[str, object]
) -> Engine:
    """Build the process-wide SQLAlchemy engine from resolved settings."""
    del components
    from resources.substrates.sql.config import resolve_sql_settings
    from resources.substrates.sql.engine import create_sql_engine

    return create_sql_engine(resolve_sql_settings(settings))
