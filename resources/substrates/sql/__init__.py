"""Shared SQL substrate primitives for Relaygate services."""

from resources.substrates.sql.component import RESOURCE_COMPONENT_ID, build_component
from resources.substrates.sql.config import SqlSettings, resolve_sql_settings
from resources.substrates.sql.engine import create_sql_engine
from resources.substrates.sql.health import ping
from resources.substrates.sql.session import (
    create_session_factory,
    transactional_session,
)

__all__ = [
    "RESOURCE_COMPONENT_ID",
    "SqlSettings",
    "build_component",
    "create_session_factory",
    "create_sql_engine",
    "ping",
    "resolve_sql_settings",
    "transactional_session",
]
