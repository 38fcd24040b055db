"""Table models for Service Registry records and migration history."""

from __future__ import annotations

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    false,
)

metadata = MetaData()

service_registry = Table(
    "service_registry",
    metadata,
    Column("id", String(128), nullable=False, unique=True),
    Column("name", String(128), primary_key=True),
    Column("display_name", String(256), nullable=False, server_default=""),
    Column("description", Text, nullable=False, server_default=""),
    Column("endpoint", String(1024), nullable=False, server_default=""),
    Column("api_key", String(512), nullable=True),
    Column("enabled", Boolean, nullable=False, server_default=false()),
    Column("trusted", Boolean, nullable=False, server_default=false()),
    Column("trust_level", String(16), nullable=False, server_default="medium"),
    Column("actions", Text, nullable=False, server_default="[]"),
    Column("allowed_actions", Text, nullable=False, server_default="[]"),
    Column("capabilities", Text, nullable=False, server_default="[]"),
    Column("rate_limit", Integer, nullable=False, server_default="100"),
    Column("health_status", String(16), nullable=False, server_default="unknown"),
    Column("version", String(32), nullable=False, server_default="1.0.0"),
    Column("created_by", String(128), nullable=False, server_default="system"),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    Column("last_health_check", DateTime(timezone=True), nullable=True),
    Column("consecutive_failures", Integer, nullable=False, server_default="0"),
)

registry_migrations = Table(
    "registry_migrations",
    metadata,
    Column("name", String(256), primary_key=True),
    Column("ordinal", Integer, nullable=False),
    Column("outcome", String(16), nullable=False),
    Column("applied_at", DateTime(timezone=True), nullable=False),
)
