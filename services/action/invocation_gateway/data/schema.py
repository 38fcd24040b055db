"""Table model for the append-only invocation audit log."""

from __future__ import annotations

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    false,
)

metadata = MetaData()

invocation_audits = Table(
    "invocation_audits",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("request_id", String(26), nullable=False),
    Column("service_name", String(128), nullable=False),
    Column("action", String(256), nullable=False),
    Column("streaming", Boolean, nullable=False, server_default=false()),
    Column("success", Boolean, nullable=False),
    Column("error_kind", String(64), nullable=False, server_default=""),
    Column("duration_ms", Float, nullable=False, server_default="0"),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Index("ix_invocation_audits_service_name", "service_name"),
    Index("ix_invocation_audits_request_id", "request_id"),
)
