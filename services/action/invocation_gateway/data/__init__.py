"""Invocation Gateway data layer exports."""

from services.action.invocation_gateway.data.repository import (
    InMemoryInvocationAuditRepository,
    SqlInvocationAuditRepository,
)
from services.action.invocation_gateway.data.schema import invocation_audits, metadata

__all__ = [
    "InMemoryInvocationAuditRepository",
    "SqlInvocationAuditRepository",
    "invocation_audits",
    "metadata",
]
