"""Domain contracts for the Service Registry."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import (
    AnyHttpUrl,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)

from packages.relaygate_shared.credentials import mask_secret
from packages.relaygate_shared.errors import SchemaViolationError

SERVICE_NAME_PATTERN = r"^[a-z0-9]+(?:[-_.][a-z0-9]+)*$"
DEFAULT_RATE_LIMIT = 100
DEFAULT_CREATED_BY = "system"

_IMMUTABLE_FIELDS = frozenset({"id", "name", "created_at"})
_HTTP_URL = TypeAdapter(AnyHttpUrl)


class TrustLevel(str, Enum):
    """Coarse privilege tier of one registered service."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class HealthStatus(str, Enum):
    """Last observed endpoint health."""

    UNKNOWN = "unknown"
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    DOWN = "down"


def utc_now() -> datetime:
    """Return the current timezone-aware UTC timestamp."""
    return datetime.now(UTC)


def _as_name_set(value: object) -> frozenset[str]:
    """Normalize a name collection, accepting JSON-encoded list strings."""
    if value is None:
        return frozenset()
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return frozenset()
        decoded = json.loads(text)
        if not isinstance(decoded, list):
            raise ValueError("serialized name set must be a JSON list")
        value = decoded
    if not isinstance(value, Iterable):
        raise ValueError("name set must be an iterable of strings")
    names: set[str] = set()
    for item in value:
        if not isinstance(item, str) or not item.strip():
            raise ValueError("name set entries must be non-empty strings")
        names.add(item.strip())
    return frozenset(names)


def _require_http_url(endpoint: str) -> None:
    try:
        _HTTP_URL.validate_python(endpoint.strip())
    except ValidationError as exc:
        raise ValueError(
            f"endpoint must be an absolute http(s) URL, got {endpoint!r}"
        ) from exc


class ServiceRecord(BaseModel):
    """One registry entry describing a callable capability provider.

    ``allowed_actions`` must always be a subset of ``actions`` and a record
    cannot be enabled without an endpoint. A non-empty endpoint must be an
    absolute http(s) URL. Both rules are checked on every
    construction so no write path can persist a violating record.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(min_length=1)
    name: str = Field(pattern=SERVICE_NAME_PATTERN)
    display_name: str = ""
    description: str = ""
    endpoint: str = ""
    api_key: str | None = None
    enabled: bool = False
    trusted: bool = False
    trust_level: TrustLevel = TrustLevel.MEDIUM
    actions: frozenset[str] = frozenset()
    allowed_actions: frozenset[str] = frozenset()
    capabilities: frozenset[str] = frozenset()
    rate_limit: int = Field(default=DEFAULT_RATE_LIMIT, gt=0)
    health_status: HealthStatus = HealthStatus.UNKNOWN
    version: str = "1.0.0"
    created_by: str = DEFAULT_CREATED_BY
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    last_health_check: datetime | None = None
    consecutive_failures: int = Field(default=0, ge=0)

    @model_validator(mode="before")
    @classmethod
    def _default_id_to_name(cls, value: object) -> object:
        if isinstance(value, dict) and not value.get("id") and value.get("name"):
            return {**value, "id": value["name"]}
        return value

    @field_validator("actions", "allowed_actions", "capabilities", mode="before")
    @classmethod
    def _normalize_name_sets(cls, value: object) -> frozenset[str]:
        return _as_name_set(value)

    @field_validator("created_at", "updated_at", "last_health_check")
    @classmethod
    def _require_aware_timestamps(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @model_validator(mode="after")
    def _check_invariants(self) -> "ServiceRecord":
        unknown = self.allowed_actions - self.actions
        if unknown:
            raise ValueError(
                "allowed_actions must be a subset of actions; unknown: "
                + ", ".join(sorted(unknown))
            )
        if self.enabled and not self.endpoint.strip():
            raise ValueError("endpoint must be set before a service is enabled")
        if self.endpoint.strip():
            _require_http_url(self.endpoint)
        return self

    def to_public_dict(self, *, mask_api_key: bool = True) -> dict[str, Any]:
        """Render JSON-friendly fields with sorted sets and a masked key."""
        payload = self.model_dump(mode="json")
        for name in ("actions", "allowed_actions", "capabilities"):
            payload[name] = sorted(getattr(self, name))
        if mask_api_key:
            payload["api_key"] = (
                mask_secret(self.api_key) if self.api_key is not None else None
            )
        return payload


class ServiceRecordPatch(BaseModel):
    """Partial update for one registry record.

    Only explicitly provided fields are applied. Identity fields (``id``,
    ``name``, ``created_at``) are not patchable.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    display_name: str | None = None
    description: str | None = None
    endpoint: str | None = None
    api_key: str | None = None
    enabled: bool | None = None
    trusted: bool | None = None
    trust_level: TrustLevel | None = None
    actions: frozenset[str] | None = None
    allowed_actions: frozenset[str] | None = None
    capabilities: frozenset[str] | None = None
    rate_limit: int | None = Field(default=None, gt=0)
    health_status: HealthStatus | None = None
    version: str | None = None
    created_by: str | None = None
    last_health_check: datetime | None = None
    consecutive_failures: int | None = Field(default=None, ge=0)

    @field_validator("actions", "allowed_actions", "capabilities", mode="before")
    @classmethod
    def _normalize_name_sets(cls, value: object) -> frozenset[str] | None:
        return None if value is None else _as_name_set(value)

    def changes(self) -> dict[str, Any]:
        """Return only explicitly set fields."""
        return {name: getattr(self, name) for name in self.model_fields_set}

    def is_empty(self) -> bool:
        """Return True when the patch would change nothing."""
        return not self.model_fields_set


def build_service_record(data: Mapping[str, Any]) -> ServiceRecord:
    """Validate raw fields into a ``ServiceRecord``.

    Raises ``SchemaViolationError`` instead of coercing invalid input.
    """
    try:
        return ServiceRecord.model_validate(dict(data))
    except ValidationError as exc:
        raise SchemaViolationError(
            message=_summarize_validation(exc),
            service_name=str(data.get("name", "")),
        ) from exc


def build_service_patch(data: Mapping[str, Any]) -> ServiceRecordPatch:
    """Validate raw fields into a ``ServiceRecordPatch``."""
    blocked = sorted(_IMMUTABLE_FIELDS.intersection(data))
    if blocked:
        raise SchemaViolationError(
            message=f"immutable fields cannot be patched: {', '.join(blocked)}"
        )
    try:
        return ServiceRecordPatch.model_validate(dict(data))
    except ValidationError as exc:
        raise SchemaViolationError(message=_summarize_validation(exc)) from exc


def apply_patch(
    record: ServiceRecord,
    patch: ServiceRecordPatch,
    *,
    now: datetime | None = None,
) -> ServiceRecord:
    """Merge ``patch`` into ``record`` and re-validate the whole record."""
    merged = record.model_dump()
    merged.update(patch.changes())
    merged["updated_at"] = now or utc_now()
    return build_service_record(merged)


def _summarize_validation(exc: ValidationError) -> str:
    parts: list[str] = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()))
        message = str(error.get("msg", "invalid value"))
        message = message.removeprefix("Value error, ")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or "invalid service record"


class MigrationOutcome(str, Enum):
    """Result of applying one registry migration step."""

    INSERTED = "inserted"
    UPDATED = "updated"
    SKIPPED = "skipped"


class MigrationRecord(BaseModel):
    """Journal entry for one applied registry migration step."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(min_length=1)
    ordinal: int = Field(ge=0)
    outcome: MigrationOutcome
    applied_at: datetime = Field(default_factory=utc_now)
