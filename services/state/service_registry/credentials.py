"""Operator credential sync from environment overrides into the registry."""

from __future__ import annotations

import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from dotenv import dotenv_values
from sqlalchemy.exc import SQLAlchemyError

from packages.relaygate_shared.credentials import mask_secret
from packages.relaygate_shared.errors import RelaygateError
from packages.relaygate_shared.logging import fields, get_logger, log_context
from services.state.service_registry.domain import build_service_patch
from services.state.service_registry.interfaces import ServiceRegistryRepository
from services.state.service_registry.seeds import CORE_SERVICES, SCREEN_INTELLIGENCE

_LOGGER = get_logger(__name__)


class CredentialSyncOutcome(str, Enum):
    """Per-service result of one credential sync pass."""

    UPDATED = "updated"
    UNCHANGED = "unchanged"
    MISSING = "missing"
    FAILED = "failed"


@dataclass(frozen=True)
class CredentialBinding:
    """Names of the overrides carrying one service's key and endpoint."""

    service_name: str
    api_key_var: str
    endpoint_var: str = ""


@dataclass(frozen=True)
class CredentialSyncResult:
    """Outcome for one binding; ``error`` is set only on failure."""

    service_name: str
    outcome: CredentialSyncOutcome
    changed_fields: tuple[str, ...] = ()
    error: str = ""


DEFAULT_BINDINGS: tuple[CredentialBinding, ...] = tuple(
    CredentialBinding(
        service_name=seed.name,
        api_key_var=f"{seed.env_prefix}_API_KEY",
        endpoint_var=f"{seed.env_prefix}_ENDPOINT",
    )
    for seed in CORE_SERVICES
) + (
    CredentialBinding(
        service_name=SCREEN_INTELLIGENCE,
        api_key_var="MCP_SCREEN_INTELLIGENCE_API_KEY",
        endpoint_var="MCP_SCREEN_INTELLIGENCE_ENDPOINT",
    ),
)


def load_overrides(
    *,
    env_file: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Return dotenv file values overlaid by the process environment."""
    merged: dict[str, str] = {}
    if env_file:
        path = Path(env_file).expanduser()
        if path.exists():
            merged.update(
                {
                    key: value
                    for key, value in dotenv_values(path).items()
                    if value is not None
                }
            )
    merged.update(os.environ if environ is None else environ)
    return merged


def sync_credentials(
    repository: ServiceRegistryRepository,
    *,
    overrides: Mapping[str, str],
    bindings: Iterable[CredentialBinding] = DEFAULT_BINDINGS,
) -> tuple[CredentialSyncResult, ...]:
    """Write overridden keys and endpoints into matching registry records.

    Only fields whose override is set are touched. One service failing never
    stops the remaining bindings from being processed.
    """
    results: list[CredentialSyncResult] = []
    for binding in bindings:
        with log_context({fields.SERVICE_NAME: binding.service_name}):
            result = _sync_one(repository, binding=binding, overrides=overrides)
            _LOGGER.info("credential sync %s", result.outcome.value)
        results.append(result)
    return tuple(results)


def _sync_one(
    repository: ServiceRegistryRepository,
    *,
    binding: CredentialBinding,
    overrides: Mapping[str, str],
) -> CredentialSyncResult:
    try:
        current = repository.find(binding.service_name)
        if current is None:
            return CredentialSyncResult(
                service_name=binding.service_name,
                outcome=CredentialSyncOutcome.MISSING,
            )

        changes: dict[str, str] = {}
        api_key = _read(overrides, binding.api_key_var)
        if api_key is not None and api_key != current.api_key:
            changes["api_key"] = api_key
        endpoint = _read(overrides, binding.endpoint_var)
        if endpoint is not None and endpoint != current.endpoint:
            changes["endpoint"] = endpoint

        if not changes:
            return CredentialSyncResult(
                service_name=binding.service_name,
                outcome=CredentialSyncOutcome.UNCHANGED,
            )
        repository.update(binding.service_name, build_service_patch(changes))
        if "api_key" in changes:
            _LOGGER.info("api key rotated to %s", mask_secret(changes["api_key"]))
        return CredentialSyncResult(
            service_name=binding.service_name,
            outcome=CredentialSyncOutcome.UPDATED,
            changed_fields=tuple(sorted(changes)),
        )
    except (RelaygateError, SQLAlchemyError, OSError, ValueError) as exc:
        _LOGGER.warning("credential sync failed: %s", exc)
        return CredentialSyncResult(
            service_name=binding.service_name,
            outcome=CredentialSyncOutcome.FAILED,
            error=str(exc),
        )


def _read(overrides: Mapping[str, str], name: str) -> str | None:
    if not name:
        return None
    value = overrides.get(name)
    if value is None or not value.strip():
        return None
    return value.strip()
