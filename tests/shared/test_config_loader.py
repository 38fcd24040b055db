"""Tests for layered shared configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from packages.relaygate_shared.config import load_settings, resolve_component_settings
from resources.substrates.sql.config import DEFAULT_SQL_URL, SqlSettings
from services.action.rate_limiter.config import resolve_rate_limiter_settings
from services.state.service_registry.config import resolve_service_registry_settings


def test_load_settings_applies_cli_over_env_over_yaml(tmp_path: Path) -> None:
    """CLI params override env, env overrides YAML, then defaults fill the rest."""
    config_file = tmp_path / "relaygate.yaml"
    config_file.write_text(
        "\n".join(
            [
                "logging:",
                "  level: WARNING",
                "components:",
                "  substrate:",
                "    sql:",
                "      url: sqlite:///from-yaml.db",
                "      pool_size: 7",
                "  service:",
                "    rate_limiter:",
                "      window_seconds: 30",
            ]
        ),
        encoding="utf-8",
    )

    settings = load_settings(
        cli_params={"logging": {"level": "DEBUG"}},
        environ={
            "RELAYGATE_LOGGING__LEVEL": "ERROR",
            "RELAYGATE_COMPONENTS__SUBSTRATE__SQL__POOL_SIZE": "9",
            "RELAYGATE_COMPONENTS__SERVICE__SERVICE_REGISTRY__BACKEND": "memory",
            "UNRELATED_VARIABLE": "ignored",
        },
        config_path=config_file,
    )

    sql = resolve_component_settings(
        settings=settings, component_id="substrate_sql", model=SqlSettings
    )
    assert settings.logging.level == "DEBUG"
    assert sql.url == "sqlite:///from-yaml.db"
    assert sql.pool_size == 9
    assert resolve_rate_limiter_settings(settings).window_seconds == 30.0
    assert resolve_service_registry_settings(settings).backend == "memory"


def test_load_settings_uses_model_defaults_when_sources_missing(tmp_path: Path) -> None:
    """Absent YAML and env fall back to model defaults."""
    settings = load_settings(config_path=tmp_path / "missing.yaml", environ={})

    sql = resolve_component_settings(
        settings=settings, component_id="substrate_sql", model=SqlSettings
    )
    registry = resolve_service_registry_settings(settings)
    assert settings.logging.level == "INFO"
    assert settings.logging.service == "relaygate"
    assert settings.http.port == 8787
    assert settings.components.core_boot.run_migrations_on_startup is True
    assert sql.url == DEFAULT_SQL_URL
    assert registry.backend == "sql"
    assert registry.health.path == "/health"
    assert resolve_rate_limiter_settings(settings).window_seconds == 60.0


def test_env_scalars_are_coerced(tmp_path: Path) -> None:
    settings = load_settings(
        config_path=tmp_path / "missing.yaml",
        environ={
            "RELAYGATE_LOGGING__JSON_OUTPUT": "false",
            "RELAYGATE_HTTP__PORT": "9001",
            "RELAYGATE_COMPONENTS__CORE_BOOT__RUN_MIGRATIONS_ON_STARTUP": "FALSE",
        },
    )

    assert settings.logging.json_output is False
    assert settings.http.port == 9001
    assert settings.components.core_boot.run_migrations_on_startup is False


def test_flat_component_keys_are_rejected(tmp_path: Path) -> None:
    config_file = tmp_path / "relaygate.yaml"
    config_file.write_text(
        "components:\n  service_rate_limiter:\n    window_seconds: 5\n",
        encoding="utf-8",
    )

    with pytest.raises(ValidationError, match="components.service.rate_limiter"):
        load_settings(config_path=config_file, environ={})


def test_non_mapping_yaml_is_rejected(tmp_path: Path) -> None:
    config_file = tmp_path / "relaygate.yaml"
    config_file.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ValueError, match="top-level mapping"):
        load_settings(config_path=config_file, environ={})


def test_component_settings_reject_unknown_keys(tmp_path: Path) -> None:
    settings = load_settings(
        config_path=tmp_path / "missing.yaml",
        environ={"RELAYGATE_COMPONENTS__SERVICE__RATE_LIMITER__BURST": "3"},
    )

    with pytest.raises(ValidationError):
        resolve_rate_limiter_settings(settings)
