"""Relaygate operator CLI implemented with Typer."""

from __future__ import annotations

import asyncio
import dataclasses
import json
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable

import typer
from sqlalchemy.exc import SQLAlchemyError

from packages.relaygate_core.main import bootstrap
from packages.relaygate_core.startup import run_core_startup
from packages.relaygate_shared.config import RelaygateSettings, load_settings
from packages.relaygate_shared.credentials import generate_api_key
from packages.relaygate_shared.errors import RelaygateError
from packages.relaygate_shared.http import run_app
from packages.relaygate_shared.logging import configure_logging
from services.state.service_registry.credentials import (
    CredentialSyncOutcome,
    load_overrides,
    sync_credentials,
)
from services.state.service_registry.health import HealthChecker
from services.state.service_registry.service import (
    ServiceRegistry,
    build_service_registry,
)

SUCCESS_EXIT_CODE = 0
DOMAIN_ERROR_EXIT_CODE = 3
STORAGE_ERROR_EXIT_CODE = 4


@dataclass(frozen=True)
class CliConfig:
    """Global CLI options shared by every command."""

    config_path: Path | None
    as_json: bool


def _serialize(value: Any) -> Any:
    """Convert result objects to JSON-serializable structures."""

    if isinstance(value, Enum):
        return value.value
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (datetime, date, Path)):
        return str(value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            item.name: _serialize(getattr(value, item.name))
            for item in dataclasses.fields(value)
        }
    if isinstance(value, dict):
        return {str(key): _serialize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_serialize(item) for item in value]
    if isinstance(value, (set, frozenset)):
        return sorted(_serialize(item) for item in value)
    if hasattr(value, "model_dump"):
        return _serialize(value.model_dump(mode="json"))
    return str(value)


def _emit_output(result: Any, as_json: bool, render: Callable[[Any], str]) -> None:
    """Render command output in the requested format."""

    data = _serialize(result)
    if as_json:
        typer.echo(json.dumps(data, sort_keys=True, separators=(",", ":")))
        return
    typer.echo(render(data))


def _emit_error(exc: Exception, as_json: bool) -> None:
    """Render a failure to stderr."""

    if as_json:
        payload: dict[str, Any] = {"error": str(exc)}
        if isinstance(exc, RelaygateError):
            payload["detail"] = exc.to_error_detail().to_wire()
        typer.echo(json.dumps(payload), err=True)
        return
    typer.echo(f"error: {exc}", err=True)


def _render_json(data: Any) -> str:
    return json.dumps(data, indent=2, sort_keys=True)


def _render_services(items: list[dict[str, Any]]) -> str:
    if not items:
        return "No services registered."
    lines: list[str] = []
    for item in items:
        state = "enabled" if item.get("enabled") else "disabled"
        lines.append(
            f"- {item['name']} ({state}, {item.get('health_status', 'unknown')}) "
            f"{item.get('endpoint', '')}".rstrip()
        )
    return "\n".join(lines)


def _render_sync(items: list[dict[str, Any]]) -> str:
    lines: list[str] = []
    for item in items:
        line = f"- {item['service_name']}: {item['outcome']}"
        if item.get("changed_fields"):
            line = f"{line} ({', '.join(item['changed_fields'])})"
        if item.get("error"):
            line = f"{line} [{item['error']}]"
        lines.append(line)
    return "\n".join(lines)


def _render_migrate(data: dict[str, Any]) -> str:
    lines: list[str] = []
    schema = data.get("schema_result")
    if schema is None:
        lines.append("Schema migrations: skipped")
    else:
        lines.append(
            "Schema migrations: "
            f"{len(schema['executed_alembic_configs'])} config(s) applied"
        )
    report = data.get("migration_report")
    if report is None:
        lines.append("Registry migrations: skipped")
    else:
        lines.append("Registry migrations:")
        for step in report["steps"]:
            lines.append(f"- {step['name']}: {step['outcome']}")
    return "\n".join(lines)


def _render_health(items: list[dict[str, Any]]) -> str:
    if not items:
        return "No enabled services to check."
    lines: list[str] = []
    for item in items:
        line = f"- {item['service_name']}: {item['status']}"
        if item.get("detail"):
            line = f"{line} ({item['detail']})"
        lines.append(line)
    return "\n".join(lines)


def _load_cli_settings(cfg: CliConfig) -> RelaygateSettings:
    return load_settings(config_path=cfg.config_path)


def _open_registry(cfg: CliConfig) -> ServiceRegistry:
    """Open the registry store selected by the loaded settings."""
    return build_service_registry(settings=_load_cli_settings(cfg))


def _build_health_checker(registry: ServiceRegistry) -> HealthChecker:
    return HealthChecker(
        repository=registry.repository,
        settings=registry.settings.health,
    )


def _run_command(
    cfg: CliConfig,
    invoke: Callable[[], Any],
    render: Callable[[Any], str] = _render_json,
    *,
    failed: Callable[[Any], bool] | None = None,
) -> None:
    """Execute one command and map outputs and errors to process semantics."""
    try:
        result = invoke()
    except RelaygateError as exc:
        _emit_error(exc, cfg.as_json)
        raise typer.Exit(code=DOMAIN_ERROR_EXIT_CODE) from exc
    except SQLAlchemyError as exc:
        _emit_error(exc, cfg.as_json)
        raise typer.Exit(code=STORAGE_ERROR_EXIT_CODE) from exc

    _emit_output(result, cfg.as_json, render)
    if failed is not None and failed(result):
        raise typer.Exit(code=DOMAIN_ERROR_EXIT_CODE)
    raise typer.Exit(code=SUCCESS_EXIT_CODE)


def _require_config(ctx: typer.Context) -> CliConfig:
    """Return required CLI config from Typer context."""

    config = ctx.obj
    if not isinstance(config, CliConfig):
        raise RuntimeError("CLI configuration not initialized")
    return config


app = typer.Typer(no_args_is_help=True, help="Relaygate operator interface")
services_app = typer.Typer(help="Service registry commands")
credentials_app = typer.Typer(help="Service credential commands")
health_app = typer.Typer(help="Endpoint health commands")


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(
        None,
        "--config",
        envvar="RELAYGATE_CONFIG_PATH",
        help="YAML settings file (defaults to ~/.config/relaygate/relaygate.yaml)",
    ),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON output"),
) -> None:
    """Store global options for all commands."""

    ctx.obj = CliConfig(config_path=config, as_json=as_json)


@services_app.command("list")
def services_list(ctx: typer.Context) -> None:
    """List registered services with masked API keys."""
    cfg = _require_config(ctx)
    _run_command(
        cfg,
        lambda: [
            record.to_public_dict() for record in _open_registry(cfg).repository.list()
        ],
        _render_services,
    )


@services_app.command("show")
def services_show(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Registered service name"),
) -> None:
    """Show one service record with a masked API key."""
    cfg = _require_config(ctx)
    _run_command(
        cfg,
        lambda: _open_registry(cfg).repository.get(name).to_public_dict(),
    )


@credentials_app.command("sync")
def credentials_sync(
    ctx: typer.Context,
    env_file: Path | None = typer.Option(
        None,
        "--env-file",
        help="Dotenv file with MCP_<SERVICE>_API_KEY / _ENDPOINT overrides",
    ),
) -> None:
    """Copy API key and endpoint overrides into the registry."""
    cfg = _require_config(ctx)

    def _sync() -> Any:
        registry = _open_registry(cfg)
        overrides = load_overrides(
            env_file=env_file or registry.settings.env_file or None
        )
        return sync_credentials(registry.repository, overrides=overrides)

    _run_command(
        cfg,
        _sync,
        _render_sync,
        failed=lambda results: any(
            result.outcome is CredentialSyncOutcome.FAILED for result in results
        ),
    )


@credentials_app.command("generate-key")
def credentials_generate_key(
    ctx: typer.Context,
    length: int = typer.Option(32, min=16, help="Key length in characters"),
) -> None:
    """Print a fresh random API key."""
    cfg = _require_config(ctx)
    _run_command(
        cfg,
        lambda: {"api_key": generate_api_key(length)},
        lambda data: data["api_key"],
    )


@app.command("migrate")
def migrate(ctx: typer.Context) -> None:
    """Apply schema migrations then registry data migrations."""
    cfg = _require_config(ctx)

    def _migrate() -> Any:
        settings = _load_cli_settings(cfg)
        return run_core_startup(
            settings=settings,
            registry=build_service_registry(settings=settings),
        )

    _run_command(cfg, _migrate, _render_migrate)


@health_app.command("check")
def health_check(
    ctx: typer.Context,
    name: str | None = typer.Argument(None, help="Only check this service"),
) -> None:
    """Check service endpoints and record their health."""
    cfg = _require_config(ctx)

    def _check() -> Any:
        checker = _build_health_checker(_open_registry(cfg))
        if name is not None:
            return [asyncio.run(checker.check(name))]
        return list(asyncio.run(checker.check_all()))

    _run_command(cfg, _check, _render_health)


@app.command("serve")
def serve(ctx: typer.Context) -> None:
    """Boot the gateway and serve HTTP until interrupted."""
    cfg = _require_config(ctx)
    settings = _load_cli_settings(cfg)
    configure_logging(
        level=settings.logging.level,
        json_output=settings.logging.json_output,
        service=settings.logging.service,
        environment=settings.logging.environment,
    )
    try:
        gateway_app = bootstrap(settings)
    except RelaygateError as exc:
        _emit_error(exc, cfg.as_json)
        raise typer.Exit(code=DOMAIN_ERROR_EXIT_CODE) from exc
    run_app(
        gateway_app,
        host=settings.http.host,
        port=settings.http.port,
        log_level=settings.logging.level.lower(),
    )


app.add_typer(services_app, name="services")
app.add_typer(credentials_app, name="credentials")
app.add_typer(health_app, name="health")


if __name__ == "__main__":
    app()
