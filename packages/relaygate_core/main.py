"""Process entrypoint for the Relaygate gateway."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Mapping
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI

from packages.relaygate_core.startup import run_core_startup
from packages.relaygate_shared.config import RelaygateSettings, load_settings
from packages.relaygate_shared.http import create_app, run_app
from packages.relaygate_shared.logging import configure_logging, get_logger
from resources.substrates.sql import component as sql_component
from services.action.invocation_gateway import component as gateway_component
from services.action.invocation_gateway.api import (
    register_error_handlers,
    register_routes,
)
from services.action.invocation_gateway.service import InvocationGateway
from services.action.policy_enforcer import component as policy_component
from services.action.rate_limiter import component as limiter_component
from services.state.service_registry import component as registry_component
from services.state.service_registry.service import ServiceRegistry

_LOGGER = get_logger(__name__)

ComponentBuilder = Callable[..., object]

# Dependency order: each builder may read components built before it.
COMPONENT_BUILDERS: tuple[tuple[str, ComponentBuilder], ...] = (
    (sql_component.RESOURCE_COMPONENT_ID, sql_component.build_component),
    (registry_component.SERVICE_COMPONENT_ID, registry_component.build_component),
    (policy_component.SERVICE_COMPONENT_ID, policy_component.build_component),
    (limiter_component.SERVICE_COMPONENT_ID, limiter_component.build_component),
    (gateway_component.SERVICE_COMPONENT_ID, gateway_component.build_component),
)


def _uses_sql(settings: RelaygateSettings) -> bool:
    from services.state.service_registry.config import (
        resolve_service_registry_settings,
    )

    return resolve_service_registry_settings(settings).backend == "sql"


def build_components(settings: RelaygateSettings) -> dict[str, object]:
    """Instantiate every component in dependency order."""
    built: dict[str, object] = {}
    for component_id, builder in COMPONENT_BUILDERS:
        if component_id == sql_component.RESOURCE_COMPONENT_ID and not _uses_sql(
            settings
        ):
            continue
        built[component_id] = builder(settings=settings, components=built)
        _LOGGER.info("component instantiated: %s", component_id)
    return built


def _registry(components: Mapping[str, object]) -> ServiceRegistry:
    registry = components[registry_component.SERVICE_COMPONENT_ID]
    if not isinstance(registry, ServiceRegistry):
        raise RuntimeError("service_service_registry is missing or invalid")
    return registry


def _gateway(components: Mapping[str, object]) -> InvocationGateway:
    gateway = components[gateway_component.SERVICE_COMPONENT_ID]
    if not isinstance(gateway, InvocationGateway):
        raise RuntimeError("service_invocation_gateway is missing or invalid")
    return gateway


def create_gateway_app(*, components: Mapping[str, object]) -> FastAPI:
    """Create the HTTP app; live sessions are cancelled on shutdown."""
    gateway = _gateway(components)

    @asynccontextmanager
    async def _lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        await gateway.aclose()

    app = create_app(title="Relaygate Gateway", lifespan=_lifespan)
    router = APIRouter()
    register_routes(router=router, gateway=gateway, registry=_registry(components))
    app.include_router(router)
    register_error_handlers(app)
    return app


def bootstrap(settings: RelaygateSettings) -> FastAPI:
    """Build components, run startup migrations, then create the app."""
    components = build_components(settings)
    result = run_core_startup(settings=settings, registry=_registry(components))
    _LOGGER.info(
        "relaygate startup completed; schema migrations %s, registry migrations %s",
        "ran" if result.schema_result is not None else "skipped",
        "ran" if result.migration_report is not None else "skipped",
    )
    return create_gateway_app(components=components)


def main() -> None:
    """Load settings, configure logging, boot, and serve until interrupted."""
    settings = load_settings()
    configure_logging(
        level=settings.logging.level,
        json_output=settings.logging.json_output,
        service=settings.logging.service,
        environment=settings.logging.environment,
    )
    app = bootstrap(settings)
    run_app(
        app,
        host=settings.http.host,
        port=settings.http.port,
        log_level=settings.logging.level.lower(),
    )


if __name__ == "__main__":
    main()
