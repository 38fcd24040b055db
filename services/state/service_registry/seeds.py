"""Registry data migrations shipped with the gateway.

Each step owns a small set of fields on one or more named services. Endpoint
and API key values come from ``MCP_<SERVICE>_ENDPOINT`` and
``MCP_<SERVICE>_API_KEY`` overrides, falling back to local defaults.
"""

from __future__ import annotations

from dataclasses import dataclass

from packages.relaygate_core.migrations import (
    MigrationContext,
    RegistryMigration,
    add_actions,
    upsert_service,
)
from services.state.service_registry.domain import (
    HealthStatus,
    MigrationOutcome,
    TrustLevel,
)

SCREEN_INTELLIGENCE = "screen-intelligence"

SCREEN_INTELLIGENCE_ACTIONS: tuple[str, ...] = (
    "screen.describe",
    "screen.query",
    "screen.analyze",
    "screen.click",
    "screen.type",
    "screen.guide",
    "screen.highlight",
    "screen.toast",
    "screen.clearOverlay",
)

SCREEN_INTELLIGENCE_CAPABILITIES: tuple[str, ...] = (
    "accessibility_api",
    "playwright_adapter",
    "window_detection",
    "context_aware_analysis",
    "desktop_analysis",
    "browser_analysis",
    "visual_overlays",
    "element_highlighting",
    "discovery_mode",
)

SCREEN_VISION_ACTION = "screen.analyze-vision"


@dataclass(frozen=True)
class CoreServiceSeed:
    """Static definition of one bootstrap service."""

    name: str
    display_name: str
    description: str
    env_prefix: str
    default_endpoint: str
    default_api_key: str
    actions: tuple[str, ...]
    capabilities: tuple[str, ...]
    rate_limit: int = 1000


CORE_SERVICES: tuple[CoreServiceSeed, ...] = (
    CoreServiceSeed(
        name="user-memory",
        display_name="User Memory",
        description="Memory storage and retrieval service",
        env_prefix="MCP_USER_MEMORY",
        default_endpoint="http://localhost:3001",
        default_api_key="auto-generated-key-memory",
        actions=(
            "memory.store",
            "memory.retrieve",
            "memory.search",
            "memory.delete",
            "memory.update",
            "memory.list",
            "memory.stats",
            "memory.health-check",
            "memory.debug-embedding",
        ),
        capabilities=("storage", "retrieval", "tagging", "semantic_search"),
    ),
    CoreServiceSeed(
        name="phi4",
        display_name="Phi4 NLP",
        description="Intent parsing, entity extraction, and general Q&A service",
        env_prefix="MCP_PHI4",
        default_endpoint="http://localhost:3003",
        default_api_key="auto-generated-key-phi4",
        actions=(
            "intent.parse",
            "entity.extract",
            "general.answer",
            "embedding.generate",
            "parser.list",
        ),
        capabilities=(
            "intent_parsing",
            "entity_extraction",
            "general_qa",
            "embeddings",
        ),
    ),
    CoreServiceSeed(
        name="web-search",
        display_name="Web Search",
        description="Web search and information retrieval service",
        env_prefix="MCP_WEB_SEARCH",
        default_endpoint="http://localhost:3002",
        default_api_key="auto-generated-key-websearch",
        actions=("search.web", "search.news", "content.extract"),
        capabilities=("web_search", "content_extraction", "summarization"),
    ),
    CoreServiceSeed(
        name="conversation",
        display_name="Conversation Service",
        description="Conversation session and context management service",
        env_prefix="MCP_CONVERSATION",
        default_endpoint="http://localhost:3004",
        default_api_key="auto-generated-key-conversation",
        actions=(
            "session.create",
            "session.list",
            "session.get",
            "session.update",
            "session.delete",
            "session.switch",
            "message.add",
            "message.list",
            "message.get",
            "message.update",
            "message.delete",
            "context.add",
            "context.get",
            "context.extract",
            "entity.add",
            "entity.list",
        ),
        capabilities=(
            "session_management",
            "message_storage",
            "context_extraction",
            "entity_tracking",
        ),
    ),
)


def _combine(outcomes: list[MigrationOutcome]) -> MigrationOutcome:
    if MigrationOutcome.INSERTED in outcomes:
        return MigrationOutcome.INSERTED
    if MigrationOutcome.UPDATED in outcomes:
        return MigrationOutcome.UPDATED
    return MigrationOutcome.SKIPPED


def initial_services(context: MigrationContext) -> MigrationOutcome:
    """Register the core bootstrap services; existing rows get key/actions only."""
    outcomes: list[MigrationOutcome] = []
    for seed in CORE_SERVICES:
        outcomes.append(
            upsert_service(
                context.repository,
                name=seed.name,
                defaults={
                    "display_name": seed.display_name,
                    "description": seed.description,
                    "endpoint": context.override(
                        f"{seed.env_prefix}_ENDPOINT", seed.default_endpoint
                    ),
                    "enabled": True,
                    "trusted": True,
                    "trust_level": TrustLevel.HIGH,
                    "capabilities": seed.capabilities,
                    "rate_limit": seed.rate_limit,
                    "health_status": HealthStatus.UNKNOWN,
                },
                owned={
                    "api_key": context.override(
                        f"{seed.env_prefix}_API_KEY", seed.default_api_key
                    ),
                    "actions": seed.actions,
                    "allowed_actions": seed.actions,
                },
            )
        )
    return _combine(outcomes)


def add_screen_intelligence_service(context: MigrationContext) -> MigrationOutcome:
    """Register ``screen-intelligence``; an existing row gets endpoint/key rotation.

    The API key is only rotated when an override is present, so a missing
    environment variable never blanks a working key.
    """
    owned: dict[str, object] = {
        "endpoint": context.override(
            "MCP_SCREEN_INTELLIGENCE_ENDPOINT", "http://127.0.0.1:3008"
        ),
    }
    api_key = context.override("MCP_SCREEN_INTELLIGENCE_API_KEY")
    if api_key is not None:
        owned["api_key"] = api_key

    return upsert_service(
        context.repository,
        name=SCREEN_INTELLIGENCE,
        defaults={
            "display_name": "Screen Intelligence",
            "description": (
                "Context-aware screen analysis with accessibility, browser, "
                "and overlay support"
            ),
            "enabled": True,
            "trusted": True,
            "trust_level": TrustLevel.HIGH,
            "actions": SCREEN_INTELLIGENCE_ACTIONS,
            "allowed_actions": SCREEN_INTELLIGENCE_ACTIONS,
            "capabilities": SCREEN_INTELLIGENCE_CAPABILITIES,
            "rate_limit": 100,
            "health_status": HealthStatus.UNKNOWN,
            "version": "1.0.0",
        },
        owned=owned,
    )


def add_screen_vision_action(context: MigrationContext) -> MigrationOutcome:
    """Grant ``screen.analyze-vision`` on ``screen-intelligence`` when present."""
    return add_actions(
        context.repository,
        name=SCREEN_INTELLIGENCE,
        actions=(SCREEN_VISION_ACTION,),
    )


REGISTRY_MIGRATIONS: tuple[RegistryMigration, ...] = (
    RegistryMigration(name="001_initial_services", apply=initial_services),
    RegistryMigration(
        name="011_add_screen_intelligence_service",
        apply=add_screen_intelligence_service,
    ),
    RegistryMigration(
        name="013_add_screen_vision_action", apply=add_screen_vision_action
    ),
)
