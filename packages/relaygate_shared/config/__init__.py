"""Public API for shared Relaygate configuration utilities."""

from .loader import load_settings
from .models import (
    DEFAULT_CONFIG_PATH,
    ComponentsSettings,
    CoreBootSettings,
    HttpSettings,
    LoggingSettings,
    RelaygateSettings,
    resolve_component_settings,
)

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "ComponentsSettings",
    "CoreBootSettings",
    "HttpSettings",
    "LoggingSettings",
    "RelaygateSettings",
    "load_settings",
    "resolve_component_settings",
]
