"""Configuration and logging for the capability discovery engine."""

from .logging import configure_logging, get_logger
from .settings import (
    DiscoveryConfig,
    discovery_config_json_schema,
    get_setting,
    get_settings,
    load_discovery_config,
)

__all__ = [
    "DiscoveryConfig",
    "configure_logging",
    "discovery_config_json_schema",
    "get_logger",
    "get_setting",
    "get_settings",
    "load_discovery_config",
]
