"""Discovery configuration schema and loader.

Two layers, merged key by key:
- Built-in defaults (``DEFAULT_SETTINGS``)
- User overrides from YAML: the file named by ``CAPABILITY_DISCOVERY_CONFIG``,
  else ``$XDG_CONFIG_HOME/capability-discovery/settings.yaml``

``get_setting("discovery.tier1_top_k")`` returns the merged effective value and
``load_discovery_config()`` validates the ``discovery`` section into a
``DiscoveryConfig``.
"""

from __future__ import annotations

import copy
import os
import threading
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import ConfigurationError
from .logging import get_logger

logger = get_logger("capability_discovery.config.settings")

CONFIG_ENV_VAR = "CAPABILITY_DISCOVERY_CONFIG"


class DiscoveryConfig(BaseModel):
    """Validated discovery engine configuration.

    ``tier0_token_budget`` is informational: the category overview is always
    included whole and its size is reported in ``tier0_tokens``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    tier0_token_budget: int = Field(200, ge=0)
    tier1_token_budget: int = Field(800, ge=0)
    tier2_token_budget: int = Field(2000, ge=0)
    tier1_top_k: int = Field(5, ge=0)
    tier2_top_k: int = Field(2, ge=0)
    tier1_min_relevance: float = Field(0.3, ge=0.0)
    use_graph_reranking: bool = True
    collection_name: str = Field("capability_index", min_length=1)
    embedding_model_id: str | None = None
    graph_boost_factor: float = Field(0.15, ge=0.0)

    def merged(self, overrides: dict[str, Any] | None) -> DiscoveryConfig:
        """Return a validated copy with ``overrides`` applied."""
        if not overrides:
            return self
        try:
            return DiscoveryConfig.model_validate({**self.model_dump(), **overrides})
        except ValidationError as e:
            raise ConfigurationError(
                "Invalid discovery config override",
                details={"errors": e.errors(include_url=False)},
            ) from e


DEFAULT_SETTINGS: dict[str, Any] = {
    "discovery": DiscoveryConfig().model_dump(),
    "manifest": {
        "dirs": [],
        "debounce_seconds": 0.5,
    },
    "logging": {
        "level": "INFO",
    },
}


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def user_settings_path() -> Path:
    """Resolve the user settings file path."""
    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        return Path(explicit).expanduser()
    config_home = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(config_home) / "capability-discovery" / "settings.yaml"


class Settings:
    """Process-wide settings manager (lazy, thread-safe load)."""

    _instance: Settings | None = None
    _instance_lock = threading.Lock()

    def __new__(cls) -> Settings:
        if cls._instance is None:
            with cls._instance_lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        if not hasattr(self, "_data"):
            self._data: dict[str, Any] = {}
            self._loaded = False

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            with self._instance_lock:
                if not self._loaded:
                    self._data = self._load()
                    self._loaded = True

    def _load(self) -> dict[str, Any]:
        data = copy.deepcopy(DEFAULT_SETTINGS)
        path = user_settings_path()
        if not path.is_file():
            return data

        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Failed to read settings file {path}",
                details={"path": str(path), "error": str(e)},
            ) from e

        if not isinstance(raw, dict):
            raise ConfigurationError(
                f"Settings file {path} must contain a mapping",
                details={"path": str(path)},
            )
        logger.debug("Loaded user settings", path=str(path))
        return _deep_merge(data, raw)

    def get(self, key: str, default: Any = None) -> Any:
        """Get a setting by dotted key (e.g. ``discovery.tier1_top_k``)."""
        self._ensure_loaded()
        node: Any = self._data
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def reload(self) -> None:
        """Drop cached values; the next access re-reads the settings file."""
        with self._instance_lock:
            self._data = {}
            self._loaded = False


def get_settings() -> Settings:
    return Settings()


def get_setting(key: str, default: Any = None) -> Any:
    """Get a merged setting by dotted key."""
    return get_settings().get(key, default)


def load_discovery_config(**overrides: Any) -> DiscoveryConfig:
    """Load and validate the ``discovery`` settings section.

    Explicit keyword arguments override settings values; ``None`` values are
    ignored.
    """
    section = get_setting("discovery", {}) or {}
    if not isinstance(section, dict):
        raise ConfigurationError("discovery settings must be a mapping")

    values = {**section, **{k: v for k, v in overrides.items() if v is not None}}
    try:
        return DiscoveryConfig.model_validate(values)
    except ValidationError as e:
        raise ConfigurationError(
            "Invalid discovery settings",
            details={"errors": e.errors(include_url=False)},
        ) from e


def discovery_config_json_schema() -> dict:
    """Export JSON schema for the discovery settings."""
    return DiscoveryConfig.model_json_schema()


__all__ = [
    "CONFIG_ENV_VAR",
    "DEFAULT_SETTINGS",
    "DiscoveryConfig",
    "Settings",
    "discovery_config_json_schema",
    "get_setting",
    "get_settings",
    "load_discovery_config",
    "user_settings_path",
]
