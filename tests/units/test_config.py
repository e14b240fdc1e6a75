"""Tests for discovery configuration and layered settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from capability_discovery.config.settings import (
    DiscoveryConfig,
    Settings,
    get_setting,
    load_discovery_config,
)
from capability_discovery.errors import ConfigurationError, DiscoveryErrorCode


class TestDiscoveryConfig:
    def test_defaults(self):
        config = DiscoveryConfig()
        assert config.tier0_token_budget == 200
        assert config.tier1_token_budget == 800
        assert config.tier2_token_budget == 2000
        assert config.tier1_top_k == 5
        assert config.tier2_top_k == 2
        assert config.tier1_min_relevance == 0.3
        assert config.use_graph_reranking is True
        assert config.collection_name == "capability_index"
        assert config.embedding_model_id is None
        assert config.graph_boost_factor == 0.15

    def test_frozen_and_strict(self):
        config = DiscoveryConfig()
        with pytest.raises(ValidationError):
            config.tier1_top_k = 10
        with pytest.raises(ValidationError):
            DiscoveryConfig(unknown_key=1)

    def test_merged(self):
        base = DiscoveryConfig()
        assert base.merged(None) is base
        merged = base.merged({"tier1_top_k": 9})
        assert merged.tier1_top_k == 9
        assert base.tier1_top_k == 5

    def test_merged_invalid(self):
        with pytest.raises(ConfigurationError) as exc_info:
            DiscoveryConfig().merged({"tier2_token_budget": -5})
        assert exc_info.value.code == DiscoveryErrorCode.INVALID_CONFIG


class TestSettings:
    def test_defaults_without_file(self):
        assert get_setting("discovery.tier1_top_k") == 5
        assert get_setting("manifest.debounce_seconds") == 0.5
        assert get_setting("missing.key", "fallback") == "fallback"

    def test_user_file_overrides(self, tmp_path, monkeypatch):
        path = tmp_path / "settings.yaml"
        path.write_text("discovery:\n  tier1_top_k: 8\nlogging:\n  level: DEBUG\n")
        monkeypatch.setenv("CAPABILITY_DISCOVERY_CONFIG", str(path))
        Settings().reload()

        assert get_setting("discovery.tier1_top_k") == 8
        assert get_setting("discovery.tier2_top_k") == 2
        assert get_setting("logging.level") == "DEBUG"

    def test_load_discovery_config_explicit_wins(self, tmp_path, monkeypatch):
        path = tmp_path / "settings.yaml"
        path.write_text("discovery:\n  tier1_top_k: 8\n  graph_boost_factor: 0.3\n")
        monkeypatch.setenv("CAPABILITY_DISCOVERY_CONFIG", str(path))
        Settings().reload()

        config = load_discovery_config(tier1_top_k=3, tier2_top_k=None)
        assert config.tier1_top_k == 3
        assert config.tier2_top_k == 2
        assert config.graph_boost_factor == 0.3

    def test_invalid_settings_file(self, tmp_path, monkeypatch):
        path = tmp_path / "settings.yaml"
        path.write_text("discovery:\n  tier1_top_k: many\n")
        monkeypatch.setenv("CAPABILITY_DISCOVERY_CONFIG", str(path))
        Settings().reload()
        with pytest.raises(ConfigurationError):
            load_discovery_config()

    def test_non_mapping_file(self, tmp_path, monkeypatch):
        path = tmp_path / "settings.yaml"
        path.write_text("- just\n- a list\n")
        monkeypatch.setenv("CAPABILITY_DISCOVERY_CONFIG", str(path))
        Settings().reload()
        with pytest.raises(ConfigurationError):
            get_setting("discovery")
