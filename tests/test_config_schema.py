"""Tests for the unified Pydantic config schema."""

import logging

import pytest
from pydantic import ValidationError

from blog_sync.config_schema import (
    DEFAULT_EXCLUDE,
    PublisherConfig,
    SyncSettings,
    UnifiedConfig,
    build_config,
    config_fallbacks,
)


class TestDefaults:
    def test_zero_config_valid(self):
        config = UnifiedConfig()
        assert config.publisher.api_url is None
        assert config.state_store.directory == ".blog_sync"
        assert config.sync.source == "."
        assert config.logging.level == "INFO"

    def test_sync_defaults(self):
        settings = SyncSettings()
        assert settings.formats == ["markdown", "html"]
        assert settings.exclude == DEFAULT_EXCLUDE

    def test_frozen(self):
        with pytest.raises(ValidationError):
            PublisherConfig().api_url = "https://x"


class TestValidation:
    def test_parallel_limit_enforced(self):
        with pytest.raises(ValidationError):
            PublisherConfig(max_parallel_requests=0)

    def test_attempt_limit_enforced(self):
        with pytest.raises(ValidationError):
            PublisherConfig(max_attempts=11)

    def test_unknown_format_rejected(self):
        with pytest.raises(ValidationError):
            SyncSettings(formats=["rst"])


class TestBuildConfig:
    def test_empty_dict(self):
        assert build_config({}) == UnifiedConfig()

    def test_sections_parsed(self):
        config = build_config(
            {
                "publisher": {"api_url": "https://api.example.com"},
                "state_store": {"url": "https://state.example.com"},
                "sync": {"repository_id": "octo/blog", "formats": ["markdown"]},
                "logging": {"level": "DEBUG"},
            }
        )
        assert config.publisher.api_url == "https://api.example.com"
        assert config.state_store.url == "https://state.example.com"
        assert config.sync.formats == ["markdown"]
        assert config.logging.level == "DEBUG"

    def test_unknown_section_ignored_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING):
            config = build_config({"legacy": {"url": "x"}})
        assert config == UnifiedConfig()
        assert "Ignoring unknown config section 'legacy'" in caplog.text


class TestConfigFallbacks:
    def test_unset_values_omitted(self):
        fallbacks = config_fallbacks(UnifiedConfig())
        assert "api_url" not in fallbacks
        assert "state_url" not in fallbacks
        assert fallbacks["state_dir"] == ".blog_sync"
        assert fallbacks["max_attempts"] == 3

    def test_values_flattened(self):
        config = build_config(
            {
                "publisher": {"api_token": "tok", "timeout": 5},
                "state_store": {"directory": "state", "token": "st"},
            }
        )
        fallbacks = config_fallbacks(config)
        assert fallbacks["api_token"] == "tok"
        assert fallbacks["timeout"] == 5
        assert fallbacks["state_dir"] == "state"
        assert fallbacks["state_token"] == "st"
