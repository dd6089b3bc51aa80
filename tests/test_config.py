"""Tests for blog_sync.config: env-var config loading and validation.

NOT to be confused with test_config_loader.py (hierarchical YAML config)
or test_config_schema.py (Pydantic models). This tests the runtime
bootstrap path: validate_config(), load_config() and
resolve_sync_settings().
"""

import logging

import pytest

from blog_sync.config import (
    Config,
    load_config,
    resolve_sync_settings,
    validate_config,
)
from blog_sync.config_schema import SyncSettings

_ENV_VARS = [
    "BLOG_SYNC_API_URL",
    "BLOG_SYNC_API_TOKEN",
    "BLOG_SYNC_STATE_URL",
    "BLOG_SYNC_STATE_DIR",
    "BLOG_SYNC_STATE_TOKEN",
    "BLOG_SYNC_PUBLICATION_ID",
    "BLOG_SYNC_INSECURE",
    "BLOG_SYNC_DEBUG",
    "BLOG_SYNC_MAX_PARALLEL_REQUESTS",
    "BLOG_SYNC_MAX_ATTEMPTS",
    "BLOG_SYNC_REPOSITORY_ID",
    "BLOG_SYNC_REPOSITORY_NAME",
    "BLOG_SYNC_SOURCE",
    "GITHUB_REPOSITORY",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def _config(**overrides):
    values = {"api_url": "https://api.example.com", "api_token": "tok"}
    values.update(overrides)
    return Config(**values)


# -------------------------------------------------------------------------
# validate_config()
# -------------------------------------------------------------------------


class TestValidateConfig:
    """Tests for validate_config(): URL format and limit checks."""

    def test_valid_config(self):
        validate_config(_config())  # should not raise

    def test_trailing_slash_stripped(self):
        config = _config(api_url="https://api.example.com/")
        validate_config(config)
        assert config.api_url == "https://api.example.com"

    def test_invalid_url_no_scheme(self):
        with pytest.raises(
            ValueError, match="must start with http:// or https://"
        ):
            validate_config(_config(api_url="api.example.com"))

    def test_url_without_host(self):
        with pytest.raises(ValueError, match="hostname"):
            validate_config(_config(api_url="https://"))

    def test_invalid_state_url(self):
        with pytest.raises(ValueError, match="state URL"):
            validate_config(_config(state_url="ftp://state"))

    def test_empty_token(self):
        with pytest.raises(ValueError, match="API token cannot be empty"):
            validate_config(_config(api_token="  "))

    def test_empty_state_dir_without_url(self):
        with pytest.raises(ValueError, match="State directory"):
            validate_config(_config(state_dir=""))

    def test_empty_state_dir_allowed_with_url(self):
        validate_config(
            _config(state_dir="", state_url="https://state.example.com")
        )

    @pytest.mark.parametrize("value", [0, 101])
    def test_parallel_out_of_range(self, value):
        with pytest.raises(ValueError, match="max_parallel_requests"):
            validate_config(_config(max_parallel_requests=value))

    @pytest.mark.parametrize("value", [0, 11])
    def test_attempts_out_of_range(self, value):
        with pytest.raises(ValueError, match="max_attempts"):
            validate_config(_config(max_attempts=value))

    def test_insecure_logs_warning(self, caplog):
        with caplog.at_level(logging.WARNING):
            validate_config(_config(insecure=True))
        assert "SSL verification disabled" in caplog.text


# -------------------------------------------------------------------------
# load_config()
# -------------------------------------------------------------------------


class TestLoadConfig:
    """Tests for load_config(): precedence CLI > env > YAML > defaults."""

    def test_missing_url_raises(self):
        with pytest.raises(ValueError, match="API URL not found"):
            load_config(api_token="tok")

    def test_missing_token_raises(self):
        with pytest.raises(ValueError, match="API token not found"):
            load_config(api_url="https://api.example.com")

    def test_env_values_used(self, monkeypatch):
        monkeypatch.setenv("BLOG_SYNC_API_URL", "https://env.example.com")
        monkeypatch.setenv("BLOG_SYNC_API_TOKEN", "env-token")
        monkeypatch.setenv("BLOG_SYNC_PUBLICATION_ID", "pub-9")

        config = load_config()

        assert config.api_url == "https://env.example.com"
        assert config.api_token == "env-token"
        assert config.publication_id == "pub-9"

    def test_cli_beats_env(self, monkeypatch):
        monkeypatch.setenv("BLOG_SYNC_API_URL", "https://env.example.com")
        config = load_config(
            api_url="https://cli.example.com", api_token="tok"
        )
        assert config.api_url == "https://cli.example.com"

    def test_env_beats_yaml(self, monkeypatch):
        monkeypatch.setenv("BLOG_SYNC_STATE_DIR", "env-state")
        config = load_config(
            api_url="https://api.example.com",
            api_token="tok",
            yaml_fallbacks={"state_dir": "yaml-state"},
        )
        assert config.state_dir == "env-state"

    def test_yaml_fallbacks_used(self):
        config = load_config(
            yaml_fallbacks={
                "api_url": "https://yaml.example.com",
                "api_token": "yaml-token",
                "state_url": "https://state.example.com",
                "max_parallel_requests": 7,
                "max_attempts": 4,
                "timeout": 12.5,
            }
        )
        assert config.api_url == "https://yaml.example.com"
        assert config.state_backend == "http"
        assert config.max_parallel_requests == 7
        assert config.max_attempts == 4
        assert config.request_timeout == 12.5

    def test_defaults(self):
        config = load_config(api_url="https://api.example.com", api_token="t")
        assert config.state_dir == ".blog_sync"
        assert config.state_backend == "file"
        assert config.max_parallel_requests == 5
        assert config.max_attempts == 3
        assert config.insecure is False

    def test_bool_env(self, monkeypatch):
        monkeypatch.setenv("BLOG_SYNC_INSECURE", "yes")
        monkeypatch.setenv("BLOG_SYNC_DEBUG", "0")
        config = load_config(
            api_url="https://api.example.com",
            api_token="t",
            yaml_fallbacks={"debug": True},
        )
        assert config.insecure is True
        assert config.debug is False

    def test_invalid_int_env(self, monkeypatch):
        monkeypatch.setenv("BLOG_SYNC_MAX_ATTEMPTS", "many")
        with pytest.raises(ValueError, match="BLOG_SYNC_MAX_ATTEMPTS"):
            load_config(api_url="https://api.example.com", api_token="t")

    def test_out_of_range_int_env(self, monkeypatch):
        monkeypatch.setenv("BLOG_SYNC_MAX_PARALLEL_REQUESTS", "500")
        with pytest.raises(ValueError, match="between 1 and 100"):
            load_config(api_url="https://api.example.com", api_token="t")


# -------------------------------------------------------------------------
# resolve_sync_settings()
# -------------------------------------------------------------------------


class TestResolveSyncSettings:
    def test_missing_repository_id_raises(self):
        with pytest.raises(ValueError, match="Repository id not found"):
            resolve_sync_settings(SyncSettings())

    def test_github_repository_used(self, monkeypatch):
        monkeypatch.setenv("GITHUB_REPOSITORY", "octo/blog")
        settings = resolve_sync_settings(SyncSettings())
        assert settings.repository_id == "octo/blog"
        assert settings.repository_name == "blog"

    def test_explicit_env_beats_github(self, monkeypatch):
        monkeypatch.setenv("GITHUB_REPOSITORY", "octo/blog")
        monkeypatch.setenv("BLOG_SYNC_REPOSITORY_ID", "octo/other")
        settings = resolve_sync_settings(SyncSettings())
        assert settings.repository_id == "octo/other"

    def test_cli_beats_everything(self, monkeypatch):
        monkeypatch.setenv("BLOG_SYNC_REPOSITORY_ID", "octo/other")
        settings = resolve_sync_settings(
            SyncSettings(repository_id="yaml/id"),
            source="posts",
            repository_id="cli/id",
            repository_name="Shown",
        )
        assert settings.repository_id == "cli/id"
        assert settings.repository_name == "Shown"
        assert settings.source == "posts"

    def test_yaml_values_kept(self):
        settings = resolve_sync_settings(
            SyncSettings(
                repository_id="yaml/id", source="content", exclude=["x*"]
            )
        )
        assert settings.repository_id == "yaml/id"
        assert settings.source == "content"
        assert settings.exclude == ["x*"]
