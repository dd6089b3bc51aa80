"""Runtime configuration for the publishing service and the state store.

Reads connection settings from CLI args, environment variables, .env
files, and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    BLOG_SYNC_API_URL: Publishing API base URL (required)
    BLOG_SYNC_API_TOKEN: Publishing API token (required)
    BLOG_SYNC_PUBLICATION_ID: Publication to post into (optional)
    BLOG_SYNC_STATE_DIR: Directory for the file state store (default: .blog_sync)
    BLOG_SYNC_STATE_URL: State service URL; selects the HTTP state store (optional)
    BLOG_SYNC_STATE_TOKEN: State service token (optional, defaults to the API token)
    BLOG_SYNC_INSECURE: Skip SSL verification (optional, default: false)
    BLOG_SYNC_MAX_PARALLEL_REQUESTS: Max concurrent publish calls (optional, default: 5)
    BLOG_SYNC_MAX_ATTEMPTS: Max calls per post on transient failures (optional, default: 3)
    BLOG_SYNC_REPOSITORY_ID: Repository identity (optional, falls back to GITHUB_REPOSITORY)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import urlparse

if TYPE_CHECKING:
    from .config_schema import SyncSettings

logger = logging.getLogger(__name__)


@dataclass
class Config:
    api_url: str
    api_token: str
    publication_id: str | None = None
    state_dir: str = ".blog_sync"
    state_url: str | None = None
    state_token: str | None = None
    insecure: bool = False
    debug: bool = False
    max_parallel_requests: int = 5
    max_attempts: int = 3
    request_timeout: float = 30.0

    @property
    def state_backend(self) -> str:
        """``"http"`` when a state service URL is configured, else ``"file"``."""
        return "http" if self.state_url else "file"


def _validate_url(value: str, label: str) -> str:
    value = value.strip()
    if not value.startswith(("http://", "https://")):
        raise ValueError(
            f"Invalid {label} '{value}': must start with http:// or https://"
        )
    if not urlparse(value).hostname:
        raise ValueError(
            f"Invalid {label} '{value}': URL must include a hostname"
        )
    return value.removesuffix("/")


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Args:
        config: Config instance to validate.

    Raises:
        ValueError: If a URL is malformed, the token is empty, or a
            numeric limit is out of range.
    """
    config.api_url = _validate_url(config.api_url, "API URL")
    if config.state_url:
        config.state_url = _validate_url(config.state_url, "state URL")

    if not config.api_token.strip():
        raise ValueError(
            "API token cannot be empty. Set BLOG_SYNC_API_TOKEN environment variable."
        )

    if not config.state_url and not config.state_dir.strip():
        raise ValueError(
            "State directory cannot be empty. Set BLOG_SYNC_STATE_DIR or BLOG_SYNC_STATE_URL."
        )

    if not (1 <= config.max_parallel_requests <= 100):
        raise ValueError(
            f"Invalid max_parallel_requests {config.max_parallel_requests}: "
            "must be a number between 1 and 100"
        )
    if not (1 <= config.max_attempts <= 10):
        raise ValueError(
            f"Invalid max_attempts {config.max_attempts}: "
            "must be a number between 1 and 10"
        )

    if config.insecure:
        logger.warning(
            "WARNING: SSL verification disabled (insecure=True). Use only for development."
        )


def _get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def _get_int_env(key: str, low: int, high: int) -> int | None:
    """Return an int from env var within [low, high], or None if unset."""
    raw = os.getenv(key)
    if raw is None:
        return None
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(
            f"Invalid {key} '{raw}': must be a number between {low} and {high}"
        ) from None
    if not (low <= value <= high):
        raise ValueError(
            f"Invalid {key} '{raw}': must be a number between {low} and {high}"
        )
    return value


def load_config(
    api_url: str | None = None,
    api_token: str | None = None,
    state_dir: str | None = None,
    state_url: str | None = None,
    insecure: bool = False,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        api_url: Override API URL.
        api_token: Override API token.
        state_dir: Override file state store directory.
        state_url: Override state service URL.
        insecure: Skip SSL verification (CLI flag).
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Flat dict built by
            ``config_schema.config_fallbacks()``.  Used when CLI arg and
            env var are both unset.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If the API URL or token is missing after checking all
            sources, or any value is invalid.
    """
    fb = yaml_fallbacks or {}

    final_url = api_url or os.getenv("BLOG_SYNC_API_URL") or fb.get("api_url")
    if not final_url:
        raise ValueError(
            "API URL not found. Set BLOG_SYNC_API_URL environment variable, "
            "pass --api-url CLI argument, or add 'publisher.api_url' to config.yml."
        )

    final_token = (
        api_token or os.getenv("BLOG_SYNC_API_TOKEN") or fb.get("api_token")
    )
    if not final_token:
        raise ValueError(
            "API token not found. Set BLOG_SYNC_API_TOKEN environment variable, "
            "pass --token CLI argument, or add 'publisher.api_token' to config.yml."
        )

    final_state_url = (
        state_url or os.getenv("BLOG_SYNC_STATE_URL") or fb.get("state_url")
    )
    final_state_dir = (
        state_dir
        or os.getenv("BLOG_SYNC_STATE_DIR")
        or fb.get("state_dir")
        or ".blog_sync"
    )
    final_state_token = (
        os.getenv("BLOG_SYNC_STATE_TOKEN") or fb.get("state_token") or None
    )
    publication_id = (
        os.getenv("BLOG_SYNC_PUBLICATION_ID")
        or fb.get("publication_id")
        or None
    )

    if insecure:
        final_insecure = True
    else:
        env_insecure = _get_bool_env("BLOG_SYNC_INSECURE")
        if env_insecure is not None:
            final_insecure = env_insecure
        else:
            final_insecure = bool(fb.get("insecure", False))

    if debug:
        final_debug = True
    else:
        env_debug = _get_bool_env("BLOG_SYNC_DEBUG")
        final_debug = (
            env_debug if env_debug is not None else bool(fb.get("debug", False))
        )

    max_parallel = _get_int_env("BLOG_SYNC_MAX_PARALLEL_REQUESTS", 1, 100)
    if max_parallel is None:
        max_parallel = int(fb.get("max_parallel_requests", 5))

    max_attempts = _get_int_env("BLOG_SYNC_MAX_ATTEMPTS", 1, 10)
    if max_attempts is None:
        max_attempts = int(fb.get("max_attempts", 3))

    config = Config(
        api_url=final_url.strip(),
        api_token=final_token.strip(),
        publication_id=publication_id,
        state_dir=final_state_dir,
        state_url=final_state_url,
        state_token=final_state_token,
        insecure=final_insecure,
        debug=final_debug,
        max_parallel_requests=max_parallel,
        max_attempts=max_attempts,
        request_timeout=float(fb.get("timeout", 30.0)),
    )

    validate_config(config)

    return config


def resolve_sync_settings(
    settings: SyncSettings,
    source: str | None = None,
    repository_id: str | None = None,
    repository_name: str | None = None,
) -> SyncSettings:
    """Fill in repository identity and source directory.

    Resolution order for ``repository_id``:
        CLI arg > BLOG_SYNC_REPOSITORY_ID > GITHUB_REPOSITORY > YAML

    ``repository_name`` defaults to the last segment of the identity.

    Raises:
        ValueError: If no repository identity can be found.
    """
    final_id = (
        repository_id
        or os.getenv("BLOG_SYNC_REPOSITORY_ID")
        or os.getenv("GITHUB_REPOSITORY")
        or settings.repository_id
    )
    if not final_id or not final_id.strip():
        raise ValueError(
            "Repository id not found. Set BLOG_SYNC_REPOSITORY_ID environment variable, "
            "pass --repository-id CLI argument, or add 'sync.repository_id' to config.yml."
        )
    final_id = final_id.strip()

    final_name = (
        repository_name
        or os.getenv("BLOG_SYNC_REPOSITORY_NAME")
        or settings.repository_name
        or final_id.rsplit("/", 1)[-1]
    )
    final_source = source or os.getenv("BLOG_SYNC_SOURCE") or settings.source

    return settings.model_copy(
        update={
            "repository_id": final_id,
            "repository_name": final_name,
            "source": final_source,
        }
    )
