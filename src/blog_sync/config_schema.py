"""Unified configuration schema for blog_sync.

Defines Pydantic models for the unified config structure with dedicated
sections for the publishing service, the state store, what to sync, and
logging.

Usage:
    from blog_sync.config_schema import build_config, config_fallbacks

    raw = load_hierarchical_config()
    unified = build_config(raw)
    config = load_config(yaml_fallbacks=config_fallbacks(unified))
"""

from __future__ import annotations

import logging
from typing import Literal

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDE = ["README*", "LICENSE*", "CONTRIBUTING*"]


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class PublisherConfig(BaseModel):
    """Publishing service connection settings.

    All fields are optional to support zero-config: env vars and CLI args
    can supply them at runtime instead.
    """

    api_url: str | None = Field(
        default=None, description="Publishing API base URL"
    )
    api_token: str | None = Field(
        default=None, description="Publishing API token"
    )
    publication_id: str | None = Field(
        default=None, description="Publication to post into"
    )
    insecure: bool = Field(
        default=False,
        description="Disable SSL verification (development only)",
    )
    debug: bool = Field(default=False, description="Enable debug mode")
    timeout: float = Field(
        default=30.0, gt=0, description="Read timeout in seconds"
    )
    max_parallel_requests: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Maximum concurrent publish requests (1-100)",
    )
    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum calls per post on transient failures (1-10)",
    )

    model_config = {"frozen": True}


class StateStoreConfig(BaseModel):
    """Where the path-to-post mapping is persisted.

    Attributes:
        directory: Directory for the file store.
        url: State service URL.  When set, the HTTP store is used.
        token: State service token (defaults to the publisher token).
    """

    directory: str = Field(
        default=".blog_sync", description="File state store directory"
    )
    url: str | None = Field(default=None, description="State service URL")
    token: str | None = Field(
        default=None, description="State service token"
    )

    model_config = {"frozen": True}


class SyncSettings(BaseModel):
    """What to synchronise and under which repository identity.

    Attributes:
        repository_id: Stable repository identity (e.g. ``owner/name``).
        repository_name: Display name stored alongside the state.
        source: Directory containing the posts.
        formats: Allowed source formats.
        exclude: Glob patterns of files never published.
    """

    repository_id: str | None = None
    repository_name: str | None = None
    source: str = "."
    formats: list[Literal["markdown", "html"]] = Field(
        default_factory=lambda: ["markdown", "html"]
    )
    exclude: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDE)
    )

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Aggregates all config sections. Every section has sensible defaults,
    so ``UnifiedConfig()`` (zero-config) is always valid.
    """

    publisher: PublisherConfig = Field(default_factory=PublisherConfig)
    state_store: StateStoreConfig = Field(
        default_factory=StateStoreConfig
    )
    sync: SyncSettings = Field(default_factory=SyncSettings)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Factory functions
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Handles missing sections gracefully; anything absent gets defaults.
    Unknown top-level sections are ignored with a warning.

    Args:
        raw_data: Merged configuration dictionary.

    Returns:
        Validated ``UnifiedConfig`` instance.
    """
    if not raw_data:
        return UnifiedConfig()

    known = set(UnifiedConfig.model_fields)
    for key in raw_data:
        if key not in known:
            logger.warning("Ignoring unknown config section '%s'", key)

    return UnifiedConfig(
        **{k: v for k, v in raw_data.items() if k in known}
    )


def config_fallbacks(unified: UnifiedConfig) -> dict:
    """Flatten the publisher and state store sections for ``load_config()``.

    Only values that are actually set are included, so built-in defaults
    in ``load_config()`` still apply.
    """
    pub = unified.publisher
    store = unified.state_store
    fallbacks: dict = {
        "api_url": pub.api_url,
        "api_token": pub.api_token,
        "publication_id": pub.publication_id,
        "insecure": pub.insecure,
        "debug": pub.debug,
        "timeout": pub.timeout,
        "max_parallel_requests": pub.max_parallel_requests,
        "max_attempts": pub.max_attempts,
        "state_dir": store.directory,
        "state_url": store.url,
        "state_token": store.token,
    }
    return {k: v for k, v in fallbacks.items() if v is not None}
