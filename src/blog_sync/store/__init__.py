"""State store clients.

- ``base``       -- ``StateStore`` protocol.
- ``file_store`` -- ``FileStateStore``: JSON files with compare-and-swap.
- ``http_store`` -- ``HttpStateStore``: remote service with ETag writes.
"""

from pathlib import Path

from blog_sync.config import Config

from .base import StateStore
from .file_store import FileStateStore
from .http_store import HttpStateStore


def create_state_store(config: Config) -> StateStore:
    """Build the store selected by *config* (HTTP when a URL is set)."""
    if config.state_backend == "http":
        return HttpStateStore(config)
    return FileStateStore(Path(config.state_dir))


__all__ = [
    "FileStateStore",
    "HttpStateStore",
    "StateStore",
    "create_state_store",
]
