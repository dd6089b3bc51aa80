"""Publishing service client and async helpers shared by the sync engine."""

from .async_utils import run_sync
from .client import PublisherClient

__all__ = ["PublisherClient", "run_sync"]
