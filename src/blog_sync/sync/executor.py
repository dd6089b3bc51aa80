"""Execution of planned sync actions against the publishing service.

Each create/update action is sent to the publisher in a worker thread,
bounded by a semaphore so the remote rate limits are respected.  Skip
actions complete immediately with their existing record.

Error handling is per-action: a failing post never aborts the batch.
Transient ``PublishError``s are retried immediately, up to
``max_attempts`` calls in total; permanent errors surface after the first
attempt.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Protocol

from blog_sync.core.async_utils import (
    create_semaphore,
    gather_limited,
    run_sync_limited,
)

from .errors import PublishError, RemoteNotFound
from .models import (
    ActionKind,
    ContentItem,
    FailureKind,
    PublishedPost,
    StateRecord,
    SyncAction,
    SyncOutcome,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_PARALLEL = 5
DEFAULT_MAX_ATTEMPTS = 3


class Publisher(Protocol):
    """Create/update contract of the remote publishing service."""

    def create(self, item: ContentItem) -> PublishedPost: ...

    def update(self, remote_id: str, item: ContentItem) -> PublishedPost: ...


class SyncExecutor:
    """Run sync actions and collect one outcome per action.

    Args:
        publisher: Publishing service client.
        max_parallel: Maximum concurrent publisher calls.
        max_attempts: Maximum calls per action when failures are transient.
    """

    def __init__(
        self,
        publisher: Publisher,
        max_parallel: int = DEFAULT_MAX_PARALLEL,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        if max_attempts < 1:
            raise ValueError(
                f"max_attempts must be at least 1, got {max_attempts}"
            )
        self.publisher = publisher
        self.max_parallel = max_parallel
        self.max_attempts = max_attempts

    async def execute(
        self, actions: Sequence[SyncAction]
    ) -> list[SyncOutcome]:
        """Execute *actions* and return outcomes in the same order."""
        semaphore = create_semaphore(self.max_parallel)
        return await gather_limited(
            [self._execute_one(action, semaphore) for action in actions]
        )

    # ------------------------------------------------------------------
    # Per-action execution
    # ------------------------------------------------------------------

    async def _execute_one(
        self, action: SyncAction, semaphore: asyncio.Semaphore
    ) -> SyncOutcome:
        if action.kind == ActionKind.SKIP:
            return SyncOutcome.succeeded(ActionKind.SKIP, action.record)

        item = action.item
        attempts = 0
        while True:
            attempts += 1
            try:
                post = await run_sync_limited(
                    semaphore, self._publish, action
                )
            except RemoteNotFound as exc:
                logger.warning(
                    "Remote post %s for %s no longer exists; "
                    "leaving the stored mapping for manual resolution",
                    exc.remote_id,
                    action.path,
                )
                return SyncOutcome.failed(
                    action.path,
                    action.kind,
                    str(exc),
                    FailureKind.NOT_FOUND,
                    attempts,
                )
            except PublishError as exc:
                if exc.transient and attempts < self.max_attempts:
                    logger.info(
                        "Transient failure publishing %s (attempt %d/%d): %s",
                        action.path,
                        attempts,
                        self.max_attempts,
                        exc,
                    )
                    continue
                kind = (
                    FailureKind.TRANSIENT
                    if exc.transient
                    else FailureKind.PERMANENT
                )
                logger.error(
                    "Failed to %s %s: %s",
                    action.kind.value,
                    action.path,
                    exc,
                )
                return SyncOutcome.failed(
                    action.path, action.kind, str(exc), kind, attempts
                )
            except Exception as exc:
                logger.error(
                    "Unexpected error publishing %s: %s", action.path, exc
                )
                return SyncOutcome.failed(
                    action.path,
                    action.kind,
                    str(exc),
                    FailureKind.PERMANENT,
                    attempts,
                )

            logger.info(
                "%s %s -> %s",
                "Created" if action.kind == ActionKind.CREATE else "Updated",
                action.path,
                post.remote_url,
            )
            record = StateRecord(
                path=action.path,
                content_hash=item.content_hash,
                remote_id=post.remote_id,
                remote_url=post.remote_url,
            )
            return SyncOutcome.succeeded(action.kind, record, attempts)

    def _publish(self, action: SyncAction) -> PublishedPost:
        if action.kind == ActionKind.CREATE:
            return self.publisher.create(action.item)
        return self.publisher.update(action.remote_id, action.item)
