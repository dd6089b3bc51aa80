"""Per-path action planning.

Compares each content item's fingerprint with the hash stored for its
path and decides whether the post must be created, updated, or skipped.

Paths that are in the stored state but no longer on disk are left alone:
removing a local file never unpublishes the remote post.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from .models import ContentItem, RepositoryState, SyncAction

logger = logging.getLogger(__name__)


def plan(
    items: Sequence[ContentItem], state: RepositoryState
) -> list[SyncAction]:
    """Compute one action per item, in item order.

    Args:
        items: Content items discovered this run.
        state: Last known state for the repository.

    Returns:
        ``create`` when the path has no record, ``update`` when the stored
        hash differs, ``skip`` otherwise.

    Raises:
        ValueError: If two items share a path.
    """
    actions: list[SyncAction] = []
    seen: set[str] = set()

    for item in items:
        if item.path in seen:
            raise ValueError(f"Duplicate content path: {item.path}")
        seen.add(item.path)

        record = state.record_for(item.path)
        if record is None:
            actions.append(SyncAction.create(item))
            continue

        if record.content_hash != item.content_hash:
            logger.debug(
                "Content changed for %s (%s -> %s)",
                item.path,
                record.content_hash[:12],
                item.content_hash[:12],
            )
            actions.append(SyncAction.update(item, record.remote_id))
        else:
            actions.append(SyncAction.skip(record))

    untracked = set(state.records) - seen
    if untracked:
        logger.info(
            "%d published path(s) no longer present locally; leaving them published",
            len(untracked),
        )

    return actions
