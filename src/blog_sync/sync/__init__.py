"""Publish sync engine.

Public API for publishing a repository's Markdown and HTML posts to a
remote publishing service exactly once per content change.

Architecture
------------
Each path is tracked by a durable record holding the remote post id and
the fingerprint it was last published at.  A run compares fresh
fingerprints against those records: unknown paths are created, changed
ones updated in place, unchanged ones skipped.  The state is written once
per run with optimistic concurrency, so two runs against the same
repository never silently lose each other's records.

Modules:

- ``engine``      -- ``SyncEngine``: orchestrates a full run.
- ``planner``     -- ``plan()``: create / update / skip decisions.
- ``executor``    -- ``SyncExecutor``: bounded-concurrency publishing with
  per-item retries.
- ``fingerprint`` -- content hashing and body normalisation.
- ``loader``      -- source files to ``ContentItem`` objects.
- ``models``      -- ``ContentItem``, ``StateRecord``, ``RepositoryState``,
  ``SyncAction``, ``SyncOutcome``, ``SyncReport``: core data contracts.
- ``errors``      -- exception hierarchy.
- ``reporter``    -- Human-readable and JSON report formatting.

Usage example
-------------
::

    from blog_sync.config_schema import SyncSettings
    from blog_sync.core.client import PublisherClient
    from blog_sync.store import create_state_store
    from blog_sync.sync import SyncEngine, format_sync_report

    settings = SyncSettings(repository_id="octo/blog", source="posts/")
    engine = SyncEngine(
        publisher=PublisherClient(config),
        store=create_state_store(config),
        settings=settings,
    )

    # Dry-run first to preview changes
    preview = engine.run(dry_run=True)
    print(format_dry_run_preview(preview))

    report = engine.run()
    print(format_sync_report(report))
"""

from .engine import SyncEngine, merge_outcomes
from .errors import (
    ConflictError,
    PublishError,
    RemoteNotFound,
    StoreUnavailable,
    SyncError,
    SyncRunError,
)
from .executor import SyncExecutor
from .fingerprint import fingerprint, normalize_body
from .models import (
    ActionKind,
    ContentItem,
    RepositoryState,
    StateRecord,
    SyncAction,
    SyncOutcome,
    SyncReport,
)
from .planner import plan
from .reporter import (
    format_dry_run_preview,
    format_sync_report,
    report_to_json,
)

__all__ = [
    "ActionKind",
    "ConflictError",
    "ContentItem",
    "PublishError",
    "RemoteNotFound",
    "RepositoryState",
    "StateRecord",
    "StoreUnavailable",
    "SyncAction",
    "SyncEngine",
    "SyncError",
    "SyncExecutor",
    "SyncOutcome",
    "SyncReport",
    "SyncRunError",
    "fingerprint",
    "format_dry_run_preview",
    "format_sync_report",
    "merge_outcomes",
    "normalize_body",
    "plan",
    "report_to_json",
]
