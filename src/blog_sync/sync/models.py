"""Pydantic models for the publish sync engine.

Defines the core data contracts used across all sync modules:

- ``ContentItem``: One candidate post read from disk this run.
- ``StateRecord``: Durable mapping from a local path to a remote post.
- ``RepositoryState``: Full persisted mapping for one repository.
- ``SyncAction``: Planned operation (create, update, or skip) for a path.
- ``SyncOutcome``: Result of executing one action.
- ``SyncReport``: Aggregate results for a full sync run.

All models are frozen (immutable) for safety.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, model_validator


def utc_now() -> str:
    """Current UTC time as an ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()


class ContentFormat(str, Enum):
    """Source formats understood by the content loader."""

    MARKDOWN = "markdown"
    HTML = "html"


class ContentItem(BaseModel):
    """One candidate post.

    Attributes:
        path: POSIX path relative to the source root, unique within a run.
        format: Source format the body was converted from.
        body: Normalised Markdown body.
        metadata: Front matter / extracted metadata (title, tags, ...).
    """

    path: str
    format: ContentFormat = ContentFormat.MARKDOWN
    body: str
    metadata: dict[str, Any] = {}

    model_config = {"frozen": True}

    @property
    def content_hash(self) -> str:
        """Fingerprint of body and metadata."""
        from .fingerprint import fingerprint

        return fingerprint(self)

    @property
    def title(self) -> str:
        return str(self.metadata.get("title") or "").strip()


class StateRecord(BaseModel):
    """Mapping entry from a local path to its remote post.

    Attributes:
        path: POSIX path relative to the source root.
        content_hash: Fingerprint the post was last published at.
        remote_id: Identifier assigned by the publishing service.
        remote_url: Public URL of the published post.
    """

    path: str
    content_hash: str
    remote_id: str
    remote_url: str

    model_config = {"frozen": True}


class RepositoryState(BaseModel):
    """Persisted mapping for one repository.

    Attributes:
        repository_id: Stable repository identity (e.g. ``owner/name``).
        repository_name: Display name of the repository.
        records: State records keyed by path.
        created_at: ISO 8601 timestamp of the first persist.
        updated_at: ISO 8601 timestamp of the latest persist.
        version: Opaque optimistic-concurrency token.  ``None`` until the
            state has been persisted once.
    """

    repository_id: str
    repository_name: str = ""
    records: dict[str, StateRecord] = {}
    created_at: str
    updated_at: str
    version: str | None = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_record_keys(self) -> RepositoryState:
        for key, record in self.records.items():
            if key != record.path:
                raise ValueError(
                    f"Record key '{key}' does not match record path "
                    f"'{record.path}'"
                )
        return self

    @classmethod
    def empty(
        cls, repository_id: str, repository_name: str = ""
    ) -> RepositoryState:
        """Return a never-persisted state with no records."""
        now = utc_now()
        return cls(
            repository_id=repository_id,
            repository_name=repository_name,
            records={},
            created_at=now,
            updated_at=now,
            version=None,
        )

    def record_for(self, path: str) -> StateRecord | None:
        return self.records.get(path)

    def with_records(
        self, records: dict[str, StateRecord]
    ) -> RepositoryState:
        """Return a copy holding *records* instead of the current ones."""
        return self.model_copy(update={"records": dict(records)})

    def to_document(self) -> dict[str, Any]:
        """Serialise to a JSON-compatible dict.

        Records are written as a list sorted by path so documents diff
        cleanly.
        """
        return {
            "repository_id": self.repository_id,
            "repository_name": self.repository_name,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "version": self.version,
            "records": [
                self.records[path].model_dump()
                for path in sorted(self.records)
            ],
        }

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> RepositoryState:
        """Inverse of ``to_document()``."""
        records: dict[str, StateRecord] = {}
        for raw in doc.get("records") or []:
            record = StateRecord(**raw)
            if record.path in records:
                raise ValueError(
                    f"Duplicate state record for path '{record.path}'"
                )
            records[record.path] = record
        return cls(
            repository_id=doc["repository_id"],
            repository_name=doc.get("repository_name") or "",
            records=records,
            created_at=doc["created_at"],
            updated_at=doc["updated_at"],
            version=doc.get("version"),
        )


class ActionKind(str, Enum):
    """Possible sync operations for a path."""

    CREATE = "create"
    UPDATE = "update"
    SKIP = "skip"


class SyncAction(BaseModel):
    """Planned operation for one path.

    Use the ``create``, ``update`` and ``skip`` constructors rather than
    building instances directly.

    Attributes:
        kind: Operation to perform.
        path: Path the action applies to.
        item: Content to publish (create/update only).
        remote_id: Existing remote post to update (update only).
        record: Existing state record (skip only).
    """

    kind: ActionKind
    path: str
    item: ContentItem | None = None
    remote_id: str | None = None
    record: StateRecord | None = None

    model_config = {"frozen": True}

    @classmethod
    def create(cls, item: ContentItem) -> SyncAction:
        return cls(kind=ActionKind.CREATE, path=item.path, item=item)

    @classmethod
    def update(cls, item: ContentItem, remote_id: str) -> SyncAction:
        return cls(
            kind=ActionKind.UPDATE,
            path=item.path,
            item=item,
            remote_id=remote_id,
        )

    @classmethod
    def skip(cls, record: StateRecord) -> SyncAction:
        return cls(kind=ActionKind.SKIP, path=record.path, record=record)


class PublishedPost(BaseModel):
    """Identity of a post returned by the publishing service."""

    remote_id: str
    remote_url: str

    model_config = {"frozen": True}


class FailureKind(str, Enum):
    """Classification of a failed action."""

    TRANSIENT = "transient"
    PERMANENT = "permanent"
    NOT_FOUND = "not_found"


class SyncOutcome(BaseModel):
    """Result of executing one action.

    Attributes:
        path: Path the action applied to.
        action: Action that was executed.
        success: Whether the action succeeded.
        record: State record to commit (success only).
        error: Failure reason (failure only).
        failure_kind: Failure classification (failure only).
        attempts: Number of publisher calls made (0 for skips).
    """

    path: str
    action: ActionKind
    success: bool
    record: StateRecord | None = None
    error: str | None = None
    failure_kind: FailureKind | None = None
    attempts: int = 0

    model_config = {"frozen": True}

    @classmethod
    def succeeded(
        cls, action: ActionKind, record: StateRecord, attempts: int = 0
    ) -> SyncOutcome:
        return cls(
            path=record.path,
            action=action,
            success=True,
            record=record,
            attempts=attempts,
        )

    @classmethod
    def failed(
        cls,
        path: str,
        action: ActionKind,
        error: str,
        failure_kind: FailureKind,
        attempts: int = 1,
    ) -> SyncOutcome:
        return cls(
            path=path,
            action=action,
            success=False,
            error=error,
            failure_kind=failure_kind,
            attempts=attempts,
        )


class SyncReport(BaseModel):
    """Aggregate report for a full sync run.

    Attributes:
        repository_id: Repository the run synchronised.
        dry_run: Whether this was a dry-run (nothing published).
        outcomes: Per-path outcomes in discovery order.
        started_at: ISO 8601 timestamp when the run started.
        completed_at: ISO 8601 timestamp when the run completed.
        persisted: Whether the resulting state was durably stored.
        warnings: Run-level warnings for the caller.
    """

    repository_id: str
    dry_run: bool = False
    outcomes: list[SyncOutcome] = []
    started_at: str
    completed_at: str | None = None
    persisted: bool = False
    warnings: list[str] = []

    model_config = {"frozen": True}

    def _succeeded(self, action: ActionKind) -> list[SyncOutcome]:
        return [
            o for o in self.outcomes if o.success and o.action == action
        ]

    @property
    def created(self) -> list[SyncOutcome]:
        """Successful creates."""
        return self._succeeded(ActionKind.CREATE)

    @property
    def updated(self) -> list[SyncOutcome]:
        """Successful updates."""
        return self._succeeded(ActionKind.UPDATE)

    @property
    def skipped(self) -> list[SyncOutcome]:
        """Unchanged paths."""
        return self._succeeded(ActionKind.SKIP)

    @property
    def failed(self) -> list[SyncOutcome]:
        """Outcomes where success is False."""
        return [o for o in self.outcomes if not o.success]

    @property
    def needs_attention(self) -> list[SyncOutcome]:
        """Failures whose stored mapping points at a deleted remote post."""
        return [
            o
            for o in self.failed
            if o.failure_kind == FailureKind.NOT_FOUND
        ]

    @property
    def has_failures(self) -> bool:
        return bool(self.failed)

    @property
    def exit_code(self) -> int:
        """Process exit status: 0 when every path succeeded or was skipped."""
        return 1 if self.has_failures else 0

    def summary(self) -> str:
        """Format a human-readable summary of the sync run.

        Returns:
            Multi-line summary string with counts by outcome.
        """
        lines = [
            f"Sync report for '{self.repository_id}'"
            + (" (dry run)" if self.dry_run else ""),
            f"  Created: {len(self.created)}",
            f"  Updated: {len(self.updated)}",
            f"  Skipped: {len(self.skipped)}",
            f"  Failed:  {len(self.failed)}",
            f"  Total:   {len(self.outcomes)}",
        ]
        return "\n".join(lines)
