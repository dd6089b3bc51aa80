"""Core sync engine that orchestrates one publishing run.

The ``SyncEngine`` ties together loader, state store, planner, executor,
and publisher into a complete run.  It:

1. Loads the content items (unless the caller supplies them).
2. Retrieves the repository state, synthesising an empty one on first run.
3. Plans one action per item.
4. Executes the actions with bounded concurrency.
5. Merges successful outcomes into the state.
6. Persists the state once, with a single retrieve-merge-retry cycle when
   another run wrote in the meantime.
7. Builds and returns a ``SyncReport``.

Error handling is per-item: a single post failure does not abort the run.
Store failures abort the run before anything is persisted and raise
``SyncRunError``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path

from blog_sync.config_schema import SyncSettings
from blog_sync.core.async_utils import run_sync
from blog_sync.store.base import StateStore

from .errors import (
    ConflictError,
    StoreUnavailable,
    SyncError,
    SyncRunError,
)
from .executor import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_PARALLEL,
    Publisher,
    SyncExecutor,
)
from .loader import load_content_items
from .models import (
    ActionKind,
    ContentItem,
    RepositoryState,
    StateRecord,
    SyncAction,
    SyncOutcome,
    SyncReport,
    utc_now,
)
from .planner import plan

logger = logging.getLogger(__name__)


def merge_outcomes(
    state: RepositoryState,
    outcomes: Sequence[SyncOutcome],
    rebase: bool = False,
) -> tuple[RepositoryState, list[str]]:
    """Fold *outcomes* into *state*.

    Successful creates and updates insert or replace their record; failures
    leave any existing record untouched.

    With ``rebase=True`` the outcomes are being re-applied on top of a state
    written by another run: a skip only restores its record when that run
    removed it, and a create replacing a different remote post is reported
    as a possible duplicate.

    Returns:
        The merged state and any warnings for the caller.
    """
    records: dict[str, StateRecord] = dict(state.records)
    warnings: list[str] = []

    for outcome in outcomes:
        if not outcome.success or outcome.record is None:
            continue
        existing = records.get(outcome.path)

        if outcome.action == ActionKind.SKIP:
            if rebase and existing is not None:
                continue
            records[outcome.path] = outcome.record
            continue

        if (
            rebase
            and outcome.action == ActionKind.CREATE
            and existing is not None
            and existing.remote_id != outcome.record.remote_id
        ):
            warnings.append(
                f"{outcome.path}: a concurrent run also published this path "
                f"({existing.remote_url}); keeping {outcome.record.remote_url}, "
                "the other post is a likely duplicate"
            )
        records[outcome.path] = outcome.record

    return state.with_records(records), warnings


def _planned_outcome(action: SyncAction) -> SyncOutcome:
    if action.kind == ActionKind.SKIP:
        return SyncOutcome.succeeded(ActionKind.SKIP, action.record)
    return SyncOutcome(path=action.path, action=action.kind, success=True)


class SyncEngine:
    """Orchestrate a full publishing run for one repository.

    Args:
        publisher: Publishing service client.
        store: State store holding the path-to-post mapping.
        settings: Repository identity, source directory, formats and
            exclusions.  ``repository_id`` must be set.
        max_parallel: Maximum concurrent publisher calls.
        max_attempts: Maximum calls per post on transient failures.
    """

    def __init__(
        self,
        publisher: Publisher,
        store: StateStore,
        settings: SyncSettings,
        max_parallel: int = DEFAULT_MAX_PARALLEL,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        if not settings.repository_id:
            raise ValueError("SyncSettings.repository_id is required")
        self.publisher = publisher
        self.store = store
        self.settings = settings
        self.executor = SyncExecutor(
            publisher, max_parallel=max_parallel, max_attempts=max_attempts
        )

    @property
    def repository_id(self) -> str:
        return self.settings.repository_id or ""

    # ------------------------------------------------------------------
    # Main entry points
    # ------------------------------------------------------------------

    def run(
        self,
        items: Sequence[ContentItem] | None = None,
        dry_run: bool = False,
    ) -> SyncReport:
        """Execute a full run from synchronous code.

        Args:
            items: Content to synchronise.  Loaded from
                ``settings.source`` when ``None``.
            dry_run: If ``True``, plan but neither publish nor persist.

        Returns:
            A ``SyncReport`` summarising what was (or would be) done.

        Raises:
            SyncRunError: If the state could not be retrieved or persisted.
        """
        return asyncio.run(self.run_async(items, dry_run=dry_run))

    async def run_async(
        self,
        items: Sequence[ContentItem] | None = None,
        dry_run: bool = False,
    ) -> SyncReport:
        """Async variant of ``run()``."""
        started_at = utc_now()

        if items is None:
            items = await run_sync(
                load_content_items, Path(self.settings.source), self.settings
            )

        stored = await self._retrieve()
        if stored is None:
            logger.info(
                "No stored state for %s; treating as first run",
                self.repository_id,
            )
            state = RepositoryState.empty(
                self.repository_id, self.settings.repository_name or ""
            )
        else:
            state = stored

        actions = plan(items, state)

        if dry_run:
            return SyncReport(
                repository_id=self.repository_id,
                dry_run=True,
                outcomes=[_planned_outcome(a) for a in actions],
                started_at=started_at,
                completed_at=utc_now(),
            )

        outcomes = await self.executor.execute(actions)
        warnings: list[str] = []

        merged, _ = merge_outcomes(state, outcomes)
        if stored is not None and merged.records == stored.records:
            logger.info("No state changes for %s", self.repository_id)
        else:
            try:
                await self._persist(merged, outcomes, warnings)
            except SyncError as exc:
                report = self._report(
                    outcomes,
                    started_at,
                    persisted=False,
                    warnings=warnings + [self._unsaved_warning(outcomes)],
                )
                raise SyncRunError(str(exc), report=report) from exc

        report = self._report(
            outcomes, started_at, persisted=True, warnings=warnings
        )
        logger.info(
            "Sync finished for %s: %d created, %d updated, %d skipped, %d failed",
            self.repository_id,
            len(report.created),
            len(report.updated),
            len(report.skipped),
            len(report.failed),
        )
        return report

    # ------------------------------------------------------------------
    # State store interaction
    # ------------------------------------------------------------------

    async def _retrieve(self) -> RepositoryState | None:
        try:
            return await run_sync(self.store.retrieve, self.repository_id)
        except StoreUnavailable as exc:
            raise SyncRunError(
                f"Could not retrieve state for {self.repository_id}: {exc}"
            ) from exc

    async def _persist(
        self,
        merged: RepositoryState,
        outcomes: Sequence[SyncOutcome],
        warnings: list[str],
    ) -> None:
        """Persist *merged*, retrying once on a version conflict.

        Warnings raised while re-merging are appended to *warnings* before
        the retry, so they are kept even when the retry fails.

        Raises:
            SyncRunError: On a second conflict or a store failure.
        """
        try:
            await run_sync(self.store.persist, merged)
            return
        except ConflictError as exc:
            logger.warning("%s; re-merging on the latest state", exc)

        latest = await self._retrieve_for_retry()
        rebased, rebase_warnings = merge_outcomes(
            latest, outcomes, rebase=True
        )
        for warning in rebase_warnings:
            logger.warning(warning)
        warnings.extend(rebase_warnings)

        try:
            await run_sync(self.store.persist, rebased)
        except ConflictError as exc:
            raise SyncRunError(
                f"State for {self.repository_id} changed again during retry: {exc}"
            ) from exc
        except StoreUnavailable as exc:
            raise SyncRunError(
                f"Could not persist state for {self.repository_id}: {exc}"
            ) from exc

    async def _retrieve_for_retry(self) -> RepositoryState:
        try:
            latest = await run_sync(self.store.retrieve, self.repository_id)
        except StoreUnavailable as exc:
            raise SyncRunError(
                f"Could not re-read state for {self.repository_id}: {exc}"
            ) from exc
        if latest is None:
            return RepositoryState.empty(
                self.repository_id, self.settings.repository_name or ""
            )
        return latest

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _report(
        self,
        outcomes: Sequence[SyncOutcome],
        started_at: str,
        persisted: bool,
        warnings: list[str],
    ) -> SyncReport:
        return SyncReport(
            repository_id=self.repository_id,
            outcomes=list(outcomes),
            started_at=started_at,
            completed_at=utc_now(),
            persisted=persisted,
            warnings=warnings,
        )

    @staticmethod
    def _unsaved_warning(outcomes: Sequence[SyncOutcome]) -> str:
        published = [
            o.path
            for o in outcomes
            if o.success and o.action != ActionKind.SKIP
        ]
        if not published:
            return "Sync state was not saved; no posts were published this run."
        return (
            f"Sync state was not saved; {len(published)} published post(s) "
            "are not recorded and a re-run may publish them again: "
            + ", ".join(published)
        )
