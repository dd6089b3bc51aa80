"""Exception taxonomy for the sync engine.

- ``StoreUnavailable`` -- the state store could not be reached, read, or
  written.  Fatal for the run.
- ``ConflictError`` -- a conditional write was rejected because the stored
  version advanced since it was retrieved.
- ``PublishError`` -- the publishing service rejected a create/update.
  ``transient`` distinguishes retryable infrastructure errors from
  permanent ones.
- ``RemoteNotFound`` -- an update referenced a post that no longer exists.
  Always permanent.
- ``SyncRunError`` -- the run as a whole failed.  Carries the partial
  report when publishing already happened.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import SyncReport


class SyncError(Exception):
    """Base class for all blog-sync errors."""


class StoreUnavailable(SyncError):
    """State store transport, auth, or decode failure."""


class ConflictError(SyncError):
    """Optimistic-concurrency check failed on persist.

    Args:
        repository_id: Repository whose state was being written.
        expected: Version token the writer based its changes on.
        actual: Version token currently held by the store.
    """

    def __init__(
        self,
        repository_id: str,
        expected: str | None,
        actual: str | None,
    ) -> None:
        self.repository_id = repository_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"State for '{repository_id}' changed concurrently "
            f"(expected version {expected!r}, found {actual!r})"
        )


class PublishError(SyncError):
    """The publishing service failed to create or update a post.

    Args:
        message: Human-readable reason.
        transient: ``True`` for timeouts, rate limiting, and 5xx responses.
        status_code: HTTP status code, when one was received.
    """

    def __init__(
        self,
        message: str,
        transient: bool = False,
        status_code: int | None = None,
    ) -> None:
        self.transient = transient
        self.status_code = status_code
        super().__init__(message)


class RemoteNotFound(PublishError):
    """The remote post referenced by an update no longer exists."""

    def __init__(self, remote_id: str, status_code: int | None = 404) -> None:
        self.remote_id = remote_id
        super().__init__(
            f"Remote post '{remote_id}' not found",
            transient=False,
            status_code=status_code,
        )


class SyncRunError(SyncError):
    """A run failed as a whole.

    Args:
        message: Human-readable reason.
        report: Report for the outcomes gathered before the failure, or
            ``None`` when nothing was published.
    """

    def __init__(
        self, message: str, report: SyncReport | None = None
    ) -> None:
        self.report = report
        super().__init__(message)
