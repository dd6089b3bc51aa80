"""State store contract."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from blog_sync.sync.models import RepositoryState


@runtime_checkable
class StateStore(Protocol):
    """Durable home of each repository's path-to-post mapping.

    Implementations must reject stale writes: ``persist`` succeeds only if
    the stored version still equals ``state.version`` (or nothing is stored
    yet when ``state.version`` is ``None``).
    """

    def retrieve(self, repository_id: str) -> RepositoryState | None:
        """Return the stored state, or ``None`` if none exists yet.

        Raises:
            StoreUnavailable: On transport, auth, or decode failures.
        """
        ...

    def persist(self, state: RepositoryState) -> RepositoryState:
        """Write *state* conditionally on its version.

        Returns:
            The stored state with a new version and ``updated_at``.

        Raises:
            ConflictError: If the stored version has advanced.
            StoreUnavailable: On transport failures.
        """
        ...
