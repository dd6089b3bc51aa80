"""JSON file state store.

Keeps one state file per repository in a local directory, for example a
directory committed back to the repository by CI.

Key design choices:

* **Atomic writes** -- ``persist()`` writes to a temp file then calls
  ``os.replace()`` so readers never see partial data.
* **Compare-and-swap** -- the version check and the write happen while
  holding an exclusive lock file (``O_CREAT | O_EXCL``), so two runs can
  never both succeed from the same base version.
* **Version tokens** -- every successful write stores a fresh
  ``uuid4().hex``.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import re
import tempfile
import time
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from pydantic import ValidationError

from blog_sync.sync.errors import ConflictError, StoreUnavailable
from blog_sync.sync.models import RepositoryState, utc_now

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class FileStateStore:
    """Load and conditionally save repository state as JSON files.

    Args:
        state_dir: Directory where state files are stored (typically
            ``.blog_sync/``).
        lock_timeout: Seconds to wait for another writer's lock.
        stale_lock_after: Age in seconds after which a leftover lock file
            is considered abandoned and removed.
    """

    def __init__(
        self,
        state_dir: Path,
        lock_timeout: float = 10.0,
        stale_lock_after: float = 300.0,
    ) -> None:
        self._state_dir = Path(state_dir)
        self._lock_timeout = lock_timeout
        self._stale_lock_after = stale_lock_after

    # ------------------------------------------------------------------
    # StateStore contract
    # ------------------------------------------------------------------

    def retrieve(self, repository_id: str) -> RepositoryState | None:
        """Load the state for *repository_id*, or ``None`` if absent."""
        return self._read(self.state_path(repository_id))

    def persist(self, state: RepositoryState) -> RepositoryState:
        """Write *state* if the stored version still matches its own."""
        target = self.state_path(state.repository_id)
        try:
            self._state_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreUnavailable(
                f"Cannot create state directory {self._state_dir}: {exc}"
            ) from exc

        with self._locked(target):
            current = self._read(target)
            current_version = current.version if current else None
            if current_version != state.version:
                raise ConflictError(
                    state.repository_id, state.version, current_version
                )

            stored = state.model_copy(
                update={"version": uuid.uuid4().hex, "updated_at": utc_now()}
            )
            self._write_atomic(target, stored.to_document())

        logger.debug(
            "Persisted state for %s (version %s, %d records)",
            stored.repository_id,
            stored.version,
            len(stored.records),
        )
        return stored

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def state_path(self, repository_id: str) -> Path:
        """Return the path to the state file for *repository_id*.

        The readable part is sanitised; the digest suffix keeps ids such as
        ``a/b`` and ``a_b`` apart.
        """
        safe = _UNSAFE_CHARS.sub("_", repository_id).strip("._") or "repo"
        digest = hashlib.sha256(repository_id.encode("utf-8")).hexdigest()[:8]
        return self._state_dir / f"state_{safe}_{digest}.json"

    def _read(self, path: Path) -> RepositoryState | None:
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as fh:
                return RepositoryState.from_document(json.load(fh))
        except OSError as exc:
            raise StoreUnavailable(f"Cannot read {path}: {exc}") from exc
        except (ValueError, KeyError, TypeError, ValidationError) as exc:
            raise StoreUnavailable(
                f"State file {path} is corrupt: {exc}"
            ) from exc

    def _write_atomic(self, target: Path, document: dict) -> None:
        try:
            fd, tmp_path = tempfile.mkstemp(
                dir=str(self._state_dir), suffix=".tmp"
            )
        except OSError as exc:
            raise StoreUnavailable(
                f"Cannot write state to {self._state_dir}: {exc}"
            ) from exc
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(document, fh, indent=2)
                fh.write("\n")
            os.replace(tmp_path, target)
        except BaseException as exc:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            if isinstance(exc, OSError):
                raise StoreUnavailable(
                    f"Cannot write {target}: {exc}"
                ) from exc
            raise

    @contextmanager
    def _locked(self, target: Path) -> Iterator[None]:
        lock_path = target.with_suffix(".lock")
        deadline = time.monotonic() + self._lock_timeout
        while True:
            try:
                fd = os.open(
                    lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY
                )
                break
            except FileExistsError:
                self._break_stale_lock(lock_path)
                if time.monotonic() >= deadline:
                    raise StoreUnavailable(
                        f"Timed out waiting for state lock {lock_path}"
                    ) from None
                time.sleep(0.05)
            except OSError as exc:
                raise StoreUnavailable(
                    f"Cannot create state lock {lock_path}: {exc}"
                ) from exc

        try:
            os.write(fd, str(os.getpid()).encode("ascii"))
        except OSError as exc:
            os.close(fd)
            try:
                os.unlink(lock_path)
            except OSError:
                logger.warning("Could not remove state lock %s", lock_path)
            raise StoreUnavailable(
                f"Cannot write state lock {lock_path}: {exc}"
            ) from exc
        os.close(fd)

        try:
            yield
        finally:
            try:
                os.unlink(lock_path)
            except OSError:
                logger.warning("Could not remove state lock %s", lock_path)

    def _break_stale_lock(self, lock_path: Path) -> None:
        try:
            age = time.time() - lock_path.stat().st_mtime
        except FileNotFoundError:
            return
        if age > self._stale_lock_after:
            logger.warning(
                "Removing abandoned state lock %s (%.0fs old)",
                lock_path,
                age,
            )
            try:
                os.unlink(lock_path)
            except FileNotFoundError:
                pass
