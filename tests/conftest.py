"""Shared pytest fixtures and fakes for blog-sync tests."""

from __future__ import annotations

import threading
import uuid
from typing import Callable, Dict, List, Optional

import pytest

from blog_sync.config import Config
from blog_sync.sync.errors import ConflictError, PublishError, RemoteNotFound
from blog_sync.sync.models import (
    ContentItem,
    PublishedPost,
    RepositoryState,
    utc_now,
)


class FakePublisher:
    """In-memory publishing service.

    ``failures`` maps a path to a list of exceptions raised on successive
    calls for that path; once the list is exhausted calls succeed.
    """

    def __init__(
        self, failures: Optional[Dict[str, List[Exception]]] = None
    ) -> None:
        self.posts: Dict[str, ContentItem] = {}
        self.calls: List[tuple] = []
        self.failures = {k: list(v) for k, v in (failures or {}).items()}
        self._counter = 0
        self._lock = threading.Lock()

    def _maybe_fail(self, path: str) -> None:
        pending = self.failures.get(path)
        if pending:
            raise pending.pop(0)

    def create(self, item: ContentItem) -> PublishedPost:
        with self._lock:
            self.calls.append(("create", item.path))
            self._maybe_fail(item.path)
            self._counter += 1
            remote_id = f"post-{self._counter}"
            self.posts[remote_id] = item
        return PublishedPost(
            remote_id=remote_id,
            remote_url=f"https://blog.example.com/p/{remote_id}",
        )

    def update(self, remote_id: str, item: ContentItem) -> PublishedPost:
        with self._lock:
            self.calls.append(("update", item.path, remote_id))
            self._maybe_fail(item.path)
            if remote_id not in self.posts:
                raise RemoteNotFound(remote_id)
            self.posts[remote_id] = item
        return PublishedPost(
            remote_id=remote_id,
            remote_url=f"https://blog.example.com/p/{remote_id}",
        )

    def calls_for(self, kind: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == kind]


class MemoryStateStore:
    """In-memory state store with compare-and-swap semantics.

    ``before_persist`` hooks run (and are consumed) one per ``persist``
    call before the version check, so tests can inject a competing write.
    """

    def __init__(self) -> None:
        self.states: Dict[str, RepositoryState] = {}
        self.persist_calls = 0
        self.retrieve_calls = 0
        self.before_persist: List[Callable[["MemoryStateStore"], None]] = []
        self.retrieve_error: Optional[Exception] = None
        self.persist_error: Optional[Exception] = None

    def retrieve(self, repository_id: str) -> Optional[RepositoryState]:
        self.retrieve_calls += 1
        if self.retrieve_error is not None:
            raise self.retrieve_error
        return self.states.get(repository_id)

    def persist(self, state: RepositoryState) -> RepositoryState:
        self.persist_calls += 1
        if self.before_persist:
            self.before_persist.pop(0)(self)
        if self.persist_error is not None:
            raise self.persist_error
        current = self.states.get(state.repository_id)
        current_version = current.version if current else None
        if current_version != state.version:
            raise ConflictError(
                state.repository_id, state.version, current_version
            )
        stored = state.model_copy(
            update={"version": uuid.uuid4().hex, "updated_at": utc_now()}
        )
        self.states[state.repository_id] = stored
        return stored

    def force_write(self, state: RepositoryState) -> RepositoryState:
        """Write *state* unconditionally, as another run would."""
        stored = state.model_copy(update={"version": uuid.uuid4().hex})
        self.states[state.repository_id] = stored
        return stored


def make_item(path: str, body: str = "Hello world", **metadata) -> ContentItem:
    metadata.setdefault("title", path.rsplit("/", 1)[-1])
    return ContentItem(path=path, body=body, metadata=metadata)


def transient(message: str = "503 Service Unavailable") -> PublishError:
    return PublishError(message, transient=True, status_code=503)


@pytest.fixture
def mock_config():
    """Create a Config instance for testing."""
    return Config(
        api_url="https://api.blog.example.com/v1",
        api_token="secret-token",
        insecure=False,
    )


@pytest.fixture
def publisher():
    return FakePublisher()


@pytest.fixture
def store():
    return MemoryStateStore()
