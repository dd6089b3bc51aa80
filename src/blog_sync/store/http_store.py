"""HTTP key/value state store.

Stores each repository's state document in a remote service that supports
conditional writes through entity tags:

* ``GET  {url}/repositories/{id}/state`` -- 200 with the document and an
  ``ETag``, or 404 when nothing is stored yet.
* ``PUT  {url}/repositories/{id}/state`` -- sent with
  ``If-Match: "<version>"`` (or ``If-None-Match: *`` for the first write);
  the service answers 409/412 when the stored version has moved on.
"""

from __future__ import annotations

import logging
from urllib.parse import quote

import requests
from pydantic import ValidationError

from blog_sync.config import Config
from blog_sync.sync.errors import ConflictError, StoreUnavailable
from blog_sync.sync.models import RepositoryState, utc_now

logger = logging.getLogger(__name__)


def _parse_etag(value: str | None) -> str | None:
    if not value:
        return None
    value = value.strip()
    if value.startswith("W/"):
        value = value[2:]
    return value.strip('"') or None


class HttpStateStore:
    """State store backed by a remote service with versioned writes.

    Args:
        config: Runtime config; uses ``state_url``, ``state_token`` (falls
            back to ``api_token``), ``insecure`` and ``request_timeout``.
    """

    def __init__(self, config: Config) -> None:
        if not config.state_url:
            raise ValueError("HttpStateStore requires config.state_url")
        self.base_url = config.state_url.rstrip("/")
        self.timeout = (10, config.request_timeout)
        self.session = requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {config.state_token or config.api_token}",
                "Accept": "application/json",
            }
        )
        self.session.verify = not config.insecure

    def _url(self, repository_id: str) -> str:
        return f"{self.base_url}/repositories/{quote(repository_id, safe='')}/state"

    def _send(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            return self.session.request(
                method, url, timeout=self.timeout, **kwargs
            )
        except requests.RequestException as exc:
            raise StoreUnavailable(
                f"State service {method} {url} failed: {exc}"
            ) from exc

    @staticmethod
    def _decode(
        response: requests.Response, fallback_version: str | None = None
    ) -> RepositoryState:
        try:
            state = RepositoryState.from_document(response.json())
        except (ValueError, KeyError, TypeError, ValidationError) as exc:
            raise StoreUnavailable(
                f"State service returned an invalid document: {exc}"
            ) from exc
        version = (
            _parse_etag(response.headers.get("ETag"))
            or state.version
            or fallback_version
        )
        return state.model_copy(update={"version": version})

    def retrieve(self, repository_id: str) -> RepositoryState | None:
        """Fetch the stored state, or ``None`` on 404."""
        url = self._url(repository_id)
        response = self._send("GET", url)
        if response.status_code == 404:
            logger.debug("No stored state for %s", repository_id)
            return None
        if response.status_code != 200:
            raise StoreUnavailable(
                f"State service returned {response.status_code} for {url}"
            )
        return self._decode(response)

    def persist(self, state: RepositoryState) -> RepositoryState:
        """Conditionally write *state*; see the module docstring."""
        url = self._url(state.repository_id)
        if state.version is None:
            headers = {"If-None-Match": "*"}
        else:
            headers = {"If-Match": f'"{state.version}"'}

        response = self._send(
            "PUT", url, json=state.to_document(), headers=headers
        )

        if response.status_code in (409, 412):
            raise ConflictError(
                state.repository_id,
                state.version,
                _parse_etag(response.headers.get("ETag")),
            )
        if not 200 <= response.status_code < 300:
            raise StoreUnavailable(
                f"State service returned {response.status_code} for {url}"
            )

        if response.content:
            return self._decode(response)

        new_version = _parse_etag(response.headers.get("ETag"))
        if new_version is None:
            raise StoreUnavailable(
                f"State service accepted the write to {url} "
                "but returned no version"
            )
        return state.model_copy(
            update={"version": new_version, "updated_at": utc_now()}
        )
