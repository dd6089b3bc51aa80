import json
import logging
import threading
from typing import Any

import requests

from ..config import Config
from ..sync.errors import PublishError, RemoteNotFound
from ..sync.models import ContentItem, PublishedPost
from ..validators import validate_post, validate_remote_id

logger = logging.getLogger(__name__)

# Statuses worth retrying: request timeout, too early, rate limited, server errors
_TRANSIENT_STATUSES = frozenset({408, 425, 429})

# Metadata keys mapped onto dedicated payload fields
_PAYLOAD_KEYS = frozenset({"title", "description", "subtitle", "tags"})


class PublisherClient:
    """Client for the remote publishing service's post API.

    Translates transport failures into ``PublishError`` so the executor can
    tell retryable failures from permanent ones.  Performs no retries of
    its own.
    """

    def __init__(self, config: Config):
        self.config = config
        self._thread_local = threading.local()
        self.api_url = config.api_url.rstrip("/")

    @property
    def session(self) -> requests.Session:
        """The current thread's session."""
        return self._get_session()

    def _get_session(self) -> requests.Session:
        """Get or create a thread-local requests.Session."""
        if not hasattr(self._thread_local, "session"):
            self._thread_local.session = self._create_session()
        return self._thread_local.session

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update(
            {
                "Authorization": f"Bearer {self.config.api_token}",
                "Accept": "application/json",
            }
        )
        session.verify = not self.config.insecure
        return session

    def _request(
        self, method: str, path: str, payload: dict | None = None
    ) -> requests.Response:
        """Send a request and map transport errors onto ``PublishError``."""
        url = f"{self.api_url}{path}"
        try:
            response = self._get_session().request(
                method,
                url,
                json=payload,
                timeout=(10, self.config.request_timeout),
            )
        except requests.Timeout as exc:
            raise PublishError(
                f"{method} {url} timed out: {exc}", transient=True
            ) from exc
        except requests.ConnectionError as exc:
            raise PublishError(
                f"{method} {url} failed to connect: {exc}", transient=True
            ) from exc
        except requests.RequestException as exc:
            raise PublishError(f"{method} {url} failed: {exc}") from exc

        logger.debug("%s %s -> %d", method, url, response.status_code)
        return response

    @staticmethod
    def _raise_for_status(response: requests.Response) -> None:
        status = response.status_code
        if status < 400:
            return
        detail = response.text[:200].strip() or response.reason
        transient = status in _TRANSIENT_STATUSES or status >= 500
        raise PublishError(
            f"Publishing service returned {status}: {detail}",
            transient=transient,
            status_code=status,
        )

    @staticmethod
    def _parse_post(response: requests.Response) -> PublishedPost:
        """Extract post identity from a create/update response.

        Accepts either a bare post object or one wrapped in ``{"post": ...}``.
        """
        try:
            data = response.json()
        except ValueError as exc:
            raise PublishError(
                f"Publishing service returned invalid JSON: {exc}",
                status_code=response.status_code,
            ) from exc

        if isinstance(data, dict) and isinstance(data.get("post"), dict):
            data = data["post"]
        if not isinstance(data, dict) or not data.get("id") or not data.get("url"):
            raise PublishError(
                "Publishing service response is missing 'id' or 'url'",
                status_code=response.status_code,
            )
        return PublishedPost(remote_id=str(data["id"]), remote_url=str(data["url"]))

    def build_payload(self, item: ContentItem) -> dict[str, Any]:
        """Build the JSON body for a create/update request."""
        meta = item.metadata
        payload: dict[str, Any] = {
            "title": item.title,
            "content_markdown": item.body,
            "tags": list(meta.get("tags") or []),
        }
        subtitle = meta.get("description") or meta.get("subtitle")
        if subtitle:
            payload["subtitle"] = str(subtitle)
        extra = {k: v for k, v in meta.items() if k not in _PAYLOAD_KEYS}
        if extra:
            # dates from front matter are not JSON types
            payload["metadata"] = json.loads(json.dumps(extra, default=str))
        if self.config.publication_id:
            payload["publication_id"] = self.config.publication_id
        return payload

    def _check_item(self, item: ContentItem) -> None:
        is_valid, error_msg = validate_post(item)
        if not is_valid:
            raise PublishError(f"Invalid post: {error_msg}")

    def create(self, item: ContentItem) -> PublishedPost:
        """
        Publish a new post.

        Args:
            item: Content to publish

        Returns:
            Identity of the created post

        Raises:
            PublishError: On validation failure or any service error
        """
        self._check_item(item)
        response = self._request("POST", "/posts", self.build_payload(item))
        self._raise_for_status(response)
        return self._parse_post(response)

    def update(self, remote_id: str, item: ContentItem) -> PublishedPost:
        """
        Replace the content of an existing post.

        Args:
            remote_id: Identifier returned when the post was created
            item: New content

        Returns:
            Identity of the updated post

        Raises:
            RemoteNotFound: If the post no longer exists
            PublishError: On validation failure or any other service error
        """
        is_valid, error_msg = validate_remote_id(remote_id)
        if not is_valid:
            raise PublishError(f"Invalid remote id: {error_msg}")
        self._check_item(item)

        response = self._request(
            "PUT", f"/posts/{remote_id}", self.build_payload(item)
        )
        if response.status_code in (404, 410):
            raise RemoteNotFound(remote_id, status_code=response.status_code)
        self._raise_for_status(response)
        return self._parse_post(response)

    def validate_connection(self) -> str:
        """
        Validate credentials by fetching the authenticated account.

        Returns:
            The account name reported by the service
        """
        response = self._request("GET", "/me")
        self._raise_for_status(response)
        try:
            data = response.json()
        except ValueError:
            return ""
        if isinstance(data, dict):
            return str(data.get("username") or data.get("name") or "")
        return ""
