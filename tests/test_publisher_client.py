"""Tests for PublisherClient: payloads, status mapping and error classes."""

from datetime import date
from unittest.mock import MagicMock

import pytest
import requests

from blog_sync.config import Config
from blog_sync.core.client import PublisherClient
from blog_sync.sync.errors import PublishError, RemoteNotFound
from blog_sync.sync.models import ContentItem


def _response(status_code=200, json_data=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    response.reason = "Reason"
    if isinstance(json_data, Exception):
        response.json.side_effect = json_data
    else:
        response.json.return_value = json_data
    return response


def _client(mock_config, *responses):
    client = PublisherClient(mock_config)
    session = MagicMock()
    session.request.side_effect = list(responses)
    client._thread_local.session = session
    return client, session


def _item(**metadata):
    metadata.setdefault("title", "Hello")
    return ContentItem(path="posts/hello.md", body="Body text", metadata=metadata)


# ---------------------------------------------------------------------------
# Session setup
# ---------------------------------------------------------------------------


class TestSession:
    def test_bearer_token_and_verify(self, mock_config):
        session = PublisherClient(mock_config).session
        assert session.headers["Authorization"] == "Bearer secret-token"
        assert session.verify is True

    def test_insecure_disables_verification(self):
        config = Config(
            api_url="https://api.example.com", api_token="t", insecure=True
        )
        assert PublisherClient(config).session.verify is False

    def test_trailing_slash_removed(self):
        config = Config(api_url="https://api.example.com/", api_token="t")
        assert PublisherClient(config).api_url == "https://api.example.com"


# ---------------------------------------------------------------------------
# Payload
# ---------------------------------------------------------------------------


class TestBuildPayload:
    def test_basic_fields(self, mock_config):
        payload = PublisherClient(mock_config).build_payload(
            _item(tags=["python"], description="Short")
        )
        assert payload == {
            "title": "Hello",
            "content_markdown": "Body text",
            "tags": ["python"],
            "subtitle": "Short",
        }

    def test_extra_metadata_json_safe(self, mock_config):
        payload = PublisherClient(mock_config).build_payload(
            _item(date=date(2024, 1, 2), series="intro")
        )
        assert payload["metadata"] == {"date": "2024-01-02", "series": "intro"}

    def test_publication_id_included(self, mock_config):
        mock_config.publication_id = "pub-1"
        payload = PublisherClient(mock_config).build_payload(_item())
        assert payload["publication_id"] == "pub-1"


# ---------------------------------------------------------------------------
# create / update
# ---------------------------------------------------------------------------


class TestCreate:
    def test_create_posts_and_parses_identity(self, mock_config):
        client, session = _client(
            mock_config,
            _response(201, {"id": 42, "url": "https://blog.example.com/p/42"}),
        )
        post = client.create(_item())

        method, url = session.request.call_args.args
        assert (method, url) == ("POST", "https://api.blog.example.com/v1/posts")
        assert post.remote_id == "42"
        assert post.remote_url == "https://blog.example.com/p/42"

    def test_wrapped_post_object_accepted(self, mock_config):
        client, _ = _client(
            mock_config,
            _response(200, {"post": {"id": "a1", "url": "https://x/a1"}}),
        )
        assert client.create(_item()).remote_id == "a1"

    def test_missing_id_is_permanent(self, mock_config):
        client, _ = _client(mock_config, _response(201, {"url": "https://x"}))
        with pytest.raises(PublishError, match="missing") as exc_info:
            client.create(_item())
        assert exc_info.value.transient is False

    def test_invalid_item_rejected_without_request(self, mock_config):
        client, session = _client(mock_config)
        with pytest.raises(PublishError, match="Title"):
            client.create(_item(title=""))
        session.request.assert_not_called()

    @pytest.mark.parametrize("status", [408, 429, 500, 503])
    def test_retryable_statuses_are_transient(self, mock_config, status):
        client, _ = _client(mock_config, _response(status, text="busy"))
        with pytest.raises(PublishError) as exc_info:
            client.create(_item())
        assert exc_info.value.transient is True
        assert exc_info.value.status_code == status

    @pytest.mark.parametrize("status", [400, 401, 403, 422])
    def test_client_errors_are_permanent(self, mock_config, status):
        client, _ = _client(mock_config, _response(status, text="nope"))
        with pytest.raises(PublishError) as exc_info:
            client.create(_item())
        assert exc_info.value.transient is False

    def test_timeout_is_transient(self, mock_config):
        client, _ = _client(mock_config, requests.Timeout("slow"))
        with pytest.raises(PublishError, match="timed out") as exc_info:
            client.create(_item())
        assert exc_info.value.transient is True

    def test_connection_error_is_transient(self, mock_config):
        client, _ = _client(mock_config, requests.ConnectionError("down"))
        with pytest.raises(PublishError) as exc_info:
            client.create(_item())
        assert exc_info.value.transient is True


class TestUpdate:
    def test_update_puts_to_post_url(self, mock_config):
        client, session = _client(
            mock_config, _response(200, {"id": "p1", "url": "https://x/p1"})
        )
        post = client.update("p1", _item())

        method, url = session.request.call_args.args
        assert (method, url) == (
            "PUT",
            "https://api.blog.example.com/v1/posts/p1",
        )
        assert post.remote_id == "p1"

    @pytest.mark.parametrize("status", [404, 410])
    def test_missing_post_raises_remote_not_found(self, mock_config, status):
        client, _ = _client(mock_config, _response(status))
        with pytest.raises(RemoteNotFound) as exc_info:
            client.update("p1", _item())
        assert exc_info.value.remote_id == "p1"
        assert exc_info.value.transient is False

    def test_invalid_remote_id_rejected(self, mock_config):
        client, session = _client(mock_config)
        with pytest.raises(PublishError, match="Remote id"):
            client.update("../admin", _item())
        session.request.assert_not_called()


class TestValidateConnection:
    def test_returns_username(self, mock_config):
        client, _ = _client(mock_config, _response(200, {"username": "octo"}))
        assert client.validate_connection() == "octo"

    def test_unauthorised_raises(self, mock_config):
        client, _ = _client(mock_config, _response(401, text="bad token"))
        with pytest.raises(PublishError, match="401"):
            client.validate_connection()
