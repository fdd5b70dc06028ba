"""Tests for alert posters."""

from unittest.mock import MagicMock

import pytest
import requests

from dilution_radar.core.posting import (
    WEBHOOK_MAX_CHARS,
    PostError,
    PreviewPoster,
    WebhookPoster,
    mask_webhook,
)

URL = "https://discord.com/api/webhooks/123456789/secret-token"


def mock_session(payload=None, error: Exception | None = None) -> MagicMock:
    session = MagicMock()
    response = MagicMock()
    response.json.return_value = payload
    if error is not None:
        response.raise_for_status.side_effect = error
    session.post.return_value = response
    return session


class TestMaskWebhook:
    def test_hides_token(self) -> None:
        masked = mask_webhook(URL)
        assert "secret-token" not in masked
        assert masked == "id=...6789 token=***REDACTED***"

    def test_empty(self) -> None:
        assert mask_webhook("") == "empty"


class TestPreviewPoster:
    def test_records_posts(self) -> None:
        poster = PreviewPoster()
        assert poster.post("hello") == "preview-1"
        assert poster.post("again") == "preview-2"
        assert poster.posts == ["hello", "again"]


class TestWebhookPoster:
    """Tests for the webhook poster."""

    def test_returns_message_id(self) -> None:
        session = mock_session({"id": "987"})
        poster = WebhookPoster(URL, session=session)
        assert poster.post("hello") == "987"

        _, kwargs = session.post.call_args
        assert kwargs["json"] == {"content": "hello"}
        assert kwargs["params"] == {"wait": "true"}

    def test_thread_id_passed(self) -> None:
        session = mock_session({"id": "1"})
        WebhookPoster(URL, session=session).post("reply", thread="555")
        _, kwargs = session.post.call_args
        assert kwargs["params"]["thread_id"] == "555"

    def test_long_text_truncated(self) -> None:
        session = mock_session({"id": "1"})
        WebhookPoster(URL, session=session).post("x" * 5000)
        _, kwargs = session.post.call_args
        assert len(kwargs["json"]["content"]) == WEBHOOK_MAX_CHARS

    def test_missing_id_still_returns_id(self) -> None:
        session = mock_session(None)
        assert WebhookPoster(URL, session=session).post("hello")

    def test_http_error_raises_post_error(self) -> None:
        session = mock_session(error=requests.HTTPError("400 Bad Request"))
        with pytest.raises(PostError) as excinfo:
            WebhookPoster(URL, session=session).post("hello")
        assert "secret-token" not in str(excinfo.value)

    def test_connection_error_raises_post_error(self) -> None:
        session = MagicMock()
        session.post.side_effect = requests.ConnectionError("refused")
        with pytest.raises(PostError):
            WebhookPoster(URL, session=session).post("hello")

    def test_url_required(self) -> None:
        with pytest.raises(ValueError):
            WebhookPoster("")
