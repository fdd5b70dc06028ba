"""Alert posting collaborators: preview (log only) and a chat webhook."""

import logging
import uuid
from typing import Protocol

import requests

logger = logging.getLogger(__name__)

# Chat webhooks reject messages above this length
WEBHOOK_MAX_CHARS = 2000


class PostError(Exception):
    """Raised when a post could not be delivered."""


class Poster(Protocol):
    def post(self, text: str, thread: str | None = None) -> str:
        """Publish text (optionally continuing a thread) and return its id."""
        ...


class PreviewPoster:
    """Logs the text instead of publishing it."""

    def __init__(self) -> None:
        self.posts: list[str] = []

    def post(self, text: str, thread: str | None = None) -> str:
        self.posts.append(text)
        logger.info(f"Preview post ({len(text)} chars):\n{text}")
        return f"preview-{len(self.posts)}"


def mask_webhook(url: str) -> str:
    """Fingerprint a webhook URL for logs without leaking its token."""
    if not url:
        return "empty"
    parts = url.strip().rstrip("/").split("/")
    hook_id = parts[-2] if len(parts) >= 2 else ""
    tail = hook_id[-4:] if len(hook_id) >= 4 else "***"
    return f"id=...{tail} token=***REDACTED***"


class WebhookPoster:
    """
    Posts text to a Discord-style webhook.

    With ?wait=true the webhook answers with the created message, whose id
    is returned; a thread id continues an existing thread.
    """

    def __init__(self, url: str, timeout: float = 10.0, session: requests.Session | None = None):
        if not url:
            raise ValueError("Webhook URL is required")
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def post(self, text: str, thread: str | None = None) -> str:
        if len(text) > WEBHOOK_MAX_CHARS:
            logger.warning(f"Post truncated from {len(text)} to {WEBHOOK_MAX_CHARS} chars")
            text = text[: WEBHOOK_MAX_CHARS - 3] + "..."

        params = {"wait": "true"}
        if thread:
            params["thread_id"] = thread
        try:
            response = self.session.post(
                self.url, json={"content": text}, params=params, timeout=self.timeout
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise PostError(f"Webhook post failed ({mask_webhook(self.url)}): {e}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = None
        message_id = payload.get("id") if isinstance(payload, dict) else None
        post_id = str(message_id) if message_id else uuid.uuid4().hex
        logger.info(f"Posted {len(text)} chars to webhook {mask_webhook(self.url)} as {post_id}")
        return post_id
