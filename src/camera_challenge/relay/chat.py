"""
Chat Client
===========

Posts captured frames to a chat channel through the Discord REST API.

Design Rules:
    - One message per frame, caption plus a single file attachment
    - No retry; errors are raised as ChatDeliveryError for the endpoint
      to turn into a failure acknowledgment
"""

import json
import logging
from typing import Optional

import requests


logger = logging.getLogger(__name__)


# Text, announcement and thread channel types
TEXT_CHANNEL_TYPES = frozenset({0, 5, 10, 11, 12})


class ChatDeliveryError(Exception):
    """Raised when the chat platform rejects or cannot receive a message."""
    pass


class ChatClient:
    """
    Minimal bot client for one destination channel.

    Attributes:
        channel_id: Destination channel
        api_base: REST API base URL
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        token: str,
        channel_id: str,
        api_base: str = "https://discord.com/api/v10",
        timeout: float = 15.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not token or not channel_id:
            raise ValueError("token and channel_id are required")

        self.channel_id = channel_id
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self._http = session or requests.Session()
        self._http.headers.update({"Authorization": f"Bot {token}"})

    @property
    def channel_url(self) -> str:
        return f"{self.api_base}/channels/{self.channel_id}"

    def verify_channel(self) -> bool:
        """Check the channel exists and accepts text messages."""
        try:
            response = self._http.get(self.channel_url, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Channel lookup failed: {e}")
            return False

        if not response.ok:
            logger.error(f"❌ Channel {self.channel_id} not found (HTTP {response.status_code})")
            return False

        try:
            channel_type = response.json().get("type")
        except (ValueError, AttributeError):
            channel_type = None

        if channel_type not in TEXT_CHANNEL_TYPES:
            logger.error(f"❌ Channel {self.channel_id} is not text-based")
            return False

        return True

    def send_image(
        self,
        content: str,
        data: bytes,
        filename: str,
        mime_type: str,
    ) -> None:
        """
        Post a message with one image attachment.

        Raises:
            ChatDeliveryError: On transport error or non-2xx response
        """
        payload = {
            "content": content,
            "attachments": [{"id": 0, "filename": filename}],
        }
        files = {
            "payload_json": (None, json.dumps(payload), "application/json"),
            "files[0]": (filename, data, mime_type),
        }

        try:
            response = self._http.post(
                f"{self.channel_url}/messages",
                files=files,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise ChatDeliveryError(f"Chat request failed: {e}") from e

        if not response.ok:
            raise ChatDeliveryError(
                f"Chat API returned HTTP {response.status_code}: {response.text[:200]}"
            )

    def close(self) -> None:
        self._http.close()
