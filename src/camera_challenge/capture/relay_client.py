"""
Relay Client
============

HTTP client for the relay endpoint that forwards frames to a chat channel.

Request Contract:
    POST <relay url>
    {
        "imageBase64": "data:image/jpeg;base64,/9j/4AAQ...",
        "challenge": "😎 Cool pose!"
    }

Response Contract:
    {"ok": true} on success, {"ok": false, "error": "..."} otherwise

Design Rules:
    - One request per frame, no retry, no backoff
    - Blocking I/O runs in a worker thread so ticks are never blocked
    - Every failure is raised as DispatchError
"""

import asyncio
import logging
from typing import Optional

import requests

from camera_challenge.models.frame import EncodedFrame


logger = logging.getLogger(__name__)


class DispatchError(Exception):
    """Raised when a frame could not be delivered to the relay."""
    pass


class RelayClient:
    """
    Fire-and-forget uploader for encoded frames.

    Attributes:
        url: Relay upload endpoint
        timeout: Seconds to wait for the acknowledgment
    """

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._http = session or requests.Session()

    async def send(self, frame: EncodedFrame) -> None:
        """
        Upload one frame and wait only for the acknowledgment.

        Raises:
            DispatchError: On transport error, non-2xx status or ok=false
        """
        await asyncio.to_thread(self._post, frame)

    def _post(self, frame: EncodedFrame) -> None:
        payload = {
            "imageBase64": frame.to_data_url(),
            "challenge": frame.label,
        }

        try:
            response = self._http.post(self.url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise DispatchError(f"Upload to {self.url} failed: {e}") from e

        if not response.ok:
            raise DispatchError(f"Relay returned HTTP {response.status_code}")

        try:
            ack = response.json()
        except ValueError:
            ack = {}

        if isinstance(ack, dict) and ack.get("ok") is False:
            raise DispatchError(f"Relay rejected frame: {ack.get('error', 'unknown error')}")

        logger.debug(f"Relay acknowledged {frame!r}")

    def close(self) -> None:
        self._http.close()
