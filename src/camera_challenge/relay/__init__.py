"""
Relay Module
============

Upload endpoint that forwards frames from the capture client to a chat
channel. Runs as its own FastAPI application (see relay/server.py).
"""

from camera_challenge.relay.chat import ChatClient, ChatDeliveryError

__all__ = [
    "ChatClient",
    "ChatDeliveryError",
]
