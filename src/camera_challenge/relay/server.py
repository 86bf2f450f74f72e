"""
Relay Endpoint
==============

FastAPI application that receives encoded frames and forwards them to chat.

Endpoints:
    GET  /health - Liveness probe
    POST /upload - Receive one frame and post it to the chat channel

Input Contract:
    {
        "imageBase64": "data:image/jpeg;base64,/9j/4AAQ...",
        "challenge": "😎 Cool pose!"
    }

Design Rules:
    - One-shot: no retry, no dedup
    - JPEG vs PNG is decided by the data URL prefix; bare base64 is PNG
    - Refuses to start without a chat token and a usable text channel
    - The channel is re-checked on every upload
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from camera_challenge.config import settings
from camera_challenge.models.frame import EncodedFrame
from camera_challenge.relay.chat import ChatClient, ChatDeliveryError


logger = logging.getLogger(__name__)


DEFAULT_CAPTION = "New frame from camera game!"


# =============================================================================
# Global State
# =============================================================================

_chat_client: Optional[ChatClient] = None


def get_chat_client() -> Optional[ChatClient]:
    return _chat_client


# =============================================================================
# Request Schema
# =============================================================================

class UploadRequest(BaseModel):
    """Frame upload sent by the capture client."""

    imageBase64: Optional[str] = Field(default=None, description="Data URL or bare base64")
    challenge: Optional[str] = Field(default=None, description="Caption text")


def build_caption(challenge: Optional[str]) -> str:
    return f"📸 **{challenge or DEFAULT_CAPTION}**"


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the chat client on startup, close it on shutdown."""
    global _chat_client

    if _chat_client is None:
        if not settings.chat.token or not settings.chat.channel_id:
            raise RuntimeError("Please set DISCORD_TOKEN and CHANNEL_ID")

        _chat_client = ChatClient(
            token=settings.chat.token,
            channel_id=settings.chat.channel_id,
            api_base=settings.chat.api_base,
            timeout=settings.chat.timeout_seconds,
        )
        if not await asyncio.to_thread(_chat_client.verify_channel):
            _chat_client.close()
            _chat_client = None
            raise RuntimeError(
                f"Channel {settings.chat.channel_id} is missing or not text-based"
            )
        logger.info(f"✅ Relay ready for channel {settings.chat.channel_id}")

    yield

    if _chat_client is not None:
        _chat_client.close()
        _chat_client = None
    logger.info("Relay shut down")


app = FastAPI(
    title="CameraChallenge Relay",
    description="Forwards captured frames to a chat channel",
    version=settings.app.version,
    lifespan=lifespan,
)


# =============================================================================
# HTTP Endpoints
# =============================================================================

@app.get("/health")
async def health() -> JSONResponse:
    """Liveness probe."""
    return JSONResponse({"ok": True})


@app.post("/upload")
async def upload(request: UploadRequest) -> JSONResponse:
    """Receive one frame from the capture client and send it to chat."""
    if not request.imageBase64:
        logger.warning("❌ Upload request missing imageBase64")
        return JSONResponse(
            {"ok": False, "error": "No imageBase64 provided"},
            status_code=400,
        )

    try:
        frame = EncodedFrame.from_data_url(request.imageBase64, label=request.challenge or "")
    except ValueError as e:
        logger.warning(f"❌ Upload request with invalid image: {e}")
        return JSONResponse(
            {"ok": False, "error": "Invalid imageBase64"},
            status_code=400,
        )

    chat = get_chat_client()
    if chat is None:
        logger.error("❌ Chat client not initialized")
        return JSONResponse({"ok": False, "error": "Channel error"}, status_code=500)

    if not await asyncio.to_thread(chat.verify_channel):
        return JSONResponse({"ok": False, "error": "Channel error"}, status_code=500)

    filename = f"camera-frame-{int(time.time() * 1000)}.{frame.format.extension}"

    try:
        await asyncio.to_thread(
            chat.send_image,
            build_caption(request.challenge),
            frame.data,
            filename,
            frame.format.mime_type,
        )
    except ChatDeliveryError as e:
        logger.error(f"❌ Error in /upload: {e}")
        return JSONResponse({"ok": False, "error": "Server error"}, status_code=500)

    logger.info(f"✅ Image sent to chat ({frame.format.extension})")
    return JSONResponse({"ok": True})


# =============================================================================
# Main Entry Point
# =============================================================================

def run() -> None:
    import uvicorn

    uvicorn.run(
        "camera_challenge.relay.server:app",
        host=settings.relay_server.host,
        port=settings.relay_server.port,
        reload=False,
    )


if __name__ == "__main__":
    run()
