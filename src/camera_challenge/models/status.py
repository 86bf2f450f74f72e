"""
Status Payloads
===============

Pydantic models returned by the capture client API.

Output Contract:
    {
        "phase": "ACTIVE",
        "frame_count": 2,
        "quota": 5,
        "challenge": "😎 Cool pose!",
        "status": "🎮 Game running! ...",
        "outcome": null,
        "gallery_ready": false,
        "gallery": [{"index": 1, "format": "jpeg", "label": "...", "size_bytes": 10422,
                     "url": "/game/gallery/1"}],
        "timer_running": true,
        "camera_acquired": true
    }
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from camera_challenge.models.frame import ImageFormat
from camera_challenge.models.phase import GameOutcome, Phase


# Route template for one gallery image
GALLERY_URL = "/game/gallery/{index}"


class GalleryEntry(BaseModel):
    """Metadata for one counted frame; the image itself is served at ``url``."""

    index: int = Field(..., ge=1, description="1-based capture order")
    format: ImageFormat = Field(..., description="Still image format")
    label: str = Field(..., description="Challenge text at capture time")
    size_bytes: int = Field(..., ge=0, description="Encoded size")
    captured_at: float = Field(..., description="UNIX timestamp of capture")
    url: str = Field(..., description="Path serving the encoded image")


class GameStatus(BaseModel):
    """Snapshot of the session as seen by the user."""

    phase: Phase
    frame_count: int = Field(..., ge=0)
    quota: int = Field(..., ge=1)
    challenge: Optional[str] = Field(default=None, description="Current prompt")
    status: str = Field(default="", description="User-facing status message")
    outcome: Optional[GameOutcome] = Field(default=None, description="How the last game ended")
    gallery_ready: bool = Field(default=False, description="Gallery finalized")
    gallery: List[GalleryEntry] = Field(default_factory=list)
    timer_running: bool = False
    camera_acquired: bool = False
