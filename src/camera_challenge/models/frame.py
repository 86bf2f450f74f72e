"""
Encoded Frame Model
===================

Immutable still image produced by the frame pipeline.

Design Rules:
    - Frames are never mutated after capture
    - Bytes are stored raw; the data URL form is only the relay transport
    - The format decides both the MIME type and the archive extension
"""

import base64
import binascii
import time
from dataclasses import dataclass, field
from enum import Enum


class ImageFormat(str, Enum):
    """Still image formats supported by the encoder."""

    JPEG = "jpeg"
    PNG = "png"

    @property
    def mime_type(self) -> str:
        return f"image/{self.value}"

    @property
    def extension(self) -> str:
        return "jpg" if self is ImageFormat.JPEG else "png"

    @classmethod
    def from_data_url(cls, data_url: str) -> "ImageFormat":
        """Detect format from a data URL prefix (PNG unless JPEG is declared)."""
        if data_url.startswith("data:image/jpeg") or data_url.startswith("data:image/jpg"):
            return cls.JPEG
        return cls.PNG


@dataclass(frozen=True, slots=True)
class EncodedFrame:
    """
    One captured still.

    Attributes:
        data: Encoded image bytes
        format: Image format of ``data``
        label: Challenge text active at capture time, or a background label
        captured_at: UNIX timestamp of the capture
    """

    data: bytes
    format: ImageFormat
    label: str
    captured_at: float = field(default_factory=time.time)

    def to_data_url(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.format.mime_type};base64,{encoded}"

    @classmethod
    def from_data_url(cls, data_url: str, label: str = "") -> "EncodedFrame":
        """
        Decode a data URL (or bare base64) into a frame.

        Raises:
            ValueError: If the payload is not valid base64
        """
        fmt = ImageFormat.from_data_url(data_url)
        payload = data_url.split(",", 1)[1] if "," in data_url else data_url
        try:
            data = base64.b64decode(payload, validate=True)
        except binascii.Error as e:
            raise ValueError(f"Invalid base64 image payload: {e}") from e
        return cls(data=data, format=fmt, label=label)

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the image bytes."""
        return (
            f"EncodedFrame(format={self.format.value}, "
            f"bytes={len(self.data)}, label={self.label!r})"
        )
