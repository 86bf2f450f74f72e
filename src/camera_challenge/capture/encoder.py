"""
Frame Encoder
=============

Dedicated module for turning raw video frames into still images.

Design Rules:
    - This is the ONLY place in the codebase that encodes or decodes images
    - Preview and captured stills go through the same function, so the
      mirror transform is always applied to both or to neither
    - Fails fast on invalid input
"""

import logging

import cv2
import numpy as np

from camera_challenge.models.frame import EncodedFrame, ImageFormat


logger = logging.getLogger(__name__)


DEFAULT_JPEG_QUALITY = 70


class FrameEncodeError(Exception):
    """Raised when a frame cannot be encoded or decoded."""
    pass


def encode_image(
    image: np.ndarray,
    fmt: ImageFormat = ImageFormat.JPEG,
    quality: int = DEFAULT_JPEG_QUALITY,
    mirror: bool = False,
) -> bytes:
    """
    Encode a BGR frame to still-image bytes.

    Args:
        image: BGR image as np.ndarray (H, W, 3), dtype=uint8
        fmt: Output format
        quality: JPEG quality 1-100 (ignored for PNG)
        mirror: Flip horizontally before encoding

    Returns:
        Encoded image bytes

    Raises:
        FrameEncodeError: If the image is empty or encoding fails
    """
    if image is None or image.size == 0:
        raise FrameEncodeError("Cannot encode an empty frame")

    if image.dtype != np.uint8:
        raise FrameEncodeError(f"Invalid dtype for frame: {image.dtype}")

    if mirror:
        image = cv2.flip(image, 1)

    if fmt is ImageFormat.JPEG:
        params = [cv2.IMWRITE_JPEG_QUALITY, int(quality)]
    else:
        params = []

    try:
        ok, buffer = cv2.imencode(f".{fmt.extension}", image, params)
    except cv2.error as e:
        raise FrameEncodeError(f"cv2.imencode failed: {e}") from e

    if not ok:
        raise FrameEncodeError(f"cv2.imencode returned failure for {fmt.value}")

    return buffer.tobytes()


def encode_frame(
    image: np.ndarray,
    label: str,
    fmt: ImageFormat = ImageFormat.JPEG,
    quality: int = DEFAULT_JPEG_QUALITY,
    mirror: bool = False,
) -> EncodedFrame:
    """Encode a BGR frame into an immutable EncodedFrame carrying ``label``."""
    data = encode_image(image, fmt=fmt, quality=quality, mirror=mirror)
    return EncodedFrame(data=data, format=fmt, label=label)


def decode_frame(frame: EncodedFrame) -> np.ndarray:
    """
    Decode an EncodedFrame back to a BGR numpy array.

    Raises:
        FrameEncodeError: If the bytes are not a decodable image
    """
    nparr = np.frombuffer(frame.data, np.uint8)
    try:
        bgr = cv2.imdecode(nparr, cv2.IMREAD_COLOR)
    except cv2.error as e:
        raise FrameEncodeError(f"Failed to decode {frame!r}: {e}") from e

    if bgr is None:
        raise FrameEncodeError(f"Failed to decode {frame!r}: cv2.imdecode returned None")

    return bgr
