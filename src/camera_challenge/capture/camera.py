"""
Camera Acquisition
==================

Acquires the live video device for a session.

This module:
    - Refuses device access unless frames will only leave over a secure origin
    - Opens the device through OpenCV (opener is injectable for tests)
    - Classifies acquisition failures into distinct, user-facing kinds
    - Hands back a Camera handle owned exclusively by the session

Failure Kinds:
    permission_denied: device node exists but the process may not read it
    device_absent:     no such device
    device_busy:       device opens but never yields a frame
    unknown:           anything else

Design Rules:
    - The secure-origin check runs before any device is touched
    - A Camera is released exactly once (release() is idempotent)
    - The mirror preference is fixed at acquisition and read by the encoder
    - Each read returns the newest frame; buffered stale frames are discarded
"""

import logging
import os
import threading
from enum import Enum
from typing import Any, Callable, Optional, Tuple, Union
from urllib.parse import urlparse

import cv2
import numpy as np


logger = logging.getLogger(__name__)


LOOPBACK_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})

# Frames V4L2 queues by default when the buffer size cannot be limited
DEFAULT_DRIVER_BUFFER = 4


class SecurityPolicyError(Exception):
    """Raised when camera access is requested from an insecure context."""

    user_message = (
        "❌ HTTPS Required! Frames would be sent over an insecure connection. "
        "Point the relay URL at https:// or a localhost address."
    )


class DeviceAccessKind(str, Enum):
    """Distinct camera acquisition failures."""

    PERMISSION_DENIED = "permission_denied"
    DEVICE_ABSENT = "device_absent"
    DEVICE_BUSY = "device_busy"
    UNKNOWN = "unknown"


USER_MESSAGES = {
    DeviceAccessKind.PERMISSION_DENIED: (
        "🔒 Permission Denied: camera access is blocked for this process. "
        "Grant access to the video device and try again."
    ),
    DeviceAccessKind.DEVICE_ABSENT: (
        "📷 No Camera Found: we could not find a camera on this device."
    ),
    DeviceAccessKind.DEVICE_BUSY: (
        "⚠️ Camera Busy: your camera is being used by another app "
        "(Zoom, Teams, etc). Close it and try again."
    ),
    DeviceAccessKind.UNKNOWN: "❌ Error: the camera could not be started.",
}


class DeviceAccessError(Exception):
    """Raised when the camera device cannot be acquired."""

    def __init__(self, kind: DeviceAccessKind, detail: str = "") -> None:
        self.kind = kind
        self.detail = detail
        super().__init__(f"{kind.value}: {detail}" if detail else kind.value)

    @property
    def user_message(self) -> str:
        return USER_MESSAGES[self.kind]


def is_secure_origin(url: str) -> bool:
    """
    Check whether frames sent to ``url`` stay in a secure context.

    Encrypted transport or a loopback host qualifies.
    """
    parsed = urlparse(url)
    if parsed.scheme == "https":
        return True
    return (parsed.hostname or "") in LOOPBACK_HOSTS


class Camera:
    """
    Live video handle owned by a session.

    Wraps an OpenCV-compatible capture object (anything with ``grab()``,
    ``retrieve()`` and ``release()``).

    Reads block on the device and are meant to run in a worker thread;
    a lock keeps release() from racing an in-flight read.

    Attributes:
        source: Device index or stream URL the handle was opened from
        mirror: Whether preview and stills are flipped horizontally
        flush_frames: Buffered frames discarded before each read
    """

    def __init__(
        self,
        capture: Any,
        source: Union[int, str] = 0,
        mirror: bool = False,
        flush_frames: int = 0,
    ) -> None:
        self._capture = capture
        self.source = source
        self.mirror = mirror
        self.flush_frames = flush_frames
        self._released = False
        self._dimensions: Tuple[int, int] = (0, 0)
        self._lock = threading.Lock()

    @property
    def released(self) -> bool:
        return self._released

    @property
    def dimensions(self) -> Tuple[int, int]:
        """(width, height) of the last decoded frame; (0, 0) before the first."""
        return self._dimensions

    def read(self) -> Optional[np.ndarray]:
        """
        Read the latest video frame.

        Grabs past up to ``flush_frames`` buffered frames and decodes the
        last one grabbed, so a frame queued ticks ago is never returned.

        Returns:
            BGR frame, or None if the device has not produced a frame yet
        """
        with self._lock:
            if self._released:
                return None

            grabbed = False
            for _ in range(self.flush_frames + 1):
                if not self._capture.grab():
                    break
                grabbed = True

            if not grabbed:
                return None

            ok, image = self._capture.retrieve()

        if not ok or image is None or image.size == 0:
            return None

        height, width = image.shape[:2]
        self._dimensions = (width, height)
        return image

    def release(self) -> None:
        """Stop the device. Safe to call more than once."""
        with self._lock:
            if self._released:
                return
            self._released = True
            self._capture.release()
        logger.info(f"Camera released (source={self.source})")

    def __repr__(self) -> str:
        width, height = self._dimensions
        return (
            f"Camera(source={self.source!r}, mirror={self.mirror}, "
            f"{width}x{height}, released={self._released})"
        )


def _device_node(source: Union[int, str]) -> Optional[str]:
    """Linux device node for an integer source, if it can be inferred."""
    if isinstance(source, int):
        return f"/dev/video{source}"
    if source.startswith("/dev/"):
        return source
    return None


def _classify_open_failure(source: Union[int, str]) -> DeviceAccessKind:
    node = _device_node(source)
    if node is None:
        return DeviceAccessKind.UNKNOWN
    if not os.path.exists(node):
        return DeviceAccessKind.DEVICE_ABSENT
    if not os.access(node, os.R_OK | os.W_OK):
        return DeviceAccessKind.PERMISSION_DENIED
    return DeviceAccessKind.DEVICE_BUSY


def acquire_camera(
    source: Union[int, str],
    relay_url: str,
    mirror: bool = False,
    opener: Callable[[Union[int, str]], Any] = cv2.VideoCapture,
) -> Camera:
    """
    Acquire the camera for a session.

    Args:
        source: OpenCV device index or stream URL
        relay_url: Where captured frames will be sent (secure-origin check)
        mirror: Mirror preview and stills horizontally
        opener: Factory returning an OpenCV-compatible capture object

    Returns:
        Camera handle that has produced at least one frame

    Raises:
        SecurityPolicyError: If relay_url is not a secure origin
        DeviceAccessError: If the device cannot be opened or read
    """
    if not is_secure_origin(relay_url):
        logger.error(f"Refusing camera access: insecure relay origin {relay_url}")
        raise SecurityPolicyError(f"Insecure relay origin: {relay_url}")

    try:
        capture = opener(source)
    except PermissionError as e:
        raise DeviceAccessError(DeviceAccessKind.PERMISSION_DENIED, str(e)) from e
    except FileNotFoundError as e:
        raise DeviceAccessError(DeviceAccessKind.DEVICE_ABSENT, str(e)) from e
    except cv2.error as e:
        raise DeviceAccessError(DeviceAccessKind.UNKNOWN, str(e)) from e

    if not capture.isOpened():
        capture.release()
        kind = _classify_open_failure(source)
        logger.error(f"Camera open failed (source={source!r}): {kind.value}")
        raise DeviceAccessError(kind, f"could not open source {source!r}")

    # Backends that ignore the buffer size queue several frames oldest first
    if capture.set(cv2.CAP_PROP_BUFFERSIZE, 1):
        flush_frames = 1
    else:
        flush_frames = DEFAULT_DRIVER_BUFFER
        logger.warning(
            f"Capture buffer size not adjustable (source={source!r}), "
            f"flushing {flush_frames} frames per read"
        )

    camera = Camera(capture, source=source, mirror=mirror, flush_frames=flush_frames)

    # An opened device that never yields a frame is held elsewhere
    if camera.read() is None:
        camera.release()
        logger.error(f"Camera opened but produced no frame (source={source!r})")
        raise DeviceAccessError(
            DeviceAccessKind.DEVICE_BUSY,
            f"source {source!r} produced no frame",
        )

    width, height = camera.dimensions
    logger.info(f"Camera acquired: source={source!r}, {width}x{height}, mirror={mirror}")
    return camera
