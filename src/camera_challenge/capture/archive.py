"""
Photo Archive
=============

Packages the session gallery into a single downloadable ZIP.

Entries are named ``photo-<n>.<ext>`` with ``n`` starting at 1 in capture
order and ``ext`` taken from each frame's own format. Building an archive
never modifies the gallery.
"""

import io
import logging
import zipfile
from pathlib import Path
from typing import Sequence, Union

from camera_challenge.models.frame import EncodedFrame


logger = logging.getLogger(__name__)


ARCHIVE_FILENAME = "camera-game-photos.zip"
ENTRY_PREFIX = "photo-"


class EmptyArchiveRequest(Exception):
    """Raised when an archive is requested before any frame was captured."""

    user_message = "No photos to download yet!"


def entry_name(index: int, frame: EncodedFrame) -> str:
    """Archive entry name for the frame at 0-based ``index``."""
    return f"{ENTRY_PREFIX}{index + 1}.{frame.format.extension}"


def build_archive(frames: Sequence[EncodedFrame]) -> bytes:
    """
    Build a ZIP archive with one entry per frame.

    Args:
        frames: Gallery frames in capture order

    Returns:
        ZIP archive bytes

    Raises:
        EmptyArchiveRequest: If ``frames`` is empty
    """
    if not frames:
        raise EmptyArchiveRequest(EmptyArchiveRequest.user_message)

    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        for index, frame in enumerate(frames):
            zf.writestr(entry_name(index, frame), frame.data)

    logger.info(f"Built photo archive: {len(frames)} entries, {buf.tell()} bytes")
    return buf.getvalue()


def export_archive(
    frames: Sequence[EncodedFrame],
    directory: Union[str, Path],
    filename: str = ARCHIVE_FILENAME,
) -> Path:
    """Write the archive to ``directory`` and return its path."""
    path = Path(directory) / filename
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(build_archive(frames))
    return path
