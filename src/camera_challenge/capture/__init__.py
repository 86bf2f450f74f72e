"""
Capture Module
==============

Camera acquisition, still encoding, relay dispatch and archive export.

This module provides the frame pipeline for CameraChallenge:
    - acquire_camera / Camera: Exclusive handle on the local video device
    - encode_frame: The only place frames become still images
    - RelayClient: Fire-and-forget upload to the relay endpoint
    - FramePipeline: capture-and-send for one scheduler tick
    - build_archive: ZIP of the counted gallery

Example:
    from camera_challenge.capture import FramePipeline, RelayClient, acquire_camera

    session.camera = acquire_camera(0, relay_url=settings.relay.url, mirror=True)
    pipeline = FramePipeline(RelayClient(settings.relay.url))

    await pipeline.capture_and_send(session, counts_toward_game=True, label="😁 Smile!")
    archive = build_archive(session.captured_frames)
"""

from camera_challenge.capture.archive import (
    ARCHIVE_FILENAME,
    EmptyArchiveRequest,
    build_archive,
    export_archive,
)
from camera_challenge.capture.camera import (
    Camera,
    DeviceAccessError,
    DeviceAccessKind,
    SecurityPolicyError,
    acquire_camera,
    is_secure_origin,
)
from camera_challenge.capture.encoder import FrameEncodeError, decode_frame, encode_frame
from camera_challenge.capture.pipeline import DispatchResult, FramePipeline, PipelineMetrics
from camera_challenge.capture.relay_client import DispatchError, RelayClient


__all__ = [
    "ARCHIVE_FILENAME",
    "EmptyArchiveRequest",
    "build_archive",
    "export_archive",
    "Camera",
    "DeviceAccessError",
    "DeviceAccessKind",
    "SecurityPolicyError",
    "acquire_camera",
    "is_secure_origin",
    "FrameEncodeError",
    "decode_frame",
    "encode_frame",
    "DispatchResult",
    "FramePipeline",
    "PipelineMetrics",
    "DispatchError",
    "RelayClient",
]
