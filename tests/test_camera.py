"""
Camera Acquisition Tests
========================
"""

import cv2
import pytest

from camera_challenge.capture.camera import (
    USER_MESSAGES,
    Camera,
    DeviceAccessError,
    DeviceAccessKind,
    SecurityPolicyError,
    acquire_camera,
    is_secure_origin,
)

from conftest import FakeCapture, FifoCapture


class TestSecureOrigin:
    """Tests for is_secure_origin."""

    @pytest.mark.parametrize("url", [
        "https://example.com/upload",
        "http://localhost:3000/upload",
        "http://127.0.0.1:3000/upload",
        "http://[::1]:3000/upload",
    ])
    def test_secure(self, url):
        assert is_secure_origin(url)

    @pytest.mark.parametrize("url", [
        "http://example.com/upload",
        "http://192.168.1.20:3000/upload",
        "ftp://localhost.example.com/upload",
    ])
    def test_insecure(self, url):
        assert not is_secure_origin(url)


class TestAcquireCamera:
    """Tests for acquire_camera."""

    def test_insecure_origin_never_opens_device(self):
        opened = []

        def opener(source):
            opened.append(source)
            return FakeCapture()

        with pytest.raises(SecurityPolicyError):
            acquire_camera(0, relay_url="http://example.com/upload", opener=opener)

        assert opened == []

    def test_success(self, sample_image):
        capture = FakeCapture(sample_image)
        camera = acquire_camera(
            0, relay_url="http://localhost:3000/upload", mirror=True,
            opener=lambda source: capture,
        )
        assert camera.mirror
        assert camera.dimensions == (64, 48)
        assert not camera.released

    def test_permission_error_from_opener(self):
        def opener(source):
            raise PermissionError("denied")

        with pytest.raises(DeviceAccessError) as exc_info:
            acquire_camera(0, relay_url="https://x.test/upload", opener=opener)

        assert exc_info.value.kind == DeviceAccessKind.PERMISSION_DENIED

    def test_missing_device_node(self):
        capture = FakeCapture(opened=False)
        with pytest.raises(DeviceAccessError) as exc_info:
            acquire_camera(
                "/dev/video-does-not-exist",
                relay_url="https://x.test/upload",
                opener=lambda source: capture,
            )

        assert exc_info.value.kind == DeviceAccessKind.DEVICE_ABSENT
        assert capture.release_count == 1

    def test_stream_url_open_failure_is_unknown(self):
        with pytest.raises(DeviceAccessError) as exc_info:
            acquire_camera(
                "rtsp://camera.local/stream",
                relay_url="https://x.test/upload",
                opener=lambda source: FakeCapture(opened=False),
            )

        assert exc_info.value.kind == DeviceAccessKind.UNKNOWN

    def test_opened_without_frames_is_busy(self):
        capture = FakeCapture(image=None, opened=True)
        with pytest.raises(DeviceAccessError) as exc_info:
            acquire_camera(0, relay_url="https://x.test/upload", opener=lambda source: capture)

        assert exc_info.value.kind == DeviceAccessKind.DEVICE_BUSY
        assert capture.release_count == 1

    def test_user_messages_are_distinct(self):
        messages = [USER_MESSAGES[kind] for kind in DeviceAccessKind]
        assert len(set(messages)) == len(DeviceAccessKind)
        error = DeviceAccessError(DeviceAccessKind.DEVICE_ABSENT)
        assert error.user_message == USER_MESSAGES[DeviceAccessKind.DEVICE_ABSENT]


class TestCamera:
    """Tests for the Camera handle."""

    def test_release_is_idempotent(self, sample_image):
        capture = FakeCapture(sample_image)
        camera = Camera(capture)
        camera.release()
        camera.release()
        assert capture.release_count == 1
        assert camera.read() is None

    def test_dimensions_zero_before_first_frame(self, sample_image):
        camera = Camera(FakeCapture(sample_image, warmup_reads=1))
        assert camera.dimensions == (0, 0)
        assert camera.read() is None
        assert camera.dimensions == (0, 0)
        assert camera.read() is not None
        assert camera.dimensions == (64, 48)


class TestLatestFrame:
    """Reads skip frames the driver buffered since the last tick."""

    def test_buffer_size_limited_at_acquisition(self):
        capture = FifoCapture(frames=range(4), honor_buffer_size=True)
        camera = acquire_camera(0, relay_url="https://x.test/upload", opener=lambda source: capture)

        assert capture.props[cv2.CAP_PROP_BUFFERSIZE] == 1
        assert camera.flush_frames == 1

        capture.arrive(4, 5, 6, 7)
        assert camera.read()[0, 0, 0] == 7

    def test_unlimited_buffer_is_flushed(self):
        capture = FifoCapture(frames=range(4), honor_buffer_size=False)
        camera = acquire_camera(0, relay_url="https://x.test/upload", opener=lambda source: capture)

        assert camera.flush_frames > 1
        capture.arrive(4, 5, 6, 7)
        assert camera.read()[0, 0, 0] == 7

    def test_first_read_after_acquisition_is_newest(self):
        capture = FifoCapture(frames=range(4), honor_buffer_size=False)
        camera = acquire_camera(0, relay_url="https://x.test/upload", opener=lambda source: capture)

        capture.arrive(4)
        assert camera.read()[0, 0, 0] == 4


class TestOpenFailureClassification:
    """Device node inspection after the opener reports failure."""

    def open_failure(self, source="/dev/video7"):
        with pytest.raises(DeviceAccessError) as exc_info:
            acquire_camera(
                source,
                relay_url="https://x.test/upload",
                opener=lambda source: FakeCapture(opened=False),
            )
        return exc_info.value.kind

    def test_unreadable_node_is_permission_denied(self, monkeypatch):
        monkeypatch.setattr("camera_challenge.capture.camera.os.path.exists", lambda path: True)
        monkeypatch.setattr("camera_challenge.capture.camera.os.access", lambda path, mode: False)
        assert self.open_failure() == DeviceAccessKind.PERMISSION_DENIED

    def test_accessible_node_that_will_not_open_is_busy(self, monkeypatch):
        monkeypatch.setattr("camera_challenge.capture.camera.os.path.exists", lambda path: True)
        monkeypatch.setattr("camera_challenge.capture.camera.os.access", lambda path, mode: True)
        assert self.open_failure() == DeviceAccessKind.DEVICE_BUSY

    def test_integer_source_maps_to_video_node(self, monkeypatch):
        checked = []

        def exists(path):
            checked.append(path)
            return False

        monkeypatch.setattr("camera_challenge.capture.camera.os.path.exists", exists)
        assert self.open_failure(source=3) == DeviceAccessKind.DEVICE_ABSENT
        assert checked == ["/dev/video3"]

    def test_file_not_found_from_opener(self):
        def opener(source):
            raise FileNotFoundError("/dev/video9")

        with pytest.raises(DeviceAccessError) as exc_info:
            acquire_camera(9, relay_url="https://x.test/upload", opener=opener)

        assert exc_info.value.kind == DeviceAccessKind.DEVICE_ABSENT
