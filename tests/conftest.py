"""
Test Configuration
==================

Pytest fixtures and fakes for CameraChallenge.

No camera hardware or network is touched: OpenCV capture objects and the
relay client are replaced by the fakes below.
"""

import numpy as np
import pytest

from camera_challenge.capture.camera import Camera
from camera_challenge.capture.pipeline import FramePipeline
from camera_challenge.capture.relay_client import DispatchError
from camera_challenge.models.frame import ImageFormat
from camera_challenge.models.phase import BackgroundPolicy
from camera_challenge.scheduler.scheduler import CaptureScheduler
from camera_challenge.session import Session


class FakeCapture:
    """Stands in for cv2.VideoCapture."""

    def __init__(self, image=None, opened=True, warmup_reads=0):
        self.image = image
        self.opened = opened
        self.warmup_reads = warmup_reads
        self.grabs = 0
        self.props = {}
        self.release_count = 0

    def isOpened(self):
        return self.opened

    def set(self, prop, value):
        self.props[prop] = value
        return False

    def grab(self):
        self.grabs += 1
        return self.image is not None and self.grabs > self.warmup_reads

    def retrieve(self):
        return True, self.image.copy()

    def release(self):
        self.release_count += 1


class FifoCapture:
    """
    Stands in for a V4L2 capture: frames queue oldest first.

    Frame ``n`` is a tiny image filled with the value ``n``. The queue is
    trimmed to the newest frames once a buffer size is accepted.
    """

    def __init__(self, frames=(), honor_buffer_size=False):
        self.queue = [self._frame(n) for n in frames]
        self.honor_buffer_size = honor_buffer_size
        self.buffer_size = None
        self.props = {}
        self.current = None

    @staticmethod
    def _frame(n):
        return np.full((4, 6, 3), n, dtype=np.uint8)

    def arrive(self, *frames):
        self.queue.extend(self._frame(n) for n in frames)
        self._trim()

    def _trim(self):
        if self.buffer_size is not None:
            self.queue = self.queue[-self.buffer_size:]

    def isOpened(self):
        return True

    def set(self, prop, value):
        self.props[prop] = value
        if not self.honor_buffer_size:
            return False
        self.buffer_size = int(value)
        self._trim()
        return True

    def grab(self):
        if not self.queue:
            return False
        self.current = self.queue.pop(0)
        return True

    def retrieve(self):
        return True, self.current.copy()

    def release(self):
        pass


class FakeRelay:
    """Records dispatched frames; fails the dispatches listed in ``fail_on`` (0-based)."""

    def __init__(self, fail_on=()):
        self.fail_on = set(fail_on)
        self.attempts = 0
        self.sent = []

    async def send(self, frame):
        index = self.attempts
        self.attempts += 1
        if index in self.fail_on:
            raise DispatchError(f"relay down for dispatch {index}")
        self.sent.append(frame)


class FakeResponse:
    """Stands in for requests.Response."""

    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload
        self.text = str(payload)

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if self._payload is None:
            raise ValueError("no JSON body")
        return self._payload


class FakeHTTPSession:
    """Stands in for requests.Session; returns queued responses."""

    def __init__(self, response=None, error=None):
        self.response = response or FakeResponse(200, {"ok": True})
        self.error = error
        self.headers = {}
        self.calls = []
        self.closed = False

    def post(self, url, **kwargs):
        self.calls.append(("POST", url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response

    def get(self, url, **kwargs):
        self.calls.append(("GET", url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response

    def close(self):
        self.closed = True


@pytest.fixture
def sample_image():
    """64x48 BGR frame whose left and right halves differ."""
    image = np.zeros((48, 64, 3), dtype=np.uint8)
    image[:, :32] = (255, 0, 0)
    image[:, 32:] = (0, 0, 255)
    image[:8, :8] = (0, 255, 0)
    return image


@pytest.fixture
def make_camera(sample_image):
    """Factory for Camera handles backed by a FakeCapture."""

    def _make(mirror=False, image=sample_image, warmup_reads=0):
        return Camera(FakeCapture(image, warmup_reads=warmup_reads), source=0, mirror=mirror)

    return _make


@pytest.fixture
def relay():
    return FakeRelay()


@pytest.fixture
def make_scheduler(make_camera):
    """
    Factory for a scheduler wired to fakes.

    The default tick interval is long enough that the real timer never
    fires during a test; tests drive ticks with ``await scheduler.tick()``.
    """

    def _make(
        relay=None,
        quota=5,
        tick_interval=3600.0,
        policy=BackgroundPolicy.HALT,
        camera_factory=None,
        image_format=ImageFormat.JPEG,
        seed=7,
    ):
        import random

        pipeline = FramePipeline(relay or FakeRelay(), image_format=image_format)
        return CaptureScheduler(
            session=Session(),
            pipeline=pipeline,
            camera_factory=camera_factory or (lambda: make_camera()),
            quota=quota,
            tick_interval=tick_interval,
            background_policy=policy,
            rng=random.Random(seed),
        )

    return _make
