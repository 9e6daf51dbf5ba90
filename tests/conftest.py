import numpy as np
import pytest

from core.models import Frame, Plane, BoundingBox, DetectedFace, EmotionResult


def build_frame(width=640, height=480, row_padding=0, timestamp=0.0, rotation=0):
    """Gradient BGRA frame; row_padding adds unused bytes at the end of every row."""
    bpp = 4
    stride = width * bpp + row_padding
    buf = np.zeros((height, stride), dtype=np.uint8)
    pixels = np.zeros((height, width, bpp), dtype=np.uint8)
    pixels[..., 0] = np.arange(width, dtype=np.uint32)[None, :] % 256
    pixels[..., 1] = np.arange(height, dtype=np.uint32)[:, None] % 256
    pixels[..., 2] = 128
    pixels[..., 3] = 255
    buf[:, :width * bpp] = pixels.reshape(height, width * bpp)
    if row_padding:
        buf[:, width * bpp:] = 7  # junk that must never leak into a crop
    plane = Plane(data=buf.tobytes(), bytes_per_row=stride, bytes_per_pixel=bpp, width=width, height=height)
    return Frame(planes=[plane], width=width, height=height, timestamp=timestamp, rotation=rotation)


class FakeClock:
    def __init__(self, t=100.0):
        self.t = t
    def __call__(self):
        return self.t
    def advance(self, dt):
        self.t += dt


class FakeDetector:
    def __init__(self, boxes=None, exc=None):
        self.boxes = boxes if boxes is not None else [(100, 50, 200, 200)]
        self.exc = exc
        self.calls = 0
    def detect(self, frame):
        self.calls += 1
        if self.exc is not None:
            raise self.exc
        return [DetectedFace(box=BoundingBox(left=l, top=t, width=w, height=h)) for (l, t, w, h) in self.boxes]


class FakeClient:
    def __init__(self, emotion="happy", exc=None):
        self.emotion = emotion
        self.exc = exc
        self.payloads = []
    def classify(self, payload):
        self.payloads.append(payload)
        if self.exc is not None:
            raise self.exc
        return EmotionResult(emotion=self.emotion, logits=[0.1, 0.9])


@pytest.fixture
def frame():
    return build_frame()


@pytest.fixture
def clock():
    return FakeClock()
