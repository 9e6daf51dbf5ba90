import sys, types
import numpy as np
import pytest

from core.config import Settings
from core.detector import HaarFaceDetector, DeepFaceDetector, build_detector, upright_image
from core.errors import DetectionFailure
from core.extract import frame_from_bgr
from conftest import build_frame


class DummyDeepFace:
    shapes = []
    @staticmethod
    def extract_faces(img_path=None, detector_backend=None, enforce_detection=None, align=None):
        DummyDeepFace.shapes.append(img_path.shape)
        return [
            {"facial_area": {"x": 0, "y": 0, "w": 64, "h": 48}, "confidence": 0},   # no-face placeholder
            {"facial_area": {"x": 5, "y": 5, "w": 10, "h": 10}, "confidence": 0.9},
            {"facial_area": {"x": 30, "y": 8, "w": 18, "h": 18}, "confidence": 0.95},
            {"facial_area": {"x": 1, "y": 1, "w": 0, "h": 5}, "confidence": 0.99},
        ]


class BrokenDeepFace:
    @staticmethod
    def extract_faces(**kwargs):
        raise ValueError("model weights missing")


def test_haar_blank_frame_has_no_faces():
    blank = frame_from_bgr(np.zeros((90, 120, 3), dtype=np.uint8))
    faces = HaarFaceDetector(min_face_size=0.1).detect(blank)
    assert faces == []

def test_deepface_filters_and_orders(monkeypatch):
    monkeypatch.setitem(sys.modules, "deepface", types.SimpleNamespace(DeepFace=DummyDeepFace))
    faces = DeepFaceDetector().detect(build_frame(width=64, height=48))
    assert len(faces) == 2
    # largest face first
    assert (faces[0].box.left, faces[0].box.width) == (30, 18)
    assert faces[0].confidence == pytest.approx(0.95)

def test_deepface_sees_upright_image(monkeypatch):
    monkeypatch.setitem(sys.modules, "deepface", types.SimpleNamespace(DeepFace=DummyDeepFace))
    DummyDeepFace.shapes.clear()
    DeepFaceDetector().detect(build_frame(width=64, height=48, rotation=90))
    assert DummyDeepFace.shapes[-1][:2] == (64, 48)

def test_deepface_errors_become_detection_failure(monkeypatch):
    monkeypatch.setitem(sys.modules, "deepface", types.SimpleNamespace(DeepFace=BrokenDeepFace))
    with pytest.raises(DetectionFailure):
        DeepFaceDetector().detect(build_frame(width=32, height=32))

def test_upright_image_shape():
    assert upright_image(build_frame(width=40, height=20, rotation=270)).shape == (40, 20, 3)
    assert upright_image(build_frame(width=40, height=20, rotation=180)).shape == (20, 40, 3)

def test_build_detector():
    assert isinstance(build_detector(Settings(DETECTOR="deepface")), DeepFaceDetector)
    assert isinstance(build_detector(Settings(DETECTOR="haar")), HaarFaceDetector)
