"""
Face detector adapters.

The pipeline treats detection as a black box: `detect(frame)` returns zero or
more DetectedFace boxes in upright frame pixels. Two backends:

- HaarFaceDetector: OpenCV frontal-face cascade (fast, no extra deps)
- DeepFaceDetector: DeepFace.extract_faces (imported lazily, heavy TF stack)

Any backend exception is re-raised as DetectionFailure so the coordinator can
drop the frame.
"""
# core/detector.py
from __future__ import annotations
from typing import List, Protocol
import logging

import cv2
import numpy as np

from core.config import Settings
from core.errors import DetectionFailure
from core.extract import frame_to_bgr
from core.models import BoundingBox, DetectedFace, Frame

logger = logging.getLogger(__name__)

_ROTATIONS = {
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}


class FaceDetector(Protocol):
    def detect(self, frame: Frame) -> List[DetectedFace]: ...


def rotate_upright(img: np.ndarray, rotation: int) -> np.ndarray:
    code = _ROTATIONS.get(rotation % 360)
    return cv2.rotate(img, code) if code is not None else img


def upright_image(frame: Frame) -> np.ndarray:
    """BGR image of `frame` rotated by its sensor orientation."""
    return rotate_upright(frame_to_bgr(frame), frame.rotation)


def _primary_first(faces: List[DetectedFace]) -> List[DetectedFace]:
    # largest first; ties broken by position so identical input gives identical order
    return sorted(faces, key=lambda f: (-(f.box.width * f.box.height), f.box.top, f.box.left))


class HaarFaceDetector:
    """OpenCV Haar cascade detector.

    min_face_size is a fraction of the shorter image side (0.1 == 10%).
    """
    def __init__(self, min_face_size: float = 0.1, scale_factor: float = 1.1, min_neighbors: int = 5):
        self.min_face_size = float(min_face_size)
        self.scale_factor = float(scale_factor)
        self.min_neighbors = int(min_neighbors)
        self._cascade = cv2.CascadeClassifier(cv2.data.haarcascades + "haarcascade_frontalface_default.xml")

    def detect(self, frame: Frame) -> List[DetectedFace]:
        try:
            img = upright_image(frame)
            gray = cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)
            side = max(1, int(min(gray.shape[:2]) * self.min_face_size))
            rects = self._cascade.detectMultiScale(gray, self.scale_factor, self.min_neighbors, minSize=(side, side))
        except Exception as e:
            raise DetectionFailure(f"haar detection failed: {e}") from e

        faces = [
            DetectedFace(box=BoundingBox(left=float(x), top=float(y), width=float(w), height=float(h)))
            for (x, y, w, h) in rects
        ]
        logger.debug(f"[detector] haar faces={len(faces)}")
        return _primary_first(faces)


class DeepFaceDetector:
    """DeepFace extract_faces wrapper (OpenCV backend by default)."""
    def __init__(self, backend: str = "opencv", min_confidence: float = 0.5):
        self.backend = backend
        self.min_confidence = float(min_confidence)

    def detect(self, frame: Frame) -> List[DetectedFace]:
        try:
            # Lazy import so tests can monkeypatch sys.modules['deepface']
            from deepface import DeepFace
            img = upright_image(frame)
            dets = DeepFace.extract_faces(
                img_path=img,
                detector_backend=self.backend,
                enforce_detection=False,
                align=False,
            )
        except Exception as e:
            raise DetectionFailure(f"deepface detection failed: {e}") from e

        faces: List[DetectedFace] = []
        for d in dets or []:
            fa = (d or {}).get("facial_area") or {}
            w, h = int(fa.get("w", 0)), int(fa.get("h", 0))
            if w <= 0 or h <= 0:
                continue
            conf = d.get("confidence")
            try:
                conf = float(conf) if conf is not None else None
            except (TypeError, ValueError):
                conf = None
            # enforce_detection=False yields a whole-image "face" with confidence 0
            if conf is not None and conf < self.min_confidence:
                continue
            faces.append(DetectedFace(
                box=BoundingBox(left=float(fa.get("x", 0)), top=float(fa.get("y", 0)), width=float(w), height=float(h)),
                confidence=conf,
            ))
        logger.debug(f"[detector] deepface faces={len(faces)}")
        return _primary_first(faces)


def build_detector(settings: Settings) -> FaceDetector:
    if settings.DETECTOR == "deepface":
        return DeepFaceDetector()
    return HaarFaceDetector(min_face_size=settings.MIN_FACE_SIZE)
