"""
Configuration for the live emotion pipeline.
"""
from pydantic import BaseModel
import os

DETECTORS = ("haar", "deepface")


def _env_bool(name: str, default: str) -> bool:
    return (os.getenv(name, default) or default).strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    """
    Runtime settings with environment-variable overrides.
    """
    # Pipeline gates (seconds)
    FRAME_INTERVAL: float = float(os.getenv("FRAME_INTERVAL", "0.05"))
    EMOTION_INTERVAL: float = float(os.getenv("EMOTION_INTERVAL", "3"))

    # Face payload encoding
    DOWNSCALE_FACTOR: float = float(os.getenv("DOWNSCALE_FACTOR", "0.5"))
    JPEG_QUALITY: int = int(os.getenv("JPEG_QUALITY", "80"))

    # Remote classifier
    EMOTION_SERVER_URL: str = os.getenv("EMOTION_SERVER_URL", "http://127.0.0.1:8000/analyze")
    UPLOAD_NAME: str = os.getenv("UPLOAD_NAME", "test_image")
    UPLOAD_CONTENT_TYPE: str = os.getenv("UPLOAD_CONTENT_TYPE", "")
    REQUEST_TIMEOUT: float = float(os.getenv("REQUEST_TIMEOUT", "10"))

    # Camera & detection
    CAMERA_INDEX: int = int(os.getenv("CAMERA_INDEX", "0"))
    MIRROR: bool = _env_bool("MIRROR", "true")
    SENSOR_ORIENTATION: int = int(os.getenv("SENSOR_ORIENTATION", "0"))
    DETECTOR: str = os.getenv("DETECTOR", "haar")
    MIN_FACE_SIZE: float = float(os.getenv("MIN_FACE_SIZE", "0.1"))

    # Preview
    DISPLAY_WIDTH: int = int(os.getenv("DISPLAY_WIDTH", "960"))
    DISPLAY_HEIGHT: int = int(os.getenv("DISPLAY_HEIGHT", "540"))
    PIPELINE_WORKERS: int = int(os.getenv("PIPELINE_WORKERS", "2"))

    def __init__(self, **data):
        super().__init__(**data)
        # Normalize DETECTOR: strip comments/extra words, lower-case, validate
        det = ((self.DETECTOR or "").strip().split() or ["haar"])[0].lower()
        if det not in DETECTORS:
            det = "haar"
        object.__setattr__(self, "DETECTOR", det)

        factor = float(self.DOWNSCALE_FACTOR)
        if not (0.0 < factor <= 1.0):
            factor = 1.0
        object.__setattr__(self, "DOWNSCALE_FACTOR", factor)
        object.__setattr__(self, "JPEG_QUALITY", max(1, min(100, int(self.JPEG_QUALITY))))
        # sensor orientation only comes in right angles
        object.__setattr__(self, "SENSOR_ORIENTATION", (int(round(self.SENSOR_ORIENTATION / 90.0)) * 90) % 360)
        object.__setattr__(self, "PIPELINE_WORKERS", max(1, int(self.PIPELINE_WORKERS)))
