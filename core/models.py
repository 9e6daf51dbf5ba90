"""
Pydantic data models for frames, detections, payloads and overlay state.
"""
from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Literal

UNKNOWN_EMOTION = "unknown"


class Plane(BaseModel):
    model_config = ConfigDict(frozen=True)

    data: bytes
    bytes_per_row: int
    bytes_per_pixel: int = 4
    width: int
    height: int


class Frame(BaseModel):
    """One camera sample. Only the first plane is read for packed formats."""
    model_config = ConfigDict(frozen=True)

    planes: List[Plane]
    width: int
    height: int
    format: str = "bgra8888"
    timestamp: float = 0.0
    rotation: int = 0


class Size(BaseModel):
    width: float
    height: float


class BoundingBox(BaseModel):
    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height


class DetectedFace(BaseModel):
    box: BoundingBox
    confidence: Optional[float] = None


class FacePayload(BaseModel):
    data: bytes
    width: int
    height: int
    format: Literal["jpeg", "png"] = "jpeg"

    @property
    def content_type(self) -> str:
        return f"image/{self.format}"


class EmotionResult(BaseModel):
    emotion: str = UNKNOWN_EMOTION
    logits: Optional[List[float]] = None
    latency_ms: Optional[float] = None


class DisplayRect(BaseModel):
    left: float
    top: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top


class SessionState(BaseModel):
    last_processed: Optional[float] = None
    last_requested: Optional[float] = None
    faces: List[DetectedFace] = Field(default_factory=list)
    emotion: str = UNKNOWN_EMOTION
    logits: Optional[List[float]] = None
    in_flight: bool = False
    frame_size: Optional[Size] = None


# live model


class OverlayState(BaseModel):
    ts: float
    faces: List[DetectedFace] = Field(default_factory=list)
    emotion: str = UNKNOWN_EMOTION
    logits: Optional[List[float]] = None
    in_flight: bool = False
    frame_size: Optional[Size] = None


class OverlayResponse(BaseModel):
    emotion: str
    in_flight: bool
    rects: List[DisplayRect] = Field(default_factory=list)


class LiveStatus(BaseModel):
    running: bool
    started_at: float | None = None
    frames_seen: int = 0
    frames_processed: int = 0
    requests_sent: int = 0
    last_state: OverlayState | None = None
