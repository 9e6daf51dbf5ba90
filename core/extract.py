"""
Face region extraction from packed camera buffers.

- clamp_box: pull a detector box inside the frame
- crop_plane: copy the sub-rectangle out of a strided plane, row by row
- extract_face: crop + downscale + JPEG encode into a FacePayload

Cropping/encoding is CPU-bound; `extract_async` hands it to a worker so the
frame callback is never blocked by it.
"""
# core/extract.py
from __future__ import annotations
from concurrent.futures import Executor, Future
from typing import Tuple
import logging

import cv2
import numpy as np

from core.config import Settings
from core.errors import InvalidRegion
from core.models import BoundingBox, FacePayload, Frame, Plane

logger = logging.getLogger(__name__)


def _clamp(v: int, lo: int, hi: int) -> int:
    return max(lo, min(v, hi))


def clamp_box(box: BoundingBox, frame_width: int, frame_height: int) -> Tuple[int, int, int, int]:
    """Clamp `box` to [0, W) x [0, H); width/height end up >= 1 and inside the frame.

    Returns (left, top, width, height) as ints.
    """
    if frame_width < 1 or frame_height < 1:
        raise InvalidRegion(f"empty frame {frame_width}x{frame_height}")
    try:
        left = _clamp(int(box.left), 0, frame_width - 1)
        top = _clamp(int(box.top), 0, frame_height - 1)
        width = _clamp(int(box.width), 1, frame_width - left)
        height = _clamp(int(box.height), 1, frame_height - top)
    except (ValueError, OverflowError) as e:
        raise InvalidRegion(f"non-finite box {box}") from e
    if width <= 0 or height <= 0:
        raise InvalidRegion(f"degenerate box after clamping: {width}x{height}")
    return left, top, width, height


def crop_plane(plane: Plane, left: int, top: int, width: int, height: int) -> bytes:
    """Copy a width x height block out of a packed plane honoring its row stride."""
    bpp = plane.bytes_per_pixel
    stride = plane.bytes_per_row
    row_len = width * bpp
    # last byte touched by the final row
    needed = (top + height - 1) * stride + (left + width) * bpp
    if needed > len(plane.data) or row_len > stride:
        raise InvalidRegion(
            f"plane too small for crop: need {needed} bytes, have {len(plane.data)} (stride={stride})"
        )

    out = bytearray(row_len * height)
    src = plane.data
    for row in range(height):
        src_off = (row + top) * stride + left * bpp
        dst_off = row * row_len
        out[dst_off:dst_off + row_len] = src[src_off:src_off + row_len]
    return bytes(out)


def _to_bgr(raw: bytes, width: int, height: int, bpp: int, fmt: str) -> np.ndarray:
    pixels = np.frombuffer(raw, dtype=np.uint8).reshape(height, width, bpp) if bpp > 1 \
        else np.frombuffer(raw, dtype=np.uint8).reshape(height, width)
    if bpp == 4:
        code = cv2.COLOR_RGBA2BGR if fmt.lower().startswith("rgba") else cv2.COLOR_BGRA2BGR
        return cv2.cvtColor(pixels, code)
    if bpp == 3:
        return cv2.cvtColor(pixels, cv2.COLOR_RGB2BGR) if fmt.lower().startswith("rgb") else pixels
    if bpp == 1:
        return cv2.cvtColor(pixels, cv2.COLOR_GRAY2BGR)
    raise InvalidRegion(f"unsupported pixel size: {bpp} bytes")


def frame_to_bgr(frame: Frame) -> np.ndarray:
    """Whole first plane as a tightly packed BGR image."""
    if not frame.planes:
        raise InvalidRegion("frame has no pixel planes")
    plane = frame.planes[0]
    raw = crop_plane(plane, 0, 0, frame.width, frame.height)
    return _to_bgr(raw, frame.width, frame.height, plane.bytes_per_pixel, frame.format)


def frame_from_bgr(image: np.ndarray, timestamp: float = 0.0, rotation: int = 0) -> Frame:
    """Wrap an OpenCV BGR image as a single-plane bgra8888 Frame."""
    bgra = cv2.cvtColor(image, cv2.COLOR_BGR2BGRA)
    h, w = bgra.shape[:2]
    plane = Plane(data=bgra.tobytes(), bytes_per_row=int(bgra.strides[0]), bytes_per_pixel=4, width=w, height=h)
    return Frame(planes=[plane], width=w, height=h, format="bgra8888", timestamp=timestamp, rotation=rotation)


def extract_face(frame: Frame,
                 box: BoundingBox,
                 downscale_factor: float = 0.5,
                 jpeg_quality: int = 80) -> FacePayload:
    """Crop `box` out of `frame`, shrink it by `downscale_factor` and encode as JPEG."""
    if not frame.planes:
        raise InvalidRegion("frame has no pixel planes")
    left, top, width, height = clamp_box(box, frame.width, frame.height)
    plane = frame.planes[0]
    raw = crop_plane(plane, left, top, width, height)
    img = _to_bgr(raw, width, height, plane.bytes_per_pixel, frame.format)

    if 0.0 < downscale_factor < 1.0:
        new_w = int(width * downscale_factor)
        new_h = int(height * downscale_factor)
        if new_w >= 1 and new_h >= 1:
            img = cv2.resize(img, (new_w, new_h), interpolation=cv2.INTER_AREA)

    ok, buf = cv2.imencode(".jpg", img, [int(cv2.IMWRITE_JPEG_QUALITY), int(jpeg_quality)])
    if not ok:
        raise InvalidRegion("JPEG encoding failed")
    out_h, out_w = img.shape[:2]
    logger.debug(f"[extract] crop=({left},{top},{width},{height}) -> {out_w}x{out_h} jpeg={len(buf)}B")
    return FacePayload(data=buf.tobytes(), width=out_w, height=out_h, format="jpeg")


def extract_async(executor: Executor, frame: Frame, box: BoundingBox, settings: Settings) -> "Future[FacePayload]":
    """Run `extract_face` on `executor` with the configured downscale/quality."""
    return executor.submit(extract_face, frame, box, settings.DOWNSCALE_FACTOR, settings.JPEG_QUALITY)
