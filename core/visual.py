"""Preview rendering helpers.

- render_preview: letterbox (and optionally mirror) a camera image onto a display canvas
- draw_overlays: draw mapped face rectangles, the emotion label and a "processing" banner

Rectangles are expected in display coordinates (see core.display.map_to_display).
"""
from __future__ import annotations
import cv2
import numpy as np
from typing import List, Optional, Tuple

from core.display import letterbox_transform
from core.models import DisplayRect, Size


def render_preview(image: np.ndarray, display_size: Size, mirrored: bool = False) -> np.ndarray:
    """Scale `image` uniformly into a black canvas of `display_size`, centred."""
    dw, dh = int(display_size.width), int(display_size.height)
    canvas = np.zeros((dh, dw, 3), dtype=np.uint8)
    h, w = image.shape[:2]
    if w == 0 or h == 0:
        return canvas

    scale, dx, dy = letterbox_transform(Size(width=w, height=h), display_size)
    new_w = max(1, min(dw, int(round(w * scale))))
    new_h = max(1, min(dh, int(round(h * scale))))
    resized = cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_AREA)
    x0 = max(0, min(int(round(dx)), dw - new_w))
    y0 = max(0, min(int(round(dy)), dh - new_h))
    canvas[y0:y0 + new_h, x0:x0 + new_w] = resized

    if mirrored:
        canvas = cv2.flip(canvas, 1)
    return canvas


def draw_overlays(canvas: np.ndarray,
                  rects: List[DisplayRect] | None = None,
                  emotion: Optional[str] = None,
                  processing: bool = False,
                  color: Tuple[int, int, int] = (0, 0, 255)) -> np.ndarray:
    """Draw face rectangles and the emotion label on a display canvas.

    Args:
        canvas: BGR display image
        rects: face rectangles in display coordinates
        emotion: label shown in the bottom banner (skipped if empty)
        processing: dim the canvas and show "Processing..." while a request is in flight
        color: BGR color for rectangles

    Returns:
        Annotated copy of the canvas
    """
    out = canvas.copy()
    h, w = out.shape[:2]

    for r in rects or []:
        # clamp to image bounds
        x0 = max(0, min(int(r.left), w - 1)); y0 = max(0, min(int(r.top), h - 1))
        x1 = max(0, min(int(r.right), w - 1)); y1 = max(0, min(int(r.bottom), h - 1))
        cv2.rectangle(out, (x0, y0), (x1, y1), color, 2)

    if processing:
        shade = np.zeros_like(out)
        out = cv2.addWeighted(out, 0.55, shade, 0.45, 0)
        cv2.putText(out, "Processing...", (max(0, w // 2 - 90), h // 2),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.9, (255, 255, 255), 2, cv2.LINE_AA)

    if emotion:
        text = f"Emotion: {emotion}"
        (tw, th), base = cv2.getTextSize(text, cv2.FONT_HERSHEY_SIMPLEX, 0.8, 2)
        x = max(0, (w - tw) // 2)
        y = max(th + 10, h - 50)
        cv2.rectangle(out, (max(0, x - 10), y - th - 10), (min(w - 1, x + tw + 10), min(h - 1, y + base + 10)), (0, 0, 0), -1)
        cv2.putText(out, text, (x, y), cv2.FONT_HERSHEY_SIMPLEX, 0.8, (255, 255, 255), 2, cv2.LINE_AA)

    return out
