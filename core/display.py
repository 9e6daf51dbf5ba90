# core/display.py
"""
Detection-space -> display-space mapping for overlay drawing.

The preview is scaled uniformly to fit the display and centred (letterboxed)
on the axis that has room to spare. Front cameras are shown mirrored, so boxes
are reflected horizontally after mapping.
"""
from __future__ import annotations
from typing import Tuple

from core.models import BoundingBox, DisplayRect, Size


def preview_frame_size(frame_width: float, frame_height: float, rotation: int = 0) -> Size:
    """Frame size as seen on screen; sensors mounted at 90/270 deg swap the axes."""
    if rotation % 180 == 90:
        return Size(width=frame_height, height=frame_width)
    return Size(width=frame_width, height=frame_height)


def box_to_frame(box: BoundingBox, frame_width: float, frame_height: float, rotation: int = 0) -> BoundingBox:
    """Undo the upright rotation applied before detection.

    `box` is in upright (display-oriented) pixels; the result addresses the
    raw sensor buffer of size frame_width x frame_height.
    """
    rot = rotation % 360
    if rot == 90:
        return BoundingBox(left=box.top, top=frame_height - box.right,
                           width=box.height, height=box.width)
    if rot == 180:
        return BoundingBox(left=frame_width - box.right, top=frame_height - box.bottom,
                           width=box.width, height=box.height)
    if rot == 270:
        return BoundingBox(left=frame_width - box.bottom, top=box.left,
                           width=box.height, height=box.width)
    return box


def letterbox_transform(frame_size: Size, display_size: Size) -> Tuple[float, float, float]:
    """Return (scale, dx, dy) placing `frame_size` inside `display_size`."""
    image_aspect = frame_size.height / frame_size.width
    display_aspect = display_size.height / display_size.width

    if display_aspect > image_aspect:
        # display is taller: fit width, pad top/bottom
        scale = display_size.width / frame_size.width
        dx = 0.0
        dy = (display_size.height - frame_size.height * scale) / 2
    else:
        # image is taller: fit height, pad left/right
        scale = display_size.height / frame_size.height
        dx = (display_size.width - frame_size.width * scale) / 2
        dy = 0.0
    return scale, dx, dy


def mirror_rect(rect: DisplayRect, display_width: float) -> DisplayRect:
    """Reflect horizontally across the display's vertical centre line."""
    return DisplayRect(
        left=display_width - rect.right,
        top=rect.top,
        right=display_width - rect.left,
        bottom=rect.bottom,
    )


def map_to_display(box: BoundingBox,
                   frame_size: Size,
                   display_size: Size,
                   is_mirrored: bool = False) -> DisplayRect:
    """Map a frame-pixel box onto the display.

    `frame_size` must already be in display orientation (see `preview_frame_size`).
    Pure; call again whenever the display size changes.
    """
    scale, dx, dy = letterbox_transform(frame_size, display_size)
    rect = DisplayRect(
        left=box.left * scale + dx,
        top=box.top * scale + dy,
        right=box.right * scale + dx,
        bottom=box.bottom * scale + dy,
    )
    if is_mirrored:
        rect = mirror_rect(rect, display_size.width)
    return rect
