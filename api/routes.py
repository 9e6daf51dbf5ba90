"""
REST endpoints for the live emotion session.
"""
from typing import Optional
from fastapi import APIRouter, Query
import logging

from core.config import Settings
from core.live import LiveCamera, build_coordinator
from core.models import LiveStatus, OverlayResponse, Size


router = APIRouter()
settings = Settings()
logger = logging.getLogger(__name__)

live_camera: Optional[LiveCamera] = None


def get_camera() -> LiveCamera:
    """Lazily build the camera + coordinator so importing the app opens nothing."""
    global live_camera
    if live_camera is None:
        logger.debug(f"[api] building live camera detector={settings.DETECTOR} server={settings.EMOTION_SERVER_URL}")
        live_camera = LiveCamera(settings, build_coordinator(settings))
    return live_camera


@router.post("/live/start")
async def live_start():
    cam = get_camera()
    if not cam.start():
        return {"status": "already_running"}
    return {"status": "started"}


@router.get("/live/status", response_model=LiveStatus)
async def live_status():
    return get_camera().status()


@router.post("/live/stop")
async def live_stop():
    if not get_camera().stop():
        return {"status": "not_running"}
    return {"status": "stopped"}


@router.get("/live/overlay", response_model=OverlayResponse)
async def live_overlay(
    display_width: float = Query(..., gt=0),
    display_height: float = Query(..., gt=0),
    mirrored: Optional[bool] = Query(None),
):
    """
    Current face rectangles mapped onto a display of the given size, plus the
    latest emotion label. Remote renderers poll this instead of touching frames.

    Args:
        display_width: Target surface width in pixels.
        display_height: Target surface height in pixels.
        mirrored: Override the configured MIRROR flag.

    Returns:
        OverlayResponse: emotion, in-flight flag and display rectangles.
    """
    coord = get_camera().coordinator
    rects = coord.display_rects(Size(width=display_width, height=display_height), mirrored)
    state = coord.overlay_state()
    return OverlayResponse(emotion=state.emotion, in_flight=state.in_flight, rects=rects)
