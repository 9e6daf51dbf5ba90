# core/live.py
"""
Live (real-time) emotion pipeline.

Camera frames flow through:
- frame gate (FRAME_INTERVAL) -> face detector -> face list update
- first face cropped/encoded on the extraction worker
- emotion gate (EMOTION_INTERVAL) + single in-flight request -> remote classifier
- emotion label update ("unknown" on any failure)

LiveCoordinator owns the session state; renderers read `overlay_state()` or
`subscribe()` to changes. LiveCamera feeds it from an OpenCV capture thread and
run_live_overlay draws the result in a preview window.
"""

from __future__ import annotations

import time
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, List, Optional, Tuple
import logging

import cv2
import requests

from core.client import EmotionClient
from core.config import Settings
from core.detector import FaceDetector, build_detector, rotate_upright
from core.display import box_to_frame, map_to_display, preview_frame_size
from core.errors import DetectionFailure, InvalidRegion, TransportFailure
from core.extract import extract_async, frame_from_bgr
from core.models import (
    DisplayRect, EmotionResult, FacePayload, Frame, LiveStatus, OverlayState, SessionState, Size,
)
from core.rate_limit import should_process_frame, should_request_emotion
from core.visual import draw_overlays, render_preview

logger = logging.getLogger(__name__)

Listener = Callable[[OverlayState], None]


# -----------------------------------------------------------------------------
# LiveCoordinator: session state + per-frame state machine
# -----------------------------------------------------------------------------
class LiveCoordinator:
    """Drives detection, extraction and emotion requests for incoming frames.

    At most PIPELINE_WORKERS frames are queued or running at once; frames that
    arrive while the pipeline is saturated are dropped, never buffered. The
    emotion request runs on its own worker so detection keeps going while it is
    in flight.
    """
    def __init__(self,
                 settings: Settings,
                 detector: FaceDetector,
                 client: EmotionClient,
                 clock: Callable[[], float] = time.monotonic):
        self.s = settings
        self.detector = detector
        self.client = client
        self._clock = clock
        self._lock = threading.Lock()
        self._state = SessionState()
        self._faces_ts: Optional[float] = None
        self._pending = 0
        self._request_future: Optional[Future] = None
        self._listeners: List[Listener] = []
        self._pipeline_pool = ThreadPoolExecutor(max_workers=settings.PIPELINE_WORKERS,
                                                 thread_name_prefix="pipeline")
        self._extract_pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="extract")
        self._request_pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="emotion")
        self.frames_seen = 0
        self.frames_processed = 0
        self.frames_dropped_busy = 0
        self.requests_sent = 0

    # ---- observable state ----
    def overlay_state(self) -> OverlayState:
        with self._lock:
            return self._snapshot()

    def _snapshot(self) -> OverlayState:
        st = self._state
        return OverlayState(
            ts=self._clock(),
            faces=list(st.faces),
            emotion=st.emotion,
            logits=st.logits,
            in_flight=st.in_flight,
            frame_size=st.frame_size,
        )

    def subscribe(self, listener: Listener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _notify(self) -> OverlayState:
        with self._lock:
            snap = self._snapshot()
            listeners = list(self._listeners)
        for cb in listeners:
            try:
                cb(snap)
            except Exception:
                logger.exception("[live] overlay listener failed")
        return snap

    def display_rects(self, display_size: Size, mirrored: Optional[bool] = None) -> List[DisplayRect]:
        """Current faces mapped onto `display_size` (recomputed on every call)."""
        snap = self.overlay_state()
        fs = snap.frame_size
        if fs is None or fs.width <= 0 or fs.height <= 0:
            return []
        mirror = self.s.MIRROR if mirrored is None else mirrored
        return [map_to_display(f.box, fs, display_size, mirror) for f in snap.faces]

    def wait_for_request(self, timeout: Optional[float] = None) -> None:
        """Block until the most recent emotion request (if any) has completed."""
        with self._lock:
            fut = self._request_future
        if fut is not None:
            fut.result(timeout=timeout)

    # ---- frame entry points ----
    def _admit(self, now: float) -> bool:
        with self._lock:
            self.frames_seen += 1
            if self._pending >= self.s.PIPELINE_WORKERS:
                self.frames_dropped_busy += 1
                return False
            if not should_process_frame(now, self._state.last_processed, self.s.FRAME_INTERVAL):
                return False
            self._state.last_processed = now
            self._pending += 1
            self.frames_processed += 1
            return True

    def on_frame(self, frame: Frame) -> Optional[Future]:
        """Camera callback: gate on the caller's thread, run the rest on the pipeline pool."""
        if not self._admit(self._clock()):
            return None
        fut = self._pipeline_pool.submit(self._run_frame, frame)
        fut.add_done_callback(self._log_failure)
        return fut

    def process_frame(self, frame: Frame) -> Optional[OverlayState]:
        """Synchronous variant of on_frame; also waits for the emotion request it starts.

        Returns None if the frame was dropped.
        """
        if not self._admit(self._clock()):
            return None
        snap, request = self._run(frame)
        if request is None:
            return snap
        request.result()
        return self.overlay_state()

    @staticmethod
    def _log_failure(fut: Future) -> None:
        exc = fut.exception()
        if exc is not None:
            logger.error("[live] frame pipeline failed", exc_info=(type(exc), exc, exc.__traceback__))

    def _run_frame(self, frame: Frame) -> OverlayState:
        return self._run(frame)[0]

    def _run(self, frame: Frame) -> Tuple[OverlayState, Optional[Future]]:
        try:
            return self._detect_and_dispatch(frame)
        finally:
            with self._lock:
                self._pending -= 1

    def _detect_and_dispatch(self, frame: Frame) -> Tuple[OverlayState, Optional[Future]]:
        try:
            faces = self.detector.detect(frame)
        except DetectionFailure:
            logger.exception("[live] detection failed; dropping frame")
            return self.overlay_state(), None
        except Exception:
            logger.exception("[live] detector raised unexpectedly; dropping frame")
            return self.overlay_state(), None

        with self._lock:
            stale = self._faces_ts is not None and frame.timestamp < self._faces_ts
            if not stale:
                self._faces_ts = frame.timestamp
                self._state.faces = list(faces)
                self._state.frame_size = preview_frame_size(frame.width, frame.height, frame.rotation)
        if stale:
            logger.debug(f"[live] dropping detections from older frame ts={frame.timestamp}")
            return self.overlay_state(), None
        snap = self._notify()
        if not faces:
            return snap, None

        box = box_to_frame(faces[0].box, frame.width, frame.height, frame.rotation)
        try:
            payload = extract_async(self._extract_pool, frame, box, self.s).result()
        except InvalidRegion:
            logger.exception("[live] invalid face region; skipping emotion request")
            return snap, None

        now = self._clock()
        with self._lock:
            if self._state.in_flight or not should_request_emotion(
                    now, self._state.last_requested, self.s.EMOTION_INTERVAL):
                return self._snapshot(), None
            self._state.in_flight = True
            self._state.last_requested = now
            self.requests_sent += 1
            request = self._request_pool.submit(self._request, payload)
            self._request_future = request
        return self._notify(), request

    def _request(self, payload: FacePayload) -> None:
        result = EmotionResult()
        try:
            result = self.client.classify(payload)
            logger.debug(f"[live] emotion={result.emotion}")
        except TransportFailure:
            logger.exception("[live] emotion request failed; emotion -> unknown")
        except Exception:
            logger.exception("[live] emotion request raised unexpectedly; emotion -> unknown")
        finally:
            with self._lock:
                self._state.in_flight = False
                self._state.emotion = result.emotion
                self._state.logits = result.logits
            self._notify()

    def close(self) -> None:
        self._pipeline_pool.shutdown(wait=True)
        self._extract_pool.shutdown(wait=True)
        self._request_pool.shutdown(wait=True)


# -----------------------------------------------------------------------------
# LiveCamera: background capture thread feeding the coordinator (no UI)
# -----------------------------------------------------------------------------
class LiveCamera:
    """Reads the webcam on a daemon thread and hands frames to a coordinator."""
    def __init__(self, settings: Settings, coordinator: LiveCoordinator):
        self.s = settings
        self.coordinator = coordinator
        self._run = False
        self._thread: Optional[threading.Thread] = None
        self._started_at: Optional[float] = None

    @property
    def running(self) -> bool:
        return self._run

    # ---- lifecycle ----
    def start(self) -> bool:
        if self._run:
            return False
        self._run = True
        self._started_at = time.time()
        self._thread = threading.Thread(target=self._capture_loop, daemon=True)
        self._thread.start()
        return True

    def stop(self, timeout: float = 2.0) -> bool:
        if not self._run:
            return False
        self._run = False
        if self._thread is not None:
            self._thread.join(timeout=timeout)
        return True

    def status(self) -> LiveStatus:
        c = self.coordinator
        return LiveStatus(
            running=self._run,
            started_at=self._started_at,
            frames_seen=c.frames_seen,
            frames_processed=c.frames_processed,
            requests_sent=c.requests_sent,
            last_state=c.overlay_state(),
        )

    # ---- loop ----
    def _capture_loop(self) -> None:
        cap = cv2.VideoCapture(self.s.CAMERA_INDEX)
        if not cap.isOpened():
            logger.error(f"[live] could not open camera index {self.s.CAMERA_INDEX}")
            self._run = False
            return
        try:
            while self._run:
                ok, img = cap.read()
                if not ok or img is None:
                    time.sleep(0.1)
                    continue
                frame = frame_from_bgr(img, timestamp=time.monotonic(), rotation=self.s.SENSOR_ORIENTATION)
                self.coordinator.on_frame(frame)
                time.sleep(0.005)
        finally:
            cap.release()


# -----------------------------------------------------------------------------
# Live camera overlay window
# -----------------------------------------------------------------------------
def build_coordinator(settings: Settings) -> LiveCoordinator:
    # one keep-alive connection for all emotion uploads
    client = EmotionClient(settings, session=requests.Session())
    return LiveCoordinator(settings, build_detector(settings), client)


def run_live_overlay(settings: Settings,
                     camera_index: Optional[int] = None,
                     coordinator: Optional[LiveCoordinator] = None) -> None:
    """
    Open webcam, run the emotion pipeline on each frame, draw rectangles + label.

    The preview is letterboxed into DISPLAY_WIDTH x DISPLAY_HEIGHT and mirrored
    when MIRROR is set (front camera). Press 'q' to quit.
    """
    cam_idx = settings.CAMERA_INDEX if camera_index is None else camera_index
    cap = cv2.VideoCapture(cam_idx)
    if not cap.isOpened():
        raise RuntimeError(f"Could not open camera index {cam_idx}")

    coord = coordinator or build_coordinator(settings)
    display = Size(width=settings.DISPLAY_WIDTH, height=settings.DISPLAY_HEIGHT)
    try:
        while True:
            ok, img = cap.read()
            if not ok:
                break

            frame = frame_from_bgr(img, timestamp=time.monotonic(), rotation=settings.SENSOR_ORIENTATION)
            coord.on_frame(frame)

            state = coord.overlay_state()
            canvas = render_preview(rotate_upright(img, settings.SENSOR_ORIENTATION), display, settings.MIRROR)
            annotated = draw_overlays(canvas, coord.display_rects(display), state.emotion, state.in_flight)
            cv2.imshow("Face Emotion (q to quit)", annotated)

            if (cv2.waitKey(1) & 0xFF) == ord("q"):
                break
    finally:
        cap.release()
        cv2.destroyAllWindows()
        if coordinator is None:
            coord.close()
