"""
HTTP client for the remote emotion classifier.

POSTs the face crop as a multipart upload (field `file`) and expects:
    {"status": "success", "result": {"emotion": "<label>", "logits": [...]}}
"""
# core/client.py
from __future__ import annotations
from typing import Any, List, Optional
import logging
import time

import requests

from core.config import Settings
from core.errors import TransportFailure
from core.models import EmotionResult, FacePayload, UNKNOWN_EMOTION

logger = logging.getLogger(__name__)


def parse_emotion_response(data: Any) -> EmotionResult:
    """Validate a decoded JSON body; raise TransportFailure if it has no usable emotion."""
    if not isinstance(data, dict):
        raise TransportFailure("response is not a JSON object")
    if data.get("status") != "success":
        raise TransportFailure(f"classifier status={data.get('status')!r}")
    result = data.get("result")
    if not isinstance(result, dict):
        raise TransportFailure("missing result object")
    emotion = result.get("emotion")
    if not isinstance(emotion, str) or not emotion:
        raise TransportFailure("missing result.emotion")

    logits: Optional[List[float]] = None
    raw = result.get("logits")
    if isinstance(raw, list):
        try:
            logits = [float(v) for v in raw]
        except (TypeError, ValueError):
            logger.warning("[client] ignoring non-numeric logits")
            logits = None
    return EmotionResult(emotion=emotion, logits=logits)


class EmotionClient:
    """Thin wrapper over `requests.post`; one call per face payload."""
    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        self.url = settings.EMOTION_SERVER_URL
        self.upload_name = settings.UPLOAD_NAME
        self.content_type = settings.UPLOAD_CONTENT_TYPE
        self.timeout = settings.REQUEST_TIMEOUT
        self._http = session or requests

    def classify(self, payload: FacePayload) -> EmotionResult:
        """Upload `payload` and return the parsed emotion. Raises TransportFailure."""
        content_type = self.content_type or payload.content_type
        files = {"file": (f"{self.upload_name}.png", payload.data, content_type)}
        t0 = time.perf_counter()
        try:
            resp = self._http.post(self.url, files=files, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportFailure(f"request to {self.url} failed: {e}") from e
        latency_ms = (time.perf_counter() - t0) * 1000.0
        logger.debug(f"[client] POST {self.url} status={resp.status_code} took={latency_ms:.0f}ms")

        if resp.status_code != 200:
            raise TransportFailure(f"classifier returned HTTP {resp.status_code}", status_code=resp.status_code)
        try:
            data = resp.json()
        except ValueError as e:
            raise TransportFailure("classifier returned malformed JSON", status_code=resp.status_code) from e

        result = parse_emotion_response(data)
        result.latency_ms = latency_ms
        return result

    def classify_or_unknown(self, payload: FacePayload) -> EmotionResult:
        """Like classify, but any failure yields the "unknown" sentinel."""
        try:
            return self.classify(payload)
        except TransportFailure:
            logger.exception("[client] emotion request failed; using sentinel")
            return EmotionResult(emotion=UNKNOWN_EMOTION)
