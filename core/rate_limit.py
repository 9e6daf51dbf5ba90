# core/rate_limit.py
"""
Time gates for the live pipeline.

The frame gate keeps detection at camera-friendly rates (~20 fps); the emotion
gate keeps the costly network call at one every few seconds. Both are pure so
they can be tuned independently and tested without a clock.
"""
from __future__ import annotations
from typing import Optional


def _elapsed_at_least(now: float, last: Optional[float], min_interval: float) -> bool:
    if last is None:
        return True
    return (now - last) >= min_interval


def should_process_frame(now: float, last_processed: Optional[float], min_interval: float) -> bool:
    """True if at least `min_interval` seconds passed since the last processed frame."""
    return _elapsed_at_least(now, last_processed, min_interval)


def should_request_emotion(now: float, last_requested: Optional[float], min_interval: float) -> bool:
    """True if at least `min_interval` seconds passed since the last emotion request."""
    return _elapsed_at_least(now, last_requested, min_interval)
