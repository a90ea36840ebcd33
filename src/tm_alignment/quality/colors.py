"""Confidence-to-colour gradient used by the row views."""

from typing import Tuple


RED = (0xF4, 0x43, 0x36)
YELLOW = (0xFF, 0xCC, 0x00)
GREEN = (0x4C, 0xAF, 0x50)


def _interpolate(start: Tuple[int, int, int], end: Tuple[int, int, int], ratio: float) -> Tuple[int, int, int]:
    return tuple(int(s + (e - s) * ratio) for s, e in zip(start, end))


def confidence_color(confidence: float) -> str:
    """
    Map a confidence to a hex colour.

    Red to yellow over [0, 0.5], yellow to green over [0.5, 1]; values
    outside [0, 1] are clamped.

    Args:
        confidence: Confidence value.

    Returns:
        Colour string such as ``#ffcc00``.
    """
    confidence = max(0.0, min(1.0, confidence))
    if confidence < 0.5:
        rgb = _interpolate(RED, YELLOW, confidence * 2)
    else:
        rgb = _interpolate(YELLOW, GREEN, (confidence - 0.5) * 2)
    return "#%02x%02x%02x" % rgb
