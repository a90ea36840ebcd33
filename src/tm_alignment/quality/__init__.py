"""Segment-quality ledger and confidence display helpers."""

from .colors import confidence_color
from .ledger import SegmentLedger

__all__ = [
    "SegmentLedger",
    "confidence_color",
]
