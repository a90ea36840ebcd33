"""Per-row quality record kept by the segment ledger."""

from dataclasses import dataclass
from typing import Any, Dict

from .alignment import UNCERTAIN_THRESHOLD
from .enums import ConfidenceLevel


DEFAULT_CONFIDENCE = 0.5


@dataclass
class SegmentInfo:
    """
    Quality state of one alignment row.

    Attributes:
        confidence: Estimated correctness in [0, 1].
        manually_marked: The user flagged the row for review.
        ai_reviewed: A language model refined the row.
        method: Label of the algorithm that produced the confidence.
    """
    confidence: float = DEFAULT_CONFIDENCE
    manually_marked: bool = False
    ai_reviewed: bool = False
    method: str = ""

    @property
    def uncertain(self) -> bool:
        return self.confidence < UNCERTAIN_THRESHOLD or self.manually_marked

    @property
    def level(self) -> ConfidenceLevel:
        if self.ai_reviewed:
            return ConfidenceLevel.AI_REVIEWED
        if self.manually_marked:
            return ConfidenceLevel.MANUAL
        if self.confidence >= UNCERTAIN_THRESHOLD:
            return ConfidenceLevel.HIGH
        if self.confidence >= DEFAULT_CONFIDENCE:
            return ConfidenceLevel.MEDIUM
        return ConfidenceLevel.LOW

    def to_dict(self) -> Dict[str, Any]:
        return {
            "confidence": self.confidence,
            "manuallyMarked": self.manually_marked,
            "aiReviewed": self.ai_reviewed,
            "method": self.method,
            "level": self.level.value,
            "uncertain": self.uncertain,
        }
