"""Alignment link and result models."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from .enums import LinkShape


# Links below this confidence are treated as uncertain everywhere.
UNCERTAIN_THRESHOLD = 0.75


@dataclass
class AlignmentLink:
    """
    An m:n grouping of consecutive source and target segments.

    Attributes:
        src_indices: Ordered 0-based source positions (zero to two of them).
        tgt_indices: Ordered 0-based target positions (zero to two of them).
        confidence: Estimated correctness in [0, 1].
        note: Short provenance label.
        ai_reviewed: Whether a language model produced or confirmed the link.
    """
    src_indices: List[int]
    tgt_indices: List[int]
    confidence: float
    note: str = ""
    ai_reviewed: bool = False

    def __post_init__(self):
        if self.src_indices is None:
            self.src_indices = []
        if self.tgt_indices is None:
            self.tgt_indices = []

    @property
    def shape(self) -> LinkShape:
        return LinkShape.of(len(self.src_indices), len(self.tgt_indices))

    @property
    def alignment_type(self) -> str:
        return f"{len(self.src_indices)}:{len(self.tgt_indices)}"

    def is_one_to_one(self) -> bool:
        return len(self.src_indices) == 1 and len(self.tgt_indices) == 1

    def is_uncertain(self) -> bool:
        return self.confidence < UNCERTAIN_THRESHOLD

    def same_span(self, other: "AlignmentLink") -> bool:
        """True when both links group exactly the same segments."""
        return (
            self.src_indices == other.src_indices
            and self.tgt_indices == other.tgt_indices
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": list(self.src_indices),
            "target": list(self.tgt_indices),
            "confidence": self.confidence,
            "note": self.note,
            "aiReviewed": self.ai_reviewed,
            "type": self.alignment_type,
        }

    def __str__(self) -> str:
        reviewed = " [AI]" if self.ai_reviewed else ""
        return (
            f"S{self.src_indices} <-> T{self.tgt_indices} "
            f"({self.confidence:.2f}) [{self.note}]{reviewed}"
        )


def covers(links: Sequence[AlignmentLink], source_count: int, target_count: int) -> bool:
    """
    Check that a link sequence covers both sides exactly once, in order.

    Args:
        links: Link sequence to check.
        source_count: Number of source segments.
        target_count: Number of target segments.

    Returns:
        True when the concatenated source indices are ``0..source_count-1``,
        the target indices are ``0..target_count-1``, and every link has a
        valid shape.
    """
    src: List[int] = []
    tgt: List[int] = []
    for link in links:
        if len(link.src_indices) > 2 or len(link.tgt_indices) > 2:
            return False
        if not link.src_indices and not link.tgt_indices:
            return False
        src.extend(link.src_indices)
        tgt.extend(link.tgt_indices)
    return src == list(range(source_count)) and tgt == list(range(target_count))


@dataclass
class AlignmentResult:
    """
    Outcome of an alignment run.

    Holds the final link sequence plus the method label that produced it,
    and derives the summary statistics shown to the user.
    """
    links: List[AlignmentLink] = field(default_factory=list)
    method: str = ""
    ai_reviewed_count: int = 0

    def __post_init__(self):
        if self.links is None:
            self.links = []

    @property
    def total_links(self) -> int:
        return len(self.links)

    @property
    def uncertain_links(self) -> List[AlignmentLink]:
        return [link for link in self.links if link.is_uncertain()]

    @property
    def confident_count(self) -> int:
        return self.total_links - len(self.uncertain_links)

    @property
    def confident_percent(self) -> float:
        if not self.links:
            return 0.0
        return self.confident_count * 100.0 / self.total_links

    @property
    def one_to_one_count(self) -> int:
        return sum(1 for link in self.links if link.is_one_to_one())

    @property
    def complex_count(self) -> int:
        return self.total_links - self.one_to_one_count

    @property
    def average_confidence(self) -> float:
        if not self.links:
            return 0.0
        return sum(link.confidence for link in self.links) / self.total_links

    @property
    def needs_ai_review(self) -> bool:
        return bool(self.uncertain_links)

    def to_dict(self, include_links: bool = True) -> Dict[str, Any]:
        """Summary statistics, optionally with the links themselves."""
        data: Dict[str, Any] = {
            "method": self.method,
            "totalPairs": self.total_links,
            "confidentPairs": self.confident_count,
            "uncertainPairs": len(self.uncertain_links),
            "oneToOneCount": self.one_to_one_count,
            "complexCount": self.complex_count,
            "overallConfidence": self.average_confidence,
            "confidencePercent": self.confident_percent,
            "aiReviewedCount": self.ai_reviewed_count,
            "needsAIReview": self.needs_ai_review,
        }
        if include_links:
            data["pairs"] = [link.to_dict() for link in self.links]
        return data

    def __str__(self) -> str:
        return (
            f"AlignmentResult[pairs={self.total_links}, "
            f"confident={self.confident_percent:.1f}%, "
            f"uncertain={len(self.uncertain_links)}, aiReviewed={self.ai_reviewed_count}]"
        )
