"""Data models and enums for the alignment system."""

from .enums import (
    AlignmentMethod,
    ConfidenceLevel,
    LinkShape,
    OperationClass,
    Side,
)
from .segment import (
    GroupNode,
    Node,
    PlaceholderNode,
    Segment,
    TextNode,
)
from .alignment import (
    UNCERTAIN_THRESHOLD,
    AlignmentLink,
    AlignmentResult,
    covers,
)
from .quality import DEFAULT_CONFIDENCE, SegmentInfo
from .document import AlignmentDocument

__all__ = [
    # Enums
    "AlignmentMethod",
    "ConfidenceLevel",
    "LinkShape",
    "OperationClass",
    "Side",
    # Segment content
    "GroupNode",
    "Node",
    "PlaceholderNode",
    "Segment",
    "TextNode",
    # Alignment
    "UNCERTAIN_THRESHOLD",
    "AlignmentLink",
    "AlignmentResult",
    "covers",
    # Quality
    "DEFAULT_CONFIDENCE",
    "SegmentInfo",
    # Document
    "AlignmentDocument",
]
