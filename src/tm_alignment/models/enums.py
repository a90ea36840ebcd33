"""Enumerations for the alignment system."""

from enum import Enum


class Side(Enum):
    """Which segment list an operation targets."""
    SOURCE = "source"
    TARGET = "target"

    @classmethod
    def parse(cls, value: str) -> "Side":
        """Accept "source"/"target" as well as the short "src"/"tgt" forms."""
        normalized = value.strip().lower()
        if normalized in ("src", "source"):
            return cls.SOURCE
        if normalized in ("tgt", "target"):
            return cls.TARGET
        raise ValueError(f"Unknown side: {value}")


class LinkShape(Enum):
    """
    Transition shapes of an m:n alignment link.

    The declaration order is the tie-break order of the dynamic program.
    """
    ONE_TO_ONE = "1:1"
    ONE_TO_TWO = "1:2"
    TWO_TO_ONE = "2:1"
    TWO_TO_TWO = "2:2"
    DELETION = "1:0"
    INSERTION = "0:1"

    @classmethod
    def of(cls, src_count: int, tgt_count: int) -> "LinkShape":
        """Look up the shape for a pair of index counts."""
        return cls(f"{src_count}:{tgt_count}")


class ConfidenceLevel(Enum):
    """Display level of a ledger entry."""
    AI_REVIEWED = "ai-reviewed"
    MANUAL = "manual"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class AlignmentMethod(Enum):
    """Labels of the algorithms that produce link confidences."""
    GALE_CHURCH = "Gale-Church"
    EXTERNAL = "External aligner"
    HYBRID = "Hybrid (Gale-Church + external aligner)"


class OperationClass(Enum):
    """Long-running operations that run on background workers."""
    ALIGN = "align"
    LOAD = "load"
    SAVE = "save"
    REFINE = "refine"
