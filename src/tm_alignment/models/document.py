"""Alignment document: the two segment lists and their ledger."""

import uuid
from dataclasses import dataclass, field
from typing import List, Optional

from ..quality.ledger import SegmentLedger
from .enums import Side
from .segment import Segment


@dataclass
class AlignmentDocument:
    """
    Persistable container of an alignment.

    The document exclusively owns its segment lists; the ledger lives
    alongside and is keyed by row (list position).

    Attributes:
        src_lang: BCP-47 tag of the source side.
        tgt_lang: BCP-47 tag of the target side.
        sources: Ordered source segments.
        targets: Ordered target segments.
        ledger: Per-row quality state.
        file_path: Where the document was loaded from or saved to.
        id: Identifier used by the audit trail.
    """
    src_lang: str
    tgt_lang: str
    sources: List[Segment] = field(default_factory=list)
    targets: List[Segment] = field(default_factory=list)
    ledger: SegmentLedger = field(default_factory=SegmentLedger)
    file_path: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self):
        if self.sources is None:
            self.sources = []
        if self.targets is None:
            self.targets = []
        if self.ledger is None:
            self.ledger = SegmentLedger()
        self.ledger.bind(self.row_count)

    def segments(self, side: Side) -> List[Segment]:
        """The list on one side."""
        return self.sources if side is Side.SOURCE else self.targets

    def row_count(self) -> int:
        return max(len(self.sources), len(self.targets))

    def uncertain_ids(self) -> List[int]:
        return self.ledger.uncertain_ids(self.row_count())
