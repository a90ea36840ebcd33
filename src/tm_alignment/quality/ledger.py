"""Segment-quality ledger.

Keeps one ``SegmentInfo`` per alignment row. Rows are addressed by list
position; ``get`` on a row that was never written stores a default entry,
while ``peek`` returns one without storing it. Structural edits renumber entries eagerly through ``remove_row``
and ``insert_row`` so that an entry always describes the row
at its current position.
"""

from typing import Callable, Dict, Iterator, List, Optional, Tuple

from ..models.quality import SegmentInfo


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


class SegmentLedger:
    """
    Mapping from row id to ``SegmentInfo`` with on-demand defaults.

    The ledger does not know the segment lists; the owning document passes a
    ``row_count`` callable returning ``max(|S|, |T|)`` so that
    ``uncertain_ids()`` can walk every row.
    """

    def __init__(self, row_count: Optional[Callable[[], int]] = None):
        self._entries: Dict[int, SegmentInfo] = {}
        self._row_count = row_count

    def bind(self, row_count: Callable[[], int]) -> None:
        """Attach the row-count provider of the owning document."""
        self._row_count = row_count

    # =========================================================================
    # Entry access
    # =========================================================================

    def get(self, segment_id: int) -> SegmentInfo:
        """
        Return the entry for a row, creating a default one if needed.

        Args:
            segment_id: Row id.

        Returns:
            The stored SegmentInfo.
        """
        info = self._entries.get(segment_id)
        if info is None:
            info = SegmentInfo()
            self._entries[segment_id] = info
        return info

    def peek(self, segment_id: int) -> SegmentInfo:
        """Return the entry for a row without storing a default one."""
        info = self._entries.get(segment_id)
        return info if info is not None else SegmentInfo()

    def __contains__(self, segment_id: int) -> bool:
        return segment_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def items(self) -> Iterator[Tuple[int, SegmentInfo]]:
        return iter(sorted(self._entries.items()))

    def clear(self) -> None:
        self._entries.clear()

    def set_confidence(self, segment_id: int, confidence: float) -> None:
        self.get(segment_id).confidence = _clamp(confidence)

    def set_confidence_and_method(
        self, segment_id: int, confidence: float, method: str
    ) -> None:
        info = self.get(segment_id)
        info.confidence = _clamp(confidence)
        info.method = method

    def toggle_manual_mark(self, segment_id: int) -> bool:
        """Flip the manual review mark and return its new value."""
        info = self.get(segment_id)
        info.manually_marked = not info.manually_marked
        return info.manually_marked

    def set_manual_mark(self, segment_id: int, marked: bool) -> None:
        self.get(segment_id).manually_marked = marked

    def set_ai_reviewed(self, segment_id: int, reviewed: bool) -> None:
        self.get(segment_id).ai_reviewed = reviewed

    # =========================================================================
    # Queries
    # =========================================================================

    def uncertain_ids(self, row_count: Optional[int] = None) -> List[int]:
        """
        Ids of all rows that need review.

        Every row in ``[0, row_count)`` is considered, so rows without a
        recorded entry count with the default confidence.

        Args:
            row_count: Number of rows; defaults to the bound provider.

        Returns:
            Ascending list of row ids whose entry is uncertain.
        """
        if row_count is None:
            row_count = self._row_count() if self._row_count else 0
        return [i for i in range(row_count) if self.peek(i).uncertain]

    def ai_reviewed_count(self) -> int:
        return sum(1 for info in self._entries.values() if info.ai_reviewed)

    # =========================================================================
    # Renumbering after structural edits
    # =========================================================================

    def remove_row(self, segment_id: int) -> None:
        """Drop the entry at ``segment_id`` and shift later entries down by one."""
        shifted: Dict[int, SegmentInfo] = {}
        for key, info in self._entries.items():
            if key < segment_id:
                shifted[key] = info
            elif key > segment_id:
                shifted[key - 1] = info
        self._entries = shifted

    def insert_row(self, segment_id: int) -> None:
        """Shift entries at or after ``segment_id`` up by one, leaving a gap."""
        shifted: Dict[int, SegmentInfo] = {}
        for key, info in self._entries.items():
            shifted[key + 1 if key >= segment_id else key] = info
        self._entries = shifted
