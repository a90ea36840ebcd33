"""Reconcile the baseline and alternate alignments link by link."""

import logging
from dataclasses import replace
from typing import List, Optional

from ..models.alignment import UNCERTAIN_THRESHOLD, AlignmentLink


logger = logging.getLogger(__name__)

AGREEMENT_BOOST = 0.15
AGREEMENT_CEILING = 0.95
DISAGREEMENT_PENALTY = 0.1
DISAGREEMENT_FLOOR = 0.65

AGREEMENT_NOTE = "Agreement: baseline + alternate"
ALTERNATE_NOTE = "alternate (improved uncertain baseline)"
DISAGREEMENT_NOTE = "baseline (algorithms disagree)"


class HybridArbitrator:
    """
    Merge two candidate link sequences.

    The sequences are walked index-synchronously. Agreement raises the
    baseline confidence; an uncertain baseline yields to the alternate; a
    confident baseline is kept with a lowered confidence. Baseline links
    beyond the end of the alternate pass through unchanged.
    """

    def __init__(self, uncertain_threshold: float = UNCERTAIN_THRESHOLD):
        self.uncertain_threshold = uncertain_threshold

    def arbitrate(
        self,
        baseline: List[AlignmentLink],
        alternate: Optional[List[AlignmentLink]],
    ) -> List[AlignmentLink]:
        """
        Arbitrate between baseline and alternate links.

        Args:
            baseline: Links from the length-based aligner.
            alternate: Links from the external aligner, or None when it
                was unavailable.

        Returns:
            New link list; the inputs are not modified.
        """
        if alternate is None:
            return [replace(link) for link in baseline]

        merged: List[AlignmentLink] = []
        paired = min(len(baseline), len(alternate))
        for b, a in zip(baseline[:paired], alternate[:paired]):
            merged.append(self._arbitrate_pair(b, a))
        merged.extend(replace(link) for link in baseline[paired:])

        if len(baseline) != len(alternate):
            logger.debug(
                f"Baseline has {len(baseline)} links, alternate {len(alternate)}; "
                f"{len(baseline) - paired} baseline links passed through"
            )
        return merged

    def arbitrate_by_span(
        self,
        baseline: List[AlignmentLink],
        alternate: List[AlignmentLink],
    ) -> List[AlignmentLink]:
        """
        Span-matched arbitration that always keeps the baseline grouping.

        Each baseline link is compared with the alternate link grouping the
        same source segments, wherever it sits in the alternate sequence.
        Agreement and confident disagreement adjust confidence as in
        ``arbitrate``; an uncertain baseline link is kept unchanged since
        adopting a differently shaped alternate link would break coverage.

        Returns:
            New link list covering exactly what the baseline covers.
        """
        by_source = {tuple(a.src_indices): a for a in alternate if a.src_indices}
        merged: List[AlignmentLink] = []
        for b in baseline:
            a = by_source.get(tuple(b.src_indices))
            if a is not None and b.same_span(a):
                merged.append(self._arbitrate_pair(b, a))
            elif b.confidence >= self.uncertain_threshold:
                merged.append(replace(
                    b,
                    confidence=max(DISAGREEMENT_FLOOR, b.confidence - DISAGREEMENT_PENALTY),
                    note=DISAGREEMENT_NOTE,
                ))
            else:
                merged.append(replace(b))
        return merged

    def _arbitrate_pair(self, b: AlignmentLink, a: AlignmentLink) -> AlignmentLink:
        if b.same_span(a):
            return replace(
                b,
                confidence=max(
                    b.confidence,
                    min(AGREEMENT_CEILING, b.confidence + AGREEMENT_BOOST),
                ),
                note=AGREEMENT_NOTE,
            )
        if b.confidence < self.uncertain_threshold:
            return replace(a, note=ALTERNATE_NOTE)
        return replace(
            b,
            confidence=max(DISAGREEMENT_FLOOR, b.confidence - DISAGREEMENT_PENALTY),
            note=DISAGREEMENT_NOTE,
        )
