"""Length-based sentence alignment (Gale and Church, character variant).

The aligner fills a dynamic-programming table over prefixes of the two
segment lists. Each cell holds the cheapest cost of aligning ``S[0..i)``
with ``T[0..j)``; six transition shapes extend a cell, each with a fixed
type penalty plus, for shapes that pair text on both sides, a length
penalty derived from the expected target/source length ratio.
"""

import math
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from ..interfaces.aligner import ISentenceAligner
from ..models.alignment import AlignmentLink
from ..models.enums import LinkShape


MEAN_RATIO = 1.0
VARIANCE = 6.8


@dataclass(frozen=True)
class Transition:
    """One DP step: segments consumed per side, type penalty, seed confidence."""
    shape: LinkShape
    src_step: int
    tgt_step: int
    penalty: float
    seed: float
    description: str


# Order matters: on equal cost the earlier transition wins.
TRANSITIONS: Tuple[Transition, ...] = (
    Transition(LinkShape.ONE_TO_ONE, 1, 1, 0.0, 0.95, "1:1 match"),
    Transition(LinkShape.ONE_TO_TWO, 1, 2, 230.0, 0.75, "1:2 match (source split in target)"),
    Transition(LinkShape.TWO_TO_ONE, 2, 1, 230.0, 0.75, "2:1 match (source merged in target)"),
    Transition(LinkShape.TWO_TO_TWO, 2, 2, 440.0, 0.60, "2:2 match (complex)"),
    Transition(LinkShape.DELETION, 1, 0, 450.0, 0.50, "Deletion (no target)"),
    Transition(LinkShape.INSERTION, 0, 1, 450.0, 0.50, "Insertion (no source)"),
)


def match_cost(transition: Transition, source_length: int, target_length: int) -> float:
    """
    Cost of one transition.

    Args:
        transition: The transition taken.
        source_length: Total characters of the consumed source segments.
        target_length: Total characters of the consumed target segments.

    Returns:
        Type penalty plus the squared-deviation length penalty.
    """
    if transition.src_step == 0 or transition.tgt_step == 0:
        return transition.penalty
    source_length = max(source_length, 1)
    delta = target_length - source_length * MEAN_RATIO
    return delta * delta / (2 * VARIANCE * source_length) + transition.penalty


def link_confidence(transition: Transition, source_length: int, target_length: int) -> float:
    """
    Seed confidence of a shape, lowered for lopsided length ratios.

    Returns:
        Confidence clamped to [0, 1].
    """
    confidence = transition.seed
    if transition.src_step and transition.tgt_step:
        ratio = max(source_length, target_length) / max(1, min(source_length, target_length))
        if ratio > 3.0:
            confidence *= 0.8
        elif ratio > 2.0:
            confidence *= 0.9
    return max(0.0, min(1.0, confidence))


class GaleChurchAligner(ISentenceAligner):
    """
    Baseline aligner driven only by segment character lengths.

    Deterministic; never fails on valid input and returns ``[]`` when either
    side is empty.
    """

    def align(self, sources: List[str], targets: List[str]) -> List[AlignmentLink]:
        """
        Align two lists of segment texts.

        Args:
            sources: Source-language segment texts.
            targets: Target-language segment texts.

        Returns:
            Links in forward order covering both lists exactly once.
        """
        if not sources or not targets:
            return []

        src_lengths = [len(text) for text in sources]
        tgt_lengths = [len(text) for text in targets]
        backpointers = self._fill_table(src_lengths, tgt_lengths)
        return self._backtrack(backpointers, src_lengths, tgt_lengths)

    def _fill_table(
        self, src_lengths: Sequence[int], tgt_lengths: Sequence[int]
    ) -> List[List[int]]:
        """Run the DP and return the backpointer table of transition indices."""
        rows, cols = len(src_lengths), len(tgt_lengths)
        cost = [[math.inf] * (cols + 1) for _ in range(rows + 1)]
        back = [[-1] * (cols + 1) for _ in range(rows + 1)]
        cost[0][0] = 0.0

        for i in range(rows + 1):
            for j in range(cols + 1):
                current = cost[i][j]
                if current == math.inf:
                    continue
                for index, transition in enumerate(TRANSITIONS):
                    ni, nj = i + transition.src_step, j + transition.tgt_step
                    if ni > rows or nj > cols:
                        continue
                    candidate = current + match_cost(
                        transition,
                        sum(src_lengths[i:ni]),
                        sum(tgt_lengths[j:nj]),
                    )
                    if candidate < cost[ni][nj]:
                        cost[ni][nj] = candidate
                        back[ni][nj] = index
        return back

    def _backtrack(
        self,
        back: List[List[int]],
        src_lengths: Sequence[int],
        tgt_lengths: Sequence[int],
    ) -> List[AlignmentLink]:
        links: List[AlignmentLink] = []
        i, j = len(src_lengths), len(tgt_lengths)
        while i > 0 or j > 0:
            transition = TRANSITIONS[back[i][j]]
            pi, pj = i - transition.src_step, j - transition.tgt_step
            src_indices = list(range(pi, i))
            tgt_indices = list(range(pj, j))
            confidence = link_confidence(
                transition,
                sum(src_lengths[pi:i]),
                sum(tgt_lengths[pj:j]),
            )
            links.append(
                AlignmentLink(src_indices, tgt_indices, confidence, transition.description)
            )
            i, j = pi, pj
        links.reverse()
        return links
