"""Alignment engine for bilingual segment lists.

Runs the length-based baseline and the external aligner side by side,
arbitrates their links and records the outcome in the document ledger.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Tuple

from ..exceptions import BackendError, BackendUnavailable
from ..interfaces.aligner import IExternalAlignerBackend, ISentenceAligner
from ..models.alignment import AlignmentLink, AlignmentResult, covers
from ..models.document import AlignmentDocument
from ..models.enums import AlignmentMethod
from ..segments.extractor import extract_all
from .arbitrator import HybridArbitrator
from .gale_church import GaleChurchAligner


logger = logging.getLogger(__name__)


class AlignmentEngine:
    """
    Hybrid sentence alignment engine.

    Combines the Gale-Church baseline with an optional external aligner.
    External failures never abort a run; the engine falls back to the
    baseline and carries the reason in the result's method label.
    """

    def __init__(
        self,
        baseline: Optional[ISentenceAligner] = None,
        external: Optional[IExternalAlignerBackend] = None,
        arbitrator: Optional[HybridArbitrator] = None,
    ):
        """
        Initialize the alignment engine.

        Args:
            baseline: Length-based aligner (Gale-Church if not provided).
            external: Optional external aligner backend.
            arbitrator: Link arbitrator (default thresholds if not provided).
        """
        self._baseline = baseline or GaleChurchAligner()
        self._external = external
        self._arbitrator = arbitrator or HybridArbitrator()

    @property
    def external(self) -> Optional[IExternalAlignerBackend]:
        return self._external

    def align(self, sources: List[str], targets: List[str]) -> AlignmentResult:
        """
        Align two lists of segment texts.

        Args:
            sources: Source-language segment texts.
            targets: Target-language segment texts.

        Returns:
            AlignmentResult with the final links and the method used.
        """
        logger.info(f"Aligning {len(sources)} source and {len(targets)} target segments")

        with ThreadPoolExecutor(max_workers=2) as executor:
            baseline_future = executor.submit(self._baseline.align, sources, targets)
            alternate_future = executor.submit(self._run_external, sources, targets)
            baseline = baseline_future.result()
            alternate, failure = alternate_future.result()

        if alternate is None:
            label = AlignmentMethod.GALE_CHURCH.value
            if failure:
                label = f"{label} ({failure})"
            result = AlignmentResult(links=self._arbitrator.arbitrate(baseline, None), method=label)
        else:
            links = self._arbitrator.arbitrate(baseline, alternate)
            if not covers(links, len(sources), len(targets)):
                logger.info("Index-synchronous arbitration broke coverage; matching links by span")
                links = self._arbitrator.arbitrate_by_span(baseline, alternate)
            result = AlignmentResult(links=links, method=AlignmentMethod.HYBRID.value)

        logger.info(f"Alignment finished: {result}")
        return result

    def align_document(self, document: AlignmentDocument) -> AlignmentResult:
        """
        Align a document's segments and repopulate its ledger.

        Each link's confidence and note are recorded on the row of its
        first source segment.

        Args:
            document: Document whose lists are aligned.

        Returns:
            The AlignmentResult of the run.
        """
        result = self.align(extract_all(document.sources), extract_all(document.targets))
        document.ledger.clear()
        for link in result.links:
            if link.src_indices:
                document.ledger.set_confidence_and_method(
                    link.src_indices[0], link.confidence, link.note
                )
        return result

    def _run_external(
        self, sources: List[str], targets: List[str]
    ) -> Tuple[Optional[List[AlignmentLink]], Optional[str]]:
        """Run the external aligner; return (links, None) or (None, reason)."""
        if self._external is None:
            return None, None
        if not sources or not targets:
            return None, None
        name = self._external.name
        if not self._external.is_available():
            logger.info(f"{name} not available, using Gale-Church only")
            return None, f"{name} unavailable"
        try:
            links = self._external.align(sources, targets)
        except BackendUnavailable as e:
            logger.info(f"{name} not available: {e}")
            return None, f"{name} unavailable"
        except BackendError as e:
            logger.warning(f"{name} failed, falling back to Gale-Church: {e}")
            return None, f"{name} failed: {e.message}"
        if not covers(links, len(sources), len(targets)):
            logger.warning(f"{name} returned an incomplete alignment, falling back to Gale-Church")
            return None, f"{name} failed: incomplete alignment"
        return links, None
