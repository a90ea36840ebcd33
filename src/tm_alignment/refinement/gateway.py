"""Send uncertain rows to a language model and apply its suggestions."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..interfaces.ai_provider import CostEstimate, IAIProvider
from ..models.alignment import AlignmentLink
from ..models.document import AlignmentDocument
from ..segments.extractor import extract_all


logger = logging.getLogger(__name__)

MARKED_NOTE = "Manually marked for review"
LOW_CONFIDENCE_NOTE = "Low confidence"


@dataclass
class RefinementReport:
    """
    Outcome of one refinement run.

    Attributes:
        refined_count: Ledger entries updated from the reply.
        swapped_count: Target pairs physically swapped.
        remaining_uncertain: Uncertain rows after the run.
        overall_confidence: Share of rows that are no longer uncertain.
        provider: Provider label.
        model: Model name.
        estimate: Cost estimate of the request, if one was sent.
    """
    refined_count: int = 0
    swapped_count: int = 0
    remaining_uncertain: int = 0
    overall_confidence: float = 0.0
    provider: str = ""
    model: str = ""
    estimate: Optional[CostEstimate] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "refinedCount": self.refined_count,
            "swappedCount": self.swapped_count,
            "remainingUncertain": self.remaining_uncertain,
            "overallConfidence": self.overall_confidence,
            "provider": self.provider,
            "model": self.model,
            "estimate": self.estimate.to_dict() if self.estimate else None,
        }


class RefinementGateway:
    """
    Refines the uncertain rows of a document with a language model.

    The reply is parsed completely before anything is applied, so a failed
    request or an unparseable reply leaves the document untouched.
    """

    def __init__(self, provider: IAIProvider):
        self.provider = provider

    def candidate_links(self, document: AlignmentDocument) -> List[AlignmentLink]:
        """One link per uncertain row, pairing the row's source and target."""
        links = []
        for segment_id in document.uncertain_ids():
            info = document.ledger.peek(segment_id)
            links.append(AlignmentLink(
                src_indices=[segment_id] if segment_id < len(document.sources) else [],
                tgt_indices=[segment_id] if segment_id < len(document.targets) else [],
                confidence=info.confidence,
                note=MARKED_NOTE if info.manually_marked else LOW_CONFIDENCE_NOTE,
            ))
        return links

    def estimate(self, document: AlignmentDocument) -> CostEstimate:
        """Estimate the request cost without contacting the model."""
        return self.provider.estimate_cost(
            extract_all(document.sources),
            extract_all(document.targets),
            self.candidate_links(document),
        )

    def refine(self, document: AlignmentDocument) -> RefinementReport:
        """
        Review the uncertain rows and write the suggestions back.

        A suggestion whose source id differs from its first target id swaps
        those two targets; the ledger entry of the source id then takes the
        returned confidence and is flagged as AI-reviewed.

        Args:
            document: Document to refine in place.

        Returns:
            RefinementReport with counts and the updated overall confidence.

        Raises:
            BackendUnconfigured: If the provider has no API key.
            BackendError: On transport failure or a non-200 reply.
            ResponseParseError: If the reply does not match the schema.
        """
        report = RefinementReport(
            provider=self.provider.provider_name,
            model=self.provider.model_name,
        )
        uncertain = self.candidate_links(document)
        if not uncertain:
            logger.info("No uncertain rows to refine")
            self._fill_statistics(document, report)
            return report

        sources = extract_all(document.sources)
        targets = extract_all(document.targets)
        report.estimate = self.provider.estimate_cost(sources, targets, uncertain)
        logger.info(
            f"Refining {len(uncertain)} rows with {report.provider}, "
            f"estimated cost {report.estimate.formatted_cost}"
        )

        suggestions = self.provider.analyze(sources, targets, uncertain)

        target_count = len(document.targets)
        for link in suggestions:
            if not link.src_indices or not link.tgt_indices:
                continue
            src_id = link.src_indices[0]
            suggested = link.tgt_indices[0]
            if src_id != suggested and src_id < target_count and suggested < target_count:
                document.targets[src_id], document.targets[suggested] = (
                    document.targets[suggested],
                    document.targets[src_id],
                )
                report.swapped_count += 1
            info = document.ledger.get(src_id)
            info.confidence = link.confidence
            info.ai_reviewed = True
            info.manually_marked = False
            report.refined_count += 1

        self._fill_statistics(document, report)
        logger.info(
            f"Refinement applied: {report.refined_count} rows updated, "
            f"{report.swapped_count} targets swapped, {report.remaining_uncertain} still uncertain"
        )
        return report

    @staticmethod
    def _fill_statistics(document: AlignmentDocument, report: RefinementReport) -> None:
        total = document.row_count()
        report.remaining_uncertain = len(document.uncertain_ids())
        report.overall_confidence = (
            (total - report.remaining_uncertain) / total if total else 0.0
        )
