"""Language-model provider interface for alignment refinement."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..models.alignment import AlignmentLink


@dataclass
class CostEstimate:
    """
    Estimated cost of one refinement request.

    Attributes:
        input_tokens: Approximate prompt tokens.
        output_tokens: Approximate reply tokens.
        estimated_cost: Cost in USD.
        provider: Provider label.
        model: Model name.
        total_segments: Number of rows in the alignment.
        uncertain_segments: Number of rows sent for review.
        breakdown: Human-readable cost breakdown.
    """
    input_tokens: int
    output_tokens: int
    estimated_cost: float
    provider: str
    model: str
    total_segments: int = 0
    uncertain_segments: int = 0
    breakdown: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    @property
    def formatted_cost(self) -> str:
        if self.estimated_cost < 0.01:
            return "$%.4f" % self.estimated_cost
        if self.estimated_cost < 1:
            return "$%.3f" % self.estimated_cost
        return "$%.2f" % self.estimated_cost

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "model": self.model,
            "totalSegments": self.total_segments,
            "uncertainSegments": self.uncertain_segments,
            "inputTokens": self.input_tokens,
            "outputTokens": self.output_tokens,
            "totalTokens": self.total_tokens,
            "estimatedCost": self.estimated_cost,
            "formattedCost": self.formatted_cost,
            "breakdown": self.breakdown,
        }


class IAIProvider(ABC):
    """
    Abstract interface for language-model providers.

    A provider turns the full segment texts plus the uncertain links into a
    list of suggested links.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Human-readable provider name."""
        pass

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Model identifier sent with each request."""
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        """True when an API key is available."""
        pass

    @abstractmethod
    def analyze(
        self,
        sources: List[str],
        targets: List[str],
        uncertain: List[AlignmentLink],
    ) -> List[AlignmentLink]:
        """
        Ask the model to review uncertain links.

        Args:
            sources: Full list of source texts.
            targets: Full list of target texts.
            uncertain: Links needing review.

        Returns:
            Links suggested by the model.

        Raises:
            BackendUnconfigured: If no API key is configured.
            HttpError: If the endpoint answers with a non-200 status.
            ResponseParseError: If the reply does not match the schema.
        """
        pass

    @abstractmethod
    def estimate_cost(
        self,
        sources: List[str],
        targets: List[str],
        uncertain: List[AlignmentLink],
    ) -> CostEstimate:
        """
        Estimate the cost of ``analyze`` for the same arguments.

        Returns:
            CostEstimate for the request.
        """
        pass
