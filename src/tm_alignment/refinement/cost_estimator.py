"""Token and cost estimates for refinement requests."""

from typing import List

from ..interfaces.ai_provider import CostEstimate
from ..models.alignment import AlignmentLink


TOKENS_PER_CHAR = 0.25
PROMPT_OVERHEAD_CHARS = 1000
CHARS_PER_SEGMENT_LINE = 10
CHARS_PER_PAIR = 50
OUTPUT_TOKENS_PER_PAIR = 50


def estimate_cost(
    sources: List[str],
    targets: List[str],
    uncertain: List[AlignmentLink],
    input_price: float,
    output_price: float,
    provider: str = "",
    model: str = "",
) -> CostEstimate:
    """
    Estimate the tokens and price of one review request.

    Args:
        sources: Source texts listed in the prompt.
        targets: Target texts listed in the prompt.
        uncertain: Links sent for review.
        input_price: USD per million input tokens.
        output_price: USD per million output tokens.
        provider: Provider label for the estimate.
        model: Model name for the estimate.

    Returns:
        CostEstimate including a readable breakdown.
    """
    prompt_chars = PROMPT_OVERHEAD_CHARS
    prompt_chars += sum(len(text) + CHARS_PER_SEGMENT_LINE for text in sources)
    prompt_chars += sum(len(text) + CHARS_PER_SEGMENT_LINE for text in targets)
    prompt_chars += len(uncertain) * CHARS_PER_PAIR

    input_tokens = int(prompt_chars * TOKENS_PER_CHAR)
    output_tokens = len(uncertain) * OUTPUT_TOKENS_PER_PAIR
    input_cost = input_tokens / 1_000_000 * input_price
    output_cost = output_tokens / 1_000_000 * output_price

    estimate = CostEstimate(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        estimated_cost=input_cost + output_cost,
        provider=provider,
        model=model,
        total_segments=max(len(sources), len(targets)),
        uncertain_segments=len(uncertain),
        metadata={"input_cost": input_cost, "output_cost": output_cost},
    )
    estimate.breakdown = (
        f"Provider: {provider} ({model})\n"
        f"Segments to review: {len(uncertain)} of {estimate.total_segments}\n"
        f"Input tokens: ~{input_tokens:,} (${input_cost:.4f} at ${input_price:.2f}/M)\n"
        f"Output tokens: ~{output_tokens:,} (${output_cost:.4f} at ${output_price:.2f}/M)\n"
        f"Estimated total: {estimate.formatted_cost}"
    )
    return estimate
