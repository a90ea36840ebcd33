"""Language-model refinement of uncertain alignment rows."""

from .cost_estimator import estimate_cost
from .gateway import RefinementGateway, RefinementReport
from .prompt_builder import PromptBuilder
from .provider_factory import create_provider
from .providers import ClaudeProvider, HttpAIProvider, OpenAIProvider
from .response_parser import extract_json, parse_alignments

__all__ = [
    "estimate_cost",
    "RefinementGateway",
    "RefinementReport",
    "PromptBuilder",
    "create_provider",
    "ClaudeProvider",
    "HttpAIProvider",
    "OpenAIProvider",
    "extract_json",
    "parse_alignments",
]
