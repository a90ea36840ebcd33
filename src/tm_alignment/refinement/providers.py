"""Language-model providers reached over HTTPS."""

import logging
from typing import Any, Dict, List, Optional

import requests

from ..exceptions import BackendError, BackendUnconfigured, HttpError, ResponseParseError
from ..interfaces.ai_provider import CostEstimate, IAIProvider
from ..models.alignment import AlignmentLink
from .cost_estimator import estimate_cost
from .prompt_builder import PromptBuilder
from .response_parser import parse_alignments


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60
MAX_TOKENS = 4000

CLAUDE_API_URL = "https://api.anthropic.com/v1/messages"
CLAUDE_API_VERSION = "2023-06-01"
CLAUDE_DEFAULT_MODEL = "claude-sonnet-4-20250514"

OPENAI_API_URL = "https://api.openai.com/v1/chat/completions"
OPENAI_DEFAULT_MODEL = "gpt-4-turbo-preview"
OPENAI_SYSTEM_MESSAGE = (
    "You are an expert translation memory alignment specialist. "
    "Answer with JSON only."
)


class HttpAIProvider(IAIProvider):
    """
    Shared request/response flow of HTTP language-model providers.

    Subclasses supply the authentication headers, the request body and
    the location of the reply text in the response JSON.
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        api_url: str,
        input_price: float,
        output_price: float,
        timeout: float = DEFAULT_TIMEOUT,
        prompt_builder: Optional[PromptBuilder] = None,
    ):
        self.api_key = api_key or ""
        self.model = model
        self.api_url = api_url
        self.input_price = input_price
        self.output_price = output_price
        self.timeout = timeout
        self.prompt_builder = prompt_builder or PromptBuilder()

    @property
    def model_name(self) -> str:
        return self.model

    def is_configured(self) -> bool:
        return bool(self.api_key.strip())

    def analyze(
        self,
        sources: List[str],
        targets: List[str],
        uncertain: List[AlignmentLink],
    ) -> List[AlignmentLink]:
        if not self.is_configured():
            raise BackendUnconfigured(
                message=f"{self.provider_name} API key is not configured",
            )
        if not uncertain:
            return []

        logger.info(f"Sending {len(uncertain)} uncertain alignments to {self.provider_name}")
        prompt = self.prompt_builder.build(sources, targets, uncertain)
        data = self._post(prompt)
        try:
            text = self._reply_text(data)
        except (KeyError, IndexError, TypeError) as e:
            raise ResponseParseError(
                message=f"Unexpected {self.provider_name} response structure",
                details={"response": str(data)[:500]},
            ) from e
        links = parse_alignments(text)
        logger.info(f"Received {len(links)} improved alignments from {self.provider_name}")
        return links

    def estimate_cost(
        self,
        sources: List[str],
        targets: List[str],
        uncertain: List[AlignmentLink],
    ) -> CostEstimate:
        return estimate_cost(
            sources,
            targets,
            uncertain,
            input_price=self.input_price,
            output_price=self.output_price,
            provider=self.provider_name,
            model=self.model,
        )

    def _post(self, prompt: str) -> Dict[str, Any]:
        try:
            response = requests.post(
                self.api_url,
                headers=self._headers(),
                json=self._body(prompt),
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise BackendError(
                message=f"{self.provider_name} request timed out after {self.timeout} seconds",
                location=self.api_url,
            ) from e
        except requests.exceptions.RequestException as e:
            raise BackendError(
                message=f"{self.provider_name} request failed: {e}",
                location=self.api_url,
            ) from e

        if response.status_code != 200:
            raise HttpError(
                message=f"{self.provider_name} API returned error {response.status_code}: {response.text}",
                location=self.api_url,
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise ResponseParseError(
                message=f"{self.provider_name} response is not JSON",
                details={"response": response.text[:500]},
            ) from e

    def _headers(self) -> Dict[str, str]:
        raise NotImplementedError

    def _body(self, prompt: str) -> Dict[str, Any]:
        raise NotImplementedError

    def _reply_text(self, data: Dict[str, Any]) -> str:
        raise NotImplementedError


class ClaudeProvider(HttpAIProvider):
    """Anthropic Messages API provider."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = CLAUDE_DEFAULT_MODEL,
        api_url: str = CLAUDE_API_URL,
        input_price: float = 3.0,
        output_price: float = 15.0,
        timeout: float = DEFAULT_TIMEOUT,
        prompt_builder: Optional[PromptBuilder] = None,
    ):
        super().__init__(api_key, model, api_url, input_price, output_price, timeout, prompt_builder)

    @property
    def provider_name(self) -> str:
        return "Claude (Anthropic)"

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": CLAUDE_API_VERSION,
        }

    def _body(self, prompt: str) -> Dict[str, Any]:
        return {
            "model": self.model,
            "max_tokens": MAX_TOKENS,
            "messages": [{"role": "user", "content": prompt}],
        }

    def _reply_text(self, data: Dict[str, Any]) -> str:
        return data["content"][0]["text"]


class OpenAIProvider(HttpAIProvider):
    """OpenAI Chat Completions provider."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = OPENAI_DEFAULT_MODEL,
        api_url: str = OPENAI_API_URL,
        input_price: float = 10.0,
        output_price: float = 30.0,
        timeout: float = DEFAULT_TIMEOUT,
        prompt_builder: Optional[PromptBuilder] = None,
    ):
        super().__init__(api_key, model, api_url, input_price, output_price, timeout, prompt_builder)

    @property
    def provider_name(self) -> str:
        return "OpenAI"

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    def _body(self, prompt: str) -> Dict[str, Any]:
        return {
            "model": self.model,
            "max_tokens": MAX_TOKENS,
            "temperature": 0.3,
            "messages": [
                {"role": "system", "content": OPENAI_SYSTEM_MESSAGE},
                {"role": "user", "content": prompt},
            ],
        }

    def _reply_text(self, data: Dict[str, Any]) -> str:
        return data["choices"][0]["message"]["content"]
