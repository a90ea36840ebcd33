"""Select the language-model provider named by the configuration."""

import logging
from typing import Optional

from ..config.config_manager import Configuration
from ..config.models import SUPPORTED_PROVIDERS, ConfigurationError
from ..interfaces.ai_provider import IAIProvider
from .prompt_builder import PromptBuilder
from .providers import ClaudeProvider, OpenAIProvider


logger = logging.getLogger(__name__)


def create_provider(
    config: Configuration,
    name: Optional[str] = None,
    prompt_builder: Optional[PromptBuilder] = None,
) -> IAIProvider:
    """
    Build the provider selected by ``ai.provider``.

    Args:
        config: Resolved configuration.
        name: Provider name overriding ``ai.provider``.
        prompt_builder: Prompt builder shared with the provider.

    Returns:
        A provider; it may be unconfigured (no API key).

    Raises:
        ConfigurationError: If the provider name is unknown.
    """
    name = (name or config.ai_provider).strip().lower()
    if name not in SUPPORTED_PROVIDERS:
        raise ConfigurationError(
            f"Unknown AI provider '{name}', expected one of {list(SUPPORTED_PROVIDERS)}"
        )

    settings = config.provider(name)
    provider_class = ClaudeProvider if name == "claude" else OpenAIProvider
    provider = provider_class(
        api_key=settings.api_key,
        model=settings.model,
        api_url=settings.api_url,
        input_price=settings.input_price,
        output_price=settings.output_price,
        timeout=config.ai_timeout,
        prompt_builder=prompt_builder,
    )
    logger.debug(f"Using AI provider {provider.provider_name} ({provider.model_name})")
    return provider
