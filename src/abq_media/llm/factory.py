"""Factory for creating LLM providers."""

import logging

from abq_media.config import LLMConfig
from abq_media.llm.openai_provider import OpenAIProvider
from abq_media.llm.provider import LLMProvider

logger = logging.getLogger(__name__)


class LLMFactory:
    """Factory for creating LLM provider instances."""

    @staticmethod
    def create(config: LLMConfig) -> LLMProvider:
        """Create an LLM provider based on configuration.

        Args:
            config: LLM configuration specifying the provider.

        Returns:
            Configured LLM provider instance.

        Raises:
            ValueError: If provider type is not supported or the key is missing.
        """
        logger.info("Creating LLM provider", extra={"provider": config.provider})

        if config.provider in {"openai", "openrouter"}:
            return OpenAIProvider(config)
        raise ValueError(f"Unsupported LLM provider: {config.provider}")
