"""OpenAI-compatible LLM provider (OpenAI and OpenRouter)."""

import logging
from typing import Any

from openai import OpenAI, OpenAIError

from abq_media.config import LLMConfig
from abq_media.errors import ProviderError
from abq_media.llm.provider import LLMProvider

logger = logging.getLogger(__name__)

_OPENROUTER_HEADERS = {
    "HTTP-Referer": "https://github.com/abquanta/abq-media-workspace",
    "X-Title": "abq-media",
}


class OpenAIProvider(LLMProvider):
    """Chat-completions provider for any OpenAI-compatible endpoint."""

    def __init__(self, config: LLMConfig, client: OpenAI | None = None) -> None:
        """Initialize the provider.

        Args:
            config: LLM configuration.
            client: Pre-built client (tests inject a mock).

        Raises:
            ValueError: If no API key is configured.
        """
        if not config.api_key and client is None:
            raise ValueError(f"API key is required for LLM provider '{config.provider}'")

        self.config = config
        self.model = config.model
        self.temperature = config.temperature
        self.max_tokens = config.max_tokens
        self.client = client or OpenAI(
            api_key=config.api_key,
            base_url=config.resolved_base_url,
            default_headers=_OPENROUTER_HEADERS if config.provider == "openrouter" else None,
        )

        logger.info(
            "LLM provider initialized",
            extra={"provider": config.provider, "model": self.model},
        )

    def generate(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        **kwargs: Any,
    ) -> str:
        messages: list[dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        return self.chat(messages, max_tokens=max_tokens, temperature=temperature, **kwargs)

    def chat(
        self,
        messages: list[dict[str, str]],
        max_tokens: int | None = None,
        temperature: float | None = None,
        **kwargs: Any,
    ) -> str:
        temp = temperature if temperature is not None else self.temperature

        logger.debug("Requesting chat completion", extra={"messages": len(messages)})

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,  # type: ignore[arg-type]
                max_tokens=max_tokens or self.max_tokens,
                temperature=temp,
                **kwargs,
            )
        except OpenAIError as e:
            raise ProviderError(f"LLM {self.config.provider} request failed: {e}") from e

        content = (response.choices[0].message.content or "") if response.choices else ""
        if not content.strip():
            raise ProviderError(f"LLM {self.config.provider} returned an empty response")

        logger.debug("Generated completion", extra={"characters": len(content)})
        return content
