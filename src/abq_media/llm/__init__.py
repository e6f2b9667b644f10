"""LLM package initialization."""

from abq_media.llm.factory import LLMFactory
from abq_media.llm.provider import LLMProvider

__all__ = [
    "LLMFactory",
    "LLMProvider",
]
