"""External generation, transcription and rendering engine."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from openai import OpenAI

from abq_media.config import RunConfig
from abq_media.engine.content import ContentEngine, ContentKind
from abq_media.engine.speech import ElevenLabsClient
from abq_media.engine.transcription import Transcript, TranscriptionService
from abq_media.llm.factory import LLMFactory
from abq_media.llm.provider import LLMProvider

logger = logging.getLogger(__name__)

__all__ = [
    "ContentEngine",
    "ContentKind",
    "ElevenLabsClient",
    "MediaEngine",
    "Transcript",
    "TranscriptionService",
    "build_engine",
]


@dataclass(frozen=True, slots=True)
class MediaEngine:
    content: ContentEngine
    transcription: TranscriptionService
    speech: ElevenLabsClient | None = None


def build_engine(config: RunConfig) -> MediaEngine:
    """Wire providers from the configuration snapshot.

    Missing keys are not an error here: the stages that need a provider
    report it when they run.
    """

    settings = config.settings
    llm_config = config.llm_config()

    llm: LLMProvider | None = None
    if llm_config.api_key:
        llm = LLMFactory.create(llm_config)
    else:
        logger.warning("No LLM API key configured; generation stages will fail")

    asr_key = config.asr_api_key
    transcription = TranscriptionService(
        min_chars=settings.min_text_chars,
        asr_model=settings.speech.asr_model,
        asr_client=OpenAI(api_key=asr_key) if asr_key else None,
    )

    tts_key = config.elevenlabs_api_key
    speech = ElevenLabsClient(settings.speech, api_key=tts_key) if tts_key else None

    return MediaEngine(
        content=ContentEngine(llm, excerpt_chars=settings.excerpt_chars),
        transcription=transcription,
        speech=speech,
    )
