"""Closed vocabularies used by the workflow: states and discriminants."""

from __future__ import annotations

from enum import Enum


class WorkflowState(str, Enum):
    PROJECT_INIT = "PROJECT_INIT"
    INPUT_SELECT = "INPUT_SELECT"
    INPUT_YOUTUBE = "INPUT_YOUTUBE"
    INPUT_AUDIO = "INPUT_AUDIO"
    INPUT_TEXT = "INPUT_TEXT"
    TRANSCRIPTION = "TRANSCRIPTION"
    TRANSCRIPT_REVIEW = "TRANSCRIPT_REVIEW"
    PROCESSING_SELECT = "PROCESSING_SELECT"
    RESEARCH_PROMPT_GEN = "RESEARCH_PROMPT_GEN"
    RESEARCH_EXECUTE = "RESEARCH_EXECUTE"
    ARTICLE_GENERATE = "ARTICLE_GENERATE"
    ARTICLE_REVIEW = "ARTICLE_REVIEW"
    TRANSLATE = "TRANSLATE"
    OUTPUT_SELECT = "OUTPUT_SELECT"
    SCRIPT_GENERATE = "SCRIPT_GENERATE"
    TTS_RENDER = "TTS_RENDER"
    PACKAGE = "PACKAGE"
    COMPLETE = "COMPLETE"
    ERROR = "ERROR"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES: frozenset[WorkflowState] = frozenset({WorkflowState.COMPLETE, WorkflowState.ERROR})


class InputType(str, Enum):
    YOUTUBE = "youtube"
    AUDIO = "audio"
    TEXTFILE = "textfile"
    RAW = "raw"


class ProcessingType(str, Enum):
    PROMPT = "prompt"
    ARTICLE = "article"
    PODCAST_SCRIPT = "podcast_script"
    REEL_SCRIPT = "reel_script"
    TRANSLATE = "translate"
    EXPORT = "export"
    EXPORT_ZIP = "export_zip"
    DONE = "done"


class OutputType(str, Enum):
    PODCAST = "podcast"
    ARTICLE = "article"
    REEL_SCRIPT = "reel_script"
    SOCIAL_KIT = "social_kit"
    EXPORT_ZIP = "export_zip"
    DONE = "done"


class TonePreset(str, Enum):
    INFORMATIVE = "informative"
    CASUAL = "casual"
    PROFESSIONAL = "professional"
    URGENT = "urgent"


# Sub-steps tracked in the per-run legacy state file.
LEGACY_STAGES: tuple[str, ...] = (
    "transcribe",
    "clean",
    "summarize",
    "reformat",
    "brand_inject",
    "final",
)
