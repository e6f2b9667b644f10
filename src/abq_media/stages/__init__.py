"""Stage handlers, one per non-terminal workflow state."""

from __future__ import annotations

from abq_media.stages.article import article_generate, article_review
from abq_media.stages.base import StageDeps
from abq_media.stages.ingest import input_audio, input_select, input_text, input_youtube
from abq_media.stages.output import output_select, script_generate, tts_render
from abq_media.stages.package import package
from abq_media.stages.processing import (
    processing_select,
    research_execute,
    research_prompt_gen,
    translate,
)
from abq_media.stages.project import project_init
from abq_media.stages.transcript import transcript_review, transcription
from abq_media.workflow.runner import StageHandler
from abq_media.workflow.states import WorkflowState

__all__ = ["StageDeps", "default_handlers"]


def default_handlers() -> dict[WorkflowState, StageHandler]:
    """Map every non-terminal state to its handler. COMPLETE and ERROR have none."""

    return {
        WorkflowState.PROJECT_INIT: project_init,
        WorkflowState.INPUT_SELECT: input_select,
        WorkflowState.INPUT_YOUTUBE: input_youtube,
        WorkflowState.INPUT_AUDIO: input_audio,
        WorkflowState.INPUT_TEXT: input_text,
        WorkflowState.TRANSCRIPTION: transcription,
        WorkflowState.TRANSCRIPT_REVIEW: transcript_review,
        WorkflowState.PROCESSING_SELECT: processing_select,
        WorkflowState.RESEARCH_PROMPT_GEN: research_prompt_gen,
        WorkflowState.RESEARCH_EXECUTE: research_execute,
        WorkflowState.ARTICLE_GENERATE: article_generate,
        WorkflowState.ARTICLE_REVIEW: article_review,
        WorkflowState.TRANSLATE: translate,
        WorkflowState.OUTPUT_SELECT: output_select,
        WorkflowState.SCRIPT_GENERATE: script_generate,
        WorkflowState.TTS_RENDER: tts_render,
        WorkflowState.PACKAGE: package,
    }
