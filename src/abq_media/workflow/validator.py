"""Preconditions a context must satisfy before a state may be entered."""

from __future__ import annotations

from pathlib import Path

from abq_media.errors import ContextValidationError
from abq_media.workflow.context import WorkflowContext
from abq_media.workflow.states import InputType, WorkflowState

_META_FIELDS: tuple[str, ...] = ("project_name", "run_dir", "run_id")

# Checked in order; the first missing field is reported.
STATE_REQUIREMENTS: dict[WorkflowState, tuple[str, ...]] = {
    WorkflowState.INPUT_YOUTUBE: ("input_type", "youtube_url"),
    WorkflowState.INPUT_AUDIO: ("input_type", "input_path"),
    WorkflowState.INPUT_TEXT: ("input_type",),
    WorkflowState.TRANSCRIPTION: ("input_type",),
    WorkflowState.TRANSCRIPT_REVIEW: ("transcript_path",),
    WorkflowState.RESEARCH_PROMPT_GEN: ("processing_type",),
    WorkflowState.RESEARCH_EXECUTE: ("research_prompt_path",),
    WorkflowState.ARTICLE_GENERATE: ("output_type",),
    WorkflowState.ARTICLE_REVIEW: ("article_path",),
    WorkflowState.TRANSLATE: ("transcript_path",),
    WorkflowState.SCRIPT_GENERATE: ("output_type",),
    WorkflowState.TTS_RENDER: ("podcast_script_path",),
}


def _is_missing(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, Path):
        return str(value) in {"", "."}
    return False


def _require(context: WorkflowContext, state: WorkflowState, field: str) -> None:
    if _is_missing(getattr(context, field)):
        raise ContextValidationError(
            f"Cannot enter {state.value}: missing required field '{field}'",
            field=field,
            state=state.value,
        )


def validate_context_for_state(context: WorkflowContext, state: WorkflowState) -> None:
    """Raise `ContextValidationError` naming the first field ``state`` needs but lacks.

    Pure: inspects the context only, never the filesystem.
    """

    if state is not WorkflowState.PROJECT_INIT:
        for field in _META_FIELDS:
            _require(context, state, field)

    for field in STATE_REQUIREMENTS.get(state, ()):
        _require(context, state, field)

    # INPUT_TEXT reads either a file or pasted text, depending on the input kind.
    # Pasted text may be empty here: the handler routes that back to selection.
    if state is WorkflowState.INPUT_TEXT:
        if context.input_type == InputType.RAW:
            if context.raw_text is None:
                raise ContextValidationError(
                    f"Cannot enter {state.value}: missing required field 'raw_text'",
                    field="raw_text",
                    state=state.value,
                )
        else:
            _require(context, state, "input_path")
