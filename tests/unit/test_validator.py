"""Unit tests for state entry preconditions."""

from __future__ import annotations

from pathlib import Path

import pytest

from abq_media.errors import ContextValidationError
from abq_media.workflow.context import WorkflowContext
from abq_media.workflow.states import InputType, WorkflowState
from abq_media.workflow.validator import validate_context_for_state

S = WorkflowState


@pytest.mark.parametrize(
    ("field", "empty"),
    [("project_name", ""), ("run_dir", Path("")), ("run_id", "")],
)
def test_meta_fields_are_required(context: WorkflowContext, field: str, empty: object) -> None:
    ctx = context.model_copy(update={field: empty})
    with pytest.raises(ContextValidationError) as exc_info:
        validate_context_for_state(ctx, S.INPUT_SELECT)

    assert exc_info.value.field == field
    assert field in str(exc_info.value)


def test_project_init_does_not_need_meta_fields(context: WorkflowContext) -> None:
    validate_context_for_state(context.model_copy(update={"run_id": ""}), S.PROJECT_INIT)


def test_youtube_fields_are_reported_in_order(context: WorkflowContext) -> None:
    with pytest.raises(ContextValidationError, match="'input_type'"):
        validate_context_for_state(context, S.INPUT_YOUTUBE)

    with_type = context.model_copy(update={"input_type": InputType.YOUTUBE})
    with pytest.raises(ContextValidationError, match="'youtube_url'"):
        validate_context_for_state(with_type, S.INPUT_YOUTUBE)

    complete = with_type.model_copy(update={"youtube_url": "https://youtu.be/abc123"})
    validate_context_for_state(complete, S.INPUT_YOUTUBE)


def test_blank_string_counts_as_missing(context: WorkflowContext) -> None:
    ctx = context.model_copy(update={"input_type": InputType.YOUTUBE, "youtube_url": "   "})
    with pytest.raises(ContextValidationError, match="youtube_url"):
        validate_context_for_state(ctx, S.INPUT_YOUTUBE)


def test_raw_text_may_be_empty_but_not_absent(context: WorkflowContext) -> None:
    raw = context.model_copy(update={"input_type": InputType.RAW})
    with pytest.raises(ContextValidationError, match="raw_text"):
        validate_context_for_state(raw, S.INPUT_TEXT)

    validate_context_for_state(raw.model_copy(update={"raw_text": ""}), S.INPUT_TEXT)


def test_text_file_needs_a_path(context: WorkflowContext, tmp_path: Path) -> None:
    textfile = context.model_copy(update={"input_type": InputType.TEXTFILE})
    with pytest.raises(ContextValidationError, match="input_path"):
        validate_context_for_state(textfile, S.INPUT_TEXT)

    # Existence is the handler's concern, not the validator's.
    missing = textfile.model_copy(update={"input_path": tmp_path / "nope.txt"})
    validate_context_for_state(missing, S.INPUT_TEXT)


def test_states_without_requirements_pass(context: WorkflowContext) -> None:
    for state in (S.INPUT_SELECT, S.PROCESSING_SELECT, S.OUTPUT_SELECT, S.PACKAGE):
        validate_context_for_state(context, state)
