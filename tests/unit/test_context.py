"""Unit tests for the immutable workflow context."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from abq_media.storage.paths import WorkspacePaths
from abq_media.workflow.context import WorkflowContext, create_initial_context
from abq_media.workflow.states import WorkflowState
from helpers import FIXED_NOW


def test_initial_context_defaults(paths: WorkspacePaths) -> None:
    ctx = create_initial_context(paths=paths, project_name="p", now=FIXED_NOW)

    assert ctx.lang == "es"
    assert ctx.current_state is WorkflowState.PROJECT_INIT
    assert ctx.state_history == (WorkflowState.PROJECT_INIT,)
    assert ctx.output_files == ()
    assert ctx.article_attempts == 0
    assert ctx.last_error is None
    assert ctx.run_dir.is_dir()
    assert ctx.run_dir.parent == paths.runs_dir("p")
    assert ctx.run_id == "2024-05-01T12-30-00+00-00"


def test_initial_context_can_start_mid_workflow(paths: WorkspacePaths) -> None:
    ctx = create_initial_context(
        paths=paths, project_name="p", initial_state=WorkflowState.INPUT_SELECT
    )

    assert ctx.current_state is WorkflowState.INPUT_SELECT
    assert ctx.state_history == (WorkflowState.INPUT_SELECT,)


def test_project_defaults_to_working_directory_name(
    paths: WorkspacePaths, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    workdir = tmp_path / "my-show"
    workdir.mkdir()
    monkeypatch.chdir(workdir)

    ctx = create_initial_context(paths=paths)

    assert ctx.project_name == "my-show"


def test_context_is_immutable(context: WorkflowContext) -> None:
    with pytest.raises(ValidationError):
        context.lang = "fr"  # type: ignore[misc]


def test_advance_appends_to_history(context: WorkflowContext) -> None:
    advanced = context.advance(WorkflowState.INPUT_SELECT)

    assert advanced.current_state is WorkflowState.INPUT_SELECT
    assert advanced.state_history == (WorkflowState.PROJECT_INIT, WorkflowState.INPUT_SELECT)
    assert advanced.state_history[-1] == advanced.current_state
    assert context.state_history == (WorkflowState.PROJECT_INIT,)


def test_failed_records_error_and_moves_to_error(context: WorkflowContext) -> None:
    failed = context.failed("boom", state=WorkflowState.PROJECT_INIT)

    assert failed.current_state is WorkflowState.ERROR
    assert failed.last_error is not None
    assert failed.last_error.message == "boom"
    assert failed.last_error.state is WorkflowState.PROJECT_INIT


def test_negative_attempts_are_rejected(context: WorkflowContext) -> None:
    payload = context.model_dump()
    payload["article_attempts"] = -1
    with pytest.raises(ValidationError):
        WorkflowContext.model_validate(payload)
