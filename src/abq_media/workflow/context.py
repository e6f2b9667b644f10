"""The immutable context threaded through every workflow transition.

A `WorkflowContext` is never mutated. Handlers derive a new value with
`model_copy(update=...)` and the runner commits progress with `advance()`,
so every checkpoint reflects exactly one committed transition.
"""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from abq_media.storage.paths import WorkspacePaths, make_run_id
from abq_media.workflow.states import (
    InputType,
    OutputType,
    ProcessingType,
    TonePreset,
    WorkflowState,
)

DEFAULT_LANG = "es"


class RunError(BaseModel):
    """The failure recorded on a context, with the state it happened in."""

    model_config = ConfigDict(frozen=True)

    message: str
    state: WorkflowState


class WorkflowContext(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    # Identity
    project_name: str
    project_dir: Path
    run_dir: Path
    run_id: str
    started_at: datetime

    # Progress
    current_state: WorkflowState
    state_history: tuple[WorkflowState, ...]
    lang: str = DEFAULT_LANG

    # Input
    input_type: InputType | None = None
    input_path: Path | None = None
    youtube_url: str | None = None
    raw_text: str | None = None

    # Transcript artifacts
    transcript_path: Path | None = None
    cleaned_transcript_path: Path | None = None
    summary_path: Path | None = None

    # Processing
    processing_type: ProcessingType | None = None
    research_prompt_path: Path | None = None
    article_path: Path | None = None
    translated_path: Path | None = None
    brand_notes_path: Path | None = None
    tone_preset: TonePreset | None = None

    # Output
    output_type: OutputType | None = None
    podcast_script_path: Path | None = None
    reel_script_path: Path | None = None
    social_posts_path: Path | None = None
    audio_path: Path | None = None
    output_files: tuple[Path, ...] = ()
    zip_path: Path | None = None

    # Retry and error bookkeeping
    article_attempts: int = Field(default=0, ge=0)
    last_error: RunError | None = None

    # Mirror of the run's legacy state.json
    legacy_state: dict[str, str] = Field(default_factory=dict)

    def advance(self, next_state: WorkflowState) -> WorkflowContext:
        """Commit ``next_state``: it becomes current and is appended to the history."""

        return self.model_copy(
            update={
                "current_state": next_state,
                "state_history": (*self.state_history, next_state),
            }
        )

    def failed(self, message: str, *, state: WorkflowState) -> WorkflowContext:
        """Record a failure raised while in ``state`` and move to ERROR."""

        with_error = self.model_copy(update={"last_error": RunError(message=message, state=state)})
        return with_error.advance(WorkflowState.ERROR)

    def stage_done(self, stage: str) -> bool:
        return self.legacy_state.get(stage) == "done"

    def artifact(self, name: str) -> Path:
        """Path of a file inside this run's directory."""

        return self.run_dir / name


def create_initial_context(
    *,
    paths: WorkspacePaths,
    project_name: str | None = None,
    lang: str = DEFAULT_LANG,
    initial_state: WorkflowState = WorkflowState.PROJECT_INIT,
    now: datetime | None = None,
) -> WorkflowContext:
    """Create a fresh context and allocate its run directory on disk.

    ``project_name`` defaults to the name of the current working directory.
    ``initial_state`` lets diagnostic restarts enter the machine mid-way.
    """

    started_at = now or datetime.now(UTC)
    name = project_name or Path.cwd().name
    run_id = make_run_id(started_at)

    project_dir = paths.ensure_project(name)
    run_dir = paths.runs_dir(name) / run_id
    run_dir.mkdir(parents=True, exist_ok=True)

    return WorkflowContext(
        project_name=name,
        project_dir=project_dir,
        run_dir=run_dir,
        run_id=run_id,
        started_at=started_at,
        current_state=initial_state,
        state_history=(initial_state,),
        lang=lang,
    )
