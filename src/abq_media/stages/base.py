"""Shared plumbing for stage handlers."""

from __future__ import annotations

import json
import logging
import shutil
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import TypeVar

from abq_media.config import RunConfig
from abq_media.engine import MediaEngine
from abq_media.errors import ContextValidationError, UserCancelledError
from abq_media.storage.paths import make_stamp
from abq_media.storage.run_state import RunStateStore
from abq_media.ui.prompts import Cancelled, Choice, Prompter, PromptResult
from abq_media.workflow.context import WorkflowContext
from abq_media.workflow.states import WorkflowState

logger = logging.getLogger(__name__)

T = TypeVar("T")

RUN_STATE_FILE = "state.json"
SOURCE_FILE = "source.json"

LANGUAGES: tuple[tuple[str, str], ...] = (
    ("es", "Spanish (es)"),
    ("en", "English (en)"),
)


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class StageDeps:
    """Everything a handler may use besides the context itself."""

    config: RunConfig
    prompter: Prompter
    engine: MediaEngine
    clock: Callable[[], datetime] = field(default=_utc_now)

    def stamp(self) -> str:
        return make_stamp(self.clock())


def unwrap(result: PromptResult[T], state: WorkflowState) -> T:
    """Return the prompted value, or abort the stage if the user cancelled."""

    if isinstance(result, Cancelled):
        raise UserCancelledError(state.value)
    return result.value


def required_path(context: WorkflowContext, field_name: str, state: WorkflowState) -> Path:
    """Return a path field the handler cannot run without."""

    value = getattr(context, field_name)
    if not isinstance(value, Path):
        raise ContextValidationError(
            f"Cannot run {state.value}: missing required field '{field_name}'",
            field=field_name,
            state=state.value,
        )
    return value


def choose_language(deps: StageDeps, state: WorkflowState, current: str) -> str:
    choices = [Choice(code, label) for code, label in LANGUAGES]
    if current not in {code for code, _ in LANGUAGES}:
        choices.insert(0, Choice(current, f"{current} (current)"))
    return unwrap(deps.prompter.select("Language", choices, default=current), state)


def read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8", errors="replace")


def write_text(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def write_json(path: Path, payload: dict[str, object]) -> Path:
    return write_text(path, json.dumps(payload, indent=2, ensure_ascii=False) + "\n")


def first_existing(*candidates: Path | None) -> Path | None:
    for candidate in candidates:
        if candidate is not None and candidate.is_file():
            return candidate
    return None


def best_source(context: WorkflowContext) -> Path | None:
    """Most refined transcript artifact available: summary, cleaned, raw."""

    return first_existing(
        context.summary_path,
        context.cleaned_transcript_path,
        context.transcript_path,
    )


def mark_stage(context: WorkflowContext, stage: str) -> WorkflowContext:
    """Mark a legacy sub-step done on disk and mirror it into the context."""

    state = RunStateStore(context.run_dir / RUN_STATE_FILE).mark(stage)
    logger.info("Legacy stage marked done", extra={"stage": stage, "run_id": context.run_id})
    return context.model_copy(update={"legacy_state": dict(state.stages)})


def export_copy(deps: StageDeps, context: WorkflowContext, source: Path, prefix: str) -> Path:
    """Copy an approved artifact into the project's export area."""

    exports = deps.config.paths.exports_dir(context.project_name)
    exports.mkdir(parents=True, exist_ok=True)
    dest = exports / f"{prefix}-{deps.stamp()}{source.suffix}"
    shutil.copyfile(source, dest)
    return dest


class ReviewDecision(str, Enum):
    APPROVE = "approve"
    RETRY = "retry"
    EDIT = "edit"


def review_gate(
    deps: StageDeps,
    state: WorkflowState,
    path: Path,
    *,
    title: str,
    allow_retry: bool = False,
) -> ReviewDecision:
    """Show an artifact and collect approve / retry / edit.

    An edit opens the editor on ``path`` and is reported as `EDIT`; callers
    treat it as approval of the edited content.
    """

    deps.prompter.show(title, read_text(path) if path.exists() else "(empty)")

    choices = [Choice(ReviewDecision.APPROVE, "Approve and continue")]
    if allow_retry:
        choices.append(Choice(ReviewDecision.RETRY, "Regenerate"))
    choices.append(Choice(ReviewDecision.EDIT, "Edit", hint=str(path)))

    decision = unwrap(
        deps.prompter.select(f"Review {title}", choices, default=ReviewDecision.APPROVE), state
    )
    if decision is ReviewDecision.EDIT:
        unwrap(deps.prompter.edit_file(path), state)
    return decision


def ready_summary(context: WorkflowContext) -> str:
    """Prefix for hub menus listing the artifacts this run already has."""

    ready = [
        label
        for label, path in (
            ("transcript", context.transcript_path),
            ("research prompt", context.research_prompt_path),
            ("article", context.article_path),
            ("podcast script", context.podcast_script_path),
            ("reel script", context.reel_script_path),
            ("audio", context.audio_path),
        )
        if path is not None
    ]
    return f"Ready: {', '.join(ready)}. " if ready else ""
