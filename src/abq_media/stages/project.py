"""PROJECT_INIT: choose or create the project and prepare the run directory."""

from __future__ import annotations

import logging
import shutil

from abq_media.config import write_project_config
from abq_media.stages.base import RUN_STATE_FILE, StageDeps, unwrap
from abq_media.storage.run_state import RunStateStore
from abq_media.ui.prompts import Choice
from abq_media.validation import is_valid_project_name
from abq_media.workflow.context import WorkflowContext
from abq_media.workflow.runner import StageResult
from abq_media.workflow.states import WorkflowState
from abq_media.workflow.transitions import resolve_single

logger = logging.getLogger(__name__)

STATE = WorkflowState.PROJECT_INIT
_NEW_PROJECT = "__new__"


def _ask_project_name(deps: StageDeps) -> str:
    while True:
        name = unwrap(deps.prompter.text("Project name"), STATE).strip()
        if is_valid_project_name(name):
            return name
        deps.prompter.error("Use letters, digits, '.', '-' or '_' (no spaces or slashes).")


def project_init(context: WorkflowContext, deps: StageDeps) -> StageResult:
    paths = deps.config.paths
    current = context.project_name

    choices = [Choice(current, f"{current} (current)")]
    choices += [Choice(name, name) for name in paths.list_projects() if name != current]
    choices.append(Choice(_NEW_PROJECT, "Create a new project"))

    picked = unwrap(deps.prompter.select("Select project", choices, default=current), STATE)
    name = _ask_project_name(deps) if picked == _NEW_PROJECT else picked

    project_dir = paths.ensure_project(name)
    config_path = paths.project_config_path(name)
    if not config_path.exists():
        write_project_config(config_path, deps.config.project(name))
        deps.prompter.info(f"Created project config at {config_path}")

    run_dir = context.run_dir
    if name != current:
        # The run was allocated under the starting project; move it.
        relocated = paths.runs_dir(name) / context.run_id
        if run_dir.exists():
            shutil.move(str(run_dir), str(relocated))
        else:
            relocated.mkdir(parents=True, exist_ok=True)
        run_dir = relocated
        logger.info("Run relocated", extra={"project": name, "run_dir": str(run_dir)})
    run_dir.mkdir(parents=True, exist_ok=True)

    run_state = RunStateStore(run_dir / RUN_STATE_FILE).init()
    lang = deps.config.language_for(name, context.lang)

    updated = context.model_copy(
        update={
            "project_name": name,
            "project_dir": project_dir,
            "run_dir": run_dir,
            "lang": lang,
            "legacy_state": dict(run_state.stages),
        }
    )
    deps.prompter.success(f"Project '{name}', run {context.run_id}")
    return StageResult(next_state=resolve_single(STATE, updated), context=updated)

