"""Durable context snapshots written after every committed transition.

Checkpoints live under ``<run_dir>/checkpoints/`` and are named
``<index>-<STATE>.json`` with a zero-padded, strictly increasing index.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from pydantic import ValidationError

from abq_media.errors import CheckpointError
from abq_media.workflow.context import WorkflowContext
from abq_media.workflow.states import WorkflowState

logger = logging.getLogger(__name__)

CHECKPOINT_DIR = "checkpoints"


@dataclass(frozen=True, slots=True)
class Checkpoint:
    context: WorkflowContext
    index: int
    path: Path


def checkpoint_path(run_dir: Path, index: int, state: WorkflowState) -> Path:
    return run_dir / CHECKPOINT_DIR / f"{index:03d}-{state.value}.json"


def write_checkpoint(context: WorkflowContext, index: int) -> Path:
    path = checkpoint_path(context.run_dir, index, context.current_state)
    payload: dict[str, object] = context.model_dump(mode="json")
    payload["checkpoint_index"] = index
    payload["checkpointed_at"] = datetime.now(UTC).isoformat()

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    logger.debug(
        "Checkpoint written",
        extra={"path": str(path), "state": context.current_state.value, "index": index},
    )
    return path


def read_checkpoint(path: Path) -> Checkpoint:
    if not path.is_file():
        raise CheckpointError(f"Checkpoint not found: {path}", path=path)

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise CheckpointError(f"Checkpoint is not valid JSON: {path}", path=path) from e

    if not isinstance(raw, dict) or "current_state" not in raw:
        raise CheckpointError(f"Invalid checkpoint: {path}", path=path)

    index_raw = raw.pop("checkpoint_index", 0)
    raw.pop("checkpointed_at", None)
    try:
        context = WorkflowContext.model_validate(raw)
    except ValidationError as e:
        raise CheckpointError(f"Invalid checkpoint: {path}: {e}", path=path) from e

    index = index_raw if isinstance(index_raw, int) and index_raw >= 0 else 0
    return Checkpoint(context=context, index=index, path=path)


def latest_checkpoint(run_dir: Path) -> Path | None:
    directory = run_dir / CHECKPOINT_DIR
    if not directory.is_dir():
        return None
    files = sorted(directory.glob("*.json"))
    return files[-1] if files else None


def resolve_checkpoint(target: Path) -> Path:
    """Accept a checkpoint file or a run directory (its latest checkpoint)."""

    if target.is_dir():
        found = latest_checkpoint(target)
        if found is None:
            raise CheckpointError(f"No checkpoints in run directory: {target}", path=target)
        return found
    return target
