"""Per-run legacy status file (`state.json`).

Review stages consult it to skip sub-steps that already completed when a run
is resumed inside a single state.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, ValidationError

from abq_media.workflow.states import LEGACY_STAGES

logger = logging.getLogger(__name__)

StageStatus = Literal["pending", "done"]


def _now() -> str:
    return datetime.now(UTC).isoformat()


class RunState(BaseModel):
    stages: dict[str, StageStatus] = Field(
        default_factory=lambda: {name: "pending" for name in LEGACY_STAGES}
    )
    updated_at: str = Field(default_factory=_now)

    def is_done(self, stage: str) -> bool:
        return self.stages.get(stage) == "done"


class RunStateStore:
    """JSON-file backed store for the legacy run state."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> RunState:
        if not self._path.exists():
            return RunState()

        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            return RunState.model_validate(raw)
        except (json.JSONDecodeError, ValidationError):
            logger.warning(
                "Run state file is not valid; treating all stages as pending",
                extra={"path": str(self._path)},
            )
            return RunState()

    def save(self, state: RunState) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            json.dumps(state.model_dump(mode="json"), indent=2, ensure_ascii=False) + "\n",
            encoding="utf-8",
        )

    def init(self) -> RunState:
        """Write a fresh state with every known stage pending."""

        state = RunState()
        self.save(state)
        return state

    def mark(self, stage: str, status: StageStatus = "done") -> RunState:
        current = self.load()
        stages = dict(current.stages)
        stages[stage] = status
        updated = RunState(stages=stages, updated_at=_now())
        self.save(updated)
        return updated
