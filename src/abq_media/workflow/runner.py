"""The workflow runner: drives stage handlers until a terminal state.

Every iteration validates the context for the current state, invokes the
state's handler, checks the requested transition against the map, commits it
and writes a checkpoint. Checkpoints are written strictly after validation and
before the next handler starts, so a resumed run re-enters exactly the state
that was about to run.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from abq_media.errors import UserCancelledError
from abq_media.logging import RunLogBinding
from abq_media.workflow.checkpoint import read_checkpoint, write_checkpoint
from abq_media.workflow.context import WorkflowContext
from abq_media.workflow.states import WorkflowState
from abq_media.workflow.transitions import assert_valid_transition
from abq_media.workflow.validator import validate_context_for_state

logger = logging.getLogger(__name__)

MAX_ITERATIONS = 200

# Returning to the output menu after packaging is a user decision, so it restarts
# the iteration count. Only unattended stretches count toward the guard.
_USER_LOOP_EDGES = frozenset({(WorkflowState.PACKAGE, WorkflowState.OUTPUT_SELECT)})


@dataclass(frozen=True, slots=True)
class StageResult:
    """What a handler proposes: the next state and its updated context.

    The context keeps the handler's own state as ``current_state``; the
    runner appends ``next_state`` when it commits the transition.
    """

    next_state: WorkflowState
    context: WorkflowContext


class StageHandler(Protocol):
    def __call__(self, context: WorkflowContext, deps: Any) -> StageResult: ...


class RunStatus(str, Enum):
    COMPLETED = "completed"
    ERRORED = "errored"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class RunOutcome:
    status: RunStatus
    context: WorkflowContext
    last_checkpoint: Path | None = None


class HandlerContractError(RuntimeError):
    """A handler returned a context that breaks the context invariants."""


def _check_handler_result(before: WorkflowContext, after: WorkflowContext) -> None:
    if after.state_history != before.state_history:
        raise HandlerContractError(
            f"Handler for {before.current_state.value} rewrote the state history"
        )
    if after.current_state != before.current_state:
        raise HandlerContractError(
            f"Handler for {before.current_state.value} changed current_state itself"
        )
    if after.article_attempts < before.article_attempts:
        raise HandlerContractError(
            f"Handler for {before.current_state.value} decreased article_attempts"
        )


class WorkflowRunner:
    """Execute a run from its current context to a terminal state.

    Args:
        handlers: One handler per non-terminal state.
        deps: Passed verbatim to every handler (configuration snapshot,
            prompter, engine).
        context: Starting context, fresh or hydrated from a checkpoint.
        checkpoints: Write a checkpoint after every committed transition.
        max_iterations: Safety bound on consecutive handler invocations; the
            PACKAGE -> OUTPUT_SELECT loop resets it.
        start_index: Index of the next checkpoint file.
    """

    def __init__(
        self,
        *,
        handlers: Mapping[WorkflowState, StageHandler],
        deps: Any,
        context: WorkflowContext,
        checkpoints: bool = True,
        max_iterations: int = MAX_ITERATIONS,
        start_index: int = 0,
    ) -> None:
        self._handlers = handlers
        self._deps = deps
        self._context = context
        self._checkpoints = checkpoints
        self._max_iterations = max_iterations
        self._index = start_index
        self._last_checkpoint: Path | None = None
        self._run_log = RunLogBinding() if checkpoints else None

    @classmethod
    def resume(
        cls,
        checkpoint_file: Path,
        *,
        handlers: Mapping[WorkflowState, StageHandler],
        deps: Any,
        checkpoints: bool = True,
        max_iterations: int = MAX_ITERATIONS,
    ) -> WorkflowRunner:
        """Build a runner that continues from a checkpoint file.

        Raises:
            CheckpointError: If the file is missing or invalid.
        """

        checkpoint = read_checkpoint(checkpoint_file)
        logger.info(
            "Resuming run",
            extra={
                "checkpoint": str(checkpoint.path),
                "state": checkpoint.context.current_state.value,
                "run_id": checkpoint.context.run_id,
            },
        )
        runner = cls(
            handlers=handlers,
            deps=deps,
            context=checkpoint.context,
            checkpoints=checkpoints,
            max_iterations=max_iterations,
            start_index=checkpoint.index + 1,
        )
        runner._last_checkpoint = checkpoint.path
        return runner

    @property
    def context(self) -> WorkflowContext:
        return self._context

    def run(self) -> RunOutcome:
        try:
            return self._loop()
        finally:
            if self._run_log is not None:
                self._run_log.close()

    def _loop(self) -> RunOutcome:
        iterations = 0

        while not self._context.current_state.is_terminal:
            self._bind_run_log()
            state = self._context.current_state

            if iterations >= self._max_iterations:
                self._fail(
                    f"Exceeded max iterations ({self._max_iterations}) without reaching"
                    " a terminal state",
                    state,
                )
                break

            handler = self._handlers.get(state)
            if handler is None:
                self._fail(f"No handler registered for state {state.value}", state)
                break

            try:
                validate_context_for_state(self._context, state)
                result = handler(self._context, self._deps)
                _check_handler_result(self._context, result.context)
                assert_valid_transition(state, result.next_state, result.context)
            except UserCancelledError:
                logger.info("Run cancelled", extra={"state": state.value})
                return RunOutcome(
                    status=RunStatus.CANCELLED,
                    context=self._context,
                    last_checkpoint=self._last_checkpoint,
                )
            except Exception as e:
                logger.exception("Stage failed", extra={"state": state.value})
                self._fail(f"{type(e).__name__}: {e}", state)
                break

            if (state, result.next_state) in _USER_LOOP_EDGES:
                iterations = 0
            else:
                iterations += 1
            self._context = result.context.advance(result.next_state)
            logger.info(
                "Transition committed",
                extra={"from": state.value, "to": result.next_state.value},
            )
            self._checkpoint()

        status = (
            RunStatus.COMPLETED
            if self._context.current_state is WorkflowState.COMPLETE
            else RunStatus.ERRORED
        )
        return RunOutcome(
            status=status, context=self._context, last_checkpoint=self._last_checkpoint
        )

    def _fail(self, message: str, state: WorkflowState) -> None:
        self._context = self._context.failed(message, state=state)
        logger.error("Run failed", extra={"state": state.value, "error": message})
        self._checkpoint()

    def _checkpoint(self) -> None:
        if not self._checkpoints:
            return
        self._last_checkpoint = write_checkpoint(self._context, self._index)
        self._index += 1

    def _bind_run_log(self) -> None:
        if self._run_log is not None:
            self._run_log.bind(self._context.run_dir)
