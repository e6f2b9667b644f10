"""Test doubles shared by the unit tests."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from abq_media.ui.prompts import CANCELLED, Cancelled, Choice, Prompted, PromptResult

FIXED_NOW = datetime(2024, 5, 1, 12, 30, 0, tzinfo=UTC)

DEFAULT = object()


class ScriptedPrompter:
    """Prompter fake that replays a fixed list of answers.

    Each prompt consumes the next answer. `CANCELLED` cancels the prompt and
    `DEFAULT` picks the prompt's default. For `edit_file`, a string answer
    replaces the file content and False leaves it unchanged.
    """

    def __init__(self, answers: Iterable[Any] = ()) -> None:
        self._answers: deque[Any] = deque(answers)
        self.asked: list[str] = []
        self.shown: list[tuple[str, str]] = []
        self.messages: list[tuple[str, str]] = []

    def queue(self, *answers: Any) -> None:
        self._answers.extend(answers)

    @property
    def remaining(self) -> int:
        return len(self._answers)

    def _next(self, message: str) -> Any:
        self.asked.append(message)
        if not self._answers:
            raise AssertionError(f"Unexpected prompt: {message!r}")
        return self._answers.popleft()

    def select(
        self, message: str, choices: Sequence[Choice[Any]], *, default: Any = None
    ) -> PromptResult[Any]:
        answer = self._next(message)
        if isinstance(answer, Cancelled):
            return CANCELLED
        if answer is DEFAULT:
            answer = default
        values = [c.value for c in choices]
        if answer not in values:
            raise AssertionError(f"{answer!r} is not offered by {message!r}: {values!r}")
        return Prompted(answer)

    def confirm(self, message: str, *, default: bool = True) -> PromptResult[bool]:
        answer = self._next(message)
        if isinstance(answer, Cancelled):
            return CANCELLED
        return Prompted(default if answer is DEFAULT else bool(answer))

    def text(self, message: str, *, default: str = "") -> PromptResult[str]:
        answer = self._next(message)
        if isinstance(answer, Cancelled):
            return CANCELLED
        return Prompted(default if answer is DEFAULT else str(answer))

    def edit_file(self, path: Path) -> PromptResult[bool]:
        answer = self._next(f"edit {path.name}")
        if isinstance(answer, Cancelled):
            return CANCELLED
        if isinstance(answer, str):
            path.write_text(answer, encoding="utf-8")
            return Prompted(True)
        return Prompted(False)

    def show(self, title: str, body: str) -> None:
        self.shown.append((title, body))

    def info(self, message: str) -> None:
        self.messages.append(("info", message))

    def warn(self, message: str) -> None:
        self.messages.append(("warn", message))

    def error(self, message: str) -> None:
        self.messages.append(("error", message))

    def success(self, message: str) -> None:
        self.messages.append(("success", message))

    def said(self, level: str) -> list[str]:
        return [m for lvl, m in self.messages if lvl == level]
