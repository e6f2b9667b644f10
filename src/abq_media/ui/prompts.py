"""Interactive prompts.

Every prompt returns either `Prompted(value)` or `CANCELLED`. Callers must
branch on the result before using the value; stage handlers do that through
`abq_media.stages.base.unwrap`.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Generic, Protocol, TextIO, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

PREVIEW_CHARS = 1200


@dataclass(frozen=True, slots=True)
class Prompted(Generic[T]):
    value: T


@dataclass(frozen=True, slots=True)
class Cancelled:
    pass


CANCELLED = Cancelled()

PromptResult = Prompted[T] | Cancelled


@dataclass(frozen=True, slots=True)
class Choice(Generic[T]):
    value: T
    label: str
    hint: str = ""


class Prompter(Protocol):
    """The interaction layer used by stage handlers."""

    def select(
        self, message: str, choices: Sequence[Choice[T]], *, default: T | None = None
    ) -> PromptResult[T]: ...

    def confirm(self, message: str, *, default: bool = True) -> PromptResult[bool]: ...

    def text(self, message: str, *, default: str = "") -> PromptResult[str]: ...

    def edit_file(self, path: Path) -> PromptResult[bool]: ...

    def show(self, title: str, body: str) -> None: ...

    def info(self, message: str) -> None: ...

    def warn(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def success(self, message: str) -> None: ...


def preview(text: str, limit: int = PREVIEW_CHARS) -> str:
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + f"\n... ({len(text) - limit} more characters)"


class ConsolePrompter:
    """Line-based prompts on a terminal.

    End-of-file and Ctrl-C at a prompt count as cancellation.
    """

    def __init__(
        self,
        *,
        editor: str | None = None,
        input_fn: Callable[[str], str] = input,
        output: TextIO | None = None,
    ) -> None:
        self._editor = editor
        self._input = input_fn
        self._out = output or sys.stdout

    def _write(self, line: str) -> None:
        print(line, file=self._out)

    def _ask(self, prompt: str) -> str | None:
        try:
            return self._input(prompt)
        except (EOFError, KeyboardInterrupt):
            self._write("")
            return None

    def select(
        self, message: str, choices: Sequence[Choice[T]], *, default: T | None = None
    ) -> PromptResult[T]:
        if not choices:
            raise ValueError("select() needs at least one choice")

        default_index = next((i for i, c in enumerate(choices) if c.value == default), None)
        self._write(message)
        for i, choice in enumerate(choices, start=1):
            marker = "*" if default_index == i - 1 else " "
            hint = f"  ({choice.hint})" if choice.hint else ""
            self._write(f" {marker} {i}) {choice.label}{hint}")

        while True:
            answer = self._ask("> ")
            if answer is None:
                return CANCELLED
            answer = answer.strip()
            if not answer and default_index is not None:
                return Prompted(choices[default_index].value)
            if answer.isdigit() and 1 <= int(answer) <= len(choices):
                return Prompted(choices[int(answer) - 1].value)
            self._write(f"Enter a number between 1 and {len(choices)}.")

    def confirm(self, message: str, *, default: bool = True) -> PromptResult[bool]:
        suffix = "[Y/n]" if default else "[y/N]"
        while True:
            answer = self._ask(f"{message} {suffix} ")
            if answer is None:
                return CANCELLED
            answer = answer.strip().lower()
            if not answer:
                return Prompted(default)
            if answer in {"y", "yes", "s", "si", "sí"}:
                return Prompted(True)
            if answer in {"n", "no"}:
                return Prompted(False)
            self._write("Answer y or n.")

    def text(self, message: str, *, default: str = "") -> PromptResult[str]:
        shown = f" [{default}]" if default else ""
        answer = self._ask(f"{message}{shown}: ")
        if answer is None:
            return CANCELLED
        return Prompted(answer if answer.strip() else default)

    def edit_file(self, path: Path) -> PromptResult[bool]:
        """Open ``path`` in $EDITOR, or read replacement text from the terminal.

        Returns ``Prompted(True)`` when the file was (possibly) changed.
        """

        if self._editor:
            command = [*shlex.split(self._editor), str(path)]
            logger.info("Opening editor", extra={"command": command})
            completed = subprocess.run(command, check=False)
            if completed.returncode != 0:
                self.warn(f"Editor exited with status {completed.returncode}")
            return Prompted(True)

        self._write(f"Editing {path.name}. Enter replacement text; finish with a line '.'")
        self._write("Leave empty and enter '.' to keep the current content.")
        lines: list[str] = []
        while True:
            line = self._ask("")
            if line is None:
                return CANCELLED
            if line.strip() == ".":
                break
            lines.append(line)

        if not any(line.strip() for line in lines):
            return Prompted(False)
        path.write_text("\n".join(lines).rstrip() + "\n", encoding="utf-8")
        return Prompted(True)

    def show(self, title: str, body: str) -> None:
        rule = "-" * max(len(title), 20)
        self._write(f"\n{title}\n{rule}\n{preview(body)}\n{rule}")

    def info(self, message: str) -> None:
        self._write(f"i  {message}")

    def warn(self, message: str) -> None:
        self._write(f"!  {message}")

    def error(self, message: str) -> None:
        self._write(f"x  {message}")

    def success(self, message: str) -> None:
        self._write(f"ok {message}")
