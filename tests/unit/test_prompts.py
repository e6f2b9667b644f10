"""Unit tests for the console prompter."""

from __future__ import annotations

import io
from collections.abc import Callable, Iterable
from pathlib import Path

from abq_media.ui.prompts import CANCELLED, Choice, ConsolePrompter, Prompted, preview


def _scripted_input(answers: Iterable[str]) -> Callable[[str], str]:
    pending = list(answers)

    def fake_input(prompt: str) -> str:
        if not pending:
            raise EOFError
        return pending.pop(0)

    return fake_input


def _prompter(*answers: str) -> tuple[ConsolePrompter, io.StringIO]:
    out = io.StringIO()
    return ConsolePrompter(input_fn=_scripted_input(answers), output=out), out


CHOICES = [Choice("a", "Alpha"), Choice("b", "Beta", hint="second")]


def test_select_by_number_after_invalid_answer() -> None:
    prompter, out = _prompter("7", "2")

    assert prompter.select("Pick one", CHOICES) == Prompted("b")
    assert "Enter a number between 1 and 2." in out.getvalue()
    assert "2) Beta  (second)" in out.getvalue()


def test_select_empty_answer_uses_default() -> None:
    prompter, out = _prompter("")

    assert prompter.select("Pick one", CHOICES, default="b") == Prompted("b")
    assert " * 2) Beta" in out.getvalue()


def test_eof_cancels() -> None:
    prompter, _ = _prompter()

    assert prompter.select("Pick one", CHOICES) == CANCELLED
    assert prompter.confirm("Sure?") == CANCELLED
    assert prompter.text("Name") == CANCELLED


def test_confirm_answers() -> None:
    prompter, _ = _prompter("", "si", "maybe", "n")

    assert prompter.confirm("Sure?", default=False) == Prompted(False)
    assert prompter.confirm("Sure?") == Prompted(True)
    assert prompter.confirm("Sure?") == Prompted(False)


def test_text_falls_back_to_default() -> None:
    prompter, _ = _prompter("  ", "value")

    assert prompter.text("Name", default="demo") == Prompted("demo")
    assert prompter.text("Name", default="demo") == Prompted("value")


def test_edit_file_from_terminal(tmp_path: Path) -> None:
    path = tmp_path / "article.md"
    path.write_text("old\n", encoding="utf-8")
    prompter, _ = _prompter("new first line", "second", ".", ".")

    assert prompter.edit_file(path) == Prompted(True)
    assert path.read_text(encoding="utf-8") == "new first line\nsecond\n"

    # An empty edit keeps the file.
    assert prompter.edit_file(path) == Prompted(False)
    assert path.read_text(encoding="utf-8") == "new first line\nsecond\n"


def test_show_truncates_long_bodies() -> None:
    prompter, out = _prompter()

    prompter.show("Article", "x" * 1300)

    assert "... (100 more characters)" in out.getvalue()
    assert preview("short") == "short"


def test_status_lines() -> None:
    prompter, out = _prompter()

    prompter.info("one")
    prompter.warn("two")
    prompter.error("three")
    prompter.success("four")

    assert out.getvalue().splitlines() == ["i  one", "!  two", "x  three", "ok four"]
