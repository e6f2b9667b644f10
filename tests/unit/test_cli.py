"""Unit tests for the command line entrypoint."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from abq_media import cli
from abq_media.config import Credentials, write_credentials
from abq_media.storage.paths import WorkspacePaths
from abq_media.ui.prompts import CANCELLED
from abq_media.workflow.checkpoint import write_checkpoint
from abq_media.workflow.context import create_initial_context
from abq_media.workflow.states import ProcessingType, WorkflowState
from helpers import DEFAULT, ScriptedPrompter


@pytest.fixture
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    home = tmp_path / "home"
    monkeypatch.setenv("ABQ_MEDIA_HOME", str(home))
    return home


def _script(monkeypatch: pytest.MonkeyPatch, *answers: Any) -> ScriptedPrompter:
    prompter = ScriptedPrompter(answers)
    monkeypatch.setattr(cli, "ConsolePrompter", lambda **kwargs: prompter)
    return prompter


def test_unknown_start_state(home: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["run", "--from", "BOGUS"]) == 1

    err = capsys.readouterr().err
    assert "Unknown state 'BOGUS'" in err
    assert "PROJECT_INIT" in err
    assert "COMPLETE" not in err.split("Valid:")[1]


def test_terminal_start_state(home: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["run", "--from", "complete"]) == 1
    assert "Cannot start from terminal state 'COMPLETE'" in capsys.readouterr().err


def test_projects_when_empty(home: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["projects"]) == 0
    assert "No projects under" in capsys.readouterr().out


def test_debugger_writes_samples(home: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["run", "--debugger", "--project", "show"]) == 0

    paths = WorkspacePaths(home)
    run_dir = paths.latest_run("show")
    assert run_dir is not None
    assert run_dir.name.startswith("debug-")
    assert (run_dir / "article.md").is_file()
    assert (run_dir / "podcast.mp3").is_file()

    capsys.readouterr()
    assert cli.main(["projects"]) == 0
    assert capsys.readouterr().out.strip() == f"show\t{run_dir}"


def test_resume_missing_checkpoint(
    home: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    assert cli.main(["run", "--resume", str(tmp_path / "nope.json")]) == 1
    assert "Checkpoint not found" in capsys.readouterr().err


def test_resume_error_checkpoint_reports_failure(
    home: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    context = create_initial_context(paths=WorkspacePaths(home), project_name="show")
    write_checkpoint(context.failed("provider exploded", state=WorkflowState.PROJECT_INIT), 0)

    assert cli.main(["run", "--resume", str(context.run_dir)]) == 1

    err = capsys.readouterr().err
    assert "Run ended in ERROR: provider exploded" in err
    assert "Resume with: abq-media run --resume" in err


def test_run_from_processing_select_to_completion(
    home: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    prompter = _script(monkeypatch, ProcessingType.DONE)

    code = cli.main(["run", "--from", "processing_select", "--project", "show", "--lang", "en"])

    assert code == 0
    assert prompter.remaining == 0
    assert "Run complete:" in capsys.readouterr().out


def test_cancelled_run_exits_130(
    home: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    _script(monkeypatch, "show", CANCELLED)

    assert cli.main(["run", "--project", "show"]) == cli.EXIT_CANCELLED

    err = capsys.readouterr().err
    assert "Run cancelled." in err
    assert "000-INPUT_SELECT.json" in err


def test_setup_writes_credentials_then_shows_them(
    home: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    _script(monkeypatch, "openrouter", "sk-or-v1-0123456789abcdef", DEFAULT, "", "", "en")

    assert cli.main(["setup"]) == 0
    assert "Credentials saved to" in capsys.readouterr().out
    assert json.loads((home / "credentials.json").read_text(encoding="utf-8")) == {
        "lang": "en",
        "llm_provider": "openrouter",
        "llm_api_key": "sk-or-v1-0123456789abcdef",
    }

    assert cli.main(["setup", "--show"]) == 0
    out = capsys.readouterr().out
    assert "LLM: openrouter (sk-o...cdef)" in out
    assert "Language: en" in out


def test_setup_show_without_credentials(home: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["setup", "--show"]) == 0
    assert "No credentials stored yet" in capsys.readouterr().out


def test_setup_cancelled_writes_nothing(
    home: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    _script(monkeypatch, CANCELLED)

    assert cli.main(["setup"]) == cli.EXIT_CANCELLED
    assert "Setup cancelled" in capsys.readouterr().err
    assert not (home / "credentials.json").exists()


def test_doctor_without_key_fails(home: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["doctor"]) == 1

    report = json.loads(capsys.readouterr().out)
    assert report["ok"] is False
    assert report["checks"]["llm_key_format"] is False
    assert report["checks"]["llm_api"] is False
    assert report["hints"][0] == "OpenRouter keys start with sk-or-"


def test_reset_with_flags(home: Path, capsys: pytest.CaptureFixture[str]) -> None:
    paths = WorkspacePaths(home)
    paths.ensure_project("a")
    paths.ensure_project("b")
    write_credentials(paths.credentials_path, Credentials(lang="en"))

    assert cli.main(["reset", "--project", "a", "--credentials", "--yes"]) == 0

    assert capsys.readouterr().out.splitlines() == ["Project a: ok", "Credentials: ok"]
    assert paths.list_projects() == ["b"]
    assert not paths.credentials_path.exists()


def test_reset_picks_a_project_interactively(
    home: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    paths = WorkspacePaths(home)
    paths.ensure_project("a")
    paths.ensure_project("b")
    _script(monkeypatch, "project", "b", True)

    assert cli.main(["reset"]) == 0

    assert capsys.readouterr().out.strip() == "Project b: ok"
    assert paths.list_projects() == ["a"]


def test_reset_declined_keeps_data(
    home: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    paths = WorkspacePaths(home)
    paths.ensure_project("a")
    prompter = _script(monkeypatch, DEFAULT)

    assert cli.main(["reset", "--all"]) == 0

    assert capsys.readouterr().out.strip() == "Aborted."
    assert prompter.asked == ["This deletes local data. Continue?"]
    assert paths.list_projects() == ["a"]
