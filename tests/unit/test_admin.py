"""Unit tests for setup, doctor and reset helpers."""

from __future__ import annotations

import json
import stat
from unittest.mock import Mock

import pytest
import requests

from abq_media.admin import (
    configure_credentials,
    mask_secret,
    reset_all_projects,
    reset_credentials,
    reset_project,
    run_doctor,
    run_setup,
)
from abq_media.config import AbqMediaSettings, Credentials, RunConfig, read_credentials
from abq_media.errors import UserCancelledError
from abq_media.storage.paths import WorkspacePaths
from abq_media.ui.prompts import CANCELLED
from helpers import DEFAULT, ScriptedPrompter

OPENROUTER_KEY = "sk-or-v1-0123456789abcdef"
OPENAI_KEY = "sk-proj-0123456789abcdef"


def _response(status: int, text: str = "") -> Mock:
    response = Mock(spec=requests.Response)
    response.status_code = status
    response.ok = status < 400
    response.text = text
    return response


def _config(settings: AbqMediaSettings, **credentials: str) -> RunConfig:
    return RunConfig(settings=settings, credentials=Credentials(**credentials))


def test_mask_secret() -> None:
    assert mask_secret(None) == "not configured"
    assert mask_secret("short") == "configured"
    assert mask_secret(OPENROUTER_KEY) == "sk-o...cdef"


def test_setup_rejects_short_keys_and_writes_credentials(paths: WorkspacePaths) -> None:
    prompter = ScriptedPrompter(["openai", "", "short", OPENAI_KEY, DEFAULT, "", "", "en"])

    saved = run_setup(paths, prompter, Credentials())

    assert prompter.said("error") == ["openai API key is required.", "Invalid key format."]
    assert saved.model_dump(exclude_none=True) == {
        "lang": "en",
        "llm_provider": "openai",
        "llm_api_key": OPENAI_KEY,
    }
    raw = json.loads(paths.credentials_path.read_text(encoding="utf-8"))
    assert raw == {"lang": "en", "llm_provider": "openai", "llm_api_key": OPENAI_KEY}
    assert stat.S_IMODE(paths.credentials_path.stat().st_mode) == 0o600


def test_setup_keeps_current_values_when_skipped() -> None:
    current = Credentials(
        llm_provider="openrouter",
        llm_api_key=OPENROUTER_KEY,
        llm_model="openai/gpt-4o-mini",
        elevenlabs_api_key="el-0123456789",
    )
    prompter = ScriptedPrompter([DEFAULT, "", DEFAULT, "", "", DEFAULT])

    updated = configure_credentials(prompter, current)

    assert updated.model_dump() == {**current.model_dump(), "lang": "es"}
    assert "ElevenLabs API key (optional) [el-0...6789, empty keeps it]" in prompter.asked


def test_setup_cancel_writes_nothing(paths: WorkspacePaths) -> None:
    prompter = ScriptedPrompter(["openrouter", CANCELLED])

    with pytest.raises(UserCancelledError):
        run_setup(paths, prompter, Credentials())

    assert not paths.credentials_path.exists()
    assert read_credentials(paths.credentials_path) == Credentials()


def test_doctor_reports_a_working_key(settings: AbqMediaSettings) -> None:
    session = Mock(spec=requests.Session)
    session.get.return_value = _response(200)
    ticks = iter([10.0, 10.25])

    report = run_doctor(
        _config(settings, llm_provider="openrouter", llm_api_key=OPENROUTER_KEY),
        session=session,
        which=lambda name: f"/usr/bin/{name}",
        clock=lambda: next(ticks),
    )

    assert report.ok
    assert report.checks["llm_key_format"] is True
    assert report.checks["llm_api"] is True
    assert report.checks["latency_ms"] == 250
    assert report.checks["yt_dlp"] is True
    assert report.hints == ["Set an ElevenLabs key (abq-media setup) to render podcast audio"]
    session.get.assert_called_once()
    assert session.get.call_args.args[0] == "https://openrouter.ai/api/v1/models"
    assert session.get.call_args.kwargs["headers"] == {"Authorization": f"Bearer {OPENROUTER_KEY}"}
    assert json.loads(report.to_json())["ok"] is True


def test_doctor_reports_http_failures(settings: AbqMediaSettings) -> None:
    session = Mock(spec=requests.Session)
    session.get.return_value = _response(401, "bad key")

    report = run_doctor(
        _config(settings, llm_provider="openrouter", llm_api_key=OPENROUTER_KEY),
        session=session,
        which=lambda name: None,
    )

    assert not report.ok
    assert report.hints[0] == "openrouter API check failed: HTTP 401: bad key"
    assert report.hints[-1] == "Install yt-dlp for subtitle and audio downloads"


def test_doctor_reports_network_errors(settings: AbqMediaSettings) -> None:
    session = Mock(spec=requests.Session)
    session.get.side_effect = requests.ConnectionError("offline")

    report = run_doctor(
        _config(settings, llm_provider="openrouter", llm_api_key=OPENROUTER_KEY),
        session=session,
        which=lambda name: None,
    )

    assert not report.ok
    assert report.checks["llm_api"] is False
    assert report.hints[0] == "openrouter API check failed: offline"


def test_doctor_skips_the_network_for_malformed_keys(settings: AbqMediaSettings) -> None:
    session = Mock(spec=requests.Session)

    report = run_doctor(
        _config(settings, llm_provider="openrouter", llm_api_key="not-a-key"),
        session=session,
        which=lambda name: None,
    )

    assert not report.ok
    assert report.checks["latency_ms"] is None
    assert report.hints[0] == "OpenRouter keys start with sk-or-"
    session.get.assert_not_called()


def test_reset_helpers(paths: WorkspacePaths) -> None:
    paths.ensure_project("one")
    paths.ensure_project("two")
    paths.credentials_path.write_text("{}\n", encoding="utf-8")

    assert reset_project(paths, "one") is True
    assert reset_project(paths, "one") is False
    assert reset_project(paths, "../home") is False
    assert paths.list_projects() == ["two"]

    assert reset_credentials(paths) is True
    assert reset_credentials(paths) is False

    assert reset_all_projects(paths) is True
    assert reset_all_projects(paths) is False
    assert paths.list_projects() == []
