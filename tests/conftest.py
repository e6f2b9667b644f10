"""Test configuration and fixtures."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import Mock

import pytest

from abq_media.config import AbqMediaSettings, RunConfig
from abq_media.engine import ContentEngine, MediaEngine, TranscriptionService
from abq_media.stages.base import StageDeps
from abq_media.storage.paths import WorkspacePaths
from abq_media.workflow.context import WorkflowContext, create_initial_context
from helpers import FIXED_NOW, ScriptedPrompter

_ENV_VARS = (
    "ABQ_MEDIA_HOME",
    "LOG_LEVEL",
    "EDITOR",
    "OPENAI_API_KEY",
    "ELEVENLABS_API_KEY",
    "ABQ_MEDIA_LLM_API_KEY",
    "ABQ_MEDIA_LLM_PROVIDER",
    "ABQ_MEDIA_LLM_MODEL",
    "ABQ_MEDIA_TTS_API_KEY",
    "ABQ_MEDIA_TTS_ASR_API_KEY",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's environment out of the tests."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings(tmp_path: Path) -> AbqMediaSettings:
    """Provide settings rooted in a temporary home directory."""
    return AbqMediaSettings(_env_file=None, home=tmp_path / "home")


@pytest.fixture
def paths(settings: AbqMediaSettings) -> WorkspacePaths:
    return settings.paths


@pytest.fixture
def run_config(settings: AbqMediaSettings) -> RunConfig:
    return RunConfig.load(settings)


@pytest.fixture
def context(paths: WorkspacePaths) -> WorkflowContext:
    """A fresh context for project 'demo' with its run directory on disk."""
    return create_initial_context(paths=paths, project_name="demo", lang="en", now=FIXED_NOW)


@pytest.fixture
def prompter() -> ScriptedPrompter:
    return ScriptedPrompter()


@pytest.fixture
def engine() -> MediaEngine:
    """Engine whose providers are mocks; tests set return values as needed."""
    return MediaEngine(
        content=Mock(spec=ContentEngine),
        transcription=Mock(spec=TranscriptionService),
        speech=None,
    )


@pytest.fixture
def deps(run_config: RunConfig, prompter: ScriptedPrompter, engine: MediaEngine) -> StageDeps:
    return StageDeps(config=run_config, prompter=prompter, engine=engine, clock=lambda: FIXED_NOW)
