"""Unit tests for configuration."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from abq_media.config import (
    AbqMediaSettings,
    Credentials,
    LLMConfig,
    ProjectConfig,
    RunConfig,
    write_project_config,
)


def _write_credentials(settings: AbqMediaSettings, **values: object) -> None:
    path = settings.paths.credentials_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(values), encoding="utf-8")


def test_settings_defaults(settings: AbqMediaSettings, tmp_path: Path) -> None:
    assert settings.paths.home == tmp_path / "home"
    assert settings.log_level == "WARNING"
    assert settings.min_text_chars == 40
    assert settings.editor is None
    assert isinstance(settings.llm, LLMConfig)


def test_llm_config_defaults() -> None:
    config = LLMConfig(_env_file=None)

    assert config.provider == "openrouter"
    assert config.model == "openrouter/auto"
    assert config.resolved_base_url == "https://openrouter.ai/api/v1"


def test_base_url_override_is_normalised() -> None:
    config = LLMConfig(_env_file=None, provider="openai", base_url="http://localhost:8080/v1/")

    assert config.resolved_base_url == "http://localhost:8080/v1"


def test_settings_read_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("ABQ_MEDIA_HOME", str(tmp_path / "env-home"))
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("ABQ_MEDIA_LLM_PROVIDER", "openai")

    settings = AbqMediaSettings(_env_file=None)

    assert settings.paths.home == tmp_path / "env-home"
    assert settings.log_level == "DEBUG"
    assert settings.llm.provider == "openai"


def test_credentials_fill_in_llm_settings(settings: AbqMediaSettings) -> None:
    _write_credentials(
        settings, llm_provider="openai", llm_model="gpt-4o-mini", openai_api_key="sk-cred"
    )

    llm = RunConfig.load(settings).llm_config()

    assert llm.provider == "openai"
    assert llm.model == "gpt-4o-mini"
    # The openai provider falls back to the shared OpenAI key.
    assert llm.api_key == "sk-cred"


def test_environment_wins_over_credentials(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setenv("ABQ_MEDIA_LLM_MODEL", "env-model")
    monkeypatch.setenv("ABQ_MEDIA_LLM_API_KEY", "env-key")
    settings = AbqMediaSettings(_env_file=None, home=tmp_path / "home")
    _write_credentials(settings, llm_model="cred-model", llm_api_key="cred-key")

    llm = RunConfig.load(settings).llm_config()

    assert llm.model == "env-model"
    assert llm.api_key == "env-key"
    assert llm.provider == "openrouter"


def test_invalid_credentials_fall_back_to_defaults(settings: AbqMediaSettings) -> None:
    path = settings.paths.credentials_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("not json", encoding="utf-8")

    assert RunConfig.load(settings).credentials == Credentials()


def test_speech_keys_fall_back(settings: AbqMediaSettings) -> None:
    _write_credentials(settings, elevenlabs_api_key="el-cred", openai_api_key="sk-cred")

    config = RunConfig.load(settings)

    assert config.elevenlabs_api_key == "el-cred"
    assert config.asr_api_key == "sk-cred"


def test_project_configs_are_loaded(settings: AbqMediaSettings) -> None:
    paths = settings.paths
    paths.ensure_project("show")
    write_project_config(
        paths.project_config_path("show"),
        ProjectConfig(default_language="en", handle="@show", tone="casual"),
    )

    config = RunConfig.load(settings)

    assert config.project("show").handle == "@show"
    assert config.project("unknown") == ProjectConfig()


def test_language_resolution_order(settings: AbqMediaSettings) -> None:
    paths = settings.paths
    paths.ensure_project("show")
    write_project_config(paths.project_config_path("show"), ProjectConfig(default_language="en"))
    _write_credentials(settings, lang="pt")

    assert RunConfig.load(settings).language_for("other", "es") == "pt"
    assert RunConfig.load(settings).language_for("show", "es") == "en"
    assert RunConfig.load(settings, lang_override="fr").language_for("show", "es") == "fr"

    settings.paths.credentials_path.unlink()
    assert RunConfig.load(settings).language_for("other", "es") == "es"
