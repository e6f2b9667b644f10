"""Configuration for the abq-media CLI.

Configuration comes from three places:
- environment variables and a local `.env` file (pydantic-settings)
- `<home>/credentials.json`, shared by every project
- `<home>/projects/<name>/config.json`, one per project

`RunConfig` folds all three into a read-only snapshot that is loaded once per
invocation and handed to every stage handler.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Literal, TypeVar

from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from abq_media.storage.paths import WorkspacePaths

logger = logging.getLogger(__name__)

_PROVIDER_BASE_URLS: dict[str, str] = {
    "openai": "https://api.openai.com/v1",
    "openrouter": "https://openrouter.ai/api/v1",
}


class LLMConfig(BaseSettings):
    """Configuration for the text generation provider."""

    provider: Literal["openai", "openrouter"] = Field(
        default="openrouter",
        description="LLM provider to use",
    )
    api_key: str | None = Field(
        default=None,
        description="API key for the selected provider",
    )
    model: str = Field(
        default="openrouter/auto",
        description="Model identifier",
    )
    temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=2.0,
        description="Sampling temperature",
    )
    max_tokens: int = Field(
        default=4096,
        gt=0,
        description="Maximum tokens per completion",
    )
    base_url: str | None = Field(
        default=None,
        description="Override the provider base URL (OpenAI-compatible endpoints)",
    )

    model_config = SettingsConfigDict(
        env_prefix="ABQ_MEDIA_LLM_",
        env_file=".env",
        extra="ignore",
    )

    @property
    def resolved_base_url(self) -> str:
        return (self.base_url or _PROVIDER_BASE_URLS[self.provider]).rstrip("/")


class SpeechConfig(BaseSettings):
    """Configuration for speech recognition and synthesis."""

    api_key: str | None = Field(
        default=None,
        description="ElevenLabs API key",
    )
    voice_id_a: str = Field(
        default="pNInz6obpgDQGcFmaJgB",
        description="Voice used for HOST_A lines",
    )
    voice_id_b: str = Field(
        default="EXAVITQu4vr4xnSDxMaL",
        description="Voice used for HOST_B lines",
    )
    model: str = Field(default="eleven_multilingual_v2")
    output_format: str = Field(default="mp3_44100_128")
    stability: float = Field(default=0.5, ge=0.0, le=1.0)
    similarity: float = Field(default=0.75, ge=0.0, le=1.0)
    asr_model: str = Field(
        default="whisper-1",
        description="Speech-to-text model used for audio transcription",
    )
    asr_api_key: str | None = Field(
        default=None,
        description="OpenAI key for Whisper (falls back to OPENAI_API_KEY)",
    )

    model_config = SettingsConfigDict(
        env_prefix="ABQ_MEDIA_TTS_",
        env_file=".env",
        extra="ignore",
    )


class AbqMediaSettings(BaseSettings):
    """Process-wide settings.

    Environment variables:
    - ABQ_MEDIA_HOME            (optional, default ``~/.abq-media``)
    - LOG_LEVEL                 (optional)
    - EDITOR                    (optional)
    - OPENAI_API_KEY            (optional, used for Whisper and the openai provider)
    - ELEVENLABS_API_KEY        (optional)
    - ABQ_MEDIA_LLM_*           (see `LLMConfig`)
    - ABQ_MEDIA_TTS_*           (see `SpeechConfig`)

    Notes:
        Tests override the env file via `AbqMediaSettings(_env_file=None)`.
    """

    home: Path = Field(
        default=Path("~/.abq-media"),
        validation_alias="ABQ_MEDIA_HOME",
        description="Directory holding credentials and projects",
    )
    log_level: str = Field(
        default="WARNING",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )
    editor: str | None = Field(
        default=None,
        validation_alias="EDITOR",
        description="External editor used by review gates",
    )
    openai_api_key: str | None = Field(
        default=None,
        validation_alias="OPENAI_API_KEY",
    )
    elevenlabs_api_key: str | None = Field(
        default=None,
        validation_alias="ELEVENLABS_API_KEY",
    )
    min_text_chars: int = Field(
        default=40,
        gt=0,
        validation_alias="ABQ_MEDIA_MIN_TEXT_CHARS",
        description="Minimum length for a transcript or text input to be usable",
    )
    excerpt_chars: int = Field(
        default=2200,
        gt=0,
        validation_alias="ABQ_MEDIA_EXCERPT_CHARS",
        description="Transcript characters quoted in the research prompt",
    )

    llm: LLMConfig = Field(default_factory=LLMConfig)
    speech: SpeechConfig = Field(default_factory=SpeechConfig)

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def paths(self) -> WorkspacePaths:
        return WorkspacePaths(self.home.expanduser())


class Credentials(BaseModel):
    """Contents of `<home>/credentials.json`."""

    lang: str | None = None
    llm_provider: Literal["openai", "openrouter"] | None = None
    llm_api_key: str | None = None
    llm_model: str | None = None
    openai_api_key: str | None = None
    elevenlabs_api_key: str | None = None


class ProjectConfig(BaseModel):
    """Contents of `<home>/projects/<name>/config.json`."""

    default_language: str | None = None
    handle: str = Field(default="")
    cta: str = Field(default="")
    tone: str = Field(default="informative")


_ModelT = TypeVar("_ModelT", bound=BaseModel)


def _read_model(path: Path, model: type[_ModelT]) -> _ModelT | None:
    if not path.exists():
        return None

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        return model.model_validate(raw or {})
    except (json.JSONDecodeError, ValidationError):
        logger.warning(
            "Config file is not valid; using defaults",
            extra={"path": str(path)},
        )
        return None


def _write_model(path: Path, model: BaseModel, *, exclude_none: bool = False) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = model.model_dump(mode="json", exclude_none=exclude_none)
    path.write_text(
        json.dumps(payload, indent=2, ensure_ascii=False) + "\n",
        encoding="utf-8",
    )


def write_project_config(path: Path, config: ProjectConfig) -> None:
    _write_model(path, config)


def read_credentials(path: Path) -> Credentials:
    return _read_model(path, Credentials) or Credentials()


def write_credentials(path: Path, credentials: Credentials) -> None:
    """Store credentials readable by the owner only, dropping unset keys."""

    _write_model(path, credentials, exclude_none=True)
    path.chmod(0o600)


@dataclass(frozen=True, slots=True)
class RunConfig:
    """Read-only configuration snapshot for one CLI invocation."""

    settings: AbqMediaSettings
    credentials: Credentials = field(default_factory=Credentials)
    projects: Mapping[str, ProjectConfig] = field(default_factory=lambda: MappingProxyType({}))
    lang_override: str | None = None

    @classmethod
    def load(cls, settings: AbqMediaSettings, *, lang_override: str | None = None) -> RunConfig:
        paths = settings.paths
        credentials = read_credentials(paths.credentials_path)

        projects: dict[str, ProjectConfig] = {}
        for name in paths.list_projects():
            loaded = _read_model(paths.project_config_path(name), ProjectConfig)
            if loaded is not None:
                projects[name] = loaded

        logger.debug(
            "Loaded run configuration",
            extra={"home": str(paths.home), "projects": sorted(projects)},
        )
        return cls(
            settings=settings,
            credentials=credentials,
            projects=MappingProxyType(projects),
            lang_override=lang_override,
        )

    @property
    def paths(self) -> WorkspacePaths:
        return self.settings.paths

    def project(self, name: str) -> ProjectConfig:
        return self.projects.get(name) or ProjectConfig()

    def llm_config(self) -> LLMConfig:
        """Effective LLM configuration; the environment wins over credentials."""

        llm = self.settings.llm
        provider = llm.provider
        if "provider" not in llm.model_fields_set and self.credentials.llm_provider:
            provider = self.credentials.llm_provider

        api_key = llm.api_key or self.credentials.llm_api_key
        if not api_key and provider == "openai":
            api_key = self.openai_api_key

        model = llm.model
        if "model" not in llm.model_fields_set and self.credentials.llm_model:
            model = self.credentials.llm_model

        return llm.model_copy(update={"provider": provider, "api_key": api_key, "model": model})

    @property
    def openai_api_key(self) -> str | None:
        return self.settings.openai_api_key or self.credentials.openai_api_key

    @property
    def elevenlabs_api_key(self) -> str | None:
        return (
            self.settings.speech.api_key
            or self.settings.elevenlabs_api_key
            or self.credentials.elevenlabs_api_key
        )

    @property
    def asr_api_key(self) -> str | None:
        return self.settings.speech.asr_api_key or self.openai_api_key

    def language_for(self, project_name: str, fallback: str) -> str:
        """Language preference: CLI override, project default, credentials, fallback."""

        return (
            self.lang_override
            or self.project(project_name).default_language
            or self.credentials.lang
            or fallback
        )
