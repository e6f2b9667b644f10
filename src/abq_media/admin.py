"""Workspace maintenance: credential setup, environment checks and resets.

These back the `setup`, `doctor` and `reset` commands. They work on the
workspace home directly and never touch a running workflow.
"""

from __future__ import annotations

import json
import logging
import platform
import shutil
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

import requests

from abq_media.config import Credentials, RunConfig, write_credentials
from abq_media.errors import UserCancelledError
from abq_media.storage.paths import WorkspacePaths
from abq_media.ui.prompts import Cancelled, Choice, Prompter, PromptResult
from abq_media.validation import is_valid_project_name, looks_like_llm_key
from abq_media.workflow.context import DEFAULT_LANG

logger = logging.getLogger(__name__)

T = TypeVar("T")

MIN_KEY_CHARS = 9
DOCTOR_TIMEOUT_SECONDS = 15

_PROVIDER_CHOICES = [Choice("openrouter", "OpenRouter"), Choice("openai", "OpenAI")]
_KEY_HINTS: dict[str, str] = {
    "openrouter": "OpenRouter keys start with sk-or-",
    "openai": "OpenAI keys start with sk-",
}


def answered(result: PromptResult[T], command: str = "setup") -> T:
    """Return a prompt answer; a cancelled prompt aborts the maintenance command."""

    if isinstance(result, Cancelled):
        raise UserCancelledError(command)
    return result.value


def mask_secret(value: str | None) -> str:
    if not value:
        return "not configured"
    if len(value) < MIN_KEY_CHARS:
        return "configured"
    return f"{value[:4]}...{value[-4:]}"


def _ask_secret(
    prompter: Prompter, label: str, current: str | None, *, required: bool
) -> str | None:
    message = f"{label} [{mask_secret(current)}, empty keeps it]" if current else label
    while True:
        answer = answered(prompter.text(message)).strip()
        if not answer:
            if current or not required:
                return current
            prompter.error(f"{label} is required.")
            continue
        if len(answer) < MIN_KEY_CHARS:
            prompter.error("Invalid key format.")
            continue
        return answer


def configure_credentials(prompter: Prompter, current: Credentials) -> Credentials:
    """Ask for every credential, keeping current values the user skips.

    Raises:
        UserCancelledError: If any prompt is cancelled; nothing is written.
    """

    provider = answered(
        prompter.select(
            "LLM provider", _PROVIDER_CHOICES, default=current.llm_provider or "openrouter"
        )
    )
    llm_api_key = _ask_secret(
        prompter, f"{provider} API key", current.llm_api_key, required=True
    )
    model = answered(
        prompter.text("LLM model (empty for the default)", default=current.llm_model or "")
    ).strip()
    openai_api_key = _ask_secret(
        prompter, "OpenAI API key for Whisper (optional)", current.openai_api_key, required=False
    )
    elevenlabs_api_key = _ask_secret(
        prompter, "ElevenLabs API key (optional)", current.elevenlabs_api_key, required=False
    )
    lang = answered(
        prompter.text("Default language code", default=current.lang or DEFAULT_LANG)
    ).strip()

    return Credentials(
        lang=lang or DEFAULT_LANG,
        llm_provider=provider,
        llm_api_key=llm_api_key,
        llm_model=model or None,
        openai_api_key=openai_api_key,
        elevenlabs_api_key=elevenlabs_api_key,
    )


def run_setup(paths: WorkspacePaths, prompter: Prompter, current: Credentials) -> Credentials:
    credentials = configure_credentials(prompter, current)
    write_credentials(paths.credentials_path, credentials)
    logger.info("Credentials saved", extra={"path": str(paths.credentials_path)})
    return credentials


def describe_credentials(paths: WorkspacePaths, credentials: Credentials) -> list[str]:
    return [
        f"LLM: {credentials.llm_provider or 'default'} ({mask_secret(credentials.llm_api_key)})",
        f"Model: {credentials.llm_model or 'default'}",
        f"OpenAI (Whisper): {mask_secret(credentials.openai_api_key)}",
        f"ElevenLabs: {mask_secret(credentials.elevenlabs_api_key)}",
        f"Language: {credentials.lang or DEFAULT_LANG}",
        f"Config file: {paths.credentials_path}",
    ]


@dataclass(frozen=True, slots=True)
class DoctorReport:
    ok: bool
    checks: dict[str, Any] = field(default_factory=dict)
    hints: list[str] = field(default_factory=list)

    def to_json(self) -> str:
        payload = {"ok": self.ok, "checks": self.checks, "hints": self.hints}
        return json.dumps(payload, indent=2, ensure_ascii=False)


def run_doctor(
    config: RunConfig,
    *,
    session: requests.Session | None = None,
    which: Callable[[str], str | None] = shutil.which,
    clock: Callable[[], float] = time.monotonic,
) -> DoctorReport:
    """Check the LLM key shape and reachability plus the optional tools.

    Only the LLM check decides ``ok``; missing speech keys or yt-dlp just
    produce hints.
    """

    llm = config.llm_config()
    key_ok = looks_like_llm_key(llm.provider, llm.api_key)

    api_ok = False
    latency_ms: int | None = None
    api_error = ""
    if key_ok:
        http = session or requests.Session()
        url = f"{llm.resolved_base_url}/models"
        started = clock()
        try:
            response = http.get(
                url,
                headers={"Authorization": f"Bearer {llm.api_key}"},
                timeout=DOCTOR_TIMEOUT_SECONDS,
            )
            api_ok = response.ok
            if not response.ok:
                api_error = f"HTTP {response.status_code}: {response.text[:200]}"
        except requests.RequestException as e:
            api_error = str(e)
        latency_ms = int((clock() - started) * 1000)
        logger.info("LLM API check", extra={"url": url, "ok": api_ok, "latency_ms": latency_ms})

    has_ytdlp = which("yt-dlp") is not None
    checks: dict[str, Any] = {
        "python_version": platform.python_version(),
        "llm_provider": llm.provider,
        "llm_key_format": key_ok,
        "llm_api": api_ok,
        "latency_ms": latency_ms,
        "whisper_key": bool(config.asr_api_key),
        "elevenlabs_key": bool(config.elevenlabs_api_key),
        "yt_dlp": has_ytdlp,
    }

    hints: list[str] = []
    if not key_ok:
        hints.append(_KEY_HINTS.get(llm.provider, "Set an LLM API key with abq-media setup"))
    elif not api_ok:
        hints.append(f"{llm.provider} API check failed: {api_error or 'unknown error'}")
    if not config.elevenlabs_api_key:
        hints.append("Set an ElevenLabs key (abq-media setup) to render podcast audio")
    if not has_ytdlp:
        hints.append("Install yt-dlp for subtitle and audio downloads")

    return DoctorReport(ok=key_ok and api_ok, checks=checks, hints=hints)


def reset_project(paths: WorkspacePaths, name: str) -> bool:
    """Delete one project directory. Returns False when there was nothing to delete."""

    if not is_valid_project_name(name):
        return False
    directory = paths.project_dir(name)
    if not directory.is_dir():
        return False
    shutil.rmtree(directory)
    logger.info("Project removed", extra={"project": name})
    return True


def reset_all_projects(paths: WorkspacePaths) -> bool:
    if not paths.projects_dir.is_dir():
        return False
    shutil.rmtree(paths.projects_dir)
    logger.info("All projects removed", extra={"path": str(paths.projects_dir)})
    return True


def reset_credentials(paths: WorkspacePaths) -> bool:
    if not paths.credentials_path.exists():
        return False
    paths.credentials_path.unlink()
    logger.info("Credentials removed", extra={"path": str(paths.credentials_path)})
    return True
