"""Input validation helpers for URLs, audio files and text files."""

from __future__ import annotations

import re
from pathlib import Path
from urllib.parse import parse_qs, urlparse

AUDIO_EXTENSIONS: frozenset[str] = frozenset(
    {".wav", ".mp3", ".m4a", ".ogg", ".flac", ".aac", ".webm"}
)
TEXT_EXTENSIONS: frozenset[str] = frozenset({".txt", ".md", ".markdown", ".vtt", ".srt"})

_PROJECT_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


def youtube_video_id(raw: str | None) -> str | None:
    """Extract the video id from a YouTube URL.

    Supports ``youtu.be/<id>``, ``youtube.com/watch?v=<id>`` and
    ``youtube.com/shorts/<id>``. Returns None for anything else.
    """

    if not raw:
        return None

    # Shell-escaped URLs are common when pasted from a terminal.
    cleaned = raw.strip().replace("\\?", "?").replace("\\&", "&").replace("\\=", "=")
    parsed = urlparse(cleaned)
    if parsed.scheme not in {"http", "https"} or not parsed.hostname:
        return None

    host = parsed.hostname.lower()
    if host.endswith("youtu.be"):
        video_id = parsed.path.strip("/").split("/")[0]
        return video_id or None

    if host.endswith("youtube.com"):
        values = parse_qs(parsed.query).get("v")
        if values and values[0].strip():
            return values[0].strip()
        parts = [p for p in parsed.path.split("/") if p]
        if len(parts) >= 2 and parts[0] == "shorts":
            return parts[1]

    return None


def is_valid_youtube_url(raw: str | None) -> bool:
    return youtube_video_id(raw) is not None


def has_audio_extension(path: Path) -> bool:
    return path.suffix.lower() in AUDIO_EXTENSIONS


def has_text_extension(path: Path) -> bool:
    return path.suffix.lower() in TEXT_EXTENSIONS


def is_valid_audio_file(path: Path) -> bool:
    """True when ``path`` is an existing file with a supported audio extension."""

    return has_audio_extension(path) and path.is_file()


def is_valid_text_file(path: Path) -> bool:
    """True when ``path`` is an existing file with a supported text extension."""

    return has_text_extension(path) and path.is_file()


def is_valid_project_name(name: str) -> bool:
    return bool(_PROJECT_NAME_RE.match(name))


_LLM_KEY_PREFIXES: dict[str, str] = {"openrouter": "sk-or-", "openai": "sk-"}


def looks_like_llm_key(provider: str, key: str | None) -> bool:
    """Shape check for provider API keys; says nothing about whether they work."""

    prefix = _LLM_KEY_PREFIXES.get(provider)
    if prefix is None or not key:
        return False
    return key.startswith(prefix) and len(key) >= 20
