"""Per-project transcript registry.

Entries are keyed by ``<source_type>:<source_id or source>:<lang>`` and point
at a transcript produced by an earlier run, so ingest stages can offer reuse
instead of transcribing the same source again.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


def registry_key(*, source_type: str, source: str, source_id: str | None, lang: str) -> str:
    return f"{source_type}:{source_id or source}:{lang}"


class RegistryEntry(BaseModel):
    key: str
    source_type: str
    source: str
    source_id: str | None = Field(default=None)
    lang: str
    transcript_path: str
    created_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())

    @classmethod
    def create(
        cls,
        *,
        source_type: str,
        source: str,
        source_id: str | None,
        lang: str,
        transcript_path: Path,
    ) -> RegistryEntry:
        return cls(
            key=registry_key(
                source_type=source_type, source=source, source_id=source_id, lang=lang
            ),
            source_type=source_type,
            source=source,
            source_id=source_id,
            lang=lang,
            transcript_path=str(transcript_path),
        )


class TranscriptRegistry:
    """JSON-file backed list of registry entries."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def load(self) -> list[RegistryEntry]:
        if not self._path.exists():
            return []

        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning(
                "Registry file is not valid JSON; treating as empty",
                extra={"path": str(self._path)},
            )
            return []

        if not isinstance(raw, list):
            logger.warning(
                "Registry file has unexpected shape; treating as empty",
                extra={"path": str(self._path)},
            )
            return []

        entries: list[RegistryEntry] = []
        for item in raw:
            try:
                entries.append(RegistryEntry.model_validate(item))
            except ValidationError:
                logger.warning("Skipping malformed registry entry", extra={"path": str(self._path)})
        return entries

    def save(self, entries: list[RegistryEntry]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = [e.model_dump(mode="json") for e in entries]
        self._path.write_text(
            json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8"
        )

    def find(
        self, *, source_type: str, source: str, source_id: str | None, lang: str
    ) -> RegistryEntry | None:
        key = registry_key(source_type=source_type, source=source, source_id=source_id, lang=lang)
        for entry in self.load():
            if entry.key == key:
                return entry
        return None

    def upsert(self, entry: RegistryEntry) -> None:
        entries = [e for e in self.load() if e.key != entry.key]
        entries.append(entry)
        self.save(entries)
        logger.info(
            "Registry entry stored",
            extra={"key": entry.key, "transcript_path": entry.transcript_path},
        )
