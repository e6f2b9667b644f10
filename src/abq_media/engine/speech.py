"""Speech synthesis with ElevenLabs.

Podcast scripts are two-host dialogues (``HOST_A:``/``HOST_B:`` lines). Each
line is synthesized with its host's voice and the MP3 frames are appended
into a single file.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

import requests

from abq_media.config import SpeechConfig
from abq_media.errors import ProviderError

logger = logging.getLogger(__name__)

ELEVENLABS_TTS_URL = "https://api.elevenlabs.io/v1/text-to-speech"

Speaker = Literal["HOST_A", "HOST_B"]

_LINE_RE = re.compile(r"^(HOST_A|HOST_B):\s*(.+)$")


@dataclass(frozen=True, slots=True)
class DialogueLine:
    speaker: Speaker
    text: str


def parse_dialogue(script: str) -> list[DialogueLine]:
    lines: list[DialogueLine] = []
    for raw in script.splitlines():
        match = _LINE_RE.match(raw.strip())
        if match:
            speaker: Speaker = "HOST_A" if match.group(1) == "HOST_A" else "HOST_B"
            lines.append(DialogueLine(speaker=speaker, text=match.group(2).strip()))
    return lines


class ElevenLabsClient:
    def __init__(
        self,
        config: SpeechConfig,
        *,
        api_key: str,
        session: requests.Session | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("ElevenLabs API key is required")
        self._config = config
        self._api_key = api_key
        self._session = session or requests.Session()

    def synthesize(self, text: str, voice_id: str) -> bytes:
        url = f"{ELEVENLABS_TTS_URL}/{voice_id}"
        logger.debug("TTS request", extra={"voice_id": voice_id, "characters": len(text)})

        try:
            response = self._session.post(
                url,
                params={"output_format": self._config.output_format},
                headers={"xi-api-key": self._api_key, "content-type": "application/json"},
                json={
                    "text": text,
                    "model_id": self._config.model,
                    "voice_settings": {
                        "stability": self._config.stability,
                        "similarity_boost": self._config.similarity,
                    },
                },
                timeout=120,
            )
        except requests.RequestException as e:
            raise ProviderError(f"ElevenLabs request failed: {e}") from e

        if response.status_code in (401, 403):
            raise ProviderError(f"ElevenLabs auth failed ({response.status_code}): {response.text}")
        if not response.ok:
            raise ProviderError(f"ElevenLabs HTTP {response.status_code}: {response.text}")
        return response.content

    def render_dialogue(self, script: str, dest: Path) -> Path:
        dialogue = parse_dialogue(script)
        if not dialogue:
            raise ProviderError("No HOST_A/HOST_B lines found in script")

        dest.parent.mkdir(parents=True, exist_ok=True)
        partial = dest.with_suffix(dest.suffix + ".part")
        with partial.open("wb") as out:
            for i, line in enumerate(dialogue, start=1):
                voice = (
                    self._config.voice_id_a if line.speaker == "HOST_A" else self._config.voice_id_b
                )
                logger.info(
                    "Rendering dialogue line",
                    extra={"line": i, "total": len(dialogue), "speaker": line.speaker},
                )
                out.write(self.synthesize(line.text, voice))
        partial.replace(dest)
        return dest
