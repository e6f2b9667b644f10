"""Transcription: YouTube captions, yt-dlp subtitles and Whisper ASR.

YouTube sources go through a fallback chain: the public timedtext captions
endpoint, then subtitles downloaded with ``yt-dlp``. Speech recognition is a
separate, explicit step because it downloads audio and costs API credits.
"""

from __future__ import annotations

import html
import logging
import re
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path

import requests
from openai import OpenAI, OpenAIError

from abq_media.errors import CaptionsUnavailableError, ProviderError
from abq_media.validation import youtube_video_id

logger = logging.getLogger(__name__)

TIMEDTEXT_URL = "https://www.youtube.com/api/timedtext"
YTDLP_TIMEOUT_SECONDS = 300


@dataclass(frozen=True, slots=True)
class Transcript:
    text: str
    mode: str
    source: str


def strip_caption_xml(raw: str) -> str:
    without_tags = re.sub(r"<[^>]+>", " ", raw)
    return re.sub(r"\s+", " ", html.unescape(without_tags)).strip()


def clean_vtt(raw: str) -> str:
    """Reduce a WebVTT subtitle file to plain text."""

    body = re.sub(r"^WEBVTT.*?\n\n", "", raw, count=1, flags=re.DOTALL)
    body = re.sub(r"(\d{2}:)?\d{2}:\d{2}\.\d{3}\s+-->\s+(\d{2}:)?\d{2}:\d{2}\.\d{3}.*", " ", body)
    body = re.sub(r"<[^>]+>", " ", body)

    # Auto-generated subtitles repeat each line across consecutive cues.
    lines: list[str] = []
    for line in (part.strip() for part in body.splitlines()):
        if line and (not lines or lines[-1] != line):
            lines.append(line)
    return re.sub(r"\s+", " ", " ".join(lines)).strip()


class TranscriptionService:
    def __init__(
        self,
        *,
        min_chars: int = 40,
        asr_model: str = "whisper-1",
        asr_client: OpenAI | None = None,
        session: requests.Session | None = None,
        ytdlp: str = "yt-dlp",
    ) -> None:
        self._min_chars = min_chars
        self._asr_model = asr_model
        self._asr_client = asr_client
        self._session = session or requests.Session()
        self._ytdlp = ytdlp

    @property
    def has_asr(self) -> bool:
        return self._asr_client is not None

    def fetch_captions(self, video_id: str, lang: str) -> Transcript:
        """Try the timedtext endpoint for several languages and caption kinds."""

        for candidate in dict.fromkeys([lang, "es", "en", "en-US"]):
            for extra in ({"fmt": "srv3"}, {}, {"kind": "asr", "fmt": "srv3"}, {"kind": "asr"}):
                params = {"v": video_id, "lang": candidate, **extra}
                try:
                    response = self._session.get(TIMEDTEXT_URL, params=params, timeout=30)
                except requests.RequestException as e:
                    logger.debug("Captions request failed", extra={"error": str(e)})
                    continue
                if response.status_code != 200 or "<text" not in response.text:
                    continue

                text = strip_caption_xml(response.text)
                if len(text) > self._min_chars:
                    return Transcript(text=text, mode="youtube-captions", source=response.url)

        raise CaptionsUnavailableError(f"No captions found for video {video_id}")

    def download_subtitles(self, url: str, lang: str) -> Transcript:
        if shutil.which(self._ytdlp) is None:
            raise CaptionsUnavailableError(f"{self._ytdlp} is not installed")

        with tempfile.TemporaryDirectory(prefix="abq-ytdlp-") as tmp:
            command = [
                self._ytdlp,
                "--skip-download",
                "--write-auto-sub",
                "--write-sub",
                "--sub-format",
                "vtt",
                "--sub-langs",
                f"{lang},es,en,en-US",
                "-o",
                "video.%(ext)s",
                url,
            ]
            self._run(command, cwd=Path(tmp))

            files = sorted(Path(tmp).glob("*.vtt"), key=lambda p: len(p.name))
            if not files:
                raise CaptionsUnavailableError("yt-dlp produced no subtitle files")

            text = clean_vtt(files[0].read_text(encoding="utf-8", errors="replace"))
            if len(text) < self._min_chars:
                raise CaptionsUnavailableError("yt-dlp subtitles are too short")
            return Transcript(text=text, mode="yt-dlp-subs", source=f"yt-dlp:{files[0].name}")

    def youtube_captions(self, url: str, lang: str) -> Transcript:
        """Captions via timedtext, then yt-dlp. Raises `CaptionsUnavailableError`."""

        video_id = youtube_video_id(url)
        if video_id is None:
            raise ProviderError(f"Not a YouTube URL: {url}")

        try:
            return self.fetch_captions(video_id, lang)
        except CaptionsUnavailableError:
            logger.info("Timedtext captions unavailable; trying yt-dlp", extra={"url": url})

        try:
            return self.download_subtitles(url, lang)
        except ProviderError as e:
            raise CaptionsUnavailableError(f"No captions available for {url}: {e}") from e

    def youtube_asr(self, url: str, lang: str, work_dir: Path) -> Transcript:
        """Download the audio track with yt-dlp and transcribe it."""

        if shutil.which(self._ytdlp) is None:
            raise ProviderError(f"{self._ytdlp} is required to download audio")

        work_dir.mkdir(parents=True, exist_ok=True)
        command = [
            self._ytdlp,
            "-x",
            "--audio-format",
            "mp3",
            "-o",
            "source-audio.%(ext)s",
            url,
        ]
        self._run(command, cwd=work_dir)

        audio = next(iter(sorted(work_dir.glob("source-audio.*"))), None)
        if audio is None:
            raise ProviderError("yt-dlp did not produce an audio file")

        transcript = self.transcribe_audio(audio, lang)
        return Transcript(text=transcript.text, mode="yt-asr", source=url)

    def transcribe_audio(self, path: Path, lang: str) -> Transcript:
        if self._asr_client is None:
            raise ProviderError("Speech recognition needs an OpenAI API key (OPENAI_API_KEY)")

        logger.info("Transcribing audio", extra={"path": str(path), "model": self._asr_model})
        try:
            with path.open("rb") as fh:
                result = self._asr_client.audio.transcriptions.create(
                    model=self._asr_model,
                    file=fh,
                    language=lang.split("-")[0],
                )
        except OpenAIError as e:
            raise ProviderError(f"Whisper transcription failed: {e}") from e

        text = (getattr(result, "text", "") or "").strip()
        if len(text) < self._min_chars:
            raise ProviderError("Transcription is empty or too short")
        return Transcript(text=text, mode="whisper", source=str(path))

    def _run(self, command: list[str], *, cwd: Path) -> None:
        logger.debug("Running external tool", extra={"command": command})
        try:
            subprocess.run(
                command,
                cwd=cwd,
                check=True,
                capture_output=True,
                text=True,
                timeout=YTDLP_TIMEOUT_SECONDS,
            )
        except subprocess.CalledProcessError as e:
            raise ProviderError(f"{command[0]} failed: {(e.stderr or '').strip()[:500]}") from e
        except subprocess.TimeoutExpired as e:
            raise ProviderError(f"{command[0]} timed out") from e
