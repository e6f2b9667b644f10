"""Unit tests for captions parsing and the transcription service."""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from unittest.mock import Mock

import pytest
import requests
from openai import OpenAIError

from abq_media.engine.transcription import TranscriptionService, clean_vtt, strip_caption_xml
from abq_media.errors import CaptionsUnavailableError, ProviderError

MISSING_TOOL = "abq-media-missing-yt-dlp"

CAPTIONS_XML = (
    '<?xml version="1.0"?><timedtext><body>'
    '<p t="0"><s>Water rights</s> in the valley &amp; beyond</p>'
    '<p t="2000">are changing how farmers plan &#39;wet&#39; seasons.</p>'
    "</body></timedtext>"
)

VTT = """WEBVTT
Kind: captions
Language: en

00:00:00.000 --> 00:00:02.000 align:start position:0%
hello <c>world</c>

00:00:02.000 --> 00:00:04.000
hello <c>world</c>

00:00:04.000 --> 00:00:06.000
second line
"""


def _response(status: int, text: str, url: str = "https://www.youtube.com/api/timedtext") -> Mock:
    response = Mock(spec=requests.Response)
    response.status_code = status
    response.text = text
    response.url = url
    return response


def test_strip_caption_xml() -> None:
    assert strip_caption_xml(CAPTIONS_XML) == (
        "Water rights in the valley & beyond are changing how farmers plan 'wet' seasons."
    )


def test_clean_vtt_drops_header_timings_and_repeats() -> None:
    assert clean_vtt(VTT) == "hello world second line"


def test_fetch_captions_tries_candidates_until_text_is_found() -> None:
    session = Mock(spec=requests.Session)
    session.get.side_effect = [
        _response(404, ""),
        _response(200, "<transcript/>"),
        _response(200, f"<text>{'word ' * 20}</text>", url="https://captions.example/ok"),
    ]
    service = TranscriptionService(session=session, min_chars=40)

    transcript = service.fetch_captions("abc123", "es")

    assert transcript.mode == "youtube-captions"
    assert transcript.source == "https://captions.example/ok"
    assert transcript.text.startswith("word word")
    assert session.get.call_count == 3
    assert session.get.call_args.kwargs["params"] == {
        "v": "abc123",
        "lang": "es",
        "kind": "asr",
        "fmt": "srv3",
    }


def test_fetch_captions_gives_up_after_all_candidates() -> None:
    session = Mock(spec=requests.Session)
    session.get.side_effect = requests.ConnectionError("offline")

    with pytest.raises(CaptionsUnavailableError):
        TranscriptionService(session=session).fetch_captions("abc123", "en")

    # en, es, en-US with four caption variants each.
    assert session.get.call_count == 12


def test_youtube_captions_without_yt_dlp_reports_unavailable() -> None:
    session = Mock(spec=requests.Session)
    session.get.return_value = _response(404, "")
    service = TranscriptionService(session=session, ytdlp=MISSING_TOOL)

    with pytest.raises(CaptionsUnavailableError, match="not installed"):
        service.youtube_captions("https://youtu.be/abc123", "es")


def test_youtube_captions_rejects_non_youtube_url() -> None:
    with pytest.raises(ProviderError, match="Not a YouTube URL"):
        TranscriptionService(session=Mock(spec=requests.Session)).youtube_captions(
            "https://vimeo.com/1", "es"
        )


def test_youtube_asr_requires_yt_dlp(tmp_path: Path) -> None:
    service = TranscriptionService(session=Mock(spec=requests.Session), ytdlp=MISSING_TOOL)

    with pytest.raises(ProviderError, match="required to download audio"):
        service.youtube_asr("https://youtu.be/abc123", "es", tmp_path)


def test_transcribe_audio_without_client(tmp_path: Path) -> None:
    service = TranscriptionService(session=Mock(spec=requests.Session))

    assert not service.has_asr
    with pytest.raises(ProviderError, match="OPENAI_API_KEY"):
        service.transcribe_audio(tmp_path / "clip.mp3", "es")


def test_transcribe_audio_with_whisper(tmp_path: Path) -> None:
    audio = tmp_path / "clip.mp3"
    audio.write_bytes(b"ID3")
    client = Mock()
    client.audio.transcriptions.create.return_value = SimpleNamespace(text=" " + "palabra " * 10)
    service = TranscriptionService(session=Mock(spec=requests.Session), asr_client=client)

    transcript = service.transcribe_audio(audio, "es-MX")

    assert transcript.mode == "whisper"
    assert transcript.source == str(audio)
    assert transcript.text.startswith("palabra")
    kwargs = client.audio.transcriptions.create.call_args.kwargs
    assert kwargs["model"] == "whisper-1"
    assert kwargs["language"] == "es"


def test_transcribe_audio_failures(tmp_path: Path) -> None:
    audio = tmp_path / "clip.mp3"
    audio.write_bytes(b"ID3")
    client = Mock()
    service = TranscriptionService(session=Mock(spec=requests.Session), asr_client=client)

    client.audio.transcriptions.create.side_effect = OpenAIError("bad audio")
    with pytest.raises(ProviderError, match="Whisper transcription failed"):
        service.transcribe_audio(audio, "es")

    client.audio.transcriptions.create.side_effect = None
    client.audio.transcriptions.create.return_value = SimpleNamespace(text="short")
    with pytest.raises(ProviderError, match="too short"):
        service.transcribe_audio(audio, "es")
