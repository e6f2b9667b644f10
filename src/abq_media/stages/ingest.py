"""Input stages: pick a source and get it ready for transcription.

Recoverable problems (bad URL, missing file, empty or too-short text) never
raise: the handler reports them and routes back to INPUT_SELECT.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from abq_media.stages.base import (
    SOURCE_FILE,
    StageDeps,
    choose_language,
    mark_stage,
    read_text,
    unwrap,
    write_json,
    write_text,
)
from abq_media.storage.registry import TranscriptRegistry
from abq_media.ui.prompts import Choice
from abq_media.validation import has_audio_extension, has_text_extension, youtube_video_id
from abq_media.workflow.context import WorkflowContext
from abq_media.workflow.runner import StageResult
from abq_media.workflow.states import InputType, WorkflowState
from abq_media.workflow.transitions import resolve_single

logger = logging.getLogger(__name__)

TRANSCRIPT_FILE = "transcript.txt"

_INPUT_CHOICES = [
    Choice(InputType.YOUTUBE, "YouTube URL"),
    Choice(InputType.AUDIO, "Audio file"),
    Choice(InputType.TEXTFILE, "Text file"),
    Choice(InputType.RAW, "Paste raw text"),
]


def _back_to_selection(context: WorkflowContext) -> StageResult:
    return StageResult(next_state=WorkflowState.INPUT_SELECT, context=context)


def _as_path(raw: str) -> Path:
    return Path(raw.strip().strip("'\"")).expanduser().resolve()


def _ask_source(deps: StageDeps, message: str) -> str:
    while True:
        answer = unwrap(deps.prompter.text(message), WorkflowState.INPUT_SELECT).strip()
        if answer:
            return answer
        deps.prompter.error(f"{message} is required.")


def input_select(context: WorkflowContext, deps: StageDeps) -> StageResult:
    state = WorkflowState.INPUT_SELECT
    prompter = deps.prompter

    input_type = unwrap(
        prompter.select("Select input type", _INPUT_CHOICES, default=context.input_type), state
    )

    # A new selection replaces every source field of a previous attempt.
    update: dict[str, object] = {
        "input_type": input_type,
        "youtube_url": None,
        "input_path": None,
        "raw_text": None,
    }
    if input_type is InputType.YOUTUBE:
        update["youtube_url"] = _ask_source(deps, "YouTube URL")
    elif input_type is InputType.AUDIO:
        update["input_path"] = _as_path(_ask_source(deps, "Path to audio file"))
    elif input_type is InputType.TEXTFILE:
        update["input_path"] = _as_path(_ask_source(deps, "Path to text file"))
    else:
        update["raw_text"] = unwrap(prompter.text("Paste text"), state)

    updated = context.model_copy(update=update)
    return StageResult(next_state=resolve_single(state, updated), context=updated)


def input_youtube(context: WorkflowContext, deps: StageDeps) -> StageResult:
    state = WorkflowState.INPUT_YOUTUBE
    url = context.youtube_url or ""
    video_id = youtube_video_id(url)
    if video_id is None:
        deps.prompter.error(f"Not a valid YouTube URL: {url}")
        return _back_to_selection(context)

    lang = choose_language(deps, state, context.lang)
    updated = context.model_copy(update={"lang": lang})

    registry = TranscriptRegistry(deps.config.paths.registry_path(context.project_name))
    entry = registry.find(
        source_type=InputType.YOUTUBE.value, source=url, source_id=video_id, lang=lang
    )
    if entry is not None and Path(entry.transcript_path).is_file():
        reuse = unwrap(
            deps.prompter.confirm(
                f"A transcript for this video ({lang}) exists from {entry.created_at}. Reuse it?"
            ),
            state,
        )
        if reuse:
            dest = context.run_dir / TRANSCRIPT_FILE
            if Path(entry.transcript_path).resolve() != dest.resolve():
                shutil.copyfile(entry.transcript_path, dest)
            write_json(
                context.run_dir / SOURCE_FILE,
                {
                    "source_type": InputType.YOUTUBE.value,
                    "source": url,
                    "source_id": video_id,
                    "lang": lang,
                    "reused": True,
                    "reused_from": entry.transcript_path,
                },
            )
            updated = updated.model_copy(update={"transcript_path": dest})
            deps.prompter.success("Reusing existing transcript")
            logger.info("Transcript reused", extra={"key": entry.key})

    return StageResult(next_state=WorkflowState.TRANSCRIPTION, context=updated)


def input_audio(context: WorkflowContext, deps: StageDeps) -> StageResult:
    state = WorkflowState.INPUT_AUDIO
    path = context.input_path
    if path is None or not path.is_file():
        deps.prompter.error(f"File not found: {path}")
        return _back_to_selection(context)

    if not has_audio_extension(path):
        deps.prompter.warn(
            "File does not look like a supported audio format"
            " (.wav/.mp3/.m4a/.ogg/.flac/.aac/.webm)."
        )

    lang = choose_language(deps, state, context.lang)
    updated = context.model_copy(update={"lang": lang})
    return StageResult(next_state=WorkflowState.TRANSCRIPTION, context=updated)


def input_text(context: WorkflowContext, deps: StageDeps) -> StageResult:
    """Text needs no transcription: it becomes the run's transcript directly."""

    state = WorkflowState.INPUT_TEXT
    min_chars = deps.config.settings.min_text_chars

    if context.input_type is InputType.RAW:
        content = (context.raw_text or "").strip()
        if not content:
            deps.prompter.error("No text provided.")
            return _back_to_selection(context)
    else:
        path = context.input_path
        if path is None or not path.is_file():
            deps.prompter.error(f"File not found: {path}")
            return _back_to_selection(context)
        if not has_text_extension(path):
            deps.prompter.warn(
                "File does not look like a supported text format (.txt/.md/.vtt/.srt)."
            )
        content = read_text(path).strip()

    if len(content) < min_chars:
        deps.prompter.error(f"Text is too short ({len(content)} characters, need {min_chars}).")
        return _back_to_selection(context)

    lang = choose_language(deps, state, context.lang)
    transcript = write_text(context.run_dir / TRANSCRIPT_FILE, content + "\n")
    write_json(
        context.run_dir / SOURCE_FILE,
        {
            "source_type": context.input_type.value if context.input_type else None,
            "source": str(context.input_path) if context.input_path else "raw-text",
            "lang": lang,
            "reused": False,
        },
    )

    updated = context.model_copy(update={"lang": lang, "transcript_path": transcript})
    updated = mark_stage(updated, "transcribe")

    return StageResult(next_state=WorkflowState.PROCESSING_SELECT, context=updated)
