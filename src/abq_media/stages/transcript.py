"""Transcription and the transcript review gates."""

from __future__ import annotations

import logging
import shutil

from abq_media.engine import Transcript
from abq_media.errors import CaptionsUnavailableError
from abq_media.stages.base import (
    SOURCE_FILE,
    StageDeps,
    mark_stage,
    read_text,
    review_gate,
    unwrap,
    write_json,
    write_text,
)
from abq_media.stages.ingest import TRANSCRIPT_FILE
from abq_media.storage.registry import RegistryEntry, TranscriptRegistry
from abq_media.validation import youtube_video_id
from abq_media.workflow.context import WorkflowContext
from abq_media.workflow.runner import StageResult
from abq_media.workflow.states import InputType, WorkflowState

logger = logging.getLogger(__name__)

CLEAN_FILE = "clean.txt"
SUMMARY_FILE = "summary.txt"
DIGEST_FILE = "digest.md"


def _source_of(context: WorkflowContext) -> tuple[str, str, str | None]:
    """(source_type, source, source_id) used for source.json and the registry."""

    input_type = context.input_type.value if context.input_type else "raw"
    if context.youtube_url:
        return input_type, context.youtube_url, youtube_video_id(context.youtube_url)
    if context.input_path is not None:
        return input_type, str(context.input_path), None
    return input_type, "raw-text", None


def _transcribe(context: WorkflowContext, deps: StageDeps) -> Transcript | None:
    """Produce a transcript, or None when the user declines the ASR fallback."""

    state = WorkflowState.TRANSCRIPTION
    service = deps.engine.transcription

    if context.input_type is InputType.YOUTUBE:
        url = context.youtube_url or ""
        deps.prompter.info("Checking captions...")
        try:
            return service.youtube_captions(url, context.lang)
        except CaptionsUnavailableError as e:
            deps.prompter.warn(str(e))

        use_asr = unwrap(
            deps.prompter.confirm(
                "No captions found. Transcribe the audio instead? (uses API credits)"
            ),
            state,
        )
        if not use_asr:
            return None
        deps.prompter.info("Downloading and transcribing audio. This can take several minutes.")
        return service.youtube_asr(url, context.lang, context.run_dir / "asr")

    if context.input_type is InputType.AUDIO and context.input_path is not None:
        deps.prompter.info("Transcribing audio. This can take several minutes.")
        return service.transcribe_audio(context.input_path, context.lang)

    # Text inputs were written by INPUT_TEXT; re-read whatever source is left.
    source = context.input_path
    text = read_text(source) if source is not None else (context.raw_text or "")
    return Transcript(text=text.strip(), mode="text", source=str(source or "raw-text"))


def transcription(context: WorkflowContext, deps: StageDeps) -> StageResult:
    dest = context.run_dir / TRANSCRIPT_FILE
    source_type, source, source_id = _source_of(context)

    if context.transcript_path is not None and context.transcript_path.is_file():
        deps.prompter.info("Using existing transcript.")
        if context.transcript_path.resolve() != dest.resolve():
            shutil.copyfile(context.transcript_path, dest)
    else:
        transcript = _transcribe(context, deps)
        if transcript is None:
            deps.prompter.warn("No transcript produced; choose another input.")
            return StageResult(next_state=WorkflowState.INPUT_SELECT, context=context)

        write_text(dest, transcript.text + "\n")
        write_json(
            context.run_dir / SOURCE_FILE,
            {
                "source_type": source_type,
                "source": source,
                "source_id": source_id,
                "lang": context.lang,
                "mode": transcript.mode,
                "reused": False,
            },
        )
        logger.info(
            "Transcript written",
            extra={"mode": transcript.mode, "characters": len(transcript.text), "path": str(dest)},
        )

    registry = TranscriptRegistry(deps.config.paths.registry_path(context.project_name))
    registry.upsert(
        RegistryEntry.create(
            source_type=source_type,
            source=source,
            source_id=source_id,
            lang=context.lang,
            transcript_path=dest,
        )
    )

    updated = mark_stage(context.model_copy(update={"transcript_path": dest}), "transcribe")
    return StageResult(next_state=WorkflowState.TRANSCRIPT_REVIEW, context=updated)


def transcript_review(context: WorkflowContext, deps: StageDeps) -> StageResult:
    """Review the transcript, then the cleaned copy, then the summary.

    The cleaned and summary gates are skipped once their legacy stage is
    done, so a resumed run does not ask again.
    """

    state = WorkflowState.TRANSCRIPT_REVIEW
    transcript = context.transcript_path
    clean = context.artifact(CLEAN_FILE)
    summary = context.artifact(SUMMARY_FILE)
    updated = context

    if transcript is not None and transcript.is_file():
        review_gate(deps, state, transcript, title="Transcript")

    if not updated.stage_done("clean"):
        if transcript is not None and transcript.is_file() and not clean.exists():
            shutil.copyfile(transcript, clean)
        if clean.exists():
            review_gate(deps, state, clean, title="Cleaned transcript")
        updated = mark_stage(updated, "clean")

    if not updated.stage_done("summarize"):
        if not summary.exists():
            digest = context.artifact(DIGEST_FILE)
            if digest.exists():
                shutil.copyfile(digest, summary)
            elif clean.exists():
                write_text(summary, deps.engine.content.digest(read_text(clean), lang=context.lang))
        if summary.exists():
            review_gate(deps, state, summary, title="Summary")
        updated = mark_stage(updated, "summarize")

    updated = updated.model_copy(
        update={
            "cleaned_transcript_path": clean if clean.exists() else context.cleaned_transcript_path,
            "summary_path": summary if summary.exists() else context.summary_path,
        }
    )
    return StageResult(next_state=WorkflowState.PROCESSING_SELECT, context=updated)
