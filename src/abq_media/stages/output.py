"""Output hub, script generation and audio rendering."""

from __future__ import annotations

import logging
from pathlib import Path

from abq_media.engine import ContentKind
from abq_media.errors import ProviderError
from abq_media.stages.base import (
    StageDeps,
    best_source,
    mark_stage,
    read_text,
    ready_summary,
    required_path,
    review_gate,
    unwrap,
    write_text,
)
from abq_media.stages.processing import PROMPT_FILE
from abq_media.ui.prompts import Choice
from abq_media.workflow.context import WorkflowContext
from abq_media.workflow.runner import StageResult
from abq_media.workflow.states import OutputType, WorkflowState
from abq_media.workflow.transitions import resolve_single

logger = logging.getLogger(__name__)

AUDIO_FILE = "podcast.mp3"

_SCRIPTS = {
    OutputType.PODCAST: (ContentKind.PODCAST_SCRIPT, "podcast_script_path", "podcast_script"),
    OutputType.REEL_SCRIPT: (ContentKind.REEL_SCRIPT, "reel_script_path", "reel_script"),
}


def output_select(context: WorkflowContext, deps: StageDeps) -> StageResult:
    state = WorkflowState.OUTPUT_SELECT
    has_content = any(
        p is not None
        for p in (
            context.article_path,
            context.podcast_script_path,
            context.reel_script_path,
            context.social_posts_path,
        )
    )

    choices: list[Choice[OutputType]] = [
        Choice(OutputType.ARTICLE, "Generate / regenerate article"),
        Choice(OutputType.PODCAST, "Generate podcast script + audio"),
        Choice(OutputType.REEL_SCRIPT, "Generate video / reel script"),
    ]
    if has_content:
        choices += [
            Choice(OutputType.SOCIAL_KIT, "Export social posts"),
            Choice(OutputType.EXPORT_ZIP, "Export package (zip)"),
        ]
    choices.append(Choice(OutputType.DONE, "Finish"))

    picked = unwrap(
        deps.prompter.select(f"{ready_summary(context)}What do you want to do next?", choices),
        state,
    )
    updated = context.model_copy(update={"output_type": picked})
    return StageResult(next_state=resolve_single(state, updated), context=updated)


def _ensure_prompt(context: WorkflowContext, deps: StageDeps) -> Path | None:
    """The research prompt, generating a plain one from the best transcript if missing."""

    if context.research_prompt_path is not None and context.research_prompt_path.is_file():
        return context.research_prompt_path

    source = best_source(context)
    if source is None:
        return None
    deps.prompter.info(f"Generating research prompt from {source.name}...")
    brief = deps.engine.content.research_prompt(read_text(source), lang=context.lang)
    return write_text(context.artifact(PROMPT_FILE), brief)


def script_generate(context: WorkflowContext, deps: StageDeps) -> StageResult:
    state = WorkflowState.SCRIPT_GENERATE
    # Resolving first rejects output types that have no script before any work is done.
    target = resolve_single(state, context)
    kind, slot, legacy_stage = _SCRIPTS[OutputType(context.output_type)]
    dest = context.artifact(kind.file_name)
    updated = context

    if not dest.exists():
        prompt_path = _ensure_prompt(context, deps)
        if prompt_path is None:
            deps.prompter.warn("No transcript or summary found to generate a script from.")
            return StageResult(next_state=WorkflowState.OUTPUT_SELECT, context=context)
        updated = updated.model_copy(update={"research_prompt_path": prompt_path})

        deps.prompter.info("Generating script. This can take a minute.")
        try:
            text = deps.engine.content.generate(kind, read_text(prompt_path), lang=context.lang)
        except ProviderError as e:
            deps.prompter.error(f"Script generation failed: {e}")
            return StageResult(next_state=WorkflowState.OUTPUT_SELECT, context=updated)
        write_text(dest, text)

    if not updated.stage_done(legacy_stage):
        review_gate(deps, state, dest, title=kind.value.replace("_", " ").capitalize())
        updated = mark_stage(updated, legacy_stage)

    updated = updated.model_copy(update={slot: dest})
    return StageResult(next_state=target, context=updated)


def tts_render(context: WorkflowContext, deps: StageDeps) -> StageResult:
    """Render the podcast script to audio. Every outcome continues to PACKAGE."""

    state = WorkflowState.TTS_RENDER
    done = StageResult(next_state=WorkflowState.PACKAGE, context=context)

    speech = deps.engine.speech
    if speech is None:
        deps.prompter.warn("ElevenLabs API key not set (ELEVENLABS_API_KEY); skipping audio.")
        return done

    if not unwrap(deps.prompter.confirm("Render audio with ElevenLabs now?", default=False), state):
        return done

    script_path = required_path(context, "podcast_script_path", state)
    dest = context.artifact(AUDIO_FILE)
    deps.prompter.info("Rendering audio...")
    try:
        speech.render_dialogue(read_text(script_path), dest)
    except ProviderError as e:
        deps.prompter.error(f"TTS failed: {e}")
        return done

    deps.prompter.success(f"Audio saved: {dest}")
    updated = mark_stage(context.model_copy(update={"audio_path": dest}), "tts")
    return StageResult(next_state=WorkflowState.PACKAGE, context=updated)
