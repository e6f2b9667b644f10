"""Processing hub, research prompt and research execution, translation."""

from __future__ import annotations

import logging

from abq_media.engine import ContentKind
from abq_media.errors import AbqMediaError, ProviderError
from abq_media.stages.base import (
    LANGUAGES,
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
from abq_media.ui.prompts import Choice
from abq_media.workflow.context import WorkflowContext
from abq_media.workflow.runner import StageResult
from abq_media.workflow.states import OutputType, ProcessingType, TonePreset, WorkflowState
from abq_media.workflow.transitions import resolve_single

logger = logging.getLogger(__name__)

PROMPT_FILE = "prompt.md"
PROMPT_RENDER_FILE = "prompt_render.md"
BRAND_FILE = "brand.txt"

FORMAT_TEMPLATES: tuple[tuple[str, str], ...] = (
    ("newsletter", "Newsletter"),
    ("twitter", "Twitter thread"),
    ("linkedin", "LinkedIn post"),
)

# Script shortcuts from the processing menu also pick the output they produce.
_SCRIPT_OUTPUTS = {
    ProcessingType.PODCAST_SCRIPT: OutputType.PODCAST,
    ProcessingType.REEL_SCRIPT: OutputType.REEL_SCRIPT,
}


def processing_select(context: WorkflowContext, deps: StageDeps) -> StageResult:
    state = WorkflowState.PROCESSING_SELECT
    has_prompt = (
        context.research_prompt_path is not None or context.artifact(PROMPT_FILE).exists()
    )
    has_content = any(
        p is not None
        for p in (context.article_path, context.podcast_script_path, context.reel_script_path)
    )

    choices: list[Choice[ProcessingType]] = [
        Choice(ProcessingType.EXPORT, "Use transcript only (export)"),
        Choice(ProcessingType.TRANSLATE, "Translate transcript"),
        Choice(
            ProcessingType.PROMPT,
            "Regenerate research prompt" if has_prompt else "Generate deep research prompt",
        ),
        Choice(ProcessingType.ARTICLE, "Generate article"),
        Choice(ProcessingType.PODCAST_SCRIPT, "Generate podcast script"),
        Choice(ProcessingType.REEL_SCRIPT, "Generate video / reel script"),
    ]
    if has_content:
        choices.append(Choice(ProcessingType.EXPORT_ZIP, "Export package (zip)"))
    choices.append(Choice(ProcessingType.DONE, "Finish"))

    picked = unwrap(
        deps.prompter.select(f"{ready_summary(context)}What do you want to do next?", choices),
        state,
    )

    update: dict[str, object] = {"processing_type": picked}
    if picked in _SCRIPT_OUTPUTS:
        update["output_type"] = _SCRIPT_OUTPUTS[picked]
    updated = context.model_copy(update=update)
    return StageResult(next_state=resolve_single(state, updated), context=updated)


def research_prompt_gen(context: WorkflowContext, deps: StageDeps) -> StageResult:
    state = WorkflowState.RESEARCH_PROMPT_GEN
    source = best_source(context)
    if source is None:
        raise AbqMediaError("No transcript or summary found to generate a research prompt from")

    deps.prompter.info(f"Generating research prompt from {source.name}...")
    brief = deps.engine.content.research_prompt(
        read_text(source),
        lang=context.lang,
        source=context.youtube_url or (str(context.input_path) if context.input_path else ""),
        source_type=context.input_type.value if context.input_type else "text",
    )
    prompt_path = write_text(context.artifact(PROMPT_FILE), brief)
    deps.prompter.show("Research prompt", brief)

    if unwrap(deps.prompter.confirm("Edit the research prompt?", default=False), state):
        unwrap(deps.prompter.edit_file(prompt_path), state)

    updated = mark_stage(
        context.model_copy(update={"research_prompt_path": prompt_path}), "reformat"
    )
    if updated.processing_type is ProcessingType.PROMPT:
        deps.prompter.success(f"Prompt saved: {prompt_path}")
    return StageResult(next_state=resolve_single(state, updated), context=updated)


def _tone_or_default(raw: str) -> TonePreset:
    try:
        return TonePreset(raw)
    except ValueError:
        logger.warning("Unknown project tone; using informative", extra={"tone": raw})
        return TonePreset.INFORMATIVE


def _brand_notes(deps: StageDeps, context: WorkflowContext, tone: TonePreset) -> str:
    project = deps.config.project(context.project_name)
    return "\n".join(
        [
            f"Brand handle: {project.handle or 'n/a'}",
            f"CTA: {project.cta or 'n/a'}",
            f"Tone preset: {tone.value}",
        ]
    )


def research_execute(context: WorkflowContext, deps: StageDeps) -> StageResult:
    """Render the brand-enriched prompt and generate every content kind at once."""

    state = WorkflowState.RESEARCH_EXECUTE
    prompter = deps.prompter

    template = unwrap(
        prompter.select(
            "Format template",
            [Choice(value, label) for value, label in FORMAT_TEMPLATES],
            default="newsletter",
        ),
        state,
    )
    project_tone = deps.config.project(context.project_name).tone
    default_tone = context.tone_preset or _tone_or_default(project_tone)
    tone = unwrap(
        prompter.select(
            "Tone",
            [Choice(t, t.value.capitalize()) for t in TonePreset],
            default=default_tone,
        ),
        state,
    )

    brand_path = write_text(context.artifact(BRAND_FILE), _brand_notes(deps, context, tone) + "\n")
    review_gate(deps, state, brand_path, title="Brand notes")
    updated = mark_stage(context, "brand_inject")

    prompt_path = required_path(context, "research_prompt_path", state)
    rendered = "\n".join(
        [
            read_text(prompt_path).strip(),
            "",
            f"Format template: {template}",
            f"Tone template: {tone.value}",
            read_text(brand_path).strip(),
        ]
    )
    render_path = write_text(context.artifact(PROMPT_RENDER_FILE), rendered + "\n")

    prompter.info("Generating content. This can take a minute.")
    results = deps.engine.content.generate_many(
        list(ContentKind), read_text(render_path), lang=context.lang
    )

    paths: dict[str, object] = {}
    slots = {
        ContentKind.ARTICLE: "article_path",
        ContentKind.PODCAST_SCRIPT: "podcast_script_path",
        ContentKind.REEL_SCRIPT: "reel_script_path",
        ContentKind.SOCIAL_POSTS: "social_posts_path",
    }
    for kind, result in results.items():
        if isinstance(result, ProviderError):
            prompter.warn(f"{kind.value} failed: {result}")
            continue
        paths[slots[kind]] = write_text(context.artifact(kind.file_name), result)

    if not paths:
        raise ProviderError("Content generation failed for every format")

    updated = updated.model_copy(
        update={**paths, "brand_notes_path": brand_path, "tone_preset": tone}
    )
    prompter.success(f"Generated {len(paths)} of {len(results)} formats")
    return StageResult(next_state=WorkflowState.OUTPUT_SELECT, context=updated)


def translate(context: WorkflowContext, deps: StageDeps) -> StageResult:
    state = WorkflowState.TRANSLATE
    choices = [Choice(code, label) for code, label in LANGUAGES if code != context.lang]
    target = unwrap(deps.prompter.select("Translate into", choices), state)

    source = best_source(context)
    if source is None:
        raise AbqMediaError("No transcript found to translate")
    try:
        translated = deps.engine.content.translate(read_text(source), target_lang=target)
    except ProviderError as e:
        deps.prompter.error(f"Translation failed: {e}")
        return StageResult(next_state=WorkflowState.OUTPUT_SELECT, context=context)

    dest = write_text(context.artifact(f"translation-{target}.md"), translated)
    deps.prompter.success(f"Translation saved: {dest}")
    updated = context.model_copy(update={"translated_path": dest})
    return StageResult(next_state=WorkflowState.OUTPUT_SELECT, context=updated)
