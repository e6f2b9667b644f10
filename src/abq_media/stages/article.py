"""Article generation and its approve / retry / edit review loop."""

from __future__ import annotations

import logging

from abq_media.engine import ContentKind
from abq_media.errors import AbqMediaError
from abq_media.stages.base import (
    ReviewDecision,
    StageDeps,
    export_copy,
    mark_stage,
    read_text,
    required_path,
    review_gate,
    unwrap,
    write_text,
)
from abq_media.workflow.context import RunError, WorkflowContext
from abq_media.workflow.runner import StageResult
from abq_media.workflow.states import WorkflowState
from abq_media.workflow.transitions import MAX_ARTICLE_ATTEMPTS, resolve_single

logger = logging.getLogger(__name__)

ARTICLE_REJECTED = "Article rejected by reviewer"


def _instructions(context: WorkflowContext, revision_note: str) -> str:
    parts: list[str] = []
    if context.tone_preset is not None:
        parts.append(f"Tone template: {context.tone_preset.value}")
    if context.brand_notes_path is not None and context.brand_notes_path.is_file():
        parts.append(read_text(context.brand_notes_path).strip())
    if revision_note:
        parts.append(f"Revision note: {revision_note}")
    return "\n".join(parts)


def article_generate(context: WorkflowContext, deps: StageDeps) -> StageResult:
    state = WorkflowState.ARTICLE_GENERATE
    prompt_path = context.research_prompt_path
    if prompt_path is None or not prompt_path.is_file():
        raise AbqMediaError("Research prompt not found; generate one before the article")

    attempts = context.article_attempts + 1
    revision_note = ""
    if attempts > 1:
        revision_note = unwrap(deps.prompter.text("Revision note for this attempt"), state).strip()

    deps.prompter.info(
        f"Generating article (attempt {attempts}/{MAX_ARTICLE_ATTEMPTS}). This can take a minute."
    )
    text = deps.engine.content.generate(
        ContentKind.ARTICLE,
        read_text(prompt_path),
        lang=context.lang,
        instructions=_instructions(context, revision_note),
    )
    article_path = write_text(context.artifact(ContentKind.ARTICLE.file_name), text)
    logger.info("Article generated", extra={"attempt": attempts, "path": str(article_path)})

    updated = context.model_copy(
        update={"article_path": article_path, "article_attempts": attempts, "last_error": None}
    )
    return StageResult(next_state=WorkflowState.ARTICLE_REVIEW, context=updated)


def article_review(context: WorkflowContext, deps: StageDeps) -> StageResult:
    """Approve (or edit, which counts as approval) exports the article; retry loops back."""

    state = WorkflowState.ARTICLE_REVIEW
    article_path = required_path(context, "article_path", state)

    decision = review_gate(deps, state, article_path, title="Article", allow_retry=True)

    if decision is ReviewDecision.RETRY:
        updated = context.model_copy(
            update={"last_error": RunError(message=ARTICLE_REJECTED, state=state)}
        )
        if context.article_attempts >= MAX_ARTICLE_ATTEMPTS:
            deps.prompter.warn(
                f"Reached {MAX_ARTICLE_ATTEMPTS} attempts; keeping the current article."
            )
    else:
        exported = export_copy(deps, context, article_path, "article")
        deps.prompter.success(f"Exported article: {exported}")
        updated = mark_stage(context.model_copy(update={"last_error": None}), "final")

    return StageResult(next_state=resolve_single(state, updated), context=updated)
