"""The authoritative workflow graph.

Each state maps to a rule. A `StaticRule` lists every legal target; a
`DynamicRule` reads exactly one discriminant field of the context and resolves
to a single target, failing with `RoutingError` when the field holds a value
outside its domain. Dynamic rules may also declare fallback targets a handler
can always route to (for example back to a selection state after a
recoverable input problem).
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TypeVar

from abq_media.errors import IllegalTransitionError, RoutingError
from abq_media.workflow.context import WorkflowContext
from abq_media.workflow.states import (
    InputType,
    OutputType,
    ProcessingType,
    WorkflowState,
)

S = WorkflowState

MAX_ARTICLE_ATTEMPTS = 3

_E = TypeVar("_E", bound=Enum)


@dataclass(frozen=True, slots=True)
class StaticRule:
    targets: tuple[WorkflowState, ...]

    def declared_targets(self) -> frozenset[WorkflowState]:
        return frozenset(self.targets)


@dataclass(frozen=True, slots=True)
class DynamicRule:
    field: str
    resolve: Callable[[WorkflowContext], WorkflowState]
    possible: tuple[WorkflowState, ...]
    fallbacks: tuple[WorkflowState, ...] = ()

    def declared_targets(self) -> frozenset[WorkflowState]:
        return frozenset(self.possible) | frozenset(self.fallbacks)


TransitionRule = StaticRule | DynamicRule


def _discriminant(
    context: WorkflowContext, field: str, enum_type: type[_E], routes: Mapping[_E, WorkflowState]
) -> WorkflowState:
    raw = getattr(context, field)
    try:
        value = enum_type(raw)
    except ValueError:
        raise RoutingError(f"Unknown {field}: {raw!r}", field=field, value=raw) from None

    target = routes.get(value)
    if target is None:
        raise RoutingError(
            f"Unknown {field}: {value.value!r} has no route", field=field, value=value.value
        )
    return target


def _route(
    field: str,
    enum_type: type[_E],
    routes: Mapping[_E, WorkflowState],
    *,
    fallbacks: tuple[WorkflowState, ...] = (),
) -> DynamicRule:
    def resolve(context: WorkflowContext) -> WorkflowState:
        return _discriminant(context, field, enum_type, routes)

    possible = tuple(dict.fromkeys(routes.values()))
    return DynamicRule(field=field, resolve=resolve, possible=possible, fallbacks=fallbacks)


INPUT_ROUTES: dict[InputType, WorkflowState] = {
    InputType.YOUTUBE: S.INPUT_YOUTUBE,
    InputType.AUDIO: S.INPUT_AUDIO,
    InputType.TEXTFILE: S.INPUT_TEXT,
    InputType.RAW: S.INPUT_TEXT,
}

PROCESSING_ROUTES: dict[ProcessingType, WorkflowState] = {
    ProcessingType.PROMPT: S.RESEARCH_PROMPT_GEN,
    ProcessingType.ARTICLE: S.RESEARCH_PROMPT_GEN,
    ProcessingType.PODCAST_SCRIPT: S.SCRIPT_GENERATE,
    ProcessingType.REEL_SCRIPT: S.SCRIPT_GENERATE,
    ProcessingType.EXPORT: S.PACKAGE,
    ProcessingType.EXPORT_ZIP: S.PACKAGE,
    ProcessingType.TRANSLATE: S.TRANSLATE,
    ProcessingType.DONE: S.COMPLETE,
}

RESEARCH_ROUTES: dict[ProcessingType, WorkflowState] = {
    ProcessingType.PROMPT: S.OUTPUT_SELECT,
    ProcessingType.ARTICLE: S.RESEARCH_EXECUTE,
}

OUTPUT_ROUTES: dict[OutputType, WorkflowState] = {
    OutputType.PODCAST: S.SCRIPT_GENERATE,
    OutputType.ARTICLE: S.ARTICLE_GENERATE,
    OutputType.REEL_SCRIPT: S.SCRIPT_GENERATE,
    OutputType.SOCIAL_KIT: S.PACKAGE,
    OutputType.EXPORT_ZIP: S.PACKAGE,
    OutputType.DONE: S.COMPLETE,
}

SCRIPT_ROUTES: dict[OutputType, WorkflowState] = {
    OutputType.PODCAST: S.TTS_RENDER,
    OutputType.REEL_SCRIPT: S.PACKAGE,
}


def _article_review(context: WorkflowContext) -> WorkflowState:
    # Exhausted retries fall through to forward progress even with an error set.
    if context.last_error is not None and context.article_attempts < MAX_ARTICLE_ATTEMPTS:
        return S.ARTICLE_GENERATE
    return S.OUTPUT_SELECT


TRANSITIONS: dict[WorkflowState, TransitionRule] = {
    S.PROJECT_INIT: StaticRule((S.INPUT_SELECT,)),
    S.INPUT_SELECT: _route("input_type", InputType, INPUT_ROUTES),
    S.INPUT_YOUTUBE: StaticRule((S.TRANSCRIPTION, S.INPUT_SELECT)),
    S.INPUT_AUDIO: StaticRule((S.TRANSCRIPTION, S.INPUT_SELECT)),
    S.INPUT_TEXT: StaticRule((S.PROCESSING_SELECT, S.INPUT_SELECT)),
    S.TRANSCRIPTION: StaticRule((S.TRANSCRIPT_REVIEW, S.INPUT_SELECT)),
    S.TRANSCRIPT_REVIEW: StaticRule((S.PROCESSING_SELECT,)),
    S.PROCESSING_SELECT: _route("processing_type", ProcessingType, PROCESSING_ROUTES),
    S.RESEARCH_PROMPT_GEN: _route("processing_type", ProcessingType, RESEARCH_ROUTES),
    S.RESEARCH_EXECUTE: StaticRule((S.OUTPUT_SELECT,)),
    S.ARTICLE_GENERATE: StaticRule((S.ARTICLE_REVIEW,)),
    S.ARTICLE_REVIEW: DynamicRule(
        field="last_error",
        resolve=_article_review,
        possible=(S.ARTICLE_GENERATE, S.OUTPUT_SELECT),
    ),
    S.TRANSLATE: StaticRule((S.OUTPUT_SELECT,)),
    S.OUTPUT_SELECT: _route("output_type", OutputType, OUTPUT_ROUTES),
    S.SCRIPT_GENERATE: _route(
        "output_type", OutputType, SCRIPT_ROUTES, fallbacks=(S.OUTPUT_SELECT,)
    ),
    S.TTS_RENDER: StaticRule((S.PACKAGE,)),
    S.PACKAGE: StaticRule((S.OUTPUT_SELECT, S.COMPLETE)),
    S.COMPLETE: StaticRule(()),
    S.ERROR: StaticRule(()),
}


def _rule_for(state: WorkflowState) -> TransitionRule:
    rule = TRANSITIONS.get(state)
    if rule is None:
        raise RoutingError(f"No transition rule for state {state!r}")
    return rule


def get_next_state(
    from_state: WorkflowState, context: WorkflowContext
) -> WorkflowState | tuple[WorkflowState, ...]:
    """Resolve where ``from_state`` leads.

    Static rules return the full ordered set of allowed targets. Dynamic rules
    return the single target selected by their discriminant.
    """

    rule = _rule_for(from_state)
    if isinstance(rule, StaticRule):
        return rule.targets
    return rule.resolve(context)


def resolve_single(from_state: WorkflowState, context: WorkflowContext) -> WorkflowState:
    """Like `get_next_state` but insists on exactly one target."""

    resolved = get_next_state(from_state, context)
    if isinstance(resolved, WorkflowState):
        return resolved
    if len(resolved) != 1:
        raise RoutingError(
            f"{from_state.value} has {len(resolved)} possible targets; the handler must choose"
        )
    return resolved[0]


def assert_valid_transition(
    from_state: WorkflowState, to_state: WorkflowState, context: WorkflowContext
) -> None:
    rule = _rule_for(from_state)

    if isinstance(rule, StaticRule):
        allowed: tuple[WorkflowState, ...] = rule.targets
    elif to_state in rule.fallbacks:
        return
    else:
        allowed = (rule.resolve(context),)

    if to_state not in allowed:
        names = ", ".join(s.value for s in allowed) or "none"
        raise IllegalTransitionError(
            f"Invalid transition: {from_state.value} -> {to_state.value}. Allowed: {names}",
            from_state=from_state.value,
            to_state=to_state.value,
        )
