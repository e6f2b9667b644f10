"""Content generation: digests, research briefs, articles, scripts, social posts.

`ContentEngine` only decides *how to ask* the LLM; which artifact gets
generated, and when, is the business of the stage handlers.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from enum import Enum

from abq_media.errors import ProviderError
from abq_media.llm.provider import LLMProvider

logger = logging.getLogger(__name__)

MAX_TALKING_POINTS = 7

_SOURCE_RULE = (
    "Use the research prompt as the single source of truth. Do not invent facts. Avoid fluff."
)

_STOP_WORDS: frozenset[str] = frozenset(
    {
        "the", "and", "that", "with", "from", "this", "have", "were", "they", "their",
        "about", "also", "into", "will", "would", "there", "which", "what", "where",
        "your", "you", "are", "para", "como", "pero", "porque", "sobre", "esta", "este",
        "esto", "desde", "cuando",
    }
)

_LANGUAGE_NAMES: dict[str, str] = {
    "es": "Spanish",
    "en": "English",
    "pt": "Portuguese",
    "fr": "French",
    "de": "German",
    "it": "Italian",
}


class ContentKind(str, Enum):
    ARTICLE = "article"
    PODCAST_SCRIPT = "podcast_script"
    REEL_SCRIPT = "reel_script"
    SOCIAL_POSTS = "social_posts"

    @property
    def file_name(self) -> str:
        return f"{self.value}.md"


def language_name(code: str) -> str:
    return _LANGUAGE_NAMES.get(code.lower(), code)


def _system_prompt(kind: ContentKind, lang: str) -> str:
    if kind is ContentKind.PODCAST_SCRIPT:
        parts = [
            f"You are a podcast scriptwriter. Write a 2-host conversational dialogue in {lang}.",
            "Two hosts: HOST_A (lead analyst, authoritative) and HOST_B (curious co-host).",
            "Format every line as 'HOST_A: text' or 'HOST_B: text'.",
            "No stage directions, no headers, no markdown: pure dialogue only.",
            "Length: about 2000 words. Open with a strong hook.",
            "Close with 3 clear actionable takeaways delivered conversationally.",
        ]
    elif kind is ContentKind.ARTICLE:
        parts = [
            f"You are a senior content editor. Output language: {lang}.",
            f"Write a newsletter-ready long-form article in {lang}.",
            "Structure: headline and subtitle, a lead paragraph, 4-5 sections with subheaders,",
            "and a closing call to action. Target length: 800-1200 words. Output markdown.",
        ]
    elif kind is ContentKind.REEL_SCRIPT:
        parts = [
            f"You are a short-form video scriptwriter. Output language: {lang}.",
            f"Write a 60-second video script in {lang}: a hook in the first 3 seconds,",
            "3 key points of about 10 seconds each, then a call to action.",
            "Format each beat as [VISUAL] then [NARRATION].",
        ]
    else:
        parts = [
            f"You are a social media editor. Output language: {lang}.",
            f"Produce social content in {lang} with three parts,",
            "each under its own markdown heading:",
            "1) X/Twitter thread (8-10 tweets). 2) LinkedIn post (~200 words).",
            "3) Instagram caption with 5 hashtags.",
        ]
    return " ".join([*parts, _SOURCE_RULE])


def _sentences(text: str) -> list[str]:
    return [s.strip() for s in re.split(r"(?<=[.!?])\s+", text) if len(s.strip()) > 40]


def _words(sentence: str) -> list[str]:
    return [w for w in re.findall(r"\w{4,}", sentence.lower()) if w not in _STOP_WORDS]


def top_talking_points(text: str, max_points: int = MAX_TALKING_POINTS) -> list[str]:
    """Pick the most representative sentences by term frequency."""

    sentences = _sentences(text)
    if not sentences:
        return ["Insufficient transcript text to derive talking points."]

    freq = Counter(w for s in sentences for w in _words(s))
    scored = sorted(sentences, key=lambda s: sum(freq[w] for w in _words(s)), reverse=True)

    picked: list[str] = []
    seen: set[str] = set()
    for sentence in scored:
        norm = sentence.lower()[:80]
        if norm in seen:
            continue
        seen.add(norm)
        picked.append(sentence)
        if len(picked) >= max_points:
            break
    return picked


class ContentEngine:
    """Generate derivative artifacts from transcripts and research prompts.

    ``llm`` may be None; digests and research briefs then fall back to a
    term-frequency heuristic, while generation raises `ProviderError`.
    """

    def __init__(
        self,
        llm: LLMProvider | None,
        *,
        excerpt_chars: int = 2200,
        max_workers: int = 4,
    ) -> None:
        self._llm = llm
        self._excerpt_chars = excerpt_chars
        self._max_workers = max_workers

    @property
    def has_llm(self) -> bool:
        return self._llm is not None

    def _require_llm(self) -> LLMProvider:
        if self._llm is None:
            raise ProviderError(
                "No LLM provider configured (set ABQ_MEDIA_LLM_API_KEY or credentials.json)"
            )
        return self._llm

    def talking_points(self, text: str, *, lang: str) -> list[str]:
        if self._llm is None:
            return top_talking_points(text)

        prompt = (
            f"List the {MAX_TALKING_POINTS} main talking points of the following transcript "
            f"in {language_name(lang)}, one per line, without numbering.\n\n"
            f"{text[: self._excerpt_chars * 4]}"
        )
        try:
            raw = self._llm.generate(prompt)
        except ProviderError:
            logger.warning("LLM digest failed; using heuristic talking points")
            return top_talking_points(text)

        points = [line.strip(" -*\t") for line in raw.splitlines()]
        return [p for p in points if p][:MAX_TALKING_POINTS] or top_talking_points(text)

    def digest(self, text: str, *, lang: str) -> str:
        points = self.talking_points(text, lang=lang)
        return "# Main Talking Points\n\n" + "\n".join(f"- {p}" for p in points) + "\n"

    def research_prompt(
        self,
        source_text: str,
        *,
        lang: str,
        source: str = "",
        source_type: str = "text",
    ) -> str:
        """Build the deep-research brief handed to a research agent or the LLM."""

        points = self.talking_points(source_text, lang=lang)
        excerpt = source_text[: self._excerpt_chars].strip()
        numbered = "\n".join(f"{i}. {p}" for i, p in enumerate(points, start=1))
        target = language_name(lang)

        return (
            "# Deep Research Brief\n\n"
            "## Context\n"
            f"- Source: {source or 'N/A'}\n"
            f"- Source type: {source_type}\n"
            f"- Output language target: {lang}\n\n"
            "## Main Talking Points Extracted\n"
            f"{numbered}\n\n"
            "## Transcript Excerpt\n"
            f"{excerpt}\n\n"
            "## Instructions for Deep Research Agent\n"
            f"Deliver the output in {target}, structured as:\n\n"
            "1) Central thesis: summarize the main argument in 3-5 lines.\n"
            "2) Claim verification matrix: claim, status (confirmed/uncertain/refuted), "
            "evidence, source.\n"
            "3) Counterarguments and blind spots.\n"
            "4) Strategic implications: geopolitics, markets, public policy, operational risk.\n"
            "5) Scenarios at 3, 12 and 36 months, with early signals to monitor.\n"
            f"6) Podcast base script in {target}: a 30-45 second hook, 5 blocks, "
            "3 actionable takeaways.\n\n"
            "Rules:\n"
            "- Cite sources with links.\n"
            "- Separate facts from inferences.\n"
            "- State uncertainty explicitly.\n"
        )

    def generate(
        self,
        kind: ContentKind,
        research_prompt: str,
        *,
        lang: str,
        instructions: str = "",
    ) -> str:
        llm = self._require_llm()
        prompt = f"Research prompt:\n\n{research_prompt}"
        if instructions.strip():
            prompt += f"\n\nAdditional instructions:\n{instructions.strip()}"

        logger.info("Generating content", extra={"kind": kind.value, "lang": lang})
        text = llm.generate(prompt, system_prompt=_system_prompt(kind, language_name(lang)))
        return text.strip() + "\n"

    def generate_many(
        self,
        kinds: Iterable[ContentKind],
        research_prompt: str,
        *,
        lang: str,
        instructions: str = "",
    ) -> dict[ContentKind, str | ProviderError]:
        """Generate several artifacts concurrently.

        Failures are returned per kind rather than raised, so partial success
        is usable.
        """

        self._require_llm()
        wanted = list(dict.fromkeys(kinds))
        results: dict[ContentKind, str | ProviderError] = {}

        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            futures = {
                kind: pool.submit(
                    self.generate, kind, research_prompt, lang=lang, instructions=instructions
                )
                for kind in wanted
            }
            for kind, future in futures.items():
                try:
                    results[kind] = future.result()
                except ProviderError as e:
                    logger.warning(
                        "Content generation failed", extra={"kind": kind.value, "error": str(e)}
                    )
                    results[kind] = e
        return results

    def translate(self, text: str, *, target_lang: str) -> str:
        llm = self._require_llm()
        system = (
            f"You are a professional translator. Translate the user's text into "
            f"{language_name(target_lang)}. Preserve meaning, tone and paragraph breaks. "
            "Output only the translation."
        )
        return llm.generate(text, system_prompt=system).strip() + "\n"
