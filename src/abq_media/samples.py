"""Sample artifacts for `abq-media run --debugger`.

Writes a complete set of run outputs without touching any external service,
so the export layout can be inspected offline.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path

from abq_media.storage.paths import WorkspacePaths, make_stamp

logger = logging.getLogger(__name__)

SAMPLE_TRANSCRIPT = (
    "Today we look at how small newsrooms use automation to turn long interviews into "
    "articles, short videos and podcast episodes without losing editorial control. "
    "The key is a repeatable workflow with a human review at every step.\n"
)

SAMPLE_PROMPT = """# Deep Research Brief

## Context
- Source: sample
- Source type: text
- Output language target: en

## Main Talking Points Extracted
1. Small newsrooms repurpose long interviews into several formats.
2. Human review stays at every step.

## Instructions for Deep Research Agent
Verify each claim and list sources.
"""

SAMPLE_ARTICLE = """# Automation for small newsrooms

Long interviews hold more stories than a single article can carry. A repeatable
workflow turns one recording into an article, a podcast and a short video.
"""

SAMPLE_PODCAST_SCRIPT = """HOST_A: Welcome back. Today: automation in small newsrooms.
HOST_B: One interview, many formats, and an editor approving every step.
HOST_A: Let's get into it.
"""

SAMPLE_REEL_SCRIPT = """HOOK: One interview. Five formats.
BODY: Transcribe, summarize, review, publish.
CTA: Follow for more newsroom tooling.
"""

SAMPLE_SOCIAL_POSTS = """## Twitter
1/ One interview can feed a whole week of content.

## LinkedIn
Small newsrooms are turning long interviews into articles, podcasts and reels.
"""

SAMPLE_FILES: dict[str, str] = {
    "transcript.txt": SAMPLE_TRANSCRIPT,
    "prompt.md": SAMPLE_PROMPT,
    "article.md": SAMPLE_ARTICLE,
    "podcast_script.md": SAMPLE_PODCAST_SCRIPT,
    "reel_script.md": SAMPLE_REEL_SCRIPT,
    "social_posts.md": SAMPLE_SOCIAL_POSTS,
}


def write_sample_run(
    paths: WorkspacePaths, project_name: str, *, now: datetime | None = None
) -> Path:
    """Create ``runs/debug-<stamp>`` under the project and fill it with samples."""

    paths.ensure_project(project_name)
    run_dir = paths.runs_dir(project_name) / f"debug-{make_stamp(now or datetime.now(UTC))}"
    run_dir.mkdir(parents=True, exist_ok=True)

    for name, content in SAMPLE_FILES.items():
        (run_dir / name).write_text(content, encoding="utf-8")
    # Placeholder media so the export layout is complete.
    (run_dir / "podcast.mp3").write_bytes(b"")

    logger.info("Sample run written", extra={"run_dir": str(run_dir)})
    return run_dir
