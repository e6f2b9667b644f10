"""PACKAGE: bundle the run's artifacts into an export folder and a zip."""

from __future__ import annotations

import logging
import shutil
import zipfile
from dataclasses import dataclass
from pathlib import Path

from abq_media.stages.base import StageDeps, read_text, unwrap, write_json, write_text
from abq_media.ui.prompts import Choice
from abq_media.workflow.context import WorkflowContext
from abq_media.workflow.runner import StageResult
from abq_media.workflow.states import WorkflowState

logger = logging.getLogger(__name__)

PACKAGED_FILES: tuple[str, ...] = (
    "summary.txt",
    "article.md",
    "podcast_script.md",
    "reel_script.md",
    "social_posts.md",
    "podcast.mp3",
)


@dataclass(frozen=True, slots=True)
class ExportBundle:
    work_dir: Path
    zip_path: Path
    files: tuple[Path, ...]


def split_social_posts(content: str) -> tuple[str, str]:
    """Return (twitter, linkedin) sections; the whole text stands in for a missing one."""

    lowered = content.lower()
    twitter_at = lowered.find("twitter")
    linkedin_at = lowered.find("linkedin")
    instagram_at = lowered.find("instagram")

    twitter = ""
    if twitter_at >= 0:
        end = linkedin_at if linkedin_at > twitter_at else len(content)
        twitter = content[twitter_at:end].strip()

    linkedin = ""
    if linkedin_at >= 0:
        end = instagram_at if instagram_at > linkedin_at else len(content)
        linkedin = content[linkedin_at:end].strip()

    return twitter or content.strip(), linkedin or content.strip()


def build_export(deps: StageDeps, context: WorkflowContext) -> ExportBundle:
    exports = deps.config.paths.exports_dir(context.project_name)
    stamp = deps.stamp()
    work_dir = exports / f"export-{stamp}"
    work_dir.mkdir(parents=True, exist_ok=True)

    files: list[Path] = []
    for name in PACKAGED_FILES:
        source = context.artifact(name)
        if source.is_file():
            files.append(Path(shutil.copyfile(source, work_dir / name)))

    social = context.artifact("social_posts.md")
    if social.is_file():
        twitter, linkedin = split_social_posts(read_text(social))
        files.append(write_text(work_dir / "social-twitter.txt", twitter + "\n"))
        files.append(write_text(work_dir / "social-linkedin.txt", linkedin + "\n"))

    files.append(
        write_json(
            work_dir / "metadata.json",
            {
                "project": context.project_name,
                "run_id": context.run_id,
                "run_dir": str(context.run_dir),
                "lang": context.lang,
                "created_at": deps.clock().isoformat(),
            },
        )
    )

    zip_path = exports / f"{context.project_name}-{stamp}.zip"
    with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for path in files:
            archive.write(path, arcname=path.name)

    logger.info("Export package written", extra={"zip_path": str(zip_path), "files": len(files)})
    return ExportBundle(work_dir=work_dir, zip_path=zip_path, files=tuple(files))


def package(context: WorkflowContext, deps: StageDeps) -> StageResult:
    state = WorkflowState.PACKAGE

    bundle = build_export(deps, context)
    deps.prompter.success(f"Zip created: {bundle.zip_path}")
    updated = context.model_copy(
        update={
            "zip_path": bundle.zip_path,
            "output_files": (*context.output_files, bundle.zip_path),
        }
    )

    more = unwrap(
        deps.prompter.select(
            "Package complete. What next?",
            [Choice(True, "Do more with this run"), Choice(False, "Finish")],
            default=False,
        ),
        state,
    )
    next_state = WorkflowState.OUTPUT_SELECT if more else WorkflowState.COMPLETE
    return StageResult(next_state=next_state, context=updated)
