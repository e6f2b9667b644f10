"""CLI entrypoint: `abq-media run`, `projects`, `setup`, `doctor` and `reset`."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from abq_media import __version__
from abq_media.admin import (
    answered,
    describe_credentials,
    reset_all_projects,
    reset_credentials,
    reset_project,
    run_doctor,
    run_setup,
)
from abq_media.config import AbqMediaSettings, RunConfig, read_credentials
from abq_media.engine import build_engine
from abq_media.errors import CheckpointError, UserCancelledError
from abq_media.logging import configure_logging
from abq_media.samples import write_sample_run
from abq_media.stages import StageDeps, default_handlers
from abq_media.ui.prompts import Choice, ConsolePrompter
from abq_media.workflow.checkpoint import CHECKPOINT_DIR, resolve_checkpoint
from abq_media.workflow.context import DEFAULT_LANG, WorkflowContext, create_initial_context
from abq_media.workflow.runner import RunOutcome, RunStatus, WorkflowRunner
from abq_media.workflow.states import WorkflowState

logger = logging.getLogger(__name__)

EXIT_CANCELLED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="abq-media",
        description="Turn videos, audio and text into articles, scripts, audio and social kits",
    )
    parser.add_argument("--version", action="version", version=f"abq-media {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Start or resume an interactive run")
    run.add_argument(
        "--resume",
        type=Path,
        default=None,
        metavar="PATH",
        help="Checkpoint file, or a run directory to resume from its latest checkpoint",
    )
    run.add_argument(
        "--from",
        dest="from_state",
        default=None,
        metavar="STATE",
        help="Start a fresh run at this state instead of PROJECT_INIT",
    )
    run.add_argument(
        "--project", default=None, help="Project name (default: current directory name)"
    )
    run.add_argument("--lang", default=None, help="Language code overriding project defaults")
    run.add_argument(
        "--debugger",
        action="store_true",
        help="Write sample artifacts into a new run directory and exit (no external calls)",
    )
    run.add_argument(
        "--no-checkpoints",
        dest="checkpoints",
        action="store_false",
        help="Do not write checkpoint files",
    )

    subparsers.add_parser("projects", help="List projects and their latest run")

    setup = subparsers.add_parser("setup", help="Store API keys and the default language")
    setup.add_argument("--show", action="store_true", help="Print the stored settings (masked)")

    subparsers.add_parser("doctor", help="Check API keys, connectivity and optional tools")

    reset = subparsers.add_parser("reset", help="Remove project data or stored credentials")
    reset.add_argument("--project", default=None, help="Remove one project")
    reset.add_argument("--all", action="store_true", help="Remove every project")
    reset.add_argument("--credentials", action="store_true", help="Remove credentials.json")
    reset.add_argument("--yes", action="store_true", help="Do not ask for confirmation")
    return parser


def _parse_start_state(raw: str) -> WorkflowState | None:
    try:
        state = WorkflowState(raw.strip().upper())
    except ValueError:
        valid = ", ".join(s.value for s in WorkflowState if not s.is_terminal)
        print(f"Unknown state '{raw}'. Valid: {valid}", file=sys.stderr)
        return None

    if state.is_terminal:
        print(f"Cannot start from terminal state '{state.value}'.", file=sys.stderr)
        return None
    return state


def _print_summary(context: WorkflowContext) -> None:
    print(f"Run complete: {context.run_dir}")
    artifacts = [
        context.transcript_path,
        context.research_prompt_path,
        context.article_path,
        context.translated_path,
        context.podcast_script_path,
        context.reel_script_path,
        context.social_posts_path,
        context.audio_path,
        *context.output_files,
    ]
    for path in dict.fromkeys(p for p in artifacts if p is not None):
        print(f"  - {path}")


def _report(outcome: RunOutcome) -> int:
    context = outcome.context

    if outcome.status is RunStatus.COMPLETED:
        _print_summary(context)
        return 0

    if outcome.status is RunStatus.CANCELLED:
        print("Run cancelled.", file=sys.stderr)
        if outcome.last_checkpoint is not None:
            print(f"Resume with: abq-media run --resume {outcome.last_checkpoint}", file=sys.stderr)
        return EXIT_CANCELLED

    message = context.last_error.message if context.last_error else "unknown error"
    print(f"Run ended in ERROR: {message}", file=sys.stderr)
    checkpoints = context.run_dir / CHECKPOINT_DIR
    if checkpoints.is_dir():
        print(f"Checkpoints: {checkpoints}", file=sys.stderr)
        print("Resume with: abq-media run --resume <checkpoint.json>", file=sys.stderr)
    return 1


def _cmd_run(args: argparse.Namespace, settings: AbqMediaSettings) -> int:
    if args.debugger:
        run_dir = write_sample_run(settings.paths, args.project or "debug")
        print(f"Debug outputs written to {run_dir}")
        return 0

    config = RunConfig.load(settings, lang_override=args.lang)
    prompter = ConsolePrompter(editor=settings.editor)
    deps = StageDeps(config=config, prompter=prompter, engine=build_engine(config))
    handlers = default_handlers()

    if args.resume is not None:
        try:
            checkpoint_file = resolve_checkpoint(args.resume.expanduser())
            runner = WorkflowRunner.resume(
                checkpoint_file, handlers=handlers, deps=deps, checkpoints=args.checkpoints
            )
        except CheckpointError as e:
            print(str(e), file=sys.stderr)
            return 1
    else:
        initial_state = WorkflowState.PROJECT_INIT
        if args.from_state:
            parsed = _parse_start_state(args.from_state)
            if parsed is None:
                return 1
            initial_state = parsed

        context = create_initial_context(
            paths=config.paths,
            project_name=args.project,
            lang=args.lang or config.credentials.lang or DEFAULT_LANG,
            initial_state=initial_state,
        )
        logger.info(
            "Run started",
            extra={"run_id": context.run_id, "state": initial_state.value},
        )
        runner = WorkflowRunner(
            handlers=handlers, deps=deps, context=context, checkpoints=args.checkpoints
        )

    try:
        outcome = runner.run()
    except KeyboardInterrupt:
        print("\nRun interrupted.", file=sys.stderr)
        return EXIT_CANCELLED
    return _report(outcome)


def _cmd_projects(settings: AbqMediaSettings) -> int:
    paths = settings.paths
    projects = paths.list_projects()
    if not projects:
        print(f"No projects under {paths.projects_dir}")
        return 0

    for name in projects:
        latest = paths.latest_run(name)
        print(f"{name}\t{latest if latest is not None else '(no runs)'}")
    return 0


def _cmd_setup(args: argparse.Namespace, settings: AbqMediaSettings) -> int:
    paths = settings.paths
    current = read_credentials(paths.credentials_path)

    if args.show:
        if not paths.credentials_path.exists():
            print("No credentials stored yet. Run: abq-media setup")
            return 0
        for line in describe_credentials(paths, current):
            print(line)
        return 0

    try:
        run_setup(paths, ConsolePrompter(editor=settings.editor), current)
    except UserCancelledError:
        print("Setup cancelled; nothing was written.", file=sys.stderr)
        return EXIT_CANCELLED

    print(f"Credentials saved to {paths.credentials_path}")
    return 0


def _cmd_doctor(settings: AbqMediaSettings) -> int:
    report = run_doctor(RunConfig.load(settings))
    print(report.to_json())
    return 0 if report.ok else 1


_RESET_CHOICES = [
    Choice("project", "Reset one project"),
    Choice("all", "Reset all projects"),
    Choice("credentials", "Reset credentials"),
    Choice("cancel", "Cancel"),
]


def _cmd_reset(args: argparse.Namespace, settings: AbqMediaSettings) -> int:
    paths = settings.paths
    prompter = ConsolePrompter(editor=settings.editor)
    project: str | None = args.project
    everything: bool = args.all
    credentials: bool = args.credentials

    try:
        if not (project or everything or credentials):
            choice = answered(
                prompter.select("Reset options", _RESET_CHOICES, default="cancel"), "reset"
            )
            if choice == "cancel":
                print("Aborted.")
                return 0
            if choice == "project":
                projects = paths.list_projects()
                if not projects:
                    print("No projects found.")
                    return 0
                project = answered(
                    prompter.select("Choose project", [Choice(p, p) for p in projects]), "reset"
                )
            everything = choice == "all"
            credentials = choice == "credentials"

        if not args.yes:
            proceed = answered(
                prompter.confirm("This deletes local data. Continue?", default=False), "reset"
            )
            if not proceed:
                print("Aborted.")
                return 0
    except UserCancelledError:
        print("Reset cancelled.", file=sys.stderr)
        return EXIT_CANCELLED

    if everything:
        print(f"Projects reset: {'ok' if reset_all_projects(paths) else 'none'}")
    if project:
        print(f"Project {project}: {'ok' if reset_project(paths, project) else 'not found'}")
    if credentials:
        print(f"Credentials: {'ok' if reset_credentials(paths) else 'none'}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = AbqMediaSettings()
    except ValidationError as e:
        # Logging isn't configured yet.
        print("Configuration error (check your environment or .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(settings.log_level)

    try:
        if args.command == "run":
            return _cmd_run(args, settings)
        if args.command == "projects":
            return _cmd_projects(settings)
        if args.command == "setup":
            return _cmd_setup(args, settings)
        if args.command == "doctor":
            return _cmd_doctor(settings)
        if args.command == "reset":
            return _cmd_reset(args, settings)

        logger.error("Unknown command", extra={"command": args.command})
        return 2

    except Exception:
        logger.exception("Command failed")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
