"""Command-line interface for git-quick-merge"""

import os
import sys
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt
from rich.status import Status

from git_quick_merge.cli.args import parse_args
from git_quick_merge.config import load_config
from git_quick_merge.core import QuickMerge
from git_quick_merge.exceptions import GitQuickMergeError, MergeAbortedError
from git_quick_merge.models.merge import (
    BatchStatus,
    Decision,
    FlowState,
    MergeJob,
    UnpushedCommitsReport,
)
from git_quick_merge.services.display_service import STATE_LABELS, DisplayService
from git_quick_merge.services.unpushed_guard import DecisionFunction
from git_quick_merge.utils.logging import setup_logging

console = Console()


class ProgressReporter:
    """Shows flow progress in a rich status line, started on the first event."""

    def __init__(self, output: Console):
        self.console = output
        self._status: Optional[Status] = None
        self._prefix = ""

    def on_target(self, index: int, total: int, target: str) -> None:
        self._prefix = f"({index}/{total}) "

    def on_state(self, job: MergeJob, state: FlowState) -> None:
        label = STATE_LABELS.get(state)
        if label is None:
            return
        text = f"{self._prefix}{job.source_branch} → {job.target_branch}: {label}"
        if self._status is None:
            self._status = self.console.status(text, spinner="dots")
            self._status.start()
        else:
            self._status.update(text)

    def stop(self) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None


def make_decision_function(
    preset: Optional[Decision], display: DisplayService, interactive: bool
) -> DecisionFunction:
    """Build the callback the unpushed-commit guard uses to ask the user."""

    def decide(report: UnpushedCommitsReport) -> Decision:
        display.show_unpushed(report)
        if preset is not None:
            return preset
        if not interactive or not sys.stdin.isatty():
            console.print(
                "[red]Cannot ask what to do in non-interactive mode; "
                "re-run with --push, --no-push or --abort-if-unpushed[/red]"
            )
            return Decision.ABORT
        choice = Prompt.ask(
            "Push and continue, continue without pushing, or abort?",
            choices=[d.value for d in Decision],
            console=console,
        )
        return Decision(choice)

    return decide


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the application."""
    parsed_args = None
    progress = ProgressReporter(console)
    try:
        parsed_args = parse_args(argv)

        setup_logging(verbose=parsed_args.verbose, debug=parsed_args.debug)

        config = load_config(
            os.getcwd(),
            parsed_args.config,
            overrides={
                "remote_name": parsed_args.remote,
                "base_dir": parsed_args.base_dir,
                "skip_stale_worktree_check": parsed_args.skip_stale_check,
                "interactive": False if parsed_args.no_interactive else None,
                "verbose": parsed_args.verbose or None,
                "debug": parsed_args.debug or None,
            },
        )

        if parsed_args.debug:
            console.print("[yellow]Debug mode enabled[/yellow]")
            console.print("[yellow]Configuration:[/yellow]")
            for key, value in config.to_dict().items():
                console.print(f"  {key}: {value}")

        display = DisplayService(verbose=parsed_args.verbose, output=console)
        decide = make_decision_function(parsed_args.decision, display, config.interactive)

        quick_merge = QuickMerge(
            os.getcwd(),
            config,
            decide=decide,
            on_state=progress.on_state,
            on_target=progress.on_target,
        )
        quick_merge.startup_cleanup()

        return _dispatch(parsed_args, quick_merge, display, progress)
    except MergeAbortedError:
        progress.stop()
        console.print("[yellow]Merge cancelled[/yellow]")
        return 1
    except KeyboardInterrupt:
        progress.stop()
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        return 130
    except GitQuickMergeError as e:
        progress.stop()
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        if parsed_args is not None and parsed_args.debug:
            console.print_exception()
        return 1


def _dispatch(args, quick_merge: QuickMerge, display: DisplayService, progress: ProgressReporter) -> int:
    if args.command == "cleanup":
        display.show_cleanup(quick_merge.cleanup_stale())
        return 0

    if args.command == "targets":
        current = quick_merge.query.current_branch()
        display.show_targets(quick_merge.target_choices(current), current)
        return 0

    if args.command == "presets":
        display.show_presets(quick_merge.available_presets(quick_merge.query.current_branch()))
        return 0

    source = quick_merge.current_branch()

    if args.command == "merge" and len(args.targets) == 1:
        outcome = quick_merge.run_flow(args.targets[0], source)
        progress.stop()
        display.show_outcome(source, outcome)
        return 0 if outcome.success else 1

    if args.command == "merge":
        result = quick_merge.run_batch(args.targets, source)
    else:
        result = quick_merge.run_preset(args.name, source)
    progress.stop()
    display.show_batch(result)
    return 0 if result.status is BatchStatus.ALL_SUCCEEDED else 1


if __name__ == "__main__":
    sys.exit(main())
