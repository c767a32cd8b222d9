"""Display and formatting service for merge results"""
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from git_quick_merge.constants import (
    OUTCOME_STYLES,
    SYMBOL_FAILED,
    SYMBOL_NO_OP,
    SYMBOL_SUCCESS,
)
from git_quick_merge.models.merge import (
    BatchResult,
    BatchStatus,
    CleanupResult,
    FlowState,
    MergeOutcome,
    MergePreset,
    UnpushedCommitsReport,
)
from git_quick_merge.utils.logging import get_logger

console = Console()
logger = get_logger(__name__)

# Progress text for each non-terminal flow state
STATE_LABELS = {
    FlowState.IDLE: "Preparing...",
    FlowState.SCANNING_STALE: "Checking for stale worktrees...",
    FlowState.CREATING_WORKTREE: "Creating temporary worktree...",
    FlowState.SWITCHING: "Switching to target branch...",
    FlowState.PULLING: "Pulling latest code...",
    FlowState.MERGING: "Merging branch...",
    FlowState.PUSHING: "Pushing to remote...",
    FlowState.CLEANING_UP: "Cleaning up worktree...",
}


def format_unpushed_message(report: UnpushedCommitsReport) -> str:
    """Build the warning shown before asking what to do about unpushed commits."""
    lines = [
        f'Branch "{report.branch}" has {report.commit_count} unpushed commit(s).'
    ]
    if not report.remote_exists:
        lines.append("It has never been pushed to the remote.")
    if report.commits:
        lines.append("")
        lines.append("Recent commits:")
        lines.extend(f"  • {commit}" for commit in report.commits)
        if report.hidden_count:
            lines.append(f"  ... and {report.hidden_count} more")
    lines.append("")
    lines.append(
        "Merges use the remote branch, so push first to make sure these commits are included."
    )
    return "\n".join(lines)


def outcome_style(outcome: MergeOutcome) -> str:
    """Rich style key for an outcome."""
    if not outcome.success:
        return OUTCOME_STYLES["failed"]
    if outcome.is_no_op:
        return OUTCOME_STYLES["no-op"]
    return OUTCOME_STYLES["succeeded"]


class DisplayService:
    def __init__(self, verbose: bool = False, output: Optional[Console] = None):
        self.verbose = verbose
        self.console = output or console

    def show_outcome(self, source_branch: str, outcome: MergeOutcome) -> None:
        """Print the result of a single-target merge."""
        source = escape(source_branch)
        target = escape(outcome.target_branch)
        if not outcome.success:
            self.console.print(
                f"[red]{SYMBOL_FAILED} Merge failed {source} → {target}: {escape(outcome.error or '')}[/red]"
            )
        elif outcome.is_no_op:
            self.console.print(
                f"[yellow]{SYMBOL_NO_OP} Merge finished but brought no new commits: {source} → {target}\n"
                f"Check whether the source branch has been pushed to the remote.[/yellow]"
            )
        else:
            self.console.print(f"[green]{SYMBOL_SUCCESS} Merged {source} → {target}[/green]")

    def show_batch(self, result: BatchResult) -> None:
        """Print the per-target table and the all/partial/failed summary."""
        table = Table()
        table.add_column("Target")
        table.add_column("Result")
        table.add_column("Details")

        for outcome in result.outcomes:
            if not outcome.success:
                label, details = f"{SYMBOL_FAILED} failed", outcome.error or ""
            elif outcome.is_no_op:
                label, details = f"{SYMBOL_NO_OP} no new commits", ""
            else:
                label, details = f"{SYMBOL_SUCCESS} merged", ""
            table.add_row(
                escape(outcome.target_branch), label, escape(details), style=outcome_style(outcome)
            )

        self.console.print(table)
        self.console.print(self.batch_summary(result))

    @staticmethod
    def batch_summary(result: BatchResult) -> str:
        """One-line (markup) summary of a batch."""
        source = escape(result.source_branch)
        succeeded = escape(", ".join(result.succeeded))
        failed = escape(", ".join(result.failed))
        prefix = f"Preset '{escape(result.preset)}': " if result.preset else ""

        if result.status is BatchStatus.ALL_SUCCEEDED:
            return f"[green]{SYMBOL_SUCCESS} {prefix}merged {source} → {succeeded}[/green]"
        if result.status is BatchStatus.ALL_FAILED:
            return f"[red]{SYMBOL_FAILED} {prefix}merge of {source} failed for all targets: {failed}[/red]"
        return (
            f"[yellow]{SYMBOL_NO_OP} {prefix}merged {source} → {succeeded}; "
            f"failed: {failed}[/yellow]"
        )

    def show_unpushed(self, report: UnpushedCommitsReport) -> None:
        self.console.print(f"[yellow]{escape(format_unpushed_message(report))}[/yellow]")

    def show_cleanup(self, result: CleanupResult) -> None:
        """Print the result of a manual stale worktree cleanup."""
        if result.success == 0 and result.failed == 0:
            self.console.print("No stale worktree directories found")
            return
        if result.success:
            self.console.print(f"[green]{SYMBOL_SUCCESS} Removed {result.success} stale worktree director{'y' if result.success == 1 else 'ies'}[/green]")
        if result.failed:
            self.console.print(f"[red]{SYMBOL_FAILED} Failed to remove {result.failed} stale worktree director{'y' if result.failed == 1 else 'ies'}[/red]")

    def show_presets(self, presets: List[MergePreset]) -> None:
        if not presets:
            self.console.print("No merge presets available")
            return
        table = Table()
        table.add_column("Preset")
        table.add_column("Branches")
        for preset in presets:
            table.add_row(escape(preset.name), escape(", ".join(preset.branches)))
        self.console.print(table)

    def show_targets(self, branches: List[str], current_branch: Optional[str]) -> None:
        if current_branch:
            self.console.print(f"Current branch: [bold]{escape(current_branch)}[/bold]")
        for branch in branches:
            self.console.print(f"  {escape(branch)}")
