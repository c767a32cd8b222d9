"""Command-line argument parsing for git-quick-merge."""

import argparse
from typing import List, Optional

from git_quick_merge.__version__ import __version__
from git_quick_merge.models.merge import Decision


def _add_decision_options(parser: argparse.ArgumentParser) -> None:
    """Options that answer the unpushed-commits question without a prompt."""
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "--push",
        dest="decision",
        action="store_const",
        const=Decision.PUSH_AND_CONTINUE,
        help="Push the current branch first if it has unpushed commits",
    )
    group.add_argument(
        "--no-push",
        dest="decision",
        action="store_const",
        const=Decision.CONTINUE_WITHOUT_PUSH,
        help="Merge anyway if the current branch has unpushed commits",
    )
    group.add_argument(
        "--abort-if-unpushed",
        dest="decision",
        action="store_const",
        const=Decision.ABORT,
        help="Stop if the current branch has unpushed commits",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="git-quick-merge",
        description="Merge the current branch into other branches using temporary worktrees",
        epilog="The current checkout is never touched: every merge runs in a throw-away "
        "worktree that is removed afterwards, whatever the outcome.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")
    parser.add_argument("--version", action="version", version=f"git-quick-merge {__version__}")
    parser.add_argument(
        "--debug", action="store_true", help="Show debug information for troubleshooting"
    )
    parser.add_argument("--config", metavar="PATH", help="Path to a JSON config file")
    parser.add_argument("--remote", metavar="NAME", help="Remote to pull from and push to (default: origin)")
    parser.add_argument(
        "--base-dir",
        metavar="DIR",
        help="Directory for temporary worktrees (must contain a 'git-quick-merge' component)",
    )
    parser.add_argument(
        "--skip-stale-check",
        action="store_true",
        default=None,
        help="Do not clean leftover worktrees at startup",
    )
    parser.add_argument(
        "--no-interactive",
        action="store_true",
        help="Never prompt (for scripts/automation)",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    merge = subparsers.add_parser("merge", help="Merge the current branch into one or more targets")
    merge.add_argument("targets", nargs="+", metavar="TARGET", help="Target branches, merged in order")
    _add_decision_options(merge)

    preset = subparsers.add_parser("preset", help="Merge the current branch into a preset's branches")
    preset.add_argument("name", help="Preset name")
    _add_decision_options(preset)

    subparsers.add_parser("presets", help="List merge presets usable from the current branch")
    subparsers.add_parser("targets", help="List target branch choices")
    subparsers.add_parser("cleanup", help="Remove worktrees left behind by interrupted merges")

    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    args = build_parser().parse_args(argv)
    if not hasattr(args, "decision"):
        args.decision = None
    return args
