"""Shared constants for git-quick-merge."""

import os
import tempfile
from typing import List


# Name of the per-machine directory that holds ephemeral merge worktrees.
# Destructive routines refuse any path that does not contain it.
WORKTREES_DIR_NAME = "git-quick-merge"

# Every worktree directory created by a merge flow starts with this prefix
WORKTREE_PREFIX = "merge-"

# Number of trailing timestamp digits used in worktree names
WORKTREE_SUFFIX_DIGITS = 6

DEFAULT_REMOTE = "origin"

# Built-in target branch choices, extended by the configured branches
DEFAULT_TARGET_BRANCHES: List[str] = ["develop", "release", "master"]

# How many recent commits the unpushed-commit prompt lists
MAX_DISPLAY_COMMITS = 5

# Lazy startup stale scan: delay and in-process rate limit (seconds)
STALE_CHECK_DELAY = 2.0
STALE_CHECK_INTERVAL = 300.0

CONFIG_FILE_NAME = ".git-quick-merge.json"
USER_DIR_NAME = ".git-quick-merge"


def default_base_dir() -> str:
    """Return the default worktree base directory under the system temp root."""
    return os.path.join(tempfile.gettempdir(), WORKTREES_DIR_NAME)


# Symbols used by the display service
SYMBOL_SUCCESS = "✓"
SYMBOL_NO_OP = "⚠"
SYMBOL_FAILED = "✗"

# Rich styles for merge outcomes
OUTCOME_STYLES = {
    "succeeded": "green",
    "no-op": "yellow",
    "failed": "red",
}
