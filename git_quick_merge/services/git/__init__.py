"""Git-related services for git-quick-merge."""

from .commands import CommandResult, GitRunner, classify_push_error
from .repository import RepositoryQuery
from .worktrees import WorktreeManager, WorktreeNameAllocator

__all__ = [
    "CommandResult",
    "GitRunner",
    "classify_push_error",
    "RepositoryQuery",
    "WorktreeManager",
    "WorktreeNameAllocator",
]
