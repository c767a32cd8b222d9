"""Custom exceptions for git-quick-merge"""

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from git_quick_merge.models.merge import MergeStage


class GitQuickMergeError(Exception):
    """Base exception for all git-quick-merge errors."""
    pass


class ConfigError(GitQuickMergeError, ValueError):
    """Exception raised for invalid configuration values or files."""
    pass


class GitOperationError(GitQuickMergeError):
    """Exception raised for errors in Git operations."""

    def __init__(self, operation: str, branch: Optional[str] = None, message: Optional[str] = None):
        self.operation = operation
        self.branch = branch
        self.message = message

        error_msg = f"Git operation '{operation}' failed"
        if branch:
            error_msg += f" for branch '{branch}'"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)


# User-facing context for each stage of a merge flow
STAGE_MESSAGES = {
    "create": "Failed to create worktree, check that the branch exists",
    "switch": "Failed to switch to the target branch, check that the branch exists",
    "pull": "Failed to pull latest code for {branch}",
    "merge": "Merge failed, there may be conflicts; please merge manually",
    "push": "Push failed, check your permissions and network",
    "push_source": "Failed to push branch {branch}",
}


class MergeStageError(GitOperationError):
    """A git command failed during one stage of a merge flow.

    The string form combines the stage context with the underlying
    tool output, e.g. "Failed to pull latest code for develop: fatal: ...".
    """

    def __init__(self, stage: "MergeStage", branch: Optional[str] = None, detail: Optional[str] = None):
        self.stage = stage
        self.detail = (detail or "").strip()
        self.context = STAGE_MESSAGES[stage.value].format(branch=branch or "")
        GitQuickMergeError.__init__(self, self._compose())
        self.operation = stage.value
        self.branch = branch
        self.message = self.detail

    def _compose(self) -> str:
        if self.detail:
            return f"{self.context}: {self.detail}"
        return self.context


class PushError(MergeStageError):
    """A push was refused; `hint` carries the classified guidance."""

    def __init__(self, stage: "MergeStage", branch: Optional[str], detail: Optional[str], hint: str):
        self.hint = hint
        super().__init__(stage, branch, detail)

    def _compose(self) -> str:
        if self.detail:
            return f"{self.context} ({self.hint}): {self.detail}"
        return f"{self.context} ({self.hint})"


class MergeAbortedError(GitQuickMergeError):
    """The user chose to abort before any worktree was created."""

    def __init__(self, branch: str):
        self.branch = branch
        super().__init__(f"Merge of '{branch}' aborted: branch has unpushed commits")


class PresetNotFoundError(GitQuickMergeError):
    """Exception raised when a preset name is unknown or has no usable targets."""

    def __init__(self, name: str, reason: str = "not found"):
        self.name = name
        super().__init__(f"Merge preset '{name}' {reason}")


class DetachedHeadError(GitOperationError):
    """Exception raised when repository is in detached HEAD state."""

    def __init__(self):
        super().__init__("current_branch", message="Repository is in detached HEAD state")
