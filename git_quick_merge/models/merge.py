"""Merge flow data models and related enums"""
from enum import Enum
from dataclasses import dataclass, field
from typing import List, Optional, Tuple


class MergeStage(Enum):
    """Stage of a merge flow that can fail."""
    CREATE = "create"
    SWITCH = "switch"
    PULL = "pull"
    MERGE = "merge"
    PUSH = "push"
    PUSH_SOURCE = "push_source"


class FlowState(Enum):
    """States of the per-target merge state machine."""
    IDLE = "idle"
    SCANNING_STALE = "scanning-stale"
    CREATING_WORKTREE = "creating-worktree"
    SWITCHING = "switching"
    PULLING = "pulling"
    MERGING = "merging"
    PUSHING = "pushing"
    CLEANING_UP = "cleaning-up"
    SUCCEEDED = "succeeded"
    SUCCEEDED_NO_OP = "succeeded-no-op"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (FlowState.SUCCEEDED, FlowState.SUCCEEDED_NO_OP, FlowState.FAILED)


class Decision(Enum):
    """User decision when the source branch has unpushed commits."""
    PUSH_AND_CONTINUE = "push"
    CONTINUE_WITHOUT_PUSH = "continue"
    ABORT = "abort"


class BatchStatus(Enum):
    """Aggregate classification of a batch run."""
    ALL_SUCCEEDED = "all-succeeded"
    PARTIAL = "partial"
    ALL_FAILED = "all-failed"


@dataclass(frozen=True)
class MergeJob:
    """One attempt at merging a source branch into a target branch."""
    repo_path: str
    worktree_path: str
    source_branch: str
    target_branch: str


@dataclass(frozen=True)
class MergeOutcome:
    """Result of running one merge job."""
    target_branch: str
    success: bool
    has_new_commits: Optional[bool] = None  # Only meaningful when success
    error: Optional[str] = None
    state: FlowState = FlowState.IDLE

    @property
    def is_no_op(self) -> bool:
        return self.success and self.has_new_commits is False


@dataclass(frozen=True)
class UnpushedCommitsReport:
    """Commits on the source branch that its remote does not have yet."""
    branch: str
    has_unpushed: bool
    commit_count: int
    commits: Tuple[str, ...] = ()  # One-line summaries, most recent first
    remote_exists: bool = True

    @property
    def hidden_count(self) -> int:
        """Number of unpushed commits not listed in `commits`."""
        return max(0, self.commit_count - len(self.commits))


@dataclass(frozen=True)
class MergePreset:
    """A named, ordered group of target branches."""
    name: str
    branches: Tuple[str, ...]

    def without(self, branch: Optional[str]) -> "MergePreset":
        """Return this preset with `branch` removed from its targets."""
        return MergePreset(self.name, tuple(b for b in self.branches if b != branch))

    @property
    def is_empty(self) -> bool:
        return not self.branches


@dataclass(frozen=True)
class CleanupResult:
    """Counts reported by the stale worktree cleaner."""
    success: int = 0
    failed: int = 0
    skipped: int = 0  # Already gone or refused as outside the base directory


@dataclass
class BatchResult:
    """Outcomes of a batch run, in the caller-supplied target order."""
    source_branch: str
    outcomes: List[MergeOutcome] = field(default_factory=list)
    preset: Optional[str] = None

    @property
    def succeeded(self) -> List[str]:
        return [o.target_branch for o in self.outcomes if o.success]

    @property
    def failed(self) -> List[str]:
        return [o.target_branch for o in self.outcomes if not o.success]

    @property
    def status(self) -> BatchStatus:
        if not self.failed:
            return BatchStatus.ALL_SUCCEEDED
        if not self.succeeded:
            return BatchStatus.ALL_FAILED
        return BatchStatus.PARTIAL
