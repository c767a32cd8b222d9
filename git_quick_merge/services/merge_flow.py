"""Per-target merge flow: create -> switch -> pull -> merge -> push -> cleanup."""

from typing import Callable, List, Optional

from git_quick_merge.exceptions import GitOperationError, GitQuickMergeError
from git_quick_merge.models.merge import FlowState, MergeJob, MergeOutcome
from git_quick_merge.services.git.repository import RepositoryQuery
from git_quick_merge.services.git.worktrees import WorktreeManager
from git_quick_merge.services.stale_worktrees import StaleWorktreeCleaner
from git_quick_merge.utils.logging import get_logger

logger = get_logger(__name__)

StateCallback = Callable[[MergeJob, FlowState], None]


class MergeFlow:
    """Drives one MergeJob through the merge state machine.

    States run strictly in order; the first failing stage jumps straight to
    CLEANING_UP and then FAILED, so later stages never run. Cleanup is
    called exactly once per run() on every path, including Ctrl-C, which
    is re-raised after the worktree is gone.

    The HEAD commit is read just before and just after the merge; if it
    did not move the flow ends in SUCCEEDED_NO_OP instead of SUCCEEDED.
    A HEAD that cannot be read fails the flow.

    Errors raised by the on_state callback are logged and never change
    the outcome.
    """

    def __init__(
        self,
        worktree_manager: WorktreeManager,
        query: RepositoryQuery,
        cleaner: Optional[StaleWorktreeCleaner] = None,
        on_state: Optional[StateCallback] = None,
    ):
        self.worktree_manager = worktree_manager
        self.query = query
        self.cleaner = cleaner
        self.on_state = on_state
        self.state = FlowState.IDLE
        self.history: List[FlowState] = []

    def _enter(self, job: MergeJob, state: FlowState) -> None:
        self.state = state
        self.history.append(state)
        logger.debug(f"[{job.target_branch}] -> {state.value}")
        if self.on_state:
            try:
                self.on_state(job, state)
            except Exception:
                logger.exception(f"State callback failed for {job.target_branch} at {state.value}")

    def _snapshot(self, job: MergeJob) -> str:
        """HEAD commit of the worktree; a failed read fails the flow."""
        commit = self.query.head_commit(job.worktree_path)
        if commit is None:
            raise GitOperationError(
                "rev-parse HEAD", job.target_branch, f"Could not read HEAD commit in {job.worktree_path}"
            )
        return commit

    def run(self, job: MergeJob, scan_stale: bool = True) -> MergeOutcome:
        """Merge job.source_branch into job.target_branch inside an isolated worktree.

        Args:
            job: The merge attempt; its worktree_path must not exist yet
            scan_stale: Clean leftover worktrees first (batches do this once up front)

        Returns:
            MergeOutcome whose state is SUCCEEDED, SUCCEEDED_NO_OP or FAILED
        """
        self.history = []
        self._enter(job, FlowState.IDLE)

        manager = self.worktree_manager
        has_new_commits: Optional[bool] = None
        error: Optional[str] = None

        try:
            if scan_stale and self.cleaner:
                self._enter(job, FlowState.SCANNING_STALE)
                self.cleaner.scan_and_clean(job.repo_path)

            self._enter(job, FlowState.CREATING_WORKTREE)
            manager.create(job.repo_path, job.worktree_path, job.target_branch)

            self._enter(job, FlowState.SWITCHING)
            manager.switch_to(job.worktree_path, job.target_branch)

            self._enter(job, FlowState.PULLING)
            manager.pull(job.worktree_path, job.target_branch)

            before = self._snapshot(job)
            self._enter(job, FlowState.MERGING)
            manager.merge(job.worktree_path, job.source_branch)
            after = self._snapshot(job)
            has_new_commits = before != after

            self._enter(job, FlowState.PUSHING)
            manager.push(job.worktree_path, job.target_branch)
        except GitQuickMergeError as e:
            error = str(e)
        except Exception as e:
            logger.exception(f"Unexpected error merging {job.source_branch} into {job.target_branch}")
            error = f"Unexpected error: {e}"
        finally:
            try:
                self._enter(job, FlowState.CLEANING_UP)
            finally:
                manager.cleanup(job.repo_path, job.worktree_path)

        if error is not None:
            self._enter(job, FlowState.FAILED)
            logger.warning(f"Merge {job.source_branch} -> {job.target_branch} failed: {error}")
            return MergeOutcome(job.target_branch, False, None, error, FlowState.FAILED)

        terminal = FlowState.SUCCEEDED if has_new_commits else FlowState.SUCCEEDED_NO_OP
        self._enter(job, terminal)
        if has_new_commits:
            logger.info(f"Merged {job.source_branch} -> {job.target_branch}")
        else:
            logger.info(f"Merged {job.source_branch} -> {job.target_branch} with no new commits")
        return MergeOutcome(job.target_branch, True, bool(has_new_commits), None, terminal)
