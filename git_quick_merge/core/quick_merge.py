"""Core functionality for git-quick-merge"""

from threading import Timer
from typing import List, Optional, Sequence, Union

import git

from git_quick_merge.config import Config
from git_quick_merge.exceptions import (
    DetachedHeadError,
    GitQuickMergeError,
    MergeAbortedError,
    PresetNotFoundError,
)
from git_quick_merge.models.merge import (
    BatchResult,
    CleanupResult,
    Decision,
    MergeOutcome,
    MergePreset,
    UnpushedCommitsReport,
)
from git_quick_merge.services.batch_service import BatchMergeCoordinator, TargetCallback
from git_quick_merge.services.git import (
    GitRunner,
    RepositoryQuery,
    WorktreeManager,
    WorktreeNameAllocator,
)
from git_quick_merge.services.merge_flow import MergeFlow, StateCallback
from git_quick_merge.services.stale_worktrees import StaleWorktreeCleaner
from git_quick_merge.services.unpushed_guard import DecisionFunction, UnpushedCommitGuard
from git_quick_merge.utils.logging import get_logger

logger = get_logger(__name__)


class QuickMerge:
    """Merges the current branch into other branches without touching the checkout."""

    def __init__(
        self,
        repo_path: str,
        config: Union[Config, dict],
        decide: Optional[DecisionFunction] = None,
        on_state: Optional[StateCallback] = None,
        on_target: Optional[TargetCallback] = None,
        runner: Optional[GitRunner] = None,
    ):
        """Initialize QuickMerge.

        Args:
            repo_path: Path inside the git repository (the working tree root is located)
            config: Configuration dict or Config object
            decide: Called when the source branch has unpushed commits; required
                for merges in that situation
            on_state: Progress callback for each merge flow state
            on_target: Progress callback before each target of a batch
            runner: Git command runner shared by all services
        """
        # Convert dict to Config if needed
        if isinstance(config, dict):
            self.config = Config.from_dict(config)
        else:
            self.config = config

        try:
            repo = git.Repo(repo_path, search_parent_directories=True)
        except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError) as e:
            raise GitQuickMergeError(f"Error initializing repository: {e}")
        try:
            if repo.working_tree_dir is None:
                raise GitQuickMergeError(f"Error initializing repository: {repo_path} is a bare repository")
            self.repo_path = str(repo.working_tree_dir)
        finally:
            repo.close()

        remote_name = self.config.remote_name
        base_dir = self.config.base_dir
        self.runner = runner or GitRunner()

        self.query = RepositoryQuery(self.repo_path, remote_name, self.runner)
        self.worktree_manager = WorktreeManager(base_dir, remote_name, self.runner)
        self.allocator = WorktreeNameAllocator(base_dir)
        self.cleaner = StaleWorktreeCleaner(self.worktree_manager, self.config.stale_check_interval)
        self.flow = MergeFlow(self.worktree_manager, self.query, self.cleaner, on_state)
        self.batch = BatchMergeCoordinator(self.allocator, self.flow, self.cleaner, on_target)
        self.guard = UnpushedCommitGuard(self.query, decide or _no_decision)

        logger.debug(f"QuickMerge ready for {self.repo_path} (remote={remote_name}, base_dir={base_dir})")

    def current_branch(self) -> str:
        """Name of the branch checked out in the workspace (the merge source)."""
        branch = self.query.current_branch()
        if branch is None:
            raise DetachedHeadError()
        return branch

    def target_choices(self, current_branch: Optional[str] = None) -> List[str]:
        """Built-in and configured target branches, without duplicates or the current branch."""
        choices: List[str] = []
        for branch in [*self.config.default_branches, *self.config.branches]:
            if branch != current_branch and branch not in choices:
                choices.append(branch)
        return choices

    def available_presets(self, current_branch: Optional[str] = None) -> List[MergePreset]:
        """Presets with the current branch removed; presets left empty are dropped."""
        presets = [preset.without(current_branch) for preset in self.config.presets]
        return [preset for preset in presets if not preset.is_empty]

    def get_preset(self, name: str, current_branch: Optional[str] = None) -> MergePreset:
        """Look up a preset by name, already filtered for `current_branch`."""
        for preset in self.config.presets:
            if preset.name == name:
                filtered = preset.without(current_branch)
                if filtered.is_empty:
                    raise PresetNotFoundError(name, "has no target branches besides the current one")
                return filtered
        raise PresetNotFoundError(name)

    def ensure_pushed(self, source_branch: str) -> Decision:
        """Run the unpushed-commit guard for `source_branch`.

        Returns:
            The decision taken (CONTINUE_WITHOUT_PUSH when nothing was unpushed)

        Raises:
            MergeAbortedError: The decision was ABORT
            PushError: Pushing the source branch failed
            GitQuickMergeError: Commits are unpushed and no decision function was given
        """
        decision = self.guard.gate(source_branch)
        if decision is Decision.ABORT:
            logger.info(f"Merge of {source_branch} aborted by user")
            raise MergeAbortedError(source_branch)
        return decision

    def run_flow(self, target_branch: str, source_branch: Optional[str] = None) -> MergeOutcome:
        """Merge the source branch (default: current) into one target branch."""
        source = source_branch or self.current_branch()
        self.ensure_pushed(source)
        job = self.allocator.allocate(self.repo_path, source, target_branch)
        return self.flow.run(job)

    def run_batch(
        self,
        target_branches: Sequence[str],
        source_branch: Optional[str] = None,
        preset: Optional[str] = None,
    ) -> BatchResult:
        """Merge the source branch (default: current) into several targets in order."""
        source = source_branch or self.current_branch()
        self.ensure_pushed(source)
        return self.batch.run_batch(source, target_branches, self.repo_path, preset=preset)

    def run_preset(self, name: str, source_branch: Optional[str] = None) -> BatchResult:
        """Merge the source branch into every branch of the named preset."""
        source = source_branch or self.current_branch()
        preset = self.get_preset(name, source)
        return self.run_batch(preset.branches, source, preset=preset.name)

    def cleanup_stale(self) -> CleanupResult:
        """Remove every stale merge worktree now."""
        return self.cleaner.scan_and_clean(self.repo_path)

    def startup_cleanup(self) -> Optional[CleanupResult]:
        """Startup stale scan; None if disabled by configuration or rate-limited."""
        if self.config.skip_stale_worktree_check:
            logger.debug("Startup stale worktree check disabled by configuration")
            return None
        return self.cleaner.startup_check(self.repo_path)

    def schedule_startup_cleanup(self) -> Optional[Timer]:
        """Run startup_cleanup on a background timer after the configured delay."""
        if self.config.skip_stale_worktree_check:
            logger.debug("Startup stale worktree check disabled by configuration")
            return None
        return self.cleaner.schedule_startup_check(self.repo_path, self.config.stale_check_delay)


def _no_decision(report: UnpushedCommitsReport) -> Decision:
    raise GitQuickMergeError(
        f"Branch '{report.branch}' has {report.commit_count} unpushed commit(s) "
        "and no way to ask what to do"
    )
