"""Runs the merge flow across an ordered list of target branches."""

from typing import Callable, Optional, Sequence

from git_quick_merge.models.merge import BatchResult, FlowState, MergeOutcome
from git_quick_merge.services.git.worktrees import WorktreeNameAllocator
from git_quick_merge.services.merge_flow import MergeFlow
from git_quick_merge.services.stale_worktrees import StaleWorktreeCleaner
from git_quick_merge.utils.logging import get_logger

logger = get_logger(__name__)

# Called before each target with (1-based index, total, target branch)
TargetCallback = Callable[[int, int, str], None]


class BatchMergeCoordinator:
    """Merges one source branch into several targets, one after another.

    Targets run sequentially in the order given and every target runs no
    matter how earlier ones ended. The result list has one outcome per
    target, in input order.

    Targets never run in parallel. A concurrent version must keep
    `git worktree add`/`remove` behind WorktreeManager's per-repository
    lock and may only overlap the pull/merge/push steps.
    """

    def __init__(
        self,
        allocator: WorktreeNameAllocator,
        flow: MergeFlow,
        cleaner: Optional[StaleWorktreeCleaner] = None,
        on_target: Optional[TargetCallback] = None,
    ):
        self.allocator = allocator
        self.flow = flow
        self.cleaner = cleaner
        self.on_target = on_target

    def run_batch(
        self,
        source_branch: str,
        target_branches: Sequence[str],
        workspace_path: str,
        preset: Optional[str] = None,
    ) -> BatchResult:
        """Run the merge flow for every target branch.

        Args:
            source_branch: Branch whose remote ref is merged into each target
            target_branches: Targets in the order they should run
            workspace_path: Primary working directory of the repository
            preset: Name of the preset the targets came from, for presentation

        Returns:
            BatchResult with one MergeOutcome per target, in input order

        Raises:
            ValueError: If target_branches is empty
        """
        targets = list(target_branches)
        if not targets:
            raise ValueError("At least one target branch is required")

        result = BatchResult(source_branch=source_branch, preset=preset)

        # One stale scan for the whole batch
        if self.cleaner:
            self.cleaner.scan_and_clean(workspace_path)

        total = len(targets)
        for index, target in enumerate(targets, start=1):
            if self.on_target:
                self.on_target(index, total, target)
            logger.info(f"({index}/{total}) Merging {source_branch} -> {target}")

            try:
                job = self.allocator.allocate(workspace_path, source_branch, target)
            except RuntimeError as e:
                result.outcomes.append(MergeOutcome(target, False, None, str(e), FlowState.FAILED))
                continue

            result.outcomes.append(self.flow.run(job, scan_stale=False))

        logger.info(
            f"Batch finished: {len(result.succeeded)} succeeded, {len(result.failed)} failed "
            f"({result.status.value})"
        )
        return result
