"""Guard against merging a source branch whose commits are not on the remote."""

from typing import Callable

from git_quick_merge.constants import MAX_DISPLAY_COMMITS
from git_quick_merge.exceptions import PushError
from git_quick_merge.models.merge import Decision, MergeStage, UnpushedCommitsReport
from git_quick_merge.services.git.commands import classify_push_error
from git_quick_merge.services.git.repository import RepositoryQuery
from git_quick_merge.utils.logging import get_logger

logger = get_logger(__name__)

# Supplied by the calling shell (CLI prompt, UI dialog, test stub)
DecisionFunction = Callable[[UnpushedCommitsReport], Decision]


class UnpushedCommitGuard:
    """Checks the source branch against its remote-tracking ref and asks what to do.

    Merges take the source branch from the remote, so local-only commits
    would silently be left out. The guard surfaces them and lets the
    injected decision function choose between pushing first, continuing
    anyway, or aborting.
    """

    def __init__(self, query: RepositoryQuery, decide: DecisionFunction):
        self.query = query
        self.decide = decide

    def check(self, branch_name: str) -> UnpushedCommitsReport:
        """Report commits on HEAD that `<remote>/<branch_name>` does not have.

        A branch that was never pushed counts every commit reachable from
        HEAD as unpushed.
        """
        if not self.query.has_remote_branch(branch_name):
            count = self.query.count_commits()
            if count == 0:
                return UnpushedCommitsReport(branch_name, False, 0, (), remote_exists=False)
            commits = self.query.recent_commits(MAX_DISPLAY_COMMITS)
            logger.info(f"Branch {branch_name} has no remote ref; {count} local commit(s)")
            return UnpushedCommitsReport(
                branch_name, True, count, tuple(commits[:MAX_DISPLAY_COMMITS]), remote_exists=False
            )

        commits = self.query.unpushed_commits(branch_name)
        if commits:
            logger.info(f"Branch {branch_name} has {len(commits)} unpushed commit(s)")
        return UnpushedCommitsReport(
            branch_name, bool(commits), len(commits), tuple(commits[:MAX_DISPLAY_COMMITS])
        )

    def resolve(self, report: UnpushedCommitsReport) -> Decision:
        """Ask the decision function and carry out a push if it chose one.

        Raises:
            PushError: The chosen push failed (stage push_source)
            ValueError: The decision function returned something other than a Decision
        """
        decision = self.decide(report)
        if not isinstance(decision, Decision):
            raise ValueError(f"Decision function returned {decision!r}, expected a Decision")

        logger.debug(f"Unpushed commits decision for {report.branch}: {decision.value}")
        if decision is Decision.PUSH_AND_CONTINUE:
            self.push_branch(report.branch)
        return decision

    def gate(self, branch_name: str) -> Decision:
        """Run check and, only if something is unpushed, resolve.

        Returns:
            CONTINUE_WITHOUT_PUSH without prompting when the branch is in sync
        """
        report = self.check(branch_name)
        if not report.has_unpushed:
            return Decision.CONTINUE_WITHOUT_PUSH
        return self.resolve(report)

    def push_branch(self, branch_name: str) -> None:
        """Push the source branch from the primary working directory."""
        result = self.query.runner.run(
            self.query.repo_path, "push", self.query.remote_name, branch_name
        )
        if not result.ok:
            hint = classify_push_error(result.error_text)
            logger.warning(f"Pushing {branch_name} failed: {result.error_text}")
            raise PushError(MergeStage.PUSH_SOURCE, branch_name, result.error_text, hint)
        logger.info(f"Pushed {branch_name} to {self.query.remote_name}")
