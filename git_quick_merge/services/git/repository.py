"""Read-only repository queries for git-quick-merge."""

from typing import List, Optional

from git_quick_merge.constants import DEFAULT_REMOTE
from git_quick_merge.services.git.commands import GitRunner
from git_quick_merge.utils.logging import get_logger

logger = get_logger(__name__)


class RepositoryQuery:
    """Facts about a repository: current branch, HEAD, remote refs, unpushed commits.

    None of these methods modify the repository. Failures are logged and
    turned into a neutral answer (None, False, 0 or an empty list).
    """

    def __init__(self, repo_path: str, remote_name: str = DEFAULT_REMOTE, runner: Optional[GitRunner] = None):
        """Initialize the query service.

        Args:
            repo_path: Path to the primary working directory of the repository
            remote_name: Name of the remote used for tracking refs
            runner: Git command runner (a default one is created if omitted)
        """
        self.repo_path = repo_path
        self.remote_name = remote_name
        self.runner = runner or GitRunner()

    def current_branch(self) -> Optional[str]:
        """Get the branch checked out in the primary working directory.

        Returns:
            Branch name, or None on error or detached HEAD
        """
        result = self.runner.run(self.repo_path, "rev-parse", "--abbrev-ref", "HEAD")
        if not result.ok:
            logger.error(f"Could not determine current branch: {result.error_text}")
            return None

        branch = result.stdout.strip()
        if branch == "HEAD":
            logger.warning("Repository is in detached HEAD state")
            return None
        return branch

    def head_commit(self, path: Optional[str] = None) -> Optional[str]:
        """Get the commit id HEAD points at in `path` (default: the repository)."""
        cwd = path or self.repo_path
        result = self.runner.run(cwd, "rev-parse", "HEAD")
        if not result.ok:
            logger.warning(f"Could not read HEAD commit in {cwd}: {result.error_text}")
            return None
        return result.stdout.strip()

    def has_remote_branch(self, branch_name: str) -> bool:
        """Check if `<remote>/<branch_name>` exists as a remote-tracking ref."""
        result = self.runner.run(
            self.repo_path, "rev-parse", "--verify", f"{self.remote_name}/{branch_name}"
        )
        return result.ok

    def count_commits(self) -> int:
        """Count all commits reachable from HEAD."""
        result = self.runner.run(self.repo_path, "rev-list", "--count", "HEAD")
        if not result.ok:
            logger.debug(f"Could not count commits: {result.error_text}")
            return 0
        try:
            return int(result.stdout.strip())
        except ValueError:
            logger.debug(f"Unexpected rev-list output: {result.stdout!r}")
            return 0

    def recent_commits(self, limit: int) -> List[str]:
        """One-line summaries of the `limit` most recent commits on HEAD."""
        result = self.runner.run(self.repo_path, "log", "--oneline", "-n", str(limit), "HEAD")
        if not result.ok:
            logger.debug(f"Could not list recent commits: {result.error_text}")
            return []
        return result.lines()

    def unpushed_commits(self, branch_name: str) -> List[str]:
        """One-line summaries of commits in `<remote>/<branch>..HEAD`, most recent first."""
        result = self.runner.run(
            self.repo_path, "log", "--oneline", f"{self.remote_name}/{branch_name}..HEAD"
        )
        if not result.ok:
            logger.debug(f"Could not list unpushed commits for {branch_name}: {result.error_text}")
            return []
        return result.lines()
