"""Detection and removal of worktrees left behind by interrupted merges."""

import os
import shutil
import time
from threading import Lock, Timer
from typing import Dict, Iterable, List, Optional

from git_quick_merge.constants import STALE_CHECK_INTERVAL, WORKTREE_PREFIX
from git_quick_merge.models.merge import CleanupResult
from git_quick_merge.services.git.worktrees import WorktreeManager, is_within_base_dir
from git_quick_merge.utils.logging import get_logger

logger = get_logger(__name__)


class StaleWorktreeCleaner:
    """Finds and removes leftover merge-* directories under the base directory.

    Runs in two places: synchronously at the start of every merge flow or
    batch, and lazily once after startup (rate-limited per process).
    """

    # Monotonic time of the last startup check, per base directory
    _last_startup_check: Dict[str, float] = {}
    _startup_lock = Lock()

    def __init__(self, worktree_manager: WorktreeManager, min_interval: float = STALE_CHECK_INTERVAL):
        self.worktree_manager = worktree_manager
        self.base_dir = worktree_manager.base_dir
        self.min_interval = min_interval

    def scan(self) -> List[str]:
        """List merge worktree directories directly under the base directory.

        Returns:
            Sorted list of paths; empty if the base directory is missing or unreadable
        """
        if not os.path.isdir(self.base_dir):
            return []

        try:
            with os.scandir(self.base_dir) as entries:
                stale = [
                    entry.path
                    for entry in entries
                    if entry.name.startswith(WORKTREE_PREFIX) and entry.is_dir(follow_symlinks=False)
                ]
        except OSError as e:
            logger.warning(f"Could not scan {self.base_dir} for stale worktrees: {e}")
            return []

        stale.sort()
        if stale:
            logger.info(f"Found {len(stale)} stale worktree(s) in {self.base_dir}")
        return stale

    def clean(self, entries: Iterable[str], repo_path: Optional[str] = None) -> CleanupResult:
        """Remove stale worktree directories.

        For each entry, the worktree is first deregistered from `repo_path`
        (a failure there is logged and ignored), then the directory is
        deleted. Paths outside the base directory are never touched.

        Args:
            entries: Paths returned by scan()
            repo_path: Repository the worktrees may be registered in

        Returns:
            CleanupResult with removed, failed and skipped counts
        """
        success = failed = skipped = 0
        needs_prune = False

        for path in entries:
            if not is_within_base_dir(path, self.base_dir):
                logger.warning(f"Refusing to remove {path}: not inside {self.base_dir}")
                skipped += 1
                continue

            if not os.path.exists(path):
                skipped += 1
                continue

            if repo_path and not self.worktree_manager.deregister(repo_path, path):
                needs_prune = True

            try:
                shutil.rmtree(path)
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning(f"Failed to remove stale worktree {path}: {e}")
                failed += 1
                continue

            logger.debug(f"Removed stale worktree {path}")
            success += 1

        if needs_prune and repo_path:
            self.worktree_manager.prune(repo_path)

        if success or failed:
            logger.info(f"Stale worktree cleanup: {success} removed, {failed} failed")
        return CleanupResult(success=success, failed=failed, skipped=skipped)

    def scan_and_clean(self, repo_path: Optional[str] = None) -> CleanupResult:
        """Scan the base directory and clean whatever is found."""
        stale = self.scan()
        if not stale:
            return CleanupResult()
        return self.clean(stale, repo_path)

    def startup_check(self, repo_path: Optional[str] = None) -> Optional[CleanupResult]:
        """Run the startup scan unless one ran within `min_interval` seconds.

        Returns:
            CleanupResult, or None when skipped by the rate limit
        """
        now = time.monotonic()
        with self._startup_lock:
            last = self._last_startup_check.get(self.base_dir)
            if last is not None and now - last < self.min_interval:
                logger.debug("Skipping startup stale worktree check (ran recently)")
                return None
            self._last_startup_check[self.base_dir] = now

        return self.scan_and_clean(repo_path)

    def schedule_startup_check(self, repo_path: Optional[str], delay: float) -> Timer:
        """Run startup_check on a daemon timer after `delay` seconds."""
        timer = Timer(delay, self._run_scheduled, args=(repo_path,))
        timer.daemon = True
        timer.start()
        return timer

    def _run_scheduled(self, repo_path: Optional[str]) -> None:
        try:
            self.startup_check(repo_path)
        except Exception as e:
            # Timer thread: nothing upstream to propagate to
            logger.warning(f"Startup stale worktree check failed: {e}")
