"""Worktree lifecycle service for git-quick-merge."""

import os
import re
import shutil
import time
from pathlib import Path
from threading import Lock
from typing import Callable, Dict, Optional, Set

from git_quick_merge.constants import (
    DEFAULT_REMOTE,
    WORKTREE_PREFIX,
    WORKTREE_SUFFIX_DIGITS,
    WORKTREES_DIR_NAME,
)
from git_quick_merge.exceptions import MergeStageError, PushError
from git_quick_merge.models.merge import MergeJob, MergeStage
from git_quick_merge.services.git.commands import CommandResult, GitRunner, classify_push_error
from git_quick_merge.utils.logging import get_logger

logger = get_logger(__name__)


def sanitize_branch_name(branch_name: str) -> str:
    """Replace every character that is not an ASCII letter or digit with '-'."""
    return re.sub(r"[^a-zA-Z0-9]", "-", branch_name)


def is_within_base_dir(path: str, base_dir: str) -> bool:
    """Check that `path` is strictly inside `base_dir` and carries the directory marker."""
    try:
        candidate = Path(path).resolve()
        base = Path(base_dir).resolve()
    except (OSError, RuntimeError):
        return False
    if WORKTREES_DIR_NAME not in candidate.parts:
        return False
    return candidate != base and base in candidate.parents


class WorktreeNameAllocator:
    """Derives unique worktree paths of the form merge-<branch>-<NNNNNN>.

    The suffix is the last six digits of the current time in milliseconds.
    Names already handed out by this allocator, or already present on disk,
    are skipped by bumping the suffix, so two calls in the same instant
    never collide.
    """

    def __init__(self, base_dir: str, clock: Callable[[], float] = time.time):
        self.base_dir = base_dir
        self._clock = clock
        self._issued: Set[str] = set()
        self._lock = Lock()

    def allocate_path(self, target_branch: str) -> str:
        """Reserve and return a fresh worktree path for `target_branch`."""
        modulus = 10 ** WORKTREE_SUFFIX_DIGITS
        safe_name = sanitize_branch_name(target_branch)

        with self._lock:
            suffix = int(self._clock() * 1000) % modulus
            for _ in range(modulus):
                name = f"{WORKTREE_PREFIX}{safe_name}-{suffix:0{WORKTREE_SUFFIX_DIGITS}d}"
                path = os.path.join(self.base_dir, name)
                if name not in self._issued and not os.path.exists(path):
                    self._issued.add(name)
                    return path
                suffix = (suffix + 1) % modulus

        raise RuntimeError(f"No free worktree name left for branch '{target_branch}'")

    def allocate(self, repo_path: str, source_branch: str, target_branch: str) -> MergeJob:
        """Build the MergeJob for one merge attempt."""
        return MergeJob(
            repo_path=repo_path,
            worktree_path=self.allocate_path(target_branch),
            source_branch=source_branch,
            target_branch=target_branch,
        )


class WorktreeManager:
    """Creates, drives and destroys isolated merge worktrees.

    Each primitive maps to one git invocation and raises MergeStageError
    (PushError for pushes) when it exits non-zero. `cleanup` is the
    exception: it never raises.

    Adding and removing worktrees edits the repository's shared worktree
    metadata, so those calls hold a per-repository lock. Pull, merge and
    push run inside the isolated directory and are not serialized.
    """

    _repo_locks: Dict[str, Lock] = {}
    _repo_locks_guard = Lock()

    def __init__(self, base_dir: str, remote_name: str = DEFAULT_REMOTE, runner: Optional[GitRunner] = None):
        """Initialize the worktree manager.

        Args:
            base_dir: Directory that holds every merge worktree
            remote_name: Remote used for pull, merge and push
            runner: Git command runner (a default one is created if omitted)
        """
        self.base_dir = base_dir
        self.remote_name = remote_name
        self.runner = runner or GitRunner()

    @classmethod
    def _lock_for(cls, repo_path: str) -> Lock:
        """Return the registration lock shared by all managers for one repository."""
        key = os.path.realpath(repo_path)
        with cls._repo_locks_guard:
            if key not in cls._repo_locks:
                cls._repo_locks[key] = Lock()
            return cls._repo_locks[key]

    def create(self, repo_path: str, worktree_path: str, target_branch: str) -> None:
        """Add a worktree at `worktree_path` checked out at `target_branch`."""
        try:
            os.makedirs(os.path.dirname(worktree_path), exist_ok=True)
        except OSError as e:
            raise MergeStageError(MergeStage.CREATE, target_branch, str(e))

        with self._lock_for(repo_path):
            result = self.runner.run(repo_path, "worktree", "add", worktree_path, target_branch)
        self._check(result, MergeStage.CREATE, target_branch)
        logger.debug(f"Created worktree at {worktree_path} for branch {target_branch}")

    def switch_to(self, worktree_path: str, target_branch: str) -> None:
        """Make sure the worktree's HEAD is `target_branch`."""
        result = self.runner.run(worktree_path, "switch", target_branch)
        self._check(result, MergeStage.SWITCH, target_branch)

    def pull(self, worktree_path: str, target_branch: str) -> None:
        """Bring the remote's `target_branch` into the worktree."""
        result = self.runner.run(worktree_path, "pull", self.remote_name, target_branch)
        self._check(result, MergeStage.PULL, target_branch)

    def merge(self, worktree_path: str, source_branch: str) -> None:
        """Merge `<remote>/<source_branch>` into the worktree's HEAD.

        The remote-tracking ref is merged, not the local branch, so commits
        that were never pushed do not take part in the merge.
        """
        result = self.runner.run(worktree_path, "merge", f"{self.remote_name}/{source_branch}")
        self._check(result, MergeStage.MERGE, source_branch)

    def push(self, worktree_path: str, target_branch: str) -> None:
        """Push the worktree's `target_branch` to the remote."""
        result = self.runner.run(worktree_path, "push", self.remote_name, target_branch)
        if not result.ok:
            raise PushError(
                MergeStage.PUSH, target_branch, result.error_text, classify_push_error(result.error_text)
            )

    def cleanup(self, repo_path: str, worktree_path: str) -> bool:
        """Deregister the worktree and delete its directory.

        Idempotent: a missing directory is a no-op. Failures are logged and
        never raised, so they cannot mask the outcome of the flow that
        called this.

        Returns:
            True if the directory no longer exists afterwards
        """
        if not is_within_base_dir(worktree_path, self.base_dir):
            logger.warning(f"Refusing to clean up {worktree_path}: not inside {self.base_dir}")
            return False

        if not os.path.exists(worktree_path):
            logger.debug(f"Worktree {worktree_path} already gone")
            return True

        deregistered = self.deregister(repo_path, worktree_path)

        try:
            shutil.rmtree(worktree_path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not delete worktree directory {worktree_path}: {e}")

        if not deregistered:
            self.prune(repo_path)

        gone = not os.path.exists(worktree_path)
        if gone:
            logger.debug(f"Cleaned up worktree {worktree_path}")
        return gone

    def deregister(self, repo_path: str, worktree_path: str) -> bool:
        """Run `git worktree remove <name> --force` from the repository root.

        Returns:
            True on success; a failure is logged at WARNING level only
        """
        name = os.path.basename(os.path.normpath(worktree_path))
        with self._lock_for(repo_path):
            result = self.runner.run(repo_path, "worktree", "remove", name, "--force")
        if not result.ok:
            logger.warning(f"git worktree remove failed for {name} (exit {result.status}): {result.error_text}")
        return result.ok

    def prune(self, repo_path: str) -> bool:
        """Prune worktree metadata whose directories are gone."""
        with self._lock_for(repo_path):
            result = self.runner.run(repo_path, "worktree", "prune")
        if result.ok:
            logger.debug("Pruned orphaned worktree metadata")
        else:
            logger.warning(f"git worktree prune failed (exit {result.status}): {result.error_text}")
        return result.ok

    @staticmethod
    def _check(result: CommandResult, stage: MergeStage, branch: str) -> None:
        if not result.ok:
            logger.warning(f"{stage.value} failed for {branch} (exit {result.status}): {result.error_text}")
            raise MergeStageError(stage, branch, result.error_text)
