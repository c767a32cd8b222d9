"""Structured git command execution for git-quick-merge.

Every git invocation goes through `GitRunner.run`, which never raises for a
non-zero exit: the caller gets a `CommandResult` with the exit status and the
captured output, and decides which stage error (if any) it maps to.
"""

import git
import os
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple

from git_quick_merge.utils.logging import get_logger

logger = get_logger(__name__)

# Keep git from waiting on an editor or a credential prompt
NON_INTERACTIVE_ENV: Dict[str, str] = {
    "GIT_MERGE_AUTOEDIT": "no",
    "GIT_TERMINAL_PROMPT": "0",
}


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one git invocation."""

    args: Tuple[str, ...]
    cwd: str
    status: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.status == 0

    @property
    def error_text(self) -> str:
        """Best available failure description (stderr, else stdout)."""
        text = self.stderr.strip() or self.stdout.strip()
        if text:
            return text
        return f"'{' '.join(self.args)}' exited with status {self.status}"

    def lines(self) -> List[str]:
        """Non-empty stdout lines."""
        return [line for line in self.stdout.splitlines() if line.strip()]


class GitRunner:
    """Runs git commands in a given working directory."""

    def __init__(self, env: Optional[Mapping[str, str]] = None):
        self.env = dict(NON_INTERACTIVE_ENV)
        if env:
            self.env.update(env)

    def run(self, cwd: str, *args: str) -> CommandResult:
        """Run `git <args>` in `cwd` and capture the result.

        Args:
            cwd: Working directory for the command
            *args: Arguments after the `git` executable

        Returns:
            CommandResult; a missing git binary or working directory is
            reported as status 127 rather than raised
        """
        command = ["git", *args]
        # GitPython silently falls back to the process cwd for a missing directory
        if not os.path.isdir(cwd):
            logger.debug(f"Not running {' '.join(command)}: {cwd} is not a directory")
            return CommandResult(tuple(args), cwd, 127, "", f"working directory does not exist: {cwd}")
        try:
            status, stdout, stderr = git.Git(cwd).execute(
                command,
                with_extended_output=True,
                with_exceptions=False,
                env=self.env,
            )
        except git.exc.GitCommandNotFound as e:
            logger.debug(f"Could not run {' '.join(command)} in {cwd}: {e}")
            return CommandResult(tuple(args), cwd, 127, "", str(e))

        result = CommandResult(tuple(args), cwd, status, stdout or "", stderr or "")
        logger.debug(f"git {' '.join(args)} (cwd={cwd}) -> exit {status}")
        if not result.ok:
            logger.debug(f"  stderr: {result.stderr.strip()}")
        return result


@dataclass(frozen=True)
class PushErrorRule:
    """Maps a substring of git's push error output to user guidance."""

    pattern: str
    hint: str


# Checked in order; the first matching rule wins
PUSH_ERROR_RULES: Tuple[PushErrorRule, ...] = (
    PushErrorRule("Permission denied", "permission denied, check your SSH key or access token"),
    PushErrorRule("Could not resolve hostname", "cannot reach the remote repository, check your network connection"),
    PushErrorRule("non-fast-forward", "non-fast-forward update, pull and merge remote changes first"),
    PushErrorRule("rejected", "push was rejected, pull remote updates first"),
)

GENERIC_PUSH_HINT = "check your permissions and network"


def classify_push_error(error_text: str) -> str:
    """Return the guidance for a failed push based on its error output."""
    for rule in PUSH_ERROR_RULES:
        if rule.pattern in error_text:
            return rule.hint
    return GENERIC_PUSH_HINT
