"""Tests for git command execution and repository queries"""
import pytest

from conftest import commit_file
from git_quick_merge.services.git import CommandResult, GitRunner, RepositoryQuery, classify_push_error
from git_quick_merge.services.git.commands import GENERIC_PUSH_HINT, NON_INTERACTIVE_ENV


class TestCommandResult:
    """Test CommandResult helpers."""

    def test_ok(self):
        assert CommandResult(("status",), "/tmp", 0).ok
        assert not CommandResult(("status",), "/tmp", 1).ok

    def test_error_text_prefers_stderr(self):
        result = CommandResult(("push",), "/tmp", 1, "out", "fatal: boom\n")
        assert result.error_text == "fatal: boom"

    def test_error_text_falls_back_to_stdout(self):
        result = CommandResult(("merge",), "/tmp", 1, "CONFLICT (content)", "")
        assert result.error_text == "CONFLICT (content)"

    def test_error_text_without_output(self):
        result = CommandResult(("merge", "x"), "/tmp", 2)
        assert result.error_text == "'merge x' exited with status 2"

    def test_lines_skip_blank(self):
        result = CommandResult(("log",), "/tmp", 0, "abc one\n\ndef two\n")
        assert result.lines() == ["abc one", "def two"]


class TestGitRunner:
    """Test GitRunner against a real repository."""

    def test_run_success(self, git_repo, runner):
        result = runner.run(git_repo.working_dir, "rev-parse", "--abbrev-ref", "HEAD")
        assert result.ok
        assert result.stdout.strip() == "feature-x"
        assert result.args == ("rev-parse", "--abbrev-ref", "HEAD")

    def test_run_failure_does_not_raise(self, git_repo, runner):
        result = runner.run(git_repo.working_dir, "rev-parse", "--verify", "no-such-ref")
        assert not result.ok
        assert result.status != 0

    def test_missing_directory(self, temp_dir, runner):
        """A missing cwd must not silently run in the process directory."""
        result = runner.run(str(temp_dir / "gone"), "status")
        assert result.status == 127
        assert "does not exist" in result.stderr

    def test_non_interactive_env(self):
        runner = GitRunner(env={"EXTRA": "1"})
        assert runner.env["GIT_TERMINAL_PROMPT"] == "0"
        assert runner.env["GIT_MERGE_AUTOEDIT"] == "no"
        assert runner.env["EXTRA"] == "1"
        assert "EXTRA" not in NON_INTERACTIVE_ENV


class TestClassifyPushError:
    """Test push error classification."""

    @pytest.mark.parametrize("text, expected", [
        ("git@host: Permission denied (publickey).", "permission denied"),
        ("ssh: Could not resolve hostname example.invalid", "cannot reach the remote"),
        ("! [rejected] develop -> develop (non-fast-forward)", "non-fast-forward"),
        ("! [remote rejected] develop -> develop (pre-receive hook declined)", "rejected"),
    ])
    def test_known_patterns(self, text, expected):
        assert expected in classify_push_error(text)

    def test_rules_checked_in_order(self):
        """non-fast-forward output also contains 'rejected'; the specific hint wins."""
        hint = classify_push_error("! [rejected] main -> main (non-fast-forward)")
        assert "pull and merge" in hint

    def test_unknown_error(self):
        assert classify_push_error("fatal: something else") == GENERIC_PUSH_HINT


class TestRepositoryQuery:
    """Test read-only repository queries."""

    def test_current_branch(self, query):
        assert query.current_branch() == "feature-x"

    def test_current_branch_detached(self, git_repo, query):
        git_repo.git.checkout(git_repo.head.commit.hexsha)
        assert query.current_branch() is None

    def test_current_branch_outside_repo(self, temp_dir):
        query = RepositoryQuery(str(temp_dir))
        assert query.current_branch() is None

    def test_head_commit(self, git_repo, query):
        assert query.head_commit() == git_repo.head.commit.hexsha

    def test_has_remote_branch(self, query):
        assert query.has_remote_branch("develop") is True
        assert query.has_remote_branch("release") is False

    def test_count_commits(self, query):
        assert query.count_commits() == 2

    def test_recent_commits(self, query):
        commits = query.recent_commits(5)
        assert len(commits) == 2
        assert commits[0].endswith("Add feature")

    def test_unpushed_commits(self, git_repo, query):
        assert query.unpushed_commits("feature-x") == []
        commit_file(git_repo, "local.txt", "local\n", "Local change")
        commits = query.unpushed_commits("feature-x")
        assert len(commits) == 1
        assert commits[0].endswith("Local change")
