"""Pytest fixtures for git-quick-merge tests"""
import tempfile
from pathlib import Path
from unittest.mock import Mock

import git
import pytest

from git_quick_merge.constants import WORKTREES_DIR_NAME
from git_quick_merge.services.git import GitRunner, RepositoryQuery, WorktreeManager


def commit_file(repo: git.Repo, name: str, content: str, message: str) -> str:
    """Write a file in the repo's working tree, commit it and return the commit sha."""
    path = Path(repo.working_dir) / name
    path.write_text(content)
    repo.index.add([name])
    return repo.index.commit(message).hexsha


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep user-level config files out of the tests."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    return home


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def base_dir(temp_dir):
    """Worktree base directory carrying the safety marker."""
    return temp_dir / "worktrees" / WORKTREES_DIR_NAME


@pytest.fixture
def mock_config(base_dir):
    """Create a configuration dictionary."""
    return {
        'remote_name': 'origin',
        'base_dir': str(base_dir),
        'skip_stale_worktree_check': True,
        'branches': ['staging'],
        'presets': [
            {'name': 'all', 'branches': ['develop', 'release']},
            {'name': 'dev-only', 'branches': ['develop']},
            {'name': 'self', 'branches': ['feature-x']},
        ],
    }


@pytest.fixture
def remote_repo(temp_dir):
    """Bare repository acting as 'origin'."""
    remote = git.Repo.init(temp_dir / "remote.git", bare=True)
    yield remote
    remote.close()


@pytest.fixture
def git_repo(temp_dir, remote_repo):
    """Create a real Git repository with an origin remote.

    Layout:
        main       initial commit, pushed
        develop    same as main, pushed
        feature-x  one commit on top of main, pushed, checked out
    """
    repo_path = temp_dir / "workspace"
    repo_path.mkdir()

    repo = git.Repo.init(repo_path)

    # Configure git user for commits
    repo.config_writer().set_value("user", "name", "Test User").release()
    repo.config_writer().set_value("user", "email", "test@example.com").release()

    commit_file(repo, "README.md", "# Test Repository\n", "Initial commit")
    repo.git.branch('-M', 'main')

    repo.create_remote('origin', str(remote_repo.git_dir))
    repo.git.push('origin', 'main')

    repo.git.branch('develop')
    repo.git.push('origin', 'develop')

    repo.git.checkout('-b', 'feature-x')
    commit_file(repo, "feature.txt", "Feature content\n", "Add feature")
    repo.git.push('origin', 'feature-x')

    yield repo

    # Cleanup
    repo.close()


@pytest.fixture
def runner():
    return GitRunner()


@pytest.fixture
def query(git_repo, runner):
    return RepositoryQuery(git_repo.working_dir, "origin", runner)


@pytest.fixture
def worktree_manager(base_dir, runner):
    return WorktreeManager(str(base_dir), "origin", runner)


@pytest.fixture
def mock_worktree_manager(base_dir):
    """WorktreeManager whose primitives all succeed and record calls."""
    manager = Mock(spec=WorktreeManager)
    manager.base_dir = str(base_dir)
    manager.cleanup.return_value = True
    return manager


@pytest.fixture
def mock_query():
    """RepositoryQuery that reports HEAD moving across the merge."""
    query = Mock(spec=RepositoryQuery)
    query.head_commit.side_effect = ["before", "after"]
    return query
