"""Tests for the QuickMerge facade"""
import os
from unittest.mock import Mock

import pytest

from conftest import commit_file
from git_quick_merge.config import Config
from git_quick_merge.core import QuickMerge
from git_quick_merge.exceptions import (
    DetachedHeadError,
    GitQuickMergeError,
    MergeAbortedError,
    PresetNotFoundError,
)
from git_quick_merge.models.merge import BatchStatus, Decision, FlowState, MergePreset


class TestQuickMergeInit:
    """Test QuickMerge initialization."""

    def test_init_with_dict(self, git_repo, mock_config):
        quick_merge = QuickMerge(git_repo.working_dir, mock_config)
        assert isinstance(quick_merge.config, Config)
        assert quick_merge.repo_path == git_repo.working_dir

    def test_init_from_subdirectory(self, git_repo, mock_config):
        subdir = os.path.join(git_repo.working_dir, "sub")
        os.makedirs(subdir)
        quick_merge = QuickMerge(subdir, mock_config)
        assert quick_merge.repo_path == git_repo.working_dir

    def test_init_outside_repository(self, temp_dir, mock_config):
        plain = temp_dir / "plain"
        plain.mkdir()
        with pytest.raises(GitQuickMergeError, match="Error initializing repository"):
            QuickMerge(str(plain), mock_config)

    def test_init_bare_repository(self, remote_repo, mock_config):
        with pytest.raises(GitQuickMergeError, match="bare"):
            QuickMerge(remote_repo.git_dir, mock_config)

    def test_current_branch(self, git_repo, mock_config):
        assert QuickMerge(git_repo.working_dir, mock_config).current_branch() == "feature-x"

    def test_current_branch_detached(self, git_repo, mock_config):
        git_repo.git.checkout(git_repo.head.commit.hexsha)
        with pytest.raises(DetachedHeadError):
            QuickMerge(git_repo.working_dir, mock_config).current_branch()


class TestTargetsAndPresets:
    """Test target choices and preset filtering."""

    def test_target_choices(self, git_repo, mock_config):
        quick_merge = QuickMerge(git_repo.working_dir, mock_config)
        assert quick_merge.target_choices("feature-x") == ["develop", "release", "master", "staging"]
        assert quick_merge.target_choices("develop") == ["release", "master", "staging"]

    def test_target_choices_deduplicated(self, git_repo, mock_config):
        mock_config["branches"] = ["release", "qa"]
        quick_merge = QuickMerge(git_repo.working_dir, mock_config)
        assert quick_merge.target_choices() == ["develop", "release", "master", "qa"]

    def test_available_presets_filter_current_branch(self, git_repo, mock_config):
        quick_merge = QuickMerge(git_repo.working_dir, mock_config)

        presets = quick_merge.available_presets("develop")

        assert presets == [MergePreset("all", ("release",)), MergePreset("self", ("feature-x",))]

    def test_preset_of_only_current_branch_hidden(self, git_repo, mock_config):
        quick_merge = QuickMerge(git_repo.working_dir, mock_config)
        names = [p.name for p in quick_merge.available_presets("feature-x")]
        assert names == ["all", "dev-only"]

    def test_get_preset_unknown(self, git_repo, mock_config):
        quick_merge = QuickMerge(git_repo.working_dir, mock_config)
        with pytest.raises(PresetNotFoundError, match="not found"):
            quick_merge.get_preset("nope")

    def test_get_preset_empty_after_filtering(self, git_repo, mock_config):
        quick_merge = QuickMerge(git_repo.working_dir, mock_config)
        with pytest.raises(PresetNotFoundError, match="no target branches"):
            quick_merge.get_preset("self", "feature-x")


class TestMerging:
    """Test merges through the facade against a real repository."""

    def test_run_flow(self, git_repo, remote_repo, mock_config):
        quick_merge = QuickMerge(git_repo.working_dir, mock_config)

        outcome = quick_merge.run_flow("develop")

        assert outcome.state is FlowState.SUCCEEDED
        assert remote_repo.commit("develop").hexsha == git_repo.commit("feature-x").hexsha

    def test_run_preset_partial(self, git_repo, mock_config):
        quick_merge = QuickMerge(git_repo.working_dir, mock_config)

        result = quick_merge.run_preset("all")

        assert result.preset == "all"
        assert result.succeeded == ["develop"]
        assert result.failed == ["release"]
        assert result.status is BatchStatus.PARTIAL

    def test_abort_creates_nothing(self, git_repo, base_dir, mock_config):
        commit_file(git_repo, "local.txt", "local\n", "Local change")
        decide = Mock(return_value=Decision.ABORT)
        quick_merge = QuickMerge(git_repo.working_dir, mock_config, decide=decide)

        with pytest.raises(MergeAbortedError):
            quick_merge.run_batch(["develop", "release"])

        decide.assert_called_once()
        assert not base_dir.exists() or not os.listdir(base_dir)

    def test_unpushed_without_decision_function(self, git_repo, mock_config):
        commit_file(git_repo, "local.txt", "local\n", "Local change")
        quick_merge = QuickMerge(git_repo.working_dir, mock_config)

        with pytest.raises(GitQuickMergeError, match="unpushed"):
            quick_merge.run_flow("develop")

    def test_continue_without_push_is_no_op(self, git_repo, mock_config):
        git_repo.git.push('origin', 'feature-x:develop')
        commit_file(git_repo, "local1.txt", "1\n", "Local 1")
        commit_file(git_repo, "local2.txt", "2\n", "Local 2")
        quick_merge = QuickMerge(
            git_repo.working_dir, mock_config, decide=Mock(return_value=Decision.CONTINUE_WITHOUT_PUSH)
        )

        outcome = quick_merge.run_flow("develop")

        assert outcome.state is FlowState.SUCCEEDED_NO_OP

    def test_push_and_continue_includes_local_commits(self, git_repo, remote_repo, mock_config):
        head = commit_file(git_repo, "local.txt", "local\n", "Local change")
        quick_merge = QuickMerge(
            git_repo.working_dir, mock_config, decide=Mock(return_value=Decision.PUSH_AND_CONTINUE)
        )

        outcome = quick_merge.run_flow("develop")

        assert outcome.state is FlowState.SUCCEEDED
        assert remote_repo.commit("develop").hexsha == head

    def test_state_and_target_callbacks(self, git_repo, mock_config):
        on_state = Mock()
        on_target = Mock()
        quick_merge = QuickMerge(git_repo.working_dir, mock_config, on_state=on_state, on_target=on_target)

        quick_merge.run_batch(["develop"])

        on_target.assert_called_once_with(1, 1, "develop")
        states = [c.args[1] for c in on_state.call_args_list]
        assert states[-1] is FlowState.SUCCEEDED


class TestStaleCleanup:
    """Test stale cleanup entry points."""

    def test_cleanup_stale(self, git_repo, base_dir, mock_config):
        (base_dir / "merge-develop-000001").mkdir(parents=True)
        quick_merge = QuickMerge(git_repo.working_dir, mock_config)

        assert quick_merge.cleanup_stale().success == 1
        assert quick_merge.cleanup_stale().success == 0

    def test_startup_cleanup_disabled(self, git_repo, base_dir, mock_config):
        (base_dir / "merge-develop-000001").mkdir(parents=True)
        quick_merge = QuickMerge(git_repo.working_dir, mock_config)

        assert quick_merge.startup_cleanup() is None
        assert quick_merge.schedule_startup_cleanup() is None
        assert (base_dir / "merge-develop-000001").exists()

    def test_startup_cleanup_enabled(self, git_repo, base_dir, mock_config):
        (base_dir / "merge-develop-000001").mkdir(parents=True)
        mock_config["skip_stale_worktree_check"] = False
        quick_merge = QuickMerge(git_repo.working_dir, mock_config)

        assert quick_merge.startup_cleanup().success == 1
        assert quick_merge.startup_cleanup() is None

    def test_scheduled_startup_cleanup(self, git_repo, base_dir, mock_config):
        (base_dir / "merge-develop-000001").mkdir(parents=True)
        mock_config.update(skip_stale_worktree_check=False, stale_check_delay=0)
        quick_merge = QuickMerge(git_repo.working_dir, mock_config)

        timer = quick_merge.schedule_startup_cleanup()
        timer.join(timeout=10)

        assert not (base_dir / "merge-develop-000001").exists()
