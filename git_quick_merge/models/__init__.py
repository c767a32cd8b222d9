"""Data models for git-quick-merge."""

from .merge import (
    BatchResult,
    BatchStatus,
    CleanupResult,
    Decision,
    FlowState,
    MergeJob,
    MergeOutcome,
    MergePreset,
    MergeStage,
    UnpushedCommitsReport,
)

__all__ = [
    "BatchResult",
    "BatchStatus",
    "CleanupResult",
    "Decision",
    "FlowState",
    "MergeJob",
    "MergeOutcome",
    "MergePreset",
    "MergeStage",
    "UnpushedCommitsReport",
]
