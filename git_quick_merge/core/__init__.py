"""Core orchestration for git-quick-merge."""

from .quick_merge import QuickMerge

__all__ = ["QuickMerge"]
