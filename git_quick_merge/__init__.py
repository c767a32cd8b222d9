"""
git-quick-merge - Merge the current branch into other branches through throw-away worktrees
"""

from .__version__ import __version__
from .core import QuickMerge
from .cli.main import main

__all__ = ["QuickMerge", "main", "__version__"]
