"""Version information for git-quick-merge."""

__version__ = "0.1.0"
