"""Services for git-quick-merge."""
