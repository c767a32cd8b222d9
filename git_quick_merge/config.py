"""Configuration handling for git-quick-merge"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from git_quick_merge.constants import (
    CONFIG_FILE_NAME,
    DEFAULT_REMOTE,
    DEFAULT_TARGET_BRANCHES,
    STALE_CHECK_DELAY,
    STALE_CHECK_INTERVAL,
    USER_DIR_NAME,
    WORKTREES_DIR_NAME,
    default_base_dir,
)
from git_quick_merge.exceptions import ConfigError
from git_quick_merge.models.merge import MergePreset
from git_quick_merge.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class Config:
    """Configuration for git-quick-merge with validation."""

    # Remote that pulls, merges and pushes go through
    remote_name: str = DEFAULT_REMOTE

    # Target branch choices
    default_branches: List[str] = field(default_factory=lambda: list(DEFAULT_TARGET_BRANCHES))
    branches: List[str] = field(default_factory=list)
    presets: List[Union[MergePreset, Dict[str, Any]]] = field(default_factory=list)

    # Stale worktree handling
    skip_stale_worktree_check: bool = False
    stale_check_delay: float = STALE_CHECK_DELAY
    stale_check_interval: float = STALE_CHECK_INTERVAL
    base_dir: Optional[str] = None  # None means <system temp>/git-quick-merge

    # Execution modes
    interactive: bool = True
    verbose: bool = False
    debug: bool = False

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_remote_name()
        self._validate_branches()
        self._validate_presets()
        self._validate_stale_timing()
        self._validate_base_dir()

    def _validate_remote_name(self):
        """Validate remote_name is not empty."""
        if not isinstance(self.remote_name, str) or not self.remote_name.strip():
            raise ConfigError("remote_name cannot be empty")
        self.remote_name = self.remote_name.strip()

    def _validate_branches(self):
        """Validate branch lists contain non-empty names."""
        for attr in ("default_branches", "branches"):
            value = getattr(self, attr)
            if not isinstance(value, list):
                raise ConfigError(f"{attr} must be a list")
            cleaned = []
            for name in value:
                if not isinstance(name, str) or not name.strip():
                    raise ConfigError(f"{attr} contains an invalid branch name: {name!r}")
                cleaned.append(name.strip())
            setattr(self, attr, cleaned)

    def _validate_presets(self):
        """Normalize presets to MergePreset and reject malformed entries."""
        if not isinstance(self.presets, list):
            raise ConfigError("presets must be a list")

        presets = []
        seen = set()
        for raw in self.presets:
            if isinstance(raw, MergePreset):
                name, branches = raw.name, list(raw.branches)
            elif isinstance(raw, dict):
                name, branches = raw.get("name"), raw.get("branches")
            else:
                raise ConfigError(f"Invalid preset entry: {raw!r}")

            if not isinstance(name, str) or not name.strip():
                raise ConfigError("Preset name cannot be empty")
            name = name.strip()
            if name in seen:
                raise ConfigError(f"Duplicate preset name '{name}'")
            if not isinstance(branches, (list, tuple)):
                raise ConfigError(f"Preset '{name}' branches must be a list")

            # Keep first occurrence of each branch, preserving order
            unique: List[str] = []
            for branch in branches:
                if not isinstance(branch, str) or not branch.strip():
                    raise ConfigError(f"Preset '{name}' contains an invalid branch name: {branch!r}")
                if branch.strip() not in unique:
                    unique.append(branch.strip())

            seen.add(name)
            presets.append(MergePreset(name=name, branches=tuple(unique)))

        self.presets = presets

    def _validate_stale_timing(self):
        """Validate delay and interval are non-negative."""
        if self.stale_check_delay < 0:
            raise ConfigError(f"stale_check_delay must be >= 0, got {self.stale_check_delay}")
        if self.stale_check_interval < 0:
            raise ConfigError(f"stale_check_interval must be >= 0, got {self.stale_check_interval}")

    def _validate_base_dir(self):
        """Validate the worktree base directory carries the safety marker."""
        if self.base_dir is None:
            self.base_dir = default_base_dir()
            return
        path = Path(str(self.base_dir)).expanduser()
        if WORKTREES_DIR_NAME not in path.parts:
            raise ConfigError(
                f"base_dir must contain a '{WORKTREES_DIR_NAME}' path component, got '{self.base_dir}'"
            )
        self.base_dir = str(path.resolve())

    def to_dict(self) -> dict:
        """Convert config to a JSON-serializable dictionary."""
        return {
            "remote_name": self.remote_name,
            "default_branches": self.default_branches,
            "branches": self.branches,
            "presets": [{"name": p.name, "branches": list(p.branches)} for p in self.presets],
            "skip_stale_worktree_check": self.skip_stale_worktree_check,
            "stale_check_delay": self.stale_check_delay,
            "stale_check_interval": self.stale_check_interval,
            "base_dir": self.base_dir,
            "interactive": self.interactive,
            "verbose": self.verbose,
            "debug": self.debug,
        }

    def get(self, key: str, default=None):
        """Get config value by key."""
        return getattr(self, key, default)

    @classmethod
    def from_dict(cls, config_dict: dict) -> "Config":
        """Create Config from dictionary, ignoring unknown keys."""
        known_fields = {
            "remote_name",
            "default_branches",
            "branches",
            "presets",
            "skip_stale_worktree_check",
            "stale_check_delay",
            "stale_check_interval",
            "base_dir",
            "interactive",
            "verbose",
            "debug",
        }

        filtered = {k: v for k, v in config_dict.items() if k in known_fields}
        return cls(**filtered)


def find_config_file(repo_path: Optional[str] = None) -> Optional[Path]:
    """Return the first existing config file: repository, then user level."""
    candidates = []
    if repo_path:
        candidates.append(Path(repo_path) / CONFIG_FILE_NAME)
    candidates.append(Path.home() / USER_DIR_NAME / "config.json")

    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


def load_config(
    repo_path: Optional[str] = None,
    path: Optional[str] = None,
    overrides: Optional[dict] = None,
) -> Config:
    """Load configuration from a JSON file and apply overrides.

    Args:
        repo_path: Repository root searched for .git-quick-merge.json
        path: Explicit config file; must exist when given
        overrides: Values that win over the file (e.g. CLI flags); None values are dropped

    Returns:
        Validated Config

    Raises:
        ConfigError: If the file cannot be read or holds invalid values
    """
    data: Dict[str, Any] = {}

    config_path = Path(path) if path else find_config_file(repo_path)
    if path and not config_path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    if config_path:
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Could not read config file {config_path}: {e}")
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {config_path} must contain a JSON object")
        logger.debug(f"Loaded configuration from {config_path}")

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})

    return Config.from_dict(data)
