"""Configuration handling for gren"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import toml

from gren.exceptions import ConfigError
from gren.logging_config import get_logger

logger = get_logger(__name__)

CONFIG_DIR = ".gren"
CONFIG_FILE = "config.toml"
LEGACY_CONFIG_FILE = "config.json"
DEFAULT_HOOK = ".gren/post-create.sh"
CONFIG_VERSION = "1.0.0"

PACKAGE_MANAGERS = ["auto", "bun", "yarn", "pnpm", "npm", "go", "cargo", "pip", "make", "none"]

CONFIG_HEADER = """# gren configuration
# worktree_dir:      where new worktrees are created
# package_manager:   detected package manager (auto to re-detect)
# post_create_hook:  script run inside every new worktree
"""


@dataclass
class Config:
    """Project configuration for gren with validation."""

    worktree_dir: str = ""
    package_manager: str = "auto"
    post_create_hook: str = DEFAULT_HOOK
    version: str = CONFIG_VERSION

    # GitHub integration (falls back to GITHUB_TOKEN / GH_TOKEN)
    github_token: Optional[str] = None

    # Command that turns a staged diff (on stdin) into a commit message
    commit_generator_command: str = ""
    commit_generator_args: List[str] = field(default_factory=list)

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_package_manager()
        self._validate_version()
        self._validate_commit_generator()

    def _validate_package_manager(self):
        """Validate package_manager is one of allowed values."""
        if self.package_manager not in PACKAGE_MANAGERS:
            raise ValueError(
                f"package_manager must be one of {PACKAGE_MANAGERS}, got '{self.package_manager}'"
            )

    def _validate_version(self):
        """Validate version is not empty."""
        if not self.version or not str(self.version).strip():
            raise ValueError("version cannot be empty")
        self.version = str(self.version).strip()

    def _validate_commit_generator(self):
        """Validate commit generator args is a list of strings."""
        if not isinstance(self.commit_generator_args, list):
            raise ValueError("commit_generator_args must be a list")
        self.commit_generator_args = [str(arg) for arg in self.commit_generator_args]

    @classmethod
    def default_for(cls, repo_root: str) -> "Config":
        """Build the default configuration for a repository.

        Worktrees go next to the repository in ``<project>-worktrees``.
        """
        root = Path(repo_root).resolve()
        worktree_dir = root.parent / f"{root.name}-worktrees"
        return cls(worktree_dir=str(worktree_dir))

    def resolve_worktree_dir(self, repo_root: str) -> str:
        """Absolute worktree directory, defaulting to ``../<repo>-worktrees``."""
        root = Path(repo_root).resolve()
        if not self.worktree_dir:
            return str(root.parent / f"{root.name}-worktrees")
        path = Path(os.path.expanduser(self.worktree_dir))
        if not path.is_absolute():
            path = root / path
        return str(path)

    def resolve_hook(self, repo_root: str) -> Optional[str]:
        """Absolute path of the post-create hook, or None when unset."""
        if not self.post_create_hook:
            return None
        path = Path(os.path.expanduser(self.post_create_hook))
        if not path.is_absolute():
            path = Path(repo_root) / path
        return str(path)

    def to_dict(self) -> dict:
        """Convert config to a plain dictionary."""
        data = {
            "worktree_dir": self.worktree_dir,
            "package_manager": self.package_manager,
            "post_create_hook": self.post_create_hook,
            "version": self.version,
            "commit_generator_command": self.commit_generator_command,
            "commit_generator_args": list(self.commit_generator_args),
        }
        if self.github_token:
            data["github_token"] = self.github_token
        return data

    def get(self, key: str, default=None):
        """Get config value by key."""
        return getattr(self, key, default)

    @classmethod
    def from_dict(cls, config_dict: dict) -> "Config":
        """Create Config from dictionary."""
        known_fields = {
            "worktree_dir",
            "package_manager",
            "post_create_hook",
            "version",
            "github_token",
            "commit_generator_command",
            "commit_generator_args",
        }

        filtered = {k: v for k, v in config_dict.items() if k in known_fields}
        return cls(**filtered)


class ConfigManager:
    """Loads and saves the per-repository configuration under ``.gren/``."""

    def __init__(self, repo_root: str):
        self.repo_root = repo_root
        self.config_dir = Path(repo_root) / CONFIG_DIR

    def config_path(self) -> Path:
        return self.config_dir / CONFIG_FILE

    def legacy_config_path(self) -> Path:
        return self.config_dir / LEGACY_CONFIG_FILE

    def exists(self) -> bool:
        """True when either the TOML or the legacy JSON config is present."""
        return self.config_path().exists() or self.legacy_config_path().exists()

    def load(self) -> Config:
        """Load the configuration.

        Raises:
            ConfigError: If no configuration exists or it cannot be parsed
        """
        toml_path = self.config_path()
        json_path = self.legacy_config_path()

        if toml_path.exists():
            try:
                data = toml.load(toml_path)
            except (toml.TomlDecodeError, OSError) as e:
                raise ConfigError(f"failed to read {toml_path}: {e}") from e
        elif json_path.exists():
            try:
                with open(json_path) as f:
                    data = json.load(f)
            except (json.JSONDecodeError, OSError) as e:
                raise ConfigError(f"failed to read {json_path}: {e}") from e
            logger.debug(f"Loaded legacy config from {json_path}")
        else:
            raise ConfigError("configuration not found: press i in gren to initialize")

        try:
            return Config.from_dict(data)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"invalid configuration: {e}") from e

    def save(self, config: Config) -> Path:
        """Write the configuration as TOML and drop the legacy JSON file."""
        self.config_dir.mkdir(parents=True, exist_ok=True)
        path = self.config_path()
        with open(path, "w") as f:
            f.write(CONFIG_HEADER)
            f.write("\n")
            toml.dump(config.to_dict(), f)

        legacy = self.legacy_config_path()
        if legacy.exists():
            legacy.unlink()
            logger.info(f"Migrated {legacy} to {path}")

        logger.debug(f"Saved config to {path}")
        return path

    def config_files(self, config: Optional[Config] = None) -> List[str]:
        """Existing configuration-related files, in display order."""
        candidates = [self.config_path(), self.legacy_config_path()]
        hook = (config or Config()).resolve_hook(self.repo_root)
        if hook:
            candidates.append(Path(hook))
        return [str(p) for p in candidates if p.exists()]
