"""Project initialization: detect tooling and write ``.gren/`` config and hook."""

import glob
import os
import stat
from typing import List, Optional, Tuple

import git

from gren.config import Config, ConfigManager
from gren.logging_config import get_logger
from gren.models.worktree import ProjectAnalysis

logger = get_logger(__name__)

# (marker files, package manager, description), checked in order
PACKAGE_MANAGER_MARKERS: List[Tuple[Tuple[str, ...], str, str]] = [
    (("bun.lockb", "bun.lock"), "bun", "JavaScript project (bun)"),
    (("pnpm-lock.yaml",), "pnpm", "JavaScript project (pnpm)"),
    (("yarn.lock",), "yarn", "JavaScript project (yarn)"),
    (("package.json",), "npm", "JavaScript project (npm)"),
    (("go.mod",), "go", "Go module"),
    (("Cargo.toml",), "cargo", "Rust crate"),
    (("pyproject.toml", "requirements.txt", "setup.py"), "pip", "Python project"),
    (("Makefile",), "make", "generic project (Makefile)"),
]

# Untracked local files worth sharing with every worktree
LINK_CANDIDATES = [".env", ".env.local", ".env.*.local", ".envrc", ".nvmrc", ".node-version", "CLAUDE.md"]


class ProjectSetup:
    """Detects the project's tooling and writes the gren configuration."""

    def __init__(self, repo_root: str, config_manager: Optional[ConfigManager] = None):
        self.repo_root = repo_root
        self.config_manager = config_manager or ConfigManager(repo_root)

    def _exists(self, name: str) -> bool:
        return os.path.exists(os.path.join(self.repo_root, name))

    def detect_package_manager(self) -> Tuple[str, str]:
        """Return (package_manager, description)."""
        for markers, manager, description in PACKAGE_MANAGER_MARKERS:
            if any(self._exists(m) for m in markers):
                return manager, description
        return "none", "no package manager detected"

    def post_create_command(self, package_manager: str) -> str:
        if package_manager in ("bun", "pnpm", "yarn", "npm"):
            return f"{package_manager} install"
        if package_manager == "go":
            return "go mod download"
        if package_manager == "cargo":
            return "cargo fetch"
        if package_manager == "pip":
            if self._exists("requirements.txt"):
                return "pip install -r requirements.txt"
            return "pip install -e ."
        return ""

    def detect_linked_files(self) -> List[str]:
        """Git-ignored local files (``.env.local`` and friends) to symlink into worktrees."""
        found = []
        for pattern in LINK_CANDIDATES:
            for match in sorted(glob.glob(os.path.join(self.repo_root, pattern))):
                name = os.path.relpath(match, self.repo_root)
                if name not in found and self._is_ignored(name):
                    found.append(name)
        return found

    def _is_ignored(self, name: str) -> bool:
        try:
            git.Repo(self.repo_root).git.check_ignore("-q", name)
            return True
        except git.exc.GitCommandError:
            return False

    def analyze(self) -> ProjectAnalysis:
        manager, description = self.detect_package_manager()
        config = Config()
        hook = config.resolve_hook(self.repo_root)
        analysis = ProjectAnalysis(
            package_manager=manager,
            description=description,
            post_create_command=self.post_create_command(manager),
            hook_exists=bool(hook and os.path.exists(hook)),
            linked_files=tuple(self.detect_linked_files()),
        )
        logger.info(f"Detected {description}; post-create: {analysis.post_create_command or 'none'}")
        return analysis

    def hook_content(self, analysis: ProjectAnalysis) -> str:
        lines = [
            "#!/bin/sh",
            "# gren post-create hook",
            "# Runs inside every new worktree: <worktree> <branch> <base branch> <repo root>",
            "# Edit this file to customize your worktree setup",
            "set -eu",
            "",
            'WORKTREE_PATH="${1:-$GREN_WORKTREE_PATH}"',
            'BRANCH_NAME="${2:-${GREN_BRANCH:-}}"',
            'REPO_ROOT="${4:-$GREN_REPO_ROOT}"',
            "",
            'cd "$WORKTREE_PATH"',
            'echo "Running post-create setup for $BRANCH_NAME..."',
            "",
        ]
        if analysis.linked_files:
            lines.append("# Share local, git-ignored files with the main checkout")
            for name in analysis.linked_files:
                lines.append(
                    f'[ -e "$REPO_ROOT/{name}" ] && ln -sf "$REPO_ROOT/{name}" "$WORKTREE_PATH/{name}" || true'
                )
            lines.append("")
        lines.extend([
            'if command -v direnv >/dev/null 2>&1 && [ -f ".envrc" ]; then',
            "    direnv allow",
            "fi",
            "",
        ])
        if analysis.post_create_command:
            lines.append(f'echo "Installing dependencies: {analysis.post_create_command}"')
            lines.append(analysis.post_create_command)
            lines.append("")
        lines.append('echo "Post-create setup complete"')
        return "\n".join(lines) + "\n"

    def initialize(self, analysis: ProjectAnalysis) -> Config:
        """Write ``.gren/config.toml`` and the post-create hook.

        An existing hook is left untouched.
        """
        config = Config.default_for(self.repo_root)
        if analysis.package_manager != "none":
            config.package_manager = analysis.package_manager

        hook = config.resolve_hook(self.repo_root)
        if hook and not os.path.exists(hook):
            os.makedirs(os.path.dirname(hook), exist_ok=True)
            with open(hook, "w") as f:
                f.write(self.hook_content(analysis))
            mode = os.stat(hook).st_mode
            os.chmod(hook, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
            logger.info(f"Wrote post-create hook {hook}")

        self.config_manager.save(config)
        return config
