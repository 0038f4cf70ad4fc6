"""Shell directives: ask the wrapping shell to cd (and run something) after exit.

The shell wrapper sets ``GREN_DIRECTIVE_FILE`` to a temp file and sources it
once gren exits.
"""

import os
from typing import Optional

from gren.logging_config import get_logger

logger = get_logger(__name__)

ENV_DIRECTIVE_FILE = "GREN_DIRECTIVE_FILE"
LEGACY_DIRECTIVE_FILE = "/tmp/gren_navigate"


def quote_for_shell(value: str) -> str:
    """Double-quote ``value`` for POSIX shells."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("$", "\\$").replace("`", "\\`")
    return f'"{escaped}"'


class DirectiveWriter:
    """Writes the directive file consumed by the shell integration."""

    def __init__(self, path: Optional[str] = None):
        self._path = path
        self.written = False

    @property
    def path(self) -> str:
        return self._path or os.environ.get(ENV_DIRECTIVE_FILE) or LEGACY_DIRECTIVE_FILE

    def write(self, directive: str) -> None:
        with open(self.path, "w") as f:
            f.write(directive + "\n")
        self.written = True
        logger.debug(f"Wrote directive to {self.path}: {directive!r}")

    def write_cd(self, worktree_path: str) -> None:
        self.write(f"cd {quote_for_shell(worktree_path)}")

    def write_cd_and_run(self, worktree_path: str, command: str) -> None:
        self.write(f"cd {quote_for_shell(worktree_path)}\n{command}")

    def clear(self) -> None:
        """Remove a stale directive file; a missing file is fine."""
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass

    def is_shell_integration_active(self) -> bool:
        return bool(os.environ.get(ENV_DIRECTIVE_FILE))
