"""Resolves the "open in..." actions available for a worktree path."""

import os
import shutil
import subprocess
import sys
from typing import List, Optional

from gren.exceptions import GrenError
from gren.logging_config import get_logger
from gren.models.worktree import Action

logger = get_logger(__name__)

NAVIGATE = "navigate"
BACK_LABEL = "Return to dashboard"


def _file_manager_command() -> str:
    return "open" if sys.platform == "darwin" else "xdg-open"


def _terminal_action(path: str) -> Action:
    """Best guess at opening a new terminal window in ``path``."""
    term_program = os.environ.get("TERM_PROGRAM", "")
    if term_program == "WarpTerminal":
        return Action("Open in Terminal", "warp-cli", ("open", path))
    if term_program == "iTerm.app":
        script = (
            'tell application "iTerm" to create window with default profile '
            f'command "cd {path}; exec $SHELL"'
        )
        return Action("Open in Terminal", "osascript", ("-e", script))
    if term_program == "Apple_Terminal":
        script = f'tell application "Terminal" to do script "cd {path}"'
        return Action("Open in Terminal", "osascript", ("-e", script))
    for terminal in ("x-terminal-emulator", "gnome-terminal", "konsole"):
        if shutil.which(terminal):
            return Action("Open in Terminal", terminal, ("--working-directory", path))
    return Action("Open in Terminal", _file_manager_command(), (path,))


class ActionResolver:
    """Lists what can be done with a worktree and launches it."""

    def candidates(self, path: str) -> List[Action]:
        return [
            Action("Navigate to folder", NAVIGATE, (path,)),
            _terminal_action(path),
            Action("Open in VS Code", "code", (path,)),
            Action("Open in Cursor", "cursor", (path,)),
            Action("Open in Zed", "zed", (path,)),
            Action("Open in file manager", _file_manager_command(), (path,)),
        ]

    def is_installed(self, command: str) -> bool:
        return bool(command) and shutil.which(command) is not None

    def resolve(self, path: str, back_label: str = BACK_LABEL) -> List[Action]:
        """Installed actions for ``path``, ending with a back entry."""
        actions = [
            action for action in self.candidates(path)
            if action.command == NAVIGATE or self.is_installed(action.command)
        ]
        actions.append(Action(back_label, ""))
        logger.debug(f"Resolved {len(actions)} actions for {path}")
        return actions

    def execute(self, action: Action, path: str) -> Optional[int]:
        """Launch ``action`` detached from gren.

        Returns:
            The child pid, or None for the back entry

        Raises:
            GrenError: If the command could not be started
        """
        if action.is_back:
            return None
        if action.is_navigate:
            raise GrenError("navigate is handled by the shell directive, not executed")
        if not os.path.isdir(path):
            raise GrenError(f"worktree path does not exist: {path}")

        logger.debug(f"Executing command: {action.command} {list(action.args)}")
        try:
            proc = subprocess.Popen(
                [action.command, *action.args],
                cwd=path,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as e:
            logger.error(f"Command failed: {e}")
            raise GrenError(f"could not run {action.command}: {e}") from e
        return proc.pid
