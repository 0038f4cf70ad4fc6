"""Compare two worktrees and copy selected changes between them."""

import os
import shutil
from pathlib import PurePath
from typing import Dict, Iterable, List

import git

from gren.exceptions import GitOperationError, GrenError
from gren.logging_config import get_logger
from gren.models.worktree import FileChange

logger = get_logger(__name__)


def validate_relative_path(path: str) -> None:
    """Reject paths that could escape the worktree root.

    Raises:
        GrenError: If the path is absolute or contains ``..``
    """
    if not path or os.path.isabs(path) or ".." in PurePath(path).parts:
        raise GrenError(f"refusing to touch unsafe path: {path!r}")


def parse_name_status(output: str) -> List[FileChange]:
    """Parse ``git diff --name-status`` output."""
    changes = []
    for line in output.split("\n"):
        fields = line.split("\t")
        if len(fields) < 2 or not fields[0]:
            continue
        code = fields[0][0]
        if code == "R" and len(fields) >= 3:
            changes.append(FileChange(path=fields[1], status="D"))
            changes.append(FileChange(path=fields[2], status="A"))
        elif code == "C" and len(fields) >= 3:
            changes.append(FileChange(path=fields[2], status="A"))
        elif code in ("A", "D"):
            changes.append(FileChange(path=fields[1], status=code))
        else:
            changes.append(FileChange(path=fields[1], status="M"))
    return changes


def parse_uncommitted(porcelain: str) -> List[FileChange]:
    """Parse ``git status --porcelain`` output into uncommitted file changes."""
    changes = []
    for line in porcelain.split("\n"):
        if len(line) < 4:
            continue
        code = line[:2]
        path = line[3:]
        if " -> " in path:
            # Renames are reported as "old -> new"; the new path is what exists
            path = path.split(" -> ", 1)[1]
        path = path.strip('"')
        if code == "??" or "A" in code:
            status = "A"
        elif "D" in code:
            status = "D"
        else:
            status = "M"
        changes.append(FileChange(path=path, status=status, uncommitted=True))
    return changes


class CompareService:
    """Finds what a source worktree has that the target worktree lacks."""

    def __init__(self, repo_path: str):
        self.repo_path = repo_path

    def _get_repo(self):
        return git.Repo(self.repo_path, search_parent_directories=True)

    def _git_in(self, path: str, *args: str, **kwargs) -> str:
        return self._get_repo().git.execute(["git", "-C", path, *args], **kwargs)

    def changed_files(self, source_path: str, target_path: str) -> List[FileChange]:
        """Files changed in ``source_path`` relative to ``target_path``.

        Committed changes are taken since the merge base of the two HEADs;
        uncommitted changes in the source override committed ones.
        """
        try:
            target_head = self._git_in(target_path, "rev-parse", "HEAD").strip()
            committed = parse_name_status(
                self._git_in(source_path, "diff", "--name-status", f"{target_head}...HEAD")
            )
            uncommitted = parse_uncommitted(
                self._git_in(source_path, "status", "--porcelain", "--untracked-files=all")
            )
        except git.exc.GitCommandError as e:
            raise GitOperationError("compare", source_path, str(e)) from e

        merged: Dict[str, FileChange] = {}
        for change in committed:
            merged[change.path] = change
        for change in uncommitted:
            merged[change.path] = change

        changes = [merged[p] for p in sorted(merged)]
        logger.debug(f"{len(changes)} changed file(s) between {source_path} and {target_path}")
        return changes

    def file_diff(self, source_path: str, target_path: str, change: FileChange) -> str:
        """Unified diff of one file as it is on disk in both worktrees."""
        validate_relative_path(change.path)
        source_file = os.path.join(source_path, change.path)
        target_file = os.path.join(target_path, change.path)
        old = target_file if os.path.exists(target_file) else os.devnull
        new = source_file if os.path.exists(source_file) else os.devnull
        # --no-index exits 1 when the files differ
        return self._git_in(
            source_path, "diff", "--no-index", "--no-color", "--", old, new,
            with_exceptions=False,
        )

    def apply(self, source_path: str, target_path: str, changes: Iterable[FileChange]) -> int:
        """Copy added/modified files to the target and delete removed ones.

        Returns:
            Number of files applied
        """
        changes = list(changes)
        for change in changes:
            validate_relative_path(change.path)

        applied = 0
        for change in changes:
            destination = os.path.join(target_path, change.path)
            if change.status == "D":
                if os.path.lexists(destination):
                    os.remove(destination)
                    applied += 1
                continue

            source = os.path.join(source_path, change.path)
            if not os.path.exists(source):
                logger.warning(f"Skipping {change.path}: missing in {source_path}")
                continue
            os.makedirs(os.path.dirname(destination) or target_path, exist_ok=True)
            shutil.copy2(source, destination)
            applied += 1

        logger.info(f"Applied {applied} file(s) from {source_path} to {target_path}")
        return applied
