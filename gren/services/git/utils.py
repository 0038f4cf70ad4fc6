"""Helpers shared by the git services."""

import re
from typing import Tuple

import git

_STDERR_WRAPPER = re.compile(r"^\s*stderr:\s*'(.*)'\s*$", re.DOTALL)


def clean_stderr(error: git.exc.GitCommandError) -> str:
    """Extract git's own stderr text from a GitCommandError."""
    stderr = getattr(error, "stderr", None) or ""
    if isinstance(stderr, bytes):
        stderr = stderr.decode("utf-8", errors="replace")
    stderr = stderr.strip()
    match = _STDERR_WRAPPER.match(stderr)
    if match:
        stderr = match.group(1).strip()
    return stderr


def git_error_message(command: str, error: git.exc.GitCommandError) -> str:
    """Human readable message for a failed git command, keeping git's output."""
    stderr = clean_stderr(error)
    status = error.status if hasattr(error, "status") else "unknown"
    if stderr:
        return f"git {command} failed (exit {status}): {stderr}"
    return f"git {command} failed with exit code {status}"


def parse_status_counts(porcelain: str) -> Tuple[int, int, int]:
    """Count (staged, modified, untracked) entries in ``git status --porcelain`` output.

    Format is ``XY path`` where X is the index column and Y the work tree column.
    """
    staged = modified = untracked = 0
    for line in porcelain.split("\n"):
        if len(line) < 2:
            continue
        if line.startswith("??"):
            untracked += 1
            continue
        index_status, worktree_status = line[0], line[1]
        if index_status not in (" ", "?"):
            staged += 1
        if worktree_status not in (" ", "?"):
            modified += 1
    return staged, modified, untracked


def sanitize_branch(branch: str) -> str:
    """Filesystem-friendly form of a branch name (``feature/x`` -> ``feature-x``)."""
    return branch.replace("/", "-")
