"""Worktree deletion protocol shared by single delete, multi delete and cleanup."""

import os
from typing import Iterable, List, Optional, Tuple

from gren.logging_config import get_logger
from gren.models.worktree import DeletionResult
from gren.services.git.worktrees import WorktreeService

logger = get_logger(__name__)


def remove_external_symlinks(path: str) -> List[str]:
    """Remove top-level symlinks in ``path`` that point outside of it.

    Post-create hooks often link shared files (``.env``, ``node_modules``) back
    into the main checkout; those links make ``git worktree remove`` refuse.
    Errors are logged and swallowed.

    Returns:
        Paths of the removed links
    """
    removed = []
    try:
        root = os.path.realpath(path)
        entries = os.listdir(path)
    except OSError as e:
        logger.debug(f"Could not scan {path} for symlinks: {e}")
        return removed

    for entry in entries:
        link = os.path.join(path, entry)
        if not os.path.islink(link):
            continue
        try:
            target = os.readlink(link)
            if not os.path.isabs(target):
                target = os.path.join(path, target)
            target = os.path.realpath(target)
            if target == root or target.startswith(root + os.sep):
                continue
            os.unlink(link)
            removed.append(link)
            logger.debug(f"Removed external symlink {link} -> {target}")
        except OSError as e:
            logger.warning(f"Could not remove symlink {link}: {e}")
    return removed


class DeletionProtocol:
    """Ordered removal of one worktree.

    1. remove symlinks pointing outside the worktree (best effort)
    2. deinit submodules when ``.gitmodules`` exists (abort on failure)
    3. ``git worktree remove``, forced when submodules exist or force is requested
    """

    def __init__(self, worktree_service: WorktreeService):
        self.worktree_service = worktree_service

    def delete(self, path: str, force: bool = False) -> Tuple[bool, Optional[str]]:
        """Remove the worktree at ``path``.

        Returns:
            Tuple of (success, error_message). error_message is None on success.
        """
        logger.info(f"Deleting worktree {path} (force={force})")
        remove_external_symlinks(path)

        has_submodules = os.path.exists(os.path.join(path, ".gitmodules"))
        if has_submodules:
            ok, error = self.worktree_service.deinit_submodules(path)
            if not ok:
                return False, error

        return self.worktree_service.remove_worktree(path, force=force or has_submodules)

    def delete_many(
        self, targets: Iterable[Tuple[str, str]], force: bool = False
    ) -> List[DeletionResult]:
        """Delete several worktrees, continuing past failures.

        Args:
            targets: (path, branch) pairs
            force: Force removal of every target
        """
        results = []
        for path, branch in targets:
            ok, error = self.delete(path, force=force)
            results.append(DeletionResult(path=path, branch=branch, success=ok, error=error))
        return results
