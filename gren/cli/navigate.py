"""``gren navigate``: change the calling shell's directory to a worktree."""

from typing import Optional, Sequence

from gren.exceptions import GrenError
from gren.logging_config import get_logger
from gren.models.worktree import Worktree
from gren.services.directive import DirectiveWriter
from gren.services.git import WorktreeService

logger = get_logger(__name__)

SETUP_HINT = 'Run: eval "$(gren shell-init zsh)"  # or bash/fish'


class NavigationError(GrenError):
    """Raised when no worktree matches a navigate query."""


def find_worktree(worktrees: Sequence[Worktree], query: str) -> Optional[Worktree]:
    """Best match for ``query``, checked in order of precision.

    Exact name, exact branch, branch ending in ``/query`` or ``-query``, then
    any branch containing ``query``. Matching ignores case.
    """
    query = query.lower()
    rules = (
        lambda wt: wt.name.lower() == query,
        lambda wt: wt.branch.lower() == query,
        lambda wt: wt.branch.lower().endswith(("/" + query, "-" + query)),
        lambda wt: query in wt.branch.lower(),
    )
    for rule in rules:
        for wt in worktrees:
            if rule(wt):
                return wt
    return None


def resolve_target(service: WorktreeService, worktrees: Sequence[Worktree], query: str) -> Worktree:
    """Worktree for ``query``; ``-`` is the previous one and ``@`` the current one.

    Raises:
        NavigationError: If nothing matches
    """
    if query == "-":
        previous = service.previous_worktree()
        if not previous:
            raise NavigationError("no previous worktree")
        target = next((wt for wt in worktrees if wt.path == previous), None)
        if target is None:
            raise NavigationError(f"previous worktree no longer exists: {previous}")
        return target

    if query == "@":
        target = next((wt for wt in worktrees if wt.is_current), None)
        if target is None:
            raise NavigationError("not in a worktree")
        return target

    target = find_worktree(worktrees, query)
    if target is None:
        available = "\n".join(f"  {wt.name} ({wt.branch})" for wt in worktrees)
        raise NavigationError(f"no worktree matching '{query}'\n\nAvailable worktrees:\n{available}")
    return target


def navigate(service: WorktreeService, directive: DirectiveWriter, query: str, cwd: str) -> Worktree:
    """Write a ``cd`` directive for the worktree matching ``query``.

    The worktree being left is remembered so that ``gren navigate -`` can
    come back to it.
    """
    worktrees = service.list_worktrees(cwd)
    target = resolve_target(service, worktrees, query)

    current = next((wt for wt in worktrees if wt.is_current), None)
    if current is not None and current.path != target.path:
        service.set_previous_worktree(current.path)

    directive.write_cd(target.path)
    logger.info(f"Navigating to {target.path}")
    return target
