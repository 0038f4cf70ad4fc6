"""Cleanup engine: stale worktree selection and one-at-a-time removal.

All functions here are pure; they take and return ``CleanupState`` values.
The actual removal runs in the dispatcher through the deletion protocol and
comes back as a ``StaleWorktreeRemoved`` message.
"""
from dataclasses import replace
from typing import Optional, Sequence, Tuple

from gren.models.state import CleanupState
from gren.models.worktree import PRState, RemovalReason, StaleReason, Worktree

# Substrings of ``git worktree remove`` output, checked in order
_REMOVAL_PATTERNS = (
    ("submodules", RemovalReason.HAS_SUBMODULES),
    ("modified or untracked files", RemovalReason.UNCOMMITTED_CHANGES),
    ("is not a working tree", RemovalReason.NOT_A_WORKTREE),
)


def classify_removal_error(output: Optional[str]) -> RemovalReason:
    """Map git's removal error text to a reason the user can act on."""
    text = output or ""
    for needle, reason in _REMOVAL_PATTERNS:
        if needle in text:
            return reason
    return RemovalReason.FAILED


def is_known_removal_error(output: Optional[str]) -> bool:
    return any(needle in (output or "") for needle, _ in _REMOVAL_PATTERNS)


def is_preselected(worktree: Worktree) -> bool:
    """Only merged PRs with nothing uncommitted are checked by default."""
    return (
        worktree.stale_reason == StaleReason.PR_MERGED
        and worktree.pr_state == PRState.MERGED
        and worktree.is_clean
    )


def collect_stale(worktrees: Sequence[Worktree]) -> Tuple[Worktree, ...]:
    """Stale worktrees eligible for cleanup, in registry order."""
    return tuple(
        wt for wt in worktrees
        if wt.is_stale and not wt.is_current and not wt.is_main
    )


def start_cleanup(worktrees: Sequence[Worktree]) -> Optional[CleanupState]:
    """Build the cleanup state, or None when nothing is stale."""
    stale = collect_stale(worktrees)
    if not stale:
        return None
    selected = frozenset(i for i, wt in enumerate(stale) if is_preselected(wt))
    return CleanupState(stale_worktrees=stale, selected=selected)


def move(state: CleanupState, delta: int) -> CleanupState:
    """Cursor moves over [-1, len-1] and stops at both ends."""
    last = len(state.stale_worktrees) - 1
    cursor = max(-1, min(state.cursor + delta, last))
    return replace(state, cursor=cursor)


def toggle(state: CleanupState) -> CleanupState:
    """Toggle the row under the cursor; the cursor itself never moves."""
    if state.confirmed:
        return state
    if state.cursor == -1:
        return replace(state, force=not state.force)
    if not 0 <= state.cursor < len(state.stale_worktrees):
        return state
    return replace(state, selected=state.selected ^ {state.cursor})


def resolve_force(state: CleanupState) -> bool:
    """Force is required as soon as one selected worktree has submodules."""
    return state.force or any(
        state.stale_worktrees[i].has_submodules for i in state.selected
    )


def confirm(state: CleanupState) -> Optional[CleanupState]:
    """Freeze the selection and point at the first worktree to remove.

    Returns None when nothing is selected.
    """
    if not state.selected or state.confirmed:
        return None
    frozen = replace(state, confirmed=True, force=resolve_force(state), in_progress=True)
    return replace(frozen, current_index=frozen.pending[0])


def record_result(state: CleanupState, index: int, error: Optional[str]) -> CleanupState:
    """Record the outcome for ``index`` and advance to the next pending index.

    A failure never stops the run; the remaining worktrees are still tried.
    """
    if index not in state.selected or index in state.deleted or index in state.failed_indices:
        return state
    if error is None:
        state = replace(
            state,
            deleted=state.deleted | {index},
            total_cleaned=state.total_cleaned + 1,
        )
    else:
        failed = tuple(sorted(state.failed + ((index, classify_removal_error(error)),)))
        state = replace(state, failed=failed, total_failed=state.total_failed + 1)

    pending = state.pending
    if pending:
        return replace(state, current_index=pending[0])
    return replace(state, current_index=-1, in_progress=False, complete=True)


def failures(state: CleanupState) -> Tuple[Tuple[Worktree, RemovalReason], ...]:
    """Failed worktrees and their reasons, in index order."""
    return tuple(
        (state.stale_worktrees[i], reason) for i, reason in state.failed
    )
