"""Delete flow for one worktree (``d``) or several (``D``)."""
from dataclasses import replace
from typing import List, Tuple

from gren.constants import KEYS_DOWN, KEYS_UP
from gren.core.commands import DeleteWorktrees
from gren.core.messages import WorktreesDeleted
from gren.core.selection import clamp, move_cursor
from gren.core.views import Result, refresh, to_dashboard, with_spinner
from gren.core.views.dashboard import deletable
from gren.models.state import AppState, DeleteState, DeleteStep
from gren.models.worktree import Worktree


def candidates(state: AppState) -> List[Worktree]:
    return deletable(state.worktrees)


def targets(state: AppState, view: DeleteState) -> Tuple[Worktree, ...]:
    """Worktrees the confirm step would delete, in list order."""
    if view.target is not None:
        return (view.target,)
    return tuple(wt for wt in candidates(state) if wt.path in view.selected_paths)


def _set(state: AppState, view: DeleteState) -> AppState:
    return replace(state, view=view)


def _selection_key(state: AppState, view: DeleteState, key: str) -> Result:
    items = candidates(state)
    if key == "esc":
        return to_dashboard(state), []
    if key in KEYS_UP or key in KEYS_DOWN:
        delta = -1 if key in KEYS_UP else 1
        return _set(state, replace(view, cursor=move_cursor(view.cursor, delta, len(items)))), []
    if key == "space" and 0 <= view.cursor < len(items):
        path = items[view.cursor].path
        return _set(state, replace(view, selected_paths=view.selected_paths ^ {path})), []
    if key == "enter":
        if not targets(state, view):
            return replace(state, notice="Select at least one worktree"), []
        return _set(state, replace(view, step=DeleteStep.CONFIRM)), []
    return state, []


def _confirm_key(state: AppState, view: DeleteState, key: str) -> Result:
    if key in ("y", "Y"):
        chosen = targets(state, view)
        if not chosen:
            return _set(state, replace(view, step=DeleteStep.SELECTION)), []
        force = view.force or (view.target is not None and not view.target.is_clean)
        command = DeleteWorktrees(targets=tuple((wt.path, wt.branch) for wt in chosen), force=force)
        return with_spinner(_set(state, replace(view, step=DeleteStep.DELETING, force=force)), [command])
    if key == "f":
        return _set(state, replace(view, force=not view.force)), []
    if key in ("n", "N"):
        return to_dashboard(state), []
    if key == "esc":
        if view.is_multi:
            return _set(state, replace(view, step=DeleteStep.SELECTION)), []
        return to_dashboard(state), []
    return state, []


def handle_key(state: AppState, key: str) -> Result:
    view = state.view
    if view.step == DeleteStep.SELECTION:
        return _selection_key(state, view, key)
    if view.step == DeleteStep.CONFIRM:
        return _confirm_key(state, view, key)
    if view.step == DeleteStep.COMPLETE and key in ("enter", "esc"):
        return to_dashboard(state), []
    return state, []


def on_worktrees_changed(state: AppState) -> AppState:
    """Drop selections whose worktree disappeared and keep the cursor in range."""
    view = state.view
    if not isinstance(view, DeleteState) or view.step != DeleteStep.SELECTION:
        return state
    items = candidates(state)
    alive = frozenset(wt.path for wt in items)
    cursor = clamp(view.cursor, 0, max(0, len(items) - 1))
    return _set(state, replace(view, selected_paths=view.selected_paths & alive, cursor=cursor))


def on_deleted(state: AppState, msg: WorktreesDeleted) -> Result:
    """Record results; the registry is refreshed whatever happened."""
    view = state.view
    if msg.error:
        return refresh(to_dashboard(state, error=msg.error))
    if not isinstance(view, DeleteState):
        return refresh(state)
    failed = [r for r in msg.results if not r.success]
    state = _set(state, replace(view, step=DeleteStep.COMPLETE, results=msg.results))
    if failed:
        state = replace(state, last_error=f"{len(failed)} worktree(s) could not be deleted")
    return refresh(state)
