"""Compare view: files changed in a worktree relative to the current one."""
from dataclasses import replace

from gren.constants import KEYS_DOWN, KEYS_UP
from gren.core.commands import ApplyChanges, LoadDiff
from gren.core.messages import ChangesApplied, CompareLoaded, DiffLoaded
from gren.core.selection import move_cursor
from gren.core.views import Result, refresh, to_dashboard, with_spinner
from gren.models.state import AppState, CompareState


def _load_diff(view: CompareState) -> LoadDiff:
    return LoadDiff(view.source.path, view.target_path, view.files[view.cursor])


def _diff_key(state: AppState, view: CompareState, key: str) -> Result:
    if key in ("esc", "left", "h"):
        return replace(state, view=replace(view, diff_focused=False)), []
    if key in KEYS_UP:
        return replace(state, view=replace(view, diff_scroll=max(0, view.diff_scroll - 1))), []
    if key in KEYS_DOWN:
        last = max(0, len(view.diff.splitlines()) - 1)
        return replace(state, view=replace(view, diff_scroll=min(view.diff_scroll + 1, last))), []
    return state, []


def handle_key(state: AppState, key: str) -> Result:
    view = state.view
    if view.applied is not None:
        return to_dashboard(state), []
    if view.diff_focused:
        return _diff_key(state, view, key)

    if key == "?":
        return replace(state, view=replace(view, show_help=not view.show_help)), []
    if key == "esc":
        if view.show_help:
            return replace(state, view=replace(view, show_help=False)), []
        return to_dashboard(state), []
    if view.loading or not view.files:
        return state, []

    if key in KEYS_UP or key in KEYS_DOWN:
        delta = -1 if key in KEYS_UP else 1
        cursor = move_cursor(view.cursor, delta, len(view.files))
        if cursor == view.cursor:
            return state, []
        view = replace(view, cursor=cursor, diff="", diff_scroll=0)
        return replace(state, view=view), [_load_diff(view)]
    if key in ("enter", "right", "l"):
        return replace(state, view=replace(view, diff_focused=True)), []
    if key == "space":
        path = view.files[view.cursor].path
        return replace(state, view=replace(view, selected=view.selected ^ {path})), []
    if key == "a":
        everything = frozenset(f.path for f in view.files)
        selected = frozenset() if view.selected == everything else everything
        return replace(state, view=replace(view, selected=selected)), []
    if key == "y":
        changes = tuple(f for f in view.files if f.path in view.selected)
        if not changes:
            return replace(state, notice="No files selected"), []
        command = ApplyChanges(view.source.path, view.target_path, changes)
        return with_spinner(replace(state, view=replace(view, applying=True)), [command])
    return state, []


def on_compare_loaded(state: AppState, msg: CompareLoaded) -> Result:
    view = state.view
    if not isinstance(view, CompareState) or view.source is None or view.source.path != msg.source_path:
        return state, []
    if msg.error:
        return to_dashboard(state, error=msg.error), []
    view = replace(
        view,
        files=msg.files,
        selected=frozenset(f.path for f in msg.files),
        cursor=0,
        loading=False,
    )
    if not view.files:
        return replace(state, view=view), []
    return replace(state, view=view), [_load_diff(view)]


def on_diff_loaded(state: AppState, msg: DiffLoaded) -> Result:
    view = state.view
    if not isinstance(view, CompareState) or not view.files:
        return state, []
    # a slower diff for a file the cursor has left is dropped
    if view.files[view.cursor].path != msg.path:
        return state, []
    diff = f"error: {msg.error}" if msg.error else msg.diff
    return replace(state, view=replace(view, diff=diff, diff_scroll=0)), []


def on_changes_applied(state: AppState, msg: ChangesApplied) -> Result:
    view = state.view
    if msg.error:
        return refresh(to_dashboard(state, error=msg.error))
    if not isinstance(view, CompareState):
        return refresh(state)
    return refresh(replace(state, view=replace(view, applying=False, applied=msg.count)))
