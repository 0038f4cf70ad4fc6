"""Create flow: branch mode, branch name or existing branch, base branch, confirm."""
from dataclasses import replace
from typing import List

from gren.constants import KEYS_DOWN, KEYS_UP
from gren.core.commands import CreateWorktree, ExecuteAction, LoadActions, LoadWorktrees, WriteDirective
from gren.core.messages import AvailableBranchesLoaded, BranchStatusesLoaded, WorktreeCreated
from gren.core.selection import (
    center_offset,
    edit_text,
    filter_items,
    max_visible,
    move_cursor,
    recommend_base_branch,
    scroll_into_view,
)
from gren.core.views import Result, to_dashboard, with_spinner
from gren.models.state import AppState, CreateMode, CreateState, CreateStep
from gren.services.git.branches import is_valid_branch_name

MODES = (CreateMode.NEW_BRANCH, CreateMode.EXISTING_BRANCH)


def picker_items(view: CreateState) -> List[str]:
    """Items of the active branch picker after filtering."""
    if view.step == CreateStep.EXISTING_BRANCH:
        items = list(view.available_branches)
    else:
        items = [b.name for b in view.branches]
    return filter_items(items, view.search_query)


def _centered(state: AppState, view: CreateState, selected: int) -> CreateState:
    total = len(picker_items(view))
    offset = center_offset(selected, total, max_visible(state.height))
    return replace(view, selected_index=selected, scroll_offset=offset)


def _enter_base_step(state: AppState, view: CreateState) -> CreateState:
    view = replace(
        view,
        step=CreateStep.BASE_BRANCH,
        search_active=False,
        search_query="",
        show_warning=False,
        warning_accepted=False,
    )
    names = [b.name for b in view.branches]
    target = view.base_branch or view.recommended_base
    index = names.index(target) if target in names else 0
    return _centered(state, view, index)


def _set(state: AppState, view: CreateState) -> AppState:
    return replace(state, view=view)


# ------------------------------------------------------------------- pickers

def _picker_key(state: AppState, view: CreateState, key: str):
    """Keys shared by the two branch pickers.

    Returns the updated view, or None when the key selects the item under
    the cursor.
    """
    visible = max_visible(state.height)

    if view.search_active:
        if key == "esc":
            return _centered(state, replace(view, search_active=False, search_query=""), 0)
        if key == "enter":
            return None
        if key not in ("up", "down"):
            query = edit_text(view.search_query, key)
            if query == view.search_query:
                return view
            return replace(view, search_query=query, selected_index=0, scroll_offset=0)
    elif key in ("/", "s"):
        return replace(view, search_active=True)
    elif key == "enter":
        return None

    if key in KEYS_UP or key in KEYS_DOWN:
        total = len(picker_items(view))
        delta = -1 if key in KEYS_UP else 1
        selected = move_cursor(view.selected_index, delta, total)
        offset = scroll_into_view(selected, view.scroll_offset, visible)
        return replace(
            view,
            selected_index=selected,
            scroll_offset=offset,
            show_warning=False,
            warning_accepted=False,
        )
    return view


def _existing_branch_key(state: AppState, view: CreateState, key: str) -> Result:
    if key == "esc" and not view.search_active:
        return _set(state, replace(view, step=CreateStep.BRANCH_MODE)), []
    updated = _picker_key(state, view, key)
    if updated is not None:
        return _set(state, updated), []

    items = picker_items(view)
    if not 0 <= view.selected_index < len(items):
        return _set(state, replace(view, search_active=False)), []
    view = replace(view, search_active=False, branch_name=items[view.selected_index], step=CreateStep.CONFIRM)
    return _set(state, view), []


def _base_branch_key(state: AppState, view: CreateState, key: str) -> Result:
    if key == "esc" and not view.search_active:
        if view.show_warning:
            return _set(state, replace(view, show_warning=False)), []
        return _set(state, replace(view, step=CreateStep.BRANCH_NAME)), []
    if view.branches_loading:
        return state, []

    if view.show_warning and key in ("y", "Y"):
        view = replace(view, warning_accepted=True, show_warning=False)
        return _set(state, replace(view, step=CreateStep.CONFIRM)), []

    updated = _picker_key(state, view, key)
    if updated is not None:
        return _set(state, updated), []

    items = picker_items(view)
    if not 0 <= view.selected_index < len(items):
        return _set(state, replace(view, search_active=False)), []
    name = items[view.selected_index]
    status = next((b for b in view.branches if b.name == name), None)
    view = replace(view, search_active=False, base_branch=name)
    if status is not None and not status.is_clean and not view.warning_accepted:
        return _set(state, replace(view, show_warning=True)), []
    return _set(state, replace(view, step=CreateStep.CONFIRM)), []


# --------------------------------------------------------------------- steps

def _branch_mode_key(state: AppState, view: CreateState, key: str) -> Result:
    if key == "esc":
        return to_dashboard(state), []
    if key in KEYS_UP or key in KEYS_DOWN:
        delta = -1 if key in KEYS_UP else 1
        return _set(state, replace(view, mode_cursor=move_cursor(view.mode_cursor, delta, len(MODES)))), []
    if key == "enter":
        mode = MODES[view.mode_cursor]
        if mode == CreateMode.NEW_BRANCH:
            return _set(state, replace(view, mode=mode, step=CreateStep.BRANCH_NAME)), []
        view = replace(view, mode=mode, step=CreateStep.EXISTING_BRANCH, search_query="", search_active=False)
        return _set(state, _centered(state, view, 0)), []
    return state, []


def _branch_name_key(state: AppState, view: CreateState, key: str) -> Result:
    if key == "esc":
        return _set(state, replace(view, step=CreateStep.BRANCH_MODE)), []
    if key == "enter":
        name = view.branch_name.strip()
        if not is_valid_branch_name(name):
            return replace(state, notice=f"Invalid branch name: {name!r}"), []
        if name in view.available_branches or any(b.name == name for b in view.branches):
            return replace(state, notice=f"Branch {name} already exists"), []
        return _set(state, _enter_base_step(state, replace(view, branch_name=name))), []
    return _set(state, replace(view, branch_name=edit_text(view.branch_name, key))), []


def _confirm_key(state: AppState, view: CreateState, key: str) -> Result:
    if key in ("enter", "y", "Y"):
        is_new = view.mode == CreateMode.NEW_BRANCH
        command = CreateWorktree(
            branch=view.branch_name,
            base=view.base_branch if is_new else "",
            is_new_branch=is_new,
        )
        return with_spinner(_set(state, replace(view, step=CreateStep.CREATING)), [command])
    if key in ("esc", "n", "N"):
        if view.mode == CreateMode.NEW_BRANCH:
            return _set(state, _enter_base_step(state, view)), []
        view = replace(view, step=CreateStep.EXISTING_BRANCH)
        return _set(state, _centered(state, view, view.selected_index)), []
    return state, []


def _complete_key(state: AppState, view: CreateState, key: str) -> Result:
    if key == "esc":
        return to_dashboard(state), []
    if key in KEYS_UP or key in KEYS_DOWN:
        delta = -1 if key in KEYS_UP else 1
        cursor = move_cursor(view.action_cursor, delta, len(view.actions))
        return _set(state, replace(view, action_cursor=cursor)), []
    if key == "enter" and view.actions:
        action = view.actions[view.action_cursor]
        if action.is_navigate:
            return state, [WriteDirective(view.created_path or "")]
        if action.is_back:
            return to_dashboard(state), []
        return to_dashboard(state), [ExecuteAction(action, view.created_path or "")]
    return state, []


_STEP_HANDLERS = {
    CreateStep.BRANCH_MODE: _branch_mode_key,
    CreateStep.BRANCH_NAME: _branch_name_key,
    CreateStep.EXISTING_BRANCH: _existing_branch_key,
    CreateStep.BASE_BRANCH: _base_branch_key,
    CreateStep.CONFIRM: _confirm_key,
    CreateStep.COMPLETE: _complete_key,
}


def handle_key(state: AppState, key: str) -> Result:
    view = state.view
    handler = _STEP_HANDLERS.get(view.step)
    if handler is None:
        return state, []
    return handler(state, view, key)


# ------------------------------------------------------------------ messages

def on_branch_statuses(state: AppState, msg: BranchStatusesLoaded) -> Result:
    view = state.view
    if not isinstance(view, CreateState):
        return state, []
    if msg.error:
        return to_dashboard(state, error=msg.error), []
    recommended = recommend_base_branch(msg.statuses, view.suggested_base)
    view = replace(
        view,
        branches=msg.statuses,
        branches_loading=False,
        recommended_base=recommended,
        base_branch=view.base_branch or recommended or "",
    )
    if view.step == CreateStep.BASE_BRANCH:
        view = _enter_base_step(state, view)
    return _set(state, view), []


def on_available_branches(state: AppState, msg: AvailableBranchesLoaded) -> Result:
    view = state.view
    if not isinstance(view, CreateState):
        return state, []
    if msg.error:
        return to_dashboard(state, error=msg.error), []
    return _set(state, replace(view, available_branches=msg.branches)), []


def on_worktree_created(state: AppState, msg: WorktreeCreated) -> Result:
    if msg.error or msg.result is None:
        state = to_dashboard(state, error=msg.error or "worktree creation failed")
        return replace(state, loading=True), [LoadWorktrees()]

    result = msg.result
    view = state.view
    if not isinstance(view, CreateState):
        view = CreateState()
    view = replace(
        view,
        step=CreateStep.COMPLETE,
        created_path=result.path,
        warning=result.warning,
        actions=(),
        action_cursor=0,
    )
    return replace(state, view=view, loading=True), [LoadWorktrees(), LoadActions(result.path)]
