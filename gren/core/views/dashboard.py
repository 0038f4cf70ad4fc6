"""Dashboard: the worktree list and the entry points to every other view."""
from dataclasses import replace

from gren.constants import KEYS_DOWN, KEYS_UP
from gren.core.commands import (
    AnalyzeProject,
    LoadActions,
    LoadAvailableBranches,
    LoadBranchStatuses,
    LoadCompare,
    LoadConfigFiles,
    PruneWorktrees,
    WriteDirective,
)
from gren.core.selection import move_cursor
from gren.core.views import Result, refresh, with_spinner
from gren.models.state import (
    AppState,
    CompareState,
    ConfigState,
    CreateState,
    DeleteState,
    DeleteStep,
    ForEachState,
    InitState,
    MergeState,
    OpenInState,
    SettingsState,
    StepCommitState,
    ToolsState,
)
from gren.models.worktree import Worktree

NOT_INITIALIZED = "Project not initialized: press i to set up gren"


def deletable(worktrees) -> list:
    """Worktrees that may be offered for deletion: never the current or main one."""
    return [wt for wt in worktrees if not wt.is_current and not wt.is_main]


def start_delete(state: AppState, worktree: Worktree) -> Result:
    if worktree.is_current:
        return replace(state, notice=f"Cannot delete the current worktree ({worktree.name})"), []
    if worktree.is_main:
        return replace(state, notice="Cannot delete the main worktree"), []
    return replace(state, view=DeleteState(step=DeleteStep.CONFIRM, target=worktree)), []


def start_multi_delete(state: AppState) -> Result:
    if not deletable(state.worktrees):
        return replace(state, notice="No worktrees can be deleted"), []
    return replace(state, view=DeleteState(step=DeleteStep.SELECTION)), []


def start_create(state: AppState) -> Result:
    if not state.is_initialized:
        return replace(state, notice=NOT_INITIALIZED), []
    selected = state.selected_worktree
    suggested = selected.branch if selected and not selected.is_detached else None
    view = CreateState(suggested_base=suggested)
    return replace(state, view=view), [LoadBranchStatuses(), LoadAvailableBranches()]


def start_compare(state: AppState, worktree: Worktree) -> Result:
    current = state.current_worktree
    if worktree.is_current or current is None:
        return replace(state, notice="Select a worktree other than the current one to compare"), []
    if worktree.is_missing:
        return replace(state, notice=f"{worktree.name} is missing on disk"), []
    view = CompareState(source=worktree, target_path=current.path)
    return with_spinner(replace(state, view=view), [LoadCompare(worktree.path, current.path)])


def start_merge(state: AppState, worktree: Worktree) -> Result:
    target = state.repo.default_branch if state.repo else "main"
    if worktree.is_main or worktree.is_detached:
        return replace(state, notice="Select a worktree with a branch to merge"), []
    if worktree.branch == target:
        return replace(state, notice=f"{worktree.branch} is already the default branch"), []
    return replace(state, view=MergeState(source=worktree, target_branch=target)), []


def start_step_commit(state: AppState, worktree: Worktree) -> Result:
    if worktree.is_missing or worktree.is_detached:
        return replace(state, notice=f"Cannot commit in {worktree.name}"), []
    return replace(state, view=StepCommitState(worktree=worktree)), []


def start_init(state: AppState) -> Result:
    if state.is_initialized:
        return replace(state, notice="Project is already initialized"), []
    return replace(state, view=InitState()), [AnalyzeProject()]


def handle_key(state: AppState, key: str) -> Result:
    selected = state.selected_worktree

    if key in KEYS_UP or key in KEYS_DOWN:
        delta = -1 if key in KEYS_UP else 1
        return replace(state, selected=move_cursor(state.selected, delta, len(state.worktrees))), []
    if key == "?":
        return replace(state, help_visible=not state.help_visible), []
    if key == "esc":
        return replace(state, help_visible=False, last_error=None, notice=None), []
    if key == "r":
        return refresh(state)
    if key == "p":
        return with_spinner(replace(state, loading=True), [PruneWorktrees()])
    if key == "t":
        return replace(state, view=ToolsState()), []
    if key == "c":
        return replace(state, view=ConfigState()), [LoadConfigFiles()]
    if key == "S":
        return replace(state, view=SettingsState()), []
    if key == "i":
        return start_init(state)
    if key == "n":
        return start_create(state)
    if key == "D":
        return start_multi_delete(state)
    if key == "f":
        return replace(state, view=ForEachState()), []

    if selected is None:
        return state, []
    if key == "enter":
        return replace(state, view=OpenInState(worktree=selected)), [LoadActions(selected.path)]
    if key == "g":
        if selected.is_missing:
            return replace(state, notice=f"{selected.name} is missing on disk"), []
        return state, [WriteDirective(selected.path)]
    if key == "d":
        return start_delete(state, selected)
    if key == "m":
        return start_compare(state, selected)
    if key == "M":
        return start_merge(state, selected)
    if key == "s":
        return start_step_commit(state, selected)
    return state, []
