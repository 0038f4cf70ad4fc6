"""Per-view key and message handlers used by ``gren.core.update``.

Every handler takes the current ``AppState`` and returns the next state plus
the commands to dispatch. Handlers never perform I/O.
"""
from dataclasses import replace
from typing import List, Optional, Tuple

from gren.core.commands import Command, LoadWorktrees, Tick
from gren.models.state import (
    AppState,
    CleanupState,
    CompareState,
    CreateState,
    CreateStep,
    DashboardState,
    DeleteState,
    DeleteStep,
    ForEachState,
    ForEachStep,
    InitState,
    InitStep,
    MergeState,
    MergeStep,
    StepCommitState,
    StepCommitStep,
)

Result = Tuple[AppState, List[Command]]


def to_dashboard(state: AppState, error: Optional[str] = None, notice: Optional[str] = None) -> AppState:
    """Leave the active view; sub-state is discarded."""
    return replace(
        state,
        view=DashboardState(),
        last_error=error if error is not None else state.last_error,
        notice=notice,
    )


def refresh(state: AppState, commands: Optional[List[Command]] = None) -> Result:
    """Ask for a new worktree snapshot."""
    return replace(state, loading=True), list(commands or []) + [LoadWorktrees()]


def is_busy(state: AppState) -> bool:
    """Something is running that the spinner should animate for."""
    if state.loading or state.github_loading or is_operation_running(state):
        return True
    view = state.view
    if isinstance(view, CreateState) and view.branches_loading:
        return True
    if isinstance(view, CompareState) and view.loading:
        return True
    return isinstance(view, CleanupState) and view.in_progress


def is_operation_running(state: AppState) -> bool:
    """A destructive command is in flight; only quitting is allowed meanwhile."""
    view = state.view
    if isinstance(view, CreateState):
        return view.step == CreateStep.CREATING
    if isinstance(view, DeleteState):
        return view.step == DeleteStep.DELETING
    if isinstance(view, MergeState):
        return view.step == MergeStep.IN_PROGRESS
    if isinstance(view, ForEachState):
        return view.step == ForEachStep.RUNNING
    if isinstance(view, StepCommitState):
        return view.step == StepCommitStep.IN_PROGRESS
    if isinstance(view, InitState):
        return view.step == InitStep.RUNNING
    if isinstance(view, CompareState):
        return view.applying
    return False


def accepts_text(state: AppState) -> bool:
    """The focused widget is a text field, so ``q`` is typed rather than quitting."""
    view = state.view
    if isinstance(view, CreateState):
        return view.step == CreateStep.BRANCH_NAME or view.search_active
    if isinstance(view, ForEachState):
        return view.step == ForEachStep.INPUT
    if isinstance(view, StepCommitState):
        return view.step == StepCommitStep.MESSAGE
    return False


def with_spinner(state: AppState, commands: List[Command]) -> Result:
    """Start the spinner chain unless one is already running."""
    if state.spinner_running:
        return state, commands
    return replace(state, spinner_running=True), commands + [Tick()]
