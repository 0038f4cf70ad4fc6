"""The state machine: ``update(state, message) -> (state, commands)``.

``update`` is deterministic and does no I/O. Everything it needs from the
outside world arrives as a message; everything it wants done leaves as a
command for the dispatcher.
"""
from dataclasses import replace
from typing import Callable, Dict, List, Type

from gren.constants import SPINNER_FRAMES
from gren.core import messages as m
from gren.core.commands import CheckGitHub, Command, LoadGitHubStatus, LoadProjectInfo, LoadWorktrees, Quit, Tick
from gren.core.selection import clamp
from gren.core.views import (
    Result,
    accepts_text,
    compare,
    create,
    dashboard,
    delete,
    flows,
    is_busy,
    is_operation_running,
    menus,
    tools,
)
from gren.models.state import AppState, CleanupState, View
from gren.models.worktree import GitHubAvailability

_KEY_HANDLERS: Dict[View, Callable[[AppState, str], Result]] = {
    View.DASHBOARD: dashboard.handle_key,
    View.CREATE: create.handle_key,
    View.DELETE: delete.handle_key,
    View.TOOLS: tools.handle_tools_key,
    View.CLEANUP: tools.handle_cleanup_key,
    View.COMPARE: compare.handle_key,
    View.MERGE: flows.handle_merge_key,
    View.FOR_EACH: flows.handle_for_each_key,
    View.STEP_COMMIT: flows.handle_step_commit_key,
    View.OPEN_IN: menus.handle_open_in_key,
    View.CONFIG: menus.handle_config_key,
    View.SETTINGS: menus.handle_settings_key,
    View.INIT: menus.handle_init_key,
}


def initial_commands() -> List[Command]:
    """Commands to dispatch once at startup."""
    return [LoadProjectInfo(), LoadWorktrees(), Tick()]


def initial_state(width: int = 80, height: int = 24) -> AppState:
    return AppState(width=width, height=height, spinner_running=True)


def update(state: AppState, message: m.Message) -> Result:
    """Apply one message to ``state``."""
    handler = _MESSAGE_HANDLERS.get(type(message))
    if handler is None:
        return state, []
    return handler(state, message)


# ----------------------------------------------------------------------- keys

def _on_key(state: AppState, msg: m.KeyPressed) -> Result:
    key = msg.key
    state = replace(state, notice=None)

    if state.fatal_error:
        if key in ("q", "esc", "ctrl+c"):
            return state, [Quit()]
        return state, []

    # a cleanup run cannot be interrupted, not even by quitting
    if isinstance(state.view, CleanupState) and state.view.in_progress:
        return state, []

    if key == "ctrl+c":
        return state, [Quit()]
    if key == "q" and not accepts_text(state):
        return state, [Quit()]
    if is_operation_running(state):
        return state, []

    if state.help_visible:
        if key in ("?", "esc"):
            return replace(state, help_visible=False), []
        return state, []

    return _KEY_HANDLERS[state.view_kind](state, key)


def _on_resize(state: AppState, msg: m.WindowResized) -> Result:
    return replace(state, width=msg.width, height=msg.height), []


def _on_tick(state: AppState, msg: m.SpinnerTicked) -> Result:
    if not is_busy(state):
        return replace(state, spinner_running=False), []
    frame = (state.spinner_frame + 1) % len(SPINNER_FRAMES)
    return replace(state, spinner_frame=frame, spinner_running=True), [Tick()]


# ------------------------------------------------------------------- registry

def _on_project_info(state: AppState, msg: m.ProjectInfoLoaded) -> Result:
    if msg.error:
        return replace(state, fatal_error=msg.error, loading=False), []
    return replace(state, repo=msg.repo, config=msg.config), []


def _on_worktrees(state: AppState, msg: m.WorktreesLoaded) -> Result:
    if msg.error:
        return replace(state, loading=False, last_error=msg.error), []

    generation = state.generation + 1
    selected = clamp(state.selected, 0, max(0, len(msg.worktrees) - 1))
    state = replace(
        state,
        worktrees=msg.worktrees,
        generation=generation,
        selected=selected,
        loading=False,
    )
    state = delete.on_worktrees_changed(state)

    if state.github == GitHubAvailability.AVAILABLE:
        state = replace(state, github_loading=True)
        return state, [LoadGitHubStatus(generation, msg.worktrees)]
    if state.github == GitHubAvailability.UNCHECKED:
        return state, [CheckGitHub()]
    return state, []


def _on_github_checked(state: AppState, msg: m.GitHubChecked) -> Result:
    state = replace(state, github=msg.availability)
    if msg.availability != GitHubAvailability.AVAILABLE or not state.worktrees:
        return state, []
    state = replace(state, github_loading=True)
    return state, [LoadGitHubStatus(state.generation, state.worktrees)]


def _on_github_status(state: AppState, msg: m.GitHubStatusLoaded) -> Result:
    if msg.generation != state.generation:
        # computed from an older snapshot; a newer request is in flight
        return state, []
    state = replace(state, github_loading=False)
    if msg.error:
        return state, []
    return replace(state, worktrees=msg.worktrees), []


# --------------------------------------------------------------- misc results

def _on_directive_written(state: AppState, msg: m.DirectiveWritten) -> Result:
    if msg.error:
        return replace(state, last_error=msg.error), []
    return state, [Quit()]


_MESSAGE_HANDLERS: Dict[Type[m.Message], Callable[[AppState, m.Message], Result]] = {
    m.KeyPressed: _on_key,
    m.WindowResized: _on_resize,
    m.SpinnerTicked: _on_tick,
    m.ProjectInfoLoaded: _on_project_info,
    m.WorktreesLoaded: _on_worktrees,
    m.GitHubChecked: _on_github_checked,
    m.GitHubStatusLoaded: _on_github_status,
    m.BranchStatusesLoaded: create.on_branch_statuses,
    m.AvailableBranchesLoaded: create.on_available_branches,
    m.WorktreeCreated: create.on_worktree_created,
    m.WorktreesDeleted: delete.on_deleted,
    m.StaleWorktreeRemoved: tools.on_stale_removed,
    m.WorktreesPruned: tools.on_pruned,
    m.PullRequestOpened: tools.on_pull_request_opened,
    m.ActionsLoaded: menus.on_actions_loaded,
    m.ActionExecuted: menus.on_action_executed,
    m.DirectiveWritten: _on_directive_written,
    m.ConfigFilesLoaded: menus.on_config_files,
    m.ConfigFileEdited: menus.on_config_edited,
    m.ProjectAnalyzed: menus.on_project_analyzed,
    m.ProjectInitialized: menus.on_project_initialized,
    m.MergeCompleted: flows.on_merge_completed,
    m.ForEachCompleted: flows.on_for_each_completed,
    m.CommitCompleted: flows.on_commit_completed,
    m.CompareLoaded: compare.on_compare_loaded,
    m.DiffLoaded: compare.on_diff_loaded,
    m.ChangesApplied: compare.on_changes_applied,
}
