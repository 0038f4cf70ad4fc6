"""Small views: open-in actions, config files, settings and project init."""
from dataclasses import replace

from gren.constants import KEYS_DOWN, KEYS_UP
from gren.core.commands import (
    ExecuteAction,
    InitializeProject,
    LoadProjectInfo,
    OpenConfigFile,
    WriteDirective,
)
from gren.core.messages import (
    ActionExecuted,
    ActionsLoaded,
    ConfigFileEdited,
    ConfigFilesLoaded,
    ProjectAnalyzed,
    ProjectInitialized,
)
from gren.core.selection import move_cursor
from gren.core.views import Result, to_dashboard, with_spinner
from gren.models.state import AppState, ConfigState, CreateState, CreateStep, InitState, InitStep, OpenInState

# -------------------------------------------------------------------- open in


def handle_open_in_key(state: AppState, key: str) -> Result:
    view = state.view
    if key == "esc":
        return to_dashboard(state), []
    if key in KEYS_UP or key in KEYS_DOWN:
        delta = -1 if key in KEYS_UP else 1
        return replace(state, view=replace(view, cursor=move_cursor(view.cursor, delta, len(view.actions)))), []
    if key == "enter" and view.actions:
        action = view.actions[view.cursor]
        path = view.worktree.path
        if action.is_navigate:
            return state, [WriteDirective(path)]
        if action.is_back:
            return to_dashboard(state), []
        return to_dashboard(state), [ExecuteAction(action, path)]
    return state, []


def on_actions_loaded(state: AppState, msg: ActionsLoaded) -> Result:
    view = state.view
    if isinstance(view, OpenInState) and view.worktree is not None and view.worktree.path == msg.path:
        if msg.error:
            return to_dashboard(state, error=msg.error), []
        return replace(state, view=replace(view, actions=msg.actions, cursor=0, loading=False)), []
    if isinstance(view, CreateState) and view.step == CreateStep.COMPLETE and view.created_path == msg.path:
        # without actions the complete screen still offers esc
        return replace(state, view=replace(view, actions=msg.actions, action_cursor=0)), []
    return state, []


def on_action_executed(state: AppState, msg: ActionExecuted) -> Result:
    if msg.error:
        return replace(state, last_error=msg.error), []
    return replace(state, notice=f"Launched {msg.name}"), []


# --------------------------------------------------------------------- config


def handle_config_key(state: AppState, key: str) -> Result:
    view = state.view
    if key == "esc":
        return to_dashboard(state), []
    if key in KEYS_UP or key in KEYS_DOWN:
        delta = -1 if key in KEYS_UP else 1
        return replace(state, view=replace(view, cursor=move_cursor(view.cursor, delta, len(view.files)))), []
    if key == "enter" and view.files:
        return state, [OpenConfigFile(view.files[view.cursor])]
    return state, []


def on_config_files(state: AppState, msg: ConfigFilesLoaded) -> Result:
    view = state.view
    if not isinstance(view, ConfigState):
        return state, []
    if msg.error:
        return to_dashboard(state, error=msg.error), []
    cursor = min(view.cursor, max(0, len(msg.files) - 1))
    return replace(state, view=replace(view, files=msg.files, cursor=cursor, loading=False)), []


def on_config_edited(state: AppState, msg: ConfigFileEdited) -> Result:
    if msg.error:
        return replace(state, last_error=msg.error), []
    return state, [LoadProjectInfo()]


# ------------------------------------------------------------------- settings


def handle_settings_key(state: AppState, key: str) -> Result:
    if key == "esc":
        return to_dashboard(state), []
    return state, []


# ----------------------------------------------------------------------- init


def handle_init_key(state: AppState, key: str) -> Result:
    view = state.view
    if view.step == InitStep.WELCOME:
        if key == "esc":
            return to_dashboard(state), []
        if key == "enter" and view.analysis is not None:
            command = InitializeProject(view.analysis)
            return with_spinner(replace(state, view=replace(view, step=InitStep.RUNNING)), [command])
        return state, []
    if view.step == InitStep.COMPLETE and key in ("enter", "esc"):
        return to_dashboard(state), [LoadProjectInfo()]
    return state, []


def on_project_analyzed(state: AppState, msg: ProjectAnalyzed) -> Result:
    view = state.view
    if not isinstance(view, InitState):
        return state, []
    if msg.error:
        return to_dashboard(state, error=msg.error), []
    return replace(state, view=replace(view, analysis=msg.analysis)), []


def on_project_initialized(state: AppState, msg: ProjectInitialized) -> Result:
    view = state.view
    if msg.error:
        return to_dashboard(state, error=msg.error), []
    if not isinstance(view, InitState):
        return replace(state, config=msg.config), [LoadProjectInfo()]
    view = replace(view, step=InitStep.COMPLETE, config_path=msg.config_path)
    return replace(state, view=view, config=msg.config), []
