"""Tools menu and the stale-worktree cleanup view."""
from dataclasses import replace

from gren.constants import KEYS_DOWN, KEYS_UP
from gren.core import cleanup
from gren.core.commands import OpenPullRequest, PruneWorktrees, RemoveStaleWorktree
from gren.core.messages import PullRequestOpened, StaleWorktreeRemoved, WorktreesPruned
from gren.core.views import Result, refresh, to_dashboard, with_spinner
from gren.models.state import AppState, CleanupState
from gren.models.worktree import GitHubAvailability


def handle_tools_key(state: AppState, key: str) -> Result:
    if key in ("esc", "t"):
        return to_dashboard(state), []
    if key == "r":
        # github is re-checked once the new snapshot arrives
        return refresh(to_dashboard(replace(state, github=GitHubAvailability.UNCHECKED)))
    if key == "c":
        view = cleanup.start_cleanup(state.worktrees)
        if view is None:
            return replace(state, notice="No stale worktrees"), []
        return replace(state, view=view), []
    if key == "x":
        return with_spinner(replace(to_dashboard(state), loading=True), [PruneWorktrees()])
    if key == "p":
        selected = state.selected_worktree
        if selected is None or not selected.has_pr:
            return replace(state, notice="Selected worktree has no pull request"), []
        return to_dashboard(state), [OpenPullRequest(selected.branch)]
    return state, []


def _removal(view: CleanupState) -> RemoveStaleWorktree:
    index = view.current_index
    return RemoveStaleWorktree(index=index, path=view.stale_worktrees[index].path, force=view.force)


def handle_cleanup_key(state: AppState, key: str) -> Result:
    view = state.view
    if view.in_progress:
        return state, []
    if view.complete:
        if key in ("enter", "esc"):
            return to_dashboard(state), []
        return state, []

    if key == "esc":
        return to_dashboard(state), []
    if key in KEYS_UP or key in KEYS_DOWN:
        return replace(state, view=cleanup.move(view, -1 if key in KEYS_UP else 1)), []
    if key == "space":
        return replace(state, view=cleanup.toggle(view)), []
    if key == "enter":
        confirmed = cleanup.confirm(view)
        if confirmed is None:
            return state, []
        return with_spinner(replace(state, view=confirmed), [_removal(confirmed)])
    return state, []


def on_stale_removed(state: AppState, msg: StaleWorktreeRemoved) -> Result:
    view = state.view
    if not isinstance(view, CleanupState) or not view.in_progress:
        return state, []
    view = cleanup.record_result(view, msg.index, msg.error)
    if view.in_progress:
        return replace(state, view=view), [_removal(view)]
    if view.failed:
        return refresh(replace(state, view=view))
    notice = f"Cleaned up {view.total_cleaned} worktree(s)"
    return refresh(to_dashboard(state, notice=notice))


def on_pruned(state: AppState, msg: WorktreesPruned) -> Result:
    if msg.error:
        return refresh(replace(state, last_error=msg.error))
    if msg.paths:
        notice = f"Pruned {len(msg.paths)} missing worktree(s)"
    else:
        notice = "Nothing to prune"
    return refresh(replace(state, notice=notice))


def on_pull_request_opened(state: AppState, msg: PullRequestOpened) -> Result:
    if msg.error:
        return replace(state, last_error=msg.error), []
    return state, []
