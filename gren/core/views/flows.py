"""Merge, for-each and step-commit flows."""
from dataclasses import replace

from gren.core.commands import MergeWorktree, RunForEach, StepCommit
from gren.core.messages import CommitCompleted, ForEachCompleted, MergeCompleted
from gren.core.selection import edit_text
from gren.core.views import Result, refresh, to_dashboard, with_spinner
from gren.models.state import (
    AppState,
    ForEachState,
    ForEachStep,
    MergeState,
    MergeStep,
    StepCommitState,
    StepCommitStep,
)

# ---------------------------------------------------------------------- merge


def handle_merge_key(state: AppState, key: str) -> Result:
    view = state.view
    if view.step == MergeStep.COMPLETE:
        if key in ("enter", "esc"):
            return to_dashboard(state), []
        return state, []
    if view.step != MergeStep.CONFIRM:
        return state, []

    if key == "esc":
        return to_dashboard(state), []
    if key == "s":
        return replace(state, view=replace(view, squash=not view.squash)), []
    if key == "r":
        return replace(state, view=replace(view, rebase=not view.rebase)), []
    if key == "d":
        if view.source is not None and view.source.is_current:
            return replace(state, notice="Cannot remove the worktree gren is running from"), []
        return replace(state, view=replace(view, remove=not view.remove)), []
    if key == "enter":
        command = MergeWorktree(
            source=view.source,
            target_branch=view.target_branch,
            squash=view.squash,
            rebase=view.rebase,
            remove=view.remove,
        )
        return with_spinner(replace(state, view=replace(view, step=MergeStep.IN_PROGRESS)), [command])
    return state, []


def on_merge_completed(state: AppState, msg: MergeCompleted) -> Result:
    view = state.view
    if msg.error or msg.result is None:
        return refresh(to_dashboard(state, error=msg.error or "merge failed"))
    if not isinstance(view, MergeState):
        return refresh(state)
    return refresh(replace(state, view=replace(view, step=MergeStep.COMPLETE, result=msg.result)))


# ------------------------------------------------------------------- for-each


def handle_for_each_key(state: AppState, key: str) -> Result:
    view = state.view
    if view.step == ForEachStep.COMPLETE:
        if key in ("enter", "esc"):
            return to_dashboard(state), []
        return state, []
    if view.step != ForEachStep.INPUT:
        return state, []

    if key == "esc":
        return to_dashboard(state), []
    if key == "tab":
        return replace(state, view=replace(view, skip_main=not view.skip_main)), []
    if key == "enter":
        command = view.command.strip()
        if not command:
            return state, []
        run = RunForEach(command=command, worktrees=state.worktrees, skip_main=view.skip_main)
        return with_spinner(replace(state, view=replace(view, step=ForEachStep.RUNNING)), [run])
    return replace(state, view=replace(view, command=edit_text(view.command, key))), []


def on_for_each_completed(state: AppState, msg: ForEachCompleted) -> Result:
    view = state.view
    if msg.error:
        return refresh(to_dashboard(state, error=msg.error))
    if not isinstance(view, ForEachState):
        return state, []
    return refresh(replace(state, view=replace(view, step=ForEachStep.COMPLETE, results=msg.results)))


# ---------------------------------------------------------------- step commit


def _commit(state: AppState, view: StepCommitState, message: str) -> Result:
    worktree = view.worktree
    command = StepCommit(
        path=worktree.path,
        branch=worktree.branch,
        message=message,
        use_generator=view.use_generator,
    )
    return with_spinner(replace(state, view=replace(view, step=StepCommitStep.IN_PROGRESS)), [command])


def handle_step_commit_key(state: AppState, key: str) -> Result:
    view = state.view
    if view.step == StepCommitStep.OPTIONS:
        if key == "esc":
            return to_dashboard(state), []
        if key == "tab":
            return replace(state, view=replace(view, use_generator=not view.use_generator)), []
        if key == "enter":
            if view.use_generator:
                return _commit(state, view, "")
            return replace(state, view=replace(view, step=StepCommitStep.MESSAGE)), []
        return state, []

    if view.step == StepCommitStep.MESSAGE:
        if key == "esc":
            return replace(state, view=replace(view, step=StepCommitStep.OPTIONS)), []
        if key == "enter":
            message = view.message.strip()
            if not message:
                return state, []
            return _commit(state, view, message)
        return replace(state, view=replace(view, message=edit_text(view.message, key))), []

    if view.step == StepCommitStep.COMPLETE and key in ("enter", "esc"):
        return to_dashboard(state), []
    return state, []


def on_commit_completed(state: AppState, msg: CommitCompleted) -> Result:
    view = state.view
    if msg.error:
        return refresh(to_dashboard(state, error=msg.error))
    if not isinstance(view, StepCommitState):
        return refresh(state)
    view = replace(view, step=StepCommitStep.COMPLETE, committed_message=msg.message)
    return refresh(replace(state, view=view))
