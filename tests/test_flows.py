"""Tests for the merge, for-each, step-commit, compare, menu and init views"""
from dataclasses import replace

import pytest

from gren.core.commands import (
    ApplyChanges,
    ExecuteAction,
    InitializeProject,
    LoadDiff,
    LoadProjectInfo,
    LoadWorktrees,
    MergeWorktree,
    OpenConfigFile,
    OpenPullRequest,
    PruneWorktrees,
    Quit,
    RunForEach,
    StepCommit,
    WriteDirective,
)
from gren.core.messages import (
    ActionExecuted,
    ActionsLoaded,
    ChangesApplied,
    CommitCompleted,
    CompareLoaded,
    ConfigFileEdited,
    ConfigFilesLoaded,
    DiffLoaded,
    ForEachCompleted,
    KeyPressed,
    MergeCompleted,
    ProjectAnalyzed,
    ProjectInitialized,
)
from gren.core.update import update
from gren.config import Config
from gren.models.state import (
    CompareState,
    DashboardState,
    ForEachStep,
    InitStep,
    MergeStep,
    OpenInState,
    StepCommitStep,
    ToolsState,
)
from gren.models.worktree import (
    Action,
    FileChange,
    ForEachResult,
    GitHubAvailability,
    MergeResult,
    PRState,
    ProjectAnalysis,
)


def press(state, *keys):
    commands = []
    for key in keys:
        state, commands = update(state, KeyPressed(key))
    return state, commands


def type_text(state, text):
    return press(state, *[("space" if c == " " else c) for c in text])


class TestMerge:
    """Test the merge view."""

    def test_options_and_dispatch(self, app_state):
        state, _ = press(app_state, "j", "M", "s", "d")
        assert state.view.squash and state.view.remove
        state, commands = press(state, "enter")
        assert state.view.step == MergeStep.IN_PROGRESS
        assert commands[0] == MergeWorktree(
            source=app_state.worktrees[1], target_branch="main", squash=True, rebase=False, remove=True
        )

    def test_cannot_remove_current(self, app_state, worktree_factory):
        current = worktree_factory("here", is_current=True)
        state = replace(app_state, worktrees=(current,))
        state, _ = press(state, "M", "d")
        assert state.view.remove is False
        assert state.notice

    def test_completion_refreshes(self, app_state):
        state, _ = press(app_state, "j", "M", "enter")
        result = MergeResult("feature/alpha", "main", merged=True, message="Merged")
        state, commands = update(state, MergeCompleted(result))
        assert state.view.step == MergeStep.COMPLETE
        assert commands == [LoadWorktrees()]

    def test_failure(self, app_state):
        state, _ = press(app_state, "j", "M", "enter")
        state, commands = update(state, MergeCompleted(error="conflict"))
        assert isinstance(state.view, DashboardState)
        assert state.last_error == "conflict"
        assert commands == [LoadWorktrees()]


class TestForEach:
    """Test running a command in every worktree."""

    def test_typing_and_run(self, app_state):
        state, _ = press(app_state, "f")
        state, commands = type_text(state, "git status -q")
        assert state.view.command == "git status -q"
        assert commands == []

        state, _ = press(state, "tab")
        assert state.view.skip_main is False

        state, commands = press(state, "enter")
        assert state.view.step == ForEachStep.RUNNING
        assert commands[0] == RunForEach("git status -q", app_state.worktrees, skip_main=False)

    def test_empty_command_ignored(self, app_state):
        state, commands = press(app_state, "f", "enter")
        assert state.view.step == ForEachStep.INPUT
        assert commands == []

    def test_results(self, app_state):
        state, _ = press(app_state, "f", "l", "s", "enter")
        results = (ForEachResult("/work/alpha", "feature/alpha", "ls", "a.txt", 0),)
        state, commands = update(state, ForEachCompleted(results))
        assert state.view.step == ForEachStep.COMPLETE
        assert state.view.results == results
        assert commands == [LoadWorktrees()]
        state, _ = press(state, "enter")
        assert isinstance(state.view, DashboardState)

    def test_error_refreshes_dashboard(self, app_state):
        state, _ = press(app_state, "f", "l", "s", "enter")
        state, commands = update(state, ForEachCompleted(error="no worktrees"))
        assert isinstance(state.view, DashboardState)
        assert state.last_error == "no worktrees"
        assert state.loading is True
        assert LoadWorktrees() in commands


class TestStepCommit:
    """Test staging everything and committing."""

    def test_manual_message(self, app_state):
        state, _ = press(app_state, "j", "s", "enter")
        assert state.view.step == StepCommitStep.MESSAGE
        state, _ = type_text(state, "Add q")
        state, commands = press(state, "enter")
        assert state.view.step == StepCommitStep.IN_PROGRESS
        assert commands[0] == StepCommit("/work/alpha", "feature/alpha", "Add q", use_generator=False)

    def test_generator_skips_message(self, app_state):
        state, commands = press(app_state, "j", "s", "tab", "enter")
        assert state.view.step == StepCommitStep.IN_PROGRESS
        assert commands[0].use_generator is True
        assert commands[0].message == ""

    def test_completion(self, app_state):
        state, _ = press(app_state, "j", "s", "tab", "enter")
        state, commands = update(state, CommitCompleted("Generated message"))
        assert state.view.step == StepCommitStep.COMPLETE
        assert state.view.committed_message == "Generated message"
        assert commands == [LoadWorktrees()]

    def test_failure(self, app_state):
        state, _ = press(app_state, "j", "s", "tab", "enter")
        state, _ = update(state, CommitCompleted(error="nothing to commit"))
        assert isinstance(state.view, DashboardState)
        assert state.last_error == "nothing to commit"


FILES = (
    FileChange("a.txt", "M"),
    FileChange("b.txt", "A", uncommitted=True),
    FileChange("c.txt", "D"),
)


class TestCompare:
    """Test the compare view."""

    @pytest.fixture
    def compare_state(self, app_state):
        state, _ = press(app_state, "j", "m")
        state, _ = update(state, CompareLoaded("/work/alpha", FILES))
        return state

    def test_loaded_selects_all_and_loads_first_diff(self, app_state):
        state, _ = press(app_state, "j", "m")
        state, commands = update(state, CompareLoaded("/work/alpha", FILES))
        assert state.view.selected == frozenset({"a.txt", "b.txt", "c.txt"})
        assert commands == [LoadDiff("/work/alpha", "/work/repo", FILES[0])]

    def test_result_for_other_source_ignored(self, app_state):
        state, _ = press(app_state, "j", "m")
        same, _ = update(state, CompareLoaded("/work/beta", FILES))
        assert same == state

    def test_cursor_loads_diff(self, compare_state):
        state, commands = press(compare_state, "j")
        assert state.view.cursor == 1
        assert commands == [LoadDiff("/work/alpha", "/work/repo", FILES[1])]

    def test_stale_diff_dropped(self, compare_state):
        state, _ = press(compare_state, "j")
        dropped, _ = update(state, DiffLoaded("a.txt", "old"))
        assert dropped.view.diff == ""
        shown, _ = update(state, DiffLoaded("b.txt", "+new"))
        assert shown.view.diff == "+new"

    def test_toggle_and_all(self, compare_state):
        state, _ = press(compare_state, "space")
        assert "a.txt" not in state.view.selected
        state, _ = press(state, "a")
        assert len(state.view.selected) == 3
        state, _ = press(state, "a")
        assert state.view.selected == frozenset()

    def test_apply_requires_selection(self, compare_state):
        state, commands = press(compare_state, "a", "y")
        assert state.notice == "No files selected"
        assert commands == []

    def test_apply(self, compare_state):
        state, _ = press(compare_state, "j", "space", "y")
        assert state.view.applying
        assert state.view.cursor == 1
        state, commands = press(state, "y")
        assert commands == []

    def test_apply_command(self, compare_state):
        _, commands = press(compare_state, "y")
        assert commands[0] == ApplyChanges("/work/alpha", "/work/repo", FILES)

    def test_applied_then_any_key(self, compare_state):
        state, _ = press(compare_state, "y")
        state, commands = update(state, ChangesApplied(3))
        assert state.view.applied == 3
        assert commands == [LoadWorktrees()]
        state, _ = press(state, "x")
        assert isinstance(state.view, DashboardState)

    def test_diff_focus(self, compare_state):
        state, _ = update(compare_state, DiffLoaded("a.txt", "1\n2\n3"))
        state, _ = press(state, "enter", "j", "j", "j")
        assert state.view.diff_focused
        assert state.view.diff_scroll == 2
        state, _ = press(state, "esc")
        assert not state.view.diff_focused
        assert isinstance(state.view, CompareState)

    def test_help_and_back(self, compare_state):
        state, _ = press(compare_state, "?")
        assert state.view.show_help
        state, _ = press(state, "esc")
        assert isinstance(state.view, CompareState)
        state, _ = press(state, "esc")
        assert isinstance(state.view, DashboardState)


class TestOpenIn:
    """Test the open-in action menu."""

    ACTIONS = (
        Action("Navigate to worktree", "navigate"),
        Action("Open in Code", "code", ("{path}",)),
        Action("Back", ""),
    )

    def test_actions_for_other_path_ignored(self, app_state):
        state, _ = press(app_state, "j", "enter")
        same, _ = update(state, ActionsLoaded("/work/beta", self.ACTIONS))
        assert same.view.loading

    def test_navigate_and_execute(self, app_state):
        state, _ = press(app_state, "j", "enter")
        state, _ = update(state, ActionsLoaded("/work/alpha", self.ACTIONS))
        assert isinstance(state.view, OpenInState)

        _, commands = press(state, "enter")
        assert commands == [WriteDirective("/work/alpha")]

        done, commands = press(state, "j", "enter")
        assert commands == [ExecuteAction(self.ACTIONS[1], "/work/alpha")]
        done, _ = update(done, ActionExecuted("Open in Code"))
        assert done.notice == "Launched Open in Code"


class TestConfigView:
    """Test the config file list."""

    def test_open_and_reload(self, app_state):
        state, _ = press(app_state, "c")
        state, _ = update(state, ConfigFilesLoaded(("/work/repo/.gren/config.toml",)))
        state, commands = press(state, "enter")
        assert commands == [OpenConfigFile("/work/repo/.gren/config.toml")]
        _, commands = update(state, ConfigFileEdited("/work/repo/.gren/config.toml"))
        assert commands == [LoadProjectInfo()]

    def test_edit_error(self, app_state):
        state, _ = press(app_state, "c")
        state, _ = update(state, ConfigFileEdited("/x", error="no editor"))
        assert state.last_error == "no editor"


class TestTools:
    """Test the tools menu."""

    def test_prune(self, app_state):
        state, commands = press(app_state, "t", "x")
        assert isinstance(state.view, DashboardState)
        assert commands[0] == PruneWorktrees()

    def test_refresh_rechecks_github(self, app_state):
        state, commands = press(app_state, "t", "r")
        assert state.github == GitHubAvailability.UNCHECKED
        assert commands == [LoadWorktrees()]

    def test_open_pull_request(self, app_state):
        with_pr = replace(app_state.worktrees[1], pr_number=7, pr_state=PRState.OPEN)
        state = replace(app_state, worktrees=(app_state.worktrees[0], with_pr), selected=1)
        _, commands = press(state, "t", "p")
        assert commands == [OpenPullRequest("feature/alpha")]

    def test_no_pull_request(self, app_state):
        state, commands = press(app_state, "t", "p")
        assert isinstance(state.view, ToolsState)
        assert state.notice == "Selected worktree has no pull request"

    def test_no_stale(self, app_state):
        state, _ = press(app_state, "t", "c")
        assert state.notice == "No stale worktrees"


class TestInit:
    """Test project initialization."""

    ANALYSIS = ProjectAnalysis("npm", "JavaScript project (npm)", "npm install")

    @pytest.fixture
    def uninitialized(self, app_state):
        return replace(app_state, repo=replace(app_state.repo, is_initialized=False))

    def test_enter_waits_for_analysis(self, uninitialized):
        state, commands = press(uninitialized, "i", "enter")
        assert state.view.step == InitStep.WELCOME
        assert commands == []

    def test_full_flow(self, uninitialized):
        state, _ = press(uninitialized, "i")
        state, _ = update(state, ProjectAnalyzed(self.ANALYSIS))
        state, commands = press(state, "enter")
        assert state.view.step == InitStep.RUNNING
        assert commands[0] == InitializeProject(self.ANALYSIS)

        config = Config(package_manager="npm")
        state, _ = update(state, ProjectInitialized(config, "/work/repo/.gren/config.toml"))
        assert state.view.step == InitStep.COMPLETE
        assert state.config == config

        state, commands = press(state, "enter")
        assert isinstance(state.view, DashboardState)
        assert state.loading is False
        assert commands == [LoadProjectInfo()]

    def test_quit_still_works_while_running(self, uninitialized):
        state, _ = press(uninitialized, "i")
        state, _ = update(state, ProjectAnalyzed(self.ANALYSIS))
        state, _ = press(state, "enter")
        _, commands = press(state, "q")
        assert commands == [Quit()]
