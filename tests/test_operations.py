"""Tests for WorktreeOperations: merge, for-each and step commit"""
import os

import git
import pytest

from gren.config import Config
from gren.exceptions import GitOperationError
from gren.models.worktree import Worktree, WorktreeStatus
from gren.services.deletion import DeletionProtocol
from gren.services.git import WorktreeOperations, WorktreeService, expand_template


def commit_file(path, name, content, message):
    repo_git = git.Repo(str(path)).git
    with open(os.path.join(path, name), "w") as f:
        f.write(content)
    repo_git.execute(["git", "-C", str(path), "add", name])
    repo_git.execute(["git", "-C", str(path), "commit", "-m", message])


@pytest.fixture
def operations(git_repo_with_worktrees, worktree_config):
    service = WorktreeService(git_repo_with_worktrees.working_dir, config=worktree_config)
    return WorktreeOperations(
        git_repo_with_worktrees.working_dir, service, DeletionProtocol(service), config=worktree_config
    )


@pytest.fixture
def active(temp_dir):
    path = temp_dir / "worktrees" / "feature-active"
    return Worktree(name="feature-active", path=str(path), branch="feature/active")


class TestExpandTemplate:
    """Test for-each command templates."""

    def test_variables_and_filter(self):
        variables = {"branch": "feature/x", "repo": "app"}
        assert expand_template("echo {{ branch }} {{branch|sanitize}} {{ repo }}", variables) == \
            "echo feature/x feature-x app"

    def test_unknown_left_alone(self):
        assert expand_template("{{ nope }}", {}) == "{{ nope }}"


class TestMerge:
    """Test merging a worktree branch into the default branch."""

    def test_fast_forward(self, operations, active, git_repo_with_worktrees):
        result = operations.merge(active, "main")
        assert result.merged
        assert result.message == "Merged feature/active into main"
        repo = git_repo_with_worktrees
        assert repo.git.rev_parse("main") == repo.git.rev_parse("feature/active")
        # main is checked out, so its files follow
        assert os.path.exists(os.path.join(repo.working_dir, "feature.txt"))

    def test_nothing_to_merge(self, operations, temp_dir):
        done = Worktree("feature-done", str(temp_dir / "worktrees" / "feature-done"), "feature/done")
        result = operations.merge(done, "main")
        assert not result.merged
        assert "no commits" in result.message

    def test_pending_changes_committed_first(self, operations, active, git_repo_with_worktrees):
        with open(os.path.join(active.path, "extra.txt"), "w") as f:
            f.write("extra\n")
        result = operations.merge(active, "main")
        assert result.merged
        log = git_repo_with_worktrees.git.log("--format=%s", "main")
        assert "WIP: changes on feature/active" in log

    def test_squash(self, operations, active, git_repo_with_worktrees):
        commit_file(active.path, "second.txt", "2\n", "Second")
        result = operations.merge(active, "main", squash=True)
        assert result.squashed
        subjects = git_repo_with_worktrees.git.log("--format=%s", "main").splitlines()
        assert subjects[0] == "Squashed commits from feature/active"
        assert "Second" not in subjects

    def test_diverged_needs_rebase(self, operations, active, git_repo_with_worktrees):
        commit_file(git_repo_with_worktrees.working_dir, "main.txt", "m\n", "Main moved on")
        with pytest.raises(GitOperationError):
            operations.merge(active, "main")

        result = operations.merge(active, "main", rebase=True)
        assert result.merged and result.rebased
        assert os.path.exists(os.path.join(git_repo_with_worktrees.working_dir, "feature.txt"))

    def test_remove_after_merge(self, operations, active):
        result = operations.merge(active, "main", remove=True)
        assert result.removed
        assert result.warning is None
        assert not os.path.exists(active.path)

    def test_merge_into_itself(self, operations, git_repo_with_worktrees):
        main = Worktree("test_repo", git_repo_with_worktrees.working_dir, "main", is_main=True)
        with pytest.raises(GitOperationError, match="into itself"):
            operations.merge(main, "main")


class TestForEach:
    """Test running a command in every worktree."""

    def test_runs_everywhere_but_main(self, operations, git_repo_with_worktrees):
        worktrees = operations.worktree_service.list_worktrees(cwd=git_repo_with_worktrees.working_dir)
        results = operations.for_each(worktrees, "echo {{ branch | sanitize }}", skip_main=True)

        assert {r.output for r in results} == {"feature-active", "feature-done"}
        assert all(r.ok for r in results)

    def test_failures_collected(self, operations, git_repo_with_worktrees):
        worktrees = operations.worktree_service.list_worktrees(cwd=git_repo_with_worktrees.working_dir)
        results = operations.for_each(worktrees, "test -f feature.txt")
        codes = {r.branch: r.exit_code for r in results}
        assert codes["feature/active"] == 0
        assert codes["feature/done"] != 0
        assert codes["main"] != 0

    def test_missing_skipped(self, operations, worktree_factory):
        results = operations.for_each([worktree_factory("gone", status=WorktreeStatus.MISSING)], "true")
        assert results == []


class TestStepCommit:
    """Test staging everything and committing."""

    def test_commit_with_message(self, operations, active, git_repo_with_worktrees):
        with open(os.path.join(active.path, "new.txt"), "w") as f:
            f.write("new\n")
        message = operations.step_commit(active.path, active.branch, "Add new file")
        assert message == "Add new file"
        assert git_repo_with_worktrees.git.log("-1", "--format=%s", "feature/active") == "Add new file"

    def test_nothing_to_commit(self, operations, active):
        with pytest.raises(GitOperationError, match="nothing to commit"):
            operations.step_commit(active.path, active.branch, "Empty")

    def test_empty_message_falls_back(self, operations, active):
        with open(os.path.join(active.path, "new.txt"), "w") as f:
            f.write("new\n")
        assert operations.step_commit(active.path, active.branch, "  ") == "WIP: changes on feature/active"

    def test_generator(self, operations, active):
        operations.config = Config(commit_generator_command="sh",
                                   commit_generator_args=["-c", "echo generated message"])
        with open(os.path.join(active.path, "new.txt"), "w") as f:
            f.write("new\n")
        assert operations.step_commit(active.path, active.branch, use_generator=True) == "generated message"

    def test_failing_generator_falls_back(self, operations, active):
        operations.config = Config(commit_generator_command="sh", commit_generator_args=["-c", "exit 1"])
        with open(os.path.join(active.path, "new.txt"), "w") as f:
            f.write("new\n")
        message = operations.step_commit(active.path, active.branch, use_generator=True)
        assert message == "WIP: changes on feature/active"
