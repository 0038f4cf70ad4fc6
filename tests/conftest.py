"""Pytest fixtures for gren tests"""
import os
import tempfile
from pathlib import Path

import git
import pytest

from gren.config import Config
from gren.models.state import AppState
from gren.models.worktree import (
    BranchState,
    GitHubAvailability,
    PRState,
    RepoInfo,
    StaleReason,
    Worktree,
)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(os.path.realpath(tmpdir))


@pytest.fixture
def git_repo(temp_dir):
    """Create a real Git repository for testing."""
    repo_path = temp_dir / "test_repo"
    repo_path.mkdir()

    # Initialize repository
    repo = git.Repo.init(repo_path)

    # Configure git user for commits
    repo.config_writer().set_value("user", "name", "Test User").release()
    repo.config_writer().set_value("user", "email", "test@example.com").release()

    # Create initial commit on main branch
    test_file = repo_path / "README.md"
    test_file.write_text("# Test Repository\n")
    repo.index.add(["README.md"])
    repo.index.commit("Initial commit")

    # Rename master to main if needed
    try:
        repo.git.branch('-M', 'main')
    except git.exc.GitCommandError:
        pass

    # Add a fake GitHub remote for testing
    try:
        repo.create_remote('origin', 'git@github.com:test/test-repo.git')
    except git.exc.GitCommandError:
        pass

    yield repo

    # Cleanup
    repo.close()


@pytest.fixture
def worktree_config(temp_dir):
    """Configuration placing worktrees in a temp directory, without a hook."""
    return Config(worktree_dir=str(temp_dir / "worktrees"), post_create_hook="")


@pytest.fixture
def git_repo_with_worktrees(git_repo, temp_dir):
    """Repository with two linked worktrees: one with new work, one merged."""
    repo = git_repo
    worktrees = temp_dir / "worktrees"

    repo.git.worktree("add", "-b", "feature/active", str(worktrees / "feature-active"))
    active = worktrees / "feature-active"
    (active / "feature.txt").write_text("work in progress\n")
    repo.git.execute(["git", "-C", str(active), "add", "feature.txt"])
    repo.git.execute(["git", "-C", str(active), "commit", "-m", "Add feature"])

    # Branch at main's tip: merged with no unique commits
    repo.git.worktree("add", "-b", "feature/done", str(worktrees / "feature-done"))

    yield repo


def make_worktree(name: str, **overrides) -> Worktree:
    """Build a Worktree for pure state-machine tests."""
    fields = dict(name=name, path=f"/work/{name}", branch=f"feature/{name}")
    fields.update(overrides)
    return Worktree(**fields)


def make_stale(name: str, reason: StaleReason = StaleReason.PR_MERGED, **overrides) -> Worktree:
    """A stale worktree; merged PR by default."""
    fields = dict(branch_state=BranchState.STALE, stale_reason=reason)
    if reason == StaleReason.PR_MERGED:
        fields.update(pr_number=1, pr_state=PRState.MERGED)
    fields.update(overrides)
    return make_worktree(name, **fields)


@pytest.fixture
def worktree_factory():
    return make_worktree


@pytest.fixture
def sample_worktrees():
    """Main checkout (current), a clean feature and a dirty one."""
    return (
        make_worktree("repo", path="/work/repo", branch="main", is_main=True, is_current=True),
        make_worktree("alpha"),
        make_worktree("beta", modified=2),
    )


@pytest.fixture
def app_state(sample_worktrees):
    """Loaded, initialized dashboard state with GitHub unavailable."""
    return AppState(
        repo=RepoInfo(name="repo", root="/work/repo", current_branch="main",
                      default_branch="main", is_initialized=True),
        config=Config(),
        worktrees=sample_worktrees,
        generation=1,
        loading=False,
        github=GitHubAvailability.UNAVAILABLE,
    )


@pytest.fixture
def stale_factory():
    return make_stale
