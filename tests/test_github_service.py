"""Tests for GitHubStatusProvider"""
from unittest.mock import Mock, patch

import pytest
from github import GithubException

from gren.config import Config
from gren.exceptions import GitHubAPIError
from gren.models.worktree import BranchState, CIState, GitHubAvailability, PRState, StaleReason
from gren.services.github_service import (
    GitHubStatusProvider,
    aggregate_check_runs,
    parse_github_remote,
    pr_state_of,
)


def make_pr(number=1, merged=False, state="open", draft=False):
    pr = Mock()
    pr.number = number
    pr.merged = merged
    pr.state = state
    pr.draft = draft
    pr.html_url = f"https://github.com/test/test-repo/pull/{number}"
    pr.head.sha = "abc123"
    return pr


def make_run(status="completed", conclusion="success"):
    run = Mock()
    run.status = status
    run.conclusion = conclusion
    return run


@pytest.fixture
def provider(git_repo):
    """Provider with the API wired to a mock repository."""
    service = GitHubStatusProvider(git_repo.working_dir, Config(github_token="test_token"), workers=2)
    service.github_repo = "test/test-repo"
    service.gh_repo = Mock()
    service._availability = GitHubAvailability.AVAILABLE
    return service


class TestParsing:
    """Test remote URL and state helpers."""

    @pytest.mark.parametrize("url, expected", [
        ("git@github.com:test/repo.git", "test/repo"),
        ("https://github.com/test/repo.git", "test/repo"),
        ("https://github.com/test/repo", "test/repo"),
        ("ssh://git@github.com/test/repo.git", "test/repo"),
        ("git@gitlab.com:test/repo.git", None),
    ])
    def test_parse_github_remote(self, url, expected):
        assert parse_github_remote(url) == expected

    def test_pr_state(self):
        assert pr_state_of(make_pr(merged=True, state="closed")) == PRState.MERGED
        assert pr_state_of(make_pr(state="closed")) == PRState.CLOSED
        assert pr_state_of(make_pr(draft=True)) == PRState.DRAFT
        assert pr_state_of(make_pr()) == PRState.OPEN

    def test_aggregate_check_runs(self):
        assert aggregate_check_runs([]) == CIState.UNKNOWN
        assert aggregate_check_runs([make_run(), make_run()]) == CIState.SUCCESS
        assert aggregate_check_runs([make_run(), make_run(status="in_progress")]) == CIState.PENDING
        failing = [make_run(status="queued"), make_run(conclusion="timed_out")]
        assert aggregate_check_runs(failing) == CIState.FAILURE


class TestAvailability:
    """Test the one-time availability check."""

    def test_no_token(self, git_repo, monkeypatch):
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        monkeypatch.delenv("GH_TOKEN", raising=False)
        service = GitHubStatusProvider(git_repo.working_dir, Config())
        assert service.github_token is None
        assert service.availability() == GitHubAvailability.UNAVAILABLE

    @patch.dict("os.environ", {"GITHUB_TOKEN": "env_token"}, clear=True)
    def test_token_from_env(self, git_repo):
        service = GitHubStatusProvider(git_repo.working_dir, Config())
        assert service.github_token == "env_token"

    @patch.dict("os.environ", {"GH_TOKEN": "gh_token"}, clear=True)
    def test_token_from_gh_env(self, git_repo):
        service = GitHubStatusProvider(git_repo.working_dir, Config())
        assert service.github_token == "gh_token"

    def test_available(self, git_repo):
        service = GitHubStatusProvider(git_repo.working_dir, Config(github_token="test_token"))
        with patch("gren.services.github_service.Github") as mock_github_class:
            mock_gh = Mock()
            mock_github_class.return_value = mock_gh
            assert service.availability() == GitHubAvailability.AVAILABLE
            assert service.availability() == GitHubAvailability.AVAILABLE

        assert service.github_repo == "test/test-repo"
        mock_gh.get_repo.assert_called_once_with("test/test-repo")

    def test_refresh_rechecks(self, git_repo):
        service = GitHubStatusProvider(git_repo.working_dir, Config(github_token="test_token"))
        with patch("gren.services.github_service.Github") as mock_github_class:
            mock_github_class.return_value.get_repo.side_effect = GithubException(401, "bad creds", None)
            assert service.availability() == GitHubAvailability.UNAVAILABLE
            mock_github_class.return_value.get_repo.side_effect = None
            assert service.availability() == GitHubAvailability.UNAVAILABLE
            assert service.availability(refresh=True) == GitHubAvailability.AVAILABLE

    def test_non_github_remote(self, git_repo):
        git_repo.remotes.origin.set_url("git@gitlab.com:test/test-repo.git")
        service = GitHubStatusProvider(git_repo.working_dir, Config(github_token="test_token"))
        assert service.availability() == GitHubAvailability.UNAVAILABLE

    def test_no_remote(self, git_repo):
        git_repo.delete_remote(git_repo.remotes.origin)
        service = GitHubStatusProvider(git_repo.working_dir, Config(github_token="test_token"))
        assert service.availability() == GitHubAvailability.UNAVAILABLE


class TestEnrichment:
    """Test PR and CI enrichment."""

    def test_merged_pr_marks_stale(self, provider, worktree_factory):
        provider.gh_repo.get_pulls.return_value = [make_pr(5, merged=True, state="closed")]
        enriched = provider.enrich_with_pr_status([worktree_factory("alpha")])

        assert enriched[0].pr_number == 5
        assert enriched[0].pr_state == PRState.MERGED
        assert enriched[0].branch_state == BranchState.STALE
        assert enriched[0].stale_reason == StaleReason.PR_MERGED
        provider.gh_repo.get_pulls.assert_called_once_with(
            state="all", head="test:feature/alpha", sort="created", direction="desc"
        )

    def test_closed_pr_marks_stale(self, provider, worktree_factory):
        provider.gh_repo.get_pulls.return_value = [make_pr(state="closed")]
        enriched = provider.enrich_with_pr_status([worktree_factory("alpha")])
        assert enriched[0].stale_reason == StaleReason.PR_CLOSED

    def test_current_worktree_never_stale(self, provider, worktree_factory):
        provider.gh_repo.get_pulls.return_value = [make_pr(merged=True, state="closed")]
        enriched = provider.enrich_with_pr_status([worktree_factory("alpha", is_current=True)])
        assert enriched[0].pr_state == PRState.MERGED
        assert enriched[0].branch_state == BranchState.ACTIVE

    def test_main_skipped(self, provider, worktree_factory):
        main = worktree_factory("repo", branch="main", is_main=True)
        assert provider.enrich_with_pr_status([main]) == [main]
        provider.gh_repo.get_pulls.assert_not_called()

    def test_api_error_keeps_worktree(self, provider, worktree_factory):
        provider.gh_repo.get_pulls.side_effect = GithubException(500, "boom", None)
        wt = worktree_factory("alpha")
        assert provider.enrich_with_pr_status([wt]) == [wt]

    def test_order_preserved(self, provider, worktree_factory):
        def pulls(state, head, sort, direction):
            number = {"test:feature/a": 1, "test:feature/b": 2, "test:feature/c": 3}[head]
            return [make_pr(number)]

        provider.gh_repo.get_pulls.side_effect = pulls
        enriched = provider.enrich_with_pr_status([worktree_factory(n) for n in "abc"])
        assert [wt.pr_number for wt in enriched] == [1, 2, 3]

    def test_ci_status_for_open_pr(self, provider, worktree_factory):
        provider.gh_repo.get_pull.return_value = make_pr(3)
        provider.gh_repo.get_commit.return_value.get_check_runs.return_value = [make_run(conclusion="failure")]
        wt = worktree_factory("alpha", pr_number=3, pr_state=PRState.OPEN)

        enriched = provider.enrich_with_ci_status([wt])
        assert enriched[0].ci_state == CIState.FAILURE
        provider.gh_repo.get_commit.assert_called_once_with("abc123")

    def test_ci_skipped_for_merged(self, provider, worktree_factory):
        wt = worktree_factory("alpha", pr_number=3, pr_state=PRState.MERGED)
        assert provider.enrich_with_ci_status([wt]) == [wt]
        provider.gh_repo.get_pull.assert_not_called()

    def test_disabled_returns_input(self, git_repo, worktree_factory):
        service = GitHubStatusProvider(git_repo.working_dir, Config())
        wts = [worktree_factory("alpha")]
        assert service.enrich(wts) == tuple(wts)


class TestOpenPullRequest:
    """Test opening a PR in the browser."""

    def test_opens_url(self, provider):
        provider.gh_repo.get_pulls.return_value = [make_pr(9)]
        with patch("gren.services.github_service.webbrowser.open", return_value=True) as mock_open:
            provider.open_pr_in_browser("feature/x")
        mock_open.assert_called_once_with("https://github.com/test/test-repo/pull/9")

    def test_no_pr(self, provider):
        provider.gh_repo.get_pulls.return_value = []
        with pytest.raises(GitHubAPIError, match="no pull request"):
            provider.open_pr_in_browser("feature/x")

    def test_unavailable(self, git_repo):
        service = GitHubStatusProvider(git_repo.working_dir, Config())
        service._availability = GitHubAvailability.UNAVAILABLE
        with pytest.raises(GitHubAPIError):
            service.open_pr_in_browser("feature/x")
