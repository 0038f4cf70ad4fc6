"""GitHub API integration: pull request and CI state for worktree branches."""
import os
import webbrowser
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import TYPE_CHECKING, Callable, List, Optional, Tuple
from urllib.parse import urlparse

import git
from github import Auth, Github, GithubException

from gren.config import Config
from gren.exceptions import GitHubAPIError
from gren.logging_config import get_logger
from gren.models.worktree import BranchState, CIState, GitHubAvailability, PRState, StaleReason, Worktree
from gren.utils.threading import get_optimal_worker_count

if TYPE_CHECKING:
    from github.PullRequest import PullRequest
    from github.Repository import Repository

logger = get_logger(__name__)

FAILED_CONCLUSIONS = {"failure", "cancelled", "timed_out", "action_required", "startup_failure"}


def parse_github_remote(remote_url: str) -> Optional[str]:
    """Extract ``owner/repo`` from a GitHub SSH or HTTPS remote URL."""
    if "github.com" not in remote_url:
        return None
    if remote_url.startswith("git@"):
        # git@github.com:org/repo.git
        path = remote_url.split("github.com:", 1)[1]
    else:
        # https://github.com/org/repo.git or ssh://git@github.com/org/repo.git
        path = urlparse(remote_url).path.strip("/")
    if path.endswith(".git"):
        path = path[:-4]
    return path if path.count("/") == 1 else None


def pr_state_of(pr: "PullRequest") -> PRState:
    if pr.merged:
        return PRState.MERGED
    if pr.state == "closed":
        return PRState.CLOSED
    if pr.draft:
        return PRState.DRAFT
    return PRState.OPEN


def aggregate_check_runs(runs) -> CIState:
    """Collapse check runs into one state: any failure wins, then pending, then success."""
    states = []
    for run in runs:
        if run.status != "completed":
            states.append(CIState.PENDING)
        elif run.conclusion in FAILED_CONCLUSIONS:
            states.append(CIState.FAILURE)
        else:
            states.append(CIState.SUCCESS)
    if not states:
        return CIState.UNKNOWN
    if CIState.FAILURE in states:
        return CIState.FAILURE
    if CIState.PENDING in states:
        return CIState.PENDING
    return CIState.SUCCESS


class GitHubStatusProvider:
    """Optional PR/CI enrichment; every failure degrades to "no data"."""

    def __init__(self, repo_path: str, config: Optional[Config] = None, workers: Optional[int] = None):
        """Initialize the provider.

        Args:
            repo_path: Path to the git repository
            config: Project configuration (may carry ``github_token``)
            workers: Parallel API workers (None = auto-detect)
        """
        self.repo_path = repo_path
        self.config = config or Config()
        self.workers = workers
        self.github_token = (
            self.config.get("github_token")
            or os.environ.get("GITHUB_TOKEN")
            or os.environ.get("GH_TOKEN")
        )
        self.github_repo: Optional[str] = None
        self.github: Optional[Github] = None
        self.gh_repo: Optional["Repository"] = None
        self._availability = GitHubAvailability.UNCHECKED

    def availability(self, refresh: bool = False) -> GitHubAvailability:
        """Resolve (once, unless ``refresh``) whether the GitHub API can be used for this repository."""
        if not refresh and self._availability != GitHubAvailability.UNCHECKED:
            return self._availability

        self._availability = GitHubAvailability.UNAVAILABLE
        try:
            remote_url = git.Repo(self.repo_path, search_parent_directories=True).remotes.origin.url
        except (AttributeError, IndexError, ValueError, git.exc.GitError) as e:
            logger.debug(f"[GitHub] No origin remote: {e}")
            return self._availability

        self.github_repo = parse_github_remote(remote_url)
        if not self.github_repo:
            logger.debug("[GitHub] Not a GitHub repository")
            return self._availability
        if not self.github_token:
            logger.debug("[GitHub] No GitHub token found. Running without PR status")
            return self._availability

        try:
            self.github = Github(auth=Auth.Token(self.github_token))
            self.gh_repo = self.github.get_repo(self.github_repo)
            self._availability = GitHubAvailability.AVAILABLE
            logger.debug(f"[GitHub] GitHub integration enabled for: {self.github_repo}")
        except GithubException as e:
            logger.debug(f"[GitHub] Failed to setup GitHub API: {e}")
        return self._availability

    @property
    def enabled(self) -> bool:
        return self._availability == GitHubAvailability.AVAILABLE and self.gh_repo is not None

    def find_pull_request(self, branch: str) -> Optional["PullRequest"]:
        """Most recent PR whose head is ``branch``."""
        if not self.enabled or not self.github_repo:
            return None
        owner = self.github_repo.split("/")[0]
        pulls = self.gh_repo.get_pulls(state="all", head=f"{owner}:{branch}", sort="created", direction="desc")
        for pr in pulls:
            return pr
        return None

    def _parallel(self, worktrees: List[Worktree], fn: Callable[[Worktree], Worktree]) -> List[Worktree]:
        """Apply ``fn`` to every worktree concurrently, preserving order."""
        if not worktrees:
            return []
        workers = get_optimal_worker_count(len(worktrees), self.workers)
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(fn, worktrees))

    def _with_pr_status(self, wt: Worktree) -> Worktree:
        if wt.is_detached or wt.is_main:
            return wt
        try:
            pr = self.find_pull_request(wt.branch)
        except GithubException as e:
            logger.debug(f"[GitHub] Error getting PR status for {wt.branch}: {e}")
            return wt
        if pr is None:
            return wt

        state = pr_state_of(pr)
        updated = replace(wt, pr_number=pr.number, pr_state=state, pr_url=pr.html_url)
        if wt.is_current:
            return updated
        if state == PRState.MERGED:
            return replace(updated, branch_state=BranchState.STALE, stale_reason=StaleReason.PR_MERGED)
        if state == PRState.CLOSED:
            return replace(updated, branch_state=BranchState.STALE, stale_reason=StaleReason.PR_CLOSED)
        return updated

    def enrich_with_pr_status(self, worktrees: List[Worktree]) -> List[Worktree]:
        """Return copies of ``worktrees`` carrying PR number/state.

        Merged and closed PRs mark the worktree stale.
        """
        if not self.enabled:
            return list(worktrees)
        return self._parallel(list(worktrees), self._with_pr_status)

    def _with_ci_status(self, wt: Worktree) -> Worktree:
        if not wt.pr_number or wt.pr_state not in (PRState.OPEN, PRState.DRAFT):
            return wt
        try:
            pr = self.gh_repo.get_pull(wt.pr_number)
            runs = self.gh_repo.get_commit(pr.head.sha).get_check_runs()
            return replace(wt, ci_state=aggregate_check_runs(runs))
        except GithubException as e:
            logger.debug(f"[GitHub] Error getting CI status for {wt.branch}: {e}")
            return wt

    def enrich_with_ci_status(self, worktrees: List[Worktree]) -> List[Worktree]:
        """Return copies of ``worktrees`` carrying the CI state of their open PR."""
        if not self.enabled:
            return list(worktrees)
        return self._parallel(list(worktrees), self._with_ci_status)

    def enrich(self, worktrees: List[Worktree]) -> Tuple[Worktree, ...]:
        """PR status followed by CI status."""
        return tuple(self.enrich_with_ci_status(self.enrich_with_pr_status(worktrees)))

    def open_pr_in_browser(self, branch: str) -> None:
        """Open the pull request for ``branch`` in the default browser.

        Raises:
            GitHubAPIError: If GitHub is unavailable or the branch has no PR
        """
        if self.availability() != GitHubAvailability.AVAILABLE:
            raise GitHubAPIError("open_pr", "GitHub is not available for this repository")
        try:
            pr = self.find_pull_request(branch)
        except GithubException as e:
            raise GitHubAPIError("open_pr", str(e)) from e
        if pr is None:
            raise GitHubAPIError("open_pr", f"no pull request for {branch}")
        if not webbrowser.open(pr.html_url):
            raise GitHubAPIError("open_pr", f"could not open a browser for {pr.html_url}")

    def close(self) -> None:
        """Release the HTTP session held by PyGithub."""
        if self.github is not None:
            try:
                self.github.close()
            except Exception as e:
                logger.debug(f"[GitHub] Error closing client: {e}")
            self.github = None
