"""Branch query service for gren."""

import re
from typing import List, Optional, Set, Tuple

import git

from gren.logging_config import get_logger
from gren.models.worktree import BranchStatus
from gren.services.git.utils import parse_status_counts

logger = get_logger(__name__)

# Characters git refuses in ref names (see git-check-ref-format)
_INVALID_BRANCH_CHARS = re.compile(r"[ ~^:?*\[\\]")


def is_valid_branch_name(name: str) -> bool:
    """Check whether ``name`` can be used as a new branch name."""
    if not name:
        return False
    if _INVALID_BRANCH_CHARS.search(name):
        return False
    if ".." in name or "@{" in name:
        return False
    if name.startswith((".", "-", "/")):
        return False
    if name.endswith((".", "/", ".lock")):
        return False
    if "//" in name:
        return False
    return True


class BranchQueries:
    """Service for querying branch information."""

    def __init__(self, repo_path: str, remote_name: str = "origin"):
        """Initialize the branch queries service.

        Args:
            repo_path: Path to the git repository
            remote_name: Remote used for tracking comparisons
        """
        self.repo_path = repo_path
        self.remote_name = remote_name

    def _get_repo(self):
        """Get a fresh git.Repo instance (safe to use from worker threads)."""
        return git.Repo(self.repo_path)

    def current_branch(self) -> str:
        """Name of the branch checked out at ``repo_path``."""
        try:
            return self._get_repo().active_branch.name
        except TypeError:
            return "(detached)"

    def local_branches(self) -> List[str]:
        """All local branch names."""
        output = self._get_repo().git.branch("--format=%(refname:short)")
        return [line.strip() for line in output.split("\n") if line.strip()]

    def remote_branches(self) -> List[str]:
        """Branch names on the remote, without the ``origin/`` prefix."""
        try:
            output = self._get_repo().git.branch("-r", "--format=%(refname:short)")
        except git.exc.GitCommandError as e:
            logger.debug(f"Could not list remote branches: {e}")
            return []

        prefix = f"{self.remote_name}/"
        branches = []
        for line in output.split("\n"):
            name = line.strip()
            if not name.startswith(prefix):
                continue
            name = name[len(prefix):]
            if name and name != "HEAD":
                branches.append(name)
        return branches

    def branch_exists_locally(self, branch: str) -> bool:
        try:
            self._get_repo().git.rev_parse("--verify", "--quiet", f"refs/heads/{branch}")
            return True
        except git.exc.GitCommandError:
            return False

    def branch_exists_remotely(self, branch: str) -> bool:
        try:
            self._get_repo().git.rev_parse(
                "--verify", "--quiet", f"refs/remotes/{self.remote_name}/{branch}"
            )
            return True
        except git.exc.GitCommandError:
            return False

    def ahead_behind(self, branch: str) -> Tuple[int, int]:
        """Commits ``branch`` is ahead of and behind its remote counterpart."""
        try:
            output = self._get_repo().git.rev_list(
                "--left-right", "--count", f"{branch}...{self.remote_name}/{branch}"
            )
            ahead, behind = output.split()
            return int(ahead), int(behind)
        except (git.exc.GitCommandError, ValueError):
            return 0, 0

    def default_branch(self) -> str:
        """The integration branch: main, master, or whatever origin/HEAD points at."""
        for candidate in ("main", "master"):
            if self.branch_exists_locally(candidate):
                return candidate
        try:
            ref = self._get_repo().git.symbolic_ref(f"refs/remotes/{self.remote_name}/HEAD")
            return ref.rsplit("/", 1)[-1]
        except git.exc.GitCommandError:
            pass
        return "main"

    def merged_branches(self, base: str) -> Set[str]:
        """Branches fully merged into ``base`` (``base`` itself excluded)."""
        try:
            output = self._get_repo().git.branch("--merged", base)
        except git.exc.GitCommandError as e:
            logger.debug(f"Could not list branches merged into {base}: {e}")
            return set()

        merged = set()
        for line in output.split("\n"):
            # "* " marks the current branch, "+ " one checked out elsewhere
            name = line.strip().lstrip("*+").strip()
            if name and name != base:
                merged.add(name)
        return merged

    def gone_branches(self) -> Set[str]:
        """Branches whose upstream was deleted on the remote."""
        try:
            output = self._get_repo().git.branch("-vv")
        except git.exc.GitCommandError as e:
            logger.debug(f"Could not read branch tracking info: {e}")
            return set()

        gone = set()
        for line in output.split("\n"):
            if ": gone]" not in line:
                continue
            fields = line[2:].split()
            if fields:
                gone.add(fields[0])
        return gone

    def has_merged_commits(self, base: str, branch: str) -> bool:
        """Whether ``branch`` brought commits of its own into ``base``.

        A merged branch whose tip sits on ``base``'s first-parent line never
        diverged from it (or was fast-forwarded), so it had nothing unique.
        """
        repo = self._get_repo()
        try:
            tip = repo.git.rev_parse(branch)
            history = repo.git.rev_list("--first-parent", base)
        except git.exc.GitCommandError as e:
            logger.debug(f"Could not compare {branch} with {base}: {e}")
            return False
        return tip not in history.split()

    def branch_statuses(self) -> List[BranchStatus]:
        """Local branches with their working state.

        Only the checked-out branch has a working directory to inspect here;
        every other branch is reported clean.
        """
        repo = self._get_repo()
        current = self.current_branch()
        staged = modified = untracked = 0
        try:
            staged, modified, untracked = parse_status_counts(repo.git.status("--porcelain"))
        except git.exc.GitCommandError as e:
            logger.warning(f"Could not read status of {self.repo_path}: {e}")

        statuses = []
        for name in self.local_branches():
            ahead, behind = self.ahead_behind(name)
            if name == current:
                statuses.append(BranchStatus(
                    name=name,
                    is_current=True,
                    is_clean=staged == 0 and modified == 0 and untracked == 0,
                    staged=staged,
                    modified=modified,
                    untracked=untracked,
                    ahead=ahead,
                    behind=behind,
                ))
            else:
                statuses.append(BranchStatus(name=name, ahead=ahead, behind=behind))
        return statuses

    def available_branches(self, checked_out: Set[str]) -> List[str]:
        """Existing branches that are not checked out in any worktree.

        Local branches come first, then branches that only exist on the remote.
        """
        local = self.local_branches()
        branches = [b for b in local if b not in checked_out]
        local_set = set(local)
        for name in self.remote_branches():
            if name not in local_set and name not in checked_out:
                branches.append(name)
        return branches

    def fetch(self) -> Optional[str]:
        """Best-effort ``git fetch``; returns an error message instead of raising."""
        try:
            self._get_repo().git.fetch(self.remote_name)
            return None
        except git.exc.GitCommandError as e:
            logger.debug(f"Fetch from {self.remote_name} failed: {e}")
            return str(e)
