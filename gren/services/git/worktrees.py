"""Worktree registry and lifecycle operations for gren."""

import os
import re
import subprocess
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple

import git

from gren.config import Config
from gren.exceptions import GitOperationError, NotAGitRepositoryError
from gren.logging_config import get_logger
from gren.models.worktree import (
    BranchState,
    CreateResult,
    StaleReason,
    Worktree,
    WorktreeStatus,
)
from gren.services.git.branches import BranchQueries
from gren.services.git.utils import git_error_message, parse_status_counts, sanitize_branch

logger = get_logger(__name__)

_RELATIVE_TIME = re.compile(r"(\d+)\s+(second|minute|hour|day|week|month|year)s?")
_TIME_UNITS = {
    "second": "s",
    "minute": "m",
    "hour": "h",
    "day": "d",
    "week": "w",
    "month": "mo",
    "year": "y",
}

HOOK_TIMEOUT = 600  # seconds
PREVIOUS_WORKTREE_KEY = "gren.previousWorktree"


def shorten_relative_time(text: str) -> str:
    """Compact git's relative dates: ``2 hours ago`` -> ``2h ago``."""
    match = _RELATIVE_TIME.search(text)
    if not match:
        return text.strip()
    return f"{match.group(1)}{_TIME_UNITS[match.group(2)]} ago"


def parse_worktree_porcelain(output: str) -> List[Dict[str, Any]]:
    """Parse ``git worktree list --porcelain`` into one dict per worktree.

    Format:
        worktree /path/to/worktree
        HEAD commit_sha
        branch refs/heads/branch-name   (or "detached" / "bare")
        (blank line between worktrees)
    """
    entries: List[Dict[str, Any]] = []
    current: Dict[str, Any] = {}
    for line in output.split("\n"):
        line = line.strip()
        if not line:
            if current.get("path"):
                entries.append(current)
            current = {}
            continue

        if line.startswith("worktree "):
            current = {"path": line.split(" ", 1)[1], "branch": "", "head": ""}
        elif line.startswith("HEAD "):
            current["head"] = line.split(" ", 1)[1]
        elif line.startswith("branch "):
            ref = line.split(" ", 1)[1]
            if ref.startswith("refs/heads/"):
                ref = ref[len("refs/heads/"):]
            current["branch"] = ref
        elif line == "detached":
            current["branch"] = "(detached)"
        elif line == "bare":
            current["branch"] = "(bare)"
            current["bare"] = True

    if current.get("path"):
        entries.append(current)
    return entries


class WorktreeService:
    """Service for listing, creating and removing git worktrees."""

    def __init__(
        self,
        repo_path: str,
        config: Optional[Config] = None,
        branch_queries: Optional[BranchQueries] = None,
        fetch_before_create: bool = True,
    ):
        """Initialize the worktree service.

        Args:
            repo_path: Path to the git repository (any of its worktrees)
            config: Project configuration, used for the worktree directory and hook
            branch_queries: BranchQueries instance (dependency injection)
            fetch_before_create: Whether to ``git fetch`` before creating worktrees
        """
        self.repo_path = repo_path
        self.config = config or Config()
        self.branch_queries = branch_queries or BranchQueries(repo_path)
        self.fetch_before_create = fetch_before_create

    def _get_repo(self):
        """Get a fresh git.Repo instance (safe to use from worker threads)."""
        try:
            return git.Repo(self.repo_path, search_parent_directories=True)
        except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError) as e:
            raise NotAGitRepositoryError(self.repo_path) from e

    def _git_in(self, path: str, *args: str) -> str:
        """Run a git command inside ``path`` (``git -C path ...``)."""
        return self._get_repo().git.execute(["git", "-C", path, *args])

    def repo_root(self) -> str:
        """Root of the main checkout, even when called from a linked worktree."""
        repo = self._get_repo()
        common_dir = Path(repo.common_dir).resolve()
        if common_dir.name == ".git":
            return str(common_dir.parent)
        return repo.working_tree_dir or str(common_dir)

    def list_worktrees(self, cwd: Optional[str] = None) -> List[Worktree]:
        """Build a fresh snapshot of every worktree with status and staleness.

        Args:
            cwd: Directory gren runs from; decides which worktree is current

        Raises:
            GitOperationError: If git cannot list worktrees
        """
        try:
            output = self._get_repo().git.worktree("list", "--porcelain")
        except git.exc.GitCommandError as e:
            raise GitOperationError("list_worktrees", message=git_error_message("worktree list", e)) from e

        entries = parse_worktree_porcelain(output)
        current_path = self._find_current(entries, cwd or os.getcwd())
        main_path = self._find_main(entries)

        worktrees = [
            self._build_worktree(entry, entry["path"] == current_path, entry["path"] == main_path)
            for entry in entries
        ]
        worktrees = self._classify_staleness(worktrees)

        logger.debug(f"Found {len(worktrees)} worktrees")
        for wt in worktrees:
            logger.debug(f"  {wt}")
        return worktrees

    @staticmethod
    def _find_current(entries: List[Dict[str, Any]], cwd: str) -> Optional[str]:
        """Path of the worktree containing ``cwd`` (deepest match wins)."""
        cwd_real = os.path.realpath(cwd)
        best = None
        for entry in entries:
            path_real = os.path.realpath(entry["path"])
            if cwd_real == path_real or cwd_real.startswith(path_real + os.sep):
                if best is None or len(path_real) > len(os.path.realpath(best)):
                    best = entry["path"]
        return best

    @staticmethod
    def _find_main(entries: List[Dict[str, Any]]) -> Optional[str]:
        """The main worktree owns a real ``.git`` directory; linked ones have a file."""
        for entry in entries:
            if os.path.isdir(os.path.join(entry["path"], ".git")):
                return entry["path"]
        return entries[0]["path"] if entries else None

    def _build_worktree(self, entry: Dict[str, Any], is_current: bool, is_main: bool) -> Worktree:
        path = entry["path"]
        branch = entry.get("branch") or "(detached)"
        base = Worktree(
            name=os.path.basename(path.rstrip(os.sep)) or path,
            path=path,
            branch=branch,
            is_current=is_current,
            is_main=is_main,
            head=entry.get("head", ""),
        )

        if not os.path.isdir(path):
            return replace(base, status=WorktreeStatus.MISSING)

        staged, modified, untracked = self.working_tree_counts(path)
        unpushed, has_upstream = self.unpushed_count(path, branch)

        if (staged or modified) and untracked:
            status = WorktreeStatus.MIXED
        elif staged or modified:
            status = WorktreeStatus.MODIFIED
        elif untracked:
            status = WorktreeStatus.UNTRACKED
        elif unpushed > 0 or not has_upstream:
            status = WorktreeStatus.UNPUSHED
        else:
            status = WorktreeStatus.CLEAN

        return replace(
            base,
            staged=staged,
            modified=modified,
            untracked=untracked,
            unpushed=unpushed,
            status=status,
            has_submodules=os.path.exists(os.path.join(path, ".gitmodules")),
            last_commit=self.last_commit(path),
        )

    def working_tree_counts(self, path: str) -> Tuple[int, int, int]:
        """(staged, modified, untracked) file counts for the worktree at ``path``."""
        try:
            return parse_status_counts(self._git_in(path, "status", "--porcelain"))
        except git.exc.GitCommandError as e:
            logger.warning(f"Could not check worktree status for {path}: {git_error_message('status', e)}")
            return 0, 0, 0

    def unpushed_count(self, path: str, branch: str) -> Tuple[int, bool]:
        """Commits not on the upstream, and whether the branch has an upstream at all."""
        if branch.startswith("("):
            return 0, True
        try:
            output = self._git_in(path, "log", "--oneline", "@{u}..HEAD")
            return len([line for line in output.split("\n") if line.strip()]), True
        except git.exc.GitCommandError:
            pass
        # No upstream configured: count as unpushed unless origin already has it
        return 0, self.branch_queries.branch_exists_remotely(branch)

    def last_commit(self, path: str) -> str:
        try:
            return shorten_relative_time(self._git_in(path, "log", "-1", "--format=%cr"))
        except git.exc.GitCommandError:
            return ""

    def _classify_staleness(self, worktrees: List[Worktree]) -> List[Worktree]:
        """Mark worktrees whose branch is merged or whose upstream is gone.

        Merged and gone branch sets are computed once for the whole list.
        """
        base = self.branch_queries.default_branch()
        merged = self.branch_queries.merged_branches(base)
        gone = self.branch_queries.gone_branches()

        classified = []
        for wt in worktrees:
            if wt.is_main or wt.is_missing or wt.is_detached:
                classified.append(replace(wt, branch_state=BranchState.ACTIVE, stale_reason=None))
            elif wt.branch in merged:
                if self.branch_queries.has_merged_commits(base, wt.branch):
                    reason = StaleReason.MERGED_LOCALLY
                else:
                    reason = StaleReason.NO_UNIQUE_COMMITS
                logger.info(f"Branch {wt.branch} is merged into {base} ({reason.value})")
                classified.append(replace(wt, branch_state=BranchState.STALE, stale_reason=reason))
            elif wt.branch in gone:
                logger.info(f"Branch {wt.branch} has a gone upstream")
                classified.append(replace(
                    wt, branch_state=BranchState.STALE, stale_reason=StaleReason.REMOTE_GONE
                ))
            else:
                classified.append(replace(wt, branch_state=BranchState.ACTIVE, stale_reason=None))
        return classified

    def checked_out_branches(self) -> Set[str]:
        """Branches currently checked out in some worktree."""
        output = self._get_repo().git.worktree("list", "--porcelain")
        return {
            entry["branch"]
            for entry in parse_worktree_porcelain(output)
            if entry.get("branch") and not entry["branch"].startswith("(")
        }

    def previous_worktree(self) -> Optional[str]:
        """Worktree the last ``gren navigate`` left, from local git config."""
        try:
            return self._get_repo().git.config("--local", PREVIOUS_WORKTREE_KEY).strip() or None
        except git.exc.GitCommandError:
            # Unset key exits 1
            return None

    def set_previous_worktree(self, path: str) -> None:
        try:
            self._get_repo().git.config("--local", PREVIOUS_WORKTREE_KEY, path)
        except git.exc.GitCommandError as e:
            logger.warning(f"Could not record previous worktree: {git_error_message('config', e)}")

    def worktree_directory(self) -> str:
        return self.config.resolve_worktree_dir(self.repo_root())

    def create_worktree(self, branch: str, base: str, is_new_branch: bool) -> CreateResult:
        """Create a worktree for ``branch``.

        Args:
            branch: Branch to check out (or create)
            base: Starting point for a new branch
            is_new_branch: True to create ``branch`` from ``base``

        Returns:
            CreateResult with the new path and an optional soft warning

        Raises:
            GitOperationError: If the worktree could not be created
        """
        queries = self.branch_queries
        if self.fetch_before_create:
            queries.fetch()

        if branch in self.checked_out_branches():
            raise GitOperationError(
                "create_worktree", branch, "branch is already checked out in another worktree"
            )

        worktree_dir = Path(self.worktree_directory())
        worktree_dir.mkdir(parents=True, exist_ok=True)
        path = str(worktree_dir / sanitize_branch(branch))
        if os.path.exists(path):
            raise GitOperationError("create_worktree", branch, f"path already exists: {path}")

        args, warnings = self._worktree_add_args(branch, base, is_new_branch, path)
        try:
            self._get_repo().git.worktree("add", *args)
        except git.exc.GitCommandError as e:
            raise GitOperationError("create_worktree", branch, git_error_message("worktree add", e)) from e
        logger.info(f"Created worktree for {branch} at {path}")

        root = self.repo_root()
        if os.path.exists(os.path.join(root, ".gitmodules")):
            try:
                self._git_in(path, "submodule", "update", "--init", "--recursive")
            except git.exc.GitCommandError as e:
                logger.warning(f"Submodule init failed in {path}: {git_error_message('submodule update', e)}")

        hook_warning = self.run_post_create_hook(path, branch, base)
        if hook_warning:
            warnings.append(hook_warning)

        return CreateResult(path=path, branch=branch, warning="; ".join(warnings) or None)

    def _worktree_add_args(
        self, branch: str, base: str, is_new_branch: bool, path: str
    ) -> Tuple[List[str], List[str]]:
        """Pick the ``git worktree add`` arguments from where the branch exists."""
        queries = self.branch_queries
        remote = queries.remote_name
        has_local = queries.branch_exists_locally(branch)
        has_remote = queries.branch_exists_remotely(branch)
        warnings: List[str] = []

        if has_local and has_remote:
            ahead, _ = queries.ahead_behind(branch)
            if ahead > 0:
                warnings.append(f"{branch} has {ahead} unpushed commit(s) - using local version")
            return [path, branch], warnings
        if has_local:
            if is_new_branch:
                raise GitOperationError("create_worktree", branch, "branch already exists")
            return [path, branch], warnings
        if has_remote:
            return ["--track", "-b", branch, path, f"{remote}/{branch}"], warnings
        if is_new_branch:
            start = base or queries.default_branch()
            if queries.branch_exists_remotely(start) and not queries.branch_exists_locally(start):
                start = f"{remote}/{start}"
            return ["-b", branch, path, start], warnings

        raise GitOperationError(
            "create_worktree", branch, f"branch '{branch}' not found locally or on remote"
        )

    def run_post_create_hook(self, path: str, branch: str, base: str) -> Optional[str]:
        """Run the configured post-create hook in a new worktree.

        Returns:
            A warning message if the hook failed, otherwise None
        """
        root = self.repo_root()
        hook = self.config.resolve_hook(root)
        if not hook or not os.path.isfile(hook):
            return None

        env = dict(os.environ)
        env.update({
            "GREN_WORKTREE_PATH": path,
            "GREN_BRANCH": branch,
            "GREN_BASE_BRANCH": base or "",
            "GREN_REPO_ROOT": root,
        })
        logger.info(f"Running post-create hook {hook} in {path}")
        try:
            command = [hook] if os.access(hook, os.X_OK) else ["sh", hook]
            result = subprocess.run(
                [*command, path, branch, base or "", root],
                cwd=path,
                env=env,
                capture_output=True,
                text=True,
                timeout=HOOK_TIMEOUT,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.warning(f"Post-create hook failed: {e}")
            return f"post-create hook failed: {e}"

        if result.returncode != 0:
            detail = (result.stderr or result.stdout).strip().splitlines()
            logger.warning(f"Post-create hook exited {result.returncode}: {result.stderr.strip()}")
            message = f"post-create hook exited with code {result.returncode}"
            if detail:
                message += f": {detail[-1]}"
            return message
        return None

    def remove_worktree(self, path: str, force: bool = False) -> Tuple[bool, Optional[str]]:
        """Remove a worktree at the specified path.

        Args:
            path: Path to the worktree directory
            force: Force removal even if working tree is dirty or has submodules

        Returns:
            Tuple of (success, error_message). error_message is None on success.
        """
        try:
            args = ["remove"]
            if force:
                args.append("--force")
            args.append(path)

            self._get_repo().git.worktree(*args)
            logger.info(f"Removed worktree at {path}")
            return True, None
        except git.exc.GitCommandError as e:
            error_msg = git_error_message("worktree remove", e)
            logger.error(f"Failed to remove worktree at {path}: {error_msg}")
            return False, error_msg

    def deinit_submodules(self, path: str) -> Tuple[bool, Optional[str]]:
        """Forcibly deinitialize every submodule of the worktree at ``path``."""
        try:
            self._git_in(path, "submodule", "deinit", "--all", "--force")
            logger.info(f"Deinitialized submodules in {path}")
            return True, None
        except git.exc.GitCommandError as e:
            error_msg = git_error_message("submodule deinit", e)
            logger.error(f"Failed to deinit submodules in {path}: {error_msg}")
            return False, error_msg

    def prune_worktrees(self) -> Tuple[List[str], Optional[str]]:
        """Prune metadata of worktrees whose directories are gone.

        Returns:
            Tuple of (pruned_paths, error_message). error_message is None on success.
        """
        try:
            repo = self._get_repo()
            entries = parse_worktree_porcelain(repo.git.worktree("list", "--porcelain"))
            missing = [e["path"] for e in entries if not os.path.isdir(e["path"])]
            repo.git.worktree("prune")
            logger.info(f"Pruned {len(missing)} missing worktree(s)")
            return missing, None
        except git.exc.GitCommandError as e:
            error_msg = git_error_message("worktree prune", e)
            logger.error(f"Failed to prune worktrees: {error_msg}")
            return [], error_msg
