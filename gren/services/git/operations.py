"""Multi-step git workflows: merge, for-each and commit."""

import os
import re
import subprocess
from typing import TYPE_CHECKING, Dict, List, Optional

import git

from gren.config import Config
from gren.exceptions import GitOperationError
from gren.logging_config import get_logger
from gren.models.worktree import ForEachResult, MergeResult, Worktree
from gren.services.git.utils import git_error_message, parse_status_counts, sanitize_branch
from gren.services.git.worktrees import WorktreeService, parse_worktree_porcelain

if TYPE_CHECKING:
    from gren.services.deletion import DeletionProtocol

logger = get_logger(__name__)

_TEMPLATE_VAR = re.compile(r"\{\{\s*(\w+)\s*(?:\|\s*(\w+)\s*)?\}\}")

FOR_EACH_TIMEOUT = 300  # seconds per worktree
GENERATOR_TIMEOUT = 120  # seconds


def expand_template(template: str, variables: Dict[str, str]) -> str:
    """Expand ``{{ name }}`` and ``{{ name | sanitize }}`` placeholders.

    Unknown names are left untouched.
    """
    def substitute(match):
        name, filter_name = match.group(1), match.group(2)
        if name not in variables:
            return match.group(0)
        value = variables[name]
        if filter_name == "sanitize":
            value = sanitize_branch(value)
        return value

    return _TEMPLATE_VAR.sub(substitute, template)


class WorktreeOperations:
    """Merge, for-each and commit workflows run against worktrees."""

    def __init__(
        self,
        repo_path: str,
        worktree_service: WorktreeService,
        deletion: "DeletionProtocol",
        config: Optional[Config] = None,
    ):
        self.repo_path = repo_path
        self.worktree_service = worktree_service
        self.deletion = deletion
        self.config = config or Config()

    def _get_repo(self):
        return git.Repo(self.repo_path, search_parent_directories=True)

    def _git_in(self, path: str, *args: str) -> str:
        return self._get_repo().git.execute(["git", "-C", path, *args])

    def _commit_all(self, path: str, message: str) -> None:
        self._git_in(path, "add", "-A")
        self._git_in(path, "commit", "-m", message)

    # ------------------------------------------------------------------ merge

    def merge(
        self,
        source: Worktree,
        target_branch: str,
        squash: bool = False,
        rebase: bool = False,
        remove: bool = False,
    ) -> MergeResult:
        """Merge the branch of ``source`` into ``target_branch`` by fast-forward.

        Raises:
            GitOperationError: If any git step fails; earlier steps are not undone
        """
        branch = source.branch
        path = source.path
        if source.is_detached:
            raise GitOperationError("merge", source.path, "worktree has no branch checked out")
        if branch == target_branch:
            raise GitOperationError("merge", branch, f"cannot merge {branch} into itself")

        try:
            staged, modified, untracked = parse_status_counts(self._git_in(path, "status", "--porcelain"))
            if staged or modified or untracked:
                logger.info(f"Committing pending changes on {branch} before merge")
                self._commit_all(path, f"WIP: changes on {branch}")

            ahead = int(self._git_in(path, "rev-list", "--count", f"{target_branch}..HEAD"))
            if ahead == 0:
                return MergeResult(
                    source_branch=branch,
                    target_branch=target_branch,
                    merged=False,
                    message=f"{branch} has no commits to merge into {target_branch}",
                )

            squashed = False
            if squash and ahead > 1:
                merge_base = self._git_in(path, "merge-base", target_branch, "HEAD").strip()
                self._git_in(path, "reset", "--soft", merge_base)
                self._git_in(path, "commit", "-m", f"Squashed commits from {branch}")
                squashed = True
                logger.info(f"Squashed {ahead} commits on {branch}")

            rebased = False
            if rebase:
                try:
                    self._git_in(path, "rebase", target_branch)
                except git.exc.GitCommandError as e:
                    try:
                        self._git_in(path, "rebase", "--abort")
                    except git.exc.GitCommandError:
                        logger.debug(f"rebase --abort failed in {path}")
                    raise GitOperationError("rebase", branch, git_error_message("rebase", e)) from e
                rebased = True

            self._fast_forward(target_branch, branch)
        except git.exc.GitCommandError as e:
            raise GitOperationError("merge", branch, git_error_message("merge", e)) from e

        removed = False
        warning = None
        if remove:
            removed, error = self.deletion.delete(path, force=True)
            if not removed:
                warning = f"merged, but the worktree was not removed: {error}"

        logger.info(f"Merged {branch} into {target_branch}")
        return MergeResult(
            source_branch=branch,
            target_branch=target_branch,
            merged=True,
            squashed=squashed,
            rebased=rebased,
            removed=removed,
            message=f"Merged {branch} into {target_branch}",
            warning=warning,
        )

    def _fast_forward(self, target_branch: str, source_branch: str) -> None:
        """Move ``target_branch`` to ``source_branch`` without a merge commit."""
        repo = self._get_repo()
        entries = parse_worktree_porcelain(repo.git.worktree("list", "--porcelain"))
        target_path = next(
            (e["path"] for e in entries if e.get("branch") == target_branch and os.path.isdir(e["path"])),
            None,
        )

        if target_path:
            # Checked out somewhere: let git update the index and files too
            self._git_in(target_path, "merge", "--ff-only", source_branch)
            return

        try:
            repo.git.merge_base("--is-ancestor", target_branch, source_branch)
        except git.exc.GitCommandError as e:
            raise GitOperationError(
                "merge", source_branch,
                f"{target_branch} has diverged from {source_branch}; try again with rebase",
            ) from e
        old = repo.git.rev_parse(target_branch).strip()
        new = repo.git.rev_parse(source_branch).strip()
        repo.git.update_ref(f"refs/heads/{target_branch}", new, old)

    # --------------------------------------------------------------- for-each

    def template_variables(self, worktree: Worktree, repo_root: str, default_branch: str) -> Dict[str, str]:
        return {
            "branch": worktree.branch,
            "worktree": worktree.path,
            "worktree_name": worktree.name,
            "repo": os.path.basename(repo_root.rstrip(os.sep)),
            "repo_root": repo_root,
            "commit": worktree.head,
            "short_commit": worktree.head[:7],
            "default_branch": default_branch,
        }

    def for_each(
        self,
        worktrees: List[Worktree],
        command: str,
        skip_main: bool = False,
        skip_current: bool = False,
    ) -> List[ForEachResult]:
        """Run ``command`` with ``sh -c`` in every worktree, collecting output."""
        repo_root = self.worktree_service.repo_root()
        default_branch = self.worktree_service.branch_queries.default_branch()

        results = []
        for wt in worktrees:
            if wt.is_missing:
                continue
            if skip_main and wt.is_main:
                continue
            if skip_current and wt.is_current:
                continue

            expanded = expand_template(command, self.template_variables(wt, repo_root, default_branch))
            logger.debug(f"for-each in {wt.path}: {expanded}")
            try:
                proc = subprocess.run(
                    ["sh", "-c", expanded],
                    cwd=wt.path,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.STDOUT,
                    text=True,
                    timeout=FOR_EACH_TIMEOUT,
                )
                output, code = proc.stdout, proc.returncode
            except subprocess.TimeoutExpired:
                output, code = f"timed out after {FOR_EACH_TIMEOUT}s", 124
            except OSError as e:
                output, code = str(e), 127

            results.append(ForEachResult(
                worktree=wt.name,
                branch=wt.branch,
                command=expanded,
                output=output.rstrip(),
                exit_code=code,
            ))
        return results

    # ----------------------------------------------------------------- commit

    def step_commit(self, path: str, branch: str, message: str = "", use_generator: bool = False) -> str:
        """Stage everything in ``path`` and commit it.

        Returns:
            The commit message that was used

        Raises:
            GitOperationError: If there is nothing to commit or git fails
        """
        try:
            self._git_in(path, "add", "-A")
            staged = self._git_in(path, "diff", "--cached", "--name-only")
            if not staged.strip():
                raise GitOperationError("commit", branch, "nothing to commit")

            if use_generator:
                message = self.generate_commit_message(path, branch)
            if not message.strip():
                message = f"WIP: changes on {branch}"

            self._git_in(path, "commit", "-m", message)
        except git.exc.GitCommandError as e:
            raise GitOperationError("commit", branch, git_error_message("commit", e)) from e

        logger.info(f"Committed on {branch}: {message.splitlines()[0]}")
        return message

    def generate_commit_message(self, path: str, branch: str) -> str:
        """Ask the configured generator for a message, given the staged diff on stdin."""
        fallback = f"WIP: changes on {branch}"
        command = self.config.commit_generator_command
        if not command:
            return fallback

        diff = self._git_in(path, "diff", "--cached")
        try:
            proc = subprocess.run(
                [command, *self.config.commit_generator_args],
                input=diff,
                cwd=path,
                capture_output=True,
                text=True,
                timeout=GENERATOR_TIMEOUT,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.warning(f"Commit message generator failed: {e}")
            return fallback

        generated = proc.stdout.strip()
        if proc.returncode != 0 or not generated:
            logger.warning(f"Commit message generator exited {proc.returncode}: {proc.stderr.strip()}")
            return fallback
        return generated
