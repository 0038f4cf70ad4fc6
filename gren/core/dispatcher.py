"""Runs commands against the services and turns each outcome into one message.

Exceptions never leave ``run``: whatever a service raises becomes the
``error`` field of the result message.
"""
import asyncio
import os
import shlex
import subprocess
from typing import Callable, Dict, Optional, Type

from gren.config import Config, ConfigManager
from gren.constants import SPINNER_INTERVAL
from gren.core import commands as c
from gren.core import messages as m
from gren.core.cleanup import is_known_removal_error
from gren.logging_config import get_logger
from gren.models.worktree import GitHubAvailability, RepoInfo
from gren.services.actions import ActionResolver
from gren.services.deletion import DeletionProtocol
from gren.services.directive import DirectiveWriter
from gren.services.git import CompareService, WorktreeOperations, WorktreeService
from gren.services.github_service import GitHubStatusProvider
from gren.services.project_setup import ProjectSetup

logger = get_logger(__name__)

DEFAULT_EDITOR = "vi"


class CommandDispatcher:
    """Owns the services and executes commands for the TUI."""

    def __init__(
        self,
        repo_path: str,
        cwd: Optional[str] = None,
        worktree_service: Optional[WorktreeService] = None,
        github: Optional[GitHubStatusProvider] = None,
        actions: Optional[ActionResolver] = None,
        directive: Optional[DirectiveWriter] = None,
    ):
        """Initialize the dispatcher.

        Args:
            repo_path: Any directory inside the repository
            cwd: Directory gren runs from (decides the current worktree)
            worktree_service: WorktreeService instance (dependency injection)
            github: GitHubStatusProvider instance (dependency injection)
            actions: ActionResolver instance (dependency injection)
            directive: DirectiveWriter instance (dependency injection)
        """
        self.repo_path = repo_path
        self.cwd = cwd or os.getcwd()
        self.worktree_service = worktree_service or WorktreeService(repo_path)
        self.deletion = DeletionProtocol(self.worktree_service)
        self.operations = WorktreeOperations(repo_path, self.worktree_service, self.deletion)
        self.compare = CompareService(repo_path)
        self.github = github or GitHubStatusProvider(repo_path)
        self.actions = actions or ActionResolver()
        self.directive = directive or DirectiveWriter()
        self.config = Config()

        self._handlers: Dict[Type[c.Command], Callable[[c.Command], m.Message]] = {
            c.LoadProjectInfo: self._load_project_info,
            c.LoadWorktrees: self._load_worktrees,
            c.CheckGitHub: self._check_github,
            c.LoadGitHubStatus: self._load_github_status,
            c.LoadBranchStatuses: self._load_branch_statuses,
            c.LoadAvailableBranches: self._load_available_branches,
            c.CreateWorktree: self._create_worktree,
            c.DeleteWorktrees: self._delete_worktrees,
            c.RemoveStaleWorktree: self._remove_stale_worktree,
            c.PruneWorktrees: self._prune_worktrees,
            c.OpenPullRequest: self._open_pull_request,
            c.LoadActions: self._load_actions,
            c.ExecuteAction: self._execute_action,
            c.WriteDirective: self._write_directive,
            c.LoadConfigFiles: self._load_config_files,
            c.OpenConfigFile: self._open_config_file,
            c.AnalyzeProject: self._analyze_project,
            c.InitializeProject: self._initialize_project,
            c.MergeWorktree: self._merge_worktree,
            c.RunForEach: self._run_for_each,
            c.StepCommit: self._step_commit,
            c.LoadCompare: self._load_compare,
            c.LoadDiff: self._load_diff,
            c.ApplyChanges: self._apply_changes,
        }

    @property
    def repo_root(self) -> str:
        return self.worktree_service.repo_root()

    def _error_message(self, command: c.Command, error: Exception) -> Optional[m.Message]:
        """The failure message for ``command``, keeping the fields update matches on."""
        text = str(error)
        if isinstance(command, c.LoadProjectInfo):
            return m.ProjectInfoLoaded(error=text)
        if isinstance(command, c.LoadWorktrees):
            return m.WorktreesLoaded(error=text)
        if isinstance(command, c.CheckGitHub):
            return m.GitHubChecked(GitHubAvailability.UNAVAILABLE, error=text)
        if isinstance(command, c.LoadGitHubStatus):
            return m.GitHubStatusLoaded(command.generation, command.worktrees, error=text)
        if isinstance(command, c.LoadBranchStatuses):
            return m.BranchStatusesLoaded(error=text)
        if isinstance(command, c.LoadAvailableBranches):
            return m.AvailableBranchesLoaded(error=text)
        if isinstance(command, c.CreateWorktree):
            return m.WorktreeCreated(error=text)
        if isinstance(command, c.DeleteWorktrees):
            return m.WorktreesDeleted(error=text)
        if isinstance(command, c.RemoveStaleWorktree):
            return m.StaleWorktreeRemoved(command.index, command.path, error=text)
        if isinstance(command, c.PruneWorktrees):
            return m.WorktreesPruned(error=text)
        if isinstance(command, c.OpenPullRequest):
            return m.PullRequestOpened(command.branch, error=text)
        if isinstance(command, c.LoadActions):
            return m.ActionsLoaded(command.path, error=text)
        if isinstance(command, c.ExecuteAction):
            return m.ActionExecuted(command.action.name, error=text)
        if isinstance(command, c.WriteDirective):
            return m.DirectiveWritten(command.path, error=text)
        if isinstance(command, c.LoadConfigFiles):
            return m.ConfigFilesLoaded(error=text)
        if isinstance(command, c.OpenConfigFile):
            return m.ConfigFileEdited(command.path, error=text)
        if isinstance(command, c.AnalyzeProject):
            return m.ProjectAnalyzed(error=text)
        if isinstance(command, c.InitializeProject):
            return m.ProjectInitialized(error=text)
        if isinstance(command, c.MergeWorktree):
            return m.MergeCompleted(error=text)
        if isinstance(command, c.RunForEach):
            return m.ForEachCompleted(error=text)
        if isinstance(command, c.StepCommit):
            return m.CommitCompleted(error=text)
        if isinstance(command, c.LoadCompare):
            return m.CompareLoaded(command.source_path, error=text)
        if isinstance(command, c.LoadDiff):
            return m.DiffLoaded(command.change.path, error=text)
        if isinstance(command, c.ApplyChanges):
            return m.ChangesApplied(error=text)
        return None

    def run(self, command: c.Command) -> Optional[m.Message]:
        """Execute ``command`` synchronously and return its result message.

        Returns None for commands without a result (``Quit``, ``Tick``).
        """
        handler = self._handlers.get(type(command))
        if handler is None:
            return None
        logger.debug(f"Running {type(command).__name__}")
        try:
            return handler(command)
        except Exception as e:
            logger.error(f"{type(command).__name__} failed: {e}", exc_info=True)
            return self._error_message(command, e)

    async def dispatch(self, command: c.Command) -> Optional[m.Message]:
        """Execute ``command`` off the event loop."""
        if isinstance(command, c.Tick):
            await asyncio.sleep(SPINNER_INTERVAL)
            return m.SpinnerTicked()
        return await asyncio.to_thread(self.run, command)

    def close(self) -> None:
        self.github.close()

    # --------------------------------------------------------------- registry

    def _apply_config(self, config: Config) -> None:
        self.config = config
        self.worktree_service.config = config
        self.operations.config = config
        self.github.config = config
        if config.github_token:
            self.github.github_token = config.github_token

    def _load_project_info(self, command: c.LoadProjectInfo) -> m.Message:
        root = self.repo_root
        manager = ConfigManager(root)
        initialized = manager.exists()
        config = manager.load() if initialized else Config.default_for(root)
        self._apply_config(config)

        queries = self.worktree_service.branch_queries
        repo = RepoInfo(
            name=os.path.basename(root),
            root=root,
            current_branch=queries.current_branch(),
            default_branch=queries.default_branch(),
            is_initialized=initialized,
        )
        logger.info(f"Loaded project {repo.name} (initialized={initialized})")
        return m.ProjectInfoLoaded(repo=repo, config=config)

    def _load_worktrees(self, command: c.LoadWorktrees) -> m.Message:
        return m.WorktreesLoaded(tuple(self.worktree_service.list_worktrees(cwd=self.cwd)))

    def _check_github(self, command: c.CheckGitHub) -> m.Message:
        return m.GitHubChecked(self.github.availability(refresh=True))

    def _load_github_status(self, command: c.LoadGitHubStatus) -> m.Message:
        enriched = self.github.enrich(list(command.worktrees))
        return m.GitHubStatusLoaded(command.generation, enriched)

    def _load_branch_statuses(self, command: c.LoadBranchStatuses) -> m.Message:
        return m.BranchStatusesLoaded(tuple(self.worktree_service.branch_queries.branch_statuses()))

    def _load_available_branches(self, command: c.LoadAvailableBranches) -> m.Message:
        checked_out = self.worktree_service.checked_out_branches()
        branches = self.worktree_service.branch_queries.available_branches(checked_out)
        return m.AvailableBranchesLoaded(tuple(branches))

    # -------------------------------------------------------------- lifecycle

    def _create_worktree(self, command: c.CreateWorktree) -> m.Message:
        result = self.worktree_service.create_worktree(command.branch, command.base, command.is_new_branch)
        return m.WorktreeCreated(result=result)

    def _delete_worktrees(self, command: c.DeleteWorktrees) -> m.Message:
        results = self.deletion.delete_many(command.targets, force=command.force)
        for result in results:
            if not result.success:
                logger.warning(f"Failed to delete {result.path}: {result.error}")
        return m.WorktreesDeleted(tuple(results))

    def _remove_stale_worktree(self, command: c.RemoveStaleWorktree) -> m.Message:
        ok, error = self.deletion.delete(command.path, force=command.force)
        if ok:
            return m.StaleWorktreeRemoved(command.index, command.path)
        if not is_known_removal_error(error):
            logger.warning(f"Unrecognized removal output for {command.path}: {error!r}")
        return m.StaleWorktreeRemoved(command.index, command.path, error=error or "unknown error")

    def _prune_worktrees(self, command: c.PruneWorktrees) -> m.Message:
        paths, error = self.worktree_service.prune_worktrees()
        return m.WorktreesPruned(tuple(paths), error=error)

    def _open_pull_request(self, command: c.OpenPullRequest) -> m.Message:
        self.github.open_pr_in_browser(command.branch)
        return m.PullRequestOpened(command.branch)

    # ---------------------------------------------------------------- actions

    def _load_actions(self, command: c.LoadActions) -> m.Message:
        return m.ActionsLoaded(command.path, tuple(self.actions.resolve(command.path)))

    def _execute_action(self, command: c.ExecuteAction) -> m.Message:
        self.actions.execute(command.action, command.path)
        return m.ActionExecuted(command.action.name)

    def _write_directive(self, command: c.WriteDirective) -> m.Message:
        if command.run:
            self.directive.write_cd_and_run(command.path, command.run)
        else:
            self.directive.write_cd(command.path)
        return m.DirectiveWritten(command.path)

    # ----------------------------------------------------------------- config

    def _load_config_files(self, command: c.LoadConfigFiles) -> m.Message:
        files = ConfigManager(self.repo_root).config_files(self.config)
        return m.ConfigFilesLoaded(tuple(files))

    def _open_config_file(self, command: c.OpenConfigFile) -> m.Message:
        """Run the editor in the foreground; the caller suspends the TUI first."""
        editor = os.environ.get("VISUAL") or os.environ.get("EDITOR") or DEFAULT_EDITOR
        proc = subprocess.run([*shlex.split(editor), command.path])
        if proc.returncode != 0:
            return m.ConfigFileEdited(command.path, error=f"{editor} exited with status {proc.returncode}")
        return m.ConfigFileEdited(command.path)

    def _analyze_project(self, command: c.AnalyzeProject) -> m.Message:
        return m.ProjectAnalyzed(ProjectSetup(self.repo_root).analyze())

    def _initialize_project(self, command: c.InitializeProject) -> m.Message:
        setup = ProjectSetup(self.repo_root)
        config = setup.initialize(command.analysis)
        self._apply_config(config)
        return m.ProjectInitialized(config=config, config_path=str(setup.config_manager.config_path()))

    # ------------------------------------------------------------------ flows

    def _merge_worktree(self, command: c.MergeWorktree) -> m.Message:
        result = self.operations.merge(
            command.source,
            command.target_branch,
            squash=command.squash,
            rebase=command.rebase,
            remove=command.remove,
        )
        return m.MergeCompleted(result=result)

    def _run_for_each(self, command: c.RunForEach) -> m.Message:
        results = self.operations.for_each(list(command.worktrees), command.command, skip_main=command.skip_main)
        return m.ForEachCompleted(tuple(results))

    def _step_commit(self, command: c.StepCommit) -> m.Message:
        message = self.operations.step_commit(
            command.path, command.branch, command.message, use_generator=command.use_generator
        )
        return m.CommitCompleted(message)

    def _load_compare(self, command: c.LoadCompare) -> m.Message:
        files = self.compare.changed_files(command.source_path, command.target_path)
        return m.CompareLoaded(command.source_path, tuple(files))

    def _load_diff(self, command: c.LoadDiff) -> m.Message:
        diff = self.compare.file_diff(command.source_path, command.target_path, command.change)
        return m.DiffLoaded(command.change.path, diff)

    def _apply_changes(self, command: c.ApplyChanges) -> m.Message:
        count = self.compare.apply(command.source_path, command.target_path, command.changes)
        return m.ChangesApplied(count)
