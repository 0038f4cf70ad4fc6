"""Commands: immutable descriptions of side effects for the dispatcher to run.

Commands copy whatever state they need when they are created, so a later
state change cannot alter a command that is already running.
"""
from dataclasses import dataclass
from typing import Optional, Tuple

from gren.models.worktree import Action, FileChange, ProjectAnalysis, Worktree


class Command:
    """Base class for every side effect requested by ``update``."""


@dataclass(frozen=True)
class LoadProjectInfo(Command):
    pass


@dataclass(frozen=True)
class LoadWorktrees(Command):
    pass


@dataclass(frozen=True)
class CheckGitHub(Command):
    pass


@dataclass(frozen=True)
class LoadGitHubStatus(Command):
    generation: int
    worktrees: Tuple[Worktree, ...]


@dataclass(frozen=True)
class LoadBranchStatuses(Command):
    pass


@dataclass(frozen=True)
class LoadAvailableBranches(Command):
    pass


@dataclass(frozen=True)
class CreateWorktree(Command):
    branch: str
    base: str
    is_new_branch: bool


@dataclass(frozen=True)
class DeleteWorktrees(Command):
    targets: Tuple[Tuple[str, str], ...]  # (path, branch)
    force: bool = False


@dataclass(frozen=True)
class RemoveStaleWorktree(Command):
    index: int
    path: str
    force: bool = False


@dataclass(frozen=True)
class PruneWorktrees(Command):
    pass


@dataclass(frozen=True)
class OpenPullRequest(Command):
    branch: str


@dataclass(frozen=True)
class LoadActions(Command):
    path: str


@dataclass(frozen=True)
class ExecuteAction(Command):
    action: Action
    path: str


@dataclass(frozen=True)
class WriteDirective(Command):
    path: str
    run: Optional[str] = None


@dataclass(frozen=True)
class Quit(Command):
    pass


@dataclass(frozen=True)
class Tick(Command):
    pass


@dataclass(frozen=True)
class LoadConfigFiles(Command):
    pass


@dataclass(frozen=True)
class OpenConfigFile(Command):
    path: str


@dataclass(frozen=True)
class AnalyzeProject(Command):
    pass


@dataclass(frozen=True)
class InitializeProject(Command):
    analysis: ProjectAnalysis


@dataclass(frozen=True)
class MergeWorktree(Command):
    source: Worktree
    target_branch: str
    squash: bool = False
    rebase: bool = False
    remove: bool = False


@dataclass(frozen=True)
class RunForEach(Command):
    command: str
    worktrees: Tuple[Worktree, ...]
    skip_main: bool = True


@dataclass(frozen=True)
class StepCommit(Command):
    path: str
    branch: str
    message: str = ""
    use_generator: bool = False


@dataclass(frozen=True)
class LoadCompare(Command):
    source_path: str
    target_path: str


@dataclass(frozen=True)
class LoadDiff(Command):
    source_path: str
    target_path: str
    change: FileChange


@dataclass(frozen=True)
class ApplyChanges(Command):
    source_path: str
    target_path: str
    changes: Tuple[FileChange, ...]
