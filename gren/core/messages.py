"""Events consumed by ``update``: user input and command results.

Every command result carries an optional ``error``; nothing that goes wrong
while running a command reaches ``update`` as an exception.
"""
from dataclasses import dataclass
from typing import Optional, Tuple

from gren.config import Config
from gren.models.worktree import (
    Action,
    BranchStatus,
    CreateResult,
    DeletionResult,
    FileChange,
    ForEachResult,
    GitHubAvailability,
    MergeResult,
    ProjectAnalysis,
    RepoInfo,
    Worktree,
)


class Message:
    """Base class for everything delivered to ``update``."""


# ----------------------------------------------------------------- user input

@dataclass(frozen=True)
class KeyPressed(Message):
    """A key, normalized: printable characters as themselves, others by name
    (``up``, ``enter``, ``esc``, ``space``, ``tab``, ``backspace``, ``ctrl+c``)."""
    key: str


@dataclass(frozen=True)
class WindowResized(Message):
    width: int
    height: int


@dataclass(frozen=True)
class SpinnerTicked(Message):
    pass


# ------------------------------------------------------------ command results

@dataclass(frozen=True)
class ProjectInfoLoaded(Message):
    repo: Optional[RepoInfo] = None
    config: Optional[Config] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class WorktreesLoaded(Message):
    worktrees: Tuple[Worktree, ...] = ()
    error: Optional[str] = None


@dataclass(frozen=True)
class GitHubChecked(Message):
    availability: GitHubAvailability = GitHubAvailability.UNAVAILABLE
    error: Optional[str] = None


@dataclass(frozen=True)
class GitHubStatusLoaded(Message):
    """Enriched copy of the snapshot published as ``generation``."""
    generation: int = 0
    worktrees: Tuple[Worktree, ...] = ()
    error: Optional[str] = None


@dataclass(frozen=True)
class BranchStatusesLoaded(Message):
    statuses: Tuple[BranchStatus, ...] = ()
    error: Optional[str] = None


@dataclass(frozen=True)
class AvailableBranchesLoaded(Message):
    branches: Tuple[str, ...] = ()
    error: Optional[str] = None


@dataclass(frozen=True)
class WorktreeCreated(Message):
    result: Optional[CreateResult] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class WorktreesDeleted(Message):
    results: Tuple[DeletionResult, ...] = ()
    error: Optional[str] = None


@dataclass(frozen=True)
class StaleWorktreeRemoved(Message):
    index: int
    path: str = ""
    error: Optional[str] = None


@dataclass(frozen=True)
class WorktreesPruned(Message):
    paths: Tuple[str, ...] = ()
    error: Optional[str] = None


@dataclass(frozen=True)
class PullRequestOpened(Message):
    branch: str = ""
    error: Optional[str] = None


@dataclass(frozen=True)
class ActionsLoaded(Message):
    path: str = ""
    actions: Tuple[Action, ...] = ()
    error: Optional[str] = None


@dataclass(frozen=True)
class ActionExecuted(Message):
    name: str = ""
    error: Optional[str] = None


@dataclass(frozen=True)
class DirectiveWritten(Message):
    path: str = ""
    error: Optional[str] = None


@dataclass(frozen=True)
class ConfigFilesLoaded(Message):
    files: Tuple[str, ...] = ()
    error: Optional[str] = None


@dataclass(frozen=True)
class ConfigFileEdited(Message):
    path: str = ""
    error: Optional[str] = None


@dataclass(frozen=True)
class ProjectAnalyzed(Message):
    analysis: Optional[ProjectAnalysis] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class ProjectInitialized(Message):
    config: Optional[Config] = None
    config_path: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class MergeCompleted(Message):
    result: Optional[MergeResult] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class ForEachCompleted(Message):
    results: Tuple[ForEachResult, ...] = ()
    error: Optional[str] = None


@dataclass(frozen=True)
class CommitCompleted(Message):
    message: str = ""
    error: Optional[str] = None


@dataclass(frozen=True)
class CompareLoaded(Message):
    source_path: str = ""
    files: Tuple[FileChange, ...] = ()
    error: Optional[str] = None


@dataclass(frozen=True)
class DiffLoaded(Message):
    path: str = ""
    diff: str = ""
    error: Optional[str] = None


@dataclass(frozen=True)
class ChangesApplied(Message):
    count: int = 0
    error: Optional[str] = None
