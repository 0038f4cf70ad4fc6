"""Worktree model and related enums"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class WorktreeStatus(Enum):
    """Working-tree status of a worktree."""
    CLEAN = "clean"
    MODIFIED = "modified"
    UNTRACKED = "untracked"
    MIXED = "mixed"
    UNPUSHED = "unpushed"
    MISSING = "missing"


class BranchState(Enum):
    """Whether the branch checked out in a worktree is still in use."""
    ACTIVE = "active"
    STALE = "stale"


class StaleReason(Enum):
    """Why a worktree was classified as stale."""
    PR_MERGED = "pr_merged"
    PR_CLOSED = "pr_closed"
    NO_UNIQUE_COMMITS = "no_unique_commits"
    MERGED_LOCALLY = "merged_locally"
    REMOTE_GONE = "remote_gone"


class PRState(Enum):
    """State of the pull request associated with a branch."""
    OPEN = "OPEN"
    DRAFT = "DRAFT"
    MERGED = "MERGED"
    CLOSED = "CLOSED"


class CIState(Enum):
    """Aggregated check-run state for a pull request head."""
    SUCCESS = "success"
    FAILURE = "failure"
    PENDING = "pending"
    UNKNOWN = "unknown"


class GitHubAvailability(Enum):
    """Whether PR/CI enrichment can be used."""
    UNCHECKED = "unchecked"
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


class RemovalReason(Enum):
    """Why removing a worktree failed, as shown to the user."""
    HAS_SUBMODULES = "has submodules (try force delete)"
    UNCOMMITTED_CHANGES = "has uncommitted changes"
    NOT_A_WORKTREE = "not a valid worktree"
    FAILED = "deletion failed"


@dataclass(frozen=True)
class Worktree:
    """Point-in-time view of one git worktree.

    Instances are rebuilt on every refresh and never mutated; enrichment
    produces new instances via ``dataclasses.replace``.
    """
    name: str
    path: str
    branch: str
    is_current: bool = False
    is_main: bool = False
    head: str = ""
    staged: int = 0
    modified: int = 0
    untracked: int = 0
    unpushed: int = 0
    has_submodules: bool = False
    status: WorktreeStatus = WorktreeStatus.CLEAN
    last_commit: str = ""
    branch_state: BranchState = BranchState.ACTIVE
    stale_reason: Optional[StaleReason] = None
    pr_number: Optional[int] = None
    pr_state: Optional[PRState] = None
    pr_url: Optional[str] = None
    ci_state: Optional[CIState] = None

    @property
    def is_clean(self) -> bool:
        """No staged, modified or untracked files."""
        return self.staged == 0 and self.modified == 0 and self.untracked == 0

    @property
    def is_stale(self) -> bool:
        return self.branch_state == BranchState.STALE

    @property
    def is_missing(self) -> bool:
        return self.status == WorktreeStatus.MISSING

    @property
    def is_detached(self) -> bool:
        return self.branch in ("(detached)", "(bare)", "")

    @property
    def has_pr(self) -> bool:
        return bool(self.pr_number)

    def __str__(self) -> str:
        """String representation of worktree."""
        markers = []
        if self.is_main:
            markers.append("main")
        if self.is_current:
            markers.append("current")
        suffix = f" ({', '.join(markers)})" if markers else ""
        return f"{self.branch} @ {self.path}{suffix} [{self.status.value}]"


@dataclass(frozen=True)
class BranchStatus:
    """A local branch and its working state, used by the base-branch picker."""
    name: str
    is_current: bool = False
    is_clean: bool = True
    staged: int = 0
    modified: int = 0
    untracked: int = 0
    ahead: int = 0
    behind: int = 0


@dataclass(frozen=True)
class RepoInfo:
    """Repository facts loaded once at startup."""
    name: str
    root: str
    current_branch: str
    default_branch: str
    is_initialized: bool = False


@dataclass(frozen=True)
class Action:
    """Something that can be done with a worktree path (open in editor, cd, ...)."""
    name: str
    command: str
    args: Tuple[str, ...] = ()
    available: bool = True

    @property
    def is_navigate(self) -> bool:
        return self.command == "navigate"

    @property
    def is_back(self) -> bool:
        return self.command == ""


@dataclass(frozen=True)
class FileChange:
    """One file differing between two worktrees."""
    path: str
    status: str  # A, M or D
    uncommitted: bool = False


@dataclass(frozen=True)
class ForEachResult:
    """Outcome of running a command in one worktree."""
    worktree: str
    branch: str
    command: str
    output: str
    exit_code: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


@dataclass(frozen=True)
class MergeResult:
    """Outcome of merging a worktree branch into the default branch."""
    source_branch: str
    target_branch: str
    merged: bool
    squashed: bool = False
    rebased: bool = False
    removed: bool = False
    message: str = ""
    warning: Optional[str] = None


@dataclass(frozen=True)
class CreateResult:
    """Outcome of creating a worktree."""
    path: str
    branch: str
    warning: Optional[str] = None


@dataclass(frozen=True)
class DeletionResult:
    """Outcome of removing one worktree."""
    path: str
    branch: str
    success: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class ProjectAnalysis:
    """What project initialization detected about the repository."""
    package_manager: str
    description: str
    post_create_command: str
    hook_exists: bool = False
    linked_files: Tuple[str, ...] = ()
