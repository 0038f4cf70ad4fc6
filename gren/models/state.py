"""Application state: the active view and its sub-state, held as immutable values.

``AppState.view`` holds exactly one sub-state object; its type is the view
tag, so "exactly one view payload is set" holds by construction.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, FrozenSet, Optional, Tuple, Union

from gren.config import Config
from gren.models.worktree import (
    Action,
    BranchStatus,
    FileChange,
    ForEachResult,
    GitHubAvailability,
    MergeResult,
    ProjectAnalysis,
    RemovalReason,
    RepoInfo,
    Worktree,
)


class View(Enum):
    DASHBOARD = "dashboard"
    CREATE = "create"
    DELETE = "delete"
    INIT = "init"
    CONFIG = "config"
    TOOLS = "tools"
    CLEANUP = "cleanup"
    COMPARE = "compare"
    MERGE = "merge"
    FOR_EACH = "for_each"
    STEP_COMMIT = "step_commit"
    SETTINGS = "settings"
    OPEN_IN = "open_in"


@dataclass(frozen=True)
class DashboardState:
    kind: ClassVar[View] = View.DASHBOARD


# --------------------------------------------------------------------- create

class CreateStep(Enum):
    BRANCH_MODE = "branch_mode"
    BRANCH_NAME = "branch_name"
    EXISTING_BRANCH = "existing_branch"
    BASE_BRANCH = "base_branch"
    CONFIRM = "confirm"
    CREATING = "creating"
    COMPLETE = "complete"


class CreateMode(Enum):
    NEW_BRANCH = "new_branch"
    EXISTING_BRANCH = "existing_branch"


@dataclass(frozen=True)
class CreateState:
    kind: ClassVar[View] = View.CREATE

    step: CreateStep = CreateStep.BRANCH_MODE
    mode: CreateMode = CreateMode.NEW_BRANCH
    mode_cursor: int = 0
    branch_name: str = ""
    base_branch: str = ""
    suggested_base: Optional[str] = None
    recommended_base: Optional[str] = None
    branches: Tuple[BranchStatus, ...] = ()
    available_branches: Tuple[str, ...] = ()
    branches_loading: bool = True
    selected_index: int = 0
    scroll_offset: int = 0
    search_active: bool = False
    search_query: str = ""
    show_warning: bool = False
    warning_accepted: bool = False
    created_path: Optional[str] = None
    warning: Optional[str] = None
    actions: Tuple[Action, ...] = ()
    action_cursor: int = 0


# --------------------------------------------------------------------- delete

class DeleteStep(Enum):
    SELECTION = "selection"
    CONFIRM = "confirm"
    DELETING = "deleting"
    COMPLETE = "complete"


@dataclass(frozen=True)
class DeleteState:
    """Single delete binds ``target``; multi delete keeps ``selected_paths``.

    Paths identify worktrees across refreshes, unlike list positions.
    """
    kind: ClassVar[View] = View.DELETE

    step: DeleteStep = DeleteStep.CONFIRM
    target: Optional[Worktree] = None
    selected_paths: FrozenSet[str] = frozenset()
    cursor: int = 0
    force: bool = False
    results: Tuple = ()

    @property
    def is_multi(self) -> bool:
        return self.target is None


# -------------------------------------------------------------------- cleanup

@dataclass(frozen=True)
class CleanupState:
    """Stale-worktree cleanup.

    ``stale_worktrees`` is captured when the view is entered and never
    re-read, so indices stay valid for the whole run. ``cursor`` -1 is the
    force-delete row.
    """
    kind: ClassVar[View] = View.CLEANUP

    stale_worktrees: Tuple[Worktree, ...] = ()
    selected: FrozenSet[int] = frozenset()
    cursor: int = 0
    force: bool = False
    deleted: FrozenSet[int] = frozenset()
    # (index, reason) pairs in index order
    failed: Tuple[Tuple[int, RemovalReason], ...] = ()
    current_index: int = -1
    total_cleaned: int = 0
    total_failed: int = 0
    confirmed: bool = False
    in_progress: bool = False
    complete: bool = False

    @property
    def pending(self) -> Tuple[int, ...]:
        """Selected indices not processed yet, in ascending order."""
        done = self.deleted | self.failed_indices
        return tuple(sorted(i for i in self.selected if i not in done))

    @property
    def failed_indices(self) -> FrozenSet[int]:
        return frozenset(i for i, _ in self.failed)

    @property
    def progress(self) -> Tuple[int, int]:
        """(processed, total) where total counts selected worktrees only."""
        return self.total_cleaned + self.total_failed, len(self.selected)


# ---------------------------------------------------------------- small menus

@dataclass(frozen=True)
class ToolsState:
    kind: ClassVar[View] = View.TOOLS


@dataclass(frozen=True)
class SettingsState:
    kind: ClassVar[View] = View.SETTINGS


@dataclass(frozen=True)
class ConfigState:
    kind: ClassVar[View] = View.CONFIG

    files: Tuple[str, ...] = ()
    cursor: int = 0
    loading: bool = True


@dataclass(frozen=True)
class OpenInState:
    kind: ClassVar[View] = View.OPEN_IN

    worktree: Optional[Worktree] = None
    actions: Tuple[Action, ...] = ()
    cursor: int = 0
    loading: bool = True


class InitStep(Enum):
    WELCOME = "welcome"
    RUNNING = "running"
    COMPLETE = "complete"


@dataclass(frozen=True)
class InitState:
    kind: ClassVar[View] = View.INIT

    step: InitStep = InitStep.WELCOME
    analysis: Optional[ProjectAnalysis] = None
    config_path: Optional[str] = None


# -------------------------------------------------------------------- compare

@dataclass(frozen=True)
class CompareState:
    kind: ClassVar[View] = View.COMPARE

    source: Optional[Worktree] = None
    target_path: str = ""
    files: Tuple[FileChange, ...] = ()
    selected: FrozenSet[str] = frozenset()
    cursor: int = 0
    diff: str = ""
    diff_scroll: int = 0
    diff_focused: bool = False
    show_help: bool = False
    loading: bool = True
    applying: bool = False
    applied: Optional[int] = None


# ---------------------------------------------------------------------- merge

class MergeStep(Enum):
    CONFIRM = "confirm"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


@dataclass(frozen=True)
class MergeState:
    kind: ClassVar[View] = View.MERGE

    step: MergeStep = MergeStep.CONFIRM
    source: Optional[Worktree] = None
    target_branch: str = "main"
    squash: bool = False
    rebase: bool = False
    remove: bool = False
    result: Optional[MergeResult] = None


# ------------------------------------------------------------------- for-each

class ForEachStep(Enum):
    INPUT = "input"
    RUNNING = "running"
    COMPLETE = "complete"


@dataclass(frozen=True)
class ForEachState:
    kind: ClassVar[View] = View.FOR_EACH

    step: ForEachStep = ForEachStep.INPUT
    command: str = ""
    skip_main: bool = True
    results: Tuple[ForEachResult, ...] = ()


# ---------------------------------------------------------------- step commit

class StepCommitStep(Enum):
    OPTIONS = "options"
    MESSAGE = "message"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


@dataclass(frozen=True)
class StepCommitState:
    kind: ClassVar[View] = View.STEP_COMMIT

    step: StepCommitStep = StepCommitStep.OPTIONS
    worktree: Optional[Worktree] = None
    use_generator: bool = False
    message: str = ""
    committed_message: Optional[str] = None


ViewState = Union[
    DashboardState,
    CreateState,
    DeleteState,
    InitState,
    ConfigState,
    ToolsState,
    CleanupState,
    CompareState,
    MergeState,
    ForEachState,
    StepCommitState,
    SettingsState,
    OpenInState,
]


@dataclass(frozen=True)
class AppState:
    """Everything the UI shows. Replaced wholesale on every update."""

    view: ViewState = field(default_factory=DashboardState)
    repo: Optional[RepoInfo] = None
    config: Optional[Config] = None
    worktrees: Tuple[Worktree, ...] = ()
    generation: int = 0
    selected: int = 0
    loading: bool = True
    github: GitHubAvailability = GitHubAvailability.UNCHECKED
    github_loading: bool = False
    last_error: Optional[str] = None
    fatal_error: Optional[str] = None
    notice: Optional[str] = None
    help_visible: bool = False
    width: int = 80
    height: int = 24
    spinner_frame: int = 0
    spinner_running: bool = False

    @property
    def view_kind(self) -> View:
        return self.view.kind

    @property
    def selected_worktree(self) -> Optional[Worktree]:
        if 0 <= self.selected < len(self.worktrees):
            return self.worktrees[self.selected]
        return None

    @property
    def current_worktree(self) -> Optional[Worktree]:
        return next((wt for wt in self.worktrees if wt.is_current), None)

    @property
    def is_initialized(self) -> bool:
        return bool(self.repo and self.repo.is_initialized)
