"""Git-related services for gren."""

from .branches import BranchQueries, is_valid_branch_name
from .compare import CompareService
from .operations import WorktreeOperations, expand_template
from .worktrees import WorktreeService

__all__ = [
    "BranchQueries",
    "CompareService",
    "WorktreeOperations",
    "WorktreeService",
    "expand_template",
    "is_valid_branch_name",
]
