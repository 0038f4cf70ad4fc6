"""
gren - A terminal UI for managing git worktrees
"""

from .__version__ import __version__

__all__ = ["__version__"]
