"""List navigation helpers shared by the view handlers."""
from typing import List, Optional, Sequence

from gren.constants import PICKER_CHROME_LINES, PICKER_MAX_VISIBLE, PICKER_MIN_VISIBLE
from gren.models.worktree import BranchStatus


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def move_cursor(cursor: int, delta: int, count: int, lowest: int = 0) -> int:
    """Move without wrapping; ``lowest`` may be -1 for a pseudo-row above the list."""
    if count <= 0:
        return lowest
    return clamp(cursor + delta, lowest, count - 1)


def max_visible(height: int) -> int:
    """Rows available to a scrollable picker in a terminal ``height`` lines tall."""
    return clamp(height - PICKER_CHROME_LINES, PICKER_MIN_VISIBLE, PICKER_MAX_VISIBLE)


def center_offset(selected: int, total: int, visible: int) -> int:
    """Scroll offset that puts ``selected`` in the middle of the window."""
    return clamp(selected - visible // 2, 0, max(0, total - visible))


def scroll_into_view(selected: int, offset: int, visible: int) -> int:
    """Smallest change to ``offset`` that keeps ``selected`` on screen."""
    if selected < offset:
        return selected
    if selected >= offset + visible:
        return selected - visible + 1
    return offset


def filter_items(items: Sequence[str], query: str) -> List[str]:
    """Case-insensitive substring filter; an empty query keeps everything."""
    if not query:
        return list(items)
    needle = query.lower()
    return [item for item in items if needle in item.lower()]


def recommend_base_branch(
    branches: Sequence[BranchStatus], suggested: Optional[str] = None
) -> Optional[str]:
    """Pick the base branch to preselect for a new worktree.

    Order: the suggested branch if it still exists, then the current branch,
    then main or master, then the first branch.
    """
    names = [b.name for b in branches]
    if not names:
        return None
    if suggested and suggested in names:
        return suggested
    current = next((b.name for b in branches if b.is_current), None)
    if current:
        return current
    for fallback in ("main", "master"):
        if fallback in names:
            return fallback
    return names[0]


def edit_text(text: str, key: str) -> str:
    """Apply one key press to a single-line text field."""
    if key == "backspace":
        return text[:-1]
    if key == "space":
        return text + " "
    if len(key) == 1 and key.isprintable():
        return text + key
    return text
