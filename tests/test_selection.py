"""Tests for list navigation helpers"""
import pytest

from gren.core.selection import (
    center_offset,
    edit_text,
    filter_items,
    max_visible,
    move_cursor,
    recommend_base_branch,
    scroll_into_view,
)
from gren.models.worktree import BranchStatus


class TestCursor:
    """Test cursor movement and window sizing."""

    def test_move_clamps(self):
        assert move_cursor(0, -1, 3) == 0
        assert move_cursor(2, 1, 3) == 2
        assert move_cursor(1, 1, 3) == 2

    def test_empty_list(self):
        assert move_cursor(4, 1, 0) == 0

    def test_pseudo_row(self):
        assert move_cursor(0, -1, 3, lowest=-1) == -1
        assert move_cursor(-1, -1, 3, lowest=-1) == -1

    @pytest.mark.parametrize("height, expected", [(10, 5), (24, 9), (60, 20)])
    def test_max_visible(self, height, expected):
        assert max_visible(height) == expected


class TestScrolling:
    """Test picker scroll offsets."""

    def test_center(self):
        assert center_offset(10, 30, 5) == 8
        assert center_offset(1, 30, 5) == 0
        assert center_offset(29, 30, 5) == 25

    def test_center_short_list(self):
        assert center_offset(2, 3, 5) == 0

    def test_scroll_into_view(self):
        assert scroll_into_view(3, 0, 5) == 0
        assert scroll_into_view(5, 0, 5) == 1
        assert scroll_into_view(2, 4, 5) == 2


class TestFilter:
    """Test the picker search filter."""

    def test_case_insensitive_substring(self):
        items = ["main", "feature/Login", "fix/logout"]
        assert filter_items(items, "LOG") == ["feature/Login", "fix/logout"]

    def test_empty_query_keeps_all(self):
        assert filter_items(("a", "b"), "") == ["a", "b"]


class TestRecommendBaseBranch:
    """Test the preselected base branch."""

    def test_suggested_wins(self):
        branches = [BranchStatus("main", is_current=True), BranchStatus("topic")]
        assert recommend_base_branch(branches, "topic") == "topic"

    def test_missing_suggestion_falls_back_to_current(self):
        branches = [BranchStatus("main"), BranchStatus("dev", is_current=True)]
        assert recommend_base_branch(branches, "gone") == "dev"

    def test_main_then_master_then_first(self):
        assert recommend_base_branch([BranchStatus("a"), BranchStatus("main")]) == "main"
        assert recommend_base_branch([BranchStatus("a"), BranchStatus("master")]) == "master"
        assert recommend_base_branch([BranchStatus("a"), BranchStatus("b")]) == "a"

    def test_no_branches(self):
        assert recommend_base_branch([]) is None


class TestEditText:
    """Test single-line text editing."""

    def test_typing(self):
        assert edit_text("ab", "c") == "abc"
        assert edit_text("ab", "space") == "ab "

    def test_backspace(self):
        assert edit_text("ab", "backspace") == "a"
        assert edit_text("", "backspace") == ""

    def test_named_keys_ignored(self):
        assert edit_text("ab", "left") == "ab"
        assert edit_text("ab", "ctrl+a") == "ab"
