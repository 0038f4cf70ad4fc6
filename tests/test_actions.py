"""Tests for open-in actions"""
from unittest.mock import Mock, patch

import pytest

from gren.exceptions import GrenError
from gren.models.worktree import Action
from gren.services.actions import BACK_LABEL, ActionResolver


class TestResolve:
    """Test which actions are offered."""

    def test_navigate_and_back_always_present(self):
        resolver = ActionResolver()
        with patch("gren.services.actions.shutil.which", return_value=None):
            actions = resolver.resolve("/work/x")
        assert actions[0].is_navigate
        assert actions[-1] == Action(BACK_LABEL, "")
        assert len(actions) == 2

    def test_installed_editors_offered(self):
        resolver = ActionResolver()
        installed = {"code", "zed"}
        with patch("gren.services.actions.shutil.which", side_effect=lambda c: c if c in installed else None):
            names = [a.name for a in resolver.resolve("/work/x")]
        assert "Open in VS Code" in names
        assert "Open in Zed" in names
        assert "Open in Cursor" not in names

    @patch.dict("os.environ", {"TERM_PROGRAM": "WarpTerminal"})
    def test_warp_terminal(self):
        terminal = [a for a in ActionResolver().candidates("/work/x") if a.name == "Open in Terminal"][0]
        assert terminal.command == "warp-cli"
        assert terminal.args == ("open", "/work/x")


class TestExecute:
    """Test launching actions."""

    def test_back_is_noop(self):
        assert ActionResolver().execute(Action("Back", ""), "/work/x") is None

    def test_navigate_not_executed(self, temp_dir):
        with pytest.raises(GrenError):
            ActionResolver().execute(Action("Navigate", "navigate"), str(temp_dir))

    def test_missing_path(self):
        with pytest.raises(GrenError, match="does not exist"):
            ActionResolver().execute(Action("Open", "code"), "/definitely/not/here")

    def test_launch_detached(self, temp_dir):
        with patch("gren.services.actions.subprocess.Popen") as mock_popen:
            mock_popen.return_value = Mock(pid=4242)
            pid = ActionResolver().execute(Action("Open", "code", (str(temp_dir),)), str(temp_dir))
        assert pid == 4242
        args, kwargs = mock_popen.call_args
        assert args[0] == ["code", str(temp_dir)]
        assert kwargs["cwd"] == str(temp_dir)
        assert kwargs["start_new_session"] is True

    def test_launch_failure(self, temp_dir):
        with patch("gren.services.actions.subprocess.Popen", side_effect=OSError("not found")):
            with pytest.raises(GrenError, match="could not run"):
                ActionResolver().execute(Action("Open", "nope"), str(temp_dir))
