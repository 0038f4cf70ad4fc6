"""Tests for the command-line entry point"""
import importlib
from unittest.mock import patch

import pytest

from gren.cli import main
from gren.cli.args import parse_args
from gren.cli.navigate import find_worktree
from gren.cli.shell import BASH_ZSH_INIT, FISH_INIT, shell_init
from gren.services.directive import ENV_DIRECTIVE_FILE, DirectiveWriter

# the package re-exports main(), which shadows the submodule attribute
cli_main = importlib.import_module("gren.cli.main")


@pytest.fixture(autouse=True)
def no_log_file():
    with patch.object(cli_main, "setup_logging"):
        yield


@pytest.fixture
def directive_file(temp_dir, monkeypatch):
    """Directive file as the shell wrapper would set it up."""
    path = temp_dir / "directive"
    monkeypatch.setenv(ENV_DIRECTIVE_FILE, str(path))
    return path


class TestArgs:
    """Test argument parsing."""

    def test_defaults(self):
        args = parse_args([])
        assert args.command is None
        assert args.path is None
        assert args.workers is None
        assert not args.verbose
        assert not args.debug

    def test_options(self):
        args = parse_args(["-v", "--debug", "--path", "/tmp/repo", "--workers", "4"])
        assert args.verbose and args.debug
        assert args.path == "/tmp/repo"
        assert args.workers == 4

    def test_version_exits(self, capsys):
        with pytest.raises(SystemExit) as exc:
            parse_args(["--version"])
        assert exc.value.code == 0
        assert "gren" in capsys.readouterr().out

    @pytest.mark.parametrize("alias", ["navigate", "nav", "cd", "switch"])
    def test_navigate_aliases(self, alias):
        args = parse_args([alias, "login"])
        assert args.command == "navigate"
        assert args.worktree == "login"

    def test_shell_init(self):
        args = parse_args(["shell-init", "fish"])
        assert args.command == "shell-init"
        assert args.shell == "fish"

    def test_shell_init_rejects_unknown_shell(self):
        with pytest.raises(SystemExit):
            parse_args(["shell-init", "tcsh"])


class TestShellInit:
    """Test the shell integration scripts."""

    @pytest.mark.parametrize("shell", ["bash", "zsh"])
    def test_posix_shells(self, shell):
        script = shell_init(shell)
        assert script == BASH_ZSH_INIT
        assert f"{ENV_DIRECTIVE_FILE}=" in script
        assert 'source "$directive_file"' in script

    def test_fish(self):
        assert shell_init("fish") == FISH_INIT
        assert "source $directive_file" in FISH_INIT

    def test_unknown_shell(self):
        with pytest.raises(ValueError):
            shell_init("tcsh")

    def test_prints_script_only(self, capsys):
        assert main(["shell-init", "zsh"]) == 0
        assert capsys.readouterr().out == BASH_ZSH_INIT


class TestNavigate:
    """Test navigating the calling shell to a worktree."""

    def test_writes_cd_directive(self, git_repo_with_worktrees, temp_dir, directive_file, capsys):
        repo = git_repo_with_worktrees.working_dir
        assert main(["--path", repo, "navigate", "active"]) == 0

        target = temp_dir / "worktrees" / "feature-active"
        assert directive_file.read_text() == f'cd "{target}"\n'
        assert "shell integration" not in capsys.readouterr().out

    def test_back_to_previous(self, git_repo_with_worktrees, temp_dir, directive_file):
        repo = git_repo_with_worktrees.working_dir
        assert main(["--path", repo, "cd", "active"]) == 0

        active = str(temp_dir / "worktrees" / "feature-active")
        assert main(["--path", active, "cd", "-"]) == 0
        assert directive_file.read_text() == f'cd "{repo}"\n'

    def test_no_previous(self, git_repo_with_worktrees, directive_file, capsys):
        assert main(["--path", git_repo_with_worktrees.working_dir, "cd", "-"]) == 1
        assert "no previous worktree" in capsys.readouterr().out
        assert not directive_file.exists()

    def test_no_match_lists_worktrees(self, git_repo_with_worktrees, directive_file, capsys):
        assert main(["--path", git_repo_with_worktrees.working_dir, "cd", "nothing-like-this"]) == 1
        out = capsys.readouterr().out
        assert "no worktree matching 'nothing-like-this'" in out
        assert "feature-done (feature/done)" in out

    def test_warns_without_shell_integration(self, git_repo_with_worktrees, temp_dir, monkeypatch, capsys):
        monkeypatch.delenv(ENV_DIRECTIVE_FILE, raising=False)
        fallback = temp_dir / "fallback"
        with patch.object(cli_main, "DirectiveWriter", lambda: DirectiveWriter(str(fallback))):
            assert main(["--path", git_repo_with_worktrees.working_dir, "cd", "done"]) == 0

        assert fallback.exists()
        out = capsys.readouterr().out
        assert "Ensure shell integration is set up" in out
        assert "gren shell-init" in out


class TestMain:
    """Test startup and exit codes."""

    def test_outside_repository(self, temp_dir, capsys):
        assert main(["--path", str(temp_dir)]) == 1
        assert "Not a git repository" in capsys.readouterr().out

    def test_runs_app(self, git_repo, directive_file):
        with patch("gren.tui.GrenApp") as app:
            assert main(["--path", git_repo.working_dir, "--debug"]) == 0
        app.return_value.run.assert_called_once()

    def test_interrupted(self, git_repo, directive_file):
        with patch("gren.tui.GrenApp") as app:
            app.return_value.run.side_effect = KeyboardInterrupt
            assert main(["--path", git_repo.working_dir]) == 1

    def test_unexpected_error(self, git_repo, directive_file, capsys):
        with patch("gren.tui.GrenApp") as app:
            app.return_value.run.side_effect = RuntimeError("terminal went away")
            assert main(["--path", git_repo.working_dir]) == 1
        assert "terminal went away" in capsys.readouterr().out

    def test_stale_fallback_directive_cleared(self, git_repo, temp_dir, monkeypatch):
        monkeypatch.delenv(ENV_DIRECTIVE_FILE, raising=False)
        fallback = temp_dir / "fallback"
        fallback.write_text('cd "/somewhere/old"\n')
        with patch.object(cli_main, "DirectiveWriter", lambda: DirectiveWriter(str(fallback))), \
                patch("gren.tui.GrenApp"):
            assert main(["--path", git_repo.working_dir]) == 0
        assert not fallback.exists()


class TestFindWorktree:
    """Test worktree lookup by name or branch."""

    @pytest.fixture
    def worktrees(self, worktree_factory):
        return [
            worktree_factory("repo", branch="main"),
            worktree_factory("auth-login", branch="feature/login"),
            worktree_factory("login-page", branch="fix/login-page"),
        ]

    def test_exact_name_first(self, worktrees):
        assert find_worktree(worktrees, "login-page").name == "login-page"

    def test_exact_branch(self, worktrees):
        assert find_worktree(worktrees, "MAIN").name == "repo"

    def test_branch_suffix_before_substring(self, worktrees):
        assert find_worktree(worktrees, "login").name == "auth-login"

    def test_substring(self, worktrees):
        assert find_worktree(worktrees, "page").name == "login-page"

    def test_no_match(self, worktrees):
        assert find_worktree(worktrees, "billing") is None
