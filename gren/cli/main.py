"""Main entry point for gren."""

import os
import sys

from rich.console import Console

from gren.cli.args import parse_args
from gren.cli.navigate import SETUP_HINT, navigate
from gren.cli.shell import shell_init
from gren.core import CommandDispatcher
from gren.exceptions import GrenError
from gren.logging_config import get_log_path, get_logger, setup_logging
from gren.services.directive import DirectiveWriter
from gren.services.git import WorktreeService
from gren.services.github_service import GitHubStatusProvider
from gren.utils import get_threading_info

console = Console()
logger = get_logger(__name__)


def _log_hint() -> None:
    path = get_log_path()
    if path is not None:
        console.print(f"[dim]Details in {path}[/dim]")


def _shell_hint(directive: DirectiveWriter) -> None:
    """Tell users without the shell wrapper why their directory did not change."""
    if directive.written and not directive.is_shell_integration_active():
        console.print(f"Navigation command written to {directive.path}", markup=False)
        console.print("Ensure shell integration is set up.", style="yellow")
        console.print(SETUP_HINT, markup=False)


def run_tui(parsed_args, repo_path: str, worktree_service: WorktreeService, directive: DirectiveWriter) -> int:
    dispatcher = CommandDispatcher(
        repo_path,
        cwd=repo_path,
        worktree_service=worktree_service,
        github=GitHubStatusProvider(repo_path, workers=parsed_args.workers),
        directive=directive,
    )

    from gren.tui import GrenApp
    GrenApp(dispatcher).run()
    _shell_hint(directive)
    return 0


def run_navigate(parsed_args, repo_path: str, worktree_service: WorktreeService, directive: DirectiveWriter) -> int:
    navigate(worktree_service, directive, parsed_args.worktree, cwd=repo_path)
    _shell_hint(directive)
    return 0


def main(argv=None) -> int:
    """Main entry point for the application."""
    parsed_args = None
    try:
        parsed_args = parse_args(argv)

        if parsed_args.command == "shell-init":
            # stdout is eval'd by the shell: print the script only
            sys.stdout.write(shell_init(parsed_args.shell))
            return 0

        setup_logging(verbose=parsed_args.verbose, debug=parsed_args.debug)

        repo_path = os.path.abspath(parsed_args.path or os.getcwd())
        if parsed_args.debug:
            info = get_threading_info()
            logger.debug(
                f"Python {info['python_version']} "
                f"(free-threading: {info['free_threading']}), "
                f"{info['cpu_count']} CPUs, at most {info['max_api_workers']} GitHub workers"
            )

        worktree_service = WorktreeService(repo_path)
        # Fails fast outside a git repository
        worktree_service.repo_root()

        directive = DirectiveWriter()
        if not directive.is_shell_integration_active():
            # The fixed fallback file may hold a directive from an earlier run
            directive.clear()

        if parsed_args.command == "navigate":
            return run_navigate(parsed_args, repo_path, worktree_service, directive)
        return run_tui(parsed_args, repo_path, worktree_service, directive)
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        return 1
    except GrenError as e:
        logger.error(str(e))
        console.print(f"Error: {e}", style="red", markup=False)
        return 1
    except Exception as e:
        logger.exception("Unexpected error")
        console.print(f"Error: {e}", style="red", markup=False)
        if parsed_args is not None and parsed_args.debug:
            console.print_exception()
        _log_hint()
        return 1


if __name__ == "__main__":
    sys.exit(main())
