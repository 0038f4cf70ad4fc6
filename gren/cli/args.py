"""Command-line argument parsing for gren."""

import argparse
from gren.__version__ import __version__
from gren.cli.shell import SUPPORTED_SHELLS


def parse_args(argv=None):
    """Parse command-line arguments.

    Without a subcommand gren starts the TUI.
    """
    parser = argparse.ArgumentParser(
        prog="gren",
        description="Terminal UI for managing git worktrees",
        epilog="Shell integration: add 'eval \"$(gren shell-init zsh)\"' (or bash/fish) to your shell "
        "config so that going to a worktree changes your directory. "
        "PR status needs GITHUB_TOKEN (or GH_TOKEN) or 'github_token' in .gren/config.toml",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")
    parser.add_argument("--version", action="version", version=f"gren {__version__}")
    parser.add_argument(
        "--debug", action="store_true", help="Show debug information for troubleshooting"
    )
    parser.add_argument(
        "--path",
        default=None,
        metavar="PATH",
        help="Repository to manage (default: current directory)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        metavar="N",
        help="Number of parallel GitHub API workers (default: auto-detect)",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    navigate = subparsers.add_parser(
        "navigate",
        aliases=["nav", "cd", "switch"],
        help="Change directory to a worktree (needs shell integration)",
    )
    navigate.add_argument(
        "worktree",
        help="Worktree name or branch (partial matches work); '-' for the previous worktree, '@' for the current one",
    )

    shell_init = subparsers.add_parser(
        "shell-init",
        help="Print the shell integration script",
        description="Examples: eval \"$(gren shell-init zsh)\"  |  gren shell-init fish >> ~/.config/fish/config.fish",
    )
    shell_init.add_argument("shell", choices=SUPPORTED_SHELLS)

    args = parser.parse_args(argv)
    if args.command in ("nav", "cd", "switch"):
        args.command = "navigate"
    return args
