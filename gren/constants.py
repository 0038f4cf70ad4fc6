"""Shared constants for gren."""

# Symbol constants
SYMBOL_CURRENT = "●"
SYMBOL_MAIN = "◆"
SYMBOL_SELECTED = "[x]"
SYMBOL_UNSELECTED = "[ ]"
SYMBOL_CURSOR = "›"
SYMBOL_SUCCESS = "✓"
SYMBOL_FAILURE = "✗"
SYMBOL_WARNING = "⚠"
SYMBOL_SUBMODULES = "⊕"

SPINNER_FRAMES = ["⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏"]
SPINNER_INTERVAL = 0.1  # seconds


# Worktree status display (symbol, rich style)
STATUS_DISPLAY = {
    "clean": ("✓", "green"),
    "modified": ("●", "yellow"),
    "untracked": ("?", "cyan"),
    "mixed": ("±", "magenta"),
    "unpushed": ("↑", "blue"),
    "missing": ("✗", "red"),
}

PR_STATE_STYLE = {
    "OPEN": "green",
    "DRAFT": "dim",
    "MERGED": "magenta",
    "CLOSED": "red",
}

CI_STATE_SYMBOL = {
    "success": ("✓", "green"),
    "failure": ("✗", "red"),
    "pending": ("●", "yellow"),
    "unknown": ("", "dim"),
}


TUI_COLORS = {
    "title": "bold cyan",
    "selected": "reverse",
    "muted": "dim",
    "error": "bold red",
    "warning": "yellow",
    "success": "green",
    "accent": "magenta",
}


LEGEND_TEXT = """[bold]Status Legend[/bold]

[green]✓[/green] clean      [yellow]●[/yellow] modified   [cyan]?[/cyan] untracked
[magenta]±[/magenta] mixed      [blue]↑[/blue] unpushed   [red]✗[/red] missing
● current worktree   ◆ main worktree   ⊕ has submodules
"""


DASHBOARD_HELP = [
    ("↑/k ↓/j", "move"),
    ("enter", "open in…"),
    ("g", "go to worktree"),
    ("n", "new worktree"),
    ("d", "delete worktree"),
    ("D", "delete several"),
    ("m", "compare with current"),
    ("M", "merge into default branch"),
    ("f", "run for each worktree"),
    ("s", "commit all changes"),
    ("t", "tools"),
    ("p", "prune missing"),
    ("r", "refresh"),
    ("c", "config files"),
    ("S", "settings"),
    ("i", "initialize project"),
    ("?", "toggle help"),
    ("q", "quit"),
]

TOOLS_MENU = [
    ("r", "Refresh git and GitHub status"),
    ("c", "Clean up stale worktrees"),
    ("x", "Prune missing worktrees"),
    ("p", "Open pull request in browser"),
]

COMPARE_HELP = [
    ("↑/k ↓/j", "move"),
    ("space", "toggle file"),
    ("a", "toggle all"),
    ("enter/→/l", "focus diff"),
    ("←/h/esc", "leave diff"),
    ("y", "apply selected"),
    ("esc", "back"),
]

# Navigation keys shared by list views
KEYS_UP = ("up", "k")
KEYS_DOWN = ("down", "j")

# Branch picker window sizing
PICKER_CHROME_LINES = 15
PICKER_MIN_VISIBLE = 5
PICKER_MAX_VISIBLE = 20
