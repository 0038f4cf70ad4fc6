"""Render ``AppState`` as rich text.

Rendering is a pure function of the state; the TUI calls ``render`` after
every update and puts the result in a single widget.
"""
from typing import Callable, Dict, List, Sequence

from rich.console import Group, RenderableType
from rich.table import Table
from rich.text import Text

from gren.__version__ import __version__
from gren.constants import (
    CI_STATE_SYMBOL,
    COMPARE_HELP,
    DASHBOARD_HELP,
    LEGEND_TEXT,
    PR_STATE_STYLE,
    SPINNER_FRAMES,
    STATUS_DISPLAY,
    SYMBOL_CURRENT,
    SYMBOL_CURSOR,
    SYMBOL_FAILURE,
    SYMBOL_MAIN,
    SYMBOL_SELECTED,
    SYMBOL_SUBMODULES,
    SYMBOL_SUCCESS,
    SYMBOL_UNSELECTED,
    SYMBOL_WARNING,
    TOOLS_MENU,
    TUI_COLORS,
)
from gren.core import cleanup
from gren.core.views import create as create_view
from gren.core.views import delete as delete_view
from gren.core.selection import max_visible
from gren.models.state import (
    AppState,
    CreateMode,
    CreateStep,
    DeleteStep,
    ForEachStep,
    InitStep,
    MergeStep,
    StepCommitStep,
    View,
)
from gren.models.worktree import Worktree

DIFF_STYLES = {"+": "green", "-": "red", "@": "cyan"}


def _spinner(state: AppState) -> str:
    return SPINNER_FRAMES[state.spinner_frame % len(SPINNER_FRAMES)]


def _title(text: str) -> Text:
    return Text(text, style=TUI_COLORS["title"])


def _hint(text: str) -> Text:
    return Text(text, style=TUI_COLORS["muted"])


def _row(text: str, active: bool) -> Text:
    prefix = f"{SYMBOL_CURSOR} " if active else "  "
    return Text(prefix + text, style=TUI_COLORS["selected"] if active else "")


def _check(selected: bool) -> str:
    return SYMBOL_SELECTED if selected else SYMBOL_UNSELECTED


def _markers(wt: Worktree) -> str:
    markers = ""
    if wt.is_current:
        markers += SYMBOL_CURRENT
    if wt.is_main:
        markers += SYMBOL_MAIN
    if wt.has_submodules:
        markers += SYMBOL_SUBMODULES
    return markers


# ------------------------------------------------------------------ dashboard

def worktree_table(state: AppState) -> Table:
    table = Table(expand=True, box=None, header_style="bold")
    table.add_column("", width=2)
    table.add_column("Worktree")
    table.add_column("Branch")
    table.add_column("Status", width=8)
    table.add_column("Changes")
    table.add_column("PR")
    table.add_column("Last commit", justify="right")

    for i, wt in enumerate(state.worktrees):
        symbol, style = STATUS_DISPLAY.get(wt.status.value, ("?", ""))
        status = Text(symbol, style=style)
        if wt.is_stale:
            status.append(" stale", style=TUI_COLORS["warning"])

        changes = []
        if wt.staged:
            changes.append(f"+{wt.staged}")
        if wt.modified:
            changes.append(f"~{wt.modified}")
        if wt.untracked:
            changes.append(f"?{wt.untracked}")
        if wt.unpushed:
            changes.append(f"↑{wt.unpushed}")

        pr = Text()
        if wt.pr_number:
            state_name = wt.pr_state.value if wt.pr_state else ""
            pr.append(f"#{wt.pr_number} {state_name.lower()}", style=PR_STATE_STYLE.get(state_name, ""))
            if wt.ci_state:
                ci_symbol, ci_style = CI_STATE_SYMBOL[wt.ci_state.value]
                pr.append(f" {ci_symbol}", style=ci_style)

        table.add_row(
            _markers(wt),
            Text(wt.name, style="bold" if wt.is_current else ""),
            wt.branch,
            status,
            " ".join(changes),
            pr,
            wt.last_commit,
            style=TUI_COLORS["selected"] if i == state.selected else None,
        )
    return table


def render_dashboard(state: AppState) -> List[RenderableType]:
    repo = state.repo.name if state.repo else "gren"
    header = _title(f"gren v{__version__} · {repo}")
    if state.loading:
        header.append(f"  {_spinner(state)} loading", style=TUI_COLORS["muted"])
    elif state.github_loading:
        header.append(f"  {_spinner(state)} GitHub", style=TUI_COLORS["muted"])
    parts: List[RenderableType] = [header, Text()]

    if not state.worktrees and not state.loading:
        parts.append(_hint("No worktrees found"))
    else:
        parts.append(worktree_table(state))

    if state.help_visible:
        help_table = Table(box=None, show_header=False)
        help_table.add_column(style="bold")
        help_table.add_column()
        for key, label in DASHBOARD_HELP:
            help_table.add_row(key, label)
        parts.extend([Text(), Text.from_markup(LEGEND_TEXT), help_table])
    else:
        if state.repo and not state.repo.is_initialized:
            parts.extend([Text(), Text("Project not initialized: press i to set up gren", style=TUI_COLORS["warning"])])
        parts.extend([Text(), _hint("enter open · n new · d delete · t tools · ? help · q quit")])
    return parts


# --------------------------------------------------------------------- create

def _picker(state: AppState, view, items: Sequence[str], describe: Callable[[str], str]) -> List[RenderableType]:
    visible = max_visible(state.height)
    parts: List[RenderableType] = []
    if view.search_active or view.search_query:
        parts.append(Text(f"/ {view.search_query}" + ("▏" if view.search_active else ""), style=TUI_COLORS["accent"]))
    window = items[view.scroll_offset:view.scroll_offset + visible]
    for offset, name in enumerate(window):
        index = view.scroll_offset + offset
        parts.append(_row(describe(name), index == view.selected_index))
    if not items:
        parts.append(_hint("  no matching branches"))
    elif len(items) > visible:
        parts.append(_hint(f"  {view.selected_index + 1}/{len(items)}"))
    return parts


def render_create(state: AppState) -> List[RenderableType]:
    view = state.view
    parts: List[RenderableType] = [_title("New worktree"), Text()]

    if view.step == CreateStep.BRANCH_MODE:
        for i, label in enumerate(("Create a new branch", "Check out an existing branch")):
            parts.append(_row(label, i == view.mode_cursor))
        parts.extend([Text(), _hint("enter select · esc cancel")])
    elif view.step == CreateStep.BRANCH_NAME:
        parts.append(Text(f"Branch name: {view.branch_name}▏"))
        parts.extend([Text(), _hint("enter continue · esc back")])
    elif view.step == CreateStep.EXISTING_BRANCH:
        parts.append(Text("Branch to check out:"))
        parts.extend(_picker(state, view, create_view.picker_items(view), lambda name: name))
        parts.extend([Text(), _hint("enter select · / search · esc back")])
    elif view.step == CreateStep.BASE_BRANCH:
        parts.append(Text(f"Base branch for {view.branch_name}:"))
        if view.branches_loading:
            parts.append(_hint(f"  {_spinner(state)} loading branches"))
        else:
            statuses = {b.name: b for b in view.branches}

            def describe(name: str) -> str:
                status = statuses.get(name)
                text = name
                if name == view.recommended_base:
                    text += " (recommended)"
                if status is not None:
                    if not status.is_clean:
                        text += f" {SYMBOL_WARNING} uncommitted changes"
                    if status.ahead:
                        text += f" ↑{status.ahead}"
                    if status.behind:
                        text += f" ↓{status.behind}"
                return text

            parts.extend(_picker(state, view, create_view.picker_items(view), describe))
        if view.show_warning:
            parts.extend([
                Text(),
                Text(f"{SYMBOL_WARNING} {view.base_branch} has uncommitted changes; they will not be "
                     "part of the new worktree. Press y to continue anyway.", style=TUI_COLORS["warning"]),
            ])
        parts.extend([Text(), _hint("enter select · / search · esc back")])
    elif view.step == CreateStep.CONFIRM:
        if view.mode == CreateMode.NEW_BRANCH:
            parts.append(Text(f"Create branch {view.branch_name} from {view.base_branch}?"))
        else:
            parts.append(Text(f"Create a worktree for {view.branch_name}?"))
        parts.extend([Text(), _hint("y/enter create · n/esc back")])
    elif view.step == CreateStep.CREATING:
        parts.append(Text(f"{_spinner(state)} Creating worktree for {view.branch_name}…"))
    elif view.step == CreateStep.COMPLETE:
        parts.append(Text(f"{SYMBOL_SUCCESS} Created {view.created_path}", style=TUI_COLORS["success"]))
        if view.warning:
            parts.append(Text(f"{SYMBOL_WARNING} {view.warning}", style=TUI_COLORS["warning"]))
        parts.append(Text())
        for i, action in enumerate(view.actions):
            parts.append(_row(action.name, i == view.action_cursor))
        parts.extend([Text(), _hint("enter select · esc dashboard")])
    return parts


# --------------------------------------------------------------------- delete

def render_delete(state: AppState) -> List[RenderableType]:
    view = state.view
    parts: List[RenderableType] = [_title("Delete worktrees" if view.is_multi else "Delete worktree"), Text()]

    if view.step == DeleteStep.SELECTION:
        for i, wt in enumerate(delete_view.candidates(state)):
            label = f"{_check(wt.path in view.selected_paths)} {wt.name} ({wt.branch})"
            if not wt.is_clean:
                label += f" {SYMBOL_WARNING} dirty"
            parts.append(_row(label, i == view.cursor))
        parts.extend([Text(), _hint(f"Selected: {len(view.selected_paths)} · space toggle · enter continue · esc cancel")])
    elif view.step == DeleteStep.CONFIRM:
        targets = delete_view.targets(state, view)
        parts.append(Text(f"Delete {len(targets)} worktree(s)?"))
        for wt in targets:
            line = Text(f"  • {wt.name} ({wt.branch})")
            if not wt.is_clean:
                line.append(f" {SYMBOL_WARNING} has uncommitted changes", style=TUI_COLORS["warning"])
            if wt.has_submodules:
                line.append(f" {SYMBOL_SUBMODULES} submodules", style=TUI_COLORS["muted"])
            parts.append(line)
        parts.append(Text())
        parts.append(Text(f"Force delete: {'on' if view.force else 'off'}",
                          style=TUI_COLORS["warning"] if view.force else TUI_COLORS["muted"]))
        parts.extend([Text(), _hint("y delete · f toggle force · n cancel · esc back")])
    elif view.step == DeleteStep.DELETING:
        parts.append(Text(f"{_spinner(state)} Deleting…"))
    else:
        for result in view.results:
            if result.success:
                parts.append(Text(f"{SYMBOL_SUCCESS} {result.branch}", style=TUI_COLORS["success"]))
            else:
                parts.append(Text(f"{SYMBOL_FAILURE} {result.branch}: {result.error}", style=TUI_COLORS["error"]))
        parts.extend([Text(), _hint("enter/esc dashboard")])
    return parts


# -------------------------------------------------------------- tools/cleanup

def render_tools(state: AppState) -> List[RenderableType]:
    parts: List[RenderableType] = [_title("Tools"), Text()]
    for key, label in TOOLS_MENU:
        parts.append(Text.assemble((f"  {key}  ", "bold"), label))
    parts.extend([Text(), _hint("esc/t close")])
    return parts


def cleanup_summary_title(view) -> str:
    if view.total_cleaned:
        return f"{SYMBOL_WARNING} Cleanup Partially Complete"
    return f"{SYMBOL_FAILURE} Cleanup Failed"


def render_cleanup(state: AppState) -> List[RenderableType]:
    view = state.view
    done, total = view.progress

    if view.complete:
        parts: List[RenderableType] = [
            _title(cleanup_summary_title(view)),
            Text(),
            Text(f"Cleaned {view.total_cleaned}, failed {view.total_failed} of {total}"),
            Text(),
        ]
        for wt, reason in cleanup.failures(view):
            parts.append(Text(f"  {SYMBOL_FAILURE} {wt.branch}: {reason.value}", style=TUI_COLORS["error"]))
        parts.extend([Text(), _hint("enter/esc dashboard")])
        return parts

    parts = [_title("Clean up stale worktrees"), Text()]
    if view.in_progress:
        parts.append(Text(f"{_spinner(state)} Removing {done}/{total}"))
        parts.append(Text())

    force = Text(f"{_check(view.force)} Force delete", style=TUI_COLORS["warning"] if view.force else "")
    parts.append(_row(force.plain, view.cursor == -1))
    for i, wt in enumerate(view.stale_worktrees):
        if i in view.deleted:
            mark = SYMBOL_SUCCESS
        elif i in view.failed_indices:
            mark = SYMBOL_FAILURE
        elif i == view.current_index and view.in_progress:
            mark = _spinner(state)
        else:
            mark = _check(i in view.selected)
        reason = wt.stale_reason.value.replace("_", " ") if wt.stale_reason else "stale"
        label = f"{mark} {wt.name} ({wt.branch}) · {reason}"
        if not wt.is_clean:
            label += f" {SYMBOL_WARNING} dirty"
        if wt.has_submodules:
            label += f" {SYMBOL_SUBMODULES}"
        parts.append(_row(label, i == view.cursor and not view.in_progress))

    if not view.in_progress:
        parts.extend([Text(), _hint(f"{len(view.selected)} selected · space toggle · enter delete · esc back")])
    return parts


# -------------------------------------------------------------------- compare

def render_compare(state: AppState) -> List[RenderableType]:
    view = state.view
    source = view.source.name if view.source else ""
    parts: List[RenderableType] = [_title(f"Compare {source} → current worktree"), Text()]

    if view.applied is not None:
        parts.append(Text(f"{SYMBOL_SUCCESS} Applied {view.applied} file(s)", style=TUI_COLORS["success"]))
        parts.extend([Text(), _hint("press any key to return")])
        return parts
    if view.loading:
        parts.append(Text(f"{_spinner(state)} Loading changes…"))
        return parts
    if not view.files:
        parts.extend([_hint("No differences"), Text(), _hint("esc back")])
        return parts

    for i, change in enumerate(view.files):
        label = f"{_check(change.path in view.selected)} {change.status} {change.path}"
        if change.uncommitted:
            label += " (uncommitted)"
        parts.append(_row(label, i == view.cursor))
    parts.append(Text())

    visible = max(5, state.height - len(view.files) - 8)
    lines = view.diff.splitlines()[view.diff_scroll:view.diff_scroll + visible]
    diff = Text()
    for line in lines:
        diff.append(line + "\n", style=DIFF_STYLES.get(line[:1], ""))
    parts.append(diff)

    if view.applying:
        parts.append(Text(f"{_spinner(state)} Applying…"))
    elif view.show_help:
        for key, label in COMPARE_HELP:
            parts.append(Text.assemble((f"  {key:<10}", "bold"), label))
    else:
        parts.append(_hint("space toggle · a all · y apply · enter diff · ? help · esc back"))
    return parts


# ---------------------------------------------------------------------- flows

def render_merge(state: AppState) -> List[RenderableType]:
    view = state.view
    source = view.source
    parts: List[RenderableType] = [_title(f"Merge {source.branch} into {view.target_branch}"), Text()]

    if view.step == MergeStep.CONFIRM:
        parts.append(Text(f"{_check(view.squash)} s  squash commits"))
        parts.append(Text(f"{_check(view.rebase)} r  rebase onto {view.target_branch}"))
        parts.append(Text(f"{_check(view.remove)} d  remove worktree afterwards"))
        if not source.is_clean:
            parts.extend([Text(), Text(f"{SYMBOL_WARNING} pending changes will be committed first",
                                       style=TUI_COLORS["warning"])])
        parts.extend([Text(), _hint("enter merge · esc cancel")])
    elif view.step == MergeStep.IN_PROGRESS:
        parts.append(Text(f"{_spinner(state)} Merging…"))
    else:
        result = view.result
        if result.merged:
            parts.append(Text(f"{SYMBOL_SUCCESS} {result.message}", style=TUI_COLORS["success"]))
        else:
            parts.append(Text(f"{SYMBOL_WARNING} {result.message}", style=TUI_COLORS["warning"]))
        if result.warning:
            parts.append(Text(f"{SYMBOL_WARNING} {result.warning}", style=TUI_COLORS["warning"]))
        parts.extend([Text(), _hint("enter/esc dashboard")])
    return parts


def render_for_each(state: AppState) -> List[RenderableType]:
    view = state.view
    parts: List[RenderableType] = [_title("Run in every worktree"), Text()]

    if view.step == ForEachStep.INPUT:
        parts.append(Text(f"Command: {view.command}▏"))
        parts.append(Text(f"{_check(view.skip_main)} skip main worktree (tab)"))
        parts.extend([Text(), _hint("{{ branch }} {{ worktree }} {{ repo }} … are expanded per worktree"),
                      _hint("enter run · esc cancel")])
    elif view.step == ForEachStep.RUNNING:
        parts.append(Text(f"{_spinner(state)} Running {view.command}…"))
    else:
        ok = sum(1 for r in view.results if r.ok)
        parts.append(Text(f"{ok} succeeded, {len(view.results) - ok} failed"))
        for result in view.results:
            style = TUI_COLORS["success"] if result.ok else TUI_COLORS["error"]
            symbol = SYMBOL_SUCCESS if result.ok else SYMBOL_FAILURE
            parts.append(Text(f"{symbol} {result.worktree} ({result.branch}) exit {result.exit_code}", style=style))
            if result.output:
                parts.append(_hint("    " + result.output.replace("\n", "\n    ")))
        parts.extend([Text(), _hint("enter/esc dashboard")])
    return parts


def render_step_commit(state: AppState) -> List[RenderableType]:
    view = state.view
    parts: List[RenderableType] = [_title(f"Commit all changes in {view.worktree.name}"), Text()]

    if view.step == StepCommitStep.OPTIONS:
        parts.append(Text(f"{_check(view.use_generator)} generate the message (tab)"))
        parts.extend([Text(), _hint("enter continue · esc cancel")])
    elif view.step == StepCommitStep.MESSAGE:
        parts.append(Text(f"Message: {view.message}▏"))
        parts.extend([Text(), _hint("enter commit · esc back")])
    elif view.step == StepCommitStep.IN_PROGRESS:
        parts.append(Text(f"{_spinner(state)} Committing…"))
    else:
        parts.append(Text(f"{SYMBOL_SUCCESS} Committed: {view.committed_message}", style=TUI_COLORS["success"]))
        parts.extend([Text(), _hint("enter/esc dashboard")])
    return parts


# ---------------------------------------------------------------------- menus

def render_open_in(state: AppState) -> List[RenderableType]:
    view = state.view
    parts: List[RenderableType] = [_title(f"Open {view.worktree.name}"), Text()]
    if view.loading:
        parts.append(Text(f"{_spinner(state)} Looking for editors…"))
        return parts
    for i, action in enumerate(view.actions):
        parts.append(_row(action.name, i == view.cursor))
    parts.extend([Text(), _hint("enter select · esc back")])
    return parts


def render_config(state: AppState) -> List[RenderableType]:
    view = state.view
    parts: List[RenderableType] = [_title("Configuration files"), Text()]
    if view.loading:
        parts.append(Text(f"{_spinner(state)} Loading…"))
    elif not view.files:
        parts.append(_hint("No configuration files: press i on the dashboard to initialize"))
    for i, path in enumerate(view.files):
        parts.append(_row(path, i == view.cursor))
    parts.extend([Text(), _hint("enter edit · esc back")])
    return parts


def render_settings(state: AppState) -> List[RenderableType]:
    parts: List[RenderableType] = [_title("Settings"), Text()]
    table = Table(box=None, show_header=False)
    table.add_column(style="bold")
    table.add_column()
    config = state.config.to_dict() if state.config else {}
    for key, value in config.items():
        if key == "github_token":
            value = "********"
        table.add_row(key, str(value))
    table.add_row("github", state.github.value)
    parts.extend([table, Text(), _hint("esc back")])
    return parts


def render_init(state: AppState) -> List[RenderableType]:
    view = state.view
    parts: List[RenderableType] = [_title("Initialize gren"), Text()]
    if view.step == InitStep.WELCOME:
        analysis = view.analysis
        if analysis is None:
            parts.append(Text(f"{_spinner(state)} Analyzing project…"))
            return parts
        parts.append(Text(f"Detected: {analysis.description}"))
        parts.append(Text(f"Post-create command: {analysis.post_create_command or 'none'}"))
        if analysis.linked_files:
            parts.append(Text(f"Files shared with worktrees: {', '.join(analysis.linked_files)}"))
        if analysis.hook_exists:
            parts.append(_hint("An existing post-create hook will be kept"))
        parts.extend([Text(), _hint("enter initialize · esc cancel")])
    elif view.step == InitStep.RUNNING:
        parts.append(Text(f"{_spinner(state)} Writing configuration…"))
    else:
        parts.append(Text(f"{SYMBOL_SUCCESS} Wrote {view.config_path}", style=TUI_COLORS["success"]))
        parts.extend([Text(), _hint("enter/esc dashboard")])
    return parts


_RENDERERS: Dict[View, Callable[[AppState], List[RenderableType]]] = {
    View.DASHBOARD: render_dashboard,
    View.CREATE: render_create,
    View.DELETE: render_delete,
    View.TOOLS: render_tools,
    View.CLEANUP: render_cleanup,
    View.COMPARE: render_compare,
    View.MERGE: render_merge,
    View.FOR_EACH: render_for_each,
    View.STEP_COMMIT: render_step_commit,
    View.OPEN_IN: render_open_in,
    View.CONFIG: render_config,
    View.SETTINGS: render_settings,
    View.INIT: render_init,
}


def render(state: AppState) -> RenderableType:
    """Everything the screen shows for ``state``."""
    if state.fatal_error:
        return Group(
            Text(f"{SYMBOL_FAILURE} Error", style=TUI_COLORS["error"]),
            Text(),
            Text(state.fatal_error),
            Text(),
            _hint("q quit"),
        )

    parts = _RENDERERS[state.view_kind](state)
    if state.last_error:
        parts.extend([Text(), Text(f"{SYMBOL_FAILURE} {state.last_error}", style=TUI_COLORS["error"])])
    if state.notice:
        parts.extend([Text(), Text(state.notice, style=TUI_COLORS["warning"])])
    return Group(*parts)
