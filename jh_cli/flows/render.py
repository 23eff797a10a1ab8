"""Rich renderables for flow steps: lists, fields, menus and ticket panels."""

from __future__ import annotations

from typing import Callable, TypeVar

from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from ..jira_api import issue_url, status_style
from ..models import AppContext, Ticket
from ..tui.theme import COL_AMBER, COL_CYAN, COL_GREEN, COL_MUTED, COL_PALE, COL_RED
from .widgets import ChoiceState, SelectState, TextField

T = TypeVar("T")

LIST_WINDOW = 12


def heading(text: str) -> Text:
    return Text(text, style=f"bold {COL_GREEN}")


def spinner(message: str) -> Text:
    return Text.assemble(("⠋ ", COL_CYAN), (message, COL_PALE))


def error_panel(message: str | None) -> Panel:
    return Panel(
        Text(message or "Something went wrong.", style=COL_RED),
        title="Error",
        title_align="left",
        border_style=COL_RED,
    )


def success_panel(*lines: RenderableType) -> Panel:
    return Panel(Group(*lines), title="Done", title_align="left", border_style=COL_GREEN)


def cursor_line(label: RenderableType, active: bool) -> Text:
    text = Text("→ " if active else "  ", style=COL_CYAN)
    if isinstance(label, Text):
        line = label.copy()
        if active:
            line.stylize(f"bold {COL_CYAN}")
        text.append_text(line)
    else:
        text.append(str(label), style=f"bold {COL_CYAN}" if active else COL_PALE)
    return text


def _window(size: int, cursor: int, height: int = LIST_WINDOW) -> range:
    if size <= height:
        return range(size)
    start = min(max(cursor - height // 2, 0), size - height)
    return range(start, start + height)


def render_select(
    state: SelectState[T],
    line: Callable[[T], RenderableType] | None = None,
    empty: str = "No items found.",
) -> Group:
    line = line or (lambda item: state.label(item))
    rows: list[RenderableType] = []
    if state.searchable:
        rows.append(Text.assemble(
            ("Search: ", f"bold {COL_MUTED}"),
            (state.query or "type to filter", COL_PALE if state.query else COL_MUTED),
        ))
        rows.append(Text(""))
    if not state.visible:
        rows.append(Text(empty, style=COL_MUTED))
    window = _window(len(state.visible), state.cursor)
    if window.start > 0:
        rows.append(Text(f"  ↑ {window.start} more", style=COL_MUTED))
    for i in window:
        rows.append(cursor_line(line(state.visible[i]), i == state.cursor))
    remaining = len(state.visible) - window.stop
    if remaining > 0:
        rows.append(Text(f"  ↓ {remaining} more", style=COL_MUTED))
    return Group(*rows)


def render_choice(choice: ChoiceState) -> Group:
    return Group(*(
        cursor_line(option, i == choice.cursor) for i, option in enumerate(choice.options)
    ))


def render_field(label: str, field: TextField, hint: str | None = None) -> Group:
    value = field.display
    body = Text(value, style=COL_PALE) if value else Text(field.placeholder, style=COL_MUTED)
    body.append("▏", style=COL_CYAN)
    rows: list[RenderableType] = [Text(label, style="bold"), Panel(body, border_style=COL_MUTED)]
    if hint:
        rows.append(Text(hint, style=COL_MUTED))
    return Group(*rows)


def ticket_line(ticket: Ticket, marker: str = "") -> Text:
    return Text.assemble(
        (f"{ticket.key:<10} ", f"bold {COL_AMBER}"),
        (f"[{ticket.status}] ", status_style(ticket.status)),
        ticket.summary,
        (f" {marker}" if marker else "", COL_GREEN),
    )


def build_ticket_info(ticket: Ticket, domain: str | None) -> Group:
    """Summary, meta grid, URL and description of *ticket*."""
    meta = Table.grid(padding=(0, 3), expand=False)
    meta.add_column(style="bold bright_black", no_wrap=True, min_width=10)
    meta.add_column(min_width=22)
    meta.add_row("KEY", Text(ticket.key, style=f"bold {COL_AMBER}"))
    meta.add_row("STATUS", Text(ticket.status, style=status_style(ticket.status)))
    meta.add_row("TYPE", ticket.issue_type)
    meta.add_row("ASSIGNEE", ticket.assignee or "Unassigned")
    meta.add_row("SPRINT", ticket.sprint or "—")

    parts: list[RenderableType] = [Text(ticket.summary, style="bold white"), Text(""), meta]
    if domain:
        url = issue_url(domain, ticket.key)
        parts += [Text(""), Text.assemble(("URL  ", "bold bright_black"), (url, f"link {url} bright_cyan"))]

    description = (ticket.description or "").strip()
    if len(description) > 800:
        description = description[:800] + "\n…truncated"
    parts += [
        Rule(style="bright_black"),
        Text("DESCRIPTION", style="bold bright_black"),
        Text(description or "—", style=COL_PALE if description else COL_MUTED),
    ]
    return Group(*parts)


def status_box(context: AppContext | None, ticket: Ticket | None) -> Panel:
    grid = Table.grid(padding=(0, 2))
    grid.add_column(style="bold bright_black", no_wrap=True)
    grid.add_column()
    if context is None or not context.is_git_repo:
        grid.add_row("Repo", Text("not a git repository", style=COL_MUTED))
    else:
        repo = Text(context.repo_identifier or "no origin remote")
        if context.workspace:
            repo.append(f" → {context.workspace.default_project}", style=COL_AMBER)
        grid.add_row("Repo", repo)
        grid.add_row("Branch", Text(context.current_branch or "—", style=COL_GREEN))
        if context.linked_ticket_id:
            if ticket:
                grid.add_row("Ticket", Text.assemble(
                    (ticket.key, f"bold {COL_AMBER}"), " ", ticket.summary, " ",
                    (f"[{ticket.status}]", status_style(ticket.status)),
                ))
            else:
                grid.add_row("Ticket", Text(context.linked_ticket_id, style=f"bold {COL_AMBER}"))
        if context.commits_ahead:
            grid.add_row("Commits", f"{context.commits_ahead} ahead of base")
    return Panel(grid, border_style=COL_MUTED, title="jh", title_align="left")
