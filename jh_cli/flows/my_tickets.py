"""My tickets: a filterable list with detail pages, epic children and inline status edits."""

from __future__ import annotations

import dataclasses
import enum
import logging
import webbrowser

from rich.console import Group
from rich.text import Text

from ..jira_api import JiraClient, status_style
from ..models import Ticket, Transition
from ..slug import extract_ticket_id, generate_branch_name, sort_tickets_by_key
from ..tasks import gather_fetches, run_blocking
from ..tui.theme import COL_CYAN, COL_MUTED
from .base import Flow
from .render import build_ticket_info, error_panel, heading, render_choice, render_select, spinner, ticket_line
from .widgets import ChoiceState, Key, SelectState, wrap

logger = logging.getLogger(__name__)

START_WORKING = "Start working (create branch)"
VIEW_CHILDREN = "View child issues"
VIEW_IN_BROWSER = "View in browser"
BACK_TO_LIST = "Back to list"
BACK_TO_CHILDREN = "Back to children"

FILTERS = ["active", "todo", "in-progress", "done", "all"]
_DONE_STATUSES = ["done", "closed", "resolved"]
_FILTER_STATUSES = {
    "todo": ["to do", "open", "reopened"],
    "in-progress": ["in progress"],
    "done": _DONE_STATUSES,
}


class Step(enum.Enum):
    LOADING = "loading"
    LIST = "list"
    DETAIL = "detail"
    LOADING_CHILDREN = "loading-children"
    CHILDREN = "children"
    CHILD_DETAIL = "child-detail"
    CREATING_BRANCH = "creating-branch"
    ERROR = "error"


def filter_tickets(tickets: list[Ticket], name: str) -> list[Ticket]:
    """Apply one of :data:`FILTERS` by case-insensitive status substring."""
    if name == "all":
        selected = list(tickets)
    elif name == "active":
        selected = [
            t for t in tickets
            if not any(s in t.status.lower() for s in _DONE_STATUSES)
        ]
    else:
        wanted = _FILTER_STATUSES[name]
        selected = [t for t in tickets if any(s in t.status.lower() for s in wanted)]
    return sort_tickets_by_key(selected)


class StatusEditor:
    """Secondary cursor over a ticket's transitions, used on detail pages."""

    def __init__(self) -> None:
        self.key: str | None = None
        self.transitions: list[Transition] = []
        self.index = -1
        self.saving = False

    @property
    def editing(self) -> bool:
        return self.index >= 0

    @property
    def selected(self) -> Transition | None:
        if 0 <= self.index < len(self.transitions):
            return self.transitions[self.index]
        return None

    def reset(self, transitions: list[Transition] | None = None) -> None:
        if transitions is not None:
            self.transitions = transitions
        self.index = -1

    def open(self, key: str) -> None:
        """Point the editor at *key*; transitions arrive later."""
        self.key = key
        self.transitions = []
        self.index = -1
        self.saving = False

    def left(self) -> None:
        n = len(self.transitions)
        self.index = n - 1 if self.index <= 0 else self.index - 1

    def right(self) -> None:
        n = len(self.transitions)
        self.index = 0 if self.index < 0 or self.index >= n - 1 else self.index + 1


class MyTicketsFlow(Flow):
    Step = Step
    title = "My tickets"

    def __init__(self, router) -> None:
        super().__init__(router)
        self.jira_client: JiraClient | None = None
        self.tickets: list[Ticket] = []
        self.branch_ticket_ids: set[str] = set()
        self.filter = "active"
        self.list: SelectState[Ticket] = SelectState(
            label=lambda t: f"{t.key} {t.summary} {t.status}", searchable=True
        )
        self.ticket: Ticket | None = None
        self.menu = ChoiceState([])
        self.status = StatusEditor()
        self.children: SelectState[Ticket] = SelectState(label=lambda t: f"{t.key} {t.summary}")
        self.child: Ticket | None = None
        self.child_menu = ChoiceState([START_WORKING, VIEW_IN_BROWSER, BACK_TO_CHILDREN])
        self.child_status = StatusEditor()

    async def load(self) -> None:
        try:
            self.jira_client = await self.jira()
            project = self.context.workspace.default_project
            results = await gather_fetches(
                required={
                    "tickets": run_blocking(
                        self.jira_client.search_issues, project=project, assignee="currentUser"
                    ),
                },
                optional={
                    "branches": (run_blocking(self.services.git.list_branches), []),
                },
            )
        except Exception as e:
            self.fail(e)
            return
        self.tickets = sort_tickets_by_key(results["tickets"])
        self.branch_ticket_ids = {
            tid for b in results["branches"] if (tid := extract_ticket_id(b.name))
        }
        self._apply_filter()
        self.step = Step.LIST

    def _apply_filter(self) -> None:
        self.list.set_items(filter_tickets(self.tickets, self.filter))

    # --- list ---

    def _on_list(self, key: Key):
        if key.name == "escape":
            self.to_main()
        elif key.name == "tab":
            self.filter = FILTERS[wrap(FILTERS.index(self.filter), 1, len(FILTERS))]
            self._apply_filter()
        elif key.name == "enter":
            ticket = self.list.selected
            if ticket is not None:
                return self._open_detail(ticket)
        else:
            self.list.handle_key(key)
        return None

    def _open_detail(self, ticket: Ticket):
        self.ticket = ticket
        options = [START_WORKING]
        if ticket.is_epic:
            options.append(VIEW_CHILDREN)
        options += [VIEW_IN_BROWSER, BACK_TO_LIST]
        self.menu = ChoiceState(options)
        self.status.open(ticket.key)
        self.step = Step.DETAIL
        return self._load_transitions(ticket.key, self.status)

    async def _fetch_transitions(self, key: str) -> list[Transition]:
        try:
            return await run_blocking(self.jira_client.get_available_transitions, key)
        except Exception:
            logger.debug("Could not load transitions for %s", key, exc_info=True)
            return []

    async def _load_transitions(self, key: str, editor: StatusEditor) -> None:
        transitions = await self._fetch_transitions(key)
        # the page may have moved on to another ticket
        if editor.key == key:
            editor.reset(transitions)

    # --- detail pages ---

    def _edit_status(self, key: Key, ticket: Ticket, editor: StatusEditor):
        """Shared status-editing keys; returns (handled, coroutine)."""
        if editor.saving:
            return True, None
        if key.name == "escape" and editor.editing:
            editor.reset()
            return True, None
        if key.name in ("left", "right") and editor.transitions:
            if key.name == "left":
                editor.left()
            else:
                editor.right()
            return True, None
        if key.name == "enter" and editor.editing:
            transition = editor.selected
            editor.saving = True
            return True, self._save_status(ticket, transition, editor)
        return False, None

    def _on_detail(self, key: Key):
        handled, coro = self._edit_status(key, self.ticket, self.status)
        if handled:
            return coro
        if key.name == "escape":
            self.step = Step.LIST
        elif key.name == "enter":
            choice = self.menu.selected
            if choice == START_WORKING:
                self.step = Step.CREATING_BRANCH
                return self._start_working(self.ticket)
            if choice == VIEW_CHILDREN:
                self.step = Step.LOADING_CHILDREN
                return self._load_children()
            if choice == VIEW_IN_BROWSER:
                self._open_in_browser(self.ticket)
            else:
                self.step = Step.LIST
        else:
            self.menu.handle_key(key)
        return None

    def _on_children(self, key: Key):
        if key.name == "escape":
            self.step = Step.DETAIL
        elif key.name == "enter":
            child = self.children.selected
            if child is not None:
                self.child = child
                self.child_menu.cursor = 0
                self.child_status.open(child.key)
                self.step = Step.CHILD_DETAIL
                return self._load_transitions(child.key, self.child_status)
        else:
            self.children.handle_key(key)
        return None

    def _on_child_detail(self, key: Key):
        handled, coro = self._edit_status(key, self.child, self.child_status)
        if handled:
            return coro
        if key.name == "escape":
            self.step = Step.CHILDREN
        elif key.name == "enter":
            choice = self.child_menu.selected
            if choice == START_WORKING:
                self.step = Step.CREATING_BRANCH
                return self._start_working(self.child)
            if choice == VIEW_IN_BROWSER:
                self._open_in_browser(self.child)
            else:
                self.step = Step.CHILDREN
        else:
            self.child_menu.handle_key(key)
        return None

    # --- async transitions ---

    async def _save_status(self, ticket: Ticket, transition: Transition, editor: StatusEditor) -> None:
        try:
            await run_blocking(self.jira_client.transition_issue_by_id, ticket.key, transition.id)
        except Exception as e:
            editor.saving = False
            editor.reset()
            self.fail(e)
            return
        self._replace_status(ticket.key, transition.to_status)
        try:
            transitions = await self._fetch_transitions(ticket.key)
        finally:
            editor.saving = False
        if editor.key == ticket.key:
            editor.reset(transitions)

    def _replace_status(self, key: str, status: str) -> None:
        def update(t: Ticket | None) -> Ticket | None:
            if t is not None and t.key == key:
                return dataclasses.replace(t, status=status)
            return t

        self.tickets = [update(t) for t in self.tickets]
        self._apply_filter()
        self.ticket = update(self.ticket)
        self.child = update(self.child)
        cursor = self.children.cursor
        self.children.set_items([update(t) for t in self.children.items])
        self.children.cursor = cursor

    async def _load_children(self) -> None:
        try:
            children = await run_blocking(self.jira_client.get_child_issues, self.ticket.key)
        except Exception as e:
            self.fail(e)
            return
        self.children.set_items(sort_tickets_by_key(children))
        self.children.cursor = 0
        self.step = Step.CHILDREN

    async def _start_working(self, ticket: Ticket) -> None:
        git = self.services.git
        try:
            defaults = (await self.load_config()).defaults
            branch = generate_branch_name(
                ticket.key, ticket.summary, defaults.slug_max_length, defaults.branch_format
            )
            if await run_blocking(git.branch_exists, branch):
                await run_blocking(git.checkout_branch, branch)
            else:
                await run_blocking(git.create_branch, branch, defaults.base_branch, True)
        except Exception as e:
            self.fail(e)
            return
        await self.router.refresh_context()
        self.to_main()

    def _open_in_browser(self, ticket: Ticket) -> None:
        try:
            webbrowser.open(self.jira_client.issue_url(ticket.key))
        except webbrowser.Error:
            logger.debug("Could not open a browser for %s", ticket.key, exc_info=True)

    # --- rendering ---

    def _ticket_line(self, ticket: Ticket) -> Text:
        return ticket_line(ticket, "⎇" if ticket.key in self.branch_ticket_ids else "")

    def _status_row(self, ticket: Ticket, editor: StatusEditor) -> Text:
        line = Text.assemble(("Status: ", "bold"))
        if editor.saving:
            return line.append("saving…", style=COL_MUTED)
        if editor.editing:
            line.append(f"◀ {editor.selected.to_status} ▶", style=f"bold {COL_CYAN}")
            line.append("  Enter to save, Esc to cancel", style=COL_MUTED)
        else:
            line.append(ticket.status, style=status_style(ticket.status))
            if editor.transitions:
                line.append("  ←→ to change", style=COL_MUTED)
        return line

    def _detail(self, ticket: Ticket, editor: StatusEditor, menu: ChoiceState):
        domain = self.context.workspace.domain if self.context and self.context.workspace else None
        return Group(
            build_ticket_info(ticket, domain), Text(""),
            self._status_row(ticket, editor), Text(""),
            render_choice(menu),
        )

    def render(self):
        s = self.step
        if s is Step.LOADING:
            return spinner("Loading your tickets…")
        if s is Step.LIST:
            tabs = Text("Filter: ")
            for name in FILTERS:
                tabs.append(f" {name} ", style=f"reverse {COL_CYAN}" if name == self.filter else COL_MUTED)
            return Group(
                heading("My tickets"), tabs, Text(""),
                render_select(self.list, self._ticket_line, empty="No tickets match this filter."),
            )
        if s is Step.DETAIL:
            return self._detail(self.ticket, self.status, self.menu)
        if s is Step.LOADING_CHILDREN:
            return spinner(f"Loading child issues of {self.ticket.key}…")
        if s is Step.CHILDREN:
            return Group(
                heading(f"Child issues of {self.ticket.key}"), Text(""),
                render_select(self.children, self._ticket_line, empty="No child issues."),
            )
        if s is Step.CHILD_DETAIL:
            return self._detail(self.child, self.child_status, self.child_menu)
        if s is Step.CREATING_BRANCH:
            return spinner("Preparing branch…")
        return error_panel(self.error)

    def hints(self):
        if self.step is Step.LIST:
            return [("↑↓", "Navigate"), ("type", "Search"), ("Tab", "Filter"),
                    ("Enter", "Open"), ("Esc", "Back")]
        if self.step in (Step.DETAIL, Step.CHILD_DETAIL):
            return [("↑↓", "Navigate"), ("←→", "Status"), ("Enter", "Select"), ("Esc", "Back")]
        return super().hints()
