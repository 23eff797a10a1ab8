from __future__ import annotations

import enum

from rich.console import Group
from rich.text import Text

from ..models import Defaults, Ticket
from ..slug import (
    DEFAULT_BRANCH_FORMAT,
    extract_branch_description,
    generate_branch_name,
    sort_tickets_by_key,
)
from ..tasks import run_blocking
from .base import Flow
from .render import error_panel, heading, render_choice, render_select, spinner, success_panel, ticket_line
from .widgets import BACK, ChoiceState, Key, SelectState

RENAME = "Yes, rename branch"
KEEP_NAME = "No, keep current name"


class Step(enum.Enum):
    LOADING = "loading"
    SELECT_TICKET = "select-ticket"
    CONFIRM_RENAME = "confirm-rename"
    LINKING = "linking"
    DONE = "done"
    ERROR = "error"


def linked_branch_name(
    ticket: Ticket,
    current_branch: str,
    max_slug_length: int = 50,
    branch_format: str = DEFAULT_BRANCH_FORMAT,
) -> str:
    """The branch name in *branch_format*, keeping the current description.

    Falls back to a slug of the ticket summary when the branch has nothing
    after its ticket prefix.
    """
    description = extract_branch_description(current_branch)
    if description:
        return branch_format.replace("{ticketId}", ticket.key).replace("{slug}", description)
    return generate_branch_name(ticket.key, ticket.summary, max_slug_length, branch_format)


class LinkBranchFlow(Flow):
    Step = Step
    title = "Link branch to ticket"

    def __init__(self, router) -> None:
        super().__init__(router)
        self.tickets: SelectState[Ticket] = SelectState(
            label=lambda t: f"{t.key} {t.summary}", searchable=True
        )
        self.ticket: Ticket | None = None
        self.new_name = ""
        self.renamed = False
        self.confirm = ChoiceState([RENAME, KEEP_NAME, BACK])
        self.defaults = Defaults()

    @property
    def current_branch(self) -> str:
        return (self.context.current_branch if self.context else None) or ""

    async def load(self) -> None:
        try:
            jira = await self.jira()
            self.defaults = (await self.load_config()).defaults
            tickets = await run_blocking(jira.get_my_issues, self.context.workspace.default_project)
        except Exception as e:
            self.fail(e)
            return
        self.tickets.set_items(sort_tickets_by_key(tickets))
        self.step = Step.SELECT_TICKET

    def _on_select_ticket(self, key: Key) -> None:
        if key.name == "escape":
            self.to_main()
        elif key.name == "enter":
            if self.tickets.selected is None:
                return
            self.ticket = self.tickets.selected
            self.new_name = linked_branch_name(
                self.ticket,
                self.current_branch,
                self.defaults.slug_max_length,
                self.defaults.branch_format,
            )
            self.confirm.cursor = 0
            self.step = Step.CONFIRM_RENAME
        else:
            self.tickets.handle_key(key)

    def _on_confirm_rename(self, key: Key):
        if key.name == "escape":
            self.step = Step.SELECT_TICKET
        elif key.name == "enter":
            if self.confirm.is_back:
                self.step = Step.SELECT_TICKET
                return None
            self.step = Step.LINKING
            return self._link(rename=self.confirm.selected == RENAME)
        else:
            self.confirm.handle_key(key)
        return None

    async def _link(self, rename: bool) -> None:
        try:
            if rename and self.new_name != self.current_branch:
                await run_blocking(
                    self.services.git.rename_branch, self.current_branch, self.new_name
                )
                self.renamed = True
        except Exception as e:
            self.fail(e)
            return
        await self.router.refresh_context()
        self.step = Step.DONE

    def render(self):
        s = self.step
        if s is Step.LOADING:
            return spinner("Loading tickets…")
        if s is Step.SELECT_TICKET:
            return Group(
                heading(f"Link {self.current_branch} to a ticket"), Text(""),
                render_select(self.tickets, ticket_line, empty="No open tickets assigned to you."),
            )
        if s is Step.CONFIRM_RENAME:
            return Group(
                heading("Rename branch?"), Text(""),
                ticket_line(self.ticket), Text(""),
                Text.assemble(("Current: ", "bold"), self.current_branch),
                Text.assemble(("New:     ", "bold"), (self.new_name, "bold green")),
                Text(""),
                render_choice(self.confirm),
            )
        if s is Step.LINKING:
            return spinner("Linking branch…")
        if s is Step.DONE:
            if self.renamed:
                return success_panel(Text(f"Renamed branch to {self.new_name}"))
            return success_panel(Text(f"Kept branch name {self.current_branch}"))
        return error_panel(self.error)
