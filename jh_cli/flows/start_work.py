from __future__ import annotations

import enum
import logging

from rich.console import Group
from rich.text import Text

from ..errors import GitError
from ..models import Config, Ticket
from ..slug import generate_branch_name, sort_tickets_by_key
from ..tasks import gather_fetches, run_blocking
from .base import Flow
from .render import error_panel, heading, render_choice, render_select, spinner, success_panel, ticket_line
from .widgets import BACK, ChoiceState, Key, SelectState

logger = logging.getLogger(__name__)

CREATE_AND_CHECKOUT = "Create and checkout"
CREATE_ONLY = "Create only (don't checkout)"


class Step(enum.Enum):
    LOADING = "loading"
    SELECT_TICKET = "select-ticket"
    CONFIRM_BRANCH = "confirm-branch"
    CREATING = "creating"
    DONE = "done"
    ERROR = "error"


class StartWorkFlow(Flow):
    """Pick one of my open tickets and cut a branch for it."""

    Step = Step
    title = "Start work on a ticket"

    def __init__(self, router) -> None:
        super().__init__(router)
        self.tickets: SelectState[Ticket] = SelectState(
            label=lambda t: f"{t.key} {t.summary}", searchable=True
        )
        self.config = Config()
        self.ticket: Ticket | None = None
        self.branch_name = ""
        self.checked_out = False
        self.confirm = ChoiceState([CREATE_AND_CHECKOUT, CREATE_ONLY, BACK])

    async def load(self) -> None:
        try:
            jira = await self.jira()
            project = self.context.workspace.default_project
            results = await gather_fetches(
                required={
                    "tickets": run_blocking(jira.get_my_issues, project),
                    "config": self.load_config(),
                },
            )
        except Exception as e:
            self.fail(e)
            return
        self.config = results["config"]
        self.tickets.set_items(sort_tickets_by_key(results["tickets"]))
        self.step = Step.SELECT_TICKET

    def _on_select_ticket(self, key: Key) -> None:
        if key.name == "escape":
            self.to_main()
        elif key.name == "enter":
            ticket = self.tickets.selected
            if ticket is None:
                return
            self.ticket = ticket
            defaults = self.config.defaults
            self.branch_name = generate_branch_name(
                ticket.key, ticket.summary, defaults.slug_max_length, defaults.branch_format
            )
            self.confirm.cursor = 0
            self.step = Step.CONFIRM_BRANCH
        else:
            self.tickets.handle_key(key)

    def _on_confirm_branch(self, key: Key):
        if key.name == "escape":
            self.step = Step.SELECT_TICKET
        elif key.name == "enter":
            if self.confirm.is_back:
                self.step = Step.SELECT_TICKET
                return None
            self.step = Step.CREATING
            return self._create(checkout=self.confirm.selected == CREATE_AND_CHECKOUT)
        else:
            self.confirm.handle_key(key)
        return None

    async def _create(self, checkout: bool) -> None:
        git = self.services.git
        try:
            if await run_blocking(git.branch_exists, self.branch_name):
                raise GitError(f'Branch "{self.branch_name}" already exists.')
            await run_blocking(
                git.create_branch, self.branch_name, self.config.defaults.base_branch, checkout
            )
        except Exception as e:
            self.fail(e)
            return
        self.checked_out = checkout
        try:
            jira = await self.jira()
            await run_blocking(jira.transition_issue, self.ticket.key, "In Progress")
        except Exception:
            logger.debug("Moving %s to In Progress failed", self.ticket.key, exc_info=True)
        await self.router.refresh_context()
        self.step = Step.DONE

    def render(self):
        if self.step is Step.LOADING:
            return spinner("Loading your tickets…")
        if self.step is Step.SELECT_TICKET:
            return Group(
                heading("Select a ticket to work on"), Text(""),
                render_select(self.tickets, ticket_line, empty="No open tickets assigned to you."),
            )
        if self.step is Step.CONFIRM_BRANCH:
            return Group(
                heading("Create branch"), Text(""),
                ticket_line(self.ticket), Text(""),
                Text.assemble(("Branch: ", "bold"), (self.branch_name, "bold green")),
                Text.assemble(("From:   ", "bold"), self.config.defaults.base_branch),
                Text(""),
                render_choice(self.confirm),
            )
        if self.step is Step.CREATING:
            return spinner(f"Creating {self.branch_name}…")
        if self.step is Step.DONE:
            verb = "Created and checked out" if self.checked_out else "Created"
            return success_panel(Text(f"{verb} branch {self.branch_name}"))
        return error_panel(self.error)

    def hints(self):
        if self.step is Step.SELECT_TICKET:
            return [("↑↓", "Navigate"), ("type", "Search"), ("Enter", "Select"), ("Esc", "Back")]
        return super().hints()
