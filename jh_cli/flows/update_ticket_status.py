from __future__ import annotations

import enum

from rich.console import Group
from rich.text import Text

from ..errors import JiraError, JiraNotFoundError
from ..jira_api import JiraClient, status_style
from ..models import Ticket, Transition
from ..tasks import gather_fetches, run_blocking
from .base import Flow
from .render import error_panel, heading, render_select, spinner, success_panel, ticket_line
from .widgets import Key, SelectState


class Step(enum.Enum):
    LOADING = "loading"
    SELECT = "select"
    UPDATING = "updating"
    DONE = "done"
    ERROR = "error"


def transition_label(t: Transition) -> Text:
    if t.name.lower() == t.to_status.lower():
        return Text(t.name, style=status_style(t.to_status))
    return Text.assemble(t.name, (" → ", "bright_black"), (t.to_status, status_style(t.to_status)))


class UpdateTicketStatusFlow(Flow):
    """Move the linked ticket through one of its available workflow transitions."""

    Step = Step
    title = "Update ticket status"

    def __init__(self, router) -> None:
        super().__init__(router)
        self.jira_client: JiraClient | None = None
        self.ticket: Ticket | None = None
        self.transitions: SelectState[Transition] = SelectState(label=lambda t: t.name)
        self.new_status = ""

    async def load(self) -> None:
        ticket_id = self.context.linked_ticket_id if self.context else None
        try:
            if not ticket_id:
                raise JiraNotFoundError("No linked ticket found.")
            self.jira_client = await self.jira()
            results = await gather_fetches(required={
                "ticket": run_blocking(self.jira_client.get_issue, ticket_id),
                "transitions": run_blocking(self.jira_client.get_available_transitions, ticket_id),
            })
            if results["ticket"] is None:
                raise JiraNotFoundError("Ticket not found.")
            if not results["transitions"]:
                raise JiraError("No status transitions available for this ticket.")
        except Exception as e:
            self.fail(e)
            return
        self.ticket = results["ticket"]
        self.transitions.set_items(results["transitions"])
        self.step = Step.SELECT

    def _on_select(self, key: Key):
        if key.name == "escape":
            self.to_main()
        elif key.name == "enter" and self.transitions.selected is not None:
            transition = self.transitions.selected
            self.new_status = transition.to_status
            self.step = Step.UPDATING
            return self._update(transition)
        else:
            self.transitions.handle_key(key)
        return None

    async def _update(self, transition: Transition) -> None:
        try:
            await run_blocking(self.jira_client.transition_issue_by_id, self.ticket.key, transition.id)
        except Exception as e:
            self.fail(e)
            return
        self.step = Step.DONE

    def render(self):
        s = self.step
        if s is Step.LOADING:
            return spinner("Loading ticket…")
        if s is Step.SELECT:
            return Group(
                ticket_line(self.ticket), Text(""),
                heading("Move to"), render_select(self.transitions, transition_label),
            )
        if s is Step.UPDATING:
            return spinner(f"Moving {self.ticket.key} to {self.new_status}…")
        if s is Step.DONE:
            return success_panel(Text.assemble(
                f"{self.ticket.key} is now ", (self.new_status, status_style(self.new_status)),
            ))
        return error_panel(self.error)
