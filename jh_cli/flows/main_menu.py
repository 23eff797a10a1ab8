from __future__ import annotations

import enum
import logging
from typing import NamedTuple

from rich.console import Group
from rich.text import Text

from ..models import AppContext, Ticket
from ..tasks import run_blocking
from .base import Flow, ViewName
from .render import cursor_line, status_box
from .widgets import Key, wrap

logger = logging.getLogger(__name__)


class Step(enum.Enum):
    LOADING = "loading"
    MENU = "menu"
    ERROR = "error"


class MenuItem(NamedTuple):
    label: str
    view: ViewName


def menu_items(context: AppContext | None) -> list[MenuItem]:
    """The menu entries that apply to *context*, in display order."""
    ctx = context or AppContext.build()
    repo = ctx.is_git_repo
    linked = ctx.linked_ticket_id is not None
    on_trunk = ctx.current_branch in ("main", "master")
    candidates = [
        (MenuItem("Start work on a ticket", ViewName.START_WORK), repo),
        (MenuItem("Create a new ticket", ViewName.NEW_TICKET), True),
        (MenuItem("My tickets", ViewName.MY_TICKETS), True),
        (MenuItem("Switch branch", ViewName.SWITCH_BRANCH), repo),
        (MenuItem("Create PR for current branch", ViewName.CREATE_PR), repo and linked),
        (MenuItem("Update ticket status", ViewName.UPDATE_TICKET_STATUS), linked),
        (MenuItem("Create ticket from current branch", ViewName.CREATE_TICKET_FROM_BRANCH),
         repo and not linked and not on_trunk),
        (MenuItem("Link branch to ticket", ViewName.LINK_BRANCH), repo and not linked),
        (MenuItem("Settings", ViewName.SETTINGS), True),
    ]
    return [item for item, show in candidates if show]


class MainMenuFlow(Flow):
    Step = Step
    title = "jh"

    def __init__(self, router) -> None:
        super().__init__(router)
        self.step = Step.MENU
        self.cursor = 0
        self.linked_ticket: Ticket | None = None

    @property
    def items(self) -> list[MenuItem]:
        return menu_items(self.context)

    async def load(self) -> None:
        ctx = self.context
        if ctx is None or not ctx.linked_ticket_id or ctx.workspace is None:
            return
        try:
            jira = await self.jira()
            self.linked_ticket = await run_blocking(jira.get_issue, ctx.linked_ticket_id)
        except Exception:
            logger.debug("Linked ticket lookup failed", exc_info=True)

    def _on_menu(self, key: Key) -> None:
        items = self.items
        if key.name == "up":
            self.cursor = wrap(self.cursor, -1, len(items))
        elif key.name == "down":
            self.cursor = wrap(self.cursor, 1, len(items))
        elif key.name == "enter" and items:
            self.router.navigate(items[min(self.cursor, len(items) - 1)].view)
        elif key.char and key.char.isdigit():
            n = int(key.char)
            if 1 <= n <= len(items):
                self.router.navigate(items[n - 1].view)

    def render(self):
        rows = [status_box(self.context, self.linked_ticket), Text("")]
        for i, item in enumerate(self.items):
            rows.append(cursor_line(f"{i + 1}. {item.label}", i == self.cursor))
        return Group(*rows)

    def hints(self) -> list[tuple[str, str]]:
        return [("↑↓", "Navigate"), ("Enter", "Select"), ("1-9", "Jump"), ("q", "Quit")]
