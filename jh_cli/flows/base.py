"""View names and the base class every view's state machine derives from."""

from __future__ import annotations

import enum
import logging
from typing import TYPE_CHECKING, Any, Awaitable, ClassVar

from rich.console import RenderableType
from rich.text import Text

from ..tasks import run_blocking
from .widgets import Key

if TYPE_CHECKING:
    from ..jira_api import JiraClient
    from ..models import AppContext, Config
    from ..router import Router
    from ..services import Services

logger = logging.getLogger(__name__)


class ViewName(enum.Enum):
    LOADING = "loading"
    SETUP = "setup"
    MAIN = "main"
    START_WORK = "start-work"
    NEW_TICKET = "new-ticket"
    MY_TICKETS = "my-tickets"
    SWITCH_BRANCH = "switch-branch"
    LINK_BRANCH = "link-branch"
    SETTINGS = "settings"
    CREATE_TICKET_FROM_BRANCH = "create-ticket-from-branch"
    CREATE_PR = "create-pr"
    UPDATE_TICKET_STATUS = "update-ticket-status"


# Steps during which a mutation is in flight and input is ignored
BUSY_STEPS = frozenset({
    "LOADING", "LOADING_CHILDREN", "CREATING", "UPDATING", "PUSHING", "LINKING",
    "SWITCHING", "SAVING", "TESTING", "CREATING_BRANCH",
})


class Flow:
    """State machine for one view.

    ``handle_key`` performs the synchronous part of a transition and may hand
    back a coroutine for the asynchronous part; the host runs it. Keys are
    routed to ``_on_<step name>`` methods of the subclass.
    """

    Step: ClassVar[type[enum.Enum]]
    title: ClassVar[str] = ""

    def __init__(self, router: "Router") -> None:
        self.router = router
        self.step = next(iter(self.Step))
        self.error: str | None = None

    @property
    def context(self) -> "AppContext | None":
        return self.router.context

    @property
    def services(self) -> "Services":
        return self.router.services

    @property
    def busy(self) -> bool:
        return self.step.name in BUSY_STEPS

    async def load(self) -> None:
        """Fetch what the first interactive step needs."""

    async def jira(self) -> "JiraClient":
        return await run_blocking(self.services.jira_for, self.context)

    async def load_config(self) -> "Config":
        return await run_blocking(self.services.store.load)

    def fail(self, exc: BaseException | str) -> None:
        self.error = str(exc) or type(exc).__name__
        logger.info("%s failed: %s", type(self).__name__, self.error)
        self.step = self.Step["ERROR"]

    def to_main(self) -> None:
        self.router.navigate(ViewName.MAIN)

    def handle_key(self, key: Key) -> Awaitable[Any] | None:
        if self.busy:
            return None
        handler = getattr(self, f"_on_{self.step.name.lower()}", None)
        if handler is not None:
            return handler(key)
        if self.step.name in ("DONE", "ERROR") and key.name in ("enter", "escape"):
            self.to_main()
        return None

    def render(self) -> RenderableType:
        return Text("")

    def hints(self) -> list[tuple[str, str]]:
        if self.busy:
            return []
        if self.step.name in ("DONE", "ERROR"):
            return [("Enter", "Continue")]
        return [("↑↓", "Navigate"), ("Enter", "Select"), ("Esc", "Back")]
