from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from .context import ContextResolver
from .flows import FLOWS, Flow, Key, ViewName
from .models import AppContext
from .services import Services
from .tasks import run_blocking

logger = logging.getLogger(__name__)

Scheduler = Callable[[Awaitable[Any]], Any]


class Router:
    """Owns the active view, the context snapshot and the active flow.

    *schedule* runs a coroutine in the background (the TUI passes its worker
    launcher); *on_quit* is called when the user quits from the main menu.
    """

    def __init__(
        self,
        services: Services,
        schedule: Scheduler,
        on_quit: Callable[[], None] | None = None,
    ) -> None:
        self.services = services
        self.schedule = schedule
        self.on_quit = on_quit
        self.resolver = ContextResolver(services.store, services.git)
        self.view = ViewName.LOADING
        self.context: AppContext | None = None
        self.flow: Flow | None = None
        self.quit_requested = False

    async def start(self, force_setup: bool = False) -> None:
        configured = await run_blocking(self.services.store.exists)
        if force_setup or not configured:
            if configured:
                await self.refresh_context()
            self.navigate(ViewName.SETUP)
            return
        await self.refresh_context()
        self.navigate(ViewName.MAIN)

    def navigate(self, view: ViewName) -> None:
        logger.debug("navigate %s -> %s", self.view.value, view.value)
        self.view = view
        self.flow = FLOWS[view](self)
        self.schedule(self.flow.load())

    async def refresh_context(self) -> None:
        self.context = await run_blocking(self.resolver.get_context)

    async def complete_setup(self) -> None:
        await self.refresh_context()
        self.navigate(ViewName.MAIN)

    def dispatch(self, key: Key) -> Awaitable[Any] | None:
        """Route *key* to the active flow; ``q`` on the main menu quits."""
        if self.view is ViewName.MAIN and key.char == "q":
            self.quit_requested = True
            if self.on_quit is not None:
                self.on_quit()
            return None
        if self.flow is None:
            return None
        return self.flow.handle_key(key)
