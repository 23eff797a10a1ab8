"""Textual host for the jh router: renders the active flow and forwards keys to it."""

from __future__ import annotations

import logging
from typing import Any, Awaitable

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import ScrollableContainer
from textual.widgets import Static

from ..flows import Key
from ..router import Router
from ..services import Services
from .theme import BODY_CSS, COL_CYAN, COL_MUTED, CONTEXT_BAR_CSS, HINTS_CSS, SCREEN_CSS, context_bar_text

logger = logging.getLogger(__name__)


def hints_text(hints: list[tuple[str, str]]) -> Text:
    text = Text()
    for key, action in hints:
        text.append(f" {key} ", style=f"bold {COL_CYAN}")
        text.append(f"{action}  ", style=COL_MUTED)
    return text


class JhApp(App):
    CSS = SCREEN_CSS + CONTEXT_BAR_CSS + BODY_CSS + HINTS_CSS

    BINDINGS = [
        # Tab cycles filters and submits multiline fields instead of moving focus
        Binding("tab", "forward_tab", show=False, priority=True),
        Binding("ctrl+c", "quit", "Quit", show=False, priority=True),
    ]

    def __init__(self, services: Services | None = None, force_setup: bool = False) -> None:
        super().__init__()
        self.services = services or Services()
        self.force_setup = force_setup
        self.router = Router(self.services, schedule=self._schedule, on_quit=self.exit)

    def compose(self) -> ComposeResult:
        yield Static(context_bar_text(None), classes="context-bar", id="context-bar")
        with ScrollableContainer(id="body-scroll"):
            yield Static("Loading...", id="body")
        yield Static("", id="hints")

    def on_mount(self) -> None:
        self._schedule(self.router.start(force_setup=self.force_setup))
        self.set_interval(0.2, self._refresh)

    # --- async plumbing ---

    def _schedule(self, awaitable: Awaitable[Any]) -> None:
        self.run_worker(self._settle(awaitable), exclusive=False, exit_on_error=False)

    async def _settle(self, awaitable: Awaitable[Any]) -> None:
        try:
            await awaitable
        finally:
            self._refresh()

    def _refresh(self) -> None:
        flow = self.router.flow
        self.query_one("#context-bar", Static).update(context_bar_text(self.router.context))
        if flow is None:
            return
        self.sub_title = flow.title
        self.query_one("#body", Static).update(flow.render())
        self.query_one("#hints", Static).update(hints_text(flow.hints()))

    # --- input ---

    def _dispatch(self, key: Key) -> None:
        pending = self.router.dispatch(key)
        if pending is not None:
            self._schedule(pending)
        self._refresh()

    def on_key(self, event) -> None:
        event.stop()
        event.prevent_default()
        self._dispatch(Key(event.key, event.character))

    def action_forward_tab(self) -> None:
        self._dispatch(Key("tab"))
