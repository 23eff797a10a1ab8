from __future__ import annotations

import enum
import logging
import math
from datetime import datetime, timezone

from rich.console import Group
from rich.text import Text

from ..jira_api import PR_STATUS_STYLES
from ..models import BranchInfo, BranchWithTicket
from ..slug import extract_ticket_id
from ..tasks import gather_fetches, run_blocking
from ..tui.theme import COL_CYAN, COL_GREEN, COL_MUTED
from .base import Flow
from .render import error_panel, heading, spinner, success_panel
from .widgets import Key, wrap

logger = logging.getLogger(__name__)

PAGE_SIZE = 20
TICKET_LOOKUP_LIMIT = 10


class Step(enum.Enum):
    LOADING = "loading"
    LIST = "list"
    SWITCHING = "switching"
    DONE = "done"
    ERROR = "error"


def format_relative_date(date: datetime | None, now: datetime | None = None) -> str:
    if date is None:
        return ""
    now = now or datetime.now(timezone.utc)
    if date.tzinfo is None:
        date = date.replace(tzinfo=timezone.utc)
    seconds = max((now - date).total_seconds(), 0)
    minutes, hours, days = seconds / 60, seconds / 3600, seconds / 86400
    if minutes < 60:
        return f"{int(minutes)}m ago"
    if hours < 24:
        return f"{int(hours)}h ago"
    if days < 7:
        return f"{int(days)}d ago"
    if days < 30:
        return f"{int(days // 7)}w ago"
    if days < 365:
        return f"{int(days // 30)}mo ago"
    return f"{int(days // 365)}y ago"


def sort_branches(branches: list[BranchWithTicket]) -> list[BranchWithTicket]:
    """Current branch first, then most recent commit first."""
    def key(b: BranchWithTicket):
        date = b.branch.last_commit_date
        ts = date.timestamp() if date else 0.0
        return (not b.branch.current, -ts)

    return sorted(branches, key=key)


class SwitchBranchFlow(Flow):
    Step = Step
    title = "Switch branch"

    def __init__(self, router) -> None:
        super().__init__(router)
        self.branches: list[BranchWithTicket] = []
        self.page = 0
        self.cursor = 0
        self.target: str | None = None

    @property
    def total_pages(self) -> int:
        return max(math.ceil(len(self.branches) / PAGE_SIZE), 1)

    @property
    def visible(self) -> list[BranchWithTicket]:
        start = self.page * PAGE_SIZE
        return self.branches[start:start + PAGE_SIZE]

    async def _lookup_tickets(self, ticket_ids: list[str]) -> dict:
        jira = await self.jira()
        results = await gather_fetches(
            required={},
            optional={tid: (run_blocking(jira.get_issue, tid), None) for tid in ticket_ids},
        )
        return {tid: t for tid, t in results.items() if t is not None}

    async def load(self) -> None:
        git, github = self.services.git, self.services.github
        try:
            branch_list: list[BranchInfo] = await run_blocking(git.list_branches)
        except Exception as e:
            self.fail(e)
            return
        names = [b.name for b in branch_list]
        ticket_ids = list(dict.fromkeys(
            tid for name in names if (tid := extract_ticket_id(name))
        ))[:TICKET_LOOKUP_LIMIT]

        optional = {"prs": (run_blocking(github.list_prs_by_branch, names), {})}
        if ticket_ids and self.context and self.context.workspace:
            optional["tickets"] = (self._lookup_tickets(ticket_ids), {})
        results = await gather_fetches(required={}, optional=optional)
        prs, tickets = results["prs"], results.get("tickets", {})

        self.branches = sort_branches([
            BranchWithTicket(
                branch=b,
                ticket_id=extract_ticket_id(b.name),
                ticket=tickets.get(extract_ticket_id(b.name)),
                pr_info=prs.get(b.name),
            )
            for b in branch_list
        ])
        self.step = Step.LIST

    def _on_list(self, key: Key):
        visible = self.visible
        if key.name == "escape":
            self.to_main()
        elif key.name == "up":
            self.cursor = wrap(self.cursor, -1, len(visible))
        elif key.name == "down":
            self.cursor = wrap(self.cursor, 1, len(visible))
        elif key.name in ("left", "right") and self.total_pages > 1:
            self.page = wrap(self.page, -1 if key.name == "left" else 1, self.total_pages)
            self.cursor = 0
        elif key.name == "enter" and visible:
            chosen = visible[self.cursor]
            if chosen.branch.current:
                return None
            self.target = chosen.branch.name
            self.step = Step.SWITCHING
            return self._switch()
        return None

    async def _switch(self) -> None:
        try:
            await run_blocking(self.services.git.checkout_branch, self.target)
        except Exception as e:
            self.fail(e)
            return
        await self.router.refresh_context()
        self.step = Step.DONE

    def _row(self, b: BranchWithTicket, selected: bool) -> Text:
        marker = "→ " if selected else ("* " if b.branch.current else "  ")
        name = b.branch.name if len(b.branch.name) <= 35 else b.branch.name[:35] + "..."
        name_style = f"bold {COL_CYAN}" if selected else (COL_GREEN if b.branch.current else "")
        row = Text.assemble(
            (marker, COL_CYAN if selected else COL_GREEN),
            (f"{format_relative_date(b.branch.last_commit_date):<9} ", COL_MUTED),
            (name, name_style),
        )
        if b.pr_info and b.pr_info.status:
            status = b.pr_info.status
            row.append(f" [{status}]", style=PR_STATUS_STYLES.get(status, ""))
        if b.ticket:
            summary = b.ticket.summary
            summary = summary if len(summary) <= 25 else summary[:25] + "..."
            row.append(f'  "{summary}"', style=COL_MUTED)
        elif not b.ticket_id and b.branch.name not in ("main", "master") and not b.pr_info:
            row.append("  (no ticket)", style=COL_MUTED)
        return row

    def render(self):
        s = self.step
        if s is Step.LOADING:
            return spinner("Loading branches…")
        if s is Step.LIST:
            title = f"Local branches ({len(self.branches)})"
            if self.total_pages > 1:
                title += f"  Page {self.page + 1}/{self.total_pages}"
            return Group(
                heading(title), Text(""),
                *(self._row(b, i == self.cursor) for i, b in enumerate(self.visible)),
            )
        if s is Step.SWITCHING:
            return spinner(f"Switching to {self.target}…")
        if s is Step.DONE:
            return success_panel(Text(f"Switched to branch: {self.target}"))
        return error_panel(self.error)

    def hints(self):
        if self.step is Step.LIST:
            hints = [("↑↓", "Navigate")]
            if self.total_pages > 1:
                hints.append(("←→", "Page"))
            return hints + [("Enter", "Checkout"), ("Esc", "Back")]
        return super().hints()
