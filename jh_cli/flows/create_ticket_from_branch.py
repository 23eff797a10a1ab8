"""Create a Jira ticket for the current (unlinked) branch, then rename the branch after it."""

from __future__ import annotations

import enum
import logging
import re
from datetime import date, timedelta

from rich.console import Group
from rich.text import Text

from ..models import Commit, Config, IssueType, JiraUser, Sprint, Ticket
from ..slug import branch_name_to_title, generate_branch_name
from ..tasks import gather_fetches, run_blocking
from ..tui.theme import COL_RED
from .base import Flow
from .new_ticket import sprint_label
from .render import (
    error_panel, heading, render_choice, render_field, render_select, spinner, success_panel,
)
from .widgets import BACK, ChoiceState, Key, SelectState, TextField

logger = logging.getLogger(__name__)

CREATE_AND_RENAME = "Create ticket and rename branch"
MAX_COMMITS_IN_DESCRIPTION = 10

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class Step(enum.Enum):
    LOADING = "loading"
    SELECT_TYPE = "select-type"
    EDIT_TITLE = "edit-title"
    EDIT_DESCRIPTION = "edit-description"
    SELECT_SPRINT = "select-sprint"
    EDIT_START_DATE = "edit-start-date"
    EDIT_DUE_DATE = "edit-due-date"
    CONFIRM = "confirm"
    CREATING = "creating"
    DONE = "done"
    ERROR = "error"


def is_valid_date(value: str) -> bool:
    """Empty, or a real calendar date written ``YYYY-MM-DD``."""
    if not value:
        return True
    if not _DATE_RE.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def commits_description(commits: list[Commit]) -> str:
    if not commits:
        return ""
    lines = [f"- {c.message}" for c in commits[:MAX_COMMITS_IN_DESCRIPTION]]
    return "Changes:\n" + "\n".join(lines)


class CreateTicketFromBranchFlow(Flow):
    Step = Step
    title = "Create ticket from current branch"

    today = staticmethod(date.today)

    def __init__(self, router) -> None:
        super().__init__(router)
        self.config = Config()
        self.user: JiraUser | None = None
        self.types: SelectState[IssueType] = SelectState(label=lambda t: t.name)
        self.sprints: SelectState[Sprint | None] = SelectState(label=sprint_label)
        self.has_sprints = False
        branch = self.branch
        self.title_field = TextField(branch_name_to_title(branch) if branch else "")
        self.description = TextField(multiline=True)
        today = self.today()
        self.start_date = TextField(today.isoformat(), placeholder="YYYY-MM-DD")
        self.due_date = TextField((today + timedelta(days=7)).isoformat(), placeholder="YYYY-MM-DD")
        self.problem: str | None = None
        self.confirm = ChoiceState([CREATE_AND_RENAME, BACK])
        self.created: Ticket | None = None
        self.new_branch: str | None = None

    @property
    def branch(self) -> str:
        return (self.context.current_branch if self.context else None) or ""

    async def load(self) -> None:
        try:
            jira = await self.jira()
            self.config = await self.load_config()
            project = self.context.workspace.default_project
            base = self.config.defaults.base_branch
            results = await gather_fetches(
                required={
                    "types": run_blocking(jira.get_issue_types, project),
                    "user": run_blocking(jira.get_current_user),
                },
                optional={
                    "sprints": (run_blocking(jira.get_active_sprints, project), []),
                    "commits": (run_blocking(self.services.git.get_commits_since, base), []),
                },
            )
        except Exception as e:
            self.fail(e)
            return
        self.user = results["user"]
        self.types.set_items(results["types"])
        preferred = self.config.defaults.default_issue_type.lower()
        for i, t in enumerate(self.types.items):
            if t.name.lower() == preferred:
                self.types.cursor = i
                break
        sprints: list[Sprint] = results["sprints"]
        self.has_sprints = bool(sprints)
        self.sprints.set_items([*sprints, None])
        self.sprints.cursor = next(
            (i for i, s in enumerate(sprints) if s.state == "active"), 0
        )
        self.description.value = commits_description(results["commits"])
        self.step = Step.SELECT_TYPE

    # --- key handling ---

    def _on_select_type(self, key: Key) -> None:
        if key.name == "escape":
            self.to_main()
        elif key.name == "enter":
            if self.types.selected is not None:
                self.step = Step.EDIT_TITLE
        else:
            self.types.handle_key(key)

    def _on_edit_title(self, key: Key) -> None:
        if key.name == "escape":
            self.step = Step.SELECT_TYPE
        elif self.title_field.handle_key(key) and self.title_field.value.strip():
            self.step = Step.EDIT_DESCRIPTION

    def _on_edit_description(self, key: Key) -> None:
        if key.name == "escape":
            self.step = Step.EDIT_TITLE
        elif self.description.handle_key(key):
            self.step = Step.SELECT_SPRINT if self.has_sprints else Step.EDIT_START_DATE

    def _on_select_sprint(self, key: Key) -> None:
        if key.name == "escape":
            self.step = Step.EDIT_DESCRIPTION
        elif key.name == "enter":
            self.step = Step.EDIT_START_DATE
        else:
            self.sprints.handle_key(key)

    def _date_step(self, key: Key, field: TextField, previous: Step, following: Step) -> None:
        if key.name == "escape":
            self.problem = None
            self.step = previous
            return
        if not field.handle_key(key):
            return
        value = field.value.strip()
        if not is_valid_date(value):
            self.problem = f"'{value}' is not a date in YYYY-MM-DD form."
            return
        field.value = value
        self.problem = None
        self.step = following

    def _on_edit_start_date(self, key: Key) -> None:
        previous = Step.SELECT_SPRINT if self.has_sprints else Step.EDIT_DESCRIPTION
        self._date_step(key, self.start_date, previous, Step.EDIT_DUE_DATE)

    def _on_edit_due_date(self, key: Key) -> None:
        self._date_step(key, self.due_date, Step.EDIT_START_DATE, Step.CONFIRM)
        if self.step is Step.CONFIRM:
            self.confirm.cursor = 0

    def _on_confirm(self, key: Key):
        if key.name == "escape":
            self.step = Step.EDIT_DUE_DATE
        elif key.name == "enter":
            if self.confirm.is_back:
                self.step = Step.EDIT_DUE_DATE
                return None
            self.step = Step.CREATING
            return self._create()
        else:
            self.confirm.handle_key(key)
        return None

    async def _create(self) -> None:
        title = self.title_field.value.strip()
        sprint = self.sprints.selected if self.has_sprints else None
        try:
            jira = await self.jira()
            self.created = await run_blocking(
                jira.create_issue,
                project=self.context.workspace.default_project,
                summary=title,
                issue_type=self.types.selected.name,
                description=self.description.value.strip() or None,
                assignee_id=self.user.account_id,
                reporter_id=self.user.account_id,
                sprint_id=sprint.id if sprint else None,
                start_date=self.start_date.value or None,
                due_date=self.due_date.value or None,
            )
        except Exception as e:
            self.fail(e)
            return

        defaults = self.config.defaults
        new_branch = generate_branch_name(
            self.created.key, title, defaults.slug_max_length, defaults.branch_format
        )
        try:
            await run_blocking(self.services.git.rename_branch, self.branch, new_branch)
            self.new_branch = new_branch
        except Exception:
            logger.debug("Renaming %s after %s failed", self.branch, self.created.key, exc_info=True)
        await self.router.refresh_context()
        self.step = Step.DONE

    # --- rendering ---

    def render(self):
        s = self.step
        problem = Text(self.problem or "", style=COL_RED)
        if s is Step.LOADING:
            return spinner("Loading issue types…")
        if s is Step.SELECT_TYPE:
            return Group(heading(f"New ticket for {self.branch}"), Text(""), render_select(self.types))
        if s is Step.EDIT_TITLE:
            return render_field("Title", self.title_field)
        if s is Step.EDIT_DESCRIPTION:
            return render_field("Description", self.description, "Tab to continue")
        if s is Step.SELECT_SPRINT:
            return Group(heading("Add to sprint"), Text(""), render_select(self.sprints))
        if s is Step.EDIT_START_DATE:
            return Group(render_field("Start date", self.start_date, "YYYY-MM-DD, empty for none"), problem)
        if s is Step.EDIT_DUE_DATE:
            return Group(render_field("Due date", self.due_date, "YYYY-MM-DD, empty for none"), problem)
        if s is Step.CONFIRM:
            rows = [
                heading("Create ticket"), Text(""),
                Text.assemble(("Type:       ", "bold"), self.types.selected.name),
                Text.assemble(("Title:      ", "bold"), self.title_field.value),
                Text.assemble(("Assignee:   ", "bold"), self.user.display_name if self.user else "—"),
            ]
            if self.has_sprints:
                rows.append(Text.assemble(("Sprint:     ", "bold"), sprint_label(self.sprints.selected)))
            rows += [
                Text.assemble(("Start date: ", "bold"), self.start_date.value or "—"),
                Text.assemble(("Due date:   ", "bold"), self.due_date.value or "—"),
            ]
            return Group(*rows, Text(""), render_choice(self.confirm))
        if s is Step.CREATING:
            return spinner("Creating ticket…")
        if s is Step.DONE:
            lines = [Text(f"Created {self.created.key}: {self.created.summary}")]
            if self.new_branch:
                lines.append(Text(f"Renamed branch to {self.new_branch}"))
            else:
                lines.append(Text(f"Branch {self.branch} was left as is"))
            return success_panel(*lines)
        return error_panel(self.error)

    def hints(self):
        if self.step is Step.EDIT_DESCRIPTION:
            return [("Tab", "Continue"), ("Esc", "Back")]
        if self.step in (Step.EDIT_TITLE, Step.EDIT_START_DATE, Step.EDIT_DUE_DATE):
            return [("Enter", "Continue"), ("Esc", "Back")]
        return super().hints()
