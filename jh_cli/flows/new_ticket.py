from __future__ import annotations

import enum

from rich.console import Group
from rich.text import Text

from ..models import Config, IssueType, Sprint, Ticket
from ..slug import generate_branch_name
from ..tasks import gather_fetches, run_blocking
from .base import Flow
from .render import (
    error_panel, heading, render_choice, render_field, render_select, spinner, success_panel,
)
from .widgets import BACK, ChoiceState, Key, SelectState, TextField

CREATE_WITH_BRANCH = "Create ticket and branch"
CREATE_ONLY = "Create ticket only"
NO_SPRINT = "No sprint"


class Step(enum.Enum):
    LOADING = "loading"
    SELECT_TYPE = "select-type"
    ENTER_TITLE = "enter-title"
    ENTER_DESCRIPTION = "enter-description"
    SELECT_SPRINT = "select-sprint"
    CONFIRM = "confirm"
    CREATING = "creating"
    DONE = "done"
    ERROR = "error"


def sprint_label(sprint: Sprint | None) -> str:
    if sprint is None:
        return NO_SPRINT
    return f"{sprint.name} ({sprint.state})"


class NewTicketFlow(Flow):
    Step = Step
    title = "Create a new ticket"

    def __init__(self, router) -> None:
        super().__init__(router)
        self.config = Config()
        self.types: SelectState[IssueType] = SelectState(label=lambda t: t.name)
        self.sprints: SelectState[Sprint | None] = SelectState(label=sprint_label)
        self.has_sprints = False
        self.title_field = TextField(placeholder="Ticket title")
        self.description = TextField(multiline=True, placeholder="Optional description")
        options = [CREATE_WITH_BRANCH, CREATE_ONLY, BACK]
        if self.context is not None and not self.context.is_git_repo:
            options.remove(CREATE_WITH_BRANCH)
        self.confirm = ChoiceState(options)
        self.created: Ticket | None = None
        self.branch_name: str | None = None

    async def load(self) -> None:
        try:
            jira = await self.jira()
            project = self.context.workspace.default_project
            results = await gather_fetches(
                required={
                    "types": run_blocking(jira.get_issue_types, project),
                    "config": self.load_config(),
                },
                optional={
                    "sprints": (run_blocking(jira.get_active_sprints, project), []),
                },
            )
        except Exception as e:
            self.fail(e)
            return
        self.config = results["config"]
        types = results["types"]
        self.types.set_items(types)
        preferred = self.config.defaults.default_issue_type.lower()
        for i, t in enumerate(types):
            if t.name.lower() == preferred:
                self.types.cursor = i
                break
        self.has_sprints = bool(results["sprints"])
        self.sprints.set_items([*results["sprints"], None])
        self.step = Step.SELECT_TYPE

    # --- key handling ---

    def _on_select_type(self, key: Key) -> None:
        if key.name == "escape":
            self.to_main()
        elif key.name == "enter":
            if self.types.selected is not None:
                self.step = Step.ENTER_TITLE
        else:
            self.types.handle_key(key)

    def _on_enter_title(self, key: Key) -> None:
        if key.name == "escape":
            self.step = Step.SELECT_TYPE
        elif self.title_field.handle_key(key) and self.title_field.value.strip():
            self.step = Step.ENTER_DESCRIPTION

    def _on_enter_description(self, key: Key) -> None:
        if key.name == "escape":
            self.step = Step.ENTER_TITLE
        elif self.description.handle_key(key):
            self._after_description()

    def _after_description(self) -> None:
        self.confirm.cursor = 0
        self.step = Step.SELECT_SPRINT if self.has_sprints else Step.CONFIRM

    def _on_select_sprint(self, key: Key) -> None:
        if key.name == "escape":
            self.step = Step.ENTER_DESCRIPTION
        elif key.name == "enter":
            self.confirm.cursor = 0
            self.step = Step.CONFIRM
        else:
            self.sprints.handle_key(key)

    def _previous_of_confirm(self) -> Step:
        return Step.SELECT_SPRINT if self.has_sprints else Step.ENTER_DESCRIPTION

    def _on_confirm(self, key: Key):
        if key.name == "escape":
            self.step = self._previous_of_confirm()
        elif key.name == "enter":
            if self.confirm.is_back:
                self.step = self._previous_of_confirm()
                return None
            self.step = Step.CREATING
            return self._create(with_branch=self.confirm.selected == CREATE_WITH_BRANCH)
        else:
            self.confirm.handle_key(key)
        return None

    async def _create(self, with_branch: bool) -> None:
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
                sprint_id=sprint.id if sprint else None,
            )
            if with_branch:
                defaults = self.config.defaults
                self.branch_name = generate_branch_name(
                    self.created.key, title, defaults.slug_max_length, defaults.branch_format
                )
                await run_blocking(
                    self.services.git.create_branch, self.branch_name, defaults.base_branch, True
                )
        except Exception as e:
            self.fail(e)
            return
        await self.router.refresh_context()
        self.step = Step.DONE

    # --- rendering ---

    def render(self):
        s = self.step
        if s is Step.LOADING:
            return spinner("Loading issue types…")
        if s is Step.SELECT_TYPE:
            return Group(heading("Select issue type"), Text(""), render_select(self.types))
        if s is Step.ENTER_TITLE:
            return Group(heading(f"New {self.types.selected.name}"), Text(""),
                         render_field("Title", self.title_field))
        if s is Step.ENTER_DESCRIPTION:
            return Group(heading(self.title_field.value), Text(""),
                         render_field("Description", self.description, "Tab to continue"))
        if s is Step.SELECT_SPRINT:
            return Group(heading("Add to sprint"), Text(""), render_select(self.sprints))
        if s is Step.CONFIRM:
            rows = [
                heading("Create ticket"), Text(""),
                Text.assemble(("Type:  ", "bold"), self.types.selected.name),
                Text.assemble(("Title: ", "bold"), self.title_field.value),
            ]
            if self.has_sprints:
                rows.append(Text.assemble(("Sprint: ", "bold"), sprint_label(self.sprints.selected)))
            return Group(*rows, Text(""), render_choice(self.confirm))
        if s is Step.CREATING:
            return spinner("Creating ticket…")
        if s is Step.DONE:
            lines = [Text(f"Created {self.created.key}: {self.created.summary}")]
            if self.branch_name:
                lines.append(Text(f"Checked out branch {self.branch_name}"))
            return success_panel(*lines)
        return error_panel(self.error)

    def hints(self):
        if self.step is Step.ENTER_DESCRIPTION:
            return [("Tab", "Continue"), ("Esc", "Back")]
        if self.step is Step.ENTER_TITLE:
            return [("Enter", "Continue"), ("Esc", "Back")]
        return super().hints()
