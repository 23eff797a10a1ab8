from __future__ import annotations

import enum

from rich.console import Group
from rich.text import Text

from ..errors import JiraNotFoundError, PullRequestError
from ..github import PR_EXISTS_MESSAGE
from ..jira_api import issue_url
from ..models import Commit, Config, Ticket
from ..tasks import gather_fetches, run_blocking
from .base import Flow, ViewName
from .render import error_panel, heading, render_choice, render_field, spinner, success_panel
from .widgets import BACK, ChoiceState, Key, TextField

PUSH = "Push branch to origin"
CANCEL = "Cancel"
CREATE_PR = "Create Pull Request"
UPDATE_STATUS = "Update ticket status"
BACK_TO_MENU = "Back to menu"


class Step(enum.Enum):
    LOADING = "loading"
    PUSH_NEEDED = "push-needed"
    PUSHING = "pushing"
    EDIT_TITLE = "edit-title"
    EDIT_BODY = "edit-body"
    CONFIRM = "confirm"
    CREATING = "creating"
    DONE = "done"
    ERROR = "error"


def pr_body(ticket: Ticket, url: str, commits: list[Commit]) -> str:
    lines = ["## Jira Ticket", f"[{ticket.key}]({url})", "", "## Summary", ticket.summary, ""]
    if ticket.description:
        lines += ["## Description", ticket.description, ""]
    if commits:
        lines.append("## Commits")
        lines += [f"- {c.hash} {c.message}" for c in commits]
        lines.append("")
    lines += ["## Test Plan", "- [ ] Describe how this change was tested"]
    return "\n".join(lines)


class CreatePrFlow(Flow):
    Step = Step
    title = "Create pull request"

    def __init__(self, router) -> None:
        super().__init__(router)
        self.config = Config()
        self.ticket: Ticket | None = None
        self.title_field = TextField()
        self.body = TextField(multiline=True)
        self.push_choice = ChoiceState([PUSH, CANCEL])
        self.confirm = ChoiceState([CREATE_PR, BACK])
        self.done_choice = ChoiceState([UPDATE_STATUS, BACK_TO_MENU])
        self.pr_url: str | None = None
        self.pr_existed = False

    @property
    def branch(self) -> str:
        return (self.context.current_branch if self.context else None) or ""

    async def load(self) -> None:
        git = self.services.git
        ticket_id = self.context.linked_ticket_id if self.context else None
        try:
            if not ticket_id:
                raise JiraNotFoundError("This branch is not linked to a ticket.")
            jira = await self.jira()
            self.config = await self.load_config()
            base = self.config.defaults.base_branch
            results = await gather_fetches(
                required={
                    "ticket": run_blocking(jira.get_issue, ticket_id),
                    "upstream": run_blocking(git.has_upstream),
                },
                optional={"commits": (run_blocking(git.get_commits_since, base), [])},
            )
            if results["ticket"] is None:
                raise JiraNotFoundError("Ticket not found.")
        except Exception as e:
            self.fail(e)
            return
        self.ticket = results["ticket"]
        url = issue_url(self.context.workspace.domain, self.ticket.key)
        self.title_field.value = f"{self.ticket.key}: {self.ticket.summary}"
        self.body.value = pr_body(self.ticket, url, results["commits"])
        self.step = Step.EDIT_TITLE if results["upstream"] else Step.PUSH_NEEDED

    # --- key handling ---

    def _on_push_needed(self, key: Key):
        if key.name == "escape":
            self.to_main()
        elif key.name == "enter":
            if self.push_choice.selected == CANCEL:
                self.to_main()
                return None
            self.step = Step.PUSHING
            return self._push()
        else:
            self.push_choice.handle_key(key)
        return None

    async def _push(self) -> None:
        try:
            await run_blocking(self.services.github.push_branch, self.branch)
        except Exception as e:
            self.fail(e)
            return
        self.step = Step.EDIT_TITLE

    def _on_edit_title(self, key: Key) -> None:
        if key.name == "escape":
            self.to_main()
        elif self.title_field.handle_key(key) and self.title_field.value.strip():
            self.step = Step.EDIT_BODY

    def _on_edit_body(self, key: Key) -> None:
        if key.name == "escape":
            self.step = Step.EDIT_TITLE
        elif self.body.handle_key(key):
            self.confirm.cursor = 0
            self.step = Step.CONFIRM

    def _on_confirm(self, key: Key):
        if key.name == "escape":
            self.step = Step.EDIT_BODY
        elif key.name == "enter":
            if self.confirm.is_back:
                self.step = Step.EDIT_BODY
                return None
            self.step = Step.CREATING
            return self._create()
        else:
            self.confirm.handle_key(key)
        return None

    async def _create(self) -> None:
        github = self.services.github
        try:
            await run_blocking(github.push_branch, self.branch)
            self.pr_url = await run_blocking(
                github.create_pr,
                self.config.defaults.base_branch,
                self.title_field.value.strip(),
                self.body.value,
            )
        except PullRequestError as e:
            if str(e) != PR_EXISTS_MESSAGE:
                self.fail(e)
                return
            self.pr_url = await run_blocking(github.current_pr_url)
            if not self.pr_url:
                self.fail(e)
                return
            self.pr_existed = True
        except Exception as e:
            self.fail(e)
            return
        self.done_choice.cursor = 0
        self.step = Step.DONE

    def _on_done(self, key: Key) -> None:
        if key.name == "escape":
            self.to_main()
        elif key.name == "enter":
            if self.done_choice.selected == UPDATE_STATUS:
                self.router.navigate(ViewName.UPDATE_TICKET_STATUS)
            else:
                self.to_main()
        else:
            self.done_choice.handle_key(key)

    # --- rendering ---

    def render(self):
        s = self.step
        if s is Step.LOADING:
            return spinner("Loading ticket…")
        if s is Step.PUSH_NEEDED:
            return Group(
                heading("Branch needs to be pushed"), Text(""),
                Text(f"{self.branch} has not been pushed to the remote repository yet."),
                Text("Would you like to push it now?"), Text(""),
                render_choice(self.push_choice),
            )
        if s is Step.PUSHING:
            return spinner(f"Pushing {self.branch} to origin…")
        if s is Step.EDIT_TITLE:
            return render_field("Pull request title", self.title_field)
        if s is Step.EDIT_BODY:
            return render_field("Pull request body", self.body, "Tab to continue")
        if s is Step.CONFIRM:
            return Group(
                heading("Create pull request"), Text(""),
                Text.assemble(("Title: ", "bold"), self.title_field.value),
                Text.assemble(("Base:  ", "bold"), self.config.defaults.base_branch),
                Text.assemble(("Head:  ", "bold"), self.branch),
                Text(""),
                render_choice(self.confirm),
            )
        if s is Step.CREATING:
            return spinner("Pushing branch and creating pull request…")
        if s is Step.DONE:
            url = self.pr_url or ""
            label = "Pull request already exists: " if self.pr_existed else "Pull request created: "
            return Group(
                success_panel(Text.assemble(label, (url, f"link {url} bright_cyan"))),
                Text(""),
                render_choice(self.done_choice),
            )
        return error_panel(self.error)

    def hints(self):
        if self.step is Step.EDIT_BODY:
            return [("Tab", "Continue"), ("Esc", "Back")]
        if self.step is Step.EDIT_TITLE:
            return [("Enter", "Continue"), ("Esc", "Cancel")]
        if self.step is Step.DONE:
            return [("↑↓", "Navigate"), ("Enter", "Select")]
        return super().hints()
