"""First-run wizard: Jira credentials, a default project, and a mapping for this repo."""

from __future__ import annotations

import dataclasses
import enum

from rich.console import Group
from rich.text import Text

from ..config import ConfigStore
from ..errors import JiraAuthError
from ..models import Config, Project, Workspace
from ..tasks import run_blocking
from ..tui.theme import COL_MUTED
from .base import Flow
from .render import error_panel, heading, render_field, render_select, spinner, success_panel
from .widgets import Key, SelectState, TextField


class Step(enum.Enum):
    WELCOME = "welcome"
    DOMAIN = "domain"
    EMAIL = "email"
    TOKEN = "token"
    TESTING = "testing"
    PROJECTS = "projects"
    SAVING = "saving"
    DONE = "done"
    ERROR = "error"


def normalize_domain(value: str) -> str:
    """``https://acme.atlassian.net/`` -> ``acme.atlassian.net``."""
    domain = value.strip()
    for prefix in ("https://", "http://"):
        if domain.startswith(prefix):
            domain = domain[len(prefix):]
    return domain.rstrip("/")


def workspace_name_for(domain: str) -> str:
    return domain.split(".")[0]


def merge_config(existing: Config | None, name: str, workspace: Workspace, repo: str | None) -> Config:
    """Add *workspace* (and the repo mapping) to *existing*, or start a new config."""
    if existing is None:
        return ConfigStore.create_config(name, workspace, repo)
    workspaces = {**existing.workspaces, name: workspace}
    mappings = dict(existing.mappings)
    if repo:
        mappings[repo] = name
    return dataclasses.replace(existing, workspaces=workspaces, mappings=mappings)


class SetupFlow(Flow):
    Step = Step
    title = "Setup"

    def __init__(self, router) -> None:
        super().__init__(router)
        self.domain = TextField(placeholder="yourcompany.atlassian.net")
        self.email = TextField(placeholder="you@example.com")
        self.token = TextField(mask=True)
        self.projects: SelectState[Project] = SelectState(
            label=lambda p: f"{p.key} - {p.name}", searchable=True
        )
        self.repo_identifier: str | None = None
        self.workspace_name = ""

    # --- key handling ---

    def _on_welcome(self, key: Key) -> None:
        if key.name == "enter":
            self.step = Step.DOMAIN
        elif key.name == "escape" and self.services.store.exists():
            self.to_main()

    def _on_domain(self, key: Key) -> None:
        if key.name == "escape":
            self.step = Step.WELCOME
        elif self.domain.handle_key(key) and self.domain.value.strip():
            self.step = Step.EMAIL

    def _on_email(self, key: Key) -> None:
        if key.name == "escape":
            self.step = Step.DOMAIN
        elif self.email.handle_key(key) and self.email.value.strip():
            self.step = Step.TOKEN

    def _on_token(self, key: Key):
        if key.name == "escape":
            self.step = Step.EMAIL
        elif self.token.handle_key(key) and self.token.value.strip():
            self.step = Step.TESTING
            return self._test_connection()
        return None

    async def _test_connection(self) -> None:
        domain = normalize_domain(self.domain.value)
        try:
            client = self.services.jira_factory(domain, self.email.value.strip(), self.token.value.strip())
            if not await run_blocking(client.test_connection):
                raise JiraAuthError("Could not connect to Jira. Please check your credentials.")
            projects = await run_blocking(client.get_projects)
            self.repo_identifier = await run_blocking(self.services.git.get_repo_identifier)
        except Exception as e:
            self.fail(e)
            return
        self.projects.set_items(projects)
        self.step = Step.PROJECTS

    def _on_projects(self, key: Key):
        if key.name == "escape":
            self.step = Step.TOKEN
        elif key.name == "enter" and self.projects.selected is not None:
            self.step = Step.SAVING
            return self._save(self.projects.selected)
        else:
            self.projects.handle_key(key)
        return None

    async def _save(self, project: Project) -> None:
        store = self.services.store
        domain = normalize_domain(self.domain.value)
        self.workspace_name = workspace_name_for(domain)
        workspace = Workspace(domain=domain, email=self.email.value.strip(), default_project=project.key)
        try:
            existing = await run_blocking(store.load) if await run_blocking(store.exists) else None
            config = merge_config(existing, self.workspace_name, workspace, self.repo_identifier)
            await run_blocking(store.initialize, config)
            await run_blocking(store.set_token, self.workspace_name, self.token.value.strip())
        except Exception as e:
            self.fail(e)
            return
        self.step = Step.DONE

    def _on_done(self, key: Key):
        if key.name == "enter":
            return self.router.complete_setup()
        return None

    def _on_error(self, key: Key) -> None:
        if key.name in ("escape", "enter"):
            self.error = None
            self.step = Step.DOMAIN

    # --- rendering ---

    def render(self):
        s = self.step
        if s is Step.WELCOME:
            return Group(
                heading("Welcome to jh!"), Text(""),
                Text("Let's get you set up with Jira integration."), Text(""),
                Text("Press Enter to continue...", style=COL_MUTED),
            )
        if s is Step.DOMAIN:
            return render_field("Jira domain", self.domain)
        if s is Step.EMAIL:
            return render_field("Jira account email", self.email)
        if s is Step.TOKEN:
            return render_field(
                "API token", self.token,
                "Create one at https://id.atlassian.com/manage-profile/security/api-tokens",
            )
        if s is Step.TESTING:
            return spinner("Testing connection…")
        if s is Step.PROJECTS:
            return Group(heading("Select your default project"), Text(""), render_select(self.projects))
        if s is Step.SAVING:
            return spinner("Saving configuration…")
        if s is Step.DONE:
            lines = [Text(f"Workspace '{self.workspace_name}' saved.")]
            if self.repo_identifier:
                lines.append(Text(f"Mapped {self.repo_identifier} to {self.workspace_name}."))
            return Group(success_panel(*lines), Text("Press Enter to continue...", style=COL_MUTED))
        return Group(error_panel(self.error), Text("Press Esc to try again", style=COL_MUTED))

    def hints(self):
        if self.step is Step.ERROR:
            return [("Esc", "Try again")]
        if self.step in (Step.DOMAIN, Step.EMAIL, Step.TOKEN):
            return [("Enter", "Continue"), ("Esc", "Back")]
        return super().hints()
