from __future__ import annotations

import dataclasses
import enum

from rich.console import Group
from rich.table import Table
from rich.text import Text

from ..errors import ConfigError
from ..models import Config
from ..tasks import run_blocking
from ..tui.theme import COL_AMBER, COL_CYAN, COL_MUTED, COL_RED
from .base import Flow, ViewName
from .render import error_panel, heading, render_field, render_select, spinner, success_panel
from .widgets import Key, SelectState, TextField

VIEW_CONFIG = "View configuration"
MAP_REPOSITORY = "Map this repository to a workspace"
BRANCH_FORMAT = "Branch format"
BASE_BRANCH = "Base branch"
RERUN_SETUP = "Re-run setup"


class Step(enum.Enum):
    LOADING = "loading"
    MENU = "menu"
    VIEW_CONFIG = "view-config"
    SELECT_WORKSPACE = "select-workspace"
    EDIT_BRANCH_FORMAT = "edit-branch-format"
    EDIT_BASE_BRANCH = "edit-base-branch"
    SAVING = "saving"
    DONE = "done"
    ERROR = "error"


def validate_branch_format(value: str) -> str | None:
    """Return a problem with *value* as a branch format, or None."""
    if "{ticketId}" not in value:
        return "The format must contain {ticketId}."
    if any(ch.isspace() for ch in value):
        return "Branch names cannot contain spaces."
    return None


class SettingsFlow(Flow):
    Step = Step
    title = "Settings"

    def __init__(self, router) -> None:
        super().__init__(router)
        self.config = Config()
        self.menu: SelectState[str] = SelectState(
            [VIEW_CONFIG, MAP_REPOSITORY, BRANCH_FORMAT, BASE_BRANCH, RERUN_SETUP]
        )
        self.workspaces: SelectState[str] = SelectState()
        self.field = TextField()
        self.problem: str | None = None
        self.saved: str = ""

    async def load(self) -> None:
        try:
            self.config = await self.load_config()
        except Exception as e:
            self.fail(e)
            return
        self.step = Step.MENU

    def _on_menu(self, key: Key) -> None:
        if key.name == "escape":
            self.to_main()
            return
        if key.name != "enter":
            self.menu.handle_key(key)
            return
        choice = self.menu.selected
        self.problem = None
        if choice == VIEW_CONFIG:
            self.step = Step.VIEW_CONFIG
        elif choice == MAP_REPOSITORY:
            repo = self.context.repo_identifier if self.context else None
            if not repo:
                self.problem = "This directory has no origin remote to map."
                return
            self.workspaces = SelectState(sorted(self.config.workspaces))
            current = self.config.mappings.get(repo)
            if current in self.workspaces.items:
                self.workspaces.cursor = self.workspaces.items.index(current)
            self.step = Step.SELECT_WORKSPACE
        elif choice == BRANCH_FORMAT:
            self.field = TextField(self.config.defaults.branch_format)
            self.step = Step.EDIT_BRANCH_FORMAT
        elif choice == BASE_BRANCH:
            self.field = TextField(self.config.defaults.base_branch)
            self.step = Step.EDIT_BASE_BRANCH
        elif choice == RERUN_SETUP:
            self.router.navigate(ViewName.SETUP)

    def _on_view_config(self, key: Key) -> None:
        if key.name in ("enter", "escape"):
            self.step = Step.MENU

    def _on_select_workspace(self, key: Key):
        if key.name == "escape":
            self.step = Step.MENU
        elif key.name == "enter" and self.workspaces.selected:
            mappings = dict(self.config.mappings)
            mappings[self.context.repo_identifier] = self.workspaces.selected
            return self._begin_save(
                dataclasses.replace(self.config, mappings=mappings),
                f"Mapped {self.context.repo_identifier} to {self.workspaces.selected}",
            )
        else:
            self.workspaces.handle_key(key)
        return None

    def _on_edit_branch_format(self, key: Key):
        if key.name == "escape":
            self.step = Step.MENU
            return None
        if not self.field.handle_key(key):
            return None
        value = self.field.value.strip()
        self.problem = validate_branch_format(value)
        if self.problem:
            return None
        defaults = dataclasses.replace(self.config.defaults, branch_format=value)
        return self._begin_save(
            dataclasses.replace(self.config, defaults=defaults), f"Branch format set to {value}"
        )

    def _on_edit_base_branch(self, key: Key):
        if key.name == "escape":
            self.step = Step.MENU
            return None
        if not self.field.handle_key(key):
            return None
        value = self.field.value.strip()
        if not value:
            self.problem = "Base branch cannot be empty."
            return None
        defaults = dataclasses.replace(self.config.defaults, base_branch=value)
        return self._begin_save(
            dataclasses.replace(self.config, defaults=defaults), f"Base branch set to {value}"
        )

    def _begin_save(self, config: Config, message: str):
        self.step = Step.SAVING
        return self._save(config, message)

    async def _save(self, config: Config, message: str) -> None:
        try:
            await run_blocking(self.services.store.save, config)
        except (ConfigError, OSError) as e:
            self.fail(e)
            return
        self.config = config
        self.saved = message
        await self.router.refresh_context()
        self.step = Step.DONE

    # --- rendering ---

    def _config_view(self) -> Group:
        d = self.config.defaults
        grid = Table.grid(padding=(0, 2))
        grid.add_column(style="bold bright_black", no_wrap=True)
        grid.add_column()
        grid.add_row("Branch format", d.branch_format)
        grid.add_row("Slug max length", str(d.slug_max_length))
        grid.add_row("Default issue type", d.default_issue_type)
        grid.add_row("Base branch", d.base_branch)

        rows = [Text("Defaults", style=f"bold {COL_CYAN}"), grid, Text(""),
                Text("Jira workspaces", style=f"bold {COL_CYAN}")]
        for name, ws in sorted(self.config.workspaces.items()):
            rows.append(Text(f"  {name}", style=COL_AMBER))
            rows.append(Text(f"    Domain: {ws.domain}"))
            rows.append(Text(f"    Email: {ws.email}"))
            rows.append(Text(f"    Default project: {ws.default_project}"))
        rows += [Text(""), Text("Mappings", style=f"bold {COL_CYAN}")]
        if not self.config.mappings:
            rows.append(Text("  No mappings configured", style=COL_MUTED))
        for repo, ws_name in sorted(self.config.mappings.items()):
            rows.append(Text.assemble(f"  {repo}", (" → ", COL_MUTED), (ws_name, COL_AMBER)))
        return Group(*rows)

    def render(self):
        s = self.step
        problem = Text(self.problem or "", style=COL_RED)
        if s is Step.LOADING:
            return spinner("Loading configuration…")
        if s is Step.MENU:
            return Group(heading("Settings"), Text(""), render_select(self.menu), Text(""), problem)
        if s is Step.VIEW_CONFIG:
            return Group(heading("Configuration"), Text(""), self._config_view())
        if s is Step.SELECT_WORKSPACE:
            return Group(
                heading(f"Map {self.context.repo_identifier} to"), Text(""),
                render_select(self.workspaces, empty="No workspaces configured."),
            )
        if s is Step.EDIT_BRANCH_FORMAT:
            return Group(
                render_field("Branch format", self.field, "Placeholders: {ticketId} {slug}"), problem,
            )
        if s is Step.EDIT_BASE_BRANCH:
            return Group(render_field("Base branch", self.field), problem)
        if s is Step.SAVING:
            return spinner("Saving…")
        if s is Step.DONE:
            return success_panel(Text(self.saved))
        return error_panel(self.error)
