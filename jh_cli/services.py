from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from .config import ConfigStore
from .errors import ConfigError
from .git import GitRepo
from .github import GitHubCli
from .jira_api import JiraClient
from .models import AppContext


@dataclass
class Services:
    """The collaborators every flow talks to, bundled so tests can swap them."""

    store: ConfigStore = field(default_factory=ConfigStore)
    git: GitRepo = field(default_factory=GitRepo)
    github: GitHubCli = field(default_factory=GitHubCli)
    jira_factory: Callable[[str, str, str], JiraClient] = JiraClient

    def jira_for(self, context: AppContext | None) -> JiraClient:
        """Jira client for the context's workspace; ConfigError when there is none."""
        if context is None or context.workspace is None or context.workspace_name is None:
            raise ConfigError("No Jira workspace configured for this repository.")
        token = self.store.get_token(context.workspace_name)
        if not token:
            raise ConfigError("Jira token not found. Please run setup again.")
        ws = context.workspace
        return self.jira_factory(ws.domain, ws.email, token)
