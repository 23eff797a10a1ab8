from __future__ import annotations

import logging

from .config import ConfigStore
from .errors import JhError
from .git import GitRepo
from .models import AppContext

logger = logging.getLogger(__name__)


class ContextResolver:
    """Build an :class:`AppContext` snapshot from git state and the config store.

    Never raises; every failed lookup leaves its field at the default.
    """

    def __init__(self, store: ConfigStore, git: GitRepo) -> None:
        self.store = store
        self.git = git

    def get_context(self) -> AppContext:
        try:
            is_repo = self.git.is_git_repo()
        except OSError:
            logger.debug("git repository check failed", exc_info=True)
            is_repo = False
        if not is_repo:
            return AppContext.build()

        branch = self._safe(self.git.get_current_branch, "current branch")
        repo = self._safe(self.git.get_repo_identifier, "repo identifier")

        workspace_name = workspace = None
        if repo:
            workspace_name = self._safe(lambda: self.store.resolve_workspace(repo), "workspace")
            if workspace_name:
                workspace = self._safe(
                    lambda: self.store.get_workspace_config(workspace_name), "workspace config"
                )

        commits_ahead = 0
        try:
            base = self.store.load().defaults.base_branch
            commits_ahead = self.git.get_commits_ahead(base)
        except (JhError, OSError):
            logger.debug("Could not count commits ahead", exc_info=True)

        return AppContext.build(
            is_git_repo=True,
            current_branch=branch,
            repo_identifier=repo,
            workspace_name=workspace_name,
            workspace=workspace,
            commits_ahead=commits_ahead,
        )

    @staticmethod
    def _safe(func, what: str):
        try:
            return func()
        except (JhError, OSError):
            logger.debug("Context lookup of %s failed", what, exc_info=True)
            return None
