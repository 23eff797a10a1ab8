"""Exception hierarchy for jh.

- JhError: base for everything raised on purpose by this package
- ConfigError: config missing or failing validation
- JiraError (+ auth / permission / not-found): classified Jira API failures
- GitError: a git command failed
- PullRequestError: pushing or the gh CLI failed
"""

from __future__ import annotations


class JhError(Exception):
    """Base exception for jh failures."""


class ConfigError(JhError):
    """Raised when the config file is missing or invalid."""


class JiraError(JhError):
    """A Jira API call failed.

    Attributes:
        status_code: HTTP status of the failed response, when there was one
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class JiraAuthError(JiraError):
    pass


class JiraPermissionError(JiraError):
    pass


class JiraNotFoundError(JiraError):
    pass


class GitError(JhError):
    """A git command exited non-zero; the message is git's stderr."""


class PullRequestError(JhError):
    pass
