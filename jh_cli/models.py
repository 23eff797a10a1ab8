"""Plain data records shared by the services, the router and the flows."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from .slug import DEFAULT_BRANCH_FORMAT, extract_ticket_id


# --- configuration ---


@dataclass(frozen=True)
class Workspace:
    domain: str
    email: str
    default_project: str

    def to_dict(self) -> dict[str, str]:
        return {
            "domain": self.domain,
            "email": self.email,
            "default_project": self.default_project,
        }


@dataclass
class Defaults:
    branch_format: str = DEFAULT_BRANCH_FORMAT
    slug_max_length: int = 50
    default_issue_type: str = "Task"
    base_branch: str = "main"


@dataclass
class Config:
    version: int = 1
    defaults: Defaults = field(default_factory=Defaults)
    workspaces: dict[str, Workspace] = field(default_factory=dict)
    mappings: dict[str, str] = field(default_factory=dict)


# --- Jira ---


@dataclass(frozen=True)
class Ticket:
    key: str
    summary: str
    status: str
    issue_type: str
    description: str | None = None
    assignee: str | None = None
    sprint: str | None = None

    @property
    def is_epic(self) -> bool:
        return self.issue_type.lower() == "epic"

    @property
    def project(self) -> str:
        return self.key.split("-")[0]


@dataclass(frozen=True)
class Project:
    key: str
    name: str


@dataclass(frozen=True)
class IssueType:
    id: str
    name: str
    description: str | None = None


@dataclass(frozen=True)
class Sprint:
    id: int
    name: str
    state: str


@dataclass(frozen=True)
class JiraUser:
    account_id: str
    display_name: str
    email: str | None = None


@dataclass(frozen=True)
class Transition:
    id: str
    name: str
    to_status: str


# --- git / GitHub ---


@dataclass(frozen=True)
class BranchInfo:
    name: str
    current: bool
    last_commit_date: datetime | None = None


@dataclass(frozen=True)
class Commit:
    hash: str
    message: str
    author: str
    date: str


@dataclass(frozen=True)
class PRInfo:
    status: str | None  # merged / open / draft / closed
    author: str | None = None


@dataclass
class BranchWithTicket:
    branch: BranchInfo
    ticket_id: str | None
    ticket: Ticket | None = None
    pr_info: PRInfo | None = None


# --- context ---


@dataclass(frozen=True)
class AppContext:
    """Snapshot of where the user is: repo, branch, linked ticket and workspace.

    Build instances with :meth:`build` so ``linked_ticket_id`` always follows
    ``current_branch``.
    """

    is_git_repo: bool = False
    current_branch: str | None = None
    repo_identifier: str | None = None
    workspace_name: str | None = None
    workspace: Workspace | None = None
    linked_ticket_id: str | None = None
    commits_ahead: int = 0

    @classmethod
    def build(
        cls,
        *,
        is_git_repo: bool = False,
        current_branch: str | None = None,
        repo_identifier: str | None = None,
        workspace_name: str | None = None,
        workspace: Workspace | None = None,
        commits_ahead: int = 0,
    ) -> "AppContext":
        if workspace_name is None:
            workspace = None
        return cls(
            is_git_repo=is_git_repo,
            current_branch=current_branch,
            repo_identifier=repo_identifier,
            workspace_name=workspace_name,
            workspace=workspace,
            linked_ticket_id=extract_ticket_id(current_branch),
            commits_ahead=commits_ahead,
        )
