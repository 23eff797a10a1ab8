from __future__ import annotations

import logging

import requests
from jira import JIRA, JIRAError

from .errors import JiraAuthError, JiraError, JiraNotFoundError, JiraPermissionError
from .models import IssueType, JiraUser, Project, Sprint, Ticket, Transition

logger = logging.getLogger(__name__)

# --- custom fields (Jira Cloud defaults) ---

SPRINT_FIELD = "customfield_10020"
START_DATE_FIELD = "customfield_10015"

_ISSUE_FIELDS = ["summary", "status", "issuetype", "assignee", SPRINT_FIELD]
OPEN_STATUSES = ["To Do", "In Progress", "Open", "Reopened"]

# --- Rich style dicts ---

STATUS_STYLES: dict[str, str] = {
    "to do":        "white",
    "open":         "white",
    "reopened":     "white",
    "in progress":  "bold blue",
    "in review":    "bold yellow",
    "done":         "bold green",
    "closed":       "bold green",
    "blocked":      "bold red",
}

PR_STATUS_STYLES: dict[str, str] = {
    "open":   "bold green",
    "draft":  "bold yellow",
    "merged": "bold blue",
    "closed": "bold red",
}


def status_style(status: str | None) -> str:
    return STATUS_STYLES.get((status or "").lower(), "white")


def issue_url(domain: str, key: str) -> str:
    return f"https://{domain}/browse/{key}"


# --- error classification ---


def _error_from_status(status: int | None, messages: list[str]) -> JiraError:
    if status == 401:
        return JiraAuthError("Jira authentication failed. Check your API token.", 401)
    if status == 403:
        return JiraPermissionError(
            "Access denied. You may not have permission for this action.", 403
        )
    if status == 404:
        return JiraNotFoundError("Resource not found.", 404)
    if messages:
        return JiraError(", ".join(messages), status)
    return JiraError("Failed to communicate with Jira API.", status)


def _response_messages(response) -> list[str]:
    if response is None:
        return []
    try:
        data = response.json()
    except ValueError:
        return []
    if not isinstance(data, dict):
        return []
    return [str(m) for m in data.get("errorMessages") or []]


def classify_error(exc: Exception) -> JiraError:
    """Turn a ``JIRAError`` / ``requests`` failure into a :class:`JiraError`."""
    if isinstance(exc, JiraError):
        return exc
    if isinstance(exc, JIRAError):
        return _error_from_status(exc.status_code, _response_messages(exc.response))
    if isinstance(exc, requests.HTTPError) and exc.response is not None:
        return _error_from_status(
            exc.response.status_code, _response_messages(exc.response)
        )
    return JiraError("Failed to communicate with Jira API.")


# --- field parsing ---


def _sprint_name(value) -> str | None:
    if not value:
        return None
    first = value[0] if isinstance(value, list) else value
    if isinstance(first, dict):
        return first.get("name")
    # Server instances return the legacy "...[name=Sprint 4,...]" string form
    text = str(first)
    if "name=" in text:
        return text.split("name=", 1)[1].split(",", 1)[0]
    return getattr(first, "name", None) or text


def ticket_from_raw(raw: dict) -> Ticket:
    fields = raw.get("fields") or {}
    description = fields.get("description")
    if isinstance(description, dict):
        description = adf_to_text(description)
    return Ticket(
        key=raw["key"],
        summary=fields.get("summary") or "",
        status=(fields.get("status") or {}).get("name") or "Unknown",
        issue_type=(fields.get("issuetype") or {}).get("name") or "Unknown",
        description=description or None,
        assignee=(fields.get("assignee") or {}).get("displayName"),
        sprint=_sprint_name(fields.get(SPRINT_FIELD)),
    )


def adf_to_text(adf: dict | None) -> str:
    """Flatten an Atlassian Document Format body to plain text, one line per block."""
    if not adf or not adf.get("content"):
        return ""

    def walk(node: dict) -> str:
        if node.get("type") == "text":
            return node.get("text") or ""
        return "".join(walk(child) for child in node.get("content") or [])

    return "\n".join(walk(block) for block in adf["content"])


def _quote(value: str) -> str:
    return '"' + value.replace('"', '\\"') + '"'


def build_jql(
    project: str | None = None,
    assignee: str | None = None,
    statuses: list[str] | None = None,
) -> str:
    parts: list[str] = []
    if project:
        parts.append(f"project = {_quote(project)}")
    if assignee == "currentUser":
        parts.append("assignee = currentUser()")
    elif assignee:
        parts.append(f"assignee = {_quote(assignee)}")
    if statuses:
        parts.append(f"status IN ({', '.join(_quote(s) for s in statuses)})")
    return " AND ".join(parts) + " ORDER BY updated DESC"


# --- client ---


class JiraClient:
    """Thin wrapper around :class:`jira.JIRA` returning jh's own records.

    Core REST calls go through the ``jira`` library; the agile endpoints
    (boards, sprints) go straight through ``requests``.
    """

    def __init__(self, domain: str, email: str, token: str, jira: JIRA | None = None) -> None:
        self.domain = domain
        self.server = f"https://{domain}"
        self._auth = (email, token)
        self.jira = jira or JIRA(
            server=self.server, basic_auth=self._auth, get_server_info=False
        )

    def issue_url(self, key: str) -> str:
        return issue_url(self.domain, key)

    def test_connection(self) -> bool:
        try:
            self.jira.myself()
        except (JIRAError, requests.RequestException):
            logger.debug("Jira connection test failed", exc_info=True)
            return False
        return True

    # --- issues ---

    def get_issue(self, key: str) -> Ticket | None:
        try:
            issue = self.jira.issue(key, fields=",".join(_ISSUE_FIELDS + ["description"]))
        except JIRAError as e:
            if e.status_code == 404:
                return None
            raise classify_error(e) from e
        return ticket_from_raw(issue.raw)

    def search_issues(
        self,
        project: str | None = None,
        assignee: str | None = None,
        statuses: list[str] | None = None,
        max_results: int = 50,
    ) -> list[Ticket]:
        jql = build_jql(project, assignee, statuses)
        try:
            issues = self.jira.search_issues(jql, maxResults=max_results, fields=_ISSUE_FIELDS)
        except JIRAError as e:
            raise classify_error(e) from e
        return [ticket_from_raw(issue.raw) for issue in issues]

    def get_my_issues(self, project: str | None = None) -> list[Ticket]:
        return self.search_issues(project=project, assignee="currentUser", statuses=OPEN_STATUSES)

    def get_child_issues(self, parent_key: str) -> list[Ticket]:
        jql = (
            f'"Parent" = {parent_key} OR "Epic Link" = {parent_key} '
            "ORDER BY status ASC, updated DESC"
        )
        try:
            issues = self.jira.search_issues(jql, maxResults=100, fields=_ISSUE_FIELDS)
        except JIRAError:
            # Instances without the Epic Link field reject the query
            logger.debug("Child issue lookup failed for %s", parent_key, exc_info=True)
            return []
        return [ticket_from_raw(issue.raw) for issue in issues]

    def create_issue(
        self,
        project: str,
        summary: str,
        issue_type: str,
        description: str | None = None,
        assignee_id: str | None = None,
        reporter_id: str | None = None,
        sprint_id: int | None = None,
        start_date: str | None = None,
        due_date: str | None = None,
    ) -> Ticket:
        fields: dict = {
            "project": {"key": project},
            "summary": summary,
            "issuetype": {"name": issue_type},
        }
        if description:
            fields["description"] = description
        if assignee_id:
            fields["assignee"] = {"accountId": assignee_id}
        if reporter_id:
            fields["reporter"] = {"accountId": reporter_id}
        if start_date:
            fields[START_DATE_FIELD] = start_date
        if due_date:
            fields["duedate"] = due_date
        try:
            issue = self.jira.create_issue(fields=fields)
        except JIRAError as e:
            raise classify_error(e) from e
        logger.info("Created %s in %s", issue.key, project)

        if sprint_id:
            try:
                self._agile_post(f"sprint/{sprint_id}/issue", {"issues": [issue.key]})
            except requests.RequestException:
                logger.debug("Could not add %s to sprint %s", issue.key, sprint_id, exc_info=True)

        created = self.get_issue(issue.key)
        if created is None:
            return Ticket(key=issue.key, summary=summary, status="To Do", issue_type=issue_type,
                          description=description)
        return created

    # --- users / projects ---

    def get_current_user(self) -> JiraUser:
        try:
            data = self.jira.myself()
        except JIRAError as e:
            raise classify_error(e) from e
        return JiraUser(
            account_id=data.get("accountId", ""),
            display_name=data.get("displayName", ""),
            email=data.get("emailAddress"),
        )

    def get_projects(self) -> list[Project]:
        try:
            projects = self.jira.projects()
        except JIRAError as e:
            raise classify_error(e) from e
        return [Project(key=p.key, name=p.name) for p in projects]

    def get_issue_types(self, project: str) -> list[IssueType]:
        try:
            raw = self.jira.project(project).raw
        except JIRAError as e:
            raise classify_error(e) from e
        return [
            IssueType(id=str(t.get("id")), name=t.get("name", ""), description=t.get("description"))
            for t in raw.get("issueTypes") or []
            if not t.get("subtask")
        ]

    # --- sprints (agile REST) ---

    def _agile_get(self, path: str, params: dict | None = None) -> dict:
        r = requests.get(
            f"{self.server}/rest/agile/1.0/{path}",
            params=params,
            auth=self._auth,
            headers={"Accept": "application/json"},
            timeout=15,
        )
        r.raise_for_status()
        return r.json()

    def _agile_post(self, path: str, body: dict) -> None:
        r = requests.post(
            f"{self.server}/rest/agile/1.0/{path}",
            json=body,
            auth=self._auth,
            headers={"Accept": "application/json"},
            timeout=15,
        )
        r.raise_for_status()

    def get_active_sprints(self, project: str) -> list[Sprint]:
        """Active and future sprints of the project's first board; ``[]`` on any failure."""
        try:
            boards = self._agile_get("board", {"projectKeyOrId": project}).get("values") or []
            if not boards:
                return []
            data = self._agile_get(f"board/{boards[0]['id']}/sprint", {"state": "active,future"})
        except (requests.RequestException, ValueError, KeyError):
            logger.debug("Sprint lookup failed for %s", project, exc_info=True)
            return []
        return [
            Sprint(id=int(s["id"]), name=s.get("name", ""), state=s.get("state", ""))
            for s in data.get("values") or []
        ]

    # --- transitions ---

    def get_available_transitions(self, key: str) -> list[Transition]:
        try:
            transitions = self.jira.transitions(key)
        except (JIRAError, requests.RequestException):
            logger.debug("Transition lookup failed for %s", key, exc_info=True)
            return []
        return [
            Transition(
                id=str(t["id"]),
                name=t["name"],
                to_status=(t.get("to") or {}).get("name") or t["name"],
            )
            for t in transitions
        ]

    def transition_issue(self, key: str, transition_name: str) -> None:
        """Move *key* through the transition called *transition_name*, if offered.

        Never raises: a missing transition or a failed call is logged and ignored.
        """
        try:
            for t in self.jira.transitions(key):
                if t["name"].lower() == transition_name.lower():
                    self.jira.transition_issue(key, t["id"])
                    logger.info("Transitioned %s via %s", key, t["name"])
                    return
        except JIRAError:
            logger.debug("Transition %r failed for %s", transition_name, key, exc_info=True)

    def transition_issue_by_id(self, key: str, transition_id: str) -> None:
        try:
            self.jira.transition_issue(key, transition_id)
        except JIRAError as e:
            raise classify_error(e) from e
        logger.info("Transitioned %s via transition %s", key, transition_id)
