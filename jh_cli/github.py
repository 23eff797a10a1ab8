"""Pull-request integration through the ``gh`` CLI, plus branch pushing."""

from __future__ import annotations

import json
import logging
import re
import shutil
import subprocess
from pathlib import Path

from .errors import PullRequestError
from .models import PRInfo

logger = logging.getLogger(__name__)

PUSH_TIMEOUT = 60
CREATE_TIMEOUT = 30
LIST_TIMEOUT = 10

_PR_URL_RE = re.compile(r"https://github\.com/\S+")
PR_EXISTS_MESSAGE = "A pull request already exists for this branch."


def _pr_status(item: dict) -> str | None:
    state = (item.get("state") or "").upper()
    if state == "MERGED":
        return "merged"
    if state == "CLOSED":
        return "closed"
    if item.get("isDraft"):
        return "draft"
    if state == "OPEN":
        return "open"
    return None


class GitHubCli:
    def __init__(self, cwd: str | Path | None = None) -> None:
        self.cwd = str(cwd) if cwd is not None else None

    def _run(self, cmd: list[str], timeout: int) -> subprocess.CompletedProcess:
        try:
            return subprocess.run(
                cmd, capture_output=True, text=True, cwd=self.cwd, timeout=timeout
            )
        except subprocess.TimeoutExpired as e:
            raise PullRequestError(f"'{' '.join(cmd[:3])}' timed out after {timeout}s") from e
        except FileNotFoundError as e:
            raise PullRequestError(f"'{cmd[0]}' is not installed") from e

    def list_prs_by_branch(self, branches: list[str] | None = None) -> dict[str, PRInfo]:
        """Map head branch name to PR status for the repository's recent PRs.

        Returns ``{}`` when ``gh`` is missing or fails.
        """
        if not shutil.which("gh"):
            return {}
        try:
            result = self._run(
                ["gh", "pr", "list", "--state", "all", "--limit", "100",
                 "--json", "headRefName,state,isDraft,author"],
                LIST_TIMEOUT,
            )
        except PullRequestError:
            logger.debug("gh pr list failed", exc_info=True)
            return {}
        if result.returncode != 0 or not result.stdout.strip():
            return {}
        try:
            items = json.loads(result.stdout)
        except json.JSONDecodeError:
            return {}
        wanted = set(branches) if branches is not None else None
        info: dict[str, PRInfo] = {}
        for item in items:
            head = item.get("headRefName", "")
            if wanted is not None and head not in wanted:
                continue
            info[head] = PRInfo(
                status=_pr_status(item),
                author=(item.get("author") or {}).get("login"),
            )
        return info

    def current_pr_url(self) -> str | None:
        if not shutil.which("gh"):
            return None
        try:
            result = self._run(["gh", "pr", "view", "--json", "url"], LIST_TIMEOUT)
        except PullRequestError:
            return None
        if result.returncode != 0:
            return None
        try:
            return json.loads(result.stdout).get("url")
        except (json.JSONDecodeError, AttributeError):
            return None

    def push_branch(self, branch: str) -> None:
        """``git push -u origin <branch>``, retrying without ``-u`` when tracking is already set."""
        result = self._run(["git", "push", "-u", "origin", branch], PUSH_TIMEOUT)
        if result.returncode == 0:
            logger.info("Pushed %s to origin", branch)
            return
        output = (result.stderr or "") + (result.stdout or "")
        if "already exists" in output or "set up to track" in output:
            retry = self._run(["git", "push", "origin", branch], PUSH_TIMEOUT)
            if retry.returncode != 0:
                raise PullRequestError(f"Failed to push branch: {retry.stderr.strip()}")
            logger.info("Pushed %s to origin", branch)
            return
        if "Everything up-to-date" in output:
            return
        raise PullRequestError(f"Failed to push branch: {output.strip()}")

    def create_pr(self, base: str, title: str, body: str) -> str:
        """Run ``gh pr create`` and return the new PR's URL."""
        result = self._run(
            ["gh", "pr", "create", "--base", base, "--title", title, "--body", body],
            CREATE_TIMEOUT,
        )
        if result.returncode != 0:
            message = result.stderr.strip() or result.stdout.strip()
            if "already exists" in message:
                raise PullRequestError(PR_EXISTS_MESSAGE)
            raise PullRequestError(message or "Failed to create PR")
        m = _PR_URL_RE.search(result.stdout)
        url = m.group(0) if m else result.stdout.strip()
        logger.info("Created pull request %s", url)
        return url
