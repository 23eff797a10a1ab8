"""Git helpers for jh, run as ``git`` subprocesses in one working directory."""

from __future__ import annotations

import logging
import re
import subprocess
from datetime import datetime
from pathlib import Path

from .errors import GitError
from .models import BranchInfo, Commit

logger = logging.getLogger(__name__)

_SSH_REMOTE_RE = re.compile(r"git@[^:]+:([^/]+)/([^.]+)")
_HTTPS_REMOTE_RE = re.compile(r"https?://[^/]+/([^/]+)/([^.]+)")

# Unit separator keeps commit subjects with tabs intact
_SEP = "\x1f"


def parse_remote_url(url: str) -> str | None:
    """Return ``owner/repo`` for an ssh or https remote URL, else None."""
    for pattern in (_SSH_REMOTE_RE, _HTTPS_REMOTE_RE):
        m = pattern.search(url)
        if m:
            return f"{m.group(1)}/{m.group(2)}"
    return None


class GitRepo:
    def __init__(self, cwd: str | Path | None = None) -> None:
        self.cwd = str(cwd) if cwd is not None else None

    def _run(self, *args: str) -> subprocess.CompletedProcess:
        return subprocess.run(
            ["git", *args], capture_output=True, text=True, cwd=self.cwd
        )

    def _check(self, *args: str) -> str:
        """Run git and return stdout, raising GitError with stderr on failure."""
        result = self._run(*args)
        if result.returncode != 0:
            message = result.stderr.strip() or f"git {args[0]} failed"
            raise GitError(message)
        return result.stdout

    # --- repository state ---

    def is_git_repo(self) -> bool:
        try:
            return self._run("rev-parse", "--git-dir").returncode == 0
        except FileNotFoundError:
            logger.debug("git executable not found")
            return False

    def get_current_branch(self) -> str | None:
        result = self._run("rev-parse", "--abbrev-ref", "HEAD")
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def get_repo_identifier(self) -> str | None:
        result = self._run("remote", "get-url", "origin")
        if result.returncode != 0:
            return None
        return parse_remote_url(result.stdout.strip())

    def has_upstream(self) -> bool:
        result = self._run("rev-parse", "--abbrev-ref", "--symbolic-full-name", "@{u}")
        return result.returncode == 0 and bool(result.stdout.strip())

    # --- branches ---

    def branch_exists(self, name: str) -> bool:
        result = self._run("show-ref", "--verify", "--quiet", f"refs/heads/{name}")
        return result.returncode == 0

    def create_branch(self, name: str, base: str | None = None, checkout: bool = True) -> None:
        """Create *name* from *base* (or HEAD), switching to it when *checkout* is set."""
        if checkout:
            cmd = ["checkout", "-b", name]
        else:
            cmd = ["branch", name]
        if base:
            cmd.append(base)
        self._check(*cmd)
        logger.info("Created branch %s from %s", name, base or "HEAD")

    def checkout_branch(self, name: str) -> None:
        self._check("checkout", name)
        logger.info("Checked out %s", name)

    def rename_branch(self, old: str, new: str) -> None:
        self._check("branch", "-m", old, new)
        logger.info("Renamed branch %s -> %s", old, new)

    def list_branches(self) -> list[BranchInfo]:
        out = self._check(
            "for-each-ref",
            f"--format=%(HEAD){_SEP}%(refname:short){_SEP}%(committerdate:iso-strict)",
            "refs/heads/",
        )
        branches: list[BranchInfo] = []
        for line in out.splitlines():
            parts = line.split(_SEP)
            if len(parts) < 2 or not parts[1]:
                continue
            head, name = parts[0], parts[1]
            raw_date = parts[2] if len(parts) > 2 else ""
            try:
                date = datetime.fromisoformat(raw_date) if raw_date else None
            except ValueError:
                date = None
            branches.append(BranchInfo(name=name, current=head == "*", last_commit_date=date))
        return branches

    # --- commits ---

    def get_commits_ahead(self, base: str) -> int:
        result = self._run("rev-list", "--count", f"{base}..HEAD")
        if result.returncode != 0:
            return 0
        try:
            return int(result.stdout.strip() or 0)
        except ValueError:
            return 0

    def get_commits_since(self, ref: str) -> list[Commit]:
        result = self._run(
            "log", f"--format=%h{_SEP}%s{_SEP}%an{_SEP}%ci", "--abbrev=7", f"{ref}..HEAD"
        )
        if result.returncode != 0:
            return []
        commits = []
        for line in result.stdout.splitlines():
            parts = line.split(_SEP)
            if len(parts) != 4:
                continue
            sha, message, author, date = parts
            commits.append(Commit(hash=sha[:7], message=message, author=author, date=date))
        return commits
