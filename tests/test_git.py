"""Tests for jh_cli.git with subprocess.run patched out."""

import subprocess
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from jh_cli.errors import GitError
from jh_cli.git import GitRepo, parse_remote_url


def completed(stdout="", returncode=0, stderr=""):
    return subprocess.CompletedProcess(args=["git"], returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def run():
    with patch("jh_cli.git.subprocess.run") as mock_run:
        mock_run.return_value = completed()
        yield mock_run


def git_args(run) -> list[str]:
    return run.call_args.args[0][1:]


class TestParseRemoteUrl:
    @pytest.mark.parametrize(
        "url",
        [
            "git@github.com:acme/widgets.git",
            "git@github.com:acme/widgets",
            "https://github.com/acme/widgets.git",
            "https://github.com/acme/widgets",
        ],
    )
    def test_known_forms(self, url):
        assert parse_remote_url(url) == "acme/widgets"

    def test_unknown(self):
        assert parse_remote_url("/srv/git/widgets") is None


class TestRepositoryState:
    def test_is_git_repo(self, run):
        assert GitRepo().is_git_repo() is True

        run.return_value = completed(returncode=128, stderr="fatal: not a git repository")
        assert GitRepo().is_git_repo() is False

    def test_git_missing(self, run):
        run.side_effect = FileNotFoundError("git")

        assert GitRepo().is_git_repo() is False

    def test_current_branch(self, run):
        run.return_value = completed("PROJ-1/fix\n")

        assert GitRepo().get_current_branch() == "PROJ-1/fix"
        assert git_args(run) == ["rev-parse", "--abbrev-ref", "HEAD"]

    def test_repo_identifier(self, run):
        run.return_value = completed("git@github.com:acme/widgets.git\n")

        assert GitRepo().get_repo_identifier() == "acme/widgets"

    def test_repo_identifier_without_origin(self, run):
        run.return_value = completed(returncode=2, stderr="error: No such remote 'origin'")

        assert GitRepo().get_repo_identifier() is None

    def test_has_upstream(self, run):
        run.return_value = completed("origin/PROJ-1/fix\n")
        assert GitRepo().has_upstream() is True

        run.return_value = completed(returncode=128, stderr="fatal: no upstream configured")
        assert GitRepo().has_upstream() is False

    def test_runs_in_working_directory(self, run, tmp_path):
        GitRepo(tmp_path).get_current_branch()

        assert run.call_args.kwargs["cwd"] == str(tmp_path)


class TestBranches:
    def test_create_and_checkout(self, run):
        GitRepo().create_branch("PROJ-7/add-login-page", "main")

        assert git_args(run) == ["checkout", "-b", "PROJ-7/add-login-page", "main"]

    def test_create_only(self, run):
        GitRepo().create_branch("PROJ-7/add-login-page", "main", checkout=False)

        assert git_args(run) == ["branch", "PROJ-7/add-login-page", "main"]

    def test_create_failure_carries_stderr(self, run):
        run.return_value = completed(returncode=128, stderr="fatal: not a valid object name: 'main'\n")

        with pytest.raises(GitError, match="not a valid object name"):
            GitRepo().create_branch("x", "main")

    def test_branch_exists(self, run):
        assert GitRepo().branch_exists("main") is True
        assert git_args(run) == ["show-ref", "--verify", "--quiet", "refs/heads/main"]

        run.return_value = completed(returncode=1)
        assert GitRepo().branch_exists("nope") is False

    def test_rename(self, run):
        GitRepo().rename_branch("my-feature", "PROJ-7/my-feature")

        assert git_args(run) == ["branch", "-m", "my-feature", "PROJ-7/my-feature"]

    def test_checkout_failure(self, run):
        run.return_value = completed(returncode=1, stderr="error: pathspec 'x' did not match")

        with pytest.raises(GitError, match="pathspec"):
            GitRepo().checkout_branch("x")

    def test_list_branches(self, run):
        when = datetime(2026, 3, 1, 12, 0, tzinfo=timezone(timedelta(hours=1)))
        run.return_value = completed(
            f"*\x1fPROJ-1/fix\x1f{when.isoformat()}\n"
            " \x1fmain\x1f\n"
        )

        branches = GitRepo().list_branches()

        assert [(b.name, b.current) for b in branches] == [("PROJ-1/fix", True), ("main", False)]
        assert branches[0].last_commit_date == when
        assert branches[1].last_commit_date is None


class TestCommits:
    def test_commits_ahead(self, run):
        run.return_value = completed("4\n")

        assert GitRepo().get_commits_ahead("main") == 4
        assert git_args(run) == ["rev-list", "--count", "main..HEAD"]

    def test_commits_ahead_unknown_base(self, run):
        run.return_value = completed(returncode=128, stderr="fatal: bad revision")

        assert GitRepo().get_commits_ahead("develop") == 0

    def test_commits_since(self, run):
        run.return_value = completed(
            "abc1234\x1fAdd token refresh\x1fAda\x1f2026-03-01 12:00:00 +0000\n"
            "def5678\x1fFix\ttabs\x1fGrace\x1f2026-03-02 09:30:00 +0000\n"
        )

        commits = GitRepo().get_commits_since("main")

        assert [c.hash for c in commits] == ["abc1234", "def5678"]
        assert commits[1].message == "Fix\ttabs"
        assert commits[0].author == "Ada"
