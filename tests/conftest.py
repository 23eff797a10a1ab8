"""Shared pytest fixtures for jh tests."""

from pathlib import Path

import pytest

from jh_cli.config import ConfigStore
from jh_cli.router import Router
from jh_cli.services import Services
from tests.fakes import FakeGit, FakeGitHub, FakeJira, Scheduler, sample_config

pytest_plugins = ("pytest_asyncio",)


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    return tmp_path / "jh-cli"


@pytest.fixture
def store(config_dir: Path) -> ConfigStore:
    """A store holding the acme workspace, mapped to acme/widgets, with a token."""
    s = ConfigStore(config_dir)
    s.initialize(sample_config())
    s.set_token("acme", "secret-token")
    return s


@pytest.fixture
def jira() -> FakeJira:
    return FakeJira()


@pytest.fixture
def git() -> FakeGit:
    return FakeGit()


@pytest.fixture
def github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def services(store, git, github, jira) -> Services:
    return Services(
        store=store, git=git, github=github,
        jira_factory=lambda domain, email, token: jira,
    )


@pytest.fixture
def scheduler():
    s = Scheduler()
    yield s
    s.close()


@pytest.fixture
def router(services, scheduler) -> Router:
    r = Router(services, schedule=scheduler)
    r.context = r.resolver.get_context()
    return r
