"""Tests for the setup wizard."""

import pytest

from jh_cli.config import ConfigStore
from jh_cli.flows import ViewName
from jh_cli.flows.setup import Step, merge_config, normalize_domain, workspace_name_for
from jh_cli.models import Workspace
from tests.fakes import WORKSPACE, open_view, press, sample_config, typed

OTHER = Workspace("other.atlassian.net", "me@other.io", "OPS")


@pytest.mark.parametrize(
    "value, expected",
    [
        ("acme.atlassian.net", "acme.atlassian.net"),
        ("https://acme.atlassian.net/", "acme.atlassian.net"),
        ("  http://acme.atlassian.net  ", "acme.atlassian.net"),
    ],
)
def test_normalize_domain(value, expected):
    assert normalize_domain(value) == expected


def test_workspace_name_for():
    assert workspace_name_for("acme.atlassian.net") == "acme"


class TestMergeConfig:
    def test_new_config(self):
        config = merge_config(None, "acme", WORKSPACE, "acme/widgets")

        assert config.workspaces == {"acme": WORKSPACE}
        assert config.mappings == {"acme/widgets": "acme"}

    def test_keeps_existing_workspaces_and_defaults(self):
        existing = sample_config()
        existing.defaults.base_branch = "develop"

        config = merge_config(existing, "other", OTHER, "other/app")

        assert set(config.workspaces) == {"acme", "other"}
        assert config.mappings == {"acme/widgets": "acme", "other/app": "other"}
        assert config.defaults.base_branch == "develop"


@pytest.fixture
def store(config_dir):
    """No configuration yet."""
    return ConfigStore(config_dir)


@pytest.fixture
async def flow(router, scheduler):
    return await open_view(router, scheduler, ViewName.SETUP)


async def fill_credentials(router):
    await press(
        router,
        "enter",
        typed("https://acme.atlassian.net/"), "enter",
        typed("ada@acme.com"), "enter",
        typed("secret-token"), "enter",
    )


class TestSetupFlow:
    async def test_full_setup(self, router, flow, store):
        assert flow.step is Step.WELCOME

        await fill_credentials(router)

        assert flow.step is Step.PROJECTS
        assert flow.repo_identifier == "acme/widgets"

        await press(router, "enter")

        assert flow.step is Step.DONE
        config = store.load()
        assert config.workspaces == {"acme": WORKSPACE}
        assert config.mappings == {"acme/widgets": "acme"}
        assert store.get_token("acme") == "secret-token"

        await press(router, "enter")

        assert router.view is ViewName.MAIN
        assert router.context.workspace_name == "acme"

    async def test_token_is_masked(self, router, flow):
        await press(router, "enter", typed("acme.atlassian.net"), "enter", typed("a@b.co"), "enter", typed("abc"))

        assert flow.token.display == "***"

    async def test_project_search(self, router, flow, store):
        await fill_credentials(router)

        await press(router, typed("ops"), "enter")

        assert store.load().workspaces["acme"].default_project == "OPS"

    async def test_connection_failure(self, router, flow, jira, store):
        jira.connected = False

        await fill_credentials(router)

        assert flow.step is Step.ERROR
        assert flow.error == "Could not connect to Jira. Please check your credentials."
        assert store.exists() is False

        await press(router, "escape")

        assert flow.step is Step.DOMAIN
        assert flow.domain.value == "https://acme.atlassian.net/"

    async def test_empty_fields_do_not_advance(self, router, flow):
        await press(router, "enter", "enter")

        assert flow.step is Step.DOMAIN

    async def test_escape_walks_back(self, router, flow):
        await press(router, "enter", typed("acme.atlassian.net"), "enter", "escape", "escape")

        assert flow.step is Step.WELCOME

    async def test_escape_on_welcome_without_config_stays(self, router, flow):
        await press(router, "escape")

        assert router.view is ViewName.SETUP


class TestRerunSetup:
    @pytest.fixture
    def store(self, config_dir):
        s = ConfigStore(config_dir)
        existing = sample_config()
        existing.workspaces["other"] = OTHER
        s.initialize(existing)
        s.set_token("other", "other-token")
        return s

    async def test_escape_on_welcome_returns_home(self, router, flow):
        await press(router, "escape")

        assert router.view is ViewName.MAIN

    async def test_merges_into_existing_config(self, router, flow, store):
        await fill_credentials(router)
        await press(router, "enter")

        config = store.load()
        assert set(config.workspaces) == {"acme", "other"}
        assert store.get_token("other") == "other-token"
        assert store.get_token("acme") == "secret-token"
