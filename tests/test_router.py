"""Tests for jh_cli.router.Router and jh_cli.services.Services."""

from unittest.mock import MagicMock

import pytest

from jh_cli.config import ConfigStore
from jh_cli.errors import ConfigError
from jh_cli.flows import Key, ViewName
from jh_cli.flows.main_menu import MainMenuFlow
from jh_cli.flows.setup import SetupFlow
from jh_cli.models import AppContext
from jh_cli.router import Router
from jh_cli.services import Services
from tests.fakes import WORKSPACE


class TestStart:
    async def test_configured_goes_to_main(self, router):
        await router.start()

        assert router.view is ViewName.MAIN
        assert isinstance(router.flow, MainMenuFlow)
        assert router.context.workspace_name == "acme"

    async def test_unconfigured_goes_to_setup(self, services, scheduler, config_dir):
        services.store = ConfigStore(config_dir)
        router = Router(services, schedule=scheduler)

        await router.start()

        assert router.view is ViewName.SETUP
        assert isinstance(router.flow, SetupFlow)

    async def test_forced_setup(self, router):
        await router.start(force_setup=True)

        assert router.view is ViewName.SETUP
        assert router.context is not None

    async def test_navigate_schedules_load(self, router, scheduler):
        router.navigate(ViewName.SETTINGS)

        assert router.view is ViewName.SETTINGS
        assert len(scheduler.pending) == 1


class TestDispatch:
    async def test_q_on_main_quits(self, services, scheduler):
        on_quit = MagicMock()
        router = Router(services, schedule=scheduler, on_quit=on_quit)
        await router.start()

        assert router.dispatch(Key("q", "q")) is None

        assert router.quit_requested is True
        on_quit.assert_called_once_with()

    async def test_q_elsewhere_goes_to_the_flow(self, router, scheduler):
        router.navigate(ViewName.START_WORK)
        await scheduler.drain()

        router.dispatch(Key("q", "q"))

        assert router.quit_requested is False
        assert router.flow.tickets.query == "q"

    def test_no_flow_yet(self, router):
        assert router.dispatch(Key("enter")) is None

    async def test_complete_setup(self, router):
        await router.complete_setup()

        assert router.view is ViewName.MAIN
        assert router.context.workspace == WORKSPACE


class TestJiraFor:
    def test_no_workspace(self, services):
        with pytest.raises(ConfigError, match="No Jira workspace configured"):
            services.jira_for(AppContext.build(is_git_repo=True))

    def test_no_context(self, services):
        with pytest.raises(ConfigError):
            services.jira_for(None)

    def test_missing_token(self, services):
        context = AppContext.build(workspace_name="ghost", workspace=WORKSPACE)

        with pytest.raises(ConfigError, match="Jira token not found"):
            services.jira_for(context)

    def test_builds_client_from_workspace(self, store, git, github):
        factory = MagicMock()
        services = Services(store=store, git=git, github=github, jira_factory=factory)

        services.jira_for(AppContext.build(workspace_name="acme", workspace=WORKSPACE))

        factory.assert_called_once_with("acme.atlassian.net", "ada@acme.com", "secret-token")
