"""Tests for the link-branch flow."""

import pytest

from jh_cli.flows import ViewName
from jh_cli.flows.link_branch import Step, linked_branch_name
from tests.fakes import open_view, press, resync, ticket

LOGIN = ticket("PROJ-7", "Add login page")


class TestLinkedBranchName:
    def test_keeps_description(self):
        assert linked_branch_name(LOGIN, "my-feature") == "PROJ-7/my-feature"

    def test_replaces_other_ticket_prefix(self):
        assert linked_branch_name(LOGIN, "OPS-2/my-feature") == "PROJ-7/my-feature"

    def test_generates_when_nothing_to_keep(self):
        assert linked_branch_name(LOGIN, "") == "PROJ-7/add-login-page"

    def test_generated_name_honours_settings(self):
        assert linked_branch_name(LOGIN, "PROJ-7/", 5, "feature/{ticketId}-{slug}") == "feature/PROJ-7-add-l"

    def test_kept_description_uses_format(self):
        assert linked_branch_name(LOGIN, "my-feature", 5, "feature/{ticketId}-{slug}") == "feature/PROJ-7-my-feature"


@pytest.fixture
async def flow(router, scheduler, git, jira):
    jira.add(LOGIN, ticket("PROJ-3", "Fix crash", "In Progress"))
    git.switch_to("my-feature")
    resync(router)
    return await open_view(router, scheduler, ViewName.LINK_BRANCH)


class TestLinkBranch:
    async def test_rename(self, router, flow, git):
        await press(router, "enter")

        assert flow.step is Step.CONFIRM_RENAME
        assert flow.new_name == "PROJ-7/my-feature"

        await press(router, "enter")

        assert flow.step is Step.DONE
        assert git.renamed == [("my-feature", "PROJ-7/my-feature")]
        assert router.context.linked_ticket_id == "PROJ-7"

    async def test_keep_name(self, router, flow, git):
        await press(router, "enter", "down", "enter")

        assert flow.step is Step.DONE
        assert git.renamed == []
        assert flow.renamed is False

    async def test_rename_failure(self, router, flow, git):
        git.fail_rename = True

        await press(router, "enter", "enter")

        assert flow.step is Step.ERROR
        assert "already exists" in flow.error

    async def test_back(self, router, flow, git):
        await press(router, "enter", "up", "enter")

        assert flow.step is Step.SELECT_TICKET
        assert git.renamed == []

    async def test_uses_configured_format(self, router, scheduler, store, flow):
        config = store.load()
        config.defaults.branch_format = "{ticketId}-{slug}"
        store.save(config)
        reopened = await open_view(router, scheduler, ViewName.LINK_BRANCH)

        await press(router, "enter")

        assert reopened.new_name == "PROJ-7-my-feature"

    async def test_done_returns_home(self, router, flow):
        await press(router, "enter", "enter", "enter")

        assert router.view is ViewName.MAIN
