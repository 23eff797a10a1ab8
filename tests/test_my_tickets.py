"""Tests for the my-tickets flow: filters, detail pages, epic children and status edits."""

from unittest.mock import patch

import pytest
import requests

from jh_cli.flows import ViewName
from jh_cli.flows.my_tickets import (
    BACK_TO_LIST,
    START_WORKING,
    VIEW_CHILDREN,
    VIEW_IN_BROWSER,
    StatusEditor,
    Step,
    filter_tickets,
)
from jh_cli.flows.widgets import Key
from jh_cli.models import Transition
from tests.fakes import open_view, press, ticket

TICKETS = [
    ticket("PROJ-1", "Write docs", "To Do"),
    ticket("PROJ-2", "Add login page", "In Progress"),
    ticket("PROJ-3", "Ship it", "Done"),
    ticket("PROJ-4", "Auth epic", "In Progress", issue_type="Epic"),
    ticket("PROJ-5", "Old bug", "Closed"),
]

START = Transition("11", "Start Progress", "In Progress")
FINISH = Transition("31", "Done", "Done")


@pytest.fixture
async def flow(router, scheduler, jira, git):
    jira.add(*TICKETS)
    git.branches["PROJ-2/add-login-page"] = None
    return await open_view(router, scheduler, ViewName.MY_TICKETS)


def keys(tickets):
    return [t.key for t in tickets]


class TestFilterTickets:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("active", ["PROJ-4", "PROJ-2", "PROJ-1"]),
            ("todo", ["PROJ-1"]),
            ("in-progress", ["PROJ-4", "PROJ-2"]),
            ("done", ["PROJ-5", "PROJ-3"]),
            ("all", ["PROJ-5", "PROJ-4", "PROJ-3", "PROJ-2", "PROJ-1"]),
        ],
    )
    def test_filters(self, name, expected):
        assert keys(filter_tickets(TICKETS, name)) == expected


class TestStatusEditor:
    def test_right_and_left_wrap(self):
        editor = StatusEditor()
        editor.reset([START, FINISH])

        editor.right()
        assert editor.selected == START
        editor.right()
        assert editor.selected == FINISH
        editor.right()
        assert editor.selected == START
        editor.left()
        assert editor.selected == FINISH

    def test_left_from_idle_picks_last(self):
        editor = StatusEditor()
        editor.reset([START, FINISH])

        editor.left()

        assert editor.selected == FINISH

    def test_open_points_at_new_ticket(self):
        editor = StatusEditor()
        editor.reset([START])
        editor.right()

        editor.open("PROJ-9")

        assert editor.key == "PROJ-9"
        assert editor.transitions == []
        assert editor.editing is False

    def test_reset_cancels_editing(self):
        editor = StatusEditor()
        editor.reset([START])
        editor.right()

        editor.reset()

        assert editor.editing is False
        assert editor.transitions == [START]


class TestList:
    async def test_loads_active_by_default(self, flow):
        assert flow.step is Step.LIST
        assert keys(flow.list.visible) == ["PROJ-4", "PROJ-2", "PROJ-1"]
        assert flow.branch_ticket_ids == {"PROJ-2"}

    async def test_tab_cycles_filters(self, router, flow):
        await press(router, "tab")
        assert flow.filter == "todo"
        assert keys(flow.list.visible) == ["PROJ-1"]

        await press(router, "tab", "tab", "tab", "tab")
        assert flow.filter == "active"

    async def test_search(self, router, flow):
        await press(router, "l", "o", "g", "i", "n")

        assert keys(flow.list.visible) == ["PROJ-2"]

    async def test_escape_goes_home(self, router, flow):
        await press(router, "escape")

        assert router.view is ViewName.MAIN


class TestDetail:
    async def test_menu_for_plain_ticket(self, router, flow):
        await press(router, "down", "enter")

        assert flow.step is Step.DETAIL
        assert flow.ticket.key == "PROJ-2"
        assert flow.menu.options == [START_WORKING, VIEW_IN_BROWSER, BACK_TO_LIST]

    async def test_menu_for_epic(self, router, flow):
        await press(router, "enter")

        assert flow.menu.options == [START_WORKING, VIEW_CHILDREN, VIEW_IN_BROWSER, BACK_TO_LIST]

    async def test_start_working_checks_out_existing_branch(self, router, flow, git):
        await press(router, "down", "enter", "enter")

        assert git.checked_out == ["PROJ-2/add-login-page"]
        assert git.created == []
        assert router.view is ViewName.MAIN
        assert router.context.linked_ticket_id == "PROJ-2"

    async def test_start_working_creates_branch(self, router, flow, git):
        await press(router, "down", "down", "enter", "enter")

        assert git.created == [("PROJ-1/write-docs", "main", True)]
        assert router.view is ViewName.MAIN

    async def test_view_in_browser(self, router, flow):
        with patch("jh_cli.flows.my_tickets.webbrowser.open") as open_url:
            await press(router, "down", "enter", "down", "enter")

        open_url.assert_called_once_with("https://acme.atlassian.net/browse/PROJ-2")
        assert flow.step is Step.DETAIL

    async def test_back_to_list(self, router, flow):
        await press(router, "down", "enter", "up", "enter")

        assert flow.step is Step.LIST


class TestStatusChange:
    async def test_change_status_inline(self, router, flow, jira):
        jira.transitions["PROJ-1"] = [START, FINISH]
        await press(router, "down", "down", "enter")
        assert flow.status.transitions == [START, FINISH]

        await press(router, "right", "enter")

        assert jira.transitioned == [("PROJ-1", "11")]
        assert flow.ticket.status == "In Progress"
        assert flow.status.editing is False
        assert next(t for t in flow.tickets if t.key == "PROJ-1").status == "In Progress"

    async def test_escape_cancels_edit_before_leaving(self, router, flow, jira):
        jira.transitions["PROJ-1"] = [START]
        await press(router, "down", "down", "enter", "right", "escape")

        assert flow.step is Step.DETAIL
        assert flow.status.editing is False

        await press(router, "escape")

        assert flow.step is Step.LIST

    async def test_failed_change(self, router, flow, jira):
        jira.transitions["PROJ-1"] = [START]
        jira.fail_transition = True

        await press(router, "down", "down", "enter", "right", "enter")

        assert flow.step is Step.ERROR
        assert flow.error == "Transition failed"


    async def test_lookup_failure_after_change_keeps_page_usable(self, router, flow, jira, monkeypatch):
        jira.transitions["PROJ-1"] = [START]
        await press(router, "down", "down", "enter")

        def unreachable(key):
            raise requests.ConnectionError("network down")

        monkeypatch.setattr(jira, "get_available_transitions", unreachable)
        await press(router, "right", "enter")

        assert jira.transitioned == [("PROJ-1", "11")]
        assert flow.step is Step.DETAIL
        assert flow.ticket.status == "In Progress"
        assert flow.status.saving is False
        assert flow.status.transitions == []

        await press(router, "escape")

        assert flow.step is Step.LIST

    async def test_lookup_failure_on_open(self, router, flow, jira, monkeypatch):
        def unreachable(key):
            raise requests.ConnectionError("network down")

        monkeypatch.setattr(jira, "get_available_transitions", unreachable)
        await press(router, "down", "enter")

        assert flow.step is Step.DETAIL
        assert flow.status.transitions == []

    async def test_late_transitions_for_previous_ticket_are_dropped(self, router, flow, jira):
        jira.transitions["PROJ-2"] = [FINISH]
        jira.transitions["PROJ-1"] = [START]
        await press(router, "down")
        late = router.dispatch(Key("enter"))

        await press(router, "escape", "down", "enter")
        await late

        assert flow.ticket.key == "PROJ-1"
        assert flow.status.key == "PROJ-1"
        assert flow.status.transitions == [START]

        await press(router, "right", "enter")

        assert jira.transitioned == [("PROJ-1", "11")]


class TestChildren:
    async def test_epic_children(self, router, flow, jira):
        jira.children["PROJ-4"] = [ticket("PROJ-8", "Child A"), ticket("PROJ-9", "Child B")]

        await press(router, "enter", "down", "enter")

        assert flow.step is Step.CHILDREN
        assert keys(flow.children.items) == ["PROJ-9", "PROJ-8"]

        await press(router, "enter")

        assert flow.step is Step.CHILD_DETAIL
        assert flow.child.key == "PROJ-9"

        await press(router, "escape", "escape")

        assert flow.step is Step.DETAIL

    async def test_start_work_on_child(self, router, flow, jira, git):
        jira.children["PROJ-4"] = [ticket("PROJ-8", "Child A")]

        await press(router, "enter", "down", "enter", "enter", "enter")

        assert git.created == [("PROJ-8/child-a", "main", True)]
        assert router.view is ViewName.MAIN
