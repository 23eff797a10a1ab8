"""Tests for the flow widget state: fuzzy search, select lists, text fields and menus."""

import pytest

from jh_cli.flows.widgets import (
    BACK,
    ChoiceState,
    Key,
    SelectState,
    TextField,
    fuzzy_filter,
    fuzzy_rank,
    wrap,
)
from tests.fakes import typed


class TestFuzzy:
    @pytest.mark.parametrize(
        "query, text, rank",
        [
            ("login", "PROJ-7 Add login page", 0),
            ("LOGIN", "PROJ-7 Add login page", 0),
            ("", "anything", 0),
            ("alp", "PROJ-7 Add login page", 1),
            ("loign", "PROJ-7 Add login page", 2),
            ("zzz", "PROJ-7 Add login page", None),
        ],
    )
    def test_rank(self, query, text, rank):
        assert fuzzy_rank(query, text) == rank

    def test_filter_orders_by_rank_and_keeps_ties_stable(self):
        items = ["write docs", "paginate list", "apple pie", "plan release"]

        assert fuzzy_filter(items, "pl") == ["apple pie", "plan release", "paginate list"]

    def test_empty_query_returns_everything(self):
        assert fuzzy_filter(["b", "a"], "") == ["b", "a"]


def test_wrap():
    assert wrap(0, -1, 3) == 2
    assert wrap(2, 1, 3) == 0
    assert wrap(5, 1, 0) == 0


class TestSelectState:
    def test_cursor_wraps(self):
        s = SelectState(["a", "b", "c"])

        s.handle_key(Key("up"))
        assert s.selected == "c"
        s.handle_key(Key("down"))
        assert s.selected == "a"

    def test_empty_list(self):
        s = SelectState([])

        assert s.selected is None
        assert s.handle_key(Key("down")) is True

    def test_search_resets_cursor(self):
        s = SelectState(["PROJ-7 Add login page", "PROJ-3 Fix crash", "PROJ-2 Fix login"], searchable=True)
        s.handle_key(Key("down"))
        s.handle_key(Key("down"))

        for key in typed("fix"):
            s.handle_key(key)

        assert s.cursor == 0
        assert s.visible == ["PROJ-3 Fix crash", "PROJ-2 Fix login"]

    def test_backspace_widens_search(self):
        s = SelectState(["alpha", "beta"], searchable=True)
        for key in typed("alx"):
            s.handle_key(key)
        assert s.visible == []

        s.handle_key(Key("backspace"))

        assert s.query == "al"
        assert s.visible == ["alpha"]

    def test_typing_ignored_when_not_searchable(self):
        s = SelectState(["a", "b"])

        assert s.handle_key(Key("x", "x")) is False
        assert s.query == ""

    def test_set_items_keeps_cursor_in_range(self):
        s = SelectState(["a", "b", "c"], index=2)

        s.set_items(["a"])

        assert s.selected == "a"

    def test_initial_index(self):
        assert SelectState(["a", "b"], index=1).selected == "b"
        assert SelectState(["a", "b"], index=5).selected == "a"


class TestTextField:
    def test_single_line_submits_on_enter(self):
        f = TextField()
        for key in typed("hi there"):
            assert f.handle_key(key) is False

        assert f.handle_key(Key("enter")) is True
        assert f.value == "hi there"

    def test_multiline_enter_adds_newline_and_tab_submits(self):
        f = TextField("one", multiline=True)

        assert f.handle_key(Key("enter")) is False
        f.handle_key(Key("t", "t"))
        assert f.handle_key(Key("tab")) is True
        assert f.value == "one\nt"

    def test_backspace(self):
        f = TextField("abc")

        f.handle_key(Key("backspace"))

        assert f.value == "ab"

    def test_mask(self):
        f = TextField("secret", mask=True)

        assert f.display == "******"
        assert f.value == "secret"

    def test_control_keys_are_not_text(self):
        f = TextField()

        f.handle_key(Key("ctrl+a", "\x01"))
        f.handle_key(Key("left"))

        assert f.value == ""


class TestChoiceState:
    def test_navigation_and_back(self):
        c = ChoiceState(["Create", "Create only", BACK])

        assert c.selected == "Create"
        assert c.is_back is False
        c.handle_key(Key("up"))
        assert c.selected == BACK
        assert c.is_back is True

    def test_cancel_counts_as_back(self):
        assert ChoiceState(["Cancel"]).is_back is True

    def test_other_keys_not_consumed(self):
        assert ChoiceState(["a"]).handle_key(Key("enter")) is False
