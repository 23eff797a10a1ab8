"""Tests for jh_cli.slug."""

import pytest

from jh_cli.slug import (
    branch_name_to_title,
    extract_branch_description,
    extract_ticket_id,
    generate_branch_name,
    slugify,
    sort_tickets_by_key,
)
from tests.fakes import ticket


class TestSlugify:
    def test_basic_title(self):
        assert slugify("Add login page") == "add-login-page"

    def test_strips_accents_and_punctuation(self):
        assert slugify("Café  déjà_vu!") == "cafe-deja-vu"

    def test_collapses_and_trims_hyphens(self):
        assert slugify("--Fix -- the   bug--") == "fix-the-bug"

    def test_truncates_without_trailing_hyphen(self):
        """A cut that lands right after a separator drops the separator."""
        assert slugify("aaaaaaaaaa bbb", max_length=11) == "aaaaaaaaaa"

    def test_only_symbols_gives_empty_slug(self):
        assert slugify("!!!") == ""


class TestGenerateBranchName:
    def test_default_format(self):
        assert generate_branch_name("PROJ-7", "Add login page") == "PROJ-7/add-login-page"

    def test_custom_format(self):
        name = generate_branch_name("PROJ-7", "Add login page", branch_format="feature/{ticketId}-{slug}")

        assert name == "feature/PROJ-7-add-login-page"

    def test_respects_slug_length(self):
        assert generate_branch_name("PROJ-7", "Add login page", max_slug_length=3) == "PROJ-7/add"


class TestExtractTicketId:
    @pytest.mark.parametrize(
        "branch, expected",
        [
            ("PROJ-123/fix-login", "PROJ-123"),
            ("AB2-9-something", "AB2-9"),
            ("feature/PROJ-1", None),
            ("main", None),
            ("proj-1/lowercase", None),
            ("", None),
            (None, None),
        ],
    )
    def test_extract(self, branch, expected):
        assert extract_ticket_id(branch) == expected


class TestExtractBranchDescription:
    def test_slash_prefix(self):
        assert extract_branch_description("PROJ-1/fix-bug") == "fix-bug"

    def test_hyphen_prefix(self):
        assert extract_branch_description("PROJ-1-fix-bug") == "fix-bug"

    def test_no_prefix_returns_whole_name(self):
        assert extract_branch_description("my-feature") == "my-feature"

    def test_prefix_only(self):
        assert extract_branch_description("PROJ-1/") is None


class TestSortTicketsByKey:
    def test_project_then_number_descending(self):
        tickets = [ticket("PROJ-9"), ticket("ABC-2"), ticket("PROJ-10"), ticket("ABC-11")]

        keys = [t.key for t in sort_tickets_by_key(tickets)]

        assert keys == ["ABC-11", "ABC-2", "PROJ-10", "PROJ-9"]


class TestBranchNameToTitle:
    def test_strips_kind_and_ticket_prefix(self):
        assert branch_name_to_title("feature/PROJ-9-oauth-refresh") == "Oauth Refresh"

    def test_underscores_and_hyphens(self):
        assert branch_name_to_title("fix_login-bug") == "Fix Login Bug"

    def test_plain_name(self):
        assert branch_name_to_title("bugfix/empty-cart") == "Empty Cart"
