"""Branch-name helpers: slugs, ticket ids and ticket ordering."""

from __future__ import annotations

import re
import unicodedata
from typing import Iterable, TypeVar

DEFAULT_BRANCH_FORMAT = "{ticketId}/{slug}"

TICKET_ID_RE = re.compile(r"^([A-Z][A-Z0-9]*-\d+)")
_TICKET_PREFIX_RE = re.compile(r"^[A-Z][A-Z0-9]*-\d+[/-]")
_TICKET_KEY_RE = re.compile(r"^([A-Z][A-Z0-9]*)-(\d+)$")

# Conventional prefixes stripped before a branch name becomes a ticket title
_BRANCH_KIND_RE = re.compile(r"^(feature|bugfix|fix|hotfix|release|chore)/")
_LEADING_TICKET_RE = re.compile(r"^[A-Z]+-\d+[/-]?")

T = TypeVar("T")


def slugify(text: str, max_length: int = 50) -> str:
    """Return a lower-case ``[a-z0-9-]`` slug of *text*, at most *max_length* long."""
    text = unicodedata.normalize("NFD", text.lower())
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = re.sub(r"[\s_]+", "-", text)
    text = re.sub(r"[^a-z0-9-]", "", text)
    text = re.sub(r"-+", "-", text).strip("-")
    return text[:max_length].rstrip("-")


def generate_branch_name(
    ticket_id: str,
    title: str,
    max_slug_length: int = 50,
    branch_format: str = DEFAULT_BRANCH_FORMAT,
) -> str:
    slug = slugify(title, max_slug_length)
    return branch_format.replace("{ticketId}", ticket_id).replace("{slug}", slug)


def extract_ticket_id(branch_name: str | None) -> str | None:
    """Return the ``PROJ-123`` prefix of *branch_name*, or None."""
    if not branch_name:
        return None
    m = TICKET_ID_RE.match(branch_name)
    return m.group(1) if m else None


def extract_branch_description(branch_name: str) -> str | None:
    """Return what follows a ``PROJ-123/`` or ``PROJ-123-`` prefix.

    Branches without a ticket prefix are returned whole; a branch that is
    nothing but the prefix yields None.
    """
    stripped = _TICKET_PREFIX_RE.sub("", branch_name, count=1)
    if stripped == branch_name:
        return branch_name or None
    return stripped or None


def _ticket_sort_key(key: str) -> tuple[str, int]:
    m = _TICKET_KEY_RE.match(key)
    if m:
        return m.group(1), int(m.group(2))
    return key, 0


def sort_tickets_by_key(tickets: Iterable[T]) -> list[T]:
    """Sort by project alphabetically, then by ticket number, highest first."""
    def sort_key(ticket) -> tuple[str, int]:
        project, number = _ticket_sort_key(ticket.key)
        return project, -number

    return sorted(tickets, key=sort_key)


def branch_name_to_title(branch_name: str) -> str:
    """Suggest a ticket title from a branch name.

    ``feature/PROJ-9-oauth-refresh`` -> ``Oauth Refresh``
    """
    name = _BRANCH_KIND_RE.sub("", branch_name, count=1)
    name = _LEADING_TICKET_RE.sub("", name, count=1)
    name = re.sub(r"[-_]", " ", name)
    title = " ".join(word[:1].upper() + word[1:] for word in name.split(" "))
    return title.strip() or branch_name
