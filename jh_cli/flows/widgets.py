"""Widget state shared by the flows: lists, text fields and confirm menus.

These hold no rendering; :mod:`jh_cli.flows.render` turns them into Rich
renderables and the flows feed them :class:`Key` presses.
"""

from __future__ import annotations

import difflib
from typing import Callable, Generic, Iterable, NamedTuple, TypeVar

T = TypeVar("T")

BACK = "Back"


class Key(NamedTuple):
    """A key press: Textual's key *name* plus the printable *char*, if any."""

    name: str
    char: str | None = None

    @property
    def printable(self) -> bool:
        return self.char is not None and len(self.char) == 1 and self.char.isprintable()


def wrap(index: int, delta: int, size: int) -> int:
    if size <= 0:
        return 0
    return (index + delta) % size


# --- fuzzy matching ---

FUZZY_CUTOFF = 0.75


def _is_subsequence(query: str, text: str) -> bool:
    it = iter(text)
    return all(ch in it for ch in query)


def fuzzy_rank(query: str, text: str) -> int | None:
    """0 for a substring hit, 1 for a subsequence, 2 for a close typo; None = no match."""
    q = query.lower().strip()
    t = text.lower()
    if not q or q in t:
        return 0
    if _is_subsequence(q, t):
        return 1
    words = t.split()
    if any(
        difflib.SequenceMatcher(None, q, w).ratio() >= FUZZY_CUTOFF
        for w in words
    ):
        return 2
    return None


def fuzzy_filter(items: Iterable[T], query: str, label: Callable[[T], str] = str) -> list[T]:
    items = list(items)
    if not query:
        return items
    ranked = [(fuzzy_rank(query, label(item)), item) for item in items]
    # sorted() is stable, so equally good matches keep their original order
    return [item for rank, item in sorted(
        (r for r in ranked if r[0] is not None), key=lambda r: r[0]
    )]


# --- widgets ---


class SelectState(Generic[T]):
    """Single-select list with a wrapping cursor and optional type-to-search."""

    def __init__(
        self,
        items: Iterable[T] = (),
        label: Callable[[T], str] = str,
        searchable: bool = False,
        index: int = 0,
    ) -> None:
        self.label = label
        self.searchable = searchable
        self.query = ""
        self.items: list[T] = list(items)
        self.visible: list[T] = list(self.items)
        self.cursor = index if 0 <= index < len(self.visible) else 0

    def set_items(self, items: Iterable[T]) -> None:
        self.items = list(items)
        self._refilter()

    def _refilter(self) -> None:
        self.visible = fuzzy_filter(self.items, self.query, self.label)
        if self.query or self.cursor >= len(self.visible):
            self.cursor = 0

    @property
    def selected(self) -> T | None:
        if not self.visible:
            return None
        return self.visible[self.cursor]

    def handle_key(self, key: Key) -> bool:
        """Apply navigation or search editing; True when the key was consumed."""
        if key.name == "up":
            self.cursor = wrap(self.cursor, -1, len(self.visible))
        elif key.name == "down":
            self.cursor = wrap(self.cursor, 1, len(self.visible))
        elif self.searchable and key.name == "backspace":
            if not self.query:
                return True
            self.query = self.query[:-1]
            self._refilter()
        elif self.searchable and key.printable:
            self.query += key.char
            self._refilter()
        else:
            return False
        return True


class TextField:
    """Free text input. Enter submits a single-line field; tab submits a multiline one."""

    def __init__(
        self,
        value: str = "",
        multiline: bool = False,
        mask: bool = False,
        placeholder: str = "",
    ) -> None:
        self.value = value
        self.multiline = multiline
        self.mask = mask
        self.placeholder = placeholder

    @property
    def display(self) -> str:
        return "*" * len(self.value) if self.mask else self.value

    def handle_key(self, key: Key) -> bool:
        """Edit the value; return True when the field is submitted."""
        if key.name == "tab" and self.multiline:
            return True
        if key.name == "enter":
            if not self.multiline:
                return True
            self.value += "\n"
        elif key.name == "backspace":
            self.value = self.value[:-1]
        elif key.printable:
            self.value += key.char
        return False


class ChoiceState:
    """Confirm menu; by convention option 0 commits the most and ``Back`` is last."""

    def __init__(self, options: list[str]) -> None:
        self.options = options
        self.cursor = 0

    @property
    def selected(self) -> str:
        return self.options[self.cursor]

    @property
    def is_back(self) -> bool:
        return self.selected in (BACK, "Cancel")

    def handle_key(self, key: Key) -> bool:
        if key.name == "up":
            self.cursor = wrap(self.cursor, -1, len(self.options))
        elif key.name == "down":
            self.cursor = wrap(self.cursor, 1, len(self.options))
        else:
            return False
        return True
