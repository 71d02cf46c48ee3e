"""Search expressions and sort keys for mailbox queries."""

from datetime import date, datetime
from enum import Enum


class SortKey(str, Enum):
    """SORT criteria from RFC 5256."""

    ARRIVAL = "ARRIVAL"
    CC = "CC"
    DATE = "DATE"
    FROM = "FROM"
    SIZE = "SIZE"
    SUBJECT = "SUBJECT"
    TO = "TO"


def _imap_date(value: date | str) -> str:
    if isinstance(value, str):
        value = datetime.strptime(value, "%Y-%m-%d").date()
    return value.strftime("%d-%b-%Y")


def _quote(s: str) -> str:
    """Quote a string literal for SEARCH, escaping backslashes and quotes."""
    s = s.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{s}"'


class SearchExpression:
    """Fluent builder for an IMAP SEARCH query.

    Conditions are ANDed together. ``str()`` compiles the expression; an empty
    expression compiles to ``ALL``.

    Example:
        >>> str(SearchExpression().unseen().from_("alice@example.com"))
        'UNSEEN FROM "alice@example.com"'
    """

    def __init__(self) -> None:
        self.parts: list[str] = []

    def _add(self, *tokens: str) -> "SearchExpression":
        self.parts.extend(tokens)
        return self

    # addresses and text
    def from_(self, s: str) -> "SearchExpression":
        return self._add("FROM", _quote(s))

    def to(self, s: str) -> "SearchExpression":
        return self._add("TO", _quote(s))

    def cc(self, s: str) -> "SearchExpression":
        return self._add("CC", _quote(s))

    def subject(self, s: str) -> "SearchExpression":
        return self._add("SUBJECT", _quote(s))

    def text(self, s: str) -> "SearchExpression":
        """Match in headers or body."""
        return self._add("TEXT", _quote(s))

    def body(self, s: str) -> "SearchExpression":
        return self._add("BODY", _quote(s))

    # dates
    def since(self, value: date | str) -> "SearchExpression":
        return self._add("SINCE", _imap_date(value))

    def before(self, value: date | str) -> "SearchExpression":
        return self._add("BEFORE", _imap_date(value))

    def on(self, value: date | str) -> "SearchExpression":
        return self._add("ON", _imap_date(value))

    # flags
    def seen(self) -> "SearchExpression":
        return self._add("SEEN")

    def unseen(self) -> "SearchExpression":
        return self._add("UNSEEN")

    def flagged(self) -> "SearchExpression":
        return self._add("FLAGGED")

    def unflagged(self) -> "SearchExpression":
        return self._add("UNFLAGGED")

    def deleted(self) -> "SearchExpression":
        return self._add("DELETED")

    def undeleted(self) -> "SearchExpression":
        return self._add("UNDELETED")

    def answered(self) -> "SearchExpression":
        return self._add("ANSWERED")

    def all(self) -> "SearchExpression":
        return self._add("ALL")

    def raw(self, *tokens: str) -> "SearchExpression":
        """Append raw tokens, e.g. ``raw("OR", 'FROM "a"', 'FROM "b"')``."""
        return self._add(*tokens)

    def __str__(self) -> str:
        return " ".join(self.parts) if self.parts else "ALL"

    def __repr__(self) -> str:
        return f"SearchExpression({str(self)!r})"
