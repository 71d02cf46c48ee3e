"""An IMAP mailbox (commonly referred to as a 'folder').

Every operation that depends on server-side mailbox context first makes sure
the shared connection has this mailbox selected, re-selecting it when
another Mailbox (or nothing) is selected. Operations then run against the
connection's raw IMAPClient handle.
"""

import logging
from datetime import datetime
from email.message import Message as PyMessage
from typing import TYPE_CHECKING, Any, Iterable, Iterator

from imapclient import imap_utf7  # type: ignore[import-untyped]
from imapclient.exceptions import IMAPClientError  # type: ignore[import-untyped]

from imap_mailbox.errors import ImapMailboxError, MailboxOpenError, StatusError
from imap_mailbox.message import Message, MessageIterator
from imap_mailbox.search import SearchExpression, SortKey
from imap_mailbox.types import MailboxAttribute, MailboxInfo

if TYPE_CHECKING:
    from imap_mailbox.connection import Connection

logger = logging.getLogger(__name__)

# Checked in this order, so get_attributes() output is deterministic
_ATTRIBUTE_NAMES = (
    (MailboxAttribute.NOINFERIORS, "noinferiors"),
    (MailboxAttribute.NOSELECT, "noselect"),
    (MailboxAttribute.MARKED, "marked"),
    (MailboxAttribute.UNMARKED, "unmarked"),
)


class Mailbox:
    """A mailbox on a shared Connection.

    Mailbox holds no resources of its own; the session lives in the
    Connection. After ``delete()`` the object is stale and must not be used.

    Args:
        info: Descriptor from LIST (usually via ``Connection.get_mailboxes()``)
        connection: The shared Connection
    """

    def __init__(self, info: MailboxInfo, connection: "Connection"):
        self._info = info
        self._connection = connection

        # Error captured during a single reselect, None outside of it
        self._last_error: ImapMailboxError | None = None

    @property
    def info(self) -> MailboxInfo:
        return self._info

    @property
    def connection(self) -> "Connection":
        return self._connection

    @property
    def path(self) -> str:
        """Wire-format name."""
        return self._info.name

    @property
    def name(self) -> str:
        """Display name: last hierarchy component, still modified UTF-7."""
        return self._info.display_name

    def get_path(self) -> str:
        return self.path

    def get_name(self) -> str:
        return self.name

    def get_decoded_name(self) -> str:
        """Display name decoded from modified UTF-7 (``Entw&APw-rfe`` -> ``Entwürfe``)."""
        return imap_utf7.decode(self.name.encode("ascii", errors="replace"))

    def get_attributes(self) -> list[str]:
        """LIST attributes as names, e.g. ``['noinferiors', 'marked']``."""
        mask = self._info.attributes
        return [label for flag, label in _ATTRIBUTE_NAMES if mask & flag == flag]

    def count(self) -> int:
        """Number of messages in this mailbox.

        Raises:
            StatusError: If STATUS fails
        """
        self._ensure_selected()

        try:
            status = self._client().folder_status(self.path, ["MESSAGES"])
        except IMAPClientError as e:
            raise StatusError(self.path) from e
        return int(status.get(b"MESSAGES", 0))

    def get_status(self) -> dict[str, int]:
        """Server STATUS fields, e.g. ``{'messages': 3, 'uidnext': 11, ...}``.

        NOSELECT mailboxes (namespace nodes such as Gmail's ``[Gmail]``) return
        ``{}`` without touching the server: selecting them is invalid.

        Raises:
            StatusError: If STATUS fails or returns nothing
        """
        if "noselect" in self.get_attributes():
            return {}

        self._ensure_selected()

        try:
            status_raw = self._client().folder_status(self.path)
        except IMAPClientError as e:
            raise StatusError(self.path) from e
        if not status_raw:
            raise StatusError(self.path)

        return {_status_key(key): value for key, value in status_raw.items()}

    def get_messages(self, search: SearchExpression | None = None) -> MessageIterator:
        """Messages matching *search* (all messages when omitted).

        Results are UIDs, so they stay valid when other messages are added or
        expunged. Order is whatever the server returned.
        """
        self._ensure_selected()

        query = str(search) if search is not None else "ALL"
        logger.debug("UID SEARCH %s in %r", query, self.path)
        # IMAPClient sends no CHARSET by default and encodes the query as ASCII
        if query.isascii():
            uids = self._client().search(query)
        else:
            uids = self._client().search(query, charset="UTF-8")

        # No match comes back empty, not as an error
        return MessageIterator(self, uids or [])

    def get_message_numbers(
        self,
        search: SearchExpression | None = None,
        sort: SortKey | str = SortKey.ARRIVAL,
        reverse: bool = False,
    ) -> list[int]:
        """UIDs matching *search*, ordered server-side by *sort* (UID SORT).

        Cheaper than ``get_messages()`` when only the ordering is needed.
        Requires the SORT capability.
        """
        self._ensure_selected()

        query = str(search) if search is not None else "ALL"
        sort_criteria = [SortKey(sort.upper()).value]
        if reverse:
            sort_criteria.insert(0, "REVERSE")

        logger.debug("UID SORT %s %s in %r", sort_criteria, query, self.path)
        return list(self._client().sort(sort_criteria, query) or [])

    def get_message(self, uid: int, lazy: bool = False) -> Message:
        """The message with *uid*; ``lazy`` defers fetching its fields."""
        self._ensure_selected()

        return Message(self, uid, lazy=lazy)

    def expunge(self) -> "Mailbox":
        """Permanently remove messages flagged \\Deleted. Returns self."""
        self._ensure_selected()

        self._client().expunge()
        return self

    def add_message(
        self,
        message: bytes | str | PyMessage,
        flags: Iterable[str] = (),
        msg_time: datetime | None = None,
    ) -> bool:
        """APPEND a raw RFC822 message to this mailbox.

        The message is not validated locally. Returns False when the server
        rejects it.
        """
        self._ensure_selected()

        if isinstance(message, PyMessage):
            message = message.as_bytes()

        try:
            self._client().append(self.path, message, tuple(flags), msg_time)
        except IMAPClientError as e:
            logger.warning("APPEND to %r rejected: %s", self.path, e)
            return False
        return True

    def delete(self) -> None:
        """Delete this mailbox on the server.

        Deletion is connection-scoped, so no selection happens first.

        Raises:
            MailboxDeleteError: If the server refuses
        """
        self._connection.delete_mailbox(self)

    def _client(self) -> Any:
        return self._connection.raw_handle()

    def _ensure_selected(self) -> None:
        """If the connection is not currently in this mailbox, switch it here.

        Raises:
            MailboxOpenError: If SELECT fails
            CapturedProtocolWarning: If the server sent a NO/BAD notice during
                SELECT, even though SELECT itself completed OK
        """
        check = self._connection.current_selection()
        if check.ok and check.mailbox == self.path:
            return

        logger.debug("Selecting %r (currently %r, ok=%s)", self.path, check.mailbox, check.ok)
        self._last_error = None
        try:
            result = self._connection.reselect(self.path)
            self._last_error = result.warning

            if not result.ok:
                raise MailboxOpenError(self.path)

            # Some servers answer OK and report the failure as a notice;
            # the notice wins
            if self._last_error is not None:
                raise self._last_error
        finally:
            self._last_error = None

    def __iter__(self) -> Iterator[Message]:
        return iter(self.get_messages())

    def __len__(self) -> int:
        return self.count()

    def __bool__(self) -> bool:
        # Truthiness must not cost a round-trip through __len__
        return True

    def __repr__(self) -> str:
        return f"Mailbox({self.path!r})"


def _status_key(key: bytes | str) -> str:
    if isinstance(key, bytes):
        key = key.decode("ascii", errors="replace")
    return key.lower()
