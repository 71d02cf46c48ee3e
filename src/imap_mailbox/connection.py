"""Shared IMAP connection owning the single IMAPClient session.

The connection is the only place that knows which mailbox is selected.
Mailbox objects ask it through ``current_selection()`` and change it through
``reselect()``; they never cache the answer themselves, because another
Mailbox bound to the same connection can select something else in between.
"""

import logging
from typing import Any

from imapclient import IMAPClient  # type: ignore[import-untyped]
from imapclient.exceptions import IMAPClientError  # type: ignore[import-untyped]

from imap_mailbox.config import ConnectionConfig
from imap_mailbox.errors import (
    CapturedProtocolWarning,
    ConnectionOperationError,
    MailboxDeleteError,
    MailboxNotFoundError,
)
from imap_mailbox.mailbox import Mailbox
from imap_mailbox.types import MailboxInfo, ReselectResult, SelectionCheck

logger = logging.getLogger(__name__)


class Connection:
    """One authenticated IMAP session shared by any number of Mailbox objects.

    Not thread-safe: one thread of control drives a Connection at a time.
    Use one Connection per worker, or serialise access externally.

    Args:
        host: IMAP server hostname
        port: IMAP server port (default: 993 for SSL)
        username: IMAP username (usually email address)
        password: IMAP password (or app-specific password)
        ssl: Use SSL/TLS connection (default: True)
        timeout: Socket timeout in seconds (default: 10)

    Example:
        >>> conn = Connection("imap.example.com", username="me", password="secret")
        >>> inbox = conn.get_mailbox("INBOX")
        >>> for message in inbox.get_messages(SearchExpression().unseen()):
        ...     print(message.subject)
    """

    def __init__(
        self,
        host: str,
        port: int = 993,
        username: str = "",
        password: str = "",
        ssl: bool = True,
        timeout: int | float = 10,
    ):
        self._host = host
        self._port = port
        self._username = username
        self._ssl = ssl
        self._timeout = timeout

        # Name of the mailbox selected on the session, None when nothing is
        # known to be selected
        self._selected: str | None = None

        try:
            self._client = IMAPClient(host=host, port=port, ssl=ssl, timeout=timeout)
            self._client.login(username, password)
        except (IMAPClientError, OSError) as e:
            raise ConnectionOperationError(
                f"Failed to connect/login to {host}:{port} as {username!r}: {e}"
            ) from e

        # Mailbox names stay in wire format (modified UTF-7) end to end
        self._client.folder_encode = False
        logger.info("Connected to %s:%s as %s", host, port, username)

    @classmethod
    def from_config(cls, config: ConnectionConfig) -> "Connection":
        return cls(
            host=config.host,
            port=config.port,
            username=config.username,
            password=config.password,
            ssl=config.ssl,
            timeout=config.timeout,
        )

    # -----------------------
    # Selection state
    # -----------------------

    def current_selection(self) -> SelectionCheck:
        """Report the selected mailbox, checking that the session is alive.

        A NOOP round-trip stands in for CHECK. If it fails the selection is
        forgotten and ``ok`` is False.
        """
        if self._selected is None:
            return SelectionCheck(mailbox=None, ok=True)
        try:
            self._client.noop()
        except (IMAPClientError, OSError) as e:
            logger.debug("NOOP failed while %r was selected: %s", self._selected, e)
            self._selected = None
            return SelectionCheck(mailbox=None, ok=False)
        return SelectionCheck(mailbox=self._selected, ok=True)

    def reselect(self, name: str) -> ReselectResult:
        """SELECT *name*, reporting the completion code and any server notice.

        The warning carries the last untagged NO/BAD the server sent during
        SELECT. The new selection is only remembered when SELECT succeeded
        without a warning.
        """
        self._selected = None
        logger.debug("SELECT %r", name)
        try:
            select_info = self._client.select_folder(name)
        except (IMAPClientError, OSError) as e:
            logger.debug("SELECT %r failed: %s", name, e)
            return ReselectResult(ok=False)

        warning = _captured_warning(name, select_info)
        if warning is not None:
            logger.warning("SELECT %r completed with a server warning: %s", name, warning.notice)
            return ReselectResult(ok=True, warning=warning)

        self._selected = name
        return ReselectResult(ok=True)

    def raw_handle(self) -> IMAPClient:
        """The underlying IMAPClient, for commands that act on the selected mailbox."""
        return self._client

    # -----------------------
    # Mailboxes
    # -----------------------

    def get_mailboxes(self) -> list[Mailbox]:
        """LIST every mailbox on the server."""
        return [Mailbox(info, self) for info in self._list("*")]

    def get_mailbox(self, name: str) -> Mailbox:
        """Return the mailbox with wire-format *name*.

        Raises:
            MailboxNotFoundError: If LIST does not report it
        """
        for info in self._list(name):
            if info.name == name:
                return Mailbox(info, self)
        raise MailboxNotFoundError(name)

    def has_mailbox(self, name: str) -> bool:
        try:
            self.get_mailbox(name)
        except MailboxNotFoundError:
            return False
        return True

    def create_mailbox(self, name: str) -> Mailbox:
        """CREATE *name* and return its Mailbox."""
        try:
            self._client.create_folder(name)
        except IMAPClientError as e:
            raise ConnectionOperationError(f"Can not create mailbox '{name}': {e}") from e
        logger.info("Created mailbox %r", name)
        return self.get_mailbox(name)

    def delete_mailbox(self, mailbox: Mailbox) -> None:
        """DELETE *mailbox* on the server.

        Raises:
            MailboxDeleteError: If the server refuses
        """
        try:
            self._client.delete_folder(mailbox.path)
        except IMAPClientError as e:
            raise MailboxDeleteError(mailbox.path) from e
        finally:
            if self._selected == mailbox.path:
                self._selected = None
        logger.info("Deleted mailbox %r", mailbox.path)

    def _list(self, pattern: str) -> list[MailboxInfo]:
        try:
            folders_raw = self._client.list_folders(pattern=pattern)
        except IMAPClientError as e:
            raise ConnectionOperationError(f"LIST {pattern!r} failed: {e}") from e

        # folder_data is tuple: (flags, delimiter, name)
        return [MailboxInfo.from_list_response(*folder_data) for folder_data in folders_raw]

    # -----------------------
    # Lifecycle
    # -----------------------

    def close(self) -> None:
        """Log out and drop the session."""
        self._selected = None
        try:
            self._client.logout()
        except (IMAPClientError, OSError) as e:
            logger.warning("Error during logout from %s: %s", self._host, e)
        else:
            logger.info("Logged out from %s", self._host)

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Connection(host={self._host!r}, port={self._port}, username={self._username!r})"


def _captured_warning(name: str, select_info: Any) -> CapturedProtocolWarning | None:
    if not isinstance(select_info, dict):
        return None
    notices = list(select_info.get(b"BAD", ())) + list(select_info.get(b"NO", ()))
    if not notices:
        return None
    notice = notices[-1]
    if isinstance(notice, bytes):
        notice = notice.decode("utf-8", errors="replace")
    return CapturedProtocolWarning(name, str(notice))
