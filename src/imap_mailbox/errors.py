"""Exceptions raised by imap_mailbox.

Protocol-library errors are wrapped at the Connection boundary with
``raise ... from e`` so the original IMAPClient error stays reachable through
``__cause__``.
"""


class ImapMailboxError(Exception):
    """Base class for all imap_mailbox errors."""


class ConnectionOperationError(ImapMailboxError):
    """A connection-scoped command (login, LIST, CREATE, DELETE...) failed."""


class MailboxDeleteError(ConnectionOperationError):
    """The server refused to delete a mailbox."""

    def __init__(self, mailbox: str):
        self.mailbox = mailbox
        super().__init__(f"Mailbox '{mailbox}' could not be deleted")


class MailboxOpenError(ImapMailboxError):
    """Re-selecting a mailbox on the shared connection failed."""

    def __init__(self, mailbox: str):
        self.mailbox = mailbox
        super().__init__(f"Cannot open mailbox '{mailbox}'")


class CapturedProtocolWarning(ImapMailboxError):
    """Warning the server emitted while re-selecting a mailbox.

    Raised even when SELECT itself completed with OK: some servers (Gmail's
    ``[Gmail]`` node for one) answer OK and report the failure as an untagged
    NO at the same time.
    """

    def __init__(self, mailbox: str, notice: str):
        self.mailbox = mailbox
        self.notice = notice
        super().__init__(f"Server warning while selecting '{mailbox}': {notice}")


class StatusError(ImapMailboxError):
    """STATUS failed even though the mailbox was selected."""

    def __init__(self, mailbox: str):
        self.mailbox = mailbox
        super().__init__(f"Can not get mailbox status at '{mailbox}'")


class MailboxNotFoundError(ImapMailboxError):
    """No mailbox with the requested name exists on the server."""

    def __init__(self, mailbox: str):
        self.mailbox = mailbox
        super().__init__(f"Mailbox '{mailbox}' not found")


class MessageNotFoundError(ImapMailboxError):
    """A UID is absent from the FETCH response."""

    def __init__(self, uid: int):
        self.uid = uid
        super().__init__(f"Message {uid} not found")
