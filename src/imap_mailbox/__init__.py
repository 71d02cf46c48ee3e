"""Mailbox-level access to an IMAP account over one shared IMAPClient session."""

from imap_mailbox.config import ConnectionConfig
from imap_mailbox.connection import Connection
from imap_mailbox.errors import (
    CapturedProtocolWarning,
    ConnectionOperationError,
    ImapMailboxError,
    MailboxDeleteError,
    MailboxNotFoundError,
    MailboxOpenError,
    MessageNotFoundError,
    StatusError,
)
from imap_mailbox.mailbox import Mailbox
from imap_mailbox.message import Message, MessageIterator
from imap_mailbox.search import SearchExpression, SortKey
from imap_mailbox.types import (
    EmailAddress,
    MailboxAttribute,
    MailboxInfo,
    MessageFlag,
    ReselectResult,
    SelectionCheck,
)

__version__ = "0.1.0"

__all__ = [
    "CapturedProtocolWarning",
    "Connection",
    "ConnectionConfig",
    "ConnectionOperationError",
    "EmailAddress",
    "ImapMailboxError",
    "Mailbox",
    "MailboxAttribute",
    "MailboxDeleteError",
    "MailboxInfo",
    "MailboxNotFoundError",
    "MailboxOpenError",
    "Message",
    "MessageFlag",
    "MessageIterator",
    "MessageNotFoundError",
    "ReselectResult",
    "SearchExpression",
    "SelectionCheck",
    "SortKey",
    "StatusError",
]
