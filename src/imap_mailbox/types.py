"""Value types shared by Connection, Mailbox and Message."""

from dataclasses import dataclass
from enum import Enum, IntFlag
from typing import Any

from imap_mailbox.errors import CapturedProtocolWarning


class MailboxAttribute(IntFlag):
    """LIST attributes a mailbox descriptor carries, as a bitmask."""

    NOINFERIORS = 1
    NOSELECT = 2
    MARKED = 4
    UNMARKED = 8

    @classmethod
    def from_list_flags(cls, flags: Any) -> "MailboxAttribute":
        """Build the bitmask from LIST flags such as ``\\Noselect``.

        Flags are compared case-insensitively; anything unknown
        (``\\HasChildren``, ``\\Sent``...) is ignored.
        """
        mask = cls(0)
        for flag in flags or ():
            flag_str = flag.decode("ascii", errors="replace") if isinstance(flag, bytes) else str(flag)
            member = _LIST_FLAGS.get(flag_str.lower())
            if member is not None:
                mask |= member
        return mask


_LIST_FLAGS = {
    "\\noinferiors": MailboxAttribute.NOINFERIORS,
    "\\noselect": MailboxAttribute.NOSELECT,
    "\\marked": MailboxAttribute.MARKED,
    "\\unmarked": MailboxAttribute.UNMARKED,
}


@dataclass(frozen=True)
class MailboxInfo:
    """Descriptor of one mailbox as reported by LIST.

    ``name`` is the wire-format name (modified UTF-7), exactly as the server
    sent it.
    """

    name: str
    attributes: MailboxAttribute = MailboxAttribute(0)
    delimiter: str | None = None

    @classmethod
    def from_list_response(cls, flags: Any, delimiter: Any, name: Any) -> "MailboxInfo":
        """Build a descriptor from one IMAPClient ``list_folders()`` row."""
        if isinstance(name, bytes):
            name = name.decode("ascii", errors="replace")
        if isinstance(delimiter, bytes):
            delimiter = delimiter.decode("ascii", errors="replace")
        return cls(
            name=str(name),
            attributes=MailboxAttribute.from_list_flags(flags),
            delimiter=delimiter or None,
        )

    @property
    def display_name(self) -> str:
        """Last hierarchy component of the name, or the whole name."""
        if not self.delimiter or self.delimiter not in self.name:
            return self.name
        return self.name.rsplit(self.delimiter, 1)[1]


@dataclass(frozen=True)
class SelectionCheck:
    """Answer to "which mailbox is selected right now?".

    ``ok`` is False when the connection could not be checked at all.
    """

    mailbox: str | None
    ok: bool


@dataclass(frozen=True)
class ReselectResult:
    """Outcome of a SELECT: the completion code plus any server notice."""

    ok: bool
    warning: CapturedProtocolWarning | None = None


@dataclass(frozen=True)
class EmailAddress:
    email: str
    name: str | None = None

    def __str__(self) -> str:
        if self.name:
            return f"{self.name} <{self.email}>"
        return self.email


class MessageFlag(Enum):
    """System flags defined by RFC 3501."""

    SEEN = "\\Seen"
    ANSWERED = "\\Answered"
    FLAGGED = "\\Flagged"
    DELETED = "\\Deleted"
    DRAFT = "\\Draft"
    RECENT = "\\Recent"

    @classmethod
    def from_imap(cls, value: str) -> "MessageFlag | None":
        for flag in cls:
            if flag.value.lower() == value.lower():
                return flag
        return None
