"""Messages and the iterator that walks a list of UIDs.

A Message belongs to the Mailbox it was read from. Every FETCH or STORE it
issues goes through that Mailbox's selection guarantee first, so a lazy
message still loads from the right mailbox after others were selected.
"""

import logging
from collections.abc import Iterable, Iterator, Sequence
from datetime import datetime
from email.header import decode_header
from email.message import EmailMessage as PyEmailMessage
from email.parser import BytesParser
from email.policy import default as default_policy
from typing import TYPE_CHECKING, Any, overload

from imap_mailbox.errors import MessageNotFoundError
from imap_mailbox.types import EmailAddress, MessageFlag

if TYPE_CHECKING:
    from imap_mailbox.mailbox import Mailbox

logger = logging.getLogger(__name__)


class Message:
    """One message, addressed by UID.

    With ``lazy=False`` the metadata (ENVELOPE, FLAGS, RFC822.SIZE,
    INTERNALDATE) is fetched at construction. With ``lazy=True`` nothing is
    fetched until the first field is read. The full RFC822 source is always
    fetched on demand through ``raw``.

    Args:
        mailbox: Mailbox the message lives in
        uid: Message UID in *mailbox*
        lazy: Defer the metadata FETCH until first access (default: False)
    """

    FETCH_FIELDS = ["ENVELOPE", "FLAGS", "RFC822.SIZE", "INTERNALDATE"]

    def __init__(self, mailbox: "Mailbox", uid: int, lazy: bool = False):
        self._mailbox = mailbox
        self.uid = uid

        self._loaded = False
        self._raw: bytes | None = None

        self._subject = ""
        self._from: EmailAddress | None = None
        self._to: list[EmailAddress] = []
        self._cc: list[EmailAddress] = []
        self._date: datetime | None = None
        self._size = 0
        self._flags: set[MessageFlag] = set()
        self._custom_flags: set[str] = set()
        self._message_id: str | None = None
        self._in_reply_to: str | None = None

        if not lazy:
            self._ensure_loaded()

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def mailbox(self) -> "Mailbox":
        return self._mailbox

    def _client(self) -> Any:
        # UIDs are only meaningful inside their own mailbox
        self._mailbox._ensure_selected()
        return self._mailbox.connection.raw_handle()

    def _ensure_loaded(self) -> None:
        if self._loaded:
            return

        logger.debug("FETCH %s for UID %s", self.FETCH_FIELDS, self.uid)
        raw_data = self._client().fetch([self.uid], self.FETCH_FIELDS)
        if self.uid not in raw_data:
            raise MessageNotFoundError(self.uid)

        self._parse(raw_data[self.uid])
        self._loaded = True

    def _parse(self, raw: dict[bytes, Any]) -> None:
        """Fill the fields from an IMAPClient FETCH response dict."""
        envelope = raw.get(b"ENVELOPE")
        if envelope is not None:
            if envelope.from_:
                self._from = _parse_envelope_address(envelope.from_[0])
            self._to = [_parse_envelope_address(addr) for addr in envelope.to] if envelope.to else []
            self._cc = [_parse_envelope_address(addr) for addr in envelope.cc] if envelope.cc else []
            self._subject = _decode_mime_header(envelope.subject)
            self._message_id = envelope.message_id.decode() if envelope.message_id else None
            self._in_reply_to = envelope.in_reply_to.decode() if envelope.in_reply_to else None

        self._flags, self._custom_flags = _parse_flags(raw.get(b"FLAGS", ()))
        self._date = raw.get(b"INTERNALDATE")
        self._size = raw.get(b"RFC822.SIZE", 0)

    @property
    def subject(self) -> str:
        self._ensure_loaded()
        return self._subject

    @property
    def from_(self) -> EmailAddress | None:
        self._ensure_loaded()
        return self._from

    @property
    def to(self) -> list[EmailAddress]:
        self._ensure_loaded()
        return self._to

    @property
    def cc(self) -> list[EmailAddress]:
        self._ensure_loaded()
        return self._cc

    @property
    def date(self) -> datetime | None:
        """Server arrival time (INTERNALDATE)."""
        self._ensure_loaded()
        return self._date

    @property
    def size(self) -> int:
        self._ensure_loaded()
        return self._size

    @property
    def flags(self) -> set[MessageFlag]:
        self._ensure_loaded()
        return self._flags

    @property
    def custom_flags(self) -> set[str]:
        self._ensure_loaded()
        return self._custom_flags

    @property
    def message_id(self) -> str | None:
        self._ensure_loaded()
        return self._message_id

    @property
    def in_reply_to(self) -> str | None:
        self._ensure_loaded()
        return self._in_reply_to

    @property
    def raw(self) -> bytes:
        """Full RFC822 source, fetched once with BODY.PEEK[] (does not set \\Seen)."""
        if self._raw is None:
            raw_data = self._client().fetch([self.uid], ["BODY.PEEK[]"])
            if self.uid not in raw_data:
                raise MessageNotFoundError(self.uid)
            self._raw = raw_data[self.uid].get(b"BODY[]") or b""
        return self._raw

    def as_email(self) -> PyEmailMessage:
        """Parse ``raw`` into a stdlib EmailMessage."""
        return BytesParser(policy=default_policy).parsebytes(self.raw)  # type: ignore[return-value]

    def delete(self) -> None:
        """Flag the message \\Deleted; Mailbox.expunge() removes it for good."""
        self._client().add_flags([self.uid], [MessageFlag.DELETED.value])
        if self._loaded:
            self._flags.add(MessageFlag.DELETED)

    def undelete(self) -> None:
        self._client().remove_flags([self.uid], [MessageFlag.DELETED.value])
        if self._loaded:
            self._flags.discard(MessageFlag.DELETED)

    def __repr__(self) -> str:
        if not self._loaded:
            return f"Message(uid={self.uid}, lazy)"
        return f"Message(uid={self.uid}, subject={self._subject!r})"


class MessageIterator(Sequence):
    """Ordered, finite walk over a list of UIDs yielding Message objects.

    The UID list is a snapshot taken when the iterator was built. Messages
    expunged on the server afterwards are not detected until a Message for
    them tries to load (MessageNotFoundError).
    """

    def __init__(self, mailbox: "Mailbox", uids: Iterable[int], lazy: bool = True):
        self._mailbox = mailbox
        self._uids = list(uids)
        self._lazy = lazy

    @property
    def uids(self) -> list[int]:
        return list(self._uids)

    def __len__(self) -> int:
        return len(self._uids)

    @overload
    def __getitem__(self, index: int) -> Message: ...

    @overload
    def __getitem__(self, index: slice) -> "MessageIterator": ...

    def __getitem__(self, index: int | slice) -> "Message | MessageIterator":
        if isinstance(index, slice):
            return MessageIterator(self._mailbox, self._uids[index], lazy=self._lazy)
        return Message(self._mailbox, self._uids[index], lazy=self._lazy)

    def __iter__(self) -> Iterator[Message]:
        for uid in self._uids:
            yield Message(self._mailbox, uid, lazy=self._lazy)

    def __repr__(self) -> str:
        return f"MessageIterator({len(self._uids)} messages)"


def _decode_mime_header(header_bytes: bytes | None) -> str:
    """Decode MIME-encoded email header (RFC 2047).

    Handles encoded words like =?UTF-8?B?...?= (Base64) and =?UTF-8?Q?...?= (Quoted-printable).
    Gracefully handles malformed MIME headers by falling back to raw string.

    Example:
        >>> _decode_mime_header(b'=?UTF-8?B?SGVsbG8gV29ybGQ=?=')
        'Hello World'
    """
    if not header_bytes:
        return ""

    try:
        result_parts = []
        for content, charset in decode_header(header_bytes.decode("utf-8", errors="replace")):
            if isinstance(content, bytes):
                result_parts.append(content.decode(charset or "utf-8", errors="replace"))
            else:
                result_parts.append(content)
        return "".join(result_parts)
    except (LookupError, ValueError):
        # Malformed MIME headers or unknown charset
        return header_bytes.decode("utf-8", errors="replace")


def _parse_envelope_address(addr: Any) -> EmailAddress:
    # ENVELOPE address format: (name, route, mailbox, host)
    # Example: (b'John Doe', None, b'john', b'example.com')
    name = _decode_mime_header(addr.name) if addr.name else None
    mailbox = addr.mailbox.decode("utf-8", errors="replace") if addr.mailbox else ""
    host = addr.host.decode("utf-8", errors="replace") if addr.host else ""
    return EmailAddress(email=f"{mailbox}@{host}", name=name)


def _parse_flags(flags: Iterable[bytes | str]) -> tuple[set[MessageFlag], set[str]]:
    """Split IMAP FLAGS into system flags and custom keywords ($Forwarded...)."""
    standard_flags: set[MessageFlag] = set()
    custom_flags: set[str] = set()

    for flag in flags:
        flag_str = flag.decode() if isinstance(flag, bytes) else flag
        message_flag = MessageFlag.from_imap(flag_str)
        if message_flag is not None:
            standard_flags.add(message_flag)
        else:
            custom_flags.add(flag_str)

    return (standard_flags, custom_flags)
