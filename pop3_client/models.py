"""
Core domain models for the POP3 client.

This module contains pure domain models (dataclasses) without any network
or UI dependencies.
"""
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Optional, Tuple


@dataclass(frozen=True, slots=True)
class Credentials:
    """A validated mailbox address and its secret. Never persisted."""
    address: str
    secret: str = field(repr=False)

    @property
    def username(self) -> str:
        """Local part of the address, used as the POP3 user name."""
        return self.address.split('@', 1)[0]

    @property
    def domain(self) -> str:
        """Domain part of the address, used to resolve the server."""
        return self.address.split('@', 1)[1]


@dataclass(frozen=True, slots=True)
class Message:
    """A message fetched from the server. Immutable once fetched."""
    sequence_number: int
    size_octets: int = 0
    message_id: str = ""
    subject: str = ""
    sender: str = ""
    sender_name: str = ""
    recipients: Tuple[str, ...] = ()
    sent_at: Optional[datetime] = None
    body_plain: str = ""
    body_html: str = ""
    has_attachments: bool = False


@dataclass(frozen=True, slots=True)
class MailboxSnapshot:
    """
    The client's view of the mailbox as of the last successful refresh.

    ``messages`` is ordered by server sequence number (1-based). A snapshot
    is replaced as a whole; it is never edited in place.
    """
    message_count: int = 0
    messages: Tuple[Message, ...] = ()
    stale: bool = False

    def mark_stale(self) -> "MailboxSnapshot":
        """Return a copy flagged as no longer matching the server."""
        return replace(self, stale=True)


EMPTY_SNAPSHOT = MailboxSnapshot()
