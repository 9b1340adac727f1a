"""
POP3 transport built on poplib.

This module provides the concrete Transport used by the client, hiding the
details of poplib and converting its failures into the client's error
hierarchy: ``-ERR`` replies become ServerRejectionError, malformed replies
become ProtocolError and socket failures become TransportError.
"""
import email
import poplib
from datetime import datetime
from email.header import decode_header
from email.message import Message as MimeMessage
from email.utils import getaddresses, parseaddr, parsedate_tz, mktime_tz
from typing import Callable, List, Optional, Tuple, TypeVar

from pop3_client.config import DEFAULT_POP3_PORT, DEFAULT_TIMEOUT_SECONDS
from pop3_client.models import Message
from pop3_client.network.transport import Transport
from pop3_client.utils.errors import (
    ProtocolError, ServerRejectionError, TransportError
)
from pop3_client.utils.logging_cfg import get_logger


logger = get_logger(__name__)

T = TypeVar("T")


class ClosingPOP3(poplib.POP3):
    """poplib.POP3 that closes its socket when the greeting cannot be read."""

    def __init__(self, host: str, port: int, timeout: float):
        self.sock = None
        self.file = None
        try:
            super().__init__(host, port, timeout=timeout)
        except (poplib.error_proto, OSError):
            if self.sock is not None:
                try:
                    self.close()
                except OSError as close_error:
                    logger.debug(f"Ignoring close failure after bad greeting: {close_error}")
            raise


class Pop3Transport(Transport):
    """
    Plain-text POP3 transport.

    Uses USER/PASS, STAT, LIST, RETR, DELE and QUIT only. Every socket
    operation is bounded by ``timeout`` seconds.
    """

    connection_class = ClosingPOP3

    def __init__(self, default_port: int = DEFAULT_POP3_PORT, timeout: float = DEFAULT_TIMEOUT_SECONDS):
        """
        Initialize the transport.

        Args:
            default_port: Port used when ``connect`` is given no override.
            timeout: Socket timeout in seconds for connect and every read.
        """
        self.default_port = default_port
        self.timeout = timeout
        self.connection: Optional[poplib.POP3] = None

    @property
    def is_connected(self) -> bool:
        return self.connection is not None

    def connect(self, host: str, port: Optional[int] = None) -> None:
        """
        Open a connection and read the server greeting.

        Raises:
            TransportError: If the server cannot be reached.
            ProtocolError: If the greeting is not a POP3 ``+OK``.
        """
        if self.connection is not None:
            raise TransportError("A connection is already open")

        port = port or self.default_port
        logger.debug(f"Connecting to {host}:{port}")
        try:
            self.connection = self.connection_class(host, port, self.timeout)
        except poplib.error_proto as e:
            raise ProtocolError(f"Unexpected greeting from {host}: {_reply_text(e)}") from e
        except OSError as e:
            raise TransportError(f"Failed to connect to {host}:{port}: {e}") from e

    def login(self, username: str, secret: str) -> None:
        """
        Authenticate with USER/PASS.

        Raises:
            ServerRejectionError: If the server refuses the credentials.
        """
        connection = self._require_connection()
        self._call("USER", connection.user, username)
        self._call("PASS", connection.pass_, secret)
        logger.debug(f"Authenticated as {username}")

    def get_message_count(self) -> int:
        """Return the message count reported by STAT."""
        connection = self._require_connection()
        count, _size = self._call("STAT", connection.stat)
        return count

    def get_messages(self) -> List[Message]:
        """
        Retrieve every message in the mailbox.

        Returns:
            Messages ordered by sequence number.

        Raises:
            ServerRejectionError: If LIST or RETR is refused.
            ProtocolError: If a LIST entry or a message cannot be parsed.
        """
        connection = self._require_connection()
        _resp, listing, _octets = self._call("LIST", connection.list)

        entries = []
        for line in listing:
            entries.append(self._parse_list_entry(line))
        entries.sort()

        messages = []
        for sequence_number, size_octets in entries:
            _resp, lines, _octets = self._call(f"RETR {sequence_number}", connection.retr, sequence_number)
            try:
                messages.append(self._build_message(sequence_number, size_octets, lines))
            except Exception as e:
                raise ProtocolError(f"Cannot parse message {sequence_number}: {e}") from e

        logger.debug(f"Retrieved {len(messages)} messages")
        return messages

    def delete_message(self, sequence_number: int) -> None:
        """
        Mark a message for deletion.

        Raises:
            ServerRejectionError: If the server has no such message.
        """
        connection = self._require_connection()
        self._call(f"DELE {sequence_number}", connection.dele, sequence_number)

    def logout(self) -> None:
        """
        Send QUIT, which commits pending deletions and closes the connection.

        Raises:
            ServerRejectionError: If the server could not commit the session.
            TransportError: If the connection fails.
        """
        connection = self._require_connection()
        try:
            self._call("QUIT", connection.quit)
        finally:
            self.connection = None

    def disconnect(self) -> None:
        """Close the socket without QUIT. Does nothing if not connected."""
        connection = self.connection
        if connection is None:
            return
        self.connection = None
        try:
            connection.close()
        except OSError as e:
            raise TransportError(f"Error closing connection: {e}") from e

    def _require_connection(self) -> poplib.POP3:
        if self.connection is None:
            raise TransportError("Not connected")
        return self.connection

    def _call(self, command: str, func: Callable[..., T], *args) -> T:
        """Run one poplib command, translating its failures."""
        try:
            return func(*args)
        except poplib.error_proto as e:
            reply = _reply_text(e)
            if reply.startswith("-ERR"):
                detail = reply[4:].strip() or reply
                raise ServerRejectionError(f"{command} rejected by server: {reply}", detail=detail) from e
            raise ProtocolError(f"{command}: unexpected server reply: {reply}") from e
        except OSError as e:
            raise TransportError(f"{command} failed: {e}") from e

    def _parse_list_entry(self, line: bytes) -> Tuple[int, int]:
        """Parse a LIST line such as ``b'1 1205'`` into (number, octets)."""
        try:
            number, octets = line.split()[:2]
            return int(number), int(octets)
        except ValueError:
            raise ProtocolError(f"Malformed LIST entry: {line!r}") from None

    def _build_message(self, sequence_number: int, size_octets: int, lines: List[bytes]) -> Message:
        """
        Parse a retrieved message into a Message.

        Args:
            sequence_number: Server sequence number of the message.
            size_octets: Size reported by LIST.
            lines: Message lines as returned by RETR.

        Returns:
            A Message with headers and bodies populated.
        """
        msg = email.message_from_bytes(b"\r\n".join(lines))

        subject = self._decode_header(self._header_text(msg, 'Subject'))
        sender_name, sender_email = parseaddr(self._decode_header(self._header_text(msg, 'From')))

        recipients = []
        for _name, address in getaddresses(self._header_values(msg, 'To') + self._header_values(msg, 'Cc')):
            if address:
                recipients.append(address)

        plain_text, html_text, has_attachments = self._extract_bodies(msg)

        return Message(
            sequence_number=sequence_number,
            size_octets=size_octets,
            message_id=self._header_text(msg, 'Message-ID').strip(),
            subject=subject,
            sender=sender_email,
            sender_name=sender_name,
            recipients=tuple(recipients),
            sent_at=self._parse_date(self._header_text(msg, 'Date')),
            body_plain=plain_text,
            body_html=html_text,
            has_attachments=has_attachments,
        )

    def _header_text(self, msg: MimeMessage, name: str) -> str:
        """
        Header value as text, or "" when absent.

        Headers holding raw 8-bit bytes come back from the parser as Header
        objects carrying surrogate escapes; those bytes are re-read as UTF-8.
        """
        value = msg.get(name)
        if value is None:
            return ""
        return _text_from_8bit(str(value))

    def _header_values(self, msg: MimeMessage, name: str) -> List[str]:
        return [_text_from_8bit(str(value)) for value in msg.get_all(name, [])]

    def _extract_bodies(self, msg: MimeMessage) -> Tuple[str, str, bool]:
        """Return (plain_text, html_text, has_attachments) for a message."""
        plain_text = ""
        html_text = ""
        has_attachments = False

        for part in msg.walk():
            if part.is_multipart():
                continue

            content_disposition = str(part.get("Content-Disposition", ""))
            if "attachment" in content_disposition.lower():
                has_attachments = True
                continue

            content_type = part.get_content_type()
            if content_type == "text/plain" and not plain_text:
                plain_text = self._decode_payload(part)
            elif content_type == "text/html" and not html_text:
                html_text = self._decode_payload(part)

        return plain_text, html_text, has_attachments

    def _decode_payload(self, part: MimeMessage) -> str:
        payload = part.get_payload(decode=True)
        if not payload:
            return ""
        charset = part.get_content_charset() or 'utf-8'
        try:
            return payload.decode(charset, errors='replace')
        except LookupError:
            return payload.decode('utf-8', errors='replace')

    def _parse_date(self, date_str: Optional[str]) -> Optional[datetime]:
        """Parse an email date string to datetime."""
        if not date_str:
            return None
        date_tuple = parsedate_tz(date_str)
        if not date_tuple:
            return None
        try:
            return datetime.fromtimestamp(mktime_tz(date_tuple))
        except (OverflowError, ValueError, OSError):
            return None

    def _decode_header(self, header: str) -> str:
        """Decode an RFC 2047 encoded header."""
        decoded_str = ""
        for part, encoding in decode_header(str(header)):
            if isinstance(part, bytes):
                try:
                    decoded_str += part.decode(encoding or 'utf-8', errors='replace')
                except LookupError:
                    decoded_str += part.decode('utf-8', errors='replace')
            else:
                decoded_str += part
        return decoded_str


def _text_from_8bit(text: str) -> str:
    return text.encode('utf-8', errors='surrogateescape').decode('utf-8', errors='replace')


def _reply_text(exc: poplib.error_proto) -> str:
    """Text of the server reply carried by a poplib error."""
    reply = exc.args[0] if exc.args else ""
    if isinstance(reply, bytes):
        reply = reply.decode('utf-8', errors='replace')
    return str(reply)
