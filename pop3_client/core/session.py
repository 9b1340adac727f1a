"""
Session orchestrator for the POP3 client.

This module owns the signed-in session and the in-memory mailbox snapshot,
and composes Transport primitives into the user-facing workflows: sign-in,
mailbox refresh, message deletion and shutdown. Each workflow opens its own
connect…disconnect span; nothing is kept open between workflows.
"""
from contextlib import contextmanager
from enum import Enum
from typing import Callable, Iterator, Optional, Tuple

from pop3_client.core.credentials import validate_credentials
from pop3_client.core.host_directory import HostDirectory
from pop3_client.models import EMPTY_SNAPSHOT, Credentials, MailboxSnapshot, Message
from pop3_client.network.transport import Transport
from pop3_client.utils.errors import ProtocolError, SessionStateError
from pop3_client.utils.logging_cfg import get_logger


logger = get_logger(__name__)


class SessionState(Enum):
    SIGNED_OUT = "signed_out"
    AUTHENTICATING = "authenticating"
    SIGNED_IN = "signed_in"
    REFRESHING = "refreshing"
    MUTATING = "mutating"
    ENDING = "ending"


class SessionOrchestrator:
    """
    Drives the authenticate, inventory, fetch, mutate and terminate sequence.

    Single-threaded and blocking. The state machine refuses to start a
    workflow while another is in flight, so at most one transport session is
    open at any time. The snapshot is an immutable value swapped in only when
    a refresh completes; readers never see a partial update.
    """

    def __init__(
        self,
        host_directory: HostDirectory,
        transport: Transport,
        port: Optional[int] = None
    ):
        """
        Initialize the orchestrator.

        Args:
            host_directory: Loaded domain to server lookup.
            transport: Transport used for every network exchange.
            port: Optional port override passed to ``Transport.connect``.
        """
        self.host_directory = host_directory
        self.transport = transport
        self.port = port
        self._state = SessionState.SIGNED_OUT
        self._credentials: Optional[Credentials] = None
        self._host: Optional[str] = None
        self._snapshot: MailboxSnapshot = EMPTY_SNAPSHOT

    # Accessors

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_signed_in(self) -> bool:
        return self._state is SessionState.SIGNED_IN

    @property
    def address(self) -> Optional[str]:
        """Address of the signed-in user, or None."""
        return self._credentials.address if self._credentials else None

    @property
    def host(self) -> Optional[str]:
        return self._host

    @property
    def snapshot(self) -> MailboxSnapshot:
        return self._snapshot

    @property
    def messages(self) -> Tuple[Message, ...]:
        return self._snapshot.messages

    @property
    def message_count(self) -> int:
        return self._snapshot.message_count

    @property
    def snapshot_is_stale(self) -> bool:
        """True after a delete, until the next successful refresh."""
        return self._snapshot.stale

    # Workflows

    def sign_in(self, address: str, secret: str) -> None:
        """
        Sign in and load the mailbox.

        Form validation and host resolution happen before any network call
        and leave the orchestrator untouched when they fail. A failure during
        the network cycle leaves the orchestrator signed out with nothing
        retained.

        Args:
            address: The user's e-mail address (``local@domain``).
            secret: The user's password.

        Raises:
            CredentialsFormError: If the address or secret is malformed.
            HostNotFoundError: If the domain is not in the host directory.
            ServerRejectionError: If the server refuses a command.
            TransportError: If the connection fails.
            SessionStateError: If another workflow is in progress.
        """
        self._require_state(
            "sign in", SessionState.SIGNED_OUT, SessionState.SIGNED_IN
        )
        credentials = validate_credentials(address, secret)
        host = self.host_directory.resolve(credentials.domain)

        self._clear()
        self._set_state(SessionState.AUTHENTICATING)
        try:
            snapshot = self._fetch_snapshot(credentials, host)
        except Exception:
            self._set_state(SessionState.SIGNED_OUT)
            raise

        self._credentials = credentials
        self._host = host
        self._snapshot = snapshot
        self._set_state(SessionState.SIGNED_IN)
        logger.info(
            f"Signed in as {credentials.address} on {host} "
            f"({snapshot.message_count} messages)"
        )

    def refresh_mailbox(self) -> MailboxSnapshot:
        """
        Reload the message count and message list from the server.

        The snapshot is replaced only if every step succeeds.

        Returns:
            The new snapshot.

        Raises:
            SessionStateError: If not signed in.
            ServerRejectionError: If the server refuses a command.
            TransportError: If the connection fails.
        """
        self._require_state("refresh the mailbox", SessionState.SIGNED_IN)
        credentials, host = self._session_target()

        self._set_state(SessionState.REFRESHING)
        try:
            snapshot = self._fetch_snapshot(credentials, host)
        finally:
            self._set_state(SessionState.SIGNED_IN)

        self._snapshot = snapshot
        logger.info(f"Mailbox refreshed: {snapshot.message_count} messages")
        return snapshot

    def delete_message(self, sequence_number: int) -> None:
        """
        Delete one message on the server.

        The number is not checked against the snapshot; the server decides
        whether it exists. The snapshot is flagged stale afterwards and is
        not refreshed automatically.

        Args:
            sequence_number: 1-based server sequence number from the last refresh.

        Raises:
            SessionStateError: If not signed in.
            ServerRejectionError: If the server has no such message.
            TransportError: If the connection fails.
        """
        self._require_state("delete a message", SessionState.SIGNED_IN)
        credentials, host = self._session_target()

        self._set_state(SessionState.MUTATING)
        try:
            with self._transport_session(credentials, host) as transport:
                transport.delete_message(sequence_number)
        finally:
            self._set_state(SessionState.SIGNED_IN)

        self._snapshot = self._snapshot.mark_stale()
        logger.info(f"Deleted message {sequence_number}")

    def end_session(self) -> None:
        """
        Tear down the session. Never raises.

        Any live connection is closed without waiting for the server, then
        credentials and snapshot are dropped.
        """
        self._set_state(SessionState.ENDING)
        if self.transport.is_connected:
            self._release_quietly(self.transport.disconnect, "disconnect")
        self._clear()
        self._set_state(SessionState.SIGNED_OUT)
        logger.info("Session ended")

    # Internals

    def _fetch_snapshot(self, credentials: Credentials, host: str) -> MailboxSnapshot:
        with self._transport_session(credentials, host) as transport:
            count = transport.get_message_count()
            messages = tuple(transport.get_messages())

        if len(messages) != count:
            raise ProtocolError(
                f"Server reported {count} messages but returned {len(messages)}"
            )
        return MailboxSnapshot(message_count=count, messages=messages)

    @contextmanager
    def _transport_session(self, credentials: Credentials, host: str) -> Iterator[Transport]:
        """
        Connect and log in for the duration of the block.

        QUIT is sent when the block succeeds and its failure propagates,
        since the server only commits deletions on QUIT. When anything fails,
        QUIT is attempted and its failure is logged and dropped. The
        connection is released on every path; release failures are logged
        and dropped.
        """
        transport = self.transport
        try:
            transport.connect(host, self.port)
            try:
                transport.login(credentials.username, credentials.secret)
                yield transport
            except Exception:
                self._release_quietly(transport.logout, "logout")
                raise
            transport.logout()
        finally:
            self._release_quietly(transport.disconnect, "disconnect")

    def _release_quietly(self, release: Callable[[], None], name: str) -> None:
        try:
            release()
        except Exception as e:
            logger.warning(f"Ignoring {name} failure during cleanup: {e}")

    def _session_target(self) -> Tuple[Credentials, str]:
        if self._credentials is None or self._host is None:
            raise SessionStateError("No signed-in session")
        return self._credentials, self._host

    def _require_state(self, action: str, *allowed: SessionState) -> None:
        if self._state not in allowed:
            raise SessionStateError(
                f"Cannot {action} while {self._state.value.replace('_', ' ')}"
            )

    def _set_state(self, state: SessionState) -> None:
        logger.debug(f"Session state {self._state.name} -> {state.name}")
        self._state = state

    def _clear(self) -> None:
        self._credentials = None
        self._host = None
        self._snapshot = EMPTY_SNAPSHOT
