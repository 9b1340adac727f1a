"""
Transport interface used by the session layer.

The session orchestrator only talks to the server through this contract,
allowing the protocol engine to be swapped (or faked in tests) without
changing the orchestration code. All calls are synchronous and blocking.
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from pop3_client.models import Message


class Transport(ABC):
    """
    One connection to a mailbox server.

    Implementations raise ``TransportError`` for I/O failures and
    ``ServerRejectionError`` when the server answers with an error status.
    """

    @abstractmethod
    def connect(self, host: str, port: Optional[int] = None) -> None:
        """Open a connection to ``host``, optionally on a specific port."""
        pass

    @abstractmethod
    def login(self, username: str, secret: str) -> None:
        """Authenticate the open connection."""
        pass

    @abstractmethod
    def get_message_count(self) -> int:
        """Number of messages in the mailbox."""
        pass

    @abstractmethod
    def get_messages(self) -> List[Message]:
        """All messages, ordered by sequence number."""
        pass

    @abstractmethod
    def delete_message(self, sequence_number: int) -> None:
        """Mark a message for deletion. Committed by ``logout``."""
        pass

    @abstractmethod
    def logout(self) -> None:
        """End the authenticated session."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Release the connection. Safe to call when not connected."""
        pass

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Whether a connection is currently open."""
        pass
