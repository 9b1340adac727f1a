# =============================================================================
# Pytest Configuration and Fixtures
# =============================================================================
# Shared fixtures for the POP3 client test suite.
# =============================================================================

from datetime import datetime

import pytest

from pop3_client.core.host_directory import HostDirectory
from pop3_client.core.session import SessionOrchestrator
from pop3_client.models import Message
from pop3_client.network.transport import Transport


class FakeTransport(Transport):
    """
    In-memory Transport that records every call.

    Set ``failures[operation] = exc`` to make an operation raise.
    """

    def __init__(self, messages=None, count=None):
        self.mailbox = list(messages or [])
        self.count = count
        self.calls = []
        self.failures = {}
        self.deleted = []
        self._connected = False

    @property
    def is_connected(self):
        return self._connected

    def _record(self, operation, *args):
        self.calls.append((operation, *args))
        if operation in self.failures:
            raise self.failures[operation]

    @property
    def operations(self):
        return [call[0] for call in self.calls]

    def connect(self, host, port=None):
        self._record("connect", host, port)
        self._connected = True

    def login(self, username, secret):
        self._record("login", username, secret)

    def get_message_count(self):
        self._record("get_message_count")
        return len(self.mailbox) if self.count is None else self.count

    def get_messages(self):
        self._record("get_messages")
        return list(self.mailbox)

    def delete_message(self, sequence_number):
        self._record("delete_message", sequence_number)
        self.deleted.append(sequence_number)

    def logout(self):
        self._record("logout")

    def disconnect(self):
        self._connected = False
        self._record("disconnect")


def make_message(sequence_number, subject="Hello"):
    return Message(
        sequence_number=sequence_number,
        size_octets=120,
        subject=subject,
        sender="bob@example.com",
        sender_name="Bob",
        recipients=("alice@example.com",),
        sent_at=datetime(2024, 1, 15, 10, 30, 0),
        body_plain="Hi Alice",
    )


@pytest.fixture
def host_directory():
    """Directory with a single example.com entry."""
    return HostDirectory({"example.com": "pop.example.com"})


@pytest.fixture
def transport():
    """Fake transport holding two messages."""
    return FakeTransport([make_message(1, "First"), make_message(2, "Second")])


@pytest.fixture
def session(host_directory, transport):
    """Signed-out orchestrator wired to the fake transport."""
    return SessionOrchestrator(host_directory, transport)


@pytest.fixture
def signed_in(session, transport):
    """Orchestrator already signed in as alice@example.com, call log cleared."""
    session.sign_in("alice@example.com", "secret1")
    transport.calls.clear()
    return session
