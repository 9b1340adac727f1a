"""Tests for the session orchestrator workflows and state machine."""
import pytest

from pop3_client.core.session import SessionOrchestrator, SessionState
from pop3_client.utils.errors import (
    CredentialsFormError, HostNotFoundError, ProtocolError,
    ServerRejectionError, SessionStateError, TransportError
)

from conftest import FakeTransport, make_message


FULL_CYCLE = ["connect", "login", "get_message_count", "get_messages", "logout", "disconnect"]


class TestSignIn:

    def test_sign_in_loads_snapshot(self, session, transport):
        session.sign_in("alice@example.com", "secret1")

        assert session.state is SessionState.SIGNED_IN
        assert session.is_signed_in
        assert session.address == "alice@example.com"
        assert session.host == "pop.example.com"
        assert session.message_count == 2
        assert len(session.messages) == 2
        assert [m.subject for m in session.messages] == ["First", "Second"]
        assert not session.snapshot_is_stale

    def test_sign_in_runs_full_cycle_with_local_part_as_username(self, session, transport):
        session.sign_in("alice@example.com", "secret1")

        assert transport.operations == FULL_CYCLE
        assert transport.calls[0] == ("connect", "pop.example.com", None)
        assert transport.calls[1] == ("login", "alice", "secret1")
        assert not transport.is_connected

    def test_port_override_is_passed_to_connect(self, host_directory, transport):
        session = SessionOrchestrator(host_directory, transport, port=1110)
        session.sign_in("alice@example.com", "secret1")

        assert transport.calls[0] == ("connect", "pop.example.com", 1110)

    @pytest.mark.parametrize("address,secret", [
        ("alice#example.com", "secret1"),
        ("alice@@example.com", "secret1"),
        ("a@b@example.com", "secret1"),
        ("@example.com", "secret1"),
        ("alice@", "secret1"),
        ("alice@example.com", ""),
    ])
    def test_malformed_credentials_make_no_network_call(self, session, transport, address, secret):
        with pytest.raises(CredentialsFormError):
            session.sign_in(address, secret)

        assert transport.calls == []
        assert session.state is SessionState.SIGNED_OUT
        assert session.address is None

    def test_unknown_domain_makes_no_network_call(self, session, transport):
        with pytest.raises(HostNotFoundError) as exc_info:
            session.sign_in("alice@unknown.org", "secret1")

        assert exc_info.value.domain == "unknown.org"
        assert transport.calls == []
        assert session.state is SessionState.SIGNED_OUT

    def test_rejected_login_leaves_signed_out(self, session, transport):
        transport.failures["login"] = ServerRejectionError("PASS rejected", detail="invalid password")

        with pytest.raises(ServerRejectionError) as exc_info:
            session.sign_in("alice@example.com", "wrong")

        assert exc_info.value.detail == "invalid password"
        assert session.state is SessionState.SIGNED_OUT
        assert session.address is None
        assert session.messages == ()
        assert session.message_count == 0
        assert transport.operations == ["connect", "login", "logout", "disconnect"]

    def test_connect_failure_still_releases_transport(self, session, transport):
        transport.failures["connect"] = TransportError("connection refused")

        with pytest.raises(TransportError):
            session.sign_in("alice@example.com", "secret1")

        assert transport.operations == ["connect", "disconnect"]
        assert session.state is SessionState.SIGNED_OUT

    def test_sign_in_from_signed_in_switches_mailbox(self, signed_in, transport):
        transport.mailbox = [make_message(1, "Only")]

        signed_in.sign_in("bob@example.com", "secret2")

        assert signed_in.address == "bob@example.com"
        assert signed_in.message_count == 1

    def test_bad_form_while_signed_in_keeps_session(self, signed_in, transport):
        with pytest.raises(CredentialsFormError):
            signed_in.sign_in("bob", "secret2")

        assert signed_in.is_signed_in
        assert signed_in.address == "alice@example.com"
        assert signed_in.message_count == 2


class TestRefreshMailbox:

    def test_refresh_replaces_snapshot(self, signed_in, transport):
        transport.mailbox.append(make_message(3, "Third"))

        snapshot = signed_in.refresh_mailbox()

        assert snapshot is signed_in.snapshot
        assert signed_in.message_count == 3
        assert len(signed_in.messages) == 3
        assert transport.operations == FULL_CYCLE
        assert signed_in.state is SessionState.SIGNED_IN

    def test_failed_get_messages_keeps_previous_snapshot(self, signed_in, transport):
        before = signed_in.snapshot
        transport.mailbox.append(make_message(3, "Third"))
        transport.failures["get_messages"] = TransportError("connection reset")

        with pytest.raises(TransportError):
            signed_in.refresh_mailbox()

        assert signed_in.snapshot is before
        assert signed_in.message_count == 2
        assert signed_in.state is SessionState.SIGNED_IN
        assert transport.operations == [
            "connect", "login", "get_message_count", "get_messages", "logout", "disconnect"
        ]

    def test_cleanup_failures_do_not_mask_original_error(self, signed_in, transport):
        original = ServerRejectionError("RETR rejected", detail="mailbox locked")
        transport.failures["get_messages"] = original
        transport.failures["logout"] = TransportError("broken pipe")
        transport.failures["disconnect"] = TransportError("already closed")

        with pytest.raises(ServerRejectionError) as exc_info:
            signed_in.refresh_mailbox()

        assert exc_info.value is original

    def test_count_mismatch_is_protocol_error(self, signed_in, transport):
        before = signed_in.snapshot
        transport.count = 5

        with pytest.raises(ProtocolError):
            signed_in.refresh_mailbox()

        assert signed_in.snapshot is before

    def test_logout_failure_on_success_path_propagates(self, signed_in, transport):
        before = signed_in.snapshot
        transport.failures["logout"] = TransportError("connection reset")

        with pytest.raises(TransportError):
            signed_in.refresh_mailbox()

        assert signed_in.snapshot is before
        assert transport.operations[-1] == "disconnect"

    def test_refresh_requires_sign_in(self, session, transport):
        with pytest.raises(SessionStateError):
            session.refresh_mailbox()

        assert transport.calls == []


class TestDeleteMessage:

    def test_delete_targets_given_sequence_number(self, signed_in, transport):
        signed_in.delete_message(1)

        assert transport.operations == ["connect", "login", "delete_message", "logout", "disconnect"]
        assert transport.deleted == [1]

    def test_delete_marks_snapshot_stale_without_refresh(self, signed_in, transport):
        signed_in.delete_message(2)

        assert signed_in.snapshot_is_stale
        assert signed_in.message_count == 2
        assert "get_messages" not in transport.operations

    def test_refresh_clears_stale_flag(self, signed_in, transport):
        signed_in.delete_message(2)
        transport.mailbox.pop()

        signed_in.refresh_mailbox()

        assert not signed_in.snapshot_is_stale
        assert signed_in.message_count == 1

    def test_unknown_message_is_server_rejection(self, signed_in, transport):
        transport.failures["delete_message"] = ServerRejectionError(
            "DELE 9 rejected by server: -ERR no such message", detail="no such message"
        )

        with pytest.raises(ServerRejectionError):
            signed_in.delete_message(9)

        assert transport.calls[2] == ("delete_message", 9)
        assert not signed_in.snapshot_is_stale
        assert signed_in.state is SessionState.SIGNED_IN

    def test_delete_requires_sign_in(self, session, transport):
        with pytest.raises(SessionStateError):
            session.delete_message(1)

        assert transport.calls == []


class TestEndSession:

    def test_end_session_clears_everything(self, signed_in):
        signed_in.end_session()

        assert signed_in.state is SessionState.SIGNED_OUT
        assert signed_in.address is None
        assert signed_in.messages == ()
        assert signed_in.message_count == 0

    def test_operations_after_end_behave_as_signed_out(self, signed_in, transport):
        signed_in.end_session()

        with pytest.raises(SessionStateError):
            signed_in.refresh_mailbox()
        with pytest.raises(SessionStateError):
            signed_in.delete_message(1)
        assert "connect" not in transport.operations

    def test_end_session_disconnects_live_transport(self, session, transport):
        transport.connect("pop.example.com")
        transport.calls.clear()

        session.end_session()

        assert transport.operations == ["disconnect"]
        assert not transport.is_connected

    def test_end_session_swallows_disconnect_failure(self, session, transport):
        transport.connect("pop.example.com")
        transport.failures["disconnect"] = TransportError("socket gone")

        session.end_session()

        assert session.state is SessionState.SIGNED_OUT

    def test_end_session_when_idle_makes_no_network_call(self, session, transport):
        session.end_session()

        assert transport.calls == []

    def test_sign_in_again_after_end(self, signed_in, transport):
        signed_in.end_session()
        signed_in.sign_in("alice@example.com", "secret1")

        assert signed_in.is_signed_in


class TestStateGuard:

    def test_workflow_refused_while_another_is_in_flight(self, host_directory):
        class ReentrantTransport(FakeTransport):
            def get_message_count(self):
                self.nested_error = None
                try:
                    self.session.refresh_mailbox()
                except SessionStateError as e:
                    self.nested_error = e
                return super().get_message_count()

        transport = ReentrantTransport([make_message(1)])
        session = SessionOrchestrator(host_directory, transport)
        transport.session = session

        session.sign_in("alice@example.com", "secret1")

        assert isinstance(transport.nested_error, SessionStateError)
        assert transport.operations.count("connect") == 1

    def test_independent_orchestrators_do_not_share_state(self, host_directory):
        first = SessionOrchestrator(host_directory, FakeTransport([make_message(1)]))
        second = SessionOrchestrator(host_directory, FakeTransport())

        first.sign_in("alice@example.com", "secret1")

        assert first.is_signed_in
        assert second.state is SessionState.SIGNED_OUT
        assert second.messages == ()
