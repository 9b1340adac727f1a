"""
Process-scoped wiring for the POP3 client.

``create_context()`` is called once at startup. It loads the host directory
and builds the single session orchestrator; the resulting ClientContext is
passed explicitly to whatever presents the mailbox to the user.
"""
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from pop3_client import config
from pop3_client.core.host_directory import HostDirectory
from pop3_client.core.session import SessionOrchestrator
from pop3_client.network.pop3_transport import Pop3Transport
from pop3_client.network.transport import Transport
from pop3_client.utils.logging_cfg import get_logger


logger = get_logger(__name__)


@dataclass
class ClientContext:
    """Owns the host directory and the session for one running client."""
    host_directory: HostDirectory
    session: SessionOrchestrator

    def exit(self, status: int = 0) -> None:
        """End the session and terminate the process."""
        self.session.end_session()
        logger.info(f"Exiting with status {status}")
        sys.exit(status)


def create_context(
    hosts_file: Optional[Union[str, Path]] = None,
    transport: Optional[Transport] = None
) -> ClientContext:
    """
    Build the client context.

    Args:
        hosts_file: Hosts file to load. Defaults to ``config.HOSTS_FILE_PATH``.
        transport: Transport to use. Defaults to a Pop3Transport configured
            from ``config``.

    Returns:
        A ready ClientContext in the signed-out state.

    Raises:
        StartupFatalError: If the host directory cannot be loaded.
    """
    host_directory = HostDirectory.load(hosts_file or config.HOSTS_FILE_PATH)

    if transport is None:
        transport = Pop3Transport(
            default_port=config.POP3_PORT,
            timeout=config.POP3_TIMEOUT_SECONDS
        )

    session = SessionOrchestrator(host_directory, transport)
    return ClientContext(host_directory=host_directory, session=session)
