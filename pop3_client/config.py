"""
Global settings and constants for the POP3 client.

This module provides configuration constants for the client. Values can be
overridden through environment variables or a ``.env`` file, which
``load_env()`` reads at application startup.
"""
import os
from pathlib import Path

from dotenv import find_dotenv, load_dotenv


# Default port constants
DEFAULT_POP3_PORT: int = 110

# Socket timeout applied to connect and every read
DEFAULT_TIMEOUT_SECONDS: float = 30.0

# Host directory location, relative to the working directory
HOSTS_FILE_PATH: Path = Path("hosts.properties")

# Connection settings
POP3_PORT: int = DEFAULT_POP3_PORT
POP3_TIMEOUT_SECONDS: float = DEFAULT_TIMEOUT_SECONDS

# Base directory for logs
CLIENT_HOME: Path = Path.home() / ".pop3_client"


def load_env() -> None:
    """
    Load environment variables and apply sensible defaults.

    Reads a ``.env`` file if one exists, then applies the ``POP3_*``
    overrides. It should be called once at application startup.

    Raises:
        ValueError: If a numeric setting cannot be parsed.
    """
    global HOSTS_FILE_PATH, POP3_PORT, POP3_TIMEOUT_SECONDS, CLIENT_HOME

    load_dotenv(find_dotenv(usecwd=True))

    hosts_env = os.environ.get("POP3_HOSTS_FILE")
    if hosts_env:
        HOSTS_FILE_PATH = Path(hosts_env)

    port_env = os.environ.get("POP3_PORT")
    if port_env:
        try:
            POP3_PORT = int(port_env)
        except ValueError:
            raise ValueError(f"POP3_PORT must be an integer, got '{port_env}'") from None

    timeout_env = os.environ.get("POP3_TIMEOUT_SECONDS")
    if timeout_env:
        try:
            POP3_TIMEOUT_SECONDS = float(timeout_env)
        except ValueError:
            raise ValueError(f"POP3_TIMEOUT_SECONDS must be a number, got '{timeout_env}'") from None

    home_env = os.environ.get("POP3_CLIENT_HOME")
    if home_env:
        CLIENT_HOME = Path(home_env)
