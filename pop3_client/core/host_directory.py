"""
Mail domain to POP3 server lookup.

The directory is loaded once at startup from a ``key=value`` file with one
mail domain per line, for example::

    # domain=server
    example.com=pop.example.com

and is read-only afterwards.
"""
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Union

from dotenv import dotenv_values

from pop3_client.utils.errors import HostNotFoundError, StartupFatalError
from pop3_client.utils.logging_cfg import get_logger


logger = get_logger(__name__)


class HostDirectory:
    """Read-only mapping from mail domain to server address."""

    def __init__(self, hosts: Mapping[str, str]):
        self._hosts: Mapping[str, str] = MappingProxyType(dict(hosts))

    @classmethod
    def load(cls, path: Union[str, Path]) -> "HostDirectory":
        """
        Load the directory from a hosts file.

        Args:
            path: Location of the hosts file.

        Returns:
            A populated HostDirectory.

        Raises:
            StartupFatalError: If the file is missing or cannot be read.
        """
        path = Path(path)
        if not path.is_file():
            raise StartupFatalError(f"Hosts file not found: {path}")

        try:
            raw = dotenv_values(path, encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            raise StartupFatalError(f"Cannot read hosts file {path}: {e}") from e

        hosts: Dict[str, str] = {}
        for domain, address in raw.items():
            if not address:
                logger.warning(f"Skipping domain '{domain}' with no server address in {path}")
                continue
            hosts[domain] = address

        logger.info(f"Loaded {len(hosts)} host entries from {path}")
        return cls(hosts)

    def resolve(self, domain: str) -> str:
        """
        Return the server address for a mail domain.

        Lookup is an exact string match; there is no fallback host.

        Raises:
            HostNotFoundError: If the domain is not in the directory.
        """
        try:
            return self._hosts[domain]
        except KeyError:
            raise HostNotFoundError(domain) from None

    def domains(self) -> List[str]:
        return sorted(self._hosts)

    def __contains__(self, domain: object) -> bool:
        return domain in self._hosts

    def __len__(self) -> int:
        return len(self._hosts)
