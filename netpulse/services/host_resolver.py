"""Host Resolver - Turns user supplied host input into a probe address."""

import ipaddress
import socket
from typing import Callable, Optional

from loguru import logger

from netpulse.core.types import ResolvedAddress

FORBIDDEN_HOST_CHARS = set(' \t<>&"\\/')


def is_ip_literal(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
        return True
    except ValueError:
        return False


class HostResolver:
    """Resolves custom targets, preferring IPv4."""

    def __init__(self, getaddrinfo: Optional[Callable] = None):
        self._getaddrinfo = getaddrinfo or socket.getaddrinfo

    @staticmethod
    def validate(user_input: str) -> str:
        """
        Check custom-host input and return it trimmed.

        Raises:
            ValueError: empty input, forbidden characters, or ':' outside an IPv6 literal
        """
        if user_input is None or not user_input.strip():
            raise ValueError("Host must not be empty")

        host = user_input.strip()
        bad = sorted(FORBIDDEN_HOST_CHARS.intersection(host))
        if bad:
            raise ValueError(f"Host contains invalid characters: {''.join(bad)!r}")

        if ":" in host:
            try:
                if ipaddress.ip_address(host).version != 6:
                    raise ValueError
            except ValueError:
                raise ValueError("':' is only allowed in IPv6 addresses") from None
        return host

    def resolve(self, user_input: str) -> ResolvedAddress:
        """
        Resolve user_input (blocking DNS).

        IP literals pass through. Otherwise the first IPv4 result wins, then the
        first IPv6 one. On failure the raw host is returned with resolution_error set.
        """
        host = (user_input or "").strip()
        if not host:
            raise ValueError("Host must not be empty")

        if is_ip_literal(host):
            return ResolvedAddress(host)

        try:
            infos = self._getaddrinfo(host, None)
        except (socket.gaierror, UnicodeError, OSError) as e:
            logger.info(f"[HostResolver] Could not resolve {host}: {e}")
            return ResolvedAddress(host, resolution_error=True)

        ipv4 = [info[4][0] for info in infos if info[0] == socket.AF_INET]
        ipv6 = [info[4][0] for info in infos if info[0] == socket.AF_INET6]

        if ipv4:
            address = ipv4[0]
        elif ipv6:
            address = ipv6[0]
        else:
            logger.info(f"[HostResolver] No addresses for {host}")
            return ResolvedAddress(host, resolution_error=True)

        logger.debug(f"[HostResolver] {host} -> {address}")
        return ResolvedAddress(address)
