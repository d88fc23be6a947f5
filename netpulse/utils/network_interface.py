"""Default gateway discovery - Cross-platform support."""
import ipaddress
import re
import socket
from dataclasses import dataclass
from typing import Dict, List, Optional

import psutil
from loguru import logger

from netpulse.core.constants import ROUTE_COMMAND_TIMEOUT
from netpulse.utils.platform_utils import Platform, PlatformUtils
from netpulse.utils.process_utils import ProcessUtils

NULL_GATEWAY = "0.0.0.0"
LOOPBACK_NAMES = {"lo", "lo0", "Loopback Pseudo-Interface 1"}


@dataclass(frozen=True)
class RouteEntry:
    """A default route as reported by the platform route table."""

    gateway: str
    interface: Optional[str] = None
    interface_ip: Optional[str] = None


@dataclass(frozen=True)
class GatewayCandidate:
    """A default route whose interface passed the liveness checks."""

    interface: str
    gateway: str
    speed: int
    order: int


def is_valid_ipv4(value: Optional[str]) -> bool:
    """Check if string is a valid IPv4 address."""
    if not value:
        return False
    try:
        return isinstance(ipaddress.ip_address(value), ipaddress.IPv4Address)
    except ValueError:
        return False


def parse_linux_routes(output: str) -> List[RouteEntry]:
    """
    Parse `ip -4 route show default`.

    Lines look like: "default via 192.168.1.1 dev wlp3s0 proto dhcp metric 600"
    """
    routes = []
    for line in output.splitlines():
        parts = line.split()
        if not parts or parts[0] != "default":
            continue

        gateway = None
        interface_name = None
        for i, part in enumerate(parts):
            if part == "via" and i + 1 < len(parts):
                gateway = parts[i + 1]
            elif part == "dev" and i + 1 < len(parts):
                interface_name = parts[i + 1]

        if gateway:
            routes.append(RouteEntry(gateway=gateway, interface=interface_name))
    return routes


def parse_macos_routes(output: str) -> List[RouteEntry]:
    """
    Parse `netstat -rn -f inet`.

    Lines look like: "default            192.168.1.1        UGScg                 en0"
    """
    routes = []
    for line in output.splitlines():
        parts = line.split()
        if len(parts) >= 4 and parts[0] == "default":
            routes.append(RouteEntry(gateway=parts[1], interface=parts[-1]))
    return routes


def parse_windows_routes(output: str) -> List[RouteEntry]:
    """
    Parse `route print -4 0.0.0.0`.

    Looking for lines like: "0.0.0.0          0.0.0.0     192.168.1.1    192.168.1.10     25"
    """
    routes = []
    for line in output.splitlines():
        parts = line.split()
        if len(parts) >= 4 and parts[0] == NULL_GATEWAY and parts[1] == NULL_GATEWAY:
            # "On-link" appears in place of a gateway for point-to-point adapters
            if not is_valid_ipv4(parts[2]):
                continue
            routes.append(RouteEntry(gateway=parts[2], interface_ip=parts[3]))
    return routes


class GatewayDiscovery:
    """
    Finds the default gateway of the best active interface.

    Route table entries give (gateway, interface) pairs; psutil is used to keep
    only interfaces that are up, non-loopback and carry an IPv4 address.
    Candidates are ranked by link speed, ties keep route-table order.
    """

    def __init__(self, route_reader=None, if_stats=None, if_addrs=None):
        self._route_reader = route_reader or self.read_routes
        self._if_stats = if_stats or psutil.net_if_stats
        self._if_addrs = if_addrs or psutil.net_if_addrs

    def __call__(self) -> Optional[str]:
        return self.discover()

    def discover(self) -> Optional[str]:
        """Return the preferred default gateway, or None."""
        candidates = self.candidates()
        if not candidates:
            logger.debug("[GatewayDiscovery] No default gateway candidates")
            return None

        best = candidates[0]
        logger.debug(f"[GatewayDiscovery] Selected {best.gateway} via {best.interface} ({best.speed} Mb/s)")
        return best.gateway

    def candidates(self) -> List[GatewayCandidate]:
        routes = self._route_reader()
        stats = self._if_stats()
        addrs = self._if_addrs()
        ipv4_by_interface = self._ipv4_addresses(addrs)

        candidates = []
        for order, route in enumerate(routes):
            if not is_valid_ipv4(route.gateway) or route.gateway == NULL_GATEWAY:
                continue

            name = route.interface or self._interface_for_ip(route.interface_ip, ipv4_by_interface)
            if not name:
                continue

            stat = stats.get(name)
            if stat is None or not stat.isup:
                continue

            ipv4 = ipv4_by_interface.get(name, [])
            if not ipv4:
                continue
            if name in LOOPBACK_NAMES or all(ipaddress.ip_address(ip).is_loopback for ip in ipv4):
                continue

            candidates.append(GatewayCandidate(name, route.gateway, stat.speed or 0, order))

        return sorted(candidates, key=lambda c: (-c.speed, c.order))

    @staticmethod
    def _ipv4_addresses(addrs) -> Dict[str, List[str]]:
        result = {}
        for name, entries in addrs.items():
            ips = [entry.address for entry in entries if entry.family == socket.AF_INET]
            if ips:
                result[name] = ips
        return result

    @staticmethod
    def _interface_for_ip(ip: Optional[str], ipv4_by_interface: Dict[str, List[str]]) -> Optional[str]:
        if not ip:
            return None
        for name, ips in ipv4_by_interface.items():
            if ip in ips:
                return name
        return None

    @staticmethod
    def read_routes() -> List[RouteEntry]:
        """Read default routes from the platform route table."""
        platform = PlatformUtils.get_platform()

        if platform == Platform.WINDOWS:
            cmd, parser = ["route", "print", "-4", NULL_GATEWAY], parse_windows_routes
        elif platform == Platform.MACOS:
            cmd, parser = ["netstat", "-rn", "-f", "inet"], parse_macos_routes
        else:
            cmd, parser = ["ip", "-4", "route", "show", "default"], parse_linux_routes

        result = ProcessUtils.run_command_sync(cmd, timeout=ROUTE_COMMAND_TIMEOUT)
        if result is None:
            return []
        if result.returncode != 0:
            logger.warning(f"[GatewayDiscovery] Route command failed ({result.returncode}): {result.stderr.strip()}")
            return []
        return parser(result.stdout)


def interface_link_summary(if_stats=None, if_addrs=None) -> Dict[str, tuple]:
    """
    Snapshot of non-loopback interfaces: {name: (isup, sorted IPv4 addresses)}.

    Used by the link watcher to notice availability and address changes.
    """
    stats = (if_stats or psutil.net_if_stats)()
    addrs = (if_addrs or psutil.net_if_addrs)()

    summary = {}
    for name, stat in stats.items():
        if name in LOOPBACK_NAMES or re.match(r"^lo\d*$", name):
            continue
        ipv4 = sorted(
            entry.address
            for entry in addrs.get(name, [])
            if entry.family == socket.AF_INET and not ipaddress.ip_address(entry.address).is_loopback
        )
        summary[name] = (bool(stat.isup), tuple(ipv4))
    return summary
