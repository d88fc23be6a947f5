"""Tests for route parsing, gateway discovery and the link watcher."""

import socket
from unittest.mock import patch

import pytest

from conftest import AddrEntry, FakeNetwork, StatEntry
from netpulse.services.network_change_watcher import NetworkChangeWatcher
from netpulse.utils.network_interface import (
    GatewayDiscovery,
    RouteEntry,
    interface_link_summary,
    is_valid_ipv4,
    parse_linux_routes,
    parse_macos_routes,
    parse_windows_routes,
)
from netpulse.utils.process_utils import CommandResult

LINUX_ROUTES = """\
default via 192.168.1.1 dev wlp3s0 proto dhcp metric 600
default via 10.0.0.1 dev enp0s31f6 proto dhcp metric 100
"""

MACOS_ROUTES = """\
Routing tables

Internet:
Destination        Gateway            Flags               Netif Expire
default            192.168.1.1        UGScg                 en0
127                127.0.0.1          UCS                   lo0
"""

WINDOWS_ROUTES = """\
IPv4 Route Table
===========================================================================
Active Routes:
Network Destination        Netmask          Gateway       Interface  Metric
          0.0.0.0          0.0.0.0      192.168.1.1    192.168.1.50     25
          0.0.0.0          0.0.0.0         On-link      10.8.0.2        5
===========================================================================
"""


def _stats(**interfaces):
    return lambda: {name: StatEntry(*value) for name, value in interfaces.items()}


def _addrs(**interfaces):
    return lambda: {
        name: [AddrEntry(socket.AF_INET, ip) for ip in ips] for name, ips in interfaces.items()
    }


class TestRouteParsing:
    def test_is_valid_ipv4(self):
        assert is_valid_ipv4("192.168.1.1")
        assert not is_valid_ipv4("fe80::1")
        assert not is_valid_ipv4("On-link")
        assert not is_valid_ipv4(None)

    def test_linux(self):
        routes = parse_linux_routes(LINUX_ROUTES)
        assert routes == [
            RouteEntry("192.168.1.1", "wlp3s0"),
            RouteEntry("10.0.0.1", "enp0s31f6"),
        ]

    def test_macos(self):
        assert parse_macos_routes(MACOS_ROUTES) == [RouteEntry("192.168.1.1", "en0")]

    def test_windows_skips_on_link(self):
        assert parse_windows_routes(WINDOWS_ROUTES) == [
            RouteEntry("192.168.1.1", interface_ip="192.168.1.50")
        ]

    def test_garbage_yields_nothing(self):
        assert parse_linux_routes("") == []
        assert parse_macos_routes("nonsense here") == []
        assert parse_windows_routes("0.0.0.0") == []


class TestGatewayDiscovery:
    def test_prefers_faster_interface(self):
        discovery = GatewayDiscovery(
            route_reader=lambda: parse_linux_routes(LINUX_ROUTES),
            if_stats=_stats(wlp3s0=(True, 300), enp0s31f6=(True, 1000)),
            if_addrs=_addrs(wlp3s0=["192.168.1.50"], enp0s31f6=["10.0.0.5"]),
        )
        assert discovery() == "10.0.0.1"

    def test_equal_speed_keeps_route_order(self):
        discovery = GatewayDiscovery(
            route_reader=lambda: parse_linux_routes(LINUX_ROUTES),
            if_stats=_stats(wlp3s0=(True, 0), enp0s31f6=(True, 0)),
            if_addrs=_addrs(wlp3s0=["192.168.1.50"], enp0s31f6=["10.0.0.5"]),
        )
        assert discovery.discover() == "192.168.1.1"

    def test_skips_down_and_addressless_interfaces(self):
        discovery = GatewayDiscovery(
            route_reader=lambda: parse_linux_routes(LINUX_ROUTES),
            if_stats=_stats(wlp3s0=(False, 300), enp0s31f6=(True, 1000)),
            if_addrs=_addrs(wlp3s0=["192.168.1.50"]),
        )
        assert discovery.discover() is None

    def test_null_gateway_is_ignored(self):
        discovery = GatewayDiscovery(
            route_reader=lambda: [RouteEntry("0.0.0.0", "eth0")],
            if_stats=_stats(eth0=(True, 100)),
            if_addrs=_addrs(eth0=["10.0.0.5"]),
        )
        assert discovery.discover() is None

    def test_windows_routes_match_interface_by_ip(self):
        discovery = GatewayDiscovery(
            route_reader=lambda: parse_windows_routes(WINDOWS_ROUTES),
            if_stats=_stats(**{"Wi-Fi": (True, 400)}),
            if_addrs=_addrs(**{"Wi-Fi": ["192.168.1.50"]}),
        )
        assert discovery.discover() == "192.168.1.1"

    @patch("netpulse.utils.network_interface.ProcessUtils.run_command_sync")
    def test_read_routes_failure_yields_empty(self, mock_run):
        mock_run.return_value = CommandResult(1, "", "RTNETLINK answers: error")
        assert GatewayDiscovery.read_routes() == []

        mock_run.return_value = None
        assert GatewayDiscovery.read_routes() == []


class TestLinkSummary:
    def test_excludes_loopback(self):
        summary = interface_link_summary(
            if_stats=_stats(lo=(True, 0), eth0=(True, 1000)),
            if_addrs=_addrs(lo=["127.0.0.1"], eth0=["10.0.0.5"]),
        )
        assert summary == {"eth0": (True, ("10.0.0.5",))}


class TestNetworkChangeWatcher:
    def test_reports_availability_flip(self, scheduler):
        network = FakeNetwork()
        watcher = NetworkChangeWatcher(scheduler, link_summary=network.link_summary, interval_ms=2000)
        flips = []
        watcher.availability_changed.connect(flips.append)

        watcher.start()
        network.up = False
        scheduler.advance(2)
        network.up = True
        scheduler.advance(2)

        assert flips == [False, True]

    def test_reports_address_change_without_flip(self, scheduler):
        network = FakeNetwork()
        watcher = NetworkChangeWatcher(scheduler, link_summary=network.link_summary, interval_ms=2000)
        changes = []
        watcher.address_changed.connect(lambda: changes.append(1))

        watcher.start()
        scheduler.advance(2)
        assert changes == []

        network.address = "192.168.1.77"
        scheduler.advance(2)
        assert changes == [1]

    def test_sampling_error_is_contained(self, scheduler):
        network = FakeNetwork()
        watcher = NetworkChangeWatcher(scheduler, link_summary=network.link_summary, interval_ms=2000)
        watcher.start()

        network.broken = True
        scheduler.advance(2)

        with pytest.raises(OSError):
            watcher.is_network_available()

    def test_stop_cancels_polling(self, scheduler):
        network = FakeNetwork()
        watcher = NetworkChangeWatcher(scheduler, link_summary=network.link_summary, interval_ms=2000)
        watcher.start()
        watcher.stop()

        assert scheduler.active_timers() == []
