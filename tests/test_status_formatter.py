"""Tests for status codes and tooltip formatting."""

from netpulse.core.status_formatter import build_status, format_ap_name, init_failed_status
from netpulse.core.types import FailureKind, OutcomeKind, PingTarget, ResolvedAddress, TopologyState

GATEWAY = PingTarget.default_gateway()
CUSTOM = PingTarget.custom_host("example.com")
CONNECTED = TopologyState(bssid="aa:aa:aa:aa:aa:01", ssid="HomeNet", band="5 GHz", signal_percent=80)


class TestFormatAPName:
    def test_full_details(self):
        assert format_ap_name("Kitchen", "5 GHz", "HomeNet") == "Kitchen (5 GHz - HomeNet)"

    def test_partial_details(self):
        assert format_ap_name("Kitchen", None, "HomeNet") == "Kitchen (HomeNet)"
        assert format_ap_name("Kitchen", "2.4 GHz") == "Kitchen (2.4 GHz)"

    def test_no_details(self):
        assert format_ap_name("Kitchen") == "Kitchen"


class TestBuildStatus:
    def test_gateway_success(self):
        status = build_status(
            GATEWAY, ResolvedAddress("192.168.1.1"), OutcomeKind.SUCCESS, round_trip_ms=23,
            topology=CONNECTED, ap_name="Kitchen",
        )

        assert status.display_text == "23"
        assert status.is_error is False
        assert status.tooltip_lines == ("192.168.1.1: 23ms", "AP: Kitchen (5 GHz - HomeNet) 80%")

    def test_custom_host_shows_resolved_address_and_gateway(self):
        status = build_status(
            CUSTOM, ResolvedAddress("93.184.216.34"), OutcomeKind.SUCCESS, round_trip_ms=41,
            gateway="192.168.1.1",
        )

        assert status.tooltip_lines[0] == "example.com (93.184.216.34): 41ms"
        assert status.tooltip_lines[1] == "Gateway: 192.168.1.1"
        assert status.tooltip_lines[2] == "AP: Not Connected"

    def test_probe_failure(self):
        status = build_status(
            GATEWAY, ResolvedAddress("192.168.1.1"), OutcomeKind.FAILURE, failure_kind=FailureKind.TIMEOUT
        )

        assert status.display_text == "X"
        assert status.is_error
        assert status.tooltip_lines[0] == "192.168.1.1: timed out"

    def test_probe_error(self):
        status = build_status(GATEWAY, ResolvedAddress("192.168.1.1"), OutcomeKind.ERROR)

        assert status.display_text == "!"

    def test_unresolvable_custom_host(self):
        target = PingTarget.custom_host("example.invalid")
        status = build_status(
            target, ResolvedAddress("example.invalid", resolution_error=True), OutcomeKind.FAILURE,
            failure_kind=FailureKind.UNREACHABLE,
        )

        assert status.display_text == "DNS?"
        assert status.is_error
        assert status.tooltip_lines[0] == "example.invalid: DNS unresolvable"
        assert status.tooltip_lines[1] == "Gateway: none"

    def test_unresolvable_before_first_reply(self):
        target = PingTarget.custom_host("example.invalid")
        status = build_status(target, ResolvedAddress("example.invalid", resolution_error=True), OutcomeKind.UNKNOWN)

        assert status.display_text == "DNS?"
        assert status.is_error
        assert status.tooltip_lines[0] == "example.invalid: DNS unresolvable"

    def test_network_down_codes_depend_on_target(self):
        gateway_status = build_status(GATEWAY, None, OutcomeKind.NETWORK_DOWN)
        custom_status = build_status(CUSTOM, None, OutcomeKind.NETWORK_DOWN)

        assert gateway_status.display_text == "OFF"
        assert custom_status.display_text == "NET?"
        assert gateway_status.tooltip_lines[0] == "Error: network unavailable"
        assert gateway_status.is_error and custom_status.is_error

    def test_no_gateway(self):
        status = build_status(GATEWAY, None, OutcomeKind.NO_GATEWAY)

        assert status.display_text == "GW?"
        assert status.is_error

    def test_pending(self):
        status = build_status(GATEWAY, None, OutcomeKind.UNKNOWN)

        assert status.display_text == "--"
        assert status.is_error is False
        assert status.tooltip_lines[0] == "Initializing..."

    def test_ap_line_variants(self):
        disabled = build_status(GATEWAY, None, OutcomeKind.UNKNOWN, topology=TopologyState(capability_enabled=False))
        no_wifi = build_status(GATEWAY, None, OutcomeKind.UNKNOWN, wireless_supported=False)
        unnamed = build_status(GATEWAY, None, OutcomeKind.UNKNOWN, topology=CONNECTED)

        assert disabled.tooltip_lines[-1] == "AP: unavailable (wireless info disabled)"
        assert no_wifi.tooltip_lines == ("Initializing...",)
        assert unnamed.tooltip_lines[-1] == "AP: aa:aa:aa:aa:aa:01 (5 GHz - HomeNet) 80%"

    def test_transition_flags(self):
        status = build_status(
            GATEWAY, ResolvedAddress("192.168.1.1"), OutcomeKind.SUCCESS, round_trip_ms=5,
            topology=TopologyState(in_transition=True), use_dark_text=True,
        )

        assert status.is_transition
        assert status.use_dark_text


def test_init_failed_status():
    status = init_failed_status("initialization failed")

    assert status.display_text == "INIT!"
    assert status.is_error
