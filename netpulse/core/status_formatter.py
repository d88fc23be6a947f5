"""Status formatting - display codes, tooltip lines and access point names."""
from typing import List, Optional

from netpulse.core.types import (
    FailureKind,
    OutcomeKind,
    PingTarget,
    ResolvedAddress,
    Status,
    TopologyState,
)

DISCONNECTED_TEXT = "Not Connected"
CAPABILITY_DISABLED_TEXT = "unavailable (wireless info disabled)"

CODE_PENDING = "--"
CODE_FAILED = "X"
CODE_ERROR = "!"
CODE_NO_GATEWAY = "GW?"
CODE_NETWORK_OFF = "OFF"
CODE_NETWORK_UNAVAILABLE = "NET?"
CODE_DNS = "DNS?"
CODE_INIT_FAILED = "INIT!"

FAILURE_TEXT = {
    FailureKind.TIMEOUT: "timed out",
    FailureKind.UNREACHABLE: "unreachable",
    FailureKind.DNS_ERROR: "DNS error",
    FailureKind.OTHER: "failed",
}


def format_ap_name(base_name: str, band: Optional[str] = None, ssid: Optional[str] = None) -> str:
    """
    Format an access point name with its network details.

    "<name> (<band> - <ssid>)", dropping whichever detail is missing;
    just the name when neither is known.
    """
    details = " - ".join(part for part in (band, ssid) if part)
    if not details:
        return base_name
    return f"{base_name} ({details})"


def target_label(target: PingTarget, resolved: Optional[ResolvedAddress]) -> str:
    if not target.is_custom:
        return resolved.address if resolved else "Gateway"
    host = target.user_input or ""
    if resolved and not resolved.resolution_error and resolved.address != host:
        return f"{host} ({resolved.address})"
    return host


def display_code(
    target: PingTarget,
    resolved: Optional[ResolvedAddress],
    outcome: OutcomeKind,
    round_trip_ms: Optional[int],
) -> str:
    unresolvable = bool(resolved and resolved.resolution_error)

    if outcome == OutcomeKind.SUCCESS:
        return str(round_trip_ms)
    if outcome == OutcomeKind.NETWORK_DOWN:
        return CODE_NETWORK_UNAVAILABLE if target.is_custom else CODE_NETWORK_OFF
    if outcome == OutcomeKind.NO_GATEWAY:
        return CODE_NO_GATEWAY
    # Also before the first reply, as soon as resolution has failed
    if unresolvable:
        return CODE_DNS
    if outcome == OutcomeKind.FAILURE:
        return CODE_FAILED
    if outcome == OutcomeKind.ERROR:
        return CODE_ERROR
    return CODE_PENDING


def _result_line(
    target: PingTarget,
    resolved: Optional[ResolvedAddress],
    outcome: OutcomeKind,
    round_trip_ms: Optional[int],
    failure_kind: Optional[FailureKind],
) -> str:
    label = target_label(target, resolved)

    if outcome == OutcomeKind.NETWORK_DOWN:
        return "Error: network unavailable"
    if outcome == OutcomeKind.NO_GATEWAY:
        return "Error: no gateway found"
    if outcome == OutcomeKind.SUCCESS:
        return f"{label}: {round_trip_ms}ms"
    if resolved and resolved.resolution_error:
        return f"{label}: DNS unresolvable"
    if outcome in (OutcomeKind.FAILURE, OutcomeKind.ERROR):
        if outcome == OutcomeKind.ERROR:
            return f"{label}: ping error"
        return f"{label}: {FAILURE_TEXT.get(failure_kind, 'failed')}"
    if target.is_custom or resolved:
        return f"{label}: waiting for reply"
    return "Initializing..."


def ap_line(topology: TopologyState, ap_name: Optional[str]) -> str:
    if not topology.capability_enabled:
        return f"AP: {CAPABILITY_DISABLED_TEXT}"
    if not topology.bssid:
        return f"AP: {DISCONNECTED_TEXT}"
    name = format_ap_name(ap_name or topology.bssid, topology.band, topology.ssid)
    return f"AP: {name} {topology.signal_percent}%"


def build_status(
    target: PingTarget,
    resolved: Optional[ResolvedAddress],
    outcome: OutcomeKind,
    round_trip_ms: Optional[int] = None,
    failure_kind: Optional[FailureKind] = None,
    gateway: Optional[str] = None,
    topology: Optional[TopologyState] = None,
    ap_name: Optional[str] = None,
    wireless_supported: bool = True,
    use_dark_text: bool = False,
) -> Status:
    """Fuse the coordinator's view into one Status value."""
    topology = topology or TopologyState()

    lines: List[str] = [_result_line(target, resolved, outcome, round_trip_ms, failure_kind)]
    if target.is_custom:
        lines.append(f"Gateway: {gateway or 'none'}")
    if wireless_supported:
        lines.append(ap_line(topology, ap_name))

    unresolvable = bool(resolved and resolved.resolution_error)
    is_error = outcome != OutcomeKind.SUCCESS and (outcome != OutcomeKind.UNKNOWN or unresolvable)

    return Status(
        display_text=display_code(target, resolved, outcome, round_trip_ms),
        tooltip_lines=tuple(lines),
        is_error=is_error,
        is_transition=topology.in_transition,
        use_dark_text=use_dark_text,
    )


def init_failed_status(message: str) -> Status:
    return Status(
        display_text=CODE_INIT_FAILED,
        tooltip_lines=(f"Error: {message}",),
        is_error=True,
    )
