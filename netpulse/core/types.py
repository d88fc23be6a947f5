"""Core types and enums."""
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional, Tuple


class TargetKind(Enum):
    """What the engine probes."""

    DEFAULT_GATEWAY = "gateway"
    CUSTOM_HOST = "custom"

    def __str__(self):
        return self.value


class FailureKind(Enum):
    """Why a probe did not succeed."""

    TIMEOUT = "timeout"
    UNREACHABLE = "unreachable"
    DNS_ERROR = "dns"
    OTHER = "other"

    def __str__(self):
        return self.value


class OutcomeKind(Enum):
    """Last outcome folded into the status."""

    UNKNOWN = auto()
    SUCCESS = auto()
    FAILURE = auto()
    ERROR = auto()
    NO_GATEWAY = auto()
    NETWORK_DOWN = auto()


@dataclass(frozen=True)
class PingTarget:
    """Either the default gateway or a user supplied host."""

    kind: TargetKind = TargetKind.DEFAULT_GATEWAY
    user_input: Optional[str] = None

    @classmethod
    def default_gateway(cls) -> "PingTarget":
        return cls(TargetKind.DEFAULT_GATEWAY)

    @classmethod
    def custom_host(cls, user_input: str) -> "PingTarget":
        return cls(TargetKind.CUSTOM_HOST, user_input)

    @property
    def is_custom(self) -> bool:
        return self.kind == TargetKind.CUSTOM_HOST


@dataclass(frozen=True)
class ResolvedAddress:
    """The literal address actually probed for the active target."""

    address: str
    resolution_error: bool = False


@dataclass(frozen=True)
class GatewayState:
    """Gateway tracker snapshot. address is only set while the network is available."""

    address: Optional[str] = None
    network_available: bool = False


@dataclass(frozen=True)
class TopologyState:
    """Wireless association snapshot. in_transition is owned by the coordinator."""

    bssid: Optional[str] = None
    previous_bssid: Optional[str] = None
    ssid: Optional[str] = None
    band: Optional[str] = None
    channel: int = 0
    signal_percent: int = 0
    in_transition: bool = False
    capability_enabled: bool = True


@dataclass(frozen=True)
class ProbeOutcome:
    """Result of a single probe."""

    address: str
    success: bool
    round_trip_ms: Optional[int] = None
    failure_kind: Optional[FailureKind] = None

    @classmethod
    def succeeded(cls, address: str, round_trip_ms: int) -> "ProbeOutcome":
        return cls(address, True, round_trip_ms)

    @classmethod
    def failed(cls, address: str, failure_kind: FailureKind) -> "ProbeOutcome":
        return cls(address, False, None, failure_kind)


@dataclass(frozen=True)
class Status:
    """The fused value handed to the presentation layer."""

    display_text: str = "--"
    tooltip_lines: Tuple[str, ...] = field(default_factory=lambda: ("Initializing...",))
    is_error: bool = False
    is_transition: bool = False
    use_dark_text: bool = False

    @property
    def tooltip(self) -> str:
        return "\n".join(self.tooltip_lines)
