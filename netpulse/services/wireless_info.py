"""
Wireless info sources.

Each source runs the platform's "show wireless interface" tool and turns
its free-form output into a WirelessQueryResult. Field parsing is lenient:
a field that cannot be read defaults to empty/zero instead of failing the query.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from loguru import logger

from netpulse.core.constants import WIRELESS_COMMAND_TIMEOUT
from netpulse.utils.platform_utils import Platform, PlatformUtils
from netpulse.utils.process_utils import CommandResult, ProcessUtils

MAC_PATTERN = r"[0-9A-Fa-f]{2}(?::[0-9A-Fa-f]{2}){5}"

# netsh wlan show interfaces
NETSH_BSSID_RE = re.compile(rf"^\s*(?:AP\s+)?BSSID\s*:\s*({MAC_PATTERN})", re.IGNORECASE | re.MULTILINE)
NETSH_SSID_RE = re.compile(r"^\s*SSID\s*:\s*(.*?)\s*$", re.MULTILINE)
NETSH_SIGNAL_RE = re.compile(r"^\s*Signal\s*:\s*(\d+)\s*%", re.IGNORECASE | re.MULTILINE)
NETSH_CHANNEL_RE = re.compile(r"^\s*Channel\s*:\s*(\d+)", re.IGNORECASE | re.MULTILINE)
NETSH_BAND_RE = re.compile(r"^\s*Band\s*:\s*(.+?)\s*$", re.IGNORECASE | re.MULTILINE)
NETSH_RADIO_RE = re.compile(r"^\s*Radio type\s*:\s*(.+?)\s*$", re.IGNORECASE | re.MULTILINE)

NETSH_PERMISSION_MARKERS = ("location permission",)
NETSH_NO_INTERFACE_MARKERS = (
    "there is no wireless interface",
    "wireless autoconfig service (wlansvc) is not running",
)
NMCLI_PERMISSION_MARKERS = ("not authorized", "insufficient privileges", "permission denied")


class WirelessQueryStatus(Enum):
    """Outcome class of a wireless query."""

    OK = "ok"
    PERMISSION_DENIED = "permission_denied"
    NO_INTERFACE = "no_interface"
    FAILED = "failed"


@dataclass(frozen=True)
class WirelessReading:
    """Parsed association details. bssid is None when not associated."""

    bssid: Optional[str] = None
    ssid: Optional[str] = None
    band: Optional[str] = None
    channel: int = 0
    signal_percent: int = 0
    radio_type: Optional[str] = None


@dataclass(frozen=True)
class WirelessQueryResult:
    status: WirelessQueryStatus
    reading: Optional[WirelessReading] = None
    detail: str = ""

    @classmethod
    def ok(cls, reading: WirelessReading) -> "WirelessQueryResult":
        return cls(WirelessQueryStatus.OK, reading)


def band_from_channel(channel: int, radio_type: Optional[str] = None) -> Optional[str]:
    """Best-effort band name when the tool does not report one."""
    if channel <= 0:
        return None
    if radio_type and "6e" in radio_type.lower():
        return "6 GHz"
    if channel <= 14:
        return "2.4 GHz"
    return "5 GHz"


def band_from_frequency(freq_mhz: int) -> Optional[str]:
    if freq_mhz <= 0:
        return None
    if freq_mhz < 3000:
        return "2.4 GHz"
    if freq_mhz < 5925:
        return "5 GHz"
    return "6 GHz"


def _match(pattern: re.Pattern, text: str) -> Optional[str]:
    try:
        match = pattern.search(text)
        return match.group(1).strip() if match else None
    except (AttributeError, IndexError, TypeError) as e:
        logger.debug(f"[WirelessInfo] Could not read field {pattern.pattern!r}: {e}")
        return None


def _match_int(pattern: re.Pattern, text: str) -> int:
    value = _match(pattern, text)
    try:
        return int(value) if value else 0
    except ValueError:
        return 0


def parse_netsh_output(output: str) -> WirelessReading:
    """Parse `netsh wlan show interfaces` output; each field independently defaults."""
    bssid = _match(NETSH_BSSID_RE, output)
    channel = _match_int(NETSH_CHANNEL_RE, output)
    radio_type = _match(NETSH_RADIO_RE, output)
    band = _match(NETSH_BAND_RE, output) or band_from_channel(channel, radio_type)

    return WirelessReading(
        bssid=bssid.lower() if bssid else None,
        ssid=_match(NETSH_SSID_RE, output) or None,
        band=band,
        channel=channel,
        signal_percent=_match_int(NETSH_SIGNAL_RE, output),
        radio_type=radio_type,
    )


def classify_netsh_failure(result: CommandResult) -> WirelessQueryResult:
    text = result.output.lower()
    if any(marker in text for marker in NETSH_PERMISSION_MARKERS) or ("error 5" in text and "requires elevation" in text):
        return WirelessQueryResult(WirelessQueryStatus.PERMISSION_DENIED, detail=result.output.strip())
    if any(marker in text for marker in NETSH_NO_INTERFACE_MARKERS):
        return WirelessQueryResult(WirelessQueryStatus.NO_INTERFACE, detail=result.output.strip())
    return WirelessQueryResult(
        WirelessQueryStatus.FAILED, detail=f"netsh exited with code {result.returncode}"
    )


def _split_terse(line: str) -> List[str]:
    """Split an nmcli terse line on unescaped colons."""
    fields, current, escaped = [], [], False
    for char in line:
        if escaped:
            current.append(char)
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == ":":
            fields.append("".join(current))
            current = []
        else:
            current.append(char)
    fields.append("".join(current))
    return fields


def parse_nmcli_output(output: str) -> WirelessReading:
    """
    Parse `nmcli -t -f ACTIVE,BSSID,SSID,CHAN,FREQ,SIGNAL device wifi list`.

    Only the active row is read; no active row means not associated.
    """
    for line in output.splitlines():
        fields = _split_terse(line.strip())
        if len(fields) < 2 or fields[0].lower() not in ("yes", "*"):
            continue

        fields += [""] * (6 - len(fields))
        _, bssid, ssid, chan, freq, signal = fields[:6]

        def _int(value: str) -> int:
            digits = re.match(r"\s*(\d+)", value or "")
            return int(digits.group(1)) if digits else 0

        channel = _int(chan)
        bssid = bssid if re.fullmatch(MAC_PATTERN, bssid or "") else None
        return WirelessReading(
            bssid=bssid.lower() if bssid else None,
            ssid=ssid or None,
            band=band_from_frequency(_int(freq)) or band_from_channel(channel),
            channel=channel,
            signal_percent=_int(signal),
        )
    return WirelessReading()


class NetshWirelessSource:
    """Windows: netsh wlan show interfaces."""

    COMMAND = ["netsh", "wlan", "show", "interfaces"]

    def __init__(self, runner: Optional[Callable[..., Optional[CommandResult]]] = None):
        self._run = runner or ProcessUtils.run_command_sync

    def query(self) -> WirelessQueryResult:
        try:
            result = self._run(self.COMMAND, timeout=WIRELESS_COMMAND_TIMEOUT)
        except FileNotFoundError:
            return WirelessQueryResult(WirelessQueryStatus.NO_INTERFACE, detail="netsh not found")

        if result is None:
            return WirelessQueryResult(WirelessQueryStatus.FAILED, detail="netsh did not complete")
        if result.returncode != 0:
            return classify_netsh_failure(result)

        lowered = result.output.lower()
        if any(marker in lowered for marker in NETSH_NO_INTERFACE_MARKERS):
            return WirelessQueryResult(WirelessQueryStatus.NO_INTERFACE, detail=result.output.strip())
        return WirelessQueryResult.ok(parse_netsh_output(result.stdout))


class NmcliWirelessSource:
    """Linux: NetworkManager's nmcli in terse mode."""

    DEVICE_COMMAND = ["nmcli", "-t", "-f", "TYPE", "device", "status"]
    LIST_COMMAND = [
        "nmcli", "-t", "-f", "ACTIVE,BSSID,SSID,CHAN,FREQ,SIGNAL",
        "device", "wifi", "list", "--rescan", "no",
    ]

    def __init__(self, runner: Optional[Callable[..., Optional[CommandResult]]] = None):
        self._run = runner or ProcessUtils.run_command_sync
        self._has_wifi_device: Optional[bool] = None

    def _classify_failure(self, result: CommandResult) -> WirelessQueryResult:
        text = result.output.lower()
        if any(marker in text for marker in NMCLI_PERMISSION_MARKERS):
            return WirelessQueryResult(WirelessQueryStatus.PERMISSION_DENIED, detail=result.output.strip())
        return WirelessQueryResult(WirelessQueryStatus.FAILED, detail=f"nmcli exited with code {result.returncode}")

    def query(self) -> WirelessQueryResult:
        try:
            if self._has_wifi_device is None:
                devices = self._run(self.DEVICE_COMMAND, timeout=WIRELESS_COMMAND_TIMEOUT)
                if devices is None:
                    return WirelessQueryResult(WirelessQueryStatus.FAILED, detail="nmcli did not complete")
                if devices.returncode != 0:
                    return self._classify_failure(devices)
                self._has_wifi_device = any(line.strip() == "wifi" for line in devices.stdout.splitlines())

            if not self._has_wifi_device:
                return WirelessQueryResult(WirelessQueryStatus.NO_INTERFACE, detail="no wifi device")

            result = self._run(self.LIST_COMMAND, timeout=WIRELESS_COMMAND_TIMEOUT)
        except FileNotFoundError:
            return WirelessQueryResult(WirelessQueryStatus.NO_INTERFACE, detail="nmcli not found")

        if result is None:
            return WirelessQueryResult(WirelessQueryStatus.FAILED, detail="nmcli did not complete")
        if result.returncode != 0:
            return self._classify_failure(result)
        return WirelessQueryResult.ok(parse_nmcli_output(result.stdout))


class UnsupportedWirelessSource:
    """Platforms without a supported wireless tool."""

    def query(self) -> WirelessQueryResult:
        return WirelessQueryResult(WirelessQueryStatus.NO_INTERFACE, detail="unsupported platform")


def default_wireless_source():
    platform = PlatformUtils.get_platform()
    if platform == Platform.WINDOWS:
        return NetshWirelessSource()
    if platform == Platform.LINUX:
        return NmcliWirelessSource()
    return UnsupportedWirelessSource()
