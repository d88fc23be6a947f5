"""Shared fixtures: simulated time and fake network collaborators."""

import socket
from collections import namedtuple
from typing import Callable, List, Optional

import pytest

from netpulse.core.types import Status
from netpulse.services.wireless_info import WirelessQueryResult, WirelessReading

StatEntry = namedtuple("StatEntry", ["isup", "speed"])
AddrEntry = namedtuple("AddrEntry", ["family", "address"])


class ManualTimer:
    """Timer handle driven by ManualScheduler.advance()."""

    def __init__(self, scheduler: "ManualScheduler", delay: float, callback: Callable, repeat: bool, name: str):
        if delay <= 0:
            raise ValueError(f"Timer delay must be positive, got {delay}")
        self.delay = delay
        self.callback = callback
        self.repeat = repeat
        self.name = name
        self.due = scheduler.now + delay
        self.cancelled = False

    @property
    def active(self) -> bool:
        return not self.cancelled

    def cancel(self, wait: bool = False, timeout: float = 2.0) -> None:
        self.cancelled = True


class ManualScheduler:
    """
    Scheduler with simulated time.

    submit() runs the job inline, so background work completes before the call returns.
    """

    def __init__(self):
        self.now = 0.0
        self.timers: List[ManualTimer] = []
        self.submitted: List[str] = []

    def call_later(self, delay, callback, name="manual-oneshot"):
        timer = ManualTimer(self, delay, callback, False, name)
        self.timers.append(timer)
        return timer

    def call_every(self, interval, callback, name="manual-ticker"):
        timer = ManualTimer(self, interval, callback, True, name)
        self.timers.append(timer)
        return timer

    def submit(self, callback, name="manual-task"):
        self.submitted.append(name)
        callback()
        return None

    def active_timers(self, name: Optional[str] = None) -> List[ManualTimer]:
        return [t for t in self.timers if t.active and (name is None or t.name == name)]

    def advance(self, seconds: float) -> None:
        """Move time forward, firing due timers in order."""
        target = self.now + seconds
        while True:
            due = [t for t in self.timers if t.active and t.due <= target + 1e-9]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            self.now = max(self.now, timer.due)
            if timer.repeat:
                timer.due += timer.delay
            else:
                timer.cancelled = True
            timer.callback()
        self.now = target


class RecordingSink:
    """Presentation sink that keeps every published Status."""

    def __init__(self):
        self.statuses: List[Status] = []

    def on_status_changed(self, status: Status) -> None:
        self.statuses.append(status)

    @property
    def last(self) -> Status:
        return self.statuses[-1]


class FakeNetwork:
    """Mutable interface table for the link watcher and gateway discovery."""

    def __init__(self, gateway: Optional[str] = "192.168.1.1", up: bool = True):
        self.gateway = gateway
        self.up = up
        self.address = "192.168.1.50"
        self.broken = False

    def link_summary(self):
        if self.broken:
            raise OSError("interface table unavailable")
        return {"wlan0": (self.up, (self.address,) if self.up else ())}

    def discover(self):
        return self.gateway if self.up else None

    def if_stats(self):
        return {"wlan0": StatEntry(self.up, 300)}

    def if_addrs(self):
        return {"wlan0": [AddrEntry(socket.AF_INET, self.address)]}


class FakePing:
    """ping3.ping stand-in; replies come from a queue or a fixed value."""

    def __init__(self, reply=23.4):
        self.reply = reply
        self.replies = []
        self.calls = []

    def __call__(self, address, timeout=None, unit="ms"):
        self.calls.append((address, timeout, unit))
        reply = self.replies.pop(0) if self.replies else self.reply
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeWirelessSource:
    """Wireless source whose next query result is set by the test."""

    def __init__(self, result=None):
        self.result = result or WirelessQueryResult.ok(WirelessReading())
        self.queries = 0

    def connect(self, bssid, signal=70, ssid="HomeNet", band="5 GHz", channel=36):
        self.result = WirelessQueryResult.ok(
            WirelessReading(bssid=bssid, ssid=ssid, band=band, channel=channel, signal_percent=signal)
        )

    def disconnect(self):
        self.result = WirelessQueryResult.ok(WirelessReading())

    def fail(self, status):
        self.result = WirelessQueryResult(status, detail="fake")

    def query(self):
        self.queries += 1
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def network():
    return FakeNetwork()


@pytest.fixture
def fake_ping():
    return FakePing()
