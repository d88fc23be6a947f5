"""
Topology Tracker - Wireless association monitor.

Polls the wireless info source and reports facts:
    bssid_changed(old, new)      association moved (either side may be None)
    signal_strength_changed(pct) signal moved more than the threshold on the same BSSID
    capability_changed(enabled)  wireless queries denied / allowed again

Small signal jitter is not surfaced. The debounce window after a BSSID change
belongs to the StatusCoordinator, not to this tracker.
"""

import threading
from dataclasses import replace
from typing import Optional

from loguru import logger

from netpulse.core.constants import SIGNAL_CHANGE_THRESHOLD, TOPOLOGY_POLL_INTERVAL_MS
from netpulse.core.errors import ComponentDisposedError
from netpulse.core.signals import EventHook
from netpulse.core.types import TopologyState
from netpulse.services.wireless_info import (
    WirelessQueryResult,
    WirelessQueryStatus,
    WirelessReading,
    default_wireless_source,
)
from netpulse.utils.scheduler import Scheduler, TimerHandle


class TopologyTracker:
    """Tracks the associated access point (BSSID/SSID/band/signal)."""

    def __init__(
        self,
        wireless_source=None,
        scheduler: Optional[Scheduler] = None,
        poll_interval_ms: int = TOPOLOGY_POLL_INTERVAL_MS,
        signal_threshold: int = SIGNAL_CHANGE_THRESHOLD,
    ):
        self._source = wireless_source or default_wireless_source()
        self._scheduler = scheduler or Scheduler()
        self._poll_interval = poll_interval_ms / 1000.0
        self._signal_threshold = signal_threshold

        self.bssid_changed = EventHook("BssidChanged")
        self.signal_strength_changed = EventHook("SignalStrengthChanged")
        self.capability_changed = EventHook("CapabilityChanged")

        self._lock = threading.Lock()
        self._state = TopologyState()
        self._wireless_supported = True
        self._running = False
        self._disposed = False
        self._timer: Optional[TimerHandle] = None

    # --- Reads ---

    def current(self) -> TopologyState:
        """Snapshot of the current association (in_transition is always False here)."""
        if self._disposed:
            raise ComponentDisposedError("TopologyTracker")
        with self._lock:
            return self._state

    @property
    def wireless_supported(self) -> bool:
        """False once the platform reported that it has no wireless interface."""
        with self._lock:
            return self._wireless_supported

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._running

    # --- Lifecycle ---

    def start(self):
        """Run one check immediately, then poll. No-op if already running."""
        if self._disposed:
            raise ComponentDisposedError("TopologyTracker")

        with self._lock:
            if self._running:
                return
            self._running = True
            self._state = TopologyState()

        logger.info("[TopologyTracker] Starting wireless monitoring")
        self.check_now()

        with self._lock:
            if not self._running or not self._wireless_supported:
                return
            self._timer = self._scheduler.call_every(self._poll_interval, self.check_now, name="TopologyTracker-poll")

    def stop(self):
        with self._lock:
            if not self._running:
                return
            self._running = False
            timer, self._timer = self._timer, None
            self._state = TopologyState()

        if timer is not None:
            timer.cancel()
        logger.info("[TopologyTracker] Wireless monitoring stopped")

    def dispose(self):
        if self._disposed:
            return
        self.stop()
        self._disposed = True
        self.bssid_changed.clear()
        self.signal_strength_changed.clear()
        self.capability_changed.clear()

    # --- Polling ---

    def check_now(self):
        """Query the wireless source once and publish any changes."""
        with self._lock:
            if not self._running or not self._wireless_supported:
                return

        try:
            result = self._source.query()
        except Exception as e:
            logger.opt(exception=e).error(f"[TopologyTracker] Error querying wireless state: {e}")
            return

        try:
            self._apply(result)
        except Exception as e:
            logger.opt(exception=e).error(f"[TopologyTracker] Error applying wireless state: {e}")

    def _apply(self, result: WirelessQueryResult):
        events = []

        with self._lock:
            if not self._running:
                return

            if result.status == WirelessQueryStatus.NO_INTERFACE:
                self._wireless_supported = False
                timer, self._timer = self._timer, None
                was_enabled = self._state.capability_enabled
                self._state = replace(TopologyState(), capability_enabled=False)
                logger.info(f"[TopologyTracker] No wireless interface ({result.detail}); disabled for this session")
                if timer is not None:
                    timer.cancel()
                if was_enabled:
                    events.append((self.capability_changed, (False,)))

            elif result.status == WirelessQueryStatus.PERMISSION_DENIED:
                if self._state.capability_enabled:
                    self._state = replace(self._state, capability_enabled=False)
                    logger.error("[TopologyTracker] Wireless query denied (location permission or elevation required)")
                    events.append((self.capability_changed, (False,)))

            elif result.status == WirelessQueryStatus.FAILED:
                logger.error(f"[TopologyTracker] Wireless query failed: {result.detail}")

            else:
                if not self._state.capability_enabled:
                    self._state = replace(self._state, capability_enabled=True)
                    logger.info("[TopologyTracker] Wireless queries allowed again")
                    events.append((self.capability_changed, (True,)))
                events.extend(self._apply_reading(result.reading or WirelessReading()))

        for hook, args in events:
            hook.emit(*args)

    def _apply_reading(self, reading: WirelessReading) -> list:
        """Fold a reading into the state. Caller holds the lock."""
        state = self._state
        current = state.bssid

        if not reading.bssid:
            if current is None:
                return []
            logger.info("[TopologyTracker] WiFi connection lost")
            self._state = replace(
                TopologyState(), previous_bssid=current, capability_enabled=state.capability_enabled
            )
            return [(self.bssid_changed, (current, None))]

        if reading.bssid != current:
            if current is None:
                logger.info(
                    f"[TopologyTracker] Connected - BSSID: {reading.bssid}, Channel: {reading.channel}, "
                    f"Band: {reading.band}, SSID: {reading.ssid}"
                )
            else:
                logger.info(
                    "[TopologyTracker] Network transition detected:\n"
                    f"  From: BSSID={current}, Channel={state.channel}, Band={state.band or 'unknown'}, "
                    f"SSID={state.ssid or 'unknown'}\n"
                    f"  To: BSSID={reading.bssid}, Channel={reading.channel}, Band={reading.band}, SSID={reading.ssid}"
                )
            self._state = replace(
                state,
                bssid=reading.bssid,
                previous_bssid=current,
                ssid=reading.ssid,
                band=reading.band,
                channel=reading.channel,
                signal_percent=reading.signal_percent,
            )
            return [(self.bssid_changed, (current, reading.bssid))]

        if abs(reading.signal_percent - state.signal_percent) > self._signal_threshold:
            logger.info(
                f"[TopologyTracker] Signal strength changed from {state.signal_percent}% to "
                f"{reading.signal_percent}% (Channel: {reading.channel}, Band: {reading.band}, SSID: {reading.ssid})"
            )
            self._state = replace(
                state,
                signal_percent=reading.signal_percent,
                ssid=reading.ssid,
                band=reading.band,
                channel=reading.channel,
            )
            return [(self.signal_strength_changed, (reading.signal_percent,))]

        if (reading.channel, reading.band, reading.ssid) != (state.channel, state.band, state.ssid):
            logger.info(
                f"[TopologyTracker] Network details changed for BSSID {reading.bssid}: "
                f"Channel={state.channel}->{reading.channel}, Band={state.band}->{reading.band}, "
                f"SSID={state.ssid}->{reading.ssid}"
            )
            self._state = replace(state, channel=reading.channel, band=reading.band, ssid=reading.ssid)
        return []
