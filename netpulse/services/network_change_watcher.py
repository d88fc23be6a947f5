"""Link watcher - stands in for OS network change notifications."""

import threading
from typing import Callable, Dict, Optional

from loguru import logger

from netpulse.core.constants import LINK_WATCH_INTERVAL_MS
from netpulse.core.signals import EventHook
from netpulse.utils.network_interface import interface_link_summary
from netpulse.utils.scheduler import Scheduler, TimerHandle


class NetworkChangeWatcher:
    """
    Samples interface state and reports changes.

    Emits:
        availability_changed(bool): some non-loopback interface is up with an IPv4 address, or not
        address_changed(): the set of interfaces/addresses changed without an availability flip
    """

    def __init__(
        self,
        scheduler: Optional[Scheduler] = None,
        link_summary: Optional[Callable[[], Dict[str, tuple]]] = None,
        interval_ms: int = LINK_WATCH_INTERVAL_MS,
    ):
        self._scheduler = scheduler or Scheduler()
        self._link_summary = link_summary or interface_link_summary
        self._interval = interval_ms / 1000.0

        self.availability_changed = EventHook("NetworkAvailabilityChanged")
        self.address_changed = EventHook("NetworkAddressChanged")

        self._lock = threading.Lock()
        self._timer: Optional[TimerHandle] = None
        self._last_summary: Optional[Dict[str, tuple]] = None
        self._available = False

    @staticmethod
    def _is_available(summary: Dict[str, tuple]) -> bool:
        return any(isup and addresses for isup, addresses in summary.values())

    def is_network_available(self) -> bool:
        """Sample now; raises if interface enumeration itself is broken."""
        return self._is_available(self._link_summary())

    def start(self):
        with self._lock:
            if self._timer is not None:
                return
            self._last_summary = self._link_summary()
            self._available = self._is_available(self._last_summary)
            self._timer = self._scheduler.call_every(self._interval, self._check, name="NetworkChangeWatcher")
        logger.debug(f"[NetworkChangeWatcher] Started (available={self._available})")

    def stop(self):
        with self._lock:
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()
            logger.debug("[NetworkChangeWatcher] Stopped")

    def _check(self):
        try:
            summary = self._link_summary()
        except Exception as e:
            logger.warning(f"[NetworkChangeWatcher] Failed to sample interfaces: {e}")
            return

        with self._lock:
            if self._timer is None:
                return
            available = self._is_available(summary)
            availability_flipped = available != self._available
            addresses_changed = summary != self._last_summary
            self._available = available
            self._last_summary = summary

        if availability_flipped:
            logger.info(f"[NetworkChangeWatcher] Network {'available' if available else 'unavailable'}")
            self.availability_changed.emit(available)
        elif addresses_changed:
            logger.debug("[NetworkChangeWatcher] Interface addresses changed")
            self.address_changed.emit()
