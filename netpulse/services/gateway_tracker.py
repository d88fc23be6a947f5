"""
Gateway Tracker - Keeps the default gateway current.

Two redundant paths feed discovery:
- link watcher notifications (availability flips, address changes)
- a periodic poll, since change notifications miss some gateway moves

Emits:
    gateway_changed(Optional[str])
    network_availability_changed(bool)
"""

import threading
from dataclasses import replace
from typing import Callable, Optional

from loguru import logger

from netpulse.core.constants import GATEWAY_POLL_INTERVAL_MS, NETWORK_STABILIZE_DELAY_MS
from netpulse.core.errors import ComponentDisposedError, InitializationError
from netpulse.core.signals import EventHook
from netpulse.core.types import GatewayState
from netpulse.services.network_change_watcher import NetworkChangeWatcher
from netpulse.utils.network_interface import GatewayDiscovery
from netpulse.utils.scheduler import Scheduler, TimerHandle


class GatewayTracker:
    """Detects the OS default gateway and publishes changes."""

    def __init__(
        self,
        scheduler: Optional[Scheduler] = None,
        discover: Optional[Callable[[], Optional[str]]] = None,
        watcher: Optional[NetworkChangeWatcher] = None,
        poll_interval_ms: int = GATEWAY_POLL_INTERVAL_MS,
        stabilize_delay_ms: int = NETWORK_STABILIZE_DELAY_MS,
    ):
        self._scheduler = scheduler or Scheduler()
        self._discover = discover or GatewayDiscovery()
        self._watcher = watcher or NetworkChangeWatcher(self._scheduler)
        self._poll_interval = poll_interval_ms / 1000.0
        self._stabilize_delay = stabilize_delay_ms / 1000.0

        self.gateway_changed = EventHook("GatewayChanged")
        self.network_availability_changed = EventHook("NetworkAvailabilityChanged")

        self._lock = threading.Lock()
        # Serializes discover, commit and emit so subscribers see changes in commit order
        self._refresh_lock = threading.Lock()
        self._state = GatewayState()
        self._monitoring = False
        self._disposed = False
        self._poll_timer: Optional[TimerHandle] = None
        self._stabilize_timer: Optional[TimerHandle] = None

    def _ensure_not_disposed(self):
        if self._disposed:
            raise ComponentDisposedError("GatewayTracker")

    # --- Reads ---

    def current_gateway(self) -> Optional[str]:
        self._ensure_not_disposed()
        with self._lock:
            return self._state.address

    def is_network_available(self) -> bool:
        self._ensure_not_disposed()
        with self._lock:
            return self._state.network_available

    def state(self) -> GatewayState:
        self._ensure_not_disposed()
        with self._lock:
            return self._state

    @property
    def is_monitoring(self) -> bool:
        with self._lock:
            return self._monitoring

    # --- Lifecycle ---

    def initialize(self):
        """
        Discover the gateway once (blocking) and start monitoring.

        A failed discovery leaves the address empty; failing to read the
        interface table at all is unrecoverable and raises InitializationError.
        """
        self._ensure_not_disposed()
        try:
            available = self._watcher.is_network_available()
        except Exception as e:
            logger.error(f"[GatewayTracker] Cannot read network interfaces: {e}")
            raise InitializationError("network interfaces are not readable", e) from e

        with self._lock:
            self._state = replace(self._state, network_available=available)

        self.update_gateway()
        self.start_monitoring()
        logger.info(
            f"[GatewayTracker] Initialized (gateway={self.current_gateway() or 'none'}, available={available})"
        )

    def start_monitoring(self):
        self._ensure_not_disposed()
        with self._lock:
            if self._monitoring:
                return
            self._monitoring = True

        self._watcher.availability_changed.connect(self._on_availability_changed)
        self._watcher.address_changed.connect(self._on_address_changed)
        self._watcher.start()
        self._poll_timer = self._scheduler.call_every(self._poll_interval, self._poll, name="GatewayTracker-poll")

    def stop_monitoring(self):
        with self._lock:
            if not self._monitoring:
                return
            self._monitoring = False
            timers = [self._poll_timer, self._stabilize_timer]
            self._poll_timer = None
            self._stabilize_timer = None

        for timer in timers:
            if timer is not None:
                timer.cancel()
        self._watcher.stop()
        self._watcher.availability_changed.disconnect(self._on_availability_changed)
        self._watcher.address_changed.disconnect(self._on_address_changed)
        logger.debug("[GatewayTracker] Monitoring stopped")

    def dispose(self):
        if self._disposed:
            return
        self.stop_monitoring()
        self._disposed = True
        self.gateway_changed.clear()
        self.network_availability_changed.clear()
        logger.debug("[GatewayTracker] Disposed")

    # --- Discovery ---

    def update_gateway(self, force: bool = False) -> bool:
        """
        Re-run discovery.

        Args:
            force: Emit gateway_changed even when the address is unchanged

        Returns:
            True if the address changed
        """
        self._ensure_not_disposed()
        with self._refresh_lock:
            return self._update_gateway_locked(force)

    def _update_gateway_locked(self, force: bool) -> bool:
        with self._lock:
            available = self._state.network_available

        new_gateway = None
        if available:
            try:
                new_gateway = self._discover()
            except Exception as e:
                logger.warning(f"[GatewayTracker] Gateway discovery failed: {e}")
                new_gateway = None

        with self._lock:
            if self._disposed:
                return False
            # Network may have dropped while discovery was running
            if not self._state.network_available:
                new_gateway = None
            old_gateway = self._state.address
            changed = new_gateway != old_gateway
            self._state = replace(self._state, address=new_gateway)

        if changed:
            logger.info(f"[GatewayTracker] Gateway changed: {old_gateway or 'none'} -> {new_gateway or 'none'}")
        if changed or force:
            self.gateway_changed.emit(new_gateway)
        return changed

    def force_refresh(self) -> bool:
        """Re-run discovery now and always re-emit gateway_changed. Returns whether it changed."""
        return self.update_gateway(force=True)

    # --- Notification handlers ---

    def _on_availability_changed(self, available: bool):
        with self._refresh_lock:
            self._apply_availability(available)

    def _apply_availability(self, available: bool):
        with self._lock:
            if not self._monitoring:
                return
            old_gateway = self._state.address
            if available:
                self._state = replace(self._state, network_available=True)
            else:
                self._state = GatewayState(address=None, network_available=False)
            stale_timer, self._stabilize_timer = self._stabilize_timer, None

        if stale_timer is not None:
            stale_timer.cancel()

        if not available:
            if old_gateway is not None:
                logger.info("[GatewayTracker] Network down, clearing gateway")
                self.gateway_changed.emit(None)
            self.network_availability_changed.emit(False)
            return

        self.network_availability_changed.emit(True)
        # Give the interface time to finish configuring before reading routes
        timer = self._scheduler.call_later(
            self._stabilize_delay, self._refresh_after_stabilize, name="GatewayTracker-stabilize"
        )
        with self._lock:
            if self._monitoring:
                self._stabilize_timer = timer
                timer = None
        if timer is not None:
            timer.cancel()

    def _refresh_after_stabilize(self):
        with self._lock:
            if not self._monitoring:
                return
            self._stabilize_timer = None
        self.force_refresh()

    def _on_address_changed(self):
        if self.is_monitoring:
            self.update_gateway()

    def _poll(self):
        if self.is_monitoring:
            self.update_gateway()
