"""
Status Coordinator - Fuses gateway, topology and probe events into one Status.

The coordinator is the single owner of the fused state (active target,
resolved address, last outcome, transition window). Every callback may
arrive on its own timer/notification thread:

- state is mutated under one lock, and each computed Status gets a
  sequence number under that same lock
- publication to the presentation sink happens outside the state lock,
  under a re-entrant publish lock; an older Status is never published
  after a newer one
- the transition window after a BSSID change is cleared by a one-shot
  timer, never by another event
"""

import threading
from dataclasses import replace
from typing import Callable, Optional, Tuple

from loguru import logger

from netpulse.core.constants import (
    BSSID_TRANSITION_WINDOW_MS,
    PROBE_INTERVAL_MS,
    PROBE_TIMEOUT_MS,
)
from netpulse.core.errors import ComponentDisposedError, InitializationError
from netpulse.core.protocols import NamedAPStore, PresentationSink
from netpulse.core.status_formatter import build_status, init_failed_status
from netpulse.core.types import (
    FailureKind,
    OutcomeKind,
    PingTarget,
    ProbeOutcome,
    ResolvedAddress,
    Status,
    TopologyState,
)
from netpulse.services.gateway_tracker import GatewayTracker
from netpulse.services.host_resolver import HostResolver
from netpulse.services.probe_engine import ProbeEngine
from netpulse.services.topology_tracker import TopologyTracker
from netpulse.utils.scheduler import Scheduler, TimerHandle


class StatusCoordinator:
    """Owns the active target and computes the authoritative Status."""

    def __init__(
        self,
        gateway_tracker: GatewayTracker,
        topology_tracker: TopologyTracker,
        probe_engine: ProbeEngine,
        resolver: HostResolver,
        ap_store: NamedAPStore,
        presentation: PresentationSink,
        scheduler: Optional[Scheduler] = None,
        on_notification: Optional[Callable[[str], None]] = None,
        probe_interval_ms: int = PROBE_INTERVAL_MS,
        probe_timeout_ms: int = PROBE_TIMEOUT_MS,
        transition_window_ms: int = BSSID_TRANSITION_WINDOW_MS,
    ):
        """
        Args:
            gateway_tracker: Default gateway source
            topology_tracker: Wireless association source
            probe_engine: Liveness prober
            resolver: Custom host resolver
            ap_store: Access point names and last custom target
            presentation: Receives every published Status
            scheduler: Timer provider for the transition window and DNS jobs
            on_notification: Optional sink for "Connected to ..." style messages
        """
        if probe_interval_ms <= 0 or probe_timeout_ms <= 0 or transition_window_ms <= 0:
            raise ValueError("probe interval, probe timeout and transition window must be positive")

        self._gateway_tracker = gateway_tracker
        self._topology_tracker = topology_tracker
        self._probe_engine = probe_engine
        self._resolver = resolver
        self._ap_store = ap_store
        self._presentation = presentation
        self._scheduler = scheduler or Scheduler()
        self._on_notification = on_notification
        self._probe_interval_ms = probe_interval_ms
        self._probe_timeout_ms = probe_timeout_ms
        self._transition_window = transition_window_ms / 1000.0

        self._lock = threading.Lock()
        self._publish_lock = threading.RLock()

        # Fused state, guarded by _lock
        self._target = PingTarget.default_gateway()
        self._resolved: Optional[ResolvedAddress] = None
        self._gateway: Optional[str] = None
        self._network_available = False
        self._topology = TopologyState()
        self._ap_name: Optional[str] = None
        self._wireless_supported = True
        self._outcome = OutcomeKind.UNKNOWN
        self._round_trip_ms: Optional[int] = None
        self._failure_kind: Optional[FailureKind] = None
        self._status = Status()
        self._seq = 0
        self._resolve_generation = 0
        self._transition_generation = 0
        self._transition_timer: Optional[TimerHandle] = None
        self._running = False
        self._stopped = False

        # Guarded by _publish_lock
        self._published_seq = 0

        self._connect_hooks()

    # --- Wiring ---

    def _hooks(self):
        return [
            (self._gateway_tracker.gateway_changed, self._on_gateway_changed),
            (self._gateway_tracker.network_availability_changed, self._on_network_availability_changed),
            (self._topology_tracker.bssid_changed, self._on_bssid_changed),
            (self._topology_tracker.signal_strength_changed, self._on_signal_strength_changed),
            (self._topology_tracker.capability_changed, self._on_capability_changed),
            (self._probe_engine.probe_completed, self._on_probe_completed),
            (self._probe_engine.probe_failed, self._on_probe_failed),
        ]

    def _connect_hooks(self):
        for hook, handler in self._hooks():
            hook.connect(handler)

    def _disconnect_hooks(self):
        for hook, handler in self._hooks():
            hook.disconnect(handler)

    def _ensure_not_stopped(self):
        if self._stopped:
            raise ComponentDisposedError("StatusCoordinator")

    # --- Public reads ---

    def current_status(self) -> Status:
        self._ensure_not_stopped()
        with self._lock:
            return self._status

    @property
    def active_target(self) -> PingTarget:
        self._ensure_not_stopped()
        with self._lock:
            return self._target

    @property
    def resolved_address(self) -> Optional[ResolvedAddress]:
        self._ensure_not_stopped()
        with self._lock:
            return self._resolved

    @property
    def is_running(self) -> bool:
        self._ensure_not_stopped()
        with self._lock:
            return self._running

    def get_display_name(self, bssid: str) -> str:
        """Friendly name for a BSSID; safe to call from the presentation sink."""
        try:
            return self._ap_store.get_display_name(bssid)
        except Exception as e:
            logger.warning(f"[StatusCoordinator] Could not read name for {bssid}: {e}")
            return bssid

    # --- Lifecycle ---

    def start(self):
        """
        Restore the persisted target, initialize the trackers and start probing.

        Raises:
            InitializationError: gateway monitoring could not be set up
        """
        self._ensure_not_stopped()
        with self._lock:
            if self._running:
                return

        target = self._restore_target()
        with self._lock:
            self._target = target
            self._outcome = OutcomeKind.UNKNOWN
            status, seq = self._snapshot_locked()
        self._publish(status, seq)

        try:
            self._gateway_tracker.initialize()
        except Exception as e:
            error = e if isinstance(e, InitializationError) else InitializationError(str(e), e)
            logger.opt(exception=e).error(f"[StatusCoordinator] Startup failed: {e}")
            with self._lock:
                self._status = init_failed_status("initialization failed")
                self._seq += 1
                status, seq = self._status, self._seq
            self._publish(status, seq)
            if error is e:
                raise
            raise error from e

        resolved = None
        if target.is_custom:
            resolved = self._resolver.resolve(target.user_input)

        with self._lock:
            self._running = True

        gateway_state = self._gateway_tracker.state()
        with self._lock:
            self._network_available = gateway_state.network_available
            self._gateway = gateway_state.address
            if target.is_custom:
                self._resolved = resolved
            elif gateway_state.address:
                self._resolved = ResolvedAddress(gateway_state.address)
            self._outcome = self._idle_outcome_locked()
            status, seq = self._snapshot_locked()
        self._publish(status, seq)

        logger.info(f"[StatusCoordinator] Started with target {self._describe_target(target)}")

        self._topology_tracker.start()
        with self._lock:
            self._wireless_supported = self._topology_tracker.wireless_supported
            status, seq = self._snapshot_locked()
        self._publish(status, seq)

        self._probe_engine.start_schedule(self._probe_interval_ms, self._current_probe_address, self._probe_timeout_ms)
        self._request_probe()

    def stop(self):
        """Tear down in dependency order. Safe to call more than once."""
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            self._running = False
            self._resolve_generation += 1
            self._transition_generation += 1
            timer, self._transition_timer = self._transition_timer, None

        if timer is not None:
            timer.cancel()

        for name, teardown in (
            ("probe engine", self._probe_engine.dispose),
            ("topology tracker", self._topology_tracker.dispose),
            ("gateway tracker", self._gateway_tracker.dispose),
        ):
            try:
                teardown()
            except Exception as e:
                logger.error(f"[StatusCoordinator] Error stopping {name}: {e}")

        self._disconnect_hooks()
        logger.info("[StatusCoordinator] Stopped")

    # --- Target selection ---

    def use_default_gateway(self):
        """Probe the default gateway from now on and persist the choice."""
        self._ensure_not_stopped()
        with self._lock:
            self._target = PingTarget.default_gateway()
            self._resolve_generation += 1
            self._resolved = ResolvedAddress(self._gateway) if self._gateway else None
            self._reset_outcome_locked()
            running = self._running
            status, seq = self._snapshot_locked()

        logger.info("[StatusCoordinator] Target set to default gateway")
        self._persist_target(None)
        if running:
            self._publish(status, seq)
            self._request_probe()

    def use_custom_host(self, user_input: str):
        """
        Probe a user supplied host from now on and persist the choice.

        Resolution runs in the background; an unresolvable host is still
        probed by name and reported as a DNS error.

        Raises:
            ValueError: the input is not a valid host
        """
        self._ensure_not_stopped()
        host = HostResolver.validate(user_input)

        with self._lock:
            self._target = PingTarget.custom_host(host)
            self._resolve_generation += 1
            generation = self._resolve_generation
            self._resolved = None
            self._reset_outcome_locked()
            running = self._running
            status, seq = self._snapshot_locked()

        logger.info(f"[StatusCoordinator] Target set to custom host {host}")
        self._persist_target(host)
        if running:
            self._publish(status, seq)
            self._scheduler.submit(lambda: self._resolve_and_probe(host, generation), name="StatusCoordinator-resolve")

    def _resolve_and_probe(self, host: str, generation: int):
        resolved = self._resolver.resolve(host)

        with self._lock:
            if not self._running or generation != self._resolve_generation:
                logger.debug(f"[StatusCoordinator] Discarding stale resolution of {host}")
                return
            self._resolved = resolved
            status, seq = self._snapshot_locked()

        if resolved.resolution_error:
            logger.info(f"[StatusCoordinator] {host} is unresolvable, probing by name")
        self._publish(status, seq)
        self._request_probe()

    def _restore_target(self) -> PingTarget:
        try:
            stored = self._ap_store.get_last_custom_target()
        except Exception as e:
            logger.warning(f"[StatusCoordinator] Could not read last custom target: {e}")
            stored = None

        if stored:
            try:
                return PingTarget.custom_host(HostResolver.validate(stored))
            except ValueError as e:
                logger.warning(f"[StatusCoordinator] Ignoring stored target {stored!r}: {e}")
        return PingTarget.default_gateway()

    def _persist_target(self, host: Optional[str]):
        try:
            self._ap_store.set_last_custom_target(host)
        except Exception as e:
            logger.error(f"[StatusCoordinator] Failed to persist target: {e}")

    # --- Gateway events ---

    def _on_gateway_changed(self, address: Optional[str]):
        available = None
        if address is None:
            try:
                available = self._gateway_tracker.is_network_available()
            except ComponentDisposedError:
                return

        probe = False
        with self._lock:
            if not self._running:
                return
            self._gateway = address
            if available is not None:
                self._network_available = available
                if not available:
                    self._outcome = OutcomeKind.NETWORK_DOWN
                    self._round_trip_ms = None
            if not self._target.is_custom:
                if address is None:
                    self._resolved = None
                    self._outcome = self._idle_outcome_locked()
                else:
                    self._resolved = ResolvedAddress(address)
                    if self._outcome in (OutcomeKind.NO_GATEWAY, OutcomeKind.NETWORK_DOWN):
                        self._outcome = OutcomeKind.UNKNOWN
                    probe = True
            status, seq = self._snapshot_locked()

        self._publish(status, seq)
        if probe:
            self._request_probe()

    def _on_network_availability_changed(self, available: bool):
        topology = self._topology_snapshot() if available else None
        resolve_host = None
        probe = False

        with self._lock:
            if not self._running:
                return
            self._network_available = available

            if not available:
                self._outcome = OutcomeKind.NETWORK_DOWN
                self._round_trip_ms = None
                self._topology = TopologyState(capability_enabled=self._topology.capability_enabled)
                self._ap_name = None
                if not self._target.is_custom:
                    self._gateway = None
                    self._resolved = None
            else:
                if topology is not None:
                    self._topology = replace(topology, in_transition=self._topology.in_transition)
                if self._outcome == OutcomeKind.NETWORK_DOWN:
                    self._outcome = OutcomeKind.UNKNOWN
                # The gateway target waits for the tracker's stabilised refresh
                if self._target.is_custom:
                    if self._resolved is None or self._resolved.resolution_error:
                        self._resolve_generation += 1
                        resolve_host = (self._target.user_input, self._resolve_generation)
                    else:
                        probe = True
            status, seq = self._snapshot_locked()

        if not available:
            logger.info("[StatusCoordinator] Network unavailable")
        self._publish(status, seq)

        if resolve_host is not None:
            host, generation = resolve_host
            self._scheduler.submit(lambda: self._resolve_and_probe(host, generation), name="StatusCoordinator-resolve")
        elif probe:
            self._request_probe()

    # --- Topology events ---

    def _topology_snapshot(self) -> Optional[TopologyState]:
        try:
            return self._topology_tracker.current()
        except ComponentDisposedError:
            return None

    def _on_bssid_changed(self, old_bssid: Optional[str], new_bssid: Optional[str]):
        with self._lock:
            if not self._running:
                return

        old_name = self.get_display_name(old_bssid) if old_bssid else None
        new_name = self.get_display_name(new_bssid) if new_bssid else None
        if new_bssid:
            try:
                self._ap_store.record_seen(new_bssid)
            except Exception as e:
                logger.warning(f"[StatusCoordinator] Could not record {new_bssid}: {e}")

        topology = self._topology_snapshot()
        if topology is None:
            return

        with self._lock:
            if not self._running:
                return
            self._topology = replace(topology, in_transition=True)
            self._ap_name = new_name
            self._transition_generation += 1
            generation = self._transition_generation
            stale_timer = self._transition_timer
            self._transition_timer = self._scheduler.call_later(
                self._transition_window,
                lambda: self._on_transition_elapsed(generation),
                name="StatusCoordinator-transition",
            )
            status, seq = self._snapshot_locked()
            # Last known result, recoloured to show the link is in flux
            status = replace(status, use_dark_text=True)

        if stale_timer is not None:
            stale_timer.cancel()

        self._publish(status, seq)
        self._notify_transition(old_name, new_name)

    def _on_transition_elapsed(self, generation: int):
        with self._lock:
            if not self._running or generation != self._transition_generation:
                return
            self._transition_timer = None
            self._topology = replace(self._topology, in_transition=False)
            status, seq = self._snapshot_locked()

        logger.debug("[StatusCoordinator] Transition window elapsed")
        self._publish(status, seq)
        self._request_probe()

    def _on_signal_strength_changed(self, signal_percent: int):
        topology = self._topology_snapshot()
        with self._lock:
            if not self._running or topology is None:
                return
            self._topology = replace(topology, in_transition=self._topology.in_transition)
            status, seq = self._snapshot_locked()
        self._publish(status, seq)

    def _on_capability_changed(self, enabled: bool):
        topology = self._topology_snapshot()
        with self._lock:
            if not self._running:
                return
            if topology is not None:
                self._topology = replace(topology, in_transition=self._topology.in_transition)
            else:
                self._topology = replace(self._topology, capability_enabled=enabled)
            self._wireless_supported = self._topology_tracker.wireless_supported
            status, seq = self._snapshot_locked()

        logger.info(f"[StatusCoordinator] Wireless info {'enabled' if enabled else 'disabled'}")
        self._publish(status, seq)

    def _notify_transition(self, old_name: Optional[str], new_name: Optional[str]):
        if self._on_notification is None:
            return
        if old_name and new_name:
            message = f"Switched from {old_name} to {new_name}"
        elif new_name:
            message = f"Connected to {new_name}"
        elif old_name:
            message = f"Disconnected from {old_name}"
        else:
            return
        try:
            self._on_notification(message)
        except Exception as e:
            logger.error(f"[StatusCoordinator] Notification failed: {e}")

    # --- Probe events ---

    def _accepts_outcome_locked(self, outcome: ProbeOutcome) -> bool:
        if not self._running or not self._network_available:
            return False
        return self._resolved is not None and outcome.address == self._resolved.address

    def _on_probe_completed(self, outcome: ProbeOutcome):
        with self._lock:
            if not self._accepts_outcome_locked(outcome):
                return
            if outcome.success:
                self._outcome = OutcomeKind.SUCCESS
                self._round_trip_ms = outcome.round_trip_ms
                self._failure_kind = None
            else:
                self._outcome = OutcomeKind.FAILURE
                self._round_trip_ms = None
                self._failure_kind = outcome.failure_kind
            quiet = self._topology.in_transition
            status, seq = self._snapshot_locked()

        if not quiet:
            if outcome.success:
                logger.debug(f"[StatusCoordinator] Reply from {outcome.address}: {outcome.round_trip_ms}ms")
            else:
                logger.info(f"[StatusCoordinator] Probe to {outcome.address} failed: {outcome.failure_kind}")
        self._publish(status, seq)

    def _on_probe_failed(self, outcome: ProbeOutcome, error: Exception):
        with self._lock:
            if not self._accepts_outcome_locked(outcome):
                return
            self._outcome = OutcomeKind.ERROR
            self._round_trip_ms = None
            self._failure_kind = outcome.failure_kind
            quiet = self._topology.in_transition
            status, seq = self._snapshot_locked()

        if not quiet:
            logger.error(f"[StatusCoordinator] Probe to {outcome.address} raised: {error}")
        self._publish(status, seq)

    def _current_probe_address(self) -> Optional[str]:
        with self._lock:
            if not self._running or not self._network_available or self._resolved is None:
                return None
            return self._resolved.address

    def _request_probe(self):
        address = self._current_probe_address()
        if not address:
            return
        try:
            self._probe_engine.probe_async(address, self._probe_timeout_ms)
        except ComponentDisposedError:
            pass

    # --- Status computation ---

    def _idle_outcome_locked(self) -> OutcomeKind:
        if not self._network_available:
            return OutcomeKind.NETWORK_DOWN
        if not self._target.is_custom and self._gateway is None:
            return OutcomeKind.NO_GATEWAY
        return OutcomeKind.UNKNOWN

    def _reset_outcome_locked(self):
        self._round_trip_ms = None
        self._failure_kind = None
        self._outcome = self._idle_outcome_locked() if self._running else OutcomeKind.UNKNOWN

    def _snapshot_locked(self) -> Tuple[Status, int]:
        """Recompute the Status and stamp it with the next sequence number. Caller holds _lock."""
        self._status = build_status(
            self._target,
            self._resolved,
            self._outcome,
            round_trip_ms=self._round_trip_ms,
            failure_kind=self._failure_kind,
            gateway=self._gateway,
            topology=self._topology,
            ap_name=self._ap_name,
            wireless_supported=self._wireless_supported,
        )
        self._seq += 1
        return self._status, self._seq

    def _publish(self, status: Status, seq: int):
        with self._publish_lock:
            if seq <= self._published_seq:
                return
            self._published_seq = seq
            try:
                self._presentation.on_status_changed(status)
            except Exception as e:
                logger.opt(exception=e).error(f"[StatusCoordinator] Presentation update failed: {e}")

    @staticmethod
    def _describe_target(target: PingTarget) -> str:
        return target.user_input if target.is_custom else "default gateway"
