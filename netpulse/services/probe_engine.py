"""
Probe Engine - Single-flight liveness probes with failure escalation.

- At most one probe is in flight; a probe requested meanwhile is dropped
  (the next cadence tick supersedes it).
- Consecutive failures are counted and reset on any success. Once the
  threshold is reached a slower retry timer asks the gateway layer to
  force-refresh; a changed gateway resets the counter, since repeated
  failures usually mean the gateway moved rather than the destination died.

Emits:
    probe_completed(ProbeOutcome)            a reply (success or failed status) arrived
    probe_failed(ProbeOutcome, Exception)    the probe raised
"""

import socket
import threading
from typing import Callable, Optional

from loguru import logger
from ping3 import ping

from netpulse.core.constants import FAILURE_RETRY_INTERVAL_MS, MAX_CONSECUTIVE_FAILURES
from netpulse.core.errors import ComponentDisposedError
from netpulse.core.signals import EventHook
from netpulse.core.types import FailureKind, ProbeOutcome
from netpulse.utils.scheduler import Scheduler, TimerHandle


def classify_error(error: Exception) -> FailureKind:
    if isinstance(error, socket.gaierror):
        return FailureKind.DNS_ERROR
    if isinstance(error, (socket.timeout, TimeoutError)):
        return FailureKind.TIMEOUT
    return FailureKind.OTHER


class ProbeEngine:
    """Sends ICMP echo probes (ping3) and tracks consecutive failures."""

    def __init__(
        self,
        gateway_refresher: Optional[Callable[[], bool]] = None,
        scheduler: Optional[Scheduler] = None,
        ping_fn: Optional[Callable[..., object]] = None,
        max_failures: int = MAX_CONSECUTIVE_FAILURES,
        retry_interval_ms: int = FAILURE_RETRY_INTERVAL_MS,
    ):
        """
        Args:
            gateway_refresher: Forces gateway re-discovery, returns True if the gateway changed
            scheduler: Timer/background-task provider
            ping_fn: ping3.ping compatible callable (address, timeout=seconds, unit="ms")
            max_failures: Consecutive failures that start the retry timer
            retry_interval_ms: Period of the gateway-refresh retry timer
        """
        if max_failures <= 0:
            raise ValueError("max_failures must be positive")
        if retry_interval_ms <= 0:
            raise ValueError("retry_interval_ms must be positive")

        self._gateway_refresher = gateway_refresher
        self._scheduler = scheduler or Scheduler()
        self._ping = ping_fn or ping
        self._max_failures = max_failures
        self._retry_interval = retry_interval_ms / 1000.0

        self.probe_completed = EventHook("ProbeCompleted")
        self.probe_failed = EventHook("ProbeFailed")

        self._lock = threading.Lock()
        self._in_flight = False
        self._consecutive_failures = 0
        self._current_address: Optional[str] = None
        self._retry_timer: Optional[TimerHandle] = None
        self._schedule_timer: Optional[TimerHandle] = None
        self._disposed = False

    # --- State ---

    @property
    def is_probing(self) -> bool:
        with self._lock:
            return self._in_flight

    @property
    def consecutive_failures(self) -> int:
        with self._lock:
            return self._consecutive_failures

    @property
    def current_address(self) -> Optional[str]:
        with self._lock:
            return self._current_address

    @property
    def is_retry_active(self) -> bool:
        with self._lock:
            return self._retry_timer is not None

    def _ensure_not_disposed(self):
        if self._disposed:
            raise ComponentDisposedError("ProbeEngine")

    @staticmethod
    def _validate(address: str, timeout_ms: int):
        if not address:
            raise ValueError("address must not be empty")
        if timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {timeout_ms}")

    # --- Probing ---

    def probe(self, address: str, timeout_ms: int) -> Optional[ProbeOutcome]:
        """
        Probe address, blocking up to timeout_ms.

        Returns:
            The outcome, or None if another probe was already in flight
        """
        self._ensure_not_disposed()
        self._validate(address, timeout_ms)

        with self._lock:
            if self._in_flight:
                return None
            self._in_flight = True
            self._current_address = address

        error = None
        reply = None
        try:
            reply = self._ping(address, timeout=timeout_ms / 1000.0, unit="ms")
        except Exception as e:
            error = e
        finally:
            with self._lock:
                self._in_flight = False

        if self._disposed:
            return None

        if error is not None:
            outcome = ProbeOutcome.failed(address, classify_error(error))
            self._record_failure()
            self.probe_failed.emit(outcome, error)
            return outcome

        # ping3: None on timeout, False on any other failure, delay otherwise
        if reply is None:
            outcome = ProbeOutcome.failed(address, FailureKind.TIMEOUT)
        elif reply is False:
            outcome = ProbeOutcome.failed(address, FailureKind.UNREACHABLE)
        else:
            outcome = ProbeOutcome.succeeded(address, int(round(float(reply))))

        if outcome.success:
            self._record_success()
        else:
            self._record_failure()
        self.probe_completed.emit(outcome)
        return outcome

    def probe_async(self, address: str, timeout_ms: int) -> None:
        """Validate now, probe on a background thread."""
        self._ensure_not_disposed()
        self._validate(address, timeout_ms)
        with self._lock:
            if self._in_flight:
                return
        self._scheduler.submit(lambda: self._probe_quietly(address, timeout_ms), name="ProbeEngine-probe")

    def _probe_quietly(self, address: str, timeout_ms: int):
        if self._disposed:
            return
        self.probe(address, timeout_ms)

    # --- Cadence ---

    def start_schedule(self, interval_ms: int, target_provider: Callable[[], Optional[str]], timeout_ms: int):
        """
        Probe whatever target_provider returns every interval_ms.

        Restarts the cadence if one is already running.
        """
        self._ensure_not_disposed()
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        if timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {timeout_ms}")

        self.stop_schedule()

        def _tick():
            if self._disposed:
                return
            address = target_provider()
            if address:
                self.probe_async(address, timeout_ms)

        timer = self._scheduler.call_every(interval_ms / 1000.0, _tick, name="ProbeEngine-cadence")
        with self._lock:
            self._schedule_timer = timer

    def stop_schedule(self):
        with self._lock:
            timer, self._schedule_timer = self._schedule_timer, None
        if timer is not None:
            timer.cancel()

    # --- Failure escalation ---

    def _record_success(self):
        with self._lock:
            self._consecutive_failures = 0
            timer, self._retry_timer = self._retry_timer, None
        if timer is not None:
            timer.cancel()
            logger.debug("[ProbeEngine] Probe succeeded, retry timer stopped")

    def _record_failure(self):
        with self._lock:
            self._consecutive_failures += 1
            failures = self._consecutive_failures
            if failures < self._max_failures or self._retry_timer is not None:
                return
            self._retry_timer = self._scheduler.call_every(
                self._retry_interval, self._on_retry_tick, name="ProbeEngine-retry"
            )
        logger.info(f"[ProbeEngine] {failures} consecutive failures, starting gateway refresh retries")

    def _on_retry_tick(self):
        if self._disposed:
            return

        with self._lock:
            if self._consecutive_failures < self._max_failures:
                timer, self._retry_timer = self._retry_timer, None
            else:
                timer = None
        if timer is not None:
            timer.cancel()
            return

        if self._gateway_refresher is None:
            return

        try:
            changed = self._gateway_refresher()
        except ComponentDisposedError:
            return
        except Exception as e:
            logger.error(f"[ProbeEngine] Gateway refresh failed: {e}")
            return

        if changed:
            logger.info("[ProbeEngine] Gateway changed after repeated failures, resetting failure state")
            self.reset_failures()

    def reset_failures(self):
        with self._lock:
            self._consecutive_failures = 0
            timer, self._retry_timer = self._retry_timer, None
        if timer is not None:
            timer.cancel()

    # --- Teardown ---

    def dispose(self):
        """Stop all timers; later calls raise ComponentDisposedError."""
        if self._disposed:
            return
        self._disposed = True
        self.stop_schedule()
        with self._lock:
            timer, self._retry_timer = self._retry_timer, None
        if timer is not None:
            timer.cancel()
        self.probe_completed.clear()
        self.probe_failed.clear()
        logger.debug("[ProbeEngine] Disposed")
