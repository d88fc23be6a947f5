"""
Timer scheduling for the monitors.

Every periodic poll, one-shot delay and background job in netpulse goes
through a Scheduler so that:
- timers are daemon threads that never outlive the process
- cancel() stops further ticks synchronously (a tick already running finishes)
- tests can swap in a manual scheduler and advance simulated time
"""

import threading
from typing import Callable, Optional

from loguru import logger


class TimerHandle:
    """Handle for a scheduled one-shot or repeating callback."""

    def __init__(
        self,
        delay: float,
        callback: Callable[[], None],
        repeat: bool = False,
        name: str = "netpulse-timer",
    ):
        if delay <= 0:
            raise ValueError(f"Timer delay must be positive, got {delay}")

        self._delay = delay
        self._callback = callback
        self._repeat = repeat
        self._stop_event = threading.Event()
        self._thread = threading.Thread(target=self._run, daemon=True, name=name)

    def start(self) -> "TimerHandle":
        self._thread.start()
        return self

    @property
    def active(self) -> bool:
        return not self._stop_event.is_set() and self._thread.is_alive()

    @property
    def name(self) -> str:
        return self._thread.name

    def cancel(self, wait: bool = False, timeout: float = 2.0) -> None:
        """
        Stop issuing ticks.

        Args:
            wait: Join the timer thread (ignored when called from the timer itself)
            timeout: Upper bound for the join
        """
        self._stop_event.set()
        if wait and self._thread.is_alive() and threading.current_thread() is not self._thread:
            self._thread.join(timeout=timeout)

    def _run(self):
        while not self._stop_event.wait(self._delay):
            try:
                self._callback()
            except Exception as e:
                logger.opt(exception=e).error(f"[Scheduler] Error in timer '{self.name}': {e}")
            if not self._repeat:
                self._stop_event.set()


class Scheduler:
    """Thread-backed scheduler used in production."""

    def call_later(self, delay: float, callback: Callable[[], None], name: str = "netpulse-oneshot") -> TimerHandle:
        """Run callback once after delay seconds."""
        return TimerHandle(delay, callback, repeat=False, name=name).start()

    def call_every(self, interval: float, callback: Callable[[], None], name: str = "netpulse-ticker") -> TimerHandle:
        """Run callback every interval seconds; the first tick happens after one interval."""
        return TimerHandle(interval, callback, repeat=True, name=name).start()

    def submit(self, callback: Callable[[], None], name: str = "netpulse-task") -> Optional[threading.Thread]:
        """Run callback once on a background daemon thread."""

        def _guarded():
            try:
                callback()
            except Exception as e:
                logger.opt(exception=e).error(f"[Scheduler] Error in background task '{name}': {e}")

        thread = threading.Thread(target=_guarded, daemon=True, name=name)
        thread.start()
        return thread
