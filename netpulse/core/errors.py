"""
Exception hierarchy for netpulse.

Transient network conditions never raise: they surface as degraded status.
Exceptions are reserved for caller bugs, use after teardown and fatal startup failures.
"""


class NetPulseError(Exception):
    """Base exception for all netpulse errors."""
    pass


class ComponentDisposedError(NetPulseError):
    """Raised when a torn-down component is called."""
    def __init__(self, component: str):
        super().__init__(f"{component} has been disposed")
        self.component = component


class InitializationError(NetPulseError):
    """Raised when the engine cannot start (e.g. gateway monitoring setup failed)."""
    def __init__(self, message: str, cause: Exception = None):
        super().__init__(f"Initialization failed: {message}")
        self.cause = cause
