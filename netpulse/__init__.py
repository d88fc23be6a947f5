"""netpulse - network liveness and topology monitor."""

__version__ = "0.3.0"
