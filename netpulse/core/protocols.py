"""Protocols for the collaborators the engine consumes."""
from typing import Optional, Protocol

from netpulse.core.types import Status


class PresentationSink(Protocol):
    """Renders the fused status (tray icon, console, ...)."""

    def on_status_changed(self, status: Status) -> None:
        """Called from any thread; must not block."""
        ...


class NamedAPStore(Protocol):
    """Persistence and naming of access points plus the last custom target."""

    def get_display_name(self, bssid: str) -> str:
        """Friendly name for a BSSID, the BSSID itself when unnamed."""
        ...

    def record_seen(self, bssid: str) -> None:
        ...

    def get_last_custom_target(self) -> Optional[str]:
        ...

    def set_last_custom_target(self, target: Optional[str]) -> None:
        ...
