"""Named AP Repository - JSON-backed access point names and last custom target."""
import threading
from typing import Dict, List, Optional

from loguru import logger

from netpulse.core.constants import KNOWN_APS_PATH
from netpulse.repositories.file_utils import atomic_write_json, load_json_file


def normalize_bssid(bssid: str) -> str:
    return (bssid or "").strip().lower()


class NamedAPRepository:
    """
    Thin JSON wrapper around known_aps.json:

        {"names": {"<bssid>": "<name>" | null}, "last_custom_target": "<host>" | null}

    A BSSID that has been seen but never named maps to null.
    """

    def __init__(self, path: str = None):
        self._path = path or KNOWN_APS_PATH
        self._lock = threading.Lock()
        self._names: Dict[str, Optional[str]] = {}
        self._last_custom_target: Optional[str] = None
        self._load()

    @property
    def path(self) -> str:
        return self._path

    def _load(self) -> None:
        data = load_json_file(self._path, {})
        if not isinstance(data, dict):
            logger.warning(f"[NamedAPRepository] Ignoring malformed {self._path}")
            data = {}

        names = data.get("names")
        if isinstance(names, dict):
            self._names = {
                normalize_bssid(bssid): name if isinstance(name, str) and name.strip() else None
                for bssid, name in names.items()
                if isinstance(bssid, str) and bssid.strip()
            }

        target = data.get("last_custom_target")
        self._last_custom_target = target if isinstance(target, str) and target.strip() else None

    def _save(self) -> bool:
        """Write the current state. Caller holds the lock."""
        return atomic_write_json(
            self._path,
            {"names": dict(self._names), "last_custom_target": self._last_custom_target},
        )

    # --- Names ---

    def get_display_name(self, bssid: str) -> str:
        """Custom name for bssid, or the BSSID itself when unnamed."""
        key = normalize_bssid(bssid)
        with self._lock:
            return self._names.get(key) or bssid

    def record_seen(self, bssid: str) -> None:
        key = normalize_bssid(bssid)
        if not key:
            return
        with self._lock:
            if key in self._names:
                return
            self._names[key] = None
            self._save()
        logger.info(f"[NamedAPRepository] New access point {key}")

    def rename(self, bssid: str, name: Optional[str]) -> None:
        """Set or clear (empty name) the custom name of an access point."""
        key = normalize_bssid(bssid)
        if not key:
            raise ValueError("BSSID must not be empty")
        cleaned = name.strip() if name else None
        with self._lock:
            self._names[key] = cleaned or None
            self._save()

    def known_bssids(self) -> List[str]:
        with self._lock:
            return sorted(self._names)

    def names(self) -> Dict[str, Optional[str]]:
        with self._lock:
            return dict(self._names)

    # --- Last custom target ---

    def get_last_custom_target(self) -> Optional[str]:
        with self._lock:
            return self._last_custom_target

    def set_last_custom_target(self, target: Optional[str]) -> None:
        cleaned = target.strip() if target else None
        with self._lock:
            if cleaned == self._last_custom_target:
                return
            self._last_custom_target = cleaned or None
            self._save()
