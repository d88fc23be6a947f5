import os
import tempfile
from pathlib import Path

# Load environment variables from .env file
from dotenv import load_dotenv

from netpulse.utils.platform_utils import Platform, PlatformUtils

# Load .env from project root
_project_root = Path(__file__).parent.parent.parent
load_dotenv(_project_root / ".env")

APP_NAME = "netpulse"
APP_VERSION = os.getenv("APP_VERSION", "0.3.0")

# Probe cadence
PROBE_INTERVAL_MS = int(os.getenv("PROBE_INTERVAL_MS", "1000"))
PROBE_TIMEOUT_MS = int(os.getenv("PROBE_TIMEOUT_MS", "1000"))

# Failure escalation: after N consecutive failures, force a gateway refresh every retry interval
MAX_CONSECUTIVE_FAILURES = int(os.getenv("MAX_CONSECUTIVE_FAILURES", "5"))
FAILURE_RETRY_INTERVAL_MS = int(os.getenv("FAILURE_RETRY_INTERVAL_MS", "10000"))

# Wireless topology
TOPOLOGY_POLL_INTERVAL_MS = int(os.getenv("TOPOLOGY_POLL_INTERVAL_MS", "1000"))
BSSID_TRANSITION_WINDOW_MS = int(os.getenv("BSSID_TRANSITION_WINDOW_MS", "10000"))
SIGNAL_CHANGE_THRESHOLD = int(os.getenv("SIGNAL_CHANGE_THRESHOLD", "5"))

# Gateway tracking
GATEWAY_POLL_INTERVAL_MS = int(os.getenv("GATEWAY_POLL_INTERVAL_MS", "30000"))
NETWORK_STABILIZE_DELAY_MS = int(os.getenv("NETWORK_STABILIZE_DELAY_MS", "1000"))
LINK_WATCH_INTERVAL_MS = int(os.getenv("LINK_WATCH_INTERVAL_MS", "2000"))

# External command timeouts (seconds)
ROUTE_COMMAND_TIMEOUT = float(os.getenv("ROUTE_COMMAND_TIMEOUT", "5"))
WIRELESS_COMMAND_TIMEOUT = float(os.getenv("WIRELESS_COMMAND_TIMEOUT", "5"))

# Temporary directory (cross-platform)
if PlatformUtils.get_platform() == Platform.WINDOWS:
    TMPDIR = os.path.join(tempfile.gettempdir(), APP_NAME)
elif PlatformUtils.get_platform() == Platform.MACOS:
    TMPDIR = os.path.join(os.path.expanduser("~/Library/Caches"), APP_NAME)
else:
    TMPDIR = os.path.join(os.environ.get("TMPDIR", "/tmp"), APP_NAME)

LOG_FILE = os.getenv("NETPULSE_LOG_FILE", os.path.join(TMPDIR, "netpulse.log"))

# Configuration directory
CONFIG_DIR = os.getenv("NETPULSE_CONFIG_DIR", PlatformUtils.get_config_dir(APP_NAME))
KNOWN_APS_PATH = os.path.join(CONFIG_DIR, "known_aps.json")
