"""subdns — Application-wide constants and path configuration."""

import os
import re
from pathlib import Path

# ---------------------------------------------------------------------------
# Runtime state directory  (~/.subdns/)
# ---------------------------------------------------------------------------
STATE_DIR = Path(os.environ.get("SUBDNS_STATE_DIR", Path.home() / ".subdns"))
LOGS_DIR = STATE_DIR / "logs"
LOG_FILE = LOGS_DIR / "subdns.log"
DOMAINS_FILE = STATE_DIR / "domains.json"
SUBDOMAINS_FILE = STATE_DIR / "subdomains.json"
INVENTORY_FILE = STATE_DIR / "inventory.json"
SETTINGS_FILE = STATE_DIR / "settings.json"

# ---------------------------------------------------------------------------
# Bunny DNS API
# ---------------------------------------------------------------------------
BUNNY_API_BASE = "https://api.bunny.net"
REQUEST_TIMEOUT_SECONDS = 15
MAX_RETRIES = 5  # only for 429 responses
BACKOFF_BASE_SECONDS = 1.0
ZONES_PER_PAGE = 100

# ---------------------------------------------------------------------------
# Record defaults
# ---------------------------------------------------------------------------
DEFAULT_TTL = 120
DEFAULT_PRIORITY = 1
DEFAULT_WEIGHT = 1
DEFAULT_TRANSPORT = "tcp"
SUPPORTED_TRANSPORTS = ("tcp", "udp", "tls")

LABEL_PATTERN = re.compile(r"^[a-z0-9-]{2,63}$")
SERVICE_PATTERN = re.compile(r"^[_a-z0-9-]+$", re.IGNORECASE)

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------
DEFAULT_MAX_PER_WORKLOAD = 1
API_KEY_ENV_VAR = "SUBDNS_BUNNY_API_KEY"
KEYRING_SERVICE_API_KEY = "subdns_bunny_api_key"
KEYRING_USERNAME = "subdns"
