"""
Centralised configuration constants and environment helpers.
"""

import os
import sys

from dotenv import load_dotenv

load_dotenv()

# ── Time source ──────────────────────────────────────────────────────
UTC_OFFSET_HOURS = 3  # East Africa Time, no DST

# ── Classification ───────────────────────────────────────────────────
LOW_STOCK_THRESHOLD = 10
BADGE_HORIZON_DAYS = 90    # nav badge: "3 months"
ALERT_HORIZON_DAYS = 180   # notifications / alerts pages: "6 months"
EXPIRING_SOON_STATUS_DAYS = 90

# ── Expiry report ────────────────────────────────────────────────────
# None means unbounded.
REPORT_PERIODS = {
    "30_days": 30,
    "90_days": 90,
    "180_days": 180,
    "1_year": 365,
    "all": None,
}
DEFAULT_REPORT_PERIOD = "1_year"
REPORT_WINDOW_DAYS = 365
DEFAULT_UNIT_PRICE = 10
ALERTS_PER_PAGE = 10

# ── Polling / storage ────────────────────────────────────────────────
POLL_INTERVAL_SECONDS = int(os.getenv("POLL_INTERVAL_SECONDS", "60"))
STORAGE_WATCH_SECONDS = 2
HTTP_TIMEOUT_SECONDS = 10

MEDICINES_API_URL = os.getenv("MEDICINES_API_URL", "http://localhost:5000/api")
MEDICINES_FILE = os.getenv("MEDICINES_FILE")
DISMISSALS_FILE = os.getenv("DISMISSALS_FILE", os.path.join(".rxalerts", "dismissals.json"))

# ── API server ───────────────────────────────────────────────────────
SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-secret-key-change-in-production")
TOKEN_EXPIRY_HOURS = 24
# Centers not opened for this long are stopped (expired token or abandoned browser).
IDLE_CENTER_HOURS = TOKEN_EXPIRY_HOURS
CLEANUP_INTERVAL_SECONDS = 300


def get_env(name: str) -> str:
    """Return an environment variable or exit with an error message."""
    value = os.getenv(name)
    if not value:
        print(f"ERROR: env var {name} is not set", file=sys.stderr)
        sys.exit(1)
    return value
