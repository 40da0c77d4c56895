"""
Centralised configuration constants and environment helpers.
"""

import os
import sys

from dotenv import load_dotenv

load_dotenv()

# ── Backend ──────────────────────────────────────────────────────────
API_BASE_URL = os.getenv("PORTAL_API_URL", "http://localhost:5000/api")
REQUEST_TIMEOUT_SECONDS = 10
FETCH_WORKERS = 8

# ── Roles / session ──────────────────────────────────────────────────
ROLES = {"patient", "doctor", "admin"}
ENTRY_POINT = "/"

# Durable store keys (token and serialized user record)
TOKEN_KEY = "token"
USER_KEY = "user"

STATE_DB_URI = os.getenv(
    "PORTAL_STATE_DB",
    "sqlite:///" + os.path.join(os.path.expanduser("~"), ".hospital_portal.db"),
)

# ── Tables ───────────────────────────────────────────────────────────
DEFAULT_PAGE_SIZE = 10
EMPTY_MESSAGE = "No data available"

# ── Web front end ────────────────────────────────────────────────────
SECRET_KEY_ENV = "PORTAL_SECRET_KEY"
# Fallback for create_app(); main() requires the variable to be set
SECRET_KEY = os.getenv(SECRET_KEY_ENV, "dev-secret-key-change-in-production")


def get_env(name: str) -> str:
    """Return an environment variable or exit with an error message."""
    value = os.getenv(name)
    if not value:
        print(f"ERROR: env var {name} is not set", file=sys.stderr)
        sys.exit(1)
    return value
