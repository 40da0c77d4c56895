"""
Role-Based Access Control – route protection and post-login redirects.
"""

from dataclasses import dataclass
from typing import Optional

from hospital_portal.config import ENTRY_POINT, ROLES

ROLE_HOMES = {
    "patient": "/patient",
    "doctor": "/doctor",
    "admin": "/admin",
}


@dataclass
class AccessDecision:
    allowed: bool
    redirect: Optional[str] = None


def normalize_role(role) -> str:
    return str(role or "").strip().lower()


def home_for_role(role) -> str:
    """Where a freshly logged-in user of *role* lands."""
    return ROLE_HOMES.get(normalize_role(role), ENTRY_POINT)


def required_role(path: str) -> Optional[str]:
    """Return the role a path is reserved for, or None for public paths."""
    first = path.strip("/").split("/", 1)[0].lower()
    return first if first in ROLES else None


def check_access(gate, path: str, role: Optional[str] = None) -> AccessDecision:
    """
    Decide whether the current session may render *path*.

    Nothing is allowed until the gate has finished its load-time check.
    """
    needed = role or required_role(path)
    if needed is None:
        return AccessDecision(allowed=True)
    if not gate.ready:
        return AccessDecision(allowed=False, redirect=ENTRY_POINT)
    if not gate.authorize(needed):
        return AccessDecision(allowed=False, redirect=ENTRY_POINT)
    return AccessDecision(allowed=True)
