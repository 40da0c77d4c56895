"""
Domain dataclasses used across the application.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from hospital_portal.config import ROLES


class SessionStatus(Enum):
    """Loading flag consumed by route guards."""
    IDLE = "idle"          # start() not called yet
    PENDING = "pending"    # verification in flight
    READY = "ready"


@dataclass
class Identity:
    """The authenticated user's profile record."""
    id: Any
    name: str
    role: str                  # "patient", "doctor" or "admin"
    record: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Identity":
        if not isinstance(record, Mapping):
            raise ValueError("User record must be a JSON object.")
        user_id = record.get("id")
        if user_id is None:
            user_id = record.get("_id")
        name = record.get("name") or record.get("display_name") or record.get("email") or ""
        role = str(record.get("role") or "").strip().lower()
        if role not in ROLES:
            raise ValueError(f"Unsupported role '{record.get('role')}' in user record.")
        return cls(id=user_id, name=str(name), role=role, record=dict(record))


@dataclass
class LoginResult:
    """Outcome of a login exchange."""
    success: bool
    user: Optional[Identity] = None
    token: Optional[str] = None
    message: Optional[str] = None
