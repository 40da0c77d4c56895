"""
Exception types raised at the network boundary and by form validation.
"""

from typing import Any, Dict, Optional


class PortalError(Exception):
    """Base class for portal errors."""


class ApiError(PortalError):
    """Backend or network failure. ``status`` is None for network errors."""

    def __init__(self, status: Optional[int], message: str, payload: Any = None):
        self.status = status
        self.message = message
        self.payload = payload
        super().__init__(message if status is None else f"[{status}] {message}")


class SessionExpired(ApiError):
    """The backend rejected the bearer token; the session is already cleared."""

    def __init__(self, message: str = "Session expired. Please log in again."):
        super().__init__(401, message)


class RequestCancelled(PortalError):
    """A response arrived for a request nobody is waiting on anymore."""


class ValidationError(PortalError):
    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        super().__init__("; ".join(f"{k}: {v}" for k, v in self.errors.items()))
