"""
SessionGate – owns the authenticated identity and bearer token.

Credential and Identity are either both present or both absent. Partial
state found in the store is treated as logged out and wiped.
"""

import json
import sys
from typing import Callable, List, Optional

from hospital_portal.client import ApiClient, error_message
from hospital_portal.config import TOKEN_KEY, USER_KEY
from hospital_portal.errors import ApiError, PortalError
from hospital_portal.models import Identity, LoginResult, SessionStatus

Listener = Callable[[Optional[Identity]], None]


class SessionGate:
    def __init__(self, store, client: ApiClient):
        self.store = store
        self.client = client
        self.status = SessionStatus.IDLE
        self._token: Optional[str] = None
        self._identity: Optional[Identity] = None
        self._listeners: List[Listener] = []
        self._expiry_listeners: List[Callable[[], None]] = []

        client.bind(lambda: self._token, self.expire)
        self._load()

    # ── State ────────────────────────────────────────────────────────

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def identity(self) -> Optional[Identity]:
        return self._identity

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None and self._identity is not None

    @property
    def ready(self) -> bool:
        return self.status is SessionStatus.READY

    def _load(self) -> None:
        token = self.store.get(TOKEN_KEY)
        raw_user = self.store.get(USER_KEY)
        if not token and not raw_user:
            return
        identity = None
        if token and raw_user:
            try:
                identity = Identity.from_record(json.loads(raw_user))
            except ValueError:
                identity = None
        if identity is None:
            print("[auth] Discarding incomplete stored session", file=sys.stderr)
            self._clear()
            return
        self._token = token
        self._identity = identity

    def _persist(self) -> None:
        self.store.set(TOKEN_KEY, self._token)
        self.store.set(USER_KEY, json.dumps(self._identity.record))

    def _clear(self) -> None:
        self._token = None
        self._identity = None
        self.store.remove(TOKEN_KEY)
        self.store.remove(USER_KEY)

    # ── Subscriptions ────────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener* for identity changes; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def on_expired(self, listener: Callable[[], None]) -> Callable[[], None]:
        self._expiry_listeners.append(listener)

        def unsubscribe():
            if listener in self._expiry_listeners:
                self._expiry_listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._identity)

    # ── Operations ───────────────────────────────────────────────────

    def login(self, email_or_id: str, secret: str) -> LoginResult:
        """Exchange credentials for a token. Stored state is untouched on failure."""
        try:
            data = self.client.post(
                "/auth/login",
                json={"email": email_or_id, "password": secret},
                authenticated=False,
            )
        except ApiError as e:
            print(f"[auth] Login failed: {e}", file=sys.stderr)
            return LoginResult(success=False, message=error_message(e.payload, "Login failed"))

        token = data.get("token") if isinstance(data, dict) else None
        user = data.get("user") if isinstance(data, dict) else None
        if not token or not isinstance(user, dict):
            return LoginResult(success=False, message=error_message(data, "Invalid response from server"))

        try:
            identity = Identity.from_record(user)
        except ValueError as e:
            print(f"[auth] Login rejected: {e}", file=sys.stderr)
            return LoginResult(success=False, message="Invalid response from server")

        self._token = str(token)
        self._identity = identity
        self._persist()
        print(f"[auth] Logged in as: {identity.name} (role={identity.role})")
        self._notify()
        return LoginResult(success=True, user=identity, token=self._token)

    def logout(self) -> None:
        self._clear()
        self._notify()

    def expire(self) -> None:
        """End the session after the backend rejected the token."""
        was_authenticated = self.is_authenticated
        self._clear()
        if was_authenticated:
            self._notify()
        for listener in list(self._expiry_listeners):
            listener()

    def verify(self) -> bool:
        """
        Re-check the stored token with the backend and refresh the identity.

        Fails closed: any error clears the session.
        """
        if not self._token:
            return False
        try:
            data = self.client.get("/auth/verify")
            identity = Identity.from_record(data)
        except (PortalError, ValueError) as e:
            print(f"[auth] Session verification failed: {e}", file=sys.stderr)
            had_session = self.is_authenticated
            self._clear()
            if had_session:
                self._notify()
            return False

        self._identity = identity
        self._persist()
        self._notify()
        return True

    def start(self) -> None:
        """Application-load hook: verify a stored token once, then mark ready."""
        self.status = SessionStatus.PENDING
        try:
            if self._token:
                self.verify()
        finally:
            self.status = SessionStatus.READY

    def mark_ready(self) -> None:
        """Skip verification when it already ran earlier in this browser session."""
        self.status = SessionStatus.READY

    def authorize(self, required_role: str) -> bool:
        if not self.is_authenticated:
            return False
        return self._identity.role.lower() == str(required_role).strip().lower()
