"""
Unit tests for SessionGate – login, logout, verification and role checks.
"""

import json

import pytest

from hospital_portal.client import ApiClient
from hospital_portal.config import TOKEN_KEY, USER_KEY
from hospital_portal.errors import SessionExpired
from hospital_portal.models import Identity, SessionStatus
from hospital_portal.session import SessionGate
from hospital_portal.storage import MemoryStore

from conftest import BASE_URL, NO_JSON, FakeResponse

DOCTOR = {"_id": "d1", "name": "Dr A", "email": "a@example.com", "role": "Doctor"}
ADMIN = {"id": 9, "name": "Root", "role": "admin"}


def make_gate(http, store=None):
    return SessionGate(store if store is not None else MemoryStore(), ApiClient(BASE_URL, session=http))


def stored(store):
    return store.get(TOKEN_KEY), store.get(USER_KEY)


def logged_in_store(user=ADMIN, token="tok-1"):
    return MemoryStore({TOKEN_KEY: token, USER_KEY: json.dumps(user)})


# ── Tests: login ─────────────────────────────────────────────────────

def test_login_success_sets_and_persists(http):
    http.route("POST", "/auth/login", 200, {"token": "tok-9", "user": DOCTOR})
    store = MemoryStore()
    gate = make_gate(http, store)

    result = gate.login("a@example.com", "pw")

    assert result.success is True
    assert result.token == "tok-9"
    assert result.user.role == "doctor"
    assert gate.is_authenticated
    token, user = stored(store)
    assert token == "tok-9"
    assert json.loads(user)["_id"] == "d1"

    call = http.calls_to("/auth/login")[0]
    assert call["json"] == {"email": "a@example.com", "password": "pw"}
    assert "Authorization" not in call["headers"]


def test_login_invalid_credentials_leaves_state(http):
    http.route("POST", "/auth/login", 401, {"msg": "Invalid credentials"})
    store = logged_in_store()
    gate = make_gate(http, store)

    result = gate.login("a@example.com", "wrong")

    assert result.success is False
    assert result.message == "Invalid credentials"
    assert stored(store) == ("tok-1", json.dumps(ADMIN))
    assert gate.identity.role == "admin"


def test_login_network_error(http):
    http.fail("POST", "/auth/login")
    gate = make_gate(http)
    result = gate.login("a@example.com", "pw")
    assert result.success is False
    assert result.message == "Login failed"
    assert not gate.is_authenticated


@pytest.mark.parametrize("payload", [
    {"token": "t"},
    {"user": DOCTOR},
    {"token": "", "user": DOCTOR},
    ["not", "an", "object"],
    NO_JSON,
])
def test_login_malformed_response(http, payload):
    http.route("POST", "/auth/login", 200, payload)
    store = MemoryStore()
    gate = make_gate(http, store)
    result = gate.login("a@example.com", "pw")
    assert result.success is False
    assert result.message == "Invalid response from server"
    assert stored(store) == (None, None)


# ── Tests: logout / stored state ─────────────────────────────────────

def test_logout_clears_everything(http):
    store = logged_in_store()
    gate = make_gate(http, store)
    gate.logout()
    assert not gate.is_authenticated
    assert stored(store) == (None, None)


@pytest.mark.parametrize("initial", [
    {TOKEN_KEY: "tok"},
    {USER_KEY: json.dumps(ADMIN)},
    {TOKEN_KEY: "tok", USER_KEY: "{not json"},
    {TOKEN_KEY: "tok", USER_KEY: json.dumps(["list"])},
])
def test_partial_stored_state_is_wiped(http, initial):
    store = MemoryStore(initial)
    gate = make_gate(http, store)
    assert not gate.is_authenticated
    assert stored(store) == (None, None)


# ── Tests: verify / start ────────────────────────────────────────────

def test_verify_refreshes_identity(http):
    http.route("GET", "/auth/verify", 200, {"id": 9, "name": "Root Renamed", "role": "admin"})
    store = logged_in_store()
    gate = make_gate(http, store)

    assert gate.verify() is True
    assert gate.identity.name == "Root Renamed"
    assert json.loads(store.get(USER_KEY))["name"] == "Root Renamed"
    assert http.calls_to("/auth/verify")[0]["headers"]["Authorization"] == "Bearer tok-1"


@pytest.mark.parametrize("setup", [
    lambda h: h.route("GET", "/auth/verify", 401, {"msg": "jwt expired"}),
    lambda h: h.route("GET", "/auth/verify", 500, {"msg": "boom"}),
    lambda h: h.route("GET", "/auth/verify", 200, NO_JSON),
    lambda h: h.route("GET", "/auth/verify", 200, "just a string"),
    lambda h: h.fail("GET", "/auth/verify"),
])
def test_verify_failure_clears_both(http, setup):
    setup(http)
    store = logged_in_store()
    gate = make_gate(http, store)
    assert gate.verify() is False
    assert gate.token is None and gate.identity is None
    assert stored(store) == (None, None)


def test_verify_without_token_makes_no_request(http):
    gate = make_gate(http)
    assert gate.verify() is False
    assert http.calls == []


def test_start_sets_ready(http):
    http.route("GET", "/auth/verify", 200, ADMIN)
    gate = make_gate(http, logged_in_store())
    assert gate.status is SessionStatus.IDLE
    assert not gate.ready
    gate.start()
    assert gate.status is SessionStatus.READY
    assert gate.is_authenticated


def test_start_without_token_is_ready_immediately(http):
    gate = make_gate(http)
    gate.start()
    assert gate.ready
    assert http.calls == []


def test_start_pending_during_verify(http):
    seen = []
    gate = None

    def respond(call):
        seen.append(gate.status)
        return FakeResponse(200, ADMIN)

    http.routes[("GET", "/auth/verify")] = respond
    gate = make_gate(http, logged_in_store())
    gate.start()
    assert seen == [SessionStatus.PENDING]


# ── Tests: authorize ─────────────────────────────────────────────────

def test_authorize_matches_role_case_insensitively(http):
    gate = make_gate(http, logged_in_store(user={"id": 1, "name": "P", "role": "Patient"}))
    assert gate.authorize("patient")
    assert gate.authorize("PATIENT")
    assert not gate.authorize("doctor")


def test_authorize_false_when_logged_out(http):
    gate = make_gate(http)
    for role in ("patient", "doctor", "admin"):
        assert gate.authorize(role) is False


@pytest.mark.parametrize("user", [
    {"id": 1, "name": "X"},
    {"id": 1, "name": "X", "role": "nurse"},
])
def test_stored_user_without_known_role_is_wiped(http, user):
    store = logged_in_store(user=user)
    gate = make_gate(http, store)
    assert not gate.is_authenticated
    assert not gate.authorize("admin")
    assert stored(store) == (None, None)


# ── Tests: unsupported roles ─────────────────────────────────────────

@pytest.mark.parametrize("user", [
    {"_id": "n1", "name": "Nurse", "role": "nurse"},
    {"_id": "n2", "name": "No Role"},
    {"_id": "n3", "name": "Blank", "role": "  "},
])
def test_login_rejects_unknown_role(http, user):
    http.route("POST", "/auth/login", 200, {"token": "tok-9", "user": user})
    store = logged_in_store()
    gate = make_gate(http, store)
    seen = []
    gate.subscribe(seen.append)

    result = gate.login("n@example.com", "pw")

    assert result.success is False
    assert result.message == "Invalid response from server"
    assert stored(store) == ("tok-1", json.dumps(ADMIN))
    assert gate.identity.role == "admin"
    assert seen == []


def test_verify_with_unknown_role_fails_closed(http):
    http.route("GET", "/auth/verify", 200, {"id": 9, "name": "Root", "role": "janitor"})
    store = logged_in_store()
    gate = make_gate(http, store)
    assert gate.verify() is False
    assert not gate.is_authenticated
    assert stored(store) == (None, None)


# ── Tests: session expiry / notifications ────────────────────────────

def test_background_401_ends_session(http):
    http.route("GET", "/payments/admin", 401, {"msg": "Token expired"})
    store = logged_in_store()
    gate = make_gate(http, store)
    navigations = []
    gate.on_expired(lambda: navigations.append("/"))

    with pytest.raises(SessionExpired):
        gate.client.get("/payments/admin")

    assert not gate.is_authenticated
    assert stored(store) == (None, None)
    assert navigations == ["/"]


def test_subscribers_notified(http):
    http.route("POST", "/auth/login", 200, {"token": "t", "user": DOCTOR})
    gate = make_gate(http)
    seen = []
    unsubscribe = gate.subscribe(seen.append)

    gate.login("a@example.com", "pw")
    gate.logout()
    unsubscribe()
    gate.logout()

    assert isinstance(seen[0], Identity)
    assert seen[1:] == [None]


def test_identity_from_record():
    ident = Identity.from_record({"_id": "x1", "display_name": "Nurse Joy", "role": " ADMIN "})
    assert (ident.id, ident.name, ident.role) == ("x1", "Nurse Joy", "admin")
    with pytest.raises(ValueError):
        Identity.from_record("nope")
    with pytest.raises(ValueError, match="Unsupported role 'nurse'"):
        Identity.from_record({"_id": "x2", "role": "nurse"})
