"""
Unit tests for the backend HTTP client – token injection, expiry handling,
cancellation and batch fetches.
"""

import pytest

from hospital_portal.client import ApiClient, CancelToken, as_collection, error_message
from hospital_portal.errors import ApiError, RequestCancelled, SessionExpired

from conftest import BASE_URL, NO_JSON, FakeResponse


def make_client(http, token="tok-1"):
    expired = []
    client = ApiClient(
        BASE_URL,
        token_provider=lambda: token,
        on_unauthorized=lambda: expired.append(True),
        session=http,
    )
    return client, expired


# ── Tests: headers ───────────────────────────────────────────────────

def test_bearer_token_attached(http):
    http.route("GET", "/payments", 200, [])
    client, _ = make_client(http)
    client.get("/payments")
    headers = http.calls[0]["headers"]
    assert headers["Authorization"] == "Bearer tok-1"
    assert headers["Content-Type"] == "application/json"
    assert http.calls[0]["timeout"] == client.timeout


def test_no_header_without_token(http):
    http.route("GET", "/payments", 200, [])
    client, _ = make_client(http, token=None)
    client.get("/payments")
    assert "Authorization" not in http.calls[0]["headers"]


def test_unauthenticated_request_skips_token_and_expiry(http):
    http.route("POST", "/auth/login", 401, {"msg": "bad"})
    client, expired = make_client(http)
    with pytest.raises(ApiError) as e:
        client.post("/auth/login", json={}, authenticated=False)
    assert not isinstance(e.value, SessionExpired)
    assert "Authorization" not in http.calls[0]["headers"]
    assert expired == []


# ── Tests: responses ─────────────────────────────────────────────────

def test_returns_json_payload(http):
    http.route("PUT", "/payments/p1/pay", 200, {"status": "paid"})
    client, _ = make_client(http)
    assert client.put("/payments/p1/pay") == {"status": "paid"}


def test_non_json_body_decodes_to_none(http):
    http.route("DELETE", "/duties/3", 204, NO_JSON)
    client, _ = make_client(http)
    assert client.delete("/duties/3") is None


def test_http_error_carries_backend_message(http):
    http.route("GET", "/reports/patient", 500, {"msg": "Database unavailable"})
    client, expired = make_client(http)
    with pytest.raises(ApiError) as e:
        client.get("/reports/patient")
    assert e.value.status == 500
    assert e.value.message == "Database unavailable"
    assert expired == []


def test_network_error(http):
    http.fail("GET", "/payments")
    client, _ = make_client(http)
    with pytest.raises(ApiError) as e:
        client.get("/payments")
    assert e.value.status is None


def test_401_triggers_expiry(http):
    http.route("GET", "/duties/admin", 401, {"msg": "expired"})
    client, expired = make_client(http)
    with pytest.raises(SessionExpired):
        client.get("/duties/admin")
    assert expired == [True]


# ── Tests: cancellation ──────────────────────────────────────────────

def test_cancelled_request_discards_response(http):
    token = CancelToken()

    def respond(call):
        token.cancel()        # caller lost interest while in flight
        return FakeResponse(200, [{"id": 1}])

    http.routes[("GET", "/appointments/patient")] = respond
    client, _ = make_client(http)
    with pytest.raises(RequestCancelled):
        client.get("/appointments/patient", cancel=token)


def test_cancelled_request_still_expires_session_on_401(http):
    token = CancelToken()
    token.cancel()
    http.route("GET", "/payments/admin/stats", 401, {})
    client, expired = make_client(http)
    with pytest.raises(RequestCancelled):
        client.get("/payments/admin/stats", cancel=token)
    assert expired == [True]


# ── Tests: fetch_all ─────────────────────────────────────────────────

def test_fetch_all_returns_every_payload(http):
    http.route("GET", "/auth/admin/patients", 200, [{"id": 1}])
    http.route("GET", "/payments/admin/stats", 200, {"totalRevenue": 10})
    client, _ = make_client(http)
    out = client.fetch_all({"patients": "/auth/admin/patients", "stats": "/payments/admin/stats"})
    assert out == {"patients": [{"id": 1}], "stats": {"totalRevenue": 10}}
    assert all(c["headers"]["Authorization"] == "Bearer tok-1" for c in http.calls)


def test_fetch_all_is_all_or_nothing(http):
    http.route("GET", "/a", 200, [])
    http.route("GET", "/b", 503, {"msg": "down"})
    client, _ = make_client(http)
    with pytest.raises(ApiError) as e:
        client.fetch_all({"a": "/a", "b": "/b"})
    assert e.value.status == 503


def test_fetch_all_401_wins_over_other_failures(http):
    http.route("GET", "/a", 500, {})
    http.route("GET", "/b", 401, {})
    client, expired = make_client(http)
    with pytest.raises(SessionExpired):
        client.fetch_all({"a": "/a", "b": "/b"})
    assert expired == [True]


def test_fetch_all_empty():
    client = ApiClient(BASE_URL, session=object())
    assert client.fetch_all({}) == {}


# ── Tests: helpers ───────────────────────────────────────────────────

def test_as_collection_defaults():
    assert as_collection([1, 2]) == [1, 2]
    assert as_collection({"patients": [1]}, "patients") == [1]
    assert as_collection({"patients": "nope"}, "patients") == []
    assert as_collection(None) == []
    assert as_collection({"a": 1}) == []


def test_error_message_fallbacks():
    assert error_message({"msg": "m"}, "d") == "m"
    assert error_message({"error": "e"}, "d") == "e"
    assert error_message({"message": ""}, "d") == "d"
    assert error_message(None, "d") == "d"
