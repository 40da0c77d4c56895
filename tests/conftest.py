"""
Shared fakes for the HTTP layer.
"""

import pytest
import requests

BASE_URL = "http://backend.test/api"

NO_JSON = object()


class FakeResponse:
    """Mimic the parts of requests.Response the client reads."""
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        if self._payload is NO_JSON:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeHttpSession:
    """
    Stand-in for requests.Session.

    Routes map (METHOD, path) to a FakeResponse, an exception to raise, or a
    callable taking the recorded call and returning either.
    """
    def __init__(self):
        self.routes = {}
        self.calls = []

    def route(self, method, path, status=200, payload=None):
        self.routes[(method.upper(), path)] = FakeResponse(status, payload)
        return self

    def fail(self, method, path, exc=None):
        self.routes[(method.upper(), path)] = exc or requests.ConnectionError("connection refused")
        return self

    def request(self, method, url, json=None, params=None, headers=None, timeout=None):
        path = url[len(BASE_URL):] if url.startswith(BASE_URL) else url
        call = {"method": method, "path": path, "json": json, "headers": dict(headers or {}), "timeout": timeout}
        self.calls.append(call)
        outcome = self.routes.get((method.upper(), path), FakeResponse(404, {"msg": "Not found"}))
        if callable(outcome) and not isinstance(outcome, FakeResponse):
            outcome = outcome(call)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def calls_to(self, path):
        return [c for c in self.calls if c["path"] == path]


@pytest.fixture
def http():
    return FakeHttpSession()
