"""
HTTP client for the portal backend.

Attaches the bearer token to every authenticated call and routes 401
responses to the session's expiry handler, whichever page made the call.
"""

import sys
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional

import requests

from hospital_portal.config import API_BASE_URL, FETCH_WORKERS, REQUEST_TIMEOUT_SECONDS
from hospital_portal.errors import ApiError, RequestCancelled, SessionExpired


class CancelToken:
    """Handed to a request by a caller that may lose interest in the result."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def error_message(payload: Any, default: str) -> str:
    """Pull a displayable message out of an error body."""
    if isinstance(payload, dict):
        for key in ("msg", "error", "message"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    return default


def as_collection(payload: Any, key: Optional[str] = None) -> List[Any]:
    """Return the list inside *payload*, or an empty list when there is none."""
    if isinstance(payload, list):
        return payload
    if key and isinstance(payload, dict) and isinstance(payload.get(key), list):
        return payload[key]
    return []


class ApiClient:
    def __init__(
        self,
        base_url: str = API_BASE_URL,
        token_provider: Optional[Callable[[], Optional[str]]] = None,
        on_unauthorized: Optional[Callable[[], None]] = None,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token_provider = token_provider
        self.on_unauthorized = on_unauthorized
        self.timeout = timeout
        self.session = session or requests.Session()

    def bind(self, token_provider, on_unauthorized) -> None:
        """Attach the session's token accessor and expiry handler."""
        self.token_provider = token_provider
        self.on_unauthorized = on_unauthorized

    def _headers(self, authenticated: bool) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if authenticated and self.token_provider:
            token = self.token_provider()
            if token:
                headers["Authorization"] = f"Bearer {token}"
        return headers

    def _send(self, method: str, path: str, headers: Dict[str, str], json: Any = None,
              params: Optional[Dict[str, Any]] = None) -> requests.Response:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            return self.session.request(
                method, url, json=json, params=params,
                headers=headers, timeout=self.timeout,
            )
        except requests.RequestException as e:
            print(f"[api] {method} {path} failed: {e}", file=sys.stderr)
            raise ApiError(None, "Network error. Please check your connection.") from e

    def _handle(self, method: str, path: str, resp: requests.Response, authenticated: bool,
                cancel: Optional[CancelToken]) -> Any:
        try:
            payload = resp.json()
        except ValueError:
            payload = None

        if resp.status_code == 401 and authenticated:
            print(f"[auth] {method} {path} returned 401; ending session", file=sys.stderr)
            if self.on_unauthorized:
                self.on_unauthorized()
            if cancel is not None and cancel.cancelled:
                raise RequestCancelled(f"{method} {path}")
            raise SessionExpired()

        if cancel is not None and cancel.cancelled:
            raise RequestCancelled(f"{method} {path}")

        if resp.status_code >= 400:
            print(f"[api] {method} {path} -> {resp.status_code}", file=sys.stderr)
            raise ApiError(resp.status_code, error_message(payload, "Request failed"), payload)

        return payload

    def request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        authenticated: bool = True,
        cancel: Optional[CancelToken] = None,
    ) -> Any:
        try:
            resp = self._send(method, path, self._headers(authenticated), json=json, params=params)
        except ApiError:
            if cancel is not None and cancel.cancelled:
                raise RequestCancelled(f"{method} {path}")
            raise
        return self._handle(method, path, resp, authenticated, cancel)

    def get(self, path: str, **kwargs) -> Any:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, json: Any = None, **kwargs) -> Any:
        return self.request("POST", path, json=json, **kwargs)

    def put(self, path: str, json: Any = None, **kwargs) -> Any:
        return self.request("PUT", path, json=json, **kwargs)

    def delete(self, path: str, **kwargs) -> Any:
        return self.request("DELETE", path, **kwargs)

    def fetch_all(self, sources: Dict[str, str], cancel: Optional[CancelToken] = None) -> Dict[str, Any]:
        """
        GET every path in *sources* concurrently and wait for all of them.

        Only the network round trips run on the pool; responses are handled
        on the calling thread. All-or-nothing: a 401 anywhere ends the session
        first, otherwise the first failure propagates and the other results
        are discarded.
        """
        if not sources:
            return {}
        headers = self._headers(True)
        workers = min(FETCH_WORKERS, len(sources))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {name: pool.submit(self._send, "GET", path, headers) for name, path in sources.items()}
        outcomes = {}
        for name, fut in futures.items():
            try:
                outcomes[name] = fut.result()
            except ApiError as e:
                outcomes[name] = e

        for name, outcome in outcomes.items():
            if not isinstance(outcome, ApiError) and outcome.status_code == 401:
                self._handle("GET", sources[name], outcome, True, cancel)

        results = {}
        for name, outcome in outcomes.items():
            if isinstance(outcome, ApiError):
                if cancel is not None and cancel.cancelled:
                    raise RequestCancelled(f"GET {sources[name]}")
                raise outcome
            results[name] = self._handle("GET", sources[name], outcome, True, cancel)
        return results
