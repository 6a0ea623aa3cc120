"""Mini README: Cached HTTP client for the Fundtracker API.

Structure:
    * ApiError / UnauthorizedError - raised for error responses.
    * QueryCache - results keyed by path and query string.
    * FinanceClient - fetch wrappers; reads go through the cache and writes
      invalidate the keys they affect.

The client wraps any ``httpx.Client`` (FastAPI's ``TestClient`` included), so
scripts and tests drive the API the same way the browser dashboard does.
Callers retry failed reads themselves; nothing is retried automatically.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

import httpx

from .logging_utils import get_logger

LOGGER = get_logger(__name__)

CacheKey = Tuple[str, Tuple[Tuple[str, str], ...]]

RESOURCES = {
    "sponsors": "/api/sponsors",
    "funds": "/api/funds",
    "receipts": "/api/receipts",
    "costs": "/api/costs",
    "fund-transfers": "/api/fund-transfers",
    "manual-fund-distributions": "/api/manual-fund-distributions",
    "expense-categories": "/api/expense-categories",
    "expense-nomenclature": "/api/expense-nomenclature",
}

_MONEY_VIEWS = (
    "/api/dashboard",
    "/api/unallocated-funds",
    "/api/funds-with-balances",
    "/api/distribution-history",
    "/api/reports",
)

# Paths whose cached reads go stale after a write to the given resource.
INVALIDATION: Dict[str, Tuple[str, ...]] = {
    "/api/sponsors": ("/api/sponsors", "/api/receipts", "/api/dashboard", "/api/reports"),
    "/api/funds": ("/api/funds",) + _MONEY_VIEWS,
    "/api/receipts": ("/api/receipts",) + _MONEY_VIEWS,
    "/api/costs": ("/api/costs",) + _MONEY_VIEWS,
    "/api/fund-transfers": ("/api/fund-transfers",) + _MONEY_VIEWS,
    "/api/manual-fund-distributions": ("/api/manual-fund-distributions",) + _MONEY_VIEWS,
    "/api/distribute-unallocated-funds": ("/api/manual-fund-distributions",) + _MONEY_VIEWS,
    "/api/expense-categories": ("/api/expense-categories", "/api/costs", "/api/reports"),
    "/api/expense-nomenclature": ("/api/expense-nomenclature", "/api/costs", "/api/reports"),
}


class ApiError(RuntimeError):
    """Non-successful API response carrying the server's message."""

    def __init__(self, status_code: int, message: str, errors: Optional[Any] = None) -> None:
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.errors = errors


class UnauthorizedError(ApiError):
    """The session is missing or expired; the caller should log in again."""


class QueryCache:
    """Tiny keyed cache for GET results."""

    def __init__(self) -> None:
        self._entries: Dict[CacheKey, Any] = {}

    @staticmethod
    def key(path: str, params: Optional[Mapping[str, Any]] = None) -> CacheKey:
        items = tuple(sorted((name, str(value)) for name, value in (params or {}).items() if value is not None))
        return (path, items)

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: CacheKey) -> Any:
        return self._entries[key]

    def put(self, key: CacheKey, value: Any) -> None:
        self._entries[key] = value

    def invalidate(self, prefixes: Iterable[str]) -> int:
        prefixes = tuple(prefixes)
        stale = [key for key in self._entries if key[0].startswith(prefixes)]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()


def _resource_root(path: str) -> str:
    parts = path.split("?", 1)[0].strip("/").split("/")
    return "/" + "/".join(parts[:2])


class FinanceClient:
    """Fetch wrappers around the JSON API backed by a ``QueryCache``."""

    def __init__(self, http: httpx.Client, cache: Optional[QueryCache] = None) -> None:
        self._http = http
        self.cache = cache or QueryCache()

    # ------------------------------------------------------------ plumbing
    def _raise_for_status(self, response: httpx.Response) -> None:
        if response.is_success:
            return
        try:
            body = response.json()
        except ValueError:
            body = {}
        message = body.get("message") if isinstance(body, dict) else None
        message = message or response.reason_phrase or "Request failed"
        errors = body.get("errors") if isinstance(body, dict) else None
        LOGGER.debug("API error %s on %s: %s", response.status_code, response.request.url, message)
        if response.status_code == 401:
            self.cache.clear()
            raise UnauthorizedError(response.status_code, message)
        raise ApiError(response.status_code, message, errors)

    def query(self, path: str, params: Optional[Mapping[str, Any]] = None, *, refresh: bool = False) -> Any:
        """GET ``path`` through the cache."""

        key = self.cache.key(path, params)
        if not refresh and key in self.cache:
            return self.cache.get(key)
        clean = {name: str(value) for name, value in (params or {}).items() if value is not None}
        response = self._http.get(path, params=clean)
        self._raise_for_status(response)
        data = response.json()
        self.cache.put(key, data)
        return data

    def mutate(self, method: str, path: str, payload: Optional[Mapping[str, Any]] = None) -> Any:
        """Send a write request and invalidate dependent cache entries."""

        body = {name: value.isoformat() if isinstance(value, date) else value for name, value in (payload or {}).items()}
        response = self._http.request(method, path, json=body if payload is not None else None)
        self._raise_for_status(response)
        root = _resource_root(path)
        dropped = self.cache.invalidate(INVALIDATION.get(root, (root,)))
        LOGGER.debug("%s %s invalidated %s cached queries", method, path, dropped)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # ---------------------------------------------------------------- auth
    def register(self, username: str, password: str, **names: str) -> Dict[str, Any]:
        return self.mutate("POST", "/api/auth/register", {"username": username, "password": password, **names})

    def login(self, username: str, password: str) -> Dict[str, Any]:
        self.cache.clear()
        return self.mutate("POST", "/api/auth/login", {"username": username, "password": password})

    def logout(self) -> None:
        self.mutate("POST", "/api/auth/logout")
        self.cache.clear()

    # ------------------------------------------------------------ resources
    def _path(self, resource: str) -> str:
        try:
            return RESOURCES[resource]
        except KeyError as error:
            raise ValueError(f"Unknown resource '{resource}'") from error

    def list(self, resource: str, **filters: Any) -> Any:
        return self.query(self._path(resource), filters)

    def get(self, resource: str, record_id: str) -> Any:
        return self.query(f"{self._path(resource)}/{record_id}")

    def create(self, resource: str, payload: Mapping[str, Any]) -> Any:
        return self.mutate("POST", self._path(resource), payload)

    def update(self, resource: str, record_id: str, payload: Mapping[str, Any]) -> Any:
        return self.mutate("PUT", f"{self._path(resource)}/{record_id}", payload)

    def delete(self, resource: str, record_id: str) -> None:
        self.mutate("DELETE", f"{self._path(resource)}/{record_id}")

    # -------------------------------------------------------- derived views
    def unallocated(self) -> float:
        return float(self.query("/api/unallocated-funds")["unallocated_amount"])

    def distribute_unallocated(self, on_date: Optional[date] = None) -> Any:
        payload = {"date": on_date} if on_date else {}
        return self.mutate("POST", "/api/distribute-unallocated-funds", payload)

    def funds_with_balances(self) -> Any:
        return self.query("/api/funds-with-balances")

    def distribution_history(self) -> Any:
        return self.query("/api/distribution-history")

    def dashboard_stats(self) -> Any:
        return self.query("/api/dashboard/stats")

    def recent_activity(self, limit: Optional[int] = None) -> Any:
        return self.query("/api/dashboard/activity", {"limit": limit})

    def report(self, kind: str, date_from: date, date_to: date) -> Any:
        return self.query(f"/api/reports/{kind}", {"date_from": date_from, "date_to": date_to})
