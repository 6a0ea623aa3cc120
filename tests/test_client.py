"""Mini README: Tests for the cached API client.

The client wraps FastAPI's ``TestClient`` (an ``httpx.Client``) so these tests
exercise the real endpoints while checking cache hits and invalidation.
"""

from __future__ import annotations

from datetime import date

import pytest
from fastapi.testclient import TestClient

from fundtracker.client import ApiError, FinanceClient, QueryCache, UnauthorizedError


@pytest.fixture()
def client(api: TestClient) -> FinanceClient:
    return FinanceClient(api)


def test_query_cache_keys_ignore_param_order_and_none() -> None:
    cache = QueryCache()

    assert cache.key("/api/costs", {"b": 1, "a": "x", "c": None}) == cache.key("/api/costs", {"a": "x", "b": "1"})

    cache.put(cache.key("/api/costs"), [])
    cache.put(cache.key("/api/reports/expenses", {"date_from": "2024-01-01"}), {})
    cache.put(cache.key("/api/sponsors"), [])

    assert cache.invalidate(("/api/costs", "/api/reports")) == 2
    assert len(cache) == 1


def test_reads_are_cached_until_a_write_invalidates_them(client: FinanceClient) -> None:
    assert client.list("sponsors") == []

    # A write made behind the client's back is not visible through the cache.
    client._http.post("/api/sponsors", json={"name": "Hidden"})
    assert client.list("sponsors") == []
    assert [item["name"] for item in client.query("/api/sponsors", refresh=True)] == ["Hidden"]

    client.create("sponsors", {"name": "Alice"})
    assert sorted(item["name"] for item in client.list("sponsors")) == ["Alice", "Hidden"]


def test_receipt_write_refreshes_money_views(client: FinanceClient) -> None:
    client.create("funds", {"name": "Operations", "percentage": 50})
    assert client.unallocated() == 0.0
    assert client.dashboard_stats()["total_receipts"] == 0.0

    receipt = client.create("receipts", {"date": date(2024, 3, 1), "amount": 800})

    assert client.unallocated() == pytest.approx(400.0)
    assert client.dashboard_stats()["total_receipts"] == pytest.approx(800.0)
    assert client.funds_with_balances()[0]["balance"] == pytest.approx(400.0)

    created = client.distribute_unallocated(date(2024, 3, 2))
    assert [item["amount"] for item in created] == [400.0]
    assert client.unallocated() == 0.0
    assert len(client.distribution_history()) == 2

    client.delete("receipts", receipt["id"])
    assert client.dashboard_stats()["total_receipts"] == 0.0


def test_reports_and_activity(client: FinanceClient) -> None:
    client.create("costs", {"date": date(2024, 2, 10), "amount": 40, "description": "Paper"})

    report = client.report("expenses", date(2024, 2, 1), date(2024, 2, 29))
    assert report["total"] == 40.0
    assert client.recent_activity(limit=3)["recent_costs"][0]["description"] == "Paper"


def test_errors_carry_the_server_message(client: FinanceClient) -> None:
    with pytest.raises(ApiError) as missing:
        client.get("funds", "fund_missing")
    assert missing.value.status_code == 404
    assert "not found" in missing.value.message

    with pytest.raises(ApiError) as invalid:
        client.create("receipts", {"date": date(2024, 3, 1), "amount": 0})
    assert invalid.value.status_code == 400
    assert invalid.value.errors

    with pytest.raises(ValueError):
        client.list("invoices")


def test_logout_raises_unauthorized_on_next_read(client: FinanceClient) -> None:
    client.list("funds")
    client.logout()

    assert len(client.cache) == 0
    with pytest.raises(UnauthorizedError):
        client.list("funds")

    client.login("treasurer", "secret-pass")
    assert client.list("funds") == []
