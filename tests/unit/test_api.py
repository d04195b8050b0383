"""
Unit Tests - API
"""
import json

import pytest

from src.analytics.overview import SalesOverview
from src.serving.api.routes.overview import _stream_payloads
from src.streaming.subscriptions import OrderSubscriptionManager


class _DisconnectingRequest:
    """Request stand-in that reports a disconnect after a number of checks"""

    def __init__(self, connected_checks: int):
        self.remaining = connected_checks

    async def is_disconnected(self) -> bool:
        self.remaining -= 1
        return self.remaining < 0


class TestAuthentication:
    """Tests for operator API keys"""

    @pytest.mark.parametrize("path", [
        "/api/v1/overview/sales",
        "/api/v1/overview/sales/stream",
        "/api/v1/orders",
        "/api/v1/orders/p-1",
    ])
    def test_missing_key_rejected(self, client, path):
        response = client.get(path)

        assert response.status_code == 401
        assert response.json()["error"] == "unauthenticated"

    def test_unknown_key_rejected(self, client):
        response = client.get("/api/v1/orders", headers={"X-API-Key": "nope"})
        assert response.status_code == 401


class TestSalesOverviewEndpoint:
    """Tests for the sales chart endpoints"""

    def test_monthly_all_statuses(self, client, auth_headers):
        """Untimestamped orders are left out of the chart"""
        response = client.get("/api/v1/overview/sales?timeframe=monthly", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["state"] == "ready"
        assert data["labels"] == ["March", "April"]
        assert data["values"] == [4200 + 2500 + 900, 3500]
        assert data["currency"] == "RWF"

    def test_status_filter(self, client, auth_headers):
        response = client.get(
            "/api/v1/overview/sales",
            params={"timeframe": "daily", "status": "completed"},
            headers=auth_headers,
        )

        data = response.json()
        assert data["status_filter"] == "completed"
        assert data["labels"] == ["Mar 9", "Apr 1"]
        assert data["values"] == [2500, 3500]

    def test_default_timeframe(self, client, auth_headers):
        response = client.get("/api/v1/overview/sales", headers=auth_headers)
        assert response.json()["timeframe"] == "daily"

    def test_invalid_status_filter(self, client, auth_headers):
        response = client.get("/api/v1/overview/sales?status=lost", headers=auth_headers)

        assert response.status_code == 422
        assert response.json()["error"] == "invalid_filter"

    def test_invalid_timeframe(self, client, auth_headers):
        response = client.get("/api/v1/overview/sales?timeframe=hourly", headers=auth_headers)
        assert response.status_code == 422

    def test_stream_rejects_invalid_filter(self, client, auth_headers):
        response = client.get("/api/v1/overview/sales/stream?status=lost", headers=auth_headers)
        assert response.status_code == 422

    async def test_stream_payloads(self, memory_store, principals):
        """Each snapshot becomes one SSE message; the listener is released on disconnect"""
        manager = OrderSubscriptionManager(memory_store, principals)
        overview = SalesOverview(manager, "yearly", status_filter="completed")
        events = manager.stream(overview.status_filter)

        messages = [
            message async for message in
            _stream_payloads(_DisconnectingRequest(1), events, overview, keepalive_seconds=1.0)
        ]

        assert len(messages) == 1
        event_line, data_line = messages[0].strip().split("\n")
        assert event_line == "event: ready"
        payload = json.loads(data_line[len("data: "):])
        assert payload["labels"] == ["2024"]
        assert payload["values"] == [6000]
        assert manager.active is None
        assert memory_store.listener_count == 0


class TestOrdersEndpoints:
    """Tests for order listing and completion"""

    def test_list_defaults_to_processing(self, client, auth_headers):
        """Newest first, untimestamped orders last"""
        response = client.get("/api/v1/orders", headers=auth_headers)

        data = response.json()
        assert data["status"] == "processing"
        assert data["total"] == 2
        assert [item["id"] for item in data["items"]] == ["p-1", "p-2"]
        assert data["items"][0]["address"] == "KG 11 Ave"

    def test_list_rejects_unknown_status(self, client, auth_headers):
        response = client.get("/api/v1/orders?status=lost", headers=auth_headers)
        assert response.status_code == 422

    def test_order_detail(self, client, auth_headers):
        response = client.get("/api/v1/orders/p-1", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["order_id"] == "LD-000101"
        assert data["items"][0]["name"] == "Shirt"
        assert data["breakdown"] == {
            "subtotal": 3000,
            "fold_fees": 400,
            "ironing_fees": 0,
            "transportation_fees": 800,
            "total_amount": 4200,
        }

    def test_order_not_found(self, client, auth_headers):
        response = client.get("/api/v1/orders/missing", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["error"] == "order_not_found"

    def test_complete_order(self, client, auth_headers, memory_store):
        response = client.post("/api/v1/orders/p-2/complete", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["status"] == "completed"
        assert memory_store.get("p-2").status == "completed"

        again = client.post("/api/v1/orders/p-2/complete", headers=auth_headers)
        assert again.status_code == 409
        assert again.json()["error"] == "invalid_status_transition"


class TestHealthEndpoints:
    """Tests for health and metrics"""

    def test_health(self, client):
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["environment"] == "testing"
        assert data["checks"]["store"]["backend"] == "memory"

    def test_liveness_and_readiness(self, client):
        assert client.get("/api/v1/health/live").json() == {"status": "alive"}
        assert client.get("/api/v1/health/ready").json() == {"status": "ready"}

    def test_metrics(self, client):
        response = client.get("/api/v1/metrics")

        assert response.status_code == 200
        assert "dashboard_active_subscriptions" in response.text

    def test_security_headers(self, client):
        response = client.get("/api/v1/health/live")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
