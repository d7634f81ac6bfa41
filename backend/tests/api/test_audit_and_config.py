"""
Tests for the audit trail, webhook subscription and system config endpoints
"""
from unittest.mock import patch

import pytest

from app.services import webhook_service

API = "/api/v1"


class TestAuditTrail:

    @pytest.mark.api
    def test_order_events_newest_first(self, client):
        order = client.post(f"{API}/customer-orders/", json={"items": [{"product_id": 1, "quantity": 1}]}).json()
        client.post(f"{API}/customer-orders/{order['id']}/confirm")

        events = client.get(f"{API}/audit/orders/customer-order/{order['id']}").json()

        assert [e["event_type"] for e in events] == ["CONFIRMED", "CREATED"]
        assert all(e["order_type"] == "CUSTOMER_ORDER" for e in events)

    @pytest.mark.api
    def test_unknown_order_type(self, client):
        response = client.get(f"{API}/audit/orders/invoice/1")
        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    @pytest.mark.api
    def test_recent_limit(self, client):
        for _ in range(3):
            client.post(f"{API}/customer-orders/", json={"items": [{"product_id": 1, "quantity": 1}]})

        assert len(client.get(f"{API}/audit/recent", params={"limit": 2}).json()) == 2


class TestWebhooks:

    @pytest.mark.api
    def test_subscribe_list_unsubscribe(self, client):
        created = client.post(
            f"{API}/webhooks/",
            json={"event_type": "customer_order.completed", "target_url": "https://hooks.example/done"},
        )
        assert created.status_code == 201
        subscription = created.json()
        assert subscription["event_type"] == "CUSTOMER_ORDER.COMPLETED"

        assert [s["id"] for s in client.get(f"{API}/webhooks/").json()] == [subscription["id"]]

        assert client.delete(f"{API}/webhooks/{subscription['id']}").status_code == 204
        assert client.get(f"{API}/webhooks/").json() == []

    @pytest.mark.api
    def test_duplicate_subscription(self, client):
        payload = {"event_type": "ANY", "target_url": "https://hooks.example/all"}
        assert client.post(f"{API}/webhooks/", json=payload).status_code == 201

        response = client.post(f"{API}/webhooks/", json=payload)

        assert response.status_code == 409
        assert response.json()["error"] == "CONFLICT"

    @pytest.mark.api
    def test_invalid_target(self, client):
        response = client.post(f"{API}/webhooks/", json={"event_type": "ANY", "target_url": "mailto:ops@example.com"})
        assert response.status_code == 400

    @pytest.mark.api
    def test_completion_is_delivered(self, client, stock):
        stock.set(7, 1, 1)
        client.post(
            f"{API}/webhooks/",
            json={"event_type": "CUSTOMER_ORDER.COMPLETED", "target_url": "https://hooks.example/done"},
        )
        order = client.post(f"{API}/customer-orders/", json={"items": [{"product_id": 1, "quantity": 1}]}).json()
        client.post(f"{API}/customer-orders/{order['id']}/confirm")

        with patch("app.services.webhook_service.requests.post") as post:
            client.post(f"{API}/customer-orders/{order['id']}/fulfill")
            assert webhook_service.wait_for_deliveries()

        post.assert_called_once()
        assert post.call_args[1]["json"]["orderId"] == order["id"]


class TestSystemConfig:

    @pytest.mark.api
    def test_read_and_update_threshold(self, client):
        assert client.get(f"{API}/system-config/lot-size-threshold").json() == {"threshold": 3}

        response = client.put(f"{API}/system-config/lot-size-threshold", json={"threshold": 5})

        assert response.status_code == 200
        assert response.json() == {"threshold": 5}
        assert client.get(f"{API}/system-config/lot-size-threshold").json() == {"threshold": 5}

    @pytest.mark.api
    def test_threshold_changes_routing(self, client):
        client.put(f"{API}/system-config/lot-size-threshold", json={"threshold": 10})
        order = client.post(f"{API}/customer-orders/", json={"items": [{"product_id": 1, "quantity": 3}]}).json()

        confirmed = client.post(f"{API}/customer-orders/{order['id']}/confirm").json()

        assert confirmed["trigger_scenario"] == "WAREHOUSE_ORDER_NEEDED"

    @pytest.mark.api
    def test_rejects_zero(self, client):
        response = client.put(f"{API}/system-config/lot-size-threshold", json={"threshold": 0})
        assert response.status_code in (400, 422)
