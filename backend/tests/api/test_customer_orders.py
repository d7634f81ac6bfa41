"""
Tests for the customer order endpoints: create, confirm, scenario check,
fulfill, cancel and progress.
"""
import pytest

from tests.factories import create_test_customer_order

BASE = "/api/v1/customer-orders"


def create_order(client, items=((1, 1),), **extra):
    payload = {"items": [{"product_id": p, "quantity": q} for p, q in items], **extra}
    response = client.post(f"{BASE}/", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


class TestCreateCustomerOrder:

    @pytest.mark.api
    def test_create(self, client):
        data = create_order(client, items=[(1, 2), (2, 1)], customer_name="ACME")

        assert data["status"] == "PENDING"
        assert data["order_number"].startswith("ORD-")
        assert data["workstation_id"] == 7
        assert data["customer_name"] == "ACME"
        assert [(l["item_id"], l["item_name"], l["requested_quantity"]) for l in data["line_items"]] == [
            (1, "Truck", 2),
            (2, "Crane", 1),
        ]

    @pytest.mark.api
    def test_empty_items_rejected(self, client):
        response = client.post(f"{BASE}/", json={"items": []})

        assert response.status_code == 422
        assert response.json()["error"] == "VALIDATION_ERROR"

    @pytest.mark.api
    def test_zero_quantity_rejected(self, client):
        response = client.post(f"{BASE}/", json={"items": [{"product_id": 1, "quantity": 0}]})
        assert response.status_code == 422

    @pytest.mark.api
    def test_unknown_order(self, client):
        response = client.get(f"{BASE}/999")

        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "NOT_FOUND"
        assert "timestamp" in body


class TestConfirmAndFulfill:

    @pytest.mark.api
    def test_direct_fulfillment(self, client, stock):
        stock.set(7, 1, 5)
        order = create_order(client, items=[(1, 2)])

        confirmed = client.post(f"{BASE}/{order['id']}/confirm").json()
        assert confirmed["status"] == "CONFIRMED"
        assert confirmed["trigger_scenario"] == "DIRECT_FULFILLMENT"

        fulfilled = client.post(f"{BASE}/{order['id']}/fulfill").json()
        assert fulfilled["status"] == "COMPLETED"
        assert fulfilled["line_items"][0]["fulfilled_quantity"] == 2
        assert stock.debits == [(7, 1, 2, "ORDER_FULFILLMENT")]

    @pytest.mark.api
    def test_large_order_goes_to_production(self, client, stock):
        order = create_order(client, items=[(1, 3)])
        client.post(f"{BASE}/{order['id']}/confirm")

        fulfilled = client.post(f"{BASE}/{order['id']}/fulfill").json()

        assert fulfilled["status"] == "PROCESSING"
        assert fulfilled["trigger_scenario"] == "DIRECT_PRODUCTION"
        production_orders = client.get("/api/v1/production-orders/").json()
        assert len(production_orders) == 1
        assert production_orders[0]["customer_order_id"] == order["id"]
        assert production_orders[0]["source_type"] == "CUSTOMER_ORDER"
        assert stock.debits == []

    @pytest.mark.api
    def test_small_short_order_requests_modules(self, client):
        order = create_order(client, items=[(1, 1)])
        client.post(f"{BASE}/{order['id']}/confirm")

        fulfilled = client.post(f"{BASE}/{order['id']}/fulfill").json()

        assert fulfilled["status"] == "PROCESSING"
        warehouse_orders = client.get("/api/v1/warehouse-orders/", params={"customer_order_id": order["id"]}).json()
        assert len(warehouse_orders) == 1
        assert warehouse_orders[0]["status"] == "PENDING"
        assert sorted((l["item_id"], l["requested_quantity"]) for l in warehouse_orders[0]["line_items"]) == [
            (10, 1),
            (11, 2),
        ]

    @pytest.mark.api
    def test_scenario_check_reports_drift(self, client, stock):
        stock.set(7, 1, 5)
        order = create_order(client, items=[(1, 1)])
        client.post(f"{BASE}/{order['id']}/confirm")
        stock.set(7, 1, 0)

        data = client.get(f"{BASE}/{order['id']}/scenario").json()

        assert data["stored_scenario"] == "DIRECT_FULFILLMENT"
        assert data["current_scenario"] == "WAREHOUSE_ORDER_NEEDED"
        assert data["drifted"] is True

    @pytest.mark.api
    def test_confirm_twice(self, client):
        order = create_order(client)
        client.post(f"{BASE}/{order['id']}/confirm")

        response = client.post(f"{BASE}/{order['id']}/confirm")

        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_STATE"

    @pytest.mark.api
    def test_fulfill_requires_confirmation(self, client):
        order = create_order(client)
        response = client.post(f"{BASE}/{order['id']}/fulfill")
        assert response.status_code == 400

    @pytest.mark.api
    def test_missing_bom_leaves_order_confirmed(self, client, masterdata):
        masterdata.products.pop(1)
        order = create_order(client, items=[(1, 1)])
        client.post(f"{BASE}/{order['id']}/confirm")

        response = client.post(f"{BASE}/{order['id']}/fulfill")

        assert response.status_code == 422
        assert response.json()["error"] == "BOM_RESOLUTION_ERROR"
        assert client.get(f"{BASE}/{order['id']}").json()["status"] == "CONFIRMED"


class TestCancelAndProgress:

    @pytest.mark.api
    def test_cancel_with_reason(self, client):
        order = create_order(client)

        data = client.post(f"{BASE}/{order['id']}/cancel", json={"reason": "customer changed mind"}).json()

        assert data["status"] == "CANCELLED"
        assert "customer changed mind" in data["notes"]

    @pytest.mark.api
    def test_cancel_completed(self, client, db_session):
        order = create_test_customer_order(db_session, status="COMPLETED")
        db_session.commit()

        response = client.post(f"{BASE}/{order.id}/cancel")

        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_STATE"

    @pytest.mark.api
    def test_progress_counts_fulfilled_lines(self, client, stock):
        stock.set(7, 1, 5)
        order = create_order(client, items=[(1, 1)])
        client.post(f"{BASE}/{order['id']}/confirm")
        client.post(f"{BASE}/{order['id']}/fulfill")

        data = client.get(f"{BASE}/{order['id']}/progress").json()

        assert data == {
            "order_number": order["order_number"],
            "status": "COMPLETED",
            "total": 1,
            "completed": 1,
            "percent": 100,
            "is_complete": True,
        }

    @pytest.mark.api
    def test_list_filters_by_status(self, client, db_session):
        create_test_customer_order(db_session, status="PENDING")
        create_test_customer_order(db_session, status="CANCELLED")
        db_session.commit()

        data = client.get(f"{BASE}/", params={"status": "CANCELLED"}).json()

        assert [o["status"] for o in data] == ["CANCELLED"]
