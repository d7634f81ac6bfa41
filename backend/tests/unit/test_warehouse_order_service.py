"""
Unit tests for warehouse order confirmation, fulfillment and production requests
"""
import pytest

from app.exceptions import InsufficientStockError, InvalidStateError
from app.models.production_order import ProductionOrder
from app.models.workstation_order import WorkstationOrder
from app.services import warehouse_order_service

from tests.factories import create_test_customer_order, create_test_warehouse_order


@pytest.fixture
def stocked(stock):
    stock.set(8, 10, 1)
    stock.set(8, 11, 2)
    return stock


def truck_order(db, status="PENDING", **overrides):
    customer_order = create_test_customer_order(db, items=[(1, 1)], status="PROCESSING")
    order = create_test_warehouse_order(
        db, customer_order=customer_order, modules=[(10, 1, 1, 1), (11, 2, 1, 1)], status=status, **overrides
    )
    db.commit()
    return order


class TestConfirm:

    def test_all_modules_available(self, db_session, stocked):
        order = truck_order(db_session)
        warehouse_order_service.confirm_warehouse_order(db_session, order, stocked)
        assert order.status == "CONFIRMED"
        assert order.trigger_scenario == "DIRECT_FULFILLMENT"

    def test_missing_module_requires_production(self, db_session, stock):
        stock.set(8, 10, 1)
        order = truck_order(db_session)
        warehouse_order_service.confirm_warehouse_order(db_session, order, stock)
        assert order.trigger_scenario == "PRODUCTION_REQUIRED"

    def test_aggregates_same_module_across_lines(self, db_session, stock):
        stock.set(8, 10, 1)
        order = create_test_warehouse_order(db_session, modules=[(10, 1, 1, 1), (10, 1, 2, 1)])
        db_session.commit()
        assert warehouse_order_service.missing_modules(order, stock) == {10: 2}

    def test_only_pending(self, db_session, stocked):
        order = truck_order(db_session, status="CONFIRMED")
        with pytest.raises(InvalidStateError):
            warehouse_order_service.confirm_warehouse_order(db_session, order, stocked)


class TestFulfill:

    def test_releases_modules_and_creates_final_assembly(self, db_session, stocked, masterdata):
        order = truck_order(db_session, status="CONFIRMED", trigger_scenario="DIRECT_FULFILLMENT")

        warehouse_order_service.fulfill_warehouse_order(db_session, order, stocked, masterdata)

        assert order.status == "PROCESSING"
        assert sorted((loc, item, qty) for loc, item, qty, _ in stocked.debits) == [(8, 10, 1), (8, 11, 2)]
        assert all(line.is_fulfilled for line in order.line_items)

        final_assembly = db_session.query(WorkstationOrder).one()
        assert final_assembly.warehouse_order_id == order.id
        assert final_assembly.control_order_id is None
        assert final_assembly.kind == "FINAL_ASSEMBLY"
        assert final_assembly.workstation_id == 6
        assert final_assembly.status == "PENDING"
        assert [(l.item_type, l.item_id, l.requested_quantity) for l in final_assembly.line_items] == [
            ("PRODUCT", 1, 1)
        ]
        assert final_assembly.line_items[0].item_name == "Truck"

    def test_one_final_assembly_per_product(self, db_session, stock):
        stock.set(8, 10, 2)
        stock.set(8, 11, 2)
        stock.set(8, 12, 1)
        order = create_test_warehouse_order(
            db_session,
            modules=[(10, 1, 1, 1), (11, 2, 1, 1), (10, 1, 2, 1), (12, 1, 2, 1)],
            status="CONFIRMED",
        )
        db_session.commit()

        warehouse_order_service.fulfill_warehouse_order(db_session, order, stock)

        products = sorted(wso.line_items[0].item_id for wso in db_session.query(WorkstationOrder).all())
        assert products == [1, 2]

    def test_short_modules_raise_and_retag(self, db_session, stock):
        stock.set(8, 10, 1)
        order = truck_order(db_session, status="CONFIRMED", trigger_scenario="DIRECT_FULFILLMENT")

        with pytest.raises(InsufficientStockError) as exc:
            warehouse_order_service.fulfill_warehouse_order(db_session, order, stock)

        assert exc.value.details["missing"] == {"11": 2}
        db_session.refresh(order)
        assert order.status == "CONFIRMED"
        assert order.trigger_scenario == "PRODUCTION_REQUIRED"
        assert stock.debits == []

    def test_without_provenance_completes(self, db_session, stock):
        stock.set(8, 10, 1)
        order = create_test_warehouse_order(db_session, modules=[(10, 1, None, None)], status="CONFIRMED")
        db_session.commit()

        warehouse_order_service.fulfill_warehouse_order(db_session, order, stock)

        assert order.status == "COMPLETED"
        assert db_session.query(WorkstationOrder).count() == 0

    def test_failed_debit_is_secondary(self, db_session, stocked):
        stocked.fail_debits.add((8, 11))
        order = truck_order(db_session, status="CONFIRMED")

        warehouse_order_service.fulfill_warehouse_order(db_session, order, stocked)

        assert order.status == "PROCESSING"
        assert order.secondary_failure is True

    def test_requires_confirmed(self, db_session, stocked):
        order = truck_order(db_session)
        with pytest.raises(InvalidStateError):
            warehouse_order_service.fulfill_warehouse_order(db_session, order, stocked)


class TestRequestProduction:

    def test_creates_production_order_for_remaining_modules(self, db_session, stock):
        order = truck_order(db_session, status="CONFIRMED", trigger_scenario="PRODUCTION_REQUIRED")

        warehouse_order_service.request_production(db_session, order, priority="HIGH")

        assert order.status == "PROCESSING"
        production_order = db_session.query(ProductionOrder).one()
        assert production_order.warehouse_order_id == order.id
        assert production_order.priority == "HIGH"
        assert sorted((l.item_type, l.item_id, l.requested_quantity) for l in production_order.line_items) == [
            ("MODULE", 10, 1),
            ("MODULE", 11, 2),
        ]

    def test_requires_production_required_tag(self, db_session, stock):
        order = truck_order(db_session, status="CONFIRMED", trigger_scenario="DIRECT_FULFILLMENT")
        with pytest.raises(InvalidStateError):
            warehouse_order_service.request_production(db_session, order)


class TestCancel:

    def test_cancel_pending(self, db_session):
        order = truck_order(db_session)
        warehouse_order_service.cancel_warehouse_order(db_session, order, "customer withdrew")
        assert order.status == "CANCELLED"
        assert "customer withdrew" in order.notes

    def test_cancel_terminal_rejected(self, db_session):
        order = truck_order(db_session, status="COMPLETED")
        with pytest.raises(InvalidStateError):
            warehouse_order_service.cancel_warehouse_order(db_session, order)
