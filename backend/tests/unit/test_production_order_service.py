"""
Unit tests for production scheduling and control order dispatch
"""
from datetime import datetime, timedelta

import pytest

from app.core.status_config import StatusTransitionError
from app.exceptions import BomResolutionError, BusinessRuleError, InvalidStateError, ValidationError
from app.models.control_order import ControlOrder
from app.models.workstation_order import WorkstationOrder
from app.services import production_order_service

from tests.factories import (
    create_test_customer_order,
    create_test_production_order,
    create_test_warehouse_order,
)


def product_production_order(db, items=((1, 2),), status="PENDING"):
    customer_order = create_test_customer_order(db, items=items, status="PROCESSING")
    order = create_test_production_order(db, customer_order=customer_order, status=status)
    db.commit()
    return order


def module_production_order(db, modules=(("MODULE", 10, 1),)):
    warehouse_order = create_test_warehouse_order(db, status="PROCESSING")
    order = create_test_production_order(db, warehouse_order=warehouse_order, lines=list(modules))
    db.commit()
    return order


def lines_of(workstation_order):
    return sorted((l.item_type, l.item_id, l.requested_quantity) for l in workstation_order.line_items)


class TestSchedule:

    def test_sets_window_and_schedule_id(self, db_session, scheduling):
        order = product_production_order(db_session)
        start = datetime(2026, 10, 19, 8, 0)

        result = production_order_service.schedule_production(
            db_session, order.id, start, start + timedelta(hours=4), scheduling=scheduling
        )

        db_session.refresh(order)
        assert order.status == "SCHEDULED"
        assert order.schedule_id.startswith("SCH-")
        assert order.scheduled_start == start
        assert result["schedule_id"] == order.schedule_id
        assert result["scheduling_notified"] is True
        assert scheduling.statuses_for(order.schedule_id) == ["SCHEDULED"]

    def test_keeps_given_schedule_id(self, db_session):
        order = product_production_order(db_session)
        start = datetime(2026, 10, 19, 8, 0)
        production_order_service.schedule_production(
            db_session, order.id, start, start + timedelta(hours=1), schedule_id="SIMAL-42"
        )
        db_session.refresh(order)
        assert order.schedule_id == "SIMAL-42"

    def test_rejects_inverted_window(self, db_session):
        order = product_production_order(db_session)
        start = datetime(2026, 10, 19, 8, 0)
        with pytest.raises(ValidationError):
            production_order_service.schedule_production(db_session, order.id, start, start)

    def test_only_pending(self, db_session):
        order = product_production_order(db_session, status="IN_PROGRESS")
        with pytest.raises(InvalidStateError):
            production_order_service.ensure_schedulable(order)

    def test_reports_progress(self, db_session):
        order = product_production_order(db_session)
        seen = []
        start = datetime(2026, 10, 19, 8, 0)
        production_order_service.schedule_production(
            db_session, order.id, start, start + timedelta(hours=1),
            progress=lambda percent, message: seen.append(percent),
        )
        assert seen == sorted(seen)
        assert seen


class TestDispatch:

    def test_product_order_fans_out(self, db_session, masterdata):
        order = product_production_order(db_session, items=[(1, 2)])

        result = production_order_service.dispatch_control_orders(db_session, order.id, masterdata)

        db_session.refresh(order)
        assert order.status == "IN_PROGRESS"
        control_orders = {c.control_type: c for c in db_session.query(ControlOrder).all()}
        assert set(control_orders) == {"PRODUCTION", "ASSEMBLY"}
        assert all(c.status == "ASSIGNED" for c in control_orders.values())
        assert control_orders["PRODUCTION"].order_number.startswith("PCO-")
        assert control_orders["ASSEMBLY"].order_number.startswith("ACO-")

        by_kind = {w.kind: w for w in db_session.query(WorkstationOrder).all()}
        assert set(by_kind) == {"INJECTION_MOLDING", "GEAR_ASSEMBLY", "FINAL_ASSEMBLY"}
        assert by_kind["INJECTION_MOLDING"].control_order_id == control_orders["PRODUCTION"].id
        assert lines_of(by_kind["INJECTION_MOLDING"]) == [("MODULE", 10, 2)]
        assert lines_of(by_kind["GEAR_ASSEMBLY"]) == [("MODULE", 11, 4), ("PART", 101, 8), ("PART", 102, 4)]
        assert by_kind["FINAL_ASSEMBLY"].workstation_id == 6
        assert by_kind["FINAL_ASSEMBLY"].control_order_id == control_orders["ASSEMBLY"].id
        assert lines_of(by_kind["FINAL_ASSEMBLY"]) == [("MODULE", 10, 2), ("MODULE", 11, 4), ("PRODUCT", 1, 2)]
        assert all(w.status == "PENDING" for w in by_kind.values())
        assert len(result["workstation_orders"]) == 3

    def test_module_order_without_assembly_gets_one_control_order(self, db_session, masterdata):
        order = module_production_order(db_session)

        production_order_service.dispatch_control_orders(db_session, order.id, masterdata)

        control_orders = db_session.query(ControlOrder).all()
        assert [c.control_type for c in control_orders] == ["PRODUCTION"]
        assert db_session.query(WorkstationOrder).count() == 1

    def test_workstation_orders_inherit_schedule(self, db_session, masterdata):
        order = module_production_order(db_session, modules=[("MODULE", 12, 1)])
        order.schedule_id = "SIMAL-7"
        order.status = "SCHEDULED"
        db_session.commit()

        production_order_service.dispatch_control_orders(db_session, order.id, masterdata)

        workstation_order = db_session.query(WorkstationOrder).one()
        assert workstation_order.kind == "MOTOR_ASSEMBLY"
        assert workstation_order.schedule_id == "SIMAL-7"

    def test_invalid_module_workstation_writes_nothing(self, db_session, masterdata):
        masterdata.workstations[10] = 6
        order = module_production_order(db_session)

        with pytest.raises(BusinessRuleError):
            production_order_service.dispatch_control_orders(db_session, order.id, masterdata)
        db_session.rollback()

        assert db_session.query(ControlOrder).count() == 0
        db_session.refresh(order)
        assert order.status == "PENDING"

    def test_missing_bom_writes_nothing(self, db_session, masterdata):
        order = product_production_order(db_session, items=[(999, 1)])

        with pytest.raises(BomResolutionError):
            production_order_service.dispatch_control_orders(db_session, order.id, masterdata)
        db_session.rollback()

        assert db_session.query(ControlOrder).count() == 0

    def test_part_lines_are_not_producible(self, db_session, masterdata):
        order = module_production_order(db_session, modules=[("PART", 100, 1)])
        with pytest.raises(BusinessRuleError):
            production_order_service.dispatch_control_orders(db_session, order.id, masterdata)

    def test_second_dispatch_rejected(self, db_session, masterdata):
        order = module_production_order(db_session)
        production_order_service.dispatch_control_orders(db_session, order.id, masterdata)
        db_session.refresh(order)
        with pytest.raises(InvalidStateError):
            production_order_service.ensure_dispatchable(order)


class TestHaltCancel:

    def test_halt_requires_in_progress(self, db_session):
        order = product_production_order(db_session)
        with pytest.raises(StatusTransitionError):
            production_order_service.halt_production_order(db_session, order)

    def test_cancel_notifies_scheduling(self, db_session, scheduling):
        order = product_production_order(db_session, status="SCHEDULED")
        order.schedule_id = "SIMAL-9"
        db_session.commit()

        production_order_service.cancel_production_order(db_session, order, "line down", scheduling=scheduling)

        assert order.status == "CANCELLED"
        assert scheduling.statuses_for("SIMAL-9") == ["CANCELLED"]

    def test_cancel_completed_rejected(self, db_session):
        order = product_production_order(db_session, status="COMPLETED")
        with pytest.raises(InvalidStateError):
            production_order_service.cancel_production_order(db_session, order)
