"""
Unit tests for workstation order start/complete/halt/resume/cancel
"""
import pytest

from app.core.status_config import StatusTransitionError
from app.exceptions import InvalidStateError
from app.services import workstation_order_service

from tests.factories import (
    create_test_control_order,
    create_test_customer_order,
    create_test_production_order,
    create_test_workstation_order,
)


def workstation_order(db, workstation_id=4, lines=None, status="PENDING", control_status="ASSIGNED"):
    customer_order = create_test_customer_order(db, items=[(1, 1)], status="PROCESSING")
    production_order = create_test_production_order(db, customer_order=customer_order, status="IN_PROGRESS")
    control_order = create_test_control_order(db, production_order, control_type="ASSEMBLY", status=control_status)
    order = create_test_workstation_order(
        db,
        control_order=control_order,
        workstation_id=workstation_id,
        lines=lines or [("MODULE", 11, 2), ("PART", 101, 4), ("PART", 102, 2)],
        status=status,
    )
    db.commit()
    return order


class TestStart:

    def test_consumes_inputs_and_starts_parent(self, db_session, stock, scheduling):
        order = workstation_order(db_session)

        workstation_order_service.start_workstation_order(db_session, order, stock, scheduling)

        assert order.status == "IN_PROGRESS"
        assert order.started_at is not None
        assert order.control_order.status == "IN_PROGRESS"
        assert sorted(stock.debits) == [
            (9, 101, 4, "PRODUCTION_CONSUMPTION"),
            (9, 102, 2, "PRODUCTION_CONSUMPTION"),
        ]

    def test_final_assembly_consumes_modules(self, db_session, stock):
        order = workstation_order(
            db_session, workstation_id=6, lines=[("PRODUCT", 1, 1), ("MODULE", 10, 1), ("MODULE", 11, 2)]
        )

        workstation_order_service.start_workstation_order(db_session, order, stock)

        assert sorted((loc, item, qty) for loc, item, qty, _ in stock.debits) == [(8, 10, 1), (8, 11, 2)]

    def test_failed_consumption_is_secondary(self, db_session, stock):
        stock.fail_debits.add((9, 101))
        order = workstation_order(db_session)

        workstation_order_service.start_workstation_order(db_session, order, stock)

        assert order.status == "IN_PROGRESS"
        assert order.secondary_failure is True

    def test_in_progress_parent_left_alone(self, db_session, stock):
        order = workstation_order(db_session, control_status="IN_PROGRESS")
        workstation_order_service.start_workstation_order(db_session, order, stock)
        assert order.control_order.status == "IN_PROGRESS"

    def test_only_pending(self, db_session, stock):
        order = workstation_order(db_session, status="IN_PROGRESS")
        with pytest.raises(InvalidStateError):
            workstation_order_service.start_workstation_order(db_session, order, stock)


class TestComplete:

    def test_credits_output(self, db_session, stock, scheduling):
        order = workstation_order(db_session, status="IN_PROGRESS", control_status="IN_PROGRESS")
        order.schedule_id = "SIMAL-3"
        db_session.commit()

        order, _ = workstation_order_service.complete_workstation_order(db_session, order, stock, scheduling)

        assert order.status == "COMPLETED"
        assert order.completed_at is not None
        assert stock.credits == [(8, 11, 2, "PRODUCTION_COMPLETION")]
        assert order.output_items[0].is_fulfilled
        assert "COMPLETED" in scheduling.statuses_for("SIMAL-3")

    def test_failed_credit_still_completes(self, db_session, stock):
        stock.fail_credits.add((8, 11))
        order = workstation_order(db_session, status="IN_PROGRESS", control_status="IN_PROGRESS")

        order, _ = workstation_order_service.complete_workstation_order(db_session, order, stock)

        assert order.status == "COMPLETED"
        assert order.secondary_failure is True
        assert order.output_items[0].fulfilled_quantity == 0

    def test_only_in_progress(self, db_session, stock):
        order = workstation_order(db_session)
        with pytest.raises(InvalidStateError):
            workstation_order_service.complete_workstation_order(db_session, order, stock)


class TestHaltResumeCancel:

    def test_halt_and_resume(self, db_session):
        order = workstation_order(db_session, status="IN_PROGRESS")

        workstation_order_service.halt_workstation_order(db_session, order, "jam")
        assert order.status == "HALTED"
        assert "jam" in order.notes

        workstation_order_service.resume_workstation_order(db_session, order)
        assert order.status == "IN_PROGRESS"

    def test_halt_pending_is_invalid_transition(self, db_session):
        order = workstation_order(db_session)
        with pytest.raises(StatusTransitionError):
            workstation_order_service.halt_workstation_order(db_session, order)

    def test_resume_requires_halted(self, db_session):
        order = workstation_order(db_session, status="IN_PROGRESS")
        with pytest.raises(InvalidStateError):
            workstation_order_service.resume_workstation_order(db_session, order)

    def test_cancel_completed_rejected(self, db_session):
        order = workstation_order(db_session, status="COMPLETED")
        with pytest.raises(InvalidStateError):
            workstation_order_service.cancel_workstation_order(db_session, order)
