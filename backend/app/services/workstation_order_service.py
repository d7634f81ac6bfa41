"""
Workstation Order Service

Operator actions on the leaves of the hierarchy. Stock movements around a
workstation order are secondary: a failed consumption or credit is recorded on
the order and never blocks the status change.

complete() is the trigger for upward completion propagation.
"""
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.status_config import WorkOrderStatus
from app.exceptions import InvalidStateError, NotFoundError
from app.integrations.scheduling import SchedulingClient
from app.integrations.stock import (
    REASON_PRODUCTION_COMPLETION,
    REASON_PRODUCTION_CONSUMPTION,
    StockClient,
)
from app.logging_config import get_logger
from app.models.workstation_order import WorkstationOrder
from app.services.completion_propagator import CompletionPropagator, PropagationResult
from app.services.event_service import CONTROL_ORDER, WORKSTATION_ORDER
from app.services.order_helpers import transition_work_order
from app.services.side_effects import record_results, transfer_lines

logger = get_logger(__name__)


def get_workstation_order(db: Session, order_id: int) -> WorkstationOrder:
    order = db.query(WorkstationOrder).filter(WorkstationOrder.id == order_id).first()
    if not order:
        raise NotFoundError("WorkstationOrder", order_id)
    return order


def list_workstation_orders(
    db: Session,
    workstation_id: Optional[int] = None,
    status: Optional[str] = None,
    control_order_id: Optional[int] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[WorkstationOrder]:
    query = db.query(WorkstationOrder)
    if workstation_id is not None:
        query = query.filter(WorkstationOrder.workstation_id == workstation_id)
    if status:
        query = query.filter(WorkstationOrder.status == status.upper())
    if control_order_id is not None:
        query = query.filter(WorkstationOrder.control_order_id == control_order_id)
    return query.order_by(WorkstationOrder.created_at, WorkstationOrder.id).offset(skip).limit(limit).all()


def start_workstation_order(
    db: Session,
    order: WorkstationOrder,
    stock: StockClient,
    scheduling: Optional[SchedulingClient] = None,
) -> WorkstationOrder:
    """PENDING -> IN_PROGRESS, consuming input items from their stores."""
    if order.status != WorkOrderStatus.PENDING.value:
        raise InvalidStateError(
            f"Workstation order {order.order_number} cannot be started in status {order.status}",
            current_state=order.status,
            allowed_states=[WorkOrderStatus.PENDING.value],
        )

    control_order = order.control_order
    if control_order is not None and control_order.status == WorkOrderStatus.ASSIGNED.value:
        transition_work_order(
            db, control_order, CONTROL_ORDER, WorkOrderStatus.IN_PROGRESS,
            f"Started by workstation order {order.order_number}",
        )

    inputs = order.input_items
    if inputs:
        results = transfer_lines(
            stock, inputs, "debit", REASON_PRODUCTION_CONSUMPTION,
            f"Consumed by {order.order_number}",
        )
        record_results(db, order, WORKSTATION_ORDER, results)

    transition_work_order(db, order, WORKSTATION_ORDER, WorkOrderStatus.IN_PROGRESS)
    order.mark_started()
    db.commit()
    db.refresh(order)

    if scheduling is not None:
        scheduling.update_status(order.schedule_id, WorkOrderStatus.IN_PROGRESS.value, order.order_number)

    logger.info(
        f"Started workstation order {order.order_number} at workstation {order.workstation_id}",
        extra={"kind": order.kind, "inputs": len(inputs)},
    )
    return order


def complete_workstation_order(
    db: Session,
    order: WorkstationOrder,
    stock: StockClient,
    scheduling: Optional[SchedulingClient] = None,
) -> Tuple[WorkstationOrder, PropagationResult]:
    """
    Finish a workstation order and cascade completion upward.

    The output credit is attempted before the status is written; the status
    is committed before propagation starts.

    Returns:
        The completed order and what propagation changed above it
    """
    if order.status != WorkOrderStatus.IN_PROGRESS.value:
        raise InvalidStateError(
            f"Workstation order {order.order_number} cannot be completed in status {order.status}",
            current_state=order.status,
            allowed_states=[WorkOrderStatus.IN_PROGRESS.value],
        )

    outputs = order.output_items
    results = transfer_lines(
        stock, outputs, "credit", REASON_PRODUCTION_COMPLETION,
        f"Produced by {order.order_number}",
    )
    for line, result in zip(outputs, results):
        if result.ok:
            line.record_fulfilled(line.remaining_quantity)
    record_results(db, order, WORKSTATION_ORDER, results)

    transition_work_order(db, order, WORKSTATION_ORDER, WorkOrderStatus.COMPLETED)
    order.mark_completed()
    db.commit()
    db.refresh(order)

    logger.info(
        f"Completed workstation order {order.order_number}",
        extra={
            "kind": order.kind,
            "workstation_id": order.workstation_id,
            "secondary_failure": order.secondary_failure,
        },
    )

    if scheduling is not None:
        scheduling.update_status(order.schedule_id, WorkOrderStatus.COMPLETED.value, order.order_number)

    propagation = CompletionPropagator(db, stock, scheduling).on_workstation_completed(order)
    db.refresh(order)
    return order, propagation


def halt_workstation_order(db: Session, order: WorkstationOrder, reason: Optional[str] = None) -> WorkstationOrder:
    transition_work_order(db, order, WORKSTATION_ORDER, WorkOrderStatus.HALTED, reason)
    if reason:
        order.append_note(f"Halted: {reason}")
    db.commit()
    db.refresh(order)
    return order


def resume_workstation_order(db: Session, order: WorkstationOrder) -> WorkstationOrder:
    if order.status != WorkOrderStatus.HALTED.value:
        raise InvalidStateError(
            f"Workstation order {order.order_number} is not halted",
            current_state=order.status,
            allowed_states=[WorkOrderStatus.HALTED.value],
        )
    transition_work_order(db, order, WORKSTATION_ORDER, WorkOrderStatus.IN_PROGRESS, "Resumed")
    db.commit()
    db.refresh(order)
    return order


def cancel_workstation_order(db: Session, order: WorkstationOrder, reason: Optional[str] = None) -> WorkstationOrder:
    if order.is_terminal:
        raise InvalidStateError(
            f"Workstation order {order.order_number} is already {order.status}",
            current_state=order.status,
        )
    transition_work_order(db, order, WORKSTATION_ORDER, WorkOrderStatus.CANCELLED, reason)
    if reason:
        order.append_note(f"Cancelled: {reason}")
    db.commit()
    db.refresh(order)
    return order
