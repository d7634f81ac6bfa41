"""
Control Order Service

Production and assembly control orders supervise a group of workstation
orders. They start when the supervisor (or the first workstation) starts, and
complete only through propagation.
"""
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.status_config import WorkOrderStatus
from app.exceptions import InvalidStateError, NotFoundError
from app.integrations.scheduling import SchedulingClient
from app.integrations.stock import StockClient
from app.models.control_order import ControlOrder
from app.services.completion_propagator import CompletionPropagator, PropagationResult
from app.services.event_service import CONTROL_ORDER
from app.services.order_helpers import transition_work_order


def get_control_order(db: Session, order_id: int) -> ControlOrder:
    order = db.query(ControlOrder).filter(ControlOrder.id == order_id).first()
    if not order:
        raise NotFoundError("ControlOrder", order_id)
    return order


def list_control_orders(
    db: Session,
    control_type: Optional[str] = None,
    status: Optional[str] = None,
    production_order_id: Optional[int] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[ControlOrder]:
    query = db.query(ControlOrder)
    if control_type:
        query = query.filter(ControlOrder.control_type == control_type.upper())
    if status:
        query = query.filter(ControlOrder.status == status.upper())
    if production_order_id is not None:
        query = query.filter(ControlOrder.production_order_id == production_order_id)
    return query.order_by(ControlOrder.created_at.desc(), ControlOrder.id.desc()).offset(skip).limit(limit).all()


def start_control_order(db: Session, order: ControlOrder) -> ControlOrder:
    if order.status != WorkOrderStatus.ASSIGNED.value:
        raise InvalidStateError(
            f"Control order {order.order_number} cannot be started in status {order.status}",
            current_state=order.status,
            allowed_states=[WorkOrderStatus.ASSIGNED.value],
        )
    transition_work_order(db, order, CONTROL_ORDER, WorkOrderStatus.IN_PROGRESS, "Started by supervisor")
    db.commit()
    db.refresh(order)
    return order


def halt_control_order(db: Session, order: ControlOrder, reason: Optional[str] = None) -> ControlOrder:
    transition_work_order(db, order, CONTROL_ORDER, WorkOrderStatus.HALTED, reason)
    if reason:
        order.append_note(f"Halted: {reason}")
    db.commit()
    db.refresh(order)
    return order


def resume_control_order(
    db: Session,
    order: ControlOrder,
    stock: StockClient,
    scheduling: Optional[SchedulingClient] = None,
) -> Tuple[ControlOrder, PropagationResult]:
    """
    HALTED -> IN_PROGRESS, then re-run the completion check: workstation
    orders may have finished while this order was halted.
    """
    if order.status != WorkOrderStatus.HALTED.value:
        raise InvalidStateError(
            f"Control order {order.order_number} is not halted",
            current_state=order.status,
            allowed_states=[WorkOrderStatus.HALTED.value],
        )
    transition_work_order(db, order, CONTROL_ORDER, WorkOrderStatus.IN_PROGRESS, "Resumed")
    db.commit()

    propagation = CompletionPropagator(db, stock, scheduling).recheck_control_order(order.id)
    db.refresh(order)
    return order, propagation
