"""
Event Service

Centralized helper functions for recording order audit events across the
application. Every event is also queued for webhook delivery.
"""
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.order_event import OrderEvent
from app.services import webhook_service

CUSTOMER_ORDER = "CUSTOMER_ORDER"
WAREHOUSE_ORDER = "WAREHOUSE_ORDER"
PRODUCTION_ORDER = "PRODUCTION_ORDER"
CONTROL_ORDER = "CONTROL_ORDER"
WORKSTATION_ORDER = "WORKSTATION_ORDER"

ORDER_TYPES = (CUSTOMER_ORDER, WAREHOUSE_ORDER, PRODUCTION_ORDER, CONTROL_ORDER, WORKSTATION_ORDER)


def record_order_event(
    db: Session,
    order_type: str,
    order_id: int,
    event_type: str,
    description: Optional[str] = None,
) -> OrderEvent:
    """
    Record an audit event for an order.

    Args:
        db: Database session
        order_type: One of ORDER_TYPES
        order_id: ID of the order at that level
        event_type: CREATED, CONFIRMED, COMPLETED, SECONDARY_FAILURE, ...
        description: Human readable detail

    Returns:
        The created OrderEvent instance
    """
    order_event = OrderEvent(
        order_type=order_type,
        order_id=order_id,
        event_type=event_type,
        description=description,
        created_at=datetime.utcnow(),
    )
    db.add(order_event)
    webhook_service.queue_delivery(db, order_event)
    # Don't commit - let the calling function handle the transaction
    return order_event


def get_order_events(db: Session, order_type: str, order_id: int) -> List[OrderEvent]:
    return (
        db.query(OrderEvent)
        .filter(OrderEvent.order_type == order_type, OrderEvent.order_id == order_id)
        .order_by(OrderEvent.created_at.desc(), OrderEvent.id.desc())
        .all()
    )


def get_recent_events(db: Session, limit: int = 50) -> List[OrderEvent]:
    return (
        db.query(OrderEvent)
        .order_by(OrderEvent.created_at.desc(), OrderEvent.id.desc())
        .limit(limit)
        .all()
    )
