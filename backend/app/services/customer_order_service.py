"""
Customer Order Service

Creation, lookup, confirmation and cancellation of customer orders. Scenario
execution lives in the fulfillment executor.
"""
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.status_config import FulfillmentOrderStatus, validate_fulfillment_order_transition
from app.exceptions import InvalidStateError, NotFoundError, ValidationError
from app.integrations.masterdata import MasterdataClient
from app.integrations.stock import StockClient
from app.logging_config import get_logger
from app.models.customer_order import CustomerOrder
from app.models.order_line_item import OrderLineItem
from app.services.event_service import CUSTOMER_ORDER, record_order_event
from app.services.order_helpers import generate_order_number
from app.services.scenario_classifier import ScenarioClassifier

logger = get_logger(__name__)


def create_customer_order(
    db: Session,
    items: Iterable[Tuple[int, int]],
    customer_name: Optional[str] = None,
    notes: Optional[str] = None,
    workstation_id: Optional[int] = None,
    masterdata: Optional[MasterdataClient] = None,
) -> CustomerOrder:
    """
    Create a PENDING customer order for (product_id, quantity) pairs.

    Raises:
        ValidationError: No items, or a non-positive quantity
    """
    items = list(items)
    if not items:
        raise ValidationError("A customer order needs at least one line item", field="items")
    for product_id, quantity in items:
        if quantity <= 0:
            raise ValidationError(
                f"Quantity for product {product_id} must be positive",
                field="quantity",
                value=quantity,
            )

    order = CustomerOrder(
        order_number=generate_order_number("ORD"),
        customer_name=customer_name,
        workstation_id=workstation_id or settings.PLANT_WAREHOUSE_ID,
        status=FulfillmentOrderStatus.PENDING.value,
        notes=notes,
        line_items=[
            OrderLineItem(
                item_type="PRODUCT",
                item_id=product_id,
                item_name=masterdata.get_item_name("PRODUCT", product_id) if masterdata else None,
                requested_quantity=quantity,
                fulfilled_quantity=0,
            )
            for product_id, quantity in items
        ],
    )
    db.add(order)
    db.flush()

    record_order_event(db, CUSTOMER_ORDER, order.id, "CREATED", f"Customer order created with {len(items)} items")
    db.commit()
    db.refresh(order)

    logger.info(
        f"Created customer order {order.order_number}",
        extra={"order_id": order.id, "lines": len(items), "customer_name": customer_name},
    )
    return order


def get_customer_order(db: Session, order_id: int) -> CustomerOrder:
    order = db.query(CustomerOrder).filter(CustomerOrder.id == order_id).first()
    if not order:
        raise NotFoundError("CustomerOrder", order_id)
    return order


def list_customer_orders(
    db: Session,
    status: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[CustomerOrder]:
    query = db.query(CustomerOrder)
    if status:
        query = query.filter(CustomerOrder.status == status.upper())
    return query.order_by(CustomerOrder.created_at.desc(), CustomerOrder.id.desc()).offset(skip).limit(limit).all()


def confirm_customer_order(db: Session, order: CustomerOrder, stock: StockClient) -> CustomerOrder:
    """PENDING -> CONFIRMED, caching the scenario derived from current stock."""
    validate_fulfillment_order_transition("customer order", order.status, FulfillmentOrderStatus.CONFIRMED.value)
    if order.status != FulfillmentOrderStatus.PENDING.value:
        raise InvalidStateError(
            f"Order {order.order_number} is already confirmed",
            current_state=order.status,
            allowed_states=[FulfillmentOrderStatus.PENDING.value],
        )

    classification = ScenarioClassifier(db, stock).classify(order)

    order.set_status(FulfillmentOrderStatus.CONFIRMED.value)
    order.trigger_scenario = classification.scenario.value
    record_order_event(
        db, CUSTOMER_ORDER, order.id, "CONFIRMED",
        f"Order confirmed, scenario {classification.scenario.value}",
    )
    db.commit()
    db.refresh(order)
    return order


def cancel_customer_order(db: Session, order: CustomerOrder, reason: Optional[str] = None) -> CustomerOrder:
    if order.is_terminal:
        raise InvalidStateError(
            f"Order {order.order_number} is already {order.status}",
            current_state=order.status,
        )
    validate_fulfillment_order_transition("customer order", order.status, FulfillmentOrderStatus.CANCELLED.value)

    order.set_status(FulfillmentOrderStatus.CANCELLED.value)
    if reason:
        order.append_note(f"Cancelled: {reason}")
    record_order_event(db, CUSTOMER_ORDER, order.id, "CANCELLED", reason or "Order cancelled")
    db.commit()
    db.refresh(order)

    logger.info(f"Cancelled customer order {order.order_number}", extra={"reason": reason})
    return order
