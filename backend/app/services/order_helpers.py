"""
Order Helpers - child order creation and status changes shared by the services

Customer orders, warehouse orders and production orders all spawn children
the same way: new order number, typed parent link, copied or derived line
items, PENDING/ASSIGNED status and an audit event. Keep that in one place.
"""
import uuid
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.status_config import FulfillmentOrderStatus, WorkOrderStatus, validate_work_order_transition
from app.integrations.masterdata import MasterdataClient
from app.logging_config import get_logger
from app.models.customer_order import CustomerOrder
from app.models.order_line_item import OrderLineItem
from app.models.production_order import ProductionOrder
from app.models.warehouse_order import WarehouseOrder
from app.services.bom_resolver import ModuleRequirement
from app.services.event_service import (
    CUSTOMER_ORDER,
    PRODUCTION_ORDER,
    WAREHOUSE_ORDER,
    record_order_event,
)

logger = get_logger(__name__)


def generate_order_number(prefix: str) -> str:
    """e.g. ORD-1A2B3C4D"""
    return f"{prefix}-{uuid.uuid4().hex[:8].upper()}"


def module_lines_from_requirements(
    requirements: Iterable[ModuleRequirement],
    masterdata: Optional[MasterdataClient] = None,
) -> List[OrderLineItem]:
    """
    One MODULE line per (product, module), provenance-linked to the product.

    Lines are kept per product rather than merged so that final assembly can
    be recreated per (product, quantity) pair later.
    """
    lines = []
    for requirement in requirements:
        for module_id, quantity in requirement.modules.items():
            lines.append(
                OrderLineItem(
                    item_type="MODULE",
                    item_id=module_id,
                    item_name=masterdata.get_item_name("MODULE", module_id) if masterdata else None,
                    requested_quantity=quantity,
                    fulfilled_quantity=0,
                    source_product_id=requirement.product_id,
                    source_product_quantity=requirement.product_quantity,
                )
            )
    return lines


def aggregate_lines(lines: Iterable[OrderLineItem]) -> Dict[int, int]:
    """Total outstanding quantity per item id."""
    totals: Dict[int, int] = {}
    for line in lines:
        if line.remaining_quantity <= 0:
            continue
        totals[line.item_id] = totals.get(line.item_id, 0) + line.remaining_quantity
    return totals


def create_warehouse_order(
    db: Session,
    customer_order: CustomerOrder,
    lines: List[OrderLineItem],
    reason: str,
) -> WarehouseOrder:
    """Child warehouse order (PENDING) at the modules supermarket."""
    warehouse_order = WarehouseOrder(
        order_number=generate_order_number("WO"),
        customer_order_id=customer_order.id,
        workstation_id=settings.MODULES_SUPERMARKET_ID,
        status=FulfillmentOrderStatus.PENDING.value,
        notes=f"Auto-generated from customer order {customer_order.order_number} ({reason})",
        line_items=lines,
    )
    db.add(warehouse_order)
    db.flush()

    record_order_event(
        db, WAREHOUSE_ORDER, warehouse_order.id, "CREATED",
        f"Created from customer order {customer_order.order_number} with {len(lines)} module lines",
    )
    record_order_event(
        db, CUSTOMER_ORDER, customer_order.id, "WAREHOUSE_ORDER_CREATED",
        f"Warehouse order {warehouse_order.order_number} created ({reason})",
    )
    logger.info(
        f"Created warehouse order {warehouse_order.order_number} for customer order {customer_order.order_number}",
        extra={"lines": len(lines), "reason": reason},
    )
    return warehouse_order


def create_production_order(
    db: Session,
    lines: List[OrderLineItem],
    trigger_scenario: str,
    customer_order: Optional[CustomerOrder] = None,
    warehouse_order: Optional[WarehouseOrder] = None,
    priority: str = "NORMAL",
) -> ProductionOrder:
    """Child production order (PENDING) under exactly one parent."""
    if (customer_order is None) == (warehouse_order is None):
        raise ValueError("A production order needs exactly one parent")

    parent = customer_order or warehouse_order
    production_order = ProductionOrder(
        order_number=generate_order_number("PO"),
        customer_order_id=customer_order.id if customer_order else None,
        warehouse_order_id=warehouse_order.id if warehouse_order else None,
        status=WorkOrderStatus.PENDING.value,
        trigger_scenario=trigger_scenario,
        priority=priority,
        notes=f"Auto-generated from {parent.order_number} ({trigger_scenario})",
        line_items=lines,
    )
    db.add(production_order)
    db.flush()

    parent_type = CUSTOMER_ORDER if customer_order else WAREHOUSE_ORDER
    record_order_event(
        db, PRODUCTION_ORDER, production_order.id, "CREATED",
        f"Created from {parent.order_number} ({trigger_scenario})",
    )
    record_order_event(
        db, parent_type, parent.id, "PRODUCTION_ORDER_CREATED",
        f"Production order {production_order.order_number} created",
    )
    logger.info(
        f"Created production order {production_order.order_number} from {parent.order_number}",
        extra={"trigger_scenario": trigger_scenario, "lines": len(lines)},
    )
    return production_order


def transition_work_order(
    db: Session,
    order,
    order_type: str,
    new_status: WorkOrderStatus,
    description: Optional[str] = None,
) -> None:
    """
    Validated status change for a production, control or workstation order,
    with its audit event. Does not commit.

    Raises:
        StatusTransitionError: Transition not allowed from the current status
    """
    entity = order_type.lower().replace("_", " ")
    validate_work_order_transition(entity, order.status, new_status.value)
    previous = order.status
    order.set_status(new_status.value)
    record_order_event(
        db, order_type, order.id, new_status.value,
        description or f"{previous} -> {new_status.value}",
    )
