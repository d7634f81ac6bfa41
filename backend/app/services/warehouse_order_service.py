"""
Warehouse Order Service

Warehouse orders pull modules out of the modules supermarket for final
assembly. Lifecycle:

    PENDING --confirm--> CONFIRMED --fulfill--> PROCESSING --(final assembly done)--> COMPLETED
                             |
                             +--request_production--> PROCESSING --(production done)--> CONFIRMED

Confirmation tags the order DIRECT_FULFILLMENT when every module is in stock,
PRODUCTION_REQUIRED otherwise. Replenishment stays an explicit operator step.
"""
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.status_config import (
    FulfillmentOrderStatus,
    Scenario,
    WarehouseScenario,
    WorkOrderStatus,
    validate_fulfillment_order_transition,
)
from app.exceptions import InsufficientStockError, InvalidStateError, NotFoundError
from app.integrations.masterdata import MasterdataClient
from app.integrations.stock import REASON_ORDER_FULFILLMENT, StockClient
from app.logging_config import get_logger
from app.models.order_line_item import OrderLineItem
from app.models.warehouse_order import WarehouseOrder
from app.models.workstation_order import WorkstationKind, WorkstationOrder
from app.services.event_service import WAREHOUSE_ORDER, WORKSTATION_ORDER, record_order_event
from app.services.order_helpers import aggregate_lines, create_production_order, generate_order_number
from app.services.side_effects import record_results, stock_debit

logger = get_logger(__name__)


def get_warehouse_order(db: Session, order_id: int) -> WarehouseOrder:
    order = db.query(WarehouseOrder).filter(WarehouseOrder.id == order_id).first()
    if not order:
        raise NotFoundError("WarehouseOrder", order_id)
    return order


def list_warehouse_orders(
    db: Session,
    status: Optional[str] = None,
    customer_order_id: Optional[int] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[WarehouseOrder]:
    query = db.query(WarehouseOrder)
    if status:
        query = query.filter(WarehouseOrder.status == status.upper())
    if customer_order_id is not None:
        query = query.filter(WarehouseOrder.customer_order_id == customer_order_id)
    return query.order_by(WarehouseOrder.created_at.desc(), WarehouseOrder.id.desc()).offset(skip).limit(limit).all()


def missing_modules(order: WarehouseOrder, stock: StockClient) -> Dict[int, int]:
    """Modules (aggregated across lines) the supermarket cannot cover right now."""
    return {
        module_id: quantity
        for module_id, quantity in aggregate_lines(order.line_items).items()
        if not stock.check_stock(settings.MODULES_SUPERMARKET_ID, module_id, quantity)
    }


def confirm_warehouse_order(db: Session, order: WarehouseOrder, stock: StockClient) -> WarehouseOrder:
    if order.status != FulfillmentOrderStatus.PENDING.value:
        raise InvalidStateError(
            f"Warehouse order {order.order_number} cannot be confirmed in status {order.status}",
            current_state=order.status,
            allowed_states=[FulfillmentOrderStatus.PENDING.value],
        )

    missing = missing_modules(order, stock)
    scenario = WarehouseScenario.PRODUCTION_REQUIRED if missing else WarehouseScenario.DIRECT_FULFILLMENT

    validate_fulfillment_order_transition("warehouse order", order.status, FulfillmentOrderStatus.CONFIRMED.value)
    order.set_status(FulfillmentOrderStatus.CONFIRMED.value)
    order.trigger_scenario = scenario.value
    record_order_event(db, WAREHOUSE_ORDER, order.id, "CONFIRMED", f"Confirmed, scenario {scenario.value}")
    db.commit()
    db.refresh(order)

    logger.info(
        f"Warehouse order {order.order_number} confirmed as {scenario.value}",
        extra={"missing_modules": sorted(missing)},
    )
    return order


def fulfill_warehouse_order(
    db: Session,
    order: WarehouseOrder,
    stock: StockClient,
    masterdata: Optional[MasterdataClient] = None,
) -> WarehouseOrder:
    """
    Release modules from the supermarket and hand them to final assembly.

    Raises:
        InvalidStateError: Order is not CONFIRMED
        InsufficientStockError: Modules are short (order is re-tagged PRODUCTION_REQUIRED)
    """
    if order.status != FulfillmentOrderStatus.CONFIRMED.value:
        raise InvalidStateError(
            f"Warehouse order {order.order_number} cannot be fulfilled in status {order.status}",
            current_state=order.status,
            allowed_states=[FulfillmentOrderStatus.CONFIRMED.value],
        )

    missing = missing_modules(order, stock)
    if missing:
        if order.trigger_scenario != WarehouseScenario.PRODUCTION_REQUIRED.value:
            order.trigger_scenario = WarehouseScenario.PRODUCTION_REQUIRED.value
            record_order_event(
                db, WAREHOUSE_ORDER, order.id, "SCENARIO_CHANGED",
                f"Modules short at fulfillment: {sorted(missing)}",
            )
            db.commit()
        raise InsufficientStockError(settings.MODULES_SUPERMARKET_ID, missing=missing)

    results = []
    for line in order.line_items:
        if line.is_fulfilled:
            continue
        result = stock_debit(
            stock,
            settings.MODULES_SUPERMARKET_ID,
            line.item_id,
            line.remaining_quantity,
            reason=REASON_ORDER_FULFILLMENT,
            notes=f"Warehouse order {order.order_number}",
        )
        if result.ok:
            line.record_fulfilled(line.remaining_quantity)
        results.append(result)
    record_results(db, order, WAREHOUSE_ORDER, results)

    final_assembly = create_final_assembly_orders(db, order, masterdata)
    order.trigger_scenario = WarehouseScenario.DIRECT_FULFILLMENT.value

    if final_assembly:
        validate_fulfillment_order_transition("warehouse order", order.status, FulfillmentOrderStatus.PROCESSING.value)
        order.set_status(FulfillmentOrderStatus.PROCESSING.value)
        record_order_event(
            db, WAREHOUSE_ORDER, order.id, "PROCESSING",
            f"Modules released, {len(final_assembly)} final assembly orders created",
        )
    else:
        # No product provenance: nothing left to assemble
        validate_fulfillment_order_transition("warehouse order", order.status, FulfillmentOrderStatus.COMPLETED.value)
        order.set_status(FulfillmentOrderStatus.COMPLETED.value)
        record_order_event(db, WAREHOUSE_ORDER, order.id, "COMPLETED", "Modules released from supermarket")

    db.commit()
    db.refresh(order)
    return order


def create_final_assembly_orders(
    db: Session,
    order: WarehouseOrder,
    masterdata: Optional[MasterdataClient] = None,
) -> List[WorkstationOrder]:
    """
    One FINAL_ASSEMBLY order per distinct (product, product quantity) found in
    the module lines' provenance. The modules were already taken from the
    supermarket by the warehouse order, so these orders have only an output.
    """
    products: List[Tuple[int, int]] = []
    for line in order.line_items:
        if line.source_product_id is None:
            continue
        key = (line.source_product_id, line.source_product_quantity or 1)
        if key not in products:
            products.append(key)

    created = []
    for product_id, quantity in products:
        workstation_order = WorkstationOrder(
            order_number=generate_order_number("WSO"),
            warehouse_order_id=order.id,
            kind=WorkstationKind.FINAL_ASSEMBLY.value,
            workstation_id=settings.FINAL_ASSEMBLY_WORKSTATION_ID,
            status=WorkOrderStatus.PENDING.value,
            notes=f"Final assembly for warehouse order {order.order_number}",
            line_items=[
                OrderLineItem(
                    item_type="PRODUCT",
                    item_id=product_id,
                    item_name=masterdata.get_item_name("PRODUCT", product_id) if masterdata else None,
                    requested_quantity=quantity,
                    fulfilled_quantity=0,
                )
            ],
        )
        db.add(workstation_order)
        db.flush()
        record_order_event(
            db, WORKSTATION_ORDER, workstation_order.id, "CREATED",
            f"Final assembly of {quantity} x product {product_id} for {order.order_number}",
        )
        created.append(workstation_order)

    if created:
        logger.info(
            f"Created {len(created)} final assembly orders for warehouse order {order.order_number}",
            extra={"products": products},
        )
    return created


def request_production(db: Session, order: WarehouseOrder, priority: str = "NORMAL") -> WarehouseOrder:
    """Send a PRODUCTION_REQUIRED warehouse order's modules to production."""
    if (
        order.status != FulfillmentOrderStatus.CONFIRMED.value
        or order.trigger_scenario != WarehouseScenario.PRODUCTION_REQUIRED.value
    ):
        raise InvalidStateError(
            f"Warehouse order {order.order_number} must be CONFIRMED with "
            f"{WarehouseScenario.PRODUCTION_REQUIRED.value} to request production",
            current_state=f"{order.status}/{order.trigger_scenario}",
        )

    production_order = create_production_order(
        db,
        [line.copy_for(line.remaining_quantity) for line in order.line_items if line.remaining_quantity > 0],
        trigger_scenario=Scenario.WAREHOUSE_ORDER_NEEDED.value,
        warehouse_order=order,
        priority=priority,
    )

    validate_fulfillment_order_transition("warehouse order", order.status, FulfillmentOrderStatus.PROCESSING.value)
    order.set_status(FulfillmentOrderStatus.PROCESSING.value)
    order.append_note(f"Production requested: {production_order.order_number}")
    record_order_event(
        db, WAREHOUSE_ORDER, order.id, "PROCESSING",
        f"Waiting on production order {production_order.order_number}",
    )
    db.commit()
    db.refresh(order)
    return order


def cancel_warehouse_order(db: Session, order: WarehouseOrder, reason: Optional[str] = None) -> WarehouseOrder:
    if order.is_terminal:
        raise InvalidStateError(
            f"Warehouse order {order.order_number} is already {order.status}",
            current_state=order.status,
        )
    validate_fulfillment_order_transition("warehouse order", order.status, FulfillmentOrderStatus.CANCELLED.value)

    order.set_status(FulfillmentOrderStatus.CANCELLED.value)
    if reason:
        order.append_note(f"Cancelled: {reason}")
    record_order_event(db, WAREHOUSE_ORDER, order.id, "CANCELLED", reason or "Warehouse order cancelled")
    db.commit()
    db.refresh(order)
    return order
