"""
Test data factories for FactoryFlow.

Provides functions to create orders at every level with sensible defaults.
Factories flush but never commit; tests commit when the code under test
expects committed data.

Usage:
    from tests.factories import create_test_customer_order, create_test_production_order

    def test_something(db_session):
        order = create_test_customer_order(db_session, items=[(1, 2)])
        po = create_test_production_order(db_session, customer_order=order)
"""
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from app.models.control_order import ControlOrder
from app.models.customer_order import CustomerOrder
from app.models.order_line_item import OrderLineItem
from app.models.production_order import ProductionOrder
from app.models.warehouse_order import WarehouseOrder
from app.models.workstation_order import WORKSTATION_KINDS, WorkstationOrder


# =============================================================================
# SEQUENCE MANAGEMENT
# =============================================================================

_sequences: Dict[str, int] = {}


def reset_sequences():
    """Reset all sequences. Call between tests for predictable numbers."""
    global _sequences
    _sequences = {}


def _next(name: str) -> int:
    """Get next sequence number for a given entity type."""
    _sequences[name] = _sequences.get(name, 0) + 1
    return _sequences[name]


def _number(prefix: str) -> str:
    """Generate an order number like ORD-TEST0001."""
    return f"{prefix}-TEST{_next(prefix):04d}"


def _line(item_type: str, item_id: int, quantity: int, **extra) -> OrderLineItem:
    return OrderLineItem(
        item_type=item_type,
        item_id=item_id,
        requested_quantity=quantity,
        fulfilled_quantity=extra.pop("fulfilled_quantity", 0),
        **extra
    )


# =============================================================================
# CUSTOMER / WAREHOUSE ORDERS
# =============================================================================

def create_test_customer_order(
    db: Session,
    items: Sequence[Tuple[int, int]] = ((1, 1),),
    status: str = "PENDING",
    workstation_id: int = 7,
    **overrides
) -> CustomerOrder:
    """
    Create a customer order with PRODUCT lines.

    Args:
        db: Database session
        items: (product_id, quantity) pairs
        status: Initial status
        workstation_id: Location the order is served from
        **overrides: Additional field overrides
    """
    order = CustomerOrder(
        order_number=overrides.pop("order_number", _number("ORD")),
        status=status,
        workstation_id=workstation_id,
        line_items=[_line("PRODUCT", product_id, quantity) for product_id, quantity in items],
        **overrides
    )
    db.add(order)
    db.flush()
    return order


def create_test_warehouse_order(
    db: Session,
    customer_order: Optional[CustomerOrder] = None,
    modules: Sequence[Tuple[int, int, Optional[int], Optional[int]]] = ((10, 1, 1, 1),),
    status: str = "PENDING",
    **overrides
) -> WarehouseOrder:
    """
    Create a warehouse order with MODULE lines.

    Args:
        modules: (module_id, quantity, source_product_id, source_product_quantity)
    """
    order = WarehouseOrder(
        order_number=overrides.pop("order_number", _number("WO")),
        customer_order_id=customer_order.id if customer_order else None,
        status=status,
        workstation_id=8,
        line_items=[
            _line("MODULE", module_id, quantity, source_product_id=product_id, source_product_quantity=product_qty)
            for module_id, quantity, product_id, product_qty in modules
        ],
        **overrides
    )
    db.add(order)
    db.flush()
    return order


# =============================================================================
# PRODUCTION / CONTROL / WORKSTATION ORDERS
# =============================================================================

def create_test_production_order(
    db: Session,
    customer_order: Optional[CustomerOrder] = None,
    warehouse_order: Optional[WarehouseOrder] = None,
    lines: Optional[List[Tuple[str, int, int]]] = None,
    status: str = "PENDING",
    **overrides
) -> ProductionOrder:
    """
    Create a production order under exactly one parent.

    Args:
        lines: (item_type, item_id, quantity); defaults to the parent's lines
    """
    if lines is None:
        parent = customer_order or warehouse_order
        lines = [(line.item_type, line.item_id, line.requested_quantity) for line in parent.line_items]
    order = ProductionOrder(
        order_number=overrides.pop("order_number", _number("PO")),
        customer_order_id=customer_order.id if customer_order else None,
        warehouse_order_id=warehouse_order.id if warehouse_order else None,
        status=status,
        priority=overrides.pop("priority", "NORMAL"),
        line_items=[_line(item_type, item_id, quantity) for item_type, item_id, quantity in lines],
        **overrides
    )
    db.add(order)
    db.flush()
    return order


def create_test_control_order(
    db: Session,
    production_order: ProductionOrder,
    control_type: str = "PRODUCTION",
    status: str = "IN_PROGRESS",
    **overrides
) -> ControlOrder:
    order = ControlOrder(
        order_number=overrides.pop("order_number", _number("PCO" if control_type == "PRODUCTION" else "ACO")),
        production_order_id=production_order.id,
        control_type=control_type,
        status=status,
        **overrides
    )
    db.add(order)
    db.flush()
    return order


def create_test_workstation_order(
    db: Session,
    control_order: Optional[ControlOrder] = None,
    warehouse_order: Optional[WarehouseOrder] = None,
    workstation_id: int = 1,
    lines: Optional[List[Tuple[str, int, int]]] = None,
    status: str = "IN_PROGRESS",
    **overrides
) -> WorkstationOrder:
    """
    Create a workstation order under a control order or (final assembly) a
    warehouse order. Lines default to one MODULE output (PRODUCT at ws 6).
    """
    if lines is None:
        lines = [("PRODUCT", 1, 1)] if workstation_id == 6 else [("MODULE", 10, 1)]
    order = WorkstationOrder(
        order_number=overrides.pop("order_number", _number("WSO")),
        control_order_id=control_order.id if control_order else None,
        warehouse_order_id=warehouse_order.id if warehouse_order else None,
        kind=WORKSTATION_KINDS[workstation_id].value,
        workstation_id=workstation_id,
        status=status,
        line_items=[_line(item_type, item_id, quantity) for item_type, item_id, quantity in lines],
        **overrides
    )
    db.add(order)
    db.flush()
    return order


# =============================================================================
# HIERARCHIES
# =============================================================================

def create_direct_production_chain(db: Session, workstation_count: int = 2, product_quantity: int = 3) -> Dict:
    """
    Customer order (PROCESSING) -> production order (IN_PROGRESS) ->
    one control order (IN_PROGRESS) -> ``workstation_count`` workstation
    orders (IN_PROGRESS). Committed.
    """
    customer_order = create_test_customer_order(db, items=[(1, product_quantity)], status="PROCESSING")
    production_order = create_test_production_order(db, customer_order=customer_order, status="IN_PROGRESS")
    control_order = create_test_control_order(db, production_order, status="IN_PROGRESS")
    workstation_orders = [
        create_test_workstation_order(db, control_order=control_order, workstation_id=1 + i % 3)
        for i in range(workstation_count)
    ]
    db.commit()
    return {
        "customer_order": customer_order,
        "production_order": production_order,
        "control_order": control_order,
        "workstation_orders": workstation_orders,
    }


def create_replenishment_chain(db: Session) -> Dict:
    """
    Customer order (PROCESSING) -> warehouse order (PROCESSING) ->
    production order (IN_PROGRESS) -> control order -> one workstation order.
    Committed.
    """
    customer_order = create_test_customer_order(db, items=[(1, 1)], status="PROCESSING")
    warehouse_order = create_test_warehouse_order(
        db, customer_order=customer_order, modules=[(10, 1, 1, 1), (11, 2, 1, 1)], status="PROCESSING",
        trigger_scenario="PRODUCTION_REQUIRED",
    )
    production_order = create_test_production_order(db, warehouse_order=warehouse_order, status="IN_PROGRESS")
    control_order = create_test_control_order(db, production_order, status="IN_PROGRESS")
    workstation_order = create_test_workstation_order(db, control_order=control_order, workstation_id=1)
    db.commit()
    return {
        "customer_order": customer_order,
        "warehouse_order": warehouse_order,
        "production_order": production_order,
        "control_order": control_order,
        "workstation_order": workstation_order,
    }
