"""
Order progress: completed vs. total immediate children for any non-leaf order.

Uses the same child sets as the completion propagator, so a progress of
100% on an in-flight order means propagation is about to (or already did)
move it.
"""
from dataclasses import dataclass

from app.models.control_order import ControlOrder
from app.models.customer_order import CustomerOrder
from app.models.production_order import ProductionOrder
from app.models.warehouse_order import WarehouseOrder


@dataclass
class OrderProgress:
    order_number: str
    status: str
    total: int
    completed: int

    @property
    def percent(self) -> int:
        if self.total == 0:
            return 100 if self.status == "COMPLETED" else 0
        return int(self.completed * 100 / self.total)

    @property
    def is_complete(self) -> bool:
        return self.total > 0 and self.completed == self.total


def _progress(order, children) -> OrderProgress:
    children = list(children)
    return OrderProgress(
        order_number=order.order_number,
        status=order.status,
        total=len(children),
        completed=sum(1 for child in children if child.status == "COMPLETED"),
    )


def customer_order_progress(order: CustomerOrder) -> OrderProgress:
    children = list(order.warehouse_orders) + list(order.production_orders)
    if children:
        return _progress(order, children)
    # Nothing delegated: progress is the share of fulfilled lines
    lines = order.line_items
    return OrderProgress(
        order_number=order.order_number,
        status=order.status,
        total=len(lines),
        completed=sum(1 for line in lines if line.is_fulfilled),
    )


def warehouse_order_progress(order: WarehouseOrder) -> OrderProgress:
    return _progress(order, list(order.production_orders) + list(order.final_assembly_orders))


def production_order_progress(order: ProductionOrder) -> OrderProgress:
    return _progress(order, order.control_orders)


def control_order_progress(order: ControlOrder) -> OrderProgress:
    return _progress(order, order.workstation_orders)
