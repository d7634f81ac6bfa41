"""
Production Order model

Production orders manufacture what the warehouses cannot supply. They are
spawned either by a customer order (direct production, PRODUCT lines) or by a
warehouse order (replenishment, MODULE lines), then dispatched into one
production control order and one assembly control order.
"""
from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.db.base import Base
from app.models.mixins import OrderMixin


class ProductionOrder(OrderMixin, Base):
    """
    Production Order - the scheduling entity.

    Lifecycle: PENDING -> SCHEDULED -> IN_PROGRESS -> COMPLETED

    Created from:
    - Customer order (DIRECT_PRODUCTION)
    - Warehouse order (PARTIAL_FULFILLMENT, or PRODUCTION_REQUIRED on request)
    """
    __tablename__ = "production_orders"
    __table_args__ = (
        CheckConstraint(
            "(customer_order_id IS NULL) <> (warehouse_order_id IS NULL)",
            name="ck_production_order_single_parent",
        ),
    )

    # Parent (exactly one)
    customer_order_id = Column(Integer, ForeignKey("customer_orders.id"), nullable=True, index=True)
    warehouse_order_id = Column(Integer, ForeignKey("warehouse_orders.id"), nullable=True, index=True)

    # Scenario that caused this order to exist
    trigger_scenario = Column(String(40), nullable=True)
    priority = Column(String(20), nullable=False, default="NORMAL")

    # Scheduling (set by the SCHEDULE_PRODUCTION operation)
    schedule_id = Column(String(100), nullable=True, index=True)
    scheduled_start = Column(DateTime, nullable=True)
    scheduled_end = Column(DateTime, nullable=True)

    customer_order = relationship("CustomerOrder", back_populates="production_orders")
    warehouse_order = relationship("WarehouseOrder", back_populates="production_orders")
    line_items = relationship(
        "OrderLineItem",
        back_populates="production_order",
        cascade="all, delete-orphan",
        order_by="OrderLineItem.id",
    )
    control_orders = relationship(
        "ControlOrder",
        back_populates="production_order",
        order_by="ControlOrder.id",
    )

    def __repr__(self):
        return f"<ProductionOrder {self.order_number} ({self.status})>"

    @property
    def source_type(self) -> str:
        return "CUSTOMER_ORDER" if self.customer_order_id is not None else "WAREHOUSE_ORDER"

    @property
    def produces_products(self) -> bool:
        """Product lines need final assembly; module lines stop at the module store."""
        return any(item.item_type == "PRODUCT" for item in self.line_items)
