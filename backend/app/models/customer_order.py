"""
Customer Order Model

Root of the fulfillment hierarchy. Placed against a location (normally the
plant warehouse) and routed through one of the four fulfillment scenarios.
"""
from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship

from app.db.base import Base
from app.models.mixins import OrderMixin


class CustomerOrder(OrderMixin, Base):
    """Customer order for finished products"""
    __tablename__ = "customer_orders"

    customer_name = Column(String(200), nullable=True)

    # Stock location the order is served from
    workstation_id = Column(Integer, nullable=False, default=7)

    # Cached classification result; advisory only, re-derived at execution time
    trigger_scenario = Column(String(40), nullable=True)

    line_items = relationship(
        "OrderLineItem",
        back_populates="customer_order",
        cascade="all, delete-orphan",
        order_by="OrderLineItem.id",
    )
    warehouse_orders = relationship("WarehouseOrder", back_populates="customer_order")
    production_orders = relationship("ProductionOrder", back_populates="customer_order")

    def __repr__(self):
        return f"<CustomerOrder {self.order_number} ({self.status})>"

    @property
    def total_quantity(self) -> int:
        return sum(item.requested_quantity for item in self.line_items)
