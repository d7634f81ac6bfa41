"""
Warehouse Order Model

Module replenishment request against the modules supermarket, spawned by a
customer order (or entered directly, in which case it is a root order).
"""
from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.db.base import Base
from app.models.mixins import OrderMixin


class WarehouseOrder(OrderMixin, Base):
    """Warehouse order for modules"""
    __tablename__ = "warehouse_orders"

    customer_order_id = Column(
        Integer,
        ForeignKey("customer_orders.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    workstation_id = Column(Integer, nullable=False, default=8)

    # DIRECT_FULFILLMENT or PRODUCTION_REQUIRED
    trigger_scenario = Column(String(40), nullable=True)

    customer_order = relationship("CustomerOrder", back_populates="warehouse_orders")
    line_items = relationship(
        "OrderLineItem",
        back_populates="warehouse_order",
        cascade="all, delete-orphan",
        order_by="OrderLineItem.id",
    )
    production_orders = relationship("ProductionOrder", back_populates="warehouse_order")
    final_assembly_orders = relationship("WorkstationOrder", back_populates="warehouse_order")

    def __repr__(self):
        return f"<WarehouseOrder {self.order_number} ({self.status})>"
