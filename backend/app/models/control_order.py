"""
Control Order model

Middle layer between a production order and the workstations. Two variants
share the table:

- PRODUCTION: supervises manufacturing stages (injection molding, part
  pre-production, part finishing)
- ASSEMBLY: supervises gear/motor assembly and, for product-sourced
  production, final assembly
"""
from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.db.base import Base
from app.models.mixins import OrderMixin


class ControlOrder(OrderMixin, Base):
    """Production control order or assembly control order"""
    __tablename__ = "control_orders"

    production_order_id = Column(
        Integer,
        ForeignKey("production_orders.id"),
        nullable=False,
        index=True,
    )

    # PRODUCTION or ASSEMBLY
    control_type = Column(String(20), nullable=False, index=True)

    # Supervising workstation for the control station UI
    assigned_workstation_id = Column(Integer, nullable=True)

    production_order = relationship("ProductionOrder", back_populates="control_orders")
    workstation_orders = relationship(
        "WorkstationOrder",
        back_populates="control_order",
        order_by="WorkstationOrder.id",
    )

    def __repr__(self):
        return f"<ControlOrder {self.order_number} {self.control_type} ({self.status})>"
