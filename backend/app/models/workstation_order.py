"""
Workstation Order model

Leaf of the hierarchy: one unit of work at one workstation. Completing a
workstation order credits its output and kicks off completion propagation.
"""
from datetime import datetime
from enum import Enum

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.db.base import Base
from app.models.mixins import OrderMixin


class WorkstationKind(str, Enum):
    INJECTION_MOLDING = "INJECTION_MOLDING"
    PART_PREPRODUCTION = "PART_PREPRODUCTION"
    PART_FINISHING = "PART_FINISHING"
    GEAR_ASSEMBLY = "GEAR_ASSEMBLY"
    MOTOR_ASSEMBLY = "MOTOR_ASSEMBLY"
    FINAL_ASSEMBLY = "FINAL_ASSEMBLY"


# Workstation id -> kind of order processed there
WORKSTATION_KINDS = {
    1: WorkstationKind.INJECTION_MOLDING,
    2: WorkstationKind.PART_PREPRODUCTION,
    3: WorkstationKind.PART_FINISHING,
    4: WorkstationKind.GEAR_ASSEMBLY,
    5: WorkstationKind.MOTOR_ASSEMBLY,
    6: WorkstationKind.FINAL_ASSEMBLY,
}

MANUFACTURING_KINDS = {
    WorkstationKind.INJECTION_MOLDING,
    WorkstationKind.PART_PREPRODUCTION,
    WorkstationKind.PART_FINISHING,
}
ASSEMBLY_KINDS = {
    WorkstationKind.GEAR_ASSEMBLY,
    WorkstationKind.MOTOR_ASSEMBLY,
}


class WorkstationOrder(OrderMixin, Base):
    """
    Workstation order.

    Lifecycle: PENDING -> IN_PROGRESS -> COMPLETED, with HALTED <-> IN_PROGRESS
    """
    __tablename__ = "workstation_orders"
    __table_args__ = (
        CheckConstraint(
            "(control_order_id IS NULL) <> (warehouse_order_id IS NULL)",
            name="ck_workstation_order_single_parent",
        ),
    )

    # Parent (exactly one): control order, or a warehouse order for final
    # assembly after module replenishment
    control_order_id = Column(Integer, ForeignKey("control_orders.id"), nullable=True, index=True)
    warehouse_order_id = Column(Integer, ForeignKey("warehouse_orders.id"), nullable=True, index=True)

    kind = Column(String(30), nullable=False, index=True)
    workstation_id = Column(Integer, nullable=False, index=True)

    # Scheduling service reference, inherited from the production order
    schedule_id = Column(String(100), nullable=True)

    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    control_order = relationship("ControlOrder", back_populates="workstation_orders")
    warehouse_order = relationship("WarehouseOrder", back_populates="final_assembly_orders")
    line_items = relationship(
        "OrderLineItem",
        back_populates="workstation_order",
        cascade="all, delete-orphan",
        order_by="OrderLineItem.id",
    )

    def __repr__(self):
        return f"<WorkstationOrder {self.order_number} {self.kind} ({self.status})>"

    @property
    def is_final_assembly(self) -> bool:
        return self.kind == WorkstationKind.FINAL_ASSEMBLY.value

    @property
    def output_items(self):
        """Lines produced here (the rest are consumed inputs)."""
        output_type = "PRODUCT" if self.is_final_assembly else "MODULE"
        return [item for item in self.line_items if item.item_type == output_type]

    @property
    def input_items(self):
        output_type = "PRODUCT" if self.is_final_assembly else "MODULE"
        return [item for item in self.line_items if item.item_type != output_type]

    def mark_started(self) -> None:
        self.started_at = self.started_at or datetime.utcnow()

    def mark_completed(self) -> None:
        self.completed_at = datetime.utcnow()
