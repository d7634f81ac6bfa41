"""
Order Line Item Model

One requested item on an order. Each line belongs to exactly one owning order
through the FK column for that order's level. Module lines generated from a
product's BOM keep the originating product (and its ordered quantity) so that
final assembly can later be created per product.
"""
from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.db.base import Base


class OrderLineItem(Base):
    """Line item on a customer, warehouse, production or workstation order"""
    __tablename__ = "order_line_items"
    __table_args__ = (
        CheckConstraint("requested_quantity > 0", name="ck_line_requested_positive"),
        CheckConstraint(
            "fulfilled_quantity >= 0 AND fulfilled_quantity <= requested_quantity",
            name="ck_line_fulfilled_within_requested",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)

    # Owning order (exactly one is set)
    customer_order_id = Column(Integer, ForeignKey("customer_orders.id", ondelete="CASCADE"), nullable=True, index=True)
    warehouse_order_id = Column(Integer, ForeignKey("warehouse_orders.id", ondelete="CASCADE"), nullable=True, index=True)
    production_order_id = Column(Integer, ForeignKey("production_orders.id", ondelete="CASCADE"), nullable=True, index=True)
    workstation_order_id = Column(Integer, ForeignKey("workstation_orders.id", ondelete="CASCADE"), nullable=True, index=True)

    # PRODUCT, MODULE or PART
    item_type = Column(String(20), nullable=False)
    item_id = Column(Integer, nullable=False, index=True)
    item_name = Column(String(255), nullable=True)

    requested_quantity = Column(Integer, nullable=False)
    fulfilled_quantity = Column(Integer, nullable=False, default=0)

    # Provenance for module lines derived from a product BOM
    source_product_id = Column(Integer, nullable=True)
    source_product_quantity = Column(Integer, nullable=True)

    customer_order = relationship("CustomerOrder", back_populates="line_items")
    warehouse_order = relationship("WarehouseOrder", back_populates="line_items")
    production_order = relationship("ProductionOrder", back_populates="line_items")
    workstation_order = relationship("WorkstationOrder", back_populates="line_items")

    def __repr__(self):
        return f"<OrderLineItem {self.item_type}#{self.item_id} x{self.requested_quantity}>"

    @property
    def remaining_quantity(self) -> int:
        return (self.requested_quantity or 0) - (self.fulfilled_quantity or 0)

    @property
    def is_fulfilled(self) -> bool:
        return self.remaining_quantity <= 0

    def record_fulfilled(self, quantity: int) -> None:
        """Add to the fulfilled quantity. Never decreases, never exceeds requested."""
        if quantity < 0:
            raise ValueError("Fulfilled quantity cannot decrease")
        self.fulfilled_quantity = min(
            self.requested_quantity, (self.fulfilled_quantity or 0) + quantity
        )

    def copy_for(self, quantity: int = None) -> "OrderLineItem":
        """Unattached copy of this line (same item and provenance) for a child order."""
        return OrderLineItem(
            item_type=self.item_type,
            item_id=self.item_id,
            item_name=self.item_name,
            requested_quantity=quantity if quantity is not None else self.requested_quantity,
            fulfilled_quantity=0,
            source_product_id=self.source_product_id,
            source_product_quantity=self.source_product_quantity,
        )
