"""
Order Event Model

Audit trail for every order level: status changes, scenario decisions,
side-effect failures. Each recorded event is also offered to webhook
subscribers once the surrounding transaction commits.
"""
from sqlalchemy import Column, Integer, String, DateTime, Text
from datetime import datetime

from app.db.base import Base


class OrderEvent(Base):
    """Order Event - Activity log entry for any order"""
    __tablename__ = "order_events"

    # Primary Key
    id = Column(Integer, primary_key=True, index=True)

    # CUSTOMER_ORDER, WAREHOUSE_ORDER, PRODUCTION_ORDER, CONTROL_ORDER, WORKSTATION_ORDER
    order_type = Column(String(30), nullable=False, index=True)
    order_id = Column(Integer, nullable=False, index=True)

    # Event Type
    # CREATED, CONFIRMED, SCENARIO_DRIFT, STATUS_PROCESSING, COMPLETED,
    # CANCELLED, HALTED, RESUMED, SECONDARY_FAILURE, REARMED, ...
    event_type = Column(String(50), nullable=False, index=True)

    description = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f"<OrderEvent {self.order_type}.{self.event_type} for #{self.order_id}>"
