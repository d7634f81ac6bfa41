"""
Webhook Subscription Model
"""
from sqlalchemy import Boolean, Column, DateTime, Integer, String
from datetime import datetime

from app.db.base import Base


class WebhookSubscription(Base):
    """External endpoint notified about audited order events"""
    __tablename__ = "webhook_subscriptions"

    id = Column(Integer, primary_key=True, index=True)

    # "ANY" or "<ORDER_TYPE>.<EVENT_TYPE>", e.g. CUSTOMER_ORDER.COMPLETED
    event_type = Column(String(100), nullable=False, default="ANY", index=True)
    target_url = Column(String(500), nullable=False)
    secret = Column(String(255), nullable=True)
    active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f"<WebhookSubscription {self.event_type} -> {self.target_url}>"

    def matches(self, event_key: str) -> bool:
        return self.event_type.upper() == "ANY" or self.event_type.upper() == event_key.upper()
