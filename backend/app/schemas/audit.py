"""
Audit event, webhook subscription and system configuration schemas
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class OrderEventResponse(BaseModel):
    id: int
    order_type: str
    order_id: int
    event_type: str
    description: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class WebhookSubscriptionCreate(BaseModel):
    event_type: Optional[str] = Field(
        None,
        max_length=100,
        description="ORDER_TYPE.EVENT_TYPE (e.g. CUSTOMER_ORDER.COMPLETED) or ANY; omitted means ANY",
    )
    target_url: str = Field(..., max_length=500)
    secret: Optional[str] = Field(None, max_length=200)


class WebhookSubscriptionResponse(BaseModel):
    id: int
    event_type: str
    target_url: str
    active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class LotSizeThresholdResponse(BaseModel):
    threshold: int


class LotSizeThresholdUpdate(BaseModel):
    threshold: int = Field(..., ge=1)
    updated_by: Optional[str] = Field(None, max_length=100)
