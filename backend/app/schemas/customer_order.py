"""
Customer order schemas
"""
from typing import List, Optional

from pydantic import BaseModel, Field

from app.schemas.common import OrderBase, OrderLineItemResponse


class CustomerOrderLineCreate(BaseModel):
    product_id: int = Field(..., gt=0)
    quantity: int = Field(..., gt=0)


class CustomerOrderCreate(BaseModel):
    customer_name: Optional[str] = Field(None, max_length=200)
    notes: Optional[str] = None
    workstation_id: Optional[int] = Field(None, description="Location served from (plant warehouse by default)")
    items: List[CustomerOrderLineCreate] = Field(..., min_length=1)


class CustomerOrderResponse(OrderBase):
    customer_name: Optional[str] = None
    workstation_id: int
    trigger_scenario: Optional[str] = None
    line_items: List[OrderLineItemResponse] = []


class ScenarioCheckResponse(BaseModel):
    """Scenario re-derived from current stock, without touching the order"""
    order_id: int
    order_number: str
    stored_scenario: Optional[str] = None
    current_scenario: str
    drifted: bool

    class Config:
        from_attributes = True
