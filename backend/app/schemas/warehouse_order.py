"""
Warehouse order schemas
"""
from typing import List, Optional

from pydantic import BaseModel, Field

from app.schemas.common import OrderBase, OrderLineItemResponse


class WarehouseOrderResponse(OrderBase):
    customer_order_id: Optional[int] = None
    workstation_id: int
    trigger_scenario: Optional[str] = None
    line_items: List[OrderLineItemResponse] = []


class ProductionRequest(BaseModel):
    priority: str = Field("NORMAL", pattern="^(LOW|NORMAL|HIGH|URGENT)$")
