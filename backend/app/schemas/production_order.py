"""
Production, control and workstation order schemas
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from app.schemas.common import OrderBase, OrderLineItemResponse, PropagationResponse


# ============================================================================
# Production orders
# ============================================================================

class ProductionOrderResponse(OrderBase):
    customer_order_id: Optional[int] = None
    warehouse_order_id: Optional[int] = None
    source_type: str
    trigger_scenario: Optional[str] = None
    priority: str
    schedule_id: Optional[str] = None
    scheduled_start: Optional[datetime] = None
    scheduled_end: Optional[datetime] = None
    line_items: List[OrderLineItemResponse] = []


class ScheduleRequest(BaseModel):
    """Time window for a production order"""
    scheduled_start: datetime
    scheduled_end: datetime
    schedule_id: Optional[str] = Field(None, max_length=100, description="Existing schedule reference, generated if omitted")

    @model_validator(mode="after")
    def check_window(self):
        if self.scheduled_end <= self.scheduled_start:
            raise ValueError("scheduled_end must be after scheduled_start")
        return self


# ============================================================================
# Control orders
# ============================================================================

class ControlOrderResponse(OrderBase):
    production_order_id: int
    control_type: str
    assigned_workstation_id: Optional[int] = None


class ControlOrderResumeResponse(BaseModel):
    order: ControlOrderResponse
    propagation: PropagationResponse


class ProductionOrderResumeResponse(BaseModel):
    order: ProductionOrderResponse
    propagation: PropagationResponse


# ============================================================================
# Workstation orders
# ============================================================================

class WorkstationOrderResponse(OrderBase):
    control_order_id: Optional[int] = None
    warehouse_order_id: Optional[int] = None
    kind: str
    workstation_id: int
    schedule_id: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    line_items: List[OrderLineItemResponse] = []


class WorkstationCompleteResponse(BaseModel):
    order: WorkstationOrderResponse
    propagation: PropagationResponse
