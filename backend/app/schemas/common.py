"""
Common API Schemas

Error responses plus the pieces every order level shares: line items,
status-change requests, progress and propagation results.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# ============================================================================
# Error Response Models
# ============================================================================

class ErrorResponse(BaseModel):
    """
    Standardized error response for all API errors.

    Error Codes:
        - VALIDATION_ERROR: Request validation failed (400/422)
        - INVALID_STATE: Operation not allowed in the order's current status (400)
        - INVALID_TRANSITION: Status transition not allowed (400)
        - NOT_FOUND: Resource not found (404)
        - CONFLICT: Resource conflict (409)
        - BUSINESS_RULE_ERROR: Business rule violation (422)
        - BOM_RESOLUTION_ERROR: No bill of materials for an item (422)
        - INSUFFICIENT_STOCK: Stock needed for the operation is missing (422)
        - DATABASE_ERROR: Database operation failed (500)
        - INTEGRATION_ERROR / MASTERDATA_ERROR: External service error (500)
        - INTERNAL_ERROR: Unexpected internal error (500)

    Example:
        {
            "error": "NOT_FOUND",
            "message": "CustomerOrder with ID 123 not found",
            "details": {"resource": "CustomerOrder", "resource_id": "123"},
            "timestamp": "2026-03-02T10:30:00Z"
        }
    """
    error: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error context")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="When the error occurred (UTC)")


# ============================================================================
# Shared order pieces
# ============================================================================

class OrderLineItemResponse(BaseModel):
    id: int
    item_type: str
    item_id: int
    item_name: Optional[str] = None
    requested_quantity: int
    fulfilled_quantity: int
    source_product_id: Optional[int] = None
    source_product_quantity: Optional[int] = None

    class Config:
        from_attributes = True


class OrderBase(BaseModel):
    """Fields every order level exposes"""
    id: int
    order_number: str
    status: str
    notes: Optional[str] = None
    secondary_failure: bool = False
    secondary_failure_notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ReasonRequest(BaseModel):
    """Optional reason for halt/cancel"""
    reason: Optional[str] = Field(None, max_length=500)


class OrderProgressResponse(BaseModel):
    order_number: str
    status: str
    total: int
    completed: int
    percent: int
    is_complete: bool

    class Config:
        from_attributes = True


class PropagationResponse(BaseModel):
    """What completion propagation changed above an order"""
    completed: List[str] = Field(default_factory=list, description="Order numbers completed, bottom-up")
    rearmed: Optional[str] = None
    stopped_at: Optional[str] = None
    error: Optional[str] = None

    class Config:
        from_attributes = True
