"""
Schemas for tracked async operations.
"""
import json
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, field_validator


class AsyncOperationResponse(BaseModel):
    """Poll response for a background job."""
    operation_id: str
    operation_type: str
    status: str
    entity_type: Optional[str] = None
    entity_id: Optional[int] = None
    progress_percent: int
    progress_message: Optional[str] = None
    result_data: Optional[Any] = None
    error_message: Optional[str] = None
    initiated_by: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True

    @field_validator("result_data", mode="before")
    @classmethod
    def parse_result(cls, v):
        """Stored as JSON text."""
        if isinstance(v, str):
            try:
                return json.loads(v)
            except ValueError:
                return v
        return v
