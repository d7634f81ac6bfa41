"""
Async Operation Model

Status record for long-running jobs (production scheduling, control order
dispatch). Callers poll it by operation_id.
"""
from sqlalchemy import Column, DateTime, Integer, String, Text
from datetime import datetime

from app.db.base import Base


class AsyncOperation(Base):
    """Tracked background job"""
    __tablename__ = "async_operations"

    STATUS_PENDING = "PENDING"
    STATUS_PROCESSING = "PROCESSING"
    STATUS_COMPLETED = "COMPLETED"
    STATUS_FAILED = "FAILED"

    TYPE_SCHEDULE_PRODUCTION = "SCHEDULE_PRODUCTION"
    TYPE_DISPATCH_CONTROL_ORDERS = "DISPATCH_CONTROL_ORDERS"

    id = Column(Integer, primary_key=True, index=True)
    operation_id = Column(String(36), unique=True, nullable=False, index=True)
    operation_type = Column(String(50), nullable=False)
    status = Column(String(20), nullable=False, default=STATUS_PENDING, index=True)

    # Entity the job works on (e.g. ProductionOrder #12)
    entity_type = Column(String(50), nullable=True)
    entity_id = Column(Integer, nullable=True)

    progress_percent = Column(Integer, nullable=False, default=0)
    progress_message = Column(String(500), nullable=True)

    result_data = Column(Text, nullable=True)  # JSON
    error_message = Column(String(1000), nullable=True)

    initiated_by = Column(String(100), nullable=True)

    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<AsyncOperation {self.operation_type} {self.operation_id} ({self.status})>"

    @property
    def is_finished(self) -> bool:
        return self.status in (self.STATUS_COMPLETED, self.STATUS_FAILED)
