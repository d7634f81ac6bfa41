"""
Columns and helpers shared by every order level
"""
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text


class OrderMixin:
    """Order number, status, notes, timestamps and the secondary-failure record."""

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(30), unique=True, nullable=False, index=True)
    status = Column(String(20), nullable=False, index=True)
    notes = Column(Text, nullable=True)

    # Set when a side effect (stock debit/credit) failed after the order's own
    # status change was recorded. The order is degraded, not blocked.
    secondary_failure = Column(Boolean, nullable=False, default=False)
    secondary_failure_notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def append_note(self, note: str) -> None:
        self.notes = f"{self.notes} | {note}" if self.notes else note

    def record_secondary_failure(self, message: str) -> None:
        self.secondary_failure = True
        if self.secondary_failure_notes:
            self.secondary_failure_notes = f"{self.secondary_failure_notes} | {message}"
        else:
            self.secondary_failure_notes = message

    def set_status(self, status: str) -> None:
        self.status = status
        self.updated_at = datetime.utcnow()

    @property
    def is_terminal(self) -> bool:
        return self.status in ("COMPLETED", "CANCELLED")
