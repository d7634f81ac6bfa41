"""
System Configuration Model

Runtime-editable key/value settings (e.g. the lot-size threshold).
"""
from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text
from datetime import datetime

from app.db.base import Base


class SystemConfiguration(Base):
    __tablename__ = "system_configurations"

    KEY_LOT_SIZE_THRESHOLD = "LOT_SIZE_THRESHOLD"

    id = Column(Integer, primary_key=True, index=True)
    config_key = Column(String(100), unique=True, nullable=False, index=True)
    config_value = Column(String(500), nullable=False)
    value_type = Column(String(20), nullable=False, default="STRING")  # STRING, INTEGER, BOOLEAN
    description = Column(Text, nullable=True)
    editable = Column(Boolean, nullable=False, default=True)

    updated_by = Column(String(100), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<SystemConfiguration {self.config_key}={self.config_value}>"
