"""
System Configuration Service

Typed accessors for runtime-editable configuration backed by the
system_configurations table, with an in-memory read-through cache.

The cache is process-local and non-authoritative: values are cached on first
read and dropped again when a write commits or rolls back. refresh_cache()
clears everything.
"""
import threading
from typing import Dict, Optional

from sqlalchemy import event
from sqlalchemy.orm import Session

from app.core.config import settings
from app.exceptions import InvalidStateError, NotFoundError, ValidationError
from app.logging_config import get_logger
from app.models.system_configuration import SystemConfiguration

logger = get_logger(__name__)

_CHANGED_KEY = "changed_config_keys"


class SystemConfigService:
    """Read-through cached access to system configuration."""

    _cache: Dict[str, str] = {}
    _cache_lock = threading.Lock()

    # ========================
    # Typed accessors
    # ========================

    @classmethod
    def get_lot_size_threshold(cls, db: Session) -> int:
        """Total order quantity at which a short order goes straight to production."""
        return cls.get_int_value(
            db, SystemConfiguration.KEY_LOT_SIZE_THRESHOLD, settings.LOT_SIZE_THRESHOLD
        )

    @classmethod
    def set_lot_size_threshold(cls, db: Session, threshold: int, updated_by: Optional[str] = None) -> SystemConfiguration:
        if threshold < 1:
            raise ValidationError("Lot size threshold must be at least 1", field="threshold", value=threshold)
        return cls.set_config_value(
            db,
            SystemConfiguration.KEY_LOT_SIZE_THRESHOLD,
            str(threshold),
            updated_by=updated_by,
            value_type="INTEGER",
            description="Orders with total quantity >= this value bypass warehouse replenishment",
        )

    # ========================
    # Generic accessors
    # ========================

    @classmethod
    def get_config_value(cls, db: Session, key: str) -> Optional[str]:
        with cls._cache_lock:
            if key in cls._cache:
                return cls._cache[key]

        config = db.query(SystemConfiguration).filter(SystemConfiguration.config_key == key).first()
        if config is None:
            return None

        with cls._cache_lock:
            cls._cache[key] = config.config_value
        return config.config_value

    @classmethod
    def get_int_value(cls, db: Session, key: str, default: int) -> int:
        value = cls.get_config_value(db, key)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            logger.warning(f"Invalid integer value for config {key}: {value}")
            return default

    @classmethod
    def set_config_value(
        cls,
        db: Session,
        key: str,
        value: str,
        updated_by: Optional[str] = None,
        value_type: str = "STRING",
        description: Optional[str] = None,
    ) -> SystemConfiguration:
        """Create or update a configuration entry. Does not commit."""
        config = db.query(SystemConfiguration).filter(SystemConfiguration.config_key == key).first()
        if config is None:
            config = SystemConfiguration(
                config_key=key,
                config_value=value,
                value_type=value_type,
                description=description,
                editable=True,
                updated_by=updated_by,
            )
            db.add(config)
            old_value = None
        else:
            if not config.editable:
                raise InvalidStateError(f"Configuration {key} is not editable")
            old_value = config.config_value
            config.config_value = value
            config.updated_by = updated_by

        db.flush()
        cls.invalidate(key)
        # Other sessions may cache the old value until this commits
        db.info.setdefault(_CHANGED_KEY, set()).add(key)
        logger.info(f"Configuration {key} changed from {old_value} to {value} by {updated_by or 'system'}")
        return config

    @classmethod
    def get_config(cls, db: Session, key: str) -> SystemConfiguration:
        config = db.query(SystemConfiguration).filter(SystemConfiguration.config_key == key).first()
        if config is None:
            raise NotFoundError("SystemConfiguration", key)
        return config

    # ========================
    # Cache management
    # ========================

    @classmethod
    def invalidate(cls, key: str) -> None:
        with cls._cache_lock:
            cls._cache.pop(key, None)

    @classmethod
    def refresh_cache(cls) -> None:
        with cls._cache_lock:
            cls._cache.clear()


@event.listens_for(Session, "after_commit")
@event.listens_for(Session, "after_rollback")
def _invalidate_changed_keys(session: Session) -> None:
    for key in session.info.pop(_CHANGED_KEY, ()):
        SystemConfigService.invalidate(key)
