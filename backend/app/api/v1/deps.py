"""
API Dependencies

Database session and collaborator client dependencies. Routes receive the
stock, master data and scheduling clients and the operation tracker through
these functions so tests can swap them with app.dependency_overrides.
"""
import threading
from functools import lru_cache
from typing import Optional

from app.db.session import SessionLocal, get_db  # noqa: F401
from app.integrations.masterdata import MasterdataClient
from app.integrations.scheduling import SchedulingClient
from app.integrations.stock import StockClient
from app.services.async_operations import OperationTracker

_tracker: Optional[OperationTracker] = None
_tracker_lock = threading.Lock()


@lru_cache()
def get_stock_client() -> StockClient:
    return StockClient()


@lru_cache()
def get_masterdata_client() -> MasterdataClient:
    return MasterdataClient()


@lru_cache()
def get_scheduling_client() -> SchedulingClient:
    return SchedulingClient()


def get_operation_tracker() -> OperationTracker:
    """Process-wide job tracker, created on first use."""
    global _tracker
    with _tracker_lock:
        if _tracker is None:
            _tracker = OperationTracker(SessionLocal)
        return _tracker


def shutdown_operation_tracker() -> None:
    global _tracker
    with _tracker_lock:
        if _tracker is not None:
            _tracker.shutdown(wait=True)
            _tracker = None

