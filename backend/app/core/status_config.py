"""Status Configuration and Transition Rules

This module defines valid status values and allowed transitions for every
order level in the fulfillment hierarchy:

    CustomerOrder -> WarehouseOrder -> ProductionOrder -> ControlOrder -> WorkstationOrder

Status transitions are validated to prevent invalid state changes. The
completion propagator is the only writer that moves a parent to COMPLETED
without an explicit operator call, and it uses COMPLETABLE_STATUSES as its
guard instead of the transition tables.
"""
from enum import Enum
from typing import Dict, List, Set


# =============================================================================
# Scenarios
# =============================================================================

class Scenario(str, Enum):
    """Fulfillment path chosen for a customer order"""
    DIRECT_FULFILLMENT = "DIRECT_FULFILLMENT"
    WAREHOUSE_ORDER_NEEDED = "WAREHOUSE_ORDER_NEEDED"
    PARTIAL_FULFILLMENT = "PARTIAL_FULFILLMENT"
    DIRECT_PRODUCTION = "DIRECT_PRODUCTION"


class WarehouseScenario(str, Enum):
    """Replenishment path chosen for a warehouse order"""
    DIRECT_FULFILLMENT = "DIRECT_FULFILLMENT"
    PRODUCTION_REQUIRED = "PRODUCTION_REQUIRED"


class ItemType(str, Enum):
    PRODUCT = "PRODUCT"
    MODULE = "MODULE"
    PART = "PART"


# =============================================================================
# Customer / Warehouse Order Status
# =============================================================================

class FulfillmentOrderStatus(str, Enum):
    """Status values shared by customer orders and warehouse orders"""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


FULFILLMENT_ORDER_TRANSITIONS: Dict[str, Set[str]] = {
    FulfillmentOrderStatus.PENDING: {
        FulfillmentOrderStatus.CONFIRMED,
        FulfillmentOrderStatus.CANCELLED,
    },
    FulfillmentOrderStatus.CONFIRMED: {
        FulfillmentOrderStatus.PROCESSING,
        FulfillmentOrderStatus.COMPLETED,  # Direct fulfillment from stock
        FulfillmentOrderStatus.CANCELLED,
    },
    FulfillmentOrderStatus.PROCESSING: {
        FulfillmentOrderStatus.CONFIRMED,  # Warehouse order re-armed after production
        FulfillmentOrderStatus.COMPLETED,
        FulfillmentOrderStatus.CANCELLED,
    },
    FulfillmentOrderStatus.COMPLETED: set(),  # Terminal
    FulfillmentOrderStatus.CANCELLED: set(),  # Terminal
}


# =============================================================================
# Production / Control / Workstation Order Status
# =============================================================================

class WorkOrderStatus(str, Enum):
    """Status values shared by production, control and workstation orders"""
    PENDING = "PENDING"
    ASSIGNED = "ASSIGNED"
    SCHEDULED = "SCHEDULED"  # Production orders only
    IN_PROGRESS = "IN_PROGRESS"
    HALTED = "HALTED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


WORK_ORDER_TRANSITIONS: Dict[str, Set[str]] = {
    WorkOrderStatus.PENDING: {
        WorkOrderStatus.SCHEDULED,
        WorkOrderStatus.IN_PROGRESS,
        WorkOrderStatus.CANCELLED,
    },
    WorkOrderStatus.ASSIGNED: {
        WorkOrderStatus.IN_PROGRESS,
        WorkOrderStatus.CANCELLED,
    },
    WorkOrderStatus.SCHEDULED: {
        WorkOrderStatus.IN_PROGRESS,
        WorkOrderStatus.CANCELLED,
    },
    WorkOrderStatus.IN_PROGRESS: {
        WorkOrderStatus.COMPLETED,
        WorkOrderStatus.HALTED,
        WorkOrderStatus.CANCELLED,
    },
    WorkOrderStatus.HALTED: {
        WorkOrderStatus.IN_PROGRESS,
        WorkOrderStatus.CANCELLED,
    },
    WorkOrderStatus.COMPLETED: set(),  # Terminal
    WorkOrderStatus.CANCELLED: set(),  # Terminal
}


TERMINAL_STATUSES: Set[str] = {"COMPLETED", "CANCELLED"}

# Statuses a parent may be in when the propagator marks it complete
COMPLETABLE_STATUSES: Dict[str, Set[str]] = {
    "control order": {WorkOrderStatus.IN_PROGRESS.value},
    "production order": {WorkOrderStatus.IN_PROGRESS.value},
    "warehouse order": {FulfillmentOrderStatus.PROCESSING.value},
    "customer order": {FulfillmentOrderStatus.PROCESSING.value},
}


def get_allowed_fulfillment_order_transitions(current_status: str) -> List[str]:
    """Get list of allowed next statuses for a customer or warehouse order"""
    return sorted(s.value for s in FULFILLMENT_ORDER_TRANSITIONS.get(current_status, set()))


def is_valid_fulfillment_order_transition(current_status: str, new_status: str) -> bool:
    if current_status == new_status:
        return True
    allowed = FULFILLMENT_ORDER_TRANSITIONS.get(current_status, set())
    return new_status in allowed


def get_allowed_work_order_transitions(current_status: str) -> List[str]:
    """Get list of allowed next statuses for a production, control or workstation order"""
    return sorted(s.value for s in WORK_ORDER_TRANSITIONS.get(current_status, set()))


def is_valid_work_order_transition(current_status: str, new_status: str) -> bool:
    if current_status == new_status:
        return True
    allowed = WORK_ORDER_TRANSITIONS.get(current_status, set())
    return new_status in allowed


# =============================================================================
# Validation Helpers
# =============================================================================

class StatusTransitionError(Exception):
    """Raised when an invalid status transition is attempted"""
    def __init__(self, entity: str, current: str, requested: str, allowed: List[str]):
        self.entity = entity
        self.current = current
        self.requested = requested
        self.allowed = allowed
        super().__init__(
            f"Invalid {entity} status transition: '{current}' -> '{requested}'. "
            f"Allowed: {allowed if allowed else 'none (terminal state)'}"
        )


def validate_fulfillment_order_transition(entity: str, current: str, new: str) -> None:
    """Validate and raise error if transition is invalid"""
    if not is_valid_fulfillment_order_transition(current, new):
        raise StatusTransitionError(
            entity,
            current,
            new,
            get_allowed_fulfillment_order_transitions(current)
        )


def validate_work_order_transition(entity: str, current: str, new: str) -> None:
    """Validate and raise error if transition is invalid"""
    if not is_valid_work_order_transition(current, new):
        raise StatusTransitionError(
            entity,
            current,
            new,
            get_allowed_work_order_transitions(current)
        )
