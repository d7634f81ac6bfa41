"""
FactoryFlow - Error Taxonomy

Every error a route can surface is a FactoryFlowException carrying an error
code, an HTTP status and a details dict; the handler in app.main turns it
into the standard error body. Status transition failures are the one
exception and live next to the state machines in app.core.status_config.

Usage:
    from app.exceptions import NotFoundError, InvalidStateError

    raise NotFoundError("CustomerOrder", order_id)

    raise InvalidStateError(
        "Only PENDING orders can be confirmed",
        current_state=order.status,
        allowed_states=["PENDING"],
    )
"""
from typing import Any, Dict, List, Optional


class FactoryFlowException(Exception):
    """
    Base exception for all FactoryFlow errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code (e.g., "NOT_FOUND", "INSUFFICIENT_STOCK")
        status_code: HTTP status code to return
        details: Additional context for the caller
    """

    error_code: str = "FACTORYFLOW_ERROR"
    status_code: int = 500

    def __init__(self, message: str = "An unexpected error occurred", *, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Error body for API responses."""
        body = {"error": self.error_code, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


# ===================
# 400 - the request or the order's state is wrong
# ===================


class ValidationError(FactoryFlowException):
    """Input failed a check that the request schema cannot express."""

    error_code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, message: str, *, field: Optional[str] = None, value: Any = None, details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        super().__init__(message, details=details)


class InvalidStateError(FactoryFlowException):
    """
    The action is not available in the order's current status (confirming
    twice, completing a workstation order that never started).
    """

    error_code = "INVALID_STATE"
    status_code = 400

    def __init__(
        self,
        message: str,
        *,
        current_state: Optional[str] = None,
        allowed_states: Optional[List[str]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = dict(details or {})
        if current_state:
            details["current_state"] = current_state
        if allowed_states:
            details["allowed_states"] = list(allowed_states)
        super().__init__(message, details=details)


# ===================
# 404 / 409
# ===================


class NotFoundError(FactoryFlowException):
    error_code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str, resource_id: Any = None):
        details = {"resource": resource}
        message = f"{resource} not found"
        if resource_id is not None:
            details["resource_id"] = str(resource_id)
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(message, details=details)


class ConflictError(FactoryFlowException):
    """The request would duplicate something that already exists."""

    error_code = "CONFLICT"
    status_code = 409


# ===================
# 422 - valid request, but the factory can't do it
# ===================


class BusinessRuleError(FactoryFlowException):
    error_code = "BUSINESS_RULE_ERROR"
    status_code = 422

    def __init__(self, message: str, *, rule: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        if rule:
            details["rule"] = rule
        super().__init__(message, details=details)


class BomResolutionError(BusinessRuleError):
    """
    Master data has no composition for a product or module.

    Always fatal to the enclosing fulfillment action: treating missing BOM
    data as "nothing required" would under-order components.
    """

    error_code = "BOM_RESOLUTION_ERROR"

    def __init__(self, item_type: str, item_id: int, *, reason: Optional[str] = None):
        details = {"item_type": item_type, "item_id": item_id}
        message = f"No bill of materials available for {item_type} {item_id}"
        if reason:
            details["reason"] = reason
            message = f"{message}: {reason}"
        super().__init__(message, rule="bom_required", details=details)


class InsufficientStockError(BusinessRuleError):
    """A store is short of items an action must take out of it."""

    error_code = "INSUFFICIENT_STOCK"

    def __init__(self, location_id: int, *, missing: Dict[int, int]):
        details = {
            "location_id": location_id,
            "missing": {str(item_id): quantity for item_id, quantity in missing.items()},
        }
        super().__init__(
            f"Insufficient stock at location {location_id} for items {sorted(missing)}",
            rule="stock_required",
            details=details,
        )


# ===================
# 5xx
# ===================


class IntegrationError(FactoryFlowException):
    """A collaborating service failed on a call whose answer is required."""

    error_code = "INTEGRATION_ERROR"
    status_code = 500

    def __init__(self, service: str, message: str, *, details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        details["service"] = service
        super().__init__(f"{service}: {message}", details=details)


class MasterdataError(IntegrationError):
    """The master data service is unreachable or returned something unusable."""

    error_code = "MASTERDATA_ERROR"

    def __init__(self, message: str):
        super().__init__("Master data", message)


class DatabaseError(FactoryFlowException):
    error_code = "DATABASE_ERROR"
    status_code = 500


class ServiceUnavailableError(FactoryFlowException):
    """A dependency is down; the caller may retry later."""

    error_code = "SERVICE_UNAVAILABLE"
    status_code = 503

    def __init__(self, service: str, *, retry_after: Optional[int] = None):
        details = {"service": service}
        if retry_after:
            details["retry_after_seconds"] = retry_after
        super().__init__(f"{service} is temporarily unavailable", details=details)
