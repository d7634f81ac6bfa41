"""
Side Effects - explicit results for secondary stock mutations

Stock debits and credits that happen around an order's own status change are
secondary: when one fails the order still moves on, but the failure is
recorded on the order (secondary_failure flag + notes) and in the audit log
so it can be seen and reconciled.
"""
from dataclasses import dataclass
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from app.integrations.stock import StockClient, location_for_item_type
from app.logging_config import get_logger
from app.services.event_service import record_order_event

logger = get_logger(__name__)


@dataclass
class SideEffectResult:
    """Outcome of one side effect"""
    ok: bool
    action: str
    message: Optional[str] = None

    @classmethod
    def success(cls, action: str) -> "SideEffectResult":
        return cls(ok=True, action=action)

    @classmethod
    def failure(cls, action: str, message: str) -> "SideEffectResult":
        return cls(ok=False, action=action, message=message)


def stock_debit(
    stock: StockClient,
    location_id: int,
    item_id: int,
    quantity: int,
    reason: str,
    notes: Optional[str] = None,
) -> SideEffectResult:
    action = f"debit {quantity} x item {item_id} @ location {location_id}"
    if stock.debit(location_id, item_id, quantity, reason=reason, notes=notes):
        return SideEffectResult.success(action)
    return SideEffectResult.failure(action, f"Failed to {action}")


def stock_credit(
    stock: StockClient,
    location_id: int,
    item_id: int,
    quantity: int,
    reason: str,
    notes: Optional[str] = None,
) -> SideEffectResult:
    action = f"credit {quantity} x item {item_id} @ location {location_id}"
    if stock.credit(location_id, item_id, quantity, reason=reason, notes=notes):
        return SideEffectResult.success(action)
    return SideEffectResult.failure(action, f"Failed to {action}")


def transfer_lines(stock: StockClient, lines: Iterable, direction: str, reason: str, notes: str) -> List[SideEffectResult]:
    """Debit or credit each line's requested quantity at the store for its item type."""
    apply = stock_credit if direction == "credit" else stock_debit
    return [
        apply(stock, location_for_item_type(line.item_type), line.item_id, line.requested_quantity, reason, notes)
        for line in lines
    ]


def record_results(
    db: Session,
    order,
    order_type: str,
    results: Iterable[SideEffectResult],
) -> List[SideEffectResult]:
    """
    Record failed side effects on the order and in the audit log.

    Returns:
        The failed results (empty when everything succeeded)
    """
    failures = [r for r in results if not r.ok]
    for failure in failures:
        logger.warning(
            f"Secondary failure on {order_type} {order.order_number}: {failure.message}",
            extra={"order_type": order_type, "order_id": order.id},
        )
        order.record_secondary_failure(failure.message)
        record_order_event(db, order_type, order.id, "SECONDARY_FAILURE", failure.message)
    return failures
