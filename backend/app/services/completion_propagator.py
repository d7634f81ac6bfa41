"""
Completion Propagator

Walks COMPLETED upward after a workstation order finishes:

    WorkstationOrder -> ControlOrder -> ProductionOrder -> WarehouseOrder -> CustomerOrder
    WorkstationOrder (final assembly) -> WarehouseOrder -> CustomerOrder

At each level the immediate children are recounted. When every child is
COMPLETED the parent is moved to COMPLETED with a conditional UPDATE that only
matches while the parent is still in a completable status. Whoever's UPDATE
matches owns the parent's terminal action and continues upward; everyone else
stops. Each level commits on its own so that concurrent sibling completions
always have one caller that sees the final count.

Failures here never undo the leaf completion that triggered the walk: they
are logged and reported on the PropagationResult.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.status_config import (
    COMPLETABLE_STATUSES,
    FulfillmentOrderStatus,
    WarehouseScenario,
)
from app.integrations.scheduling import SchedulingClient
from app.integrations.stock import REASON_ORDER_FULFILLMENT, StockClient
from app.logging_config import get_logger
from app.models.control_order import ControlOrder
from app.models.customer_order import CustomerOrder
from app.models.production_order import ProductionOrder
from app.models.warehouse_order import WarehouseOrder
from app.models.workstation_order import WorkstationOrder
from app.services.event_service import (
    CONTROL_ORDER,
    CUSTOMER_ORDER,
    PRODUCTION_ORDER,
    WAREHOUSE_ORDER,
    record_order_event,
)
from app.services.side_effects import record_results, stock_debit

logger = get_logger(__name__)

COMPLETED = "COMPLETED"

# (level, order id) of the next parent to check
Step = Optional[Tuple[str, int]]


@dataclass
class PropagationResult:
    """What one propagation walk changed"""
    completed: List[str] = field(default_factory=list)  # order numbers, bottom-up
    rearmed: Optional[str] = None
    stopped_at: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _count(db: Session, model, parent_column, parent_id: int) -> Tuple[int, int]:
    """(total, completed) children of one parent"""
    total = db.query(func.count(model.id)).filter(parent_column == parent_id).scalar() or 0
    completed = (
        db.query(func.count(model.id))
        .filter(parent_column == parent_id, model.status == COMPLETED)
        .scalar()
        or 0
    )
    return total, completed


class CompletionPropagator:
    """Upward COMPLETED cascade through the order hierarchy."""

    def __init__(
        self,
        db: Session,
        stock: StockClient,
        scheduling: Optional[SchedulingClient] = None,
    ):
        self.db = db
        self.stock = stock
        self.scheduling = scheduling

    # ========================
    # Entry points
    # ========================

    def on_workstation_completed(self, workstation_order: WorkstationOrder) -> PropagationResult:
        """Run after a workstation order's COMPLETED status has been committed."""
        if workstation_order.control_order_id is not None:
            step = ("control order", workstation_order.control_order_id)
        else:
            step = ("warehouse order", workstation_order.warehouse_order_id)
        return self.propagate_from(step)

    def recheck_control_order(self, control_order_id: int) -> PropagationResult:
        return self.propagate_from(("control order", control_order_id))

    def recheck_production_order(self, production_order_id: int) -> PropagationResult:
        return self.propagate_from(("production order", production_order_id))

    def propagate_from(self, step: Step) -> PropagationResult:
        result = PropagationResult()
        handlers = {
            "control order": self._check_control_order,
            "production order": self._check_production_order,
            "warehouse order": self._check_warehouse_order,
            "customer order": self._check_customer_order,
        }
        while step is not None:
            level, order_id = step
            try:
                step = handlers[level](order_id, result)
                self.db.commit()
            except Exception as e:
                self.db.rollback()
                result.error = f"{level} {order_id}: {e}"
                logger.error(
                    f"Completion propagation failed at {level} {order_id}: {e}",
                    exc_info=True,
                    extra={"level": level, "order_id": order_id},
                )
                break
            if step is None:
                result.stopped_at = f"{level} {order_id}"

        if result.completed:
            logger.info(
                f"Completion propagated through {', '.join(result.completed)}",
                extra={"rearmed": result.rearmed, "stopped_at": result.stopped_at},
            )
        return result

    # ========================
    # Levels
    # ========================

    def _check_control_order(self, control_order_id: int, result: PropagationResult) -> Step:
        total, completed = _count(
            self.db, WorkstationOrder, WorkstationOrder.control_order_id, control_order_id
        )
        if not self._all_done("control order", control_order_id, total, completed):
            return None
        if not self._claim(ControlOrder, control_order_id, "control order"):
            return None

        control_order = self._reload(ControlOrder, control_order_id)
        record_order_event(
            self.db, CONTROL_ORDER, control_order.id, COMPLETED,
            f"All {total} workstation orders completed",
        )
        result.completed.append(control_order.order_number)
        return ("production order", control_order.production_order_id)

    def _check_production_order(self, production_order_id: int, result: PropagationResult) -> Step:
        total, completed = _count(
            self.db, ControlOrder, ControlOrder.production_order_id, production_order_id
        )
        if not self._all_done("production order", production_order_id, total, completed):
            return None
        if not self._claim(ProductionOrder, production_order_id, "production order"):
            return None

        production_order = self._reload(ProductionOrder, production_order_id)
        record_order_event(
            self.db, PRODUCTION_ORDER, production_order.id, COMPLETED,
            f"All {total} control orders completed",
        )
        result.completed.append(production_order.order_number)
        if self.scheduling is not None:
            self.scheduling.update_status(production_order.schedule_id, COMPLETED, production_order.order_number)

        if production_order.warehouse_order_id is not None:
            return ("warehouse order", production_order.warehouse_order_id)
        return ("customer order", production_order.customer_order_id)

    def _check_warehouse_order(self, warehouse_order_id: int, result: PropagationResult) -> Step:
        production_total, production_done = _count(
            self.db, ProductionOrder, ProductionOrder.warehouse_order_id, warehouse_order_id
        )
        assembly_total, assembly_done = _count(
            self.db, WorkstationOrder, WorkstationOrder.warehouse_order_id, warehouse_order_id
        )
        total = production_total + assembly_total
        completed = production_done + assembly_done
        if not self._all_done("warehouse order", warehouse_order_id, total, completed):
            return None

        if assembly_total == 0:
            # Production refilled the supermarket; the modules still have to be released
            rearmed = (
                self.db.query(WarehouseOrder)
                .filter(
                    WarehouseOrder.id == warehouse_order_id,
                    WarehouseOrder.status == FulfillmentOrderStatus.PROCESSING.value,
                )
                .update(
                    {
                        WarehouseOrder.status: FulfillmentOrderStatus.CONFIRMED.value,
                        WarehouseOrder.trigger_scenario: WarehouseScenario.DIRECT_FULFILLMENT.value,
                        WarehouseOrder.updated_at: datetime.utcnow(),
                    },
                    synchronize_session=False,
                )
            )
            if rearmed == 1:
                warehouse_order = self._reload(WarehouseOrder, warehouse_order_id)
                record_order_event(
                    self.db, WAREHOUSE_ORDER, warehouse_order.id, "CONFIRMED",
                    "Production completed, modules ready for release",
                )
                result.rearmed = warehouse_order.order_number
                logger.info(f"Warehouse order {warehouse_order.order_number} re-armed after production")
            return None

        if not self._claim(WarehouseOrder, warehouse_order_id, "warehouse order"):
            return None

        warehouse_order = self._reload(WarehouseOrder, warehouse_order_id)
        record_order_event(
            self.db, WAREHOUSE_ORDER, warehouse_order.id, COMPLETED,
            f"Final assembly completed ({assembly_total} orders)",
        )
        result.completed.append(warehouse_order.order_number)
        if warehouse_order.customer_order_id is None:
            return None
        return ("customer order", warehouse_order.customer_order_id)

    def _check_customer_order(self, customer_order_id: int, result: PropagationResult) -> Step:
        warehouse_total, warehouse_done = _count(
            self.db, WarehouseOrder, WarehouseOrder.customer_order_id, customer_order_id
        )
        production_total, production_done = _count(
            self.db, ProductionOrder, ProductionOrder.customer_order_id, customer_order_id
        )
        total = warehouse_total + production_total
        completed = warehouse_done + production_done
        if not self._all_done("customer order", customer_order_id, total, completed):
            return None
        if not self._claim(CustomerOrder, customer_order_id, "customer order"):
            return None

        order = self._reload(CustomerOrder, customer_order_id)
        results = []
        for line in order.line_items:
            if line.is_fulfilled:
                continue
            side_effect = stock_debit(
                self.stock,
                settings.PLANT_WAREHOUSE_ID,
                line.item_id,
                line.remaining_quantity,
                reason=REASON_ORDER_FULFILLMENT,
                notes=f"Order {order.order_number} completion",
            )
            if side_effect.ok:
                line.record_fulfilled(line.remaining_quantity)
            results.append(side_effect)
        record_results(self.db, order, CUSTOMER_ORDER, results)

        record_order_event(
            self.db, CUSTOMER_ORDER, order.id, COMPLETED,
            f"All {total} child orders completed",
        )
        result.completed.append(order.order_number)
        return None

    # ========================
    # Helpers
    # ========================

    @staticmethod
    def _all_done(level: str, order_id: int, total: int, completed: int) -> bool:
        if total > 0 and completed == total:
            return True
        logger.debug(f"{level} {order_id}: {completed}/{total} children completed")
        return False

    def _claim(self, model, order_id: int, level: str) -> bool:
        """Conditional COMPLETED update. True only for the caller whose update matched."""
        updated = (
            self.db.query(model)
            .filter(model.id == order_id, model.status.in_(COMPLETABLE_STATUSES[level]))
            .update(
                {model.status: COMPLETED, model.updated_at: datetime.utcnow()},
                synchronize_session=False,
            )
        )
        if updated != 1:
            logger.debug(f"{level} {order_id} not claimed (already completed, halted or cancelled)")
            return False
        return True

    def _reload(self, model, order_id: int):
        return self.db.get(model, order_id, populate_existing=True)

