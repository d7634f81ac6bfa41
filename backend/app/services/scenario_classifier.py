"""
Scenario Classifier

Decides how a customer order will be fulfilled, from current stock and the
configured lot-size threshold:

    all lines available                     -> DIRECT_FULFILLMENT
    total quantity >= lot-size threshold    -> DIRECT_PRODUCTION
    some lines available                    -> PARTIAL_FULFILLMENT
    nothing available                       -> WAREHOUSE_ORDER_NEEDED

The threshold check dominates partial availability. The result is a cached
decision, not a source of truth: it is recomputed whenever the order is
executed because stock may have moved since confirmation.
"""
from dataclasses import dataclass, field
from typing import Dict, Optional

from sqlalchemy.orm import Session

from app.core.status_config import Scenario
from app.exceptions import ValidationError
from app.integrations.stock import StockClient
from app.logging_config import get_logger
from app.models.customer_order import CustomerOrder
from app.services.system_config_service import SystemConfigService

logger = get_logger(__name__)


@dataclass
class Classification:
    """Scenario plus the stock snapshot it was derived from"""
    scenario: Scenario
    availability: Dict[int, bool] = field(default_factory=dict)  # line item id -> available
    total_quantity: int = 0
    lot_size_threshold: int = 0

    @property
    def available_count(self) -> int:
        return sum(1 for ok in self.availability.values() if ok)


@dataclass
class ScenarioCheck:
    """Stored tag vs. tag re-derived from current stock"""
    order_id: int
    order_number: str
    stored_scenario: Optional[str]
    current_scenario: str
    drifted: bool


class ScenarioClassifier:

    def __init__(self, db: Session, stock: StockClient):
        self.db = db
        self.stock = stock

    def check_availability(self, order: CustomerOrder) -> Dict[int, bool]:
        if not order.line_items:
            raise ValidationError(
                f"Order {order.order_number} has no line items",
                field="line_items",
            )
        return {
            item.id: self.stock.check_stock(order.workstation_id, item.item_id, item.requested_quantity)
            for item in order.line_items
        }

    def classify(self, order: CustomerOrder) -> Classification:
        availability = self.check_availability(order)
        total_quantity = order.total_quantity
        threshold = SystemConfigService.get_lot_size_threshold(self.db)

        if all(availability.values()):
            scenario = Scenario.DIRECT_FULFILLMENT
        elif total_quantity >= threshold:
            scenario = Scenario.DIRECT_PRODUCTION
        elif any(availability.values()):
            scenario = Scenario.PARTIAL_FULFILLMENT
        else:
            scenario = Scenario.WAREHOUSE_ORDER_NEEDED

        logger.info(
            f"Order {order.order_number} classified as {scenario.value}",
            extra={
                "order_id": order.id,
                "total_quantity": total_quantity,
                "lot_size_threshold": threshold,
                "available_lines": sum(availability.values()),
                "total_lines": len(availability),
            },
        )
        return Classification(
            scenario=scenario,
            availability=availability,
            total_quantity=total_quantity,
            lot_size_threshold=threshold,
        )

    def check_current_scenario(self, order: CustomerOrder) -> ScenarioCheck:
        """Re-derive the scenario without touching the order."""
        current = self.classify(order).scenario.value
        drifted = order.trigger_scenario is not None and order.trigger_scenario != current
        if drifted:
            logger.warning(
                f"Scenario drift on order {order.order_number}: "
                f"stored {order.trigger_scenario}, current {current}"
            )
        return ScenarioCheck(
            order_id=order.id,
            order_number=order.order_number,
            stored_scenario=order.trigger_scenario,
            current_scenario=current,
            drifted=drifted,
        )

    def refresh_confirmed_scenarios(self, location_id: int, exclude_order_id: Optional[int] = None) -> int:
        """
        Re-tag other CONFIRMED orders at a location after stock moved there.

        Does not commit. Returns the number of orders whose tag changed.
        """
        query = self.db.query(CustomerOrder).filter(
            CustomerOrder.status == "CONFIRMED",
            CustomerOrder.workstation_id == location_id,
        )
        if exclude_order_id is not None:
            query = query.filter(CustomerOrder.id != exclude_order_id)

        changed = 0
        for other in query.all():
            if not other.line_items:
                continue
            scenario = self.classify(other).scenario.value
            if scenario != other.trigger_scenario:
                logger.info(
                    f"Order {other.order_number} scenario updated: {other.trigger_scenario} -> {scenario}"
                )
                other.trigger_scenario = scenario
                changed += 1
        return changed
