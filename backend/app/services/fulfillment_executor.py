"""
Fulfillment Executor

Carries out the scenario chosen for a confirmed customer order:

- DIRECT_FULFILLMENT: debit everything from the plant warehouse, COMPLETED
- WAREHOUSE_ORDER_NEEDED: one warehouse order for the modules, PROCESSING
- PARTIAL_FULFILLMENT: debit what is there, warehouse order plus production
  order for the shortfall, PROCESSING (COMPLETED if nothing ends up short)
- DIRECT_PRODUCTION: one production order for all lines, PROCESSING

The scenario is re-derived at execution time; the tag stored at confirmation
may be stale. BOM resolution happens before any stock is touched so that a
missing composition leaves the order exactly as it was.
"""
from typing import Dict, List

from sqlalchemy.orm import Session

from app.core.status_config import (
    FulfillmentOrderStatus,
    Scenario,
    WarehouseScenario,
    validate_fulfillment_order_transition,
)
from app.exceptions import BomResolutionError, InvalidStateError
from app.integrations.masterdata import MasterdataClient
from app.integrations.stock import REASON_ORDER_FULFILLMENT, StockClient
from app.logging_config import get_logger
from app.models.customer_order import CustomerOrder
from app.models.order_line_item import OrderLineItem
from app.services.bom_resolver import BOMResolver, ModuleRequirement
from app.services.event_service import CUSTOMER_ORDER, WAREHOUSE_ORDER, record_order_event
from app.services.order_helpers import (
    create_production_order,
    create_warehouse_order,
    module_lines_from_requirements,
)
from app.services.scenario_classifier import Classification, ScenarioClassifier
from app.services.side_effects import SideEffectResult, record_results, stock_debit

logger = get_logger(__name__)


class FulfillmentExecutor:
    """Executes customer order scenarios."""

    def __init__(self, db: Session, stock: StockClient, masterdata: MasterdataClient):
        self.db = db
        self.stock = stock
        self.masterdata = masterdata
        self.classifier = ScenarioClassifier(db, stock)
        self.bom = BOMResolver(masterdata)

    def fulfill(self, order: CustomerOrder) -> CustomerOrder:
        """
        Execute the current scenario for a CONFIRMED order and commit.

        Raises:
            InvalidStateError: Order is not CONFIRMED
            BomResolutionError: A product has no composition (order unchanged)
        """
        if order.status != FulfillmentOrderStatus.CONFIRMED.value:
            raise InvalidStateError(
                f"Order {order.order_number} cannot be fulfilled in status {order.status}",
                current_state=order.status,
                allowed_states=[FulfillmentOrderStatus.CONFIRMED.value],
            )

        classification = self.classifier.classify(order)
        scenario = classification.scenario
        if order.trigger_scenario != scenario.value:
            logger.info(
                f"Order {order.order_number} scenario changed since confirmation: "
                f"{order.trigger_scenario} -> {scenario.value}"
            )

        handlers = {
            Scenario.DIRECT_FULFILLMENT: self._direct_fulfillment,
            Scenario.WAREHOUSE_ORDER_NEEDED: self._warehouse_order_needed,
            Scenario.PARTIAL_FULFILLMENT: self._partial_fulfillment,
            Scenario.DIRECT_PRODUCTION: self._direct_production,
        }
        handlers[scenario](order, classification)
        order.trigger_scenario = scenario.value

        self.db.commit()
        self.db.refresh(order)

        logger.info(
            f"Order {order.order_number} executed as {scenario.value}, now {order.status}",
            extra={"order_id": order.id, "scenario": scenario.value, "status": order.status},
        )
        return order

    # ========================
    # Scenarios
    # ========================

    def _direct_fulfillment(self, order: CustomerOrder, classification: Classification) -> None:
        results = []
        for line in order.line_items:
            result = stock_debit(
                self.stock,
                order.workstation_id,
                line.item_id,
                line.requested_quantity,
                reason=REASON_ORDER_FULFILLMENT,
                notes=f"Order {order.order_number}",
            )
            if result.ok:
                line.record_fulfilled(line.requested_quantity)
            results.append(result)

        failures = record_results(self.db, order, CUSTOMER_ORDER, results)
        if failures:
            # Successful debits are not reversed; the failure record says what is off.
            self._transition(order, FulfillmentOrderStatus.CANCELLED)
            order.append_note(
                f"Direct fulfillment failed: {len(failures)} of {len(results)} stock debits failed"
            )
            record_order_event(
                self.db, CUSTOMER_ORDER, order.id, "CANCELLED",
                "Direct fulfillment aborted after a failed stock debit",
            )
            return

        self._transition(order, FulfillmentOrderStatus.COMPLETED)
        order.append_note("Fulfilled directly from plant warehouse stock")
        record_order_event(self.db, CUSTOMER_ORDER, order.id, "COMPLETED", "Fulfilled directly from stock")

        # Stock at this location just moved; other confirmed orders may route differently now
        self.classifier.refresh_confirmed_scenarios(order.workstation_id, exclude_order_id=order.id)

    def _warehouse_order_needed(self, order: CustomerOrder, classification: Classification) -> None:
        requirements = self._resolve(order.line_items)

        warehouse_order = create_warehouse_order(
            self.db,
            order,
            module_lines_from_requirements(requirements, self.masterdata),
            reason=Scenario.WAREHOUSE_ORDER_NEEDED.value,
        )

        self._transition(order, FulfillmentOrderStatus.PROCESSING)
        order.append_note(f"Waiting on warehouse order {warehouse_order.order_number}")
        record_order_event(
            self.db, CUSTOMER_ORDER, order.id, "PROCESSING",
            f"Modules requested via warehouse order {warehouse_order.order_number}",
        )

    def _partial_fulfillment(self, order: CustomerOrder, classification: Classification) -> None:
        shortfall: List[OrderLineItem] = [
            line for line in order.line_items if not classification.availability.get(line.id)
        ]
        # Short lines resolve before any debit; a missing BOM here leaves the order untouched
        requirements_by_line: Dict[int, ModuleRequirement] = dict(
            zip((line.id for line in shortfall), self._resolve(shortfall))
        )

        results = []
        for line in order.line_items:
            if not classification.availability.get(line.id):
                continue
            result = stock_debit(
                self.stock,
                order.workstation_id,
                line.item_id,
                line.requested_quantity,
                reason=REASON_ORDER_FULFILLMENT,
                notes=f"Order {order.order_number} (partial)",
            )
            results.append(result)
            if result.ok:
                line.record_fulfilled(line.requested_quantity)
                continue
            # Stock is already partly gone, so a BOM gap now is secondary
            try:
                requirements_by_line[line.id] = self._resolve([line])[0]
            except BomResolutionError as e:
                results.append(SideEffectResult.failure(f"replenish item {line.item_id}", e.message))
                continue
            shortfall.append(line)
        record_results(self.db, order, CUSTOMER_ORDER, results)

        if not shortfall:
            self._transition(order, FulfillmentOrderStatus.COMPLETED)
            order.append_note("Partial fulfillment covered every line from stock")
            record_order_event(self.db, CUSTOMER_ORDER, order.id, "COMPLETED", "All lines fulfilled from stock")
            return

        shortfall.sort(key=lambda line: line.id)
        warehouse_order = create_warehouse_order(
            self.db,
            order,
            module_lines_from_requirements(
                [requirements_by_line[line.id] for line in shortfall], self.masterdata
            ),
            reason=Scenario.PARTIAL_FULFILLMENT.value,
        )

        # Production is requested straight away, so the warehouse order skips the manual confirm
        validate_fulfillment_order_transition(
            "warehouse order", warehouse_order.status, FulfillmentOrderStatus.CONFIRMED.value
        )
        warehouse_order.set_status(FulfillmentOrderStatus.CONFIRMED.value)
        warehouse_order.trigger_scenario = WarehouseScenario.PRODUCTION_REQUIRED.value
        production_order = create_production_order(
            self.db,
            [line.copy_for() for line in warehouse_order.line_items],
            trigger_scenario=Scenario.PARTIAL_FULFILLMENT.value,
            warehouse_order=warehouse_order,
        )
        validate_fulfillment_order_transition(
            "warehouse order", warehouse_order.status, FulfillmentOrderStatus.PROCESSING.value
        )
        warehouse_order.set_status(FulfillmentOrderStatus.PROCESSING.value)
        record_order_event(
            self.db, WAREHOUSE_ORDER, warehouse_order.id, "PROCESSING",
            f"Production order {production_order.order_number} requested for the shortfall",
        )

        self._transition(order, FulfillmentOrderStatus.PROCESSING)
        order.append_note(
            f"Partially fulfilled; {len(shortfall)} lines via warehouse order "
            f"{warehouse_order.order_number} and production order {production_order.order_number}"
        )
        record_order_event(
            self.db, CUSTOMER_ORDER, order.id, "PROCESSING",
            f"{len(order.line_items) - len(shortfall)} lines fulfilled, {len(shortfall)} short",
        )

    def _direct_production(self, order: CustomerOrder, classification: Classification) -> None:
        production_order = create_production_order(
            self.db,
            [line.copy_for() for line in order.line_items],
            trigger_scenario=Scenario.DIRECT_PRODUCTION.value,
            customer_order=order,
        )

        self._transition(order, FulfillmentOrderStatus.PROCESSING)
        order.append_note(
            f"Lot size {classification.total_quantity} >= {classification.lot_size_threshold}; "
            f"routed to production order {production_order.order_number}"
        )
        record_order_event(
            self.db, CUSTOMER_ORDER, order.id, "PROCESSING",
            f"Routed to production order {production_order.order_number}",
        )

    # ========================
    # Helpers
    # ========================

    def _resolve(self, lines: List[OrderLineItem]) -> List[ModuleRequirement]:
        return self.bom.resolve_product_lines((line.item_id, line.requested_quantity) for line in lines)

    @staticmethod
    def _transition(order: CustomerOrder, status: FulfillmentOrderStatus) -> None:
        validate_fulfillment_order_transition("customer order", order.status, status.value)
        order.set_status(status.value)
