"""
Production Order Service

Scheduling and downward dispatch of production orders, plus halt/resume/cancel.

Dispatch turns one production order into control orders and workstation orders:

- PRODUCT lines are expanded into modules through the BOM
- each module is built at the workstation master data names for it:
  1-3 (manufacturing) under a PRODUCTION control order,
  4-5 (gear/motor assembly) under an ASSEMBLY control order
- one workstation order per (workstation, module); assembly orders carry the
  module's parts as inputs
- for PRODUCT lines the assembly control order also gets one FINAL_ASSEMBLY
  order per line, consuming the modules and producing the product

schedule_production and dispatch_control_orders are run by the operation
tracker; they take a progress callback and return a JSON-able result.
"""
from collections import defaultdict
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.status_config import WorkOrderStatus
from app.exceptions import BusinessRuleError, InvalidStateError, NotFoundError, ValidationError
from app.integrations.masterdata import MasterdataClient
from app.integrations.scheduling import SchedulingClient
from app.integrations.stock import StockClient
from app.logging_config import get_logger
from app.models.control_order import ControlOrder
from app.models.order_line_item import OrderLineItem
from app.models.production_order import ProductionOrder
from app.models.workstation_order import (
    ASSEMBLY_KINDS,
    MANUFACTURING_KINDS,
    WORKSTATION_KINDS,
    WorkstationKind,
    WorkstationOrder,
)
from app.services.bom_resolver import BOMResolver, merge_requirements
from app.services.completion_propagator import CompletionPropagator, PropagationResult
from app.services.event_service import CONTROL_ORDER, PRODUCTION_ORDER, WORKSTATION_ORDER, record_order_event
from app.services.order_helpers import generate_order_number, transition_work_order

logger = get_logger(__name__)

ProgressCallback = Callable[[int, str], None]

CONTROL_TYPE_PRODUCTION = "PRODUCTION"
CONTROL_TYPE_ASSEMBLY = "ASSEMBLY"


def get_production_order(db: Session, order_id: int) -> ProductionOrder:
    order = db.query(ProductionOrder).filter(ProductionOrder.id == order_id).first()
    if not order:
        raise NotFoundError("ProductionOrder", order_id)
    return order


def list_production_orders(
    db: Session,
    status: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[ProductionOrder]:
    query = db.query(ProductionOrder)
    if status:
        query = query.filter(ProductionOrder.status == status.upper())
    return query.order_by(ProductionOrder.created_at.desc(), ProductionOrder.id.desc()).offset(skip).limit(limit).all()


# =============================================================================
# Scheduling
# =============================================================================

def ensure_schedulable(order: ProductionOrder) -> None:
    if order.status != WorkOrderStatus.PENDING.value:
        raise InvalidStateError(
            f"Production order {order.order_number} cannot be scheduled in status {order.status}",
            current_state=order.status,
            allowed_states=[WorkOrderStatus.PENDING.value],
        )


def schedule_production(
    db: Session,
    production_order_id: int,
    scheduled_start: datetime,
    scheduled_end: datetime,
    schedule_id: Optional[str] = None,
    scheduling: Optional[SchedulingClient] = None,
    progress: Optional[ProgressCallback] = None,
) -> Dict[str, Any]:
    """PENDING -> SCHEDULED with a time window and schedule reference."""
    progress = progress or (lambda percent, message: None)

    if scheduled_end <= scheduled_start:
        raise ValidationError("Scheduled end must be after scheduled start", field="scheduled_end")

    order = get_production_order(db, production_order_id)
    ensure_schedulable(order)
    progress(30, f"Scheduling {order.order_number}")

    order.schedule_id = schedule_id or generate_order_number("SCH")
    order.scheduled_start = scheduled_start
    order.scheduled_end = scheduled_end
    transition_work_order(
        db, order, PRODUCTION_ORDER, WorkOrderStatus.SCHEDULED,
        f"Scheduled {scheduled_start.isoformat()} - {scheduled_end.isoformat()} ({order.schedule_id})",
    )
    db.commit()
    progress(80, "Notifying scheduling service")

    notified = False
    if scheduling is not None:
        notified = scheduling.update_status(order.schedule_id, WorkOrderStatus.SCHEDULED.value, order.order_number)

    logger.info(
        f"Scheduled production order {order.order_number}",
        extra={"schedule_id": order.schedule_id, "notified": notified},
    )
    return {
        "production_order_id": order.id,
        "order_number": order.order_number,
        "schedule_id": order.schedule_id,
        "scheduled_start": scheduled_start.isoformat(),
        "scheduled_end": scheduled_end.isoformat(),
        "scheduling_notified": notified,
    }


# =============================================================================
# Dispatch
# =============================================================================

def ensure_dispatchable(order: ProductionOrder) -> None:
    allowed = [WorkOrderStatus.PENDING.value, WorkOrderStatus.SCHEDULED.value]
    if order.status not in allowed:
        raise InvalidStateError(
            f"Production order {order.order_number} cannot be dispatched in status {order.status}",
            current_state=order.status,
            allowed_states=allowed,
        )
    if order.control_orders:
        raise InvalidStateError(f"Production order {order.order_number} was already dispatched")


def _module_requirements(order: ProductionOrder, bom: BOMResolver) -> Tuple[Dict[int, int], List[OrderLineItem]]:
    """Modules to build plus the product lines that need final assembly."""
    maps = []
    product_lines = []
    for line in order.line_items:
        if line.item_type == "PRODUCT":
            maps.append(bom.resolve_modules_for_product(line.item_id, line.requested_quantity))
            product_lines.append(line)
        elif line.item_type == "MODULE":
            maps.append({line.item_id: line.requested_quantity})
        else:
            raise BusinessRuleError(
                f"Production order {order.order_number} has an unsupported {line.item_type} line",
                rule="producible_item_type",
            )
    return merge_requirements(maps), product_lines


def _workstation_for_module(masterdata: MasterdataClient, module_id: int) -> Tuple[int, str]:
    module = masterdata.get_module(module_id)
    workstation_id = module.get("productionWorkstationId")
    kind = WORKSTATION_KINDS.get(workstation_id)
    if kind is None or kind == WorkstationKind.FINAL_ASSEMBLY:
        raise BusinessRuleError(
            f"Module {module_id} has no valid production workstation ({workstation_id})",
            rule="module_workstation",
        )
    return workstation_id, module.get("name") or f"MODULE#{module_id}"


def _new_control_order(db: Session, order: ProductionOrder, control_type: str) -> ControlOrder:
    prefix = "PCO" if control_type == CONTROL_TYPE_PRODUCTION else "ACO"
    control_order = ControlOrder(
        order_number=generate_order_number(prefix),
        production_order_id=order.id,
        control_type=control_type,
        status=WorkOrderStatus.ASSIGNED.value,
        notes=f"{control_type.title()} control for {order.order_number}",
    )
    db.add(control_order)
    db.flush()
    record_order_event(
        db, CONTROL_ORDER, control_order.id, "CREATED",
        f"{control_type} control order for {order.order_number}",
    )
    return control_order


def _new_workstation_order(
    db: Session,
    control_order: ControlOrder,
    workstation_id: int,
    schedule_id: Optional[str],
    lines: List[OrderLineItem],
) -> WorkstationOrder:
    kind = WORKSTATION_KINDS[workstation_id]
    workstation_order = WorkstationOrder(
        order_number=generate_order_number("WSO"),
        control_order_id=control_order.id,
        kind=kind.value,
        workstation_id=workstation_id,
        schedule_id=schedule_id,
        status=WorkOrderStatus.PENDING.value,
        line_items=lines,
    )
    db.add(workstation_order)
    db.flush()
    record_order_event(
        db, WORKSTATION_ORDER, workstation_order.id, "CREATED",
        f"{kind.value} at workstation {workstation_id} under {control_order.order_number}",
    )
    return workstation_order


def dispatch_control_orders(
    db: Session,
    production_order_id: int,
    masterdata: MasterdataClient,
    progress: Optional[ProgressCallback] = None,
) -> Dict[str, Any]:
    """
    Create control and workstation orders for a production order and set it
    IN_PROGRESS. Everything is resolved before anything is written, so a
    master data failure leaves the production order untouched.
    """
    progress = progress or (lambda percent, message: None)
    bom = BOMResolver(masterdata)

    order = get_production_order(db, production_order_id)
    ensure_dispatchable(order)

    progress(10, "Resolving modules")
    modules, product_lines = _module_requirements(order, bom)

    progress(30, f"Looking up workstations for {len(modules)} modules")
    by_workstation: Dict[int, Dict[int, int]] = defaultdict(dict)
    module_names: Dict[int, str] = {}
    for module_id, quantity in sorted(modules.items()):
        workstation_id, module_names[module_id] = _workstation_for_module(masterdata, module_id)
        by_workstation[workstation_id][module_id] = quantity

    progress(50, "Resolving assembly parts")
    assembly_parts: Dict[Tuple[int, int], Dict[int, int]] = {}
    final_assembly_modules: List[Dict[int, int]] = []
    for workstation_id, module_quantities in by_workstation.items():
        if WORKSTATION_KINDS[workstation_id] in ASSEMBLY_KINDS:
            for module_id, quantity in module_quantities.items():
                assembly_parts[(workstation_id, module_id)] = bom.resolve_parts_for_module(module_id, quantity)
    for line in product_lines:
        final_assembly_modules.append(bom.resolve_modules_for_product(line.item_id, line.requested_quantity))

    progress(70, "Creating control orders")
    manufacturing = {
        ws: m for ws, m in by_workstation.items() if WORKSTATION_KINDS[ws] in MANUFACTURING_KINDS
    }
    assembly = {ws: m for ws, m in by_workstation.items() if WORKSTATION_KINDS[ws] in ASSEMBLY_KINDS}

    control_orders: List[ControlOrder] = []
    workstation_orders: List[WorkstationOrder] = []

    if manufacturing:
        control_order = _new_control_order(db, order, CONTROL_TYPE_PRODUCTION)
        control_orders.append(control_order)
        for workstation_id in sorted(manufacturing):
            for module_id, quantity in sorted(manufacturing[workstation_id].items()):
                output = OrderLineItem(
                    item_type="MODULE", item_id=module_id, item_name=module_names[module_id],
                    requested_quantity=quantity, fulfilled_quantity=0,
                )
                workstation_orders.append(
                    _new_workstation_order(db, control_order, workstation_id, order.schedule_id, [output])
                )

    if assembly or product_lines:
        control_order = _new_control_order(db, order, CONTROL_TYPE_ASSEMBLY)
        control_orders.append(control_order)
        for workstation_id in sorted(assembly):
            for module_id, quantity in sorted(assembly[workstation_id].items()):
                lines = [
                    OrderLineItem(
                        item_type="MODULE", item_id=module_id, item_name=module_names[module_id],
                        requested_quantity=quantity, fulfilled_quantity=0,
                    )
                ]
                lines.extend(
                    OrderLineItem(
                        item_type="PART", item_id=part_id, requested_quantity=part_quantity, fulfilled_quantity=0,
                    )
                    for part_id, part_quantity in sorted(assembly_parts[(workstation_id, module_id)].items())
                )
                workstation_orders.append(
                    _new_workstation_order(db, control_order, workstation_id, order.schedule_id, lines)
                )

        for line, module_quantities in zip(product_lines, final_assembly_modules):
            lines = [line.copy_for()]
            lines.extend(
                OrderLineItem(
                    item_type="MODULE", item_id=module_id, item_name=module_names.get(module_id),
                    requested_quantity=module_quantity, fulfilled_quantity=0,
                    source_product_id=line.item_id, source_product_quantity=line.requested_quantity,
                )
                for module_id, module_quantity in sorted(module_quantities.items())
            )
            workstation_orders.append(
                _new_workstation_order(
                    db, control_order, settings.FINAL_ASSEMBLY_WORKSTATION_ID, order.schedule_id, lines
                )
            )

    progress(90, "Starting production order")
    transition_work_order(
        db, order, PRODUCTION_ORDER, WorkOrderStatus.IN_PROGRESS,
        f"Dispatched to {len(control_orders)} control orders, {len(workstation_orders)} workstation orders",
    )
    db.commit()

    logger.info(
        f"Dispatched production order {order.order_number}",
        extra={
            "control_orders": [c.order_number for c in control_orders],
            "workstation_orders": len(workstation_orders),
        },
    )
    return {
        "production_order_id": order.id,
        "order_number": order.order_number,
        "control_orders": [
            {"id": c.id, "order_number": c.order_number, "control_type": c.control_type}
            for c in control_orders
        ],
        "workstation_orders": [
            {"id": w.id, "order_number": w.order_number, "kind": w.kind, "workstation_id": w.workstation_id}
            for w in workstation_orders
        ],
    }


# =============================================================================
# Halt / resume / cancel
# =============================================================================

def halt_production_order(db: Session, order: ProductionOrder, reason: Optional[str] = None) -> ProductionOrder:
    transition_work_order(db, order, PRODUCTION_ORDER, WorkOrderStatus.HALTED, reason)
    if reason:
        order.append_note(f"Halted: {reason}")
    db.commit()
    db.refresh(order)
    return order


def resume_production_order(
    db: Session,
    order: ProductionOrder,
    stock: StockClient,
    scheduling: Optional[SchedulingClient] = None,
) -> Tuple[ProductionOrder, PropagationResult]:
    if order.status != WorkOrderStatus.HALTED.value:
        raise InvalidStateError(
            f"Production order {order.order_number} is not halted",
            current_state=order.status,
            allowed_states=[WorkOrderStatus.HALTED.value],
        )
    transition_work_order(db, order, PRODUCTION_ORDER, WorkOrderStatus.IN_PROGRESS, "Resumed")
    db.commit()

    propagation = CompletionPropagator(db, stock, scheduling).recheck_production_order(order.id)
    db.refresh(order)
    return order, propagation


def cancel_production_order(
    db: Session,
    order: ProductionOrder,
    reason: Optional[str] = None,
    scheduling: Optional[SchedulingClient] = None,
) -> ProductionOrder:
    if order.is_terminal:
        raise InvalidStateError(
            f"Production order {order.order_number} is already {order.status}",
            current_state=order.status,
        )
    transition_work_order(db, order, PRODUCTION_ORDER, WorkOrderStatus.CANCELLED, reason)
    if reason:
        order.append_note(f"Cancelled: {reason}")
    db.commit()
    db.refresh(order)

    if scheduling is not None:
        scheduling.update_status(order.schedule_id, WorkOrderStatus.CANCELLED.value, order.order_number)
    return order
