"""
Production Orders API Endpoints

Scheduling and dispatch run as tracked background operations: the request
validates the order, submits the job and returns the operation to poll.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.v1.deps import (
    get_db,
    get_masterdata_client,
    get_operation_tracker,
    get_scheduling_client,
    get_stock_client,
)
from app.integrations.masterdata import MasterdataClient
from app.integrations.scheduling import SchedulingClient
from app.integrations.stock import StockClient
from app.logging_config import get_logger
from app.models.async_operation import AsyncOperation
from app.schemas.common import OrderProgressResponse, PropagationResponse, ReasonRequest
from app.schemas.operation_status import AsyncOperationResponse
from app.schemas.production_order import (
    ProductionOrderResponse,
    ProductionOrderResumeResponse,
    ScheduleRequest,
)
from app.services import production_order_service
from app.services.async_operations import OperationTracker
from app.services.event_service import PRODUCTION_ORDER
from app.services.order_progress import production_order_progress

router = APIRouter()
logger = get_logger(__name__)


@router.get("/", response_model=List[ProductionOrderResponse])
def list_production_orders(
    status_filter: Optional[str] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    return production_order_service.list_production_orders(db, status=status_filter, skip=skip, limit=limit)


@router.get("/{order_id}", response_model=ProductionOrderResponse)
def get_production_order(order_id: int, db: Session = Depends(get_db)):
    return production_order_service.get_production_order(db, order_id)


@router.post("/{order_id}/schedule", response_model=AsyncOperationResponse, status_code=status.HTTP_202_ACCEPTED)
def schedule_production_order(
    order_id: int,
    payload: ScheduleRequest,
    db: Session = Depends(get_db),
    scheduling: SchedulingClient = Depends(get_scheduling_client),
    tracker: OperationTracker = Depends(get_operation_tracker),
):
    """Start a SCHEDULE_PRODUCTION operation (PENDING -> SCHEDULED)."""
    order = production_order_service.get_production_order(db, order_id)
    production_order_service.ensure_schedulable(order)

    def job(job_db, progress):
        return production_order_service.schedule_production(
            job_db,
            order_id,
            payload.scheduled_start,
            payload.scheduled_end,
            schedule_id=payload.schedule_id,
            scheduling=scheduling,
            progress=progress,
        )

    logger.info(f"Scheduling requested for production order {order.order_number}")
    return tracker.submit(
        AsyncOperation.TYPE_SCHEDULE_PRODUCTION,
        job,
        entity_type=PRODUCTION_ORDER,
        entity_id=order.id,
    )


@router.post("/{order_id}/dispatch", response_model=AsyncOperationResponse, status_code=status.HTTP_202_ACCEPTED)
def dispatch_production_order(
    order_id: int,
    db: Session = Depends(get_db),
    masterdata: MasterdataClient = Depends(get_masterdata_client),
    tracker: OperationTracker = Depends(get_operation_tracker),
):
    """Start a DISPATCH_CONTROL_ORDERS operation (creates control and workstation orders)."""
    order = production_order_service.get_production_order(db, order_id)
    production_order_service.ensure_dispatchable(order)

    def job(job_db, progress):
        return production_order_service.dispatch_control_orders(job_db, order_id, masterdata, progress=progress)

    logger.info(f"Dispatch requested for production order {order.order_number}")
    return tracker.submit(
        AsyncOperation.TYPE_DISPATCH_CONTROL_ORDERS,
        job,
        entity_type=PRODUCTION_ORDER,
        entity_id=order.id,
    )


@router.post("/{order_id}/halt", response_model=ProductionOrderResponse)
def halt_production_order(
    order_id: int,
    payload: Optional[ReasonRequest] = None,
    db: Session = Depends(get_db),
):
    order = production_order_service.get_production_order(db, order_id)
    return production_order_service.halt_production_order(db, order, payload.reason if payload else None)


@router.post("/{order_id}/resume", response_model=ProductionOrderResumeResponse)
def resume_production_order(
    order_id: int,
    db: Session = Depends(get_db),
    stock: StockClient = Depends(get_stock_client),
    scheduling: SchedulingClient = Depends(get_scheduling_client),
):
    """HALTED -> IN_PROGRESS, then re-check completion."""
    order = production_order_service.get_production_order(db, order_id)
    order, propagation = production_order_service.resume_production_order(db, order, stock, scheduling)
    return ProductionOrderResumeResponse(
        order=ProductionOrderResponse.model_validate(order),
        propagation=PropagationResponse.model_validate(propagation),
    )


@router.post("/{order_id}/cancel", response_model=ProductionOrderResponse)
def cancel_production_order(
    order_id: int,
    payload: Optional[ReasonRequest] = None,
    db: Session = Depends(get_db),
    scheduling: SchedulingClient = Depends(get_scheduling_client),
):
    order = production_order_service.get_production_order(db, order_id)
    return production_order_service.cancel_production_order(
        db, order, payload.reason if payload else None, scheduling=scheduling
    )


@router.get("/{order_id}/progress", response_model=OrderProgressResponse)
def get_production_order_progress(order_id: int, db: Session = Depends(get_db)):
    order = production_order_service.get_production_order(db, order_id)
    return production_order_progress(order)
