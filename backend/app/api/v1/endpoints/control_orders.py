"""
Control Orders API Endpoints
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.v1.deps import get_db, get_scheduling_client, get_stock_client
from app.integrations.scheduling import SchedulingClient
from app.integrations.stock import StockClient
from app.schemas.common import OrderProgressResponse, PropagationResponse, ReasonRequest
from app.schemas.production_order import ControlOrderResponse, ControlOrderResumeResponse
from app.services import control_order_service
from app.services.order_progress import control_order_progress

router = APIRouter()


@router.get("/", response_model=List[ControlOrderResponse])
def list_control_orders(
    control_type: Optional[str] = Query(None, description="PRODUCTION or ASSEMBLY"),
    status_filter: Optional[str] = Query(None, alias="status"),
    production_order_id: Optional[int] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    return control_order_service.list_control_orders(
        db,
        control_type=control_type,
        status=status_filter,
        production_order_id=production_order_id,
        skip=skip,
        limit=limit,
    )


@router.get("/{order_id}", response_model=ControlOrderResponse)
def get_control_order(order_id: int, db: Session = Depends(get_db)):
    return control_order_service.get_control_order(db, order_id)


@router.post("/{order_id}/start", response_model=ControlOrderResponse)
def start_control_order(order_id: int, db: Session = Depends(get_db)):
    order = control_order_service.get_control_order(db, order_id)
    return control_order_service.start_control_order(db, order)


@router.post("/{order_id}/halt", response_model=ControlOrderResponse)
def halt_control_order(
    order_id: int,
    payload: Optional[ReasonRequest] = None,
    db: Session = Depends(get_db),
):
    order = control_order_service.get_control_order(db, order_id)
    return control_order_service.halt_control_order(db, order, payload.reason if payload else None)


@router.post("/{order_id}/resume", response_model=ControlOrderResumeResponse)
def resume_control_order(
    order_id: int,
    db: Session = Depends(get_db),
    stock: StockClient = Depends(get_stock_client),
    scheduling: SchedulingClient = Depends(get_scheduling_client),
):
    """HALTED -> IN_PROGRESS, then re-check completion."""
    order = control_order_service.get_control_order(db, order_id)
    order, propagation = control_order_service.resume_control_order(db, order, stock, scheduling)
    return ControlOrderResumeResponse(
        order=ControlOrderResponse.model_validate(order),
        propagation=PropagationResponse.model_validate(propagation),
    )


@router.get("/{order_id}/progress", response_model=OrderProgressResponse)
def get_control_order_progress(order_id: int, db: Session = Depends(get_db)):
    order = control_order_service.get_control_order(db, order_id)
    return control_order_progress(order)
