"""
Workstation Orders API Endpoints

Operator actions at the workstations. Completing an order credits its output
and propagates completion up the order hierarchy.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.v1.deps import get_db, get_scheduling_client, get_stock_client
from app.integrations.scheduling import SchedulingClient
from app.integrations.stock import StockClient
from app.schemas.common import PropagationResponse, ReasonRequest
from app.schemas.production_order import WorkstationCompleteResponse, WorkstationOrderResponse
from app.services import workstation_order_service

router = APIRouter()


@router.get("/", response_model=List[WorkstationOrderResponse])
def list_workstation_orders(
    workstation_id: Optional[int] = Query(None, ge=1, le=9),
    status_filter: Optional[str] = Query(None, alias="status"),
    control_order_id: Optional[int] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    return workstation_order_service.list_workstation_orders(
        db,
        workstation_id=workstation_id,
        status=status_filter,
        control_order_id=control_order_id,
        skip=skip,
        limit=limit,
    )


@router.get("/{order_id}", response_model=WorkstationOrderResponse)
def get_workstation_order(order_id: int, db: Session = Depends(get_db)):
    return workstation_order_service.get_workstation_order(db, order_id)


@router.post("/{order_id}/start", response_model=WorkstationOrderResponse)
def start_workstation_order(
    order_id: int,
    db: Session = Depends(get_db),
    stock: StockClient = Depends(get_stock_client),
    scheduling: SchedulingClient = Depends(get_scheduling_client),
):
    order = workstation_order_service.get_workstation_order(db, order_id)
    return workstation_order_service.start_workstation_order(db, order, stock, scheduling)


@router.post("/{order_id}/complete", response_model=WorkstationCompleteResponse)
def complete_workstation_order(
    order_id: int,
    db: Session = Depends(get_db),
    stock: StockClient = Depends(get_stock_client),
    scheduling: SchedulingClient = Depends(get_scheduling_client),
):
    order = workstation_order_service.get_workstation_order(db, order_id)
    order, propagation = workstation_order_service.complete_workstation_order(db, order, stock, scheduling)
    return WorkstationCompleteResponse(
        order=WorkstationOrderResponse.model_validate(order),
        propagation=PropagationResponse.model_validate(propagation),
    )


@router.post("/{order_id}/halt", response_model=WorkstationOrderResponse)
def halt_workstation_order(
    order_id: int,
    payload: Optional[ReasonRequest] = None,
    db: Session = Depends(get_db),
):
    order = workstation_order_service.get_workstation_order(db, order_id)
    return workstation_order_service.halt_workstation_order(db, order, payload.reason if payload else None)


@router.post("/{order_id}/resume", response_model=WorkstationOrderResponse)
def resume_workstation_order(order_id: int, db: Session = Depends(get_db)):
    order = workstation_order_service.get_workstation_order(db, order_id)
    return workstation_order_service.resume_workstation_order(db, order)


@router.post("/{order_id}/cancel", response_model=WorkstationOrderResponse)
def cancel_workstation_order(
    order_id: int,
    payload: Optional[ReasonRequest] = None,
    db: Session = Depends(get_db),
):
    order = workstation_order_service.get_workstation_order(db, order_id)
    return workstation_order_service.cancel_workstation_order(db, order, payload.reason if payload else None)
