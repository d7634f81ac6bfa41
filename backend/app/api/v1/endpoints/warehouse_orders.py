"""
Warehouse Orders API Endpoints
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.v1.deps import get_db, get_masterdata_client, get_stock_client
from app.integrations.masterdata import MasterdataClient
from app.integrations.stock import StockClient
from app.schemas.common import OrderProgressResponse, ReasonRequest
from app.schemas.warehouse_order import ProductionRequest, WarehouseOrderResponse
from app.services import warehouse_order_service
from app.services.order_progress import warehouse_order_progress

router = APIRouter()


@router.get("/", response_model=List[WarehouseOrderResponse])
def list_warehouse_orders(
    status_filter: Optional[str] = Query(None, alias="status"),
    customer_order_id: Optional[int] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    return warehouse_order_service.list_warehouse_orders(
        db, status=status_filter, customer_order_id=customer_order_id, skip=skip, limit=limit
    )


@router.get("/{order_id}", response_model=WarehouseOrderResponse)
def get_warehouse_order(order_id: int, db: Session = Depends(get_db)):
    return warehouse_order_service.get_warehouse_order(db, order_id)


@router.post("/{order_id}/confirm", response_model=WarehouseOrderResponse)
def confirm_warehouse_order(
    order_id: int,
    db: Session = Depends(get_db),
    stock: StockClient = Depends(get_stock_client),
):
    order = warehouse_order_service.get_warehouse_order(db, order_id)
    return warehouse_order_service.confirm_warehouse_order(db, order, stock)


@router.post("/{order_id}/fulfill", response_model=WarehouseOrderResponse)
def fulfill_warehouse_order(
    order_id: int,
    db: Session = Depends(get_db),
    stock: StockClient = Depends(get_stock_client),
    masterdata: MasterdataClient = Depends(get_masterdata_client),
):
    """Release modules to final assembly; 422 when the supermarket is short."""
    order = warehouse_order_service.get_warehouse_order(db, order_id)
    return warehouse_order_service.fulfill_warehouse_order(db, order, stock, masterdata)


@router.post("/{order_id}/request-production", response_model=WarehouseOrderResponse)
def request_production(
    order_id: int,
    payload: Optional[ProductionRequest] = None,
    db: Session = Depends(get_db),
):
    order = warehouse_order_service.get_warehouse_order(db, order_id)
    priority = payload.priority if payload else "NORMAL"
    return warehouse_order_service.request_production(db, order, priority=priority)


@router.post("/{order_id}/cancel", response_model=WarehouseOrderResponse)
def cancel_warehouse_order(
    order_id: int,
    payload: Optional[ReasonRequest] = None,
    db: Session = Depends(get_db),
):
    order = warehouse_order_service.get_warehouse_order(db, order_id)
    return warehouse_order_service.cancel_warehouse_order(db, order, payload.reason if payload else None)


@router.get("/{order_id}/progress", response_model=OrderProgressResponse)
def get_warehouse_order_progress(order_id: int, db: Session = Depends(get_db)):
    order = warehouse_order_service.get_warehouse_order(db, order_id)
    return warehouse_order_progress(order)
