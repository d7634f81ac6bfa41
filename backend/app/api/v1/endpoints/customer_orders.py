"""
Customer Orders API Endpoints
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from app.api.v1.deps import get_db, get_masterdata_client, get_stock_client
from app.core.config import settings
from app.core.limiter import limiter
from app.integrations.masterdata import MasterdataClient
from app.integrations.stock import StockClient
from app.schemas.common import OrderProgressResponse, ReasonRequest
from app.schemas.customer_order import (
    CustomerOrderCreate,
    CustomerOrderResponse,
    ScenarioCheckResponse,
)
from app.services import customer_order_service
from app.services.fulfillment_executor import FulfillmentExecutor
from app.services.order_progress import customer_order_progress
from app.services.scenario_classifier import ScenarioClassifier

router = APIRouter()


@router.post("/", response_model=CustomerOrderResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.CUSTOMER_ORDER_RATE_LIMIT)
def create_customer_order(
    request: Request,
    payload: CustomerOrderCreate,
    db: Session = Depends(get_db),
    masterdata: MasterdataClient = Depends(get_masterdata_client),
):
    """Create a PENDING customer order for one or more products."""
    return customer_order_service.create_customer_order(
        db,
        [(item.product_id, item.quantity) for item in payload.items],
        customer_name=payload.customer_name,
        notes=payload.notes,
        workstation_id=payload.workstation_id,
        masterdata=masterdata,
    )


@router.get("/", response_model=List[CustomerOrderResponse])
def list_customer_orders(
    status_filter: Optional[str] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    return customer_order_service.list_customer_orders(db, status=status_filter, skip=skip, limit=limit)


@router.get("/{order_id}", response_model=CustomerOrderResponse)
def get_customer_order(order_id: int, db: Session = Depends(get_db)):
    return customer_order_service.get_customer_order(db, order_id)


@router.post("/{order_id}/confirm", response_model=CustomerOrderResponse)
def confirm_customer_order(
    order_id: int,
    db: Session = Depends(get_db),
    stock: StockClient = Depends(get_stock_client),
):
    """PENDING -> CONFIRMED; caches the scenario derived from current stock."""
    order = customer_order_service.get_customer_order(db, order_id)
    return customer_order_service.confirm_customer_order(db, order, stock)


@router.get("/{order_id}/scenario", response_model=ScenarioCheckResponse)
def check_scenario(
    order_id: int,
    db: Session = Depends(get_db),
    stock: StockClient = Depends(get_stock_client),
):
    """Re-derive the scenario from current stock without changing the order."""
    order = customer_order_service.get_customer_order(db, order_id)
    return ScenarioClassifier(db, stock).check_current_scenario(order)


@router.post("/{order_id}/fulfill", response_model=CustomerOrderResponse)
def fulfill_customer_order(
    order_id: int,
    db: Session = Depends(get_db),
    stock: StockClient = Depends(get_stock_client),
    masterdata: MasterdataClient = Depends(get_masterdata_client),
):
    """Execute the scenario for a CONFIRMED order."""
    order = customer_order_service.get_customer_order(db, order_id)
    return FulfillmentExecutor(db, stock, masterdata).fulfill(order)


@router.post("/{order_id}/cancel", response_model=CustomerOrderResponse)
def cancel_customer_order(
    order_id: int,
    payload: Optional[ReasonRequest] = None,
    db: Session = Depends(get_db),
):
    order = customer_order_service.get_customer_order(db, order_id)
    return customer_order_service.cancel_customer_order(db, order, payload.reason if payload else None)


@router.get("/{order_id}/progress", response_model=OrderProgressResponse)
def get_customer_order_progress(order_id: int, db: Session = Depends(get_db)):
    order = customer_order_service.get_customer_order(db, order_id)
    return customer_order_progress(order)
