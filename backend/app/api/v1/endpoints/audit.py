"""
Audit and Webhook API Endpoints
"""
from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.v1.deps import get_db
from app.exceptions import ValidationError
from app.schemas.audit import (
    OrderEventResponse,
    WebhookSubscriptionCreate,
    WebhookSubscriptionResponse,
)
from app.services import webhook_service
from app.services.event_service import ORDER_TYPES, get_order_events, get_recent_events

router = APIRouter()
webhooks_router = APIRouter()


# =============================================================================
# Audit trail
# =============================================================================

@router.get("/orders/{order_type}/{order_id}", response_model=List[OrderEventResponse])
def order_events(order_type: str, order_id: int, db: Session = Depends(get_db)):
    """Events for one order, newest first. order_type e.g. CUSTOMER_ORDER."""
    order_type = order_type.upper().replace("-", "_")
    if order_type not in ORDER_TYPES:
        raise ValidationError(f"Unknown order type {order_type}", field="order_type", value=order_type)
    return get_order_events(db, order_type, order_id)


@router.get("/recent", response_model=List[OrderEventResponse])
def recent_events(limit: int = Query(50, ge=1, le=500), db: Session = Depends(get_db)):
    return get_recent_events(db, limit=limit)


# =============================================================================
# Webhook subscriptions
# =============================================================================

@webhooks_router.post("/", response_model=WebhookSubscriptionResponse, status_code=status.HTTP_201_CREATED)
def subscribe(payload: WebhookSubscriptionCreate, db: Session = Depends(get_db)):
    subscription = webhook_service.subscribe(db, payload.event_type, payload.target_url, payload.secret)
    db.commit()
    db.refresh(subscription)
    return subscription


@webhooks_router.get("/", response_model=List[WebhookSubscriptionResponse])
def list_subscriptions(db: Session = Depends(get_db)):
    return webhook_service.list_active(db)


@webhooks_router.delete("/{subscription_id}", status_code=status.HTTP_204_NO_CONTENT)
def unsubscribe(subscription_id: int, db: Session = Depends(get_db)):
    webhook_service.unsubscribe(db, subscription_id)
    db.commit()
