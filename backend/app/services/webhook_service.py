"""
Webhook Service

Subscription management plus delivery of audited order events.

Deliveries are queued on the SQLAlchemy session while the event is recorded
and handed to a small thread pool after that session commits, so subscribers
never hear about an event whose transaction was rolled back and a slow
subscriber never holds up the committing request. Delivery failures are
logged and dropped (no retry queue).
"""
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import datetime
from typing import Any, Dict, List, Optional, Set

import requests
from sqlalchemy import event
from sqlalchemy.orm import Session

from app.core.config import settings
from app.exceptions import ConflictError, NotFoundError, ValidationError
from app.logging_config import get_logger
from app.models.order_event import OrderEvent
from app.models.webhook_subscription import WebhookSubscription

logger = get_logger(__name__)

_PENDING_KEY = "pending_webhooks"

_executor: Optional[ThreadPoolExecutor] = None
_executor_lock = threading.Lock()
_in_flight: Set[Future] = set()


# =============================================================================
# Subscriptions
# =============================================================================

def subscribe(db: Session, event_type: Optional[str], target_url: str, secret: Optional[str] = None) -> WebhookSubscription:
    if not target_url or not target_url.startswith(("http://", "https://")):
        raise ValidationError("Webhook target must be an http(s) URL", field="target_url", value=target_url)

    event_type = (event_type or "").strip().upper() or "ANY"
    duplicate = (
        db.query(WebhookSubscription)
        .filter(
            WebhookSubscription.event_type == event_type,
            WebhookSubscription.target_url == target_url,
            WebhookSubscription.active.is_(True),
        )
        .first()
    )
    if duplicate:
        raise ConflictError(
            f"{target_url} is already subscribed to {event_type}",
            details={"subscription_id": duplicate.id},
        )

    subscription = WebhookSubscription(
        event_type=event_type,
        target_url=target_url,
        secret=secret or None,
        active=True,
    )
    db.add(subscription)
    db.flush()
    logger.info(f"Webhook subscribed: {subscription.event_type} -> {target_url}")
    return subscription


def list_active(db: Session) -> List[WebhookSubscription]:
    return (
        db.query(WebhookSubscription)
        .filter(WebhookSubscription.active.is_(True))
        .order_by(WebhookSubscription.id)
        .all()
    )


def unsubscribe(db: Session, subscription_id: int) -> None:
    subscription = db.get(WebhookSubscription, subscription_id)
    if not subscription:
        raise NotFoundError("WebhookSubscription", subscription_id)
    db.delete(subscription)
    logger.info(f"Webhook unsubscribed: {subscription.event_type} -> {subscription.target_url}")


# =============================================================================
# Delivery
# =============================================================================

def build_payload(order_event: OrderEvent) -> Dict[str, Any]:
    created = order_event.created_at or datetime.utcnow()
    return {
        "orderType": order_event.order_type,
        "orderId": order_event.order_id,
        "eventType": order_event.event_type,
        "description": order_event.description,
        "timestamp": created.isoformat() + "Z",
    }


def queue_delivery(db: Session, order_event: OrderEvent) -> int:
    """
    Queue the event for every matching active subscription.

    Returns:
        Number of deliveries queued
    """
    event_key = f"{order_event.order_type}.{order_event.event_type}"
    subscriptions = [s for s in list_active(db) if s.matches(event_key)]
    if not subscriptions:
        return 0

    payload = build_payload(order_event)
    pending = db.info.setdefault(_PENDING_KEY, [])
    for subscription in subscriptions:
        pending.append((subscription.target_url, subscription.secret, event_key, payload))
    return len(subscriptions)


def deliver(target_url: str, secret: Optional[str], event_key: str, payload: Dict[str, Any]) -> bool:
    headers = {"Content-Type": "application/json"}
    if secret:
        headers["X-Webhook-Secret"] = secret
    try:
        response = requests.post(
            target_url,
            json=payload,
            headers=headers,
            timeout=settings.WEBHOOK_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
    except requests.RequestException as e:
        logger.warning(f"Webhook delivery failed to {target_url}: {e}", extra={"event": event_key})
        return False
    logger.info(f"Webhook delivered to {target_url} for {event_key}")
    return True


def _get_executor() -> ThreadPoolExecutor:
    global _executor
    with _executor_lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(
                max_workers=settings.WEBHOOK_WORKER_COUNT, thread_name_prefix="webhook"
            )
        return _executor


def _finished(future: Future) -> None:
    with _executor_lock:
        _in_flight.discard(future)
    if future.exception() is not None:
        logger.error(f"Webhook delivery crashed: {future.exception()}")


def wait_for_deliveries(timeout: float = 10.0) -> bool:
    """Block until every submitted delivery has finished. Returns False on timeout."""
    with _executor_lock:
        outstanding = list(_in_flight)
    _, not_done = wait(outstanding, timeout=timeout)
    return not not_done


def shutdown_delivery() -> None:
    """Let queued deliveries finish, then stop the pool."""
    global _executor
    with _executor_lock:
        executor, _executor = _executor, None
    if executor is not None:
        executor.shutdown(wait=True)


@event.listens_for(Session, "after_commit")
def _deliver_after_commit(session: Session) -> None:
    pending = session.info.pop(_PENDING_KEY, None)
    for target_url, secret, event_key, payload in pending or []:
        future = _get_executor().submit(deliver, target_url, secret, event_key, payload)
        with _executor_lock:
            _in_flight.add(future)
        future.add_done_callback(_finished)


@event.listens_for(Session, "after_rollback")
def _discard_after_rollback(session: Session) -> None:
    session.info.pop(_PENDING_KEY, None)
