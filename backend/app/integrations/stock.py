"""
Stock service client (the stock oracle).

Each location in the factory deals in exactly one item category, so callers
only pass a location id and an item id; the category sent to the stock
service is inferred here.

Nothing in this client raises on communication failure. Callers branch on
the boolean result (available / not available, applied / not applied), and
an exception would abort an otherwise recoverable scenario decision.
"""
from typing import Optional

import requests

from app.core.config import settings
from app.logging_config import get_logger

logger = get_logger(__name__)

REASON_ORDER_FULFILLMENT = "ORDER_FULFILLMENT"
REASON_PRODUCTION_COMPLETION = "PRODUCTION_COMPLETION"
REASON_PRODUCTION_CONSUMPTION = "PRODUCTION_CONSUMPTION"


def item_type_for_location(location_id: int) -> str:
    """Parts supply holds PART, the modules supermarket holds MODULE, everything else PRODUCT."""
    if location_id == settings.PARTS_SUPPLY_ID:
        return "PART"
    if location_id == settings.MODULES_SUPERMARKET_ID:
        return "MODULE"
    return "PRODUCT"


def location_for_item_type(item_type: str) -> int:
    """Store that holds a given item category."""
    if item_type == "PART":
        return settings.PARTS_SUPPLY_ID
    if item_type == "MODULE":
        return settings.MODULES_SUPERMARKET_ID
    return settings.PLANT_WAREHOUSE_ID


class StockClient:
    """HTTP adapter for the stock service."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or settings.STOCK_SERVICE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT_SECONDS
        self.session = session or requests.Session()

    def get_quantity(self, location_id: int, item_id: int) -> Optional[int]:
        """Current quantity at a location, or None when the stock service can't be asked."""
        url = f"{self.base_url}/stock/{location_id}/item"
        params = {"type": item_type_for_location(location_id), "id": item_id}
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            body = response.json() or {}
            return int(body.get("quantity", 0))
        except (requests.RequestException, ValueError, TypeError) as e:
            logger.error(
                f"Stock lookup failed for item {item_id} at location {location_id}: {e}",
                extra={"location_id": location_id, "item_id": item_id},
            )
            return None

    def check_stock(self, location_id: int, item_id: int, quantity: int) -> bool:
        """True when the location holds at least ``quantity`` of the item."""
        available = self.get_quantity(location_id, item_id)
        if available is None:
            return False
        result = available >= quantity
        logger.debug(
            f"Stock check location={location_id} item={item_id}: "
            f"need {quantity}, have {available} -> {'OK' if result else 'SHORT'}"
        )
        return result

    def debit(
        self,
        location_id: int,
        item_id: int,
        quantity: int,
        reason: str = REASON_ORDER_FULFILLMENT,
        notes: Optional[str] = None,
    ) -> bool:
        return self._adjust(location_id, item_id, -abs(quantity), reason, notes)

    def credit(
        self,
        location_id: int,
        item_id: int,
        quantity: int,
        reason: str = REASON_PRODUCTION_COMPLETION,
        notes: Optional[str] = None,
    ) -> bool:
        return self._adjust(location_id, item_id, abs(quantity), reason, notes)

    def _adjust(
        self,
        location_id: int,
        item_id: int,
        delta: int,
        reason: str,
        notes: Optional[str],
    ) -> bool:
        payload = {
            "location": location_id,
            "type": item_type_for_location(location_id),
            "id": item_id,
            "delta": delta,
            "reason": reason,
            "notes": notes,
        }
        try:
            response = self.session.post(
                f"{self.base_url}/stock/adjust", json=payload, timeout=self.timeout
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(
                f"Stock adjustment failed ({delta:+d} of item {item_id} at location {location_id}): {e}",
                extra={"location_id": location_id, "item_id": item_id, "delta": delta, "reason": reason},
            )
            return False

        logger.info(
            f"Stock adjusted: {delta:+d} of {payload['type']} {item_id} at location {location_id}",
            extra={"reason": reason},
        )
        return True
