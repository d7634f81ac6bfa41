"""
SimAL scheduling service notifications.

Schedule bookkeeping is secondary to order state, so every call here is
best-effort: failures are logged and reported as False, never raised.
"""
from typing import Optional

import requests

from app.core.config import settings
from app.logging_config import get_logger

logger = get_logger(__name__)


class SchedulingClient:

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or settings.SCHEDULING_SERVICE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT_SECONDS
        self.session = session or requests.Session()

    def update_status(self, schedule_id: Optional[str], status: str, order_number: Optional[str] = None) -> bool:
        if not schedule_id:
            return False
        url = f"{self.base_url}/scheduled-order/{schedule_id}/status"
        payload = {"status": status}
        if order_number:
            payload["orderNumber"] = order_number
        try:
            response = self.session.post(url, json=payload, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.warning(
                f"Scheduling notification failed for {schedule_id} ({status}): {e}",
                extra={"schedule_id": schedule_id, "order_number": order_number},
            )
            return False
        logger.debug(f"Scheduling service notified: {schedule_id} -> {status}")
        return True
