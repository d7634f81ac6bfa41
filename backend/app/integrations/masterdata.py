"""
Master data service client.

Compositions (product -> modules, module -> parts) are required data: a
failed lookup raises MasterdataError so the BOM resolver can abort the
enclosing action. Display names are optional: lookups degrade to a
synthetic "{type}#{id}" label and never raise.
"""
from typing import Any, Dict, List, Optional

import requests

from app.core.config import settings
from app.exceptions import MasterdataError
from app.logging_config import get_logger

logger = get_logger(__name__)

_CATEGORY_PATHS = {
    "PRODUCT": "product",
    "MODULE": "module",
    "PART": "part",
}


class MasterdataClient:
    """HTTP adapter for the master data service."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or settings.MASTERDATA_SERVICE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT_SECONDS
        self.session = session or requests.Session()

    def _get_json(self, path: str) -> Any:
        url = f"{self.base_url}/{path}"
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise MasterdataError(f"GET {path} failed: {e}") from e
        except ValueError as e:
            raise MasterdataError(f"GET {path} returned invalid JSON") from e

    def _get_composition(self, path: str, key: str) -> List[Dict[str, int]]:
        data = self._get_json(path)
        try:
            return [
                {key: int(entry[key]), "qty": int(entry.get("qty", 1))}
                for entry in (data or [])
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise MasterdataError(f"GET {path} returned a malformed composition") from e

    def get_product_modules(self, product_id: int) -> List[Dict[str, int]]:
        """[{moduleId, qty}, ...] per unit of product."""
        return self._get_composition(f"product/{product_id}/modules", "moduleId")

    def get_module_parts(self, module_id: int) -> List[Dict[str, int]]:
        """[{partId, qty}, ...] per unit of module."""
        return self._get_composition(f"module/{module_id}/parts", "partId")

    def get_module(self, module_id: int) -> Dict[str, Any]:
        """Module record, including the workstation that produces it."""
        data = self._get_json(f"module/{module_id}") or {}
        return {
            "id": module_id,
            "name": data.get("name") or f"MODULE#{module_id}",
            "productionWorkstationId": data.get("productionWorkstationId"),
        }

    def get_item_name(self, item_type: str, item_id: int) -> str:
        path = _CATEGORY_PATHS.get(item_type.upper(), item_type.lower())
        try:
            data = self._get_json(f"{path}/{item_id}") or {}
            name = data.get("name")
            if name:
                return name
        except MasterdataError as e:
            logger.warning(f"Name lookup failed for {item_type} {item_id}: {e.message}")
        return f"{item_type.upper()}#{item_id}"
