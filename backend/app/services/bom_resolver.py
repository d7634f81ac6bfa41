"""
BOM Resolver

Expands product quantities into module requirements and module quantities
into part requirements using the master data service.

Results are plain {component_id: quantity} maps built fresh on every call.
A missing composition is a hard error (BomResolutionError): it must abort
the enclosing fulfillment action rather than be treated as "nothing needed".
"""
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

from app.exceptions import BomResolutionError, MasterdataError
from app.integrations.masterdata import MasterdataClient
from app.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class ModuleRequirement:
    """Modules needed for one product line, keeping the product for provenance"""
    product_id: int
    product_quantity: int
    modules: Dict[int, int] = field(default_factory=dict)


def merge_requirements(maps: Iterable[Dict[int, int]]) -> Dict[int, int]:
    """Sum several requirement maps per component key."""
    merged: Dict[int, int] = defaultdict(int)
    for requirement in maps:
        for component_id, quantity in requirement.items():
            merged[component_id] += quantity
    return dict(merged)


class BOMResolver:
    """Multi-level BOM expansion backed by master data."""

    def __init__(self, masterdata: MasterdataClient):
        self.masterdata = masterdata

    def resolve_modules_for_product(self, product_id: int, quantity: int) -> Dict[int, int]:
        """Modules required to build ``quantity`` units of a product."""
        try:
            composition = self.masterdata.get_product_modules(product_id)
        except MasterdataError as e:
            raise BomResolutionError("PRODUCT", product_id, reason=e.message) from e

        if not composition:
            raise BomResolutionError("PRODUCT", product_id, reason="composition is empty")

        requirements: Dict[int, int] = defaultdict(int)
        for entry in composition:
            requirements[entry["moduleId"]] += entry["qty"] * quantity

        logger.debug(f"Product {product_id} x{quantity} -> modules {dict(requirements)}")
        return dict(requirements)

    def resolve_parts_for_module(self, module_id: int, quantity: int) -> Dict[int, int]:
        """Parts required to build ``quantity`` units of a module."""
        try:
            composition = self.masterdata.get_module_parts(module_id)
        except MasterdataError as e:
            raise BomResolutionError("MODULE", module_id, reason=e.message) from e

        if not composition:
            raise BomResolutionError("MODULE", module_id, reason="composition is empty")

        requirements: Dict[int, int] = defaultdict(int)
        for entry in composition:
            requirements[entry["partId"]] += entry["qty"] * quantity

        logger.debug(f"Module {module_id} x{quantity} -> parts {dict(requirements)}")
        return dict(requirements)

    def resolve_product_lines(self, lines: Iterable[Tuple[int, int]]) -> List[ModuleRequirement]:
        """
        Resolve each (product_id, quantity) line separately.

        Every line is resolved before anything is returned, so a missing BOM
        on any line fails the whole call.
        """
        return [
            ModuleRequirement(
                product_id=product_id,
                product_quantity=quantity,
                modules=self.resolve_modules_for_product(product_id, quantity),
            )
            for product_id, quantity in lines
        ]

    def resolve_modules_for_items(self, lines: Iterable[Tuple[int, int]]) -> Dict[int, int]:
        """Aggregated module requirements for a multi-line order."""
        return merge_requirements(r.modules for r in self.resolve_product_lines(lines))
