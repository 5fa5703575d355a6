"""
Kit Composer Service
Flattens kits into the simple products and quantities they consume
"""
from dataclasses import dataclass
from typing import Dict, List, Optional
import logging

from sqlalchemy.orm import Session

from stockledger.core.config import settings
from stockledger.core.exceptions import KitTooDeep, ProductNotFound, ValidationError
from stockledger.models import Product

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KitRequirement:
    component_id: int
    total_quantity: int


class KitComposerService:
    """
    Kit expansion over catalog data

    Read only. Nested kits are flattened down to simple products; a
    component reached through several paths is merged into one requirement,
    kept at the position where it was first reached.
    """

    def __init__(self, db: Session, owner_id: Optional[int] = None, max_depth: Optional[int] = None):
        self.db = db
        self.owner_id = owner_id
        self.max_depth = settings.KIT_MAX_DEPTH if max_depth is None else max_depth
        if self.max_depth < 1:
            raise ValueError("max_depth must be at least 1")

    def expand(self, kit_product_id: int, quantity: int) -> List[KitRequirement]:
        if quantity is None or quantity <= 0:
            raise ValidationError(f"Kit quantity must be positive, got {quantity}")

        kit = self.db.get(Product, kit_product_id)
        if kit is None or (self.owner_id is not None and kit.owner_id != self.owner_id):
            raise ProductNotFound(kit_product_id)
        if not kit.is_kit:
            raise ValidationError(f"Product {kit.sku} is not a kit", {"product_id": str(kit.id)})

        totals: Dict[int, int] = {}
        self._accumulate(kit, quantity, 1, kit_product_id, totals)

        return [KitRequirement(component_id=cid, total_quantity=qty) for cid, qty in totals.items()]

    def _accumulate(self, kit: Product, multiplier: int, depth: int, root_id: int, totals: Dict[int, int]):
        if depth > self.max_depth:
            logger.error(
                f"Kit {root_id} expansion passed {self.max_depth} levels at kit {kit.id}; "
                f"the kit graph probably contains a cycle"
            )
            raise KitTooDeep(root_id, self.max_depth)

        for line in kit.components:
            required = line.quantity * multiplier
            component = line.component
            if component.is_kit:
                self._accumulate(component, required, depth + 1, root_id, totals)
            else:
                totals[component.id] = totals.get(component.id, 0) + required
