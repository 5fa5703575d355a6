"""
Catalog Service
Resolves products, kits and warehouses for one owner; thin catalog management
"""
from typing import Iterable, List, Optional, Sequence, Set, Tuple
import logging

from sqlalchemy.orm import Session

from stockledger.core.database import transaction
from stockledger.core.exceptions import (
    KitCycleError, ProductNotFound, ValidationError, WarehouseNotFound
)
from stockledger.models import KitComponent, MarketplaceListing, Product, Warehouse

logger = logging.getLogger(__name__)


class CatalogService:
    """
    Catalog lookups used by every ledger component

    Every lookup is scoped to ``owner_id``; a product or warehouse of another
    owner is reported as not found.
    """

    def __init__(self, db: Session, owner_id: int):
        self.db = db
        self.owner_id = owner_id

    def get_product(self, product_id: int) -> Product:
        product = self.db.get(Product, product_id)
        if product is None or product.owner_id != self.owner_id:
            raise ProductNotFound(product_id)
        return product

    def find_by_sku(self, sku: str) -> Product:
        product = self.db.query(Product).filter(
            Product.owner_id == self.owner_id,
            Product.sku == sku
        ).first()
        if product is None:
            raise ProductNotFound(sku, field="sku")
        return product

    def get_warehouse(self, warehouse_id: int) -> Warehouse:
        warehouse = self.db.get(Warehouse, warehouse_id)
        if warehouse is None or warehouse.owner_id != self.owner_id:
            raise WarehouseNotFound(warehouse_id)
        return warehouse

    def list_warehouses(self) -> List[Warehouse]:
        return self.db.query(Warehouse).filter(
            Warehouse.owner_id == self.owner_id
        ).order_by(Warehouse.id).all()

    def create_warehouse(self, name: str) -> Warehouse:
        if not name or not name.strip():
            raise ValidationError("Warehouse name is required")

        with transaction(self.db):
            warehouse = Warehouse(owner_id=self.owner_id, name=name.strip())
            self.db.add(warehouse)

        logger.info(f"Created warehouse {warehouse.id} '{warehouse.name}'")
        return warehouse

    def create_product(self, sku: str, name: str, gtin: Optional[str] = None) -> Product:
        """Create a simple product"""
        self._check_new_sku(sku)

        with transaction(self.db):
            product = Product(owner_id=self.owner_id, sku=sku, name=name, gtin=gtin, is_kit=False)
            self.db.add(product)

        return product

    def create_kit(
        self,
        sku: str,
        name: str,
        components: Sequence[Tuple[int, int]],
        gtin: Optional[str] = None
    ) -> Product:
        """
        Create a kit from (component_id, quantity) pairs

        Components may themselves be kits. Order is kept for expansion.
        """
        self._check_new_sku(sku)
        self._validate_components(None, components)

        with transaction(self.db):
            kit = Product(owner_id=self.owner_id, sku=sku, name=name, gtin=gtin, is_kit=True)
            self.db.add(kit)
            self.db.flush()
            self._write_components(kit, components)

        logger.info(f"Created kit {kit.sku} with {len(components)} components")
        return kit

    def set_components(self, kit_id: int, components: Sequence[Tuple[int, int]]) -> Product:
        """Replace the component list of an existing kit"""
        kit = self.get_product(kit_id)
        if not kit.is_kit:
            raise ValidationError(f"Product {kit.sku} is not a kit")

        self._validate_components(kit.id, components)

        with transaction(self.db):
            kit.components.clear()
            self.db.flush()
            self._write_components(kit, components)

        self.db.refresh(kit)
        return kit

    def link_listing(self, product_id: int, external_id: str) -> MarketplaceListing:
        """Link a product to an external marketplace listing"""
        product = self.get_product(product_id)
        taken = self.db.query(MarketplaceListing.id).filter(
            MarketplaceListing.external_id == external_id
        ).first()
        if taken:
            raise ValidationError(f"Listing {external_id} is already linked", {"external_id": external_id})

        with transaction(self.db):
            listing = MarketplaceListing(
                owner_id=self.owner_id,
                product_id=product.id,
                external_id=external_id,
                has_promotion=False
            )
            self.db.add(listing)
        return listing

    def _check_new_sku(self, sku: str):
        if not sku or not sku.strip():
            raise ValidationError("SKU is required")

        exists = self.db.query(Product.id).filter(
            Product.owner_id == self.owner_id,
            Product.sku == sku
        ).first()
        if exists:
            raise ValidationError(f"SKU {sku} already exists", {"sku": sku})

    def _validate_components(self, kit_id: Optional[int], components: Sequence[Tuple[int, int]]):
        if not components:
            raise ValidationError("Kit must have at least one component")

        seen: Set[int] = set()
        for component_id, quantity in components:
            if quantity is None or quantity <= 0:
                raise ValidationError(f"Component {component_id} quantity must be positive")
            if component_id in seen:
                raise ValidationError(f"Component {component_id} is listed more than once")
            seen.add(component_id)

            component = self.get_product(component_id)
            if kit_id is not None and component.is_kit and self._reaches(component.id, kit_id):
                logger.error(f"Rejected cyclic kit definition: {component_id} contains kit {kit_id}")
                raise KitCycleError(
                    f"Kit {kit_id} cannot contain {component_id}: it would contain itself",
                    {"kit_id": str(kit_id), "component_id": str(component_id)}
                )

    def _reaches(self, start_id: int, target_id: int) -> bool:
        """True when target_id is start_id or nested anywhere below it"""
        stack = [start_id]
        visited: Set[int] = set()
        while stack:
            current = stack.pop()
            if current == target_id:
                return True
            if current in visited:
                continue
            visited.add(current)
            stack.extend(self._child_ids(current))
        return False

    def _child_ids(self, kit_id: int) -> Iterable[int]:
        rows = self.db.query(KitComponent.component_id).filter(KitComponent.kit_id == kit_id).all()
        return [row[0] for row in rows]

    def _write_components(self, kit: Product, components: Sequence[Tuple[int, int]]):
        for position, (component_id, quantity) in enumerate(components):
            self.db.add(KitComponent(
                kit_id=kit.id,
                component_id=component_id,
                quantity=quantity,
                position=position
            ))
