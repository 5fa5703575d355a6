"""
Stock Ledger Service
Per-(product, warehouse) quantities and the append-only movement log
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from stockledger.core.exceptions import (
    InsufficientStock, StockRecordInUse, UnknownStockRecord, ValidationError
)
from stockledger.models import (
    OUTBOUND_KINDS, MarketplaceListing, MovementKind, StockMovement, StockRecord, Warehouse
)

logger = logging.getLogger(__name__)

StockKey = Tuple[int, int]  # (product_id, warehouse_id)


@dataclass
class ProductTotal:
    product_id: int
    on_hand: int


@dataclass
class LedgerChange:
    """One applied adjustment, as reported back to callers"""
    product_id: int
    warehouse_id: int
    delta: int
    kind: str
    quantity_after: int


def lock_order(key: StockKey) -> Tuple[int, int]:
    """Rows are always locked by warehouse, then product"""
    product_id, warehouse_id = key
    return warehouse_id, product_id


def movement_kind(value) -> MovementKind:
    try:
        return MovementKind(value)
    except ValueError:
        raise ValidationError(f"Unknown movement kind {value!r}")


class StockLedgerService:
    """
    Stock Ledger

    The only code that writes ``stock_records`` and ``stock_movements``.
    Nothing here commits: callers open a ``transaction`` around a whole
    operation and call ``adjust`` inside it.
    """

    def __init__(self, db: Session):
        self.db = db

    def adjust(
        self,
        product_id: int,
        warehouse_id: int,
        delta: int,
        kind: MovementKind,
        correlation_id: str,
        unit_cost: Optional[int] = None
    ) -> StockRecord:
        """
        Apply a signed quantity change and append its movement

        Creates the record on the first inbound movement. A decrement below
        zero raises InsufficientStock; a decrement of an absent pair raises
        UnknownStockRecord. A given unit_cost replaces the stored one.
        """
        if not isinstance(delta, int) or isinstance(delta, bool) or delta == 0:
            raise ValidationError(f"Adjustment delta must be a non-zero integer, got {delta!r}")
        kind = movement_kind(kind)
        if unit_cost is not None and unit_cost < 0:
            raise ValidationError("Unit cost cannot be negative")

        record = self.lock(product_id, warehouse_id)

        if record is None:
            if delta < 0:
                raise UnknownStockRecord(product_id, warehouse_id)
            # A concurrent first insert for the same pair fails the unique key here
            record = StockRecord(
                product_id=product_id,
                warehouse_id=warehouse_id,
                quantity=0,
                safety_stock=0
            )
            self.db.add(record)
            self.db.flush()

        new_quantity = record.quantity + delta
        if new_quantity < 0:
            logger.warning(
                f"Rejected {kind.value} of {-delta} for product {product_id} in warehouse "
                f"{warehouse_id}: {record.quantity} on hand"
            )
            raise InsufficientStock(product_id, warehouse_id, requested=-delta, available=record.quantity)

        record.quantity = new_quantity
        if unit_cost is not None:
            record.unit_cost = unit_cost

        self.db.add(StockMovement(
            product_id=product_id,
            warehouse_id=warehouse_id,
            delta=delta,
            kind=kind.value,
            correlation_id=correlation_id
        ))
        self.db.flush()

        logger.debug(
            f"{kind.value} {delta:+d} product={product_id} warehouse={warehouse_id} "
            f"qty={new_quantity} corr={correlation_id}"
        )
        return record

    def lock(self, product_id: int, warehouse_id: int) -> Optional[StockRecord]:
        """SELECT ... FOR UPDATE on one pair; None when the pair has no record"""
        return self.db.query(StockRecord).filter(
            StockRecord.product_id == product_id,
            StockRecord.warehouse_id == warehouse_id
        ).with_for_update().populate_existing().first()

    def lock_many(self, keys: Iterable[StockKey]) -> Dict[StockKey, Optional[StockRecord]]:
        """Lock several pairs in (warehouse_id, product_id) order"""
        locked: Dict[StockKey, Optional[StockRecord]] = {}
        for key in sorted(set(keys), key=lock_order):
            locked[key] = self.lock(*key)
        return locked

    def get_record(self, product_id: int, warehouse_id: int) -> StockRecord:
        record = self._find(product_id, warehouse_id)
        if record is None:
            raise UnknownStockRecord(product_id, warehouse_id)
        return record

    def quantity_of(self, product_id: int, warehouse_id: int) -> int:
        """On-hand quantity, 0 for a pair with no record"""
        record = self._find(product_id, warehouse_id)
        return record.quantity if record else 0

    def list_records(
        self,
        owner_id: Optional[int] = None,
        warehouse_id: Optional[int] = None,
        product_id: Optional[int] = None
    ) -> List[StockRecord]:
        query = self.db.query(StockRecord)
        if owner_id is not None:
            query = query.join(Warehouse, Warehouse.id == StockRecord.warehouse_id).filter(
                Warehouse.owner_id == owner_id
            )
        if warehouse_id is not None:
            query = query.filter(StockRecord.warehouse_id == warehouse_id)
        if product_id is not None:
            query = query.filter(StockRecord.product_id == product_id)
        return query.order_by(StockRecord.warehouse_id, StockRecord.product_id).all()

    def set_safety_stock(self, product_id: int, warehouse_id: int, safety_stock: int) -> StockRecord:
        if safety_stock is None or safety_stock < 0:
            raise ValidationError("Safety stock must be zero or positive")

        record = self.lock(product_id, warehouse_id)
        if record is None:
            raise UnknownStockRecord(product_id, warehouse_id)

        record.safety_stock = safety_stock
        self.db.flush()
        return record

    def delete_record(self, product_id: int, warehouse_id: int):
        """
        Remove a stock record

        Rejected while outbound history exists for the pair, and while units
        are still on hand (move them out first so the movement sum stays at 0).
        """
        record = self.lock(product_id, warehouse_id)
        if record is None:
            raise UnknownStockRecord(product_id, warehouse_id)

        if self.has_outbound_history(product_id, warehouse_id):
            raise StockRecordInUse(
                f"Stock record for product {product_id} in warehouse {warehouse_id} "
                f"has outbound history and cannot be deleted",
                {"product_id": str(product_id), "warehouse_id": str(warehouse_id)}
            )
        if record.quantity != 0:
            raise ValidationError(
                f"Stock record still holds {record.quantity} units",
                {"product_id": str(product_id), "warehouse_id": str(warehouse_id)}
            )

        self.db.delete(record)
        self.db.flush()
        logger.info(f"Deleted stock record product={product_id} warehouse={warehouse_id}")

    def has_outbound_history(self, product_id: int, warehouse_id: int) -> bool:
        return self.db.query(StockMovement.id).filter(
            StockMovement.product_id == product_id,
            StockMovement.warehouse_id == warehouse_id,
            StockMovement.kind.in_(OUTBOUND_KINDS)
        ).first() is not None

    def list_movements(
        self,
        product_id: Optional[int] = None,
        warehouse_id: Optional[int] = None,
        correlation_id: Optional[str] = None,
        kind: Optional[str] = None,
        owner_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[StockMovement]:
        query = self.db.query(StockMovement)
        if owner_id is not None:
            query = query.join(Warehouse, Warehouse.id == StockMovement.warehouse_id).filter(
                Warehouse.owner_id == owner_id
            )
        if product_id is not None:
            query = query.filter(StockMovement.product_id == product_id)
        if warehouse_id is not None:
            query = query.filter(StockMovement.warehouse_id == warehouse_id)
        if correlation_id:
            query = query.filter(StockMovement.correlation_id == correlation_id)
        if kind:
            query = query.filter(StockMovement.kind == movement_kind(kind).value)
        return query.order_by(StockMovement.id).offset(skip).limit(limit).all()

    def movement_sum(self, product_id: int, warehouse_id: int) -> int:
        total = self.db.query(func.coalesce(func.sum(StockMovement.delta), 0)).filter(
            StockMovement.product_id == product_id,
            StockMovement.warehouse_id == warehouse_id
        ).scalar()
        return int(total)

    def verify_invariant(self, product_id: int, warehouse_id: int) -> bool:
        """Quantity is non-negative and equals the sum of the pair's movement deltas"""
        quantity = self.quantity_of(product_id, warehouse_id)
        movements = self.movement_sum(product_id, warehouse_id)
        if quantity < 0 or quantity != movements:
            logger.error(
                f"Ledger mismatch for product {product_id} in warehouse {warehouse_id}: "
                f"record {quantity}, movements {movements}"
            )
            return False
        return True

    def total_on_hand(self, product_id: int) -> int:
        total = self.db.query(func.coalesce(func.sum(StockRecord.quantity), 0)).filter(
            StockRecord.product_id == product_id
        ).scalar()
        return int(total)

    def marketplace_totals(self, product_ids: Iterable[int]) -> List[ProductTotal]:
        """
        Totals across all warehouses for the given products that are linked
        to a marketplace listing, for the host to push outward
        """
        wanted = set(product_ids)
        if not wanted:
            return []

        linked = {
            row[0] for row in self.db.query(MarketplaceListing.product_id).filter(
                MarketplaceListing.product_id.in_(wanted)
            ).distinct()
        }
        return [ProductTotal(product_id=pid, on_hand=self.total_on_hand(pid)) for pid in sorted(linked)]

    def _find(self, product_id: int, warehouse_id: int) -> Optional[StockRecord]:
        return self.db.query(StockRecord).filter(
            StockRecord.product_id == product_id,
            StockRecord.warehouse_id == warehouse_id
        ).first()
