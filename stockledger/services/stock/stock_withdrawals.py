"""
Stock Withdrawal Service
Outbound stock for sales and consumption events, with kit decomposition
"""
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple
import logging
import uuid

from sqlalchemy.orm import Session

from stockledger.core.database import transaction
from stockledger.core.exceptions import InsufficientStock, ValidationError
from stockledger.models import MovementKind, Withdrawal, WithdrawalLine
from stockledger.services.catalog import CatalogService
from stockledger.services.stock.kit_composer import KitComposerService
from stockledger.services.stock.stock_ledger import LedgerChange, ProductTotal, StockLedgerService

logger = logging.getLogger(__name__)


@dataclass
class WithdrawalItem:
    sku: str
    quantity: int
    is_kit: bool = False


@dataclass
class WithdrawalReceipt:
    withdrawal_id: int
    correlation_id: str
    warehouse_id: int
    decrements: List[LedgerChange] = field(default_factory=list)
    marketplace_totals: List[ProductTotal] = field(default_factory=list)


class StockWithdrawalService:
    """
    Outbound Withdrawal Processor

    A withdrawal is all or nothing. Every line is resolved and every
    required quantity is checked against locked rows before the first
    decrement, so a short component leaves the whole warehouse untouched.
    """

    def __init__(self, db: Session, owner_id: int):
        self.db = db
        self.owner_id = owner_id
        self.catalog = CatalogService(db, owner_id)
        self.composer = KitComposerService(db, owner_id)
        self.ledger = StockLedgerService(db)

    def withdraw(self, warehouse_id: int, items: Sequence[WithdrawalItem]) -> WithdrawalReceipt:
        if not items:
            raise ValidationError("Withdrawal needs at least one line")

        correlation_id = str(uuid.uuid4())

        with transaction(self.db):
            self.catalog.get_warehouse(warehouse_id)

            plan, lines = self._plan(items)
            required: Dict[int, int] = {}
            for product_id, quantity, _ in plan:
                required[product_id] = required.get(product_id, 0) + quantity

            # Pre-check every requirement before any decrement
            locked = self.ledger.lock_many((pid, warehouse_id) for pid in required)
            for product_id, quantity in required.items():
                record = locked[(product_id, warehouse_id)]
                available = record.quantity if record else 0
                if available < quantity:
                    logger.warning(
                        f"Withdrawal {correlation_id} rejected: product {product_id} short by "
                        f"{quantity - available} in warehouse {warehouse_id}"
                    )
                    raise InsufficientStock(product_id, warehouse_id, requested=quantity, available=available)

            decrements: List[LedgerChange] = []
            for product_id, quantity, kind in plan:
                record = self.ledger.adjust(product_id, warehouse_id, -quantity, kind, correlation_id)
                decrements.append(LedgerChange(
                    product_id=product_id,
                    warehouse_id=warehouse_id,
                    delta=-quantity,
                    kind=kind.value,
                    quantity_after=record.quantity
                ))

            withdrawal = Withdrawal(
                owner_id=self.owner_id,
                warehouse_id=warehouse_id,
                correlation_id=correlation_id
            )
            withdrawal.lines = [
                WithdrawalLine(product_id=product_id, quantity=quantity, is_kit=is_kit)
                for product_id, quantity, is_kit in lines
            ]
            self.db.add(withdrawal)
            self.db.flush()

            totals = self.ledger.marketplace_totals(required)

        logger.info(
            f"Withdrawal {withdrawal.id} ({correlation_id}) from warehouse {warehouse_id}: "
            f"{len(lines)} lines, {len(decrements)} decrements"
        )
        return WithdrawalReceipt(
            withdrawal_id=withdrawal.id,
            correlation_id=correlation_id,
            warehouse_id=warehouse_id,
            decrements=decrements,
            marketplace_totals=totals
        )

    def _plan(
        self, items: Sequence[WithdrawalItem]
    ) -> Tuple[List[Tuple[int, int, MovementKind]], List[Tuple[int, int, bool]]]:
        """
        Resolve lines into (product_id, quantity, kind) decrements

        Also returns the register lines (product_id, quantity, is_kit).
        """
        plan: List[Tuple[int, int, MovementKind]] = []
        lines: List[Tuple[int, int, bool]] = []

        for item in items:
            if item.quantity is None or item.quantity <= 0:
                raise ValidationError(f"Quantity for {item.sku} must be positive")

            product = self.catalog.find_by_sku(item.sku)
            if product.is_kit != bool(item.is_kit):
                expected = "a kit" if product.is_kit else "not a kit"
                raise ValidationError(
                    f"Product {item.sku} is {expected}",
                    {"sku": item.sku, "is_kit": product.is_kit}
                )

            lines.append((product.id, item.quantity, product.is_kit))
            if product.is_kit:
                for requirement in self.composer.expand(product.id, item.quantity):
                    plan.append((requirement.component_id, requirement.total_quantity, MovementKind.KIT_DECREMENT))
            else:
                plan.append((product.id, item.quantity, MovementKind.WITHDRAWAL))

        return plan, lines
