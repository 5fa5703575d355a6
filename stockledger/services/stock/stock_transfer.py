"""
Stock Transfer Service
Moves stock between two warehouses as one atomic unit
"""
from dataclasses import dataclass, field
from typing import List, Optional, Sequence
import logging
import uuid

from sqlalchemy import or_
from sqlalchemy.orm import Session

from stockledger.core.database import transaction
from stockledger.core.exceptions import NotFoundError, ValidationError
from stockledger.models import MovementKind, Transfer, TransferLine
from stockledger.services.catalog import CatalogService
from stockledger.services.stock.stock_ledger import ProductTotal, StockLedgerService

logger = logging.getLogger(__name__)


@dataclass
class TransferItem:
    product_id: int
    quantity: int


@dataclass
class TransferredLine:
    product_id: int
    quantity: int
    source_quantity_after: int
    destination_quantity_after: int


@dataclass
class TransferReceipt:
    transfer_id: int
    correlation_id: str
    source_warehouse_id: int
    destination_warehouse_id: int
    lines: List[TransferredLine] = field(default_factory=list)
    marketplace_totals: List[ProductTotal] = field(default_factory=list)


class StockTransferService:
    """
    Transfer Coordinator

    Both sides of every line are locked up front in (warehouse, product)
    order, then each line is applied as a transfer-out/transfer-in pair
    sharing the transfer's correlation id. Any failure rolls back the whole
    transfer.
    """

    def __init__(self, db: Session, owner_id: int):
        self.db = db
        self.owner_id = owner_id
        self.catalog = CatalogService(db, owner_id)
        self.ledger = StockLedgerService(db)

    def transfer(
        self,
        source_warehouse_id: int,
        destination_warehouse_id: int,
        items: Sequence[TransferItem],
        notes: Optional[str] = None
    ) -> TransferReceipt:
        if source_warehouse_id == destination_warehouse_id:
            raise ValidationError("Source and destination warehouses must differ")
        if not items:
            raise ValidationError("Transfer needs at least one line")
        for item in items:
            if item.quantity is None or item.quantity <= 0:
                raise ValidationError(
                    f"Transfer quantity for product {item.product_id} must be positive",
                    {"product_id": str(item.product_id)}
                )

        correlation_id = str(uuid.uuid4())

        with transaction(self.db):
            self.catalog.get_warehouse(source_warehouse_id)
            self.catalog.get_warehouse(destination_warehouse_id)
            for item in items:
                product = self.catalog.get_product(item.product_id)
                if product.is_kit:
                    raise ValidationError(
                        f"Kit {product.sku} holds no stock of its own; transfer its components",
                        {"product_id": str(product.id)}
                    )

            keys = []
            for item in items:
                keys.append((item.product_id, source_warehouse_id))
                keys.append((item.product_id, destination_warehouse_id))
            self.ledger.lock_many(keys)

            moved: List[TransferredLine] = []
            for item in items:
                source = self.ledger.adjust(
                    item.product_id, source_warehouse_id, -item.quantity,
                    MovementKind.TRANSFER_OUT, correlation_id
                )
                destination = self.ledger.adjust(
                    item.product_id, destination_warehouse_id, item.quantity,
                    MovementKind.TRANSFER_IN, correlation_id
                )
                moved.append(TransferredLine(
                    product_id=item.product_id,
                    quantity=item.quantity,
                    source_quantity_after=source.quantity,
                    destination_quantity_after=destination.quantity
                ))

            transfer = Transfer(
                owner_id=self.owner_id,
                source_warehouse_id=source_warehouse_id,
                destination_warehouse_id=destination_warehouse_id,
                correlation_id=correlation_id,
                notes=notes
            )
            transfer.lines = [
                TransferLine(product_id=item.product_id, quantity=item.quantity) for item in items
            ]
            self.db.add(transfer)
            self.db.flush()

            totals = self.ledger.marketplace_totals(item.product_id for item in items)

        logger.info(
            f"Transfer {transfer.id} ({correlation_id}): {len(items)} lines "
            f"from warehouse {source_warehouse_id} to {destination_warehouse_id}"
        )
        return TransferReceipt(
            transfer_id=transfer.id,
            correlation_id=correlation_id,
            source_warehouse_id=source_warehouse_id,
            destination_warehouse_id=destination_warehouse_id,
            lines=moved,
            marketplace_totals=totals
        )

    def get_transfer(self, transfer_id: int) -> Transfer:
        transfer = self.db.get(Transfer, transfer_id)
        if transfer is None or transfer.owner_id != self.owner_id:
            raise NotFoundError(f"Transfer {transfer_id} not found", {"transfer_id": str(transfer_id)})
        return transfer

    def list_transfers(
        self,
        warehouse_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[Transfer]:
        query = self.db.query(Transfer).filter(Transfer.owner_id == self.owner_id)
        if warehouse_id is not None:
            query = query.filter(or_(
                Transfer.source_warehouse_id == warehouse_id,
                Transfer.destination_warehouse_id == warehouse_id
            ))
        return query.order_by(Transfer.id.desc()).offset(skip).limit(limit).all()
