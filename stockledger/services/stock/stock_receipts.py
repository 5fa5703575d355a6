"""
Purchase Order Service
Supplier orders and their receipt into stock, with remainder orders for shortfalls
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence
import logging
import uuid

from sqlalchemy.orm import Session

from stockledger.core.database import transaction
from stockledger.core.exceptions import (
    OrderAlreadyConfirmed, OrderNotFound, OverReceipt, ValidationError
)
from stockledger.models import MovementKind, OrderStatus, PurchaseOrder, PurchaseOrderLine
from stockledger.services.catalog import CatalogService
from stockledger.services.stock.stock_ledger import ProductTotal, StockLedgerService

logger = logging.getLogger(__name__)

REMAINDER_NOTE = "Remainder of purchase order #{order_id}"


@dataclass
class OrderItem:
    product_id: int
    quantity: int
    unit_cost: int = 0


@dataclass
class ReceivedItem:
    product_id: int
    quantity: int
    unit_cost: Optional[int] = None


@dataclass
class FulfillmentResult:
    updated_order: PurchaseOrder
    remainder_order: Optional[PurchaseOrder] = None
    correlation_id: Optional[str] = None
    marketplace_totals: List[ProductTotal] = field(default_factory=list)


class PurchaseOrderService:
    """
    Purchase Order Fulfillment

    Receiving confirms the order in one transaction: every received quantity
    is booked as a purchase receipt at its cost, and every shortfall becomes
    a line of one new pending order for the same supplier.
    """

    def __init__(self, db: Session, owner_id: int):
        self.db = db
        self.owner_id = owner_id
        self.catalog = CatalogService(db, owner_id)
        self.ledger = StockLedgerService(db)

    def create_order(
        self,
        supplier_id: int,
        items: Sequence[OrderItem],
        destination_warehouse_id: Optional[int] = None,
        notes: Optional[str] = None
    ) -> PurchaseOrder:
        if not items:
            raise ValidationError("Purchase order needs at least one line")

        seen = set()
        for item in items:
            if item.quantity is None or item.quantity <= 0:
                raise ValidationError(f"Ordered quantity for product {item.product_id} must be positive")
            if item.unit_cost is None or item.unit_cost < 0:
                raise ValidationError(f"Unit cost for product {item.product_id} cannot be negative")
            if item.product_id in seen:
                raise ValidationError(f"Product {item.product_id} appears on more than one line")
            seen.add(item.product_id)

            product = self.catalog.get_product(item.product_id)
            if product.is_kit:
                raise ValidationError(f"Kit {product.sku} cannot be purchased; order its components")

        if destination_warehouse_id is not None:
            self.catalog.get_warehouse(destination_warehouse_id)

        with transaction(self.db):
            order = PurchaseOrder(
                owner_id=self.owner_id,
                supplier_id=supplier_id,
                status=OrderStatus.PENDING.value,
                destination_warehouse_id=destination_warehouse_id,
                notes=notes
            )
            order.lines = [
                PurchaseOrderLine(
                    product_id=item.product_id,
                    ordered_quantity=item.quantity,
                    unit_cost=item.unit_cost
                )
                for item in items
            ]
            self.db.add(order)

        logger.info(f"Created purchase order {order.id} for supplier {supplier_id} ({len(items)} lines)")
        return order

    def get_order(self, order_id: int, for_update: bool = False) -> PurchaseOrder:
        query = self.db.query(PurchaseOrder).filter(
            PurchaseOrder.id == order_id,
            PurchaseOrder.owner_id == self.owner_id
        )
        if for_update:
            query = query.with_for_update().populate_existing()
        order = query.first()
        if order is None:
            raise OrderNotFound(order_id)
        return order

    def list_orders(self, status: Optional[str] = None, skip: int = 0, limit: int = 100) -> List[PurchaseOrder]:
        query = self.db.query(PurchaseOrder).filter(PurchaseOrder.owner_id == self.owner_id)
        if status:
            try:
                status = OrderStatus(status).value
            except ValueError:
                raise ValidationError(f"Unknown order status {status!r}")
            query = query.filter(PurchaseOrder.status == status)
        return query.order_by(PurchaseOrder.id.desc()).offset(skip).limit(limit).all()

    def delete_order(self, order_id: int):
        """Delete a pending order; confirmed orders are immutable"""
        with transaction(self.db):
            order = self.get_order(order_id, for_update=True)
            if order.is_confirmed:
                raise OrderAlreadyConfirmed(order_id)
            self.db.delete(order)

        logger.info(f"Deleted pending purchase order {order_id}")

    def receive(
        self,
        order_id: int,
        destination_warehouse_id: Optional[int],
        received_items: Sequence[ReceivedItem]
    ) -> FulfillmentResult:
        """
        Receive goods against a pending order

        Lines missing from ``received_items`` count as nothing received.
        """
        correlation_id = str(uuid.uuid4())

        with transaction(self.db):
            order = self.get_order(order_id, for_update=True)
            if order.is_confirmed:
                raise OrderAlreadyConfirmed(order_id)

            warehouse_id = destination_warehouse_id or order.destination_warehouse_id
            if warehouse_id is None:
                raise ValidationError(f"Purchase order {order_id} has no destination warehouse")
            self.catalog.get_warehouse(warehouse_id)

            received = self._index_received(order, received_items)

            for line in order.lines:
                item = received.get(line.product_id)
                quantity = item.quantity if item else 0
                if quantity > line.ordered_quantity:
                    logger.warning(
                        f"Over-receipt on order {order_id}: {quantity} of product {line.product_id}, "
                        f"{line.ordered_quantity} ordered"
                    )
                    raise OverReceipt(order_id, line.product_id, line.ordered_quantity, quantity)

            self.ledger.lock_many(
                (line.product_id, warehouse_id) for line in order.lines
                if line.product_id in received and received[line.product_id].quantity > 0
            )

            shortfall_lines: List[PurchaseOrderLine] = []
            for line in order.lines:
                item = received.get(line.product_id)
                quantity = item.quantity if item else 0
                unit_cost = item.unit_cost if item and item.unit_cost is not None else line.unit_cost

                if quantity > 0:
                    self.ledger.adjust(
                        line.product_id, warehouse_id, quantity,
                        MovementKind.PURCHASE_RECEIPT, correlation_id,
                        unit_cost=unit_cost
                    )
                line.received_quantity = quantity

                if quantity < line.ordered_quantity:
                    shortfall_lines.append(PurchaseOrderLine(
                        product_id=line.product_id,
                        ordered_quantity=line.ordered_quantity - quantity,
                        unit_cost=unit_cost
                    ))

            order.status = OrderStatus.CONFIRMED.value
            order.completed_at = datetime.now(timezone.utc)
            order.destination_warehouse_id = warehouse_id

            remainder = None
            if shortfall_lines:
                remainder = PurchaseOrder(
                    owner_id=self.owner_id,
                    supplier_id=order.supplier_id,
                    status=OrderStatus.PENDING.value,
                    destination_warehouse_id=warehouse_id,
                    notes=REMAINDER_NOTE.format(order_id=order.id),
                    predecessor_id=order.id
                )
                remainder.lines = shortfall_lines
                self.db.add(remainder)

            self.db.flush()
            totals = self.ledger.marketplace_totals(line.product_id for line in order.lines)

        if remainder is not None:
            logger.info(
                f"Order {order_id} partially received; remainder order {remainder.id} "
                f"holds {len(shortfall_lines)} lines"
            )
        else:
            logger.info(f"Order {order_id} fully received into warehouse {warehouse_id}")

        return FulfillmentResult(
            updated_order=order,
            remainder_order=remainder,
            correlation_id=correlation_id,
            marketplace_totals=totals
        )

    def _index_received(self, order: PurchaseOrder, items: Sequence[ReceivedItem]) -> Dict[int, ReceivedItem]:
        on_order = {line.product_id for line in order.lines}
        received: Dict[int, ReceivedItem] = {}
        for item in items:
            if item.product_id not in on_order:
                raise ValidationError(
                    f"Product {item.product_id} is not on purchase order {order.id}",
                    {"product_id": str(item.product_id)}
                )
            if item.product_id in received:
                raise ValidationError(
                    f"Product {item.product_id} is received more than once",
                    {"product_id": str(item.product_id)}
                )
            if item.quantity is None or item.quantity < 0:
                raise ValidationError(f"Received quantity for product {item.product_id} cannot be negative")
            if item.unit_cost is not None and item.unit_cost < 0:
                raise ValidationError(f"Unit cost for product {item.product_id} cannot be negative")
            received[item.product_id] = item
        return received
