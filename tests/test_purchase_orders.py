"""
Tests for the Purchase Order Service
"""
import pytest
from sqlalchemy.orm import Session

from stockledger.core.exceptions import (
    OrderAlreadyConfirmed, OrderNotFound, OverReceipt, ValidationError
)
from stockledger.models import MovementKind, OrderStatus, PurchaseOrder, StockMovement
from stockledger.services.stock.stock_receipts import (
    REMAINDER_NOTE, OrderItem, PurchaseOrderService, ReceivedItem
)
from tests.conftest import OTHER_OWNER_ID, OWNER_ID

SUPPLIER_ID = 77


@pytest.fixture
def orders(db_session: Session) -> PurchaseOrderService:
    return PurchaseOrderService(db_session, OWNER_ID)


class TestCreateOrder:
    """Test purchase order creation"""

    def test_create_pending_order(self, orders, warehouses, products):
        order = orders.create_order(
            SUPPLIER_ID,
            [OrderItem(products.x.id, 10, unit_cost=250), OrderItem(products.y.id, 5)],
            destination_warehouse_id=warehouses.a.id
        )

        assert order.status == OrderStatus.PENDING.value
        assert not order.is_confirmed
        assert [(l.product_id, l.ordered_quantity, l.unit_cost) for l in order.lines] == [
            (products.x.id, 10, 250),
            (products.y.id, 5, 0),
        ]
        assert all(l.received_quantity is None for l in order.lines)

    @pytest.mark.parametrize("items", [
        [],
        [OrderItem(1, 0)],
        [OrderItem(1, 5, unit_cost=-1)],
    ])
    def test_invalid_lines_rejected(self, orders, products, items):
        items = [OrderItem(products.x.id, i.quantity, i.unit_cost) for i in items]
        with pytest.raises(ValidationError):
            orders.create_order(SUPPLIER_ID, items)

    def test_duplicate_product_rejected(self, orders, products):
        with pytest.raises(ValidationError):
            orders.create_order(SUPPLIER_ID, [OrderItem(products.x.id, 1), OrderItem(products.x.id, 2)])

    def test_kit_rejected(self, orders, products):
        with pytest.raises(ValidationError):
            orders.create_order(SUPPLIER_ID, [OrderItem(products.kit.id, 1)])

    def test_list_orders_by_status(self, orders, products):
        first = orders.create_order(SUPPLIER_ID, [OrderItem(products.x.id, 1)])

        assert [o.id for o in orders.list_orders(status="pending")] == [first.id]
        assert orders.list_orders(status="confirmed") == []
        with pytest.raises(ValidationError):
            orders.list_orders(status="shipped")


class TestReceiveOrder:
    """Test receiving goods against a purchase order"""

    def test_partial_receipt_spawns_remainder(self, db_session, orders, ledger, warehouses, products):
        order = orders.create_order(
            SUPPLIER_ID, [OrderItem(products.x.id, 10, unit_cost=300)],
            destination_warehouse_id=warehouses.a.id
        )

        result = orders.receive(order.id, None, [ReceivedItem(products.x.id, 6)])

        assert ledger.quantity_of(products.x.id, warehouses.a.id) == 6
        assert result.updated_order.status == OrderStatus.CONFIRMED.value
        assert result.updated_order.completed_at is not None
        assert result.updated_order.lines[0].received_quantity == 6

        remainder = result.remainder_order
        assert remainder is not None
        assert remainder.status == OrderStatus.PENDING.value
        assert remainder.supplier_id == SUPPLIER_ID
        assert remainder.predecessor_id == order.id
        assert remainder.notes == REMAINDER_NOTE.format(order_id=order.id)
        assert [(l.product_id, l.ordered_quantity) for l in remainder.lines] == [(products.x.id, 4)]
        assert db_session.query(PurchaseOrder).filter(PurchaseOrder.predecessor_id == order.id).count() == 1

    def test_full_receipt_has_no_remainder(self, orders, ledger, warehouses, products):
        order = orders.create_order(SUPPLIER_ID, [OrderItem(products.x.id, 10), OrderItem(products.y.id, 2)])

        result = orders.receive(order.id, warehouses.b.id, [
            ReceivedItem(products.x.id, 10),
            ReceivedItem(products.y.id, 2),
        ])

        assert result.remainder_order is None
        assert result.updated_order.destination_warehouse_id == warehouses.b.id
        assert ledger.quantity_of(products.x.id, warehouses.b.id) == 10
        movements = ledger.list_movements(correlation_id=result.correlation_id)
        assert {m.kind for m in movements} == {MovementKind.PURCHASE_RECEIPT.value}
        assert len(movements) == 2

    def test_absent_line_counts_as_nothing_received(self, orders, ledger, warehouses, products):
        order = orders.create_order(SUPPLIER_ID, [OrderItem(products.x.id, 3), OrderItem(products.y.id, 2)])

        result = orders.receive(order.id, warehouses.a.id, [ReceivedItem(products.x.id, 3)])

        lines = {l.product_id: l.received_quantity for l in result.updated_order.lines}
        assert lines == {products.x.id: 3, products.y.id: 0}
        assert ledger.quantity_of(products.y.id, warehouses.a.id) == 0
        assert [(l.product_id, l.ordered_quantity) for l in result.remainder_order.lines] == [(products.y.id, 2)]

    def test_over_receipt_books_nothing(self, db_session, orders, ledger, warehouses, products):
        order = orders.create_order(SUPPLIER_ID, [OrderItem(products.x.id, 5), OrderItem(products.y.id, 5)])

        with pytest.raises(OverReceipt) as exc_info:
            orders.receive(order.id, warehouses.a.id, [
                ReceivedItem(products.x.id, 5),
                ReceivedItem(products.y.id, 6),
            ])

        assert exc_info.value.ordered == 5
        assert exc_info.value.received == 6
        assert ledger.quantity_of(products.x.id, warehouses.a.id) == 0
        assert db_session.query(StockMovement).count() == 0
        assert orders.get_order(order.id).status == OrderStatus.PENDING.value

    def test_receiving_twice_rejected(self, orders, warehouses, products):
        order = orders.create_order(SUPPLIER_ID, [OrderItem(products.x.id, 1)])
        orders.receive(order.id, warehouses.a.id, [ReceivedItem(products.x.id, 1)])

        with pytest.raises(OrderAlreadyConfirmed):
            orders.receive(order.id, warehouses.a.id, [ReceivedItem(products.x.id, 1)])

    def test_unknown_or_foreign_order(self, db_session, orders, warehouses, products):
        order = orders.create_order(SUPPLIER_ID, [OrderItem(products.x.id, 1)])

        with pytest.raises(OrderNotFound):
            orders.receive(999999, warehouses.a.id, [])
        with pytest.raises(OrderNotFound):
            PurchaseOrderService(db_session, OTHER_OWNER_ID).receive(order.id, warehouses.a.id, [])

    def test_product_not_on_order_rejected(self, orders, warehouses, products):
        order = orders.create_order(SUPPLIER_ID, [OrderItem(products.x.id, 1)])

        with pytest.raises(ValidationError):
            orders.receive(order.id, warehouses.a.id, [ReceivedItem(products.y.id, 1)])

    def test_missing_destination_rejected(self, orders, products):
        order = orders.create_order(SUPPLIER_ID, [OrderItem(products.x.id, 1)])

        with pytest.raises(ValidationError):
            orders.receive(order.id, None, [ReceivedItem(products.x.id, 1)])

    def test_received_cost_is_last_cost(self, orders, ledger, warehouses, products):
        """Test the received unit cost wins over the ordered one, and carries to the remainder"""
        order = orders.create_order(SUPPLIER_ID, [OrderItem(products.x.id, 4, unit_cost=100)])

        result = orders.receive(order.id, warehouses.a.id, [ReceivedItem(products.x.id, 1, unit_cost=120)])

        assert ledger.get_record(products.x.id, warehouses.a.id).unit_cost == 120
        assert result.remainder_order.lines[0].unit_cost == 120

    def test_marketplace_totals_after_receipt(self, orders, catalog, warehouses, products, stock):
        catalog.link_listing(products.y.id, "MLB-200")
        stock(products.y, warehouses.b, 2)
        order = orders.create_order(SUPPLIER_ID, [OrderItem(products.y.id, 3)])

        result = orders.receive(order.id, warehouses.a.id, [ReceivedItem(products.y.id, 3)])

        assert [(t.product_id, t.on_hand) for t in result.marketplace_totals] == [(products.y.id, 5)]


class TestDeleteOrder:
    """Test deleting purchase orders"""

    def test_delete_pending(self, orders, products):
        order = orders.create_order(SUPPLIER_ID, [OrderItem(products.x.id, 1)])
        order_id = order.id

        orders.delete_order(order_id)

        with pytest.raises(OrderNotFound):
            orders.get_order(order_id)

    def test_delete_confirmed_rejected(self, orders, warehouses, products):
        order = orders.create_order(SUPPLIER_ID, [OrderItem(products.x.id, 1)])
        orders.receive(order.id, warehouses.a.id, [ReceivedItem(products.x.id, 1)])

        with pytest.raises(OrderAlreadyConfirmed):
            orders.delete_order(order.id)
