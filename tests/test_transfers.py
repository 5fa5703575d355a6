"""
Tests for the Stock Transfer Service
"""
import pytest
from sqlalchemy.orm import Session

from stockledger.core.exceptions import (
    InsufficientStock, NotFoundError, UnknownStockRecord, ValidationError, WarehouseNotFound
)
from stockledger.models import MovementKind, Transfer
from stockledger.services.stock.stock_transfer import StockTransferService, TransferItem
from tests.conftest import OTHER_OWNER_ID, OWNER_ID


@pytest.fixture
def transfers(db_session: Session) -> StockTransferService:
    return StockTransferService(db_session, OWNER_ID)


class TestStockTransferService:
    """Test suite for StockTransferService"""

    def test_transfer_conserves_stock(self, transfers, ledger, warehouses, products, stock):
        stock(products.x, warehouses.a, 10)
        stock(products.x, warehouses.b, 1)

        receipt = transfers.transfer(warehouses.a.id, warehouses.b.id, [TransferItem(products.x.id, 4)])

        assert ledger.quantity_of(products.x.id, warehouses.a.id) == 6
        assert ledger.quantity_of(products.x.id, warehouses.b.id) == 5
        assert ledger.total_on_hand(products.x.id) == 11
        line = receipt.lines[0]
        assert (line.source_quantity_after, line.destination_quantity_after) == (6, 5)

    def test_destination_record_created_on_demand(self, transfers, ledger, warehouses, products, stock):
        stock(products.y, warehouses.a, 3)

        transfers.transfer(warehouses.a.id, warehouses.b.id, [TransferItem(products.y.id, 3)])

        record = ledger.get_record(products.y.id, warehouses.b.id)
        assert record.quantity == 3
        assert record.safety_stock == 0
        assert ledger.quantity_of(products.y.id, warehouses.a.id) == 0

    def test_movements_pair_up_under_one_correlation_id(self, db_session, transfers, ledger, warehouses, products, stock):
        stock(products.x, warehouses.a, 10)
        stock(products.y, warehouses.a, 10)

        receipt = transfers.transfer(
            warehouses.a.id, warehouses.b.id,
            [TransferItem(products.x.id, 2), TransferItem(products.y.id, 3)],
            notes="rebalance"
        )

        movements = ledger.list_movements(correlation_id=receipt.correlation_id)
        assert sorted((m.product_id, m.warehouse_id, m.delta, m.kind) for m in movements) == sorted([
            (products.x.id, warehouses.a.id, -2, MovementKind.TRANSFER_OUT.value),
            (products.x.id, warehouses.b.id, 2, MovementKind.TRANSFER_IN.value),
            (products.y.id, warehouses.a.id, -3, MovementKind.TRANSFER_OUT.value),
            (products.y.id, warehouses.b.id, 3, MovementKind.TRANSFER_IN.value),
        ])

        register = db_session.get(Transfer, receipt.transfer_id)
        assert register.notes == "rebalance"
        assert register.correlation_id == receipt.correlation_id
        assert len(register.lines) == 2

    def test_short_second_line_aborts_whole_transfer(self, db_session, transfers, ledger, warehouses, products, stock):
        stock(products.x, warehouses.a, 10)
        stock(products.y, warehouses.a, 1)

        with pytest.raises(InsufficientStock):
            transfers.transfer(
                warehouses.a.id, warehouses.b.id,
                [TransferItem(products.x.id, 5), TransferItem(products.y.id, 2)]
            )

        assert ledger.quantity_of(products.x.id, warehouses.a.id) == 10
        assert ledger.quantity_of(products.x.id, warehouses.b.id) == 0
        assert ledger.quantity_of(products.y.id, warehouses.a.id) == 1
        assert db_session.query(Transfer).count() == 0

    def test_source_without_record(self, transfers, warehouses, products):
        with pytest.raises(UnknownStockRecord):
            transfers.transfer(warehouses.a.id, warehouses.b.id, [TransferItem(products.x.id, 1)])

    def test_same_warehouse_rejected(self, transfers, warehouses, products, stock):
        stock(products.x, warehouses.a, 10)
        with pytest.raises(ValidationError):
            transfers.transfer(warehouses.a.id, warehouses.a.id, [TransferItem(products.x.id, 1)])

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_non_positive_quantity_rejected(self, transfers, warehouses, products, quantity):
        with pytest.raises(ValidationError):
            transfers.transfer(warehouses.a.id, warehouses.b.id, [TransferItem(products.x.id, quantity)])

    def test_empty_transfer_rejected(self, transfers, warehouses):
        with pytest.raises(ValidationError):
            transfers.transfer(warehouses.a.id, warehouses.b.id, [])

    def test_kit_rejected(self, transfers, warehouses, products):
        with pytest.raises(ValidationError):
            transfers.transfer(warehouses.a.id, warehouses.b.id, [TransferItem(products.kit.id, 1)])

    def test_foreign_warehouse_rejected(self, db_session, transfers, warehouses, products, stock):
        foreign = StockTransferService(db_session, OTHER_OWNER_ID)
        with pytest.raises(WarehouseNotFound):
            foreign.transfer(warehouses.a.id, warehouses.b.id, [TransferItem(products.x.id, 1)])

    def test_get_and_list_transfers(self, db_session, transfers, warehouses, products, stock):
        stock(products.x, warehouses.a, 10)
        receipt = transfers.transfer(warehouses.a.id, warehouses.b.id, [TransferItem(products.x.id, 1)])

        assert transfers.get_transfer(receipt.transfer_id).id == receipt.transfer_id
        assert [t.id for t in transfers.list_transfers(warehouse_id=warehouses.b.id)] == [receipt.transfer_id]
        with pytest.raises(NotFoundError):
            StockTransferService(db_session, OTHER_OWNER_ID).get_transfer(receipt.transfer_id)
