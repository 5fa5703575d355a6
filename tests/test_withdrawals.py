"""
Tests for the Stock Withdrawal Service
"""
import pytest
from sqlalchemy.orm import Session

from stockledger.core.exceptions import (
    InsufficientStock, ProductNotFound, ValidationError, WarehouseNotFound
)
from stockledger.models import MovementKind, StockMovement, Withdrawal
from stockledger.services.stock.stock_withdrawals import StockWithdrawalService, WithdrawalItem
from tests.conftest import OTHER_OWNER_ID, OWNER_ID


@pytest.fixture
def withdrawals(db_session: Session) -> StockWithdrawalService:
    return StockWithdrawalService(db_session, OWNER_ID)


class TestSimpleWithdrawal:
    """Test withdrawals of plain products"""

    def test_withdraw_decrements_and_records(self, db_session, withdrawals, ledger, warehouses, products, stock):
        stock(products.x, warehouses.a, 10)

        receipt = withdrawals.withdraw(warehouses.a.id, [WithdrawalItem(sku="SKU-X", quantity=4)])

        assert ledger.quantity_of(products.x.id, warehouses.a.id) == 6
        assert len(receipt.decrements) == 1
        change = receipt.decrements[0]
        assert change.delta == -4
        assert change.kind == MovementKind.WITHDRAWAL.value
        assert change.quantity_after == 6

        register = db_session.get(Withdrawal, receipt.withdrawal_id)
        assert register.correlation_id == receipt.correlation_id
        assert [(l.product_id, l.quantity, l.is_kit) for l in register.lines] == [(products.x.id, 4, False)]
        assert ledger.verify_invariant(products.x.id, warehouses.a.id)

    def test_withdraw_exact_stock_reaches_zero(self, withdrawals, ledger, warehouses, products, stock):
        stock(products.x, warehouses.a, 3)

        withdrawals.withdraw(warehouses.a.id, [WithdrawalItem(sku="SKU-X", quantity=3)])

        assert ledger.quantity_of(products.x.id, warehouses.a.id) == 0

    def test_withdraw_without_stock_record(self, withdrawals, warehouses, products):
        """Test a product never stocked in the warehouse is simply short"""
        with pytest.raises(InsufficientStock) as exc_info:
            withdrawals.withdraw(warehouses.a.id, [WithdrawalItem(sku="SKU-Y", quantity=1)])

        assert exc_info.value.available == 0
        assert exc_info.value.shortfall == 1

    def test_unknown_sku(self, withdrawals, warehouses, products):
        with pytest.raises(ProductNotFound):
            withdrawals.withdraw(warehouses.a.id, [WithdrawalItem(sku="NOPE", quantity=1)])

    def test_foreign_warehouse(self, db_session, warehouses, products):
        with pytest.raises(WarehouseNotFound):
            StockWithdrawalService(db_session, OTHER_OWNER_ID).withdraw(
                warehouses.a.id, [WithdrawalItem(sku="SKU-X", quantity=1)]
            )

    @pytest.mark.parametrize("items", [
        [],
        [WithdrawalItem(sku="SKU-X", quantity=0)],
        [WithdrawalItem(sku="SKU-X", quantity=-1)],
        [WithdrawalItem(sku="SKU-X", quantity=1, is_kit=True)],
        [WithdrawalItem(sku="KIT-XY", quantity=1, is_kit=False)],
    ])
    def test_invalid_lines_rejected(self, withdrawals, warehouses, products, stock, items):
        stock(products.x, warehouses.a, 10)
        with pytest.raises(ValidationError):
            withdrawals.withdraw(warehouses.a.id, items)


class TestKitWithdrawal:
    """Test withdrawals of kits, which decrement their components"""

    def test_kit_decrements_components(self, db_session, withdrawals, ledger, warehouses, products, stock):
        stock(products.x, warehouses.a, 10)
        stock(products.y, warehouses.a, 10)

        receipt = withdrawals.withdraw(warehouses.a.id, [WithdrawalItem(sku="KIT-XY", quantity=3, is_kit=True)])

        assert ledger.quantity_of(products.x.id, warehouses.a.id) == 4
        assert ledger.quantity_of(products.y.id, warehouses.a.id) == 7
        assert {c.kind for c in receipt.decrements} == {MovementKind.KIT_DECREMENT.value}

        movements = ledger.list_movements(correlation_id=receipt.correlation_id)
        assert len(movements) == 2
        assert all(m.kind == MovementKind.KIT_DECREMENT.value for m in movements)

        register = db_session.get(Withdrawal, receipt.withdrawal_id)
        assert [(l.product_id, l.quantity, l.is_kit) for l in register.lines] == [(products.kit.id, 3, True)]

    def test_kit_short_on_component_changes_nothing(self, db_session, withdrawals, ledger, warehouses, products, stock):
        """Test X=5 cannot cover three kits of 2 x X"""
        stock(products.x, warehouses.a, 5)
        stock(products.y, warehouses.a, 10)
        movements_before = db_session.query(StockMovement).count()

        with pytest.raises(InsufficientStock) as exc_info:
            withdrawals.withdraw(warehouses.a.id, [WithdrawalItem(sku="KIT-XY", quantity=3, is_kit=True)])

        assert exc_info.value.product_id == products.x.id
        assert exc_info.value.requested == 6
        assert exc_info.value.shortfall == 1
        assert ledger.quantity_of(products.x.id, warehouses.a.id) == 5
        assert ledger.quantity_of(products.y.id, warehouses.a.id) == 10
        assert db_session.query(StockMovement).count() == movements_before
        assert db_session.query(Withdrawal).count() == 0

    def test_short_second_component_leaves_first_untouched(self, withdrawals, ledger, warehouses, products, stock):
        stock(products.x, warehouses.a, 10)

        with pytest.raises(InsufficientStock) as exc_info:
            withdrawals.withdraw(warehouses.a.id, [WithdrawalItem(sku="KIT-XY", quantity=1, is_kit=True)])

        assert exc_info.value.product_id == products.y.id
        assert ledger.quantity_of(products.x.id, warehouses.a.id) == 10

    def test_kit_and_component_lines_are_summed(self, withdrawals, ledger, warehouses, products, stock):
        """Test a kit line and a plain line on the same product share the stock check"""
        stock(products.x, warehouses.a, 4)
        stock(products.y, warehouses.a, 4)

        with pytest.raises(InsufficientStock):
            withdrawals.withdraw(warehouses.a.id, [
                WithdrawalItem(sku="KIT-XY", quantity=2, is_kit=True),
                WithdrawalItem(sku="SKU-X", quantity=1),
            ])
        assert ledger.quantity_of(products.x.id, warehouses.a.id) == 4

        receipt = withdrawals.withdraw(warehouses.a.id, [
            WithdrawalItem(sku="KIT-XY", quantity=1, is_kit=True),
            WithdrawalItem(sku="SKU-X", quantity=2),
        ])
        assert ledger.quantity_of(products.x.id, warehouses.a.id) == 0
        assert len({c.kind for c in receipt.decrements}) == 2

    def test_later_line_failure_persists_nothing(self, db_session, withdrawals, ledger, warehouses, products, stock):
        stock(products.x, warehouses.a, 10)

        with pytest.raises(ProductNotFound):
            withdrawals.withdraw(warehouses.a.id, [
                WithdrawalItem(sku="SKU-X", quantity=2),
                WithdrawalItem(sku="MISSING", quantity=1),
            ])

        assert ledger.quantity_of(products.x.id, warehouses.a.id) == 10
        assert db_session.query(Withdrawal).count() == 0


class TestWithdrawalMarketplaceTotals:
    """Test the totals returned for marketplace-linked products"""

    def test_totals_span_all_warehouses(self, withdrawals, catalog, warehouses, products, stock):
        catalog.link_listing(products.x.id, "MLB-100")
        stock(products.x, warehouses.a, 10)
        stock(products.x, warehouses.b, 5)
        stock(products.y, warehouses.a, 10)

        receipt = withdrawals.withdraw(warehouses.a.id, [WithdrawalItem(sku="KIT-XY", quantity=1, is_kit=True)])

        assert [(t.product_id, t.on_hand) for t in receipt.marketplace_totals] == [(products.x.id, 13)]
