"""
Stockledger Stock Models
Per-warehouse stock records, the movement ledger and the outbound/transfer registers
"""
import enum

from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime, Text,
    ForeignKey, CheckConstraint, UniqueConstraint, Index
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from stockledger.core.database import Base, IdType


class MovementKind(str, enum.Enum):
    PURCHASE_RECEIPT = "purchase-receipt"
    WITHDRAWAL = "withdrawal"
    TRANSFER_IN = "transfer-in"
    TRANSFER_OUT = "transfer-out"
    KIT_DECREMENT = "kit-decrement"


# Kinds that count as outbound history for a (product, warehouse) pair
OUTBOUND_KINDS = (MovementKind.WITHDRAWAL.value, MovementKind.KIT_DECREMENT.value)


class StockRecord(Base):
    """
    Stock Record

    Current on-hand quantity of one product in one warehouse. Created lazily
    on the first inbound movement; the quantity always equals the sum of the
    pair's movement deltas.
    """
    __tablename__ = "stock_records"

    id = Column(IdType, primary_key=True, autoincrement=True)
    product_id = Column(IdType, ForeignKey("products.id"), nullable=False)
    warehouse_id = Column(IdType, ForeignKey("warehouses.id"), nullable=False)

    quantity = Column(Integer, nullable=False, default=0, doc="Units on hand")
    safety_stock = Column(Integer, nullable=False, default=0, doc="Minimum desired on-hand units")
    unit_cost = Column(Integer, nullable=True, doc="Last acquisition cost in cents")

    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.current_timestamp(),
        onupdate=func.current_timestamp()
    )

    product = relationship("Product")
    warehouse = relationship("Warehouse")

    __table_args__ = (
        UniqueConstraint('product_id', 'warehouse_id', name='uq_stock_records_product_warehouse'),
        CheckConstraint('quantity >= 0', name='non_negative_quantity'),
        CheckConstraint('safety_stock >= 0', name='non_negative_safety_stock'),
        Index('idx_stock_records_warehouse', 'warehouse_id'),
    )

    def __repr__(self):
        return (
            f"<StockRecord(product={self.product_id}, warehouse={self.warehouse_id}, "
            f"qty={self.quantity})>"
        )


class StockMovement(Base):
    """Append-only ledger entry; never updated after insert"""
    __tablename__ = "stock_movements"

    id = Column(IdType, primary_key=True, autoincrement=True)
    product_id = Column(IdType, ForeignKey("products.id"), nullable=False)
    warehouse_id = Column(IdType, ForeignKey("warehouses.id"), nullable=False)
    delta = Column(Integer, nullable=False, doc="Signed quantity change")
    kind = Column(String(20), nullable=False)
    correlation_id = Column(String(36), nullable=False, doc="Groups the entries of one operation")
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp())

    __table_args__ = (
        CheckConstraint('delta <> 0', name='non_zero_delta'),
        CheckConstraint(
            "kind IN ('purchase-receipt', 'withdrawal', 'transfer-in', 'transfer-out', 'kit-decrement')",
            name='valid_kind'
        ),
        Index('idx_stock_movements_pair', 'product_id', 'warehouse_id'),
        Index('idx_stock_movements_correlation', 'correlation_id'),
    )

    def __repr__(self):
        return f"<StockMovement(id={self.id}, kind='{self.kind}', delta={self.delta})>"


class Withdrawal(Base):
    """Outbound register header: one sales/consumption event"""
    __tablename__ = "withdrawals"

    id = Column(IdType, primary_key=True, autoincrement=True)
    owner_id = Column(IdType, nullable=False)
    warehouse_id = Column(IdType, ForeignKey("warehouses.id"), nullable=False)
    correlation_id = Column(String(36), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp())

    lines = relationship("WithdrawalLine", back_populates="withdrawal", cascade="all, delete-orphan")


class WithdrawalLine(Base):
    __tablename__ = "withdrawal_lines"

    id = Column(IdType, primary_key=True, autoincrement=True)
    withdrawal_id = Column(IdType, ForeignKey("withdrawals.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(IdType, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    is_kit = Column(Boolean, nullable=False, default=False)

    withdrawal = relationship("Withdrawal", back_populates="lines")

    __table_args__ = (
        CheckConstraint('quantity > 0', name='positive_quantity'),
    )


class Transfer(Base):
    """Inter-warehouse transfer header"""
    __tablename__ = "transfers"

    id = Column(IdType, primary_key=True, autoincrement=True)
    owner_id = Column(IdType, nullable=False)
    source_warehouse_id = Column(IdType, ForeignKey("warehouses.id"), nullable=False)
    destination_warehouse_id = Column(IdType, ForeignKey("warehouses.id"), nullable=False)
    correlation_id = Column(String(36), nullable=False, unique=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp())

    lines = relationship("TransferLine", back_populates="transfer", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint('source_warehouse_id <> destination_warehouse_id', name='distinct_warehouses'),
        Index('idx_transfers_owner', 'owner_id'),
    )

    def __repr__(self):
        return (
            f"<Transfer(id={self.id}, {self.source_warehouse_id} -> "
            f"{self.destination_warehouse_id})>"
        )


class TransferLine(Base):
    __tablename__ = "transfer_lines"

    id = Column(IdType, primary_key=True, autoincrement=True)
    transfer_id = Column(IdType, ForeignKey("transfers.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(IdType, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False)

    transfer = relationship("Transfer", back_populates="lines")

    __table_args__ = (
        CheckConstraint('quantity > 0', name='positive_quantity'),
    )
