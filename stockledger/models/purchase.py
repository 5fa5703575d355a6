"""
Stockledger Purchase Order Models
"""
import enum

from sqlalchemy import (
    Column, String, Integer, DateTime, Text,
    ForeignKey, CheckConstraint, Index
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from stockledger.core.database import Base, IdType


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"


class PurchaseOrder(Base):
    """
    Supplier purchase order

    ``pending`` until received, then ``confirmed`` (terminal, immutable). A
    partial receipt spins off a new pending order for the shortfall whose
    ``predecessor_id`` and ``notes`` point back here.
    """
    __tablename__ = "purchase_orders"

    id = Column(IdType, primary_key=True, autoincrement=True)
    owner_id = Column(IdType, nullable=False)
    supplier_id = Column(IdType, nullable=False, doc="Supplier reference, managed externally")
    status = Column(String(10), nullable=False, default=OrderStatus.PENDING.value)
    destination_warehouse_id = Column(IdType, ForeignKey("warehouses.id"), nullable=True)
    notes = Column(Text, nullable=True)
    predecessor_id = Column(IdType, ForeignKey("purchase_orders.id"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp())
    completed_at = Column(DateTime(timezone=True), nullable=True)

    lines = relationship(
        "PurchaseOrderLine",
        back_populates="order",
        order_by="PurchaseOrderLine.id",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint("status IN ('pending', 'confirmed')", name='valid_status'),
        Index('idx_purchase_orders_owner_status', 'owner_id', 'status'),
    )

    @property
    def is_confirmed(self) -> bool:
        return self.status == OrderStatus.CONFIRMED.value

    def __repr__(self):
        return f"<PurchaseOrder(id={self.id}, status='{self.status}')>"


class PurchaseOrderLine(Base):
    __tablename__ = "purchase_order_lines"

    id = Column(IdType, primary_key=True, autoincrement=True)
    order_id = Column(IdType, ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(IdType, ForeignKey("products.id"), nullable=False)
    ordered_quantity = Column(Integer, nullable=False)
    received_quantity = Column(Integer, nullable=True, doc="Set when the order is confirmed")
    unit_cost = Column(Integer, nullable=False, default=0, doc="Cost per unit in cents")

    order = relationship("PurchaseOrder", back_populates="lines")

    __table_args__ = (
        CheckConstraint('ordered_quantity > 0', name='positive_ordered'),
        CheckConstraint('unit_cost >= 0', name='non_negative_cost'),
    )
