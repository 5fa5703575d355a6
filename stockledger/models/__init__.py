"""
Stockledger SQLAlchemy Models
"""

# Import all models to ensure they are registered with SQLAlchemy
from .catalog import Product, KitComponent
from .warehouse import Warehouse
from .stock import (
    MovementKind, OUTBOUND_KINDS, StockRecord, StockMovement,
    Withdrawal, WithdrawalLine, Transfer, TransferLine
)
from .purchase import OrderStatus, PurchaseOrder, PurchaseOrderLine
from .replenishment import ReplenishmentConfig
from .marketplace import MarketplaceListing

__all__ = [
    "Product",
    "KitComponent",
    "Warehouse",
    "MovementKind",
    "OUTBOUND_KINDS",
    "StockRecord",
    "StockMovement",
    "Withdrawal",
    "WithdrawalLine",
    "Transfer",
    "TransferLine",
    "OrderStatus",
    "PurchaseOrder",
    "PurchaseOrderLine",
    "ReplenishmentConfig",
    "MarketplaceListing",
]
