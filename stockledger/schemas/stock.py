"""
Stockledger Stock Schemas
Request and response models for stock records, movements, transfers and withdrawals
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from .common import ExternalId, OrmModel, ProductTotal


class StockRecordResponse(OrmModel):
    id: ExternalId
    product_id: ExternalId
    warehouse_id: ExternalId
    quantity: int
    safety_stock: int
    unit_cost: Optional[int] = Field(None, description="Last acquisition cost in cents")
    updated_at: Optional[datetime] = None


class SafetyStockUpdate(BaseModel):
    product_id: ExternalId
    warehouse_id: ExternalId
    safety_stock: int = Field(..., ge=0)


class StockMovementResponse(OrmModel):
    id: ExternalId
    product_id: ExternalId
    warehouse_id: ExternalId
    delta: int
    kind: str
    correlation_id: str
    created_at: Optional[datetime] = None


class LedgerChangeResponse(OrmModel):
    product_id: ExternalId
    warehouse_id: ExternalId
    delta: int
    kind: str
    quantity_after: int


# Withdrawals

class WithdrawalLineIn(BaseModel):
    sku: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)
    is_kit: bool = False


class WithdrawalRequest(BaseModel):
    warehouse_id: ExternalId
    lines: List[WithdrawalLineIn] = Field(..., min_length=1)


class WithdrawalReceiptResponse(OrmModel):
    withdrawal_id: ExternalId
    correlation_id: str
    warehouse_id: ExternalId
    decrements: List[LedgerChangeResponse]
    marketplace_totals: List[ProductTotal]


# Transfers

class TransferLineIn(BaseModel):
    product_id: ExternalId
    quantity: int = Field(..., gt=0)


class TransferRequest(BaseModel):
    source_warehouse_id: ExternalId
    destination_warehouse_id: ExternalId
    lines: List[TransferLineIn] = Field(..., min_length=1)
    notes: Optional[str] = None


class TransferredLineResponse(OrmModel):
    product_id: ExternalId
    quantity: int
    source_quantity_after: int
    destination_quantity_after: int


class TransferReceiptResponse(OrmModel):
    transfer_id: ExternalId
    correlation_id: str
    source_warehouse_id: ExternalId
    destination_warehouse_id: ExternalId
    lines: List[TransferredLineResponse]
    marketplace_totals: List[ProductTotal]


class TransferLineResponse(OrmModel):
    product_id: ExternalId
    quantity: int


class TransferResponse(OrmModel):
    id: ExternalId
    source_warehouse_id: ExternalId
    destination_warehouse_id: ExternalId
    correlation_id: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    lines: List[TransferLineResponse]
