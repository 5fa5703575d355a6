"""
Stockledger Purchase Order Schemas
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from .common import ExternalId, OrmModel, ProductTotal


class OrderLineIn(BaseModel):
    product_id: ExternalId
    quantity: int = Field(..., gt=0)
    unit_cost: int = Field(0, ge=0, description="Cost per unit in cents")


class PurchaseOrderCreate(BaseModel):
    supplier_id: ExternalId
    destination_warehouse_id: Optional[ExternalId] = None
    notes: Optional[str] = None
    lines: List[OrderLineIn] = Field(..., min_length=1)


class PurchaseOrderLineResponse(OrmModel):
    id: ExternalId
    product_id: ExternalId
    ordered_quantity: int
    received_quantity: Optional[int] = None
    unit_cost: int


class PurchaseOrderResponse(OrmModel):
    id: ExternalId
    supplier_id: ExternalId
    status: str
    destination_warehouse_id: Optional[ExternalId] = None
    notes: Optional[str] = None
    predecessor_id: Optional[ExternalId] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    lines: List[PurchaseOrderLineResponse]


class ReceivedLineIn(BaseModel):
    product_id: ExternalId
    quantity: int = Field(..., ge=0)
    unit_cost: Optional[int] = Field(None, ge=0, description="Actual cost per unit in cents")


class ReceiveRequest(BaseModel):
    destination_warehouse_id: Optional[ExternalId] = None
    lines: List[ReceivedLineIn] = Field(default_factory=list)


class FulfillmentResponse(OrmModel):
    updated_order: PurchaseOrderResponse
    remainder_order: Optional[PurchaseOrderResponse] = None
    correlation_id: Optional[str] = None
    marketplace_totals: List[ProductTotal]
