"""
Stockledger Pricing Schemas
Prices arrive in decimal major units and leave in integer cents
"""
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from .common import OrmModel


class PromotionIn(BaseModel):
    amount: Decimal = Field(..., ge=0)
    regular_amount: Optional[Decimal] = Field(None, ge=0)


class ReconcileRequest(BaseModel):
    standard_price: Optional[Decimal] = Field(None, ge=0, description="Major units, e.g. 49.90")
    promotion: Optional[PromotionIn] = None
    stored_discount_pct: Optional[int] = None
    reference: Optional[str] = None


class InconsistencyResponse(OrmModel):
    stored_discount_pct: int
    computed_discount_pct: int
    message: str


class CanonicalPriceResponse(OrmModel):
    price_cents: int
    standard_price_cents: Optional[int] = None
    promotion_price_cents: Optional[int] = None
    regular_price_cents: Optional[int] = None
    discount_pct: Optional[int] = None
    has_promotion: bool
    inconsistency: Optional[InconsistencyResponse] = None
